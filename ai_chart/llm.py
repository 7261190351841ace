"""
Chat Model Access

Thin async wrapper around an OpenAI-compatible chat completion endpoint.
The pipeline only depends on the ChatService interface so tests and
alternative providers can be swapped in.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Dict, List, Optional
import logging
import re

from openai import AsyncOpenAI, OpenAIError, RateLimitError

from .config import AppConfig, get_config
from .exceptions import AIRateLimitError, AIServiceError, ConfigurationError

logger = logging.getLogger(__name__)

_FENCE_START = re.compile(r"^```(?:json)?\s*", re.IGNORECASE)
_FENCE_END = re.compile(r"\s*```$")


@dataclass
class ChatRequest:
    """A single chat completion request."""
    messages: List[Dict[str, str]]
    system_prompt: Optional[str] = None
    temperature: float = 0.3
    max_tokens: Optional[int] = None


@dataclass
class ChatResponse:
    """Text returned by the chat model."""
    content: str
    model: Optional[str] = None
    finish_reason: Optional[str] = None
    usage: Dict[str, int] = field(default_factory=dict)


class ChatService(ABC):
    """Interface of the chat model used by the pipeline."""

    @abstractmethod
    async def chat(self, request: ChatRequest) -> ChatResponse:
        """Send a chat request and return the model's reply."""

    async def validate_connection(self) -> bool:
        return True


class OpenAIChatService(ChatService):
    """ChatService backed by AsyncOpenAI (works with any compatible base URL)."""

    def __init__(self, api_key: str, model: str, base_url: Optional[str] = None, timeout: float = 30.0):
        if not api_key:
            raise ConfigurationError("AI API key not found in environment variables")
        self.model = model
        self.client = AsyncOpenAI(api_key=api_key, base_url=base_url, timeout=timeout)

    async def chat(self, request: ChatRequest) -> ChatResponse:
        messages = []
        if request.system_prompt:
            messages.append({"role": "system", "content": request.system_prompt})
        messages.extend(request.messages)

        params = {
            "model": self.model,
            "messages": messages,
            "temperature": request.temperature,
        }
        if request.max_tokens:
            params["max_tokens"] = request.max_tokens

        try:
            response = await self.client.chat.completions.create(**params)
        except RateLimitError as e:
            logger.error(f"Chat model rate limit exceeded: {str(e)}")
            raise AIRateLimitError(f"Rate limit exceeded: {str(e)}") from e
        except OpenAIError as e:
            logger.error(f"Chat completion failed: {str(e)}")
            raise AIServiceError(f"Chat completion failed: {str(e)}") from e

        choice = response.choices[0]
        usage = {}
        if response.usage is not None:
            usage = {
                "prompt_tokens": response.usage.prompt_tokens,
                "completion_tokens": response.usage.completion_tokens,
                "total_tokens": response.usage.total_tokens,
            }
        return ChatResponse(
            content=(choice.message.content or "").strip(),
            model=response.model,
            finish_reason=choice.finish_reason,
            usage=usage,
        )

    async def validate_connection(self) -> bool:
        try:
            await self.client.models.list()
            return True
        except OpenAIError as e:
            logger.warning(f"Chat model connection check failed: {str(e)}")
            return False


def clean_json_response(content: str) -> str:
    """Strip markdown code fences the model sometimes wraps JSON in."""
    cleaned = content.strip()
    if cleaned.startswith("```"):
        cleaned = _FENCE_START.sub("", cleaned)
        cleaned = _FENCE_END.sub("", cleaned)
    return cleaned.strip()


def get_chat_service(app_config: Optional[AppConfig] = None) -> Optional[ChatService]:
    """Create the chat service from configuration, or None when no key is set."""
    app_config = app_config or get_config()
    if not app_config.ai_configured:
        logger.warning("AI API key not configured; AI extraction and intent analysis are disabled")
        return None
    return OpenAIChatService(
        api_key=app_config.AI_API_KEY,
        model=app_config.AI_MODEL,
        base_url=app_config.AI_BASE_URL,
        timeout=app_config.AI_TIMEOUT,
    )
