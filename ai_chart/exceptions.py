"""
Chart Pipeline Exceptions

Custom exceptions for the AI chart pipeline. Every pipeline failure is an
AIChartError tagged with the stage that failed and a closed error kind.
"""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorKind(str, Enum):
    """Closed set of pipeline failure kinds."""
    INSUFFICIENT_DATA = "INSUFFICIENT_DATA"
    INVALID_REQUEST = "INVALID_REQUEST"
    DATA_INCOMPATIBLE = "DATA_INCOMPATIBLE"
    UNKNOWN_ERROR = "UNKNOWN_ERROR"


class ErrorStage(str, Enum):
    """Pipeline stages, in execution order."""
    INPUT_VALIDATION = "input_validation"
    DATA_EXTRACTION = "data_extraction"
    INTENT_ANALYSIS = "intent_analysis"
    CHART_GENERATION = "chart_generation"


class AIChartError(Exception):
    """Base exception for chart pipeline errors."""

    def __init__(
        self,
        stage: ErrorStage,
        kind: ErrorKind,
        message: str,
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message)
        self.stage = ErrorStage(stage)
        self.kind = ErrorKind(kind)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "stage": self.stage.value,
            "kind": self.kind.value,
            "message": self.message,
            "details": self.details,
        }

    def __repr__(self) -> str:
        return f"AIChartError(stage={self.stage.value!r}, kind={self.kind.value!r}, message={self.message!r})"


class AIServiceError(Exception):
    """Raised when the chat model returns an error."""
    pass


class AIRateLimitError(AIServiceError):
    """Raised when the chat model rate limit is exceeded."""
    pass


class ConfigurationError(Exception):
    """Raised when there is a configuration error."""
    pass
