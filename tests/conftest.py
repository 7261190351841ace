import json

import pytest
from unittest.mock import AsyncMock

from ai_chart.charts.models import ChartSettings, DataSource, ExtractedData, ExtractionMethod
from ai_chart.charts.normalizer import DataNormalizer
from ai_chart.llm import ChatResponse, ChatService


@pytest.fixture
def settings():
    return ChartSettings()


@pytest.fixture
def normalizer(settings):
    return DataNormalizer(settings)


@pytest.fixture
def make_unified(normalizer):
    """Build a UnifiedDataStructure from raw rows."""
    def _make(rows, source=DataSource.PROMPT, confidence=0.9, method=ExtractionMethod.REGEX_PATTERN):
        extracted = ExtractedData(data=rows, confidence=confidence, extraction_method=method)
        return normalizer.normalize_data(rows, source, extracted=extracted)
    return _make


@pytest.fixture
def sales_rows():
    return [
        {"region": "North", "sales": 120},
        {"region": "South", "sales": 98},
        {"region": "East", "sales": 143},
        {"region": "West", "sales": 87},
    ]


@pytest.fixture
def monthly_rows():
    return [
        {"month": "2024-01-01", "revenue": 100},
        {"month": "2024-02-01", "revenue": 150},
        {"month": "2024-03-01", "revenue": 180},
    ]


@pytest.fixture
def sales_data(make_unified, sales_rows):
    return make_unified(sales_rows)


@pytest.fixture
def monthly_data(make_unified, monthly_rows):
    return make_unified(monthly_rows)


@pytest.fixture
def sales_csv():
    return b"region,sales\nNorth,120\nSouth,98\nEast,143\nWest,87\n"


@pytest.fixture
def chat_reply():
    """Wrap a payload in a ChatResponse the way the model returns it."""
    def _reply(payload, fenced=False):
        content = payload if isinstance(payload, str) else json.dumps(payload)
        if fenced:
            content = f"```json\n{content}\n```"
        return ChatResponse(content=content, model="test-model")
    return _reply


@pytest.fixture
def mock_chat_service(chat_reply):
    """Chat service mock that finds no data unless told otherwise."""
    mock = AsyncMock(spec=ChatService)
    mock.chat = AsyncMock(return_value=chat_reply({"hasData": False}))
    mock.validate_connection = AsyncMock(return_value=True)
    return mock
