import pytest
from unittest.mock import AsyncMock

from ai_chart.charts.models import ExtractionMethod
from ai_chart.charts.prompt_extractor import (
    PromptDataExtractor,
    extract_bracketed_lists,
    extract_key_values,
    extract_simple_lists,
    infer_category_field_name,
    infer_time_labels,
    infer_value_field_name,
)
from ai_chart.exceptions import AIServiceError
from ai_chart.prompts import PROMPT_DATA_EXTRACTION

AI_ROWS = [
    {"month": "Jan", "sales": 100},
    {"month": "Feb", "sales": 130},
    {"month": "Mar", "sales": 170},
]


@pytest.mark.asyncio
async def test_bracketed_lists_without_chat_service():
    extractor = PromptDataExtractor(chat_service=None)

    result = await extractor.extract_from_prompt("Beijing[22,23,24], Shanghai[25,26,27]")

    assert result.extraction_method == ExtractionMethod.REGEX_PATTERN
    assert result.confidence == 0.7
    assert len(result.data) == 3
    assert set(result.data[0].keys()) == {"time", "Beijing", "Shanghai"}
    assert result.data[0] == {"time": "Day 1", "Beijing": 22, "Shanghai": 25}
    assert result.data[2] == {"time": "Day 3", "Beijing": 24, "Shanghai": 27}


def test_bracketed_lists_use_weekday_labels():
    result = extract_bracketed_lists("Weekly temperature: Beijing[22, 23, 24]")

    assert [row["time"] for row in result.data] == ["Monday", "Tuesday", "Wednesday"]
    assert [row["Beijing"] for row in result.data] == [22, 23, 24]


def test_bracketed_lists_chinese_labels():
    result = extract_bracketed_lists("本周气温：北京[22, 23, 24]，上海[25, 26, 27]")

    assert [row["time"] for row in result.data] == ["星期一", "星期二", "星期三"]
    assert result.data[1] == {"time": "星期二", "北京": 23, "上海": 26}


def test_bracketed_lists_pad_short_series():
    result = extract_bracketed_lists("A[1, 2, 3], B[4, 5]")

    assert result.data[2] == {"time": "Day 3", "A": 3, "B": None}


def test_key_values_with_multiplier_and_unit():
    result = extract_key_values("1月: 850万元, 2月: 920万元, 3月: 1000万元")

    assert result.confidence == 0.8
    assert result.data == [
        {"month": "1月", "amount": 8500000},
        {"month": "2月", "amount": 9200000},
        {"month": "3月", "amount": 10000000},
    ]


def test_key_values_english_labels():
    result = extract_key_values("Sales by region: North: 120, South: 98, East: 143")

    assert result.data == [
        {"category": "North", "value": 120},
        {"category": "South", "value": 98},
        {"category": "East", "value": 143},
    ]


def test_key_values_skip_number_lists():
    assert extract_key_values("sales: 100, 200, 300") is None


def test_simple_lists():
    result = extract_simple_lists("sales: 100, 200, 300")

    assert result.confidence == 0.6
    assert result.data == [
        {"category": "类别1", "sales": 100},
        {"category": "类别2", "sales": 200},
        {"category": "类别3", "sales": 300},
    ]


@pytest.mark.parametrize("prompt, length, expected", [
    ("monthly revenue", 3, ["Jan", "Feb", "Mar"]),
    ("monthly revenue", 13, [f"Day {n}" for n in range(1, 14)]),
    ("每月销售额", 2, ["1月", "2月"]),
    ("销售额", 2, ["第1天", "第2天"]),
])
def test_infer_time_labels(prompt, length, expected):
    assert infer_time_labels(prompt, length) == expected


@pytest.mark.parametrize("label, expected", [
    ("1月", "month"),
    ("Q1", "quarter"),
    ("2023年", "year"),
    ("周一", "week"),
    ("北京地区", "region"),
    ("Widget", "category"),
])
def test_infer_category_field_name(label, expected):
    assert infer_category_field_name(label) == expected


def test_infer_value_field_name():
    assert infer_value_field_name("元") == "amount"
    assert infer_value_field_name("人") == "headcount"
    assert infer_value_field_name("") == "value"


@pytest.mark.asyncio
async def test_prompt_without_data_returns_none():
    extractor = PromptDataExtractor(chat_service=None)

    assert await extractor.extract_from_prompt("Please draw me a nice chart") is None
    assert await extractor.extract_from_prompt("   ") is None


@pytest.mark.asyncio
async def test_ai_extraction_preferred(mock_chat_service, chat_reply):
    mock_chat_service.chat.return_value = chat_reply(
        {"hasData": True, "xAxisKey": "month", "yAxisKeys": ["sales"], "data": AI_ROWS, "confidence": 0.9},
        fenced=True,
    )
    extractor = PromptDataExtractor(chat_service=mock_chat_service)

    result = await extractor.extract_from_prompt("Sales were 100 in Jan, 130 in Feb and 170 in Mar")

    assert result.extraction_method == ExtractionMethod.AI_PARSING
    assert result.confidence == 0.9
    assert result.data == AI_ROWS
    assert result.warnings == []
    request = mock_chat_service.chat.call_args[0][0]
    assert request.system_prompt == PROMPT_DATA_EXTRACTION
    assert request.temperature == 0.1


@pytest.mark.asyncio
async def test_ai_extraction_default_confidence_and_axis_warning(mock_chat_service, chat_reply):
    mock_chat_service.chat.return_value = chat_reply({"hasData": True, "xAxisKey": "period", "data": AI_ROWS})
    extractor = PromptDataExtractor(chat_service=mock_chat_service)

    result = await extractor.ai_extract("Sales in Jan 100, Feb 130, Mar 170")

    assert result.confidence == 0.8
    assert "period" in result.warnings[0]


@pytest.mark.asyncio
@pytest.mark.parametrize("reply", [
    {"hasData": False},
    {"hasData": True},
    {"hasData": True, "data": [{"month": "Jan", "sales": {"nested": 1}}]},
    "not json at all",
])
async def test_ai_miss_falls_back_to_patterns(mock_chat_service, chat_reply, reply):
    mock_chat_service.chat.return_value = chat_reply(reply)
    extractor = PromptDataExtractor(chat_service=mock_chat_service)

    result = await extractor.extract_from_prompt("Beijing[22,23,24], Shanghai[25,26,27]")

    assert result.extraction_method == ExtractionMethod.REGEX_PATTERN
    assert len(result.data) == 3
    mock_chat_service.chat.assert_awaited_once()


@pytest.mark.asyncio
async def test_ai_service_error_falls_back_to_patterns(mock_chat_service):
    mock_chat_service.chat = AsyncMock(side_effect=AIServiceError("upstream down"))
    extractor = PromptDataExtractor(chat_service=mock_chat_service)

    result = await extractor.extract_from_prompt("sales: 100, 200, 300")

    assert result.extraction_method == ExtractionMethod.REGEX_PATTERN
    assert [row["sales"] for row in result.data] == [100, 200, 300]


@pytest.mark.asyncio
async def test_ai_disabled_skips_chat_service(mock_chat_service):
    extractor = PromptDataExtractor(chat_service=mock_chat_service, enable_ai=False)

    result = await extractor.extract_from_prompt("sales: 100, 200, 300")

    assert result.extraction_method == ExtractionMethod.REGEX_PATTERN
    mock_chat_service.chat.assert_not_called()
