import pytest
from unittest.mock import AsyncMock

from ai_chart.charts.detector import IntentAnalyzer, to_title_case
from ai_chart.charts.models import ChartType
from ai_chart.exceptions import AIChartError, AIServiceError, ErrorKind, ErrorStage


@pytest.fixture
def analyzer(settings):
    return IntentAnalyzer(chat_service=None, settings=settings)


def pie_reply(chat_reply, **overrides):
    payload = {
        "chartType": "pie",
        "confidence": 0.85,
        "reasoning": "Regions are parts of total sales",
        "visualMapping": {"xAxis": "region", "yAxis": "sales"},
        "title": "Sales Share by Region",
    }
    payload.update(overrides)
    return chat_reply(payload)


def test_to_title_case():
    assert to_title_case("total_sales-amount") == "Total Sales Amount"


@pytest.mark.asyncio
async def test_comparison_prompt_prefers_bar(analyzer, sales_data):
    intent = await analyzer.analyze_chart_intent("compare sales by region", sales_data)

    assert intent.chart_type == ChartType.BAR
    assert intent.visual_mapping.x_axis == "region"
    assert intent.visual_mapping.y_axis == ["sales"]
    assert intent.required_fields == ["region", "sales"]
    assert intent.confidence == 0.9


@pytest.mark.asyncio
async def test_share_prompt_prefers_pie(analyzer, sales_data):
    intent = await analyzer.analyze_chart_intent("share of sales by region", sales_data)

    assert intent.chart_type == ChartType.PIE
    assert intent.visual_mapping.color_by is None


@pytest.mark.asyncio
async def test_trend_prompt_prefers_line(analyzer, monthly_data):
    intent = await analyzer.analyze_chart_intent("revenue trend", monthly_data)

    assert intent.chart_type == ChartType.LINE
    assert intent.visual_mapping.x_axis == "month"
    assert intent.visual_mapping.y_axis == ["revenue"]


@pytest.mark.asyncio
async def test_no_numeric_field_is_incompatible(analyzer, make_unified):
    data = make_unified([{"name": "a", "city": "x"}, {"name": "b", "city": "y"}])

    with pytest.raises(AIChartError) as exc_info:
        await analyzer.analyze_chart_intent("compare names", data)

    assert exc_info.value.kind == ErrorKind.DATA_INCOMPATIBLE
    assert exc_info.value.stage == ErrorStage.INTENT_ANALYSIS


@pytest.mark.asyncio
async def test_ai_intent_preferred(settings, sales_data, mock_chat_service, chat_reply):
    mock_chat_service.chat.return_value = pie_reply(chat_reply)
    analyzer = IntentAnalyzer(mock_chat_service, settings)

    intent = await analyzer.analyze_chart_intent("show sales by region", sales_data)

    assert intent.chart_type == ChartType.PIE
    assert intent.confidence == 0.85
    assert intent.visual_mapping.y_axis == ["sales"]
    assert intent.suggestions.title == "Sales Share by Region"
    assert intent.reasoning == "Regions are parts of total sales"


@pytest.mark.asyncio
async def test_strong_keywords_override_ai(settings, monthly_data, mock_chat_service, chat_reply):
    mock_chat_service.chat.return_value = pie_reply(
        chat_reply, visualMapping={"xAxis": "month", "yAxis": ["revenue"]}
    )
    analyzer = IntentAnalyzer(mock_chat_service, settings)

    intent = await analyzer.analyze_chart_intent("line trend of revenue over time", monthly_data)

    assert intent.chart_type == ChartType.LINE


@pytest.mark.asyncio
async def test_incompatible_ai_intent_falls_back(settings, make_unified, mock_chat_service, chat_reply):
    data = make_unified([{"region": "North", "sales": 120}])
    mock_chat_service.chat.return_value = chat_reply({"chartType": "line"})
    analyzer = IntentAnalyzer(mock_chat_service, settings)

    intent = await analyzer.analyze_chart_intent("sales for the north region", data)

    assert intent.chart_type == ChartType.BAR


@pytest.mark.asyncio
async def test_ai_failure_falls_back_to_heuristic(settings, sales_data, mock_chat_service):
    mock_chat_service.chat = AsyncMock(side_effect=AIServiceError("timeout"))
    analyzer = IntentAnalyzer(mock_chat_service, settings)

    intent = await analyzer.analyze_chart_intent("compare sales by region", sales_data)

    assert intent.chart_type == ChartType.BAR


@pytest.mark.asyncio
async def test_ai_unknown_fields_are_replaced(settings, sales_data, mock_chat_service, chat_reply):
    mock_chat_service.chat.return_value = chat_reply(
        {"chartType": "bar", "visualMapping": {"xAxis": "country", "yAxis": ["profit"], "colorBy": "segment"}}
    )
    analyzer = IntentAnalyzer(mock_chat_service, settings)

    intent = await analyzer.analyze_chart_intent("show sales by region", sales_data)

    assert intent.visual_mapping.x_axis == "region"
    assert intent.visual_mapping.y_axis == ["sales"]
    assert intent.visual_mapping.color_by is None


@pytest.mark.asyncio
async def test_suggest_best_visualization_without_ai(analyzer, monthly_data):
    intent = await analyzer.suggest_best_visualization(monthly_data)

    assert intent.chart_type == ChartType.LINE


def test_build_intent_for_explicit_type(analyzer, sales_data):
    intent = analyzer.build_intent(ChartType.PIE, sales_data)

    assert intent.chart_type == ChartType.PIE
    assert intent.confidence == 1.0
    assert intent.reasoning == "User requested a pie chart"
    assert intent.suggestions.title == "Pie Chart of Region"
    assert intent.suggestions.insights == ["Sales peaks at East with 143"]


def test_bar_suggestions_include_lowest(analyzer, sales_data):
    intent = analyzer.build_intent(ChartType.BAR, sales_data)

    assert intent.suggestions.insights == [
        "Sales peaks at East with 143",
        "Sales is lowest at West with 87",
    ]


def test_compatibility_missing_field(analyzer, sales_data):
    intent = analyzer.build_intent(ChartType.BAR, sales_data)
    intent.required_fields.append("profit")

    result = analyzer.validate_data_compatibility(intent, sales_data)

    assert not result.is_compatible
    assert result.missing_fields == ["profit"]


def test_compatibility_line_needs_two_rows(analyzer, make_unified):
    data = make_unified([{"region": "North", "sales": 120}])
    intent = analyzer.build_intent(ChartType.LINE, data)

    result = analyzer.validate_data_compatibility(intent, data)

    assert not result.is_compatible
    assert "at least 2 rows" in result.incompatible_types[0]


def test_compatibility_pie_with_many_rows_suggests(analyzer, make_unified):
    data = make_unified([{"item": f"Item {i}", "count": i * 10} for i in range(1, 12)])
    intent = analyzer.build_intent(ChartType.PIE, data)

    result = analyzer.validate_data_compatibility(intent, data)

    assert result.is_compatible
    assert any("many categories" in suggestion for suggestion in result.suggestions)


def test_pie_switches_when_too_many_categories(analyzer, make_unified):
    data = make_unified([{"item": f"Item {i}", "count": i * 10} for i in range(1, 14)])

    intent, analysis = analyzer.heuristic_recommendation("pie chart of counts", data)

    assert intent.chart_type == ChartType.BAR
    assert any("Pie chart unsuitable" in reason for reason in analysis.reasons)
