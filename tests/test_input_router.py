import pytest

from ai_chart.charts.input_router import InputRouter, Scenario, detect_data_indicators
from ai_chart.charts.models import ChartSettings, UploadedFile
from ai_chart.exceptions import AIChartError, ErrorKind, ErrorStage


@pytest.fixture
def router(settings):
    return InputRouter(settings)


def csv_file(name="data.csv", size=10):
    return UploadedFile(name=name, content=b"x" * size, content_type="text/csv")


def test_classify_scenarios(router):
    assert router.classify_scenario("Sales: A 10, B 20", []) == Scenario.PROMPT_ONLY
    assert router.classify_scenario("Chart this file", [csv_file()]) == Scenario.PROMPT_WITH_FILE
    assert router.classify_scenario("", [csv_file()]) == Scenario.FILE_ONLY
    assert router.classify_scenario("ab", [csv_file()]) == Scenario.FILE_ONLY


@pytest.mark.parametrize("prompt", ["", "   ", "ab"])
def test_classify_without_input_raises(router, prompt):
    with pytest.raises(AIChartError) as exc_info:
        router.classify_scenario(prompt, [])

    assert exc_info.value.kind == ErrorKind.INVALID_REQUEST
    assert exc_info.value.stage == ErrorStage.INPUT_VALIDATION


def test_prompt_with_data_is_valid(router):
    result = router.validate_input(Scenario.PROMPT_ONLY, "Sales: Jan 100, Feb 200, Mar 300", [])

    assert result.is_valid
    assert result.warnings == []


def test_short_prompt_warns(router):
    result = router.validate_input(Scenario.PROMPT_ONLY, "A: 10, B: 20", [])

    assert result.is_valid
    assert len(result.warnings) == 1


def test_prompt_without_indicators_is_invalid(router):
    result = router.validate_input(Scenario.PROMPT_ONLY, "hello there chart", [])

    assert not result.is_valid
    assert "No data was found" in result.errors[0]


def test_file_only_adds_warning(router):
    result = router.validate_input(Scenario.FILE_ONLY, "", [csv_file()])

    assert result.is_valid
    assert any("recommend a chart type" in warning for warning in result.warnings)


def test_too_many_files(router):
    files = [csv_file(f"data{i}.csv") for i in range(4)]

    result = router.validate_input(Scenario.FILE_ONLY, "", files)

    assert not result.is_valid
    assert "At most 3 files" in result.errors[0]


def test_file_size_and_type_limits():
    settings = ChartSettings()
    settings.max_file_size = 1024 * 1024
    router = InputRouter(settings)
    files = [csv_file("big.csv", size=1024 * 1024 + 1), csv_file("report.pdf")]

    result = router.validate_input(Scenario.PROMPT_WITH_FILE, "Chart the uploaded data", files)

    assert not result.is_valid
    assert len(result.errors) == 2
    assert "big.csv is too large" in result.errors[0]
    assert "report.pdf has an unsupported format" in result.errors[1]


def test_long_file_name_warns(router):
    result = router.validate_input(Scenario.FILE_ONLY, "", [csv_file("x" * 120 + ".csv")])

    assert result.is_valid
    assert any("very long" in warning for warning in result.warnings)


@pytest.mark.parametrize("prompt, indicator", [
    ("北京[22, 23, 24]", "value lists"),
    ("revenue 120", "numeric values"),
    ("三月的销售", "time values"),
    ("sales by region", "categories"),
    ("show the growth", "data relationships"),
])
def test_detect_data_indicators(prompt, indicator):
    assert indicator in detect_data_indicators(prompt)


def test_detect_data_indicators_empty():
    assert detect_data_indicators("hello there chart") == []
