"""
Chart Director

Main coordinator for the chart pipeline. Sequences input routing,
extraction, intent analysis, compatibility checking and generation, and
turns every failure into a typed, unsuccessful result.
"""

from typing import Any, Dict, List, Optional
import time
import logging

from ..config import get_config
from ..exceptions import AIChartError, ErrorKind, ErrorStage
from ..llm import ChatService
from .detector import IntentAnalyzer
from .extractor import DataExtractor
from .generator import ChartGenerator
from .input_router import InputRouter, Scenario
from .models import (
    ChartGenerationResult,
    ChartIntent,
    ChartRequest,
    ChartSettings,
    DataSource,
    UnifiedDataStructure,
)

logger = logging.getLogger(__name__)

STAGE_SUGGESTIONS = {
    ErrorStage.INPUT_VALIDATION: [
        "Check the description text or the file format",
        "Make sure files are Excel (.xlsx, .xls) or CSV",
    ],
    ErrorStage.DATA_EXTRACTION: [
        "Provide the data more explicitly, e.g. 'Jan: 120, Feb: 150' or 'Beijing[22, 23, 24]'",
        "Make sure the file contains a header row and valid numeric data",
    ],
    ErrorStage.INTENT_ANALYSIS: [
        "Describe the chart you need more specifically",
        "Say what should be compared, analyzed or shown",
    ],
    ErrorStage.CHART_GENERATION: [
        "Check the data format and completeness",
        "Try simplifying the data or choosing a different chart type",
    ],
}

_REASON_DETAIL_KEYS = ("errors", "validation_errors", "missing_fields", "incompatible_types")


class ChartDirector:
    """Main class that orchestrates the chart generation process."""

    def __init__(self, chat_service: Optional[ChatService] = None, settings: ChartSettings = None,
                 enable_ai_extraction: Optional[bool] = None):
        if enable_ai_extraction is None:
            enable_ai_extraction = get_config().ENABLE_AI_EXTRACTION
        self.settings = settings or ChartSettings()
        self.chat_service = chat_service
        self.input_router = InputRouter(self.settings)
        self.data_extractor = DataExtractor(chat_service, self.settings, enable_ai=enable_ai_extraction)
        self.intent_analyzer = IntentAnalyzer(chat_service, self.settings)
        self.chart_generator = ChartGenerator(self.settings)
        self.last_error: Optional[str] = None

    async def generate_chart(self, request: ChartRequest) -> ChartGenerationResult:
        """
        Run the full pipeline for one request.

        Args:
            request: Prompt, uploaded files and optional explicit chart type

        Returns:
            ChartGenerationResult; failures are returned with success=False, never raised
        """
        start_time = time.time()
        stage = ErrorStage.INPUT_VALIDATION
        logger.info(f"Chart request received: prompt length {len(request.prompt or '')}, {len(request.files)} file(s)")

        try:
            scenario = self._route_and_validate(request)

            stage = ErrorStage.DATA_EXTRACTION
            data = await self._extract_and_unify(scenario, request)
            logger.info(
                f"Data ready: {len(data.data)} rows, {len(data.schema.fields)} fields, "
                f"quality {data.schema.quality_score:.2f}, valid={data.is_valid}"
            )

            stage = ErrorStage.INTENT_ANALYSIS
            intent = await self._analyze_intent(scenario, request, data)
            compatibility = self.intent_analyzer.validate_data_compatibility(intent, data)
            if not compatibility.is_compatible:
                raise AIChartError(
                    ErrorStage.INTENT_ANALYSIS,
                    ErrorKind.DATA_INCOMPATIBLE,
                    f"Data is incompatible with a {intent.chart_type.value} chart: {compatibility.reason}",
                    compatibility.to_dict(),
                )

            stage = ErrorStage.CHART_GENERATION
            result = await self.chart_generator.generate_chart(intent, data)

            self.last_error = None
            logger.info(
                f"Chart pipeline finished: {result.chart_type.value} chart in "
                f"{(time.time() - start_time) * 1000:.1f}ms"
            )
            return result

        except AIChartError as e:
            return self._failure_result(e, request)
        except Exception as e:
            logger.error(f"Unexpected error in chart pipeline at {stage.value}: {str(e)}")
            wrapped = AIChartError(
                stage,
                ErrorKind.UNKNOWN_ERROR,
                f"An unexpected error occurred: {str(e)}",
                {"original_error": str(e), "error_type": type(e).__name__},
            )
            return self._failure_result(wrapped, request)

    async def get_system_status(self) -> Dict[str, Any]:
        """Report chat model connectivity, component state and the last error."""
        try:
            ai_connected = False
            if self.chat_service is not None:
                ai_connected = await self.chat_service.validate_connection()
            return {
                "ai_service_connected": ai_connected,
                "components_initialized": all([
                    self.input_router,
                    self.data_extractor,
                    self.intent_analyzer,
                    self.chart_generator,
                ]),
                "last_error": self.last_error,
            }
        except Exception as e:
            logger.error(f"Error checking system status: {str(e)}")
            return {
                "ai_service_connected": False,
                "components_initialized": False,
                "last_error": str(e),
            }

    def _route_and_validate(self, request: ChartRequest) -> Scenario:
        scenario = self.input_router.classify_scenario(request.prompt, request.files)
        validation = self.input_router.validate_input(scenario, request.prompt, request.files)
        if not validation.is_valid:
            raise AIChartError(
                ErrorStage.INPUT_VALIDATION,
                ErrorKind.INVALID_REQUEST,
                f"Input validation failed: {'; '.join(validation.errors)}",
                validation.to_dict(),
            )
        for warning in validation.warnings:
            logger.info(f"Input warning: {warning}")
        return scenario

    async def _extract_and_unify(self, scenario: Scenario, request: ChartRequest) -> UnifiedDataStructure:
        if scenario == Scenario.PROMPT_ONLY:
            extracted = await self.data_extractor.extract_from_prompt(request.prompt)
            if extracted is None or not extracted.data:
                raise AIChartError(
                    ErrorStage.DATA_EXTRACTION,
                    ErrorKind.INSUFFICIENT_DATA,
                    "No chartable data was found in the description",
                    {"prompt_length": len(request.prompt)},
                )
            return self.data_extractor.normalize_data(extracted.data, DataSource.PROMPT, extracted=extracted)

        extracted_files = self.data_extractor.extract_from_files(request.files)
        if not extracted_files:
            raise AIChartError(ErrorStage.DATA_EXTRACTION, ErrorKind.INSUFFICIENT_DATA, "No data was extracted from the files")

        # Only the first file is charted
        primary_file = request.files[0]
        primary = extracted_files[0]
        return self.data_extractor.normalize_data(
            primary.data,
            DataSource.FILE,
            file_info=primary_file.to_file_info(),
            extracted=primary,
        )

    async def _analyze_intent(self, scenario: Scenario, request: ChartRequest,
                              data: UnifiedDataStructure) -> ChartIntent:
        if request.chart_type is not None:
            return self.intent_analyzer.build_intent(request.chart_type, data, request.prompt)
        if scenario == Scenario.FILE_ONLY:
            return await self.intent_analyzer.suggest_best_visualization(data)
        return await self.intent_analyzer.analyze_chart_intent(request.prompt, data)

    def _failure_result(self, error: AIChartError, request: ChartRequest) -> ChartGenerationResult:
        self.last_error = error.message
        logger.warning(f"Chart pipeline failed at {error.stage.value} ({error.kind.value}): {error.message}")
        return ChartGenerationResult(
            success=False,
            chart_type=request.chart_type,
            error=error.message,
            error_kind=error.kind,
            failed_stage=error.stage,
            reasoning=self._build_reasoning(error),
            suggestions=self._build_suggestions(error, request),
        )

    @staticmethod
    def _build_reasoning(error: AIChartError) -> str:
        parts = [f"{error.stage.value} failed with {error.kind.value}: {error.message}"]
        for key in _REASON_DETAIL_KEYS:
            value = error.details.get(key)
            if isinstance(value, list) and value:
                parts.append(f"{key.replace('_', ' ')}: {', '.join(str(v) for v in value)}")
        return "; ".join(parts)

    @staticmethod
    def _build_suggestions(error: AIChartError, request: ChartRequest) -> List[str]:
        if error.kind == ErrorKind.UNKNOWN_ERROR and error.stage == ErrorStage.CHART_GENERATION:
            return ["Please try again later"]

        suggestions = list(STAGE_SUGGESTIONS[error.stage])
        if error.stage == ErrorStage.DATA_EXTRACTION and not request.files:
            suggestions.append("Consider uploading a data file for better results")

        suggested_type = error.details.get("suggested_chart_type")
        if suggested_type:
            suggestions.insert(0, f"Try a {suggested_type} chart instead")
        suggestions.extend(s for s in error.details.get("suggestions", []) if s not in suggestions)
        return suggestions
