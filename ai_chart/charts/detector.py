"""
Chart Intent Analyzer

Chooses a chart type and a field-to-axis mapping for a unified data
structure. A keyword and data-shape heuristic always runs; when a chat
model is configured its recommendation is preferred unless it does not
fit the data or contradicts an explicit wording preference.
"""

from typing import Dict, List, Optional, Tuple
from dataclasses import dataclass, field
import json
import logging

from pydantic import ValidationError

from ..exceptions import AIChartError, ErrorKind, ErrorStage
from ..llm import ChatRequest, ChatService, clean_json_response
from ..prompts import get_data_analysis_prompt, get_intent_prompt
from .models import (
    AIIntentResponse,
    ChartIntent,
    ChartSettings,
    ChartSuggestions,
    ChartType,
    CompatibilityResult,
    DataRow,
    FieldType,
    UnifiedDataStructure,
    VisualMapping,
)
from .schema import parse_number

logger = logging.getLogger(__name__)

KEYWORD_MAP: Dict[ChartType, List[str]] = {
    ChartType.LINE: [
        "line", "line chart", "line graph", "trend", "timeline", "over time", "growth", "decline",
        "走势", "趋势", "折线", "变化",
    ],
    ChartType.AREA: [
        "area", "area chart", "stacked", "cumulative", "filled", "coverage",
        "累计", "面积", "堆叠",
    ],
    ChartType.BAR: [
        "bar", "column", "compare", "comparison", "versus", "ranking", "top", "bottom",
        "对比", "比较", "柱状", "条形",
    ],
    ChartType.PIE: [
        "pie", "donut", "share", "portion", "ratio", "percentage", "percent", "distribution",
        "breakdown", "composition", "占比", "比例", "份额", "饼图",
    ],
}

CHART_LABELS = {
    ChartType.BAR: "Bar Chart",
    ChartType.LINE: "Line Chart",
    ChartType.PIE: "Pie Chart",
    ChartType.AREA: "Area Chart",
}

PROPORTION_WORDS = ("percent", "percentage", "share", "ratio", "%", "占比", "比例", "份额")
COMPARISON_WORDS = ("compare", "comparison", "versus", "对比", "比较")
TREND_WORDS = ("trend", "over time", "growth", "decline", "趋势", "走势")
CUMULATIVE_WORDS = ("cumulative", "stacked", "area", "累计", "堆叠", "面积")

MIN_ROWS = {ChartType.LINE: 2, ChartType.AREA: 2, ChartType.BAR: 1, ChartType.PIE: 1}
MAX_Y_FIELDS = {ChartType.PIE: 1, ChartType.BAR: 2, ChartType.LINE: 3, ChartType.AREA: 3}


@dataclass
class HeuristicAnalysis:
    """Scores behind a heuristic recommendation."""
    best_type: Optional[ChartType]
    best_score: float
    second_score: float
    scores: Dict[ChartType, float] = field(default_factory=dict)
    matched_keywords: List[str] = field(default_factory=list)
    reasons: List[str] = field(default_factory=list)

    @property
    def has_strong_preference(self) -> bool:
        return bool(self.matched_keywords) and self.best_score - self.second_score >= 1


def to_title_case(value: str) -> str:
    words = value.replace("_", " ").replace("-", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


class IntentAnalyzer:
    """Recommends chart types and visual mappings."""

    def __init__(self, chat_service: Optional[ChatService] = None, settings: ChartSettings = None):
        self.chat_service = chat_service
        self.settings = settings or ChartSettings()

    async def analyze_chart_intent(self, prompt: str, data: UnifiedDataStructure) -> ChartIntent:
        """
        Choose a chart for a prompt and its data.

        Args:
            prompt: The user's request text
            data: Normalized data the chart will be drawn from

        Returns:
            ChartIntent with type, mapping and suggestions

        Raises:
            AIChartError: DATA_INCOMPATIBLE when no chart can be built
        """
        heuristic_intent, analysis = self.heuristic_recommendation(prompt, data)
        ai_intent = await self._ai_analyze_intent(prompt, data)

        if ai_intent is not None:
            logger.info(f"AI recommended {ai_intent.chart_type.value} chart")
            if heuristic_intent is not None:
                ai_compatible = self.validate_data_compatibility(ai_intent, data).is_compatible
                heuristic_compatible = self.validate_data_compatibility(heuristic_intent, data).is_compatible
                if not ai_compatible and heuristic_compatible:
                    logger.warning(
                        f"AI intent does not fit the data, using {heuristic_intent.chart_type.value} instead"
                    )
                    return heuristic_intent
                if heuristic_intent.chart_type != ai_intent.chart_type and analysis.has_strong_preference:
                    logger.warning(
                        f"Prompt keywords {analysis.matched_keywords} prefer "
                        f"{heuristic_intent.chart_type.value} over AI choice {ai_intent.chart_type.value}"
                    )
                    return heuristic_intent
            return ai_intent

        if heuristic_intent is not None:
            logger.info(f"Using heuristic {heuristic_intent.chart_type.value} chart")
            return heuristic_intent

        raise AIChartError(
            ErrorStage.INTENT_ANALYSIS,
            ErrorKind.DATA_INCOMPATIBLE,
            "Could not determine a suitable chart type for this data",
            {
                "reasons": analysis.reasons,
                "rows": len(data.data),
                "fields": len(data.schema.fields),
            },
        )

    async def suggest_best_visualization(self, data: UnifiedDataStructure) -> ChartIntent:
        """Recommend a chart when the user supplied only files."""
        stats = data.metadata.statistics
        analysis_prompt = get_data_analysis_prompt(
            row_count=len(data.data),
            fields=", ".join(f"{f.name}({f.type.value})" for f in data.schema.fields),
            numeric_fields=", ".join(stats.numeric_fields),
            categorical_fields=", ".join(stats.categorical_fields),
            date_fields=", ".join(stats.date_fields),
            preview=json.dumps(data.data[:3], ensure_ascii=False, default=str, indent=2),
        )

        ai_intent = await self._ai_analyze_intent(analysis_prompt, data)
        if ai_intent is not None and self.validate_data_compatibility(ai_intent, data).is_compatible:
            logger.info(f"AI recommended {ai_intent.chart_type.value} chart for uploaded data")
            return ai_intent

        heuristic_intent, analysis = self.heuristic_recommendation("", data)
        if heuristic_intent is not None:
            return heuristic_intent
        if ai_intent is not None:
            return ai_intent

        raise AIChartError(
            ErrorStage.INTENT_ANALYSIS,
            ErrorKind.DATA_INCOMPATIBLE,
            "Could not recommend a chart type for the uploaded data",
            {"reasons": analysis.reasons, "rows": len(data.data), "fields": len(data.schema.fields)},
        )

    def build_intent(self, chart_type: ChartType, data: UnifiedDataStructure, prompt: str = "") -> ChartIntent:
        """Intent for a chart type the user asked for explicitly."""
        chart_type = ChartType(chart_type)
        x_axis = self.pick_x_axis(chart_type, data)
        if x_axis is None:
            raise AIChartError(
                ErrorStage.INTENT_ANALYSIS,
                ErrorKind.DATA_INCOMPATIBLE,
                "The data has no fields to place on the x-axis",
            )
        y_axis = self.pick_y_axis(chart_type, data, x_axis)
        optional = [f for f in data.metadata.statistics.categorical_fields if f != x_axis]

        return ChartIntent(
            chart_type=chart_type,
            confidence=1.0,
            reasoning=f"User requested a {chart_type.value} chart",
            required_fields=list(dict.fromkeys([x_axis] + y_axis)),
            optional_fields=optional,
            visual_mapping=VisualMapping(
                x_axis=x_axis,
                y_axis=y_axis,
                color_by=None if chart_type == ChartType.PIE or not optional else optional[0],
            ),
            suggestions=self._build_suggestions(chart_type, x_axis, y_axis, data),
        )

    def validate_data_compatibility(self, intent: ChartIntent, data: UnifiedDataStructure) -> CompatibilityResult:
        """Check an intent against the fields, types and size of the data."""
        field_names = set(data.schema.field_names)
        missing_fields = [name for name in intent.required_fields if name not in field_names]
        incompatible: List[str] = []
        suggestions: List[str] = []
        stats = data.metadata.statistics
        chart_type = intent.chart_type

        if not stats.numeric_fields:
            incompatible.append(f"A {chart_type.value} chart needs at least one numeric field")
        if chart_type == ChartType.PIE:
            if len(data.data) > 10:
                suggestions.append("The pie chart has many categories; consider merging small ones or using a bar chart")
        elif not stats.categorical_fields and not stats.date_fields:
            incompatible.append(f"A {chart_type.value} chart needs a category or date field for the x-axis")

        if data.schema.quality_score < self.settings.low_quality_warning_threshold:
            suggestions.append("Data quality is low; consider checking and cleaning the data")

        min_rows = MIN_ROWS[chart_type]
        if len(data.data) < min_rows:
            incompatible.append(f"A {chart_type.value} chart needs at least {min_rows} rows of data")

        is_compatible = not missing_fields and not incompatible
        if is_compatible:
            reason = "Data is compatible with the requested chart"
        else:
            problems = [f"missing field '{name}'" for name in missing_fields] + incompatible
            reason = "Compatibility problems: " + "; ".join(problems)

        return CompatibilityResult(
            is_compatible=is_compatible,
            reason=reason,
            missing_fields=missing_fields,
            incompatible_types=incompatible,
            suggestions=suggestions,
        )

    def heuristic_recommendation(
        self, prompt: str, data: UnifiedDataStructure
    ) -> Tuple[Optional[ChartIntent], HeuristicAnalysis]:
        """Score each chart type from prompt keywords and the data's shape."""
        stats = data.metadata.statistics
        numeric_fields = stats.numeric_fields
        categorical_fields = stats.categorical_fields
        date_fields = stats.date_fields

        if not numeric_fields:
            logger.warning("Heuristic recommendation failed: no numeric fields")
            return None, HeuristicAnalysis(
                best_type=None,
                best_score=float("-inf"),
                second_score=float("-inf"),
                scores={chart_type: 0.0 for chart_type in ChartType},
                reasons=["The data has no numeric field to chart"],
            )

        scores = {chart_type: 0.0 for chart_type in KEYWORD_MAP}
        reasons: List[str] = []
        matched: List[str] = []
        lowered = (prompt or "").lower()

        for chart_type, keywords in KEYWORD_MAP.items():
            for keyword in keywords:
                if keyword in lowered:
                    scores[chart_type] += 2
                    matched.append(keyword)
        if matched:
            reasons.append(f"Keyword hints: {', '.join(matched)}")

        if date_fields:
            scores[ChartType.LINE] += 1.5
            scores[ChartType.AREA] += 1.2
            reasons.append(f"Detected time-related field {date_fields[0]} which favors trend charts")
        if categorical_fields:
            scores[ChartType.BAR] += 1.2
            reasons.append(f"Categorical field {categorical_fields[0]} suggests comparison visuals")
        if len(numeric_fields) > 1:
            scores[ChartType.LINE] += 0.8
            scores[ChartType.AREA] += 1.0

        row_count = len(data.data)
        if row_count <= 8:
            scores[ChartType.PIE] += 0.6
        if row_count > 15:
            scores[ChartType.PIE] -= 1
            reasons.append(f"Large category count ({row_count}) reduces pie chart suitability")

        if any(word in lowered for word in PROPORTION_WORDS):
            scores[ChartType.PIE] += 2.5
            reasons.append("Prompt mentions proportion or percentage, increasing pie chart weight")
        if any(word in lowered for word in COMPARISON_WORDS):
            scores[ChartType.BAR] += 2
            reasons.append("Comparison language detected, boosting bar chart score")
        if any(word in lowered for word in TREND_WORDS):
            scores[ChartType.LINE] += 2
            scores[ChartType.AREA] += 1
            reasons.append("Trend language detected, boosting line/area scores")
        if any(word in lowered for word in CUMULATIVE_WORDS):
            scores[ChartType.AREA] += 2.2
            reasons.append("Stacked or cumulative language detected, boosting area chart score")

        ranked = sorted(scores.items(), key=lambda item: item[1], reverse=True)
        selected, best_score = ranked[0]
        second_score = ranked[1][1]

        if best_score <= 0:
            selected = ChartType.BAR if categorical_fields and not date_fields else ChartType.LINE
            best_score = max(best_score, 0.5)
            reasons.append("No strong hints found, falling back to data-driven inference")

        if selected == ChartType.PIE:
            category_count = self.count_unique_categories(data, categorical_fields[0] if categorical_fields else None)
            if not categorical_fields or category_count > self.settings.max_pie_categories:
                selected = ChartType.BAR if categorical_fields or not date_fields else ChartType.LINE
                reasons.append("Pie chart unsuitable for this data, switching to a more robust type")

        analysis = HeuristicAnalysis(
            best_type=selected,
            best_score=best_score,
            second_score=second_score,
            scores=scores,
            matched_keywords=matched,
            reasons=reasons,
        )

        x_axis = self.pick_x_axis(selected, data)
        y_axis = self.pick_y_axis(selected, data, x_axis)
        if x_axis is None or not y_axis:
            logger.warning(f"Heuristic recommendation could not map axes: x={x_axis}, y={y_axis}")
            return None, analysis

        optional = [f for f in categorical_fields if f != x_axis]
        confidence = max(0.5, min(0.9, 0.55 + best_score * 0.08))
        reasons.append(f"Selected {selected.value} chart with confidence {confidence:.2f}")

        intent = ChartIntent(
            chart_type=selected,
            confidence=confidence,
            reasoning="; ".join(reasons),
            required_fields=list(dict.fromkeys([x_axis] + y_axis)),
            optional_fields=optional,
            visual_mapping=VisualMapping(
                x_axis=x_axis,
                y_axis=y_axis,
                color_by=None if selected == ChartType.PIE or not optional else optional[0],
            ),
            suggestions=self._build_suggestions(selected, x_axis, y_axis, data),
        )
        return intent, analysis

    def pick_x_axis(self, chart_type: ChartType, data: UnifiedDataStructure) -> Optional[str]:
        stats = data.metadata.statistics
        fields = data.schema.fields
        string_field = next((f.name for f in fields if f.type == FieldType.STRING), None)
        date_field = next((f.name for f in fields if f.type == FieldType.DATE), None)
        fallback = string_field or date_field or (fields[0].name if fields else None)

        if chart_type in (ChartType.LINE, ChartType.AREA):
            candidates = stats.date_fields[:1] + stats.categorical_fields[:1]
        elif chart_type == ChartType.PIE:
            candidates = stats.categorical_fields[:1]
        else:
            candidates = stats.categorical_fields[:1] + stats.date_fields[:1]
        return candidates[0] if candidates else fallback

    def pick_y_axis(self, chart_type: ChartType, data: UnifiedDataStructure, x_axis: Optional[str]) -> List[str]:
        numeric_fields = data.metadata.statistics.numeric_fields
        available = [f for f in numeric_fields if f != x_axis] or list(numeric_fields)
        return available[:MAX_Y_FIELDS[chart_type]]

    def count_unique_categories(self, data: UnifiedDataStructure, field_name: Optional[str]) -> int:
        if not field_name:
            return len(data.data)
        unique = {str(row.get(field_name)) for row in data.data if row.get(field_name) is not None}
        return len(unique) or len(data.data)

    async def _ai_analyze_intent(self, prompt: str, data: UnifiedDataStructure) -> Optional[ChartIntent]:
        """Ask the chat model for an intent. Every failure is a miss."""
        if self.chat_service is None:
            return None

        stats = data.metadata.statistics
        system_prompt = get_intent_prompt(
            fields=", ".join(f"{f.name}({f.type.value})" for f in data.schema.fields),
            row_count=len(data.data),
            numeric_fields=", ".join(stats.numeric_fields),
            categorical_fields=", ".join(stats.categorical_fields),
        )
        request = ChatRequest(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=system_prompt,
            temperature=self.settings.intent_temperature,
            max_tokens=self.settings.intent_max_tokens,
        )
        try:
            response = await self.chat_service.chat(request)
            parsed = AIIntentResponse.model_validate_json(clean_json_response(response.content))
        except ValidationError as e:
            logger.warning(f"AI intent reply was invalid: {e.error_count()} errors")
            return None
        except Exception as e:
            logger.warning(f"AI intent analysis failed: {str(e)}")
            return None

        return self._intent_from_ai(parsed, data)

    def _intent_from_ai(self, parsed: AIIntentResponse, data: UnifiedDataStructure) -> ChartIntent:
        field_names = set(data.schema.field_names)
        chart_type = parsed.chart_type
        mapping = parsed.visual_mapping

        x_axis = mapping.x_axis if mapping.x_axis in field_names else self.pick_x_axis(chart_type, data)
        y_axis = [name for name in mapping.y_axis if name in field_names and name != x_axis]
        if not y_axis:
            y_axis = self.pick_y_axis(chart_type, data, x_axis)
        color_by = mapping.color_by if mapping.color_by in field_names else None
        x_axis = x_axis or "category"

        defaults = self._build_suggestions(chart_type, x_axis, y_axis, data)
        return ChartIntent(
            chart_type=chart_type,
            confidence=parsed.confidence,
            reasoning=parsed.reasoning or "AI recommendation",
            required_fields=[name for name in dict.fromkeys([x_axis] + y_axis) if name in field_names],
            optional_fields=[color_by] if color_by else [],
            visual_mapping=VisualMapping(x_axis=x_axis, y_axis=y_axis, color_by=color_by),
            suggestions=ChartSuggestions(
                title=parsed.title or defaults.title,
                description=parsed.description or defaults.description,
                insights=parsed.insights or defaults.insights,
            ),
        )

    def _build_suggestions(
        self, chart_type: ChartType, x_axis: str, y_axis: List[str], data: UnifiedDataStructure
    ) -> ChartSuggestions:
        label = CHART_LABELS[chart_type]
        metrics = ", ".join(y_axis) if y_axis else "the data"
        return ChartSuggestions(
            title=f"{label} of {to_title_case(x_axis)}",
            description=f"{label} generated from {len(data.data)} records highlighting {metrics}",
            insights=self._peak_insights(chart_type, x_axis, y_axis, data),
        )

    def _peak_insights(
        self, chart_type: ChartType, x_axis: str, y_axis: List[str], data: UnifiedDataStructure
    ) -> List[str]:
        if not y_axis:
            return []
        metric = y_axis[0]
        entries = [(parse_number(row.get(metric)), row) for row in data.data]
        entries = [(value, row) for value, row in entries if value is not None]
        if not entries:
            return []

        max_value, max_row = max(entries, key=lambda entry: entry[0])
        insights = [f"{to_title_case(metric)} peaks at {self._row_label(max_row, x_axis)} with {max_value}"]
        if len(entries) > 1 and chart_type != ChartType.PIE:
            min_value, min_row = min(entries, key=lambda entry: entry[0])
            insights.append(f"{to_title_case(metric)} is lowest at {self._row_label(min_row, x_axis)} with {min_value}")
        return insights

    @staticmethod
    def _row_label(row: DataRow, field_name: str) -> str:
        value = row.get(field_name)
        if value is None or value == "":
            return "N/A"
        if isinstance(value, str) and "T" in value and value[:4].isdigit():
            return value.split("T")[0]
        return str(value)
