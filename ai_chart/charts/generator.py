"""
Chart Generator

Turns a chart intent and its unified data into chart-ready rows, a
renderer-agnostic configuration and plain-language insights.
"""

from typing import Any, Dict, List, Optional, Tuple
from datetime import datetime
import logging
import time

from ..exceptions import AIChartError, ErrorKind, ErrorStage
from .models import (
    AxisConfig,
    ChartConfig,
    ChartGenerationResult,
    ChartIntent,
    ChartMetadata,
    ChartSettings,
    ChartType,
    DataRow,
    FieldType,
    LegendConfig,
    UnifiedDataStructure,
)
from .schema import is_missing, parse_date, parse_number

logger = logging.getLogger(__name__)

AXIS_TYPES = {FieldType.DATE: "time", FieldType.NUMBER: "value"}


def format_number(value: float) -> str:
    """Thousands separators, at most two decimals."""
    if float(value).is_integer():
        return f"{int(value):,}"
    return f"{value:,.2f}"


def format_label(field_name: str) -> str:
    words = field_name.replace("_", " ").split()
    return " ".join(word[:1].upper() + word[1:] for word in words)


def _generation_error(kind: ErrorKind, message: str, **details: Any) -> AIChartError:
    return AIChartError(ErrorStage.CHART_GENERATION, kind, message, details)


class ChartGenerator:
    """Builds chart results from intents and normalized data."""

    def __init__(self, settings: ChartSettings = None):
        self.settings = settings or ChartSettings()

    async def generate_chart(self, intent: ChartIntent, data: UnifiedDataStructure) -> ChartGenerationResult:
        """
        Generate a chart for an intent.

        Args:
            intent: Chart type and field mapping
            data: Normalized data

        Returns:
            Successful ChartGenerationResult

        Raises:
            AIChartError: validation failures keep their kind, anything else is UNKNOWN_ERROR
        """
        start_time = time.time()
        chart_type = intent.chart_type
        try:
            self._validate(intent, data)
            chart_data = self._preprocess(intent, data)
            if not chart_data:
                raise _generation_error(
                    ErrorKind.INSUFFICIENT_DATA,
                    "No rows have both an x-axis value and a numeric y-axis value",
                    x_axis=intent.visual_mapping.x_axis,
                    y_axis=intent.visual_mapping.y_axis,
                )

            config = self._build_config(intent, data, chart_data)
            insights = self._generate_insights(intent, data, chart_data)
            processing_time = (time.time() - start_time) * 1000

            logger.info(
                f"Generated {chart_type.value} chart with {len(chart_data)} points in {processing_time:.1f}ms"
            )
            return ChartGenerationResult(
                success=True,
                chart_type=chart_type,
                data=chart_data,
                config=config,
                title=intent.suggestions.title,
                description=intent.suggestions.description,
                insights=insights,
                metadata=ChartMetadata(
                    generated_at=datetime.now(),
                    data_source=data.metadata.source.value,
                    processing_time=processing_time,
                    confidence=intent.confidence,
                ),
                reasoning=intent.reasoning,
            )

        except AIChartError as e:
            logger.warning(f"Chart generation rejected: {e.message}")
            raise
        except Exception as e:
            logger.error(f"Error generating {chart_type.value} chart: {str(e)}")
            raise AIChartError(
                ErrorStage.CHART_GENERATION,
                ErrorKind.UNKNOWN_ERROR,
                f"Chart generation failed: {str(e)}",
                {"error": str(e), "error_type": type(e).__name__},
            ) from e

    def _validate(self, intent: ChartIntent, data: UnifiedDataStructure):
        """Reject data that cannot produce the requested chart."""
        if not data.is_valid:
            raise _generation_error(
                ErrorKind.INVALID_REQUEST,
                "Data did not pass validation: " + "; ".join(data.validation_errors),
                validation_errors=list(data.validation_errors),
            )
        if not data.data:
            raise _generation_error(ErrorKind.INSUFFICIENT_DATA, "The dataset has no rows")

        field_names = set(data.schema.field_names)
        missing = [name for name in intent.required_fields if name not in field_names]
        if missing:
            raise _generation_error(
                ErrorKind.INVALID_REQUEST,
                f"Required fields are missing from the data: {', '.join(missing)}",
                missing_fields=missing,
            )

        chart_type = intent.chart_type
        has_numeric = bool(data.metadata.statistics.numeric_fields)

        if chart_type == ChartType.PIE:
            if not has_numeric:
                raise _generation_error(ErrorKind.INVALID_REQUEST, "A pie chart needs at least one numeric field")
            categories = self._distinct_x_values(intent, data)
            if len(categories) > self.settings.max_pie_categories:
                raise _generation_error(
                    ErrorKind.INVALID_REQUEST,
                    f"Too many pie chart categories ({len(categories)} > {self.settings.max_pie_categories}); "
                    f"a bar chart is recommended instead",
                    category_count=len(categories),
                    max_categories=self.settings.max_pie_categories,
                    suggested_chart_type=ChartType.BAR.value,
                )
        elif chart_type == ChartType.LINE:
            if not has_numeric:
                raise _generation_error(ErrorKind.INVALID_REQUEST, "A line chart needs at least one numeric field")
            if len(data.data) < 2:
                raise _generation_error(
                    ErrorKind.INSUFFICIENT_DATA,
                    "A line chart needs at least two data points",
                    row_count=len(data.data),
                )
        elif not has_numeric:
            raise _generation_error(
                ErrorKind.INVALID_REQUEST,
                f"A {chart_type.value} chart needs at least one numeric field",
            )

    def _distinct_x_values(self, intent: ChartIntent, data: UnifiedDataStructure) -> List[Any]:
        x_field = intent.visual_mapping.x_axis
        values = [row.get(x_field) for row in data.data if not is_missing(row.get(x_field))]
        return list(dict.fromkeys(str(v).strip() for v in values))

    def _preprocess(self, intent: ChartIntent, data: UnifiedDataStructure) -> List[DataRow]:
        """Project rows onto the mapped fields and coerce y values to numbers."""
        mapping = intent.visual_mapping
        x_descriptor = data.schema.get_field(mapping.x_axis)
        x_type = x_descriptor.type if x_descriptor else FieldType.STRING
        keep_color = mapping.color_by and mapping.color_by != mapping.x_axis and mapping.color_by not in mapping.y_axis

        processed = []
        for row in data.data:
            x_value = self._format_x(row.get(mapping.x_axis), x_type)
            if x_value is None:
                continue

            point: DataRow = {mapping.x_axis: x_value}
            has_y = False
            for y_field in mapping.y_axis:
                y_value = parse_number(row.get(y_field))
                point[y_field] = y_value
                has_y = has_y or y_value is not None
            if not has_y:
                continue

            if keep_color:
                point[mapping.color_by] = row.get(mapping.color_by)
            processed.append(point)
        return processed

    @staticmethod
    def _format_x(value: Any, field_type: FieldType) -> Any:
        if is_missing(value):
            return None
        if field_type == FieldType.DATE:
            parsed = parse_date(value)
            return parsed.strftime("%Y-%m-%d") if parsed else str(value).strip()
        if field_type == FieldType.NUMBER:
            return parse_number(value)
        return str(value).strip()

    def _build_config(self, intent: ChartIntent, data: UnifiedDataStructure, chart_data: List[DataRow]) -> ChartConfig:
        chart_type = intent.chart_type
        mapping = intent.visual_mapping
        palette = self.settings.color_palette
        point_count = len(chart_data)

        series_count = point_count if chart_type == ChartType.PIE else len(mapping.y_axis)
        colors = [palette[i % len(palette)] for i in range(max(series_count, 1))]

        width, height = self.settings.default_width, self.settings.default_height
        if chart_type == ChartType.BAR and point_count > self.settings.wide_bar_threshold:
            width = min(self.settings.max_bar_width, 600 + point_count * 30)
        elif chart_type == ChartType.PIE:
            width = min(width, height + 200)

        x_descriptor = data.schema.get_field(mapping.x_axis)
        x_axis_type = AXIS_TYPES.get(x_descriptor.type, "category") if x_descriptor else "category"

        y_min, y_max = self._y_range(chart_type, mapping.y_axis, chart_data)
        y_label = format_label(mapping.y_axis[0]) if len(mapping.y_axis) == 1 else "Value"

        if chart_type == ChartType.PIE:
            legend_position = "right"
        elif point_count > self.settings.legend_top_threshold:
            legend_position = "top"
        else:
            legend_position = "bottom"

        return ChartConfig(
            colors=colors,
            width=width,
            height=height,
            x_axis=AxisConfig(label=format_label(mapping.x_axis), type=x_axis_type),
            y_axis=AxisConfig(label=y_label, type="value", min=y_min, max=y_max),
            legend=LegendConfig(
                show=len(mapping.y_axis) > 1 or chart_type == ChartType.PIE,
                position=legend_position,
            ),
            responsive=True,
        )

    def _y_range(self, chart_type: ChartType, y_fields: List[str], chart_data: List[DataRow]) -> Tuple[float, float]:
        values = [row[f] for row in chart_data for f in y_fields if row.get(f) is not None]
        if not values:
            return 0.0, 100.0

        low, high = min(values), max(values)
        spread = high - low
        padding = spread * 0.1 if spread else (abs(high) * 0.1 or 1.0)
        y_min = low - padding
        if low >= 0:
            y_min = max(0.0, y_min)
        if chart_type == ChartType.AREA:
            y_min = min(0.0, y_min)
        return round(y_min, 2), round(high + padding, 2)

    def _generate_insights(self, intent: ChartIntent, data: UnifiedDataStructure, chart_data: List[DataRow]) -> List[str]:
        mapping = intent.visual_mapping
        x_field = mapping.x_axis
        insights: List[str] = []

        primary = next(
            (f for f in mapping.y_axis if any(row.get(f) is not None for row in chart_data)),
            None,
        )
        if primary is not None:
            points = [(row[x_field], row[primary]) for row in chart_data if row.get(primary) is not None]
            values = [value for _, value in points]
            label = format_label(primary)

            insights.append(f"{label} ranges from {format_number(min(values))} to {format_number(max(values))}")
            insights.append(f"Average {label} is {format_number(sum(values) / len(values))}")

            chart_insight = self._chart_type_insight(intent.chart_type, label, points)
            if chart_insight:
                insights.append(chart_insight)

        null_count = sum(
            1 for row in data.data for f in mapping.y_axis if parse_number(row.get(f)) is None
        )
        if null_count:
            insights.append(f"{null_count} missing or non-numeric values were left out of the chart")

        for suggestion in intent.suggestions.insights:
            if suggestion not in insights:
                insights.append(suggestion)

        return insights[:self.settings.max_insights]

    def _chart_type_insight(self, chart_type: ChartType, label: str, points: List[Tuple[Any, float]]) -> Optional[str]:
        if chart_type == ChartType.LINE and len(points) >= 2:
            first, last = points[0][1], points[-1][1]
            trend = self._calculate_trend(first, last)
            return f"{label} trend is {trend}, from {format_number(first)} to {format_number(last)}"

        if chart_type == ChartType.PIE:
            total = sum(value for _, value in points)
            if total <= 0:
                return None
            leader, value = max(points, key=lambda point: point[1])
            return f"{leader} is the largest share at {value / total * 100:.1f}%"

        if chart_type == ChartType.BAR:
            ranked = sorted(points, key=lambda point: point[1], reverse=True)
            top_label, top_value = ranked[0]
            if len(ranked) == 1:
                return f"{top_label} ranks first with {format_number(top_value)}"
            second_label, second_value = ranked[1]
            return (
                f"{top_label} ranks first with {format_number(top_value)}, "
                f"followed by {second_label} with {format_number(second_value)}"
            )
        return None

    @staticmethod
    def _calculate_trend(first: float, last: float) -> str:
        """Trend direction from the sign of last minus first."""
        if last > first:
            return "increasing"
        elif last < first:
            return "decreasing"
        else:
            return "stable"

    def get_supported_chart_types(self) -> List[str]:
        return [chart_type.value for chart_type in ChartType]

    def get_settings_summary(self) -> Dict[str, Any]:
        return {
            "max_pie_categories": self.settings.max_pie_categories,
            "max_insights": self.settings.max_insights,
            "default_dimensions": {
                "width": self.settings.default_width,
                "height": self.settings.default_height,
            },
            "color_palette": list(self.settings.color_palette),
        }
