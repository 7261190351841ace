"""
Chart Pipeline Data Models

Internal data models shared by the extraction, intent and generation stages,
plus the pydantic schemas used to validate chat model replies.
"""

from typing import Any, Dict, List, Optional, Union
from enum import Enum
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    StrictBool,
    StrictFloat,
    StrictInt,
    StrictStr,
    field_validator,
    model_validator,
)

from ..exceptions import ErrorKind, ErrorStage

DataValue = Union[str, int, float, bool, datetime, None]
DataRow = Dict[str, DataValue]


class FieldType(str, Enum):
    """Inferred field types."""
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"
    DATE = "date"


class ChartType(str, Enum):
    """Supported chart types."""
    BAR = "bar"
    LINE = "line"
    PIE = "pie"
    AREA = "area"


class ExtractionMethod(str, Enum):
    """How a row set was obtained."""
    AI_PARSING = "ai_parsing"
    REGEX_PATTERN = "regex_pattern"
    FILE_PARSING = "file_parsing"


class DataSource(str, Enum):
    PROMPT = "prompt"
    FILE = "file"


@dataclass
class FieldDescriptor:
    """Schema entry for a single field."""
    name: str
    type: FieldType
    nullable: bool
    unique: bool
    sample_values: List[DataValue] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'name': self.name,
            'type': self.type.value,
            'nullable': self.nullable,
            'unique': self.unique,
            'sample_values': [_serialize_value(v) for v in self.sample_values],
        }


@dataclass
class DataSchema:
    """Inferred schema of a row set."""
    fields: List[FieldDescriptor]
    row_count: int
    quality_score: float

    def get_field(self, name: str) -> Optional[FieldDescriptor]:
        for descriptor in self.fields:
            if descriptor.name == name:
                return descriptor
        return None

    @property
    def field_names(self) -> List[str]:
        return [descriptor.name for descriptor in self.fields]

    def to_dict(self) -> Dict[str, Any]:
        return {
            'fields': [descriptor.to_dict() for descriptor in self.fields],
            'row_count': self.row_count,
            'quality_score': self.quality_score,
        }


@dataclass
class DataStatistics:
    """Field groupings and missing-cell count of a cleaned row set."""
    numeric_fields: List[str] = field(default_factory=list)
    categorical_fields: List[str] = field(default_factory=list)
    date_fields: List[str] = field(default_factory=list)
    missing_values: int = 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'numeric_fields': list(self.numeric_fields),
            'categorical_fields': list(self.categorical_fields),
            'date_fields': list(self.date_fields),
            'missing_values': self.missing_values,
        }


@dataclass
class FileInfo:
    name: str
    size: int
    content_type: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'name': self.name, 'size': self.size, 'content_type': self.content_type}


@dataclass
class DataMetadata:
    """Provenance and summary of a unified data structure."""
    source: DataSource
    extracted_at: datetime
    preview: List[DataRow]
    statistics: DataStatistics
    file_info: Optional[FileInfo] = None
    extraction_method: Optional[ExtractionMethod] = None
    extraction_confidence: Optional[float] = None
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'source': self.source.value,
            'extracted_at': self.extracted_at.isoformat(),
            'preview': [_serialize_row(row) for row in self.preview],
            'statistics': self.statistics.to_dict(),
            'file_info': self.file_info.to_dict() if self.file_info else None,
            'extraction_method': self.extraction_method.value if self.extraction_method else None,
            'extraction_confidence': self.extraction_confidence,
            'warnings': list(self.warnings),
        }


@dataclass(frozen=True)
class UnifiedDataStructure:
    """Cleaned rows plus schema and metadata. Built once, never patched."""
    data: List[DataRow]
    schema: DataSchema
    metadata: DataMetadata
    validation_errors: List[str] = field(default_factory=list)

    @property
    def is_valid(self) -> bool:
        return len(self.validation_errors) == 0

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': [_serialize_row(row) for row in self.data],
            'schema': self.schema.to_dict(),
            'metadata': self.metadata.to_dict(),
            'is_valid': self.is_valid,
            'validation_errors': list(self.validation_errors),
        }


@dataclass
class ExtractedData:
    """Raw rows produced by an extractor, before normalization."""
    data: List[DataRow]
    confidence: float
    extraction_method: ExtractionMethod
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'data': [_serialize_row(row) for row in self.data],
            'confidence': self.confidence,
            'extraction_method': self.extraction_method.value,
            'warnings': list(self.warnings),
        }


@dataclass
class VisualMapping:
    """Field-to-axis assignment."""
    x_axis: str
    y_axis: List[str]
    color_by: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {'x_axis': self.x_axis, 'y_axis': list(self.y_axis), 'color_by': self.color_by}


@dataclass
class ChartSuggestions:
    title: str
    description: str
    insights: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'title': self.title, 'description': self.description, 'insights': list(self.insights)}


@dataclass
class ChartIntent:
    """Chosen chart type and mapping. Read-only for the generator."""
    chart_type: ChartType
    confidence: float
    reasoning: str
    required_fields: List[str]
    visual_mapping: VisualMapping
    suggestions: ChartSuggestions
    optional_fields: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'chart_type': self.chart_type.value,
            'confidence': self.confidence,
            'reasoning': self.reasoning,
            'required_fields': list(self.required_fields),
            'optional_fields': list(self.optional_fields),
            'visual_mapping': self.visual_mapping.to_dict(),
            'suggestions': self.suggestions.to_dict(),
        }


@dataclass
class CompatibilityResult:
    """Outcome of checking an intent against the data it will be drawn from."""
    is_compatible: bool
    reason: str
    missing_fields: List[str] = field(default_factory=list)
    incompatible_types: List[str] = field(default_factory=list)
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'is_compatible': self.is_compatible,
            'reason': self.reason,
            'missing_fields': list(self.missing_fields),
            'incompatible_types': list(self.incompatible_types),
            'suggestions': list(self.suggestions),
        }


@dataclass
class AxisConfig:
    label: str
    type: str  # category | time | value
    min: Optional[float] = None
    max: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        result = {'label': self.label, 'type': self.type}
        if self.min is not None:
            result['min'] = self.min
        if self.max is not None:
            result['max'] = self.max
        return result


@dataclass
class LegendConfig:
    show: bool
    position: str  # top | bottom | left | right

    def to_dict(self) -> Dict[str, Any]:
        return {'show': self.show, 'position': self.position}


@dataclass
class ChartConfig:
    """Renderer-agnostic chart configuration."""
    colors: List[str]
    width: int
    height: int
    x_axis: AxisConfig
    y_axis: AxisConfig
    legend: LegendConfig
    responsive: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {
            'colors': list(self.colors),
            'dimensions': {'width': self.width, 'height': self.height},
            'axes': {'x_axis': self.x_axis.to_dict(), 'y_axis': self.y_axis.to_dict()},
            'legend': self.legend.to_dict(),
            'responsive': self.responsive,
        }


@dataclass
class ChartMetadata:
    generated_at: datetime
    data_source: str
    processing_time: float
    confidence: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'generated_at': self.generated_at.isoformat(),
            'data_source': self.data_source,
            'processing_time': self.processing_time,
            'confidence': self.confidence,
        }


@dataclass
class ChartGenerationResult:
    """Result of the whole pipeline; the only surface renderers depend on."""
    success: bool
    chart_type: Optional[ChartType] = None
    data: List[DataRow] = field(default_factory=list)
    config: Optional[ChartConfig] = None
    title: str = ""
    description: str = ""
    insights: List[str] = field(default_factory=list)
    metadata: Optional[ChartMetadata] = None
    reasoning: str = ""
    error: Optional[str] = None
    error_kind: Optional[ErrorKind] = None
    failed_stage: Optional[ErrorStage] = None
    suggestions: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for API response."""
        return {
            'success': self.success,
            'chart_type': self.chart_type.value if self.chart_type else None,
            'data': [_serialize_row(row) for row in self.data],
            'config': self.config.to_dict() if self.config else None,
            'title': self.title,
            'description': self.description,
            'insights': list(self.insights),
            'metadata': self.metadata.to_dict() if self.metadata else None,
            'reasoning': self.reasoning,
            'error': self.error,
            'error_kind': self.error_kind.value if self.error_kind else None,
            'failed_stage': self.failed_stage.value if self.failed_stage else None,
            'suggestions': list(self.suggestions),
        }


@dataclass
class UploadedFile:
    """A user-supplied file held in memory."""
    name: str
    content: bytes
    content_type: Optional[str] = None

    @property
    def size(self) -> int:
        return len(self.content)

    @property
    def extension(self) -> str:
        return Path(self.name).suffix.lower()

    def to_file_info(self) -> FileInfo:
        return FileInfo(name=self.name, size=self.size, content_type=self.content_type)


@dataclass
class ChartRequest:
    """Input to the director."""
    prompt: str = ""
    files: List[UploadedFile] = field(default_factory=list)
    chart_type: Optional[ChartType] = None


class ChartSettings:
    """Configuration settings for the chart pipeline."""

    def __init__(self):
        # Schema inference
        self.schema_sample_size = 100
        self.boolean_ratio_threshold = 0.8
        self.number_ratio_threshold = 0.8
        self.date_ratio_threshold = 0.6
        self.max_sample_values = 5
        self.preview_rows = 5

        # Validity gating
        self.min_quality_score = 0.5
        self.min_extraction_confidence = 0.5
        self.low_quality_warning_threshold = 0.6

        # Input limits
        self.max_files = 3
        self.max_file_size = 10 * 1024 * 1024  # bytes
        self.supported_file_types = ('.xlsx', '.xls', '.csv')
        self.min_prompt_length = 3

        # AI extraction
        self.extraction_temperature = 0.1
        self.extraction_max_tokens = 1000
        self.intent_temperature = 0.3
        self.intent_max_tokens = 800

        # Chart limits
        self.max_pie_categories = 12
        self.max_insights = 6
        self.default_width = 800
        self.default_height = 400
        self.max_bar_width = 1200
        self.wide_bar_threshold = 10
        self.legend_top_threshold = 8
        self.color_palette = [
            "#8b5cf6",
            "#06b6d4",
            "#f59e0b",
            "#ef4444",
            "#10b981",
            "#22c55e",
            "#f97316",
            "#ec4899",
        ]


# AI reply schemas. Chat model output is validated against these before use.

AIDataValue = Optional[Union[StrictBool, StrictInt, StrictFloat, StrictStr]]


class AIExtractionResponse(BaseModel):
    """Reply of the chat model to a data extraction request."""
    model_config = ConfigDict(populate_by_name=True)

    has_data: StrictBool = Field(alias="hasData")
    x_axis_key: Optional[str] = Field(default=None, alias="xAxisKey")
    y_axis_keys: Optional[List[str]] = Field(default=None, alias="yAxisKeys")
    data: Optional[List[Dict[str, AIDataValue]]] = None
    confidence: Optional[float] = Field(default=None, ge=0.0, le=1.0)

    @model_validator(mode="after")
    def check_rows_present(self) -> "AIExtractionResponse":
        if self.has_data and not self.data:
            raise ValueError("hasData is true but no data rows were returned")
        return self


class AIVisualMapping(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    x_axis: Optional[str] = Field(default=None, alias="xAxis")
    y_axis: List[str] = Field(default_factory=list, alias="yAxis")
    color_by: Optional[str] = Field(default=None, alias="colorBy")

    @field_validator("y_axis", mode="before")
    @classmethod
    def wrap_single_field(cls, value: Any) -> Any:
        if value is None:
            return []
        if isinstance(value, str):
            return [value]
        return value


class AIIntentResponse(BaseModel):
    """Reply of the chat model to a chart intent request."""
    model_config = ConfigDict(populate_by_name=True)

    chart_type: ChartType = Field(alias="chartType")
    confidence: float = Field(default=0.8, ge=0.0, le=1.0)
    reasoning: Optional[str] = None
    visual_mapping: AIVisualMapping = Field(default_factory=AIVisualMapping, alias="visualMapping")
    title: Optional[str] = None
    description: Optional[str] = None
    insights: List[str] = Field(default_factory=list)


def _serialize_value(value: DataValue) -> Any:
    if isinstance(value, datetime):
        return value.isoformat()
    return value


def _serialize_row(row: DataRow) -> Dict[str, Any]:
    return {key: _serialize_value(value) for key, value in row.items()}
