"""
Unified Normalizer

Wraps a raw row set and its provenance into a UnifiedDataStructure:
schema inference on the raw rows, then cleaning, statistics and
quality validation.
"""

from typing import List, Optional
from datetime import datetime
import logging

from ..exceptions import AIChartError, ErrorKind, ErrorStage
from .models import (
    ChartSettings,
    DataMetadata,
    DataRow,
    DataSchema,
    DataSource,
    ExtractedData,
    FileInfo,
    UnifiedDataStructure,
)
from .schema import SchemaInferenceEngine

logger = logging.getLogger(__name__)


class DataNormalizer:
    """Builds UnifiedDataStructure instances from raw rows."""

    def __init__(self, settings: ChartSettings = None):
        self.settings = settings or ChartSettings()
        self.schema_engine = SchemaInferenceEngine(self.settings)

    def normalize_data(
        self,
        raw_rows: List[DataRow],
        source: DataSource,
        file_info: Optional[FileInfo] = None,
        extracted: Optional[ExtractedData] = None,
    ) -> UnifiedDataStructure:
        """
        Normalize raw rows into a unified structure.

        Args:
            raw_rows: Rows as produced by an extractor
            source: Where the rows came from
            file_info: Uploaded file details, for file sources
            extracted: The extraction result, for method/confidence/warnings

        Returns:
            A new UnifiedDataStructure; validity is recorded, not raised
        """
        if not raw_rows:
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.INSUFFICIENT_DATA,
                "No data rows to normalize",
                {"source": DataSource(source).value},
            )

        # Infer on raw values before cleaning rewrites them
        schema = self.schema_engine.infer_schema(raw_rows)
        cleaned = self.schema_engine.clean_data(raw_rows, schema)

        metadata = DataMetadata(
            source=DataSource(source),
            extracted_at=datetime.now(),
            preview=[dict(row) for row in cleaned[:self.settings.preview_rows]],
            statistics=self.schema_engine.calculate_statistics(cleaned, schema),
            file_info=file_info,
            extraction_method=extracted.extraction_method if extracted else None,
            extraction_confidence=extracted.confidence if extracted else None,
            warnings=list(extracted.warnings) if extracted else [],
        )

        validation_errors = self.validate_data_quality(cleaned, schema, extracted)
        if validation_errors:
            logger.warning(f"Normalized data failed validation: {validation_errors}")
        else:
            logger.info(
                f"Normalized {len(cleaned)} rows, {len(schema.fields)} fields, "
                f"quality {schema.quality_score:.2f}"
            )

        return UnifiedDataStructure(
            data=cleaned,
            schema=schema,
            metadata=metadata,
            validation_errors=validation_errors,
        )

    def validate_data_quality(
        self,
        rows: List[DataRow],
        schema: DataSchema,
        extracted: Optional[ExtractedData] = None,
    ) -> List[str]:
        errors = []
        if not rows:
            errors.append("Dataset is empty")
        if not schema.fields:
            errors.append("No usable data fields were detected")
        if schema.quality_score < self.settings.min_quality_score:
            errors.append(
                f"Data quality score {schema.quality_score:.2f} is below "
                f"{self.settings.min_quality_score:.2f}; the chart may be unreliable"
            )
        if extracted is not None and extracted.confidence < self.settings.min_extraction_confidence:
            errors.append(
                f"Extraction confidence {extracted.confidence:.2f} is below "
                f"{self.settings.min_extraction_confidence:.2f}"
            )
        return errors
