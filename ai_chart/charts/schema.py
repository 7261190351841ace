"""
Schema Inference Engine

Infers field types, nullability and uniqueness from a bounded row sample,
scores data quality, and re-coerces raw rows to their inferred types.
All functions here are pure: the same rows always give the same schema.
"""

from typing import Any, Dict, List, Optional, Union
from datetime import date, datetime
import logging
import math
import re

import numpy as np
import pandas as pd

from .models import (
    DataRow,
    DataSchema,
    DataStatistics,
    DataValue,
    FieldDescriptor,
    FieldType,
    ChartSettings,
)

logger = logging.getLogger(__name__)

BOOLEAN_TOKENS = frozenset({"true", "false", "1", "0", "yes", "no", "是", "否"})
TRUTHY_TOKENS = frozenset({"true", "1", "是", "yes"})

_NUMBER_NOISE = re.compile(r"[,$%¥€£\s]")
_INTEGER_TEXT = re.compile(r"[+-]?\d+")
_HAS_DIGIT = re.compile(r"\d")


def is_missing(value: Any) -> bool:
    """None, blank strings and NaN count as missing cells."""
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, float):
        return math.isnan(value)
    return False


def parse_number(value: Any) -> Optional[Union[int, float]]:
    """Permissive numeric coercion; strips currency, percent and thousands separators."""
    if value is None or isinstance(value, (bool, np.bool_)):
        return None
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        number = float(value)
        return number if math.isfinite(number) else None
    if not isinstance(value, str):
        return None

    text = _NUMBER_NOISE.sub("", value)
    if not text:
        return None
    if _INTEGER_TEXT.fullmatch(text):
        return int(text)
    try:
        number = float(text)
    except ValueError:
        return None
    return number if math.isfinite(number) else None


def parse_date(value: Any) -> Optional[datetime]:
    """Parse a date-like value; bare numbers are never dates."""
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day)
    if not isinstance(value, str):
        return None

    text = value.strip()
    if not text or not _HAS_DIGIT.search(text) or parse_number(text) is not None:
        return None
    try:
        parsed = pd.to_datetime(text, errors="coerce")
    except (ValueError, TypeError, OverflowError):
        return None
    if pd.isna(parsed):
        return None
    return parsed.to_pydatetime()


def is_boolean_like(value: Any) -> bool:
    if isinstance(value, (bool, np.bool_)):
        return True
    if isinstance(value, (int, float)):
        return value in (0, 1)
    if isinstance(value, str):
        return value.strip().lower() in BOOLEAN_TOKENS
    return False


def infer_field_type(values: List[DataValue], settings: ChartSettings = None) -> FieldType:
    """Classify a list of values; boolean is checked before number."""
    settings = settings or ChartSettings()
    present = [v for v in values if not is_missing(v)]
    if not present:
        return FieldType.STRING

    total = len(present)
    boolean_count = sum(1 for v in present if is_boolean_like(v))
    if boolean_count / total >= settings.boolean_ratio_threshold:
        return FieldType.BOOLEAN

    number_count = sum(1 for v in present if parse_number(v) is not None)
    if number_count / total >= settings.number_ratio_threshold:
        return FieldType.NUMBER

    date_count = sum(1 for v in present if parse_date(v) is not None)
    if date_count / total >= settings.date_ratio_threshold:
        return FieldType.DATE

    return FieldType.STRING


def collect_field_names(rows: List[DataRow]) -> List[str]:
    """Union of row keys in first-seen order."""
    names: Dict[str, None] = {}
    for row in rows:
        for key in row.keys():
            names.setdefault(key, None)
    return list(names)


class SchemaInferenceEngine:
    """Infers schemas, cleans rows and summarises statistics."""

    def __init__(self, settings: ChartSettings = None):
        self.settings = settings or ChartSettings()

    def infer_schema(self, rows: List[DataRow]) -> DataSchema:
        """
        Infer a schema from the first `schema_sample_size` rows.

        Args:
            rows: Raw rows, before any cleaning

        Returns:
            DataSchema with field descriptors, row count and quality score
        """
        if not rows:
            return DataSchema(fields=[], row_count=0, quality_score=0.0)

        sample = rows[:self.settings.schema_sample_size]
        fields = []
        for name in collect_field_names(rows):
            raw_values = [row.get(name) for row in sample]
            present = [v for v in raw_values if not is_missing(v)]
            distinct = list(dict.fromkeys(present))
            fields.append(FieldDescriptor(
                name=name,
                type=infer_field_type(present, self.settings),
                nullable=len(present) < len(sample),
                unique=len(distinct) == len(present) and len(present) > 1,
                sample_values=distinct[:self.settings.max_sample_values],
            ))

        quality_score = self.calculate_quality_score(rows, fields)
        logger.debug(f"Inferred schema: {len(fields)} fields, {len(rows)} rows, quality {quality_score:.2f}")
        return DataSchema(fields=fields, row_count=len(rows), quality_score=quality_score)

    def calculate_quality_score(self, rows: List[DataRow], fields: List[FieldDescriptor]) -> float:
        """Completeness over every row times mean type consistency over the sample."""
        if not rows or not fields:
            return 0.0

        total_cells = len(rows) * len(fields)
        empty_cells = sum(1 for row in rows for f in fields if is_missing(row.get(f.name)))
        completeness = 1 - empty_cells / total_cells

        sample = rows[:self.settings.schema_sample_size]
        consistency = sum(self._type_consistency(sample, f) for f in fields) / len(fields)

        return max(0.0, min(1.0, completeness * consistency))

    def _type_consistency(self, sample: List[DataRow], descriptor: FieldDescriptor) -> float:
        values = [row.get(descriptor.name) for row in sample]
        values = [v for v in values if not is_missing(v)]
        if not values:
            return 1.0

        consistent = 0
        for value in values:
            value_type = infer_field_type([value], self.settings)
            if value_type == descriptor.type:
                consistent += 1
            elif descriptor.type == FieldType.NUMBER and parse_number(value) is not None:
                # 0/1 read as boolean on their own but are valid numbers
                consistent += 1
        return consistent / len(values)

    def clean_data(self, rows: List[DataRow], schema: DataSchema) -> List[DataRow]:
        """Return new rows coerced to the schema's field types."""
        cleaned = []
        for row in rows:
            cleaned_row = {}
            for descriptor in schema.fields:
                cleaned_row[descriptor.name] = self._clean_value(row.get(descriptor.name), descriptor.type)
            cleaned.append(cleaned_row)
        return cleaned

    def _clean_value(self, value: DataValue, field_type: FieldType) -> DataValue:
        if field_type == FieldType.NUMBER:
            return parse_number(value)
        if field_type == FieldType.DATE:
            parsed = parse_date(value)
            return parsed.isoformat() if parsed else None
        if field_type == FieldType.BOOLEAN:
            if is_missing(value):
                return None
            if isinstance(value, (bool, np.bool_)):
                return bool(value)
            return str(value).strip().lower() in TRUTHY_TOKENS
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return None
        if isinstance(value, datetime):
            return value.isoformat()
        return str(value).strip()

    def calculate_statistics(self, rows: List[DataRow], schema: DataSchema) -> DataStatistics:
        return DataStatistics(
            numeric_fields=[f.name for f in schema.fields if f.type == FieldType.NUMBER],
            categorical_fields=[f.name for f in schema.fields if f.type == FieldType.STRING],
            date_fields=[f.name for f in schema.fields if f.type == FieldType.DATE],
            missing_values=sum(1 for row in rows for v in row.values() if v is None),
        )
