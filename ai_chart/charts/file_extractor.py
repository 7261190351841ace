"""
File Data Extractor

Reads uploaded spreadsheets (.xlsx/.xls) and CSV files into raw rows using
pandas. The first row is always the header row.
"""

from typing import Any, Dict, List
from datetime import datetime
import io
import logging
import math

import numpy as np
import pandas as pd

from ..exceptions import AIChartError, ErrorKind, ErrorStage
from .models import ChartSettings, DataRow, ExtractedData, ExtractionMethod, UploadedFile

logger = logging.getLogger(__name__)

FILE_CONFIDENCE = 0.9
CSV_ENCODINGS = ("utf-8-sig", "gb18030")
EXCEL_ENGINES = {".xlsx": "openpyxl", ".xls": "xlrd"}


def _to_python_value(value: Any) -> Any:
    """Convert a pandas/numpy cell to a plain Python value; blanks become ''."""
    if value is None:
        return ""
    if isinstance(value, pd.Timestamp):
        return "" if pd.isna(value) else value.to_pydatetime()
    if isinstance(value, np.bool_):
        return bool(value)
    if isinstance(value, np.integer):
        return int(value)
    if isinstance(value, (float, np.floating)):
        number = float(value)
        if math.isnan(number):
            return ""
        return int(number) if number.is_integer() else number
    if isinstance(value, datetime):
        return value
    if isinstance(value, str):
        return value.strip()
    if pd.isna(value):
        return ""
    return value


def _header_name(value: Any, index: int) -> str:
    value = _to_python_value(value)
    if value == "" or value is None:
        return f"Column_{index + 1}"
    if isinstance(value, datetime):
        return value.date().isoformat()
    return str(value).strip()


class FileDataExtractor:
    """Extracts raw rows from uploaded files."""

    def __init__(self, settings: ChartSettings = None):
        self.settings = settings or ChartSettings()

    def extract_from_file(self, file: UploadedFile) -> ExtractedData:
        """
        Extract rows from a single uploaded file.

        Args:
            file: The uploaded file

        Returns:
            ExtractedData with confidence 0.9 and method file_parsing

        Raises:
            AIChartError: unsupported extension, empty file or parse failure
        """
        extension = file.extension
        if extension not in self.settings.supported_file_types:
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.INVALID_REQUEST,
                f"Unsupported file type '{extension or file.name}'. Only Excel (.xlsx, .xls) and CSV files are supported",
                {"filename": file.name},
            )
        if file.size == 0:
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.INSUFFICIENT_DATA,
                f"File {file.name} is empty",
                {"filename": file.name},
            )

        logger.info(f"Extracting data from file {file.name} ({file.size} bytes)")
        try:
            if extension == ".csv":
                rows = self._read_csv(file)
            else:
                rows = self._read_excel(file, EXCEL_ENGINES[extension])
        except AIChartError as e:
            e.details.setdefault("filename", file.name)
            raise
        except Exception as e:
            logger.error(f"Failed to parse file {file.name}: {str(e)}")
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.UNKNOWN_ERROR,
                f"Failed to parse file {file.name}: {str(e)}",
                {"filename": file.name, "error": str(e), "error_type": type(e).__name__},
            ) from e

        if not rows:
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.INSUFFICIENT_DATA,
                f"File {file.name} contains no data rows",
                {"filename": file.name},
            )

        logger.info(f"Extracted {len(rows)} rows from {file.name}")
        return ExtractedData(
            data=rows,
            confidence=FILE_CONFIDENCE,
            extraction_method=ExtractionMethod.FILE_PARSING,
            warnings=[],
        )

    def extract_from_files(self, files: List[UploadedFile]) -> List[ExtractedData]:
        return [self.extract_from_file(file) for file in files]

    def _decode(self, file: UploadedFile) -> str:
        for encoding in CSV_ENCODINGS:
            try:
                return file.content.decode(encoding)
            except UnicodeDecodeError:
                logger.debug(f"{file.name} is not {encoding}")
        return file.content.decode("latin-1", errors="replace")

    def _read_csv(self, file: UploadedFile) -> List[DataRow]:
        text = self._decode(file)
        lines = [line for line in text.splitlines() if line.strip()]
        if not lines:
            raise AIChartError(
                ErrorStage.DATA_EXTRACTION,
                ErrorKind.INSUFFICIENT_DATA,
                f"CSV file {file.name} is empty",
            )

        header_df = pd.read_csv(io.StringIO(lines[0]), header=None, dtype=str, keep_default_na=False)
        headers = [str(h).strip() for h in header_df.iloc[0].tolist()]
        if len(lines) == 1:
            return []

        # Short lines pad with '', cells past the header are ignored
        width = max(len(headers), max(line.count(",") for line in lines) + 1)
        df = pd.read_csv(
            io.StringIO("\n".join(lines[1:])),
            header=None,
            names=range(width),
            dtype=str,
            keep_default_na=False,
        ).fillna("")

        rows = []
        for _, record in df.iterrows():
            values = record.tolist()
            row: Dict[str, Any] = {}
            for index, header in enumerate(headers):
                row[header or f"Column_{index + 1}"] = _to_python_value(values[index])
            rows.append(row)
        return rows

    def _read_excel(self, file: UploadedFile, engine: str) -> List[DataRow]:
        df = pd.read_excel(io.BytesIO(file.content), sheet_name=0, header=None, engine=engine)
        if df.empty:
            return []

        headers = [_header_name(value, index) for index, value in enumerate(df.iloc[0].tolist())]
        body = df.iloc[1:].dropna(how="all")

        rows = []
        for _, record in body.iterrows():
            values = [_to_python_value(v) for v in record.tolist()]
            if all(v == "" for v in values):
                continue
            rows.append(dict(zip(headers, values)))
        return rows
