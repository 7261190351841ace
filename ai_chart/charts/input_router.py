"""
Input Router

Classifies a request into a scenario (prompt only, prompt with file,
file only) and validates it before any extraction work is done.
"""

from typing import Any, Dict, List
from enum import Enum
from dataclasses import dataclass, field
import logging
import re

from ..exceptions import AIChartError, ErrorKind, ErrorStage
from .models import ChartSettings, UploadedFile

logger = logging.getLogger(__name__)

MAX_FILENAME_LENGTH = 100

_NUMBER_PATTERNS = (
    re.compile(r"\d+"),
    re.compile(r"[一二三四五六七八九十百千万亿]+"),
)
_LIST_PATTERN = re.compile(r"\w+\s*\[[^\]]+\]")
_TIME_PATTERNS = (
    re.compile(r"\d{4}[年\-/]\d{1,2}[月\-/]\d{1,2}日?"),
    re.compile(r"(?:星期|周)[一二三四五六日天]"),
    re.compile(r"[一二三四五六七八九十]月"),
    re.compile(r"\d+[月日时分秒]"),
    re.compile(
        r"\b(?:monday|tuesday|wednesday|thursday|friday|saturday|sunday|january|february|march|april"
        r"|june|july|august|september|october|november|december|quarter|weekly|monthly|yearly)\b",
        re.IGNORECASE,
    ),
)
CATEGORY_KEYWORDS = (
    "产品", "地区", "类别", "部门", "渠道", "品牌", "类型", "分类",
    "省份", "城市", "区域", "行业", "公司", "团队", "项目",
    "product", "region", "category", "department", "channel", "brand", "city",
    "province", "industry", "company", "team", "project",
)
RELATION_KEYWORDS = (
    "比较", "对比", "增长", "下降", "变化", "趋势", "分布", "占比",
    "份额", "排名", "排序", "最高", "最低", "平均", "总计",
    "compare", "comparison", "growth", "decline", "trend", "distribution", "share",
    "ranking", "highest", "lowest", "average", "total",
)


class Scenario(str, Enum):
    """Input scenarios."""
    PROMPT_ONLY = "PROMPT_ONLY"
    PROMPT_WITH_FILE = "PROMPT_WITH_FILE"
    FILE_ONLY = "FILE_ONLY"


@dataclass
class ValidationResult:
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {'is_valid': self.is_valid, 'errors': list(self.errors), 'warnings': list(self.warnings)}


def detect_data_indicators(prompt: str) -> List[str]:
    """Kinds of data the prompt appears to carry."""
    indicators = []
    lowered = prompt.lower()

    if any(pattern.search(prompt) for pattern in _NUMBER_PATTERNS):
        indicators.append("numeric values")
    if _LIST_PATTERN.search(prompt):
        indicators.append("value lists")
    if any(pattern.search(prompt) for pattern in _TIME_PATTERNS):
        indicators.append("time values")
    if any(keyword in lowered for keyword in CATEGORY_KEYWORDS):
        indicators.append("categories")
    if any(keyword in lowered for keyword in RELATION_KEYWORDS):
        indicators.append("data relationships")
    return indicators


class InputRouter:
    """Routes and validates chart requests."""

    def __init__(self, settings: ChartSettings = None):
        self.settings = settings or ChartSettings()

    def has_prompt(self, prompt: str) -> bool:
        return bool(prompt) and len(prompt.strip()) >= self.settings.min_prompt_length

    def classify_scenario(self, prompt: str, files: List[UploadedFile]) -> Scenario:
        has_prompt = self.has_prompt(prompt)
        has_files = bool(files)

        if has_prompt and has_files:
            return Scenario.PROMPT_WITH_FILE
        if has_prompt:
            return Scenario.PROMPT_ONLY
        if has_files:
            return Scenario.FILE_ONLY
        raise AIChartError(
            ErrorStage.INPUT_VALIDATION,
            ErrorKind.INVALID_REQUEST,
            "Please provide a description of the chart or upload a data file",
        )

    def validate_input(self, scenario: Scenario, prompt: str, files: List[UploadedFile]) -> ValidationResult:
        """
        Validate a classified request.

        Args:
            scenario: Result of classify_scenario
            prompt: The request text
            files: Uploaded files

        Returns:
            ValidationResult; invalid input is reported, not raised
        """
        errors: List[str] = []
        warnings: List[str] = []

        if scenario == Scenario.PROMPT_ONLY:
            self._validate_prompt_only(prompt, errors, warnings)
        elif scenario == Scenario.PROMPT_WITH_FILE:
            if not self.has_prompt(prompt):
                errors.append("Please describe the chart you want")
            self._validate_files(files, errors, warnings)
        elif scenario == Scenario.FILE_ONLY:
            self._validate_files(files, errors, warnings)
            warnings.append("The data will be analyzed automatically to recommend a chart type")

        result = ValidationResult(is_valid=not errors, errors=errors, warnings=warnings)
        logger.info(f"Input validation for {scenario.value}: valid={result.is_valid}, errors={len(errors)}")
        return result

    def _validate_prompt_only(self, prompt: str, errors: List[str], warnings: List[str]):
        if not self.has_prompt(prompt):
            errors.append("The description is too short; please provide more detail")
            return

        if not detect_data_indicators(prompt):
            errors.append(
                "No data was found in the description. Please include concrete values, "
                "categories or dates, or upload a data file"
            )
            return

        if len(prompt) < 20:
            warnings.append("The description is short, which may reduce chart quality")

    def _validate_files(self, files: List[UploadedFile], errors: List[str], warnings: List[str]):
        if not files:
            errors.append("No file was uploaded")
            return

        if len(files) > self.settings.max_files:
            errors.append(f"At most {self.settings.max_files} files can be processed at once")

        max_mb = self.settings.max_file_size // (1024 * 1024)
        for file in files:
            if file.size > self.settings.max_file_size:
                errors.append(f"File {file.name} is too large; the maximum size is {max_mb}MB")
            if file.extension not in self.settings.supported_file_types:
                errors.append(
                    f"File {file.name} has an unsupported format; only Excel (.xlsx, .xls) and CSV files are supported"
                )
            if len(file.name) > MAX_FILENAME_LENGTH:
                warnings.append(f"File name {file.name} is very long")
