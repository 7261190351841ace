"""
Prompt Data Extractor

Pulls a tabular row set out of a free-text chart request. The chat model is
asked first; when it is unavailable or misses, an ordered chain of regex
strategies is tried and the first one that yields rows wins.
"""

from typing import Callable, Dict, List, Optional, Sequence, Tuple, Union
import logging
import re

from pydantic import ValidationError

from ..llm import ChatRequest, ChatService, clean_json_response
from ..prompts import PROMPT_DATA_EXTRACTION
from .models import AIExtractionResponse, ChartSettings, DataRow, ExtractedData, ExtractionMethod
from .schema import parse_number

logger = logging.getLogger(__name__)

Number = Union[int, float]

AI_DEFAULT_CONFIDENCE = 0.8
BRACKETED_CONFIDENCE = 0.7
KEY_VALUE_CONFIDENCE = 0.8
SIMPLE_LIST_CONFIDENCE = 0.6

# label[v1, v2, ...]
_BRACKETED = re.compile(r"([^\[\]，,;；:：。!?！？\n]+?)\s*\[([^\]]+)\]")

# label: number[multiplier][unit], unless the number opens a bare comma-separated list
_KEY_VALUE = re.compile(
    r"([^:：,，;；。\n]+)[:：]\s*"
    r"([+-]?\d+(?:\.\d+)?)\s*([万千百]?)\s*(元|人|次|台|套|个|\$|)"
    r"(?!\d|\.\d|\s*[,，]\s*[\d.]+\s*(?:[,，;；]|$))"
    r"(?=\s|[,，;；。.!?！？)）]|$)"
)

# label: n1, n2, n3
_SIMPLE_LIST = re.compile(r"([^:：,，;；。\n]+)[:：]\s*(\d+(?:\.\d+)?(?:\s*[,，]\s*\d+(?:\.\d+)?)*)")

_LIST_SEPARATOR = re.compile(r"[,，]")
_CJK = re.compile(r"[\u4e00-\u9fff]")

UNIT_MULTIPLIERS = {"万": 10000, "千": 1000, "百": 100}

WEEKDAYS_ZH = ["星期一", "星期二", "星期三", "星期四", "星期五", "星期六", "星期日"]
WEEKDAYS_EN = ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday"]
MONTHS_ZH = [f"{i}月" for i in range(1, 13)]
MONTHS_EN = ["Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

_WEEKDAY_HINT_ZH = re.compile(r"星期|周")
_MONTH_HINT_ZH = re.compile(r"月")
_WEEKDAY_HINT_EN = re.compile(
    r"\b(?:week|weekly|weekday|monday|tuesday|wednesday|thursday|friday|saturday|sunday)s?\b",
    re.IGNORECASE,
)
_MONTH_HINT_EN = re.compile(
    r"\b(?:month|monthly|jan|feb|mar|apr|jun|jul|aug|sep|sept|oct|nov|dec|january|february|march"
    r"|april|june|july|august|september|october|november|december)s?\b",
    re.IGNORECASE,
)

# (field name, pattern) checked in order against the first label
CATEGORY_FIELD_HINTS: Sequence[Tuple[str, re.Pattern]] = (
    ("month", re.compile(
        r"月|\bmonth|\b(?:jan|feb|mar|apr|may|jun|jul|aug|sep|oct|nov|dec)[a-z]*\b", re.IGNORECASE)),
    ("quarter", re.compile(r"季|\bQ\d\b|quarter", re.IGNORECASE)),
    ("year", re.compile(r"年|\byear|\b(?:19|20)\d{2}\b", re.IGNORECASE)),
    ("week", re.compile(
        r"周|星期|\bweek|\b(?:mon|tue|wed|thu|fri|sat|sun)[a-z]*day\b", re.IGNORECASE)),
    ("date", re.compile(r"日|天|\bday\b|\bdate\b", re.IGNORECASE)),
    ("region", re.compile(r"地区|城市|区域|省|\bregion|\bcity\b|\barea\b", re.IGNORECASE)),
    ("product", re.compile(r"产品|商品|\bproduct", re.IGNORECASE)),
    ("department", re.compile(r"部门|团队|\bdepartment|\bteam\b", re.IGNORECASE)),
)

VALUE_FIELD_BY_UNIT = {
    "元": "amount",
    "$": "amount",
    "人": "headcount",
    "台": "quantity",
    "套": "quantity",
    "个": "quantity",
    "次": "count",
}


def _as_number(value: float) -> Number:
    return int(value) if float(value).is_integer() else value


def _parse_list(text: str) -> List[Number]:
    values = []
    for item in _LIST_SEPARATOR.split(text):
        number = parse_number(item)
        if number is not None:
            values.append(number)
    return values


def infer_time_labels(prompt: str, length: int) -> List[str]:
    """Sequence labels for bracketed lists, guided by words in the prompt."""
    if _CJK.search(prompt):
        weekday_hint, month_hint = _WEEKDAY_HINT_ZH, _MONTH_HINT_ZH
        weekdays, months = WEEKDAYS_ZH, MONTHS_ZH
        ordinal = "第{n}天"
    else:
        weekday_hint, month_hint = _WEEKDAY_HINT_EN, _MONTH_HINT_EN
        weekdays, months = WEEKDAYS_EN, MONTHS_EN
        ordinal = "Day {n}"

    if weekday_hint.search(prompt) and length <= len(weekdays):
        return weekdays[:length]
    if month_hint.search(prompt) and length <= len(months):
        return months[:length]
    return [ordinal.format(n=i + 1) for i in range(length)]


def infer_category_field_name(label: str) -> str:
    for name, pattern in CATEGORY_FIELD_HINTS:
        if pattern.search(label):
            return name
    return "category"


def infer_value_field_name(unit: str) -> str:
    return VALUE_FIELD_BY_UNIT.get(unit, "value")


def extract_bracketed_lists(prompt: str) -> Optional[ExtractedData]:
    """`Beijing[22, 23, 24], Shanghai[25, 26, 27]` -> one row per slot."""
    series: Dict[str, List[Number]] = {}
    for match in _BRACKETED.finditer(prompt):
        label = match.group(1).strip()
        values = _parse_list(match.group(2))
        if label and values:
            series[label] = values

    if not series:
        return None

    length = max(len(values) for values in series.values())
    rows = []
    for index, time_label in enumerate(infer_time_labels(prompt, length)):
        row: DataRow = {"time": time_label}
        for label, values in series.items():
            row[label] = values[index] if index < len(values) else None
        rows.append(row)

    return ExtractedData(
        data=rows,
        confidence=BRACKETED_CONFIDENCE,
        extraction_method=ExtractionMethod.REGEX_PATTERN,
        warnings=["Extracted from bracketed value lists; please verify the values"],
    )


def extract_key_values(prompt: str) -> Optional[ExtractedData]:
    """
    `1月: 850万元, 2月: 920万元` -> one row per label.

    Field names come from the first pair only, so every label lands in one
    category column and every value in one value column.
    """
    pairs = []
    for match in _KEY_VALUE.finditer(prompt):
        label = match.group(1).strip()
        if not label:
            continue
        value = float(match.group(2)) * UNIT_MULTIPLIERS.get(match.group(3), 1)
        pairs.append((label, _as_number(value), match.group(4)))

    if not pairs:
        return None

    category_field = infer_category_field_name(pairs[0][0])
    value_field = infer_value_field_name(pairs[0][2])
    rows = [{category_field: label, value_field: value} for label, value, _ in pairs]

    return ExtractedData(
        data=rows,
        confidence=KEY_VALUE_CONFIDENCE,
        extraction_method=ExtractionMethod.REGEX_PATTERN,
        warnings=["Extracted from label: value pairs"],
    )


def extract_simple_lists(prompt: str) -> Optional[ExtractedData]:
    """`sales: 100, 200, 300` -> one row per position, synthetic categories."""
    series: Dict[str, List[Number]] = {}
    for match in _SIMPLE_LIST.finditer(prompt):
        label = match.group(1).strip()
        values = _parse_list(match.group(2))
        if label and values:
            series[label] = values

    if not series:
        return None

    length = max(len(values) for values in series.values())
    rows = []
    for index in range(length):
        row: DataRow = {"category": f"类别{index + 1}"}
        for label, values in series.items():
            row[label] = values[index] if index < len(values) else None
        rows.append(row)

    return ExtractedData(
        data=rows,
        confidence=SIMPLE_LIST_CONFIDENCE,
        extraction_method=ExtractionMethod.REGEX_PATTERN,
        warnings=["Extracted from plain number lists; consider providing labelled data"],
    )


# Tried in order; the first strategy that returns rows wins.
REGEX_STRATEGIES: Sequence[Callable[[str], Optional[ExtractedData]]] = (
    extract_bracketed_lists,
    extract_key_values,
    extract_simple_lists,
)


class PromptDataExtractor:
    """Extracts rows from a prompt: chat model first, regex chain second."""

    def __init__(self, chat_service: Optional[ChatService] = None, settings: ChartSettings = None,
                 enable_ai: bool = True):
        self.chat_service = chat_service
        self.settings = settings or ChartSettings()
        self.enable_ai = enable_ai

    async def extract_from_prompt(self, prompt: str) -> Optional[ExtractedData]:
        """
        Extract tabular data from a free-text prompt.

        Args:
            prompt: The user's request text

        Returns:
            ExtractedData, or None when the prompt carries no structured data
        """
        if not prompt or not prompt.strip():
            return None

        extracted = await self.ai_extract(prompt)
        if extracted is not None:
            logger.info(f"AI extraction succeeded: {len(extracted.data)} rows")
            return extracted

        extracted = self.regex_extract(prompt)
        if extracted is not None:
            logger.info(f"Pattern extraction succeeded: {len(extracted.data)} rows")
        else:
            logger.info("No structured data found in prompt")
        return extracted

    async def ai_extract(self, prompt: str) -> Optional[ExtractedData]:
        """Ask the chat model for rows. Every failure is a miss, never an error."""
        if self.chat_service is None or not self.enable_ai:
            return None

        request = ChatRequest(
            messages=[{"role": "user", "content": prompt}],
            system_prompt=PROMPT_DATA_EXTRACTION,
            temperature=self.settings.extraction_temperature,
            max_tokens=self.settings.extraction_max_tokens,
        )
        try:
            response = await self.chat_service.chat(request)
            parsed = AIExtractionResponse.model_validate_json(clean_json_response(response.content))
        except ValidationError as e:
            logger.warning(f"AI extraction returned an invalid reply, falling back to patterns: {e.error_count()} errors")
            return None
        except Exception as e:
            logger.warning(f"AI extraction failed, falling back to patterns: {str(e)}")
            return None

        if not parsed.has_data:
            logger.info("AI extraction found no data in prompt")
            return None

        rows = [dict(row) for row in parsed.data if row]
        if not rows:
            return None

        warnings = []
        if parsed.x_axis_key and parsed.x_axis_key not in rows[0]:
            warnings.append(f"AI suggested x-axis field '{parsed.x_axis_key}' is not present in the rows")

        return ExtractedData(
            data=rows,
            confidence=parsed.confidence if parsed.confidence is not None else AI_DEFAULT_CONFIDENCE,
            extraction_method=ExtractionMethod.AI_PARSING,
            warnings=warnings,
        )

    def regex_extract(self, prompt: str) -> Optional[ExtractedData]:
        for strategy in REGEX_STRATEGIES:
            extracted = strategy(prompt)
            if extracted is not None and extracted.data:
                logger.debug(f"Pattern strategy {strategy.__name__} matched")
                return extracted
        return None
