"""
Data Extractor

Single entry point for the extraction stage: prompt text, uploaded files
and normalization into a UnifiedDataStructure.
"""

from typing import List, Optional
import logging

from ..llm import ChatService
from .file_extractor import FileDataExtractor
from .models import (
    ChartSettings,
    DataRow,
    DataSource,
    ExtractedData,
    FileInfo,
    UnifiedDataStructure,
    UploadedFile,
)
from .normalizer import DataNormalizer
from .prompt_extractor import PromptDataExtractor

logger = logging.getLogger(__name__)


class DataExtractor:
    """Coordinates the prompt extractor, file extractor and normalizer."""

    def __init__(self, chat_service: Optional[ChatService] = None, settings: ChartSettings = None,
                 enable_ai: bool = True):
        self.settings = settings or ChartSettings()
        self.prompt_extractor = PromptDataExtractor(chat_service, self.settings, enable_ai=enable_ai)
        self.file_extractor = FileDataExtractor(self.settings)
        self.normalizer = DataNormalizer(self.settings)

    async def extract_from_prompt(self, prompt: str) -> Optional[ExtractedData]:
        return await self.prompt_extractor.extract_from_prompt(prompt)

    def extract_from_file(self, file: UploadedFile) -> ExtractedData:
        return self.file_extractor.extract_from_file(file)

    def extract_from_files(self, files: List[UploadedFile]) -> List[ExtractedData]:
        return self.file_extractor.extract_from_files(files)

    def normalize_data(
        self,
        raw_rows: List[DataRow],
        source: DataSource,
        file_info: Optional[FileInfo] = None,
        extracted: Optional[ExtractedData] = None,
    ) -> UnifiedDataStructure:
        return self.normalizer.normalize_data(raw_rows, source, file_info=file_info, extracted=extracted)
