"""
Charts Package - AI-assisted Chart Generation

This package turns free-text requests and uploaded spreadsheets into
chart-ready data, a chart type and a renderer-agnostic configuration.

Core Components:
- ChartDirector: Main interface for chart generation
- DataExtractor: Prompt/file extraction and normalization
- SchemaInferenceEngine: Field types and data quality scoring
- IntentAnalyzer: Recommends chart types and axis mappings
- ChartGenerator: Builds chart data, configuration and insights

Usage:
    from ai_chart.charts import ChartDirector, ChartRequest

    director = ChartDirector()
    result = await director.generate_chart(ChartRequest(prompt="Beijing[22, 23, 24]"))
"""

from .orchestrator import ChartDirector
from .extractor import DataExtractor
from .prompt_extractor import PromptDataExtractor
from .file_extractor import FileDataExtractor
from .normalizer import DataNormalizer
from .schema import SchemaInferenceEngine
from .input_router import InputRouter, Scenario
from .detector import IntentAnalyzer
from .generator import ChartGenerator
from .models import (
    ChartType,
    ChartRequest,
    ChartIntent,
    ChartGenerationResult,
    ChartSettings,
    UnifiedDataStructure,
    UploadedFile,
)

__all__ = [
    'ChartDirector',
    'DataExtractor',
    'PromptDataExtractor',
    'FileDataExtractor',
    'DataNormalizer',
    'SchemaInferenceEngine',
    'InputRouter',
    'Scenario',
    'IntentAnalyzer',
    'ChartGenerator',
    'ChartType',
    'ChartRequest',
    'ChartIntent',
    'ChartGenerationResult',
    'ChartSettings',
    'UnifiedDataStructure',
    'UploadedFile',
]

__version__ = '1.0.0'
