"""AI chart service: turns prompts and spreadsheets into chart-ready data."""

from .exceptions import AIChartError, ErrorKind, ErrorStage

__all__ = ['AIChartError', 'ErrorKind', 'ErrorStage']

__version__ = '1.0.0'
