"""
API Package - FastAPI Route Modules

HTTP endpoints for the AI chart service.
"""

from .charts import router as charts_router

__all__ = ['charts_router']
