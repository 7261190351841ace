from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
import logging

from .api import charts_router
from .config import get_config

config = get_config()

# Configure logging
logging.basicConfig(level=getattr(logging, config.LOG_LEVEL, logging.INFO))
logger = logging.getLogger(__name__)

app = FastAPI(
    title="AI Chart API",
    description="API for turning chart requests and spreadsheets into chart-ready data",
    version="1.0.0",
    docs_url="/docs" if config.DEBUG_MODE else None,
    redoc_url="/redoc" if config.DEBUG_MODE else None,
)

# Setup CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(charts_router)


@app.get("/health")
async def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "ai_configured": config.ai_configured}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("ai_chart.main:app", host="0.0.0.0", port=8000, reload=config.DEBUG_MODE)
