"""
Chart API Endpoints

HTTP surface over the chart director. Pipeline failures are returned as
unsuccessful results with status 200; HTTP errors are reserved for
malformed requests and unexpected server faults.
"""

from typing import Any, Dict, List, Optional
from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile, status
from pydantic import BaseModel, Field
import logging

from ..charts import ChartDirector, ChartRequest, ChartType, UploadedFile
from ..config import get_config
from ..llm import get_chat_service

logger = logging.getLogger(__name__)

# Create router for chart endpoints
router = APIRouter(prefix="/charts", tags=["charts"])

# Global chart director instance
_chart_director: Optional[ChartDirector] = None


def get_chart_director() -> ChartDirector:
    """Get or create chart director instance."""
    global _chart_director
    if _chart_director is None:
        _chart_director = ChartDirector(chat_service=get_chat_service())
    return _chart_director


class ChartPromptRequest(BaseModel):
    """Request model for prompt-only chart generation."""
    prompt: str = Field(description="Chart request, including the data to plot")
    chart_type: Optional[ChartType] = Field(default=None, description="Specific chart type to generate")


class ChartGenerationResponse(BaseModel):
    """Response model for chart generation."""
    success: bool
    chart_type: Optional[str] = None
    data: List[Dict[str, Any]] = Field(default_factory=list)
    config: Optional[Dict[str, Any]] = None
    title: str = ""
    description: str = ""
    insights: List[str] = Field(default_factory=list)
    metadata: Optional[Dict[str, Any]] = None
    reasoning: str = ""
    error: Optional[str] = None
    error_kind: Optional[str] = None
    failed_stage: Optional[str] = None
    suggestions: List[str] = Field(default_factory=list)


class ChartCapabilitiesResponse(BaseModel):
    """Response model for chart capabilities."""
    supported_chart_types: List[str]
    supported_file_types: List[str]
    settings: Dict[str, Any]
    features: List[str]


def _parse_chart_type(value: Optional[str]) -> Optional[ChartType]:
    if not value:
        return None
    try:
        return ChartType(value.strip().lower())
    except ValueError:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"Unsupported chart type '{value}'. Supported types: {', '.join(t.value for t in ChartType)}",
        )


async def _run_pipeline(director: ChartDirector, request: ChartRequest) -> ChartGenerationResponse:
    try:
        result = await director.generate_chart(request)
    except Exception as e:
        logger.error(f"Chart generation error: {str(e)}")
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=f"Chart generation failed: {str(e)}",
        )
    return ChartGenerationResponse(**result.to_dict())


@router.post("/generate", response_model=ChartGenerationResponse)
async def generate_chart(
    prompt: str = Form(default=""),
    chart_type: Optional[str] = Form(default=None),
    files: List[UploadFile] = File(default=[]),
    director: ChartDirector = Depends(get_chart_director),
):
    """
    Generate a chart from a prompt and/or uploaded files.

    Accepts multipart form data: `prompt`, optional `chart_type` and up to
    three `.xlsx`, `.xls` or `.csv` files.
    """
    uploads = []
    for upload in files:
        content = await upload.read()
        uploads.append(UploadedFile(
            name=upload.filename or "upload",
            content=content,
            content_type=upload.content_type,
        ))

    request = ChartRequest(prompt=prompt, files=uploads, chart_type=_parse_chart_type(chart_type))
    return await _run_pipeline(director, request)


@router.post("/generate-from-prompt", response_model=ChartGenerationResponse)
async def generate_chart_from_prompt(
    request: ChartPromptRequest,
    director: ChartDirector = Depends(get_chart_director),
):
    """Generate a chart from a JSON body carrying only a prompt."""
    return await _run_pipeline(director, ChartRequest(prompt=request.prompt, chart_type=request.chart_type))


@router.get("/status")
async def get_chart_status(director: ChartDirector = Depends(get_chart_director)):
    """Chat model connectivity, component state and the last pipeline error."""
    return await director.get_system_status()


@router.get("/capabilities", response_model=ChartCapabilitiesResponse)
async def get_chart_capabilities(director: ChartDirector = Depends(get_chart_director)):
    """
    Get information about chart generation capabilities.

    Returns supported chart and file types, settings, and features.
    """
    settings = director.settings
    features = ["prompt_extraction", "file_extraction", "schema_inference", "chart_insights"]
    if director.chat_service is not None:
        features.extend(["ai_extraction", "ai_intent_analysis"])

    return ChartCapabilitiesResponse(
        supported_chart_types=director.chart_generator.get_supported_chart_types(),
        supported_file_types=list(settings.supported_file_types),
        settings={
            **director.chart_generator.get_settings_summary(),
            "max_files": settings.max_files,
            "max_file_size": settings.max_file_size,
            "ai": get_config().get_summary(),
        },
        features=features,
    )
