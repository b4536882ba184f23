from typing import Any, Dict

from fastapi import APIRouter, Depends, File, Form, UploadFile
from fastapi.responses import HTMLResponse

from engineer_assistant.analyzers.engineering_schema import RESPONSE_SCHEMA, EngineeringResponse
from engineer_assistant.api.deps import get_pipeline
from engineer_assistant.api.schemas import AnalyzeResponse, error_responses
from engineer_assistant.config import settings
from engineer_assistant.pipelines.analysis_pipeline import AnalysisPipeline
from engineer_assistant.preprocessing.image_input import load_image_upload
from engineer_assistant.rendering.html import render_report_html

router = APIRouter(tags=["analyze"], responses=error_responses(400, 413, 422, 500, 502))


@router.post("/analyze", response_model=AnalyzeResponse, response_model_exclude_none=True)
async def analyze_image(
    file: UploadFile = File(...),
    knowledge_text: str = Form(""),
    pipeline: AnalysisPipeline = Depends(get_pipeline),
):
    """
    One-shot analysis: image + knowledge excerpt in, structured plan out.
    Analysis failures are turned into the error envelope by the app's handlers.
    """
    image = await load_image_upload(file, max_mb=settings.max_image_mb)
    outcome = await pipeline.run(image, knowledge_text)
    return outcome.to_dict()


@router.get("/analyze/schema")
def response_schema() -> Dict[str, Any]:
    """The schema declaration sent to the model with every request."""
    return RESPONSE_SCHEMA


@router.post("/render", response_class=HTMLResponse)
def render_report(response: EngineeringResponse) -> HTMLResponse:
    """Render an already obtained plan (wire keys) as an HTML report."""
    return HTMLResponse(content=render_report_html(response))
