from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Any, Dict, Optional

from engineer_assistant.analyzers.engineering_analyzer import EngineeringAnalyzer
from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.analyzers.errors import (
    AnalysisError,
    BackendError,
    ConfigurationError,
    ResponseFormatError,
)
from engineer_assistant.config import settings
from engineer_assistant.observability.metrics import ANALYSIS_REQUESTS_TOTAL, ANALYSIS_SECONDS
from engineer_assistant.preprocessing.image_input import ImagePayload

logger = logging.getLogger(__name__)


def _result_label(exc: AnalysisError) -> str:
    if isinstance(exc, ConfigurationError):
        return "configuration_error"
    if isinstance(exc, ResponseFormatError):
        return "invalid_output"
    if isinstance(exc, BackendError):
        return "backend_error"
    return "failed"


@dataclass(frozen=True)
class AnalysisPipelineResult:
    """
    Normalized output boundary for one analysis.
    The API layer returns `to_dict()` as JSON.
    """
    response: EngineeringResponse
    model_name: str
    duration_ms: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        details: Dict[str, Any] = {"model": {"name": self.model_name}}
        if self.duration_ms is not None:
            details["meta"] = {"duration_ms": self.duration_ms}
        return {"result": self.response.to_wire(), "details": details}


class AnalysisPipeline:
    """
    Runs one analysis and keeps metrics and logging out of the API and
    session layers. Errors are counted, logged and re-raised unchanged.
    """

    def __init__(self, analyzer: Optional[EngineeringAnalyzer] = None):
        self._analyzer = analyzer or EngineeringAnalyzer()

    async def run(self, image: ImagePayload, knowledge_text: str) -> AnalysisPipelineResult:
        t0 = time.perf_counter()
        try:
            out = await self._analyzer.analyze_with_meta(image, knowledge_text)
        except AnalysisError as e:
            duration_s = time.perf_counter() - t0
            label = _result_label(e)
            model_label = settings.analysis_provider
            ANALYSIS_REQUESTS_TOTAL.labels(result=label, model=model_label).inc()
            ANALYSIS_SECONDS.labels(model=model_label).observe(duration_s)
            logger.warning(
                "analysis_failed result=%s error=%s duration_ms=%d filename=%s",
                label,
                e,
                int(duration_s * 1000),
                image.filename,
            )
            raise

        ANALYSIS_REQUESTS_TOTAL.labels(result="ok", model=out.model_id).inc()
        ANALYSIS_SECONDS.labels(model=out.model_id).observe(out.duration_s)

        response = out.response
        logger.info(
            "analysis_ok model=%s steps=%d questions=%d duration_ms=%d filename=%s has_knowledge=%s",
            out.model_id,
            len(response.action_steps),
            len(response.open_questions),
            int(out.duration_s * 1000),
            image.filename,
            bool((knowledge_text or "").strip()),
        )

        return AnalysisPipelineResult(
            response=response,
            model_name=out.model_id,
            duration_ms=int(out.duration_s * 1000),
        )
