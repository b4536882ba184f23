from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional

from engineer_assistant.analyzers.engineering_parsing import parse_engineering_response
from engineer_assistant.analyzers.engineering_prompting import compose_request
from engineer_assistant.analyzers.engineering_schema import EngineeringResponse
from engineer_assistant.analyzers.errors import BackendError
from engineer_assistant.analyzers.runner import run_with_timeout
from engineer_assistant.config import settings
from engineer_assistant.llm.client import ModelClient
from engineer_assistant.llm.factory import create_model_client
from engineer_assistant.preprocessing.image_input import ImagePayload
from engineer_assistant.utils.request_context import get_request_id

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalyzerOutput:
    response: EngineeringResponse
    model_id: str
    duration_s: float


class EngineeringAnalyzer:
    """
    Backend client contract: analyze(image, knowledge_text) -> EngineeringResponse.

    Single attempt. Raises exactly one of ConfigurationError, BackendError,
    ResponseFormatError; never returns a partially validated response.
    """

    def __init__(
        self,
        client_factory: Callable[[], ModelClient] = create_model_client,
        timeout_s: Optional[float] = None,
    ):
        self._client_factory = client_factory
        self._timeout_s = timeout_s if timeout_s is not None else settings.analysis_timeout_seconds

    async def analyze(self, image: ImagePayload, knowledge_text: str) -> EngineeringResponse:
        out = await self.analyze_with_meta(image, knowledge_text)
        return out.response

    async def analyze_with_meta(self, image: ImagePayload, knowledge_text: str) -> AnalyzerOutput:
        # ConfigurationError surfaces here, before any request is built or sent
        client = self._client_factory()
        request = compose_request(image, knowledge_text, request_id=get_request_id())

        try:
            result, duration_s = await run_with_timeout(lambda: client.generate(request), self._timeout_s)
        except BackendError:
            raise
        except Exception as e:
            # anything a client did not map itself counts as transport
            raise BackendError(f"{type(e).__name__}: {e}") from e

        logger.debug(
            "model_response model=%s chars=%d latency_ms=%d",
            result.model_id,
            len(result.text or ""),
            result.latency_ms,
        )

        response = parse_engineering_response(result.text)
        return AnalyzerOutput(response=response, model_id=result.model_id, duration_s=duration_s)
