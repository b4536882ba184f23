from __future__ import annotations

import logging
import time
from typing import Any, Dict, Optional

from google import genai
from google.genai import errors as genai_errors
from google.genai import types

from engineer_assistant.analyzers.errors import BackendError
from engineer_assistant.llm.client import ModelRequest, ModelResult

logger = logging.getLogger(__name__)


class GeminiModelClient:
    """
    Hosted Gemini via the google-genai SDK.

    One `generate_content` call per request, single attempt: SDK retries are
    pinned to one attempt.
    """

    def __init__(self, api_key: str, model_id: str = "gemini-2.5-flash", client: Optional[Any] = None):
        self._model_id = model_id
        self._client = client or genai.Client(
            api_key=api_key,
            http_options=types.HttpOptions(retry_options=types.HttpRetryOptions(attempts=1)),
        )

    @property
    def model_id(self) -> str:
        return self._model_id

    async def generate(self, req: ModelRequest) -> ModelResult:
        contents = [
            types.Content(
                role="user",
                parts=[
                    types.Part.from_bytes(data=req.image_data, mime_type=req.image_mime_type),
                    types.Part.from_text(text=req.prompt),
                ],
            )
        ]
        config = types.GenerateContentConfig(
            system_instruction=req.system_instruction,
            response_mime_type=req.response_mime_type,
            response_schema=req.response_schema,
        )

        t0 = time.perf_counter()
        try:
            response = await self._client.aio.models.generate_content(
                model=self._model_id,
                contents=contents,
                config=config,
            )
        except genai_errors.APIError as e:
            # auth, quota, 4xx/5xx from the endpoint
            logger.warning("gemini_api_error model=%s code=%s status=%s", self._model_id, e.code, e.status)
            raise BackendError(e.message or str(e), upstream_status=e.code) from e
        except Exception as e:
            # network errors (httpx), SDK-side failures
            logger.warning("gemini_transport_error model=%s error=%s", self._model_id, type(e).__name__)
            raise BackendError(f"{type(e).__name__}: {e}") from e

        latency_ms = int((time.perf_counter() - t0) * 1000)
        return ModelResult(
            text=response.text or "",
            model_id=self._model_id,
            latency_ms=latency_ms,
            meta=_response_meta(response),
        )


def _response_meta(response: Any) -> Dict[str, Any]:
    meta: Dict[str, Any] = {}

    usage = getattr(response, "usage_metadata", None)
    if usage is not None:
        meta["prompt_tokens"] = getattr(usage, "prompt_token_count", None)
        meta["output_tokens"] = getattr(usage, "candidates_token_count", None)

    candidates = getattr(response, "candidates", None) or []
    if candidates:
        finish_reason = getattr(candidates[0], "finish_reason", None)
        if finish_reason is not None:
            meta["finish_reason"] = str(finish_reason)

    return meta
