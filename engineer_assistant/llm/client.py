from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Protocol


# -----------------------------
# Public types
# -----------------------------

@dataclass(frozen=True)
class ModelRequest:
    """
    A provider-agnostic multimodal request: one prompt, one image, and the
    schema the JSON answer must follow.
    """
    prompt: str
    image_data: bytes
    image_mime_type: str
    system_instruction: str
    response_schema: Dict[str, Any]
    response_mime_type: str = "application/json"

    # Optional: useful for tracing
    request_id: Optional[str] = None


@dataclass(frozen=True)
class ModelResult:
    """
    Provider-agnostic result.

    text is the raw body; parsing and validation happen in the analyzer.
    meta carries provider details (token usage, finish reason) without leaking
    provider types into callers.
    """
    text: str
    model_id: str
    latency_ms: int
    meta: Dict[str, Any] = field(default_factory=dict)


# -----------------------------
# Client interface
# -----------------------------

class ModelClient(Protocol):
    """
    Multimodal generation client. One call, one attempt.

    Implementations:
    - GeminiModelClient (hosted Gemini via google-genai)
    - MockModelClient (offline development)

    Implementations raise BackendError for any transport failure.
    """
    @property
    def model_id(self) -> str:
        ...

    async def generate(self, req: ModelRequest) -> ModelResult:
        ...
