from __future__ import annotations

from engineer_assistant.analyzers.errors import ConfigurationError
from engineer_assistant.config import Settings, resolve_api_key, settings as default_settings
from engineer_assistant.llm.client import ModelClient
from engineer_assistant.llm.mock_client import MockModelClient


def create_model_client(cfg: Settings | None = None) -> ModelClient:
    """
    Build the client for one analysis call.

    Called per request so the API key is resolved at call time. A missing key
    raises ConfigurationError here, before any client (and any connection) exists.
    """
    cfg = cfg or default_settings
    provider = (cfg.analysis_provider or "gemini").strip().lower()

    if provider == "mock":
        return MockModelClient()

    if provider == "gemini":
        api_key = resolve_api_key()
        if not api_key:
            raise ConfigurationError("API_KEY is missing in environment variables.")

        from engineer_assistant.llm.gemini_client import GeminiModelClient

        return GeminiModelClient(api_key=api_key, model_id=cfg.gemini_model_id)

    raise ConfigurationError(f"Unsupported analysis provider: {provider}")
