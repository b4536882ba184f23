from __future__ import annotations

from typing import Optional

GENERIC_FAILURE_MESSAGE = "Falha na análise. Verifique a API Key e tente novamente."
CAMERA_FAILURE_MESSAGE = "Erro ao acessar a câmera. Verifique as permissões e tente novamente."


class AnalysisError(RuntimeError):
    """Base class for everything that can make one analysis fail."""

    code = "analysis_failed"
    status_code = 502

    @property
    def user_message(self) -> str:
        return GENERIC_FAILURE_MESSAGE


class ConfigurationError(AnalysisError):
    """The API key is missing. Raised before any network access."""

    code = "configuration_error"
    status_code = 500


class BackendError(AnalysisError):
    """
    Transport-level failure talking to the generative backend:
    network errors, non-success status, auth/quota rejection, timeout.

    The underlying message is shown to the user as-is.
    """

    code = "backend_error"
    status_code = 502

    def __init__(self, message: str, *, upstream_status: Optional[int] = None):
        super().__init__(message)
        self.upstream_status = upstream_status

    @property
    def user_message(self) -> str:
        return str(self) or GENERIC_FAILURE_MESSAGE


class ResponseFormatError(AnalysisError):
    """
    The backend answered but the body is empty or does not match the
    EngineeringResponse contract (schema drift, not a transient failure).
    """

    code = "invalid_model_output"
    status_code = 502


class CameraPermissionError(RuntimeError):
    """Camera access denied or no device available. Local to the capture flow."""

    code = "camera_permission_denied"
    status_code = 403

    @property
    def user_message(self) -> str:
        return CAMERA_FAILURE_MESSAGE


class CameraStateError(RuntimeError):
    """A camera action was requested in a state that does not allow it."""

    code = "camera_not_streaming"
    status_code = 409
