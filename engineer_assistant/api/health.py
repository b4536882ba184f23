from fastapi import APIRouter

from engineer_assistant.config import settings

router = APIRouter(tags=["health"])


@router.get("/health")
def health() -> dict:
    return {"status": "ok", "app": settings.app_name, "provider": settings.analysis_provider}
