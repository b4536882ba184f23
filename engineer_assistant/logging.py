import logging

from engineer_assistant.config import settings
from engineer_assistant.utils.logging_filter import RequestContextFilter

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s request_id=%(request_id)s session_id=%(session_id)s %(message)s"


def configure_logging() -> None:
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.addFilter(RequestContextFilter())
    handler.setFormatter(logging.Formatter(LOG_FORMAT))

    root = logging.getLogger()
    root.setLevel(level)
    root.handlers = [handler]

    # google-genai logs a warning per response with non-text parts; keep it quieter
    logging.getLogger("google_genai").setLevel(max(level, logging.WARNING))
