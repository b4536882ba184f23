import logging

from engineer_assistant.utils.request_context import get_request_id, get_session_id


class RequestContextFilter(logging.Filter):
    """Stamps every record with the current request and session ids."""

    def filter(self, record: logging.LogRecord) -> bool:
        record.request_id = get_request_id()
        record.session_id = get_session_id()
        return True
