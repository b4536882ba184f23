import contextvars
import uuid

_request_id: contextvars.ContextVar[str] = contextvars.ContextVar("request_id", default="-")
_session_id: contextvars.ContextVar[str] = contextvars.ContextVar("session_id", default="-")


def new_request_id() -> str:
    return str(uuid.uuid4())


def get_request_id() -> str:
    return _request_id.get()


def set_request_id(rid: str) -> None:
    _request_id.set(rid)


def get_session_id() -> str:
    return _session_id.get()


def set_session_id(sid: str) -> None:
    _session_id.set(sid)


def clear_request_context() -> None:
    _request_id.set("-")
    _session_id.set("-")
