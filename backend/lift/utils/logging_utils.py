import logging
from contextvars import ContextVar
from typing import Optional, Union
import uuid

# Context variables to carry through async tasks
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)
task_var: ContextVar[Optional[str]] = ContextVar("log_task", default=None)


class ContextFilter(logging.Filter):
    """Inject request_id and task into log records if set in contextvars."""

    def filter(self, record: logging.LogRecord) -> bool:  # noqa: A003
        setattr(record, "request_id", request_id_var.get() or "-")
        setattr(record, "task", task_var.get() or "-")
        return True


_initialized = False


def setup_logging(level: Union[int, str] = logging.INFO) -> None:
    """Idempotently configure app logging with a consistent format and context filter.

    A single stream handler is shared by every ``lift`` logger; Uvicorn captures
    stdout. Records carry the request id and task type of the request being served.
    """
    global _initialized
    if _initialized:
        return
    if isinstance(level, str):
        level = logging.getLevelName(level)
        if not isinstance(level, int):
            level = logging.INFO
    fmt = "%(asctime)s %(levelname)s %(name)s req=%(request_id)s task=%(task)s - %(message)s"
    handler = logging.StreamHandler()
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(fmt))
    handler.addFilter(ContextFilter())
    lg = logging.getLogger("lift")
    lg.setLevel(level)
    # Avoid duplicate handlers if hot-reloaded
    if not any(isinstance(h, logging.StreamHandler) for h in lg.handlers):
        lg.addHandler(handler)
    lg.propagate = False
    _initialized = True


def new_request_id() -> str:
    rid = uuid.uuid4().hex
    request_id_var.set(rid)
    return rid


def set_task_context(task: Optional[str]) -> None:
    task_var.set(task)


def clear_request_id() -> None:
    request_id_var.set(None)


def clear_task_context() -> None:
    task_var.set(None)
