import logging
import sys
from contextvars import ContextVar
from typing import Optional

from pythonjsonlogger import jsonlogger
from capstone.core.config import Settings

# set by RequestIdMiddleware for the duration of one request
request_id_var: ContextVar[Optional[str]] = ContextVar("request_id", default=None)


class RequestContextFilter(logging.Filter):
    """
    Stamps every record with the current request id and the deployment environment.
    """

    def __init__(self, environment: str):
        super().__init__()
        self.environment = environment

    def filter(self, record: logging.LogRecord) -> bool:
        if not getattr(record, "request_id", None):
            record.request_id = request_id_var.get() or "-"
        record.environment = self.environment
        return True


def configure_logging(settings: Settings) -> None:
    """
    Structured logging (JSON on stdout) for the API and the workflow services.
    """
    level = getattr(logging, settings.log_level.upper(), logging.INFO)

    root = logging.getLogger()
    root.setLevel(level)

    # clear handlers if reloaded
    root.handlers = []

    handler = logging.StreamHandler(sys.stdout)
    fmt = jsonlogger.JsonFormatter(
        "%(asctime)s %(levelname)s %(name)s %(request_id)s %(environment)s %(message)s",
        rename_fields={"levelname": "level", "name": "logger"},
    )
    handler.setFormatter(fmt)
    handler.addFilter(RequestContextFilter(settings.environment))
    root.addHandler(handler)

    logging.getLogger("uvicorn.access").setLevel(level)
    logging.getLogger("uvicorn.error").setLevel(level)
    # SQL echo stays off unless explicitly debugging
    logging.getLogger("sqlalchemy.engine").setLevel(max(level, logging.WARNING))
