"""JSON logging with the service name and current Stripe event id."""

import logging
import sys
from contextvars import ContextVar

from pythonjsonlogger.json import JsonFormatter

event_id_ctx: ContextVar[str] = ContextVar("event_id", default="")


class ContextFilter(logging.Filter):
    """Inject service and correlation identifiers into every log record."""

    def __init__(self, service_name: str):
        super().__init__()
        self.service_name = service_name

    def filter(self, record: logging.LogRecord) -> bool:
        record.service_name = self.service_name
        record.event_id = event_id_ctx.get()
        return True


def configure_logging(level: str = "INFO", service_name: str = "checkout-api") -> None:
    """Configure the root logger once per process."""

    handler = logging.StreamHandler(sys.stdout)
    handler.addFilter(ContextFilter(service_name))
    handler.setFormatter(
        JsonFormatter("%(asctime)s %(levelname)s %(name)s %(service_name)s %(event_id)s %(message)s")
    )

    root = logging.getLogger()
    root.handlers = [handler]
    root.setLevel(level)
