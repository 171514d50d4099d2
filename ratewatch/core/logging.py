import json
import logging
import sys
import time
import uuid
from contextlib import contextmanager
from contextvars import ContextVar
from typing import Any, Dict, Iterator

# Event source that triggered the current flow: "timer", "user", "preload",
# "retry", or an HTTP request id.
trigger_ctx: ContextVar[str | None] = ContextVar("trigger", default=None)


class TriggerFilter(logging.Filter):
    def filter(self, record: logging.LogRecord) -> bool:  # noqa: D401
        record.trigger = trigger_ctx.get() or "-"
        return True


class JsonFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:  # noqa: D401
        base: Dict[str, Any] = {
            "level": record.levelname,
            "message": record.getMessage(),
            "logger": record.name,
            "time": time.strftime("%Y-%m-%dT%H:%M:%S", time.gmtime(record.created)),
            "trigger": getattr(record, "trigger", "-"),
        }
        if record.exc_info:
            base["exc_info"] = self.formatException(record.exc_info)
        return json.dumps(base, ensure_ascii=False)


def init_logging(debug: bool = False) -> None:
    root = logging.getLogger()
    root.handlers.clear()
    level = logging.DEBUG if debug else logging.INFO
    root.setLevel(level)

    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(level)
    handler.addFilter(TriggerFilter())
    handler.setFormatter(JsonFormatter())
    root.addHandler(handler)
    # httpx logs every request at INFO; the fetch path already does.
    logging.getLogger("httpx").setLevel(logging.WARNING)


@contextmanager
def triggered_by(source: str) -> Iterator[None]:
    token = trigger_ctx.set(source)
    try:
        yield
    finally:
        trigger_ctx.reset(token)


async def request_context_middleware(request, call_next):  # type: ignore
    rid = f"req-{uuid.uuid4().hex[:12]}"
    logger = logging.getLogger("ratewatch.request")
    with triggered_by(rid):
        logger.debug("request start %s %s", request.method, request.url.path)
        try:
            response = await call_next(request)
            return response
        finally:
            logger.debug("request end")
