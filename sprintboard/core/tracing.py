# sprintboard/core/tracing.py - Structured logging with trace context

import os
import socket
import sys
import json
import random
from datetime import datetime, timezone
from typing import Optional, Dict, Tuple
from contextvars import ContextVar

from loguru import logger
from opentelemetry import trace
from opentelemetry.sdk.resources import SERVICE_NAME, Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor, ConsoleSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor

from sprintboard import __version__
from sprintboard.core.config import settings

SERVICE = "sprintboard-api"

# Context variables for trace propagation
_trace_id_context: ContextVar[str] = ContextVar('trace_id', default='no-trace')
_span_id_context: ContextVar[str] = ContextVar('span_id', default='no-span')

_tracer_provider: Optional[TracerProvider] = None


def generate_trace_id() -> str:
    """Generate a 128-bit trace ID as 32-character hex string"""
    return f"{random.getrandbits(128):032x}"


def generate_span_id() -> str:
    """Generate a 64-bit span ID as 16-character hex string"""
    return f"{random.getrandbits(64):016x}"


class TracingMiddleware:
    """ASGI middleware that gives every request and socket a trace context"""

    def __init__(self, app):
        self.app = app

    async def __call__(self, scope, receive, send):
        if scope["type"] not in ("http", "websocket"):
            await self.app(scope, receive, send)
            return

        trace_id, span_id = _ids_from_current_span()
        _trace_id_context.set(trace_id)
        _span_id_context.set(span_id)

        if scope["type"] == "websocket":
            await self.app(scope, receive, send)
            return

        async def send_with_trace_header(message):
            if message["type"] == "http.response.start":
                headers = list(message.get("headers", []))
                headers.append((b"x-trace-id", trace_id.encode("latin-1")))
                message["headers"] = headers
            await send(message)

        await self.app(scope, receive, send_with_trace_header)


def _ids_from_current_span() -> Tuple[str, str]:
    """Use the active OpenTelemetry span when there is one, local IDs otherwise"""
    if settings.ENABLE_OTEL_EXPORTER:
        span_context = trace.get_current_span().get_span_context()
        if span_context.is_valid:
            return f"{span_context.trace_id:032x}", f"{span_context.span_id:016x}"
    return generate_trace_id(), generate_span_id()


def setup_tracing(app) -> bool:
    """Install trace propagation and logging; enable OpenTelemetry when configured"""
    global _tracer_provider

    app.add_middleware(TracingMiddleware)
    setup_structured_logging(enable_json=settings.should_use_json_logging)

    if not settings.ENABLE_OTEL_EXPORTER:
        info("OpenTelemetry disabled in config - using local trace IDs only")
        return False

    resource = Resource.create({
        SERVICE_NAME: SERVICE,
        "service.version": __version__,
        "service.environment": settings.ENVIRONMENT,
    })
    _tracer_provider = TracerProvider(resource=resource)
    trace.set_tracer_provider(_tracer_provider)

    if settings.ENABLE_OTEL_CONSOLE_EXPORT:
        _tracer_provider.add_span_processor(BatchSpanProcessor(ConsoleSpanExporter()))
        info("Console span exporter enabled")

    FastAPIInstrumentor.instrument_app(
        app,
        tracer_provider=_tracer_provider,
        excluded_urls="/health,/metrics,/docs,/redoc,/openapi.json"
    )
    info("OpenTelemetry tracing setup complete")
    return True


def setup_structured_logging(enable_json: Optional[bool] = None):
    """Replace loguru's default sink with a JSON or human-readable one"""
    if enable_json is None:
        enable_json = settings.should_use_json_logging

    logger.remove()

    hostname = socket.gethostname()
    pid = os.getpid()

    if enable_json:
        def json_sink(message):
            record = message.record
            extra = dict(record["extra"])
            trace_id = extra.pop("trace_id", "no-trace")
            span_id = extra.pop("span_id", "no-span")

            log_entry = {
                "@timestamp": datetime.now(timezone.utc).isoformat(),
                "level": record["level"].name,
                "message": record["message"],
                "service": {
                    "name": SERVICE,
                    "version": __version__,
                    "environment": settings.ENVIRONMENT,
                },
                "host": {"hostname": hostname},
                "process": {"pid": pid},
                "log": {
                    "logger": record["name"],
                    "function": record["function"],
                    "line": record["line"],
                },
                "trace": {"id": trace_id, "span_id": span_id},
            }
            custom = {k: v for k, v in extra.items() if not k.startswith("_")}
            if custom:
                log_entry["custom"] = custom

            if record["exception"]:
                exc = record["exception"]
                log_entry["error"] = {
                    "type": exc.type.__name__ if exc.type else "UnknownError",
                    "message": str(exc.value) if exc.value else "Unknown error",
                }

            sys.stderr.write(json.dumps(log_entry, ensure_ascii=False, default=str) + "\n")
            sys.stderr.flush()

        logger.add(json_sink, level=settings.LOG_LEVEL, enqueue=True, catch=True)
    else:
        def format_with_trace(record):
            trace_id = record["extra"].get("trace_id", "no-trace")
            trace_info = f" [trace:{trace_id[:8]}]" if trace_id != "no-trace" else ""
            return (
                "<green>{time:YYYY-MM-DD HH:mm:ss.SSS}</green> | <level>{level: <8}</level> | "
                "<cyan>{name}:{function}:{line}</cyan>" + trace_info + " - <level>{message}</level>\n{exception}"
            )

        logger.add(
            sys.stderr,
            format=format_with_trace,
            level=settings.LOG_LEVEL,
            colorize=True,
            enqueue=True,
            catch=True
        )


def get_current_trace_span_ids() -> Tuple[str, str]:
    """Current trace_id and span_id, minting local ones outside a request"""
    trace_id = _trace_id_context.get()
    span_id = _span_id_context.get()
    if trace_id != "no-trace":
        return trace_id, span_id

    trace_id, span_id = _ids_from_current_span()
    _trace_id_context.set(trace_id)
    _span_id_context.set(span_id)
    return trace_id, span_id


def set_trace_context(trace_id: str, span_id: str):
    """Manually set trace context - useful for background tasks"""
    _trace_id_context.set(trace_id)
    _span_id_context.set(span_id)


def get_current_trace_id() -> str:
    trace_id, _ = get_current_trace_span_ids()
    return trace_id


def get_trace_context() -> Dict[str, str]:
    trace_id, span_id = get_current_trace_span_ids()
    return {"trace_id": trace_id, "span_id": span_id}


def log_with_trace(level: str, message: str, **kwargs):
    """Log through loguru with the trace context bound to the record"""
    trace_id, span_id = get_current_trace_span_ids()
    bound = logger.bind(trace_id=trace_id, span_id=span_id, **kwargs)
    getattr(bound, level.lower())(message)


def log_error_with_context(message: str, exception: Optional[Exception] = None, **kwargs):
    """Log error with full context and stack trace"""
    kwargs.setdefault("event_type", "error")
    if exception is not None:
        trace_id, span_id = get_current_trace_span_ids()
        logger.bind(trace_id=trace_id, span_id=span_id, **kwargs).opt(
            exception=exception
        ).error(message)
    else:
        log_with_trace("error", message, **kwargs)


def info(message: str, **kwargs):
    log_with_trace("info", message, **kwargs)


def debug(message: str, **kwargs):
    log_with_trace("debug", message, **kwargs)


def warning(message: str, **kwargs):
    log_with_trace("warning", message, **kwargs)


def error(message: str, **kwargs):
    log_with_trace("error", message, **kwargs)


__all__ = [
    'setup_tracing', 'setup_structured_logging', 'get_current_trace_span_ids', 'get_current_trace_id',
    'get_trace_context', 'set_trace_context', 'log_with_trace', 'log_error_with_context',
    'info', 'debug', 'warning', 'error'
]
