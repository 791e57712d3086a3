"""OpenTelemetry tracing for DebtChat.

Spans are created around chat backend calls and tool executions when tracing
is enabled. With tracing disabled every helper is a no-op, so callers never
need to check.

Configuration:
    - DEBTCHAT_ENABLE_TRACING: Enable/disable tracing (default: False)
    - DEBTCHAT_OTEL_EXPORTER_ENDPOINT: OTLP/HTTP traces endpoint
    - DEBTCHAT_OTEL_SERVICE_NAME: service.name resource attribute

Example:
    >>> from debtchat.telemetry import configure_tracing, trace_llm_call
    >>>
    >>> configure_tracing()
    >>> with trace_llm_call("anthropic:claude-sonnet-4-5", messages) as span:
    ...     response = await backend_call(messages)
"""

import logging
from contextlib import contextmanager
from typing import Any

from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.http.trace_exporter import OTLPSpanExporter
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import TracerProvider
from opentelemetry.sdk.trace.export import BatchSpanProcessor
from opentelemetry.trace import Status, StatusCode

from debtchat._version import get_version
from debtchat.config import get_settings

logger = logging.getLogger(__name__)

_tracer = None
_tracing_enabled = False


class _NoOpSpan:
    def set_attribute(self, *args, **kwargs):
        pass

    def set_status(self, *args, **kwargs):
        pass

    def record_exception(self, *args, **kwargs):
        pass


def configure_tracing() -> None:
    """Configure OpenTelemetry tracing with an OTLP exporter.

    Should be called once at application startup. Calling it again
    replaces the tracer provider.
    """
    global _tracer, _tracing_enabled

    settings = get_settings()
    if not settings.enable_tracing:
        logger.info("OpenTelemetry tracing is disabled")
        return

    try:
        resource = Resource.create(
            {
                "service.name": settings.otel_service_name,
                "service.version": get_version(),
            }
        )
        provider = TracerProvider(resource=resource)

        if settings.otel_exporter_endpoint:
            otlp_exporter = OTLPSpanExporter(endpoint=settings.otel_exporter_endpoint, headers={})
            provider.add_span_processor(BatchSpanProcessor(otlp_exporter))
            logger.info(f"OTLP exporter configured with endpoint: {settings.otel_exporter_endpoint}")

        trace.set_tracer_provider(provider)
        _tracer = trace.get_tracer("debtchat")
        _tracing_enabled = True

        logger.info("OpenTelemetry tracing configured successfully")

    except Exception as e:
        logger.error(f"Failed to configure tracing: {e}")
        _tracing_enabled = False


def is_tracing_enabled() -> bool:
    """Check if tracing is currently enabled."""
    return _tracing_enabled


@contextmanager
def _span(name: str, attributes: dict[str, Any]):
    if not _tracing_enabled or _tracer is None:
        yield _NoOpSpan()
        return

    with _tracer.start_as_current_span(name, attributes=attributes) as span:
        try:
            yield span
        except Exception as e:
            span.record_exception(e)
            span.set_status(Status(StatusCode.ERROR, str(e)))
            raise


@contextmanager
def trace_llm_call(model: str, messages: list[dict], tools: list[Any] | None = None, **attributes: Any):
    """Context manager for tracing a chat backend call.

    Args:
        model: Model identifier (e.g., "anthropic:claude-sonnet-4-5")
        messages: List of wire message dictionaries
        tools: Optional list of tool schemas available for the call
        **attributes: Additional span attributes to include

    Yields:
        Span: The active span, or a no-op span when tracing is disabled
    """
    provider, model_name = model.split(":", 1) if ":" in model else ("unknown", model)
    with _span(
        "llm.completion",
        {
            "llm.provider": provider,
            "llm.model": model_name,
            "llm.messages_count": len(messages),
            "llm.tools_available": len(tools) if tools else 0,
            **attributes,
        },
    ) as span:
        yield span


@contextmanager
def trace_tool_call(tool_name: str, arg_count: int):
    """Context manager for tracing one tool execution."""
    with _span(f"tool.{tool_name}", {"tool.name": tool_name, "tool.arg_count": arg_count}) as span:
        yield span


def set_span_attributes(span: Any, **attributes: Any) -> None:
    """Set multiple attributes on a span safely.

    Args:
        span: OpenTelemetry span object
        **attributes: Key-value pairs to set as span attributes
    """
    if not _tracing_enabled:
        return

    for key, value in attributes.items():
        try:
            if isinstance(value, (dict, list)):
                value = str(value)
            span.set_attribute(key, value)
        except Exception as e:
            logger.debug(f"Failed to set span attribute {key}: {e}")


def record_token_usage(span: Any, usage: dict[str, int]) -> None:
    """Record token usage information on a span.

    Args:
        span: OpenTelemetry span object
        usage: Dictionary with token counts (prompt, completion, total)
    """
    set_span_attributes(
        span,
        **{
            "llm.tokens.prompt": usage.get("prompt", 0),
            "llm.tokens.completion": usage.get("completion", 0),
            "llm.tokens.total": usage.get("total", 0),
        },
    )
