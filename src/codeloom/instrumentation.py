"""OpenTelemetry spans for agent runs, completions and tool calls.

Tracing is off until :func:`instrument` is called.  With it off every
span helper yields ``None`` and every ``record_*`` function returns
immediately, so ``opentelemetry-api`` stays an optional extra.
"""

import importlib.util
import logging
from contextlib import asynccontextmanager

logger = logging.getLogger(__name__)

_tracer = None

OPERATION = "gen_ai.operation.name"


def instrument(*, tracer_name: str = "codeloom") -> None:
    """Start emitting spans through ``trace.get_tracer(tracer_name)``.

    Configure a TracerProvider first; otherwise the spans are dropped.

    Raises:
        ImportError: ``opentelemetry-api`` is not installed
            (``pip install codeloom[otel]``).
    """
    global _tracer
    if importlib.util.find_spec("opentelemetry.trace") is None:
        raise ImportError(
            "Tracing needs opentelemetry-api: pip install codeloom[otel]"
        )
    from opentelemetry import trace

    _tracer = trace.get_tracer(tracer_name)
    if isinstance(_tracer, trace.NoOpTracer):
        logger.info(
            "No TracerProvider configured; spans will be dropped until "
            "one is installed"
        )
    else:
        logger.info(f"Tracing enabled with tracer {tracer_name!r}")


def uninstrument() -> None:
    global _tracer
    _tracer = None


@asynccontextmanager
async def _span(name: str, attributes: dict, client: bool = False):
    if _tracer is None:
        yield None
        return
    kwargs = {"attributes": attributes}
    if client:
        from opentelemetry.trace import SpanKind

        kwargs["kind"] = SpanKind.CLIENT
    with _tracer.start_as_current_span(name, **kwargs) as span:
        yield span


def run_span(project_id: str, model: str):
    """One ``Runner.iter()`` call on a project."""
    return _span(f"invoke_agent {project_id}", {
        OPERATION: "invoke_agent",
        "codeloom.project.id": project_id,
        "gen_ai.request.model": model,
    })


def completion_span(system: str, model: str):
    """One provider round trip, streamed or not."""
    return _span(f"chat {model}", {
        OPERATION: "chat",
        "gen_ai.provider.name": system,
        "gen_ai.request.model": model,
    }, client=True)


def tool_span(tool_name: str, call_id: str):
    return _span(f"execute_tool {tool_name}", {
        OPERATION: "execute_tool",
        "gen_ai.tool.name": tool_name,
        "gen_ai.tool.call.id": call_id,
    })


def _mark_failed(span, description: str, error_type: str) -> None:
    from opentelemetry.trace import StatusCode

    span.set_status(StatusCode.ERROR, description)
    span.set_attribute("error.type", error_type)


def record_usage(span, usage, response_model: str | None = None) -> None:
    """Copy token counts (and the model that answered) onto *span*."""
    if span is None or usage is None:
        return
    for source, attribute in (
        ("prompt_tokens", "gen_ai.usage.input_tokens"),
        ("completion_tokens", "gen_ai.usage.output_tokens"),
    ):
        value = getattr(usage, source, None)
        if value is not None:
            span.set_attribute(attribute, value)
    if response_model:
        span.set_attribute("gen_ai.response.model", response_model)


def record_tool_result(span, success: bool, error: str | None = None) -> None:
    # Failed results are returned, not raised, so the span has to be told.
    if span is None or success:
        return
    _mark_failed(span, error or "tool failed", "tool_error")


def record_error(span, exception: BaseException) -> None:
    if span is None:
        return
    span.record_exception(exception)
    _mark_failed(span, str(exception), type(exception).__qualname__)
