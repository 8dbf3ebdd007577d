from contextlib import asynccontextmanager
from typing import Optional, Sequence

import httpx
from fastapi import FastAPI
from opentelemetry import trace
from opentelemetry.exporter.otlp.proto.grpc.trace_exporter import OTLPSpanExporter
from opentelemetry.instrumentation.fastapi import FastAPIInstrumentor
from opentelemetry.sdk.resources import Resource
from opentelemetry.sdk.trace import ReadableSpan, TracerProvider
from opentelemetry.sdk.trace.export import (
    BatchSpanProcessor,
    SpanExporter,
    SpanExportResult,
)
from prometheus_client import Info
from prometheus_fastapi_instrumentator import Instrumentator

from relay.app_proxy.buffer_pool import BufferPool
from relay.routes import router
from relay.vars import OTLP_ENDPOINT, OTLP_HEADERS, SERVICE_NAME, ProxyConfig, load_config


class FilteringSpanExporter(SpanExporter):
    """
    Wrapper exporter that filters out ASGI body spans.

    A relayed stream sends one body message per buffer slice, which would
    otherwise produce one span each.
    """

    def __init__(self, exporter: SpanExporter):
        self.exporter = exporter

    def export(self, spans: Sequence[ReadableSpan]) -> SpanExportResult:
        filtered_spans = [
            span
            for span in spans
            if not (
                span.attributes
                and span.attributes.get("asgi.event.type") == "http.response.body"
            )
        ]
        if filtered_spans:
            return self.exporter.export(filtered_spans)
        return SpanExportResult.SUCCESS

    def shutdown(self):
        return self.exporter.shutdown()

    def force_flush(self, timeout_millis: int = 30000):
        return self.exporter.force_flush(timeout_millis)


trace.set_tracer_provider(
    TracerProvider(resource=Resource.create({"service.name": SERVICE_NAME}))
)
if OTLP_ENDPOINT:
    otlp_exporter = OTLPSpanExporter(
        endpoint=OTLP_ENDPOINT,
        headers=((OTLP_HEADERS).split(",") if OTLP_HEADERS else None),
    )
    trace.get_tracer_provider().add_span_processor(
        BatchSpanProcessor(FilteringSpanExporter(otlp_exporter))
    )

app_info = Info("fastapi_app_info", "Application Info")
app_info.info({"app_name": SERVICE_NAME})


def build_http_client(
    config: ProxyConfig, transport: Optional[httpx.AsyncBaseTransport] = None
) -> httpx.AsyncClient:
    """
    The upstream client shared by all requests.

    No connection cap, so a long-lived stream never holds up other requests.
    Accept-Encoding defaults to identity because bodies are relayed raw; a
    client that asks for compression still gets its own header forwarded.
    """
    client = httpx.AsyncClient(
        timeout=httpx.Timeout(config.timeout),
        follow_redirects=config.follow_redirects,
        limits=httpx.Limits(max_connections=None, max_keepalive_connections=20),
        transport=transport,
    )
    client.headers["Accept-Encoding"] = "identity"
    return client


def create_app(
    config: Optional[ProxyConfig] = None,
    transport: Optional[httpx.AsyncBaseTransport] = None,
) -> FastAPI:
    """
    Build the proxy application around an immutable configuration.

    Also usable as a uvicorn factory: `uvicorn relay.server:create_app --factory`.
    """
    config = config or load_config()

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        try:
            yield
        finally:
            await app.state.http_client.aclose()

    # The routing table owns every path, including ones like /openapi.json
    app = FastAPI(lifespan=lifespan, docs_url=None, redoc_url=None, openapi_url=None)
    app.state.config = config
    app.state.buffer_pool = BufferPool(config.buffer_size, config.buffer_max_idle)
    app.state.http_client = build_http_client(config, transport)

    Instrumentator().instrument(app).expose(app, include_in_schema=False)
    FastAPIInstrumentor.instrument_app(app, excluded_urls="metrics")

    app.include_router(router)
    return app

