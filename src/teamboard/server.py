from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from fastapi.responses import JSONResponse, StreamingResponse
from prometheus_client import CONTENT_TYPE_LATEST, REGISTRY, CollectorRegistry, generate_latest
from starlette.responses import Response

from teamboard.broadcast import Broadcaster
from teamboard.poller import Poller
from teamboard.provider.base import UsageProvider

logger = structlog.get_logger()


def create_app(
    poller: "Poller",
    broadcaster: "Broadcaster",
    provider: "UsageProvider | None" = None,
    registry: "CollectorRegistry" = REGISTRY,
) -> "FastAPI":
    """
    builds the HTTP surface: the live event stream, its REST fallback,
    a health check and the Prometheus endpoint. The poller runs for the
    lifetime of the application.
    """

    @asynccontextmanager
    async def lifespan(_: "FastAPI"):
        await poller.start()
        try:
            yield
        finally:
            logger.info("shutting_down")
            try:
                await poller.close()
            finally:
                if provider is not None:
                    await provider.close()
            logger.info("shutdown_complete")

    app = FastAPI(title="teamboard", lifespan=lifespan)

    @app.get("/api/events")
    async def events() -> "StreamingResponse":
        return StreamingResponse(
            broadcaster.stream(initial=poller.snapshot),
            media_type="text/event-stream",
            headers={"Cache-Control": "no-cache", "Connection": "keep-alive"},
        )

    @app.get("/api/team")
    async def team() -> "JSONResponse":
        return JSONResponse(content=[m.to_dict() for m in poller.snapshot])

    @app.get("/health")
    async def health() -> "dict":
        return {
            "status": "ok",
            "members": len(poller.snapshot),
            "subscribers": broadcaster.subscriber_count,
        }

    @app.get("/metrics", include_in_schema=False)
    async def metrics() -> "Response":
        return Response(
            content=generate_latest(registry),
            media_type=CONTENT_TYPE_LATEST,
            headers={"Cache-Control": "no-cache"},
        )

    return app
