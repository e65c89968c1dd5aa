"""Status endpoint exposing the read-only service snapshot."""

import logging
import time
from contextlib import asynccontextmanager
from typing import Any, Dict, Optional

from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from riftwatch.config import settings
from riftwatch.logging_config import setup_logging
from riftwatch.service import RiftService

log = logging.getLogger(__name__)


def create_app(service: Optional[RiftService] = None) -> FastAPI:
    """
    Build the status app.

    Args:
        service: An already built service. When omitted the service is built
                 from settings and started/closed with the app lifespan.
    """

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        owned = service is None
        svc = RiftService.from_settings(settings) if owned else service
        app.state.service = svc
        if owned:
            await svc.start()
        log.info(f"Status app serving (reference data loaded: {svc.ddragon.loaded})")
        try:
            yield
        finally:
            if owned:
                await svc.close()

    app = FastAPI(title="riftwatch status", lifespan=lifespan)
    app.state.start_time = time.time()

    @app.get("/health")
    async def health_check(request: Request) -> JSONResponse:
        """
        Basic health check endpoint.

        Returns:
            JSON with status, uptime and the service snapshot
        """
        svc: RiftService = request.app.state.service
        uptime = int(time.time() - request.app.state.start_time)
        return JSONResponse({
            "status": "healthy",
            "service": "riftwatch",
            "uptime_seconds": uptime,
            **svc.status(),
        })

    @app.get("/readiness")
    async def readiness_check(request: Request) -> Response:
        """
        Kubernetes-style readiness probe.

        Returns:
            200 once the reference dataset is loaded, 503 before
        """
        svc: RiftService = request.app.state.service
        if svc.ddragon.loaded:
            return Response(status_code=200, content="Ready")
        return Response(status_code=503, content="Not ready: reference data not loaded")

    @app.get("/liveness")
    async def liveness_check() -> Response:
        """Kubernetes-style liveness probe."""
        return Response(status_code=200, content="Alive")

    @app.get("/metrics")
    async def metrics(request: Request) -> Dict[str, Any]:
        svc: RiftService = request.app.state.service
        status = svc.status()
        return {
            "uptime_seconds": int(time.time() - request.app.state.start_time),
            "rate_limit": status["rate_limit"],
            "cache": status["cache"],
        }

    return app


if __name__ == "__main__":
    import uvicorn

    setup_logging(level=settings.LOG_LEVEL)
    uvicorn.run(create_app(), host=settings.HEALTH_HOST, port=settings.HEALTH_PORT)
