#!/usr/bin/env python3
"""
Kleaner - Main Entry Point

This is the thin orchestration layer that:
1. Loads configuration
2. Builds the cleanup controller
3. Runs it next to a small health/metrics API

All business logic is in the modules, following black box principles.
"""

import asyncio
import logging
import logging.config as log_config
from contextlib import asynccontextmanager
from typing import Callable, Optional

import uvicorn
from fastapi import FastAPI, Request, Response
from fastapi.responses import JSONResponse

from kleaner import __version__
from kleaner.config.provider import ConfigProvider, EnvConfigProvider
from kleaner.logging_config import get_logging_config
from kleaner.modules.controller import CleanupController, build_controller

# Configuration provider (centralized config access)
config_provider: ConfigProvider = EnvConfigProvider()
api_config = config_provider.get_api_config()

# Configure logging with health check suppression
log_config.dictConfig(get_logging_config(api_config.log_level))
logger = logging.getLogger(__name__)

# Seconds to wait for controller tasks on shutdown
SHUTDOWN_TIMEOUT = 10


def create_app(
    controller_factory: Optional[Callable[[], CleanupController]] = None,
) -> FastAPI:
    """
    Create the FastAPI application.

    Args:
        controller_factory: Builds the controller on startup, defaults to
            building it from the environment configuration
    """
    factory = controller_factory or (lambda: build_controller(config_provider))

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Manage application lifecycle - start and stop the controller.
        """
        logger.info("Starting Kleaner...")

        controller = factory()
        stop_event = asyncio.Event()
        task = asyncio.create_task(controller.run(stop_event))
        app.state.controller = controller
        app.state.controller_task = task

        logger.info("Kleaner started successfully")

        yield

        # Shutdown
        logger.info("Shutting down Kleaner...")
        stop_event.set()
        try:
            await asyncio.wait_for(task, timeout=SHUTDOWN_TIMEOUT)
        except asyncio.TimeoutError:
            logger.warning("Controller did not stop in time, cancelling")
            task.cancel()
        except Exception as e:
            logger.error(f"Controller exited with error: {e}")
        logger.info("Kleaner shutdown complete")

    app = FastAPI(
        title="Kleaner",
        description="Kubernetes Job and Pod cleanup controller",
        version=__version__,
        lifespan=lifespan,
    )

    @app.get("/health")
    async def health(request: Request):
        """
        Health check endpoint.

        Returns:
            200: Controller tasks running
            503: Controller not running
        """
        controller = getattr(request.app.state, "controller", None)
        task = getattr(request.app.state, "controller_task", None)

        if controller is None or task is None or task.done():
            return JSONResponse(status_code=503, content={"status": "unhealthy"})

        return {"status": "healthy", "version": __version__, **controller.status()}

    @app.get("/metrics")
    async def metrics(request: Request):
        """
        Prometheus-compatible metrics endpoint.

        Returns scheduler counters.
        """
        controller = getattr(request.app.state, "controller", None)
        if controller is None:
            return Response(content="", status_code=503)

        lines = []
        for name, value in controller.scheduler.stats.to_dict().items():
            metric = f"kleaner_{name}_total"
            lines.append(f"# TYPE {metric} counter")
            lines.append(f"{metric} {value}")
        lines.append("# TYPE kleaner_known_objects gauge")
        for kind, mirror in (("job", controller.jobs), ("pod", controller.pods)):
            lines.append(f'kleaner_known_objects{{kind="{kind}"}} {len(mirror.list())}')

        return Response(content="\n".join(lines) + "\n", media_type="text/plain")

    return app


app = create_app()


def main():
    """Main entry point."""
    uvicorn.run(
        app,
        host=api_config.host,
        port=api_config.port,
        log_level=api_config.log_level.lower(),
        log_config=get_logging_config(api_config.log_level),
    )


if __name__ == "__main__":
    main()
