from __future__ import annotations

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from pathway_engine.api.activity_states import router as activity_states_router
from pathway_engine.api.availability import router as availability_router
from pathway_engine.api.health import router as health_router
from pathway_engine.api.metrics_endpoint import router as metrics_router
from pathway_engine.api.rollups import router as rollups_router
from pathway_engine.core.config import SETTINGS
from pathway_engine.core.logging import setup_logging
from pathway_engine.db.engine import lifespan_db
from pathway_engine.db.redis import lifespan_redis
from pathway_engine.middleware.error_handler import setup_error_handlers
from pathway_engine.middleware.metrics import MetricsMiddleware
from pathway_engine.middleware.request_context import RequestContextMiddleware

# Configure logging before anything else runs.
setup_logging(SETTINGS.log_level, json_format=SETTINGS.log_json)

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    # Nested so teardown runs in reverse order even if one fails.
    async with lifespan_db():
        async with lifespan_redis():
            yield


app = FastAPI(
    title="pathway-progress-service",
    lifespan=lifespan,
    docs_url="/docs" if SETTINGS.is_dev else None,
    redoc_url="/redoc" if SETTINGS.is_dev else None,
)

# Last-added runs first: RequestContext (outermost) → Metrics → route handler.
app.add_middleware(MetricsMiddleware)
app.add_middleware(RequestContextMiddleware)

setup_error_handlers(app)

app.include_router(metrics_router)
app.include_router(health_router)
app.include_router(availability_router)
app.include_router(rollups_router)
app.include_router(activity_states_router)

logger.info(
    "pathway-progress-service started  env=%s log_level=%s port=%d recompute=%s",
    SETTINGS.app_env,
    SETTINGS.log_level,
    SETTINGS.port,
    SETTINGS.recompute_delivery,
)
