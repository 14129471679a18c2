"""Map engine errors to consistent JSON responses.

  EnrollmentNotFoundError  404  unknown enrollment id
  ActivityNotFoundError    404  unknown activity id on a write
  ValueError               422  invalid state/override signal
  RollupPersistenceError   503  rollup computed but not stored; retry later
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from pathway_engine.services.errors import (
    ActivityNotFoundError,
    EnrollmentNotFoundError,
    RollupPersistenceError,
)

logger = logging.getLogger(__name__)


def setup_error_handlers(app: FastAPI) -> None:
    @app.exception_handler(EnrollmentNotFoundError)
    async def enrollment_not_found(
        _request: Request, exc: EnrollmentNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Enrollment not found"},
        )

    @app.exception_handler(ActivityNotFoundError)
    async def activity_not_found(
        _request: Request, exc: ActivityNotFoundError
    ) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_404_NOT_FOUND,
            content={"detail": "Activity not found"},
        )

    @app.exception_handler(RollupPersistenceError)
    async def rollup_not_persisted(
        _request: Request, exc: RollupPersistenceError
    ) -> JSONResponse:
        # The aggregator already logged the underlying failure with traceback.
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"detail": "Completion rollup could not be stored"},
        )

    @app.exception_handler(ValueError)
    async def invalid_signal(request: Request, exc: ValueError) -> JSONResponse:
        logger.warning(
            "Rejected request: %s",
            exc,
            extra={"method": request.method, "path": request.url.path},
        )
        return JSONResponse(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            content={"detail": str(exc)},
        )
