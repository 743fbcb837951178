"""
Translation of hierarchy failures into HTTP responses.
"""

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from structlog import get_logger

from caretree.core.errors import (
    CycleDetected,
    GroupNotFound,
    HasChildren,
    HierarchyError,
    ParentNotFound,
    SelfParent,
)

STATUS_CODES: dict[type[HierarchyError], int] = {
    GroupNotFound: 404,
    ParentNotFound: 422,
    CycleDetected: 422,
    SelfParent: 422,
    HasChildren: 409,
}


async def hierarchy_error_handler(request: Request, exc: HierarchyError):
    status_code = STATUS_CODES.get(type(exc), 400)

    log = get_logger().bind(
        path=request.url.path, error=type(exc).__name__, status_code=status_code
    )
    await log.ainfo("api.hierarchy_error")

    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def add_exception_handlers(app: FastAPI) -> FastAPI:
    """
    Adds exception handlers for the typed hierarchy failures raised by the
    service layer.
    """
    app.add_exception_handler(HierarchyError, hierarchy_error_handler)
    return app
