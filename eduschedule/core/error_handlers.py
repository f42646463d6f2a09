# eduschedule/core/error_handlers.py
from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
import logging

from .exceptions import SchedulingError

logger = logging.getLogger(__name__)

async def scheduling_exception_handler(request: Request, exc: SchedulingError):
    """Handle scheduler domain errors"""
    logger.warning(f"{exc.kind}: {exc.message} - Path: {request.url.path}")
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())

async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions"""
    logger.error(f"Unexpected error: {str(exc)} - Path: {request.url.path}", exc_info=exc)
    return JSONResponse(
        status_code=500,
        content={"error": "InternalError", "message": "Internal server error"}
    )

def register_exception_handlers(app: FastAPI):
    app.add_exception_handler(SchedulingError, scheduling_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)
