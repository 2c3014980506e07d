import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from apartment_manager.services.errors import ReportError, UpstreamDataError

logger = logging.getLogger(__name__)


async def _report_error_handler(request: Request, exc: ReportError) -> JSONResponse:
    if isinstance(exc, UpstreamDataError):
        logger.error("%s %s failed upstream: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def register_error_handlers(app: FastAPI) -> None:
    # Subclasses resolve to this handler through the exception MRO
    app.add_exception_handler(ReportError, _report_error_handler)
