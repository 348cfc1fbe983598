import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from capstone.api.v1.router import v1_router
from capstone.core.config import get_settings
from capstone.core.errors import DomainError
from capstone.core.logging import configure_logging
from capstone.core.middleware import RequestIdMiddleware

logger = logging.getLogger(__name__)


async def domain_error_handler(request: Request, exc: DomainError) -> JSONResponse:
    # 4xx: expected outcomes of a rejected request, not server faults
    logger.info(
        "request rejected",
        extra={"code": exc.code, "path": request.url.path, "error_message": exc.message},
    )
    return JSONResponse(status_code=exc.status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()
    configure_logging(settings)

    app = FastAPI(
        title=settings.app_name,
        version="0.1.0",
    )

    # Middleware: Request ID
    app.add_middleware(RequestIdMiddleware, header_name=settings.request_id_header)

    app.add_exception_handler(DomainError, domain_error_handler)

    # API v1
    app.include_router(v1_router, prefix=settings.api_prefix)

    return app


app = create_app()
