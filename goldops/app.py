import logging
import os

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from goldops.application import ServiceContainer, build_container
from goldops.core.errors import GoldOpsError
from goldops.infrastructure import HttpAccountDirectory
from goldops.routes import inventory, orders, reports, transfers

logger = logging.getLogger(__name__)


def _configure_logging() -> None:
    level = os.getenv("GOLDOPS_LOG_LEVEL", "INFO").upper()
    logging.basicConfig(level=level, format="%(asctime)s %(levelname)s %(name)s: %(message)s")


def _default_container() -> ServiceContainer:
    base_url = os.getenv("ACCOUNT_SERVICE_URL")
    if base_url:
        directory = HttpAccountDirectory(base_url, token=os.getenv("ACCOUNT_SERVICE_TOKEN"))
        logger.info("using account service at %s", base_url)
        return build_container(directory=directory)
    return build_container()


def create_app(container: ServiceContainer | None = None) -> FastAPI:
    _configure_logging()
    app = FastAPI(title="GoldOps Operations API", version="0.1.0")
    app.state.container = container or _default_container()

    origins_env = os.getenv("API_CORS_ORIGINS", "")
    origins = [origin.strip() for origin in origins_env.split(",") if origin.strip()]
    if not origins:
        origins = ["http://localhost:3000", "http://127.0.0.1:3000"]

    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.exception_handler(GoldOpsError)
    async def handle_goldops_error(request: Request, exc: GoldOpsError) -> JSONResponse:
        return JSONResponse(exc.to_payload(), status_code=exc.status_code)

    @app.exception_handler(RequestValidationError)
    async def handle_request_validation(request: Request, exc: RequestValidationError) -> JSONResponse:
        errors = exc.errors()
        message = str(errors[0].get("msg")) if errors else "invalid request"
        return JSONResponse({"success": False, "error": message, "code": "validation"}, status_code=400)

    app.include_router(inventory.router, prefix="/api")
    app.include_router(orders.router, prefix="/api")
    app.include_router(transfers.router, prefix="/api")
    app.include_router(reports.router, prefix="/api")

    @app.get("/", include_in_schema=False)
    async def root() -> JSONResponse:
        """Provide a lightweight landing page for container checks."""
        return JSONResponse(
            {
                "message": "GoldOps Operations API",
                "docs": "/docs",
            }
        )

    return app


app = create_app()
