"""FastAPI application entrypoint. No business logic; only wiring and middleware."""

from dotenv import load_dotenv

load_dotenv()

import logging
import time

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from starlette.responses import Response
from uvicorn.middleware.proxy_headers import ProxyHeadersMiddleware

from userhub.api import health
from userhub.api import router as api_router
from userhub.core.abuse import AbuseGate, AbuseGateMiddleware
from userhub.core.config import Settings, settings
from userhub.core.database import build_session_factory
from userhub.core.errors import register_exception_handlers
from userhub.core.logging import configure_logging
from userhub.core.security import TokenService

logger = logging.getLogger(__name__)


def create_app(app_settings: Settings | None = None) -> FastAPI:
    """Build the app; the signing secret and database binding come from app_settings via app.state."""
    app_settings = app_settings or settings
    configure_logging(app_settings.LOG_LEVEL)

    app = FastAPI(
        title="Userhub API",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
    )
    token_service = TokenService.from_settings(app_settings)
    app.state.settings = app_settings
    app.state.token_service = token_service
    app.state.session_factory = build_session_factory(app_settings)

    # Added first so it runs innermost, after CORS and request logging.
    app.add_middleware(
        AbuseGateMiddleware,
        gate=AbuseGate.from_settings(app_settings),
        token_service=token_service,
        cookie_name=app_settings.COOKIE_NAME,
    )
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if app_settings.APP_ENV == "dev" else [],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    @app.middleware("http")
    async def log_requests(request: Request, call_next) -> Response:
        started = time.perf_counter()
        response = await call_next(request)
        logger.info(
            "%s %s %s %.1fms",
            request.method,
            request.url.path,
            response.status_code,
            (time.perf_counter() - started) * 1000,
        )
        return response

    # Added last so it runs outermost: every later layer sees the forwarded client address.
    if app_settings.FORWARDED_ALLOW_IPS:
        app.add_middleware(
            ProxyHeadersMiddleware,
            trusted_hosts=app_settings.FORWARDED_ALLOW_IPS,
        )

    register_exception_handlers(app)

    app.include_router(api_router, prefix=app_settings.API_PREFIX)
    app.include_router(health.router, prefix="/health", tags=["health"])

    @app.get("/")
    def root() -> dict[str, str]:
        """Root route; minimal payload for discovery."""
        return {"message": "Userhub API"}

    return app


app = create_app()
