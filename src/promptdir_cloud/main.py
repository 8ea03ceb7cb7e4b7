"""FastAPI application entrypoint for Prompt Directory Cloud."""

from __future__ import annotations

import logging
from collections.abc import AsyncGenerator, Callable
from contextlib import asynccontextmanager
from datetime import datetime

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse, Response
from slowapi.errors import RateLimitExceeded
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker
from starlette.exceptions import HTTPException as StarletteHTTPException

from promptdir_cloud import __version__
from promptdir_cloud.config import Settings, settings as default_settings
from promptdir_cloud.errors import ServiceError
from promptdir_cloud.generation import GenerationService
from promptdir_cloud.identity import HostedAuthVerifier, IdentityVerifier
from promptdir_cloud.prompts import load_templates
from promptdir_cloud.quota import QuotaGate, UsageLedger
from promptdir_cloud.ratelimit import limiter, rate_limit_exceeded_handler
from promptdir_cloud.upstream import CompletionClient, CompletionService

logger = logging.getLogger("promptdir_cloud")

CORS_ALLOW_HEADERS = "authorization, x-client-info, apikey, content-type"

NEWSLETTER_PREFIX = "/v1/newsletter-subscribe"


def cors_headers(origin: str | None, allowed_origins: list[str]) -> dict[str, str]:
    """Echo *origin* when it is allow-listed, else the first allowed origin."""
    if origin and origin in allowed_origins:
        allow_origin = origin
    else:
        allow_origin = allowed_origins[0] if allowed_origins else ""
    headers = {"Access-Control-Allow-Headers": CORS_ALLOW_HEADERS, "Vary": "Origin"}
    if allow_origin:
        headers["Access-Control-Allow-Origin"] = allow_origin
    return headers


def unhandled_error_message(path: str) -> str:
    if path.startswith(NEWSLETTER_PREFIX):
        return "An error occurred. Please try again."
    return "Generation failed"


def build_generation_service(
    app_settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    verifier: IdentityVerifier | None = None,
    upstream: CompletionService | None = None,
    clock: Callable[[], datetime] | None = None,
) -> GenerationService:
    """Wire the generator's collaborators from settings, unless given explicitly."""
    ledger = UsageLedger(session_factory)
    gate = QuotaGate(session_factory, ledger, app_settings.daily_generation_limit)

    if verifier is None:
        verifier = HostedAuthVerifier(
            base_url=app_settings.auth_url,
            service_key=app_settings.auth_service_key,
            timeout=app_settings.auth_timeout_seconds,
        )
    if upstream is None:
        upstream = CompletionClient(
            base_url=app_settings.upstream_base_url,
            api_key=app_settings.upstream_api_key,
            model=app_settings.upstream_model,
            timeout=app_settings.upstream_timeout_seconds,
        )

    kwargs = {}
    if clock is not None:
        kwargs["clock"] = clock

    return GenerationService(
        verifier=verifier,
        gate=gate,
        ledger=ledger,
        upstream=upstream,
        templates=load_templates(app_settings.prompt_templates_path),
        strict_prompt_type=app_settings.strict_prompt_type,
        **kwargs,
    )


def create_app(
    app_settings: Settings | None = None,
    session_factory: async_sessionmaker[AsyncSession] | None = None,
    verifier: IdentityVerifier | None = None,
    upstream: CompletionService | None = None,
    clock: Callable[[], datetime] | None = None,
) -> FastAPI:
    """Build the application. Everything defaults to the environment's settings."""
    app_settings = app_settings or default_settings
    owns_database = session_factory is None

    if session_factory is None:
        from promptdir_cloud.database import async_session_factory

        session_factory = async_session_factory

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup / shutdown lifecycle handler."""
        logging.basicConfig(level=app_settings.log_level)
        logger.info(
            "Prompt Directory Cloud %s starting (env=%s)",
            __version__,
            app_settings.environment,
        )

        if owns_database and app_settings.environment == "dev":
            from promptdir_cloud.database import init_db

            await init_db()
            logger.info("Dev mode: tables created via init_db()")

        yield

        if owns_database:
            from promptdir_cloud.database import dispose_engine

            await dispose_engine()
        logger.info("Prompt Directory Cloud shut down.")

    app = FastAPI(
        title="Prompt Directory Cloud",
        version=__version__,
        description="Rate-limited AI prompt generator and newsletter signup for the prompt directory.",
        lifespan=lifespan,
    )

    app.state.settings = app_settings
    app.state.generation_service = build_generation_service(
        app_settings, session_factory, verifier=verifier, upstream=upstream, clock=clock
    )
    app.state.limiter = limiter

    # -----------------------------------------------------------------------
    # CORS
    # -----------------------------------------------------------------------
    @app.middleware("http")
    async def cors_middleware(request: Request, call_next):
        headers = cors_headers(request.headers.get("origin"), app_settings.allowed_origins)
        if request.method == "OPTIONS":
            return Response(status_code=200, headers=headers)
        try:
            response = await call_next(request)
        except Exception:
            logger.exception("Unhandled error on %s %s", request.method, request.url.path)
            response = JSONResponse(
                status_code=500,
                content={"error": unhandled_error_message(request.url.path)},
            )
        response.headers.update(headers)
        return response

    # -----------------------------------------------------------------------
    # API routers
    # -----------------------------------------------------------------------
    from promptdir_cloud.api.generate import router as generate_router
    from promptdir_cloud.api.newsletter import router as newsletter_router

    app.include_router(generate_router)
    app.include_router(newsletter_router)

    # -----------------------------------------------------------------------
    # Health check
    # -----------------------------------------------------------------------
    @app.get("/health", tags=["meta"])
    async def health_check() -> dict:
        return {
            "status": "ok",
            "version": __version__,
            "environment": app_settings.environment,
        }

    # -----------------------------------------------------------------------
    # Exception handlers
    # -----------------------------------------------------------------------
    @app.exception_handler(ServiceError)
    async def service_error_handler(request: Request, exc: ServiceError) -> JSONResponse:
        return JSONResponse(status_code=exc.status_code, content=exc.to_payload())

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        detail = exc.detail if isinstance(exc.detail, str) else str(exc.detail)
        return JSONResponse(status_code=exc.status_code, content={"error": detail})

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        errors = exc.errors()
        detail = errors[0].get("msg", "Invalid request body") if errors else "Invalid request body"
        return JSONResponse(status_code=400, content={"error": f"Invalid request body: {detail}"})

    app.add_exception_handler(RateLimitExceeded, rate_limit_exceeded_handler)

    return app


app = create_app()
