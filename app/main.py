# =============================================================================
# app/main.py - FastAPI Application Entry Point
# =============================================================================
# FastAPI hosts the storefront: health checks are ordinary FastAPI routes,
# and every other URL goes through one catch-all endpoint that
#   1. reads the body (form fields, uploaded files or JSON) and the session
#      cookie into a RequestContext
#   2. turns POST + _method=PUT/PATCH/DELETE into that method
#   3. checks out one database connection and runs Router.dispatch() in the
#      threadpool (controllers and services are synchronous)
#   4. re-issues the session cookie when the request changed the session
#
# Usage:
#   uvicorn app.main:app --reload
# =============================================================================

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.concurrency import run_in_threadpool
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.datastructures import UploadFile
from starlette.responses import Response

from app.auth.session import SessionManager
from app.config import BASE_DIR, Settings, settings
from app.exceptions import StorefrontException, storefront_exception_handler, wants_json
from app.routers import health
from app.routes import build_router
from app.routing import RequestContext, UploadedFile
from app.views import ViewRenderer
from lib.database import Database
from lib.translations import LanguageManager, Translator

# Configure logging
logging.basicConfig(
    level=logging.DEBUG if settings.APP_DEBUG else logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)

METHOD_OVERRIDES = frozenset({"PUT", "PATCH", "DELETE"})
BODY_METHODS = frozenset({"POST", "PUT", "PATCH", "DELETE"})


# =============================================================================
# Request adapter
# =============================================================================

async def build_context(request: Request) -> RequestContext:
    """Read everything a controller needs out of the ASGI request."""
    state = request.app.state
    config: Settings = state.settings

    method = request.method.upper()
    form: dict[str, str] = {}
    files: dict[str, UploadedFile] = {}
    body_json = None

    content_type = request.headers.get("content-type", "")
    if method in BODY_METHODS:
        if content_type.startswith("application/json"):
            try:
                body_json = await request.json()
            except ValueError:
                body_json = None
        elif "form" in content_type:
            async with request.form() as data:
                for key, value in data.multi_items():
                    if isinstance(value, UploadFile):
                        files[key] = UploadedFile(
                            filename=value.filename or "",
                            content_type=value.content_type,
                            data=await value.read(),
                        )
                    else:
                        form[key] = value

    if method == "POST":
        override = (form.get("_method") or request.headers.get("x-http-method-override") or "").upper()
        if override in METHOD_OVERRIDES:
            method = override

    query = dict(request.query_params)
    session = SessionManager.from_cookie(request.cookies.get(config.SESSION_COOKIE_NAME))
    lang = LanguageManager(state.translator, session, query, request.headers.get("accept-language"))

    return RequestContext(
        method=method,
        path=request.url.path,
        query=query,
        form=form,
        json=body_json,
        files=files,
        headers={key.lower(): value for key, value in request.headers.items()},
        cookies=dict(request.cookies),
        session=session,
        lang=lang,
        client_ip=request.client.host if request.client else None,
        state={
            "settings": config,
            "views": state.views,
            "translator": state.translator,
            "payments": state.payments,
        },
    )


def handle(app: FastAPI, context: RequestContext) -> Response:
    """Dispatch with a per-request connection; storefront errors become pages."""
    try:
        with app.state.db.connect() as conn:
            context.db = conn
            return app.state.router.dispatch(context)
    except StorefrontException as exc:
        return exception_response(app, context, exc)


def exception_response(app: FastAPI, context: RequestContext, exc: StorefrontException) -> Response:
    if exc.status_code >= 500:
        logger.error(f"{exc.code} on {context.method} {context.path}: {exc.message}")
    else:
        logger.info(f"{exc.code} on {context.method} {context.path}: {exc.message}")

    if context.wants_json:
        return JSONResponse(status_code=exc.status_code, content=exc.to_dict())
    return app.state.views.render_error(exc.status_code, exc.message, context)


def write_session(response: Response, session: SessionManager, config: Settings) -> None:
    if not session.modified:
        return
    response.set_cookie(
        config.SESSION_COOKIE_NAME,
        session.to_cookie(),
        max_age=config.SESSION_LIFETIME_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=config.is_production,
    )


# =============================================================================
# Application factory
# =============================================================================

def create_app(
    config: Settings | None = None,
    database: Database | None = None,
    payments=None,
) -> FastAPI:
    """
    Build the application.

    Args:
        config: Settings (defaults to the global settings)
        database: Database to use instead of one built from config
        payments: PaymentService override (tests inject one with a mock client)

    Returns:
        The configured FastAPI app
    """
    config = config or settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(f"Starting {config.APP_NAME} in {config.ENVIRONMENT} mode")
        yield
        logger.info(f"Shutting down {config.APP_NAME}")
        app.state.db.close()

    app = FastAPI(
        title=f"{config.APP_NAME} Storefront",
        version=health.VERSION,
        docs_url="/docs" if config.APP_DEBUG else None,
        redoc_url=None,
        lifespan=lifespan,
    )

    translator = Translator(
        BASE_DIR / "lang",
        supported=config.supported_languages_list,
        default=config.DEFAULT_LANGUAGE,
    ).load()

    app.state.settings = config
    app.state.db = database or Database(config.database_url, debug=config.APP_DEBUG)
    app.state.translator = translator
    app.state.views = ViewRenderer(BASE_DIR / "templates", translator, config)
    app.state.router = build_router()
    app.state.payments = payments

    # -------------------------------------------------------------------------
    # Middleware
    # -------------------------------------------------------------------------
    if config.cors_origins_list:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=config.cors_origins_list,
            allow_credentials=True,
            allow_methods=["GET", "POST", "DELETE"],
            allow_headers=["*"],
        )

    # -------------------------------------------------------------------------
    # Exception handlers
    # -------------------------------------------------------------------------
    @app.exception_handler(StorefrontException)
    async def handle_storefront_exception(request: Request, exc: StorefrontException):
        return await storefront_exception_handler(request, exc)

    @app.exception_handler(Exception)
    async def handle_general_exception(request: Request, exc: Exception):
        logger.exception(f"Unexpected error: {exc}")
        if wants_json(request):
            return JSONResponse(
                status_code=500,
                content={"success": False, "error": "An unexpected error occurred", "code": "INTERNAL_ERROR"},
            )
        return request.app.state.views.render_error(500, "Something went wrong. Please try again later.")

    # -------------------------------------------------------------------------
    # Routes
    # -------------------------------------------------------------------------
    app.include_router(health.router, tags=["Health"])

    static_dir = BASE_DIR / "static"
    if static_dir.is_dir():
        app.mount("/static", StaticFiles(directory=static_dir), name="static")

    config.upload_path.mkdir(parents=True, exist_ok=True)
    app.mount("/uploads", StaticFiles(directory=config.upload_path), name="uploads")

    @app.api_route(
        "/{path:path}",
        methods=["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE"],
        include_in_schema=False,
    )
    async def storefront(request: Request, path: str):
        context = await build_context(request)
        response = await run_in_threadpool(handle, request.app, context)
        write_session(response, context.session, config)
        return response

    return app


app = create_app()
