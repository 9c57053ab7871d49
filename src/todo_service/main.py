import logging
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import HTMLResponse, JSONResponse

from .errors import TodoServiceError
from .middleware import log_requests
from .repositories import TodoStore, get_store
from .routers import todos as todos_router
from .settings import Settings, get_settings

logger = logging.getLogger(__name__)

HOME_PAGE = Path(__file__).parent / "static" / "home.html"

openapi_tags = [
    {"name": "home", "description": "Static home page."},
    {"name": "todos", "description": "CRUD operations for Todo items."},
]


@asynccontextmanager
async def lifespan(app: FastAPI):
    logger.info("Todo service started")
    yield
    logger.info("Closing todo store")
    app.state.store.close()


async def service_error_handler(request: Request, exc: TodoServiceError) -> JSONResponse:
    """
    Convert service errors into the JSON error envelope.

    Response format:
        {"message": "...", "error": "..."}
    """
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "error": exc.error or type(exc).__name__},
    )


async def validation_exception_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """
    Undecodable or mistyped request bodies are client errors (400).

    Response format:
        {
            "message": "Invalid request payload",
            "error": "ValidationError",
            "detail": [... pydantic/fastapi error details ...]
        }
    """
    return JSONResponse(
        status_code=400,
        content={
            "message": "Invalid request payload",
            "error": "ValidationError",
            "detail": jsonable_encoder(exc.errors()),
        },
    )


async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(f"Unhandled exception in {request.method} {request.url.path}: {str(exc)}", exc_info=True)
    return JSONResponse(status_code=500, content={"message": "Internal server error"})


# PUBLIC_INTERFACE
def create_app(settings: Optional[Settings] = None, store: Optional[TodoStore] = None) -> FastAPI:
    """
    Build the FastAPI application.

    Args:
        settings: Application settings; loaded from the environment when omitted.
        store: Todo store handed to the request handlers; built from settings
            when omitted. The application closes it on shutdown.

    Raises:
        ConfigError: if settings or the store cannot be created.
    """
    settings = settings or get_settings()
    if store is None:
        store = get_store(settings)

    app = FastAPI(
        title="Todo Service",
        description="CRUD service for todo items stored in a MongoDB collection.",
        version="0.1.0",
        openapi_tags=openapi_tags,
        lifespan=lifespan,
    )
    app.state.settings = settings
    app.state.store = store

    allow_all = (settings.cors_allow_origins == ["*"]) or (len(settings.cors_allow_origins) == 0)
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"] if allow_all else settings.cors_allow_origins,
        allow_credentials=not allow_all,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.middleware("http")(log_requests)

    app.add_exception_handler(TodoServiceError, service_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, global_exception_handler)

    @app.get("/", response_class=HTMLResponse, summary="Home page", tags=["home"])
    def home() -> HTMLResponse:
        """
        Serve the static home page.
        """
        return HTMLResponse(HOME_PAGE.read_text(encoding="utf-8"))

    app.include_router(todos_router.router)
    return app
