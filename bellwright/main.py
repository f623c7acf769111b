from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from slowapi.middleware import SlowAPIMiddleware

from bellwright.api.v1 import api_router
from bellwright.core.errors import register_exception_handlers
from bellwright.core.health import APP_VERSION
from bellwright.core.limiter import limiter
from bellwright.core.logging import configure_logging
from bellwright.core.response_envelope import register_response_envelope
from bellwright.core.settings import settings
from bellwright.events import register_event_handlers
from bellwright.middlewares.request_context import REQUEST_ID_HEADER, RequestContextMiddleware

API_PREFIX = "/api/v1"


def create_app() -> FastAPI:
    configure_logging()
    public_docs = settings.environment != "production"
    app = FastAPI(
        title="Bellwright Finance Backend",
        version=APP_VERSION,
        docs_url=f"{API_PREFIX}/docs" if public_docs else None,
        redoc_url=None,
        openapi_url=f"{API_PREFIX}/openapi.json" if public_docs else None,
    )
    register_exception_handlers(app)
    register_response_envelope(app)

    app.state.limiter = limiter
    app.add_middleware(SlowAPIMiddleware)
    app.add_middleware(RequestContextMiddleware)
    # The web client reads the resend cooldown and request id off responses
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.allowed_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
        expose_headers=["Retry-After", REQUEST_ID_HEADER],
    )

    app.include_router(api_router, prefix=API_PREFIX)
    register_event_handlers(app)
    return app


app = create_app()
