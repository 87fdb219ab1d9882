from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rgaa_scanner.api_routers.v1 import api_router
from rgaa_scanner.features.health.routes.health import router as health_router
from rgaa_scanner.platform.config import settings
from rgaa_scanner.platform.db.session import init_models
from rgaa_scanner.platform.exceptions import add_exception_handlers
from rgaa_scanner.platform.logger import configure_logging

configure_logging()


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_models()
    yield


def create_app() -> FastAPI:
    app = FastAPI(
        title=f"{settings.APP_NAME} API",
        description="RGAA accessibility audits of websites",
        version="1.0.0",
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    @app.get("/", tags=["Info"])
    def root():
        return {
            "app_name": settings.APP_NAME,
            "description": "Crawls a site and checks its pages against RGAA accessibility rules.",
            "version": "1.0.0",
            "docs_url": "/docs",
            "api_base": "/api/v1",
        }

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    add_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(api_router, prefix="/api/v1")
    return app


app = create_app()
