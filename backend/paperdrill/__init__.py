import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from paperdrill.config import settings
from paperdrill.db import init_all_databases
from paperdrill.errors import NotFoundError, PersistenceError, ValidationError

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    await init_all_databases(settings.data_dir)
    (settings.data_dir / settings.files_dirname).mkdir(parents=True, exist_ok=True)
    logger.info("PaperDrill data directory: %s", settings.data_dir)
    yield


async def _validation_error(request: Request, exc: ValidationError) -> JSONResponse:
    return JSONResponse(status_code=422, content={"detail": str(exc)})


async def _not_found_error(request: Request, exc: NotFoundError) -> JSONResponse:
    return JSONResponse(status_code=404, content={"detail": str(exc)})


async def _persistence_error(request: Request, exc: PersistenceError) -> JSONResponse:
    return JSONResponse(status_code=503, content={"detail": str(exc)})


def create_app() -> FastAPI:
    application = FastAPI(
        title="PaperDrill Backend", version="0.1.0", lifespan=lifespan
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(ValidationError, _validation_error)
    application.add_exception_handler(NotFoundError, _not_found_error)
    application.add_exception_handler(PersistenceError, _persistence_error)

    from paperdrill.routers import grades, health, papers, practice, stats, upload

    application.include_router(health.router)
    application.include_router(
        papers.router, prefix="/papers", tags=["papers"]
    )
    application.include_router(
        upload.router, prefix="/papers", tags=["papers"]
    )
    application.include_router(
        practice.router, prefix="/practice", tags=["practice"]
    )
    application.include_router(
        grades.router, prefix="/grades", tags=["grades"]
    )
    application.include_router(
        stats.router, prefix="/stats", tags=["stats"]
    )

    return application


app = create_app()
