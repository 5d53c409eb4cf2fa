from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from app.api.routes import (
    availability,
    calendar,
    conflicts,
    health,
    period_swaps,
    reports,
    rooms,
    substitutes,
    timetable,
)
from app.core.config import get_settings
from app.core.exceptions import AppError
from app.core.logging_config import RequestIdMiddleware, setup_logging
from app.core.middleware import RequestSizeLimitMiddleware, SecurityHeadersMiddleware
from app.db.bootstrap import ensure_runtime_schema_compatibility

settings = get_settings()


@asynccontextmanager
async def lifespan(_: FastAPI):
    setup_logging(level=settings.log_level, to_file=settings.log_to_file, file_path=settings.log_file_path)
    ensure_runtime_schema_compatibility()
    yield


async def app_error_handler(request: Request, exc: AppError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"message": exc.message, "details": exc.details},
    )


app = FastAPI(title=settings.project_name, lifespan=lifespan)
app.add_exception_handler(AppError, app_error_handler)

app.add_middleware(RequestSizeLimitMiddleware, max_bytes=settings.max_request_size_bytes)
app.add_middleware(SecurityHeadersMiddleware, settings=settings)
app.add_middleware(RequestIdMiddleware)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

school_prefix = f"{settings.api_prefix}/schools/{{school_id}}"

app.include_router(health.router, prefix=settings.api_prefix, tags=["health"])
app.include_router(calendar.router, prefix=school_prefix, tags=["calendar"])
app.include_router(timetable.router, prefix=school_prefix, tags=["timetable"])
app.include_router(conflicts.router, prefix=school_prefix, tags=["conflicts"])
app.include_router(availability.router, prefix=school_prefix, tags=["availability"])
app.include_router(rooms.router, prefix=school_prefix, tags=["rooms"])
app.include_router(substitutes.router, prefix=school_prefix, tags=["substitutes"])
app.include_router(period_swaps.router, prefix=school_prefix, tags=["period-swaps"])
app.include_router(reports.router, prefix=school_prefix, tags=["reports"])
