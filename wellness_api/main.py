import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from .config import get_settings
from .db.session import database
from .errors import WellnessError
from .logging_config import setup_logging
from .routers.goals import router as goals_router
from .routers.habits import router as habits_router
from .routers.progress import router as progress_router
from .routers.users import router as users_router

setup_logging()
logger = logging.getLogger(__name__)
settings = get_settings()


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    await database.create_all()
    logger.info("Database ready at %s", database.engine.url.render_as_string(hide_password=True))
    yield
    await database.dispose()


app = FastAPI(title=settings.APP_NAME, version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["GET", "POST", "PUT", "DELETE", "OPTIONS"],
    allow_headers=["Content-Type", "Authorization", "X-Requested-With", settings.USER_HEADER],
)


@app.exception_handler(WellnessError)
async def wellness_error_handler(request: Request, error: WellnessError) -> JSONResponse:
    if error.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, error.message)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, error.reason, error.message)
    return JSONResponse(status_code=error.status_code, content=error.to_body())


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, error: RequestValidationError) -> JSONResponse:
    errors = [{"loc": list(item.get("loc", ())), "msg": item.get("msg", "")} for item in error.errors()]
    logger.info("%s %s rejected (validation_error)", request.method, request.url.path)
    return JSONResponse(status_code=400, content={"message": "Validation failed", "reason": "validation_error", "errors": errors})


@app.exception_handler(Exception)
async def unexpected_error_handler(request: Request, error: Exception) -> JSONResponse:
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error", "reason": "server_error"})


@app.get("/api/health")
async def health() -> dict[str, str]:
    return {"status": "ok", "message": f"{settings.APP_NAME} is running"}


app.include_router(habits_router)
app.include_router(progress_router)
app.include_router(goals_router)
app.include_router(users_router)


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host=settings.HOST, port=settings.PORT)
