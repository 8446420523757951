# novanector/main.py

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from fastapi.staticfiles import StaticFiles
from starlette.exceptions import HTTPException as StarletteHTTPException

from novanector import database
from novanector.core.config import settings
from novanector.core.error_messages import APIError, ErrorResponses
from novanector.core.logging_config import setup_logging
from novanector.routes.auth import auth_router
from novanector.utils.upload_utils import profile_picture_store

setup_logging()
logger = logging.getLogger(__name__)

app = FastAPI(title="Novanector Auth API", version="1.0.0")

app.add_middleware(
    CORSMiddleware,
    allow_origins=[settings.FRONTEND_URL],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Directory is created at startup, so skip the existence check at mount time
app.mount("/uploads", StaticFiles(directory=settings.UPLOAD_ROOT, check_dir=False), name="uploads")

app.include_router(auth_router, prefix="/api/auth")


@app.get("/")
async def root():
    return {
        "success": True,
        "message": "Novanector API Server is running!",
        "version": "1.0.0",
        "endpoints": {
            "auth": "/api/auth",
            "uploads": "/uploads",
        },
    }


@app.on_event("startup")
async def startup():
    profile_picture_store.ensure_directory()
    logger.info("Uploads stored in %s", profile_picture_store.directory.resolve())

    if settings.uses_default_jwt_secret and not settings.is_development:
        logger.warning("JWT_SECRET_KEY is the built-in default; set a real secret outside development.")

    try:
        await database.ping()
        logger.info("MongoDB connected successfully.")
        await database.ensure_indexes()
        logger.info("User indexes ensured.")
    except Exception as e:
        logger.error("MongoDB connection failed: %s", e)


@app.exception_handler(APIError)
async def api_error_handler(request: Request, exc: APIError):
    return JSONResponse(status_code=exc.status_code, content=exc.to_body())


@app.exception_handler(StarletteHTTPException)
async def http_error_handler(request: Request, exc: StarletteHTTPException):
    if exc.status_code == status.HTTP_404_NOT_FOUND:
        message = f"Route {request.url.path} not found"
    else:
        message = str(exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"success": False, "message": message},
        headers=getattr(exc, "headers", None),
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError):
    errors = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"] if part != "body")
        errors.append(f"{location}: {error['msg']}" if location else error["msg"])
    body = ErrorResponses.validation_error(errors).to_body()
    return JSONResponse(status_code=status.HTTP_400_BAD_REQUEST, content=body)


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    body = ErrorResponses.INTERNAL_SERVER_ERROR.to_body()
    if settings.is_development:
        body["detail"] = f"{type(exc).__name__}: {exc}"
    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=body)


@app.on_event("shutdown")
async def shutdown():
    database.client.close()
    logger.info("Database connection closed")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("novanector.main:app", host=settings.HOST, port=settings.PORT)
