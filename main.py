import time
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import ValidationError as SchemaValidationError
from starlette.exceptions import HTTPException as StarletteHTTPException

import database
import settings
from exceptions import VisageError
from logger import log
from routes import ROUTERS


@asynccontextmanager
async def lifespan(_app: FastAPI):
    for problem in settings.validate_settings():
        log.warning(f"Configuration: {problem}")
    if database.db is not None:
        database.ensure_indexes(database.db)
        log.info(f"Connected to database {settings.DATABASE_NAME}")
    yield


app = FastAPI(title="Visage Backend", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

for router in ROUTERS:
    app.include_router(router)


def _message(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"message": message})


def _first_error(errors) -> str:
    if not errors:
        return "Invalid request"
    err = errors[0]
    field = ".".join(str(p) for p in err.get("loc", ()) if p not in ("body", "query", "path"))
    return f"{field}: {err.get('msg')}" if field else str(err.get("msg"))


@app.exception_handler(VisageError)
async def visage_error_handler(request: Request, exc: VisageError):
    if exc.status_code >= 500:
        log.error(f"{request.method} {request.url.path} failed: {exc.message}")
    return _message(exc.status_code, exc.message)


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return _message(400, _first_error(exc.errors()))


@app.exception_handler(SchemaValidationError)
async def schema_validation_handler(request: Request, exc: SchemaValidationError):
    return _message(400, _first_error(exc.errors()))


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return _message(exc.status_code, str(exc.detail))


@app.exception_handler(Exception)
async def unhandled_error_handler(request: Request, exc: Exception):
    log.exception(f"Unhandled error on {request.method} {request.url.path}")
    message = str(exc) if settings.EXPOSE_ERROR_DETAILS else "Internal server error"
    return _message(500, message)


@app.middleware("http")
async def log_requests(request: Request, call_next):
    started = time.perf_counter()
    response = await call_next(request)
    elapsed_ms = (time.perf_counter() - started) * 1000
    log.info(f"{request.method} {request.url.path} -> {response.status_code} ({elapsed_ms:.1f} ms)")
    return response


@app.get("/")
def read_root():
    return {"message": "Visage Backend Running"}


@app.get("/health")
def health():
    response = {
        "backend": "running",
        "database": "not configured",
        "collections": [],
    }
    if database.db is None:
        return response
    try:
        database.db.command("ping")
        response["database"] = "connected"
        response["collections"] = database.db.list_collection_names()[:10]
    except Exception as e:
        log.warning(f"Health check could not reach the database: {e}")
        response["database"] = "unreachable"
    return response


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=settings.PORT)
