import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from .config import settings
from .database import engine, session_scope
from .errors import UsersApiError
from .gateway import UserGateway
from .models import Base
from .routers import users
from .seeds import seed

logging.basicConfig(level=settings.log_level)
logger = logging.getLogger(__name__)

app = FastAPI(
    title=settings.app_name,
    description="CRUD for users with inline base64 image storage.",
    version="0.1.0",
)


@app.on_event("startup")
def on_startup() -> None:
    """Create the schema and optionally seed an empty users table."""
    Base.metadata.create_all(bind=engine)

    if not settings.seed_on_startup:
        return
    with session_scope() as db:
        if UserGateway(db).count() == 0:
            seed(db)
        else:
            logger.info("Users table is not empty; skipping seed.")


@app.exception_handler(UsersApiError)
async def users_api_error_handler(request: Request, exc: UsersApiError):
    return JSONResponse({"error": exc.message}, status_code=exc.status_code)


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: StarletteHTTPException):
    return JSONResponse({"error": str(exc.detail)}, status_code=exc.status_code)


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    errors = exc.errors()
    if errors:
        first = errors[0]
        message = f"{'.'.join(str(p) for p in first['loc'])}: {first['msg']}"
    else:
        message = "Invalid request"
    return JSONResponse({"error": message}, status_code=400)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    logger.exception("Unhandled application error", exc_info=exc)
    return JSONResponse({"error": "Internal server error"}, status_code=500)


app.include_router(users.router)


@app.get("/")
def read_root():
    return {"message": "Users API is up"}
