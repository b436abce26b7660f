import logging
import re
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Request, Response, status
from fastapi.concurrency import run_in_threadpool
from sqlalchemy.orm import Session
from starlette.exceptions import HTTPException as StarletteHTTPException

from .. import schemas
from ..config import settings
from ..database import get_db
from ..errors import BadRequest, UserNotFound
from ..gateway import UserGateway
from ..service import DEFAULT_LIMIT, DEFAULT_PAGE, UserService
from ..uploads import UploadGuard

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/users",
    tags=["users"],
    responses={
        400: {"model": schemas.ErrorResponse},
        404: {"model": schemas.ErrorResponse},
        500: {"model": schemas.ErrorResponse},
    },
)


def get_gateway(db: Session = Depends(get_db)) -> UserGateway:
    return UserGateway(db)


def get_service(gateway: UserGateway = Depends(get_gateway)) -> UserService:
    return UserService(gateway, media_type=settings.image_media_type)


def get_upload_guard() -> UploadGuard:
    return UploadGuard(max_bytes=settings.max_image_bytes)


LEADING_INT = re.compile(r"\s*[+-]?\d+")


def _page_param(raw: Optional[str], default: int) -> int:
    """Read the leading integer of ``raw``, so ``"2abc"`` means 2."""
    match = LEADING_INT.match(raw or "")
    if match is None:
        return default
    value = int(match.group())
    return value if value >= 1 else default


@router.get(
    "",
    response_model=schemas.UserPage,
    response_model_exclude_none=True,
    include_in_schema=False,
)
@router.get("/", response_model=schemas.UserPage, response_model_exclude_none=True)
def list_users(
    page: Optional[str] = None,
    limit: Optional[str] = None,
    service: UserService = Depends(get_service),
):
    return service.list_users(
        page=_page_param(page, DEFAULT_PAGE),
        limit=_page_param(limit, DEFAULT_LIMIT),
    )


@router.post(
    "",
    response_model=schemas.UserOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
    include_in_schema=False,
)
@router.post(
    "/",
    response_model=schemas.UserOut,
    response_model_exclude_none=True,
    status_code=status.HTTP_201_CREATED,
)
async def create_user(
    request: Request,
    service: UserService = Depends(get_service),
    guard: UploadGuard = Depends(get_upload_guard),
):
    """Create a user from a multipart form with ``name`` and optional ``image``."""
    try:
        form = await guard.parse(request)
        return await run_in_threadpool(service.create_user, form.fields.get("name"), form.image)
    except (BadRequest, StarletteHTTPException):
        raise
    except Exception as exc:
        logger.warning("User creation failed: %s", exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.get("/{user_id}", response_model=schemas.UserOut, response_model_exclude_none=True)
def get_user(user_id: int, service: UserService = Depends(get_service)):
    return service.get_user(user_id)


@router.put("/{user_id}", response_model=schemas.UserRecord)
async def update_user(
    user_id: int,
    request: Request,
    service: UserService = Depends(get_service),
    guard: UploadGuard = Depends(get_upload_guard),
):
    """Partially update a user. The stored record is returned unshaped."""
    try:
        form = await guard.parse(request)
        return await run_in_threadpool(service.update_user, user_id, form.fields, form.image)
    except (BadRequest, StarletteHTTPException, UserNotFound):
        raise
    except Exception as exc:
        logger.warning("User update failed for id=%s: %s", user_id, exc)
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(exc))


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_user(user_id: int, service: UserService = Depends(get_service)):
    service.delete_user(user_id)
    # 204 → empty response body
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get(
    "/{user_id}/image",
    response_class=Response,
    responses={200: {"content": {"image/jpeg": {}}}},
)
def get_user_image(user_id: int, service: UserService = Depends(get_service)):
    payload = service.get_image(user_id)
    return Response(content=payload.content, media_type=payload.media_type)


@router.put("/{user_id}/image", response_model=schemas.ImageUpdated)
async def replace_user_image(
    user_id: int,
    request: Request,
    service: UserService = Depends(get_service),
    guard: UploadGuard = Depends(get_upload_guard),
):
    form = await guard.parse(request)
    return await run_in_threadpool(service.replace_image, user_id, form.image)
