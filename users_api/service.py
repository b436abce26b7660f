import base64
import logging
import math
from dataclasses import dataclass
from typing import Mapping, Optional

from . import models, schemas
from .errors import BadRequest, ImageNotFound, UserNotFound
from .gateway import UserGateway

logger = logging.getLogger(__name__)

DEFAULT_PAGE = 1
DEFAULT_LIMIT = 10


@dataclass
class ImagePayload:
    content: bytes
    media_type: str


def encode_image(data: bytes) -> str:
    return base64.b64encode(data).decode("ascii")


def shape_user(user: models.User) -> schemas.UserOut:
    """Translate a stored user into its external form."""
    return schemas.UserOut(id=user.id, name=user.name, image_base64=user.image or None)


class UserService:
    """User lifecycle operations on top of an injected ``UserGateway``."""

    editable_fields = ("name",)

    def __init__(self, gateway: UserGateway, media_type: str = "image/jpeg"):
        self.gateway = gateway
        self.media_type = media_type

    def list_users(self, page: int = DEFAULT_PAGE, limit: int = DEFAULT_LIMIT) -> schemas.UserPage:
        skip = (page - 1) * limit
        users, total = self.gateway.list(skip=skip, take=limit)
        return schemas.UserPage(
            users=[shape_user(u) for u in users],
            total=total,
            page=page,
            limit=limit,
            total_pages=math.ceil(total / limit),
        )

    def create_user(self, name: Optional[str], image: Optional[bytes] = None) -> schemas.UserOut:
        name = (name or "").strip()
        if not name:
            raise BadRequest("Name is a required field")

        user = self.gateway.create(
            {
                "name": name,
                "image": encode_image(image) if image is not None else None,
            }
        )
        logger.info("Created user id=%s", user.id)
        return shape_user(user)

    def get_user(self, user_id: int) -> schemas.UserOut:
        user = self.gateway.get_by_id(user_id)
        if user is None:
            raise UserNotFound()
        return shape_user(user)

    def update_user(
        self,
        user_id: int,
        fields: Mapping[str, str],
        image: Optional[bytes] = None,
    ) -> schemas.UserRecord:
        """Apply a partial update and return the stored record as is.

        ``name`` is taken verbatim here; only creation trims and checks it.
        """
        data = {}
        for key, value in fields.items():
            if key not in self.editable_fields:
                raise BadRequest(f"Unknown field '{key}'")
            data[key] = value
        if image is not None:
            data["image"] = encode_image(image)

        user = self.gateway.update(user_id, data)
        return schemas.UserRecord.model_validate(user)

    def delete_user(self, user_id: int) -> None:
        self.gateway.delete(user_id)
        logger.info("Deleted user id=%s", user_id)

    def get_image(self, user_id: int) -> ImagePayload:
        user = self.gateway.get_by_id(user_id)
        if user is None or not user.image:
            raise ImageNotFound()
        return ImagePayload(content=base64.b64decode(user.image), media_type=self.media_type)

    def replace_image(self, user_id: int, image: Optional[bytes]) -> schemas.ImageUpdated:
        if image is None:
            raise BadRequest("No image provided")

        user = self.gateway.update(user_id, {"image": encode_image(image)})
        return schemas.ImageUpdated(
            message="Image updated successfully",
            user=schemas.UserSummary(id=user.id, name=user.name),
        )
