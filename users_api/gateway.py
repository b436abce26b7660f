import logging
from contextlib import contextmanager
from typing import Iterable, List, Optional, Tuple

from sqlalchemy import func, insert, select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models
from .errors import StorageError, UserNotFound

logger = logging.getLogger(__name__)


class UserGateway:
    """CRUD access to the ``users`` table.

    Every write commits its own transaction. Any SQLAlchemy error, on reads
    as well as writes, is rolled back and re-raised as ``StorageError`` so
    the layers above never depend on driver exceptions.
    """

    def __init__(self, db: Session):
        self.db = db

    def list(self, skip: int, take: int) -> Tuple[List[models.User], int]:
        stmt = select(models.User).order_by(models.User.id).offset(skip).limit(take)
        with self._storage_errors("Database query failed"):
            users = list(self.db.execute(stmt).scalars().all())
        return users, self.count()

    def count(self) -> int:
        with self._storage_errors("Database query failed"):
            return self.db.scalar(select(func.count()).select_from(models.User)) or 0

    def get_by_id(self, user_id: int) -> Optional[models.User]:
        with self._storage_errors("Database query failed"):
            return self.db.get(models.User, user_id)

    def create(self, fields: dict) -> models.User:
        user = models.User(**fields)
        self.db.add(user)
        self._commit(user)
        logger.debug("Created user id=%s", user.id)
        return user

    def update(self, user_id: int, fields: dict) -> models.User:
        user = self.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        for key, value in fields.items():
            setattr(user, key, value)
        self._commit(user)
        logger.debug("Updated user id=%s fields=%s", user_id, sorted(fields))
        return user

    def delete(self, user_id: int) -> None:
        user = self.get_by_id(user_id)
        if user is None:
            raise UserNotFound()

        self.db.delete(user)
        self._commit()
        logger.debug("Deleted user id=%s", user_id)

    def create_many(self, records: Iterable[dict]) -> int:
        rows = list(records)
        if not rows:
            return 0
        with self._storage_errors():
            self.db.execute(insert(models.User), rows)
            self.db.commit()
        logger.debug("Bulk inserted %d users", len(rows))
        return len(rows)

    def _commit(self, refresh: Optional[models.User] = None) -> None:
        with self._storage_errors():
            self.db.commit()
            if refresh is not None:
                self.db.refresh(refresh)

    @contextmanager
    def _storage_errors(self, message: str = "Database commit failed"):
        try:
            yield
        except SQLAlchemyError as exc:
            self.db.rollback()
            raise StorageError(message) from exc
