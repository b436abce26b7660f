from __future__ import annotations

import argparse
import logging
from typing import List

from faker import Faker
from sqlalchemy.orm import Session

from .database import engine, session_scope
from .gateway import UserGateway
from .models import Base

logger = logging.getLogger(__name__)

fake = Faker()
Faker.seed(1234)

BASELINE_NAMES = [
    "Alice Johnson",
    "Bob Smith",
    "Charlie Brown",
    "Diana Prince",
    "Eve Adams",
    "Frank Miller",
    "Grace Hopper",
    "Hank Pym",
    "Ivy League",
    "Jack Black",
    "Kathy Sierra",
    "Liam Neeson",
]


def baseline_records(extra: int = 0) -> List[dict]:
    """Baseline users (names only) plus ``extra`` generated ones."""
    names = list(BASELINE_NAMES)
    names.extend(fake.name() for _ in range(extra))
    return [{"name": name} for name in names]


def seed(session: Session, extra: int = 0) -> int:
    """Insert the baseline users in one batch.

    Existing rows are not checked, so running it twice duplicates names.
    """
    inserted = UserGateway(session).create_many(baseline_records(extra))
    logger.info("Seeded %d users", inserted)
    return inserted


def main() -> None:
    parser = argparse.ArgumentParser(description="Seed the users table.")
    parser.add_argument(
        "--extra",
        type=int,
        default=0,
        help="Number of generated users to add after the baseline (default: 0).",
    )
    args = parser.parse_args()

    Base.metadata.create_all(bind=engine)
    with session_scope() as session:
        inserted = seed(session, extra=args.extra)
    print(f"Seeding complete: {inserted} users inserted.")


if __name__ == "__main__":
    main()
