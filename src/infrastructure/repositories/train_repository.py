# src/infrastructure/repositories/train_repository.py

import logging
from datetime import time

from sqlalchemy.orm import Session
from sqlalchemy import select

from src.infrastructure.db.models import Train
from src.domain.exceptions import InvariantViolationError, TrainNotFoundError


logger = logging.getLogger(__name__)


def _like_pattern(term: str) -> str:
    escaped = term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


class TrainRepository:
    """Inventory store: seat counts and fares per train."""

    def __init__(self, db: Session):
        self.db = db

    def get_for_update(self, train_id: str) -> Train:
        """
        SELECT ... FOR UPDATE
        Call inside train_scope so the lock lasts until commit.
        """

        stmt = (
            select(Train)
            .where(Train.id == train_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )

        train = self.db.execute(stmt).scalar_one_or_none()

        if not train:
            raise TrainNotFoundError(train_id)

        return train

    def get_by_id(self, train_id: str) -> Train | None:
        stmt = select(Train).where(Train.id == train_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_by_name(self, name: str) -> Train | None:
        stmt = select(Train).where(Train.name == name)
        return self.db.execute(stmt).scalar_one_or_none()

    def list_trains(
        self,
        origin_contains: str | None = None,
        destination_contains: str | None = None,
    ) -> list[Train]:
        """
        Unfiltered listing returns every train. Any filter turns the
        call into a search, which also hides sold-out trains.
        """
        stmt = select(Train).order_by(Train.departure_time, Train.name)

        is_search = origin_contains is not None or destination_contains is not None
        if is_search:
            stmt = stmt.where(Train.available_seats > 0)
        if origin_contains:
            stmt = stmt.where(Train.origin.ilike(_like_pattern(origin_contains), escape="\\"))
        if destination_contains:
            stmt = stmt.where(Train.destination.ilike(_like_pattern(destination_contains), escape="\\"))

        return list(self.db.execute(stmt).scalars().all())

    def create_train(
        self,
        name: str,
        origin: str,
        destination: str,
        departure_time: time,
        arrival_time: time,
        total_seats: int,
        fare_paise: int,
    ) -> Train:
        if total_seats < 0:
            raise ValueError("total_seats must be non-negative")
        if fare_paise < 0:
            raise ValueError("fare must be non-negative")

        train = Train(
            name=name,
            origin=origin,
            destination=destination,
            departure_time=departure_time,
            arrival_time=arrival_time,
            total_seats=total_seats,
            available_seats=total_seats,
            fare_paise=fare_paise,
        )
        self.db.add(train)
        self.db.flush()
        return train

    def update_fare(self, train: Train, fare_paise: int) -> Train:
        if fare_paise < 0:
            raise ValueError("fare must be non-negative")
        train.fare_paise = fare_paise
        return train

    def decrement_seats(self, train: Train, seat_count: int) -> None:
        if train.available_seats < seat_count:
            logger.error(
                "Decrement of %s seats on train %s would go negative (available=%s)",
                seat_count,
                train.id,
                train.available_seats,
            )
            raise InvariantViolationError(
                f"Train {train.id} has {train.available_seats} seats, cannot remove {seat_count}"
            )

        train.available_seats -= seat_count

    def increment_seats(self, train: Train, seat_count: int) -> None:
        if train.available_seats + seat_count > train.total_seats:
            logger.error(
                "Increment of %s seats on train %s would exceed capacity (available=%s, total=%s)",
                seat_count,
                train.id,
                train.available_seats,
                train.total_seats,
            )
            raise InvariantViolationError(
                f"Train {train.id} cannot hold more than {train.total_seats} seats"
            )

        train.available_seats += seat_count
