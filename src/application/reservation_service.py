import logging
from dataclasses import dataclass
from datetime import datetime, time, timezone
from decimal import Decimal

from sqlalchemy.orm import Session

from src.domain.exceptions import (
    AlreadyCancelledError,
    InsufficientCapacityError,
    InvalidInputError,
    ReservationNotFoundError,
    TrainNotFoundError,
)
from src.domain.money import fare_for, from_paise
from src.domain.state_machine import ReservationStateMachine, ReservationStatus
from src.infrastructure.db.locking import TrainLockRegistry, train_scope
from src.infrastructure.db.models import Reservation, Train
from src.infrastructure.repositories.reservation_repository import ReservationRepository
from src.infrastructure.repositories.train_repository import TrainRepository


logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ReservationView:
    """Reservation joined with the train fields callers display."""

    reservation_id: str
    user_id: str
    train_id: str
    train_name: str
    origin: str
    destination: str
    departure_time: time
    arrival_time: time
    seat_count: int
    amount_paise: int
    currency: str
    status: ReservationStatus
    created_at: datetime

    @property
    def amount(self) -> Decimal:
        return from_paise(self.amount_paise)

    @classmethod
    def build(cls, reservation: Reservation, train: Train) -> "ReservationView":
        return cls(
            reservation_id=reservation.id,
            user_id=reservation.user_id,
            train_id=train.id,
            train_name=train.name,
            origin=train.origin,
            destination=train.destination,
            departure_time=train.departure_time,
            arrival_time=train.arrival_time,
            seat_count=reservation.seat_count,
            amount_paise=reservation.amount_paise,
            currency=reservation.currency,
            status=reservation.status,
            created_at=_as_utc(reservation.created_at),
        )


def _as_utc(value: datetime) -> datetime:
    # SQLite hands timestamps back without tzinfo; they were written as UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def _require_id(value: str, field: str) -> None:
    if not isinstance(value, str) or not value.strip():
        raise InvalidInputError(f"{field} is required")


class ReservationService:
    """
    Booking and cancellation workflow.

    Every seat mutation runs inside train_scope, which commits on
    success and rolls back on any error. The service is the only
    writer of reservation rows.
    """

    def __init__(
        self,
        db: Session,
        locks: TrainLockRegistry | None = None,
        lock_timeout_seconds: float | None = None,
    ):
        self.db = db
        self.locks = locks
        self.lock_timeout_seconds = lock_timeout_seconds
        self.reservation_repository = ReservationRepository(db)
        self.train_repository = TrainRepository(db)

    def book(
        self,
        user_id: str,
        train_id: str,
        seat_count: int,
    ) -> ReservationView:
        _require_id(user_id, "user_id")
        _require_id(train_id, "train_id")
        if isinstance(seat_count, bool) or not isinstance(seat_count, int) or seat_count <= 0:
            raise InvalidInputError("seat_count must be a positive integer")

        # Unknown ids never reach the lock registry.
        if self.train_repository.get_by_id(train_id) is None:
            raise TrainNotFoundError(train_id)

        with self._scope(train_id):
            train = self.train_repository.get_for_update(train_id)

            if train.available_seats < seat_count:
                logger.warning(
                    "Rejected booking on train %s: requested=%s available=%s",
                    train_id,
                    seat_count,
                    train.available_seats,
                )
                raise InsufficientCapacityError(
                    available=train.available_seats,
                    requested=seat_count,
                )

            reservation = self.reservation_repository.create_reservation(
                user_id=user_id,
                train_id=train_id,
                seat_count=seat_count,
                amount_paise=fare_for(train.fare_paise, seat_count),
            )
            self.train_repository.decrement_seats(train, seat_count)
            view = ReservationView.build(reservation, train)

        logger.info(
            "Reservation %s confirmed: user=%s train=%s seats=%s amount=%s",
            view.reservation_id,
            user_id,
            train_id,
            seat_count,
            view.amount,
        )
        return view

    def cancel(
        self,
        user_id: str,
        reservation_id: str,
    ) -> ReservationView:
        reservation = self._get_owned(user_id, reservation_id)
        train_id = reservation.train_id

        with self._scope(train_id):
            train = self.train_repository.get_for_update(train_id)
            reservation = self.reservation_repository.get_for_update(reservation_id)

            if reservation.status == ReservationStatus.CANCELLED:
                raise AlreadyCancelledError(reservation_id)

            self._transition(reservation, ReservationStatus.CANCELLED)
            self.train_repository.increment_seats(train, reservation.seat_count)
            view = ReservationView.build(reservation, train)

        logger.info(
            "Reservation %s cancelled: user=%s train=%s seats restored=%s",
            reservation_id,
            user_id,
            train_id,
            view.seat_count,
        )
        return view

    def get(self, user_id: str, reservation_id: str) -> ReservationView:
        reservation = self._get_owned(user_id, reservation_id)
        train = self.train_repository.get_by_id(reservation.train_id)
        return ReservationView.build(reservation, train)

    def list_for_user(self, user_id: str) -> list[ReservationView]:
        _require_id(user_id, "user_id")
        rows = self.reservation_repository.list_with_trains(user_id=user_id)
        return [ReservationView.build(reservation, train) for reservation, train in rows]

    def list_all(self) -> list[ReservationView]:
        rows = self.reservation_repository.list_with_trains()
        return [ReservationView.build(reservation, train) for reservation, train in rows]

    def _get_owned(self, user_id: str, reservation_id: str) -> Reservation:
        _require_id(user_id, "user_id")
        _require_id(reservation_id, "reservation_id")

        reservation = self.reservation_repository.get_by_id(reservation_id)
        if not reservation or reservation.user_id != user_id:
            raise ReservationNotFoundError(reservation_id)
        return reservation

    def _scope(self, train_id: str):
        return train_scope(
            self.db,
            train_id,
            registry=self.locks,
            timeout_seconds=self.lock_timeout_seconds,
        )

    def _transition(self, reservation: Reservation, to_status: ReservationStatus) -> None:
        ReservationStateMachine.validate_transition(reservation.status, to_status)
        self.reservation_repository.update_status(reservation, to_status)
