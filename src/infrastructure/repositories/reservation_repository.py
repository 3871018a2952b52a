# src/infrastructure/repositories/reservation_repository.py

from sqlalchemy.orm import Session
from sqlalchemy import select

from src.infrastructure.db.models import Reservation, Train
from src.domain.money import CURRENCY
from src.domain.state_machine import ReservationStatus


class ReservationRepository:

    def __init__(self, db: Session):
        self.db = db

    def get_by_id(
        self,
        reservation_id: str,
    ) -> Reservation | None:

        stmt = select(Reservation).where(Reservation.id == reservation_id)
        return self.db.execute(stmt).scalar_one_or_none()

    def get_for_update(
        self,
        reservation_id: str,
    ) -> Reservation | None:

        stmt = (
            select(Reservation)
            .where(Reservation.id == reservation_id)
            .with_for_update()
            .execution_options(populate_existing=True)
        )
        return self.db.execute(stmt).scalar_one_or_none()

    def create_reservation(
        self,
        user_id: str,
        train_id: str,
        seat_count: int,
        amount_paise: int,
    ) -> Reservation:

        reservation = Reservation(
            user_id=user_id,
            train_id=train_id,
            seat_count=seat_count,
            amount_paise=amount_paise,
            currency=CURRENCY,
            status=ReservationStatus.CONFIRMED,
        )

        self.db.add(reservation)
        self.db.flush()
        return reservation

    def update_status(
        self,
        reservation: Reservation,
        new_status: ReservationStatus,
    ) -> None:

        reservation.status = new_status

    def list_with_trains(
        self,
        user_id: str | None = None,
    ) -> list[tuple[Reservation, Train]]:
        # Newest first; id breaks timestamp ties deterministically.
        stmt = (
            select(Reservation, Train)
            .join(Train, Reservation.train_id == Train.id)
            .order_by(Reservation.created_at.desc(), Reservation.id.desc())
        )
        if user_id is not None:
            stmt = stmt.where(Reservation.user_id == user_id)

        return [(row[0], row[1]) for row in self.db.execute(stmt).all()]

    def confirmed_seat_total(self, train_id: str) -> int:
        stmt = (
            select(Reservation.seat_count)
            .where(Reservation.train_id == train_id)
            .where(Reservation.status == ReservationStatus.CONFIRMED)
        )
        return sum(self.db.execute(stmt).scalars().all())
