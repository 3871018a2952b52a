# src/infrastructure/db/models.py

from sqlalchemy import (
    String,
    Integer,
    BigInteger,
    DateTime,
    Time,
    Enum,
    CheckConstraint,
    ForeignKey,
    Index,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column
from datetime import datetime, time, timezone
from uuid import uuid4

from src.infrastructure.db.session import Base
from src.domain.money import CURRENCY
from src.domain.state_machine import ReservationStatus


def _utc_now() -> datetime:
    return datetime.now(timezone.utc)


class Train(Base):
    """
    Scheduled service and its seat inventory.
    available_seats is only ever written by the reservation service.
    """

    __tablename__ = "trains"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    origin: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    destination: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    departure_time: Mapped[time] = mapped_column(Time, nullable=False)
    arrival_time: Mapped[time] = mapped_column(Time, nullable=False)
    total_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    available_seats: Mapped[int] = mapped_column(Integer, nullable=False)
    fare_paise: Mapped[int] = mapped_column(BigInteger, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        onupdate=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("total_seats >= 0", name="ck_train_total_seats_nonnegative"),
        CheckConstraint("available_seats >= 0", name="ck_train_available_seats_nonnegative"),
        CheckConstraint("available_seats <= total_seats", name="ck_train_available_lte_total"),
        CheckConstraint("fare_paise >= 0", name="ck_train_fare_nonnegative"),
    )


class Reservation(Base):
    """
    Reservation table reflecting domain state.
    amount_paise is fixed at booking time and never recomputed.
    """

    __tablename__ = "reservations"

    id: Mapped[str] = mapped_column(
        String(36),
        primary_key=True,
        default=lambda: str(uuid4()),
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    train_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("trains.id"),
        nullable=False,
    )
    seat_count: Mapped[int] = mapped_column(Integer, nullable=False)
    amount_paise: Mapped[int] = mapped_column(BigInteger, nullable=False)
    currency: Mapped[str] = mapped_column(String(8), nullable=False, default=CURRENCY)
    status: Mapped[ReservationStatus] = mapped_column(
        Enum(ReservationStatus, name="reservation_status"),
        nullable=False,
        default=ReservationStatus.CONFIRMED,
    )
    # Python-side default keeps sub-second ordering on every backend.
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=_utc_now,
        onupdate=_utc_now,
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            "seat_count > 0",
            name="ck_reservation_seat_count_positive",
        ),
        CheckConstraint(
            "amount_paise >= 0",
            name="ck_reservation_amount_nonnegative",
        ),
        Index("ix_reservations_user_created", "user_id", "created_at"),
        Index("ix_reservations_train_status", "train_id", "status"),
    )
