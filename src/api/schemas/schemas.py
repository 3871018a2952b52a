from datetime import time
from decimal import Decimal

from pydantic import BaseModel, Field

from src.domain.money import MAX_AMOUNT_DIGITS

MAX_TRAIN_SEATS = 10_000


class TrainCreate(BaseModel):
    name: str = Field(min_length=1, max_length=128)
    origin: str = Field(min_length=1, max_length=64)
    destination: str = Field(min_length=1, max_length=64)
    departure_time: time
    arrival_time: time
    total_seats: int = Field(ge=0, le=MAX_TRAIN_SEATS)
    fare: Decimal = Field(ge=0, max_digits=MAX_AMOUNT_DIGITS, decimal_places=2)


class TrainFareUpdate(BaseModel):
    fare: Decimal = Field(ge=0, max_digits=MAX_AMOUNT_DIGITS, decimal_places=2)


class TrainResponse(BaseModel):
    id: str
    name: str
    origin: str
    destination: str
    departure_time: str
    arrival_time: str
    total_seats: int
    available_seats: int
    fare: Decimal


class ReservationRequest(BaseModel):
    train_id: str = Field(min_length=1)
    seat_count: int = Field(gt=0)


class ReservationResponse(BaseModel):
    reservation_id: str
    user_id: str
    train_id: str
    train_name: str
    origin: str
    destination: str
    departure_time: str
    arrival_time: str
    seat_count: int
    fare: Decimal
    currency: str
    status: str
    created_at: str

