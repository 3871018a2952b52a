import logging
import os

from fastapi import APIRouter, Depends, Header, HTTPException, status
from sqlalchemy.orm import Session

from src.infrastructure.db.session import SessionLocal
from src.infrastructure.db.locking import train_scope
from src.infrastructure.db.models import Train
from src.infrastructure.repositories.train_repository import TrainRepository
from src.application.reservation_service import ReservationService, ReservationView
from src.api.schemas.schemas import (
    TrainCreate,
    TrainFareUpdate,
    TrainResponse,
    ReservationRequest,
    ReservationResponse,
)
from src.domain.exceptions import (
    AlreadyCancelledError,
    InsufficientCapacityError,
    InvalidInputError,
    InvariantViolationError,
    LockTimeoutError,
    NotFoundError,
    RailwayBookingError,
    TrainNotFoundError,
)
from src.domain.money import from_paise, to_paise


router = APIRouter()
logger = logging.getLogger(__name__)


def get_db():
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def get_current_user_id(x_user_id: str | None = Header(default=None)) -> str:
    # Identity is verified upstream; the header carries the verified id.
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="X-User-Id header required",
        )
    return x_user_id.strip()


def require_admin(x_admin_key: str | None = Header(default=None)) -> None:
    expected = os.getenv("ADMIN_API_KEY")
    if expected and x_admin_key != expected:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin key required",
        )


def _train_response(train: Train) -> TrainResponse:
    return TrainResponse(
        id=train.id,
        name=train.name,
        origin=train.origin,
        destination=train.destination,
        departure_time=train.departure_time.isoformat(),
        arrival_time=train.arrival_time.isoformat(),
        total_seats=train.total_seats,
        available_seats=train.available_seats,
        fare=from_paise(train.fare_paise),
    )


def _reservation_response(view: ReservationView) -> ReservationResponse:
    return ReservationResponse(
        reservation_id=view.reservation_id,
        user_id=view.user_id,
        train_id=view.train_id,
        train_name=view.train_name,
        origin=view.origin,
        destination=view.destination,
        departure_time=view.departure_time.isoformat(),
        arrival_time=view.arrival_time.isoformat(),
        seat_count=view.seat_count,
        fare=view.amount,
        currency=view.currency,
        status=view.status.value,
        created_at=view.created_at.isoformat(),
    )


def _http_error(exc: RailwayBookingError) -> HTTPException:
    if isinstance(exc, InsufficientCapacityError):
        return HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={
                "message": str(exc),
                "available": exc.available,
                "requested": exc.requested,
            },
        )
    if isinstance(exc, NotFoundError):
        return HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=str(exc),
        )
    if isinstance(exc, (InvalidInputError, AlreadyCancelledError)):
        return HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        )
    if isinstance(exc, LockTimeoutError):
        return HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(exc),
            headers={"Retry-After": "1"},
        )
    if isinstance(exc, InvariantViolationError):
        logger.exception("Seat invariant violated: %s", exc)
    else:
        logger.error("Unhandled booking error: %s", exc)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail="Reservation could not be completed",
    )


@router.get("/health")
def health():
    return {"message": "Railway Booking Engine is running"}


@router.get("/trains", response_model=list[TrainResponse])
def list_trains(db: Session = Depends(get_db)):
    trains = TrainRepository(db).list_trains()
    return [_train_response(train) for train in trains]


@router.get("/trains/search", response_model=list[TrainResponse])
def search_trains(
    source: str | None = None,
    destination: str | None = None,
    db: Session = Depends(get_db),
):
    trains = TrainRepository(db).list_trains(
        origin_contains=source or "",
        destination_contains=destination or "",
    )
    logger.info("Train search %r -> %r matched %s", source, destination, len(trains))
    return [_train_response(train) for train in trains]


@router.get("/trains/{train_id}", response_model=TrainResponse)
def get_train(train_id: str, db: Session = Depends(get_db)):
    train = TrainRepository(db).get_by_id(train_id)
    if not train:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Train not found",
        )
    return _train_response(train)


@router.post(
    "/trains",
    response_model=TrainResponse,
    status_code=status.HTTP_201_CREATED,
    dependencies=[Depends(require_admin)],
)
def create_train(request: TrainCreate, db: Session = Depends(get_db)):
    try:
        train = TrainRepository(db).create_train(
            name=request.name,
            origin=request.origin,
            destination=request.destination,
            departure_time=request.departure_time,
            arrival_time=request.arrival_time,
            total_seats=request.total_seats,
            fare_paise=to_paise(request.fare),
        )
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc

    return _train_response(train)


@router.patch(
    "/trains/{train_id}/fare",
    response_model=TrainResponse,
    dependencies=[Depends(require_admin)],
)
def update_train_fare(
    train_id: str,
    request: TrainFareUpdate,
    db: Session = Depends(get_db),
):
    repo = TrainRepository(db)
    try:
        fare_paise = to_paise(request.fare)
        if repo.get_by_id(train_id) is None:
            raise TrainNotFoundError(train_id)
        with train_scope(db, train_id):
            train = repo.get_for_update(train_id)
            repo.update_fare(train, fare_paise)
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(exc),
        ) from exc
    except (TrainNotFoundError, LockTimeoutError) as exc:
        raise _http_error(exc) from exc

    return _train_response(train)


@router.post(
    "/reservations",
    response_model=ReservationResponse,
    status_code=status.HTTP_201_CREATED,
)
def create_reservation(
    request: ReservationRequest,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    service = ReservationService(db)

    try:
        view = service.book(
            user_id=user_id,
            train_id=request.train_id,
            seat_count=request.seat_count,
        )
    except RailwayBookingError as exc:
        raise _http_error(exc) from exc

    return _reservation_response(view)


@router.get("/reservations", response_model=list[ReservationResponse])
def list_my_reservations(
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    views = ReservationService(db).list_for_user(user_id)
    return [_reservation_response(view) for view in views]


@router.get("/reservations/{reservation_id}", response_model=ReservationResponse)
def get_reservation(
    reservation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    try:
        view = ReservationService(db).get(user_id, reservation_id)
    except RailwayBookingError as exc:
        raise _http_error(exc) from exc

    return _reservation_response(view)


@router.post("/reservations/{reservation_id}/cancel", response_model=ReservationResponse)
def cancel_reservation(
    reservation_id: str,
    user_id: str = Depends(get_current_user_id),
    db: Session = Depends(get_db),
):
    service = ReservationService(db)

    try:
        view = service.cancel(user_id=user_id, reservation_id=reservation_id)
    except RailwayBookingError as exc:
        raise _http_error(exc) from exc

    return _reservation_response(view)


@router.get(
    "/admin/reservations",
    response_model=list[ReservationResponse],
    dependencies=[Depends(require_admin)],
)
def list_all_reservations(db: Session = Depends(get_db)):
    views = ReservationService(db).list_all()
    return [_reservation_response(view) for view in views]
