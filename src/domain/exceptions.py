

class RailwayBookingError(Exception):
    """
    Base exception for all domain-level errors
    inside the Railway Booking Engine.
    """


class InvalidInputError(RailwayBookingError):
    """Raised when a request carries a malformed seat count or identifier."""


class NotFoundError(RailwayBookingError):
    """Raised when a train or reservation cannot be resolved."""


class TrainNotFoundError(NotFoundError):

    def __init__(self, train_id: str):
        self.train_id = train_id
        super().__init__(f"Train not found: {train_id}")


class ReservationNotFoundError(NotFoundError):
    """
    Raised when a reservation does not exist or is owned
    by another user. Both cases look the same to the caller.
    """

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(f"Reservation not found: {reservation_id}")


class InsufficientCapacityError(RailwayBookingError):
    """Raised when a train has fewer available seats than requested."""

    def __init__(self, available: int, requested: int):
        self.available = available
        self.requested = requested

        message = (
            f"Not enough seats available. "
            f"Only {available} seats left, {requested} requested."
        )
        super().__init__(message)


class InvalidStateTransitionError(RailwayBookingError):
    """
    Raised when an illegal reservation state transition is attempted.
    """

    def __init__(self, from_state: str, to_state: str):
        self.from_state = from_state
        self.to_state = to_state

        message = (
            f"Illegal state transition attempted: "
            f"{from_state} -> {to_state}"
        )
        super().__init__(message)


class AlreadyCancelledError(InvalidStateTransitionError):

    def __init__(self, reservation_id: str):
        self.reservation_id = reservation_id
        super().__init__(from_state="CANCELLED", to_state="CANCELLED")
        self.args = (f"Reservation already cancelled: {reservation_id}",)


class InvariantViolationError(RailwayBookingError):
    """
    Raised when a seat counter check fails inside an exclusive scope.
    Always indicates a coordination bug; never recovered from.
    """


class LockTimeoutError(RailwayBookingError):
    """Raised when the per-train lock cannot be acquired in time. Retryable."""

    def __init__(self, train_id: str, timeout_seconds: float):
        self.train_id = train_id
        self.timeout_seconds = timeout_seconds
        super().__init__(
            f"Timed out after {timeout_seconds:.1f}s waiting for train {train_id}"
        )
