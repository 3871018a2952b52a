# src/domain/state_machine.py

from enum import Enum
from typing import Dict, Set

from src.domain.exceptions import InvalidStateTransitionError


class ReservationStatus(str, Enum):
    CONFIRMED = "CONFIRMED"
    CANCELLED = "CANCELLED"


class ReservationStateMachine:
    """
    Central lifecycle controller for reservation transitions.
    A reservation is born CONFIRMED and may be cancelled once.
    """

    _ALLOWED_TRANSITIONS: Dict[ReservationStatus, Set[ReservationStatus]] = {
        ReservationStatus.CONFIRMED: {
            ReservationStatus.CANCELLED,
        },
        ReservationStatus.CANCELLED: set(),
    }

    @classmethod
    def can_transition(
        cls,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
    ) -> bool:
        cls._ensure_valid_status(from_status)
        cls._ensure_valid_status(to_status)

        return to_status in cls._ALLOWED_TRANSITIONS.get(from_status, set())

    @classmethod
    def validate_transition(
        cls,
        from_status: ReservationStatus,
        to_status: ReservationStatus,
    ) -> None:
        """
        Raises InvalidStateTransitionError if transition is illegal.
        """
        if not cls.can_transition(from_status, to_status):
            raise InvalidStateTransitionError(
                from_state=from_status.value,
                to_state=to_status.value,
            )

    @classmethod
    def is_terminal(cls, status: ReservationStatus) -> bool:
        cls._ensure_valid_status(status)
        return len(cls._ALLOWED_TRANSITIONS.get(status, set())) == 0

    @staticmethod
    def _ensure_valid_status(status: ReservationStatus) -> None:
        if not isinstance(status, ReservationStatus):
            raise TypeError(
                f"Expected ReservationStatus, got {type(status)}"
            )
