from __future__ import annotations

from dataclasses import dataclass, field


@dataclass
class LegFailure(Exception):
    """Typed failure raised by the leg stores and the consistency coordinator."""

    message: str
    code: str = "UNEXPECTED"
    status_code: int = 500
    context: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return self.message

    def to_detail(self) -> dict:
        detail = {"code": self.code, "message": self.message}
        if self.context:
            detail.update(self.context)
        return detail


@dataclass
class NotFoundError(LegFailure):
    code: str = "NOT_FOUND"
    status_code: int = 404


@dataclass
class ValidationFailure(LegFailure):
    code: str = "VALIDATION_ERROR"
    status_code: int = 400


@dataclass
class DuplicateOrderError(LegFailure):
    code: str = "DUPLICATE_ORDER"
    status_code: int = 400


@dataclass
class StoreUnavailableError(LegFailure):
    # Retryable; distinct from NotFoundError.
    code: str = "STORE_UNAVAILABLE"
    status_code: int = 503


@dataclass
class UnexpectedFailure(LegFailure):
    code: str = "UNEXPECTED"
    status_code: int = 500
