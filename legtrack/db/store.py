from __future__ import annotations

from contextlib import contextmanager
from functools import lru_cache
import logging
import time
from typing import Iterator

from sqlalchemy import text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import DBAPIError, InterfaceError, OperationalError, SQLAlchemyError
from sqlalchemy.orm import Session

from legtrack.core.config import settings
from legtrack.core.errors import LegFailure, StoreUnavailableError, UnexpectedFailure

logger = logging.getLogger(__name__)


class StoreHandle:
    """
    Availability signal for the backing store.

    The handle starts out optimistic. A connectivity error seen through
    `guard()` marks it down; while down, `ensure_available()` fails fast until
    the cooldown passes, then probes with `SELECT 1` and reconnects lazily.
    """

    def __init__(self, engine: Engine, cooldown_seconds: float | None = None) -> None:
        self.engine = engine
        self.cooldown_seconds = (
            settings.STORE_RECONNECT_COOLDOWN_SECONDS
            if cooldown_seconds is None
            else cooldown_seconds
        )
        self._connected = True
        self._down_since: float | None = None

    @staticmethod
    def _now() -> float:
        return time.monotonic()

    def is_available(self) -> bool:
        return self._connected

    def mark_unavailable(self, reason: str | None = None) -> None:
        if self._connected:
            logger.warning("store_unavailable reason=%s", reason or "-")
        self._connected = False
        self._down_since = self._now()

    def mark_available(self) -> None:
        if not self._connected:
            logger.info("store_reconnected")
        self._connected = True
        self._down_since = None

    def ping(self) -> bool:
        try:
            with self.engine.connect() as conn:
                conn.execute(text("SELECT 1"))
        except (OperationalError, InterfaceError) as exc:
            self.mark_unavailable(str(exc.orig or exc))
            return False
        self.mark_available()
        return True

    def ensure_available(self) -> None:
        if self._connected:
            return
        since = self._down_since or 0.0
        if self._now() - since < self.cooldown_seconds:
            raise StoreUnavailableError("Backing store is unavailable. Retry later.")
        if not self.ping():
            raise StoreUnavailableError("Backing store is unavailable. Retry later.")

    @staticmethod
    def _rollback(db: Session | None) -> None:
        if db is None:
            return
        try:
            db.rollback()
        except SQLAlchemyError:
            logger.warning("store_rollback_failed", exc_info=True)

    @contextmanager
    def guard(self, operation: str, db: Session | None = None) -> Iterator[None]:
        """Run store work, reclassifying driver errors into typed failures."""
        self.ensure_available()
        try:
            yield
        except LegFailure:
            raise
        except (OperationalError, InterfaceError) as exc:
            self._rollback(db)
            self.mark_unavailable(str(exc.orig or exc))
            raise StoreUnavailableError(
                "Backing store is unavailable. Retry later.",
                context={"operation": operation},
            ) from exc
        except DBAPIError as exc:
            self._rollback(db)
            if exc.connection_invalidated:
                self.mark_unavailable(str(exc.orig or exc))
                raise StoreUnavailableError(
                    "Backing store is unavailable. Retry later.",
                    context={"operation": operation},
                ) from exc
            logger.exception("store_operation_failed operation=%s", operation)
            raise UnexpectedFailure(
                "Unexpected storage failure.", context={"operation": operation}
            ) from exc
        except SQLAlchemyError as exc:
            self._rollback(db)
            logger.exception("store_operation_failed operation=%s", operation)
            raise UnexpectedFailure(
                "Unexpected storage failure.", context={"operation": operation}
            ) from exc


@lru_cache(maxsize=1)
def get_store() -> StoreHandle:
    from legtrack.db.session import engine

    return StoreHandle(engine)
