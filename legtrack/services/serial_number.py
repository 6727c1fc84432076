from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from legtrack.core.config import settings
from legtrack.models.shipment import Shipment


class SerialNumberService:
    @staticmethod
    def year_prefix(year: int) -> str:
        return f"{settings.SHIPMENT_SERIAL_PREFIX}-{year}-"

    @staticmethod
    def parse_sequence(serial: str | None, year: int) -> int | None:
        prefix = SerialNumberService.year_prefix(year)
        if not serial or not serial.startswith(prefix):
            return None
        tail = serial[len(prefix):]
        if not tail.isdigit():
            return None
        return int(tail)

    @staticmethod
    def get_next_number(db: Session, now: datetime | None = None) -> str:
        """
        Next shipment serial for the calendar year of `now`:
        (highest sequence already issued that year) + 1, zero padded.

        Serials that do not follow the pattern (hand-entered ones) are ignored.
        The caller's commit is what makes the number visible to the next call.
        """
        year = (now or datetime.utcnow()).year
        prefix = SerialNumberService.year_prefix(year)

        stmt = select(Shipment.serial_number).where(Shipment.serial_number.like(f"{prefix}%"))
        highest = 0
        for serial in db.execute(stmt).scalars():
            sequence = SerialNumberService.parse_sequence(serial, year)
            if sequence is not None and sequence > highest:
                highest = sequence

        padded_number = str(highest + 1).zfill(settings.SHIPMENT_SERIAL_PADDING)
        return f"{prefix}{padded_number}"
