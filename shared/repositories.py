"""
Repositories over the SQLAlchemy session.

The booking manager and the availability search only talk to the
database through these classes, one per table.
"""

from datetime import datetime
from typing import Dict, Iterable, List, Optional

from sqlalchemy.orm import Session

from shared.intervals import Interval
from shared.models import Booking, BookingStatus, DamageReport, DamageReportStatus, Room, User


class BookingRepository:
    """Persistence of Booking records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, booking_id: int) -> Optional[Booking]:
        return self.db.query(Booking).filter(Booking.id == booking_id).first()

    def find_by_user(self, user_id: int) -> List[Booking]:
        return (
            self.db.query(Booking)
            .filter(Booking.user_id == user_id)
            .order_by(Booking.start_time)
            .all()
        )

    def find_confirmed_by_user(self, user_id: int, exclude_id: Optional[int] = None) -> List[Booking]:
        query = self.db.query(Booking).filter(
            Booking.user_id == user_id,
            Booking.status == BookingStatus.CONFIRMED.value,
        )
        if exclude_id is not None:
            query = query.filter(Booking.id != exclude_id)
        return query.all()

    def find_confirmed_overlapping(
        self,
        window: Optional[Interval] = None,
        room_id: Optional[int] = None,
    ) -> List[Booking]:
        """
        Confirmed bookings, optionally restricted to a room and/or to
        those overlapping window.
        """
        query = self.db.query(Booking).filter(Booking.status == BookingStatus.CONFIRMED.value)
        if room_id is not None:
            query = query.filter(Booking.room_id == room_id)
        if window is not None:
            query = query.filter(
                Booking.start_time < window.end,
                Booking.end_time > window.start,
            )
        return query.order_by(Booking.start_time).all()

    def list_all(self) -> List[Booking]:
        return self.db.query(Booking).order_by(Booking.created_at.desc(), Booking.id.desc()).all()

    def count_confirmed(self) -> int:
        return self.db.query(Booking).filter(Booking.status == BookingStatus.CONFIRMED.value).count()

    def room_has_bookings(self, room_id: int) -> bool:
        return self.db.query(Booking.id).filter(Booking.room_id == room_id).first() is not None

    def insert(self, booking: Booking) -> Booking:
        self.db.add(booking)
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def update_status(self, booking: Booking, new_status: BookingStatus) -> Booking:
        booking.status = new_status.value
        booking.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def update_fields(self, booking: Booking, changes: Dict) -> Booking:
        for key, value in changes.items():
            setattr(booking, key, value)
        booking.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(booking)
        return booking

    def delete(self, booking: Booking):
        self.db.delete(booking)
        self.db.commit()


class RoomRepository:
    """Persistence of Room records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, room_id: int) -> Optional[Room]:
        return self.db.query(Room).filter(Room.id == room_id).first()

    def get_many(self, room_ids: Iterable[int]) -> Dict[int, Room]:
        ids = set(room_ids)
        if not ids:
            return {}
        return {room.id: room for room in self.db.query(Room).filter(Room.id.in_(ids)).all()}

    def list_all(self) -> List[Room]:
        return self.db.query(Room).order_by(Room.id).all()

    def touch_last_used(self, room_id: int, user_id: int, used_at: datetime) -> bool:
        """
        Stamp the room with its most recent booking.

        Returns:
            bool: False if the room does not exist
        """
        room = self.get(room_id)
        if room is None:
            return False
        room.last_user_id = user_id
        room.last_used_at = used_at
        room.updated_at = datetime.utcnow()
        self.db.commit()
        return True


class UserRepository:
    """Read access to User records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, user_id: int) -> Optional[User]:
        return self.db.query(User).filter(User.id == user_id).first()

    def get_many(self, user_ids: Iterable[int]) -> Dict[int, User]:
        ids = set(user_ids)
        if not ids:
            return {}
        return {user.id: user for user in self.db.query(User).filter(User.id.in_(ids)).all()}


class DamageReportRepository:
    """Persistence of DamageReport records."""

    def __init__(self, db: Session):
        self.db = db

    def get(self, report_id: int) -> Optional[DamageReport]:
        return self.db.query(DamageReport).filter(DamageReport.id == report_id).first()

    def list_all(self) -> List[DamageReport]:
        return (
            self.db.query(DamageReport)
            .order_by(DamageReport.created_at.desc(), DamageReport.id.desc())
            .all()
        )

    def insert(self, report: DamageReport) -> DamageReport:
        self.db.add(report)
        self.db.commit()
        self.db.refresh(report)
        return report

    def delete(self, report: DamageReport):
        self.db.delete(report)
        self.db.commit()

    def update_status(self, report: DamageReport, new_status: DamageReportStatus) -> DamageReport:
        report.status = new_status
        report.updated_at = datetime.utcnow()
        self.db.commit()
        self.db.refresh(report)
        return report
