"""
Read-time enrichment of stored records with display fields.

Related rooms and users are fetched in one batch per table and merged
by id. A lookup that fails, or a record pointing at a deleted room or
user, degrades to placeholder values instead of failing the listing.
"""

import logging
from typing import Callable, Dict, Iterable, List

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)

UNKNOWN_ROOM = "Unknown Room"
UNKNOWN_USER = "Unknown User"


def batch_lookup(fetch: Callable[[Iterable[int]], Dict], ids: Iterable[int], what: str) -> Dict:
    """
    Run one batch lookup, falling back to an empty mapping on failure.

    Args:
        fetch: Repository method mapping a set of ids to records
        ids: Ids to resolve
        what: Name of the related table, for the log line

    Returns:
        dict: id -> record for every id that could be resolved
    """
    try:
        return fetch({i for i in ids if i is not None})
    except SQLAlchemyError as e:
        logger.warning(f"Could not resolve {what} for enrichment: {e}")
        return {}


def room_fields(room) -> dict:
    if room is None:
        return {"room_name": UNKNOWN_ROOM, "building": "", "floor": None}
    return {
        "room_name": room.name or UNKNOWN_ROOM,
        "building": room.building or "",
        "floor": room.floor,
    }


def booking_fields(booking) -> dict:
    return {
        "id": booking.id,
        "room_id": booking.room_id,
        "user_id": booking.user_id,
        "start_time": booking.start_time,
        "end_time": booking.end_time,
        "purpose": booking.purpose or "",
        "status": booking.status,
        "created_at": booking.created_at,
        "updated_at": booking.updated_at,
    }


def enrich_bookings(bookings: List, room_repo, user_repo=None) -> List[dict]:
    """
    Join bookings with their room and, when user_repo is given, user.

    Both lookups are issued before any row is built; the result keeps
    the order of bookings.
    """
    rooms = batch_lookup(room_repo.get_many, (b.room_id for b in bookings), "rooms")
    users = None
    if user_repo is not None:
        users = batch_lookup(user_repo.get_many, (b.user_id for b in bookings), "users")

    enriched = []
    for booking in bookings:
        row = booking_fields(booking)
        row.update(room_fields(rooms.get(booking.room_id)))
        if users is not None:
            user = users.get(booking.user_id)
            row["username"] = user.username if user is not None else UNKNOWN_USER
        enriched.append(row)
    return enriched


def enrich_damage_reports(reports: List, room_repo, user_repo) -> List[dict]:
    """Join damage reports with room name/building and reporter name/email."""
    rooms = batch_lookup(room_repo.get_many, (r.room_id for r in reports), "rooms")
    users = batch_lookup(user_repo.get_many, (r.user_id for r in reports), "users")

    enriched = []
    for report in reports:
        room = rooms.get(report.room_id)
        user = users.get(report.user_id)
        enriched.append({
            "id": report.id,
            "room_id": report.room_id,
            "room_name": room.name if room is not None else UNKNOWN_ROOM,
            "building": room.building if room is not None else "",
            "user_id": report.user_id,
            "user_name": user.username if user is not None else UNKNOWN_USER,
            "user_email": user.email if user is not None else "",
            "description": report.description,
            "image_url": report.image_url,
            "status": report.status,
            "created_at": report.created_at,
            "updated_at": report.updated_at,
        })
    return enriched
