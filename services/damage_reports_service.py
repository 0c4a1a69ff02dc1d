"""
Damage Reports Service

This service collects reports of damaged rooms and lets admins triage them.

Endpoints:
    - POST /damage-reports: Report damage in a room
    - GET /damage-reports: All reports, newest first (admin only)
    - PUT /damage-reports/{report_id}/status: Set report status (admin only)
    - DELETE /damage-reports/{report_id}: Delete a report (admin only)
"""

from fastapi import FastAPI, Depends, Request, status
from typing import Optional, List
from sqlalchemy.orm import Session
from datetime import datetime
import logging

import sys
import os
sys.path.append(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))

from shared.auth import sanitize_input
from shared.database import get_db, init_db
from shared.dependencies import get_current_user, require_admin
from shared.enrichment import enrich_damage_reports
from shared.errors import NotFoundError, ValidationError, setup_error_handlers
from shared.models import DamageReport, DamageReportStatus, User
from shared.monitoring import setup_metrics, track_damage_report
from shared.rate_limiting import rate_limit_decorator, setup_rate_limiting
from shared.repositories import DamageReportRepository, RoomRepository, UserRepository
from shared.schemas import CamelModel

logging.basicConfig(level=logging.INFO)
logger = logging.getLogger(__name__)

app = FastAPI(title="Damage Reports Service", version="1.0.0")
setup_error_handlers(app)
setup_rate_limiting(app)
setup_metrics(app, "damage_reports")


class DamageReportCreate(CamelModel):
    """Damage report creation request model."""
    room_id: Optional[int] = None
    description: Optional[str] = None
    image_url: Optional[str] = None


class StatusUpdate(CamelModel):
    status: DamageReportStatus


class DamageReportResponse(CamelModel):
    """Damage report response model."""
    id: int
    room_id: int
    user_id: int
    description: str
    image_url: Optional[str]
    status: DamageReportStatus
    created_at: datetime
    updated_at: datetime


class DamageReportDetails(DamageReportResponse):
    """Damage report with room and reporter display fields."""
    room_name: str
    building: str
    user_name: str
    user_email: str


def _get_report_or_404(reports: DamageReportRepository, report_id: int) -> DamageReport:
    report = reports.get(report_id)
    if report is None:
        raise NotFoundError("Damage report not found!")
    return report


@app.on_event("startup")
async def startup_event():
    """Initialize database on startup."""
    init_db()


@app.post("/damage-reports", response_model=DamageReportResponse, status_code=status.HTTP_201_CREATED)
@rate_limit_decorator("write")
def create_damage_report(
    request: Request,
    report_data: DamageReportCreate,
    current_user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Report damage in a room.

    Raises:
        ValidationError: Room id or description missing (400)
        NotFoundError: Room does not exist (404)
    """
    if report_data.room_id is None or not report_data.description:
        raise ValidationError("Room ID and description are required!")

    if RoomRepository(db).get(report_data.room_id) is None:
        raise NotFoundError("Room not found!")

    report = DamageReportRepository(db).insert(DamageReport(
        room_id=report_data.room_id,
        user_id=current_user.id,
        description=sanitize_input(report_data.description),
        image_url=report_data.image_url or None,
        status=DamageReportStatus.PENDING,
    ))

    track_damage_report(DamageReportStatus.PENDING.value)
    logger.info(f"User {current_user.username} reported damage in room {report.room_id}")
    return report


@app.get("/damage-reports", response_model=List[DamageReportDetails])
def get_damage_reports(
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Get all damage reports, newest first, with room and reporter details (admin only)."""
    return enrich_damage_reports(
        DamageReportRepository(db).list_all(),
        RoomRepository(db),
        UserRepository(db),
    )


@app.put("/damage-reports/{report_id}/status", response_model=DamageReportResponse)
def update_damage_report_status(
    report_id: int,
    status_data: StatusUpdate,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """
    Set a damage report to pending, resolved or rejected (admin only).

    Raises:
        NotFoundError: Report does not exist (404)
    """
    reports = DamageReportRepository(db)
    report = reports.update_status(_get_report_or_404(reports, report_id), status_data.status)
    track_damage_report(status_data.status.value)
    return report


@app.delete("/damage-reports/{report_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_damage_report(
    report_id: int,
    current_user: User = Depends(require_admin),
    db: Session = Depends(get_db)
):
    """Delete a damage report (admin only)."""
    reports = DamageReportRepository(db)
    reports.delete(_get_report_or_404(reports, report_id))
    logger.info(f"Damage report {report_id} deleted by {current_user.username}")
    return None


@app.get("/health")
def health_check():
    """Health check endpoint."""
    return {"status": "healthy", "service": "damage_reports"}


if __name__ == "__main__":
    import uvicorn
    uvicorn.run(app, host="0.0.0.0", port=8004)
