from datetime import date
from fastapi import APIRouter, Depends
from sqlmodel import Session
from database import get_session
from schemas import ReportDataResponse, AppointmentResponse, ReferralResponse
from dependencies import require_doctor
from services import reports
from services.credentials import Identity
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["Reports"])

@router.get("", response_model=ReportDataResponse)
def get_report_data(
    start_date: date,
    end_date: date,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Raw appointments and referrals of the current doctor for a date range"""
    data = reports.report_data(session, current_user.id, start_date, end_date)
    return ReportDataResponse(
        appointments=[AppointmentResponse.from_appointment(a) for a in data["appointments"]],
        referrals=[ReferralResponse.model_validate(r) for r in data["referrals"]],
    )
