from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from database import get_session
from models import UserRole
from schemas import (
    DoctorResponse, DoctorSummary, DoctorProfileUpdate, AppointmentResponse, AppointmentStatusUpdate,
    PrescriptionCreate, ReferralCreate, ReferralResponse, DoctorPatientResponse, PasswordChange,
    ResetRequest, PasswordReset, TokenResponse, MessageResponse
)
from dependencies import get_optional_user, require_doctor
from services import appointments, credentials, referrals, reports
from services.credentials import Identity
from validators.time_validator import validate_availability
from utils.rate_limit import limiter, RESET_LIMIT, PASSWORD_LIMIT
from typing import List, Optional
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/doctors", tags=["Doctors"])


# ==================== Public endpoints ====================

@router.post("/request-reset", response_model=MessageResponse)
@limiter.limit(RESET_LIMIT)
def request_password_reset(request: Request, reset_data: ResetRequest, session: Session = Depends(get_session)):
    """Send a password reset code to the doctor"""
    credentials.request_reset(session, UserRole.DOCTOR, reset_data.email)
    return MessageResponse(message="Password reset code sent")

@router.post("/reset-password", response_model=TokenResponse)
@limiter.limit(RESET_LIMIT)
def reset_password(request: Request, reset_data: PasswordReset, session: Session = Depends(get_session)):
    """Reset password with a reset code"""
    _, token = credentials.resolve_reset(
        session, UserRole.DOCTOR, reset_data.email, reset_data.reset_code, reset_data.new_password
    )
    return TokenResponse(message="Password reset successfully", token=token)

@router.get("/all", response_model=List[DoctorSummary])
def get_all_doctors(
    current_user: Optional[Identity] = Depends(get_optional_user),
    session: Session = Depends(get_session)
):
    """List approved doctors (for patient booking); a signed-in doctor is left out"""
    exclude_id = current_user.id if current_user and current_user.role == UserRole.DOCTOR else None
    doctors = credentials.list_doctors(session, exclude_id)
    return [DoctorSummary.model_validate(d) for d in doctors]

@router.get("/department/{department}", response_model=List[DoctorResponse])
def get_doctors_by_department(department: str, session: Session = Depends(get_session)):
    """All doctors of a department regardless of approval"""
    doctors = credentials.doctors_by_department(session, department)
    return [DoctorResponse.model_validate(d) for d in doctors]


# ==================== Profile & credentials ====================

@router.get("/profile", response_model=DoctorResponse)
def get_doctor_profile(current_user: Identity = Depends(require_doctor)):
    """Get current doctor's profile"""
    return DoctorResponse.model_validate(credentials.get_profile(current_user))

@router.put("/profile", response_model=DoctorResponse)
def update_doctor_profile(
    profile_data: DoctorProfileUpdate,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Update doctor profile"""
    changes = profile_data.model_dump(exclude_unset=True, exclude_none=True)
    if "availability" in changes:
        validate_availability(changes["availability"])

    doctor = credentials.update_profile(session, current_user, changes)
    return DoctorResponse.model_validate(doctor)

@router.put("/change-password", response_model=TokenResponse)
@limiter.limit(PASSWORD_LIMIT)
def change_password(
    request: Request,
    password_data: PasswordChange,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Change password; every other session is signed out"""
    token = credentials.change_password(
        session, current_user, password_data.current_password, password_data.new_password
    )
    return TokenResponse(message="Password changed successfully", token=token)

@router.post("/logout-all", response_model=MessageResponse)
def logout_all_devices(
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Invalidate every token issued to this doctor"""
    credentials.logout_all(session, current_user)
    return MessageResponse(message="Logged out from all devices")


# ==================== Appointments ====================

@router.get("/appointments", response_model=List[AppointmentResponse])
def get_doctor_appointments(
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Get the doctor's schedule"""
    return [
        AppointmentResponse.from_appointment(a)
        for a in appointments.list_for_doctor(session, current_user.id)
    ]

@router.put("/appointment/status", response_model=AppointmentResponse)
def update_appointment_status(
    status_data: AppointmentStatusUpdate,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Move an appointment along its lifecycle"""
    appointment = appointments.update_status(
        session, current_user.id, status_data.appointment_id, status_data.status
    )
    return AppointmentResponse.from_appointment(appointment)

@router.post("/appointment/prescription", response_model=AppointmentResponse)
def add_prescription(
    prescription_data: PrescriptionCreate,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Set the prescription of an appointment (replaces any previous one)"""
    appointment = appointments.add_prescription(
        session,
        current_user.id,
        prescription_data.appointment_id,
        prescription_data.medications,
        prescription_data.notes,
        prescription_data.follow_up_date,
    )
    return AppointmentResponse.from_appointment(appointment)

@router.get("/patients", response_model=List[DoctorPatientResponse])
def get_doctor_patients(
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Patients seen by this doctor with their visit history"""
    return appointments.doctor_patients(session, current_user.id)


# ==================== Referrals ====================

@router.post("/referral", response_model=ReferralResponse, status_code=201)
def create_referral(
    referral_data: ReferralCreate,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Refer a patient to another doctor"""
    referral = referrals.create(
        session,
        current_user.id,
        referral_data.patient_id,
        referral_data.doctor_id,
        referral_data.referral_date,
        referral_data.notes,
    )
    return ReferralResponse.model_validate(referral)

@router.get("/referrals/sent", response_model=List[ReferralResponse])
def get_sent_referrals(
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    return [ReferralResponse.model_validate(r) for r in referrals.list_sent(session, current_user.id)]

@router.get("/referrals/received", response_model=List[ReferralResponse])
def get_received_referrals(
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    return [ReferralResponse.model_validate(r) for r in referrals.list_received(session, current_user.id)]

@router.put("/referral/{referral_id}/{action}", response_model=ReferralResponse)
def update_referral_status(
    referral_id: int,
    action: str,
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Accept or decline a referral addressed to this doctor"""
    referral = referrals.resolve(session, current_user.id, referral_id, action)
    return ReferralResponse.model_validate(referral)


# ==================== Reports ====================

@router.get("/reports")
def get_doctor_reports(
    time_range: str = "month",
    current_user: Identity = Depends(require_doctor),
    session: Session = Depends(get_session)
):
    """Appointment metrics and patient demographics over a time range"""
    return reports.doctor_report(session, current_user.id, time_range)
