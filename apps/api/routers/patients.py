from fastapi import APIRouter, Depends, Request
from sqlmodel import Session
from database import get_session
from models import UserRole
from schemas import (
    PatientResponse, PatientProfileUpdate, AppointmentCreate, AppointmentResponse, BookingResponse,
    GatewayOrder, PaymentVerify, PaymentVerifyResponse, PaymentFailure, BillResponse,
    PasswordChange, ResetRequest, PasswordReset, TokenResponse, MessageResponse
)
from dependencies import require_patient
from services import appointments, credentials, get_payment_gateway
from services.credentials import Identity
from services.payment_gateway import PaymentGateway
from validators.time_validator import validate_not_in_past
from utils.rate_limit import limiter, RESET_LIMIT, PASSWORD_LIMIT
from typing import List
import logging

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/patients", tags=["Patients"])


# ==================== Public endpoints ====================

@router.post("/request-reset", response_model=MessageResponse)
@limiter.limit(RESET_LIMIT)
def request_password_reset(request: Request, reset_data: ResetRequest, session: Session = Depends(get_session)):
    """Send a password reset code to the patient's phone"""
    credentials.request_reset(session, UserRole.PATIENT, reset_data.email)
    return MessageResponse(message="Password reset code sent")

@router.post("/reset-password", response_model=TokenResponse)
@limiter.limit(RESET_LIMIT)
def reset_password(request: Request, reset_data: PasswordReset, session: Session = Depends(get_session)):
    """Reset password with a reset code"""
    _, token = credentials.resolve_reset(
        session, UserRole.PATIENT, reset_data.email, reset_data.reset_code, reset_data.new_password
    )
    return TokenResponse(message="Password reset successfully", token=token)


# ==================== Profile & credentials ====================

@router.get("/profile", response_model=PatientResponse)
def get_patient_profile(current_user: Identity = Depends(require_patient)):
    """Get current patient's profile"""
    return PatientResponse.model_validate(credentials.get_profile(current_user))

@router.put("/profile", response_model=PatientResponse)
def update_patient_profile(
    profile_data: PatientProfileUpdate,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    """Update patient profile"""
    changes = profile_data.model_dump(exclude_unset=True, exclude_none=True)
    patient = credentials.update_profile(session, current_user, changes)
    return PatientResponse.model_validate(patient)

@router.put("/change-password", response_model=TokenResponse)
@limiter.limit(PASSWORD_LIMIT)
def change_password(
    request: Request,
    password_data: PasswordChange,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    """Change password; every other session is signed out"""
    token = credentials.change_password(
        session, current_user, password_data.current_password, password_data.new_password
    )
    return TokenResponse(message="Password changed successfully", token=token)

@router.post("/logout-all", response_model=MessageResponse)
def logout_all_devices(
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    credentials.logout_all(session, current_user)
    return MessageResponse(message="Logged out from all devices")


# ==================== Appointments & payments ====================

@router.post("/appointment", response_model=BookingResponse, status_code=201)
def book_appointment(
    appointment_data: AppointmentCreate,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Book an appointment and open a payment order for the doctor's fee"""
    validate_not_in_past(appointment_data.appointment_date)

    appointment, order = appointments.book(
        session,
        gateway,
        current_user.id,
        appointment_data.doctor_id,
        appointment_data.appointment_date,
        appointment_data.time_slot,
        appointment_data.problem,
        appointment_data.notes,
    )

    return BookingResponse(
        appointment=AppointmentResponse.from_appointment(appointment),
        order=GatewayOrder(
            id=order["id"],
            amount=order["amount"],
            currency=order["currency"],
            receipt=order.get("receipt"),
            key_id=gateway.key_id,
        ),
    )

@router.post("/payment/verify", response_model=PaymentVerifyResponse)
def verify_payment(
    payment_data: PaymentVerify,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session),
    gateway: PaymentGateway = Depends(get_payment_gateway)
):
    """Verify the checkout signature and confirm the appointment"""
    appointment = appointments.verify_payment(
        session,
        gateway,
        payment_data.razorpay_order_id,
        payment_data.razorpay_payment_id,
        payment_data.razorpay_signature,
        payment_data.appointment_id,
    )
    return PaymentVerifyResponse(appointment=AppointmentResponse.from_appointment(appointment))

@router.post("/payment/failed", response_model=AppointmentResponse)
def report_payment_failure(
    failure_data: PaymentFailure,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    """Record a failed checkout attempt; the order stays payable"""
    appointment = appointments.record_payment_failure(
        session, current_user.id, failure_data.appointment_id, failure_data.razorpay_payment_id
    )
    return AppointmentResponse.from_appointment(appointment)

@router.get("/appointments", response_model=List[AppointmentResponse])
def get_patient_appointments(
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    """Get all appointments of the current patient"""
    return [
        AppointmentResponse.from_appointment(a)
        for a in appointments.list_for_patient(session, current_user.id)
    ]

@router.put("/appointment/{appointment_id}/cancel", response_model=AppointmentResponse)
def cancel_appointment(
    appointment_id: int,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    """Cancel an appointment; a completed payment is marked refunded"""
    appointment = appointments.cancel(session, current_user.id, appointment_id)
    return AppointmentResponse.from_appointment(appointment)

@router.get("/bill/{appointment_id}", response_model=BillResponse)
def get_bill(
    appointment_id: int,
    current_user: Identity = Depends(require_patient),
    session: Session = Depends(get_session)
):
    return appointments.generate_bill(session, current_user.id, appointment_id)
