"""
Appointment lifecycle.

    Pending   -> Confirmed | Cancelled
    Confirmed -> Completed | Cancelled
    Completed, Cancelled: terminal

Payment moves independently: Pending -> Completed | Failed,
Failed -> Completed (another attempt on the same order),
Completed -> Refunded when the appointment is cancelled.
"""
import logging
import uuid
from datetime import datetime
from typing import List, Optional, Tuple

from sqlmodel import Session, select

from config import get_settings
from errors import Forbidden, InvalidSignature, InvalidState, NotFound, ValidationFailed
from models import Appointment, AppointmentStatus, Doctor, PaymentStatus, utcnow
from services.payment_gateway import PaymentGateway

logger = logging.getLogger(__name__)

ALLOWED_TRANSITIONS = {
    AppointmentStatus.PENDING: {AppointmentStatus.CONFIRMED, AppointmentStatus.CANCELLED},
    AppointmentStatus.CONFIRMED: {AppointmentStatus.COMPLETED, AppointmentStatus.CANCELLED},
    AppointmentStatus.COMPLETED: set(),
    AppointmentStatus.CANCELLED: set(),
}

PAYABLE_PAYMENT_STATES = {PaymentStatus.PENDING, PaymentStatus.FAILED}


def can_transition(current: AppointmentStatus, new: AppointmentStatus) -> bool:
    return AppointmentStatus(new) in ALLOWED_TRANSITIONS[AppointmentStatus(current)]


def to_minor_units(amount: float) -> int:
    """Rupees to paise"""
    return int(round(amount * 100))


def _save(session: Session, appointment: Appointment) -> Appointment:
    session.add(appointment)
    session.commit()
    session.refresh(appointment)
    return appointment


def get_appointment(session: Session, appointment_id: int) -> Appointment:
    appointment = session.get(Appointment, appointment_id)
    if not appointment:
        raise NotFound("Appointment not found")
    return appointment


def _get_for_doctor(session: Session, doctor_id: int, appointment_id: int) -> Appointment:
    appointment = get_appointment(session, appointment_id)
    if appointment.doctor_id != doctor_id:
        raise Forbidden("Not authorized to update this appointment")
    return appointment


def _get_for_patient(session: Session, patient_id: int, appointment_id: int) -> Appointment:
    appointment = get_appointment(session, appointment_id)
    if appointment.patient_id != patient_id:
        raise Forbidden("Not authorized to access this appointment")
    return appointment


def book(
    session: Session,
    gateway: PaymentGateway,
    patient_id: int,
    doctor_id: int,
    appointment_date: datetime,
    time_slot: str,
    problem: str,
    notes: Optional[str] = None,
) -> Tuple[Appointment, dict]:
    """
    Book an appointment and open a gateway order for the doctor's fee.

    The order is created before anything is written, so a gateway failure
    leaves no appointment behind.
    """
    doctor = session.get(Doctor, doctor_id)
    if not doctor:
        raise NotFound("Doctor not found")

    currency = get_settings().PAYMENT_CURRENCY
    receipt = f"receipt_{uuid.uuid4().hex[:16]}"
    order = gateway.create_order(
        to_minor_units(doctor.fee),
        currency,
        receipt,
        notes={"patient_id": str(patient_id), "doctor_id": str(doctor_id)},
    )

    appointment = _save(session, Appointment(
        patient_id=patient_id,
        doctor_id=doctor_id,
        appointment_date=appointment_date,
        time_slot=time_slot,
        problem=problem,
        notes=notes,
        status=AppointmentStatus.PENDING,
        payment_amount=doctor.fee,
        payment_status=PaymentStatus.PENDING,
        gateway_order_id=order["id"],
    ))
    logger.info(f"Appointment {appointment.id} booked by patient {patient_id} with doctor {doctor_id}, order {order['id']}")

    return appointment, order


def verify_payment(
    session: Session,
    gateway: PaymentGateway,
    order_id: str,
    payment_id: str,
    signature: str,
    appointment_id: int,
) -> Appointment:
    """Check the gateway signature and confirm the appointment"""
    if not gateway.verify_signature(order_id, payment_id, signature):
        logger.warning(f"Invalid payment signature for order {order_id}")
        raise InvalidSignature("Invalid signature")

    appointment = get_appointment(session, appointment_id)

    if appointment.gateway_order_id != order_id:
        raise ValidationFailed("Order does not belong to this appointment")

    if appointment.status != AppointmentStatus.PENDING or appointment.payment_status not in PAYABLE_PAYMENT_STATES:
        raise InvalidState(
            f"Appointment is not awaiting payment (status {appointment.status.value}, "
            f"payment {appointment.payment_status.value})"
        )

    appointment.payment_status = PaymentStatus.COMPLETED
    appointment.gateway_payment_id = payment_id
    appointment.status = AppointmentStatus.CONFIRMED
    _save(session, appointment)
    logger.info(f"Payment {payment_id} verified, appointment {appointment.id} confirmed")

    return appointment


def record_payment_failure(
    session: Session,
    patient_id: int,
    appointment_id: int,
    payment_id: Optional[str] = None,
) -> Appointment:
    """Mark a pending payment as failed (reported by the checkout client)"""
    appointment = _get_for_patient(session, patient_id, appointment_id)
    if appointment.payment_status != PaymentStatus.PENDING:
        raise InvalidState(f"Payment is {appointment.payment_status.value}, not Pending")

    appointment.payment_status = PaymentStatus.FAILED
    if payment_id:
        appointment.gateway_payment_id = payment_id
    _save(session, appointment)
    logger.info(f"Payment failed for appointment {appointment.id}")

    return appointment


def _apply_cancellation(appointment: Appointment) -> None:
    appointment.status = AppointmentStatus.CANCELLED
    # Bookkeeping only; no refund call goes to the gateway
    if appointment.payment_status == PaymentStatus.COMPLETED:
        appointment.payment_status = PaymentStatus.REFUNDED


def update_status(session: Session, doctor_id: int, appointment_id: int, new_status: AppointmentStatus) -> Appointment:
    appointment = _get_for_doctor(session, doctor_id, appointment_id)
    new_status = AppointmentStatus(new_status)

    if not can_transition(appointment.status, new_status):
        logger.warning(f"Rejected transition {appointment.status.value} -> {new_status.value} on appointment {appointment.id}")
        raise InvalidState(f"Cannot change status from {appointment.status.value} to {new_status.value}")

    if new_status == AppointmentStatus.CANCELLED:
        _apply_cancellation(appointment)
    else:
        appointment.status = new_status

    _save(session, appointment)
    logger.info(f"Appointment {appointment.id} moved to {new_status.value} by doctor {doctor_id}")
    return appointment


def add_prescription(
    session: Session,
    doctor_id: int,
    appointment_id: int,
    medications: List[str],
    notes: Optional[str] = None,
    follow_up_date: Optional[datetime] = None,
) -> Appointment:
    appointment = _get_for_doctor(session, doctor_id, appointment_id)

    appointment.prescription_medications = list(medications)
    appointment.prescription_notes = notes
    appointment.prescription_follow_up_date = follow_up_date
    _save(session, appointment)
    logger.info(f"Prescription set on appointment {appointment.id}")

    return appointment


def cancel(session: Session, patient_id: int, appointment_id: int) -> Appointment:
    appointment = _get_for_patient(session, patient_id, appointment_id)

    if appointment.status == AppointmentStatus.COMPLETED:
        raise InvalidState("Cannot cancel completed appointment")
    if appointment.status == AppointmentStatus.CANCELLED:
        raise InvalidState("Appointment is already cancelled")

    _apply_cancellation(appointment)
    _save(session, appointment)
    logger.info(f"Appointment {appointment.id} cancelled by patient {patient_id}, payment {appointment.payment_status.value}")

    return appointment


def list_for_patient(session: Session, patient_id: int) -> List[Appointment]:
    return session.exec(
        select(Appointment)
        .where(Appointment.patient_id == patient_id)
        .order_by(Appointment.appointment_date)
    ).all()


def list_for_doctor(session: Session, doctor_id: int) -> List[Appointment]:
    return session.exec(
        select(Appointment)
        .where(Appointment.doctor_id == doctor_id)
        .order_by(Appointment.appointment_date)
    ).all()


def generate_bill(session: Session, patient_id: int, appointment_id: int) -> dict:
    appointment = _get_for_patient(session, patient_id, appointment_id)
    patient = appointment.patient
    doctor = appointment.doctor

    return {
        "bill_number": f"BILL-{appointment.id:06d}-{uuid.uuid4().hex[:6].upper()}",
        "date": utcnow(),
        "patient_details": {
            "name": patient.name,
            "email": patient.email,
            "phone_number": patient.phone_number,
        },
        "doctor_details": {
            "name": doctor.name,
            "department": doctor.department,
        },
        "appointment_details": {
            "date": appointment.appointment_date,
            "time_slot": appointment.time_slot,
            "problem": appointment.problem,
        },
        "payment_details": {
            "amount": appointment.payment_amount,
            "status": appointment.payment_status,
            "payment_id": appointment.gateway_payment_id,
        },
    }


def doctor_patients(session: Session, doctor_id: int) -> List[dict]:
    """Unique patients of a doctor with their visit history, newest first"""
    appointments = session.exec(
        select(Appointment)
        .where(Appointment.doctor_id == doctor_id)
        .order_by(Appointment.appointment_date.desc())
    ).all()

    patients = {}
    for appointment in appointments:
        patient = appointment.patient
        if patient is None:
            continue

        entry = patients.get(patient.id)
        if entry is None:
            entry = patients[patient.id] = {
                "id": patient.id,
                "name": patient.name,
                "email": patient.email,
                "phone_number": patient.phone_number,
                "age": patient.age,
                "gender": patient.gender,
                "blood_group": patient.blood_group,
                "medical_history": patient.medical_history or [],
                "allergies": patient.allergies or [],
                "last_visit": appointment.appointment_date,
                "total_visits": 0,
                "appointments": [],
            }

        if appointment.appointment_date > entry["last_visit"]:
            entry["last_visit"] = appointment.appointment_date
        if appointment.status == AppointmentStatus.COMPLETED:
            entry["total_visits"] += 1

        entry["appointments"].append({
            "id": appointment.id,
            "appointment_date": appointment.appointment_date,
            "time_slot": appointment.time_slot,
            "status": appointment.status,
            "problem": appointment.problem,
            "prescription_medications": appointment.prescription_medications,
            "prescription_notes": appointment.prescription_notes,
        })

    return list(patients.values())
