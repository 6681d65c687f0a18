"""Doctor-to-doctor referrals: pending -> accepted | declined"""
import logging
from datetime import datetime
from typing import List

from sqlmodel import Session, select

from errors import Forbidden, InvalidArgument, InvalidState, NotFound
from models import Doctor, Patient, Referral, ReferralStatus

logger = logging.getLogger(__name__)

RESOLUTIONS = {
    "accept": ReferralStatus.ACCEPTED,
    "decline": ReferralStatus.DECLINED,
}


def create(
    session: Session,
    from_doctor_id: int,
    patient_id: int,
    to_doctor_id: int,
    referral_date: datetime,
    notes: str = "",
) -> Referral:
    if not session.get(Patient, patient_id):
        raise NotFound("Patient not found")
    if not session.get(Doctor, to_doctor_id):
        raise NotFound("Doctor not found")

    referral = Referral(
        patient_id=patient_id,
        from_doctor_id=from_doctor_id,
        to_doctor_id=to_doctor_id,
        referral_date=referral_date,
        notes=notes or "",
        status=ReferralStatus.PENDING,
    )
    session.add(referral)
    session.commit()
    session.refresh(referral)
    logger.info(f"Referral {referral.id} created: patient {patient_id} from doctor {from_doctor_id} to doctor {to_doctor_id}")

    return referral


def resolve(session: Session, to_doctor_id: int, referral_id: int, action: str) -> Referral:
    """Accept or decline a pending referral addressed to ``to_doctor_id``"""
    referral = session.get(Referral, referral_id)
    if not referral:
        raise NotFound("Referral not found")

    if referral.to_doctor_id != to_doctor_id:
        raise Forbidden("Not authorized to update this referral")

    new_status = RESOLUTIONS.get(action)
    if new_status is None:
        raise InvalidArgument("Invalid action")

    if referral.status != ReferralStatus.PENDING:
        raise InvalidState(f"Referral already {referral.status.value}")

    referral.status = new_status
    session.add(referral)
    session.commit()
    session.refresh(referral)
    logger.info(f"Referral {referral.id} {new_status.value} by doctor {to_doctor_id}")

    return referral


def list_sent(session: Session, doctor_id: int) -> List[Referral]:
    return session.exec(
        select(Referral)
        .where(Referral.from_doctor_id == doctor_id)
        .order_by(Referral.created_at.desc())
    ).all()


def list_received(session: Session, doctor_id: int) -> List[Referral]:
    return session.exec(
        select(Referral)
        .where(Referral.to_doctor_id == doctor_id)
        .order_by(Referral.created_at.desc())
    ).all()
