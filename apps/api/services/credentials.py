"""
Credential store for doctors and patients.

Registration, login, password change, password reset with a time-boxed
6-digit code, "logout everywhere" through ``token_version``, and profile
read/update. Passwords are hashed exactly once per value change.
"""
import hmac
import logging
import secrets
from dataclasses import dataclass
from datetime import timedelta
from typing import List, Optional, Tuple, Type, Union

from sqlmodel import Session, col, select

from auth import create_access_token, get_password_hash, verify_password
from config import get_settings
from errors import Conflict, InvalidOrExpired, NotFound, Unauthorized, ValidationFailed
from models import Doctor, Patient, UserRole, utcnow
from utils.notification_service import NotificationService, notification_service
from validators.password_validator import validate_password

logger = logging.getLogger(__name__)

UserRecord = Union[Doctor, Patient]

MODEL_BY_ROLE = {
    UserRole.DOCTOR: Doctor,
    UserRole.PATIENT: Patient,
}

# Fields a profile update may never touch
PROTECTED_FIELDS = {
    "id", "password", "password_hash", "token_version", "reset_code",
    "reset_code_expires", "is_approved", "created_at", "updated_at",
}


@dataclass
class Identity:
    """An authenticated user with an explicit role tag"""
    id: int
    role: UserRole
    user: UserRecord


def model_for_role(role: UserRole) -> Type[UserRecord]:
    try:
        return MODEL_BY_ROLE[UserRole(role)]
    except (KeyError, ValueError):
        raise Unauthorized("Invalid user role")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_by_email(session: Session, role: UserRole, email: str) -> Optional[UserRecord]:
    model = model_for_role(role)
    return session.exec(select(model).where(model.email == normalize_email(email))).first()


def get_user(session: Session, role: UserRole, user_id: int) -> Optional[UserRecord]:
    return session.get(model_for_role(role), user_id)


def issue_token(identity: Identity) -> str:
    return create_access_token(identity.id, identity.role, identity.user.token_version)


def _save(session: Session, user: UserRecord) -> UserRecord:
    session.add(user)
    session.commit()
    session.refresh(user)
    return user


def register(session: Session, role: UserRole, data: dict) -> Tuple[Identity, str]:
    """Create a user of the given role and issue its first token"""
    role = UserRole(role)
    model = model_for_role(role)
    fields = dict(data)
    password = fields.pop("password", None)
    fields["email"] = normalize_email(fields["email"])

    if find_by_email(session, role, fields["email"]):
        logger.warning(f"Registration rejected, {role.value} email already in use")
        raise Conflict(f"{role.value.capitalize()} already exists")

    validate_password(password)

    user = _save(session, model(**fields, password_hash=get_password_hash(password)))
    logger.info(f"Registered {role.value} {user.id}")

    identity = Identity(id=user.id, role=role, user=user)
    return identity, issue_token(identity)


def verify_credentials(session: Session, role: UserRole, email: str, password: str) -> Identity:
    user = find_by_email(session, role, email)
    if not user or not verify_password(password, user.password_hash):
        logger.warning(f"Failed {UserRole(role).value} login attempt")
        raise Unauthorized("Invalid email or password")
    return Identity(id=user.id, role=UserRole(role), user=user)


def login(session: Session, role: UserRole, email: str, password: str) -> Tuple[Identity, str]:
    identity = verify_credentials(session, role, email, password)
    logger.info(f"{identity.role.value.capitalize()} {identity.id} logged in")
    return identity, issue_token(identity)


def change_password(session: Session, identity: Identity, current_password: str, new_password: str) -> str:
    """Replace the password and revoke every token issued before"""
    user = identity.user
    if not verify_password(current_password, user.password_hash):
        raise Unauthorized("Current password is incorrect")

    validate_password(new_password)

    user.password_hash = get_password_hash(new_password)
    user.token_version += 1
    _save(session, user)
    logger.info(f"{identity.role.value.capitalize()} {identity.id} changed password, token version now {user.token_version}")

    return issue_token(identity)


def generate_reset_code() -> str:
    return str(100000 + secrets.randbelow(900000))


def request_reset(
    session: Session,
    role: UserRole,
    email: str,
    notifier: NotificationService = notification_service
) -> None:
    user = find_by_email(session, role, email)
    if not user:
        raise NotFound(f"{UserRole(role).value.capitalize()} not found with this email")

    ttl_minutes = get_settings().RESET_CODE_TTL_MINUTES
    code = generate_reset_code()
    user.reset_code = code
    user.reset_code_expires = utcnow() + timedelta(minutes=ttl_minutes)
    _save(session, user)

    delivered, detail = notifier.send_reset_code(user.phone_number, user.name, code, ttl_minutes)
    if delivered:
        logger.info(f"Password reset code issued for {UserRole(role).value} {user.id}")
    else:
        logger.warning(f"Reset code for {UserRole(role).value} {user.id} could not be delivered: {detail}")


def resolve_reset(session: Session, role: UserRole, email: str, code: str, new_password: str) -> Tuple[Identity, str]:
    """Consume a reset code and set a new password"""
    user = find_by_email(session, role, email)
    if (
        not user
        or not user.reset_code
        or not user.reset_code_expires
        or user.reset_code_expires <= utcnow()
        or not hmac.compare_digest(user.reset_code, str(code))
    ):
        raise InvalidOrExpired("Invalid or expired reset code")

    validate_password(new_password)

    user.password_hash = get_password_hash(new_password)
    user.reset_code = None
    user.reset_code_expires = None
    user.token_version += 1
    _save(session, user)
    logger.info(f"Password reset completed for {UserRole(role).value} {user.id}")

    identity = Identity(id=user.id, role=UserRole(role), user=user)
    return identity, issue_token(identity)


def logout_all(session: Session, identity: Identity) -> None:
    identity.user.token_version += 1
    _save(session, identity.user)
    logger.info(f"{identity.role.value.capitalize()} {identity.id} logged out from all devices")


def get_profile(identity: Identity) -> UserRecord:
    return identity.user


def update_profile(session: Session, identity: Identity, changes: dict) -> UserRecord:
    """Apply a partial profile update; never re-hashes the password"""
    user = identity.user
    forbidden = PROTECTED_FIELDS.intersection(changes)
    if forbidden:
        raise ValidationFailed(f"Cannot update fields: {', '.join(sorted(forbidden))}")

    if "email" in changes:
        new_email = normalize_email(changes["email"])
        if new_email != user.email:
            existing = find_by_email(session, identity.role, new_email)
            if existing and existing.id != user.id:
                raise Conflict("Email already registered")
        changes = {**changes, "email": new_email}

    for key, value in changes.items():
        setattr(user, key, value)

    _save(session, user)
    logger.info(f"Updated profile for {identity.role.value} {identity.id}")
    return user


def list_doctors(session: Session, exclude_id: Optional[int] = None) -> List[Doctor]:
    """Approved doctors sorted by name, optionally leaving one out"""
    query = select(Doctor).where(col(Doctor.is_approved).is_(True))
    if exclude_id is not None:
        query = query.where(Doctor.id != exclude_id)
    return session.exec(query.order_by(Doctor.name)).all()


def doctors_by_department(session: Session, department: str) -> List[Doctor]:
    return session.exec(
        select(Doctor).where(Doctor.department == department).order_by(Doctor.name)
    ).all()
