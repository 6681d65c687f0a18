from datetime import datetime, timedelta, timezone
from typing import Optional
from jose import JWTError, jwt
import bcrypt
from config import get_settings
from errors import Unauthorized
from models import UserRole

settings = get_settings()

# Security configuration
SECRET_KEY = settings.SECRET_KEY
ALGORITHM = settings.ALGORITHM
ACCESS_TOKEN_EXPIRE_DAYS = settings.ACCESS_TOKEN_EXPIRE_DAYS
BCRYPT_ROUNDS = settings.BCRYPT_ROUNDS

def verify_password(plain_password: str, hashed_password: str) -> bool:
    """Verify a password against a hash using bcrypt directly"""
    try:
        return bcrypt.checkpw(
            plain_password.encode('utf-8'),
            hashed_password.encode('utf-8')
        )
    except ValueError:
        # Malformed stored hash
        return False

def get_password_hash(password: str) -> str:
    """Generate a salted password hash using bcrypt directly"""
    return bcrypt.hashpw(
        password.encode('utf-8'),
        bcrypt.gensalt(rounds=BCRYPT_ROUNDS)
    ).decode('utf-8')

def create_access_token(user_id: int, role: UserRole, token_version: int, expires_delta: Optional[timedelta] = None) -> str:
    """Mint a bearer token bound to the user's current token version"""
    now = datetime.now(timezone.utc)
    expire = now + (expires_delta or timedelta(days=ACCESS_TOKEN_EXPIRE_DAYS))

    to_encode = {
        "sub": str(user_id),
        "role": UserRole(role).value,
        "token_version": token_version,
        "iat": now,
        "exp": expire,
    }
    return jwt.encode(to_encode, SECRET_KEY, algorithm=ALGORITHM)

def decode_token(token: str) -> dict:
    """
    Decode and verify a bearer token.

    Checks signature and expiry only; the caller compares ``token_version``
    against the live user record.

    Raises:
        Unauthorized: bad signature, expired token, malformed claims or an
            unrecognized role
    """
    try:
        payload = jwt.decode(token, SECRET_KEY, algorithms=[ALGORITHM])
    except JWTError:
        raise Unauthorized("Not authorized, token failed")

    try:
        user_id = int(payload["sub"])
        token_version = int(payload["token_version"])
    except (KeyError, TypeError, ValueError):
        raise Unauthorized("Not authorized, token failed")

    try:
        role = UserRole(payload.get("role"))
    except ValueError:
        raise Unauthorized("Invalid user role")

    return {"sub": user_id, "role": role, "token_version": token_version, "exp": payload.get("exp")}
