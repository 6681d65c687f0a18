"""Runtime configuration loaded from environment variables"""
import os
from functools import lru_cache
from typing import List
from pydantic import BaseModel


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() == "true"


class Settings(BaseModel):
    """Application settings"""
    # Tokens
    SECRET_KEY: str
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_DAYS: int = 30
    BCRYPT_ROUNDS: int = 10

    # Database
    DATABASE_URL: str = ""
    DB_ECHO: bool = False

    # Payments
    PAYMENT_GATEWAY: str = "sandbox"
    PAYMENT_CURRENCY: str = "INR"
    RAZORPAY_KEY_ID: str = ""
    RAZORPAY_KEY_SECRET: str = ""
    SANDBOX_GATEWAY_SECRET: str = ""

    # Password reset
    RESET_CODE_TTL_MINUTES: int = 60

    # SMS delivery
    TWILIO_ACCOUNT_SID: str = ""
    TWILIO_AUTH_TOKEN: str = ""
    TWILIO_SMS_FROM: str = ""

    # HTTP
    RATE_LIMIT_ENABLED: bool = True
    FRONTEND_URL: str = "http://localhost:5173"

    @property
    def cors_origins(self) -> List[str]:
        return ["http://localhost:5173", "http://localhost:3000", self.FRONTEND_URL]


@lru_cache
def get_settings() -> Settings:
    """Build settings from the environment (cached for the process)"""
    secret_key = os.getenv("SECRET_KEY")
    if not secret_key:
        raise ValueError(
            "SECRET_KEY environment variable must be set. "
            "Generate a secure key with: python -c 'import secrets; print(secrets.token_urlsafe(32))'"
        )

    payment_gateway = os.getenv("PAYMENT_GATEWAY", "sandbox").lower()
    sandbox_secret = os.getenv("SANDBOX_GATEWAY_SECRET", "")
    if payment_gateway == "sandbox" and not sandbox_secret:
        raise ValueError(
            "SANDBOX_GATEWAY_SECRET environment variable must be set when PAYMENT_GATEWAY is sandbox. "
            "Use PAYMENT_GATEWAY=razorpay with Razorpay keys to take real payments."
        )

    return Settings(
        SECRET_KEY=secret_key,
        ACCESS_TOKEN_EXPIRE_DAYS=int(os.getenv("ACCESS_TOKEN_EXPIRE_DAYS", "30")),
        BCRYPT_ROUNDS=int(os.getenv("BCRYPT_ROUNDS", "10")),
        DATABASE_URL=os.getenv("DATABASE_URL", ""),
        DB_ECHO=_env_bool("DB_ECHO", "false"),
        PAYMENT_GATEWAY=payment_gateway,
        PAYMENT_CURRENCY=os.getenv("PAYMENT_CURRENCY", "INR"),
        RAZORPAY_KEY_ID=os.getenv("RAZORPAY_KEY_ID", ""),
        RAZORPAY_KEY_SECRET=os.getenv("RAZORPAY_KEY_SECRET", ""),
        SANDBOX_GATEWAY_SECRET=sandbox_secret,
        RESET_CODE_TTL_MINUTES=int(os.getenv("RESET_CODE_TTL_MINUTES", "60")),
        TWILIO_ACCOUNT_SID=os.getenv("TWILIO_ACCOUNT_SID", ""),
        TWILIO_AUTH_TOKEN=os.getenv("TWILIO_AUTH_TOKEN", ""),
        TWILIO_SMS_FROM=os.getenv("TWILIO_SMS_FROM", ""),
        RATE_LIMIT_ENABLED=_env_bool("RATE_LIMIT_ENABLED", "true"),
        FRONTEND_URL=os.getenv("FRONTEND_URL", "http://localhost:5173"),
    )
