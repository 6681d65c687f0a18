"""Shared slowapi limiter for the credential endpoints"""
from slowapi import Limiter
from slowapi.util import get_remote_address
from config import get_settings

limiter = Limiter(key_func=get_remote_address, enabled=get_settings().RATE_LIMIT_ENABLED)

LOGIN_LIMIT = "5/minute"
REGISTER_LIMIT = "3/minute"
RESET_LIMIT = "3/minute"
PASSWORD_LIMIT = "3/minute"
