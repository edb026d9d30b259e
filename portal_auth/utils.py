import re
import secrets
from datetime import datetime, timezone

EMAIL_PATTERN = re.compile(r'^[^\s@]+@[^\s@]+\.[^\s@]+$')


class Validator:
    @staticmethod
    def normalize_email(email: str) -> str:
        """Members are stored with lower-cased, trimmed emails"""
        return email.lower().strip()

    @staticmethod
    def is_valid_email(email: str) -> bool:
        return bool(email) and EMAIL_PATTERN.match(email) is not None

    @staticmethod
    def generate_pin(low: int = 1000, high: int = 9999) -> str:
        """Uniform 4-digit PIN from a CSPRNG"""
        return str(low + secrets.randbelow(high - low + 1))


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """SQLite hands back naive datetimes; they are stored as UTC"""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value
