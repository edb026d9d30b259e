"""
Portal Session Management Module

Implements stateless member sessions:
- Self-contained encrypted token (memberId, gymId, expiresAt)
- Expiry embedded in the payload, not only in the cookie TTL
- HttpOnly / SameSite=Strict cookie lifecycle
- No server-side session table; sign-out only clears the cookie
"""

import json
from datetime import datetime, timedelta, timezone
from typing import Callable, Optional

from .cookies import CookieStore
from .crypto import CryptoManager, DecryptionError
from .results import MemberSession
from .utils import utcnow


class SessionTokenError(Exception):
    """Token could not be decrypted, was malformed, or has expired."""


EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def _epoch_ms(value: datetime) -> int:
    return (value - EPOCH) // timedelta(milliseconds=1)


class SessionManager:
    """
    Issues and verifies encrypted session tokens and keeps the
    session cookie in step with them.
    """

    def __init__(self, crypto: CryptoManager, cookies: CookieStore, config,
                 clock: Callable[[], datetime] = utcnow):
        self.crypto = crypto
        self.cookies = cookies
        self.config = config
        self.clock = clock

    def create_token(self, member_id: str, gym_id: str) -> str:
        payload = json.dumps({
            'memberId': member_id,
            'gymId': gym_id,
            'expiresAt': _epoch_ms(self.clock() + self.config.SESSION_DURATION),
        })
        return self.crypto.encrypt(payload)

    def verify_token(self, token: str) -> MemberSession:
        """
        Decrypts and validates a token.
        Raises SessionTokenError for tampered, malformed or expired tokens.
        """
        try:
            payload = json.loads(self.crypto.decrypt(token))
        except (DecryptionError, ValueError):
            raise SessionTokenError("Session token could not be decrypted") from None

        if not isinstance(payload, dict):
            raise SessionTokenError("Session payload is not an object")

        member_id = payload.get('memberId')
        gym_id = payload.get('gymId')
        expires_at = payload.get('expiresAt')
        if not isinstance(member_id, str) or not isinstance(gym_id, str):
            raise SessionTokenError("Session payload is missing identifiers")
        if not isinstance(expires_at, (int, float)) or isinstance(expires_at, bool):
            raise SessionTokenError("Session payload is missing expiry")

        if expires_at < _epoch_ms(self.clock()):
            raise SessionTokenError("Session token expired")

        return MemberSession(member_id=member_id, gym_id=gym_id)

    def start_session(self, member_id: str, gym_id: str) -> str:
        token = self.create_token(member_id, gym_id)

        # SECURE COOKIE CONFIGURATION
        self.cookies.set(
            self.config.SESSION_COOKIE_NAME, token,
            max_age=int(self.config.SESSION_DURATION.total_seconds()),
            secure=self.config.COOKIE_SECURE,
            httponly=self.config.COOKIE_HTTPONLY,
            samesite=self.config.COOKIE_SAMESITE,
            path=self.config.COOKIE_PATH
        )
        return token

    def current_token(self) -> Optional[str]:
        return self.cookies.get(self.config.SESSION_COOKIE_NAME)

    def end_session(self):
        self.cookies.delete(self.config.SESSION_COOKIE_NAME, path=self.config.COOKIE_PATH)
