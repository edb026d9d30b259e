"""
Member Portal Authentication Module
Passwordless PIN sign-in with security controls
"""

import hmac
import logging
from datetime import datetime
from typing import Callable, Optional

from sqlalchemy.orm import Session as DBSession

from .config import get_config
from .cookies import CookieStore
from .crypto import CryptoManager, DecryptionError
from .email_service import PinEmail, SmtpEmailSender
from .models import Gym, Member
from .rate_limiter import PinRateLimiter
from .results import (
    Err, ErrorKind, GymInfo, MemberInfo, MemberSession, Ok, PinStatus, Result
)
from .session import SessionManager, SessionTokenError
from .utils import Validator, utcnow

logger = logging.getLogger(__name__)

MEMBER_NOT_FOUND_MESSAGE = "No member found with this email. Please check in at the gym first."
INVALID_CREDENTIALS_MESSAGE = "Invalid email or PIN."
NO_PIN_MESSAGE = "No PIN found. Please request access first."


class PortalAuthService:
    """
    Member portal authentication: PIN issuance, PIN sign-in and
    cookie-held sessions.

    One instance serves one request. Every public method returns a
    Result and never raises.
    """

    def __init__(
        self,
        db_session: DBSession,
        cookies: CookieStore,
        config=None,
        email_sender: Optional[Callable[[PinEmail], object]] = None,
        clock: Callable[[], datetime] = utcnow,
        crypto: Optional[CryptoManager] = None
    ):
        self.db = db_session
        self.config = config or get_config()
        self.clock = clock
        self.crypto = crypto or CryptoManager.from_config(self.config)
        self.email_sender = email_sender or SmtpEmailSender(self.config)
        self.rate_limiter = PinRateLimiter(self.config.PIN_RATE_LIMIT)
        self.session_manager = SessionManager(self.crypto, cookies, self.config, clock=clock)

    def get_gym_by_slug(self, slug: str) -> Result:
        """Public gym lookup used by the sign-in page"""
        try:
            gym = self._find_gym(slug)
            if not gym:
                return Err(ErrorKind.NOT_FOUND, "Gym not found")

            return Ok(GymInfo(id=gym.id, name=gym.name, logo_url=gym.logo_url))
        except Exception:
            logger.exception("Error fetching gym")
            return Err(ErrorKind.UNEXPECTED_ERROR, "Failed to load gym information")

    def check_member_pin_status(self, email: str, gym_id: str) -> Result:
        """Whether the member already holds a PIN; no side effects"""
        try:
            member = self._find_member(email, gym_id)
            if not member:
                return Err(ErrorKind.MEMBER_NOT_FOUND, MEMBER_NOT_FOUND_MESSAGE)

            return Ok(PinStatus(has_pin=bool(member.portal_pin), member_id=member.id))
        except Exception:
            logger.exception("Error checking PIN status")
            return Err(ErrorKind.UNEXPECTED_ERROR, "An unexpected error occurred.")

    def request_portal_access(self, email: str, gym_id: str) -> Result:
        """
        Generate a new PIN, store it encrypted and email it to the member.

        Security Checks:
        - Member must exist in this gym
        - One PIN email per cooldown window
        """
        try:
            member = self._find_member(email, gym_id)
            if not member:
                return Err(ErrorKind.MEMBER_NOT_FOUND, MEMBER_NOT_FOUND_MESSAGE)

            now = self.clock()

            # Check rate limiting
            remaining = self.rate_limiter.remaining_wait(member.last_pin_sent_at, now)
            if remaining is not None:
                logger.info("PIN request rate limited for member %s", member.id)
                return Err(ErrorKind.RATE_LIMITED, self.rate_limiter.message(remaining))

            is_new_pin = not member.portal_pin

            # Loaded before the write so a failed lookup leaves the old PIN in place
            gym = self.db.query(Gym).filter(Gym.id == gym_id).first()

            pin = Validator.generate_pin(self.config.PIN_MIN_VALUE, self.config.PIN_MAX_VALUE)
            member.portal_pin = self.crypto.encrypt(pin)
            if is_new_pin:
                member.pin_created_at = now
            member.last_pin_sent_at = now
            self.db.commit()

            # Best-effort notification; the PIN is already stored
            self._send_pin_email(PinEmail(
                to=member.email,
                pin=pin,
                member_name=member.full_name or 'Member',
                gym_name=gym.name if gym else 'Gym',
                is_new_pin=is_new_pin
            ))

            if is_new_pin:
                return Ok(message="Welcome! Your PIN has been sent to your email.")
            return Ok(message="PIN sent to your email!")
        except Exception:
            self.db.rollback()
            logger.exception("Error requesting portal access")
            return Err(ErrorKind.UNEXPECTED_ERROR, "An unexpected error occurred. Please try again.")

    def sign_in_with_pin(self, email: str, pin: str, gym_slug: str) -> Result:
        """
        Verify email + PIN and start a portal session.
        Unknown gym, unknown member and wrong PIN are indistinguishable.
        """
        try:
            gym = self._find_gym(gym_slug)
            if not gym:
                return Err(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            member = self._find_member(email, gym.id)
            if not member:
                logger.info("Portal sign-in failed for unknown email at gym %s", gym.id)
                return Err(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            if not member.portal_pin:
                return Err(ErrorKind.INVALID_CREDENTIALS, NO_PIN_MESSAGE)

            try:
                stored_pin = self.crypto.decrypt(member.portal_pin)
            except DecryptionError:
                logger.warning("Stored PIN for member %s could not be decrypted", member.id)
                return Err(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            # Compare as strings so leading zeros are significant
            if not hmac.compare_digest(stored_pin.encode(), pin.strip().encode()):
                logger.info("Portal sign-in failed: wrong PIN for member %s", member.id)
                return Err(ErrorKind.INVALID_CREDENTIALS, INVALID_CREDENTIALS_MESSAGE)

            self.session_manager.start_session(member.id, member.gym_id)
            logger.info("Member %s signed in to gym %s", member.id, member.gym_id)

            return Ok(MemberSession(member_id=member.id, gym_id=member.gym_id))
        except Exception:
            logger.exception("Error signing in with PIN")
            return Err(ErrorKind.UNEXPECTED_ERROR, "An unexpected error occurred. Please try again.")

    def get_authenticated_member(self, gym_slug: str) -> Result:
        """Session check used by every portal page"""
        try:
            verified = self._verify_session(gym_slug)
            if isinstance(verified, Err):
                return verified
            session, _ = verified
            return Ok(session)
        except Exception:
            logger.exception("Error getting authenticated member")
            return Err(ErrorKind.UNEXPECTED_ERROR, "Authentication error")

    def get_authenticated_member_info(self, gym_slug: str) -> Result:
        """Session check plus display fields for the portal header"""
        try:
            verified = self._verify_session(gym_slug)
            if isinstance(verified, Err):
                return verified
            session, gym = verified

            member = self.db.query(Member).filter(Member.id == session.member_id).first()
            if not member:
                return Err(ErrorKind.INVALID_SESSION, "Invalid session")

            return Ok(MemberInfo(
                member_id=session.member_id,
                gym_id=session.gym_id,
                member_name=member.full_name or 'Member',
                member_email=member.email,
                gym_name=gym.name,
                gym_logo_url=gym.logo_url
            ))
        except Exception:
            logger.exception("Error getting authenticated member info")
            return Err(ErrorKind.UNEXPECTED_ERROR, "Authentication error")

    def sign_out(self) -> Result:
        """Clears the session cookie; safe to call without a session"""
        try:
            self.session_manager.end_session()
            return Ok()
        except Exception:
            logger.exception("Error signing out")
            return Err(ErrorKind.UNEXPECTED_ERROR, "Failed to sign out")

    def _verify_session(self, gym_slug: str):
        """Returns (MemberSession, Gym) or an Err"""
        token = self.session_manager.current_token()
        if not token:
            return Err(ErrorKind.NOT_AUTHENTICATED, "Not authenticated")

        try:
            session = self.session_manager.verify_token(token)
        except SessionTokenError as e:
            logger.info("Rejected portal session: %s", e)
            self.session_manager.end_session()
            return Err(ErrorKind.SESSION_EXPIRED, "Session expired")

        # Token stays: it may be valid for the gym it was issued by
        gym = self._find_gym(gym_slug)
        if not gym or gym.id != session.gym_id:
            logger.warning("Session for gym %s presented at gym slug %r", session.gym_id, gym_slug)
            return Err(ErrorKind.INVALID_SESSION, "Invalid session")

        return session, gym

    def _find_gym(self, slug: str) -> Optional[Gym]:
        return self.db.query(Gym).filter(Gym.slug == slug).first()

    def _find_member(self, email: str, gym_id: str) -> Optional[Member]:
        return self.db.query(Member).filter(
            Member.email == Validator.normalize_email(email),
            Member.gym_id == gym_id
        ).first()

    def _send_pin_email(self, message: PinEmail):
        try:
            self.email_sender(message)
        except Exception:
            logger.exception("PIN email dispatch failed")
