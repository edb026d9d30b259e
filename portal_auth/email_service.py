"""
Email Service for Member Portal PIN Notifications
"""

import html
import logging
import smtplib
from dataclasses import dataclass
from email.mime.multipart import MIMEMultipart
from email.mime.text import MIMEText
from email.utils import formataddr
from typing import Optional, Tuple

from .utils import Validator

logger = logging.getLogger(__name__)

PORTAL_FEATURES = [
    "View your check-in history and streaks",
    "Create and manage workout routines",
    "Track your workout sessions",
    "Monitor your diet and nutrition",
    "See your fitness progress over time",
]


@dataclass(frozen=True)
class PinEmail:
    to: str
    pin: str
    member_name: str
    gym_name: str
    is_new_pin: bool


def render_pin_email(message: PinEmail) -> Tuple[str, str, str]:
    """Returns (subject, html_body, text_body)"""
    gym = html.escape(message.gym_name)
    name = html.escape(message.member_name)
    pin = html.escape(message.pin)

    subject = f"Your {message.gym_name} Portal PIN"

    if message.is_new_pin:
        intro = f"Welcome to the {gym} member portal! Here's your 4-digit PIN to access your account:"
        text_intro = (f"Welcome to the {message.gym_name} member portal! "
                      f"Here's your 4-digit PIN to access your account:")
    else:
        intro = f"Here's your PIN to access the {gym} member portal:"
        text_intro = f"Here's your PIN to access the {message.gym_name} member portal:"

    features_html = ""
    features_text = ""
    if message.is_new_pin:
        items = "".join(f"<li>{html.escape(f)}</li>" for f in PORTAL_FEATURES)
        features_html = f"<hr><h3>What you can do in the portal:</h3><ul>{items}</ul>"
        features_text = "\nWhat you can do in the portal:\n" + "".join(f"- {f}\n" for f in PORTAL_FEATURES)

    body_html = f"""
    <h2>{gym}</h2>
    <p>Member Portal</p>
    <p>Hi {name},</p>
    <p>{intro}</p>
    <p style="font-size: 32px; letter-spacing: 8px;"><strong>{pin}</strong></p>
    <p>Use this PIN along with your email address to sign in at the member portal.</p>
    {features_html}
    <p><strong>Keep your PIN secure.</strong> This PIN is personal to you and should not be shared with anyone.</p>
    <p>This PIN is for {gym} member portal access only.</p>
    <p>If you didn't request this PIN, please contact the gym immediately.</p>
    """

    body_text = (
        f"Hi {message.member_name},\n\n"
        f"{text_intro}\n\n"
        f"    {message.pin}\n\n"
        "Use this PIN along with your email address to sign in at the member portal.\n"
        f"{features_text}\n"
        "Keep your PIN secure. This PIN is personal to you and should not be shared with anyone.\n"
        f"If you didn't request this PIN, please contact the {message.gym_name} team immediately.\n"
    )

    return subject, body_html, body_text


class SmtpEmailSender:
    """Sends portal emails through the configured SMTP relay"""

    def __init__(self, config):
        self.config = config

    def send_email(self, to_email: str, subject: str, body_html: str,
                   body_text: str, sender_name: str) -> Tuple[bool, Optional[str]]:
        msg = MIMEMultipart('alternative')
        msg['Subject'] = subject
        msg['From'] = formataddr((sender_name, self.config.EMAIL_FROM))
        msg['To'] = to_email

        msg.attach(MIMEText(body_text, 'plain'))
        msg.attach(MIMEText(body_html, 'html'))

        if not self.config.EMAIL_ENABLED:
            logger.info("Email disabled; not sending '%s' to %s", subject, to_email)
            return True, None

        try:
            with smtplib.SMTP(self.config.SMTP_HOST, self.config.SMTP_PORT,
                              timeout=self.config.SMTP_TIMEOUT) as server:
                if self.config.SMTP_USE_TLS:
                    server.starttls()
                if self.config.SMTP_USERNAME and self.config.SMTP_PASSWORD:
                    server.login(self.config.SMTP_USERNAME, self.config.SMTP_PASSWORD)
                server.send_message(msg)
        except (smtplib.SMTPException, OSError) as e:
            logger.error("Failed to send '%s' to %s: %s", subject, to_email, e)
            return False, str(e)

        return True, None

    def send_pin_email(self, message: PinEmail) -> Tuple[bool, Optional[str]]:
        """Send the portal PIN to a member"""
        if not Validator.is_valid_email(message.to):
            return False, "Invalid email address"

        subject, body_html, body_text = render_pin_email(message)
        sender_name = f"{message.gym_name} via {self.config.EMAIL_FROM_NAME}"

        sent, error = self.send_email(message.to, subject, body_html, body_text, sender_name)
        if sent:
            logger.info("PIN email sent to member of %s", message.gym_name)
        return sent, error

    __call__ = send_pin_email
