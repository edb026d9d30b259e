"""
Configuration Module for the Member Portal PIN Authentication Service

This module manages all security configuration parameters.
CRITICAL: Load all secrets from environment variables in production.
"""

import os
from datetime import timedelta

from dotenv import load_dotenv

load_dotenv()


class SecurityConfig:
    """
    Central configuration class for PIN issuance and portal sessions.
    All security-critical parameters are defined here with secure defaults.
    """

    # ==================== CRYPTOGRAPHIC SETTINGS ====================

    # 64 hex characters (32 bytes) expected; any other string is padded/truncated
    PIN_ENCRYPTION_KEY = os.getenv('PIN_ENCRYPTION_KEY', 'CHANGE_IN_PRODUCTION_USE_ENV_VAR')

    # ==================== PIN SETTINGS ====================

    PIN_MIN_VALUE = 1000
    PIN_MAX_VALUE = 9999

    # Minimum interval between two PIN emails to the same member
    PIN_RATE_LIMIT = timedelta(minutes=2)

    # ==================== SESSION MANAGEMENT ====================

    SESSION_COOKIE_NAME = 'member_portal_session'

    # Expiry is embedded in the encrypted token, not only in the cookie TTL
    SESSION_DURATION = timedelta(days=7)

    # ==================== COOKIE SECURITY ====================

    COOKIE_SECURE = True  # HTTPS only - disable for local dev
    COOKIE_HTTPONLY = True  # Prevent JavaScript access (XSS protection)
    COOKIE_SAMESITE = 'Strict'  # CSRF protection
    COOKIE_PATH = '/'

    # ==================== DATABASE SETTINGS ====================

    DATABASE_URL = os.getenv('DATABASE_URL', 'sqlite:///member_portal.db')

    # ==================== EMAIL SETTINGS ====================

    EMAIL_ENABLED = os.getenv('EMAIL_ENABLED', '1').strip().lower() in {'1', 'true', 'yes', 'on'}

    SMTP_HOST = os.getenv('SMTP_HOST', 'localhost')
    SMTP_PORT = int(os.getenv('SMTP_PORT', '587'))
    SMTP_USERNAME = os.getenv('SMTP_USERNAME', '')
    SMTP_PASSWORD = os.getenv('SMTP_PASSWORD', '')
    SMTP_USE_TLS = True
    SMTP_TIMEOUT = 10  # seconds

    EMAIL_FROM = os.getenv('NOTIFICATION_FROM_EMAIL', 'noreply@inkuity.com')
    EMAIL_FROM_NAME = os.getenv('NOTIFICATION_FROM_NAME', 'Inkuity')


class DevelopmentConfig(SecurityConfig):
    """Development configuration - less strict for testing"""
    COOKIE_SECURE = False  # Allow HTTP in development


class ProductionConfig(SecurityConfig):
    """Production configuration - maximum security"""
    COOKIE_SECURE = True


class TestingConfig(SecurityConfig):
    """Deterministic settings for the test suite"""
    PIN_ENCRYPTION_KEY = '00112233445566778899aabbccddeeff00112233445566778899aabbccddeeff'
    COOKIE_SECURE = False
    DATABASE_URL = 'sqlite://'
    EMAIL_ENABLED = False


# Configuration selector based on environment
def get_config() -> SecurityConfig:
    """
    Returns appropriate configuration based on environment.
    Default to production for safety.
    """
    env = os.getenv('FLASK_ENV', 'production')
    if env == 'development':
        return DevelopmentConfig()
    if env == 'testing':
        return TestingConfig()
    return ProductionConfig()
