"""
Member portal PIN authentication: passwordless sign-in for gym members.
"""

from .auth import PortalAuthService
from .config import get_config
from .crypto import CryptoManager, DecryptionError, EncryptedEnvelope
from .results import Err, ErrorKind, Ok

__all__ = [
    'PortalAuthService',
    'get_config',
    'CryptoManager',
    'DecryptionError',
    'EncryptedEnvelope',
    'Err',
    'ErrorKind',
    'Ok',
]
