import hmac
import logging
import os
import re
import string
from dataclasses import dataclass

from cryptography.hazmat.backends import default_backend
from cryptography.hazmat.primitives import hashes, padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

logger = logging.getLogger(__name__)

KEY_SIZE = 32
IV_SIZE = 16
TAG_SIZE = 32
BLOCK_SIZE_BITS = 128

_HEX_SEGMENT = re.compile(r'^[0-9a-f]+$')


class DecryptionError(ValueError):
    """Raised for every decryption failure, whatever the cause."""


def derive_key(secret: str) -> bytes:
    """
    Normalizes an operator-supplied secret to exactly 32 bytes.
    A 64 character hex string is decoded; anything else is right-padded
    with '0' and truncated.
    """
    if len(secret) == 2 * KEY_SIZE and all(c in string.hexdigits for c in secret):
        return bytes.fromhex(secret)
    return secret.encode('utf-8').ljust(KEY_SIZE, b'0')[:KEY_SIZE]


@dataclass(frozen=True)
class EncryptedEnvelope:
    """
    Wire form: ivHex:cipherHex, where the cipher segment carries the CBC
    ciphertext followed by its HMAC-SHA256 tag.
    """
    iv: bytes
    ciphertext: bytes
    tag: bytes

    def serialize(self) -> str:
        return f"{self.iv.hex()}:{(self.ciphertext + self.tag).hex()}"

    @classmethod
    def parse(cls, payload: str) -> 'EncryptedEnvelope':
        iv_hex, sep, body_hex = payload.partition(':')
        if not sep:
            raise DecryptionError("Missing envelope separator")
        if not _HEX_SEGMENT.match(iv_hex) or not _HEX_SEGMENT.match(body_hex):
            raise DecryptionError("Envelope is not lowercase hex")
        if len(iv_hex) % 2 or len(body_hex) % 2:
            raise DecryptionError("Odd-length hex segment")

        iv = bytes.fromhex(iv_hex)
        body = bytes.fromhex(body_hex)
        if len(iv) != IV_SIZE:
            raise DecryptionError("Invalid IV length")
        if len(body) <= TAG_SIZE or (len(body) - TAG_SIZE) % IV_SIZE:
            raise DecryptionError("Invalid ciphertext length")

        return cls(iv=iv, ciphertext=body[:-TAG_SIZE], tag=body[-TAG_SIZE:])


class CryptoManager:
    """
    Handles symmetrical encryption for PINs and portal session payloads
    using AES-256-CBC with encrypt-then-MAC.
    """

    def __init__(self, secret: str):
        self.key = derive_key(secret)
        self.mac_key = HKDF(
            algorithm=hashes.SHA256(),
            length=KEY_SIZE,
            salt=None,
            info=b'portal-auth envelope mac',
            backend=default_backend()
        ).derive(self.key)

    @classmethod
    def from_config(cls, config) -> 'CryptoManager':
        if config.PIN_ENCRYPTION_KEY == 'CHANGE_IN_PRODUCTION_USE_ENV_VAR':
            logger.warning("PIN_ENCRYPTION_KEY is not set; using the insecure default key")
        return cls(config.PIN_ENCRYPTION_KEY)

    def encrypt(self, plaintext: str) -> str:
        """
        Encrypts data using AES-CBC.
        IV is generated randomly for every operation.
        Returns: iv_hex:ciphertext_hex
        """
        iv = os.urandom(IV_SIZE)

        padder = padding.PKCS7(BLOCK_SIZE_BITS).padder()
        padded = padder.update(plaintext.encode('utf-8')) + padder.finalize()

        encryptor = Cipher(
            algorithms.AES(self.key),
            modes.CBC(iv),
            backend=default_backend()
        ).encryptor()
        ciphertext = encryptor.update(padded) + encryptor.finalize()

        return EncryptedEnvelope(iv, ciphertext, self._sign(iv, ciphertext)).serialize()

    def decrypt(self, encrypted_payload: str) -> str:
        """
        Decrypts an iv_hex:ciphertext_hex payload.
        Malformed input, a bad tag and bad padding all raise DecryptionError.
        """
        try:
            envelope = EncryptedEnvelope.parse(encrypted_payload)
            if not hmac.compare_digest(envelope.tag, self._sign(envelope.iv, envelope.ciphertext)):
                raise DecryptionError("Authentication tag mismatch")

            decryptor = Cipher(
                algorithms.AES(self.key),
                modes.CBC(envelope.iv),
                backend=default_backend()
            ).decryptor()
            padded = decryptor.update(envelope.ciphertext) + decryptor.finalize()

            unpadder = padding.PKCS7(BLOCK_SIZE_BITS).unpadder()
            return (unpadder.update(padded) + unpadder.finalize()).decode('utf-8')
        except Exception:
            # One error type for every cause, so callers cannot act as an oracle
            raise DecryptionError("Decryption failed or data tampered") from None

    def _sign(self, iv: bytes, ciphertext: bytes) -> bytes:
        return hmac.new(self.mac_key, iv + ciphertext, 'sha256').digest()
