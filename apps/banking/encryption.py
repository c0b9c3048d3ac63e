"""RSA encryption of login credentials with the partner bank's public key."""

import base64
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Optional
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import padding, rsa
from framework.exceptions.handler import ConfigurationError


class EncryptionService(ABC):
    @abstractmethod
    def encrypt(self, plaintext: str) -> str:
        pass


class RsaEncryptionService(EncryptionService):
    """PKCS#1 v1.5 RSA encryption, base64-encoded output."""

    def __init__(self, public_key: rsa.RSAPublicKey):
        self._public_key = public_key

    @classmethod
    def from_pem(cls, pem: bytes) -> "RsaEncryptionService":
        try:
            key = serialization.load_pem_public_key(pem)
        except ValueError as e:
            raise ConfigurationError(f"Invalid RSA public key: {e}") from e
        if not isinstance(key, rsa.RSAPublicKey):
            raise ConfigurationError("Public key is not an RSA key")
        return cls(key)

    @classmethod
    def from_file(cls, path: Optional[str]) -> "RsaEncryptionService":
        if not path or not path.strip():
            raise ConfigurationError("PUBLIC_KEY_PATH is not set")
        key_file = Path(path)
        if not key_file.is_file():
            raise ConfigurationError(f"Public key file not found at path: {path}")
        return cls.from_pem(key_file.read_bytes())

    def encrypt(self, plaintext: str) -> str:
        encrypted = self._public_key.encrypt(plaintext.encode("utf-8"), padding.PKCS1v15())
        return base64.b64encode(encrypted).decode("ascii")
