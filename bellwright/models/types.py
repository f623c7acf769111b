import base64
import hashlib
from functools import lru_cache

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from sqlalchemy import LargeBinary
from sqlalchemy.types import TypeDecorator

from bellwright.core.settings import settings


def _fernet_for(secret: str) -> Fernet:
    return Fernet(base64.urlsafe_b64encode(hashlib.sha256(secret.encode("utf-8")).digest()))


@lru_cache(maxsize=8)
def card_cipher(secrets: tuple[str, ...]) -> MultiFernet:
    """Encrypts with the first secret; any of them can decrypt, so keys rotate in place."""
    return MultiFernet([_fernet_for(secret) for secret in secrets])


def configured_card_secrets() -> tuple[str, ...]:
    return tuple(settings.card_encryption_keys) or (settings.secret_key,)


class EncryptedString(TypeDecorator):
    """Saved card fields: Fernet tokens in the column, plain ``str`` in Python."""

    impl = LargeBinary
    cache_ok = True

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        return card_cipher(configured_card_secrets()).encrypt(str(value).encode("utf-8"))

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        try:
            return card_cipher(configured_card_secrets()).decrypt(bytes(value)).decode("utf-8")
        except InvalidToken as exc:
            raise ValueError("Card field could not be decrypted with any configured key") from exc
