from __future__ import annotations

import os
from functools import lru_cache
import hashlib

from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from push_contact.core.config import settings

NONCE_SIZE = 12


@lru_cache(maxsize=1)
def _get_cipher() -> AESGCM:
    return AESGCM(settings.encryption_key_bytes)


def normalize_email(email: str) -> str:
    return email.strip().lower()


def encrypt_email(email: str | None) -> bytes | None:
    """연락처 이메일은 AES-GCM(nonce + ciphertext)으로만 저장한다."""
    if email is None:
        return None
    nonce = os.urandom(NONCE_SIZE)
    return nonce + _get_cipher().encrypt(nonce, email.encode("utf-8"), None)


def decrypt_email(blob: bytes | None) -> str | None:
    if not blob:
        return None
    nonce, data = blob[:NONCE_SIZE], blob[NONCE_SIZE:]
    return _get_cipher().decrypt(nonce, data, None).decode("utf-8")


def hash_email(email: str) -> bytes:
    # 대소문자/공백 차이와 무관하게 같은 해시로 조회된다
    return hashlib.sha256(normalize_email(email).encode("utf-8")).digest()
