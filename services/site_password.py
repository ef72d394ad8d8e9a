"""Encryption of project site passwords (gate codes, monitoring logins).

Ciphertexts are Fernet tokens. ``SITE_PASSWORD_KEYS`` is a comma-separated
list of Fernet keys, newest first: every key can still decrypt, only the first
one encrypts. After adding a key, ``flask rotate-site-passwords`` re-encrypts
the stored passwords so the old key can be retired.

Without ``SITE_PASSWORD_KEYS`` a single key is derived from ``SECRET_KEY``
with HKDF, so changing ``SECRET_KEY`` makes existing passwords unreadable.
"""

from __future__ import annotations

import base64
import logging
from typing import Optional

from cryptography.fernet import Fernet, InvalidToken, MultiFernet
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.hkdf import HKDF
from flask import current_app

DERIVED_KEY_INFO = b"solarpm/site-password/v1"


class SitePasswordUnreadable(RuntimeError):
    """The stored ciphertext does not open with any configured key."""

    def __init__(self, project_id: Optional[int]):
        super().__init__("The stored site password can no longer be read. Please set it again.")
        self.project_id = project_id


def _derive_key(secret_key) -> bytes:
    if isinstance(secret_key, str):
        secret_key = secret_key.encode("utf-8")
    hkdf = HKDF(algorithm=hashes.SHA256(), length=32, salt=None, info=DERIVED_KEY_INFO)
    return base64.urlsafe_b64encode(hkdf.derive(secret_key))


def site_password_cipher() -> MultiFernet:
    configured = current_app.config.get("SITE_PASSWORD_KEYS") or ""
    keys = [key.strip() for key in configured.split(",") if key.strip()]
    if not keys:
        secret_key = current_app.config.get("SECRET_KEY")
        if not secret_key:
            raise RuntimeError("SITE_PASSWORD_KEYS or SECRET_KEY is required to store site passwords")
        keys = [_derive_key(secret_key)]
    try:
        return MultiFernet([Fernet(key) for key in keys])
    except ValueError as exc:
        raise RuntimeError("SITE_PASSWORD_KEYS must hold url-safe base64 Fernet keys") from exc


def encrypt_site_password(password: str) -> bytes:
    return site_password_cipher().encrypt(password.encode("utf-8"))


def decrypt_site_password(ciphertext: bytes, project_id: Optional[int] = None) -> str:
    try:
        return site_password_cipher().decrypt(ciphertext).decode("utf-8")
    except InvalidToken as exc:
        logging.error("Site password of project %s does not decrypt with the configured keys", project_id)
        raise SitePasswordUnreadable(project_id) from exc


def rotate_ciphertext(ciphertext: bytes) -> bytes:
    """Re-encrypt with the newest key; raises ``InvalidToken`` if no key opens it."""

    return site_password_cipher().rotate(ciphertext)
