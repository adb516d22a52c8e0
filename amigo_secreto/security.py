from __future__ import annotations

import base64
import hashlib

from cryptography.fernet import Fernet, InvalidToken
from flask import current_app


# ---------------------------------------------------------------------------
# Assignment encryption-at-rest
#
# The recipient side of every assignment is encrypted before it is persisted,
# so the draw result can't be read from the database (or by an admin browsing
# tables). Only the per-participant lookup decrypts, one row at a time.
#
# NOTE: whoever holds SECRET_KEY / ASSIGNMENT_ENC_KEY can still decrypt.
# ---------------------------------------------------------------------------


def _assignment_fernet() -> Fernet:
    """Returns a Fernet instance keyed by ASSIGNMENT_ENC_KEY or derived from SECRET_KEY."""
    explicit = (current_app.config.get("ASSIGNMENT_ENC_KEY") or "").strip()
    if explicit:
        # Expect a urlsafe base64-encoded 32-byte key.
        return Fernet(explicit.encode("utf-8"))

    # Derive a stable key from SECRET_KEY so decrypt works across restarts.
    secret = (current_app.config.get("SECRET_KEY") or "").encode("utf-8")
    digest = hashlib.sha256(b"amigosecreto-assignments|" + secret).digest()
    return Fernet(base64.urlsafe_b64encode(digest))


def encrypt_assignment_recipient(recipient_id: int) -> str:
    """Encrypt recipient_id -> ciphertext token (string)."""
    token = _assignment_fernet().encrypt(str(int(recipient_id)).encode("utf-8"))
    return token.decode("utf-8")


def decrypt_assignment_recipient(token: str) -> int:
    """Decrypt ciphertext token -> recipient_id (int). Raises ValueError on failure."""
    try:
        raw = _assignment_fernet().decrypt(token.encode("utf-8"))
        return int(raw.decode("utf-8"))
    except (InvalidToken, ValueError, TypeError, AttributeError) as e:
        raise ValueError("Invalid assignment token") from e
