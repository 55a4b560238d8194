"""Token, actor id and room code helpers."""

from __future__ import annotations

import hashlib
import secrets
import string


TOKEN_BYTES = 24
ACTOR_ID_LENGTH = 20
ROOM_CODE_LENGTH = 4
ROOM_CODE_ALPHABET = string.ascii_uppercase + string.digits


def generate_token() -> str:
    """Generate a URL-safe bearer token identifying one actor."""
    return secrets.token_urlsafe(TOKEN_BYTES)


def actor_id_for(token: str, server_salt: str) -> str:
    """Derive the public actor id stored in documents from a bearer token."""
    payload = f"{token}{server_salt}".encode("utf-8")
    return hashlib.sha256(payload).hexdigest()[:ACTOR_ID_LENGTH]


def generate_room_code() -> str:
    return "".join(secrets.choice(ROOM_CODE_ALPHABET) for _ in range(ROOM_CODE_LENGTH))


def normalize_room_code(code: str) -> str:
    return code.strip().upper()


def validate_actor_id(actor_id: str) -> str:
    """Reject ids that cannot be used as a single document path segment."""
    if not actor_id or "." in actor_id:
        raise ValueError(f"invalid actor id {actor_id!r}")
    return actor_id
