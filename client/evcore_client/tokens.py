# Overview: Classification of stored bearer tokens.

"""
Stored Token Classification

A stored token is classified exactly once into one of three shapes:

- RealToken: server-issued JWT; only the server can vouch for it (verify).
- LocalFallbackToken: a demo token fabricated by the client when the API was
  unreachable. Same three-segment shape as a JWT; the payload carries
  email, role, exp and iat in seconds and type == "mock".
- MalformedToken: anything else. Callers purge it.

Signatures are never checked client-side; classification only decides
which validation path applies.
"""

from __future__ import annotations

import base64
import binascii
import json
import time
from dataclasses import dataclass

FALLBACK_TOKEN_TYPE = "mock"
FALLBACK_SIGNATURE = "mock-signature-for-development"


@dataclass(frozen=True)
class RealToken:
    raw: str


@dataclass(frozen=True)
class LocalFallbackToken:
    raw: str
    email: str
    role: str
    exp: float
    iat: float

    def is_expired(self, now: float | None = None) -> bool:
        current = time.time() if now is None else now
        return current >= self.exp


@dataclass(frozen=True)
class MalformedToken:
    raw: str
    reason: str


StoredToken = RealToken | LocalFallbackToken | MalformedToken


def _b64encode_json(data: dict) -> str:
    return base64.b64encode(json.dumps(data, separators=(",", ":")).encode("utf-8")).decode("ascii")


def _b64decode_segment(segment: str) -> bytes:
    # Accepts both JWT base64url (unpadded) and standard padded base64
    padded = segment + "=" * (-len(segment) % 4)
    return base64.urlsafe_b64decode(padded.encode("ascii"))


def _is_number(value) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def classify_token(raw: str) -> StoredToken:
    parts = raw.split(".")
    if len(parts) != 3 or not all(parts):
        return MalformedToken(raw, "expected three dot-separated segments")

    try:
        payload = json.loads(_b64decode_segment(parts[1]))
    except (binascii.Error, UnicodeError, ValueError):
        return MalformedToken(raw, "payload is not base64-encoded JSON")

    if not isinstance(payload, dict):
        return MalformedToken(raw, "payload is not an object")

    if payload.get("type") != FALLBACK_TOKEN_TYPE:
        return RealToken(raw)

    email = payload.get("email")
    role = payload.get("role")
    exp = payload.get("exp")
    iat = payload.get("iat")
    if not (isinstance(email, str) and email and isinstance(role, str) and role):
        return MalformedToken(raw, "fallback token without email/role")
    if not (_is_number(exp) and _is_number(iat)):
        return MalformedToken(raw, "fallback token without numeric exp/iat")

    return LocalFallbackToken(raw=raw, email=email, role=role, exp=exp, iat=iat)


def fabricate_fallback_token(email: str, role: str, hours: int = 24, now: float | None = None) -> str:
    """Build a demo token: base64 header, payload (seconds-based exp) and placeholder signature."""
    issued_at = int(time.time() if now is None else now)
    header = _b64encode_json({"alg": "HS256", "typ": "JWT"})
    payload = _b64encode_json({
        "email": email,
        "role": role,
        "exp": issued_at + hours * 3600,
        "iat": issued_at,
        "type": FALLBACK_TOKEN_TYPE,
    })
    signature = base64.b64encode(FALLBACK_SIGNATURE.encode("ascii")).decode("ascii")
    return f"{header}.{payload}.{signature}"
