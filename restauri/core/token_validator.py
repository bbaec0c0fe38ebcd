"""
Token Validator

Structural, schema and expiry checks for bearer tokens issued by the admin
login. The checks run in a fixed order and the first failure is raised:

1. format  - three dot-separated URL-safe base64 segments, the first two non-empty
2. decode  - base64url-decode the payload segment and parse it as JSON
3. schema  - "exp", "id", "role", "username" present with the right types
4. expiry  - "exp" strictly later than now (plus an optional buffer)

Signature verification is not done here; see AuthService.verify_token.
"""

import json
import math
import re
import time
from dataclasses import asdict, dataclass
from typing import Any, Callable, Dict, Optional, Union

from jose.utils import base64url_decode

Number = Union[int, float]

TOKEN_FORMAT = re.compile(r"^[A-Za-z0-9_-]+\.[A-Za-z0-9_-]+\.[A-Za-z0-9_-]*$")

# Validation order matters: the first missing field is the one reported.
REQUIRED_FIELDS = ("exp", "id", "role", "username")


class TokenValidationError(ValueError):
    """Base class for every token validation failure."""


class FormatError(TokenValidationError):
    pass


class DecodeError(TokenValidationError):
    pass


class SchemaError(TokenValidationError):
    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class ExpiredError(TokenValidationError):
    pass


@dataclass(frozen=True)
class TokenPayload:
    exp: Number
    id: Number
    role: str
    username: str

    @property
    def is_admin(self) -> bool:
        return self.role == "admin"

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


def _is_number(value: Any) -> bool:
    # bool is an int subclass; JSON true/false is not a number here
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return False
    try:
        return math.isfinite(value)
    except OverflowError:
        # Integers too large to be represented as a float
        return False


_FIELD_CHECKS: Dict[str, Callable[[Any], bool]] = {
    "exp": _is_number,
    "id": _is_number,
    "role": lambda v: isinstance(v, str),
    "username": lambda v: isinstance(v, str),
}


def validate_format(token: str) -> None:
    if not isinstance(token, str) or not TOKEN_FORMAT.fullmatch(token):
        raise FormatError("Invalid token format")


def decode(token: str) -> Any:
    """Return the parsed JSON payload segment of *token*, unvalidated."""
    segments = token.split(".")
    if len(segments) != 3:
        raise DecodeError("Token must have three segments")
    try:
        raw = base64url_decode(segments[1].encode("ascii"))
        return json.loads(raw.decode("utf-8"))
    except (ValueError, RecursionError) as exc:
        # binascii, unicode and JSON errors are ValueErrors; deep nesting recurses
        raise DecodeError(f"Token payload could not be decoded: {exc}") from exc


def validate_payload(decoded: Any) -> TokenPayload:
    if not isinstance(decoded, dict):
        raise SchemaError("Malformed token: payload is not an object")

    for field in REQUIRED_FIELDS:
        if field not in decoded:
            raise SchemaError(f"Malformed token: missing field '{field}'", field=field)

    for field in REQUIRED_FIELDS:
        if not _FIELD_CHECKS[field](decoded[field]):
            raise SchemaError(f"Malformed token: invalid field '{field}'", field=field)

    return TokenPayload(
        exp=decoded["exp"],
        id=decoded["id"],
        role=decoded["role"],
        username=decoded["username"],
    )


def validate_expiry(
    payload: TokenPayload,
    buffer_seconds: Number = 0,
    now: Optional[float] = None,
) -> None:
    """Raise ExpiredError unless ``exp`` is after ``now + buffer_seconds``."""
    if now is None:
        now = time.time()
    now_ms = now * 1000
    if payload.exp * 1000 <= now_ms + buffer_seconds * 1000:
        raise ExpiredError("Token expired")


def validate_and_decode(
    token: str,
    buffer_seconds: Number = 0,
    now: Optional[float] = None,
) -> TokenPayload:
    validate_format(token)
    payload = validate_payload(decode(token))
    validate_expiry(payload, buffer_seconds=buffer_seconds, now=now)
    return payload


class TokenValidator:
    """Token validation with a fixed expiry policy.

    ``expiry_buffer_seconds`` treats tokens that expire within that window as
    already expired; ``clock`` returns the current time in epoch seconds.
    """

    def __init__(self, expiry_buffer_seconds: Number = 0, clock: Callable[[], float] = time.time):
        if expiry_buffer_seconds < 0:
            raise ValueError("expiry_buffer_seconds must not be negative")
        self.expiry_buffer_seconds = expiry_buffer_seconds
        self._clock = clock

    def validate_format(self, token: str) -> None:
        validate_format(token)

    def decode(self, token: str) -> Any:
        return decode(token)

    def validate_payload(self, decoded: Any) -> TokenPayload:
        return validate_payload(decoded)

    def validate_expiry(self, payload: TokenPayload) -> None:
        validate_expiry(payload, buffer_seconds=self.expiry_buffer_seconds, now=self._clock())

    def validate_and_decode(self, token: str) -> TokenPayload:
        return validate_and_decode(
            token,
            buffer_seconds=self.expiry_buffer_seconds,
            now=self._clock(),
        )
