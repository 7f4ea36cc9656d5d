"""
API key and bearer token handling.

An API key is `qr_` followed by the URL-safe base64 of the owner's normalized
email with the padding stripped, so it can be decoded back to the owner for
logging. It is not a secret on its own: a request is only authorized when the
key and the random `br_` bearer token both match a stored account.
"""

import base64
import binascii
import re
import secrets
from typing import Mapping, NamedTuple, Optional

API_KEY_PREFIX = "qr_"
BEARER_TOKEN_PREFIX = "br_"
BEARER_TOKEN_HEX_LENGTH = 32

_EMAIL_PATTERN = re.compile(r"\S+@\S+\.\S+")


class CredentialPair(NamedTuple):
    api_key: str
    bearer_token: str


def generate_api_key(email: str) -> str:
    normalized = email.strip().lower()
    encoded = base64.urlsafe_b64encode(normalized.encode("utf-8")).decode("ascii")
    return f"{API_KEY_PREFIX}{encoded.rstrip('=')}"


def generate_bearer_token() -> str:
    return f"{BEARER_TOKEN_PREFIX}{secrets.token_hex(BEARER_TOKEN_HEX_LENGTH // 2)}"


def decode_api_key(api_key: Optional[str]) -> Optional[str]:
    """Return the owner email encoded in `api_key`, or None if it is not a well-formed key."""
    if not api_key or not api_key.startswith(API_KEY_PREFIX):
        return None

    body = api_key[len(API_KEY_PREFIX):].replace("-", "+").replace("_", "/")
    body += "=" * (-len(body) % 4)

    try:
        decoded = base64.b64decode(body, validate=True).decode("utf-8").strip()
    except (binascii.Error, UnicodeDecodeError, ValueError):
        return None

    return decoded if _EMAIL_PATTERN.search(decoded) else None


def has_bearer_shape(token: str) -> bool:
    return token.startswith(BEARER_TOKEN_PREFIX)


def _parse_authorization_header(value: Optional[str]) -> Optional[CredentialPair]:
    if not value:
        return None

    api_key = None
    bearer_token = None
    for segment in (part.strip() for part in value.split(";")):
        lowered = segment.lower()
        if lowered.startswith("apikey "):
            api_key = segment[len("apikey "):].strip()
        elif lowered.startswith("bearer "):
            bearer_token = segment[len("bearer "):].strip()

    if not api_key or not bearer_token:
        return None
    return CredentialPair(api_key, bearer_token)


def extract_credentials(headers: Mapping[str, str]) -> Optional[CredentialPair]:
    """
    Read the credential pair from request headers.
    `X-API-Key` + `X-Bearer-Token` win when both are non-empty; otherwise the
    combined `Authorization: ApiKey <key>; Bearer <token>` form is tried.
    """
    api_key = (headers.get("X-API-Key") or "").strip()
    bearer_token = (headers.get("X-Bearer-Token") or "").strip()
    if api_key and bearer_token:
        return CredentialPair(api_key, bearer_token)

    return _parse_authorization_header(headers.get("Authorization"))
