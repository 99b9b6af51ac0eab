import base64
import binascii
import re
import uuid

from envshare.errors import MalformedToken
from envshare.services.cipher import KEY_SIZE

ID_SIZE = 16
TOKEN_SIZE = KEY_SIZE + ID_SIZE

_URLSAFE_BASE64 = re.compile(r"^[A-Za-z0-9_-]+={0,2}$")


def encode_access_token(key: bytes, secret_id: uuid.UUID) -> str:
    """
    Encode a cipher key and secret id into the client-held access token.

    The token is URL-safe base64 of key || id, 48 bytes fixed, no length prefix.
    """
    if len(key) != KEY_SIZE:
        raise ValueError(f"Key must be exactly {KEY_SIZE} bytes")
    return base64.urlsafe_b64encode(key + secret_id.bytes).decode("ascii")


def decode_access_token(token: str) -> tuple[bytes, uuid.UUID]:
    """
    Split an access token back into (key, secret_id).

    Rejects anything that is not strict URL-safe base64 of exactly 48 bytes.
    """
    # Check for valid base64url characters only (no whitespace allowed)
    if not _URLSAFE_BASE64.match(token) or len(token) % 4 != 0:
        raise MalformedToken("Access token is not valid base64url")
    try:
        raw = base64.b64decode(token, altchars=b"-_", validate=True)
    except (binascii.Error, ValueError) as e:
        raise MalformedToken("Access token is not valid base64url") from e

    if len(raw) != TOKEN_SIZE:
        raise MalformedToken(f"Access token must decode to {TOKEN_SIZE} bytes")

    return raw[:KEY_SIZE], uuid.UUID(bytes=raw[KEY_SIZE:])
