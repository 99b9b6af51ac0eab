"""
Error taxonomy for the secret vault and its mapping to HTTP responses.

Every failure the vault can report is a subclass of VaultError. The transport
layer registers error_response() once for the whole family; nothing else
decides status codes or client-visible messages.
"""

import structlog
from fastapi import Request
from fastapi.responses import JSONResponse

logger = structlog.get_logger()


class VaultError(Exception):
    """Base class for all vault failures."""


class MalformedToken(VaultError):
    """Access token is not valid URL-safe base64 of exactly 48 bytes."""


class InvalidRequest(VaultError):
    """Secret creation parameters are out of range."""


class NotFound(VaultError):
    """No record exists for the identifier."""


class SecretExpired(VaultError):
    """Record has run out of reads or passed its expiry instant."""


class EncryptionFailure(VaultError):
    """The cipher could not seal the plaintext."""


class DecryptionFailure(VaultError):
    """Ciphertext failed authentication or did not decode to text."""


class StorageError(VaultError):
    """The backing store failed or broke one of its own invariants."""


class MissingCredential(VaultError):
    """Request carried no Authorization header."""


class InvalidCredential(VaultError):
    """Authorization header is malformed or names an unknown API key."""


class AuthBackendError(VaultError):
    """API key lookup could not reach the database."""


# status code, public message; None keeps the exception's own message
_RESPONSES: dict[type[VaultError], tuple[int, str | None]] = {
    MissingCredential: (401, "API key is missing."),
    InvalidCredential: (401, "API key is invalid."),
    AuthBackendError: (500, "Internal Server Error"),
    MalformedToken: (400, "Invalid Secret Key"),
    InvalidRequest: (400, None),
    DecryptionFailure: (400, "Decryption Error"),
    NotFound: (404, "Secret Not Found"),
    SecretExpired: (404, "Secret Expired"),
    EncryptionFailure: (500, "Internal Server Error"),
    StorageError: (500, "Internal Server Error"),
}

_OPERATIONAL = (StorageError, AuthBackendError, EncryptionFailure)


def status_for(exc: VaultError) -> tuple[int, str]:
    """Resolve the status code and client-safe message for a vault error."""
    for error_type in type(exc).__mro__:
        if error_type in _RESPONSES:
            status_code, message = _RESPONSES[error_type]
            return status_code, message if message is not None else str(exc)
    return 500, "Internal Server Error"


async def error_response(request: Request, exc: VaultError) -> JSONResponse:
    """Exception handler for the VaultError family."""
    status_code, message = status_for(exc)

    if isinstance(exc, _OPERATIONAL):
        logger.error(
            "vault_operational_failure",
            error_type=type(exc).__name__,
            error=str(exc),
            status_code=status_code,
        )
    else:
        logger.info(
            "vault_request_rejected",
            error_type=type(exc).__name__,
            status_code=status_code,
        )

    return JSONResponse(
        status_code=status_code,
        content={"status": status_code, "message": message},
    )
