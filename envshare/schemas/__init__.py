from envshare.schemas.secret import (
    ErrorResponse,
    HealthcheckResponse,
    SecretCreate,
    SecretCreateResponse,
    SecretRevealResponse,
)

__all__ = [
    "ErrorResponse",
    "HealthcheckResponse",
    "SecretCreate",
    "SecretCreateResponse",
    "SecretRevealResponse",
]
