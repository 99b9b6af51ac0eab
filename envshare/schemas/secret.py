import uuid

from pydantic import BaseModel, Field


class SecretCreate(BaseModel):
    content: str = Field(..., description="Plaintext to encrypt")
    max_reads: int = Field(..., description="Number of reveals allowed before deletion")
    ttl: int = Field(..., description="Seconds from now until the secret expires")


class SecretCreateResponse(BaseModel):
    token: str = Field(..., description="Access token; carries the decryption key")
    reads_left: int
    expires_at: int


class SecretRevealResponse(BaseModel):
    id: uuid.UUID
    content: str
    reads_left: int
    expires_at: int


class HealthcheckResponse(BaseModel):
    status: str
    swept: int


class ErrorResponse(BaseModel):
    status: int
    message: str
