from urllib.parse import quote

from pydantic import ConfigDict, field_validator, model_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
    )

    # Database
    database_url: str = "sqlite:///./envshare.db"

    # Optional Postgres parts; when host is set they take precedence over database_url
    postgres_host: str | None = None
    postgres_port: int = 5432
    postgres_user: str | None = None
    postgres_password: str | None = None
    postgres_db: str | None = None

    # Limits
    max_content_bytes: int = 64_000
    max_reads_limit: int = 1_000
    max_ttl_seconds: int = 30 * 24 * 60 * 60  # 30 days

    # Rate Limiting
    rate_limit_creates: str = "10/minute"
    rate_limit_reveals: str = "30/minute"
    trust_proxy_headers: bool = False

    # Expiry sweep
    sweep_scheduler_enabled: bool = True
    sweep_interval_minutes: int = 15

    # Logging
    log_level: str = "info"
    log_format: str = "console"  # "console" | "json"

    # CORS
    cors_origins: list[str] | str = ["http://localhost:8080", "http://127.0.0.1:8080"]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v):
        """Parse CORS origins from comma-separated string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",") if origin.strip()]
        return v

    @field_validator("log_format")
    @classmethod
    def validate_log_format(cls, v: str) -> str:
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    @model_validator(mode="after")
    def assemble_postgres_url(self) -> "Settings":
        """Build database_url from POSTGRES_* variables when a host is configured."""
        if not self.postgres_host:
            return self

        missing = [
            name
            for name in ("postgres_user", "postgres_password", "postgres_db")
            if not getattr(self, name)
        ]
        if missing:
            raise ValueError(
                f"{', '.join(m.upper() for m in missing)} must be set when POSTGRES_HOST is set"
            )

        self.database_url = (
            f"postgresql://{self.postgres_user}:{quote(self.postgres_password, safe='')}"
            f"@{self.postgres_host}:{self.postgres_port}/{self.postgres_db}"
        )
        return self


settings = Settings()
