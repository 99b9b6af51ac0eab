from sqlalchemy import String
from sqlalchemy.orm import Mapped, mapped_column

from envshare.database import Base


class ApiKey(Base):
    """Bearer credential allowed to call the secrets API."""

    __tablename__ = "api_keys"

    key: Mapped[str] = mapped_column(String(128), primary_key=True)
