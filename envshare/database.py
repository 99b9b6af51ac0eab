from sqlalchemy import create_engine
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from envshare.config import settings

connect_args = {}
if settings.database_url.startswith("sqlite"):
    connect_args["check_same_thread"] = False

# Bound parameters carry ciphertext and API keys; keep them out of error messages
engine = create_engine(
    settings.database_url, connect_args=connect_args, hide_parameters=True
)

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


class Base(DeclarativeBase):
    pass


def get_db():
    """Dependency for FastAPI endpoints to get a database session."""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
