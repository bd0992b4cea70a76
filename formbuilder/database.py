from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker

from formbuilder.config import settings
from formbuilder.models import Base


def make_engine(url: str):
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


# Database setup
engine = make_engine(settings.DATABASE_URL)
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def init_db(bind=None) -> None:
    # Create the database tables
    Base.metadata.create_all(bind=bind or engine)


# Dependency for getting the database session
def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
