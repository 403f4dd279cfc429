# dealership/db.py
"""Database engine and session utilities.

One engine per process. The API uses `get_db` as a request dependency; the
importer and the scheduler open their own sessions from the factory returned
by `get_session_factory`, one per connector run.
"""
import os
from dotenv import load_dotenv
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

load_dotenv()


def database_url() -> str:
    url = os.getenv("DATABASE_URL") or os.getenv("POSTGRES_URL")
    if not url:
        raise RuntimeError("DATABASE_URL not set")
    # SQLAlchemy 2.x rejects the 'postgres://' scheme some hosts hand out
    if url.startswith("postgres://"):
        url = url.replace("postgres://", "postgresql+psycopg2://", 1)
    return url


def engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        # sessions are used from scheduler and fetch threads
        return {"connect_args": {"check_same_thread": False}}
    return {
        "pool_size": int(os.getenv("DB_POOL_SIZE", 5)),
        "max_overflow": int(os.getenv("DB_MAX_OVERFLOW", 10)),
        "pool_pre_ping": True,
    }


DATABASE_URL = database_url()
engine = create_engine(DATABASE_URL, **engine_options(DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)
Base = declarative_base()

def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()

def get_session_factory():
    return SessionLocal
