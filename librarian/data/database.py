from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base

from ..app.config import Config
from ..utils.logger import get_logger

logger = get_logger()

DATABASE_URL = Config.DATABASE_URL


def build_engine(url: str):
    """Create an engine; SQLite needs cross-thread access for the FastAPI threadpool."""
    connect_args = {"check_same_thread": False} if url.startswith("sqlite") else {}
    return create_engine(url, connect_args=connect_args)


# Create the SQLAlchemy engine
engine = build_engine(DATABASE_URL)

# Create a configured "Session" class
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

# Create a base class for our models
Base = declarative_base()

def create_tables(bind=None):
    """Create all tables in the database."""
    # Import all models here before calling create_all
    # This ensures they are registered with the Base metadata
    from .models import Book, Playlist
    Base.metadata.create_all(bind=bind or engine)
    logger.info("Database tables created successfully.")

if __name__ == "__main__":
    create_tables()
