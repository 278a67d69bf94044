import logging

from sqlalchemy import create_engine
from sqlalchemy.orm import Session, sessionmaker

from storefront.core.config import DATABASE_URL, DEFAULT_CATEGORIES, SEED_CATEGORIES, SQL_ECHO
from storefront.models.database import Base, Category

logger = logging.getLogger(__name__)


def build_engine(url: str = DATABASE_URL):
    """Create an engine; SQLite connections are shared with worker threads"""
    connect_args = {}
    if url.startswith("sqlite"):
        connect_args = {"check_same_thread": False}
    return create_engine(url, echo=SQL_ECHO, connect_args=connect_args)


engine = build_engine()
SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)


def get_db():
    """Database dependency for FastAPI"""
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def seed_categories(db: Session) -> int:
    """Insert the default categories if none exist yet. Returns rows added."""
    if db.query(Category).first() is not None:
        return 0
    db.add_all([Category(name=name) for name in DEFAULT_CATEGORIES])
    db.commit()
    logger.info(f"Seeded {len(DEFAULT_CATEGORIES)} default categories")
    return len(DEFAULT_CATEGORIES)


def init_db(bind=None) -> None:
    """Create tables and seed reference data"""
    bind = bind or engine
    Base.metadata.create_all(bind=bind)
    if SEED_CATEGORIES:
        db = Session(bind=bind)
        try:
            seed_categories(db)
        finally:
            db.close()
