import logging
from contextlib import contextmanager

from sqlalchemy import create_engine, event
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker, declarative_base

from donation_ledger.config import get_database_url
from donation_ledger.errors import UnexpectedError

logger = logging.getLogger(__name__)

DATABASE_URL = get_database_url()

engine = create_engine(
    DATABASE_URL,
    connect_args={"check_same_thread": False} if DATABASE_URL.startswith("sqlite") else {}
)


def enable_sqlite_foreign_keys(engine):
    # SQLite ignores REFERENCES clauses unless asked per connection
    if engine.dialect.name != "sqlite":
        return

    @event.listens_for(engine, "connect")
    def _set_pragma(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()


enable_sqlite_foreign_keys(engine)

SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
Base = declarative_base()


@contextmanager
def session_scope(session_factory=None):
    """One unit of work: commit on success, roll back on any error.

    Store failures are logged here and re-raised as UnexpectedError so the
    caller never sees driver details.
    """
    db = (session_factory or SessionLocal)()
    try:
        yield db
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.error(f"Database error: {e}")
        raise UnexpectedError() from e
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()
