"""Database engine and session management."""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine, make_url
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from pos_search.core.exceptions import StoreUnavailableError
from pos_search.core.logging import get_logger
from pos_search.db.models import Base

logger = get_logger("pos_search.db.session")


def create_db_engine(url: str, *, echo: bool = False) -> Engine:
    """Create an engine. For file-backed SQLite the parent dir is created."""
    parsed = make_url(url)
    connect_args: dict = {}
    if parsed.get_backend_name() == "sqlite":
        # Sessions are used from request threads and recorder workers
        connect_args = {"check_same_thread": False, "timeout": 30}
        if parsed.database and parsed.database != ":memory:":
            Path(parsed.database).parent.mkdir(parents=True, exist_ok=True)
    return create_engine(url, connect_args=connect_args, echo=echo)


class Database:
    """Engine plus session factory for one store. Passed explicitly to services."""

    def __init__(self, url: str, *, echo: bool = False) -> None:
        self.url = url
        self.engine = create_db_engine(url, echo=echo)
        self._session_factory: sessionmaker[Session] = sessionmaker(
            bind=self.engine,
            autoflush=False,
            expire_on_commit=False,
        )

    @property
    def dialect(self) -> str:
        return self.engine.dialect.name

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session scope: commit on success, rollback on error.

        Connectivity failures surface as StoreUnavailableError.
        """
        db = self._session_factory()
        try:
            yield db
            db.commit()
        except (OperationalError, InterfaceError) as e:
            db.rollback()
            logger.error("Store unavailable (%s): %s", self.dialect, e.orig if e.orig else e)
            raise StoreUnavailableError(
                "Store unavailable",
                details={"store": self.dialect},
            ) from e
        except Exception:
            db.rollback()
            raise
        finally:
            db.close()

    def init_schema(self) -> None:
        """Create all tables that do not exist yet."""
        try:
            Base.metadata.create_all(bind=self.engine)
        except OperationalError as e:
            raise StoreUnavailableError("Store unavailable", details={"store": self.dialect}) from e

    def dispose(self) -> None:
        self.engine.dispose()
