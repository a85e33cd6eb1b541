"""Connection to the database holding daily points commitments"""
import logging
from contextlib import contextmanager
from typing import Iterator, Optional

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from visibility_points.db_config import DatabaseManager
from visibility_points.exceptions import StorageError
from visibility_points.models.db import Base

logger = logging.getLogger(__name__)

class PointsDatabase:
    """Engine and sessions for the claimable points tables"""

    def __init__(self):
        self.engine: Optional[Engine] = None
        self._sessions: Optional[sessionmaker] = None

    def connect(self, connection_string: Optional[str] = None) -> None:
        """
        Open the points database and create missing tables.

        Args:
            connection_string: SQLAlchemy URL, resolved from settings when omitted

        Raises:
            ValueError: If no usable connection settings are configured
            StorageError: If the database cannot be reached
        """
        url = connection_string or DatabaseManager.initialize_from_env()
        try:
            self.engine = create_engine(url)
            Base.metadata.create_all(self.engine)
        except SQLAlchemyError as e:
            logger.error(f"Could not open points database: {e}")
            raise StorageError("Points database is unavailable") from e

        self._sessions = sessionmaker(bind=self.engine)
        logger.info(f"Points database ready at {self.engine.url.render_as_string(hide_password=True)}")

    @contextmanager
    def session(self) -> Iterator[Session]:
        """Session committed on success and rolled back if the block raises"""
        if self._sessions is None:
            raise RuntimeError("Points database is not connected")

        session = self._sessions()
        try:
            yield session
            session.commit()
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    def close(self) -> None:
        if self.engine is not None:
            self.engine.dispose()
        self.engine = None
        self._sessions = None

db = PointsDatabase()
