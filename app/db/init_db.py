import logging

from app import models  # noqa: F401
from app.db.base import Base
from app.db.session import get_engine

logger = logging.getLogger(__name__)


def init_db() -> None:
    engine = get_engine()
    Base.metadata.create_all(bind=engine)
    logger.info("schema ready on %s (%d tables)", engine.dialect.name, len(Base.metadata.tables))
