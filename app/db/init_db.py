import logging

from app.db.base import Base
from app.db.session import get_engine

# Registers the mapped tables on Base.metadata.
from app.db import models  # noqa: F401

logger = logging.getLogger(__name__)


def init_db() -> None:
    engine = get_engine()
    with engine.begin() as connection:
        Base.metadata.create_all(bind=connection)
    logger.info("Database schema ready on %s", engine.dialect.name)
