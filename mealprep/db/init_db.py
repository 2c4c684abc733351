# db/init_db.py
# One-time schema step, run at application start. Stores assume the tables
# already exist and never create them on demand.

import logging

from sqlalchemy.engine import Engine

from mealprep import models  # noqa: F401  registers the tables on Base.metadata
from mealprep.db.session import Base

logger = logging.getLogger(__name__)


def init_db(engine: Engine) -> None:
    logger.info(f"Ensuring database schema on {engine.url.render_as_string(hide_password=True)}")
    Base.metadata.create_all(bind=engine)
