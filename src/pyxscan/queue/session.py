"""Engine and session factory for the job store."""

from __future__ import annotations

import logging
import time

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session, sessionmaker

from pyxscan.queue.models import Base

logger = logging.getLogger(__name__)


def create_db_engine(database_url: str) -> Engine:
    return create_engine(database_url, pool_pre_ping=True)


def create_session_factory(engine: Engine) -> sessionmaker[Session]:
    return sessionmaker(bind=engine, autoflush=False, expire_on_commit=False, class_=Session)


def init_db(engine: Engine) -> None:
    """Create the ``skills`` and ``scan_jobs`` tables if they do not exist."""
    started = time.perf_counter()
    try:
        Base.metadata.create_all(bind=engine)
    except Exception:
        logger.exception("Creating job store tables failed")
        raise
    logger.info(
        "Job store ready at %s (%.1f ms)",
        engine.url.render_as_string(hide_password=True),
        (time.perf_counter() - started) * 1000,
    )
