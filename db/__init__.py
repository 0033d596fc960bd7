"""
db/__init__.py
Helper script to initialize the violation database.

Usage:
    python -m db           # creates tables
    python -m db --reset   # drops and recreates all tables
"""

from db.session import create_all_tables, get_engine
from db.models import Base
from utils.logger import get_logger

logger = get_logger("db.db_init")


def main(reset: bool = False):
    if reset:
        logger.warning("Dropping all tables...")
        Base.metadata.drop_all(bind=get_engine())
    logger.info("Creating database tables...")
    create_all_tables()
    logger.info("DB init complete.")

