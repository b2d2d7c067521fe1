# lus_emi/database_init.py
from sqlalchemy_utils import database_exists, create_database
from lus_emi.database import DATABASE_URL, Base, engine
from lus_emi.core.logging import get_logger

logger = get_logger(__name__)


def ensure_database():
    if not database_exists(DATABASE_URL):
        create_database(DATABASE_URL)
        logger.info("database_created", url=engine.url.render_as_string(hide_password=True))
    else:
        logger.info("database_exists", url=engine.url.render_as_string(hide_password=True))


def create_tables():
    # model modules must be imported so their tables are registered on Base
    from lus_emi import models  # noqa: F401

    Base.metadata.create_all(bind=engine)
