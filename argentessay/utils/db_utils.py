import logging

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm.exc import StaleDataError

from argentessay.extensions import db
from argentessay.utils.exceptions import PersistenceError

logger = logging.getLogger(__name__)


def commit():
    """Commit the session as one unit; roll back on failure.

    Version conflicts propagate as ``StaleDataError`` (409), any other
    store failure becomes a ``PersistenceError``.
    """
    try:
        db.session.commit()
    except StaleDataError:
        db.session.rollback()
        raise
    except SQLAlchemyError as e:
        db.session.rollback()
        logger.error("Commit failed: %s", e)
        raise PersistenceError() from e
