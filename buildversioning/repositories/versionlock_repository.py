"""
Repository for VersionLock rows
"""

import logging

from sqlalchemy import update
from sqlalchemy.exc import IntegrityError
from buildversioning.db import db
from buildversioning.models.versionlock import VersionLock
from buildversioning.utils import now_utc

logger = logging.getLogger("main")


class VersionLockRepository:
    """Repository for VersionLock rows"""

    @staticmethod
    def ensure(resource):
        """Create the lock row for a resource if it does not exist yet (commits)"""
        if db.session.get(VersionLock, resource) is not None:
            return
        try:
            db.session.add(VersionLock(resource=resource))
            db.session.commit()
            logger.info(f"Created lock resource {resource}")
        except IntegrityError:
            # Another process created it first
            db.session.rollback()

    @staticmethod
    def touch(connection, resource):
        """Write the lock row inside the caller's transaction.

        Returns the number of rows matched (0 when the row is missing).
        """
        result = connection.execute(
            update(VersionLock.__table__)
            .where(VersionLock.__table__.c.resource == resource)
            .values(acquired_at=now_utc())
        )
        return result.rowcount

    @staticmethod
    def insert(connection, resource):
        connection.execute(VersionLock.__table__.insert().values(resource=resource, acquired_at=now_utc()))
