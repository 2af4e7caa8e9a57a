"""
Named exclusive locks scoped to a database transaction.

A lock is acquired on the connection of the running transaction and is
released only by its commit or rollback. ``acquire`` never raises for lock
outcomes; it returns an integer status where anything below zero is a
failure that must abort the enclosing transaction:

    0     granted
    1     granted after waiting for another holder
    -1    timed out
    -2    cancelled
    -3    chosen as deadlock victim
    -999  parameter or other error

The strategy is chosen from the engine dialect: SQL Server application locks,
PostgreSQL transaction-level advisory locks, or a row lock on the
``version_lock`` table everywhere else.
"""
import logging
import math

from sqlalchemy import text
from sqlalchemy.exc import DBAPIError, IntegrityError, OperationalError

from buildversioning.constants import LOCK_MODE, LOCK_OWNER, MAX_LOCK_TIMEOUT_MS
from buildversioning.repositories.versionlock_repository import VersionLockRepository

logger = logging.getLogger("main")


class LockStatus:
    GRANTED = 0
    GRANTED_AFTER_WAIT = 1
    TIMEOUT = -1
    CANCELLED = -2
    DEADLOCK_VICTIM = -3
    ERROR = -999

    @staticmethod
    def is_success(status):
        return status is not None and status >= 0


def clamp_timeout_ms(timeout_ms):
    """Whole milliseconds in 1..MAX_LOCK_TIMEOUT_MS, rounded up.

    Zero would mean "no wait" on SQLite and "wait forever" on PostgreSQL, and
    larger values overflow the store's integer parameter.
    """
    return max(1, int(math.ceil(min(timeout_ms, MAX_LOCK_TIMEOUT_MS))))


def to_timeout_ms(timeout_seconds):
    return clamp_timeout_ms(timeout_seconds * 1000)


class NamedLock:
    """Base class for transaction-scoped named locks"""

    dialect = None

    def acquire(self, connection, resource_name, timeout_ms):
        raise NotImplementedError


class RowNamedLock(NamedLock):
    """Lock by writing the resource row of ``version_lock`` first in the transaction.

    The write lock on the row (or, on SQLite, on the whole database) is held
    until the transaction ends, so every later reader of project state sees
    the previous holder's committed writes.
    """

    def set_timeout(self, connection, timeout_ms):
        logger.debug(f"Lock wait bound not supported on dialect {connection.dialect.name}, using store default")

    def classify(self, error):
        return LockStatus.ERROR

    def acquire(self, connection, resource_name, timeout_ms):
        try:
            self.set_timeout(connection, timeout_ms)
            if VersionLockRepository.touch(connection, resource_name) == 0:
                # Row missing: our write already holds the lock, create it
                VersionLockRepository.insert(connection, resource_name)
        except IntegrityError as e:
            logger.error(f"Lock row for {resource_name} was created concurrently: {e}")
            return LockStatus.ERROR
        except DBAPIError as e:
            status = self.classify(e)
            if status == LockStatus.ERROR:
                logger.error(f"Lock acquisition error on {resource_name}: {e}")
            return status
        return LockStatus.GRANTED


class SqliteNamedLock(RowNamedLock):
    dialect = "sqlite"

    def set_timeout(self, connection, timeout_ms):
        connection.exec_driver_sql(f"PRAGMA busy_timeout = {clamp_timeout_ms(timeout_ms)}")

    def classify(self, error):
        message = str(getattr(error, "orig", error)).lower()
        if isinstance(error, OperationalError) and "locked" in message:
            return LockStatus.TIMEOUT
        return LockStatus.ERROR


class MySqlNamedLock(RowNamedLock):
    dialect = "mysql"

    LOCK_WAIT_TIMEOUT = 1205
    DEADLOCK = 1213

    def set_timeout(self, connection, timeout_ms):
        # InnoDB only accepts whole seconds
        seconds = int(math.ceil(clamp_timeout_ms(timeout_ms) / 1000.0))
        connection.exec_driver_sql(f"SET SESSION innodb_lock_wait_timeout = {seconds}")

    def classify(self, error):
        args = getattr(getattr(error, "orig", None), "args", ())
        code = args[0] if args else None
        if code == self.LOCK_WAIT_TIMEOUT:
            return LockStatus.TIMEOUT
        if code == self.DEADLOCK:
            return LockStatus.DEADLOCK_VICTIM
        return LockStatus.ERROR


class PostgresNamedLock(NamedLock):
    """pg_advisory_xact_lock keyed by a hash of the resource name"""

    dialect = "postgresql"

    SQLSTATE_STATUS = {
        "55P03": LockStatus.TIMEOUT,  # lock_not_available
        "40P01": LockStatus.DEADLOCK_VICTIM,  # deadlock_detected
        "57014": LockStatus.CANCELLED,  # query_canceled
    }

    def acquire(self, connection, resource_name, timeout_ms):
        params = {"resource": resource_name}
        try:
            granted = connection.execute(
                text("SELECT pg_try_advisory_xact_lock(hashtext(:resource))"), params
            ).scalar()
            if granted:
                return LockStatus.GRANTED

            connection.execute(
                text("SELECT set_config('lock_timeout', :timeout, true)"),
                {"timeout": f"{clamp_timeout_ms(timeout_ms)}ms"},
            )
            connection.execute(text("SELECT pg_advisory_xact_lock(hashtext(:resource))"), params)
        except DBAPIError as e:
            orig = getattr(e, "orig", None)
            sqlstate = getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)
            status = self.SQLSTATE_STATUS.get(sqlstate, LockStatus.ERROR)
            if status == LockStatus.ERROR:
                logger.error(f"Advisory lock error on {resource_name}: {e}")
            return status
        return LockStatus.GRANTED_AFTER_WAIT


class MssqlNamedLock(NamedLock):
    """sp_getapplock, whose return code already follows the status contract"""

    dialect = "mssql"

    SQL = (
        "SET NOCOUNT ON; DECLARE @RC int; "
        "EXEC @RC = sp_getapplock @Resource = :resource, @LockMode = :mode, "
        "@LockOwner = :owner, @LockTimeout = :timeout; "
        "SELECT @RC;"
    )

    def acquire(self, connection, resource_name, timeout_ms):
        try:
            status = connection.execute(
                text(self.SQL),
                {
                    "resource": resource_name,
                    "mode": LOCK_MODE,
                    "owner": LOCK_OWNER,
                    "timeout": clamp_timeout_ms(timeout_ms),
                },
            ).scalar()
        except DBAPIError as e:
            logger.error(f"sp_getapplock failed on {resource_name}: {e}")
            return LockStatus.ERROR
        return LockStatus.ERROR if status is None else int(status)


_LOCKS_BY_DIALECT = {
    lock.dialect: lock
    for lock in (SqliteNamedLock, MySqlNamedLock, PostgresNamedLock, MssqlNamedLock)
}


def named_lock_for(dialect_name):
    """Pick the lock strategy for an engine dialect name"""
    lock_class = _LOCKS_BY_DIALECT.get(dialect_name, RowNamedLock)
    return lock_class()
