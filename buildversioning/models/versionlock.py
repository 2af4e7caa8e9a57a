"""Lock resource rows.

A generation transaction on stores without a native named lock takes the row
lock of its resource here and holds it until commit or rollback.
"""

from buildversioning.db import db
from buildversioning.utils import now_utc


class VersionLock(db.Model):
    __tablename__ = "version_lock"

    resource = db.Column(db.String(255), primary_key=True)
    acquired_at = db.Column(db.DateTime, default=now_utc)
