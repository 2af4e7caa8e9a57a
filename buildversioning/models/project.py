"""
Model: Project
"""

from buildversioning.db import db
from buildversioning.constants import MAX_NAME_LENGTH, MAX_DESCRIPTION_LENGTH
from buildversioning.utils import ensure_utc, now_utc


class Project(db.Model):
    """A versioned product; build_number is the last number issued"""

    __tablename__ = "project"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(MAX_NAME_LENGTH), unique=True, nullable=False)
    description = db.Column(db.String(MAX_DESCRIPTION_LENGTH))
    build_number = db.Column(db.Integer, nullable=False, default=0)
    date_build_number_updated = db.Column(db.DateTime, nullable=False, default=now_utc)

    __table_args__ = (db.Index("ix_project_date_build_number_updated", "date_build_number_updated"),)

    def to_dict(self):
        return {
            "id": self.id,
            "name": self.name,
            "description": self.description,
            "build_number": self.build_number,
            "date_build_number_updated": (
                ensure_utc(self.date_build_number_updated).isoformat() if self.date_build_number_updated else None
            ),
        }
