"""Version history model.

Append-only log, one row per issued build number. Project and config are
copied by id and name without foreign keys so rows outlive their parents.
"""

from buildversioning.db import db
from buildversioning.constants import MAX_NAME_LENGTH, MAX_VERSION_LENGTH
from buildversioning.utils import ensure_utc


class VersionHistoryItem(db.Model):
    __tablename__ = "version_history"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, nullable=False, index=True)
    project_name = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)
    project_config_id = db.Column(db.Integer, nullable=False, index=True)
    project_config_name = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)
    date = db.Column(db.DateTime, nullable=False, index=True)
    build_number = db.Column(db.Integer, nullable=False, index=True)

    version = db.Column(db.String(MAX_VERSION_LENGTH), nullable=False, index=True)
    semantic_version = db.Column(db.String(MAX_VERSION_LENGTH), nullable=False, index=True)
    semantic_version_suffix = db.Column(db.String(MAX_VERSION_LENGTH), nullable=False)
    product_version = db.Column(db.String(MAX_VERSION_LENGTH), nullable=False, index=True)
    release_type = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)

    # Caller context
    build_definition_name = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)
    requested_by = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)
    team_project_name = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, index=True)

    generated_build_number_position = db.Column(db.Integer, nullable=False)
    generated_version_part1 = db.Column(db.Integer, nullable=False)
    generated_version_part2 = db.Column(db.Integer, nullable=False)
    generated_version_part3 = db.Column(db.Integer, nullable=False)
    generated_version_part4 = db.Column(db.Integer, nullable=False)
    product_version_part1 = db.Column(db.Integer, nullable=False)
    product_version_part2 = db.Column(db.Integer, nullable=False)
    product_version_part3 = db.Column(db.Integer, nullable=False)
    product_version_part4 = db.Column(db.Integer, nullable=False)

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "project_name": self.project_name,
            "project_config_id": self.project_config_id,
            "project_config_name": self.project_config_name,
            "date": ensure_utc(self.date).isoformat() if self.date else None,
            "build_number": self.build_number,
            "version": self.version,
            "semantic_version": self.semantic_version,
            "semantic_version_suffix": self.semantic_version_suffix,
            "product_version": self.product_version,
            "release_type": self.release_type,
            "build_definition_name": self.build_definition_name,
            "requested_by": self.requested_by,
            "team_project_name": self.team_project_name,
        }
