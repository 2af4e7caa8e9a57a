"""
Model: ProjectConfig (the version policy of a project)
"""

from buildversioning.db import db
from buildversioning.constants import MAX_NAME_LENGTH, MAX_DESCRIPTION_LENGTH
from buildversioning.utils import join_version_parts


class ProjectConfig(db.Model):
    __tablename__ = "project_config"

    id = db.Column(db.Integer, primary_key=True)
    project_id = db.Column(db.Integer, db.ForeignKey("project.id"), nullable=False)
    name = db.Column(db.String(MAX_NAME_LENGTH), nullable=False)
    description = db.Column(db.String(MAX_DESCRIPTION_LENGTH))

    # Slot (1-4) of the generated version that receives the build number
    generated_build_number_position = db.Column(db.Integer, nullable=False, default=3)
    generated_version_part1 = db.Column(db.Integer, nullable=False, default=1)
    generated_version_part2 = db.Column(db.Integer, nullable=False, default=0)
    generated_version_part3 = db.Column(db.Integer, nullable=False, default=0)
    generated_version_part4 = db.Column(db.Integer, nullable=False, default=0)

    product_version_part1 = db.Column(db.Integer, nullable=False, default=1)
    product_version_part2 = db.Column(db.Integer, nullable=False, default=0)
    product_version_part3 = db.Column(db.Integer, nullable=False, default=0)
    product_version_part4 = db.Column(db.Integer, nullable=False, default=0)

    release_type = db.Column(db.String(MAX_NAME_LENGTH), nullable=False, default="PreRelease")

    project = db.relationship("Project", backref=db.backref("configs", lazy=True))

    __table_args__ = (
        db.UniqueConstraint("project_id", "name", name="ux_project_config_project_id_name"),
        db.Index("ix_project_config_release_type", "release_type"),
    )

    @property
    def generated_version_parts(self):
        return (
            self.generated_version_part1,
            self.generated_version_part2,
            self.generated_version_part3,
            self.generated_version_part4,
        )

    @property
    def product_version_parts(self):
        return (
            self.product_version_part1,
            self.product_version_part2,
            self.product_version_part3,
            self.product_version_part4,
        )

    def to_dict(self):
        return {
            "id": self.id,
            "project_id": self.project_id,
            "name": self.name,
            "description": self.description,
            "generated_build_number_position": self.generated_build_number_position,
            "generated_version": join_version_parts(self.generated_version_parts),
            "product_version": join_version_parts(self.product_version_parts),
            "release_type": self.release_type,
        }
