"""
Repository for ProjectConfig database operations
"""

from sqlalchemy.exc import SQLAlchemyError
from buildversioning.db import db
from buildversioning.models.project import Project
from buildversioning.models.projectconfig import ProjectConfig


class ProjectConfigRepository:
    """Repository for ProjectConfig database operations"""

    @staticmethod
    def get_by_id(id):
        """Get ProjectConfig by ID"""
        return db.session.get(ProjectConfig, id)

    @staticmethod
    def get_by_name(name, project_name=None):
        """Get ProjectConfig by name.

        Names are only unique within a project. The config owned by
        ``project_name`` wins; otherwise the oldest row with that name is
        returned and the caller checks ownership.
        """
        query = ProjectConfig.query.filter(ProjectConfig.name == name)
        if project_name is not None:
            owned = (
                query.join(ProjectConfig.project)
                .filter(Project.name == project_name)
                .populate_existing()
                .first()
            )
            if owned is not None:
                return owned
        return query.order_by(ProjectConfig.id).populate_existing().first()

    @staticmethod
    def get_for_project(project_id):
        """Get all configs of a project"""
        return ProjectConfig.query.filter(ProjectConfig.project_id == project_id).order_by(ProjectConfig.name).all()

    @staticmethod
    def create(**kwargs):
        """Create new ProjectConfig record"""
        try:
            item = ProjectConfig(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e
