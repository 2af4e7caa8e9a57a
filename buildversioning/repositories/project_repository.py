"""
Repository for Project database operations
"""

from sqlalchemy import update
from sqlalchemy.exc import SQLAlchemyError
from buildversioning.db import db
from buildversioning.models.project import Project


class ProjectRepository:
    """Repository for Project database operations"""

    @staticmethod
    def get_all():
        """Get all Project records"""
        return Project.query.order_by(Project.name).all()

    @staticmethod
    def get_by_id(id):
        """Get Project by ID"""
        return db.session.get(Project, id)

    @staticmethod
    def get_by_name(name):
        """Get Project by exact (case-sensitive) name, refreshing any cached instance"""
        return Project.query.filter(Project.name == name).populate_existing().first()

    @staticmethod
    def update_build_number(id, build_number, date):
        """Set build number and issue date on one project row, keyed by id.

        Does not commit. Returns the number of rows matched.
        """
        result = db.session.execute(
            update(Project)
            .where(Project.id == id)
            .values(build_number=build_number, date_build_number_updated=date)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount

    @staticmethod
    def create(**kwargs):
        """Create new Project record"""
        try:
            item = Project(**kwargs)
            db.session.add(item)
            db.session.commit()
            db.session.refresh(item)
            return item
        except SQLAlchemyError as e:
            db.session.rollback()
            raise e

    @staticmethod
    def count():
        """Count total Project records"""
        return Project.query.count()
