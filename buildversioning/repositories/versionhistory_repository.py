"""
Repository for VersionHistoryItem database operations
"""

from buildversioning.db import db
from buildversioning.models.versionhistory import VersionHistoryItem


class VersionHistoryRepository:
    """Append-only access to the version history"""

    @staticmethod
    def add(item):
        """Stage a history row in the current transaction and flush it (no commit)"""
        db.session.add(item)
        db.session.flush()
        return item

    @staticmethod
    def get_recent(limit=10):
        """Most recent history items across all projects"""
        return (
            VersionHistoryItem.query.order_by(VersionHistoryItem.date.desc(), VersionHistoryItem.id.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def get_paginated_for_project(project_name, page=1, per_page=50):
        """History of one project, newest build first"""
        query = VersionHistoryItem.query.filter(VersionHistoryItem.project_name == project_name)
        total = query.count()
        items = (
            query.order_by(VersionHistoryItem.build_number.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return items, total

    @staticmethod
    def get_build_numbers(project_name):
        """All build numbers issued for a project, ascending"""
        rows = (
            db.session.query(VersionHistoryItem.build_number)
            .filter(VersionHistoryItem.project_name == project_name)
            .order_by(VersionHistoryItem.build_number)
            .all()
        )
        return [row[0] for row in rows]

    @staticmethod
    def count():
        """Count total VersionHistoryItem records"""
        return VersionHistoryItem.query.count()
