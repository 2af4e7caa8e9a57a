"""
Repositories package

Each repository encapsulates database operations for a model:
- project_repository.py
- projectconfig_repository.py
- versionhistory_repository.py
- versionlock_repository.py

Methods used inside the version generation transaction never commit; the
caller owns the transaction boundary.

Usage:
    from buildversioning.repositories.project_repository import ProjectRepository
    project = ProjectRepository.get_by_name("MyProduct")
"""
