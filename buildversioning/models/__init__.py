"""
Models package

One module per table:
- project.py
- projectconfig.py
- versionhistory.py
- versionlock.py
"""

from .project import Project
from .projectconfig import ProjectConfig
from .versionhistory import VersionHistoryItem
from .versionlock import VersionLock

__all__ = [
    "Project",
    "ProjectConfig",
    "VersionHistoryItem",
    "VersionLock",
]
