"""核心业务逻辑."""

from syncwatch.core.client import DashboardClient, DashboardConfig
from syncwatch.core.comparison import SettingsComparisonModel
from syncwatch.core.live import LiveUpdateChannel
from syncwatch.core.projection import RepoProjection
from syncwatch.core.selection import SelectionEngine
from syncwatch.core.workers import WorkerTracker

__all__ = [
    "DashboardClient",
    "DashboardConfig",
    "LiveUpdateChannel",
    "RepoProjection",
    "SelectionEngine",
    "SettingsComparisonModel",
    "WorkerTracker",
]
