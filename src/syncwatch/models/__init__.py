"""数据模型."""

from syncwatch.models.repo import (
    DashboardSnapshot,
    RepoMetadata,
    RepoStatus,
    RepoSyncRecord,
    SyncConfigSummary,
)
from syncwatch.models.settings import (
    ApplySettingsResult,
    ReadOnlySettingComparison,
    SettingComparison,
    SettingDefinition,
    SettingsCategory,
    SyncConfigComparisonResult,
)
from syncwatch.models.worker import WorkerActionResult, WorkerStatus

__all__ = [
    "ApplySettingsResult",
    "DashboardSnapshot",
    "ReadOnlySettingComparison",
    "RepoMetadata",
    "RepoStatus",
    "RepoSyncRecord",
    "SettingComparison",
    "SettingDefinition",
    "SettingsCategory",
    "SyncConfigComparisonResult",
    "SyncConfigSummary",
    "WorkerActionResult",
    "WorkerStatus",
]
