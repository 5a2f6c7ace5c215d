"""仓库状态投影 - 持有权威快照并派生统计."""

import logging
import math
from dataclasses import asdict, dataclass
from datetime import datetime

from syncwatch.models.repo import DashboardSnapshot, RepoStatus, RepoSyncRecord
from syncwatch.utils.formatting import (
    PLACEHOLDER,
    ensure_utc,
    format_per_mb,
    format_seconds,
    format_size,
    format_timestamp,
    seconds_since,
)

logger = logging.getLogger(__name__)


@dataclass
class RepoStats:
    """按状态统计的仓库数量."""

    total: int = 0
    unknown: int = 0
    unsynced: int = 0
    queued: int = 0
    syncing: int = 0
    synced: int = 0
    failed: int = 0
    deleted: int = 0  # 仅在 exclude_deleted=False 时计数

    def as_dict(self) -> dict[str, int]:
        """转换为字典."""
        return asdict(self)


@dataclass
class ProjectionSummary:
    """汇总统计."""

    oldest_checked: datetime | None = None  # 同步时间下限（最旧的 last_checked）
    total_size_kb: int = 0
    total_duration_seconds: int = 0
    wall_time_seconds: int = 0  # 按并行度估算的实际耗时
    seconds_per_mb: float | None = None

    def display(self, now: datetime | None = None) -> dict[str, str]:
        """格式化为展示文本，缺失或为 0 的值显示占位符."""
        return {
            "sync_point": format_timestamp(self.oldest_checked, now)
            if self.oldest_checked
            else PLACEHOLDER,
            "total_size": format_size(self.total_size_kb)
            if self.total_size_kb > 0
            else PLACEHOLDER,
            "total_duration": format_seconds(self.total_duration_seconds)
            if self.total_duration_seconds > 0
            else PLACEHOLDER,
            "wall_time": format_seconds(self.wall_time_seconds)
            if self.wall_time_seconds > 0
            else PLACEHOLDER,
            "duration_per_mb": format_per_mb(self.seconds_per_mb)
            if self.seconds_per_mb
            else PLACEHOLDER,
        }


def elapsed_seconds(record: RepoSyncRecord, now: datetime | None = None) -> int | None:
    """
    记录的耗时（秒）.

    已结束记录的 elapsed_seconds 是权威值；同步中的记录实时计算，且从不写回记录.
    """
    if record.ended_at and record.elapsed_seconds is not None:
        return record.elapsed_seconds
    if (
        record.status == RepoStatus.SYNCING
        and record.started_at
        and not record.ended_at
    ):
        return seconds_since(record.started_at, now)
    return record.elapsed_seconds


class RepoProjection:
    """仓库同步记录的权威视图."""

    def __init__(self, wall_time_parallelism: int = 10) -> None:
        self.wall_time_parallelism = wall_time_parallelism
        self._snapshot = DashboardSnapshot()
        self._last_sequence: int | None = None
        self._applied_count = 0
        self._stats = RepoStats()
        self._summary = ProjectionSummary()

    @property
    def snapshot(self) -> DashboardSnapshot:
        """当前快照."""
        return self._snapshot

    @property
    def records(self) -> dict[str, RepoSyncRecord]:
        """当前全部记录（包含已删除的墓碑记录）."""
        return self._snapshot.repos

    @property
    def has_data(self) -> bool:
        """是否已经收到过快照."""
        return self._applied_count > 0

    @property
    def version(self) -> int:
        """本地已应用的快照次数."""
        return self._applied_count

    @property
    def stats(self) -> RepoStats:
        """最近一次应用快照时计算的统计."""
        return self._stats

    @property
    def summary(self) -> ProjectionSummary:
        """最近一次应用快照时计算的汇总."""
        return self._summary

    def get(self, name: str) -> RepoSyncRecord | None:
        """按名称查找记录."""
        return self._snapshot.repos.get(name)

    def sync_name(self, sync_id: str | None) -> str | None:
        """同步配置名称."""
        if not sync_id:
            return None
        sync = self._snapshot.syncs.get(sync_id)
        return sync.name if sync else None

    def apply_snapshot(self, snapshot: DashboardSnapshot) -> bool:
        """
        用完整快照整体替换当前状态.

        带序号的快照如果比已应用的更旧则丢弃.

        Returns:
            是否已应用
        """
        if (
            snapshot.sequence is not None
            and self._last_sequence is not None
            and snapshot.sequence < self._last_sequence
        ):
            logger.warning(
                f"丢弃过期快照: sequence={snapshot.sequence}, "
                f"当前={self._last_sequence}"
            )
            return False

        self._snapshot = snapshot
        if snapshot.sequence is not None:
            self._last_sequence = snapshot.sequence
        self._applied_count += 1

        self._stats = self.compute_stats()
        self._summary = self.compute_summary()
        return True

    def _visible(self, sync_id: str | None = None) -> list[RepoSyncRecord]:
        return [
            record
            for record in self._snapshot.repos.values()
            if not record.is_hidden and (not sync_id or record.sync_id == sync_id)
        ]

    def compute_stats(
        self, exclude_deleted: bool = True, sync_id: str | None = None
    ) -> RepoStats:
        """按状态计数."""
        stats = RepoStats()

        for record in self._snapshot.repos.values():
            if sync_id and record.sync_id != sync_id:
                continue
            if record.archived:
                continue
            if exclude_deleted and record.status == RepoStatus.DELETED:
                continue

            if record.status in RepoStatus.ALL:
                setattr(stats, record.status, getattr(stats, record.status) + 1)
            stats.total += 1

        return stats

    def compute_summary(self, sync_id: str | None = None) -> ProjectionSummary:
        """计算同步时间下限、总大小、总耗时和估算值."""
        summary = ProjectionSummary()

        for record in self._visible(sync_id):
            if record.last_checked:
                checked = ensure_utc(record.last_checked)
                if summary.oldest_checked is None or checked < summary.oldest_checked:
                    summary.oldest_checked = checked

            summary.total_size_kb += record.size_kb

            if record.elapsed_seconds is not None and record.elapsed_seconds > 0:
                summary.total_duration_seconds += record.elapsed_seconds

        if summary.total_duration_seconds > 0:
            summary.wall_time_seconds = math.ceil(
                summary.total_duration_seconds / self.wall_time_parallelism
            )
            if summary.total_size_kb > 0:
                summary.seconds_per_mb = summary.total_duration_seconds / (
                    summary.total_size_kb / 1024
                )

        return summary

    def live_elapsed(self, now: datetime | None = None) -> dict[str, str]:
        """同步中记录的实时耗时（每秒推送）."""
        return {
            name: format_seconds(seconds_since(record.started_at, now))
            for name, record in self._snapshot.repos.items()
            if record.status == RepoStatus.SYNCING
            and record.started_at
            and not record.ended_at
            and not record.is_hidden
        }
