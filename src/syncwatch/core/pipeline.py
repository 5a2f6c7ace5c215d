"""过滤 / 排序流水线 - 把权威记录转换为可展示的有序视图."""

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from datetime import datetime
from typing import Literal

from syncwatch.core.projection import RepoProjection
from syncwatch.models.repo import RepoStatus, RepoSyncRecord
from syncwatch.utils.formatting import (
    PLACEHOLDER,
    elapsed_display,
    epoch_millis,
    format_optional_timestamp,
    format_size,
    seconds_since,
    status_label,
)

SortColumn = Literal[
    "sync",
    "name",
    "status",
    "lastUpdate",
    "lastChecked",
    "startedAt",
    "lastPushed",
    "duration",
    "size",
]
SortDirection = Literal["asc", "desc"]

SORT_COLUMNS: tuple[str, ...] = (
    "sync",
    "name",
    "status",
    "lastUpdate",
    "lastChecked",
    "startedAt",
    "lastPushed",
    "duration",
    "size",
)

NO_RESULTS_MESSAGE = "No repositories found"


def sort_key(
    record: RepoSyncRecord,
    column: str,
    now: datetime | None = None,
    sync_names: Mapping[str, str] | None = None,
) -> str | int:
    """单条记录在指定列上的排序键."""
    if column == "sync":
        name = (sync_names or {}).get(record.sync_id or "", "")
        return name.lower()
    if column == "name":
        return record.name.lower()
    if column == "status":
        return record.status
    if column == "lastUpdate":
        return epoch_millis(record.last_update)
    if column == "lastChecked":
        return epoch_millis(record.last_checked)
    if column == "startedAt":
        return epoch_millis(record.started_at)
    if column == "lastPushed":
        return epoch_millis(record.last_pushed)
    if column == "duration":
        if record.elapsed_seconds is not None:
            return record.elapsed_seconds
        if record.started_at:
            return seconds_since(record.started_at, now)
        return 0
    if column == "size":
        return record.size_kb

    msg = f"不支持的排序列: {column}"
    raise ValueError(msg)


def filter_records(
    records: Iterable[RepoSyncRecord],
    status_filter: Iterable[str],
    name_filter: str = "",
    sync_id: str | None = None,
) -> list[RepoSyncRecord]:
    """按状态集合、名称子串和同步配置过滤，隐藏记录总是先被排除."""
    statuses = set(status_filter)
    needle = name_filter.lower()

    return [
        record
        for record in records
        if not record.is_hidden
        and record.status in statuses
        and (not needle or needle in record.name.lower())
        and (not sync_id or record.sync_id == sync_id)
    ]


def sort_records(
    records: Iterable[RepoSyncRecord],
    column: str,
    direction: SortDirection = "asc",
    now: datetime | None = None,
    sync_names: Mapping[str, str] | None = None,
) -> list[RepoSyncRecord]:
    """稳定排序，相同键保持原有相对顺序."""
    return sorted(
        records,
        key=lambda record: sort_key(record, column, now, sync_names),
        reverse=direction == "desc",
    )


def filter_and_sort(
    records: Iterable[RepoSyncRecord],
    status_filter: Iterable[str],
    name_filter: str,
    sort_column: str,
    sort_direction: SortDirection,
    now: datetime | None = None,
    sync_id: str | None = None,
    sync_names: Mapping[str, str] | None = None,
) -> list[RepoSyncRecord]:
    """过滤后排序（纯函数）."""
    filtered = filter_records(records, status_filter, name_filter, sync_id)
    return sort_records(filtered, sort_column, sort_direction, now, sync_names)


@dataclass
class RepoRow:
    """一行可展示的仓库数据."""

    name: str
    status: str
    status_label: str
    sync_id: str | None
    sync_name: str | None
    last_update: str
    last_checked: str
    started_at: str
    last_pushed: str
    size: str
    elapsed: str
    live: bool  # 耗时是否需要每秒刷新
    title: str | None  # 失败记录的错误信息（悬停提示）
    actions: list[str] = field(default_factory=list)


@dataclass
class ProjectionView:
    """过滤排序后的展示视图."""

    rows: list[RepoRow]
    has_data: bool  # 是否收到过快照（区分"尚无数据"与"全部被过滤"）
    empty: bool = False
    message: str | None = None


def row_actions(record: RepoSyncRecord) -> list[str]:
    """记录可用的操作按钮."""
    actions = ["details"]
    if record.status == RepoStatus.FAILED:
        actions.append("retry")
        if record.error_message:
            actions.append("errors")
        if record.has_logs:
            actions.append("logs")
    elif record.status == RepoStatus.SYNCED:
        actions.append("sync")
        if record.has_logs:
            actions.append("logs")
    return actions


def build_row(
    record: RepoSyncRecord,
    now: datetime | None = None,
    sync_name: str | None = None,
) -> RepoRow:
    """把一条记录转换为展示行."""
    return RepoRow(
        name=record.name,
        status=record.status,
        status_label=status_label(record.status),
        sync_id=record.sync_id,
        sync_name=sync_name,
        last_update=format_optional_timestamp(record.last_update, now),
        last_checked=format_optional_timestamp(record.last_checked, now),
        started_at=format_optional_timestamp(record.started_at, now),
        last_pushed=format_optional_timestamp(record.last_pushed, now, short_date=True),
        size=format_size(record.size_kb) if record.size_kb else PLACEHOLDER,
        elapsed=elapsed_display(record, now),
        live=record.status == RepoStatus.SYNCING
        and record.started_at is not None
        and record.ended_at is None,
        title=record.error_message
        if record.status == RepoStatus.FAILED and record.error_message
        else None,
        actions=row_actions(record),
    )


@dataclass
class ViewState:
    """用户当前的过滤与排序选择."""

    status_filter: set[str] = field(default_factory=lambda: set(RepoStatus.VISIBLE))
    name_filter: str = ""
    sort_column: str = "lastUpdate"
    sort_direction: SortDirection = "desc"
    sync_filter: str | None = None

    def toggle_sort(self, column: str) -> None:
        """同一列切换方向，新列从升序开始."""
        if column not in SORT_COLUMNS:
            msg = f"不支持的排序列: {column}"
            raise ValueError(msg)
        if column == self.sort_column:
            self.sort_direction = "asc" if self.sort_direction == "desc" else "desc"
        else:
            self.sort_column = column
            self.sort_direction = "asc"

    def toggle_status(self, status: str) -> None:
        """切换某个状态的过滤."""
        if status in self.status_filter:
            self.status_filter.discard(status)
        else:
            self.status_filter.add(status)

    def filter_by_stat(self, status: str) -> None:
        """点击统计卡片：all 显示全部，否则只显示该状态."""
        if status == "all":
            self.status_filter = set(RepoStatus.VISIBLE)
        else:
            self.status_filter = {status}

    def set_name_filter(self, value: str) -> None:
        """设置名称过滤."""
        self.name_filter = value

    def clear_name_filter(self) -> None:
        """清除名称过滤."""
        self.name_filter = ""

    def set_sync_filter(self, sync_id: str | None) -> None:
        """设置同步配置过滤，空值表示全部."""
        self.sync_filter = sync_id or None


def build_view(
    projection: RepoProjection,
    state: ViewState,
    now: datetime | None = None,
) -> ProjectionView:
    """根据当前快照和用户选择生成展示视图."""
    sync_names = {
        sync_id: sync.name for sync_id, sync in projection.snapshot.syncs.items()
    }
    records = filter_and_sort(
        projection.records.values(),
        state.status_filter,
        state.name_filter,
        state.sort_column,
        state.sort_direction,
        now=now,
        sync_id=state.sync_filter,
        sync_names=sync_names,
    )

    rows = [
        build_row(record, now, sync_names.get(record.sync_id or ""))
        for record in records
    ]
    if not rows:
        return ProjectionView(
            rows=[],
            has_data=projection.has_data,
            empty=True,
            message=NO_RESULTS_MESSAGE,
        )
    return ProjectionView(rows=rows, has_data=projection.has_data)
