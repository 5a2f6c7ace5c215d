"""展示格式化工具（纯函数，无状态）."""

import math
from datetime import UTC, datetime

from syncwatch.models.repo import RepoStatus, RepoSyncRecord

PLACEHOLDER = "-"


def _round_half_up(value: float) -> int:
    """四舍五入（.5 向上取整）."""
    return math.floor(value + 0.5)


def ensure_utc(value: datetime) -> datetime:
    """无时区的时间按 UTC 处理."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


def epoch_millis(value: datetime | None) -> int:
    """转换为毫秒时间戳，缺失时为 0（最旧）."""
    if value is None:
        return 0
    return int(ensure_utc(value).timestamp() * 1000)


def seconds_since(start: datetime, now: datetime | None = None) -> int:
    """从 start 到 now 经过的整秒数（不会为负）."""
    current = now or datetime.now(UTC)
    delta = ensure_utc(current) - ensure_utc(start)
    return max(0, math.floor(delta.total_seconds()))


def format_seconds(seconds: int) -> str:
    """
    将秒数格式化为时长.

    Args:
        seconds: 秒数

    Returns:
        例如 "45s"、"1m 5s"、"2h 3m 4s"
    """
    if seconds < 60:
        return f"{seconds}s"
    minutes = seconds // 60
    secs = seconds % 60
    if minutes < 60:
        return f"{minutes}m {secs}s"
    hours = minutes // 60
    mins = minutes % 60
    return f"{hours}h {mins}m {secs}s"


def format_size(size_kb: int) -> str:
    """将 KB 大小格式化为 KB / MB / GB."""
    if size_kb < 1024:
        return f"{size_kb} KB"
    size_mb = round(size_kb / 1024, 1)
    if size_mb < 1024:
        return f"{size_mb:.1f} MB"
    return f"{size_mb / 1024:.2f} GB"


def format_timestamp(
    value: datetime,
    now: datetime | None = None,
    short_date: bool = False,
) -> str:
    """
    将时间格式化为相对时间.

    一天以内显示相对时间，更早的显示日期.
    """
    value = ensure_utc(value)
    diff = seconds_since(value, now)

    if diff < 60:
        return "Just now"
    if diff < 3600:
        return f"{diff // 60}m ago"
    if diff < 86400:
        return f"{diff // 3600}h ago"

    if short_date:
        return value.strftime("%Y-%m-%d")
    return value.strftime("%Y-%m-%d %H:%M:%S")


def format_optional_timestamp(
    value: datetime | None,
    now: datetime | None = None,
    short_date: bool = False,
) -> str:
    """缺失时间显示占位符."""
    if value is None:
        return PLACEHOLDER
    return format_timestamp(value, now, short_date)


def format_per_mb(seconds_per_mb: float) -> str:
    """每 MB 耗时：不足一分钟显示秒，否则显示分秒."""
    total = _round_half_up(seconds_per_mb)
    if total < 60:
        return f"{total}s"
    minutes, secs = divmod(total, 60)
    return f"{minutes}m {secs}s"


def format_elapsed_time(record: RepoSyncRecord, now: datetime | None = None) -> str:
    """
    计算记录的耗时展示.

    已结束的记录以服务端 elapsed_seconds 为准；同步中的记录按 started_at 实时计算.
    """
    if record.ended_at and record.elapsed_seconds is not None:
        return format_seconds(record.elapsed_seconds)
    if record.status == RepoStatus.SYNCING and record.started_at:
        return format_seconds(seconds_since(record.started_at, now))
    if record.status == RepoStatus.QUEUED and record.elapsed_seconds == 0:
        return "0s"
    return PLACEHOLDER


def elapsed_display(record: RepoSyncRecord, now: datetime | None = None) -> str:
    """表格中的耗时单元格：失败和未同步的记录不显示耗时."""
    if record.status in (RepoStatus.FAILED, RepoStatus.UNSYNCED):
        return PLACEHOLDER
    return format_elapsed_time(record, now)


def status_label(status: str) -> str:
    """状态标签."""
    return status.upper()
