"""测试展示格式化工具."""

from datetime import timedelta

from conftest import NOW, make_record

from syncwatch.utils.formatting import (
    elapsed_display,
    epoch_millis,
    format_elapsed_time,
    format_optional_timestamp,
    format_per_mb,
    format_seconds,
    format_size,
    format_timestamp,
    seconds_since,
    status_label,
)


class TestFormatSeconds:
    """测试时长格式化."""

    def test_seconds_only(self) -> None:
        """不足一分钟只显示秒."""
        assert format_seconds(0) == "0s"
        assert format_seconds(45) == "45s"

    def test_minutes_and_seconds(self) -> None:
        """不足一小时显示分秒."""
        assert format_seconds(65) == "1m 5s"
        assert format_seconds(3599) == "59m 59s"

    def test_hours(self) -> None:
        """一小时以上显示时分秒."""
        assert format_seconds(3600) == "1h 0m 0s"
        assert format_seconds(7384) == "2h 3m 4s"


class TestFormatSize:
    """测试大小格式化."""

    def test_kilobytes(self) -> None:
        """不足 1 MB 显示 KB."""
        assert format_size(500) == "500 KB"

    def test_megabytes(self) -> None:
        """MB 保留一位小数."""
        assert format_size(1536) == "1.5 MB"
        assert format_size(2048) == "2.0 MB"

    def test_gigabytes(self) -> None:
        """GB 保留两位小数."""
        assert format_size(1024 * 1024) == "1.00 GB"


class TestFormatTimestamp:
    """测试相对时间格式化."""

    def test_just_now(self) -> None:
        """一分钟以内显示 Just now."""
        assert format_timestamp(NOW - timedelta(seconds=30), NOW) == "Just now"

    def test_minutes_ago(self) -> None:
        """一小时以内显示分钟."""
        assert format_timestamp(NOW - timedelta(minutes=5), NOW) == "5m ago"

    def test_hours_ago(self) -> None:
        """一天以内显示小时."""
        assert format_timestamp(NOW - timedelta(hours=3), NOW) == "3h ago"

    def test_older_shows_date(self) -> None:
        """超过一天显示日期时间或短日期."""
        value = NOW - timedelta(days=2)
        assert format_timestamp(value, NOW) == "2025-01-13 12:00:00"
        assert format_timestamp(value, NOW, short_date=True) == "2025-01-13"

    def test_naive_datetime_treated_as_utc(self) -> None:
        """无时区时间按 UTC 处理."""
        naive = (NOW - timedelta(minutes=2)).replace(tzinfo=None)
        assert format_timestamp(naive, NOW) == "2m ago"

    def test_missing_value_placeholder(self) -> None:
        """缺失时间显示占位符."""
        assert format_optional_timestamp(None, NOW) == "-"


class TestFormatPerMb:
    """测试每 MB 耗时格式化."""

    def test_under_a_minute(self) -> None:
        """不足一分钟四舍五入到秒."""
        assert format_per_mb(12.5) == "13s"
        assert format_per_mb(12.4) == "12s"

    def test_over_a_minute(self) -> None:
        """65 秒每 MB 显示为 1m 5s."""
        assert format_per_mb(130 / 2) == "1m 5s"

    def test_rounding_carries_into_minutes(self) -> None:
        """四舍五入到 60 秒时进位为分钟，不出现 60s."""
        assert format_per_mb(119.6) == "2m 0s"
        assert format_per_mb(59.6) == "1m 0s"


class TestElapsedTime:
    """测试耗时展示规则."""

    def test_syncing_record_is_live(self) -> None:
        """同步中的记录按 started_at 实时计算."""
        record = make_record("r", "syncing", started_at=NOW - timedelta(seconds=65))
        assert format_elapsed_time(record, NOW) == "1m 5s"
        assert format_elapsed_time(record, NOW + timedelta(seconds=1)) == "1m 6s"

    def test_ended_record_uses_authoritative_value(self) -> None:
        """已结束的记录使用服务端耗时."""
        record = make_record(
            "r",
            "synced",
            started_at=NOW - timedelta(hours=1),
            ended_at=NOW - timedelta(minutes=59),
            elapsed_seconds=42,
        )
        assert format_elapsed_time(record, NOW) == "42s"

    def test_queued_with_zero_elapsed(self) -> None:
        """排队中且耗时为 0 显示 0s."""
        record = make_record("r", "queued", elapsed_seconds=0)
        assert format_elapsed_time(record, NOW) == "0s"

    def test_no_timing_data(self) -> None:
        """没有计时数据显示占位符."""
        assert format_elapsed_time(make_record("r", "unknown"), NOW) == "-"

    def test_failed_and_unsynced_always_placeholder(self) -> None:
        """失败和未同步的记录不显示耗时，无论 started_at."""
        started = NOW - timedelta(seconds=65)
        for status in ("failed", "unsynced"):
            record = make_record("r", status, started_at=started, elapsed_seconds=65)
            assert elapsed_display(record, NOW) == "-"


class TestHelpers:
    """测试辅助函数."""

    def test_epoch_millis_missing_is_zero(self) -> None:
        """缺失时间的排序键为 0."""
        assert epoch_millis(None) == 0
        assert epoch_millis(NOW) == int(NOW.timestamp() * 1000)

    def test_seconds_since_never_negative(self) -> None:
        """未来的开始时间不会得到负数."""
        assert seconds_since(NOW + timedelta(seconds=5), NOW) == 0

    def test_status_label(self) -> None:
        """状态标签为大写."""
        assert status_label("syncing") == "SYNCING"
