"""仓库操作 - 重试、查看日志、错误详情和仓库详情."""

import logging
from dataclasses import dataclass, field
from datetime import datetime

from syncwatch.core.client import DashboardClient, DashboardError, DashboardHTTPError
from syncwatch.core.projection import RepoProjection
from syncwatch.core.selection import Notice
from syncwatch.models.repo import RepoSyncRecord
from syncwatch.utils.formatting import format_size, format_timestamp, status_label

logger = logging.getLogger(__name__)

NO_ERROR_MESSAGE = "No error message available"
UNKNOWN = "Unknown"

# 日志接口在没有缓存日志时返回的文本标记
_LOG_MISSING_MARKERS = ("No migration ID found", "Error")


@dataclass
class RepoLogsView:
    """日志弹窗内容."""

    name: str
    title: str
    content: str
    downloaded: bool = False
    error: bool = False


@dataclass
class RepoDetails:
    """仓库详情."""

    name: str
    status: str
    description: str
    sync_name: str
    source_url: str
    target_url: str
    visibility: str
    primary_language: str
    languages: str
    size: str
    commits: str
    branches: str
    archived: str
    last_pushed: str | None = None
    last_checked: str | None = None
    language_shares: list[tuple[str, float]] = field(default_factory=list)


def language_percentages(record: RepoSyncRecord) -> list[tuple[str, float]]:
    """语言占比（百分比保留一位小数）."""
    if not record.metadata or not record.metadata.languages:
        return []
    total = sum(lang.size for lang in record.metadata.languages)
    if total <= 0:
        return [(lang.name, 0.0) for lang in record.metadata.languages]
    return [
        (lang.name, round(lang.size / total * 100, 1))
        for lang in record.metadata.languages
    ]


class RepoActions:
    """针对单个仓库的用户操作."""

    def __init__(self, client: DashboardClient, projection: RepoProjection) -> None:
        self.client = client
        self.projection = projection

    async def retry_repo(self, name: str) -> Notice:
        """请求服务端重试迁移，状态变化由下一次快照带回."""
        try:
            await self.client.retry_repo(name)
        except DashboardHTTPError as e:
            logger.warning(f"重试仓库失败: {name}, {e}")
            return Notice("error", f"Error: {e.message or e.reason}")
        except DashboardError as e:
            logger.warning(f"重试仓库失败: {name}, {e}")
            return Notice("error", f"Error: {e}")

        logger.info(f"已请求重试仓库: {name}")
        return Notice("success", f"Retry requested for {name}")

    def view_error(self, name: str) -> str:
        """失败记录保存的错误信息."""
        record = self.projection.get(name)
        if record and record.error_message:
            return record.error_message
        return NO_ERROR_MESSAGE

    async def view_logs(self, name: str) -> RepoLogsView:
        """
        读取迁移日志.

        日志缺失时先请求服务端下载，再重新读取一次.
        """
        title = f"Migration Logs - {name}"
        try:
            content = await self.client.get_logs(name)
            if not any(marker in content for marker in _LOG_MISSING_MARKERS):
                return RepoLogsView(name=name, title=title, content=content)
        except DashboardError as e:
            logger.info(f"日志不可用，尝试下载: {name}, {e}")

        try:
            await self.client.download_logs(name)
            content = await self.client.get_logs(name)
        except DashboardHTTPError as e:
            logger.warning(f"下载日志失败: {name}, {e}")
            return RepoLogsView(
                name=name,
                title=title,
                content=f"Error: HTTP {e.status_code} {e.reason}",
                error=True,
            )
        except DashboardError as e:
            logger.warning(f"下载日志失败: {name}, {e}")
            return RepoLogsView(name=name, title=title, content=f"Error: {e}", error=True)

        return RepoLogsView(name=name, title=title, content=content, downloaded=True)

    def repo_details(self, name: str, now: datetime | None = None) -> RepoDetails | None:
        """仓库详情，不存在时返回 None."""
        record = self.projection.get(name)
        if not record:
            return None

        snapshot = self.projection.snapshot
        sync = snapshot.syncs.get(record.sync_id or "")
        if sync:
            source_host, source_org = sync.source.host, sync.source.org
            target_host, target_org = sync.target.host, sync.target.org
        else:
            source_host = snapshot.source_host or "unknown"
            source_org = snapshot.source_org or "unknown"
            target_host = snapshot.target_host or "unknown"
            target_org = snapshot.target_org or "unknown"

        metadata = record.metadata
        shares = language_percentages(record)
        languages = (
            ", ".join(f"{lang} ({percent:.1f}%)" for lang, percent in shares)
            if shares
            else UNKNOWN
        )

        return RepoDetails(
            name=record.name,
            status=status_label(record.status),
            description=(metadata.description if metadata else None) or "No description",
            sync_name=sync.name if sync else UNKNOWN,
            source_url=f"https://{source_host}/{source_org}/{record.name}",
            target_url=f"https://{target_host}/{target_org}/{record.name}",
            visibility=record.visibility or UNKNOWN,
            primary_language=(metadata.primary_language if metadata else None) or UNKNOWN,
            languages=languages,
            size=format_size(record.size_kb) if record.size_kb else UNKNOWN,
            commits=f"{metadata.commit_count:,}"
            if metadata and metadata.commit_count is not None
            else UNKNOWN,
            branches=str(metadata.branch_count)
            if metadata and metadata.branch_count is not None
            else UNKNOWN,
            archived="Yes" if metadata and metadata.archived else "No",
            last_pushed=format_timestamp(record.last_pushed, now)
            if record.last_pushed
            else None,
            last_checked=format_timestamp(record.last_checked, now)
            if record.last_checked
            else None,
            language_shares=shares,
        )
