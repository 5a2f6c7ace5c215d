"""RepoSyncRecord 仓库同步记录模型."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """服务端 camelCase 字段映射基类."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class RepoStatus:
    """仓库同步状态枚举."""

    UNKNOWN = "unknown"
    UNSYNCED = "unsynced"
    QUEUED = "queued"
    SYNCING = "syncing"
    SYNCED = "synced"
    FAILED = "failed"
    DELETED = "deleted"

    ALL = (UNKNOWN, UNSYNCED, QUEUED, SYNCING, SYNCED, FAILED, DELETED)
    VISIBLE = (UNKNOWN, UNSYNCED, QUEUED, SYNCING, SYNCED, FAILED)


class LanguageShare(CamelModel):
    """仓库语言占比."""

    name: str
    size: int = 0


class RepoMetadata(CamelModel):
    """仓库元数据."""

    size: int | None = Field(default=None, description="大小 (KB)")
    description: str | None = None
    primary_language: str | None = None
    languages: list[LanguageShare] | None = None
    commit_count: int | None = None
    branch_count: int | None = None
    archived: bool | None = Field(default=None, description="源仓库是否归档")


class RepoLogs(CamelModel):
    """迁移日志缓存信息."""

    cached: bool = False


class RepoSyncRecord(CamelModel):
    """单个仓库的迁移同步记录."""

    name: str = Field(description="仓库名（快照内唯一）")
    status: str = Field(
        default=RepoStatus.UNKNOWN,
        description="状态: unknown|unsynced|queued|syncing|synced|failed|deleted",
    )
    id: str | None = Field(default=None, description="多同步配置下的记录 ID")
    sync_id: str | None = Field(default=None, description="关联同步配置")
    visibility: str | None = None
    migration_id: str | None = None
    last_update: datetime | None = None
    last_checked: datetime | None = None
    started_at: datetime | None = None
    ended_at: datetime | None = None
    last_pushed: datetime | None = None
    elapsed_seconds: int | None = Field(default=None, description="服务端确认的耗时")
    error_message: str | None = None
    archived: bool = Field(default=False, description="归档记录不参与展示")
    logs: RepoLogs | None = None
    metadata: RepoMetadata | None = None

    @property
    def is_hidden(self) -> bool:
        """已删除或已归档的记录不参与统计与展示."""
        return self.status == RepoStatus.DELETED or self.archived

    @property
    def size_kb(self) -> int:
        """仓库大小，缺失时为 0."""
        if self.metadata and self.metadata.size:
            return self.metadata.size
        return 0

    @property
    def has_logs(self) -> bool:
        """是否可查看迁移日志."""
        return bool((self.logs and self.logs.cached) or self.migration_id)


class OrgEndpoint(CamelModel):
    """同步配置的一端（组织 + 主机）."""

    org: str = ""
    host: str = ""
    enterprise: str | None = None


class SyncConfigSummary(CamelModel):
    """同步配置摘要."""

    id: str
    name: str
    archived: bool = False
    source: OrgEndpoint = Field(default_factory=OrgEndpoint)
    target: OrgEndpoint = Field(default_factory=OrgEndpoint)


class DashboardSnapshot(CamelModel):
    """服务端推送的完整状态快照（从不是增量）."""

    source_ent: str | None = None
    source_org: str | None = None
    source_host: str | None = None
    target_ent: str | None = None
    target_org: str | None = None
    target_host: str | None = None
    sequence: int | None = Field(default=None, description="单调递增的快照序号")
    repos: dict[str, RepoSyncRecord] = Field(default_factory=dict)
    syncs: dict[str, SyncConfigSummary] = Field(default_factory=dict)
