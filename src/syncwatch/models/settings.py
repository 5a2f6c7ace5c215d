"""组织设置对比模型."""

from typing import Any

from pydantic import Field

from syncwatch.models.repo import CamelModel


class SettingOption(CamelModel):
    """下拉类设置的可选值."""

    value: str
    label: str


class SettingDefinition(CamelModel):
    """单个设置项定义（静态，只加载一次）."""

    key: str
    label: str
    description: str = ""
    type: str = Field(default="boolean", description="boolean|string|select|readonly")
    deprecated: bool = False
    options: list[SettingOption] | None = None

    @property
    def is_readonly(self) -> bool:
        """只读设置不可同步."""
        return self.type == "readonly"


class SettingsCategory(CamelModel):
    """设置分类."""

    id: str
    name: str
    description: str = ""
    settings: list[SettingDefinition] = Field(default_factory=list)


class SettingComparison(CamelModel):
    """普通设置的源/目标对比."""

    key: str
    source_value: Any = None
    target_value: Any = None
    is_equal: bool = False
    can_sync: bool = False


class ReadOnlySettingComparison(CamelModel):
    """企业 / Copilot 只读设置对比（无 can_sync）."""

    key: str
    label: str = ""
    description: str = ""
    source_value: Any = None
    target_value: Any = None
    is_equal: bool = False


class ActionsPermissions(CamelModel):
    """Actions 权限摘要."""

    enabled_repositories: str | None = None
    allowed_actions: str | None = None


class CopilotSeats(CamelModel):
    """Copilot 席位摘要."""

    total: int = 0
    active_this_cycle: int = 0


class SyncConfigComparisonResult(CamelModel):
    """一个同步配置的源/目标设置对比结果."""

    sync_id: str
    sync_name: str | None = None
    source_org: str = ""
    target_org: str = ""
    source_host: str = ""
    target_host: str = ""
    source_enterprise: str | None = None
    target_enterprise: str | None = None
    fetched_at: str | None = None
    settings: list[SettingComparison] = Field(default_factory=list)
    enterprise_settings_comparison: list[ReadOnlySettingComparison] | None = None
    copilot_settings_comparison: list[ReadOnlySettingComparison] | None = None
    warnings: list[str] | None = Field(default=None, description="部分采集失败的提示")
    error: str | None = None

    # 附加信息（仅展示）
    source_webhooks_count: int | None = None
    target_webhooks_count: int | None = None
    source_teams_count: int | None = None
    target_teams_count: int | None = None
    source_actions_permissions: ActionsPermissions | None = None
    target_actions_permissions: ActionsPermissions | None = None
    source_copilot_seats: CopilotSeats | None = None
    target_copilot_seats: CopilotSeats | None = None


class FailedSetting(CamelModel):
    """应用失败的设置项."""

    key: str
    error: str | None = None


class ApplySettingsResult(CamelModel):
    """应用设置的结果（可能部分成功）."""

    success: bool = False
    applied: list[str] = Field(default_factory=list)
    failed: list[FailedSetting] = Field(default_factory=list)
