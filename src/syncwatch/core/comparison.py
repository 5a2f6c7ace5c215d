"""设置对比模型 - 持有一个同步配置的源/目标设置对比结果."""

import json
import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any

from syncwatch.core.client import (
    DashboardApplicationError,
    DashboardClient,
    DashboardError,
    DashboardHTTPError,
)
from syncwatch.models.repo import SyncConfigSummary
from syncwatch.models.settings import (
    ReadOnlySettingComparison,
    SettingComparison,
    SettingDefinition,
    SettingsCategory,
    SyncConfigComparisonResult,
)

logger = logging.getLogger(__name__)


def values_equal(a: Any, b: Any) -> bool:
    """
    类型敏感的值比较.

    两者都为空；或同类型的基本值相等；或结构相同的对象/数组.
    布尔值永远不等于数字.
    """
    if a is None or b is None:
        return a is None and b is None
    if isinstance(a, dict) and isinstance(b, dict):
        return a.keys() == b.keys() and all(values_equal(a[k], b[k]) for k in a)
    if isinstance(a, list) and isinstance(b, list):
        return len(a) == len(b) and all(
            values_equal(x, y) for x, y in zip(a, b, strict=True)
        )
    if type(a) is not type(b):
        numbers = (int, float)
        if (
            isinstance(a, numbers)
            and isinstance(b, numbers)
            and not isinstance(a, bool)
            and not isinstance(b, bool)
        ):
            return a == b
        return False
    return a == b


def format_setting_value(value: Any) -> str:
    """普通设置值的展示文本."""
    if value is None:
        return "not set"
    if isinstance(value, bool):
        return "✓ true" if value else "✗ false"
    if isinstance(value, dict | list):
        return json.dumps(value, ensure_ascii=False, separators=(",", ":"))
    if value == "":
        return "empty string"
    return str(value)


def format_enterprise_value(value: Any) -> str:
    """企业安全设置值（enabled / disabled / not_set）."""
    if value is None:
        return "not available"
    if value == "enabled":
        return "✓ enabled"
    if value == "disabled":
        return "✗ disabled"
    if value == "not_set":
        return "not set"
    return str(value)


def format_copilot_value(value: Any) -> str:
    """Copilot 设置值（enabled / disabled / unconfigured / 布尔）."""
    if value is None:
        return "not available"
    if value == "enabled":
        return "✓ enabled"
    if value == "disabled":
        return "✗ disabled"
    if value == "unconfigured":
        return "unconfigured"
    if isinstance(value, bool):
        return "✓ true" if value else "✗ false"
    return str(value)


def format_readonly_value(value: Any, group: str) -> str:
    """只读分组的值展示，enterprise 与 copilot 使用各自的词汇."""
    if group == "enterprise":
        return format_enterprise_value(value)
    if group == "copilot":
        return format_copilot_value(value)
    msg = f"未知的只读分组: {group}"
    raise ValueError(msg)


class ComparisonStatus:
    """对比加载状态."""

    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


@dataclass
class SettingRow:
    """一行设置对比."""

    key: str
    label: str
    description: str
    source_display: str
    target_display: str
    source_missing: bool
    target_missing: bool
    badge: str  # same | different | readonly | view_only
    is_equal: bool
    selectable: bool = False
    selected: bool = False
    deprecated: bool = False


@dataclass
class SettingsGroup:
    """一个对比分组（企业 / Copilot / 普通分类）."""

    id: str
    title: str
    description: str
    read_only: bool
    different_count: int
    collapsed: bool
    rows: list[SettingRow] = field(default_factory=list)


@dataclass
class ExtraInfoCard:
    """仅展示的附加信息."""

    id: str
    title: str
    source_value: str
    target_value: str
    note: str


@dataclass
class ComparisonView:
    """设置对比页的展示数据."""

    status: str
    sync_id: str | None = None
    source_org: str | None = None
    source_host: str | None = None
    target_org: str | None = None
    target_host: str | None = None
    total: int = 0
    same: int = 0
    different: int = 0
    selected: int = 0
    groups: list[SettingsGroup] = field(default_factory=list)
    extra_info: list[ExtraInfoCard] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    error: str | None = None


class SettingsComparisonModel:
    """一个同步配置的设置对比（每次加载整体替换）."""

    def __init__(self, client: DashboardClient) -> None:
        self.client = client
        self.syncs: list[SyncConfigSummary] = []
        self.categories: list[SettingsCategory] = []
        self.sync_id: str | None = None
        self.result: SyncConfigComparisonResult | None = None
        self.status = ComparisonStatus.IDLE
        self.error: str | None = None
        self._definitions: dict[str, SettingDefinition] = {}
        self._reload_listeners: list[Callable[[], None]] = []
        self._load_generation = 0

    def add_reload_listener(self, listener: Callable[[], None]) -> None:
        """注册重新加载时的回调（用于清空选择）."""
        self._reload_listeners.append(listener)

    @property
    def warnings(self) -> list[str]:
        """部分采集失败的提示."""
        if self.result and self.result.warnings:
            return list(self.result.warnings)
        return []

    async def load_syncs(self) -> bool:
        """加载同步配置列表."""
        try:
            self.syncs = await self.client.list_syncs()
        except DashboardError as e:
            logger.error(f"加载同步配置失败: {e}")
            self.error = "Failed to load sync configurations"
            return False
        return True

    def active_syncs(self) -> list[SyncConfigSummary]:
        """未归档的同步配置."""
        return [sync for sync in self.syncs if not sync.archived]

    def find_sync(self, sync_id: str | None) -> SyncConfigSummary | None:
        """按 ID 查找同步配置."""
        return next((sync for sync in self.syncs if sync.id == sync_id), None)

    async def load_categories(self, force: bool = False) -> bool:
        """加载设置定义（只加载一次）."""
        if self.categories and not force:
            return True
        try:
            categories = await self.client.get_categories()
        except DashboardError as e:
            logger.error(f"加载设置分类失败: {e}")
            return False

        self.categories = categories
        self._definitions = {
            definition.key: definition
            for category in categories
            for definition in category.settings
        }
        return True

    def definition(self, key: str) -> SettingDefinition | None:
        """设置定义."""
        return self._definitions.get(key)

    async def select_sync(self, sync_id: str | None) -> bool:
        """切换同步配置，空值回到未选择状态."""
        if not sync_id:
            self._notify_reload()
            self._load_generation += 1
            self.sync_id = None
            self.result = None
            self.error = None
            self.status = ComparisonStatus.IDLE
            return True
        return await self.load(sync_id)

    async def refresh(self) -> bool:
        """重新加载当前同步配置的对比."""
        if not self.sync_id:
            return False
        return await self.load(self.sync_id)

    async def load(self, sync_id: str) -> bool:
        """
        加载设置对比.

        部分采集失败以 warnings 返回并照常展示；整体失败时清空内容并记录错误.
        加载期间切换了同步配置时，旧请求的结果被丢弃.
        """
        self._notify_reload()
        self._load_generation += 1
        generation = self._load_generation
        if sync_id != self.sync_id:
            self.result = None
        self.sync_id = sync_id
        self.status = ComparisonStatus.LOADING
        self.error = None

        try:
            result = await self.client.get_settings_comparison(sync_id)
        except DashboardError as e:
            if generation != self._load_generation:
                logger.info(f"丢弃过期的设置对比错误: sync={sync_id}")
                return False
            if isinstance(e, DashboardApplicationError):
                return self._fail(f"Error: {e}")
            if isinstance(e, DashboardHTTPError):
                return self._fail(f"Failed to load settings: {e.message or e.reason}")
            return self._fail(f"Failed to load settings: {e}")

        if generation != self._load_generation:
            logger.info(f"丢弃过期的设置对比: sync={sync_id}")
            return False

        self.result = self._reconcile(result)
        self.status = ComparisonStatus.LOADED
        if self.result.warnings:
            logger.info(f"设置对比存在部分失败: {len(self.result.warnings)} 条提示")
        return True

    def _fail(self, message: str) -> bool:
        logger.error(message)
        self.result = None
        self.error = message
        self.status = ComparisonStatus.FAILED
        return False

    def _notify_reload(self) -> None:
        for listener in self._reload_listeners:
            listener()

    def _reconcile(
        self, result: SyncConfigComparisonResult
    ) -> SyncConfigComparisonResult:
        """按本地规则重新计算 is_equal 与 can_sync."""
        settings: list[SettingComparison] = []
        for item in result.settings:
            definition = self._definitions.get(item.key)
            can_sync = item.can_sync and not (definition and definition.is_readonly)
            settings.append(
                item.model_copy(
                    update={
                        "is_equal": values_equal(item.source_value, item.target_value),
                        "can_sync": can_sync,
                    }
                )
            )

        return result.model_copy(
            update={
                "settings": settings,
                "enterprise_settings_comparison": self._reconcile_readonly(
                    result.enterprise_settings_comparison
                ),
                "copilot_settings_comparison": self._reconcile_readonly(
                    result.copilot_settings_comparison
                ),
            }
        )

    @staticmethod
    def _reconcile_readonly(
        items: list[ReadOnlySettingComparison] | None,
    ) -> list[ReadOnlySettingComparison] | None:
        if items is None:
            return None
        return [
            item.model_copy(
                update={"is_equal": values_equal(item.source_value, item.target_value)}
            )
            for item in items
        ]

    def comparison(self, key: str) -> SettingComparison | None:
        """按 key 查找普通设置对比."""
        if not self.result:
            return None
        return next((item for item in self.result.settings if item.key == key), None)

    # ==========================================
    # 展示数据
    # ==========================================

    def view(self, selected: set[str] | None = None) -> ComparisonView:
        """生成设置对比页的展示数据."""
        selected = selected or set()
        if self.status != ComparisonStatus.LOADED or not self.result:
            return ComparisonView(
                status=self.status,
                sync_id=self.sync_id,
                error=self.error,
            )

        result = self.result
        same = sum(1 for item in result.settings if item.is_equal)
        view = ComparisonView(
            status=self.status,
            sync_id=result.sync_id,
            source_org=result.source_org,
            source_host=result.source_host,
            target_org=result.target_org,
            target_host=result.target_host,
            total=len(result.settings),
            same=same,
            different=len(result.settings) - same,
            selected=len(selected),
            warnings=self.warnings,
        )

        if result.enterprise_settings_comparison:
            view.groups.append(self._enterprise_group(result))
        if result.copilot_settings_comparison:
            view.groups.append(self._copilot_group(result.copilot_settings_comparison))

        by_key = {item.key: item for item in result.settings}
        for category in self.categories:
            rows = [
                self._setting_row(definition, by_key[definition.key], selected)
                for definition in category.settings
                if definition.key in by_key
            ]
            if not rows:
                continue
            different = sum(1 for row in rows if not row.is_equal)
            view.groups.append(
                SettingsGroup(
                    id=category.id,
                    title=category.name,
                    description=category.description,
                    read_only=False,
                    different_count=different,
                    collapsed=different == 0,
                    rows=rows,
                )
            )

        view.extra_info = self._extra_info(result)
        return view

    @staticmethod
    def _setting_row(
        definition: SettingDefinition,
        comparison: SettingComparison,
        selected: set[str],
    ) -> SettingRow:
        if definition.is_readonly:
            badge = "readonly"
        elif comparison.is_equal:
            badge = "same"
        else:
            badge = "different"

        return SettingRow(
            key=comparison.key,
            label=definition.label,
            description=definition.description,
            source_display=format_setting_value(comparison.source_value),
            target_display=format_setting_value(comparison.target_value),
            source_missing=comparison.source_value is None,
            target_missing=comparison.target_value is None,
            badge=badge,
            is_equal=comparison.is_equal,
            selectable=comparison.can_sync and not comparison.is_equal,
            selected=comparison.key in selected,
            deprecated=definition.deprecated,
        )

    @staticmethod
    def _readonly_rows(
        items: list[ReadOnlySettingComparison], group: str
    ) -> list[SettingRow]:
        rows = []
        for item in items:
            # 企业设置区分相同/仅可查看，Copilot 设置一律标为只读
            if group == "enterprise":
                badge = "same" if item.is_equal else "view_only"
            else:
                badge = "readonly"
            rows.append(
                SettingRow(
                    key=item.key,
                    label=item.label,
                    description=item.description,
                    source_display=format_readonly_value(item.source_value, group),
                    target_display=format_readonly_value(item.target_value, group),
                    source_missing=item.source_value is None,
                    target_missing=item.target_value is None,
                    badge=badge,
                    is_equal=item.is_equal,
                )
            )
        return rows

    def _enterprise_group(self, result: SyncConfigComparisonResult) -> SettingsGroup:
        items = result.enterprise_settings_comparison or []
        rows = self._readonly_rows(items, "enterprise")
        different = sum(1 for row in rows if not row.is_equal)
        source_ent = result.source_enterprise or "Source Enterprise"
        target_ent = result.target_enterprise or "Target Enterprise"
        return SettingsGroup(
            id="enterprise",
            title="Enterprise Security Settings",
            description=(
                "Code security and analysis settings at enterprise level "
                f"({source_ent} → {target_ent})"
            ),
            read_only=True,
            different_count=different,
            collapsed=different == 0,
            rows=rows,
        )

    def _copilot_group(self, items: list[ReadOnlySettingComparison]) -> SettingsGroup:
        rows = self._readonly_rows(items, "copilot")
        different = sum(1 for row in rows if not row.is_equal)
        return SettingsGroup(
            id="copilot",
            title="GitHub Copilot Settings",
            description="Copilot configuration at organization level (read-only via API)",
            read_only=True,
            different_count=different,
            collapsed=different == 0,
            rows=rows,
        )

    @staticmethod
    def _extra_info(result: SyncConfigComparisonResult) -> list[ExtraInfoCard]:
        cards: list[ExtraInfoCard] = []

        if result.source_copilot_seats:
            source = result.source_copilot_seats
            target = result.target_copilot_seats
            cards.append(
                ExtraInfoCard(
                    id="copilot-seats",
                    title="Copilot Seats",
                    source_value=f"{source.total} total ({source.active_this_cycle} active)",
                    target_value=f"{target.total} total ({target.active_this_cycle} active)"
                    if target
                    else "0 total (0 active)",
                    note="Seat assignments are managed separately",
                )
            )

        if result.source_webhooks_count is not None:
            cards.append(
                ExtraInfoCard(
                    id="webhooks",
                    title="Organization Webhooks",
                    source_value=str(result.source_webhooks_count),
                    target_value=str(result.target_webhooks_count)
                    if result.target_webhooks_count is not None
                    else "-",
                    note="Webhooks must be configured manually",
                )
            )

        if result.source_teams_count is not None:
            cards.append(
                ExtraInfoCard(
                    id="teams",
                    title="Teams",
                    source_value=str(result.source_teams_count),
                    target_value=str(result.target_teams_count)
                    if result.target_teams_count is not None
                    else "-",
                    note="Teams are migrated separately",
                )
            )

        if result.source_actions_permissions:
            source_actions = result.source_actions_permissions
            target_actions = result.target_actions_permissions
            cards.append(
                ExtraInfoCard(
                    id="actions",
                    title="Actions Permissions",
                    source_value=source_actions.enabled_repositories or "N/A",
                    target_value=(
                        target_actions.enabled_repositories
                        if target_actions and target_actions.enabled_repositories
                        else "N/A"
                    ),
                    note="Configure via Settings → Actions",
                )
            )

        return cards
