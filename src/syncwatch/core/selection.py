"""设置选择与应用 - 维护待同步的设置集合并执行部分失败可容忍的应用."""

import inspect
import logging
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field

from syncwatch.core.client import DashboardError
from syncwatch.core.comparison import SettingsComparisonModel
from syncwatch.models.settings import FailedSetting

logger = logging.getLogger(__name__)


@dataclass
class Notice:
    """一条临时提示."""

    level: str  # success | warning | error | info
    message: str


@dataclass
class ApplyConfirmation:
    """应用前交给用户确认的内容."""

    count: int
    source_org: str
    target_org: str
    keys: list[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        """确认提示文本."""
        return (
            f"Apply {self.count} setting(s) from {self.source_org} "
            f"to {self.target_org}?\n\n"
            "This will overwrite the target organization's settings."
        )


class ApplyOutcomeKind:
    """应用结果类型."""

    EMPTY = "empty"
    CANCELLED = "cancelled"
    SUCCESS = "success"
    PARTIAL = "partial"
    ERROR = "error"


@dataclass
class ApplyOutcome:
    """一次应用的结果."""

    kind: str
    notice: Notice | None = None
    applied: list[str] = field(default_factory=list)
    failed: list[FailedSetting] = field(default_factory=list)


ConfirmCallback = Callable[[ApplyConfirmation], bool | Awaitable[bool]]


class SelectionEngine:
    """选择集合与应用流程."""

    def __init__(self, model: SettingsComparisonModel) -> None:
        self.model = model
        self.selected: set[str] = set()
        self.applying = False
        # 对比重新加载时清空选择
        model.add_reload_listener(self.clear_selection)

    def is_eligible(self, key: str) -> bool:
        """可同步且源/目标不同的设置才能被选中."""
        comparison = self.model.comparison(key)
        return bool(comparison and comparison.can_sync and not comparison.is_equal)

    def toggle_setting(self, key: str) -> bool:
        """
        切换一个设置的选择.

        已选中则移除；未选中且可选时加入；否则不做任何事.

        Returns:
            切换后是否处于选中状态
        """
        if key in self.selected:
            self.selected.discard(key)
            return False
        if not self.is_eligible(key):
            return False
        self.selected.add(key)
        return True

    def select_all_different(self) -> int:
        """选中所有可同步且不同的设置."""
        if not self.model.result:
            return 0
        for item in self.model.result.settings:
            if item.can_sync and not item.is_equal:
                self.selected.add(item.key)
        return len(self.selected)

    def clear_selection(self) -> None:
        """清空选择."""
        self.selected.clear()

    def ordered_selection(self) -> list[str]:
        """按对比结果中的顺序返回已选设置."""
        if not self.model.result:
            return []
        return [
            item.key for item in self.model.result.settings if item.key in self.selected
        ]

    async def apply(self, confirm: ConfirmCallback) -> ApplyOutcome:
        """
        把选中的设置应用到目标组织.

        Args:
            confirm: 确认回调，返回 False 时不发送任何请求

        Returns:
            应用结果；部分失败时失败项在重新加载后保持选中
        """
        if not self.selected:
            return ApplyOutcome(
                kind=ApplyOutcomeKind.EMPTY,
                notice=Notice("warning", "No settings selected"),
            )

        result = self.model.result
        sync_id = self.model.sync_id
        if not result or not sync_id or result.sync_id != sync_id:
            return ApplyOutcome(
                kind=ApplyOutcomeKind.ERROR,
                notice=Notice("error", "No sync configuration selected"),
            )

        keys = self.ordered_selection()
        confirmation = ApplyConfirmation(
            count=len(keys),
            source_org=result.source_org,
            target_org=result.target_org,
            keys=keys,
        )
        decision = confirm(confirmation)
        if inspect.isawaitable(decision):
            decision = await decision
        if not decision:
            logger.info("用户取消了设置应用")
            return ApplyOutcome(kind=ApplyOutcomeKind.CANCELLED)

        logger.info(f"开始应用设置: sync={sync_id}, 数量={len(keys)}")
        self.applying = True
        try:
            apply_result = await self.model.client.apply_settings(sync_id, keys)
        except DashboardError as e:
            logger.error(f"应用设置失败: {e}")
            return ApplyOutcome(
                kind=ApplyOutcomeKind.ERROR,
                notice=Notice("error", f"Failed to apply settings: {e}"),
            )
        finally:
            self.applying = False

        if apply_result.success and not apply_result.failed:
            logger.info(f"设置应用成功: {len(apply_result.applied)} 项")
            await self.model.refresh()
            return ApplyOutcome(
                kind=ApplyOutcomeKind.SUCCESS,
                notice=Notice(
                    "success",
                    f"Successfully applied {len(apply_result.applied)} setting(s)",
                ),
                applied=apply_result.applied,
            )

        if not apply_result.applied and not apply_result.failed:
            return ApplyOutcome(
                kind=ApplyOutcomeKind.ERROR,
                notice=Notice("error", "Failed to apply settings"),
            )

        failed_keys = [item.key for item in apply_result.failed]
        logger.warning(
            f"设置部分应用: 成功={len(apply_result.applied)}, 失败={failed_keys}"
        )
        if await self.model.refresh():
            self.selected.update(key for key in failed_keys if self.is_eligible(key))
        else:
            # 重新加载失败时无法判断，失败项全部保留
            self.selected.update(failed_keys)

        message = f"Applied {len(apply_result.applied)} setting(s)."
        if failed_keys:
            message += f" Failed: {', '.join(failed_keys)}"
        return ApplyOutcome(
            kind=ApplyOutcomeKind.PARTIAL,
            notice=Notice("warning", message),
            applied=apply_result.applied,
            failed=apply_result.failed,
        )
