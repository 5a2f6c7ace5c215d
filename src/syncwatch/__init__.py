"""SyncWatch - 仓库迁移监控面板核心."""
