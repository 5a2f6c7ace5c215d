"""SyncWatch 主应用入口."""

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from syncwatch.api import repos, settings, workers, ws
from syncwatch.config import get_settings
from syncwatch.core.runtime import DashboardRuntime
from syncwatch.scheduler import create_scheduler, shutdown_scheduler

# 配置日志
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """应用生命周期管理."""
    app_settings = get_settings()

    logger.info(f"正在连接迁移服务: {app_settings.dashboard_url}")
    runtime = DashboardRuntime(app_settings)
    app.state.runtime = runtime
    await runtime.start()

    logger.info("正在启动定时任务...")
    create_scheduler(app_settings, runtime)

    logger.info("SyncWatch 启动完成！")
    yield

    # 关闭时清理
    logger.info("正在关闭...")
    await shutdown_scheduler()
    await runtime.stop()
    logger.info("SyncWatch 已关闭")


app = FastAPI(
    title="SyncWatch",
    description="仓库迁移监控面板 - 实时状态与组织设置同步",
    version="0.1.0",
    lifespan=lifespan,
)

# CORS 配置
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# 注册路由
app.include_router(repos.router)
app.include_router(workers.router)
app.include_router(settings.router)
app.include_router(ws.router)


@app.get("/")
async def root() -> dict:
    """根路径."""
    return {
        "name": "SyncWatch",
        "version": "0.1.0",
        "description": "仓库迁移监控面板",
    }


@app.get("/health")
async def health() -> dict:
    """健康检查."""
    return {"status": "ok"}


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "syncwatch.main:app",
        host="0.0.0.0",
        port=8000,
        reload=True,
    )
