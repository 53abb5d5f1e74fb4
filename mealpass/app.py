"""
MealPass 后端服务 - 主应用入口
提供宿舍订餐与扫码核销的后端API服务

主要功能模块：
- 学生预订/取消餐次，获得一次性核销码
- 食堂扫码核销
- 餐次目录只读查询
- 操作日志记录

技术栈：FastAPI + DuckDB + JWT认证
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, HTTPException
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware

from .api import api_router
from .config.settings import settings
from .core.database import db_manager
from .core.error_handler import (
    application_error_handler,
    create_success_response,
    general_exception_handler,
    http_exception_handler,
    validation_exception_handler,
)
from .core.exceptions import BaseApplicationError, DatabaseError

logging.basicConfig(
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    level=logging.DEBUG if settings.debug else logging.INFO,
)
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""
    try:
        db_manager.init_database()
    except DatabaseError as e:
        # 不让应用启动失败，首次访问数据库时会再次尝试
        logger.error("Database initialization failed: %s", e.message)

    yield

    db_manager.close()


def create_app() -> FastAPI:
    """创建FastAPI应用"""
    app = FastAPI(
        title=settings.api_title,
        version=settings.api_version,
        description="Hostel meal booking and redemption API",
        debug=settings.debug,
        lifespan=lifespan
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 注册异常处理器
    app.add_exception_handler(BaseApplicationError, application_error_handler)
    app.add_exception_handler(HTTPException, http_exception_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(Exception, general_exception_handler)

    app.include_router(api_router, prefix=settings.api_prefix)

    @app.get("/health")
    async def health_check():
        try:
            db_manager.execute_one("SELECT 1")
            database = "connected"
        except DatabaseError as e:
            database = f"error: {e.message}"
        return create_success_response(
            {"version": settings.api_version, "database": database},
            message="healthy" if database == "connected" else "unhealthy",
        )

    @app.get("/")
    async def root():
        return {
            "name": settings.api_title,
            "version": settings.api_version,
        }

    return app


# 应用实例
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(app, host="127.0.0.1", port=8000)
