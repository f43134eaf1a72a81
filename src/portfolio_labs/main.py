
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from portfolio_labs.config.settings import settings
from portfolio_labs.config.logger import setup_logging, logger
from portfolio_labs.api import routes
from portfolio_labs.api.schemas import HealthResponse
from portfolio_labs.core.browser_runner import BrowserRunner
from portfolio_labs.http_client.client import TargetHTTPClient
from portfolio_labs.scenarios.loader import ScenarioLoader


@asynccontextmanager
async def lifespan(app: FastAPI):
    """应用生命周期管理"""

    logger.info("=" * 60)
    logger.info(f"Starting {settings.APP_NAME}...")
    logger.info("=" * 60)

    # 注入全局实例到 API 模块；每个请求各自创建 httpx.AsyncClient 与浏览器
    routes.http_client = TargetHTTPClient()
    routes.browser_runner = BrowserRunner(ScenarioLoader(settings.SCENARIOS_DIR))

    logger.info("Application started successfully", scenarios_dir=str(settings.SCENARIOS_DIR))

    yield

    logger.info(f"Shutting down {settings.APP_NAME}...")
    routes.http_client = None
    routes.browser_runner = None
    logger.info("Application shutdown complete")


def create_app() -> FastAPI:
    """创建 FastAPI 应用"""

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        debug=settings.DEBUG,
        lifespan=lifespan,
    )

    # CORS 中间件
    app.add_middleware(
        CORSMiddleware,
        allow_origins=["*"],
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # 包含路由；/api 前缀供前端使用
    app.include_router(routes.router)
    app.include_router(routes.router, prefix="/api", include_in_schema=False)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        return {
            "status": "ok",
            "version": settings.APP_VERSION,
        }

    @app.get("/")
    async def root():
        return {
            "app": settings.APP_NAME,
            "version": settings.APP_VERSION,
            "docs": "/docs",
            "health": "/health",
            "labs": [
                "/run-performance-test",
                "/run-test",
                "/security-scan",
                "/test-api",
            ],
        }

    @app.exception_handler(Exception)
    async def general_exception_handler(request: Request, exc: Exception):
        logger.error(f"Unhandled exception: {exc}", exc_info=True)
        return JSONResponse(
            status_code=500,
            content={
                "success": False,
                "error": str(exc),
                "errorType": "Unknown Error",
                "message": "Unexpected server error",
                "troubleshooting": [],
            },
        )

    return app


# 创建应用实例
setup_logging()
app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "portfolio_labs.main:app",
        host=settings.HOST,
        port=settings.PORT,
        reload=True,
        log_level=settings.LOG_LEVEL.lower(),
    )
