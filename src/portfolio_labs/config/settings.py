import os
from pathlib import Path
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """全局配置"""

    # 应用
    APP_NAME: str = "Portfolio Labs"
    APP_VERSION: str = "0.1.0"
    DEBUG: bool = os.getenv("DEBUG", "False") == "True"
    EXECUTED_BY: str = "Portfolio Labs - Software Testing Showcase"

    # 服务器
    HOST: str = os.getenv("HOST", "0.0.0.0")
    PORT: int = int(os.getenv("PORT", "8000"))

    # 外部请求
    OUTBOUND_TIMEOUT: float = float(os.getenv("OUTBOUND_TIMEOUT", "10.0"))  # 安全头抓取超时（秒）
    API_TEST_DEFAULT_TIMEOUT_MS: int = 10000
    API_TEST_USER_AGENT: str = "portfolio-labs-api-tester/1.0"
    SCANNER_USER_AGENT: str = "portfolio-labs-security-scanner/1.0"

    # 性能实验室
    MAX_SAMPLES: int = 60  # 图表最多 60 个点
    DEFAULT_VIRTUAL_USERS: int = 10
    DEFAULT_DURATION: int = 30
    SIMULATED_DELAY_PER_SECOND: float = 0.1  # 每秒测试时长对应的模拟等待（秒）
    SIMULATED_DELAY_CAP: float = 5.0
    K6_VERSION: str = "0.50.0"

    # 浏览器自动化
    BROWSER_HEADLESS: bool = True
    BROWSER_VIEWPORT_WIDTH: int = 1280
    BROWSER_VIEWPORT_HEIGHT: int = 720
    BROWSER_USER_AGENT: str = "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36"
    BROWSER_ACTION_TIMEOUT_MS: int = 5000

    # 日志
    LOG_LEVEL: str = os.getenv("LOG_LEVEL", "INFO")
    LOG_FORMAT: str = os.getenv("LOG_FORMAT", "json")

    # 浏览器场景目录
    SCENARIOS_DIR: Path = Path(__file__).parent.parent / "scenarios" / "examples"

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"


settings = Settings()
