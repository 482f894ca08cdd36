from pydantic import ConfigDict
from pydantic_settings import BaseSettings
from typing import Optional, Literal

from app.core.exceptions import ConfigurationError


class Settings(BaseSettings):
    # 環境設定
    ENVIRONMENT: Literal["development", "testing", "production"] = "development"

    # アプリケーション設定
    APP_NAME: str = "TechStock API"
    APP_VERSION: str = "1.0.0"
    DEBUG: bool = True
    HOST: str = "0.0.0.0"
    PORT: int = 5555

    # ロギング設定
    LOG_LEVEL: str = "INFO"
    LOG_TO_FILE: bool = False
    LOG_FILE_PATH: str = "logs/techstock_service.log"

    # データベース設定
    TABLE_NAME: str = "ArticlesTable"
    DEV_DATABASE_URL: str = "sqlite+aiosqlite:///./techstock.db"  # ローカル開発用
    DATABASE_URL: Optional[str] = None  # 本番用
    SQLALCHEMY_ECHO: bool = False

    # Qiita API設定
    QIITA_API_URL: str = "https://qiita.com/api/v2"
    QIITA_USER_ID: str = "tech-stock"
    QIITA_ACCESS_TOKEN: Optional[str] = None
    QIITA_PER_PAGE: int = 20
    QIITA_MAX_PAGES: int = 5  # 20件×5ページ=100件まで
    QIITA_REQUEST_TIMEOUT: float = 5.0
    QIITA_RATE_LIMIT_THRESHOLD: int = 10

    # インポート設定
    IMPORT_BATCH_SIZE: int = 5
    IMPORT_BATCH_INTERVAL: float = 0.1  # 秒
    IMPORT_SCHEDULE_ENABLED: bool = False
    IMPORT_SCHEDULE_CRON: str = "30 0 * * *"  # 毎日0時30分

    # CORS設定
    CORS_ORIGINS: list[str] = ["https://d19k2r3nvtvw5r.cloudfront.net", "http://localhost:3000"]
    CORS_ALLOW_CREDENTIALS: bool = True
    CORS_ALLOW_METHODS: list[str] = ["GET", "POST", "PUT", "DELETE", "OPTIONS"]
    CORS_ALLOW_HEADERS: list[str] = ["Content-Type", "Authorization"]
    CORS_EXPOSE_HEADERS: list[str] = ["Content-Length", "X-Request-ID"]
    CORS_MAX_AGE: int = 600

    model_config = ConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True
    )

    @property
    def database_url(self) -> str:
        """環境に応じた接続先を返す"""
        if self.ENVIRONMENT != "production":
            return self.DEV_DATABASE_URL
        if not self.DATABASE_URL:
            raise ConfigurationError("DATABASE_URL", "本番環境では必須です")
        return self.DATABASE_URL

    @property
    def qiita_stocks_url(self) -> str:
        return f"{self.QIITA_API_URL.rstrip('/')}/users/{self.QIITA_USER_ID}/stocks"


settings = Settings()
