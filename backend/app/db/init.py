from typing import Optional

from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from app.core.config import settings
from app.core.logging import get_logger
from app.db.base import Base
import app.models  # noqa: F401  テーブル定義を Base.metadata に登録

# このモジュール用のロガーを取得
logger = get_logger(__name__)


class Database:
    """ストアへの接続ハンドル

    エンジンとセッションファクトリを保持する。スキーマの作成は
    init() を起動時に一度だけ明示的に呼び出して行う。
    """

    def __init__(self, url: Optional[str] = None, engine: Optional[AsyncEngine] = None):
        if engine is None:
            engine = create_async_engine(
                url or settings.database_url,
                echo=settings.SQLALCHEMY_ECHO,
            )
        self.engine = engine
        self.session_factory = async_sessionmaker(
            self.engine, class_=AsyncSession, expire_on_commit=False
        )

    async def init(self):
        """データベースの初期化（テーブルが無ければ作成）"""
        try:
            logger.info("Initializing database...")

            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)

            logger.info(f"Table '{settings.TABLE_NAME}' is ready")

        except Exception as e:
            logger.error(f"Database initialization failed: {str(e)}")
            raise

    async def close(self):
        """データベース接続のクローズ"""
        try:
            logger.info("Closing database connections...")
            await self.engine.dispose()
            logger.info("Database connections closed successfully")
        except Exception as e:
            logger.error(f"Error closing database connections: {str(e)}")
            raise
