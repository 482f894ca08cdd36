from typing import AsyncGenerator

from fastapi import Request
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.logging import get_logger

logger = get_logger(__name__)


async def get_async_session(request: Request) -> AsyncGenerator[AsyncSession, None]:
    """リクエスト単位のセッションを提供する依存性

    起動時に app.state.database へ登録された Database からセッションを生成し、
    正常終了時にコミット、例外時にロールバックする。
    """
    database = request.app.state.database
    async with database.session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
