from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional, Set

from app.core.exceptions import (
    ArticleNotFoundError,
    DatabaseQueryError,
    InvalidParameterError,
    NoFieldsToUpdateError
)
from app.core.logging import get_logger
from app.models import Article


def current_timestamp() -> str:
    """ISO-8601（UTC、ミリ秒、Z表記）の現在時刻"""
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def normalize(values: Dict[str, Any]) -> Dict[str, Any]:
    """派生フィールド（小文字タイトル・小文字タグ）を元のフィールドから再計算する"""
    normalized = dict(values)
    if "title" in normalized:
        normalized["lower_case_title"] = normalized["title"].lower()
    if "tags" in normalized:
        normalized["tags"] = list(normalized["tags"])
        normalized["lower_case_tags"] = [tag.lower() for tag in normalized["tags"]]
    return normalized


class ArticleStore:
    """記事テーブルに対する読み書き操作"""
    logger = get_logger(__name__)

    async def get_optional(self, db: AsyncSession, id: str) -> Optional[Article]:
        """IDで記事を取得（存在しなければNone）"""
        if not id:
            self.logger.error("Article ID is required")
            raise InvalidParameterError("id", id, "記事IDが必要です")

        try:
            self.logger.info(f"Retrieving article by id: {id}")
            return await db.get(Article, id)
        except SQLAlchemyError as e:
            self.logger.error(f"Database error retrieving article by id {id}: {str(e)}")
            raise DatabaseQueryError(f"記事ID取得中にデータベースエラーが発生しました: {str(e)}") from e

    async def get(self, db: AsyncSession, id: str) -> Article:
        """IDで記事を取得"""
        article = await self.get_optional(db, id)
        if article is None:
            self.logger.info(f"Article with id {id} not found")
            raise ArticleNotFoundError(id)
        self.logger.info(f"Found article with id: {id}")
        return article

    async def put(self, db: AsyncSession, values: Dict[str, Any]) -> Article:
        """記事を保存（同じIDの記事があれば上書き）"""
        for field in ("id", "title", "url", "tags", "source", "created_at", "updated_at"):
            if field not in values:
                raise InvalidParameterError(field, None, "記事の保存に必要なフィールドです")

        self.logger.info(f"Putting article: {values['id']}")
        try:
            db_obj = await db.merge(Article(**normalize(values)))
            await db.flush()
            # commitはsessionのfinallyで行う
            return db_obj
        except SQLAlchemyError as e:
            self.logger.error(f"Database error putting article {values['id']}: {str(e)}")
            raise DatabaseQueryError(f"記事の保存中にデータベースエラーが発生しました: {str(e)}") from e

    async def update(self, db: AsyncSession, id: str, patch: Dict[str, Any]) -> Article:
        """指定されたフィールドのみ更新し、updated_at を必ず更新する"""
        if not patch:
            raise NoFieldsToUpdateError(id)

        db_obj = await self.get(db, id)
        self.logger.info(f"Updating article {id}: fields={sorted(patch)}")

        update_data = normalize(patch)
        update_data["updated_at"] = current_timestamp()
        try:
            for field, value in update_data.items():
                setattr(db_obj, field, value)
            await db.flush()
            # commitはsessionのfinallyで行う
            return db_obj
        except SQLAlchemyError as e:
            self.logger.error(f"Database error updating article {id}: {str(e)}")
            raise DatabaseQueryError(f"記事の更新中にデータベースエラーが発生しました: {str(e)}") from e

    async def delete(self, db: AsyncSession, id: str) -> Article:
        """記事を削除し、削除した記事を返す"""
        db_obj = await self.get(db, id)
        self.logger.info(f"Deleting article: {id}")
        try:
            await db.delete(db_obj)
            await db.flush()
            # commitはsessionのfinallyで行う
            return db_obj
        except SQLAlchemyError as e:
            self.logger.error(f"Database error deleting article {id}: {str(e)}")
            raise DatabaseQueryError(f"記事の削除中にデータベースエラーが発生しました: {str(e)}") from e

    async def scan_all(self, db: AsyncSession) -> List[Article]:
        """全記事を取得"""
        self.logger.info("Retrieving all articles")
        try:
            result = await db.execute(select(Article))
            articles = list(result.scalars().all())
            self.logger.info(f"Retrieved {len(articles)} articles")
            return articles
        except SQLAlchemyError as e:
            self.logger.error(f"Error retrieving all articles: {str(e)}")
            raise DatabaseQueryError(f"Failed to retrieve all articles: {str(e)}") from e

    async def scan_ids(self, db: AsyncSession) -> Set[str]:
        """保存済みの記事IDのみを取得"""
        try:
            result = await db.execute(select(Article.id))
            return set(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error retrieving article ids: {str(e)}")
            raise DatabaseQueryError(f"Failed to retrieve article ids: {str(e)}") from e

    async def search(
        self,
        db: AsyncSession,
        title_query: Optional[str] = None,
        tag_query: Optional[str] = None
    ) -> List[Article]:
        """タイトル（前方一致）とタグ（完全一致）で記事を検索

        どちらも空の場合は全件を返す。大文字小文字は区別しない。
        """
        title_query = (title_query or "").lower()
        tag_query = (tag_query or "").lower()
        self.logger.info(f"Searching articles: title='{title_query}', tag='{tag_query}'")

        stmt = select(Article)
        if title_query:
            stmt = stmt.where(Article.lower_case_title.startswith(title_query, autoescape=True))

        try:
            result = await db.execute(stmt)
            articles = list(result.scalars().all())
        except SQLAlchemyError as e:
            self.logger.error(f"Error searching articles: {str(e)}")
            raise DatabaseQueryError(f"記事検索中にエラーが発生しました: {str(e)}") from e

        if title_query:
            articles = [a for a in articles if title_query in a.lower_case_title]
        if tag_query:
            articles = [a for a in articles if tag_query in (a.lower_case_tags or [])]

        self.logger.info(f"Found {len(articles)} articles")
        return articles


# シングルトンインスタンス
article_store = ArticleStore()
