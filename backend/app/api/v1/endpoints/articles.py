from fastapi import APIRouter, Depends, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
import uuid

from app.core.exceptions import DatabaseError, NotFoundError, ValidationError
from app.core.logging import get_request_logger
from app.crud.article import article_store, current_timestamp
from app.db.session import get_async_session
from app.schemas import (
    Article as ArticleSchema,
    ArticleCreate,
    ArticleDeleted,
    ArticleUpdate
)

router = APIRouter()


@router.get("/search", response_model=List[ArticleSchema])
async def search_articles(
    request: Request,
    title: Optional[str] = None,
    tag: Optional[str] = None,
    db: AsyncSession = Depends(get_async_session)
):
    """タイトル（前方一致）・タグで記事を検索"""
    logger = get_request_logger(request)
    logger.info(f"記事検索リクエスト: title={title}, tag={tag}")

    try:
        articles = await article_store.search(db, title_query=title, tag_query=tag)
        logger.info(f"記事検索成功: {len(articles)}件")
        return articles
    except Exception as e:
        logger.error(f"記事検索中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to search articles"
        )


@router.get("", response_model=List[ArticleSchema])
async def read_articles(
    request: Request,
    db: AsyncSession = Depends(get_async_session)
):
    """記事一覧を取得"""
    logger = get_request_logger(request)
    logger.info("記事一覧取得リクエスト")

    try:
        articles = await article_store.scan_all(db)
        logger.info(f"記事一覧取得成功: {len(articles)}件")
        return articles
    except Exception as e:
        logger.error(f"記事一覧取得中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch articles"
        )


@router.get("/{article_id}", response_model=ArticleSchema)
async def read_article(
    request: Request,
    article_id: str,
    db: AsyncSession = Depends(get_async_session)
):
    """記事の詳細を取得"""
    logger = get_request_logger(request)
    logger.info(f"記事詳細取得リクエスト: id={article_id}")

    try:
        return await article_store.get(db, article_id)
    except (NotFoundError, ValidationError):
        raise
    except Exception as e:
        logger.error(f"記事詳細取得中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to fetch article"
        )


@router.post("", response_model=ArticleSchema, status_code=status.HTTP_201_CREATED)
async def create_article(
    request: Request,
    article_in: ArticleCreate,
    db: AsyncSession = Depends(get_async_session)
):
    """記事を作成（IDと作成日時はサーバー側で付与）"""
    logger = get_request_logger(request)
    logger.info(f"記事作成リクエスト: title={article_in.title}")

    timestamp = current_timestamp()
    values = {
        **article_in.model_dump(),
        "id": str(uuid.uuid4()),  # 常に新しいIDを生成
        "created_at": timestamp,
        "updated_at": timestamp,
    }

    try:
        article = await article_store.put(db, values)
        logger.info(f"記事作成成功: id={article.id}")
        return article
    except DatabaseError as e:
        logger.error(f"記事作成中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to create article"
        )


@router.put("/{article_id}", response_model=ArticleSchema)
async def update_article(
    request: Request,
    article_id: str,
    article_in: ArticleUpdate,
    db: AsyncSession = Depends(get_async_session)
):
    """記事を部分更新"""
    logger = get_request_logger(request)
    patch = article_in.to_patch()
    logger.info(f"記事更新リクエスト: id={article_id}, fields={sorted(patch)}")

    try:
        article = await article_store.update(db, article_id, patch)
        logger.info(f"記事更新成功: id={article_id}")
        return article
    except (NotFoundError, ValidationError):
        raise
    except Exception as e:
        logger.error(f"記事更新中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to update article"
        )


@router.delete("/{article_id}", response_model=ArticleDeleted)
async def delete_article(
    request: Request,
    article_id: str,
    db: AsyncSession = Depends(get_async_session)
):
    """記事を削除"""
    logger = get_request_logger(request)
    logger.info(f"記事削除リクエスト: id={article_id}")

    try:
        deleted = await article_store.delete(db, article_id)
        logger.info(f"記事削除成功: id={article_id}")
        return {
            "message": "Article deleted successfully",
            "deletedArticle": ArticleSchema.model_validate(deleted),
        }
    except (NotFoundError, ValidationError):
        raise
    except Exception as e:
        logger.error(f"記事削除中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to delete article"
        )
