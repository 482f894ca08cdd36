"""Qiitaのストック記事を取り込むインポーター

ストック一覧をページ単位で取得し、未保存の記事だけを小さなバッチに分けて保存する。
定期実行を想定しているため、取得件数と実行時間に上限を設けている。
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

import httpx
from pydantic import ValidationError as PydanticValidationError
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.core.config import settings
from app.core.exceptions import DatabaseError, InvalidParameterError, QiitaAPIError
from app.core.logging import get_logger
from app.crud.article import ArticleStore, article_store, current_timestamp
from app.schemas import ImportResult, QiitaItem

logger = get_logger(__name__)


@dataclass
class QiitaPage:
    """1ページ分のレスポンス"""
    page: int
    data: Any
    rate_limit_remaining: Optional[int] = None


class QiitaClient:
    """Qiita API v2 のストック一覧を取得するクライアント"""

    def __init__(
        self,
        stocks_url: Optional[str] = None,
        per_page: Optional[int] = None,
        timeout: Optional[float] = None,
        access_token: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        self.stocks_url = stocks_url or settings.qiita_stocks_url
        self.per_page = per_page or settings.QIITA_PER_PAGE
        self.timeout = timeout if timeout is not None else settings.QIITA_REQUEST_TIMEOUT
        self.access_token = access_token if access_token is not None else settings.QIITA_ACCESS_TOKEN
        self.transport = transport
        self._http: Optional[httpx.AsyncClient] = None

    async def __aenter__(self) -> "QiitaClient":
        headers = {"Accept": "application/json"}
        if self.access_token:
            headers["Authorization"] = f"Bearer {self.access_token}"
        self._http = httpx.AsyncClient(
            timeout=httpx.Timeout(self.timeout),
            headers=headers,
            transport=self.transport
        )
        return self

    async def __aexit__(self, exc_type, exc, tb):
        await self._http.aclose()
        self._http = None

    async def fetch_page(self, page: int) -> QiitaPage:
        """指定ページを取得（通信エラー・タイムアウト・不正なJSONは QiitaAPIError）"""
        if self._http is None:
            raise RuntimeError("QiitaClient must be used as an async context manager")

        params = {"page": page, "per_page": self.per_page}
        logger.info(f"Fetching Qiita stocks page {page}: {self.stocks_url}")
        try:
            # httpx のタイムアウトは読み込み1回ごとなので、取得全体にも上限をかける
            response, data = await asyncio.wait_for(self._get_json(params), timeout=self.timeout)
        except (asyncio.TimeoutError, httpx.TimeoutException) as e:
            raise QiitaAPIError(page, f"timeout after {self.timeout}s") from e
        except httpx.HTTPError as e:
            raise QiitaAPIError(page, str(e)) from e
        except ValueError as e:
            raise QiitaAPIError(page, f"invalid JSON response: {str(e)}") from e

        rate_limit = response.headers.get("Rate-Limit")
        remaining = response.headers.get("Rate-Limit-Remaining")
        logger.info(f"Rate Limit: {rate_limit}, Remaining: {remaining}")

        try:
            rate_limit_remaining = int(remaining) if remaining is not None else None
        except ValueError:
            rate_limit_remaining = None

        return QiitaPage(page=page, data=data, rate_limit_remaining=rate_limit_remaining)

    async def _get_json(self, params: Dict[str, Any]):
        response = await self._http.get(self.stocks_url, params=params)
        return response, response.json()


class QiitaImporter:
    """Qiitaのストックを記事テーブルへ取り込む"""

    def __init__(
        self,
        client: QiitaClient,
        session_factory: async_sessionmaker[AsyncSession],
        store: ArticleStore = article_store,
        max_pages: Optional[int] = None,
        rate_limit_threshold: Optional[int] = None,
        batch_size: Optional[int] = None,
        batch_interval: Optional[float] = None
    ):
        self.client = client
        self.session_factory = session_factory
        self.store = store
        self.max_pages = max_pages if max_pages is not None else settings.QIITA_MAX_PAGES
        self.rate_limit_threshold = (
            rate_limit_threshold if rate_limit_threshold is not None
            else settings.QIITA_RATE_LIMIT_THRESHOLD
        )
        self.batch_size = batch_size if batch_size is not None else settings.IMPORT_BATCH_SIZE
        if self.batch_size < 1:
            raise InvalidParameterError("batch_size", self.batch_size, "must be at least 1")
        self.batch_interval = batch_interval if batch_interval is not None else settings.IMPORT_BATCH_INTERVAL

    async def fetch_all(self) -> Tuple[List[Dict[str, Any]], int]:
        """ページングしながらストックを取得し、記事の形に変換したものと取得件数を返す

        取得に失敗したページは読み飛ばして次のページへ進む。
        ページが空・件数不足・レート制限残りわずか・最大ページ数到達のいずれかで終了する。
        """
        items: List[Dict[str, Any]] = []
        fetched = 0
        page = 1

        async with self.client:
            while page <= self.max_pages:
                try:
                    result = await self.client.fetch_page(page)
                except QiitaAPIError as e:
                    logger.error(f"APIリクエストエラー: {e.message}")
                    page += 1
                    continue

                data = result.data
                if not isinstance(data, list) or not data:
                    logger.info(f"Page {page} is empty, stopping")
                    break

                fetched += len(data)
                items.extend(self._flatten(data))

                if len(data) < self.client.per_page:
                    break
                if (
                    result.rate_limit_remaining is not None
                    and result.rate_limit_remaining < self.rate_limit_threshold
                ):
                    logger.warning(
                        f"Rate limit remaining {result.rate_limit_remaining} is below "
                        f"{self.rate_limit_threshold}, stopping"
                    )
                    break
                page += 1

        logger.info(f"合計{fetched}件の記事を取得しました（うち不正な形式 {fetched - len(items)}件）")
        return items, fetched

    def _flatten(self, data: List[Any]) -> List[Dict[str, Any]]:
        flattened = []
        for raw in data:
            try:
                flattened.append(QiitaItem.model_validate(raw).to_article_values())
            except PydanticValidationError as e:
                logger.warning(f"Skipping malformed Qiita item: {e.error_count()} errors")
        return flattened

    async def _existing_ids(self) -> set:
        async with self.session_factory() as session:
            return await self.store.scan_ids(session)

    async def _save(self, values: Dict[str, Any]) -> bool:
        """1件保存（失敗しても例外は投げずFalseを返す）"""
        try:
            async with self.session_factory() as session:
                await self.store.put(session, values)
                await session.commit()
            logger.info(f"記事を保存: {values['title'][:30]}...")
            return True
        except (DatabaseError, SQLAlchemyError) as e:
            logger.error(f"Failed to save article {values['id']}: {str(e)}")
            return False

    async def run(self) -> ImportResult:
        """取得・重複排除・保存を実行し、件数の集計を返す"""
        articles, fetched = await self.fetch_all()

        existing_ids = await self._existing_ids()
        new_articles = []
        seen = set(existing_ids)
        for article in articles:
            if article["id"] in seen:
                continue
            seen.add(article["id"])
            new_articles.append(article)
        logger.info(f"取得記事: {fetched}件, 新規記事: {len(new_articles)}件")

        timestamp = current_timestamp()
        saved_count = 0
        for start in range(0, len(new_articles), self.batch_size):
            batch = new_articles[start:start + self.batch_size]
            logger.info(
                f"バッチ処理開始: {start + 1}〜{start + len(batch)}/{len(new_articles)}件"
            )

            results = await asyncio.gather(
                *(
                    self._save({**article, "created_at": timestamp, "updated_at": timestamp})
                    for article in batch
                ),
                return_exceptions=True
            )
            for article, result in zip(batch, results):
                if isinstance(result, Exception):
                    logger.error(f"Unexpected error saving article {article['id']}: {result}")
            saved_count += sum(1 for result in results if result is True)

            logger.info(
                f"バッチ処理完了: 合計{saved_count}/{len(new_articles)}件完了"
            )

            # バッチ間で少し待機して負荷を分散
            if start + self.batch_size < len(new_articles):
                await asyncio.sleep(self.batch_interval)

        return ImportResult(total=fetched, new=len(new_articles), saved=saved_count)


def create_importer(
    session_factory: async_sessionmaker[AsyncSession],
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> QiitaImporter:
    """設定値からインポーターを組み立てる"""
    return QiitaImporter(QiitaClient(transport=transport), session_factory)
