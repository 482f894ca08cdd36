"""
テスト用の共通フィクスチャとセットアップ
"""
import pytest
import pytest_asyncio
from uuid import uuid4
from typing import Any, AsyncGenerator, Dict, List, Optional
import httpx
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from app.crud.article import article_store, current_timestamp
from app.db.base import Base
from app.db.init import Database
from app.db.session import get_async_session
from app.main import app
from app.models import Article
from app.schemas import ArticleCreate


# テスト用のインメモリSQLiteデータベース設定
TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture
async def test_engine():
    """テスト用データベースエンジン"""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={
            "check_same_thread": False,
        },
    )

    # テーブル作成
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # クリーンアップ
    await engine.dispose()


@pytest_asyncio.fixture
async def db_session(test_engine) -> AsyncGenerator[AsyncSession, None]:
    """テスト用データベースセッション（各テストでロールバック）"""
    async_session = async_sessionmaker(
        test_engine, class_=AsyncSession, expire_on_commit=False
    )

    async with async_session() as session:
        # トランザクション開始
        transaction = await session.begin()

        try:
            yield session
        finally:
            # テスト後にロールバック
            await transaction.rollback()


@pytest_asyncio.fixture
async def file_database(tmp_path) -> AsyncGenerator[Database, None]:
    """複数セッションから同時に書き込むテスト用のファイルDB"""
    database = Database(url=f"sqlite+aiosqlite:///{tmp_path / 'techstock.db'}")
    await database.init()
    yield database
    await database.close()


@pytest_asyncio.fixture
async def async_client(db_session: AsyncSession):
    """非同期テストクライアント"""
    # データベースセッションをオーバーライド
    async def override_get_async_session():
        yield db_session

    app.dependency_overrides[get_async_session] = override_get_async_session

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as client:
        yield client

    # オーバーライドをクリア
    app.dependency_overrides.clear()


def make_article_values(**kwargs) -> Dict[str, Any]:
    """ストアに直接保存する記事データ"""
    timestamp = current_timestamp()
    defaults = {
        "id": str(uuid4()),
        "title": "Sample Article",
        "url": "https://example.com/sample",
        "tags": ["Python", "FastAPI"],
        "source": "manual",
        "created_at": timestamp,
        "updated_at": timestamp,
    }
    defaults.update(kwargs)
    return defaults


@pytest_asyncio.fixture
async def sample_article(db_session: AsyncSession) -> Article:
    """サンプル記事"""
    return await article_store.put(
        db_session,
        make_article_values(title="Sample Article", tags=["Python", "FastAPI"])
    )


@pytest_asyncio.fixture
async def search_articles(db_session: AsyncSession) -> List[Article]:
    """検索用の記事セット"""
    rows = [
        ("AWS Lambda入門", ["AWS", "Serverless"]),
        ("aws cdk best practices", ["aws", "CDK"]),
        ("My AWS guide", ["AWS"]),
        ("DynamoDB single table design", ["NoSQL", "DynamoDB"]),
        ("MongoDB tips", ["nosql", "MongoDB"]),
        ("React hooks", ["React", "nosqlish"]),
    ]
    articles = []
    for title, tags in rows:
        articles.append(await article_store.put(db_session, make_article_values(title=title, tags=tags)))
    return articles


# テストデータ作成用のヘルパー関数
class TestDataFactory:
    """テストデータ作成用ファクトリー"""

    @staticmethod
    def create_article_data(**kwargs) -> ArticleCreate:
        """記事作成データ"""
        defaults = {
            "title": "Test Article",
            "url": "https://example.com/test",
            "tags": ["Test"],
            "source": "manual"
        }
        defaults.update(kwargs)
        return ArticleCreate(**defaults)

    @staticmethod
    def qiita_item(item_id: Optional[str] = None, title: str = "Qiita Article", tags: Optional[List[str]] = None) -> Dict[str, Any]:
        """Qiita APIのストック1件分"""
        item_id = item_id or uuid4().hex[:20]
        return {
            "id": item_id,
            "title": title,
            "url": f"https://qiita.com/someone/items/{item_id}",
            "tags": [{"name": name, "versions": []} for name in (tags or ["Python"])],
            "likes_count": 3,
            "user": {"id": "someone"},
        }

    @classmethod
    def qiita_page(cls, size: int, prefix: str) -> List[Dict[str, Any]]:
        return [cls.qiita_item(item_id=f"{prefix}{i:04d}", title=f"{prefix} item {i}") for i in range(size)]


@pytest.fixture
def test_data_factory():
    """テストデータファクトリーのフィクスチャ"""
    return TestDataFactory


class FakeQiita:
    """ページごとのレスポンスを返す Qiita API のモック"""

    def __init__(self, pages: List[Any], rate_limit_remaining: str = "900"):
        self.pages = pages
        self.rate_limit_remaining = rate_limit_remaining
        self.requests: List[httpx.Request] = []

    def handler(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        page = int(request.url.params["page"])
        body = self.pages[page - 1] if page <= len(self.pages) else []
        if isinstance(body, Exception):
            raise body
        if callable(body):
            return body(request)
        return httpx.Response(
            200,
            json=body,
            headers={"Rate-Limit": "1000", "Rate-Limit-Remaining": self.rate_limit_remaining},
        )

    @property
    def transport(self) -> httpx.MockTransport:
        return httpx.MockTransport(self.handler)

    @property
    def requested_pages(self) -> List[int]:
        return [int(r.url.params["page"]) for r in self.requests]


@pytest.fixture
def fake_qiita():
    """FakeQiita を生成するファクトリー"""
    return FakeQiita


@pytest.fixture
def article_values():
    """ストア保存用の記事データを作る関数"""
    return make_article_values
