# ストア操作のインポート
from app.crud.article import article_store

# すべてのストア操作をエクスポート
__all__ = [
    "article_store"
]
