# モデルのインポート
from app.models.article import Article

# すべてのモデルをエクスポート
__all__ = [
    "Article",
]
