# Article schemas
from .article import (
    ArticleBase,
    ArticleCreate,
    ArticleUpdate,
    Article,
    ArticleDeleted,
    QiitaTag,
    QiitaItem,
    ImportResult
)

__all__ = [
    # Article schemas
    "ArticleBase",
    "ArticleCreate",
    "ArticleUpdate",
    "Article",
    "ArticleDeleted",

    # Qiita schemas
    "QiitaTag",
    "QiitaItem",
    "ImportResult"
]
