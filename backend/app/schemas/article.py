from pydantic import BaseModel, ConfigDict, Field
from typing import Any, Dict, List, Optional


# Article関連のスキーマ
class ArticleBase(BaseModel):
    title: str
    url: str
    tags: List[str]
    source: str


class ArticleCreate(ArticleBase):
    """記事作成用（id・createdAt はサーバー側で生成するため受け付けない）"""
    model_config = ConfigDict(extra="forbid")


class ArticleUpdate(BaseModel):
    """記事の部分更新（指定されたフィールドのみ反映）"""
    model_config = ConfigDict(extra="ignore")

    title: Optional[str] = None
    url: Optional[str] = None
    tags: Optional[List[str]] = None
    source: Optional[str] = None

    def to_patch(self) -> Dict[str, Any]:
        """値が指定されたフィールドだけを返す"""
        return self.model_dump(exclude_unset=True, exclude_none=True)


class Article(ArticleBase):
    model_config = ConfigDict(from_attributes=True, populate_by_name=True)

    id: str
    created_at: str = Field(alias="createdAt")
    updated_at: str = Field(alias="updatedAt")
    lower_case_title: str
    lower_case_tags: List[str]


class ArticleDeleted(BaseModel):
    message: str
    deletedArticle: Article


class QiitaTag(BaseModel):
    name: str


class QiitaItem(BaseModel):
    """Qiita APIのレスポンスから必要な項目だけを取り出したもの"""
    model_config = ConfigDict(extra="ignore")

    id: str
    title: str
    url: str
    tags: List[QiitaTag] = []

    def to_article_values(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "title": self.title,
            "url": self.url,
            "tags": [tag.name for tag in self.tags],
            "source": "Qiita",
        }


class ImportResult(BaseModel):
    total: int
    new: int
    saved: int
