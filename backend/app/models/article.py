from sqlalchemy import JSON, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from app.core.config import settings
from app.db.base import Base


class Article(Base):
    __tablename__ = settings.TABLE_NAME

    id: Mapped[str] = mapped_column(String(64), primary_key=True)  # UUID or Qiita記事ID
    title: Mapped[str] = mapped_column(Text)
    url: Mapped[str] = mapped_column(Text)
    tags: Mapped[list[str]] = mapped_column(JSON, default=list)
    source: Mapped[str] = mapped_column(Text)
    created_at: Mapped[str] = mapped_column(String(32))  # ISO-8601
    updated_at: Mapped[str] = mapped_column(String(32))  # ISO-8601

    # 大文字小文字を区別しない検索用の派生フィールド
    lower_case_title: Mapped[str] = mapped_column(Text, index=True)
    lower_case_tags: Mapped[list[str]] = mapped_column(JSON, default=list)
