from fastapi import Depends, Request

from app.db.init import Database
from app.services.qiita import QiitaImporter, create_importer


def get_database(request: Request) -> Database:
    """起動時に登録されたストアハンドルを取得する依存性"""
    return request.app.state.database


def get_importer(database: Database = Depends(get_database)) -> QiitaImporter:
    """Qiitaインポーターを生成する依存性"""
    return create_importer(database.session_factory)
