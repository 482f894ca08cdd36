from typing import Any, Dict, Optional


class TechStockException(Exception):
    """TechStockアプリケーションの基底例外クラス"""

    def __init__(
        self,
        message: str,
        details: Optional[Dict[str, Any]] = None,
        error_code: Optional[str] = None
    ):
        self.message = message
        self.details = details or {}
        self.error_code = error_code
        super().__init__(self.message)


class ValidationError(TechStockException):
    """バリデーションエラー"""
    pass


class NotFoundError(TechStockException):
    """リソースが見つからないエラー"""
    pass


class DatabaseError(TechStockException):
    """データベースエラー"""
    pass


class ExternalServiceError(TechStockException):
    """外部サービスエラー"""
    pass


class ConfigurationError(TechStockException):
    """設定エラー"""

    def __init__(self, setting: str, reason: str):
        message = f"設定 '{setting}' が無効です: {reason}"
        details = {"setting": setting, "reason": reason}
        super().__init__(message=message, details=details, error_code="CONFIGURATION_ERROR")


# 具体的な例外クラス
class ArticleNotFoundError(NotFoundError):
    """記事が見つからないエラー"""

    def __init__(self, article_id: Optional[str] = None):
        if article_id:
            message = f"記事ID '{article_id}' が見つかりません"
            details = {"id": article_id}
        else:
            message = "記事が見つかりません"
            details = {}

        super().__init__(message=message, details=details, error_code="ARTICLE_NOT_FOUND")


class NoFieldsToUpdateError(ValidationError):
    """更新対象のフィールドがないエラー"""

    def __init__(self, article_id: Optional[str] = None):
        details = {"id": article_id} if article_id else {}
        super().__init__(message="No fields to update", details=details, error_code="NO_FIELDS_TO_UPDATE")


class InvalidParameterError(ValidationError):
    """無効なパラメータエラー"""
    def __init__(self, parameter: str, value: Any, reason: str):
        message = f"パラメータ '{parameter}' の値 '{value}' が無効です: {reason}"
        details = {"parameter": parameter, "value": value, "reason": reason}
        super().__init__(message=message, details=details, error_code="INVALID_PARAMETER")


class DatabaseQueryError(DatabaseError):
    """データベースクエリ実行エラー"""
    def __init__(self, message: str = "Database query execution error", details: Optional[Dict[str, Any]] = None):
        super().__init__(message=message, details=details, error_code="DATABASE_QUERY_ERROR")


class DatabaseConnectionError(DatabaseError):
    """データベース接続エラー"""
    def __init__(self, message: str = "Database connection error"):
        super().__init__(message=message, error_code="DATABASE_CONNECTION_ERROR")


class QiitaAPIError(ExternalServiceError):
    """Qiita APIの呼び出しエラー"""
    def __init__(self, page: int, reason: str):
        message = f"Qiita APIの{page}ページ目の取得に失敗しました: {reason}"
        details = {"page": page, "reason": reason}
        super().__init__(message=message, details=details, error_code="QIITA_API_ERROR")
