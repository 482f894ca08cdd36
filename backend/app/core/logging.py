import logging
import os
import sys
from logging.handlers import RotatingFileHandler

from fastapi import Request

from app.core.config import settings


LOG_FORMAT = "%(asctime)s [%(levelname)s] %(name)s: %(message)s"


def setup_logging() -> logging.Logger:
    """ルートロガーの設定（一度だけ実行）"""
    root_logger = logging.getLogger("app")
    if root_logger.handlers:
        return root_logger

    root_logger.setLevel(settings.LOG_LEVEL.upper())
    formatter = logging.Formatter(LOG_FORMAT)

    # コンソール出力
    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # ファイル出力（有効な場合）
    if settings.LOG_TO_FILE:
        log_dir = os.path.dirname(settings.LOG_FILE_PATH)
        if log_dir and not os.path.exists(log_dir):
            os.makedirs(log_dir)
        file_handler = RotatingFileHandler(
            settings.LOG_FILE_PATH,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8"
        )
        file_handler.setFormatter(formatter)
        root_logger.addHandler(file_handler)

    root_logger.propagate = False
    return root_logger


def get_logger(name: str) -> logging.Logger:
    """モジュール用のロガーを取得"""
    setup_logging()
    if not name.startswith("app"):
        name = f"app.{name}"
    return logging.getLogger(name)


class RequestLoggerAdapter(logging.LoggerAdapter):
    """リクエストIDをメッセージに付与するアダプター"""

    def process(self, msg, kwargs):
        return f"[{self.extra['request_id']}] {msg}", kwargs


def get_request_logger(request: Request) -> logging.LoggerAdapter:
    """リクエスト用のロガーを取得"""
    request_id = getattr(request.state, "request_id", "-")
    return RequestLoggerAdapter(get_logger("app.request"), {"request_id": request_id})


app_logger = get_logger("app")
