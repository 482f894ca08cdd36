"""HTTPを経由しない定期実行のエントリポイント

スケジューラーから渡されるイベントの source/action を見て処理を振り分ける。
"""
import asyncio
import json
from typing import Any, Dict, Optional

import httpx
from apscheduler.schedulers.asyncio import AsyncIOScheduler
from apscheduler.triggers.cron import CronTrigger

from app.core.config import settings
from app.core.logging import get_logger
from app.db.init import Database
from app.services.qiita import create_importer

logger = get_logger(__name__)

EVENT_SOURCE = "eventbridge"
FETCH_QIITA_ACTION = "fetchQiita"
IMPORT_JOB_ID = "fetch_qiita_job"


def fetch_qiita_event() -> Dict[str, str]:
    return {"source": EVENT_SOURCE, "action": FETCH_QIITA_ACTION}


async def handle_event(
    event: Dict[str, Any],
    database: Database,
    transport: Optional[httpx.AsyncBaseTransport] = None
) -> Dict[str, Any]:
    """定期実行イベントを処理し、結果を返す"""
    if event.get("source") != EVENT_SOURCE or event.get("action") != FETCH_QIITA_ACTION:
        logger.warning(f"Unsupported event: {event}")
        return {"success": False, "message": "Unsupported event"}

    logger.info("スケジュール実行: fetchQiita")
    try:
        result = await create_importer(database.session_factory, transport=transport).run()
    except Exception as e:
        logger.error(f"Qiita記事取得エラー: {str(e)}", exc_info=True)
        return {"success": False, "message": "Qiita記事の取得に失敗しました"}

    return {
        "success": True,
        "message": "Qiita記事を取得しました",
        "data": result.model_dump(),
    }


def create_scheduler(database: Database) -> AsyncIOScheduler:
    """Qiita取り込みジョブを登録したスケジューラーを生成"""
    scheduler = AsyncIOScheduler()
    scheduler.add_job(
        handle_event,
        trigger=CronTrigger.from_crontab(settings.IMPORT_SCHEDULE_CRON),
        args=[fetch_qiita_event(), database],
        id=IMPORT_JOB_ID,
        max_instances=1,
        replace_existing=True
    )
    logger.info(f"Scheduled Qiita import: '{settings.IMPORT_SCHEDULE_CRON}'")
    return scheduler


async def run_once() -> Dict[str, Any]:
    database = Database()
    await database.init()
    try:
        return await handle_event(fetch_qiita_event(), database)
    finally:
        await database.close()


if __name__ == "__main__":
    print(json.dumps(asyncio.run(run_once()), ensure_ascii=False))
