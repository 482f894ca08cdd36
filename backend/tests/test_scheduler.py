"""
定期実行イベントのテスト
"""
from unittest.mock import patch, AsyncMock

from apscheduler.triggers.cron import CronTrigger

from app.core.exceptions import DatabaseQueryError
from app.scheduler import IMPORT_JOB_ID, create_scheduler, fetch_qiita_event, handle_event


class TestHandleEvent:
    """handle_event のテストクラス"""

    async def test_fetch_qiita_event(self, file_database, fake_qiita, test_data_factory):
        qiita = fake_qiita([test_data_factory.qiita_page(3, "s-")])

        result = await handle_event(fetch_qiita_event(), file_database, transport=qiita.transport)

        assert result["success"] is True
        assert result["data"] == {"total": 3, "new": 3, "saved": 3}

    async def test_unsupported_event(self, file_database):
        result = await handle_event({"source": "aws.events", "action": "other"}, file_database)

        assert result == {"success": False, "message": "Unsupported event"}

    async def test_importer_failure_returns_error(self, file_database, fake_qiita):
        qiita = fake_qiita([[]])

        with patch("app.services.qiita.QiitaImporter.run", AsyncMock(side_effect=DatabaseQueryError("down"))):
            result = await handle_event(fetch_qiita_event(), file_database, transport=qiita.transport)

        assert result["success"] is False
        assert "data" not in result


class TestCreateScheduler:
    """create_scheduler のテストクラス"""

    async def test_registers_cron_job(self, file_database):
        scheduler = create_scheduler(file_database)

        job = scheduler.get_job(IMPORT_JOB_ID)
        assert job is not None
        assert isinstance(job.trigger, CronTrigger)
        assert job.args[0] == {"source": "eventbridge", "action": "fetchQiita"}
