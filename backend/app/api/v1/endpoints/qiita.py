from fastapi import APIRouter, Depends, HTTPException, Request, status

from app.api.deps import get_importer
from app.core.logging import get_request_logger
from app.schemas import ImportResult
from app.services.qiita import QiitaImporter

router = APIRouter()


@router.post("", response_model=ImportResult)
async def fetch_qiita(
    request: Request,
    importer: QiitaImporter = Depends(get_importer)
):
    """Qiitaのストック記事を取り込む"""
    logger = get_request_logger(request)
    logger.info("Qiita記事取得リクエスト")

    try:
        result = await importer.run()
        logger.info(f"Qiita記事取得成功: {result.model_dump()}")
        return result
    except Exception as e:
        logger.error(f"Qiita記事取得中にエラー: {str(e)}", exc_info=True)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Failed to process articles"
        )
