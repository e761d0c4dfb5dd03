from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from tubelite.api.deps import get_app_context
from tubelite.core.context import AppContext
from tubelite.core.response import success

router = APIRouter()


@router.get("/health")
async def health(context: AppContext = Depends(get_app_context)) -> JSONResponse:
    missing = list(context.config_errors)
    return success(
        data={
            "status": "degraded" if missing else "ok",
            "configured": not missing,
            "missing": missing,
        }
    )
