from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.encoders import jsonable_encoder
from fastapi.responses import JSONResponse
from sqlalchemy.ext.asyncio import AsyncSession

from tubelite.api.deps import get_current_user, get_db
from tubelite.core.exceptions import BusinessError
from tubelite.core.response import success
from tubelite.i18n.codes import ErrorCode
from tubelite.schemas.common import ListResponse
from tubelite.schemas.engagement import ClearResponse, EngagementEntryResponse
from tubelite.services.auth_service import CurrentUser
from tubelite.services.engagement_service import EngagementItem, EngagementKind, EngagementService

router = APIRouter(prefix="/me")


def _entry(item: EngagementItem) -> EngagementEntryResponse:
    return EngagementEntryResponse(
        key=item.key, kind=item.kind.value, timestamp=item.timestamp, snapshot=item.snapshot
    )


@router.get("/{kind}")
async def list_entries(
    kind: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    items = await EngagementService.list(db, EngagementKind.parse(kind), user.uid)
    response = ListResponse[EngagementEntryResponse](
        items=[_entry(item) for item in items], total=len(items)
    )
    return success(data=jsonable_encoder(response))


@router.post("/{kind}/{ref}")
async def record_entry(
    kind: str,
    ref: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    item = await EngagementService.record(db, EngagementKind.parse(kind), user.uid, ref)
    return success(data=jsonable_encoder(_entry(item)))


@router.delete("/{kind}/{key}")
async def remove_entry(
    kind: str,
    key: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    removed = await EngagementService.remove(db, EngagementKind.parse(kind), user.uid, key)
    if not removed:
        raise BusinessError(ErrorCode.ENTRY_NOT_FOUND)
    return success(data={"removed": True})


@router.delete("/{kind}")
async def clear_entries(
    kind: str,
    user: CurrentUser = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
) -> JSONResponse:
    deleted = await EngagementService.clear_all(db, EngagementKind.parse(kind), user.uid)
    return success(data=jsonable_encoder(ClearResponse(deleted=deleted)))
