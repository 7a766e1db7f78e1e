import logging

from fastapi import APIRouter, Depends

from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from routers.admin_common import http_error
from schemas import TimestampUpdateRequest
from service_errors import RecordNotFound
from timestamp_service import TimestampService

log = logging.getLogger(__name__)

timestamps_router = APIRouter(tags=["admin-timestamps"], dependencies=[Depends(get_current_admin_user)])


@timestamps_router.get("/timestamps/{user_id}")
async def get_user_timestamps(user_id: int, db_session: SessionDep):
    try:
        data = await TimestampService.get_user_timestamps(db_session, user_id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, **data}


@timestamps_router.post("/timestamps")
async def update_user_timestamp(
    payload: TimestampUpdateRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        data = await TimestampService.update_timestamp(
            db_session, payload.table, payload.record_id, payload.field, payload.value, current_admin.id
        )
    except (RecordNotFound, ValueError) as e:
        log.warning(f"Timestamp update {payload.table}.{payload.field}#{payload.record_id} refused: {e}")
        raise http_error(e)
    return {
        "success": True,
        "message": f"Successfully updated {payload.field} in {payload.table}",
        "data": data,
    }
