from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends

from crud import serialize_with_users
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from routers.admin_common import http_error, list_response
from schemas import WireTransfer as PydanticWireTransfer, StatusActionRequest
from service_errors import RecordNotFound
from wire_transfer_service import WireTransferService, WIRE_STATUSES

log = logging.getLogger(__name__)

wire_transfers_router = APIRouter(tags=["admin-wire-transfers"], dependencies=[Depends(get_current_admin_user)])


@wire_transfers_router.get("/wire-transfers")
async def list_wire_transfers(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    transfers = await WireTransferService.list_transfers(db_session, status=status)
    records = await serialize_with_users(db_session, transfers, PydanticWireTransfer)
    return list_response(
        "transfers", records, WIRE_STATUSES, search, start_date, end_date,
        search_fields=("id", "user_name", "user_email", "recipient_name", "recipient_bank", "recipient_account"),
    )


@wire_transfers_router.post("/wire-transfers/{transfer_id}/actions")
async def wire_transfer_action(
    transfer_id: int,
    payload: StatusActionRequest,
    db_session: SessionDep,
    current_admin: CurrentAdminUserDep,
):
    try:
        transfer = await WireTransferService.apply_action(
            db_session, transfer_id, payload.action, current_admin.id,
            reason=payload.reason, notes=payload.notes,
        )
    except (RecordNotFound, ValueError) as e:
        log.warning(f"Wire transfer {transfer_id} action '{payload.action}' refused: {e}")
        raise http_error(e)

    return {
        "success": True,
        "message": f"Wire transfer {payload.action} successful",
        "transfer": PydanticWireTransfer.model_validate(transfer).model_dump(mode="json"),
    }
