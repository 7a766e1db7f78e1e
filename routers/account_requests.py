from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends
from sqlalchemy import select

from account_request_service import AccountRequestService, REQUEST_STATUSES
from crud import serialize_with_users
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from models import AccountType
from routers.admin_common import http_error, list_response
from schemas import (
    AccountRequest as PydanticAccountRequest,
    AccountType as PydanticAccountType,
    Account as PydanticAccount,
    StatusActionRequest,
)
from service_errors import RecordNotFound

log = logging.getLogger(__name__)

account_requests_router = APIRouter(tags=["admin-account-requests"], dependencies=[Depends(get_current_admin_user)])


@account_requests_router.get("/account-requests")
async def list_account_requests(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    requests = await AccountRequestService.list_requests(db_session, status=status)
    records = await serialize_with_users(db_session, requests, PydanticAccountRequest)
    return list_response(
        "requests", records, REQUEST_STATUSES, search, start_date, end_date,
        search_fields=("id", "user_name", "user_email", "account_type_name"),
    )


@account_requests_router.get("/account-types")
async def list_account_types(db_session: SessionDep):
    result = await db_session.execute(select(AccountType).order_by(AccountType.name))
    return {
        "success": True,
        "account_types": [
            PydanticAccountType.model_validate(t).model_dump(mode="json") for t in result.scalars().all()
        ],
    }


@account_requests_router.post("/account-requests/{request_id}/actions")
async def account_request_action(
    request_id: int,
    payload: StatusActionRequest,
    db_session: SessionDep,
    current_admin: CurrentAdminUserDep,
):
    try:
        request, account = await AccountRequestService.apply_action(
            db_session, request_id, payload.action, current_admin.id, reason=payload.reason
        )
    except (RecordNotFound, ValueError) as e:
        log.warning(f"Account request {request_id} action '{payload.action}' refused: {e}")
        raise http_error(e)

    response = {
        "success": True,
        "message": f"Account request {request.status} successfully",
        "request": PydanticAccountRequest.model_validate(request).model_dump(mode="json"),
    }
    if account is not None:
        response["account"] = PydanticAccount.model_validate(account).model_dump(mode="json")
    return response
