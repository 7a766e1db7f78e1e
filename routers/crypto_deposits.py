from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends

from crud import serialize_with_users
from crypto_deposit_service import CryptoDepositService, DEPOSIT_STATUSES
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from routers.admin_common import http_error, list_response
from schemas import CryptoDeposit as PydanticCryptoDeposit, CryptoDepositUpdate, StatusActionRequest
from service_errors import RecordNotFound

log = logging.getLogger(__name__)

crypto_deposits_router = APIRouter(tags=["admin-crypto-deposits"], dependencies=[Depends(get_current_admin_user)])


@crypto_deposits_router.get("/crypto-deposits")
async def list_crypto_deposits(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    deposits = await CryptoDepositService.list_deposits(db_session, status=status)
    records = await serialize_with_users(db_session, deposits, PydanticCryptoDeposit)
    return list_response(
        "deposits", records, DEPOSIT_STATUSES, search, start_date, end_date,
        search_fields=("id", "user_name", "user_email", "crypto_type", "wallet_address"),
    )


@crypto_deposits_router.post("/crypto-deposits/{deposit_id}/actions")
async def crypto_deposit_action(
    deposit_id: int,
    payload: StatusActionRequest,
    db_session: SessionDep,
    current_admin: CurrentAdminUserDep,
):
    try:
        deposit = await CryptoDepositService.apply_action(
            db_session, deposit_id, payload.action, current_admin.id,
            reason=payload.reason, notes=payload.notes,
        )
    except (RecordNotFound, ValueError) as e:
        log.warning(f"Crypto deposit {deposit_id} action '{payload.action}' refused: {e}")
        raise http_error(e)

    return {
        "success": True,
        "message": f"Deposit {deposit.status} successfully",
        "deposit": PydanticCryptoDeposit.model_validate(deposit).model_dump(mode="json"),
    }


@crypto_deposits_router.put("/crypto-deposits/{deposit_id}")
async def edit_crypto_deposit(
    deposit_id: int,
    payload: CryptoDepositUpdate,
    db_session: SessionDep,
    current_admin: CurrentAdminUserDep,
):
    try:
        deposit = await CryptoDepositService.update_deposit(db_session, deposit_id, payload, current_admin.id)
    except RecordNotFound as e:
        raise http_error(e)
    return {
        "success": True,
        "message": "Deposit updated successfully",
        "deposit": PydanticCryptoDeposit.model_validate(deposit).model_dump(mode="json"),
    }


@crypto_deposits_router.delete("/crypto-deposits/{deposit_id}")
async def delete_crypto_deposit(deposit_id: int, db_session: SessionDep, current_admin: CurrentAdminUserDep):
    try:
        await CryptoDepositService.delete_deposit(db_session, deposit_id, current_admin.id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, "message": "Deposit deleted successfully"}
