import logging

from fastapi import APIRouter, Depends

from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from routers.admin_common import http_error
from schemas import GenerateTransactionsRequest
from service_errors import RecordNotFound
from transaction_generator import TransactionGenerator

log = logging.getLogger(__name__)

transactions_router = APIRouter(tags=["admin-transactions"], dependencies=[Depends(get_current_admin_user)])


@transactions_router.post("/transactions/generate")
async def generate_transactions(
    payload: GenerateTransactionsRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        result = await TransactionGenerator.generate(db_session, payload, current_admin.id)
    except (RecordNotFound, ValueError) as e:
        raise http_error(e)
    return {
        "success": True,
        "message": f"Successfully generated {result['total_transactions_generated']} transactions",
        **result,
    }
