from datetime import date
from typing import Optional
import logging

from fastapi import APIRouter, Depends, status as http_status

from crud import serialize_with_users
from deps import CurrentAdminUserDep, SessionDep, get_current_admin_user
from investment_service import InvestmentService, INVESTMENT_STATUSES
from list_filters import FilterCriteria, filter_records
from routers.admin_common import http_error, list_response
from schemas import (
    InvestmentProduct as PydanticInvestmentProduct,
    InvestmentProductCreate,
    InvestmentProductUpdate,
    UserInvestment as PydanticUserInvestment,
    UserInvestmentCreate,
    StatusActionRequest,
)
from service_errors import RecordNotFound

log = logging.getLogger(__name__)

investments_router = APIRouter(tags=["admin-investments"], dependencies=[Depends(get_current_admin_user)])


def _product(product) -> dict:
    return PydanticInvestmentProduct.model_validate(product).model_dump(mode="json")


# ==================== PRODUCTS ====================

@investments_router.get("/investment-products")
async def list_investment_products(db_session: SessionDep, search: Optional[str] = None):
    products = [_product(p) for p in await InvestmentService.list_products(db_session)]
    criteria = FilterCriteria(search=search, search_fields=("id", "name", "symbol", "product_type"))
    return {
        "success": True,
        "products": filter_records(products, criteria),
        "summary": {
            "total": len(products),
            "active": sum(1 for p in products if p["is_active"]),
        },
    }


@investments_router.post("/investment-products", status_code=http_status.HTTP_201_CREATED)
async def create_investment_product(
    payload: InvestmentProductCreate, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    product = await InvestmentService.create_product(db_session, payload, current_admin.id)
    return {"success": True, "message": "Product created successfully!", "product": _product(product)}


@investments_router.put("/investment-products/{product_id}")
async def update_investment_product(
    product_id: int, payload: InvestmentProductUpdate, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        product = await InvestmentService.update_product(db_session, product_id, payload, current_admin.id)
    except RecordNotFound as e:
        raise http_error(e)
    return {"success": True, "message": "Product updated successfully!", "product": _product(product)}


@investments_router.post("/investment-products/{product_id}/toggle")
async def toggle_investment_product(product_id: int, db_session: SessionDep, current_admin: CurrentAdminUserDep):
    try:
        product = await InvestmentService.toggle_product(db_session, product_id, current_admin.id)
    except RecordNotFound as e:
        raise http_error(e)
    state = "activated" if product.is_active else "deactivated"
    return {"success": True, "message": f"Product {state} successfully!", "product": _product(product)}


# ==================== USER INVESTMENTS ====================

@investments_router.get("/investments")
async def list_user_investments(
    db_session: SessionDep,
    status: Optional[str] = None,
    search: Optional[str] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
):
    investments = await InvestmentService.list_investments(db_session, status=status)
    records = await serialize_with_users(db_session, investments, PydanticUserInvestment)
    return list_response("investments", records, INVESTMENT_STATUSES, search, start_date, end_date)


@investments_router.post("/investments", status_code=http_status.HTTP_201_CREATED)
async def create_user_investment(
    payload: UserInvestmentCreate, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        investment = await InvestmentService.create_investment(db_session, payload, current_admin.id)
    except (RecordNotFound, ValueError) as e:
        raise http_error(e)
    return {
        "success": True,
        "message": "Investment created successfully!",
        "investment": PydanticUserInvestment.model_validate(investment).model_dump(mode="json"),
    }


@investments_router.post("/investments/{investment_id}/actions")
async def user_investment_action(
    investment_id: int, payload: StatusActionRequest, db_session: SessionDep, current_admin: CurrentAdminUserDep
):
    try:
        investment = await InvestmentService.apply_action(db_session, investment_id, payload.action, current_admin.id)
    except (RecordNotFound, ValueError) as e:
        raise http_error(e)
    return {
        "success": True,
        "message": f"Investment {investment.status} successfully!",
        "investment": PydanticUserInvestment.model_validate(investment).model_dump(mode="json"),
    }
