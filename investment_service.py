"""
Investment Service
Investment product catalogue and the user investments placed in those products.
"""

from datetime import datetime, timezone
from typing import List, Optional
import logging

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from crud import get_or_404, get_user
from models import InvestmentProduct, UserInvestment, Account
from schemas import InvestmentProductCreate, InvestmentProductUpdate, UserInvestmentCreate
from service_errors import InvalidTransition, RecordNotFound
from status_actions import USER_INVESTMENTS, resolve_transition

log = logging.getLogger(__name__)

INVESTMENT_STATUSES = ("pending", "active", "closed")


class InvestmentService:

    # ==================== PRODUCTS ====================

    @staticmethod
    async def list_products(db: AsyncSession) -> List[InvestmentProduct]:
        result = await db.execute(
            select(InvestmentProduct).order_by(InvestmentProduct.created_at.desc(), InvestmentProduct.id.desc())
        )
        return list(result.scalars().all())

    @staticmethod
    async def create_product(db: AsyncSession, data: InvestmentProductCreate, admin_id: int) -> InvestmentProduct:
        product = InvestmentProduct(**data.model_dump())
        db.add(product)
        await db.flush()
        AuditService.log_action(
            db, admin_id, "investment_products:create", "investment_products", product.id,
            new_data=data.model_dump(),
        )
        await db.commit()
        await db.refresh(product)
        log.info(f"Investment product '{product.name}' created by admin {admin_id}")
        return product

    @staticmethod
    async def update_product(
        db: AsyncSession, product_id: int, data: InvestmentProductUpdate, admin_id: int
    ) -> InvestmentProduct:
        product = await get_or_404(db, InvestmentProduct, product_id, "Investment product")
        changes = data.model_dump(exclude_unset=True)
        old_data = {field: getattr(product, field) for field in changes}
        for field, value in changes.items():
            setattr(product, field, value)
        AuditService.log_action(
            db, admin_id, "investment_products:update", "investment_products", product.id,
            old_data=old_data, new_data=changes,
        )
        await db.commit()
        await db.refresh(product)
        return product

    @staticmethod
    async def toggle_product(db: AsyncSession, product_id: int, admin_id: int) -> InvestmentProduct:
        product = await get_or_404(db, InvestmentProduct, product_id, "Investment product")
        old_value = bool(product.is_active)
        product.is_active = not old_value
        AuditService.log_action(
            db, admin_id, "investment_products:toggle", "investment_products", product.id,
            old_data={"is_active": old_value}, new_data={"is_active": product.is_active},
        )
        await db.commit()
        await db.refresh(product)
        log.info(f"Investment product {product.id} is_active={product.is_active}")
        return product

    # ==================== USER INVESTMENTS ====================

    @staticmethod
    async def list_investments(db: AsyncSession, status: Optional[str] = None) -> List[UserInvestment]:
        query = select(UserInvestment).order_by(UserInvestment.created_at.desc(), UserInvestment.id.desc())
        if status and status != "all":
            query = query.where(UserInvestment.status == status)
        result = await db.execute(query)
        return list(result.scalars().all())

    @staticmethod
    async def create_investment(db: AsyncSession, data: UserInvestmentCreate, admin_id: int) -> UserInvestment:
        """Place an investment on behalf of a user; admin-placed investments start active."""
        if await get_user(db, data.user_id) is None:
            raise RecordNotFound(f"User {data.user_id} not found")
        product = await get_or_404(db, InvestmentProduct, data.product_id, "Investment product")
        account = await get_or_404(db, Account, data.account_id, "Account")

        if account.user_id != data.user_id:
            raise InvalidTransition("Account does not belong to this user")
        if not product.is_active:
            raise InvalidTransition(f"Investment product '{product.name}' is not active")
        if data.amount < float(product.min_investment or 0):
            raise InvalidTransition(f"Minimum investment is ${product.min_investment:,.2f}")

        investment = UserInvestment(
            user_id=data.user_id,
            account_id=account.id,
            product_id=product.id,
            amount_invested=data.amount,
            current_value=data.amount,
            status="active",
        )
        db.add(investment)
        await db.flush()
        AuditService.log_action(
            db, admin_id, "user_investments:create", "user_investments", investment.id,
            new_data=data.model_dump(),
        )
        await db.commit()
        await db.refresh(investment)
        log.info(f"Investment {investment.id} of {data.amount} in product {product.id} created for user {data.user_id}")
        return investment

    @staticmethod
    async def apply_action(db: AsyncSession, investment_id: int, action: str, admin_id: int) -> UserInvestment:
        investment = await get_or_404(db, UserInvestment, investment_id, "Investment")
        old_status = investment.status
        investment.status = resolve_transition(USER_INVESTMENTS, action, old_status)
        now = datetime.now(timezone.utc)
        if action == "close":
            investment.closed_at = now
        investment.updated_at = now

        AuditService.log_status_change(
            db, admin_id, "user_investments", investment.id, old_status, investment.status
        )
        await db.commit()
        await db.refresh(investment)
        return investment


investment_service = InvestmentService()
