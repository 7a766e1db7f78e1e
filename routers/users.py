from typing import List, Optional

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import select

from crud import get_user
from deps import SessionDep, get_current_admin_user
from list_filters import FilterCriteria, filter_records
from models import User, Account
from schemas import User as PydanticUser, Account as PydanticAccount

# User and account pickers for the admin forms (timestamps, generator, investments)
users_router = APIRouter(tags=["admin-users"], dependencies=[Depends(get_current_admin_user)])


@users_router.get("/users")
async def list_users(db_session: SessionDep, search: Optional[str] = None, skip: int = 0, limit: int = 100):
    result = await db_session.execute(select(User).order_by(User.id).offset(skip).limit(limit))
    users = [PydanticUser.model_validate(u).model_dump(mode="json") for u in result.scalars().all()]
    return {
        "success": True,
        "users": filter_records(users, FilterCriteria(search=search, search_fields=("id", "email", "full_name"))),
    }


@users_router.get("/users/{user_id}/accounts", response_model=List[PydanticAccount])
async def list_user_accounts(user_id: int, db_session: SessionDep):
    if await get_user(db_session, user_id) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"User {user_id} not found")
    result = await db_session.execute(
        select(Account).where(Account.user_id == user_id).order_by(Account.created_at.desc(), Account.id.desc())
    )
    return result.scalars().all()
