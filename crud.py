# crud.py
# Shared database helpers (lookups, user creation, serialization) used by the admin services.

import secrets
from typing import Dict, Iterable, List, Optional, Type

from pydantic import BaseModel
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

import models, schemas
from auth_utils import get_password_hash
from service_errors import RecordNotFound


async def get_user(db: AsyncSession, user_id: int):
    result = await db.execute(select(models.User).filter(models.User.id == user_id))
    return result.scalar_one_or_none()

async def get_user_by_email(db: AsyncSession, email: str):
    result = await db.execute(select(models.User).filter(models.User.email == email))
    return result.scalar_one_or_none()

async def create_user(db: AsyncSession, user: schemas.UserCreate, *, is_active: bool = True, is_admin: bool = False):
    db_user = models.User(
        email=user.email,
        hashed_password=get_password_hash(user.password),
        full_name=user.full_name,
        is_active=is_active,
        is_admin=is_admin,
    )
    db.add(db_user)
    await db.commit()
    await db.refresh(db_user)
    return db_user


async def get_or_404(db: AsyncSession, model, record_id: int, label: Optional[str] = None):
    """Load a row by primary key or raise RecordNotFound."""
    row = await db.get(model, record_id)
    if row is None:
        raise RecordNotFound(f"{label or model.__name__} {record_id} not found")
    return row


async def get_account_by_number(db: AsyncSession, account_number: str):
    result = await db.execute(
        select(models.Account).filter(models.Account.account_number == account_number)
    )
    return result.scalar_one_or_none()


async def generate_account_number(db: AsyncSession) -> str:
    """Return a 12-digit account number that is not taken yet."""
    while True:
        candidate = str(secrets.randbelow(9 * 10**11) + 10**11)
        if await get_account_by_number(db, candidate) is None:
            return candidate


async def users_by_id(db: AsyncSession, user_ids: Iterable[Optional[int]]) -> Dict[int, models.User]:
    ids = {uid for uid in user_ids if uid is not None}
    if not ids:
        return {}
    result = await db.execute(select(models.User).filter(models.User.id.in_(ids)))
    return {user.id: user for user in result.scalars().all()}


async def serialize_with_users(
    db: AsyncSession,
    rows: List,
    schema: Type[BaseModel],
    user_attr: str = "user_id",
) -> List[dict]:
    """Dump rows through a schema and add the owner's email and name to each record."""
    users = await users_by_id(db, (getattr(row, user_attr) for row in rows))
    records = []
    for row in rows:
        record = schema.model_validate(row).model_dump(mode="json")
        owner = users.get(getattr(row, user_attr))
        record["user_email"] = owner.email if owner else None
        record["user_name"] = owner.full_name if owner else None
        records.append(record)
    return records


def count_by_status(records: List[dict], statuses: Iterable[str]) -> Dict[str, int]:
    summary = {"total": len(records)}
    for status in statuses:
        summary[status] = sum(1 for r in records if r.get("status") == status)
    return summary
