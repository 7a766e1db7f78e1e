"""
Shared fixtures: a throwaway SQLite database, an admin user with a bearer
token and httpx clients bound to the ASGI app.
"""

import os
import tempfile

_TMP_DIR = tempfile.mkdtemp(prefix="backoffice-tests-")
os.environ["DATABASE_URL"] = f"sqlite+aiosqlite:///{os.path.join(_TMP_DIR, 'backoffice.db')}"
os.environ["DOCUMENT_STORAGE_DIR"] = os.path.join(_TMP_DIR, "documents")
os.environ["SECRET_KEY"] = "test-secret-key"
os.environ["ADMIN_EMAIL"] = "admin@admin.com"
os.environ["PUBLIC_BASE_URL"] = "http://test"

import httpx
import pytest
import pytest_asyncio

import auth_utils
import crud
from admin_client import AdminApiClient
from database import Base, SessionLocal, engine
from main import app
from schemas import UserCreate
from tests.factories import ADMIN_EMAIL, ADMIN_PASSWORD, make_account, make_user


@pytest_asyncio.fixture(autouse=True)
async def db_schema():
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
        await conn.run_sync(Base.metadata.create_all)
    yield


@pytest_asyncio.fixture
async def db(db_schema):
    async with SessionLocal() as session:
        yield session


@pytest_asyncio.fixture
async def admin_user(db):
    return await crud.create_user(
        db, UserCreate(email=ADMIN_EMAIL, full_name="Admin User", password=ADMIN_PASSWORD), is_admin=True
    )


@pytest.fixture
def admin_token(admin_user):
    return auth_utils.create_access_token({"sub": admin_user.email})


@pytest_asyncio.fixture
async def api(admin_token):
    async with httpx.AsyncClient(
        transport=httpx.ASGITransport(app=app),
        base_url="http://test",
        headers={"Authorization": f"Bearer {admin_token}"},
    ) as client:
        yield client


@pytest_asyncio.fixture
async def anon_api(db_schema):
    async with httpx.AsyncClient(transport=httpx.ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest_asyncio.fixture
async def console(admin_token):
    client = AdminApiClient(base_url="http://test", token=admin_token, transport=httpx.ASGITransport(app=app))
    yield client
    await client.aclose()


@pytest_asyncio.fixture
async def customer(db):
    return await make_user(db)


@pytest_asyncio.fixture
async def customer_account(db, customer):
    return await make_account(db, customer.id, balance=1000.0)
