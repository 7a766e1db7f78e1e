import uvicorn
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from sqlalchemy import select, text
import logging

from database import SessionLocal, Base, engine
from auth import auth_router
from routers.account_requests import account_requests_router
from routers.crypto_deposits import crypto_deposits_router
from routers.documents import documents_router, document_files_router
from routers.investments import investments_router
from routers.messages import messages_router
from routers.realtime import realtime_router
from routers.timestamps import timestamps_router
from routers.transactions import transactions_router
from routers.users import users_router
from routers.wire_transfers import wire_transfers_router
from config import settings
from auth_utils import get_password_hash
from models import User, Account

logging.basicConfig(level=settings.LOG_LEVEL)
log = logging.getLogger(__name__)


async def create_db_and_tables():
    """Creates all database tables defined in models.py."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    log.info("Tables created successfully")


async def test_db_connection() -> bool:
    try:
        async with SessionLocal() as db:
            await db.execute(text("SELECT 1"))
        log.info("Database connection successful!")
        return True
    except Exception as e:
        log.error(f"Database connection failed: {e}")
        return False


async def create_admin_user():
    """Ensures the configured admin user exists and carries admin rights."""
    async with SessionLocal() as db:
        result = await db.execute(select(User).filter(User.email == settings.ADMIN_EMAIL))
        admin_user = result.scalars().first()

        if not admin_user:
            db.add(User(
                full_name="Admin User",
                email=settings.ADMIN_EMAIL,
                hashed_password=get_password_hash(settings.ADMIN_PASSWORD),
                is_admin=True,
                is_active=True,
            ))
            await db.commit()
            log.info("Default admin user created.")
        elif not admin_user.is_admin:
            admin_user.is_admin = True
            await db.commit()
            log.info("Admin user updated with admin rights.")


async def create_treasury_account():
    """Bank-owned account that collects deposit fees."""
    async with SessionLocal() as db:
        result = await db.execute(
            select(Account).filter(Account.account_number == settings.TREASURY_ACCOUNT_NUMBER)
        )
        if result.scalars().first() is None:
            db.add(Account(
                user_id=None,
                account_number=settings.TREASURY_ACCOUNT_NUMBER,
                account_type="treasury",
                routing_number=settings.DEFAULT_ROUTING_NUMBER,
                balance=0.0,
                status="active",
            ))
            await db.commit()
            log.info(f"Treasury account {settings.TREASURY_ACCOUNT_NUMBER} created.")


app = FastAPI(title=f"{settings.BANK_NAME} Back Office")

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.on_event("startup")
async def startup_event():
    log.info("Initializing application...")
    await create_db_and_tables()
    if not await test_db_connection():
        raise RuntimeError("Database is not reachable")
    await create_admin_user()
    await create_treasury_account()
    log.info("Application ready")


@app.get("/health")
async def health():
    return {"status": "ok"}


# --- Routers ---
app.include_router(auth_router, prefix="/auth")
app.include_router(users_router, prefix="/api/admin")
app.include_router(crypto_deposits_router, prefix="/api/admin")
app.include_router(investments_router, prefix="/api/admin")
app.include_router(wire_transfers_router, prefix="/api/admin")
app.include_router(account_requests_router, prefix="/api/admin")
app.include_router(timestamps_router, prefix="/api/admin")
app.include_router(transactions_router, prefix="/api/admin")
app.include_router(documents_router, prefix="/api/admin")
app.include_router(messages_router, prefix="/api/admin")
# Signed document links carry their own token
app.include_router(document_files_router)
# Realtime WebSocket router
app.include_router(realtime_router)


if __name__ == "__main__":
    uvicorn.run(app, host="127.0.0.1", port=8000)
