"""
Synthetic transaction history for demo and QA accounts.

Generates a random, chronologically ordered run of transactions for one
account, with a running balance, and inserts them in batches.
"""

import random
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional
import logging

from sqlalchemy.ext.asyncio import AsyncSession

from audit_service import AuditService
from crud import get_or_404
from models import Account, Transaction
from schemas import GenerateTransactionsRequest
from service_errors import InvalidTransition, RecordNotFound

log = logging.getLogger(__name__)

BATCH_SIZE = 100
RANDOM_COUNT_RANGE = (300, 899)
DEFAULT_STARTING_BALANCE = 5000.0

# Weighted towards completed.
STATUS_POOL = ("completed", "completed", "completed", "pending", "failed", "cancelled", "reversed")

FEE_TYPES = {"withdrawal", "transfer", "crypto_send", "card_purchase"}
DEBIT_TYPES = {"withdrawal", "transfer", "crypto_send", "card_purchase", "bank_charge"}

DESCRIPTIONS = {
    "deposit": "Account Deposit",
    "withdrawal": "Cash Withdrawal",
    "transfer": "Bank Transfer",
    "zelle_send": "Zelle Payment Sent",
    "zelle_receive": "Zelle Payment Received",
    "crypto_send": "Crypto Transfer Sent",
    "crypto_receive": "Crypto Transfer Received",
    "card_purchase": "Card POS Purchase",
    "bank_charge": "Bank Service Charge",
    "refund": "Merchant Refund",
    "reversal": "Reversal of Previous Transaction",
}


def target_count(request: GenerateTransactionsRequest, rng: random.Random) -> int:
    if request.count_mode == "manual":
        if not request.manual_count or request.manual_count < 1:
            raise InvalidTransition("Invalid manual count")
        return request.manual_count
    return rng.randint(*RANDOM_COUNT_RANGE)


def build_transactions(
    request: GenerateTransactionsRequest,
    starting_balance: float,
    count: int,
    rng: Optional[random.Random] = None,
) -> List[Dict[str, Any]]:
    """Return `count` transaction rows sorted by date, with balances carried forward."""
    rng = rng or random.Random()
    start = datetime(request.start_year, 1, 1, 0, 0, 0, tzinfo=timezone.utc)
    end = datetime(request.end_year, 12, 31, 23, 59, 59, tzinfo=timezone.utc)
    span = (end - start).total_seconds()

    rows = []
    for _ in range(count):
        tx_type = rng.choice(request.transaction_types)
        fee = round(rng.uniform(0.50, 6.00), 2) if tx_type in FEE_TYPES else 0.0
        rows.append({
            "created_at": datetime.fromtimestamp(start.timestamp() + rng.random() * span, tz=timezone.utc),
            "transaction_type": tx_type,
            "status": rng.choice(STATUS_POOL),
            "amount": round(rng.uniform(10, 900), 2),
            "fee": fee,
            "description": DESCRIPTIONS.get(tx_type, "Transaction"),
        })

    rows.sort(key=lambda row: row["created_at"])

    balance = starting_balance
    for row in rows:
        row["balance_before"] = round(balance, 2)
        if row["transaction_type"] in DEBIT_TYPES:
            balance -= row["amount"] + row["fee"]
        else:
            balance += row["amount"]
        row["balance_after"] = round(balance, 2)
        row["updated_at"] = row["created_at"]
    return rows


class TransactionGenerator:

    @staticmethod
    async def generate(
        db: AsyncSession,
        request: GenerateTransactionsRequest,
        admin_id: int,
        rng: Optional[random.Random] = None,
    ) -> Dict[str, Any]:
        rng = rng or random.Random()
        account = await get_or_404(db, Account, request.account_id, "Account")
        if account.user_id != request.user_id:
            raise RecordNotFound("Account not found or does not belong to user")

        count = target_count(request, rng)
        starting_balance = float(account.balance or 0) or DEFAULT_STARTING_BALANCE
        rows = build_transactions(request, starting_balance, count, rng)

        inserted = 0
        for offset in range(0, len(rows), BATCH_SIZE):
            batch = rows[offset:offset + BATCH_SIZE]
            db.add_all(
                Transaction(user_id=request.user_id, account_id=account.id, **row) for row in batch
            )
            await db.flush()
            inserted += len(batch)
            log.debug(f"Inserted {inserted}/{len(rows)} generated transactions for account {account.id}")

        AuditService.log_action(
            db, admin_id, f"Generated {inserted} fake transactions for user {request.user_id}",
            "transactions",
            new_data={
                "user_id": request.user_id,
                "account_id": account.id,
                "transaction_count": inserted,
                "year_range": f"{request.start_year}-{request.end_year}",
                "types": request.transaction_types,
            },
        )
        await db.commit()
        log.info(f"Generated {inserted} transactions for account {account.id}")

        return {
            "total_transactions_generated": inserted,
            "first_transaction_date": rows[0]["created_at"].isoformat(),
            "last_transaction_date": rows[-1]["created_at"].isoformat(),
        }


transaction_generator = TransactionGenerator()
