# models.py
# SQLAlchemy models for the back-office tables (users, accounts, deposits, transfers, KYC, chat, audit).

from sqlalchemy import Boolean, Column, Integer, String, DateTime, ForeignKey, Float, Text
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from database import Base


class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    full_name = Column(String, index=True)
    email = Column(String, unique=True, index=True)
    hashed_password = Column(String)
    is_active = Column(Boolean, default=True)
    is_admin = Column(Boolean, default=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    accounts = relationship("Account", back_populates="owner")


class Account(Base):
    __tablename__ = "accounts"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)  # NULL for bank-owned accounts (treasury)
    account_number = Column(String, unique=True, index=True, nullable=False)
    account_type = Column(String, default="checking", nullable=False)
    routing_number = Column(String, nullable=True)
    balance = Column(Float, default=0.0, nullable=False)
    currency = Column(String, default="USD", nullable=False)
    # STATES: active, frozen, closed
    status = Column(String, default="active", nullable=False)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    owner = relationship("User", back_populates="accounts")


class Transaction(Base):
    __tablename__ = "transactions"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False, index=True)
    transaction_type = Column(String, nullable=False)  # deposit, withdrawal, transfer, credit, debit, ...
    amount = Column(Float, nullable=False)
    fee = Column(Float, default=0.0)
    description = Column(String, nullable=True)
    # STATES: pending, completed, failed, cancelled, reversed
    status = Column(String, default="pending", nullable=False)
    reference = Column(String, nullable=True, index=True)  # e.g. crypto deposit id, "WIRE-<id>"
    balance_before = Column(Float, nullable=True)
    balance_after = Column(Float, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    account = relationship("Account")


class CryptoDeposit(Base):
    __tablename__ = "crypto_deposits"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    crypto_type = Column(String, nullable=False)  # BTC, ETH, USDT ...
    network_type = Column(String, nullable=True)
    wallet_address = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    fee = Column(Float, default=0.0)
    purpose = Column(String, default="general_deposit")
    # STATES: pending, awaiting_confirmations, on_hold, confirmed, processing, completed, rejected, failed, reversed
    status = Column(String, default="pending", nullable=False, index=True)
    status_before_hold = Column(String, nullable=True)
    rejection_reason = Column(String, nullable=True)
    hold_reason = Column(String, nullable=True)
    failure_reason = Column(String, nullable=True)
    reversal_reason = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    approved_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    rejected_at = Column(DateTime(timezone=True), nullable=True)
    completed_at = Column(DateTime(timezone=True), nullable=True)
    reversed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    account = relationship("Account")


class InvestmentProduct(Base):
    __tablename__ = "investment_products"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False)
    product_type = Column(String, default="stock", nullable=False)  # stock, bond, etf, mutual_fund, crypto
    symbol = Column(String, nullable=True)
    description = Column(String, nullable=True)
    risk_level = Column(String, default="moderate", nullable=False)  # low, moderate, high
    min_investment = Column(Float, default=0.0, nullable=False)
    expected_return = Column(Float, default=0.0, nullable=False)
    management_fee = Column(Float, default=0.0, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class UserInvestment(Base):
    __tablename__ = "user_investments"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    product_id = Column(Integer, ForeignKey("investment_products.id"), nullable=False)
    amount_invested = Column(Float, nullable=False)
    current_value = Column(Float, nullable=True)
    # STATES: pending, active, closed
    status = Column(String, default="pending", nullable=False)
    invested_at = Column(DateTime(timezone=True), server_default=func.now())
    closed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User")
    account = relationship("Account")
    product = relationship("InvestmentProduct")


class WireTransfer(Base):
    """Outgoing wire transfer with a multi-stage approval lifecycle"""
    __tablename__ = "wire_transfers"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    from_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=False)
    transfer_type = Column(String, default="domestic", nullable=False)  # domestic, international
    recipient_name = Column(String, nullable=False)
    recipient_bank = Column(String, nullable=False)
    recipient_account = Column(String, nullable=False)
    routing_number = Column(String, nullable=True)
    swift_code = Column(String, nullable=True)
    amount = Column(Float, nullable=False)
    fee = Column(Float, default=0.0)
    total_amount = Column(Float, nullable=False)
    # STATES: pending, processing, on_hold, completed, failed, rejected, cancelled, reversed
    status = Column(String, default="pending", nullable=False, index=True)
    status_before_hold = Column(String, nullable=True)
    admin_notes = Column(Text, nullable=True)
    rejection_reason = Column(String, nullable=True)
    cancellation_reason = Column(String, nullable=True)
    hold_reason = Column(String, nullable=True)
    failure_reason = Column(String, nullable=True)
    reversal_reason = Column(String, nullable=True)
    updated_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    approved_at = Column(DateTime(timezone=True), nullable=True)
    processed_at = Column(DateTime(timezone=True), nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    from_account = relationship("Account")


class AccountType(Base):
    """Account type reference"""
    __tablename__ = "account_types"

    id = Column(Integer, primary_key=True, index=True)
    name = Column(String, nullable=False, unique=True, index=True)
    description = Column(String, nullable=True)
    min_deposit = Column(Float, default=0.0)
    created_at = Column(DateTime(timezone=True), server_default=func.now())


class AccountRequest(Base):
    """A user's request to open an additional account"""
    __tablename__ = "account_requests"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    account_type_id = Column(Integer, ForeignKey("account_types.id"), nullable=True)
    account_type_name = Column(String, nullable=False)
    # STATES: pending, approved, rejected
    status = Column(String, default="pending", nullable=False, index=True)
    rejection_reason = Column(String, nullable=True)
    reviewed_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    reviewed_date = Column(DateTime(timezone=True), nullable=True)
    created_account_id = Column(Integer, ForeignKey("accounts.id"), nullable=True)
    request_date = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    account_type = relationship("AccountType")


class ChatThread(Base):
    __tablename__ = "chat_threads"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True)
    subject = Column(String, nullable=True)
    # STATES: open, pending, resolved, closed
    status = Column(String, default="open", nullable=False)
    last_message = Column(Text, nullable=True)
    last_message_at = Column(DateTime(timezone=True), server_default=func.now())
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])
    admin = relationship("User", foreign_keys=[admin_id])
    messages = relationship("ChatMessage", back_populates="thread", cascade="all, delete-orphan")


class ChatMessage(Base):
    __tablename__ = "chat_messages"

    id = Column(Integer, primary_key=True, index=True)
    thread_id = Column(Integer, ForeignKey("chat_threads.id"), nullable=False, index=True)
    sender_id = Column(Integer, ForeignKey("users.id"), nullable=False)
    message = Column(Text, nullable=False)
    is_read = Column(Boolean, default=False, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    thread = relationship("ChatThread", back_populates="messages")
    sender = relationship("User")


class IdentityDocument(Base):
    __tablename__ = "user_id_documents"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    document_type = Column(String, default="ID Card", nullable=False)  # passport, drivers_license, ID Card
    front_path = Column(String, nullable=True)  # storage path or absolute http(s) URL
    back_path = Column(String, nullable=True)
    # STATES: pending, verified, rejected
    status = Column(String, default="pending", nullable=False, index=True)
    verified_by = Column(Integer, ForeignKey("users.id"), nullable=True)
    verified_at = Column(DateTime(timezone=True), nullable=True)
    rejection_reason = Column(String, nullable=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), server_default=func.now(), onupdate=func.now())

    user = relationship("User", foreign_keys=[user_id])


class AuditLog(Base):
    """
    Append-only trail of admin mutations.

    RULE: every successful admin mutation writes one row.
    """
    __tablename__ = "audit_logs"

    id = Column(Integer, primary_key=True, index=True)
    admin_id = Column(Integer, ForeignKey("users.id"), nullable=True, index=True)
    action = Column(String, nullable=False, index=True)
    table_name = Column(String, nullable=False)
    record_id = Column(Integer, nullable=True)
    old_data = Column(Text, nullable=True)  # stringified JSON
    new_data = Column(Text, nullable=True)  # stringified JSON
    created_at = Column(DateTime(timezone=True), server_default=func.now(), index=True, nullable=False)

    def __repr__(self):
        return f"<AuditLog {self.action} on {self.table_name}#{self.record_id} by {self.admin_id}>"


class TokenBlacklist(Base):
    """
    Stores invalidated JWT tokens so a logged-out token cannot be replayed.
    """
    __tablename__ = "token_blacklist"

    id = Column(Integer, primary_key=True, index=True)
    token = Column(String, nullable=False, unique=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    created_at = Column(DateTime(timezone=True), server_default=func.now(), nullable=False)
    expires_at = Column(DateTime(timezone=True), nullable=False)
