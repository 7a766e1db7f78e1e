# schemas.py
# Pydantic models for request/response validation and serialization.

from datetime import datetime
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator


class Token(BaseModel):
    access_token: str
    token_type: str
    is_admin: bool
    email: str


class UserBase(BaseModel):
    email: EmailStr
    full_name: Optional[str] = None

class UserCreate(UserBase):
    password: str

class User(UserBase):
    id: int
    is_active: bool
    is_admin: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Account(BaseModel):
    id: int
    user_id: Optional[int] = None
    account_number: str
    account_type: str
    routing_number: Optional[str] = None
    balance: float
    currency: str
    status: str
    approved_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class Transaction(BaseModel):
    id: int
    user_id: Optional[int] = None
    account_id: int
    transaction_type: str
    amount: float
    fee: Optional[float] = 0.0
    description: Optional[str] = None
    status: str
    reference: Optional[str] = None
    balance_before: Optional[float] = None
    balance_after: Optional[float] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== ADMIN ACTIONS ====================

class StatusActionRequest(BaseModel):
    """A status transition requested from an admin screen."""
    action: str
    reason: Optional[str] = None
    notes: Optional[str] = None


# ==================== CRYPTO DEPOSITS ====================

class CryptoDeposit(BaseModel):
    id: int
    user_id: int
    account_id: Optional[int] = None
    crypto_type: str
    network_type: Optional[str] = None
    wallet_address: Optional[str] = None
    amount: float
    fee: Optional[float] = 0.0
    purpose: Optional[str] = None
    status: str
    status_before_hold: Optional[str] = None
    rejection_reason: Optional[str] = None
    hold_reason: Optional[str] = None
    failure_reason: Optional[str] = None
    reversal_reason: Optional[str] = None
    admin_notes: Optional[str] = None
    approved_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    rejected_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    reversed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class CryptoDepositUpdate(BaseModel):
    amount: Optional[float] = Field(default=None, gt=0)
    fee: Optional[float] = Field(default=None, ge=0)
    wallet_address: Optional[str] = None
    network_type: Optional[str] = None
    admin_notes: Optional[str] = None


# ==================== INVESTMENTS ====================

class InvestmentProductBase(BaseModel):
    name: str = Field(min_length=1)
    product_type: str = "stock"
    symbol: Optional[str] = None
    description: Optional[str] = None
    risk_level: Literal["low", "moderate", "high"] = "moderate"
    min_investment: float = Field(default=0.0, ge=0)
    expected_return: float = 0.0
    management_fee: float = Field(default=0.0, ge=0)
    is_active: bool = True

class InvestmentProductCreate(InvestmentProductBase):
    pass

class InvestmentProductUpdate(BaseModel):
    name: Optional[str] = None
    product_type: Optional[str] = None
    symbol: Optional[str] = None
    description: Optional[str] = None
    risk_level: Optional[Literal["low", "moderate", "high"]] = None
    min_investment: Optional[float] = Field(default=None, ge=0)
    expected_return: Optional[float] = None
    management_fee: Optional[float] = Field(default=None, ge=0)
    is_active: Optional[bool] = None

class InvestmentProduct(InvestmentProductBase):
    id: int
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


class UserInvestmentCreate(BaseModel):
    user_id: int
    account_id: int
    product_id: int
    amount: float = Field(gt=0)

class UserInvestment(BaseModel):
    id: int
    user_id: int
    account_id: int
    product_id: int
    amount_invested: float
    current_value: Optional[float] = None
    status: str
    invested_at: Optional[datetime] = None
    closed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== WIRE TRANSFERS ====================

class WireTransfer(BaseModel):
    id: int
    user_id: int
    from_account_id: int
    transfer_type: str
    recipient_name: str
    recipient_bank: str
    recipient_account: str
    routing_number: Optional[str] = None
    swift_code: Optional[str] = None
    amount: float
    fee: Optional[float] = 0.0
    total_amount: float
    status: str
    status_before_hold: Optional[str] = None
    admin_notes: Optional[str] = None
    rejection_reason: Optional[str] = None
    cancellation_reason: Optional[str] = None
    hold_reason: Optional[str] = None
    failure_reason: Optional[str] = None
    reversal_reason: Optional[str] = None
    updated_by: Optional[int] = None
    approved_at: Optional[datetime] = None
    processed_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== ACCOUNT REQUESTS ====================

class AccountType(BaseModel):
    id: int
    name: str
    description: Optional[str] = None
    min_deposit: Optional[float] = 0.0

    class Config:
        from_attributes = True

class AccountRequest(BaseModel):
    id: int
    user_id: int
    account_type_id: Optional[int] = None
    account_type_name: str
    status: str
    rejection_reason: Optional[str] = None
    reviewed_by: Optional[int] = None
    reviewed_date: Optional[datetime] = None
    created_account_id: Optional[int] = None
    request_date: Optional[datetime] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True


# ==================== TIMESTAMPS ====================

class TimestampUpdateRequest(BaseModel):
    table: str
    record_id: int
    field: str
    value: datetime


# ==================== SYNTHETIC TRANSACTIONS ====================

class GenerateTransactionsRequest(BaseModel):
    user_id: int
    account_id: int
    transaction_types: List[str] = Field(min_length=1)
    start_year: int = Field(ge=1970, le=2100)
    end_year: int = Field(ge=1970, le=2100)
    count_mode: Literal["random", "manual"] = "random"
    manual_count: Optional[int] = None

    @field_validator("end_year")
    @classmethod
    def end_after_start(cls, v, info):
        start = info.data.get("start_year")
        if start is not None and v < start:
            raise ValueError("end_year must not be before start_year")
        return v


# ==================== SUPPORT MESSAGES ====================

class ChatMessage(BaseModel):
    id: int
    thread_id: int
    sender_id: int
    message: str
    is_read: bool
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ChatThread(BaseModel):
    id: int
    user_id: int
    admin_id: Optional[int] = None
    subject: Optional[str] = None
    status: str
    last_message: Optional[str] = None
    last_message_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    class Config:
        from_attributes = True

class ThreadReplyRequest(BaseModel):
    message: str = Field(min_length=1)


# ==================== IDENTITY DOCUMENTS ====================

class IdentityDocument(BaseModel):
    id: int
    user_id: int
    document_type: str
    front_path: Optional[str] = None
    back_path: Optional[str] = None
    status: str
    verified_by: Optional[int] = None
    verified_at: Optional[datetime] = None
    rejection_reason: Optional[str] = None
    created_at: Optional[datetime] = None

    class Config:
        from_attributes = True
