# admin_forms.py
# Draft models for the console's create/edit dialogs. A draft is validated
# before anything is sent; an invalid draft raises DraftInvalid.

from datetime import datetime
from typing import Annotated, List, Literal, NamedTuple, Optional, Type, TypeVar

from pydantic import AfterValidator, BaseModel, Field, ValidationError, model_validator

from status_actions import check_reason

DraftT = TypeVar("DraftT", bound=BaseModel)


class DraftInvalid(ValueError):
    """A dialog's draft failed validation; no request was sent."""


def build_draft(model: Type[DraftT], **data) -> DraftT:
    try:
        return model(**data)
    except ValidationError as e:
        first = e.errors()[0]
        field = ".".join(str(part) for part in first.get("loc", ()))
        message = first.get("msg", "Invalid value").removeprefix("Value error, ")
        raise DraftInvalid(f"{field}: {message}" if field else message) from e


def _not_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("must not be blank")
    return value.strip()


NonBlankStr = Annotated[str, AfterValidator(_not_blank)]


class TimestampField(NamedTuple):
    table: str
    record_id: int
    field: str


class ProductDraft(BaseModel):
    name: NonBlankStr
    product_type: str = "stock"
    symbol: Optional[str] = None
    description: Optional[str] = None
    risk_level: Literal["low", "moderate", "high"] = "moderate"
    min_investment: float = Field(default=0.0, ge=0)
    expected_return: float = 0.0
    management_fee: float = Field(default=0.0, ge=0)


class InvestmentDraft(BaseModel):
    user_id: int
    account_id: int
    product_id: int
    amount: float = Field(gt=0)

    def check_minimum(self, min_investment: float) -> None:
        if self.amount < min_investment:
            raise DraftInvalid(f"Minimum investment is ${min_investment:,.2f}")

    def to_payload(self) -> dict:
        return self.model_dump()


class ActionDraft(BaseModel):
    resource: str
    record_id: int
    action: str
    reason: Optional[str] = None
    notes: Optional[str] = None

    @model_validator(mode="after")
    def reason_present(self):
        check_reason(self.resource, self.action, self.reason)
        return self


class TimestampEditDraft(BaseModel):
    selected: List[TimestampField] = Field(min_length=1)
    value: datetime


class GenerateTransactionsDraft(BaseModel):
    user_id: int
    account_id: int
    transaction_types: List[str] = Field(min_length=1)
    start_year: int
    end_year: int
    count_mode: Literal["random", "manual"] = "random"
    manual_count: Optional[int] = None

    @model_validator(mode="after")
    def check_ranges(self):
        if self.start_year > self.end_year:
            raise ValueError("Invalid year range")
        if self.count_mode == "manual" and (self.manual_count is None or self.manual_count < 1):
            raise ValueError("Invalid manual count")
        return self

    def to_payload(self) -> dict:
        return self.model_dump()


class ReplyDraft(BaseModel):
    thread_id: int
    message: NonBlankStr

