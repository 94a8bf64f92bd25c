"""Pydantic schemas for deals and deal checklists."""

from datetime import datetime
from decimal import Decimal
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator, model_validator

from crm.schemas.common import CamelModel, OptionalId


def _non_positive_is_absent(value: Any) -> bool:
    return isinstance(value, (int, float, Decimal)) and not isinstance(value, bool) and value <= 0


class DealCreate(CamelModel):
    """Request to create a deal. Non-positive amounts are treated as absent."""
    client_id: OptionalId = None
    stage: str = Field(..., min_length=1, max_length=50)
    amount: Decimal | None = None
    assigned_to_user_id: OptionalId = None

    @field_validator("amount", mode="before")
    @classmethod
    def _drop_non_positive(cls, value):
        return None if _non_positive_is_absent(value) else value


class DealUpdate(CamelModel):
    """Request to update a deal (partial; only sent fields are applied)."""
    client_id: OptionalId = None
    stage: str | None = Field(None, min_length=1, max_length=50)
    amount: Decimal | None = None
    assigned_to_user_id: OptionalId = None

    @model_validator(mode="before")
    @classmethod
    def _drop_non_positive_amount(cls, data):
        if isinstance(data, dict) and _non_positive_is_absent(data.get("amount")):
            data = {k: v for k, v in data.items() if k != "amount"}
        return data


class DealRead(CamelModel):
    id: UUID
    workspace_id: UUID
    client_id: UUID | None
    stage: str
    amount: Decimal | None
    assigned_to_user_id: UUID | None
    created_at: datetime
    updated_at: datetime


class ChecklistItemRead(CamelModel):
    id: UUID
    deal_id: UUID
    stage: str
    title: str
    completed: bool
    completed_by_user_id: UUID | None
    completed_at: datetime | None
    created_at: datetime


class ChecklistToggle(CamelModel):
    item_title: str = Field(..., min_length=1, max_length=255)
    completed: bool


class ChecklistToggleResult(CamelModel):
    item: ChecklistItemRead
    checklist_complete: bool
    completed_count: int
    total_count: int
