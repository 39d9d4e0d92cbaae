"""
Pydantic schemas for payment flows and escrow.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from ..models.payment import (
    DisputeStatus,
    EscrowStatus,
    PaymentFlowMethod,
    PaymentFlowStatus,
    ReleaseMethod,
)


class PaymentInitiateRequest(BaseModel):
    payment_method: PaymentFlowMethod = PaymentFlowMethod.ESCROW
    gateway_name: Optional[Literal["paystack", "flutterwave", "stripe"]] = None


class PaymentFundRequest(BaseModel):
    """Gateway confirmation that the customer's payment went through."""

    gateway_reference: str = Field(..., min_length=1, max_length=100)
    gateway_transaction_id: Optional[str] = Field(None, max_length=100)


class EscrowReleaseRequest(BaseModel):
    reason: Optional[str] = Field(None, max_length=255)


class RefundRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)
    amount: Optional[Decimal] = Field(None, gt=0, description="Defaults to the full amount")
    reference: Optional[str] = Field(None, max_length=100)


class DisputeOpenRequest(BaseModel):
    reason: str = Field(..., min_length=1, max_length=1000)


class DisputeResolveRequest(BaseModel):
    status: Literal[DisputeStatus.INVESTIGATING, DisputeStatus.RESOLVED, DisputeStatus.CLOSED]
    resolution: Optional[str] = Field(None, max_length=2000)
    outcome: Optional[Literal["release", "refund"]] = Field(
        None,
        description="What happens to the held funds once the dispute is resolved"
    )


class EscrowResponse(BaseModel):
    id: UUID
    status: EscrowStatus
    amount: Decimal
    currency: str
    funded_at: Optional[datetime]
    hold_days: int
    hold_expires_at: Optional[datetime]
    event_completed: bool
    customer_approved: bool
    auto_release_date: Optional[datetime]
    released_at: Optional[datetime]
    release_method: Optional[ReleaseMethod]
    is_disputed: bool
    dispute_status: Optional[DisputeStatus]
    dispute_reason: Optional[str]
    dispute_resolution: Optional[str]
    refunded_at: Optional[datetime]
    refund_amount: Optional[Decimal]
    history: List[Dict[str, Any]]

    model_config = {"from_attributes": True}


class PaymentFlowResponse(BaseModel):
    id: UUID
    booking_id: UUID
    customer_id: UUID
    provider_id: UUID
    payment_method: PaymentFlowMethod
    total_amount: Decimal
    currency: str
    platform_fee_percentage: float
    platform_fee_amount: Decimal
    provider_amount: Decimal
    status: PaymentFlowStatus
    gateway_name: Optional[str]
    gateway_reference: Optional[str]
    timeline: List[Dict[str, Any]]
    escrow_held_at: Optional[datetime]
    escrow_release_date: Optional[datetime]
    escrow_released_at: Optional[datetime]
    escrow_release_reason: Optional[str]
    refunded_at: Optional[datetime]
    refund_amount: Optional[Decimal]
    refund_reason: Optional[str]
    escrow: Optional[EscrowResponse] = None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}
