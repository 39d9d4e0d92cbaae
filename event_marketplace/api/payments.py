"""
Payment and escrow endpoints.

Gateways are not called from here: the client reports the gateway
reference once the charge went through and the platform keeps the escrow
books.
"""

from typing import Any, List, Optional
from uuid import UUID

from fastapi import APIRouter, Body, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from ..database import get_db
from ..models.user import User
from ..schemas.payment import (
    DisputeOpenRequest,
    DisputeResolveRequest,
    EscrowReleaseRequest,
    PaymentFlowResponse,
    PaymentFundRequest,
    PaymentInitiateRequest,
    RefundRequest,
)
from ..services.payment_service import PaymentService
from ..utils.dependencies import get_current_admin_user, get_current_user

router = APIRouter(prefix="/payments", tags=["payments"])


@router.post(
    "/bookings/{booking_id}",
    response_model=PaymentFlowResponse,
    status_code=status.HTTP_201_CREATED,
)
async def initiate_payment(
    booking_id: UUID,
    data: Optional[PaymentInitiateRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """
    Start paying for a pending or confirmed booking.

    Escrow is the default method; the platform fee is deducted from the
    provider's share.
    """
    flow = await PaymentService(db).initiate_payment(booking_id, current_user, data or PaymentInitiateRequest())
    return PaymentFlowResponse.model_validate(flow)


@router.get("/bookings/{booking_id}", response_model=List[PaymentFlowResponse])
async def get_booking_payments(
    booking_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    flows = await PaymentService(db).get_flows_for_booking(booking_id, current_user)
    return [PaymentFlowResponse.model_validate(flow) for flow in flows]


@router.get("/{flow_id}", response_model=PaymentFlowResponse)
async def get_payment(
    flow_id: UUID,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    flow = await PaymentService(db).get_flow_for_user(flow_id, current_user)
    return PaymentFlowResponse.model_validate(flow)


@router.post("/{flow_id}/fund", response_model=PaymentFlowResponse)
async def fund_payment(
    flow_id: UUID,
    data: PaymentFundRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Record a successful gateway charge; escrow payments are then held."""
    flow = await PaymentService(db).fund_payment(flow_id, current_user, data)
    return PaymentFlowResponse.model_validate(flow)


@router.post("/{flow_id}/release", response_model=PaymentFlowResponse)
async def release_payment(
    flow_id: UUID,
    data: Optional[EscrowReleaseRequest] = Body(None),
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Release held escrow funds to the provider (customer or admin)."""
    flow = await PaymentService(db).release_escrow(flow_id, current_user, data.reason if data else None)
    return PaymentFlowResponse.model_validate(flow)


@router.post("/{flow_id}/refund", response_model=PaymentFlowResponse)
async def refund_payment(
    flow_id: UUID,
    data: RefundRequest,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Refund a payment to the customer (admin only)."""
    flow = await PaymentService(db).refund_payment(flow_id, admin, data)
    return PaymentFlowResponse.model_validate(flow)


@router.post("/{flow_id}/dispute", response_model=PaymentFlowResponse)
async def open_dispute(
    flow_id: UUID,
    data: DisputeOpenRequest,
    current_user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Dispute a held escrow; funds stay held until an admin resolves it."""
    flow = await PaymentService(db).open_dispute(flow_id, current_user, data.reason)
    return PaymentFlowResponse.model_validate(flow)


@router.put("/{flow_id}/dispute", response_model=PaymentFlowResponse)
async def resolve_dispute(
    flow_id: UUID,
    data: DisputeResolveRequest,
    admin: User = Depends(get_current_admin_user),
    db: AsyncSession = Depends(get_db)
) -> Any:
    """Move a dispute forward and optionally release or refund (admin only)."""
    flow = await PaymentService(db).resolve_dispute(flow_id, admin, data)
    return PaymentFlowResponse.model_validate(flow)
