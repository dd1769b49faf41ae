"""Billing router: hours billed by users against billing IDs."""
from fastapi import APIRouter, Depends, status
from typing import List
from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session, select

from app.db.config import get_session
from app.middleware.auth import CurrentUser, get_current_user
from app.models.billing import Billing
from app.models.user import User
from app.schemas.billing import BillingCreate, BillingResponse, BillingStatusUpdate
from app.services.errors import NotFoundError, StorageError
from app.utils.clock import utcnow

router = APIRouter(tags=["Billing"])


@router.post("/billing", response_model=BillingResponse, status_code=status.HTTP_201_CREATED)
async def create_billing(
    request: BillingCreate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Record billed hours for the signed-in user."""
    billing = Billing(
        user_id=current_user.user_id,
        task_name=request.task_name,
        billing_id=request.billing_id,
        total_hours=request.total_hours,
        status=request.status,
        created_at=utcnow(),
    )
    try:
        session.add(billing)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Failed to create billing: {str(e)}") from e
    session.refresh(billing)

    creator = session.get(User, current_user.user_id)
    return BillingResponse(
        **billing.model_dump(exclude={"user_id"}),
        created_by=creator.display_name if creator else None,
    )


@router.get("/billing", response_model=List[BillingResponse])
async def list_billing(
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """All billing records with the creator's name, newest first."""
    statement = (
        select(Billing, User)
        .join(User, Billing.user_id == User.id)
        .order_by(Billing.created_at.desc())
    )
    return [
        BillingResponse(**billing.model_dump(exclude={"user_id"}), created_by=user.display_name)
        for billing, user in session.exec(statement).all()
    ]


@router.put("/billing", response_model=BillingResponse)
async def update_billing_status(
    request: BillingStatusUpdate,
    current_user: CurrentUser = Depends(get_current_user),
    session: Session = Depends(get_session),
):
    """Change the status of a billing record."""
    billing = session.get(Billing, request.billing_id)
    if not billing:
        raise NotFoundError("Billing not found")

    billing.status = request.status
    try:
        session.add(billing)
        session.commit()
    except SQLAlchemyError as e:
        session.rollback()
        raise StorageError(f"Failed to update billing: {str(e)}") from e
    session.refresh(billing)

    creator = session.get(User, billing.user_id)
    return BillingResponse(
        **billing.model_dump(exclude={"user_id"}),
        created_by=creator.display_name if creator else None,
    )
