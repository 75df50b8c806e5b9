"""
Bids API routes.

Bid submission is multipart: scalar fields arrive as form fields,
`materials` and `terms` as JSON-encoded form fields and up to
MAX_BID_PHOTOS images under `photos`.
"""
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, Request, UploadFile, status
from pydantic import Json, field_validator
from sqlalchemy.orm import Session
from sqlalchemy import desc

from vendorbid.db.session import get_db
from vendorbid.db.models import Bid, Requirement, User
from vendorbid.core.errors import AppError, NotFoundError
from vendorbid.core.logging import get_logger
from vendorbid.core.rbac import Action, RBACChecker, get_current_user
from vendorbid.schemas import (
    BidCreate, BidMaterialLine, BidMutationResponse, BidResponse, BidReviewCreate,
    BidTerms, BidUpdate, BidWithRequirement,
)
from vendorbid.services import bidding
from vendorbid.services.uploads import delete_photos, save_bid_photos, validate_photos

logger = get_logger(__name__)

router = APIRouter(prefix="/api/bids", tags=["Bids"])


# ============= SCHEMAS =============

class BidForm(BidCreate):
    """BidCreate as submitted through a multipart form."""
    materials: Json[List[BidMaterialLine]]
    terms: Optional[Json[BidTerms]] = None

    @field_validator('materials')
    @classmethod
    def materials_not_empty(cls, v: List[BidMaterialLine]) -> List[BidMaterialLine]:
        if not v:
            raise ValueError('At least one material is required')
        return v

    @field_validator('terms', mode='before')
    @classmethod
    def blank_terms(cls, v):
        if isinstance(v, str) and not v.strip():
            return None
        return v


# ============= ROUTES =============

@router.post("", response_model=BidMutationResponse, status_code=status.HTTP_201_CREATED)
async def place_bid(
    request: Request,
    requirement: Optional[str] = Form(None),
    amount: Optional[str] = Form(None),
    delivery_time: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    materials: Optional[str] = Form(None),
    terms: Optional[str] = Form(None),
    photos: Optional[List[UploadFile]] = File(None),
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """
    Place a bid (verified suppliers only).

    1. Form fields are validated as a whole
    2. Role, verification, requirement state, window and duplicate checks
    3. Photos are written to disk
    4. Bid is stored and the requirement moves to BIDDING
    """
    payload = BidForm.model_validate({
        "requirement": requirement,
        "amount": amount,
        "delivery_time": delivery_time,
        "description": description,
        "materials": materials,
        "terms": terms,
    })
    photos = validate_photos(photos)

    bidding.ensure_can_bid(db, user, payload.requirement)

    photo_paths = await save_bid_photos(photos)
    try:
        bid = bidding.submit_bid(db, user, payload, photos=photo_paths, request=request)
    except Exception as e:
        if photo_paths:
            reason = e.message if isinstance(e, AppError) else type(e).__name__
            logger.info(f"Discarding {len(photo_paths)} photos of refused bid: {reason}")
            delete_photos(photo_paths)
        raise

    return BidMutationResponse(
        message="Bid placed successfully",
        bid=BidResponse.model_validate(bid),
    )


@router.get("/my-bids", response_model=List[BidWithRequirement])
async def my_bids(
    user: User = Depends(RBACChecker(Action.LIST_OWN_BIDS)),
    db: Session = Depends(get_db)
):
    """The calling supplier's bids, newest first."""
    bids = db.query(Bid).filter(
        Bid.supplier_id == user.id
    ).order_by(desc(Bid.submitted_at), desc(Bid.id)).all()
    return [BidWithRequirement.model_validate(b) for b in bids]


@router.put("/{bid_id}", response_model=BidMutationResponse)
async def update_bid(
    bid_id: int,
    request: Request,
    data: BidUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Update a pending bid while bidding is open (owner only)."""
    bid = bidding.update_bid(db, user, bid_id, data, request=request)
    return BidMutationResponse(
        message="Bid updated successfully",
        bid=BidResponse.model_validate(bid),
    )


@router.delete("/{bid_id}", response_model=BidMutationResponse)
async def withdraw_bid(
    bid_id: int,
    request: Request,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Withdraw a pending bid while bidding is open (owner only)."""
    bid = bidding.withdraw_bid(db, user, bid_id, request=request)
    return BidMutationResponse(
        message="Bid withdrawn successfully",
        bid=BidResponse.model_validate(bid),
    )


@router.get("/requirement/{requirement_id}", response_model=List[BidResponse])
async def bids_for_requirement(
    requirement_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """All bids on a requirement with their reviews, cheapest first."""
    exists = db.query(Requirement.id).filter(Requirement.id == requirement_id).first()
    if not exists:
        raise NotFoundError("Requirement not found")

    bids = db.query(Bid).filter(
        Bid.requirement_id == requirement_id
    ).order_by(Bid.amount, Bid.id).all()
    return [BidResponse.model_validate(b) for b in bids]


@router.post("/{bid_id}/reviews", response_model=BidMutationResponse, status_code=status.HTTP_201_CREATED)
async def review_bid(
    bid_id: int,
    request: Request,
    data: BidReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Review a bid (owner of the bid's requirement only)."""
    bid = bidding.add_bid_review(db, user, bid_id, data, request=request)
    return BidMutationResponse(
        message="Review added successfully",
        bid=BidResponse.model_validate(bid),
    )
