"""
Bid workflow - submission, mutation, withdrawal and award.

Requirement lifecycle:
1. Created → status = OPEN
2. First bid placed → status = BIDDING, total_bids incremented
3. Bid withdrawn → total_bids decremented; back to OPEN when it hits zero
4. Bid awarded → status = AWARDED, winner ACCEPTED, every other live bid REJECTED

Every function here ends in exactly one commit. The award in particular
locks the requirement row and writes the requirement, the winning bid
and the rejected bids in a single transaction, so a failure leaves
nothing half-awarded.
"""
from typing import List, Optional, Sequence

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from vendorbid.core.errors import ConflictError, NotFoundError
from vendorbid.core.logging import get_logger
from vendorbid.core.rbac import Action, authorize
from vendorbid.db.models import (
    Bid, BidMaterial, BidReview, BidStatus, Requirement, RequirementStatus, User, utcnow
)
from vendorbid.schemas import BidCreate, BidMaterialLine, BidReviewCreate, BidUpdate
from vendorbid.services.audit import record_action

logger = get_logger(__name__)

BIDDABLE_STATUSES = (RequirementStatus.OPEN.value, RequirementStatus.BIDDING.value)
CLOSED_STATUSES = (
    RequirementStatus.AWARDED.value,
    RequirementStatus.COMPLETED.value,
    RequirementStatus.CANCELLED.value,
)

DUPLICATE_BID_MESSAGE = "You have already placed a bid for this requirement"
BIDDING_ENDED_MESSAGE = "Bidding period has ended"


def _get_requirement(db: Session, requirement_id: int, lock: bool = False) -> Requirement:
    query = db.query(Requirement).filter(Requirement.id == requirement_id)
    if lock:
        query = query.with_for_update()
    requirement = query.first()
    if not requirement:
        raise NotFoundError("Requirement not found")
    return requirement


def _get_bid(db: Session, bid_id: int, lock: bool = False) -> Bid:
    query = db.query(Bid).filter(Bid.id == bid_id)
    if lock:
        query = query.with_for_update()
    bid = query.first()
    if not bid:
        raise NotFoundError("Bid not found")
    return bid


def _build_materials(lines: Sequence[BidMaterialLine]) -> List[BidMaterial]:
    return [
        BidMaterial(
            position=i,
            name=line.name,
            quantity=line.quantity,
            unit=line.unit,
            price=line.price,
            quality=line.quality.value,
        )
        for i, line in enumerate(lines)
    ]


def ensure_can_bid(db: Session, supplier: User, requirement_id: int, lock: bool = False) -> Requirement:
    """
    Check every precondition for placing a bid.

    Order: role, verification, requirement exists, requirement status,
    bidding window, one bid per supplier.
    """
    authorize(supplier, Action.SUBMIT_BID)

    requirement = _get_requirement(db, requirement_id, lock=lock)

    if requirement.status not in BIDDABLE_STATUSES:
        raise ConflictError("This requirement is not open for bidding")

    if requirement.is_bidding_closed():
        raise ConflictError(BIDDING_ENDED_MESSAGE)

    existing = db.query(Bid.id).filter(
        Bid.requirement_id == requirement.id,
        Bid.supplier_id == supplier.id,
    ).first()
    if existing:
        raise ConflictError(DUPLICATE_BID_MESSAGE)

    return requirement


def submit_bid(
    db: Session,
    supplier: User,
    payload: BidCreate,
    photos: Optional[List[str]] = None,
    request=None,
) -> Bid:
    """Persist a new bid and move its requirement into BIDDING."""
    requirement = ensure_can_bid(db, supplier, payload.requirement, lock=True)

    bid = Bid(
        requirement_id=requirement.id,
        supplier_id=supplier.id,
        amount=payload.amount,
        delivery_time=payload.delivery_time,
        description=payload.description,
        materials=_build_materials(payload.materials),
        terms=payload.terms.model_dump() if payload.terms else None,
        photos=list(photos or []),
        status=BidStatus.PENDING.value,
    )
    db.add(bid)

    requirement.total_bids = (requirement.total_bids or 0) + 1
    requirement.status = RequirementStatus.BIDDING.value

    try:
        db.flush()
        record_action(
            db, "submit_bid", supplier.id, "bid", bid.id,
            details={"requirement_id": requirement.id, "amount": payload.amount},
            request=request,
        )
        db.commit()
    except IntegrityError:
        # Concurrent duplicate caught by uq_bid_requirement_supplier
        db.rollback()
        raise ConflictError(DUPLICATE_BID_MESSAGE)

    db.refresh(bid)
    logger.info(f"Bid {bid.id} placed on requirement {requirement.id} by supplier {supplier.id}")
    return bid


def _ensure_bid_mutable(db: Session, supplier: User, bid: Bid, action: Action, verb: str) -> Requirement:
    authorize(supplier, action, owner_id=bid.supplier_id)

    if bid.status != BidStatus.PENDING.value:
        raise ConflictError(f"Cannot {verb} bid that is not pending")

    requirement = _get_requirement(db, bid.requirement_id, lock=True)
    if requirement.is_bidding_closed():
        raise ConflictError(BIDDING_ENDED_MESSAGE)
    return requirement


def update_bid(db: Session, supplier: User, bid_id: int, payload: BidUpdate, request=None) -> Bid:
    """Replace the mutable fields of a pending bid."""
    bid = _get_bid(db, bid_id, lock=True)
    _ensure_bid_mutable(db, supplier, bid, Action.UPDATE_BID, "update")

    changes = payload.model_dump(exclude_unset=True)
    if payload.amount is not None:
        bid.amount = payload.amount
    if payload.delivery_time is not None:
        bid.delivery_time = payload.delivery_time
    if payload.description is not None:
        bid.description = payload.description
    if payload.materials is not None:
        bid.materials = _build_materials(payload.materials)
    if "terms" in changes:
        bid.terms = payload.terms.model_dump() if payload.terms else None
    bid.updated_at = utcnow()

    record_action(db, "update_bid", supplier.id, "bid", bid.id, details=changes, request=request)
    db.commit()
    db.refresh(bid)
    return bid


def withdraw_bid(db: Session, supplier: User, bid_id: int, request=None) -> Bid:
    """Withdraw a pending bid; the requirement reopens when no live bids remain."""
    bid = _get_bid(db, bid_id, lock=True)
    requirement = _ensure_bid_mutable(db, supplier, bid, Action.WITHDRAW_BID, "withdraw")

    bid.status = BidStatus.WITHDRAWN.value
    bid.updated_at = utcnow()

    requirement.total_bids = max(0, (requirement.total_bids or 0) - 1)
    if requirement.total_bids == 0 and requirement.status == RequirementStatus.BIDDING.value:
        requirement.status = RequirementStatus.OPEN.value

    record_action(
        db, "withdraw_bid", supplier.id, "bid", bid.id,
        details={"requirement_id": requirement.id, "remaining_bids": requirement.total_bids},
        request=request,
    )
    db.commit()
    db.refresh(bid)
    return bid


def award_bid(db: Session, vendor: User, requirement_id: int, bid_id: int, request=None):
    """
    Award a requirement to one of its bids.

    Returns (requirement, winning_bid). Either all three writes (requirement,
    winner, losers) are committed or none are.
    """
    requirement = _get_requirement(db, requirement_id, lock=True)
    authorize(vendor, Action.AWARD_BID, owner_id=requirement.vendor_id)

    if requirement.status in CLOSED_STATUSES:
        raise ConflictError(f"Requirement is already {requirement.status}")

    bid = db.query(Bid).filter(
        Bid.id == bid_id,
        Bid.requirement_id == requirement.id,
    ).with_for_update().first()
    if not bid:
        raise NotFoundError("Bid not found")

    if bid.status != BidStatus.PENDING.value:
        raise ConflictError(f"Cannot award a bid that is {bid.status}")

    try:
        requirement.status = RequirementStatus.AWARDED.value
        requirement.awarded_to_id = bid.supplier_id
        requirement.awarded_bid_id = bid.id
        requirement.updated_at = utcnow()

        bid.status = BidStatus.ACCEPTED.value
        bid.is_winning = True
        bid.updated_at = utcnow()

        rejected = db.query(Bid).filter(
            Bid.requirement_id == requirement.id,
            Bid.id != bid.id,
            Bid.status != BidStatus.WITHDRAWN.value,
        ).update(
            {
                Bid.status: BidStatus.REJECTED.value,
                Bid.is_winning: False,
                Bid.updated_at: utcnow(),
            },
            synchronize_session="fetch",
        )

        record_action(
            db, "award_bid", vendor.id, "requirement", requirement.id,
            details={"bid_id": bid.id, "supplier_id": bid.supplier_id, "rejected_bids": rejected},
            request=request,
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    db.refresh(requirement)
    db.refresh(bid)
    logger.info(f"Requirement {requirement.id} awarded to bid {bid.id}; {rejected} other bids rejected")
    return requirement, bid


def add_bid_review(db: Session, vendor: User, bid_id: int, payload: BidReviewCreate, request=None) -> Bid:
    """Append the requirement owner's review to a bid."""
    bid = _get_bid(db, bid_id)
    requirement = _get_requirement(db, bid.requirement_id)
    authorize(vendor, Action.REVIEW_BID, owner_id=requirement.vendor_id)

    bid.reviews.append(BidReview(reviewer_id=vendor.id, rating=payload.rating, text=payload.text))

    record_action(
        db, "review_bid", vendor.id, "bid", bid.id,
        details={"rating": payload.rating},
        request=request,
    )
    db.commit()
    db.refresh(bid)
    return bid
