"""
Requirements API routes - posting, browsing and awarding raw-material needs.
"""
import math
from typing import List, Optional

from fastapi import APIRouter, Depends, Query, Request, status
from sqlalchemy.orm import Session
from sqlalchemy import desc

from vendorbid.db.session import get_db
from vendorbid.db.models import (
    Bid, Requirement, RequirementMaterial, RequirementStatus, User, UserReview, UserRole
)
from vendorbid.core.config import settings
from vendorbid.core.errors import ConflictError, NotFoundError
from vendorbid.core.rbac import Action, RBACChecker, authorize, get_current_user
from vendorbid.schemas import (
    AwardRequest, AwardResponse, BidResponse, BidWithSupplierDetail, DeliveryLocation,
    MaterialLine, RequirementCreate, RequirementDetailResponse, RequirementListResponse,
    RequirementMutationResponse, RequirementResponse, RequirementUpdate,
    SupplierReviewCreate, UserResponse,
)
from vendorbid.services import bidding
from vendorbid.services.audit import record_action

router = APIRouter(prefix="/api/requirements", tags=["Requirements"])


def _build_materials(lines: List[MaterialLine]) -> List[RequirementMaterial]:
    return [
        RequirementMaterial(
            position=i,
            name=line.name,
            quantity=line.quantity,
            unit=line.unit.value,
            specifications=line.specifications,
        )
        for i, line in enumerate(lines)
    ]


def _apply_delivery_location(requirement: Requirement, location: Optional[DeliveryLocation]) -> None:
    location = location or DeliveryLocation()
    requirement.delivery_address = location.address
    requirement.delivery_city = location.city
    requirement.delivery_state = location.state
    requirement.delivery_pincode = location.pincode
    requirement.delivery_locality = location.locality


def _get_requirement(db: Session, requirement_id: int) -> Requirement:
    requirement = db.query(Requirement).filter(Requirement.id == requirement_id).first()
    if not requirement:
        raise NotFoundError("Requirement not found")
    return requirement


def _get_supplier(db: Session, supplier_id: int) -> User:
    supplier = db.query(User).filter(
        User.id == supplier_id,
        User.role == UserRole.SUPPLIER.value,
    ).first()
    if not supplier:
        raise NotFoundError("Supplier not found")
    return supplier


# ============= ROUTES =============

@router.post("", response_model=RequirementMutationResponse, status_code=status.HTTP_201_CREATED)
async def create_requirement(
    request: Request,
    data: RequirementCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Post a new requirement (vendor only). Starts OPEN."""
    authorize(user, Action.CREATE_REQUIREMENT)

    requirement = Requirement(
        vendor_id=user.id,
        title=data.title,
        description=data.description,
        budget_min=data.budget.min,
        budget_max=data.budget.max,
        delivery_date=data.delivery_date,
        bidding_end_date=data.bidding_end_date,
        status=RequirementStatus.OPEN.value,
        total_bids=0,
        tags=data.tags,
        materials=_build_materials(data.materials),
    )
    _apply_delivery_location(requirement, data.delivery_location)
    db.add(requirement)
    db.flush()

    record_action(
        db, "create_requirement", user.id, "requirement", requirement.id,
        details={"title": requirement.title, "materials": len(data.materials)},
        request=request,
    )
    db.commit()
    db.refresh(requirement)

    return RequirementMutationResponse(
        message="Requirement created successfully",
        requirement=RequirementResponse.model_validate(requirement),
    )


@router.get("", response_model=RequirementListResponse)
async def list_requirements(
    status_filter: Optional[RequirementStatus] = Query(None, alias="status"),
    locality: Optional[str] = Query(None, max_length=255),
    material: Optional[str] = Query(None, max_length=255),
    min_budget: Optional[float] = Query(None, alias="minBudget", ge=0),
    max_budget: Optional[float] = Query(None, alias="maxBudget", ge=0),
    page: int = Query(1, ge=1),
    limit: int = Query(settings.DEFAULT_PAGE_SIZE, ge=1, le=settings.MAX_PAGE_SIZE),
    db: Session = Depends(get_db)
):
    """
    Browse requirements, newest first.

    minBudget / maxBudget select requirements whose budget range overlaps
    the requested window.
    """
    query = db.query(Requirement)

    if status_filter:
        query = query.filter(Requirement.status == status_filter.value)
    if locality:
        query = query.filter(Requirement.delivery_locality.icontains(locality, autoescape=True))
    if material:
        query = query.filter(
            Requirement.materials.any(RequirementMaterial.name.icontains(material, autoescape=True))
        )
    if min_budget is not None:
        query = query.filter(Requirement.budget_max >= min_budget)
    if max_budget is not None:
        query = query.filter(Requirement.budget_min <= max_budget)

    total = query.count()
    requirements = (
        query.order_by(desc(Requirement.created_at), desc(Requirement.id))
        .offset((page - 1) * limit)
        .limit(limit)
        .all()
    )

    return RequirementListResponse(
        requirements=[RequirementResponse.model_validate(r) for r in requirements],
        total_pages=math.ceil(total / limit),
        current_page=page,
        total=total,
    )


@router.get("/vendor/my-requirements", response_model=List[RequirementResponse])
async def my_requirements(
    user: User = Depends(RBACChecker(Action.LIST_OWN_REQUIREMENTS)),
    db: Session = Depends(get_db)
):
    """The calling vendor's requirements, newest first."""
    requirements = db.query(Requirement).filter(
        Requirement.vendor_id == user.id
    ).order_by(desc(Requirement.created_at), desc(Requirement.id)).all()
    return [RequirementResponse.model_validate(r) for r in requirements]


@router.get("/users", response_model=List[UserResponse])
async def list_users(
    user_type: Optional[UserRole] = Query(None, alias="userType"),
    user: User = Depends(RBACChecker(Action.LIST_USERS)),
    db: Session = Depends(get_db)
):
    """List accounts, optionally by role (admin only)."""
    query = db.query(User)
    if user_type:
        query = query.filter(User.role == user_type.value)
    return [UserResponse.model_validate(u) for u in query.order_by(User.id).all()]


@router.get("/{requirement_id}", response_model=RequirementDetailResponse)
async def get_requirement(
    requirement_id: int,
    db: Session = Depends(get_db)
):
    """Requirement detail with its bids, cheapest first."""
    requirement = _get_requirement(db, requirement_id)
    bids = db.query(Bid).filter(
        Bid.requirement_id == requirement_id
    ).order_by(Bid.amount, Bid.id).all()

    return RequirementDetailResponse(
        requirement=RequirementResponse.model_validate(requirement),
        bids=[BidResponse.model_validate(b) for b in bids],
        total_bids=len(bids),
    )


@router.put("/{requirement_id}", response_model=RequirementMutationResponse)
async def update_requirement(
    requirement_id: int,
    request: Request,
    data: RequirementUpdate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Edit a requirement (owner only, while OPEN)."""
    requirement = _get_requirement(db, requirement_id)
    authorize(user, Action.UPDATE_REQUIREMENT, owner_id=requirement.vendor_id)

    if requirement.status != RequirementStatus.OPEN.value:
        raise ConflictError("Cannot update requirement that is not open")

    changes = data.model_dump(exclude_unset=True, mode="json")
    if data.title is not None:
        requirement.title = data.title.strip()
    if "description" in changes:
        requirement.description = data.description
    if data.materials is not None:
        requirement.materials = _build_materials(data.materials)
    if data.budget is not None:
        requirement.budget_min = data.budget.min
        requirement.budget_max = data.budget.max
    if "delivery_location" in changes:
        _apply_delivery_location(requirement, data.delivery_location)
    if data.delivery_date is not None:
        requirement.delivery_date = data.delivery_date
    if data.bidding_end_date is not None:
        requirement.bidding_end_date = data.bidding_end_date
    if data.tags is not None:
        requirement.tags = data.tags

    record_action(
        db, "update_requirement", user.id, "requirement", requirement.id,
        details=changes, request=request,
    )
    db.commit()
    db.refresh(requirement)

    return RequirementMutationResponse(
        message="Requirement updated successfully",
        requirement=RequirementResponse.model_validate(requirement),
    )


@router.post("/{requirement_id}/award", response_model=AwardResponse)
async def award_requirement(
    requirement_id: int,
    request: Request,
    data: AwardRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Award the requirement to one bid and reject the rest (owner only)."""
    requirement, bid = bidding.award_bid(db, user, requirement_id, data.bid_id, request=request)
    return AwardResponse(
        message="Bid awarded successfully",
        requirement=RequirementResponse.model_validate(requirement),
        awarded_bid=BidResponse.model_validate(bid),
    )


@router.get("/{requirement_id}/bids")
async def requirement_bids(
    requirement_id: int,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Bids on an owned requirement with supplier reviews (owner only)."""
    requirement = _get_requirement(db, requirement_id)
    authorize(user, Action.VIEW_REQUIREMENT_BIDS, owner_id=requirement.vendor_id)

    bids = db.query(Bid).filter(
        Bid.requirement_id == requirement_id
    ).order_by(Bid.amount, Bid.id).all()

    return {"bids": [BidWithSupplierDetail.model_validate(b) for b in bids]}


@router.post("/supplier/{supplier_id}/review", status_code=status.HTTP_201_CREATED)
async def review_supplier(
    supplier_id: int,
    request: Request,
    data: SupplierReviewCreate,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Vendor reviews a supplier directly."""
    authorize(user, Action.REVIEW_SUPPLIER)
    supplier = _get_supplier(db, supplier_id)

    supplier.reviews.append(UserReview(reviewer_id=user.id, rating=data.rating, comment=data.comment))
    record_action(
        db, "review_supplier", user.id, "user", supplier.id,
        details={"rating": data.rating}, request=request,
    )
    db.commit()

    return {"message": "Review added successfully"}


@router.post("/suppliers/{supplier_id}/verify")
async def verify_supplier(
    supplier_id: int,
    request: Request,
    user: User = Depends(RBACChecker(Action.VERIFY_SUPPLIER)),
    db: Session = Depends(get_db)
):
    """Mark a supplier as verified (admin only)."""
    supplier = _get_supplier(db, supplier_id)
    supplier.verified = True

    record_action(db, "verify_supplier", user.id, "user", supplier.id, request=request)
    db.commit()

    return {"message": "Supplier verified successfully"}
