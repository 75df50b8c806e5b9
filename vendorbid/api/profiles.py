"""
Vendor and supplier profile routes.
"""
from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from vendorbid.db.session import get_db
from vendorbid.db.models import User
from vendorbid.core.rbac import Action, RBACChecker
from vendorbid.schemas import ProfileUpdate, UserResponse, VerificationStatus
from vendorbid.services.audit import record_action

vendors_router = APIRouter(prefix="/api/vendors", tags=["Vendors"])
suppliers_router = APIRouter(prefix="/api/suppliers", tags=["Suppliers"])


def update_profile(db: Session, user: User, data: ProfileUpdate, request: Request) -> User:
    """Apply name/phone/address changes; fields left out are kept."""
    changes = data.model_dump(exclude_unset=True, exclude_none=True)
    if "name" in changes:
        user.name = changes["name"].strip()
    if "phone" in changes:
        user.phone = changes["phone"]
    if "address" in changes:
        user.address = changes["address"]

    record_action(
        db, "update_profile", user.id, "user", user.id,
        details={"fields": sorted(changes)}, request=request,
    )
    db.commit()
    db.refresh(user)
    return user


# ============= VENDORS =============

@vendors_router.get("/profile", response_model=UserResponse)
async def get_vendor_profile(user: User = Depends(RBACChecker(Action.VENDOR_PROFILE))):
    return UserResponse.model_validate(user)


@vendors_router.put("/profile")
async def update_vendor_profile(
    request: Request,
    data: ProfileUpdate,
    user: User = Depends(RBACChecker(Action.VENDOR_PROFILE)),
    db: Session = Depends(get_db)
):
    user = update_profile(db, user, data, request)
    return {
        "message": "Profile updated successfully",
        "vendor": UserResponse.model_validate(user),
    }


# ============= SUPPLIERS =============

@suppliers_router.get("/profile", response_model=UserResponse)
async def get_supplier_profile(user: User = Depends(RBACChecker(Action.SUPPLIER_PROFILE))):
    return UserResponse.model_validate(user)


@suppliers_router.put("/profile")
async def update_supplier_profile(
    request: Request,
    data: ProfileUpdate,
    user: User = Depends(RBACChecker(Action.SUPPLIER_PROFILE)),
    db: Session = Depends(get_db)
):
    user = update_profile(db, user, data, request)
    return {
        "message": "Profile updated successfully",
        "supplier": UserResponse.model_validate(user),
    }


@suppliers_router.get("/verification-status", response_model=VerificationStatus)
async def verification_status(user: User = Depends(RBACChecker(Action.SUPPLIER_PROFILE))):
    """Whether the supplier may bid yet, and the documents on file."""
    return VerificationStatus(
        verified=bool(user.verified),
        verification_documents=UserResponse.model_validate(user).verification_documents or {},
    )
