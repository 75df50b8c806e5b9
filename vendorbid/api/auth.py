"""
Authentication API routes.
"""
from datetime import datetime, timezone
from fastapi import APIRouter, Depends, HTTPException, status, Request
from sqlalchemy.orm import Session
from sqlalchemy import func

from vendorbid.db.session import get_db
from vendorbid.db.models import User
from vendorbid.core.security import (
    create_access_token, get_password_hash, verify_and_rehash, verify_password
)
from vendorbid.core.rbac import get_current_user
from vendorbid.core.config import settings
from vendorbid.schemas import (
    ChangePasswordRequest, LoginRequest, RegisterRequest, TokenResponse, UserResponse
)
from vendorbid.services.audit import record_action

router = APIRouter(prefix="/api/auth", tags=["Authentication"])


def _issue_token(user: User) -> TokenResponse:
    return TokenResponse(
        access_token=create_access_token(user.id, user.email, user.role),
        expires_in=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        user=UserResponse.model_validate(user),
    )


@router.post("/register", response_model=TokenResponse, status_code=status.HTTP_201_CREATED)
async def register(
    request: Request,
    register_data: RegisterRequest,
    db: Session = Depends(get_db)
):
    """Register a vendor or supplier account."""
    if not settings.ALLOW_PUBLIC_REGISTRATION:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Public registration is disabled. Contact an administrator.",
        )

    email = register_data.email.lower()
    existing = db.query(User).filter(func.lower(User.email) == email).first()
    if existing:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="User already exists",
        )

    user = User(
        email=email,
        hashed_password=get_password_hash(register_data.password),
        name=register_data.name.strip(),
        phone=register_data.phone,
        role=register_data.user_type.value,
        address=register_data.address.model_dump() if register_data.address else {},
        verification_documents={},
        last_login=datetime.now(timezone.utc),
    )
    db.add(user)
    db.flush()

    record_action(
        db, "register", user.id, "user", user.id,
        details={"email": user.email, "role": user.role},
        request=request,
    )
    db.commit()
    db.refresh(user)

    return _issue_token(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    request: Request,
    login_data: LoginRequest,
    db: Session = Depends(get_db)
):
    """Authenticate user and return JWT token."""
    user = db.query(User).filter(func.lower(User.email) == login_data.email.lower()).first()

    valid, new_hash = verify_and_rehash(login_data.password, user.hashed_password) if user else (False, None)
    if not valid:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password",
        )

    if not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Account is disabled",
        )

    if new_hash:
        user.hashed_password = new_hash
    user.last_login = datetime.now(timezone.utc)
    record_action(db, "login", user.id, "user", user.id, request=request)
    db.commit()
    db.refresh(user)

    return _issue_token(user)


@router.get("/me", response_model=UserResponse)
async def get_me(user: User = Depends(get_current_user)):
    """Get current authenticated user."""
    return UserResponse.model_validate(user)


@router.post("/change-password")
async def change_password(
    request: Request,
    data: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: Session = Depends(get_db)
):
    """Change current user's password."""
    if not verify_password(data.current_password, user.hashed_password):
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Current password is incorrect",
        )

    user.hashed_password = get_password_hash(data.new_password)
    record_action(db, "change_password", user.id, "user", user.id, request=request)
    db.commit()

    return {"message": "Password changed successfully"}
