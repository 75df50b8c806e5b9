"""
Role-Based Access Control (RBAC) policy.

Every endpoint funnels through `authorize()`, which looks the action up in
POLICY and checks role, resource ownership and supplier verification in
that order. Handlers never compare roles themselves.
"""
from dataclasses import dataclass
from enum import Enum
from typing import FrozenSet, Optional

from fastapi import Depends, HTTPException, status
from sqlalchemy.orm import Session

from vendorbid.core.errors import ForbiddenError
from vendorbid.core.security import get_current_user_id, get_role_value
from vendorbid.db.models import User, UserRole
from vendorbid.db.session import get_db


class Action(str, Enum):
    CREATE_REQUIREMENT = "create_requirement"
    UPDATE_REQUIREMENT = "update_requirement"
    AWARD_BID = "award_bid"
    VIEW_REQUIREMENT_BIDS = "view_requirement_bids"
    LIST_OWN_REQUIREMENTS = "list_own_requirements"
    SUBMIT_BID = "submit_bid"
    UPDATE_BID = "update_bid"
    WITHDRAW_BID = "withdraw_bid"
    LIST_OWN_BIDS = "list_own_bids"
    REVIEW_BID = "review_bid"
    REVIEW_SUPPLIER = "review_supplier"
    VERIFY_SUPPLIER = "verify_supplier"
    LIST_USERS = "list_users"
    VIEW_AUDIT_LOG = "view_audit_log"
    MANAGE_ANALYTICS = "manage_analytics"
    VENDOR_PROFILE = "vendor_profile"
    SUPPLIER_PROFILE = "supplier_profile"


@dataclass(frozen=True)
class Rule:
    roles: FrozenSet[UserRole]
    role_message: str
    owner_message: Optional[str] = None  # set => caller must own the resource
    verified_message: Optional[str] = None  # set => caller must be verified


_VENDOR = frozenset({UserRole.VENDOR})
_SUPPLIER = frozenset({UserRole.SUPPLIER})
_ADMIN = frozenset({UserRole.ADMIN})

POLICY = {
    Action.CREATE_REQUIREMENT: Rule(_VENDOR, "Only vendors can create requirements"),
    Action.UPDATE_REQUIREMENT: Rule(
        _VENDOR, "Only vendors can update requirements",
        owner_message="You can only update your own requirements",
    ),
    Action.AWARD_BID: Rule(
        _VENDOR, "Only vendors can award bids",
        owner_message="You can only award bids for your own requirements",
    ),
    Action.VIEW_REQUIREMENT_BIDS: Rule(
        _VENDOR, "Only vendors can view bids for their requirements",
        owner_message="You can only view bids for your own requirements",
    ),
    Action.LIST_OWN_REQUIREMENTS: Rule(_VENDOR, "Access denied"),
    Action.SUBMIT_BID: Rule(
        _SUPPLIER, "Only suppliers can place bids",
        verified_message="You must be a verified supplier to place bids.",
    ),
    Action.UPDATE_BID: Rule(
        _SUPPLIER, "Only suppliers can update bids",
        owner_message="You can only update your own bids",
    ),
    Action.WITHDRAW_BID: Rule(
        _SUPPLIER, "Only suppliers can withdraw bids",
        owner_message="You can only withdraw your own bids",
    ),
    Action.LIST_OWN_BIDS: Rule(_SUPPLIER, "Access denied"),
    Action.REVIEW_BID: Rule(
        _VENDOR, "Only vendors can review bids",
        owner_message="Only the requirement creator can review bids",
    ),
    Action.REVIEW_SUPPLIER: Rule(_VENDOR, "Only vendors can add reviews"),
    Action.VERIFY_SUPPLIER: Rule(_ADMIN, "Only admins can verify suppliers"),
    Action.LIST_USERS: Rule(_ADMIN, "Only admins can view users"),
    Action.VIEW_AUDIT_LOG: Rule(_ADMIN, "Only admins can view the audit log"),
    Action.MANAGE_ANALYTICS: Rule(_VENDOR, "Only vendors can access analytics"),
    Action.VENDOR_PROFILE: Rule(_VENDOR, "Access denied"),
    Action.SUPPLIER_PROFILE: Rule(_SUPPLIER, "Access denied"),
}


def authorize(user: User, action: Action, owner_id: Optional[int] = None) -> User:
    """Raise ForbiddenError unless `user` may perform `action`.

    `owner_id` is the user id owning the target resource; it is required
    for actions whose rule demands ownership.
    """
    rule = POLICY[action]

    try:
        role = UserRole(get_role_value(user.role))
    except ValueError:
        raise ForbiddenError(rule.role_message)

    if role not in rule.roles:
        raise ForbiddenError(rule.role_message)

    if rule.owner_message is not None:
        if owner_id is None:
            raise ValueError(f"Action {action.value} requires the resource owner id")
        if owner_id != user.id:
            raise ForbiddenError(rule.owner_message)

    if rule.verified_message is not None and not user.verified:
        raise ForbiddenError(rule.verified_message)

    return user


async def get_current_user(
    user_id: int = Depends(get_current_user_id),
    db: Session = Depends(get_db),
) -> User:
    """Load the authenticated account."""
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token user",
        )
    return user


class RBACChecker:
    """Dependency applying the role part of a rule before the handler runs."""

    def __init__(self, action: Action):
        self.action = action

    async def __call__(self, user: User = Depends(get_current_user)) -> User:
        rule = POLICY[self.action]
        if rule.owner_message is not None:
            raise ValueError(f"{self.action.value} needs an owner id; call authorize() in the handler")
        return authorize(user, self.action)
