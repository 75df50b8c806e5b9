"""
Request and response schemas shared by the API routers and services.

Response models read straight from ORM rows (from_attributes); every
datetime passing through here is normalised to aware UTC.
"""
from datetime import datetime
from typing import Annotated, List, Optional

from pydantic import (
    AfterValidator, BaseModel, ConfigDict, EmailStr, Field, field_validator
)

from vendorbid.db.models import (
    BidStatus, MaterialQuality, MaterialUnit, RequirementStatus, UserRole, as_utc
)

UTCDateTime = Annotated[datetime, AfterValidator(as_utc)]


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# ============= SHARED PIECES =============

class Address(BaseModel):
    street: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    locality: Optional[str] = None


class DeliveryLocation(BaseModel):
    address: Optional[str] = None
    city: Optional[str] = None
    state: Optional[str] = None
    pincode: Optional[str] = None
    locality: Optional[str] = None


class Budget(BaseModel):
    # min <= max is deliberately not enforced
    min: float = Field(..., ge=0)
    max: float = Field(..., ge=0)


class MaterialLine(ORMModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(..., gt=0)
    unit: MaterialUnit
    specifications: Optional[str] = None

    @field_validator('name')
    @classmethod
    def strip_name(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Material name is required')
        return v


class BidMaterialLine(ORMModel):
    name: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(..., gt=0)
    unit: str = Field(..., min_length=1, max_length=20)
    price: float = Field(..., ge=0)
    quality: MaterialQuality = MaterialQuality.STANDARD


class BidTerms(BaseModel):
    payment_terms: Optional[str] = None
    delivery_terms: Optional[str] = None
    warranty: Optional[str] = None


class UserSummary(ORMModel):
    id: int
    name: str
    email: str
    phone: Optional[str] = None
    verified: bool = False


class ReviewerOut(ORMModel):
    id: int
    name: str


class UserReviewOut(ORMModel):
    id: int
    reviewer: Optional[ReviewerOut] = None
    rating: int
    comment: Optional[str] = None
    created_at: Optional[UTCDateTime] = None


class BidReviewOut(ORMModel):
    id: int
    reviewer: Optional[ReviewerOut] = None
    rating: int
    text: str
    created_at: Optional[UTCDateTime] = None


class SupplierDetail(UserSummary):
    reviews: List[UserReviewOut] = []
    average_rating: Optional[float] = None


# ============= AUTH & USERS =============

class RegisterRequest(BaseModel):
    name: str = Field(..., min_length=1, max_length=255)
    email: EmailStr
    password: str = Field(..., min_length=6, max_length=128)
    phone: str = Field(..., min_length=1, max_length=50)
    user_type: UserRole
    address: Optional[Address] = None

    @field_validator('user_type')
    @classmethod
    def no_self_registered_admins(cls, v: UserRole) -> UserRole:
        if v == UserRole.ADMIN:
            raise ValueError('user_type must be vendor or supplier')
        return v


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., max_length=128)


class ChangePasswordRequest(BaseModel):
    current_password: str = Field(..., max_length=128)
    new_password: str = Field(..., min_length=6, max_length=128)


class UserResponse(ORMModel):
    id: int
    email: str
    name: str
    phone: Optional[str] = None
    role: UserRole
    address: Optional[Address] = None
    verified: bool
    verification_documents: Optional[dict] = None
    reviews: List[UserReviewOut] = []
    average_rating: Optional[float] = None
    created_at: Optional[UTCDateTime] = None
    last_login: Optional[UTCDateTime] = None

    @field_validator('verification_documents')
    @classmethod
    def hide_document_numbers(cls, v: Optional[dict]) -> Optional[dict]:
        if not v:
            return v
        return {k: val for k, val in v.items() if k.endswith("_verified")} | {
            "aadhar_submitted": bool(v.get("aadhar_number")),
            "fssai_submitted": bool(v.get("fssai_license")),
        }


class TokenResponse(BaseModel):
    access_token: str
    token_type: str = "bearer"
    expires_in: int
    user: UserResponse


class ProfileUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=255)
    phone: Optional[str] = Field(None, min_length=1, max_length=50)
    address: Optional[Address] = None


class VerificationStatus(BaseModel):
    verified: bool
    verification_documents: dict


# ============= REQUIREMENTS =============

def _required_title(v: str) -> str:
    v = v.strip()
    if not v:
        raise ValueError('Title is required')
    return v


class RequirementCreate(BaseModel):
    title: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    materials: List[MaterialLine] = Field(..., min_length=1)
    budget: Budget
    delivery_location: Optional[DeliveryLocation] = None
    delivery_date: UTCDateTime
    bidding_end_date: UTCDateTime
    tags: List[str] = []

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: str) -> str:
        return _required_title(v)


class RequirementUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    materials: Optional[List[MaterialLine]] = Field(None, min_length=1)
    budget: Optional[Budget] = None
    delivery_location: Optional[DeliveryLocation] = None
    delivery_date: Optional[UTCDateTime] = None
    bidding_end_date: Optional[UTCDateTime] = None
    tags: Optional[List[str]] = None

    @field_validator('title')
    @classmethod
    def strip_title(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        return _required_title(v)


class RequirementResponse(ORMModel):
    id: int
    vendor_id: int
    vendor: Optional[UserSummary] = None
    title: str
    description: Optional[str] = None
    materials: List[MaterialLine]
    budget: Budget
    delivery_location: DeliveryLocation
    delivery_date: UTCDateTime
    bidding_end_date: UTCDateTime
    status: RequirementStatus
    total_bids: int
    awarded_to_id: Optional[int] = None
    awarded_bid_id: Optional[int] = None
    tags: List[str] = []
    created_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None

    @field_validator('tags', mode='before')
    @classmethod
    def none_tags(cls, v):
        return v or []


class RequirementListResponse(BaseModel):
    requirements: List[RequirementResponse]
    total_pages: int
    current_page: int
    total: int


class RequirementMutationResponse(BaseModel):
    message: str
    requirement: RequirementResponse


class AwardRequest(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    bid_id: int = Field(..., alias="bidId")


class SupplierReviewCreate(BaseModel):
    rating: int = Field(..., ge=1, le=5)
    comment: Optional[str] = Field(None, max_length=2000)


# ============= BIDS =============

class BidCreate(BaseModel):
    requirement: int
    amount: float = Field(..., gt=0)
    delivery_time: int = Field(..., gt=0)
    description: str = Field(..., max_length=5000)
    materials: List[BidMaterialLine] = Field(..., min_length=1)
    terms: Optional[BidTerms] = None

    @field_validator('description')
    @classmethod
    def description_length(cls, v: str) -> str:
        v = v.strip()
        if len(v) < 10:
            raise ValueError('Description must be at least 10 characters')
        return v


class BidUpdate(BaseModel):
    amount: Optional[float] = Field(None, gt=0)
    delivery_time: Optional[int] = Field(None, gt=0)
    description: Optional[str] = Field(None, max_length=5000)
    materials: Optional[List[BidMaterialLine]] = Field(None, min_length=1)
    terms: Optional[BidTerms] = None

    @field_validator('description')
    @classmethod
    def description_length(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return v
        v = v.strip()
        if len(v) < 10:
            raise ValueError('Description must be at least 10 characters')
        return v


class RequirementSummary(ORMModel):
    id: int
    title: str
    description: Optional[str] = None
    budget: Budget
    delivery_location: DeliveryLocation
    status: RequirementStatus
    bidding_end_date: UTCDateTime
    vendor: Optional[UserSummary] = None


class BidResponse(ORMModel):
    id: int
    requirement_id: int
    supplier_id: int
    supplier: Optional[UserSummary] = None
    amount: float
    delivery_time: int
    description: str
    materials: List[BidMaterialLine]
    terms: Optional[BidTerms] = None
    photos: List[str] = []
    status: BidStatus
    is_winning: bool
    reviews: List[BidReviewOut] = []
    submitted_at: Optional[UTCDateTime] = None
    updated_at: Optional[UTCDateTime] = None

    @field_validator('photos', mode='before')
    @classmethod
    def none_photos(cls, v):
        return v or []


class BidWithRequirement(BidResponse):
    requirement: Optional[RequirementSummary] = None


class BidWithSupplierDetail(BidResponse):
    supplier: Optional[SupplierDetail] = None


class BidMutationResponse(BaseModel):
    message: str
    bid: BidResponse


class BidReviewCreate(BaseModel):
    text: str = Field(..., min_length=1, max_length=2000)
    rating: int = Field(..., ge=1, le=5)

    @field_validator('text')
    @classmethod
    def strip_text(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError('Review text is required')
        return v


class RequirementDetailResponse(BaseModel):
    requirement: RequirementResponse
    bids: List[BidResponse]
    total_bids: int


class AwardResponse(BaseModel):
    message: str
    requirement: RequirementResponse
    awarded_bid: BidResponse


# ============= ANALYTICS =============

class SalesEntryIn(BaseModel):
    date: UTCDateTime
    product_name: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(..., ge=0)
    revenue: float = Field(..., ge=0)
    cost: float = Field(..., ge=0)


class SalesEntryOut(SalesEntryIn, ORMModel):
    id: int
    profit: float


class SalesDataSubmit(BaseModel):
    sales_data: List[SalesEntryIn] = Field(..., min_length=1)


class MaterialUsageIn(BaseModel):
    material_name: str = Field(..., min_length=1, max_length=255)
    quantity: float = Field(..., ge=0)
    unit: str = Field(..., min_length=1, max_length=20)
    cost: float = Field(..., ge=0)
    date: UTCDateTime


class MaterialUsageOut(MaterialUsageIn, ORMModel):
    id: int


class MaterialUsageSubmit(BaseModel):
    material_usage: List[MaterialUsageIn] = Field(..., min_length=1)


class AnalyticsResponse(ORMModel):
    id: int
    vendor_id: int
    sales_entries: List[SalesEntryOut] = []
    material_usage_entries: List[MaterialUsageOut] = []
    insights: dict = {}
    last_updated: Optional[UTCDateTime] = None

    @field_validator('insights', mode='before')
    @classmethod
    def none_insights(cls, v):
        return v or {}


class AnalyticsMutationResponse(BaseModel):
    message: str
    analytics: AnalyticsResponse


class DashboardResponse(BaseModel):
    message: Optional[str] = None
    analytics: Optional[AnalyticsResponse] = None
    dashboard: dict


class RecommendationsResponse(BaseModel):
    message: str
    recommendations: List[dict]


# ============= AUDIT =============

class AuditLogResponse(ORMModel):
    id: int
    timestamp: Optional[UTCDateTime] = None
    user_id: Optional[int] = None
    action: str
    entity_type: Optional[str] = None
    entity_id: Optional[int] = None
    details: Optional[dict] = None
    ip_address: Optional[str] = None
