"""
Analytics API routes - a vendor's sales and material-usage log.
"""
from datetime import datetime, timezone

from fastapi import APIRouter, Depends, Request
from sqlalchemy.orm import Session

from vendorbid.db.session import get_db
from vendorbid.db.models import MaterialUsageEntry, SalesEntry, User, VendorAnalytics
from vendorbid.core.errors import BadRequestError
from vendorbid.core.rbac import Action, RBACChecker
from vendorbid.schemas import (
    AnalyticsMutationResponse, AnalyticsResponse, DashboardResponse,
    MaterialUsageSubmit, RecommendationsResponse, SalesDataSubmit,
)
from vendorbid.services import analytics as aggregation
from vendorbid.services.audit import record_action

router = APIRouter(prefix="/api/analytics", tags=["Analytics"])


def _get_analytics(db: Session, vendor_id: int, create: bool = False):
    analytics = db.query(VendorAnalytics).filter(VendorAnalytics.vendor_id == vendor_id).first()
    if analytics is None and create:
        analytics = VendorAnalytics(vendor_id=vendor_id, insights={})
        db.add(analytics)
    return analytics


def _refresh_insights(analytics: VendorAnalytics) -> None:
    analytics.insights = aggregation.build_insights(
        analytics.sales_entries, analytics.material_usage_entries
    )
    analytics.last_updated = datetime.now(timezone.utc)


@router.post("/sales-data", response_model=AnalyticsMutationResponse)
async def add_sales_data(
    request: Request,
    data: SalesDataSubmit,
    user: User = Depends(RBACChecker(Action.MANAGE_ANALYTICS)),
    db: Session = Depends(get_db)
):
    """Append sales entries and regenerate insights."""
    analytics = _get_analytics(db, user.id, create=True)
    for sale in data.sales_data:
        analytics.sales_entries.append(SalesEntry(
            date=sale.date,
            product_name=sale.product_name.strip(),
            quantity=sale.quantity,
            revenue=sale.revenue,
            cost=sale.cost,
            profit=aggregation.compute_profit(sale.revenue, sale.cost),
        ))
    _refresh_insights(analytics)
    db.flush()

    record_action(
        db, "add_sales_data", user.id, "vendor_analytics", analytics.id,
        details={"entries": len(data.sales_data)}, request=request,
    )
    db.commit()
    db.refresh(analytics)

    return AnalyticsMutationResponse(
        message="Sales data added successfully",
        analytics=AnalyticsResponse.model_validate(analytics),
    )


@router.post("/material-usage", response_model=AnalyticsMutationResponse)
async def add_material_usage(
    request: Request,
    data: MaterialUsageSubmit,
    user: User = Depends(RBACChecker(Action.MANAGE_ANALYTICS)),
    db: Session = Depends(get_db)
):
    """Append material usage entries."""
    analytics = _get_analytics(db, user.id, create=True)
    for usage in data.material_usage:
        analytics.material_usage_entries.append(MaterialUsageEntry(
            material_name=usage.material_name.strip(),
            quantity=usage.quantity,
            unit=usage.unit,
            cost=usage.cost,
            date=usage.date,
        ))
    _refresh_insights(analytics)
    db.flush()

    record_action(
        db, "add_material_usage", user.id, "vendor_analytics", analytics.id,
        details={"entries": len(data.material_usage)}, request=request,
    )
    db.commit()
    db.refresh(analytics)

    return AnalyticsMutationResponse(
        message="Material usage data added successfully",
        analytics=AnalyticsResponse.model_validate(analytics),
    )


@router.get("/dashboard", response_model=DashboardResponse)
async def get_dashboard(
    user: User = Depends(RBACChecker(Action.MANAGE_ANALYTICS)),
    db: Session = Depends(get_db)
):
    """Totals, top products, material efficiency and recommendations."""
    analytics = _get_analytics(db, user.id)
    if analytics is None:
        return DashboardResponse(
            message="No analytics data found",
            dashboard=aggregation.empty_dashboard(),
        )

    return DashboardResponse(
        analytics=AnalyticsResponse.model_validate(analytics),
        dashboard=aggregation.dashboard_metrics(analytics.sales_entries, analytics.insights),
    )


@router.post("/generate-recommendations", response_model=RecommendationsResponse)
async def generate_recommendations(
    request: Request,
    user: User = Depends(RBACChecker(Action.MANAGE_ANALYTICS)),
    db: Session = Depends(get_db)
):
    """Rebuild recommendations from the current sales log."""
    analytics = _get_analytics(db, user.id)
    if analytics is None or not analytics.sales_entries:
        raise BadRequestError("No sales data available for recommendations")

    _refresh_insights(analytics)
    recommendations = analytics.insights["recommendations"]

    record_action(
        db, "generate_recommendations", user.id, "vendor_analytics", analytics.id,
        details={"count": len(recommendations)}, request=request,
    )
    db.commit()

    return RecommendationsResponse(
        message="Recommendations generated successfully",
        recommendations=recommendations,
    )
