"""
Sales analytics - pure aggregation over a vendor's sales and material logs.

Nothing here touches the database. Entries are any objects exposing the
SalesEntry / MaterialUsageEntry attribute names, so ORM rows, pydantic
models and SimpleNamespace fixtures all work.
"""
import math
from typing import Dict, Iterable, List, Optional

from vendorbid.core.config import settings
from vendorbid.db.models import as_utc

MAX_OPTIMIZE_RECOMMENDATIONS = 3
BUY_QUANTITY_FACTOR = 0.2
TREND_TOLERANCE = 0.10


def compute_profit(revenue: float, cost: float) -> float:
    return revenue - cost


def compute_margin(revenue: float, cost: float) -> float:
    """Margin in percent. Without revenue any cost is a total loss (-100), no cost is 0."""
    if not revenue:
        return -100.0 if cost > 0 else 0.0
    return (revenue - cost) / revenue * 100


def aggregate_products(sales: Iterable) -> Dict[str, dict]:
    """Sum revenue, quantity and cost per product name (first-seen order)."""
    stats: Dict[str, dict] = {}
    for sale in sales:
        entry = stats.setdefault(
            sale.product_name,
            {"total_revenue": 0.0, "total_quantity": 0.0, "total_cost": 0.0},
        )
        entry["total_revenue"] += sale.revenue
        entry["total_quantity"] += sale.quantity
        entry["total_cost"] += sale.cost
    return stats


def top_selling_products(stats: Dict[str, dict], limit: int) -> List[dict]:
    ranked = sorted(stats.items(), key=lambda item: item[1]["total_revenue"], reverse=True)
    return [
        {
            "product_name": name,
            "total_revenue": s["total_revenue"],
            "total_quantity": s["total_quantity"],
        }
        for name, s in ranked[:limit]
    ]


def profit_margins(stats: Dict[str, dict]) -> List[dict]:
    margins = [
        {
            "product_name": name,
            "margin": compute_margin(s["total_revenue"], s["total_cost"]),
            "trend": "stable",
        }
        for name, s in stats.items()
    ]
    margins.sort(key=lambda m: m["margin"], reverse=True)
    return margins


def _usage_trend(quantities: List[float]) -> str:
    """Compare the mean of the later half of the log against the earlier half."""
    if len(quantities) < 2:
        return "stable"
    middle = len(quantities) // 2
    earlier = sum(quantities[:middle]) / middle
    later = sum(quantities[middle:]) / (len(quantities) - middle)
    if earlier == 0:
        return "increasing" if later > 0 else "stable"
    change = (later - earlier) / earlier
    if change > TREND_TOLERANCE:
        return "increasing"
    if change < -TREND_TOLERANCE:
        return "decreasing"
    return "stable"


def material_efficiency(usage: Iterable) -> List[dict]:
    grouped: Dict[str, list] = {}
    for entry in sorted(usage, key=lambda u: as_utc(u.date)):
        grouped.setdefault(entry.material_name, []).append(entry)

    result = []
    for name, entries in grouped.items():
        total_quantity = sum(e.quantity for e in entries)
        total_cost = sum(e.cost for e in entries)
        result.append({
            "material_name": name,
            "cost_per_unit": total_cost / total_quantity if total_quantity else 0.0,
            "usage_trend": _usage_trend([e.quantity for e in entries]),
        })
    return result


def generate_recommendations(
    top_products: List[dict],
    margins: List[dict],
    threshold: Optional[float] = None,
) -> List[dict]:
    """
    Rebuild the recommendation list from scratch.

    - "buy" the best seller: 20% of its total quantity, rounded up.
    - "optimize" up to three products whose margin is below the threshold.
    """
    threshold = settings.LOW_MARGIN_THRESHOLD if threshold is None else threshold
    recommendations = []

    if top_products:
        top = top_products[0]
        recommendations.append({
            "type": "buy",
            "material": top["product_name"],
            "quantity": math.ceil(top["total_quantity"] * BUY_QUANTITY_FACTOR),
            "reason": f"High demand for {top['product_name']}",
            "priority": "high",
        })

    low_margin = [m for m in margins if m["margin"] < threshold][:MAX_OPTIMIZE_RECOMMENDATIONS]
    for product in low_margin:
        recommendations.append({
            "type": "optimize",
            "material": product["product_name"],
            "quantity": 0,
            "reason": f"Low profit margin ({product['margin']:.1f}%) - consider cost optimization",
            "priority": "medium",
        })

    return recommendations


def build_insights(sales: Iterable, usage: Iterable = (), threshold: Optional[float] = None) -> dict:
    """Derive the full insight document from the logs as they stand."""
    sales = list(sales)
    stats = aggregate_products(sales)
    top = top_selling_products(stats, settings.TOP_PRODUCTS_LIMIT)
    margins = profit_margins(stats)
    return {
        "top_selling_products": top,
        "material_efficiency": material_efficiency(usage),
        "profit_margins": margins,
        "recommendations": generate_recommendations(top, margins, threshold),
    }


def empty_dashboard() -> dict:
    return {
        "total_revenue": 0,
        "total_profit": 0,
        "total_sales": 0,
        "profit_margin": 0,
        "top_products": [],
        "material_efficiency": [],
        "recommendations": [],
    }


def dashboard_metrics(sales: Iterable, insights: dict) -> dict:
    sales = list(sales)
    total_revenue = sum(s.revenue for s in sales)
    total_profit = sum(s.profit for s in sales)
    insights = insights or {}
    return {
        "total_revenue": total_revenue,
        "total_profit": total_profit,
        "total_sales": len(sales),
        "profit_margin": (total_profit / total_revenue * 100) if total_revenue > 0 else 0,
        "top_products": insights.get("top_selling_products", []),
        "material_efficiency": insights.get("material_efficiency", []),
        "recommendations": insights.get("recommendations", []),
    }
