"""
Payload builders and small helpers shared by the API tests.
"""
from datetime import datetime, timedelta, timezone

from vendorbid.db.models import User
from vendorbid.db.session import SessionLocal

PASSWORD = "secret-pass-123"


def iso(days: float) -> str:
    """ISO timestamp `days` from now (negative for the past)."""
    return (datetime.now(timezone.utc) + timedelta(days=days)).isoformat()


def auth(token: str) -> dict:
    return {"Authorization": f"Bearer {token}"}


def requirement_payload(**overrides) -> dict:
    payload = {
        "title": "Onions for the week",
        "description": "Fresh red onions, delivered to the stall",
        "materials": [
            {"name": "Onion", "quantity": 50, "unit": "kg", "specifications": "Medium size"},
        ],
        "budget": {"min": 1000, "max": 5000},
        "delivery_location": {"city": "Pune", "locality": "Shivajinagar"},
        "delivery_date": iso(10),
        "bidding_end_date": iso(5),
    }
    payload.update(overrides)
    return payload


def bid_form(requirement_id: int, amount: float = 4000, **overrides) -> dict:
    form = {
        "requirement": str(requirement_id),
        "amount": str(amount),
        "delivery_time": "3",
        "description": "Grade A onions sourced from Nashik",
        "materials": '[{"name": "Onion", "quantity": 50, "unit": "kg", "price": 80}]',
        "terms": '{"payment_terms": "On delivery"}',
    }
    form.update(overrides)
    return form


def set_verified(user_id: int, verified: bool = True) -> None:
    with SessionLocal() as db:
        db.query(User).filter(User.id == user_id).update({User.verified: verified})
        db.commit()
