"""
Database session management with SQLAlchemy.
"""
from sqlalchemy import create_engine
from sqlalchemy.orm import declarative_base, sessionmaker, Session
from sqlalchemy.pool import StaticPool
from typing import Generator
from contextlib import contextmanager

from vendorbid.core.config import settings
from vendorbid.core.logging import get_logger

logger = get_logger(__name__)


def _engine_options(url: str) -> dict:
    if url.startswith("sqlite"):
        options = {"connect_args": {"check_same_thread": False}}
        if ":memory:" in url or url.rstrip("/") == "sqlite:":
            options["poolclass"] = StaticPool
        return options
    return {
        "pool_pre_ping": True,
        "pool_size": 10,
        "max_overflow": 20,
        "pool_timeout": 30,
        "pool_recycle": 1800,
    }


engine = create_engine(settings.DATABASE_URL, **_engine_options(settings.DATABASE_URL))

SessionLocal = sessionmaker(autocommit=False, autoflush=False, bind=engine)

Base = declarative_base()


def get_db() -> Generator[Session, None, None]:
    """Dependency for getting database session.

    Anything left uncommitted when a request fails is rolled back.
    """
    db = SessionLocal()
    try:
        yield db
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


@contextmanager
def get_db_context() -> Generator[Session, None, None]:
    """Context manager for database session."""
    db = SessionLocal()
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
    finally:
        db.close()


def init_db():
    """
    Initialize database connection and run startup tasks.

    Schema is managed by Alembic migrations (`alembic upgrade head`).
    With DEBUG=true missing tables are created from the ORM metadata.

    Startup order:
    1. Run preflight check (validates DB connectivity)
    2. Verify schema exists
    3. Bootstrap admin if ADMIN_BOOTSTRAP_* env vars set
    4. Seed demo data ONLY if SEED_DEMO=true
    """
    from sqlalchemy import inspect

    from vendorbid.db.preflight import run_db_preflight
    run_db_preflight()

    from vendorbid.db import models  # noqa

    existing_tables = inspect(engine).get_table_names()
    required_tables = ['users', 'requirements', 'bids']

    missing = [t for t in required_tables if t not in existing_tables]
    if missing:
        logger.warning(f"Database schema missing tables: {missing}. Run 'alembic upgrade head'.")
        if settings.DEBUG:
            logger.warning("DEBUG=true: Auto-creating tables (NOT for production!)")
            Base.metadata.create_all(bind=engine)
        else:
            return
    else:
        logger.info(f"Database schema verified: {len(existing_tables)} tables found")

    bootstrap_admin()

    if settings.SEED_DEMO:
        logger.info("SEED_DEMO=true: Seeding demo data...")
        seed_demo_data()


def bootstrap_admin():
    """
    Bootstrap the admin account from environment variables.

    Admins cannot register through the API; this is the only production
    path. Does nothing when the email is already taken.
    """
    from vendorbid.db.models import User, UserRole
    from vendorbid.core.security import get_password_hash

    email = settings.ADMIN_BOOTSTRAP_EMAIL
    password = settings.ADMIN_BOOTSTRAP_PASSWORD

    if not email or not password:
        logger.info("Admin bootstrap: ADMIN_BOOTSTRAP_EMAIL/PASSWORD not set. Skipping.")
        return

    if len(password) < 10:
        logger.warning("ADMIN_BOOTSTRAP_PASSWORD must be at least 10 characters. Skipping bootstrap.")
        return

    with get_db_context() as db:
        existing = db.query(User).filter(User.email == email.lower()).first()
        if existing:
            logger.info("Admin bootstrap: account already exists. Skipping.")
            return

        db.add(User(
            email=email.lower(),
            hashed_password=get_password_hash(password),
            name="Administrator",
            role=UserRole.ADMIN.value,
            verified=True,
            is_active=True,
        ))
        logger.info(f"Bootstrap admin created: {email}")


def seed_demo_data():
    """
    Seed demo data for development/testing ONLY.

    WARNING: This creates predictable demo credentials.
    """
    from datetime import timedelta
    from vendorbid.db.models import (
        User, UserRole, Requirement, RequirementMaterial, RequirementStatus, utcnow
    )
    from vendorbid.core.security import get_password_hash

    with get_db_context() as db:
        if db.query(Requirement).first():
            logger.info("Demo data already exists. Skipping...")
            return

        password = get_password_hash("demo1234567")
        vendor = User(
            email="vendor@example.com", hashed_password=password, name="Ramesh Chaat Corner",
            phone="9000000001", role=UserRole.VENDOR.value,
            address={"city": "Pune", "locality": "Shivajinagar"},
        )
        suppliers = [
            User(
                email=f"supplier{i}@example.com", hashed_password=password, name=name,
                phone=f"900000001{i}", role=UserRole.SUPPLIER.value, verified=True,
                address={"city": "Pune", "locality": locality},
            )
            for i, (name, locality) in enumerate([
                ("Fresh Farm Traders", "Hadapsar"),
                ("Pune Wholesale Mart", "Market Yard"),
            ], start=1)
        ]
        db.add(vendor)
        db.add_all(suppliers)
        db.flush()

        now = utcnow()
        requirement = Requirement(
            vendor_id=vendor.id,
            title="Weekly onions and potatoes",
            description="Regular weekly supply for the stall",
            budget_min=1000,
            budget_max=5000,
            delivery_locality="Shivajinagar",
            delivery_city="Pune",
            delivery_date=now + timedelta(days=10),
            bidding_end_date=now + timedelta(days=5),
            status=RequirementStatus.OPEN.value,
            materials=[
                RequirementMaterial(position=0, name="Onion", quantity=50, unit="kg"),
                RequirementMaterial(position=1, name="Potato", quantity=40, unit="kg"),
            ],
        )
        db.add(requirement)
        logger.info("Demo data seeded: 1 vendor, 2 suppliers, 1 requirement")
