import os

os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ.setdefault("JWT_SECRET", "test-secret")

from datetime import date, datetime, timedelta, timezone  # noqa: E402
from decimal import Decimal  # noqa: E402

import pytest  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import create_engine  # noqa: E402
from sqlalchemy.orm import sessionmaker  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from kitabayar.api.deps import get_db  # noqa: E402
from kitabayar.core.auth import create_access_token, hash_password  # noqa: E402
from kitabayar.main import app  # noqa: E402
from kitabayar.models.all import (  # noqa: E402
    Base,
    Bill,
    BillCategory,
    BillPeriod,
    BillType,
    Payment,
    Resident,
    User,
)
from kitabayar.models.enums import PaymentMethod, PaymentStatus, UserRole  # noqa: E402


@pytest.fixture
def engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    Base.metadata.drop_all(bind=engine)
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(bind=engine, autocommit=False, autoflush=False, expire_on_commit=False)


@pytest.fixture
def db(session_factory):
    session = session_factory()
    yield session
    session.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        session = session_factory()
        try:
            yield session
        except Exception:
            session.rollback()
            raise
        finally:
            session.close()

    app.dependency_overrides[get_db] = override_get_db
    with TestClient(app) as c:
        yield c
    app.dependency_overrides.clear()


@pytest.fixture
def make(session_factory):
    """Persist a model instance and hand it back detached, attributes loaded."""
    def _make(obj):
        session = session_factory()
        try:
            session.add(obj)
            session.commit()
            session.refresh(obj)
            session.expunge(obj)
            return obj
        finally:
            session.close()
    return _make


def _auth(user: User) -> dict:
    return {"Authorization": f"Bearer {create_access_token(user)}"}


@pytest.fixture
def admin(make):
    return make(User(email="admin@kitabayar.com", username="admin", password_hash=hash_password("admin123"), role=UserRole.ADMIN))


@pytest.fixture
def staff(make):
    return make(User(email="staff@kitabayar.com", username="staff", password_hash=hash_password("staff123"), role=UserRole.STAFF))


@pytest.fixture
def admin_headers(admin):
    return _auth(admin)


@pytest.fixture
def staff_headers(staff):
    return _auth(staff)


@pytest.fixture
def resident_account(make):
    user = make(User(email="resident@gmail.com", username="warga1", password_hash=hash_password("resident123"), role=UserRole.RESIDENT))
    resident = make(
        Resident(
            user_id=user.id,
            full_name="Budi Santoso",
            phone_number="081234567890",
            address="Jl. Mawar No. 10",
            house_number="10",
            rt_rw="RT 001/RW 005",
        )
    )
    return user, resident


@pytest.fixture
def resident_headers(resident_account):
    user, _ = resident_account
    return _auth(user)


@pytest.fixture
def catalog(make):
    """Monthly dues category with two bill types and a 4-installment period."""
    category = make(BillCategory(name="Iuran Bulanan", description="Iuran rutin bulanan warga", color="#3B82F6"))
    pokok = make(BillType(category_id=category.id, name="Iuran Pokok", base_amount=Decimal("50000")))
    keamanan = make(BillType(category_id=category.id, name="Keamanan", base_amount=Decimal("25000")))
    period = make(
        BillPeriod(
            category_id=category.id,
            name="September 2024",
            start_date=date(2024, 9, 1),
            end_date=date(2024, 9, 30),
            installments=4,
        )
    )
    return {"category": category, "pokok": pokok, "keamanan": keamanan, "period": period}


@pytest.fixture
def make_resident(make):
    def _make_resident(name="Siti Aminah", **kw):
        return make(Resident(full_name=name, **kw))
    return _make_resident


@pytest.fixture
def make_bill(make):
    def _make_bill(resident, bill_type, period="September 2024", amount=None, installments=1, due_in_days=10, **kw):
        due = datetime.now(timezone.utc) + timedelta(days=due_in_days)
        return make(
            Bill(
                resident_id=resident.id,
                bill_type_id=bill_type.id,
                period=period,
                amount=amount if amount is not None else bill_type.base_amount,
                due_date=due,
                installments=installments,
                **kw,
            )
        )
    return _make_bill


@pytest.fixture
def make_payment(make):
    def _make_payment(bill, amount, installment=None, paid_at=None, status=PaymentStatus.COMPLETED, **kw):
        return make(
            Payment(
                resident_id=bill.resident_id,
                bill_id=bill.id,
                amount=Decimal(str(amount)),
                payment_method=PaymentMethod.CASH,
                status=status,
                installment_number=installment,
                paid_at=paid_at or datetime.now(timezone.utc),
                **kw,
            )
        )
    return _make_payment
