"""Import every model so SQLAlchemy can resolve string relationships and
Alembic sees the full metadata."""
from kitabayar.core.database import Base  # noqa: F401
from kitabayar.models.user import User  # noqa: F401
from kitabayar.models.resident import Resident  # noqa: F401
from kitabayar.models.bill_category import BillCategory  # noqa: F401
from kitabayar.models.bill_type import BillType  # noqa: F401
from kitabayar.models.bill_period import BillPeriod  # noqa: F401
from kitabayar.models.bill import Bill  # noqa: F401
from kitabayar.models.payment import Payment  # noqa: F401
from kitabayar.models.audit_log import AuditLog  # noqa: F401
