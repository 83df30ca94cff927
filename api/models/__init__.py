"""Central model registry: import all models so Alembic autodiscover works."""

from api.database import Base  # noqa: F401

from api.models.project import Project  # noqa: F401
from api.models.vendor import Vendor  # noqa: F401
from api.models.material_request import MaterialRequest  # noqa: F401
from api.models.rfq import Rfq, RfqLineItem  # noqa: F401
from api.models.bid import Bid, BidLineItem  # noqa: F401
from api.models.audit_log import AuditLog  # noqa: F401
