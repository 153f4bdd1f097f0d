"""
ORM models for the precast ERP domains: contacts, estimating, projects,
drafting, HR, purchasing, yard, quality, shipping and sales.

Importing this package registers every mapped class with the Base metadata
for Alembic and runtime usage.
"""

from .contacts import Contact, ContactInteraction  # noqa: F401
from .estimating import Estimate  # noqa: F401
from .projects import Project  # noqa: F401
from .drafting import (  # noqa: F401
    Drawing,
    DrawingMarkup,
    DrawingRevision,
    Workflow,
    WorkflowTemplate,
)
from .hr import (  # noqa: F401
    Certification,
    Employee,
    LeaveBalance,
    LeaveRequest,
    TimeEntry,
    Timesheet,
    TrainingRecord,
)
from .purchasing import (  # noqa: F401
    PurchaseOrder,
    PurchaseOrderItem,
    ReceivingItem,
    ReceivingRecord,
    Vendor,
    VendorStatusLog,
)
from .yard import Equipment, Material, Movement, YardLocation  # noqa: F401
from .quality import MixDesign, Piece, QCDefect, QCInspection, TestResult  # noqa: F401
from .shipping import (  # noqa: F401
    Delivery,
    DeliveryStatusEvent,
    Dispatch,
    Driver,
    LoadPlan,
    Shipment,
    Vehicle,
)
from .sales import Job, Lead, Opportunity, Quote  # noqa: F401
