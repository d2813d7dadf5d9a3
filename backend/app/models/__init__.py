"""Aggregate model imports for Alembic auto-detection."""

# Identity
from app.models.user import User, UserRole  # noqa: F401

# Resources
from app.models.client import Client, ClientStatus  # noqa: F401
from app.models.filing import Filing, FilingPriority, FilingStatus, FilingType  # noqa: F401
from app.models.document import Document, DocumentType  # noqa: F401
from app.models.payment import Payment, PaymentMethod, PaymentStatus  # noqa: F401
from app.models.notification import Notification  # noqa: F401

# Onboarding
from app.models.onboarding import (  # noqa: F401
    OnboardingFile,
    OnboardingPaymentStatus,
    OnboardingProgress,
    OnboardingStepRecord,
)

# Settings
from app.models.settings import (  # noqa: F401
    AdminRole,
    NotificationSetting,
    PricingPlan,
    TaxSlab,
)
