"""Initial schema: identity, onboarding, filings, payments, settings.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Enum columns store member names (ADMIN, CA, ...), matching SAEnum's default.
"""

revision = "0001"
down_revision = None
branch_labels = None
depends_on = None

from alembic import op
import sqlalchemy as sa


def _timestamps() -> list[sa.Column]:
    return [
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    ]


def upgrade() -> None:
    # ── Identity ─────────────────────────────────────────────

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(20)),
        sa.Column(
            "role",
            sa.Enum("ADMIN", "CA", "CUSTOMER", name="userrole"),
            server_default="CUSTOMER",
        ),
        sa.Column("is_active", sa.Boolean(), server_default=sa.true()),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false()),
        sa.Column("profile_image_url", sa.String(500)),
        sa.Column("last_login_at", sa.DateTime()),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])

    # ── Onboarding ───────────────────────────────────────────

    op.create_table(
        "onboarding_progress",
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            primary_key=True,
        ),
        sa.Column("current_step", sa.Integer(), server_default="1"),
        sa.Column("total_steps", sa.Integer(), server_default="7"),
        sa.Column("completed_steps", sa.JSON()),
        sa.Column(
            "payment_status",
            sa.Enum("PENDING", "COMPLETED", "FAILED", name="onboardingpaymentstatus"),
            server_default="PENDING",
        ),
        sa.Column("is_completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("last_updated", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "onboarding_step_data",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("step_name", sa.String(50), nullable=False),
        sa.Column("data", sa.JSON()),
        sa.Column("completed_at", sa.DateTime()),
        *_timestamps(),
        sa.UniqueConstraint("user_id", "step", name="uq_onboarding_step_user_step"),
    )
    op.create_index("ix_onboarding_step_data_user_id", "onboarding_step_data", ["user_id"])

    op.create_table(
        "onboarding_files",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("step", sa.Integer(), nullable=False),
        sa.Column("file_type", sa.String(50), nullable=False),
        sa.Column("original_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("metadata", sa.JSON()),
        sa.Column("uploaded_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_onboarding_files_user_id", "onboarding_files", ["user_id"])
    op.create_index("ix_onboarding_files_uploaded_at", "onboarding_files", ["uploaded_at"])

    # ── Clients & filings ────────────────────────────────────

    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
            unique=True,
        ),
        sa.Column("ca_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("pan_number", sa.String(10), nullable=False, unique=True),
        sa.Column("aadhar_number", sa.String(12)),
        sa.Column("date_of_birth", sa.Date()),
        sa.Column("address", sa.JSON()),
        sa.Column("occupation", sa.String(100)),
        sa.Column("annual_income", sa.Float()),
        sa.Column(
            "status",
            sa.Enum("ACTIVE", "INACTIVE", "SUSPENDED", name="clientstatus"),
            server_default="ACTIVE",
        ),
        sa.Column("onboarding_completed", sa.Boolean(), server_default=sa.false()),
        sa.Column("profile", sa.JSON()),
        *_timestamps(),
    )
    op.create_index("ix_clients_ca_id", "clients", ["ca_id"])

    op.create_table(
        "filings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "client_id",
            sa.String(36),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("ca_id", sa.String(36), sa.ForeignKey("users.id", ondelete="SET NULL")),
        sa.Column("tax_year", sa.String(9), nullable=False),
        sa.Column(
            "filing_type",
            sa.Enum("INDIVIDUAL", "BUSINESS", "CAPITAL_GAINS", name="filingtype"),
            nullable=False,
        ),
        sa.Column(
            "status",
            sa.Enum(
                "DRAFT", "IN_PROGRESS", "UNDER_REVIEW", "COMPLETED", "REJECTED",
                name="filingstatus",
            ),
            server_default="DRAFT",
        ),
        sa.Column(
            "priority",
            sa.Enum("LOW", "MEDIUM", "HIGH", "URGENT", name="filingpriority"),
            server_default="MEDIUM",
        ),
        sa.Column("due_date", sa.Date()),
        sa.Column("submitted_at", sa.DateTime()),
        sa.Column("completed_at", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        sa.Column("data", sa.JSON()),
        *_timestamps(),
        sa.UniqueConstraint(
            "client_id", "tax_year", "filing_type", name="uq_filing_client_year_type"
        ),
    )
    op.create_index("ix_filings_client_id", "filings", ["client_id"])
    op.create_index("ix_filings_ca_id", "filings", ["ca_id"])
    op.create_index("ix_filings_status", "filings", ["status"])

    op.create_table(
        "documents",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "filing_id",
            sa.String(36),
            sa.ForeignKey("filings.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("uploaded_by", sa.String(36), sa.ForeignKey("users.id"), nullable=False),
        sa.Column("verified_by", sa.String(36), sa.ForeignKey("users.id")),
        sa.Column(
            "document_type",
            sa.Enum(
                "FORM16", "SALARY_SLIP", "BANK_STATEMENT", "INVESTMENT_PROOF", "ITR", "OTHER",
                name="documenttype",
            ),
            nullable=False,
        ),
        sa.Column("file_name", sa.String(255), nullable=False),
        sa.Column("file_path", sa.String(500), nullable=False),
        sa.Column("file_size", sa.Integer(), nullable=False),
        sa.Column("mime_type", sa.String(100), nullable=False),
        sa.Column("is_verified", sa.Boolean(), server_default=sa.false()),
        sa.Column("verified_at", sa.DateTime()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_documents_filing_id", "documents", ["filing_id"])

    # ── Payments ─────────────────────────────────────────────

    op.create_table(
        "payments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "client_id",
            sa.String(36),
            sa.ForeignKey("clients.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("filing_id", sa.String(36), sa.ForeignKey("filings.id", ondelete="SET NULL")),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), server_default="INR"),
        sa.Column(
            "status",
            sa.Enum(
                "INITIATED", "PENDING", "SUCCESS", "FAILED", "REFUNDED",
                name="paymentstatus",
            ),
            server_default="INITIATED",
        ),
        sa.Column(
            "payment_method",
            sa.Enum("CARD", "UPI", "NETBANKING", "WALLET", name="paymentmethod"),
            nullable=False,
        ),
        sa.Column("gateway_provider", sa.String(50), server_default="razorpay"),
        sa.Column("gateway_order_id", sa.String(100), unique=True),
        sa.Column("gateway_payment_id", sa.String(100)),
        sa.Column("gateway_response", sa.JSON()),
        sa.Column("refund_amount", sa.Float(), server_default="0"),
        sa.Column("refund_reason", sa.String(500)),
        *_timestamps(),
    )
    op.create_index("ix_payments_client_id", "payments", ["client_id"])
    op.create_index("ix_payments_filing_id", "payments", ["filing_id"])
    op.create_index("ix_payments_status", "payments", ["status"])
    op.create_index("ix_payments_gateway_order_id", "payments", ["gateway_order_id"])
    op.create_index("ix_payments_gateway_payment_id", "payments", ["gateway_payment_id"])

    # ── Notifications ────────────────────────────────────────

    op.create_table(
        "notifications",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "user_id",
            sa.String(36),
            sa.ForeignKey("users.id", ondelete="CASCADE"),
            nullable=False,
        ),
        sa.Column("title", sa.String(255), nullable=False),
        sa.Column("body", sa.Text(), nullable=False),
        sa.Column(
            "type",
            sa.Enum("INFO", "WARNING", "SUCCESS", "ERROR", name="notificationtype"),
            server_default="INFO",
        ),
        sa.Column(
            "category",
            sa.Enum("FILING", "PAYMENT", "DOCUMENT", "SYSTEM", name="notificationcategory"),
            server_default="SYSTEM",
        ),
        sa.Column("is_read", sa.Boolean(), server_default=sa.false()),
        sa.Column("action_url", sa.String(500)),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_notifications_user_id", "notifications", ["user_id"])
    op.create_index("ix_notifications_is_read", "notifications", ["is_read"])
    op.create_index("ix_notifications_created_at", "notifications", ["created_at"])

    # ── Settings ─────────────────────────────────────────────

    op.create_table(
        "pricing_plans",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("price", sa.Float(), nullable=False),
        sa.Column("features", sa.JSON()),
        sa.Column("status", sa.Boolean(), server_default=sa.true()),
        *_timestamps(),
    )

    op.create_table(
        "tax_slabs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("regime", sa.Enum("OLD", "NEW", name="taxregime"), nullable=False),
        sa.Column("min_income", sa.Float(), nullable=False),
        sa.Column("max_income", sa.Float()),
        sa.Column("tax_rate_percent", sa.Float(), nullable=False),
        sa.Column("surcharge_percent", sa.Float(), server_default="0"),
        *_timestamps(),
    )
    op.create_index("ix_tax_slabs_regime", "tax_slabs", ["regime"])

    op.create_table(
        "notification_settings",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.Boolean(), server_default=sa.true()),
        sa.Column("sms", sa.Boolean(), server_default=sa.false()),
        sa.Column("push", sa.Boolean(), server_default=sa.true()),
        sa.Column("weekly_reports", sa.Boolean(), server_default=sa.true()),
        sa.Column("updated_at", sa.DateTime(), server_default=sa.func.now()),
    )

    op.create_table(
        "admin_roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "role_name",
            sa.Enum("SUPER_ADMIN", "SUPPORT_ADMIN", name="adminrolename"),
            nullable=False,
            unique=True,
        ),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("permissions", sa.JSON()),
        *_timestamps(),
    )


def downgrade() -> None:
    for table in (
        "admin_roles",
        "notification_settings",
        "tax_slabs",
        "pricing_plans",
        "notifications",
        "payments",
        "documents",
        "filings",
        "clients",
        "onboarding_files",
        "onboarding_step_data",
        "onboarding_progress",
        "users",
    ):
        op.drop_table(table)

    for enum_name in (
        "adminrolename",
        "taxregime",
        "notificationcategory",
        "notificationtype",
        "paymentmethod",
        "paymentstatus",
        "documenttype",
        "filingpriority",
        "filingstatus",
        "filingtype",
        "clientstatus",
        "onboardingpaymentstatus",
        "userrole",
    ):
        sa.Enum(name=enum_name).drop(op.get_bind(), checkfirst=True)
