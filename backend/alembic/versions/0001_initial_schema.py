"""Initial schema: team, operations, billing, financials, support, reports.

Revision ID: 0001
Revises: (none)
Create Date: 2026-10-19

Run with:
    alembic upgrade head
    python -m app.cli seed
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
    # ── Team ─────────────────────────────────────────────────

    op.create_table(
        "roles",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("name", sa.String(50), nullable=False, unique=True),
        sa.Column("display_name", sa.String(100), nullable=False),
        sa.Column("description", sa.Text()),
        sa.Column("user_type", sa.String(20), server_default="client"),
        sa.Column("is_system", sa.Boolean(), server_default="false"),
        sa.Column("permissions", sa.JSON(), server_default="[]"),
        *_timestamps(),
    )
    op.create_index("ix_roles_name", "roles", ["name"])
    op.create_index("ix_roles_user_type", "roles", ["user_type"])

    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("client_code", sa.String(20), nullable=False, unique=True),
        sa.Column("company_name", sa.String(255), nullable=False),
        sa.Column("trading_name", sa.String(255)),
        sa.Column("industry", sa.String(100)),
        sa.Column("website", sa.String(255)),
        sa.Column("contact_first_name", sa.String(100), nullable=False),
        sa.Column("contact_last_name", sa.String(100), nullable=False),
        sa.Column("contact_position", sa.String(100)),
        sa.Column("contact_email", sa.String(255), nullable=False, unique=True),
        sa.Column("contact_phone", sa.String(30), nullable=False),
        sa.Column("contact_alternate_phone", sa.String(30)),
        sa.Column("address_street", sa.String(255)),
        sa.Column("address_city", sa.String(100), nullable=False),
        sa.Column("address_state", sa.String(100)),
        sa.Column("address_postal_code", sa.String(20)),
        sa.Column("address_country", sa.String(100), nullable=False),
        sa.Column("billing_address", sa.JSON()),
        sa.Column("source", sa.String(20), server_default="direct"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("credit_limit", sa.Float(), server_default="0"),
        sa.Column("current_balance", sa.Float(), server_default="0"),
        sa.Column("payment_terms", sa.Integer(), server_default="30"),
        sa.Column("preferred_currency", sa.String(3), server_default="USD"),
        sa.Column("tax_id", sa.String(50)),
        sa.Column("registration_number", sa.String(50)),
        sa.Column("notes", sa.Text()),
        sa.Column("tags", sa.JSON(), server_default="[]"),
        *_timestamps(),
    )
    op.create_index("ix_clients_client_code", "clients", ["client_code"])
    op.create_index("ix_clients_company_name", "clients", ["company_name"])
    op.create_index("ix_clients_contact_email", "clients", ["contact_email"])
    op.create_index("ix_clients_status", "clients", ["status"])

    op.create_table(
        "users",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False, unique=True),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("first_name", sa.String(100), nullable=False),
        sa.Column("last_name", sa.String(100), nullable=False),
        sa.Column("phone", sa.String(30)),
        sa.Column("bio", sa.Text()),
        sa.Column("location", sa.String(255)),
        sa.Column("job_title", sa.String(100)),
        sa.Column("role_id", sa.String(36), sa.ForeignKey("roles.id"), nullable=False),
        sa.Column("user_type", sa.String(20), server_default="client"),
        sa.Column("status", sa.String(20), server_default="active"),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id")),
        sa.Column("permission_override", sa.JSON(), server_default="[]"),
        sa.Column("blocked_permissions", sa.JSON(), server_default="[]"),
        sa.Column("notification_preferences", sa.JSON()),
        sa.Column("email_verified", sa.Boolean(), server_default="false"),
        sa.Column("email_verification_token", sa.String(64)),
        sa.Column("phone_verified", sa.Boolean(), server_default="false"),
        sa.Column("password_reset_token", sa.String(64)),
        sa.Column("password_reset_expires", sa.DateTime()),
        sa.Column("password_changed_at", sa.DateTime()),
        sa.Column("last_login", sa.DateTime()),
        sa.Column("last_login_ip", sa.String(64)),
        sa.Column("created_by", sa.String(36)),
        *_timestamps(),
    )
    op.create_index("ix_users_email", "users", ["email"])
    op.create_index("ix_users_user_type", "users", ["user_type"])
    op.create_index("ix_users_status", "users", ["status"])
    op.create_index("ix_users_client_id", "users", ["client_id"])
    op.create_index("ix_users_email_verification_token", "users", ["email_verification_token"])
    op.create_index("ix_users_password_reset_token", "users", ["password_reset_token"])

    # ── Operations ───────────────────────────────────────────

    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("supplier_code", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("trading_name", sa.String(255)),
        sa.Column("service_types", sa.JSON(), server_default="[]"),
        sa.Column("contact_first_name", sa.String(100), nullable=False),
        sa.Column("contact_last_name", sa.String(100), nullable=False),
        sa.Column("contact_position", sa.String(100)),
        sa.Column("contact_email", sa.String(255), nullable=False, unique=True),
        sa.Column("contact_phone", sa.String(30), nullable=False),
        sa.Column("address_street", sa.String(255)),
        sa.Column("address_city", sa.String(100), nullable=False),
        sa.Column("address_state", sa.String(100)),
        sa.Column("address_postal_code", sa.String(20)),
        sa.Column("address_country", sa.String(100), nullable=False),
        sa.Column("banking", sa.JSON()),
        sa.Column("contracts", sa.JSON(), server_default="[]"),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("rating", sa.Float()),
        sa.Column("payment_terms", sa.String(20), server_default="net_30"),
        sa.Column("total_shipments", sa.Integer(), server_default="0"),
        sa.Column("active_contracts", sa.Integer(), server_default="0"),
        sa.Column("on_time_rate", sa.Float()),
        sa.Column("tags", sa.JSON(), server_default="[]"),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_suppliers_supplier_code", "suppliers", ["supplier_code"])
    op.create_index("ix_suppliers_name", "suppliers", ["name"])
    op.create_index("ix_suppliers_contact_email", "suppliers", ["contact_email"])
    op.create_index("ix_suppliers_status", "suppliers", ["status"])

    op.create_table(
        "containers",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("container_code", sa.String(20), nullable=False, unique=True),
        sa.Column("container_number", sa.String(20), nullable=False, unique=True),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("status", sa.String(20), server_default="available"),
        sa.Column("location", sa.String(255)),
        sa.Column("current_shipment_id", sa.String(36)),
        sa.Column("condition", sa.String(20), server_default="good"),
        sa.Column("last_inspection_date", sa.Date()),
        sa.Column("purchase_date", sa.Date()),
        sa.Column("purchase_price", sa.Float()),
        sa.Column("notes", sa.Text()),
        *_timestamps(),
    )
    op.create_index("ix_containers_container_code", "containers", ["container_code"])
    op.create_index("ix_containers_container_number", "containers", ["container_number"])
    op.create_index("ix_containers_type", "containers", ["type"])
    op.create_index("ix_containers_status", "containers", ["status"])

    op.create_table(
        "shipments",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("shipment_code", sa.String(20), nullable=False, unique=True),
        sa.Column("tracking_number", sa.String(30), nullable=False, unique=True),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("supplier_id", sa.String(36), sa.ForeignKey("suppliers.id")),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("containers.id")),
        sa.Column("origin_port", sa.String(100), nullable=False),
        sa.Column("origin_city", sa.String(100)),
        sa.Column("origin_country", sa.String(100), nullable=False),
        sa.Column("destination_port", sa.String(100), nullable=False),
        sa.Column("destination_city", sa.String(100)),
        sa.Column("destination_country", sa.String(100), nullable=False),
        sa.Column("status", sa.String(30), server_default="pending"),
        sa.Column("cargo_description", sa.Text(), nullable=False),
        sa.Column("cargo_weight", sa.Float()),
        sa.Column("cargo_volume", sa.Float()),
        sa.Column("cargo_quantity", sa.Integer()),
        sa.Column("cargo_container_type", sa.String(30)),
        sa.Column("booking_date", sa.Date()),
        sa.Column("departure_date", sa.Date()),
        sa.Column("estimated_arrival", sa.Date()),
        sa.Column("actual_arrival", sa.Date()),
        sa.Column("total_cost", sa.Float(), server_default="0"),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(36)),
        *_timestamps(),
    )
    for col in ("shipment_code", "tracking_number", "client_id", "supplier_id",
                "container_id", "status", "created_at"):
        op.create_index(f"ix_shipments_{col}", "shipments", [col])

    op.create_table(
        "tracking_updates",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column(
            "shipment_id", sa.String(36),
            sa.ForeignKey("shipments.id", ondelete="CASCADE"), nullable=False,
        ),
        sa.Column("status", sa.String(40), nullable=False),
        sa.Column("location_name", sa.String(255)),
        sa.Column("location_city", sa.String(100)),
        sa.Column("location_country", sa.String(100)),
        sa.Column("latitude", sa.Float()),
        sa.Column("longitude", sa.Float()),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("timestamp", sa.DateTime(), server_default=sa.func.now()),
        sa.Column("is_public", sa.Boolean(), server_default="true"),
        sa.Column("temperature", sa.Float()),
        sa.Column("humidity", sa.Float()),
        sa.Column("customs_status", sa.String(100)),
        sa.Column("delay_reason", sa.Text()),
        sa.Column("created_by", sa.String(36)),
        sa.Column("created_by_name", sa.String(200)),
        *_timestamps(),
    )
    op.create_index("ix_tracking_updates_shipment_id", "tracking_updates", ["shipment_id"])
    op.create_index("ix_tracking_updates_timestamp", "tracking_updates", ["timestamp"])

    # ── Billing ──────────────────────────────────────────────

    op.create_table(
        "invoices",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("invoice_code", sa.String(20), nullable=False, unique=True),
        sa.Column("invoice_number", sa.String(30), nullable=False, unique=True),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id"), nullable=False),
        sa.Column("shipment_id", sa.String(36), sa.ForeignKey("shipments.id")),
        sa.Column("issue_date", sa.Date(), server_default=sa.func.current_date()),
        sa.Column("due_date", sa.Date(), nullable=False),
        sa.Column("status", sa.String(20), server_default="draft"),
        sa.Column("items", sa.JSON(), server_default="[]"),
        sa.Column("subtotal", sa.Float(), server_default="0"),
        sa.Column("tax", sa.Float(), server_default="0"),
        sa.Column("total", sa.Float(), server_default="0"),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("payment_method", sa.String(50)),
        sa.Column("paid_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(36)),
        *_timestamps(),
    )
    for col in ("invoice_code", "invoice_number", "client_id", "shipment_id",
                "status", "created_at"):
        op.create_index(f"ix_invoices_{col}", "invoices", [col])

    # ── Financials ───────────────────────────────────────────

    for table in ("expense_categories", "income_sources"):
        op.create_table(
            table,
            sa.Column("id", sa.String(36), primary_key=True),
            sa.Column("value", sa.String(100), nullable=False, unique=True),
            sa.Column("label", sa.String(100), nullable=False),
            sa.Column("is_system", sa.Boolean(), server_default="false"),
            sa.Column("created_by", sa.String(36)),
            sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
        )

    op.create_table(
        "expenses",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("category", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("date", sa.Date(), server_default=sa.func.current_date()),
        sa.Column("shipment_id", sa.String(36), sa.ForeignKey("shipments.id")),
        sa.Column("container_id", sa.String(36), sa.ForeignKey("containers.id")),
        sa.Column("supplier_id", sa.String(36), sa.ForeignKey("suppliers.id")),
        sa.Column("payment_method", sa.String(30), server_default="Bank Transfer"),
        sa.Column("invoice_number", sa.String(50)),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(36)),
        *_timestamps(),
    )
    op.create_index("ix_expenses_category", "expenses", ["category"])
    op.create_index("ix_expenses_date", "expenses", ["date"])
    op.create_index("ix_expenses_status", "expenses", ["status"])

    op.create_table(
        "income",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("source", sa.String(100), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("amount", sa.Float(), nullable=False),
        sa.Column("currency", sa.String(3), server_default="USD"),
        sa.Column("date", sa.Date(), server_default=sa.func.current_date()),
        sa.Column("shipment_id", sa.String(36), sa.ForeignKey("shipments.id")),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id")),
        sa.Column("invoice_id", sa.String(36), sa.ForeignKey("invoices.id")),
        sa.Column("payment_method", sa.String(30), server_default="Bank Transfer"),
        sa.Column("status", sa.String(20), server_default="pending"),
        sa.Column("amount_received", sa.Float(), server_default="0"),
        sa.Column("due_date", sa.Date()),
        sa.Column("notes", sa.Text()),
        sa.Column("created_by", sa.String(36)),
        *_timestamps(),
    )
    op.create_index("ix_income_source", "income", ["source"])
    op.create_index("ix_income_date", "income", ["date"])
    op.create_index("ix_income_status", "income", ["status"])

    # ── Support ──────────────────────────────────────────────

    op.create_table(
        "support_tickets",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("ticket_number", sa.String(30), nullable=False, unique=True),
        sa.Column("client_id", sa.String(36), sa.ForeignKey("clients.id")),
        sa.Column("created_by", sa.String(36), nullable=False),
        sa.Column("subject", sa.String(255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("category", sa.String(20), server_default="general"),
        sa.Column("priority", sa.String(10), server_default="medium"),
        sa.Column("status", sa.String(20), server_default="open"),
        sa.Column("assigned_to", sa.String(36)),
        sa.Column("related_shipment_id", sa.String(36), sa.ForeignKey("shipments.id")),
        sa.Column("messages", sa.JSON(), server_default="[]"),
        sa.Column("resolved_at", sa.DateTime()),
        sa.Column("resolved_by", sa.String(36)),
        sa.Column("resolution", sa.Text()),
        *_timestamps(),
    )
    for col in ("ticket_number", "client_id", "created_by", "status", "created_at"):
        op.create_index(f"ix_support_tickets_{col}", "support_tickets", [col])

    op.create_table(
        "inquiries",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("reference", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("phone", sa.String(50)),
        sa.Column("company", sa.String(255)),
        sa.Column("subject", sa.String(255)),
        sa.Column("message", sa.Text(), nullable=False),
        sa.Column("service_type", sa.String(50)),
        sa.Column("status", sa.String(20), server_default="new"),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now()),
    )
    op.create_index("ix_inquiries_reference", "inquiries", ["reference"])
    op.create_index("ix_inquiries_status", "inquiries", ["status"])

    # ── Settings / reports / audit ───────────────────────────

    op.create_table(
        "settings",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("key", sa.String(100), nullable=False, unique=True),
        sa.Column("value", sa.JSON()),
        sa.Column("type", sa.String(10), server_default="string"),
        sa.Column("category", sa.String(20), server_default="general"),
        sa.Column("description", sa.Text()),
        sa.Column("is_public", sa.Boolean(), server_default="false"),
        sa.Column("updated_by", sa.String(36)),
        *_timestamps(),
    )
    op.create_index("ix_settings_key", "settings", ["key"])

    op.create_table(
        "reports",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("report_code", sa.String(20), nullable=False, unique=True),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("type", sa.String(30), nullable=False),
        sa.Column("format", sa.String(10), nullable=False),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=False),
        sa.Column("filters", sa.JSON(), server_default="{}"),
        sa.Column("status", sa.String(20), server_default="generating"),
        sa.Column("error_message", sa.Text()),
        sa.Column("file_path", sa.String(500)),
        sa.Column("file_size", sa.String(20)),
        sa.Column("file_size_bytes", sa.Integer(), server_default="0"),
        sa.Column("download_count", sa.Integer(), server_default="0"),
        sa.Column("record_count", sa.Integer(), server_default="0"),
        sa.Column("total_value", sa.Float(), server_default="0"),
        sa.Column("metadata", sa.JSON(), server_default="{}"),
        sa.Column("generated_by", sa.String(36)),
        *_timestamps(),
    )
    for col in ("report_code", "type", "status", "generated_by", "created_at"):
        op.create_index(f"ix_reports_{col}", "reports", [col])

    op.create_table(
        "activity_logs",
        sa.Column("id", sa.String(36), primary_key=True),
        sa.Column("user_id", sa.String(36), nullable=False),
        sa.Column("user_name", sa.String(200), nullable=False),
        sa.Column("action", sa.String(50), nullable=False),
        sa.Column("entity_type", sa.String(50), nullable=False),
        sa.Column("entity_id", sa.String(36)),
        sa.Column("entity_code", sa.String(100)),
        sa.Column("summary", sa.Text()),
        sa.Column("details", sa.JSON()),
        sa.Column("created_at", sa.DateTime(), server_default=sa.func.now(), nullable=False),
    )
    op.create_index("ix_activity_logs_user_id", "activity_logs", ["user_id"])
    op.create_index("ix_activity_logs_action", "activity_logs", ["action"])
    op.create_index("ix_activity_logs_entity_type", "activity_logs", ["entity_type"])
    op.create_index("ix_activity_logs_created_at", "activity_logs", ["created_at"])


def downgrade() -> None:
    for table in (
        "activity_logs", "reports", "settings", "inquiries", "support_tickets",
        "income", "expenses", "income_sources", "expense_categories",
        "invoices", "tracking_updates", "shipments", "containers", "suppliers",
        "users", "clients", "roles",
    ):
        op.drop_table(table)
