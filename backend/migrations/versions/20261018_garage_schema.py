"""Garage schema: customers, catalog, maintenance ledger, staff, finance, audit log

Revision ID: 20261018_garage_schema
Revises:
Create Date: 2026-10-18
"""

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = "20261018_garage_schema"
down_revision = None
branch_labels = None
depends_on = None


def _timestamps():
    return [
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("updated_at", sa.DateTime(), nullable=False),
        sa.Column("version_id", sa.Integer(), nullable=False, server_default=sa.text("1")),
    ]


def upgrade():
    op.create_table(
        "clients",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact", sa.String(64), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_clients_created_at", "clients", ["created_at"], unique=False)

    op.create_table(
        "insurance_companies",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact_person", sa.String(200), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("policy_number", sa.String(100), nullable=True),
        sa.Column("coverage_type", sa.String(100), nullable=True),
        sa.Column("expiry_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_insurance_companies_created_at", "insurance_companies", ["created_at"], unique=False)

    op.create_table(
        "cars",
        sa.Column("uin", sa.String(64), nullable=False),
        sa.Column("license_plate", sa.String(32), nullable=False),
        sa.Column("make", sa.String(100), nullable=False),
        sa.Column("model", sa.String(100), nullable=False),
        sa.Column("year", sa.Integer(), nullable=True),
        sa.Column("vin", sa.String(32), nullable=True),
        sa.Column("color", sa.String(50), nullable=True),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("insurance_id", sa.String(36), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("year IS NULL OR year >= 1886", name="ck_cars_year_valid"),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["insurance_id"], ["insurance_companies.id"]),
        sa.PrimaryKeyConstraint("uin"),
    )
    with op.batch_alter_table("cars", schema=None) as batch_op:
        batch_op.create_index("ix_cars_client_id", ["client_id"], unique=False)
        batch_op.create_index("ix_cars_insurance_id", ["insurance_id"], unique=False)
        batch_op.create_index("ix_cars_created_at", ["created_at"], unique=False)

    op.create_table(
        "services",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("standard_fee_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("standard_fee_cents >= 0", name="ck_services_fee_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_services_created_at", "services", ["created_at"], unique=False)

    op.create_table(
        "suppliers",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("contact", sa.String(200), nullable=True),
        sa.Column("address", sa.String(500), nullable=True),
        sa.Column("phone", sa.String(64), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        *_timestamps(),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_suppliers_created_at", "suppliers", ["created_at"], unique=False)

    op.create_table(
        "products",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("purchase_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("sale_price_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("warehouse_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("shop_stock", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("low_stock_threshold", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("supplier_id", sa.String(36), nullable=False),
        *_timestamps(),
        sa.CheckConstraint("warehouse_stock >= 0", name="ck_products_warehouse_stock_non_negative"),
        sa.CheckConstraint("shop_stock >= 0", name="ck_products_shop_stock_non_negative"),
        sa.CheckConstraint("low_stock_threshold >= 0", name="ck_products_threshold_non_negative"),
        sa.CheckConstraint("purchase_price_cents >= 0", name="ck_products_purchase_price_non_negative"),
        sa.CheckConstraint("sale_price_cents >= 0", name="ck_products_sale_price_non_negative"),
        sa.ForeignKeyConstraint(["supplier_id"], ["suppliers.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("products", schema=None) as batch_op:
        batch_op.create_index("ix_products_supplier_id", ["supplier_id"], unique=False)
        batch_op.create_index("ix_products_created_at", ["created_at"], unique=False)

    op.create_table(
        "maintenance_requests",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("client_id", sa.String(36), nullable=False),
        sa.Column("car_uin", sa.String(64), nullable=False),
        sa.Column("additional_fee_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("discount_justification", sa.String(30), nullable=True),
        sa.Column("total_cost_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("paid_amount_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("remaining_balance_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("payment_status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("status", sa.String(16), nullable=False, server_default="pending"),
        sa.Column("start_date", sa.Date(), nullable=False),
        sa.Column("end_date", sa.Date(), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("additional_fee_cents >= 0", name="ck_maintenance_fee_non_negative"),
        sa.CheckConstraint("discount_cents >= 0", name="ck_maintenance_discount_non_negative"),
        sa.CheckConstraint("total_cost_cents >= 0", name="ck_maintenance_total_non_negative"),
        sa.CheckConstraint("paid_amount_cents >= 0", name="ck_maintenance_paid_non_negative"),
        sa.CheckConstraint(
            "status IN ('pending', 'in-progress', 'completed', 'cancelled')",
            name="ck_maintenance_status_valid",
        ),
        sa.CheckConstraint(
            "payment_status IN ('pending', 'partial', 'paid')",
            name="ck_maintenance_payment_status_valid",
        ),
        sa.ForeignKeyConstraint(["client_id"], ["clients.id"]),
        sa.ForeignKeyConstraint(["car_uin"], ["cars.uin"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("maintenance_requests", schema=None) as batch_op:
        batch_op.create_index("ix_maintenance_requests_client_id", ["client_id"], unique=False)
        batch_op.create_index("ix_maintenance_requests_car_uin", ["car_uin"], unique=False)
        batch_op.create_index("ix_maintenance_requests_status", ["status"], unique=False)
        batch_op.create_index("ix_maintenance_requests_created_at", ["created_at"], unique=False)

    op.create_table(
        "maintenance_service_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("maintenance_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("service_id", sa.String(36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.CheckConstraint("quantity > 0", name="ck_maintenance_service_lines_quantity_positive"),
        sa.ForeignKeyConstraint(["maintenance_id"], ["maintenance_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["service_id"], ["services.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("maintenance_service_lines", schema=None) as batch_op:
        batch_op.create_index("ix_maintenance_service_lines_maintenance_id", ["maintenance_id"], unique=False)
        batch_op.create_index("ix_maintenance_service_lines_service_id", ["service_id"], unique=False)

    op.create_table(
        "maintenance_product_lines",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("maintenance_id", sa.String(36), nullable=False),
        sa.Column("position", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("product_id", sa.String(36), nullable=False),
        sa.Column("quantity", sa.Integer(), nullable=False, server_default=sa.text("1")),
        sa.Column("stock_source", sa.String(16), nullable=False, server_default="warehouse"),
        sa.CheckConstraint("quantity > 0", name="ck_maintenance_product_lines_quantity_positive"),
        sa.CheckConstraint(
            "stock_source IN ('warehouse', 'shop')", name="ck_maintenance_product_lines_source_valid"
        ),
        sa.ForeignKeyConstraint(["maintenance_id"], ["maintenance_requests.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["product_id"], ["products.id"]),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    with op.batch_alter_table("maintenance_product_lines", schema=None) as batch_op:
        batch_op.create_index("ix_maintenance_product_lines_maintenance_id", ["maintenance_id"], unique=False)
        batch_op.create_index("ix_maintenance_product_lines_product_id", ["product_id"], unique=False)

    op.create_table(
        "employees",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(200), nullable=False),
        sa.Column("position", sa.String(100), nullable=False),
        sa.Column("hire_date", sa.Date(), nullable=False),
        sa.Column("contact", sa.String(64), nullable=True),
        sa.Column("email", sa.String(255), nullable=True),
        sa.Column("base_salary_cents", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.text("1")),
        *_timestamps(),
        sa.CheckConstraint("base_salary_cents >= 0", name="ck_employees_salary_non_negative"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("employees", schema=None) as batch_op:
        batch_op.create_index("ix_employees_is_active", ["is_active"], unique=False)
        batch_op.create_index("ix_employees_created_at", ["created_at"], unique=False)

    op.create_table(
        "salaries",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("employee_id", sa.String(36), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("payment_date", sa.Date(), nullable=False),
        sa.Column("payment_period", sa.String(64), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("is_paid", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_salaries_amount_non_negative"),
        sa.ForeignKeyConstraint(["employee_id"], ["employees.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("salaries", schema=None) as batch_op:
        batch_op.create_index("ix_salaries_employee_id", ["employee_id"], unique=False)
        batch_op.create_index("ix_salaries_payment_date", ["payment_date"], unique=False)
        batch_op.create_index("ix_salaries_created_at", ["created_at"], unique=False)

    op.create_table(
        "finance_categories",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("name", sa.String(100), nullable=False),
        sa.Column("type", sa.String(16), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_default", sa.Boolean(), nullable=False, server_default=sa.text("0")),
        *_timestamps(),
        sa.CheckConstraint("type IN ('income', 'expense')", name="ck_finance_categories_type_valid"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_finance_categories_name", "finance_categories", ["name"], unique=False)

    op.create_table(
        "finance_records",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("category_id", sa.String(36), nullable=False),
        sa.Column("amount_cents", sa.Integer(), nullable=False),
        sa.Column("description", sa.String(500), nullable=False),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("reference_number", sa.String(100), nullable=True),
        sa.Column("related_entity_type", sa.String(32), nullable=True),
        sa.Column("related_entity_id", sa.String(64), nullable=True),
        sa.Column("payment_method", sa.String(32), nullable=True),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", sa.String(200), nullable=True),
        *_timestamps(),
        sa.CheckConstraint("amount_cents >= 0", name="ck_finance_records_amount_non_negative"),
        sa.ForeignKeyConstraint(["category_id"], ["finance_categories.id"]),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("finance_records", schema=None) as batch_op:
        batch_op.create_index("ix_finance_records_category_id", ["category_id"], unique=False)
        batch_op.create_index("ix_finance_records_date", ["date"], unique=False)
        batch_op.create_index("ix_finance_records_created_at", ["created_at"], unique=False)
        batch_op.create_index(
            "ix_finance_records_related", ["related_entity_type", "related_entity_id"], unique=False
        )

    op.create_table(
        "finance_outbox",
        sa.Column("id", sa.Integer(), nullable=False),
        sa.Column("kind", sa.String(64), nullable=False),
        sa.Column("payload", sa.JSON(), nullable=False),
        sa.Column("attempts", sa.Integer(), nullable=False, server_default=sa.text("0")),
        sa.Column("last_error", sa.Text(), nullable=True),
        sa.Column("created_at", sa.DateTime(), nullable=False),
        sa.Column("processed_at", sa.DateTime(), nullable=True),
        sa.Column("finance_record_id", sa.String(36), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sqlite_autoincrement=True,
    )
    op.create_index("ix_finance_outbox_processed_at", "finance_outbox", ["processed_at"], unique=False)

    op.create_table(
        "audit_log",
        sa.Column("id", sa.String(36), nullable=False),
        sa.Column("action_type", sa.String(16), nullable=False),
        sa.Column("table_name", sa.String(64), nullable=False),
        sa.Column("timestamp", sa.DateTime(), nullable=False),
        sa.Column("admin_name", sa.String(200), nullable=False),
        sa.Column("before_value", sa.JSON(), nullable=True),
        sa.Column("after_value", sa.JSON(), nullable=True),
        sa.Column("client_id", sa.String(36), nullable=True),
        sa.Column("car_uin", sa.String(64), nullable=True),
        sa.Column("insurance_id", sa.String(36), nullable=True),
        sa.Column("service_id", sa.String(36), nullable=True),
        sa.Column("product_id", sa.String(36), nullable=True),
        sa.Column("supplier_id", sa.String(36), nullable=True),
        sa.Column("maintenance_id", sa.String(36), nullable=True),
        sa.Column("employee_id", sa.String(36), nullable=True),
        sa.Column("start_date", sa.Date(), nullable=True),
        sa.Column("end_date", sa.Date(), nullable=True),
        sa.Column("payment_amount_cents", sa.Integer(), nullable=True),
        sa.Column("discount_cents", sa.Integer(), nullable=True),
        sa.Column("additional_fees_cents", sa.Integer(), nullable=True),
        sa.Column("remaining_balance_cents", sa.Integer(), nullable=True),
        sa.CheckConstraint("action_type IN ('create', 'update', 'delete')", name="ck_audit_log_action_valid"),
        sa.PrimaryKeyConstraint("id"),
    )
    with op.batch_alter_table("audit_log", schema=None) as batch_op:
        batch_op.create_index("ix_audit_log_timestamp", ["timestamp"], unique=False)
        batch_op.create_index("ix_audit_log_client_id", ["client_id"], unique=False)
        batch_op.create_index("ix_audit_log_car_uin", ["car_uin"], unique=False)
        batch_op.create_index("ix_audit_log_maintenance_id", ["maintenance_id"], unique=False)
        batch_op.create_index("ix_audit_log_table_timestamp", ["table_name", "timestamp"], unique=False)


def downgrade():
    op.drop_table("audit_log")
    op.drop_table("finance_outbox")
    op.drop_table("finance_records")
    op.drop_table("finance_categories")
    op.drop_table("salaries")
    op.drop_table("employees")
    op.drop_table("maintenance_product_lines")
    op.drop_table("maintenance_service_lines")
    op.drop_table("maintenance_requests")
    op.drop_table("products")
    op.drop_table("suppliers")
    op.drop_table("services")
    op.drop_table("cars")
    op.drop_table("insurance_companies")
    op.drop_table("clients")
