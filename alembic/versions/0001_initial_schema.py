"""initial schema

Revision ID: 0001_initial_schema
Revises:
Create Date: 2026-10-18 00:00:00.000000

Companies, users, the variant catalog, per-company overrides and the job
material ledger.
"""

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision = "0001_initial_schema"
down_revision = None
branch_labels = None
depends_on = None

user_role = sa.Enum("SUPERADMIN", "COMPANY", "EMPLOYEE", name="userrole")
employee_type = sa.Enum("PRODUCTION_MANAGER", "INSTALLER", name="employeetype")
job_status = sa.Enum(
    "PENDING", "ORDERED", "COMPLETED", "HOLD", "CANCELLED", "ARCHIVED", name="jobstatus"
)


def upgrade() -> None:
    op.create_table(
        "companies",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("preferred_price_enabled", sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_companies_id", "companies", ["id"])

    op.create_table(
        "locations",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_locations_id", "locations", ["id"])
    op.create_index("ix_locations_company_id", "locations", ["company_id"])

    op.create_table(
        "users",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("email", sa.String(255), nullable=False),
        sa.Column("hashed_password", sa.String(255), nullable=False),
        sa.Column("full_name", sa.String(255), nullable=True),
        sa.Column("role", user_role, nullable=False),
        sa.Column("employee_type", employee_type, nullable=True),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="SET NULL"), nullable=True),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="SET NULL"), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
    )
    op.create_index("ix_users_id", "users", ["id"])
    op.create_index("ix_users_email", "users", ["email"], unique=True)
    op.create_index("ix_users_company_id", "users", ["company_id"])
    op.create_index("ix_users_location_id", "users", ["location_id"])

    op.create_table(
        "materials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("name", sa.String(255), nullable=False, unique=True),
        sa.Column("type", sa.String(100), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
    )
    op.create_index("ix_materials_id", "materials", ["id"])

    op.create_table(
        "material_variants",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("material_id", sa.Integer(), sa.ForeignKey("materials.id", ondelete="CASCADE"), nullable=False),
        sa.Column("name", sa.String(255), nullable=False),
        sa.Column("color", sa.String(100), nullable=True),
        sa.Column("type", sa.String(100), nullable=True),
        sa.Column("regular_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("preferred_price", sa.Float(), nullable=False, server_default="0"),
        sa.Column("coverage_area", sa.Float(), nullable=False, server_default="0"),
        sa.Column("overage_rate", sa.Float(), nullable=False, server_default="0"),
        sa.Column("is_active", sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
        sa.UniqueConstraint("material_id", "name", "color", name="uq_variant_material_name_color"),
    )
    op.create_index("ix_material_variants_id", "material_variants", ["id"])
    op.create_index("ix_material_variants_material_id", "material_variants", ["material_id"])

    for table, value_column, constraint in (
        ("company_overage_overrides", "overage_rate", "uq_overage_company_variant"),
        ("company_quantity_overrides", "quantity", "uq_quantity_company_variant"),
    ):
        op.create_table(
            table,
            sa.Column("id", sa.Integer(), primary_key=True),
            sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
            sa.Column("variant_id", sa.Integer(), sa.ForeignKey("material_variants.id", ondelete="CASCADE"), nullable=False),
            sa.Column(value_column, sa.Float(), nullable=False),
            sa.Column("created_at", sa.DateTime()),
            sa.Column("updated_at", sa.DateTime()),
            sa.UniqueConstraint("company_id", "variant_id", name=constraint),
        )
        op.create_index(f"ix_{table}_id", table, ["id"])
        op.create_index(f"ix_{table}_company_id", table, ["company_id"])
        op.create_index(f"ix_{table}_variant_id", table, ["variant_id"])

    op.create_table(
        "jobs",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_number", sa.String(100), nullable=False),
        sa.Column("company_id", sa.Integer(), sa.ForeignKey("companies.id", ondelete="CASCADE"), nullable=False),
        sa.Column("location_id", sa.Integer(), sa.ForeignKey("locations.id", ondelete="CASCADE"), nullable=False),
        sa.Column("created_by_user_id", sa.Integer(), sa.ForeignKey("users.id", ondelete="RESTRICT"), nullable=True),
        sa.Column("template", sa.String(100), nullable=True),
        sa.Column("client_first_name", sa.String(255), nullable=False),
        sa.Column("client_last_name", sa.String(255), nullable=True),
        sa.Column("client_address", sa.String(500), nullable=False),
        sa.Column("area_sq_ft", sa.Float(), nullable=False, server_default="0"),
        sa.Column("duration", sa.Integer(), nullable=False, server_default="1"),
        sa.Column("date", sa.Date(), nullable=False),
        sa.Column("install_date", sa.Date(), nullable=False),
        sa.Column("job_cost", sa.Float(), nullable=False, server_default="0"),
        sa.Column("status", job_status, nullable=False, server_default="PENDING"),
        sa.Column("created_at", sa.DateTime()),
        sa.Column("updated_at", sa.DateTime()),
        sa.UniqueConstraint("job_number", "company_id", name="uq_job_number_company"),
    )
    op.create_index("ix_jobs_id", "jobs", ["id"])
    op.create_index("ix_jobs_company_id", "jobs", ["company_id"])
    op.create_index("ix_jobs_location_id", "jobs", ["location_id"])
    op.create_index("ix_jobs_created_by_user_id", "jobs", ["created_by_user_id"])
    op.create_index("ix_jobs_date", "jobs", ["date"])
    op.create_index("ix_jobs_install_date", "jobs", ["install_date"])
    op.create_index("ix_jobs_status", "jobs", ["status"])

    op.create_table(
        "job_materials",
        sa.Column("id", sa.Integer(), primary_key=True),
        sa.Column("job_id", sa.Integer(), sa.ForeignKey("jobs.id", ondelete="CASCADE"), nullable=False),
        sa.Column("variant_id", sa.Integer(), sa.ForeignKey("material_variants.id", ondelete="RESTRICT"), nullable=False),
        sa.Column("quantity_used", sa.Float(), nullable=False),
        sa.Column("unit", sa.String(50), nullable=False),
        sa.Column("cost_at_time", sa.Float(), nullable=False),
        sa.Column("created_at", sa.DateTime()),
        sa.UniqueConstraint("job_id", "variant_id", name="uq_job_material_variant"),
    )
    op.create_index("ix_job_materials_id", "job_materials", ["id"])
    op.create_index("ix_job_materials_job_id", "job_materials", ["job_id"])
    op.create_index("ix_job_materials_variant_id", "job_materials", ["variant_id"])


def downgrade() -> None:
    op.drop_table("job_materials")
    op.drop_table("jobs")
    op.drop_table("company_quantity_overrides")
    op.drop_table("company_overage_overrides")
    op.drop_table("material_variants")
    op.drop_table("materials")
    op.drop_table("users")
    op.drop_table("locations")
    op.drop_table("companies")
    job_status.drop(op.get_bind(), checkfirst=True)
    employee_type.drop(op.get_bind(), checkfirst=True)
    user_role.drop(op.get_bind(), checkfirst=True)
