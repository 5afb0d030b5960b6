"""add crm, projects, monitoring, support and integration tables

Revision ID: 20261018_01
Revises: 20261018_00
Create Date: 2026-10-18 09:40:00

"""
from __future__ import annotations

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql


# revision identifiers, used by Alembic.
revision = "20261018_01"
down_revision = "20261018_00"
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        "crm_leads",
        sa.Column("name", sa.String(length=255), nullable=False),
        sa.Column("email", sa.String(length=320), nullable=False),
        sa.Column("phone", sa.String(length=32), nullable=True),
        sa.Column("company", sa.String(length=255), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("score", sa.Integer(), nullable=False),
        sa.Column("assignee", sa.String(length=255), nullable=True),
        sa.Column("product_service", sa.String(length=32), nullable=False),
        sa.Column("customer_type", sa.String(length=16), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("last_activity", sa.DateTime(timezone=True), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_crm_leads_email", "crm_leads", ["email"], unique=False)
    op.create_index("ix_crm_leads_status", "crm_leads", ["status"], unique=False)
    op.create_index("ix_crm_leads_tenant_id", "crm_leads", ["tenant_id"], unique=False)

    op.create_table(
        "user_journey_steps",
        sa.Column("crm_lead_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("step", sa.String(length=40), nullable=False),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("notes", sa.Text(), nullable=True),
        sa.Column("scheduled_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("completed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["crm_lead_id"], ["crm_leads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_user_journey_steps_crm_lead_id", "user_journey_steps", ["crm_lead_id"], unique=False)
    op.create_index("ix_user_journey_steps_tenant_id", "user_journey_steps", ["tenant_id"], unique=False)

    op.create_table(
        "customers",
        sa.Column("name", sa.String(length=100), nullable=False),
        sa.Column("email", sa.String(length=255), nullable=False),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=True),
        sa.Column("state", sa.String(length=2), nullable=True),
        sa.Column("zip_code", sa.String(length=10), nullable=True),
        sa.Column("document_type", sa.String(length=3), nullable=False),
        sa.Column("document", sa.String(length=20), nullable=False),
        sa.Column("created_by", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_customers_email", "customers", ["email"], unique=False)
    op.create_index("ix_customers_tenant_id", "customers", ["tenant_id"], unique=False)

    op.create_table(
        "projects",
        sa.Column("name", sa.String(length=200), nullable=False),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("status", sa.String(length=20), nullable=False),
        sa.Column("estimated_kw", sa.Numeric(10, 2), nullable=False),
        sa.Column("estimated_price", sa.Numeric(14, 2), nullable=False),
        sa.Column("customer_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("crm_lead_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("address", sa.String(length=200), nullable=True),
        sa.Column("email", sa.String(length=320), nullable=True),
        sa.Column("phone", sa.String(length=20), nullable=True),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("enphase_system_id", sa.String(length=64), nullable=True),
        sa.Column("enphase_status", sa.String(length=16), nullable=True),
        sa.Column("enphase_last_sync", sa.DateTime(timezone=True), nullable=True),
        sa.Column("enphase_api_key", sa.String(length=1024), nullable=True),
        sa.Column("enphase_enabled", sa.Boolean(), nullable=False, server_default=sa.text("false")),
        sa.Column("enphase_jwt_token", sa.String(length=4096), nullable=True),
        sa.Column("enphase_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["customer_id"], ["customers.id"], ondelete="SET NULL"),
        sa.ForeignKeyConstraint(["crm_lead_id"], ["crm_leads.id"], ondelete="SET NULL"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("crm_lead_id"),
    )
    op.create_index("ix_projects_created_by_id", "projects", ["created_by_id"], unique=False)
    op.create_index("ix_projects_customer_id", "projects", ["customer_id"], unique=False)
    op.create_index("ix_projects_status", "projects", ["status"], unique=False)
    op.create_index("ix_projects_tenant_id", "projects", ["tenant_id"], unique=False)

    op.create_table(
        "project_images",
        sa.Column("project_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("filename", sa.String(length=255), nullable=False),
        sa.Column("original_name", sa.String(length=255), nullable=False),
        sa.Column("url", sa.String(length=512), nullable=False),
        sa.Column("mime_type", sa.String(length=128), nullable=False),
        sa.Column("size", sa.Integer(), nullable=False),
        sa.Column("category", sa.String(length=20), nullable=False),
        sa.Column("title", sa.String(length=255), nullable=True),
        sa.Column("description", sa.Text(), nullable=True),
        sa.Column("order", sa.Integer(), nullable=False),
        sa.Column("uploaded_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["project_id"], ["projects.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_images_project_id", "project_images", ["project_id"], unique=False)
    op.create_index("ix_project_images_tenant_id", "project_images", ["tenant_id"], unique=False)

    op.create_table(
        "monitoring_data",
        sa.Column("crm_lead_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("customer_type", sa.String(length=16), nullable=False),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("peak_kwp", sa.Float(), nullable=False),
        sa.Column("energy_today_kwh", sa.Float(), nullable=False),
        sa.Column("equipment_status", sa.String(length=16), nullable=False),
        sa.Column("alert_level", sa.String(length=16), nullable=False),
        sa.Column("microinverter_brand", sa.String(length=64), nullable=True),
        sa.Column("microinverter_model", sa.String(length=64), nullable=True),
        sa.Column("microinverter_count", sa.Integer(), nullable=True),
        sa.Column("microinverter_serial", sa.String(length=128), nullable=True),
        sa.Column("enphase_system_id", sa.String(length=64), nullable=True),
        sa.Column("enphase_site_id", sa.String(length=64), nullable=True),
        sa.Column("current_power_w", sa.Float(), nullable=True),
        sa.Column("lifetime_energy_kwh", sa.Float(), nullable=True),
        sa.Column("last_update", sa.DateTime(timezone=True), nullable=False),
        sa.Column("last_sync_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["crm_lead_id"], ["crm_leads.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_monitoring_data_crm_lead_id", "monitoring_data", ["crm_lead_id"], unique=False)
    op.create_index("ix_monitoring_data_enphase_system_id", "monitoring_data", ["enphase_system_id"], unique=False)
    op.create_index("ix_monitoring_data_tenant_id", "monitoring_data", ["tenant_id"], unique=False)

    op.create_table(
        "support_tickets",
        sa.Column("subject", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("category", sa.String(length=16), nullable=False),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("resolved_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_support_tickets_assigned_to_id", "support_tickets", ["assigned_to_id"], unique=False)
    op.create_index("ix_support_tickets_created_by_id", "support_tickets", ["created_by_id"], unique=False)
    op.create_index("ix_support_tickets_status", "support_tickets", ["status"], unique=False)
    op.create_index("ix_support_tickets_tenant_id", "support_tickets", ["tenant_id"], unique=False)

    op.create_table(
        "ticket_responses",
        sa.Column("ticket_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("user_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column("is_internal", sa.Boolean(), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["ticket_id"], ["support_tickets.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_ticket_responses_tenant_id", "ticket_responses", ["tenant_id"], unique=False)
    op.create_index("ix_ticket_responses_ticket_id", "ticket_responses", ["ticket_id"], unique=False)

    op.create_table(
        "project_requests",
        sa.Column("service_type", sa.String(length=32), nullable=False),
        sa.Column("status", sa.String(length=24), nullable=False),
        sa.Column("priority", sa.String(length=16), nullable=False),
        sa.Column("client_name", sa.String(length=255), nullable=False),
        sa.Column("client_email", sa.String(length=320), nullable=False),
        sa.Column("client_phone", sa.String(length=32), nullable=False),
        sa.Column("company_name", sa.String(length=255), nullable=True),
        sa.Column("address", sa.String(length=255), nullable=False),
        sa.Column("address2", sa.String(length=255), nullable=True),
        sa.Column("city", sa.String(length=100), nullable=False),
        sa.Column("state", sa.String(length=100), nullable=False),
        sa.Column("zip_code", sa.String(length=20), nullable=False),
        sa.Column("country", sa.String(length=100), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=True),
        sa.Column("longitude", sa.Float(), nullable=True),
        sa.Column("title", sa.String(length=255), nullable=False),
        sa.Column("description", sa.Text(), nullable=False),
        sa.Column("estimated_budget", sa.Numeric(14, 2), nullable=True),
        sa.Column("estimated_size", sa.Float(), nullable=True),
        sa.Column("preferred_timeline", sa.String(length=255), nullable=True),
        sa.Column("property_type", sa.String(length=16), nullable=False),
        sa.Column("roof_type", sa.String(length=64), nullable=True),
        sa.Column("created_by_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("assigned_to_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("assigned_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("reviewed_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("rejection_reason", sa.Text(), nullable=True),
        sa.Column("admin_notes", sa.Text(), nullable=True),
        sa.Column("converted_to_project_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("converted_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_project_requests_assigned_to_id", "project_requests", ["assigned_to_id"], unique=False)
    op.create_index("ix_project_requests_created_by_id", "project_requests", ["created_by_id"], unique=False)
    op.create_index("ix_project_requests_status", "project_requests", ["status"], unique=False)
    op.create_index("ix_project_requests_tenant_id", "project_requests", ["tenant_id"], unique=False)

    op.create_table(
        "enphase_configs",
        sa.Column("status", sa.String(length=16), nullable=False),
        sa.Column("access_token_encrypted", sa.String(length=4096), nullable=True),
        sa.Column("refresh_token_encrypted", sa.String(length=4096), nullable=True),
        sa.Column("token_expires_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("last_refresh_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("authorized_by_id", postgresql.UUID(as_uuid=True), nullable=True),
        sa.Column("available_systems", sa.JSON(), nullable=False),
        sa.Column("id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("tenant_id", postgresql.UUID(as_uuid=True), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("tenant_id", name="uq_enphase_configs_tenant"),
    )
    op.create_index("ix_enphase_configs_tenant_id", "enphase_configs", ["tenant_id"], unique=False)

    op.alter_column("projects", "enphase_enabled", server_default=None)


def downgrade() -> None:
    op.drop_index("ix_enphase_configs_tenant_id", table_name="enphase_configs")
    op.drop_table("enphase_configs")

    op.drop_index("ix_project_requests_tenant_id", table_name="project_requests")
    op.drop_index("ix_project_requests_status", table_name="project_requests")
    op.drop_index("ix_project_requests_created_by_id", table_name="project_requests")
    op.drop_index("ix_project_requests_assigned_to_id", table_name="project_requests")
    op.drop_table("project_requests")

    op.drop_index("ix_ticket_responses_ticket_id", table_name="ticket_responses")
    op.drop_index("ix_ticket_responses_tenant_id", table_name="ticket_responses")
    op.drop_table("ticket_responses")

    op.drop_index("ix_support_tickets_tenant_id", table_name="support_tickets")
    op.drop_index("ix_support_tickets_status", table_name="support_tickets")
    op.drop_index("ix_support_tickets_created_by_id", table_name="support_tickets")
    op.drop_index("ix_support_tickets_assigned_to_id", table_name="support_tickets")
    op.drop_table("support_tickets")

    op.drop_index("ix_monitoring_data_tenant_id", table_name="monitoring_data")
    op.drop_index("ix_monitoring_data_enphase_system_id", table_name="monitoring_data")
    op.drop_index("ix_monitoring_data_crm_lead_id", table_name="monitoring_data")
    op.drop_table("monitoring_data")

    op.drop_index("ix_project_images_tenant_id", table_name="project_images")
    op.drop_index("ix_project_images_project_id", table_name="project_images")
    op.drop_table("project_images")

    op.drop_index("ix_projects_tenant_id", table_name="projects")
    op.drop_index("ix_projects_status", table_name="projects")
    op.drop_index("ix_projects_customer_id", table_name="projects")
    op.drop_index("ix_projects_created_by_id", table_name="projects")
    op.drop_table("projects")

    op.drop_index("ix_customers_tenant_id", table_name="customers")
    op.drop_index("ix_customers_email", table_name="customers")
    op.drop_table("customers")

    op.drop_index("ix_user_journey_steps_tenant_id", table_name="user_journey_steps")
    op.drop_index("ix_user_journey_steps_crm_lead_id", table_name="user_journey_steps")
    op.drop_table("user_journey_steps")

    op.drop_index("ix_crm_leads_tenant_id", table_name="crm_leads")
    op.drop_index("ix_crm_leads_status", table_name="crm_leads")
    op.drop_index("ix_crm_leads_email", table_name="crm_leads")
    op.drop_table("crm_leads")
