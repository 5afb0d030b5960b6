"""enable row level security on tenant scoped tables

Revision ID: 20261018_02
Revises: 20261018_01
Create Date: 2026-10-18 10:05:00

"""
from __future__ import annotations

from alembic import op


# revision identifiers, used by Alembic.
revision = "20261018_02"
down_revision = "20261018_01"
branch_labels = None
depends_on = None

TENANT_TABLES = (
    "users",
    "companies",
    "invitations",
    "notifications",
    "crm_leads",
    "user_journey_steps",
    "customers",
    "projects",
    "project_images",
    "monitoring_data",
    "support_tickets",
    "ticket_responses",
    "project_requests",
    "enphase_configs",
)


def upgrade() -> None:
    for table in TENANT_TABLES:
        op.execute(f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY")
        # Unset context means the connection is not bound to a tenant yet
        # (sign-in, invitation tokens, webhooks), so those rows stay visible.
        op.execute(
            f"""
            CREATE POLICY tenant_isolation_{table} ON {table}
            USING (
                current_setting('app.current_tenant_id', true) IS NULL
                OR current_setting('app.current_tenant_id', true) = ''
                OR tenant_id = current_setting('app.current_tenant_id', true)::uuid
            )
            """
        )


def downgrade() -> None:
    for table in reversed(TENANT_TABLES):
        op.execute(f"DROP POLICY IF EXISTS tenant_isolation_{table} ON {table}")
        op.execute(f"ALTER TABLE {table} DISABLE ROW LEVEL SECURITY")
