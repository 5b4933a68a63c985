"""Create order execution tables (order_statuses, work_orders, evidence, motives, agent locations)

Revision ID: 000_create_order_execution_tables
Revises:
Create Date: 2026-10-19

Note: order_statuses and closure_motives are seeded by
scripts/seed_reference_data.py.
"""
from alembic import op
import sqlalchemy as sa
from sqlalchemy import text

# revision identifiers, used by Alembic.
revision = '000_create_order_execution_tables'
down_revision = None
branch_labels = None
depends_on = None


def _table_exists(conn, name: str) -> bool:
    result = conn.execute(text(
        "SELECT EXISTS (SELECT FROM information_schema.tables WHERE table_name = :name)"
    ), {"name": name})
    return bool(result.scalar())


def upgrade():
    """Create order execution tables."""
    conn = op.get_bind()

    if not _table_exists(conn, 'order_statuses'):
        op.create_table(
            'order_statuses',
            sa.Column('id', sa.String(36), primary_key=True, index=True),
            sa.Column('name', sa.String(100), nullable=False, unique=True, index=True),
        )

    if not _table_exists(conn, 'work_orders'):
        op.create_table(
            'work_orders',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('status_id', sa.String(36), sa.ForeignKey('order_statuses.id'), index=True),
            # Client data
            sa.Column('client_name', sa.String(255)),
            sa.Column('client_address', sa.String(255)),
            sa.Column('contract_account', sa.String(50)),
            sa.Column('current_meter_serial', sa.String(50)),
            sa.Column('previous_reading', sa.Numeric(12, 3)),
            # Workflow
            sa.Column('current_step', sa.Integer()),
            sa.Column('execution_started_at', sa.DateTime(timezone=True)),
            sa.Column('first_visit_at', sa.DateTime(timezone=True)),
            sa.Column('finalized_at', sa.DateTime(timezone=True)),
            # Inspection checklist
            sa.Column('resident_present', sa.String(3)),
            sa.Column('client_accepts_change', sa.String(3)),
            sa.Column('meter_serial_matches', sa.String(3)),
            sa.Column('meter_damaged', sa.String(3)),
            sa.Column('has_grate_or_weld', sa.String(3)),
            sa.Column('grate_removable', sa.String(3)),
            sa.Column('leak_outside_zone', sa.String(3)),
            sa.Column('valve_leak', sa.String(3)),
            sa.Column('valve_operable', sa.String(3)),
            sa.Column('leak_persists_after_valve_op', sa.String(3)),
            # Installation
            sa.Column('new_meter_serial', sa.String(50)),
            sa.Column('new_reading', sa.Numeric(12, 3)),
            sa.Column('reading_difference', sa.Numeric(12, 3)),
            sa.Column('regulator_present', sa.String(3)),
            sa.Column('flexible_hose', sa.String(20)),
            sa.Column('agent_notes', sa.Text()),
            # Closure
            sa.Column('closure_motive', sa.Integer()),
            sa.Column('second_visit_date', sa.Date()),
            sa.Column('signature', sa.Text()),
            sa.Column('latitude', sa.Float()),
            sa.Column('longitude', sa.Float()),
            # Timestamps
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('updated_at', sa.DateTime(timezone=True), onupdate=sa.func.now()),
        )

    if not _table_exists(conn, 'work_order_evidence'):
        op.create_table(
            'work_order_evidence',
            sa.Column('id', sa.String(36), primary_key=True, index=True),
            sa.Column('work_order_id', sa.Integer(), sa.ForeignKey('work_orders.id'), nullable=False, index=True),
            sa.Column('media_url', sa.String(500), nullable=False),
            sa.Column('is_video', sa.Boolean(), nullable=False, server_default=sa.false()),
            sa.Column('data', sa.Text(), nullable=False),
            sa.Column('content_type', sa.String(100)),
            sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        )

    if not _table_exists(conn, 'closure_motives'):
        op.create_table(
            'closure_motives',
            sa.Column('code', sa.Integer(), primary_key=True),
            sa.Column('label', sa.String(255), nullable=False),
        )

    if not _table_exists(conn, 'agent_locations'):
        op.create_table(
            'agent_locations',
            sa.Column('id', sa.Integer(), primary_key=True, index=True),
            sa.Column('agent_id', sa.String(64), nullable=False, unique=True),
            sa.Column('latitude', sa.Float(), nullable=False),
            sa.Column('longitude', sa.Float(), nullable=False),
            sa.Column('accuracy', sa.Float()),
            sa.Column('captured_at', sa.DateTime(timezone=True), nullable=False),
            sa.Column('received_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
            sa.Column('current_work_order_id', sa.Integer(), sa.ForeignKey('work_orders.id')),
        )
        op.create_index('idx_agent_location_agent_id', 'agent_locations', ['agent_id'])


def downgrade():
    """Drop order execution tables."""
    op.drop_index('idx_agent_location_agent_id', table_name='agent_locations')
    op.drop_table('agent_locations')
    op.drop_table('closure_motives')
    op.drop_table('work_order_evidence')
    op.drop_table('work_orders')
    op.drop_table('order_statuses')
