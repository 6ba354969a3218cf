"""Initial dealership schema: users, warehouses, agents, ledger, inventory, sales, documents

Revision ID: 20261001_initial
Revises:
Create Date: 2026-10-01

Creates:
1. Users and session tokens
2. Warehouses and document sequences
3. Agents, agent ledger (agent_transactions) and account settlements
4. Inventory items, warehouse transfers and transfer lines
5. Sales
6. Document tracking and document stages

warehouses.agent_id and inventory_items.sale_id close reference cycles, so
their foreign keys are added after all tables exist.
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '20261001_initial'
down_revision = None
branch_labels = None
depends_on = None


def upgrade():
    # ==========================================================================
    # 1. WAREHOUSES / DOCUMENT SEQUENCES
    # ==========================================================================
    op.create_table('warehouses',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('description', sa.Text(), nullable=True),
        sa.Column('location', sa.String(length=255), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('name'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.create_index('ix_warehouses_type_active', ['type', 'is_active'], unique=False)
        batch_op.create_index('ix_warehouses_agent_id', ['agent_id'], unique=False)

    op.create_table('document_sequences',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_type', sa.String(length=32), nullable=False),
        sa.Column('next_number', sa.Integer(), nullable=False, server_default='1'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_type', name='uq_document_sequences_type'),
        sqlite_autoincrement=True
    )

    # ==========================================================================
    # 2. USERS / SESSIONS
    # ==========================================================================
    op.create_table('users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('username', sa.String(length=64), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('display_name', sa.String(length=120), nullable=True),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('email'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('users', schema=None) as batch_op:
        batch_op.create_index('ix_users_username', ['username'], unique=True)
        batch_op.create_index('ix_users_role', ['role'], unique=False)

    op.create_table('session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=64), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=255), nullable=True),
        sa.Column('ip_address', sa.String(length=64), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('session_tokens', schema=None) as batch_op:
        batch_op.create_index('ix_session_tokens_user_id', ['user_id'], unique=False)
        batch_op.create_index('ix_session_tokens_token_hash', ['token_hash'], unique=True)
        batch_op.create_index('ix_session_tokens_user_active', ['user_id', 'is_revoked'], unique=False)

    # ==========================================================================
    # 3. AGENTS
    # ==========================================================================
    op.create_table('agents',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('phone', sa.String(length=32), nullable=True),
        sa.Column('address', sa.String(length=255), nullable=True),
        sa.Column('national_id', sa.String(length=32), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), nullable=True),
        sa.Column('has_user_account', sa.Boolean(), nullable=False, server_default='0'),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('commission_rate_bps', sa.Integer(), nullable=False, server_default='1000'),
        sa.Column('current_balance_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('total_sales_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('last_sale_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default='1'),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('user_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agents', schema=None) as batch_op:
        batch_op.create_index('ix_agents_name', ['name'], unique=False)
        batch_op.create_index('ix_agents_national_id', ['national_id'], unique=False)
        batch_op.create_index('ix_agents_warehouse_id', ['warehouse_id'], unique=False)
        batch_op.create_index('ix_agents_active_balance', ['is_active', 'current_balance_cents'], unique=False)

    # ==========================================================================
    # 4. INVENTORY
    # ==========================================================================
    op.create_table('inventory_items',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('motor_fingerprint', sa.String(length=64), nullable=False),
        sa.Column('chassis_number', sa.String(length=64), nullable=False),
        sa.Column('vehicle_type', sa.String(length=32), nullable=False),
        sa.Column('brand', sa.String(length=64), nullable=False),
        sa.Column('model', sa.String(length=64), nullable=False),
        sa.Column('color', sa.String(length=32), nullable=True),
        sa.Column('country_of_origin', sa.String(length=64), nullable=True),
        sa.Column('manufacturing_year', sa.Integer(), nullable=True),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('sale_price_cents', sa.Integer(), nullable=True),
        sa.Column('current_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=16), nullable=False),
        sa.Column('agent_commission_bps', sa.Integer(), nullable=True),
        sa.Column('motor_fingerprint_image_url', sa.String(length=512), nullable=True),
        sa.Column('chassis_number_image_url', sa.String(length=512), nullable=True),
        sa.Column('sold_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['current_warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('motor_fingerprint'),
        sa.UniqueConstraint('chassis_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_index(
            'ix_inventory_items_warehouse_status', ['current_warehouse_id', 'status'], unique=False
        )

    # ==========================================================================
    # 5. SALES
    # ==========================================================================
    op.create_table('sales',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('sale_type', sa.String(length=24), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('warehouse_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('customer_name', sa.String(length=120), nullable=False),
        sa.Column('customer_national_id', sa.String(length=32), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('customer_address', sa.String(length=255), nullable=True),
        sa.Column('customer_id_card_image_url', sa.String(length=512), nullable=True),
        sa.Column('sale_price_cents', sa.Integer(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('profit_cents', sa.Integer(), nullable=False),
        sa.Column('commission_rate_bps', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('agent_commission_cents', sa.Integer(), nullable=False, server_default='0'),
        sa.Column('company_share_cents', sa.Integer(), nullable=False),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number'),
        sa.UniqueConstraint('inventory_item_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('sales', schema=None) as batch_op:
        batch_op.create_index('ix_sales_type_created', ['sale_type', 'created_at'], unique=False)
        batch_op.create_index('ix_sales_agent_created', ['agent_id', 'created_at'], unique=False)

    # ==========================================================================
    # 6. AGENT LEDGER
    # ==========================================================================
    op.create_table('account_settlements',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('settlement_type', sa.String(length=16), nullable=False),
        sa.Column('requested_amount_cents', sa.Integer(), nullable=True),
        sa.Column('previous_balance_cents', sa.Integer(), nullable=False),
        sa.Column('settlement_amount_cents', sa.Integer(), nullable=False),
        sa.Column('new_balance_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('account_settlements', schema=None) as batch_op:
        batch_op.create_index('ix_account_settlements_agent_id', ['agent_id'], unique=False)

    op.create_table('agent_transactions',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=False),
        sa.Column('sequence_number', sa.Integer(), nullable=False),
        sa.Column('type', sa.String(length=16), nullable=False),
        sa.Column('amount_cents', sa.Integer(), nullable=False),
        sa.Column('description', sa.String(length=255), nullable=True),
        sa.Column('previous_balance_cents', sa.Integer(), nullable=False),
        sa.Column('new_balance_cents', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=True),
        sa.Column('settlement_id', sa.Integer(), nullable=True),
        sa.Column('payment_method', sa.String(length=16), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['settlement_id'], ['account_settlements.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('agent_id', 'sequence_number', name='uq_agent_transactions_agent_seq'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('agent_transactions', schema=None) as batch_op:
        batch_op.create_index('ix_agent_transactions_agent_id', ['agent_id'], unique=False)
        batch_op.create_index('ix_agent_transactions_sale_id', ['sale_id'], unique=False)
        batch_op.create_index('ix_agent_transactions_agent_created', ['agent_id', 'created_at'], unique=False)
        batch_op.create_index('ix_agent_transactions_type', ['type'], unique=False)

    # ==========================================================================
    # 7. WAREHOUSE TRANSFERS
    # ==========================================================================
    op.create_table('warehouse_transfers',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_number', sa.String(length=32), nullable=False),
        sa.Column('from_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('to_warehouse_id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.Column('created_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['from_warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['to_warehouse_id'], ['warehouses.id'], ),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('document_number'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('warehouse_transfers', schema=None) as batch_op:
        batch_op.create_index('ix_warehouse_transfers_agent_id', ['agent_id'], unique=False)

    op.create_table('warehouse_transfer_lines',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('transfer_id', sa.Integer(), nullable=False),
        sa.Column('inventory_item_id', sa.Integer(), nullable=False),
        sa.Column('purchase_price_cents', sa.Integer(), nullable=False),
        sa.Column('commission_bps', sa.Integer(), nullable=True),
        sa.ForeignKeyConstraint(['transfer_id'], ['warehouse_transfers.id'], ),
        sa.ForeignKeyConstraint(['inventory_item_id'], ['inventory_items.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('warehouse_transfer_lines', schema=None) as batch_op:
        batch_op.create_index('ix_warehouse_transfer_lines_transfer_id', ['transfer_id'], unique=False)
        batch_op.create_index(
            'ix_warehouse_transfer_lines_inventory_item_id', ['inventory_item_id'], unique=False
        )

    # ==========================================================================
    # 8. DOCUMENT TRACKING
    # ==========================================================================
    op.create_table('document_tracking',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('sale_id', sa.Integer(), nullable=False),
        sa.Column('agent_id', sa.Integer(), nullable=True),
        sa.Column('customer_name', sa.String(length=120), nullable=False),
        sa.Column('customer_national_id', sa.String(length=32), nullable=True),
        sa.Column('customer_phone', sa.String(length=32), nullable=True),
        sa.Column('vehicle_description', sa.String(length=160), nullable=True),
        sa.Column('motor_fingerprint', sa.String(length=64), nullable=False),
        sa.Column('chassis_number', sa.String(length=64), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['sale_id'], ['sales.id'], ),
        sa.ForeignKeyConstraint(['agent_id'], ['agents.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('sale_id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_tracking', schema=None) as batch_op:
        batch_op.create_index('ix_document_tracking_status', ['status'], unique=False)
        batch_op.create_index('ix_document_tracking_agent_id', ['agent_id'], unique=False)

    op.create_table('document_stages',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('document_id', sa.Integer(), nullable=False),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('occurred_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('updated_by_user_id', sa.Integer(), nullable=True),
        sa.Column('notes', sa.Text(), nullable=True),
        sa.ForeignKeyConstraint(['document_id'], ['document_tracking.id'], ),
        sa.ForeignKeyConstraint(['updated_by_user_id'], ['users.id'], ),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True
    )
    with op.batch_alter_table('document_stages', schema=None) as batch_op:
        batch_op.create_index('ix_document_stages_document_id', ['document_id'], unique=False)

    # ==========================================================================
    # 9. CYCLE-CLOSING FOREIGN KEYS
    # ==========================================================================
    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.create_foreign_key('fk_warehouses_agent_id', 'agents', ['agent_id'], ['id'])

    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.create_foreign_key('fk_inventory_items_sale_id', 'sales', ['sale_id'], ['id'])


def downgrade():
    with op.batch_alter_table('inventory_items', schema=None) as batch_op:
        batch_op.drop_constraint('fk_inventory_items_sale_id', type_='foreignkey')

    with op.batch_alter_table('warehouses', schema=None) as batch_op:
        batch_op.drop_constraint('fk_warehouses_agent_id', type_='foreignkey')

    op.drop_table('document_stages')
    op.drop_table('document_tracking')
    op.drop_table('warehouse_transfer_lines')
    op.drop_table('warehouse_transfers')
    op.drop_table('agent_transactions')
    op.drop_table('account_settlements')
    op.drop_table('sales')
    op.drop_table('inventory_items')
    op.drop_table('agents')
    op.drop_table('session_tokens')
    op.drop_table('users')
    op.drop_table('document_sequences')
    op.drop_table('warehouses')
