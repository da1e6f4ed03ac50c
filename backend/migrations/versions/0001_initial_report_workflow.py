"""initial report workflow schema

Revision ID: 0001_initial
Revises:
Create Date: 2026-10-17 00:00:00.000000

Creates the complete schema:
- cities / subdistricts / branches: location hierarchy
- users / session_tokens: identity and bearer sessions
- security_events: append-only audit of denials and logins
- reports / report_comments: sales reports and their append-only comments

Reports carry a partial unique index so that one creator can have at most
one report awaiting review (pending_subdistrict or pending_city).
"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = '0001_initial'
down_revision = None
branch_labels = None
depends_on = None


IN_FLIGHT_PREDICATE = "status IN ('pending_subdistrict', 'pending_city')"


def upgrade():
    # ============================================================================
    # Location hierarchy
    # ============================================================================
    op.create_table(
        'cities',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_cities_name', 'cities', ['name'], unique=True)

    op.create_table(
        'subdistricts',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('city_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('city_id', 'name', name='uq_subdistricts_city_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_subdistricts_city_id', 'subdistricts', ['city_id'])

    op.create_table(
        'branches',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('subdistrict_id', sa.Integer(), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('manager_name', sa.String(length=120), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['subdistrict_id'], ['subdistricts.id']),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('subdistrict_id', 'name', name='uq_branches_subdistrict_name'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_branches_subdistrict_id', 'branches', ['subdistrict_id'])

    # ============================================================================
    # Identity
    # ============================================================================
    op.create_table(
        'users',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('email', sa.String(length=255), nullable=False),
        sa.Column('name', sa.String(length=120), nullable=False),
        sa.Column('password_hash', sa.String(length=255), nullable=False),
        sa.Column('role', sa.String(length=32), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=True),
        sa.Column('subdistrict_id', sa.Integer(), nullable=True),
        sa.Column('city_id', sa.Integer(), nullable=True),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('last_login_at', sa.DateTime(timezone=True), nullable=True),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['subdistrict_id'], ['subdistricts.id']),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_users_email', 'users', ['email'], unique=True)
    op.create_index('ix_users_role', 'users', ['role'])
    op.create_index('ix_users_branch_id', 'users', ['branch_id'])
    op.create_index('ix_users_subdistrict_id', 'users', ['subdistrict_id'])
    op.create_index('ix_users_city_id', 'users', ['city_id'])

    op.create_table(
        'session_tokens',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('token_hash', sa.String(length=255), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('last_used_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('expires_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('is_revoked', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('revoked_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('revoked_reason', sa.String(length=255), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_session_tokens_user_id', 'session_tokens', ['user_id'])
    op.create_index('ix_session_tokens_token_hash', 'session_tokens', ['token_hash'], unique=True)
    op.create_index('ix_session_tokens_expires_at', 'session_tokens', ['expires_at'])
    op.create_index('ix_session_tokens_is_revoked', 'session_tokens', ['is_revoked'])

    op.create_table(
        'security_events',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=True),
        sa.Column('event_type', sa.String(length=64), nullable=False),
        sa.Column('resource', sa.String(length=128), nullable=True),
        sa.Column('action', sa.String(length=64), nullable=True),
        sa.Column('success', sa.Boolean(), nullable=False),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('ip_address', sa.String(length=45), nullable=True),
        sa.Column('user_agent', sa.String(length=512), nullable=True),
        sa.Column('occurred_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_security_events_user_id', 'security_events', ['user_id'])
    op.create_index('ix_security_events_event_type', 'security_events', ['event_type'])
    op.create_index('ix_security_events_success', 'security_events', ['success'])
    op.create_index('ix_security_events_user_type', 'security_events', ['user_id', 'event_type'])
    op.create_index('ix_security_events_occurred', 'security_events', ['occurred_at'])

    # ============================================================================
    # Reports
    # ============================================================================
    op.create_table(
        'reports',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('title', sa.String(length=255), nullable=True),
        sa.Column('content', sa.Text(), nullable=True),
        sa.Column('report_date', sa.Date(), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False, server_default='draft'),
        sa.Column('created_by_user_id', sa.Integer(), nullable=False),
        sa.Column('branch_id', sa.Integer(), nullable=False),
        sa.Column('branch_name', sa.String(length=120), nullable=False),
        sa.Column('subdistrict_id', sa.Integer(), nullable=False),
        sa.Column('subdistrict_name', sa.String(length=120), nullable=False),
        sa.Column('city_id', sa.Integer(), nullable=False),
        sa.Column('city_name', sa.String(length=120), nullable=False),
        sa.Column('branch_manager', sa.String(length=120), nullable=True),
        sa.Column('total_sales', sa.Numeric(precision=14, scale=2), nullable=True),
        sa.Column('product_info', sa.JSON(), nullable=True),
        sa.Column('expense_info', sa.JSON(), nullable=True),
        sa.Column('income_info', sa.JSON(), nullable=True),
        sa.Column('rejection_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('updated_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.Column('submitted_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('advanced_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('approved_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('rejected_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('advanced_by_user_id', sa.Integer(), nullable=True),
        sa.Column('approved_by_user_id', sa.Integer(), nullable=True),
        sa.Column('rejected_by_user_id', sa.Integer(), nullable=True),
        sa.Column('version_id', sa.Integer(), nullable=False, server_default='1'),
        sa.ForeignKeyConstraint(['created_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['branch_id'], ['branches.id']),
        sa.ForeignKeyConstraint(['subdistrict_id'], ['subdistricts.id']),
        sa.ForeignKeyConstraint(['city_id'], ['cities.id']),
        sa.ForeignKeyConstraint(['advanced_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['approved_by_user_id'], ['users.id']),
        sa.ForeignKeyConstraint(['rejected_by_user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_reports_status', 'reports', ['status'])
    op.create_index('ix_reports_report_date', 'reports', ['report_date'])
    op.create_index('ix_reports_created_at', 'reports', ['created_at'])
    op.create_index('ix_reports_branch_id', 'reports', ['branch_id'])
    op.create_index('ix_reports_subdistrict_status', 'reports', ['subdistrict_id', 'status'])
    op.create_index('ix_reports_city_status', 'reports', ['city_id', 'status'])
    op.create_index('ix_reports_creator_status', 'reports', ['created_by_user_id', 'status'])
    op.create_index(
        'uq_reports_one_in_flight_per_creator',
        'reports',
        ['created_by_user_id'],
        unique=True,
        sqlite_where=sa.text(IN_FLIGHT_PREDICATE),
        postgresql_where=sa.text(IN_FLIGHT_PREDICATE),
    )

    op.create_table(
        'report_comments',
        sa.Column('id', sa.Integer(), nullable=False),
        sa.Column('report_id', sa.Integer(), nullable=False),
        sa.Column('user_id', sa.Integer(), nullable=False),
        sa.Column('user_name', sa.String(length=120), nullable=False),
        sa.Column('text', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.text('CURRENT_TIMESTAMP'), nullable=False),
        sa.ForeignKeyConstraint(['report_id'], ['reports.id']),
        sa.ForeignKeyConstraint(['user_id'], ['users.id']),
        sa.PrimaryKeyConstraint('id'),
        sqlite_autoincrement=True,
    )
    op.create_index('ix_report_comments_report', 'report_comments', ['report_id'])


def downgrade():
    op.drop_index('ix_report_comments_report', table_name='report_comments')
    op.drop_table('report_comments')

    op.drop_index('uq_reports_one_in_flight_per_creator', table_name='reports')
    op.drop_index('ix_reports_creator_status', table_name='reports')
    op.drop_index('ix_reports_city_status', table_name='reports')
    op.drop_index('ix_reports_subdistrict_status', table_name='reports')
    op.drop_index('ix_reports_branch_id', table_name='reports')
    op.drop_index('ix_reports_created_at', table_name='reports')
    op.drop_index('ix_reports_report_date', table_name='reports')
    op.drop_index('ix_reports_status', table_name='reports')
    op.drop_table('reports')

    op.drop_index('ix_security_events_occurred', table_name='security_events')
    op.drop_index('ix_security_events_user_type', table_name='security_events')
    op.drop_index('ix_security_events_success', table_name='security_events')
    op.drop_index('ix_security_events_event_type', table_name='security_events')
    op.drop_index('ix_security_events_user_id', table_name='security_events')
    op.drop_table('security_events')

    op.drop_index('ix_session_tokens_is_revoked', table_name='session_tokens')
    op.drop_index('ix_session_tokens_expires_at', table_name='session_tokens')
    op.drop_index('ix_session_tokens_token_hash', table_name='session_tokens')
    op.drop_index('ix_session_tokens_user_id', table_name='session_tokens')
    op.drop_table('session_tokens')

    op.drop_index('ix_users_city_id', table_name='users')
    op.drop_index('ix_users_subdistrict_id', table_name='users')
    op.drop_index('ix_users_branch_id', table_name='users')
    op.drop_index('ix_users_role', table_name='users')
    op.drop_index('ix_users_email', table_name='users')
    op.drop_table('users')

    op.drop_index('ix_branches_subdistrict_id', table_name='branches')
    op.drop_table('branches')
    op.drop_index('ix_subdistricts_city_id', table_name='subdistricts')
    op.drop_table('subdistricts')
    op.drop_index('ix_cities_name', table_name='cities')
    op.drop_table('cities')
