"""initial schema

Revision ID: 001
Revises: None
Create Date: 2026-10-18
"""
from alembic import op
import sqlalchemy as sa

revision = '001'
down_revision = None
branch_labels = None
depends_on = None


def _id():
    return sa.Column('id', sa.String(36), primary_key=True)


def _timestamps(updated=True):
    cols = [sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now())]
    if updated:
        cols.append(sa.Column('updated_at', sa.DateTime(timezone=True)))
    return cols


def _money(name, nullable=False):
    return sa.Column(name, sa.Numeric(14, 2), nullable=nullable)


def upgrade():
    # ---------- 客户 / 用户 / 权限 ----------
    op.create_table(
        'clients',
        _id(),
        sa.Column('client_name', sa.String(200), nullable=False),
        sa.Column('business_name', sa.String(200), nullable=False),
        sa.Column('contact_person', sa.String(200), nullable=False),
        sa.Column('email', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50), nullable=False),
        sa.Column('address', sa.Text()),
        sa.Column('notes', sa.Text()),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        *_timestamps(),
    )
    op.create_table(
        'users',
        _id(),
        sa.Column('name', sa.String(100)),
        sa.Column('username', sa.String(50), nullable=False),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', sa.String(20), nullable=False, server_default='user'),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='SET NULL')),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=False),
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    op.create_table(
        'pages',
        _id(),
        sa.Column('page_key', sa.String(50), nullable=False),
        sa.Column('display_name', sa.String(100), nullable=False),
        sa.Column('path', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(updated=False),
    )
    op.create_index('ix_pages_page_key', 'pages', ['page_key'], unique=True)

    op.create_table(
        'role_permissions',
        _id(),
        sa.Column('role', sa.String(20), nullable=False, index=True),
        sa.Column('page_id', sa.String(36), sa.ForeignKey('pages.id', ondelete='CASCADE'), nullable=False),
        sa.Column('can_view', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_edit', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('can_delete', sa.Boolean(), nullable=False, server_default=sa.false()),
        *_timestamps(),
        sa.UniqueConstraint('role', 'page_id', name='uq_role_permission_role_page'),
    )

    menu_fields = [
        'dashboard', 'campaign_management', 'client_management', 'ad_accounts', 'work_reports',
        'advantix_dashboard', 'projects', 'payments', 'expenses_salaries', 'salary_management',
        'reports', 'fb_ad_management', 'advantix_ads_manager', 'own_farming', 'new_created',
        'farming_accounts', 'admin_panel',
    ]
    op.create_table(
        'user_menu_permissions',
        _id(),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, unique=True),
        *[sa.Column(field, sa.Boolean(), nullable=True) for field in menu_fields],
        *_timestamps(),
    )

    # ---------- 广告账户 / 广告系列 ----------
    op.create_table(
        'ad_accounts',
        _id(),
        sa.Column('platform', sa.String(50), nullable=False),
        sa.Column('account_name', sa.String(200), nullable=False),
        sa.Column('account_id', sa.String(100), nullable=False),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        _money('spend_limit'),
        sa.Column('total_spend', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        'campaigns',
        _id(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('start_date', sa.Date(), nullable=False),
        sa.Column('comments', sa.Text()),
        sa.Column('ad_account_id', sa.String(36), sa.ForeignKey('ad_accounts.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='SET NULL'), index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('objective', sa.String(100), nullable=False),
        _money('budget'),
        sa.Column('spend', sa.Numeric(14, 2), nullable=False, server_default='0'),
        *_timestamps(),
    )
    op.create_table(
        'campaign_daily_spends',
        _id(),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False),
        sa.Column('date', sa.Date(), nullable=False),
        sa.Column('amount', sa.Numeric(14, 2), nullable=False, server_default='0'),
        *_timestamps(),
        sa.UniqueConstraint('campaign_id', 'date', name='uq_campaign_daily_spend_campaign_date'),
    )
    op.create_index('idx_campaign_daily_spend_date', 'campaign_daily_spends', ['date'])

    op.create_table(
        'ad_copy_sets',
        _id(),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('set_name', sa.String(200), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.false()),
        sa.Column('age', sa.String(50)),
        _money('budget', nullable=True),
        sa.Column('ad_type', sa.String(50)),
        sa.Column('creative_link', sa.Text()),
        sa.Column('headline', sa.Text()),
        sa.Column('description', sa.Text()),
        sa.Column('call_to_action', sa.String(100)),
        sa.Column('target_audience', sa.Text()),
        sa.Column('placement', sa.Text()),
        sa.Column('schedule', sa.Text()),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )

    op.create_table(
        'work_reports',
        _id(),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('title', sa.String(200), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('hours_worked', sa.Numeric(8, 2), nullable=False),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='submitted'),
        *_timestamps(),
        sa.CheckConstraint('hours_worked >= 0.1', name='ck_work_report_min_hours'),
    )

    # ---------- 财务 ----------
    op.create_table(
        'finance_projects',
        _id(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('start_date', sa.Date(), nullable=False),
        _money('budget'),
        sa.Column('expense', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('status', sa.String(20), nullable=False, server_default='active'),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        'employees',
        _id(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('department', sa.String(100)),
        sa.Column('position', sa.String(100)),
        sa.Column('notes', sa.Text()),
        sa.Column('is_active', sa.Boolean(), nullable=False, server_default=sa.true()),
        *_timestamps(),
    )
    op.create_table(
        'finance_payments',
        _id(),
        sa.Column('client_id', sa.String(36), sa.ForeignKey('clients.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('finance_projects.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        _money('amount'),
        sa.Column('conversion_rate', sa.Numeric(12, 6), nullable=False),
        _money('converted_amount'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='USD'),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('notes', sa.Text()),
        *_timestamps(updated=False),
    )
    op.create_table(
        'finance_expenses',
        _id(),
        sa.Column('type', sa.String(20), nullable=False),
        sa.Column('project_id', sa.String(36), sa.ForeignKey('finance_projects.id', ondelete='SET NULL'),
                  index=True),
        sa.Column('employee_id', sa.String(36), sa.ForeignKey('employees.id', ondelete='SET NULL')),
        _money('amount'),
        sa.Column('currency', sa.String(3), nullable=False, server_default='BDT'),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('notes', sa.Text()),
        *_timestamps(updated=False),
    )
    op.create_table(
        'finance_settings',
        _id(),
        sa.Column('key', sa.String(100), nullable=False),
        sa.Column('value', sa.String(200), nullable=False),
        sa.Column('description', sa.Text()),
        *_timestamps(),
    )
    op.create_index('ix_finance_settings_key', 'finance_settings', ['key'], unique=True)

    op.create_table(
        'salaries',
        _id(),
        sa.Column('employee_id', sa.String(36), sa.ForeignKey('users.id', ondelete='RESTRICT'),
                  nullable=False, index=True),
        sa.Column('employee_name', sa.String(200), nullable=False),
        sa.Column('month', sa.String(7), nullable=False),
        _money('basic_salary'),
        sa.Column('contractual_hours', sa.Integer(), nullable=False),
        sa.Column('actual_working_hours', sa.Numeric(8, 2), nullable=False),
        _money('hourly_rate'),
        _money('base_payment'),
        sa.Column('festival_bonus', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('performance_bonus', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('other_bonus', sa.Numeric(14, 2), nullable=False, server_default='0'),
        sa.Column('total_bonus', sa.Numeric(14, 2), nullable=False, server_default='0'),
        _money('gross_payment'),
        _money('final_payment'),
        sa.Column('payment_method', sa.String(20), nullable=False, server_default='bank_transfer'),
        sa.Column('payment_status', sa.String(20), nullable=False, server_default='unpaid'),
        sa.Column('salary_approval_status', sa.String(20), nullable=False, server_default='pending'),
        sa.Column('remarks', sa.Text()),
        *_timestamps(),
        sa.UniqueConstraint('employee_id', 'month', name='uq_salary_employee_month'),
    )

    op.create_table(
        'farming_accounts',
        _id(),
        sa.Column('comment', sa.Text()),
        sa.Column('social_media', sa.String(20), nullable=False),
        sa.Column('va_id', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL'), index=True),
        sa.Column('status', sa.String(20), nullable=False, server_default='new'),
        sa.Column('id_name', sa.String(200), nullable=False),
        sa.Column('email', sa.String(200), nullable=False),
        sa.Column('recovery_email', sa.String(200)),
        sa.Column('password', sa.String(255), nullable=False),
        sa.Column('two_fa_secret', sa.String(255)),
        *_timestamps(),
    )

    # ---------- Gher ----------
    op.create_table(
        'gher_partners',
        _id(),
        sa.Column('name', sa.String(200), nullable=False),
        sa.Column('phone', sa.String(50)),
        *_timestamps(),
    )
    op.create_table(
        'gher_tags',
        _id(),
        sa.Column('name', sa.String(100), nullable=False),
        sa.Column('type', sa.String(10), nullable=False),
        *_timestamps(updated=False),
        sa.UniqueConstraint('name', 'type', name='uq_gher_tag_name_type'),
    )
    op.create_table(
        'gher_entries',
        _id(),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('type', sa.String(10), nullable=False),
        _money('amount'),
        sa.Column('details', sa.Text(), nullable=False),
        sa.Column('tag_id', sa.String(36), sa.ForeignKey('gher_tags.id', ondelete='SET NULL'), index=True),
        sa.Column('partner_id', sa.String(36), sa.ForeignKey('gher_partners.id', ondelete='SET NULL'), index=True),
        *_timestamps(),
    )
    op.create_table(
        'gher_capital_transactions',
        _id(),
        sa.Column('partner_id', sa.String(36), sa.ForeignKey('gher_partners.id', ondelete='CASCADE'),
                  nullable=False, index=True),
        sa.Column('date', sa.Date(), nullable=False, index=True),
        sa.Column('type', sa.String(20), nullable=False),
        _money('amount'),
        sa.Column('notes', sa.Text()),
        *_timestamps(),
    )
    op.create_table(
        'gher_invoices',
        _id(),
        sa.Column('year_month', sa.String(7), nullable=False, index=True),
        sa.Column('sequence', sa.Integer(), nullable=False),
        sa.Column('invoice_number', sa.String(30), nullable=False, unique=True),
        sa.Column('notes', sa.Text()),
        sa.Column('snapshot', sa.JSON(), nullable=False),
        _money('total_income'),
        _money('total_expense'),
        _money('net_balance'),
        sa.Column('generated_by', sa.String(36), sa.ForeignKey('users.id', ondelete='SET NULL')),
        sa.Column('generated_at', sa.DateTime(timezone=True), server_default=sa.func.now()),
        sa.UniqueConstraint('year_month', 'sequence', name='uq_gher_invoice_month_sequence'),
    )
    op.create_table(
        'gher_invoice_counters',
        sa.Column('year_month', sa.String(7), primary_key=True),
        sa.Column('last_sequence', sa.Integer(), nullable=False, server_default='0'),
    )
    op.create_table(
        'gher_audit_logs',
        _id(),
        sa.Column('action_type', sa.String(30), nullable=False, index=True),
        sa.Column('entity_type', sa.String(30), nullable=False, index=True),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('entity_label', sa.String(255)),
        sa.Column('change_summary', sa.JSON()),
        sa.Column('metadata', sa.JSON()),
        sa.Column('user_id', sa.String(36), index=True),
        sa.Column('username', sa.String(50)),
        sa.Column('created_at', sa.DateTime(timezone=True), server_default=sa.func.now(), index=True),
    )


def downgrade():
    for table in (
        'gher_audit_logs', 'gher_invoice_counters', 'gher_invoices', 'gher_capital_transactions',
        'gher_entries', 'gher_tags', 'gher_partners', 'farming_accounts', 'salaries',
        'finance_settings', 'finance_expenses', 'finance_payments', 'employees', 'finance_projects',
        'work_reports', 'ad_copy_sets', 'campaign_daily_spends', 'campaigns', 'ad_accounts',
        'user_menu_permissions', 'role_permissions', 'pages', 'users', 'clients',
    ):
        op.drop_table(table)
