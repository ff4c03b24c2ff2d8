"""Baseline schema for the LEADERS marketplace

This migration creates:
1. Identity tables (users, users_profiles, memberships, creators)
2. Brand tables (brands, brand_users, provisioning_requests)
3. Campaign workflow (campaigns, applications, application_feedback, tasks,
   uploads, revision_requests, approvals, ratings, creator_metrics)
4. Money and logistics (payments, shipment_addresses, shipment_requests, shipments)
5. Disputes, audit_logs, notifications, push_subscriptions

Revision ID: leaders_baseline_001
Revises:
Create Date: 2026-10-19
"""

from alembic import op
import sqlalchemy as sa
from sqlalchemy.dialects import postgresql

# revision identifiers
revision = 'leaders_baseline_001'
down_revision = None
branch_labels = None
depends_on = None


# Shared enum types are created once up front and referenced by name afterwards
user_role = postgresql.ENUM(
    'admin', 'finance', 'support', 'content_ops', 'brand_manager', 'brand_user', 'creator',
    name='user_role', create_type=False
)
language_code = postgresql.ENUM('he', 'en', name='language_code', create_type=False)
campaign_status = postgresql.ENUM('draft', 'open', 'closed', 'archived', name='campaign_status', create_type=False)
application_status = postgresql.ENUM('submitted', 'approved', 'rejected', name='application_status', create_type=False)
task_status = postgresql.ENUM(
    'selected', 'in_production', 'uploaded', 'needs_edits', 'approved', 'paid', 'disputed',
    name='task_status', create_type=False
)
payment_status = postgresql.ENUM(
    'pending', 'approved_for_payment', 'paid', 'failed',
    name='payment_status', create_type=False
)
shipment_status = postgresql.ENUM(
    'not_requested', 'waiting_address', 'address_received', 'shipped', 'delivered', 'issue',
    name='shipment_status', create_type=False
)
dispute_status = postgresql.ENUM('open', 'in_review', 'resolved', 'rejected', name='dispute_status', create_type=False)
rejection_reason = postgresql.ENUM(
    'not_relevant', 'low_quality_profile', 'insufficient_followers', 'wrong_niche',
    'timing_issue', 'budget_mismatch', 'other',
    name='rejection_reason', create_type=False
)
revision_status = postgresql.ENUM('open', 'resolved', name='revision_status', create_type=False)

ENUMS = [
    user_role, language_code, campaign_status, application_status, task_status,
    payment_status, shipment_status, dispute_status, rejection_reason, revision_status,
]


def _timestamps(updated=True):
    columns = [sa.Column('created_at', sa.DateTime, server_default=sa.func.now())]
    if updated:
        columns.append(sa.Column('updated_at', sa.DateTime, server_default=sa.func.now()))
    return columns


def upgrade():
    bind = op.get_bind()
    for enum_type in ENUMS:
        enum_type.create(bind, checkfirst=True)

    # 1. Identity
    op.create_table('users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('email', sa.String(255), nullable=False, unique=True, index=True),
        sa.Column('password_hash', sa.String(255), nullable=False),
        sa.Column('role', user_role, nullable=True),
        sa.Column('user_metadata', sa.JSON),
        *_timestamps()
    )

    op.create_table('users_profiles',
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('display_name', sa.String(255), nullable=False),
        sa.Column('email', sa.String(255), nullable=False),
        sa.Column('language', language_code, server_default='he'),
        sa.Column('avatar_url', sa.String(500)),
        sa.Column('is_blocked', sa.Boolean, server_default=sa.false()),
        sa.Column('notification_preferences', sa.JSON),
        *_timestamps()
    )

    op.create_table('memberships',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('role', user_role, nullable=False),
        sa.Column('entity_type', sa.String(20)),
        sa.Column('entity_id', sa.String(36)),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        *_timestamps(updated=False)
    )

    op.create_table('creators',
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), primary_key=True),
        sa.Column('country', sa.String(100)),
        sa.Column('gender', sa.String(20)),
        sa.Column('age_range', sa.String(20)),
        sa.Column('niches', sa.JSON),
        sa.Column('occupations', sa.JSON),
        sa.Column('platforms', sa.JSON),
        sa.Column('portfolio_links', sa.JSON),
        sa.Column('tier', sa.String(20)),
        sa.Column('verified_at', sa.DateTime),
        *_timestamps()
    )

    # 2. Brands
    op.create_table('brands',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('name', sa.String(255), nullable=False),
        sa.Column('industry', sa.String(255)),
        sa.Column('website', sa.String(500)),
        sa.Column('default_language', language_code, server_default='he'),
        sa.Column('verified_at', sa.DateTime),
        *_timestamps()
    )

    op.create_table('brand_users',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('brand_id', sa.String(36), sa.ForeignKey('brands.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('role', user_role, server_default='brand_user'),
        sa.Column('is_active', sa.Boolean, server_default=sa.true()),
        *_timestamps(updated=False),
        sa.UniqueConstraint('brand_id', 'user_id', name='uq_brand_users_brand_user')
    )

    op.create_table('provisioning_requests',
        sa.Column('idempotency_key', sa.String(255), primary_key=True),
        sa.Column('brand_id', sa.String(36), sa.ForeignKey('brands.id', ondelete='CASCADE'), nullable=False),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False),
        sa.Column('created_by', sa.String(36)),
        *_timestamps(updated=False)
    )

    # 3. Campaign workflow
    op.create_table('campaigns',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('brand_id', sa.String(36), sa.ForeignKey('brands.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('description', sa.Text),
        sa.Column('brief', sa.Text),
        sa.Column('brief_url', sa.String(500)),
        sa.Column('objective', sa.Text),
        sa.Column('concept', sa.Text),
        sa.Column('deliverables', sa.JSON),
        sa.Column('fixed_price', sa.Integer),
        sa.Column('currency', sa.String(3), server_default='ILS'),
        sa.Column('requires_product', sa.Boolean, server_default=sa.false()),
        sa.Column('deadline', sa.DateTime),
        sa.Column('status', campaign_status, server_default='draft'),
        *_timestamps()
    )

    op.create_table('applications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('creator_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('message', sa.Text),
        sa.Column('availability', sa.String(255)),
        sa.Column('portfolio_links', sa.Text),
        sa.Column('deliverable_notes', sa.Text),
        sa.Column('proposed_price', sa.Integer),
        sa.Column('status', application_status, server_default='submitted'),
        *_timestamps(),
        sa.UniqueConstraint('campaign_id', 'creator_id', name='uq_applications_campaign_creator')
    )

    op.create_table('application_feedback',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('application_id', sa.String(36), sa.ForeignKey('applications.id', ondelete='CASCADE'), nullable=False),
        sa.Column('decision', sa.String(20), nullable=False),
        sa.Column('reason_code', rejection_reason),
        sa.Column('note', sa.Text),
        *_timestamps(updated=False)
    )

    op.create_table('shipment_addresses',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('creator_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('full_name', sa.String(255), nullable=False),
        sa.Column('street', sa.String(255), nullable=False),
        sa.Column('house_number', sa.String(20), nullable=False),
        sa.Column('apartment', sa.String(20)),
        sa.Column('city', sa.String(100), nullable=False),
        sa.Column('postal_code', sa.String(20)),
        sa.Column('country', sa.String(100), nullable=False),
        sa.Column('phone', sa.String(30), nullable=False),
        sa.Column('notes', sa.Text),
        sa.Column('is_default', sa.Boolean, server_default=sa.false()),
        *_timestamps(updated=False)
    )

    op.create_table('shipment_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('creator_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('address_id', sa.String(36), sa.ForeignKey('shipment_addresses.id', ondelete='SET NULL')),
        sa.Column('status', shipment_status, server_default='not_requested'),
        *_timestamps()
    )

    op.create_table('tasks',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('campaign_id', sa.String(36), sa.ForeignKey('campaigns.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('creator_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('status', task_status, server_default='selected'),
        sa.Column('due_at', sa.DateTime),
        sa.Column('payment_amount', sa.Integer, server_default='0'),
        sa.Column('requires_product', sa.Boolean, server_default=sa.false()),
        sa.Column('product_requirements', sa.Text),
        sa.Column('shipment_request_id', sa.String(36), sa.ForeignKey('shipment_requests.id', ondelete='SET NULL')),
        *_timestamps()
    )

    op.create_table('uploads',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('storage_path', sa.String(500), nullable=False),
        sa.Column('status', sa.String(20), server_default='pending'),
        sa.Column('meta', sa.JSON),
        *_timestamps(updated=False)
    )

    op.create_table('revision_requests',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('tags', sa.JSON),
        sa.Column('note', sa.Text, nullable=False),
        sa.Column('status', revision_status, server_default='open'),
        *_timestamps(updated=False),
        sa.Column('resolved_at', sa.DateTime)
    )

    op.create_table('approvals',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('decision', sa.String(20), nullable=False),
        sa.Column('note', sa.Text),
        *_timestamps(updated=False)
    )

    op.create_table('ratings',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('quality', sa.Integer),
        sa.Column('on_time', sa.Integer),
        sa.Column('communication', sa.Integer),
        sa.Column('note', sa.Text),
        *_timestamps(updated=False)
    )

    op.create_table('creator_metrics',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('creator_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('total_tasks', sa.Integer, server_default='0'),
        sa.Column('approved_tasks', sa.Integer, server_default='0'),
        sa.Column('rejected_tasks', sa.Integer, server_default='0'),
        sa.Column('average_rating', sa.Float, server_default='0'),
        sa.Column('approval_rate', sa.Float, server_default='0'),
        sa.Column('on_time_deliveries', sa.Integer, server_default='0'),
        sa.Column('late_deliveries', sa.Integer, server_default='0'),
        sa.Column('on_time_rate', sa.Float, server_default='0'),
        sa.Column('last_updated', sa.DateTime, server_default=sa.func.now())
    )

    # 4. Money and logistics
    op.create_table('payments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, unique=True),
        sa.Column('amount', sa.Integer, nullable=False),
        sa.Column('currency', sa.String(3), server_default='ILS'),
        sa.Column('status', payment_status, server_default='pending'),
        sa.Column('proof_url', sa.String(500)),
        sa.Column('invoice_url', sa.String(500)),
        sa.Column('paid_at', sa.DateTime),
        *_timestamps()
    )

    op.create_table('shipments',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('shipment_request_id', sa.String(36), sa.ForeignKey('shipment_requests.id', ondelete='CASCADE'), nullable=False),
        sa.Column('carrier', sa.String(100)),
        sa.Column('tracking_number', sa.String(100)),
        sa.Column('status', shipment_status, server_default='shipped'),
        sa.Column('shipped_at', sa.DateTime),
        sa.Column('delivered_at', sa.DateTime),
        sa.Column('issue_reason', sa.String(100)),
        sa.Column('issue_note', sa.Text)
    )

    # 5. Disputes, audit and delivery
    op.create_table('disputes',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('task_id', sa.String(36), sa.ForeignKey('tasks.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('raised_by', sa.String(36), sa.ForeignKey('users.id'), nullable=False),
        sa.Column('reason', sa.Text, nullable=False),
        sa.Column('status', dispute_status, server_default='open'),
        sa.Column('task_status_before', task_status),
        sa.Column('resolution_note', sa.Text),
        sa.Column('resolved_by', sa.String(36), sa.ForeignKey('users.id')),
        sa.Column('resolved_at', sa.DateTime),
        *_timestamps(updated=False)
    )

    op.create_table('audit_logs',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('actor_id', sa.String(36), index=True),
        sa.Column('entity', sa.String(50), nullable=False, index=True),
        sa.Column('entity_id', sa.String(36), index=True),
        sa.Column('action', sa.String(100), nullable=False),
        sa.Column('meta', sa.JSON),
        *_timestamps(updated=False)
    )

    op.create_table('notifications',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('type', sa.String(50), nullable=False),
        sa.Column('title', sa.String(255), nullable=False),
        sa.Column('message', sa.Text),
        sa.Column('action_url', sa.String(500)),
        sa.Column('data', sa.JSON),
        sa.Column('is_read', sa.Boolean, server_default=sa.false()),
        sa.Column('read_at', sa.DateTime),
        *_timestamps(updated=False)
    )

    op.create_table('push_subscriptions',
        sa.Column('id', sa.String(36), primary_key=True),
        sa.Column('user_id', sa.String(36), sa.ForeignKey('users.id', ondelete='CASCADE'), nullable=False, index=True),
        sa.Column('endpoint', sa.String(1000), nullable=False, unique=True),
        sa.Column('p256dh', sa.String(255), nullable=False),
        sa.Column('auth', sa.String(255), nullable=False),
        *_timestamps(updated=False)
    )


def downgrade():
    for table in [
        'push_subscriptions', 'notifications', 'audit_logs', 'disputes',
        'shipments', 'payments', 'creator_metrics', 'ratings', 'approvals', 'revision_requests',
        'uploads', 'tasks', 'shipment_requests', 'shipment_addresses', 'application_feedback',
        'applications', 'campaigns', 'provisioning_requests', 'brand_users', 'brands',
        'creators', 'memberships', 'users_profiles', 'users',
    ]:
        op.drop_table(table)

    bind = op.get_bind()
    for enum_type in reversed(ENUMS):
        enum_type.drop(bind, checkfirst=True)
