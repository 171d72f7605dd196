"""Initial newsletter schema

Revision ID: 001_initial_schema
Revises:
Create Date: 2026-10-19 10:00:00.000000

Tables created:
- users: Admin accounts
- subscriptions: Newsletter subscribers and their confirmation status
- subscription_tokens: Double opt-in confirmation tokens
- idempotency: Saved outcomes of newsletter publish requests
- newsletter_issues: Published issues with delivery tallies
"""
from alembic import op
import sqlalchemy as sa
import logging

logger = logging.getLogger('alembic.runtime.migration')

# revision identifiers, used by Alembic.
revision = '001_initial_schema'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    """Create initial schema."""
    logger.info("Step 1/5: Creating users table...")
    op.create_table(
        'users',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('username', sa.String(), nullable=False),
        sa.Column('password_hash', sa.String(), nullable=False),
        sa.PrimaryKeyConstraint('user_id')
    )
    op.create_index('ix_users_username', 'users', ['username'], unique=True)

    logger.info("Step 2/5: Creating subscriptions table...")
    op.create_table(
        'subscriptions',
        sa.Column('id', sa.String(), nullable=False),
        sa.Column('email', sa.String(), nullable=False),
        sa.Column('name', sa.String(), nullable=False),
        sa.Column('subscribed_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('status', sa.String(), nullable=False),
        sa.CheckConstraint(
            "status IN ('pending_confirmation', 'confirmed')",
            name='ck_subscriptions_status'
        ),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index('ix_subscriptions_email', 'subscriptions', ['email'], unique=True)

    logger.info("Step 3/5: Creating subscription_tokens table...")
    op.create_table(
        'subscription_tokens',
        sa.Column('subscription_token', sa.String(), nullable=False),
        sa.Column('subscriber_id', sa.String(), nullable=False),
        sa.ForeignKeyConstraint(['subscriber_id'], ['subscriptions.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('subscription_token')
    )
    op.create_index('ix_subscription_tokens_subscriber_id', 'subscription_tokens', ['subscriber_id'])

    logger.info("Step 4/5: Creating idempotency table...")
    op.create_table(
        'idempotency',
        sa.Column('user_id', sa.String(), nullable=False),
        sa.Column('idempotency_key', sa.String(), nullable=False),
        sa.Column('response_status_code', sa.Integer(), nullable=True),
        sa.Column('response_headers', sa.JSON(), nullable=True),
        sa.Column('response_body', sa.LargeBinary(), nullable=True),
        sa.Column('response_flash_level', sa.String(), nullable=True),
        sa.Column('response_flash_message', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.user_id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('user_id', 'idempotency_key', name='pk_idempotency')
    )

    logger.info("Step 5/5: Creating newsletter_issues table...")
    op.create_table(
        'newsletter_issues',
        sa.Column('newsletter_issue_id', sa.String(), nullable=False),
        sa.Column('title', sa.String(), nullable=False),
        sa.Column('text_content', sa.Text(), nullable=False),
        sa.Column('html_content', sa.Text(), nullable=False),
        sa.Column('published_by', sa.String(), nullable=True),
        sa.Column('published_at', sa.DateTime(timezone=True), nullable=False),
        sa.Column('delivered_count', sa.Integer(), nullable=False),
        sa.Column('failed_count', sa.Integer(), nullable=False),
        sa.Column('skipped_count', sa.Integer(), nullable=False),
        sa.ForeignKeyConstraint(['published_by'], ['users.user_id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('newsletter_issue_id')
    )
    op.create_index('ix_newsletter_issues_published_by', 'newsletter_issues', ['published_by'])

    logger.info("✓ Initial schema created")


def downgrade() -> None:
    """Drop all tables."""
    op.drop_index('ix_newsletter_issues_published_by', table_name='newsletter_issues')
    op.drop_table('newsletter_issues')
    op.drop_table('idempotency')
    op.drop_index('ix_subscription_tokens_subscriber_id', table_name='subscription_tokens')
    op.drop_table('subscription_tokens')
    op.drop_index('ix_subscriptions_email', table_name='subscriptions')
    op.drop_table('subscriptions')
    op.drop_index('ix_users_username', table_name='users')
    op.drop_table('users')
