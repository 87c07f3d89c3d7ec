"""Initial booking schema

Revision ID: 0001
Revises:
Create Date: 2026-10-19 09:00:00.000000

"""
from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op

# revision identifiers, used by Alembic.
revision: str = '0001'
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    """Upgrade database schema."""
    # Create users table
    op.create_table('users',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('display_name', sa.String(length=255), nullable=False),
        sa.Column('channel_address', sa.String(length=64), nullable=True),
        sa.Column('language', sa.String(length=2), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_users_channel_address'), 'users', ['channel_address'], unique=False)

    # Create agencies table
    op.create_table('agencies',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('group_channel_address', sa.String(length=64), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_agencies_name'), 'agencies', ['name'], unique=False)

    # Create agency_memberships table
    op.create_table('agency_memberships',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('role', sa.String(length=20), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('agency_id', 'user_id', name='uq_agency_membership_user')
    )
    op.create_index(op.f('ix_agency_memberships_agency_id'), 'agency_memberships', ['agency_id'], unique=False)
    op.create_index(op.f('ix_agency_memberships_user_id'), 'agency_memberships', ['user_id'], unique=False)
    op.create_index(op.f('ix_agency_memberships_status'), 'agency_memberships', ['status'], unique=False)

    # Create travel_requests table
    op.create_table('travel_requests',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('destination', sa.String(length=255), nullable=True),
        sa.Column('status', sa.String(length=32), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_travel_requests_user_id'), 'travel_requests', ['user_id'], unique=False)
    op.create_index(op.f('ix_travel_requests_status'), 'travel_requests', ['status'], unique=False)

    # Create offers table
    op.create_table('offers',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('travel_request_id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=False),
        sa.Column('membership_id', sa.Uuid(), nullable=True),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price_amount >= 0', name='ck_offer_price_amount_non_negative'),
        sa.CheckConstraint('length(price_currency) = 3', name='ck_offer_price_currency_length'),
        sa.ForeignKeyConstraint(['travel_request_id'], ['travel_requests.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='CASCADE'),
        sa.ForeignKeyConstraint(['membership_id'], ['agency_memberships.id'], ondelete='SET NULL'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_offers_travel_request_id'), 'offers', ['travel_request_id'], unique=False)
    op.create_index(op.f('ix_offers_agency_id'), 'offers', ['agency_id'], unique=False)
    op.create_index(op.f('ix_offers_membership_id'), 'offers', ['membership_id'], unique=False)
    op.create_index(op.f('ix_offers_status'), 'offers', ['status'], unique=False)

    # Create bookings table; the two unique indexes reject a second acceptance
    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('travel_request_id', sa.Uuid(), nullable=False),
        sa.Column('offer_id', sa.Uuid(), nullable=False),
        sa.Column('user_id', sa.Uuid(), nullable=False),
        sa.Column('agency_id', sa.Uuid(), nullable=False),
        sa.Column('price_amount', sa.Integer(), nullable=False),
        sa.Column('price_currency', sa.String(length=3), nullable=False),
        sa.Column('price_snapshot', sa.JSON(), nullable=False),
        sa.Column('status', sa.String(length=40), nullable=False),
        sa.Column('confirmed_at', sa.DateTime(), nullable=True),
        sa.Column('manager_verified_at', sa.DateTime(), nullable=True),
        sa.Column('paid_at', sa.DateTime(), nullable=True),
        sa.Column('cancelled_at', sa.DateTime(), nullable=True),
        sa.Column('expired_at', sa.DateTime(), nullable=True),
        sa.Column('expires_at', sa.DateTime(), nullable=True),
        sa.Column('agency_confirmed_by', sa.String(length=64), nullable=True),
        sa.Column('manager_verified_by', sa.String(length=64), nullable=True),
        sa.Column('cancel_reason', sa.Text(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price_amount >= 0', name='ck_booking_price_amount_non_negative'),
        sa.CheckConstraint('length(price_currency) = 3', name='ck_booking_price_currency_length'),
        sa.ForeignKeyConstraint(['travel_request_id'], ['travel_requests.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['offer_id'], ['offers.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['user_id'], ['users.id'], ondelete='RESTRICT'),
        sa.ForeignKeyConstraint(['agency_id'], ['agencies.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_bookings_travel_request_id'), 'bookings', ['travel_request_id'], unique=True)
    op.create_index(op.f('ix_bookings_offer_id'), 'bookings', ['offer_id'], unique=True)
    op.create_index(op.f('ix_bookings_user_id'), 'bookings', ['user_id'], unique=False)
    op.create_index(op.f('ix_bookings_agency_id'), 'bookings', ['agency_id'], unique=False)
    op.create_index(op.f('ix_bookings_status'), 'bookings', ['status'], unique=False)
    op.create_index(op.f('ix_bookings_expires_at'), 'bookings', ['expires_at'], unique=False)

    # Create booking_events table
    op.create_table('booking_events',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('booking_id', sa.Uuid(), nullable=False),
        sa.Column('from_status', sa.String(length=40), nullable=False),
        sa.Column('to_status', sa.String(length=40), nullable=False),
        sa.Column('triggered_by', sa.String(length=64), nullable=True),
        sa.Column('reason', sa.Text(), nullable=True),
        sa.Column('metadata', sa.JSON(), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['booking_id'], ['bookings.id'], ondelete='CASCADE'),
        sa.PrimaryKeyConstraint('id')
    )
    op.create_index(op.f('ix_booking_events_booking_id'), 'booking_events', ['booking_id'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_table('booking_events')
    op.drop_table('bookings')
    op.drop_table('offers')
    op.drop_table('travel_requests')
    op.drop_table('agency_memberships')
    op.drop_table('agencies')
    op.drop_table('users')
