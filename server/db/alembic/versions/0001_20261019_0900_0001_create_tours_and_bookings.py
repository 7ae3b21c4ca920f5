"""Create tours and bookings tables

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
    op.create_table('tours',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('name', sa.String(length=255), nullable=False),
        sa.Column('slug', sa.String(length=255), nullable=False),
        sa.Column('description', sa.Text(), nullable=False),
        sa.Column('short_description', sa.Text(), nullable=True),
        sa.Column('category', sa.String(length=100), nullable=False),
        sa.Column('price', sa.Numeric(precision=10, scale=2), nullable=False),
        sa.Column('duration', sa.Numeric(precision=6, scale=2), nullable=False),
        sa.Column('promotion_price', sa.Numeric(precision=10, scale=2), nullable=True),
        sa.Column('is_featured', sa.Boolean(), nullable=False),
        sa.Column('is_promotion', sa.Boolean(), nullable=False),
        sa.Column('is_active', sa.Boolean(), nullable=False),
        sa.Column('image_url', sa.String(length=500), nullable=True),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.Column('updated_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.CheckConstraint('price > 0', name='ck_tour_price_positive'),
        sa.CheckConstraint('duration > 0', name='ck_tour_duration_positive'),
        sa.CheckConstraint(
            'promotion_price IS NULL OR promotion_price > 0',
            name='ck_tour_promotion_price_positive'
        ),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_tours_name'), 'tours', ['name'], unique=False)
    op.create_index(op.f('ix_tours_slug'), 'tours', ['slug'], unique=True)
    op.create_index(op.f('ix_tours_is_featured'), 'tours', ['is_featured'], unique=False)
    op.create_index(op.f('ix_tours_is_active'), 'tours', ['is_active'], unique=False)

    op.create_table('bookings',
        sa.Column('id', sa.Uuid(), nullable=False),
        sa.Column('tour_id', sa.Uuid(), nullable=False),
        sa.Column('customer_name', sa.String(length=255), nullable=False),
        sa.Column('customer_email', sa.String(length=255), nullable=False),
        sa.Column('status', sa.String(length=20), nullable=False),
        sa.Column('created_at', sa.DateTime(), server_default=sa.text('now()'), nullable=False),
        sa.ForeignKeyConstraint(['tour_id'], ['tours.id'], ondelete='RESTRICT'),
        sa.PrimaryKeyConstraint('id'),
    )
    op.create_index(op.f('ix_bookings_tour_id'), 'bookings', ['tour_id'], unique=False)
    op.create_index(op.f('ix_bookings_customer_email'), 'bookings', ['customer_email'], unique=False)


def downgrade() -> None:
    """Downgrade database schema."""
    op.drop_index(op.f('ix_bookings_customer_email'), table_name='bookings')
    op.drop_index(op.f('ix_bookings_tour_id'), table_name='bookings')
    op.drop_table('bookings')

    op.drop_index(op.f('ix_tours_is_active'), table_name='tours')
    op.drop_index(op.f('ix_tours_is_featured'), table_name='tours')
    op.drop_index(op.f('ix_tours_slug'), table_name='tours')
    op.drop_index(op.f('ix_tours_name'), table_name='tours')
    op.drop_table('tours')
