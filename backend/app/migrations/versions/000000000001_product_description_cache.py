"""product_description_cache

Revision ID: 000000000001
Revises: 
Create Date: 2026-10-18 12:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = '000000000001'
down_revision: Union[str, None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    op.create_table('products',
        sa.Column('id', sa.String(length=64), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False),
        sa.Column('generated_description', sa.Text(), nullable=True),
        sa.Column('generated_language', sa.String(length=8), nullable=True),
        sa.Column('ai_generated_at', sa.DateTime(timezone=True), nullable=True),
        sa.Column('ai_last_updated', sa.DateTime(timezone=True), nullable=True),
        sa.Column('manual_language_override', sa.String(length=8), nullable=True),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False),
        sa.PrimaryKeyConstraint('id'),
        sa.CheckConstraint(
            '(generated_description IS NULL) = (ai_generated_at IS NULL)',
            name='ck_products_description_timestamp',
        ),
    )
    op.create_index('ix_products_ai_generated_at', 'products', ['ai_generated_at'], unique=False)


def downgrade() -> None:
    op.drop_index('ix_products_ai_generated_at', table_name='products')
    op.drop_table('products')
