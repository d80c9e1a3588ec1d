"""create product categories and remote resource mappings

Revision ID: a1c4e7d2b9f0
Revises:
Create Date: 2026-10-19 10:00:00.000000

"""
from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision = 'a1c4e7d2b9f0'
down_revision = None
branch_labels = None
depends_on = None


def upgrade() -> None:
    op.create_table(
        'product_categories',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('name', sa.String(length=200), nullable=False, comment='分类名称'),
        sa.Column('slug', sa.String(length=200), nullable=False, comment='URL别名'),
        sa.Column('description', sa.Text(), nullable=True, comment='分类描述'),
        sa.Column('parent_id', sa.BigInteger(), nullable=True, comment='父分类ID'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=True, comment='创建时间'),
        sa.Column('updated_at', sa.DateTime(timezone=True), nullable=True, comment='更新时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('slug'),
    )
    op.create_index('ix_product_categories_parent', 'product_categories', ['parent_id'])

    op.create_table(
        'remote_resource_mappings',
        sa.Column('id', sa.BigInteger(), nullable=False),
        sa.Column('domain', sa.String(length=50), nullable=False, comment='同步域（如 product_sets）'),
        sa.Column('local_id', sa.String(length=100), nullable=False, comment='本地实体ID'),
        sa.Column('remote_id', sa.String(length=100), nullable=False, comment='远程资源ID'),
        sa.Column('created_at', sa.DateTime(timezone=True), nullable=False, comment='创建时间'),
        sa.PrimaryKeyConstraint('id'),
        sa.UniqueConstraint('domain', 'local_id', name='uq_remote_mapping_domain_local'),
        sa.UniqueConstraint('domain', 'remote_id', name='uq_remote_mapping_domain_remote'),
    )
    op.create_index('ix_remote_mapping_domain', 'remote_resource_mappings', ['domain'])


def downgrade() -> None:
    op.drop_index('ix_remote_mapping_domain', table_name='remote_resource_mappings')
    op.drop_table('remote_resource_mappings')
    op.drop_index('ix_product_categories_parent', table_name='product_categories')
    op.drop_table('product_categories')
