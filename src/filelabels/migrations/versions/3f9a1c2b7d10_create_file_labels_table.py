"""Create file_labels table

Revision ID: 3f9a1c2b7d10
Revises:
Create Date: 2024-12-22 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '3f9a1c2b7d10'
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    op.create_table(
        'file_labels',
        sa.Column('id', sa.Integer(), primary_key=True, autoincrement=True),
        sa.Column('file_id', sa.BigInteger(), nullable=False),
        sa.Column('user_id', sa.String(length=64), nullable=False),
        sa.Column('label_key', sa.String(length=255), nullable=False),
        sa.Column('label_value', sa.Text(), nullable=False),
        sa.Column('created_at', sa.DateTime(), nullable=False),
        sa.Column('updated_at', sa.DateTime(), nullable=False),
        sa.UniqueConstraint('file_id', 'user_id', 'label_key', name='file_labels_file_user_key'),
    )
    # Reverse lookup by user and key (e.g. all files marked sensitive)
    op.create_index('file_labels_user_key', 'file_labels', ['user_id', 'label_key'])
    # Bulk fetch for directory listings
    op.create_index('file_labels_file_user', 'file_labels', ['file_id', 'user_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('file_labels_file_user', table_name='file_labels')
    op.drop_index('file_labels_user_key', table_name='file_labels')
    op.drop_table('file_labels')
