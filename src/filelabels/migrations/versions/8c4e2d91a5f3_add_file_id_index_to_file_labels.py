"""Add file_id index to file_labels

Revision ID: 8c4e2d91a5f3
Revises: 3f9a1c2b7d10
Create Date: 2025-12-27 00:00:00.000000

"""
from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa


# revision identifiers, used by Alembic.
revision: str = '8c4e2d91a5f3'
down_revision: Union[str, Sequence[str], None] = '3f9a1c2b7d10'
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Upgrade schema."""
    # DELETE FROM file_labels WHERE file_id = ? on file removal
    op.create_index('file_labels_file_id', 'file_labels', ['file_id'])


def downgrade() -> None:
    """Downgrade schema."""
    op.drop_index('file_labels_file_id', table_name='file_labels')
