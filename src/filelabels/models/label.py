"""Label model for per-user file labels"""

from sqlalchemy import Column, Integer, BigInteger, String, Text, DateTime, UniqueConstraint, Index

from .base import Base


class Label(Base):
    """One key-value label that a user attached to a file"""

    __tablename__ = "file_labels"

    # Primary key
    id = Column(Integer, primary_key=True, autoincrement=True)

    # Owner and target (file ids are opaque handles into the host filesystem)
    file_id = Column(BigInteger, nullable=False)
    user_id = Column(String(64), nullable=False)

    # Label content
    label_key = Column(String(255), nullable=False)
    label_value = Column(Text, nullable=False, default="")

    # Timestamps
    created_at = Column(DateTime, nullable=False)
    updated_at = Column(DateTime, nullable=False)

    __table_args__ = (
        # One label key per file per user
        UniqueConstraint("file_id", "user_id", "label_key", name="file_labels_file_user_key"),
        # Reverse lookup: all files a user marked with a key
        Index("file_labels_user_key", "user_id", "label_key"),
        # Bulk fetch for directory listings
        Index("file_labels_file_user", "file_id", "user_id"),
        # Delete-by-file on file removal
        Index("file_labels_file_id", "file_id"),
    )

    def __repr__(self):
        return f"<Label(file={self.file_id}, user='{self.user_id}', key='{self.label_key}')>"

    def to_dict(self):
        """Convert to dictionary for JSON serialization"""
        return {
            "id": self.id,
            "file_id": self.file_id,
            "key": self.label_key,
            "value": self.label_value,
            "created_at": self.created_at.isoformat() if self.created_at else None,
            "updated_at": self.updated_at.isoformat() if self.updated_at else None,
        }


def labels_to_map(labels):
    """Collapse a list of labels into a {key: value} dict"""
    return {label.label_key: label.label_value for label in labels}
