"""filelabels models package"""

from .base import Base
from .label import Label

__all__ = [
    "Base",
    "Label",
]
