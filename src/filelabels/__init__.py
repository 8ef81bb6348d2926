"""Per-user key-value labels for files"""

__version__ = "0.1.0"
