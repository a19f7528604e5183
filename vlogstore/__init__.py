"""Value log, sorted string table metadata and helpers for a key-value store."""

__version__ = "0.1.0"
__all__ = ["sstable", "util", "vlog"]