"""Database model exports."""

from .rates import RateSnapshotRecord

__all__ = ["RateSnapshotRecord"]
