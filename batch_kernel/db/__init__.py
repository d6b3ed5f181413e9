"""batch_kernel.db -- SQLAlchemy base classes and engine management."""

from batch_kernel.db.base import Base, UUIDString

__all__ = ["Base", "UUIDString"]
