from .base import Base, TimestampMixin
from . import domain

__all__ = [
    "Base",
    "TimestampMixin",
    "domain",
]
