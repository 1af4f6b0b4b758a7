"""Storage capacity simulator package."""

from .allocator import Allocation, Container, optimize
from .engine import ControllerConfig, StorageController

__all__ = ["Allocation", "Container", "optimize", "ControllerConfig", "StorageController"]
