from .base_model import DefaultModel
from .base_service import BaseService

__all__ = ["DefaultModel", "BaseService"]
