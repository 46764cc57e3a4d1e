from .cache import FocalPointCache, batch_created_at, new_batch_id
from .scanner import FocalPointScanner

__all__ = ["FocalPointCache", "FocalPointScanner", "batch_created_at", "new_batch_id"]
