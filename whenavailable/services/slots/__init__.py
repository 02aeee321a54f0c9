# whenavailable/services/slots/__init__.py
"""
Slot lifecycle module.

Store: Redis records with TTL-based expiration
Admission: pure pre-mutation checks
Lifecycle: capacity and per-index accounting
"""

from .config import LifecycleConfig, get_lifecycle_config
from .redis_store import SlotsRedisStore
from .lifecycle import SlotLifecycleManager, generate_slot_id
from . import admission

__all__ = [
    "LifecycleConfig",
    "get_lifecycle_config",
    "SlotsRedisStore",
    "SlotLifecycleManager",
    "generate_slot_id",
    "admission",
]
