"""
Static rules component - Declarative rule compilation and registration.
"""

from ._impl import (
    clear_static_rules,
    compile_static,
    is_static_candidate,
    sync_static_rules,
)
from .models import StaticRuleDescriptor, SyncResult
from .ports import RegistrationError, StaticRuleRegistryPort

__all__ = [
    # Entry points
    "compile_static",
    "sync_static_rules",
    "clear_static_rules",
    "is_static_candidate",
    # Models
    "StaticRuleDescriptor",
    "SyncResult",
    # Ports
    "RegistrationError",
    "StaticRuleRegistryPort",
]
