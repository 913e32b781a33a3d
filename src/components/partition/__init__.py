"""
Partition component - Rule lookup by request kind.
"""

from ._impl import (
    EMPTY_PARTITIONS,
    PartitionedRuleSet,
    build_partitions,
    request_filter,
)

__all__ = [
    "EMPTY_PARTITIONS",
    "PartitionedRuleSet",
    "build_partitions",
    "request_filter",
]
