"""Resolution of oracle type descriptions into raw graphs."""

from resolve.resolver import DEFAULT_MAX_NODES, Resolver
from resolve.support import SUPPORT_MATRIX, describe_unsupported, get_support

__all__ = [
    "DEFAULT_MAX_NODES",
    "SUPPORT_MATRIX",
    "Resolver",
    "describe_unsupported",
    "get_support",
]
