"""Type description oracles."""

from oracle.base import Declaration, DeclarationKind, TypeOracle
from oracle.memory import InMemoryOracle
from oracle.treesitter import TreeSitterOracle

__all__ = [
    "Declaration",
    "DeclarationKind",
    "InMemoryOracle",
    "TreeSitterOracle",
    "TypeOracle",
]
