"""
Extracteurs d'entités pour le moteur NLU.

Entités builtin (nombres, durées, ...) et entités custom (gazetteers).
"""

from .builtin_entity_parser import BuiltinEntityParser
from .custom_entity_parser import CustomEntityParser

__all__ = [
    "BuiltinEntityParser",
    "CustomEntityParser",
]
