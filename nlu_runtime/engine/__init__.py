"""
Moteur NLU: chargement des modèles, cascade de parseurs et résolution des slots.
"""

from .loader import MODEL_VERSION, LoadedModel, load_model, load_model_from_archive
from .nlu_engine import NLUEngine, load_engine, load_engine_from_archive
from .scope import EntityScopeResolver
from .slot_resolver import SlotResolver, extract_builtin_slot, extract_custom_slot

__all__ = [
    "MODEL_VERSION",
    "LoadedModel",
    "load_model",
    "load_model_from_archive",
    "NLUEngine",
    "load_engine",
    "load_engine_from_archive",
    "EntityScopeResolver",
    "SlotResolver",
    "extract_builtin_slot",
    "extract_custom_slot",
]
