"""
nlu-runtime: moteur d'inférence NLU.

Charge un modèle pré-entraîné puis, pour un texte libre, détermine
l'intention la plus probable et résout les slots associés.
"""

from .common.errors import (
    ModelLoadError,
    NLUEngineError,
    SlotResolutionError,
    UnknownIntentError,
    UnknownSlotError,
    WrongModelVersionError,
)
from .common.models import CharRange, Language, ParseResult, Slot
from .engine import MODEL_VERSION, NLUEngine, load_engine, load_engine_from_archive
from .resources import SharedResources

__version__ = "0.1.0"

__all__ = [
    "MODEL_VERSION",
    "NLUEngine",
    "load_engine",
    "load_engine_from_archive",
    "SharedResources",
    "CharRange",
    "Language",
    "ParseResult",
    "Slot",
    "NLUEngineError",
    "ModelLoadError",
    "WrongModelVersionError",
    "UnknownIntentError",
    "UnknownSlotError",
    "SlotResolutionError",
]
