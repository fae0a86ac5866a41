"""
Parseurs d'intentions du moteur NLU.

Chaque parseur persisté est identifié par le champ unit_name de ses
métadonnées ; build_intent_parser instancie la variante correspondante.
"""

from pathlib import Path
from typing import Dict, Type

from ..common.errors import UnknownProcessingUnitError
from ..common.models import ProcessingUnitMetadata
from ..resources import SharedResources
from .base import IntentParser
from .deterministic_intent_parser import DeterministicIntentParser
from .lookup_intent_parser import LookupIntentParser

INTENT_PARSER_UNITS: Dict[str, Type[IntentParser]] = {
    DeterministicIntentParser.unit_name: DeterministicIntentParser,
    LookupIntentParser.unit_name: LookupIntentParser,
}


def build_intent_parser(
    metadata: ProcessingUnitMetadata,
    path: Path,
    shared_resources: SharedResources
) -> IntentParser:
    """
    Instancie un parseur d'intentions persisté.

    Args:
        metadata: Métadonnées de l'unité de traitement
        path: Répertoire de l'unité
        shared_resources: Ressources partagées à injecter

    Returns:
        Parseur initialisé

    Raises:
        UnknownProcessingUnitError: Si le type de parseur est inconnu
    """
    parser_class = INTENT_PARSER_UNITS.get(metadata.unit_name)
    if parser_class is None:
        raise UnknownProcessingUnitError(
            f"Type de parseur inconnu: '{metadata.unit_name}'",
            path=str(path),
            error_code="MODEL_003",
            details={"unit_name": metadata.unit_name}
        )
    return parser_class.from_path(path, shared_resources)


__all__ = [
    "IntentParser",
    "DeterministicIntentParser",
    "LookupIntentParser",
    "INTENT_PARSER_UNITS",
    "build_intent_parser",
]
