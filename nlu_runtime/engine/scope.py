"""
Résolution du périmètre d'entités pertinent pour une intention.
"""

from typing import List, Tuple

from ..common.errors import UnknownIntentError
from ..common.models import BuiltinEntityKind, DatasetMetadata, is_builtin_entity


class EntityScopeResolver:
    """Calcule les types d'entités à extraire pour une intention reconnue."""

    def __init__(self, dataset_metadata: DatasetMetadata):
        self.dataset_metadata = dataset_metadata

    def builtin_scope(self, intent_name: str) -> List[BuiltinEntityKind]:
        """
        Types builtin référencés par les slots de l'intention, sans doublons.

        Raises:
            UnknownIntentError: Si l'intention est absente des métadonnées
        """
        mapping = self.dataset_metadata.slot_name_mappings.get(intent_name)
        if mapping is None:
            raise UnknownIntentError(intent_name)

        kinds: List[BuiltinEntityKind] = []
        for entity_name in mapping.values():
            if is_builtin_entity(entity_name):
                kind = BuiltinEntityKind.from_identifier(entity_name)
                if kind not in kinds:
                    kinds.append(kind)
        return kinds

    def custom_scope(self) -> List[str]:
        """Toutes les entités custom déclarées (non restreint par intention)."""
        return list(self.dataset_metadata.entities)

    def resolve(self, intent_name: str) -> Tuple[List[BuiltinEntityKind], List[str]]:
        """Retourne (périmètre builtin, périmètre custom) pour l'intention."""
        return self.builtin_scope(intent_name), self.custom_scope()
