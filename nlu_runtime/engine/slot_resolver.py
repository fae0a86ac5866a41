"""
Résolution des slots pour le moteur NLU.

Convertit les slots non résolus produits par les parseurs en slots typés,
à partir des entités builtin et custom extraites de l'énoncé.
"""

from typing import Iterable, List, Optional

from ..common.logging_utils import get_engine_logger
from ..common.models import (
    BuiltinEntity,
    BuiltinEntityKind,
    CharRange,
    CustomEntity,
    CustomValue,
    DatasetMetadata,
    Entity,
    InternalSlot,
    Slot,
)
from ..common.utils import substring_with_char_range
from ..entities import BuiltinEntityParser, CustomEntityParser
from ..resources import SharedResources

logger = get_engine_logger(component="slot_resolver")


class SlotResolver:
    """Résolveur de slots partagé par tous les appels du moteur."""

    def __init__(self, dataset_metadata: DatasetMetadata, shared_resources: SharedResources):
        self.dataset_metadata = dataset_metadata
        self.shared_resources = shared_resources

    def resolve(
        self,
        text: str,
        slots: List[InternalSlot],
        builtin_scope: Optional[Iterable[BuiltinEntityKind]],
        custom_scope: Optional[Iterable[str]]
    ) -> List[Slot]:
        """
        Résout les slots d'un énoncé.

        Les extractions builtin et custom sont faites une seule fois sur le
        texte entier puis réutilisées pour chaque slot. L'ordre des slots est
        conservé ; un slot non résolu est omis.

        Args:
            text: Énoncé complet
            slots: Slots non résolus du parseur
            builtin_scope: Types builtin à extraire
            custom_scope: Entités custom à extraire

        Returns:
            Slots résolus (au plus un par slot d'entrée)
        """
        builtin_entities = self.shared_resources.builtin_entity_parser.extract_entities(
            text, builtin_scope
        )
        custom_entities = self.shared_resources.custom_entity_parser.extract_entities(
            text, custom_scope
        )

        resolved_slots = []
        for slot in slots:
            entity = self.dataset_metadata.entities.get(slot.entity)
            if entity is not None:
                resolved = resolve_custom_slot(text, slot, entity, custom_entities)
            else:
                resolved = resolve_builtin_slot(text, slot, builtin_entities)

            if resolved is None:
                logger.debug(
                    f"Slot ignoré: '{slot.slot_name}'",
                    slot_name=slot.slot_name,
                    entity=slot.entity
                )
                continue
            resolved_slots.append(resolved)

        return resolved_slots


def resolve_custom_slot(
    text: str,
    slot: InternalSlot,
    entity: Entity,
    custom_entities: List[CustomEntity]
) -> Optional[Slot]:
    """
    Résout un slot d'entité custom.

    L'entité extraite couvrant exactement le slot est préférée, sinon la
    dernière entité extraite du même type. Sans correspondance, une entité
    extensible prend l'énoncé entier comme valeur ; sinon le slot est omis.
    """
    candidates = [e for e in custom_entities if e.entity_identifier == slot.entity]
    matched = next((e for e in candidates if e.range == slot.char_range), None)
    if matched is None and candidates:
        matched = candidates[-1]

    if matched is not None:
        return Slot(
            raw_value=matched.value,
            value=CustomValue(value=matched.resolved_value),
            range=matched.range,
            entity=slot.entity,
            slot_name=slot.slot_name
        )
    if entity.automatically_extensible:
        return _whole_text_slot(text, slot.entity, slot.slot_name)
    return None


def resolve_builtin_slot(
    text: str,
    slot: InternalSlot,
    builtin_entities: List[BuiltinEntity]
) -> Optional[Slot]:
    """
    Résout un slot d'entité builtin.

    L'entité du bon type couvrant exactement le slot est préférée, sinon la
    première du même type. Pas de repli: sans correspondance, le slot est omis.

    Raises:
        UnknownEntityIdentifierError: Si l'entité du slot n'est pas builtin
    """
    kind = BuiltinEntityKind.from_identifier(slot.entity)
    candidates = [e for e in builtin_entities if e.entity_kind == kind]
    matched = next((e for e in candidates if e.range == slot.char_range), None)
    if matched is None and candidates:
        matched = candidates[0]
    if matched is None:
        return None

    return Slot(
        raw_value=substring_with_char_range(text, matched.range),
        value=matched.entity,
        range=matched.range,
        entity=slot.entity,
        slot_name=slot.slot_name
    )


def extract_custom_slot(
    text: str,
    entity_name: str,
    slot_name: str,
    custom_entity: Entity,
    custom_entity_parser: CustomEntityParser
) -> Optional[Slot]:
    """
    Extrait directement un slot d'entité custom de l'énoncé.

    En cas de correspondances multiples, la dernière dans l'ordre
    d'extraction est retenue.
    """
    custom_entities = custom_entity_parser.extract_entities(text, [entity_name])
    if custom_entities:
        matched = custom_entities[-1]
        return Slot(
            raw_value=matched.value,
            value=CustomValue(value=matched.resolved_value),
            range=matched.range,
            entity=entity_name,
            slot_name=slot_name
        )
    if custom_entity.automatically_extensible:
        return _whole_text_slot(text, entity_name, slot_name)
    return None


def extract_builtin_slot(
    text: str,
    entity_name: str,
    slot_name: str,
    builtin_entity_parser: BuiltinEntityParser
) -> Optional[Slot]:
    """
    Extrait directement un slot d'entité builtin de l'énoncé.

    La première entité extraite est retenue ; l'intervalle n'est pas reporté.

    Raises:
        UnknownEntityIdentifierError: Si l'entité n'est pas builtin
    """
    kind = BuiltinEntityKind.from_identifier(entity_name)
    builtin_entities = builtin_entity_parser.extract_entities(text, [kind])
    if not builtin_entities:
        return None

    matched = builtin_entities[0]
    return Slot(
        raw_value=substring_with_char_range(text, matched.range),
        value=matched.entity,
        range=None,
        entity=entity_name,
        slot_name=slot_name
    )


def _whole_text_slot(text: str, entity_name: str, slot_name: str) -> Slot:
    return Slot(
        raw_value=text,
        value=CustomValue(value=text),
        range=CharRange(0, len(text)),
        entity=entity_name,
        slot_name=slot_name
    )
