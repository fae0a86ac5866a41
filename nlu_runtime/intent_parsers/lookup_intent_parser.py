"""
Analyseur d'intentions par table de correspondance.

Chaque énoncé connu, normalisé et dont les entités sont remplacées par des
marqueurs, est associé à une intention et à la liste ordonnée de ses slots.
"""

from pathlib import Path
from typing import AbstractSet, Dict, FrozenSet, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..common.models import (
    IntentClassifierResult,
    InternalParsingResult,
    InternalSlot,
    Language,
)
from ..common.utils import read_model
from ..resources import SharedResources
from .base import IntentParser
from .utils import (
    MatchedEntity,
    clean_punctuation,
    extract_utterance_entities,
    replace_entities_with_placeholders,
    split_entity_scope,
)


class LookupEntry(BaseModel):
    intent: str
    slots: List[str] = Field(default_factory=list, description="Slots, dans l'ordre des marqueurs")


class LookupParserModel(BaseModel):
    """Modèle persisté du parseur par table."""
    language_code: Language
    ignore_stop_words: bool = False
    slot_names_to_entities: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    map: Dict[str, LookupEntry] = Field(default_factory=dict)


class LookupIntentParser(IntentParser):
    """Analyseur d'intentions par correspondance exacte d'énoncés."""

    unit_name = "lookup_intent_parser"

    def __init__(self, model: LookupParserModel, shared_resources: SharedResources):
        super().__init__(shared_resources)
        self.language = model.language_code
        self.ignore_stop_words = model.ignore_stop_words
        self.slot_names_to_entities = {
            intent: dict(mapping) for intent, mapping in model.slot_names_to_entities.items()
        }
        self._map: Dict[str, LookupEntry] = {
            self._normalize(utterance): entry for utterance, entry in model.map.items()
        }

        entity_names = [
            entity for mapping in self.slot_names_to_entities.values() for entity in mapping.values()
        ]
        self._builtin_scope, self._custom_scope = split_entity_scope(entity_names)

        self.logger.info(
            f"Analyseur par table initialisé avec {len(self._map)} énoncés",
            ignore_stop_words=self.ignore_stop_words
        )

    @classmethod
    def from_path(cls, path: Path, shared_resources: SharedResources) -> "LookupIntentParser":
        model = read_model(Path(path) / "intent_parser.json", LookupParserModel)
        return cls(model, shared_resources)

    @property
    def stop_words(self) -> FrozenSet[str]:
        return self.shared_resources.stop_words if self.ignore_stop_words else frozenset()

    def parse(
        self,
        text: str,
        intents: Optional[AbstractSet[str]] = None
    ) -> Optional[InternalParsingResult]:
        entities = extract_utterance_entities(
            text, self.shared_resources, self._builtin_scope, self._custom_scope
        )

        # Énoncé avec toutes les entités remplacées, puis énoncé brut
        attempts: List[Tuple[str, List[MatchedEntity]]] = []
        if entities:
            processed_text, _ = replace_entities_with_placeholders(text, entities)
            attempts.append((processed_text, entities))
        attempts.append((text, []))

        for utterance, utterance_entities in attempts:
            entry = self._map.get(self._normalize(utterance))
            if entry is None or not self.is_allowed(entry.intent, intents):
                continue

            slots = self._build_slots(text, entry, utterance_entities)
            if slots is None:
                continue

            self.logger.info(
                f"Intention détectée: {entry.intent}",
                intent=entry.intent,
                slots=[slot.slot_name for slot in slots]
            )
            return InternalParsingResult(
                intent=IntentClassifierResult(intent_name=entry.intent, probability=1.0),
                slots=slots
            )

        return None

    def _build_slots(
        self,
        text: str,
        entry: LookupEntry,
        entities: List[MatchedEntity]
    ) -> Optional[List[InternalSlot]]:
        """Associe les marqueurs aux slots de l'entrée, dans l'ordre."""
        if len(entry.slots) != len(entities):
            return None

        mapping = self.slot_names_to_entities.get(entry.intent, {})
        slots = []
        for slot_name, entity in zip(entry.slots, entities):
            if mapping.get(slot_name) != entity.entity:
                return None
            slots.append(InternalSlot(
                value=text[entity.range.start:entity.range.end],
                char_range=entity.range,
                entity=entity.entity,
                slot_name=slot_name
            ))
        return slots

    def _normalize(self, utterance: str) -> str:
        """Minuscules, sans ponctuation ni mots vides."""
        tokens = clean_punctuation(utterance.lower()).split()
        return " ".join(
            token for token in tokens
            if token not in self.stop_words
        )
