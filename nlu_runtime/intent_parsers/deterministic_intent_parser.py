"""
Analyseur d'intentions déterministe basé sur des patterns regex.

Les entités de l'énoncé sont remplacées par des marqueurs avant le matching,
puis les groupes nommés des patterns sont reportés en slots sur le texte
original.
"""

import re
from pathlib import Path
from typing import AbstractSet, Dict, List, Optional, Pattern

from pydantic import BaseModel, Field

from ..common.errors import ModelLoadError
from ..common.models import (
    CharRange,
    IntentClassifierResult,
    InternalParsingResult,
    InternalSlot,
    Language,
)
from ..common.utils import read_model
from ..resources import SharedResources
from .base import IntentParser
from .utils import (
    clean_punctuation,
    extract_utterance_entities,
    replace_entities_with_placeholders,
    split_entity_scope,
    to_original_range,
)


class DeterministicParserConfig(BaseModel):
    max_pattern_length: Optional[int] = Field(None, ge=1, description="Longueur max des patterns")


class DeterministicParserModel(BaseModel):
    """Modèle persisté du parseur déterministe."""
    language_code: Language
    patterns: Dict[str, List[str]] = Field(default_factory=dict, description="intention -> regex")
    group_names_to_slot_names: Dict[str, str] = Field(default_factory=dict)
    slot_names_to_entities: Dict[str, Dict[str, str]] = Field(default_factory=dict)
    config: DeterministicParserConfig = Field(default_factory=DeterministicParserConfig)


class DeterministicIntentParser(IntentParser):
    """Analyseur d'intentions basé sur des règles."""

    unit_name = "deterministic_intent_parser"

    def __init__(self, model: DeterministicParserModel, shared_resources: SharedResources):
        super().__init__(shared_resources)
        self.language = model.language_code
        self.group_names_to_slot_names = dict(model.group_names_to_slot_names)
        self.slot_names_to_entities = {
            intent: dict(mapping) for intent, mapping in model.slot_names_to_entities.items()
        }
        self._patterns: Dict[str, List[Pattern]] = {
            intent: [
                re.compile(pattern, re.IGNORECASE)
                for pattern in patterns
                if model.config.max_pattern_length is None
                or len(pattern) <= model.config.max_pattern_length
            ]
            for intent, patterns in model.patterns.items()
        }

        entity_names = [
            entity for mapping in self.slot_names_to_entities.values() for entity in mapping.values()
        ]
        self._builtin_scope, self._custom_scope = split_entity_scope(entity_names)

        self.logger.info(
            f"Analyseur déterministe initialisé avec {self.pattern_count} patterns",
            intents=sorted(self._patterns)
        )

    @classmethod
    def from_path(cls, path: Path, shared_resources: SharedResources) -> "DeterministicIntentParser":
        model_path = Path(path) / "intent_parser.json"
        model = read_model(model_path, DeterministicParserModel)
        try:
            return cls(model, shared_resources)
        except re.error as e:
            raise ModelLoadError(f"Pattern invalide: {e}", path=str(model_path)) from e

    @property
    def pattern_count(self) -> int:
        return sum(len(patterns) for patterns in self._patterns.values())

    @property
    def intents(self) -> List[str]:
        return sorted(self._patterns)

    def parse(
        self,
        text: str,
        intents: Optional[AbstractSet[str]] = None
    ) -> Optional[InternalParsingResult]:
        """
        Analyse le texte pour extraire l'intention.

        Les patterns sont d'abord testés sur le texte où les entités sont
        remplacées par leurs marqueurs, puis sur le texte brut.

        Args:
            text: Texte à analyser
            intents: Intentions autorisées

        Returns:
            Intention détectée et slots non résolus, ou None
        """
        candidate_intents = [
            intent for intent in self._patterns if self.is_allowed(intent, intents)
        ]
        if not candidate_intents:
            return None

        entities = extract_utterance_entities(
            text, self.shared_resources, self._builtin_scope, self._custom_scope
        )
        processed_text, mapping = replace_entities_with_placeholders(text, entities)

        result = self._match(text, processed_text, mapping, candidate_intents)
        if result is None and mapping:
            result = self._match(text, text, {}, candidate_intents)

        if result is None:
            self.logger.debug(f"Aucun pattern ne correspond à: '{text}'")
        return result

    def _match(
        self,
        text: str,
        processed_text: str,
        mapping: Dict[CharRange, CharRange],
        candidate_intents: List[str]
    ) -> Optional[InternalParsingResult]:
        """Teste les patterns des intentions candidates sur le texte transformé."""
        cleaned_text = clean_punctuation(processed_text)

        for intent in candidate_intents:
            for regex in self._patterns[intent]:
                match = regex.fullmatch(cleaned_text)
                if match is None:
                    continue

                slots = self._build_slots(text, intent, match, mapping)
                self.logger.info(
                    f"Intention détectée: {intent}",
                    intent=intent,
                    pattern=regex.pattern,
                    slots=[slot.slot_name for slot in slots]
                )
                return InternalParsingResult(
                    intent=IntentClassifierResult(intent_name=intent, probability=1.0),
                    slots=slots
                )
        return None

    def _build_slots(
        self,
        text: str,
        intent: str,
        match: re.Match,
        mapping: Dict[CharRange, CharRange]
    ) -> List[InternalSlot]:
        slots = []
        for group_name, value in match.groupdict().items():
            if value is None:
                continue
            slot_name = self.group_names_to_slot_names.get(group_name)
            if slot_name is None:
                continue
            entity = self.slot_names_to_entities.get(intent, {}).get(slot_name)
            if entity is None:
                continue

            start, end = match.span(group_name)
            char_range = to_original_range(CharRange(start, end), mapping)
            slots.append(InternalSlot(
                value=text[char_range.start:char_range.end],
                char_range=char_range,
                entity=entity,
                slot_name=slot_name
            ))

        slots.sort(key=lambda slot: slot.char_range.start)
        return slots
