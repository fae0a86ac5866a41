"""
Moteur NLU principal.

Coordonne la cascade de parseurs d'intentions, le calcul du périmètre
d'entités et la résolution des slots.
"""

from pathlib import Path
from typing import BinaryIO, Iterable, List, Optional, Sequence, Union

from ..common.errors import SlotResolutionError, UnknownIntentError, UnknownSlotError
from ..common.logging_utils import get_engine_logger
from ..common.models import DatasetMetadata, Language, ParseResult, Slot
from ..intent_parsers import IntentParser
from ..resources import SharedResources
from .loader import load_model, load_model_from_archive
from .scope import EntityScopeResolver
from .slot_resolver import SlotResolver, extract_builtin_slot, extract_custom_slot

logger = get_engine_logger()


class NLUEngine:
    """
    Moteur d'inférence NLU.

    Immuable après construction: les appels concurrents à parse et
    extract_slot ne partagent aucun état modifiable.
    """

    def __init__(
        self,
        dataset_metadata: DatasetMetadata,
        intent_parsers: Sequence[IntentParser],
        shared_resources: SharedResources
    ):
        self.dataset_metadata = dataset_metadata
        self.intent_parsers = tuple(intent_parsers)
        self.shared_resources = shared_resources

        self._scope_resolver = EntityScopeResolver(dataset_metadata)
        self._slot_resolver = SlotResolver(dataset_metadata, shared_resources)

        logger.info(
            "Moteur NLU initialisé",
            language=dataset_metadata.language.value,
            parsers=[parser.unit_name for parser in self.intent_parsers],
            intents=len(dataset_metadata.slot_name_mappings)
        )

    @classmethod
    def from_path(
        cls,
        path: Union[str, Path],
        shared_resources: Optional[SharedResources] = None
    ) -> "NLUEngine":
        """
        Charge un moteur depuis un répertoire.

        Args:
            path: Répertoire racine du moteur
            shared_resources: Ressources déjà construites à réutiliser

        Returns:
            Moteur prêt à l'emploi
        """
        loaded = load_model(path, shared_resources)
        return cls(loaded.model.dataset_metadata, loaded.intent_parsers, loaded.shared_resources)

    @classmethod
    def from_zip(
        cls,
        archive: Union[str, Path, BinaryIO],
        shared_resources: Optional[SharedResources] = None
    ) -> "NLUEngine":
        """Charge un moteur depuis une archive zip (chemin ou flux binaire)."""
        loaded = load_model_from_archive(archive, shared_resources)
        return cls(loaded.model.dataset_metadata, loaded.intent_parsers, loaded.shared_resources)

    @property
    def language(self) -> Language:
        return self.dataset_metadata.language

    @property
    def intents(self) -> List[str]:
        return sorted(self.dataset_metadata.slot_name_mappings)

    def get_slot_names(self, intent_name: str) -> List[str]:
        """Slots déclarés pour une intention."""
        mapping = self.dataset_metadata.slot_name_mappings.get(intent_name)
        if mapping is None:
            raise UnknownIntentError(intent_name)
        return list(mapping)

    def parse(self, text: str, intents: Optional[Iterable[str]] = None) -> ParseResult:
        """
        Analyse complète d'un énoncé.

        Les parseurs sont essayés dans l'ordre du modèle ; le premier qui
        reconnaît une intention termine la cascade.

        Args:
            text: Texte à analyser
            intents: Intentions autorisées (None pour toutes)

        Returns:
            Résultat du parsing, vide si aucune intention n'est reconnue

        Raises:
            SlotResolutionError: Si la résolution des slots échoue
        """
        if not self.intent_parsers:
            return ParseResult.empty(text)

        intents_filter = frozenset(intents) if intents is not None else None

        for parser in self.intent_parsers:
            parsing_result = parser.parse(text, intents_filter)
            if parsing_result is None:
                continue

            intent = parsing_result.intent
            builtin_scope, custom_scope = self._scope_resolver.resolve(intent.intent_name)

            try:
                slots = self._slot_resolver.resolve(
                    text, parsing_result.slots, builtin_scope, custom_scope
                )
            except Exception as e:
                logger.log_error(e, "résolution des slots", intent=intent.intent_name)
                raise SlotResolutionError(
                    f"Échec de la résolution des slots (slot resolution failed): {e}",
                    "NLU_004",
                    {"intent": intent.intent_name, "parser": parser.unit_name}
                ) from e

            logger.info(
                f"Intention reconnue: {intent.intent_name}",
                parser=parser.unit_name,
                intent=intent.intent_name,
                slots=[slot.slot_name for slot in slots]
            )
            return ParseResult(input=text, intent=intent, slots=slots)

        logger.debug(f"Aucune intention reconnue pour: '{text}'")
        return ParseResult.empty(text)

    def extract_slot(self, text: str, intent_name: str, slot_name: str) -> Optional[Slot]:
        """
        Extrait directement un slot, sans passer par les parseurs.

        Args:
            text: Texte à analyser
            intent_name: Intention déclarant le slot
            slot_name: Nom du slot

        Returns:
            Slot résolu, ou None si aucune valeur n'est trouvée

        Raises:
            UnknownIntentError: Intention inconnue
            UnknownSlotError: Slot inconnu pour cette intention
        """
        mapping = self.dataset_metadata.slot_name_mappings.get(intent_name)
        if mapping is None:
            raise UnknownIntentError(intent_name)
        entity_name = mapping.get(slot_name)
        if entity_name is None:
            raise UnknownSlotError(slot_name, intent_name)

        custom_entity = self.dataset_metadata.entities.get(entity_name)
        if custom_entity is not None:
            return extract_custom_slot(
                text,
                entity_name,
                slot_name,
                custom_entity,
                self.shared_resources.custom_entity_parser
            )
        return extract_builtin_slot(
            text,
            entity_name,
            slot_name,
            self.shared_resources.builtin_entity_parser
        )


def load_engine(
    path: Union[str, Path],
    shared_resources: Optional[SharedResources] = None
) -> NLUEngine:
    """Charge un moteur depuis un répertoire."""
    return NLUEngine.from_path(path, shared_resources)


def load_engine_from_archive(
    archive: Union[str, Path, BinaryIO],
    shared_resources: Optional[SharedResources] = None
) -> NLUEngine:
    """Charge un moteur depuis une archive zip."""
    return NLUEngine.from_zip(archive, shared_resources)
