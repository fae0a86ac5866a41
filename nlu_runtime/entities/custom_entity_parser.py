"""
Extracteur d'entités custom (gazetteer) pour le moteur NLU.

Chaque entité custom associe des variantes textuelles à une valeur résolue.
Le matching se fait sur des n-grammes de tokens, de façon exacte ou
approximative (difflib.SequenceMatcher).
"""

from difflib import SequenceMatcher
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..common.config import get_settings
from ..common.errors import EntityExtractionError
from ..common.logging_utils import get_entity_logger
from ..common.models import CharRange, CustomEntity, Language
from ..common.utils import normalize, read_model, tokenize

logger = get_entity_logger()


def _word_tokens(text: str) -> List[Tuple[str, CharRange]]:
    """Tokens hors ponctuation."""
    return [(token, span) for token, span in tokenize(text) if token[0].isalnum() or token[0] == "_"]


class GazetteerEntity(BaseModel):
    """Gazetteer persisté d'une entité custom."""
    values: Dict[str, str] = Field(default_factory=dict, description="variante -> valeur résolue")
    fuzzy_matching: Optional[bool] = Field(None, description="Active le matching approximatif")


class CustomEntityParserMetadata(BaseModel):
    """Métadonnées persistées de l'extracteur custom."""
    language_code: Language
    fuzzy_threshold: Optional[float] = Field(None, ge=0.0, le=1.0)
    entities: Dict[str, GazetteerEntity] = Field(default_factory=dict)


class _Gazetteer:
    """Index des variantes d'une entité, groupées par nombre de tokens."""

    def __init__(self, name: str, values: Dict[str, str], fuzzy: bool):
        self.name = name
        self.fuzzy = fuzzy
        self.variants: Dict[int, Dict[str, str]] = {}

        for variant, resolved in values.items():
            tokens = [token for token, _ in _word_tokens(variant)]
            if not tokens:
                continue
            key = normalize(" ".join(tokens))
            self.variants.setdefault(len(tokens), {})[key] = resolved

    @property
    def max_tokens(self) -> int:
        return max(self.variants, default=0)

    def lookup(self, ngram: str, size: int, threshold: float) -> Optional[Tuple[str, float]]:
        """Retourne (valeur résolue, score) pour un n-gramme normalisé."""
        candidates = self.variants.get(size)
        if not candidates:
            return None
        if ngram in candidates:
            return candidates[ngram], 1.0
        if not self.fuzzy:
            return None

        best: Optional[Tuple[str, float]] = None
        for variant, resolved in candidates.items():
            score = SequenceMatcher(None, ngram, variant).ratio()
            if score >= threshold and (best is None or score > best[1]):
                best = (resolved, score)
        return best


class CustomEntityParser:
    """Extracteur d'entités custom basé sur des gazetteers."""

    def __init__(
        self,
        language: Language,
        entities: Dict[str, GazetteerEntity],
        fuzzy_threshold: Optional[float] = None
    ):
        settings = get_settings().entities
        self.language = language
        self.fuzzy_threshold = settings.fuzzy_threshold if fuzzy_threshold is None else fuzzy_threshold
        self._gazetteers = {
            name: _Gazetteer(
                name,
                entity.values,
                settings.fuzzy_matching if entity.fuzzy_matching is None else entity.fuzzy_matching
            )
            for name, entity in entities.items()
        }

        logger.debug(
            f"Extracteur custom initialisé avec {len(self._gazetteers)} entité(s)",
            entities=sorted(self._gazetteers)
        )

    @classmethod
    def from_path(cls, path: Path) -> "CustomEntityParser":
        """Charge l'extracteur depuis son répertoire persisté."""
        metadata = read_model(Path(path) / "metadata.json", CustomEntityParserMetadata)
        return cls(metadata.language_code, metadata.entities, metadata.fuzzy_threshold)

    @property
    def entity_names(self) -> List[str]:
        return sorted(self._gazetteers)

    def extract_entities(
        self,
        text: str,
        scope: Optional[Iterable[str]] = None
    ) -> List[CustomEntity]:
        """
        Extrait les entités custom du texte.

        Les n-grammes les plus longs sont prioritaires ; à longueur égale,
        le meilleur score puis la position la plus à gauche. Les entités
        retournées ne se chevauchent pas et sont triées par position.

        Args:
            text: Texte à analyser
            scope: Noms d'entités à extraire (None pour toutes, vide pour aucune)

        Returns:
            Entités extraites

        Raises:
            EntityExtractionError: Si le texte ne peut pas être analysé
        """
        if not isinstance(text, str):
            raise EntityExtractionError(
                f"Texte invalide pour l'extraction custom: {type(text).__name__}",
                "ENTITY_002"
            )

        if scope is None:
            gazetteers = list(self._gazetteers.values())
        else:
            # Une entité sans gazetteer ne peut rien matcher
            gazetteers = [self._gazetteers[name] for name in scope if name in self._gazetteers]

        if not gazetteers:
            return []

        tokens = _word_tokens(text)
        candidates: List[Tuple[int, float, CustomEntity]] = []

        for gazetteer in gazetteers:
            for size in range(1, min(gazetteer.max_tokens, len(tokens)) + 1):
                for start in range(len(tokens) - size + 1):
                    window = tokens[start:start + size]
                    ngram = normalize(" ".join(token for token, _ in window))
                    match = gazetteer.lookup(ngram, size, self.fuzzy_threshold)
                    if match is None:
                        continue
                    resolved, score = match
                    span = CharRange(window[0][1].start, window[-1][1].end)
                    candidates.append((size, score, CustomEntity(
                        value=text[span.start:span.end],
                        resolved_value=resolved,
                        range=span,
                        entity_identifier=gazetteer.name
                    )))

        candidates.sort(key=lambda item: (-item[0], -item[1], item[2].range.start))
        selected: List[CustomEntity] = []
        for _, _, entity in candidates:
            if not any(entity.range.overlaps(kept.range) for kept in selected):
                selected.append(entity)
        selected.sort(key=lambda entity: entity.range.start)

        logger.debug(
            f"{len(selected)} entité(s) custom extraite(s)",
            entities=[(entity.entity_identifier, entity.value) for entity in selected]
        )
        return selected
