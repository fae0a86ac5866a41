"""
Utilitaires communs aux parseurs: extraction des entités d'un énoncé et
remplacement par des marqueurs ("%SNIPSNUMBER%").
"""

import re
from typing import Dict, Iterable, List, NamedTuple, Tuple

from ..common.models import BuiltinEntityKind, CharRange, is_builtin_entity
from ..common.utils import entity_placeholder
from ..resources import SharedResources

# Caractères conservés lors du nettoyage (les marqueurs utilisent '%')
_NON_TOKEN_CHARS = re.compile(r"[^\w\s%]", re.UNICODE)


class MatchedEntity(NamedTuple):
    """Entité repérée dans l'énoncé, builtin ou custom."""
    range: CharRange
    entity: str


def split_entity_scope(entity_names: Iterable[str]) -> Tuple[List[BuiltinEntityKind], List[str]]:
    """Sépare des noms d'entités en types builtin et entités custom."""
    builtin, custom = [], []
    for name in sorted(set(entity_names)):
        if is_builtin_entity(name):
            builtin.append(BuiltinEntityKind.from_identifier(name))
        else:
            custom.append(name)
    return builtin, custom


def extract_utterance_entities(
    text: str,
    shared_resources: SharedResources,
    builtin_scope: List[BuiltinEntityKind],
    custom_scope: List[str]
) -> List[MatchedEntity]:
    """
    Extrait les entités builtin et custom d'un énoncé, sans chevauchement.

    À chevauchement, l'entité la plus longue l'emporte ; à longueur égale,
    l'entité custom est préférée.
    """
    candidates = [
        (1, MatchedEntity(entity.range, entity.entity_kind.value))
        for entity in shared_resources.builtin_entity_parser.extract_entities(text, builtin_scope)
    ]
    candidates.extend(
        (0, MatchedEntity(entity.range, entity.entity_identifier))
        for entity in shared_resources.custom_entity_parser.extract_entities(text, custom_scope)
    )

    candidates.sort(key=lambda item: (-item[1].range.length, item[0], item[1].range.start))
    selected: List[MatchedEntity] = []
    for _, entity in candidates:
        if not any(entity.range.overlaps(kept.range) for kept in selected):
            selected.append(entity)
    return sorted(selected, key=lambda entity: entity.range.start)


def replace_entities_with_placeholders(
    text: str,
    entities: List[MatchedEntity]
) -> Tuple[str, Dict[CharRange, CharRange]]:
    """
    Remplace les entités par leur marqueur.

    Args:
        text: Énoncé original
        entities: Entités triées par position, sans chevauchement

    Returns:
        Texte transformé et correspondance intervalle transformé -> original
    """
    parts = []
    mapping: Dict[CharRange, CharRange] = {}
    cursor = 0
    offset = 0

    for entity in entities:
        placeholder = entity_placeholder(entity.entity)
        parts.append(text[cursor:entity.range.start])
        start = entity.range.start + offset
        mapping[CharRange(start, start + len(placeholder))] = entity.range
        parts.append(placeholder)
        offset += len(placeholder) - entity.range.length
        cursor = entity.range.end

    parts.append(text[cursor:])
    return "".join(parts), mapping


def to_original_range(span: CharRange, mapping: Dict[CharRange, CharRange]) -> CharRange:
    """Reporte un intervalle du texte transformé sur le texte original."""

    def shift(position: int) -> int:
        return sum(
            original.length - replaced.length
            for replaced, original in mapping.items()
            if replaced.end <= position
        )

    return CharRange(span.start + shift(span.start), span.end + shift(span.end))


def clean_punctuation(text: str) -> str:
    """Remplace la ponctuation par des espaces, à longueur constante."""
    return _NON_TOKEN_CHARS.sub(" ", text)
