"""
Ressources partagées du moteur NLU.

Les extracteurs d'entités sont construits une seule fois au chargement puis
référencés (jamais copiés) par le moteur et par chaque parseur. Aucune
mutation n'est permise après construction.
"""

from dataclasses import dataclass, field
from pathlib import Path
from typing import FrozenSet, Optional

from pydantic import BaseModel, Field

from .common.errors import ModelLoadError
from .common.logging_utils import get_loader_logger
from .common.utils import read_model
from .entities import BuiltinEntityParser, CustomEntityParser

logger = get_loader_logger()


class ResourcesMetadata(BaseModel):
    """Métadonnées des ressources linguistiques d'une langue."""
    language: Optional[str] = None
    stop_words: Optional[str] = Field(None, description="Fichier de mots vides")


@dataclass(frozen=True)
class SharedResources:
    """Extracteurs d'entités et ressources linguistiques partagés."""
    builtin_entity_parser: BuiltinEntityParser
    custom_entity_parser: CustomEntityParser
    stop_words: FrozenSet[str] = field(default_factory=frozenset)


def load_stop_words(path: Path) -> FrozenSet[str]:
    """Lit un fichier de mots vides (un par ligne)."""
    try:
        with open(path, "r", encoding="utf-8") as f:
            return frozenset(
                line.strip().lower() for line in f
                if line.strip() and not line.startswith("#")
            )
    except OSError as e:
        raise ModelLoadError(f"Lecture des mots vides impossible: {e}", path=str(path)) from e


def load_shared_resources(
    resources_path: Path,
    builtin_entity_parser_path: Path,
    custom_entity_parser_path: Path
) -> SharedResources:
    """
    Construit les ressources partagées depuis le modèle.

    Args:
        resources_path: Répertoire resources/<langue>
        builtin_entity_parser_path: Répertoire de l'extracteur builtin
        custom_entity_parser_path: Répertoire de l'extracteur custom

    Returns:
        Ressources partagées

    Raises:
        ModelLoadError: Ressource absente ou invalide
    """
    resources_path = Path(resources_path)
    if not resources_path.is_dir():
        raise ModelLoadError("Répertoire de ressources introuvable", path=str(resources_path))

    stop_words: FrozenSet[str] = frozenset()
    metadata_path = resources_path / "metadata.json"
    if metadata_path.is_file():
        metadata = read_model(metadata_path, ResourcesMetadata)
        if metadata.stop_words:
            stop_words = load_stop_words(resources_path / metadata.stop_words)

    resources = SharedResources(
        builtin_entity_parser=BuiltinEntityParser.from_path(builtin_entity_parser_path),
        custom_entity_parser=CustomEntityParser.from_path(custom_entity_parser_path),
        stop_words=stop_words
    )

    logger.info(
        "Ressources partagées chargées",
        resources_path=str(resources_path),
        stop_words=len(stop_words),
        custom_entities=resources.custom_entity_parser.entity_names
    )
    return resources
