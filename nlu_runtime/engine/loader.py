"""
Chargement des modèles du moteur NLU.

Vérifie la version du modèle, désérialise les métadonnées du dataset,
construit les ressources partagées puis instancie les parseurs dans
l'ordre déclaré. Les archives zip sont extraites dans un répertoire
temporaire supprimé à la sortie, quelle qu'elle soit.
"""

import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import BinaryIO, List, Optional, Union

from ..common.config import get_settings
from ..common.errors import ModelLoadError, WrongModelVersionError
from ..common.logging_utils import get_loader_logger
from ..common.models import NLUEngineModel, ProcessingUnitMetadata
from ..common.utils import extract_zip_archive, read_json, read_model
from ..intent_parsers import IntentParser, build_intent_parser
from ..resources import SharedResources, load_shared_resources

MODEL_VERSION = "0.19.0"

logger = get_loader_logger()


@dataclass(frozen=True)
class LoadedModel:
    """Composants d'un moteur chargé."""
    model: NLUEngineModel
    shared_resources: SharedResources
    intent_parsers: List[IntentParser]


def check_model_version(engine_model_path: Path, expected: str = MODEL_VERSION) -> None:
    """
    Vérifie la version déclarée dans le descripteur du moteur.

    La vérification précède toute autre validation du descripteur.

    Raises:
        WrongModelVersionError: Si la version diffère de la version attendue
        ModelLoadError: Si le descripteur est illisible
    """
    data = read_json(engine_model_path)
    if not isinstance(data, dict) or "model_version" not in data:
        raise ModelLoadError("Champ 'model_version' absent", path=str(engine_model_path))

    found = data["model_version"]
    if found != expected:
        raise WrongModelVersionError(str(found), expected, path=str(engine_model_path))


def load_engine_model(engine_dir: Path) -> NLUEngineModel:
    """Lit le descripteur nlu_engine.json après vérification de version."""
    engine_model_path = Path(engine_dir) / get_settings().loader.engine_file_name
    check_model_version(engine_model_path)
    return read_model(engine_model_path, NLUEngineModel)


def load_intent_parsers(
    engine_dir: Path,
    model: NLUEngineModel,
    shared_resources: SharedResources
) -> List[IntentParser]:
    """
    Instancie les parseurs dans l'ordre déclaré par le modèle.

    Args:
        engine_dir: Répertoire racine du moteur
        model: Descripteur du moteur
        shared_resources: Ressources injectées dans chaque parseur

    Returns:
        Parseurs, par ordre de priorité
    """
    metadata_file_name = get_settings().loader.metadata_file_name
    parsers = []

    for parser_name in model.intent_parsers:
        parser_path = Path(engine_dir) / parser_name
        metadata = read_model(parser_path / metadata_file_name, ProcessingUnitMetadata)
        parser = build_intent_parser(metadata, parser_path, shared_resources)
        parsers.append(parser)

        logger.debug(
            f"Parseur chargé: {parser_name}",
            parser=parser_name,
            unit_name=metadata.unit_name
        )

    return parsers


def load_model(
    engine_dir: Union[str, Path],
    shared_resources: Optional[SharedResources] = None
) -> LoadedModel:
    """
    Charge tous les composants d'un moteur depuis un répertoire.

    Args:
        engine_dir: Répertoire racine du moteur
        shared_resources: Ressources déjà construites (sinon chargées du modèle)

    Returns:
        Composants chargés

    Raises:
        ModelLoadError: Si un fichier du modèle est absent ou invalide
    """
    start_time = time.time()
    engine_dir = Path(engine_dir)
    if not engine_dir.is_dir():
        raise ModelLoadError("Répertoire du moteur introuvable", path=str(engine_dir))

    model = load_engine_model(engine_dir)

    if shared_resources is None:
        language = model.dataset_metadata.language
        shared_resources = load_shared_resources(
            engine_dir / "resources" / language.value,
            engine_dir / model.builtin_entity_parser,
            engine_dir / model.custom_entity_parser
        )

    parsers = load_intent_parsers(engine_dir, model, shared_resources)

    logger.log_performance(
        "chargement du modèle",
        time.time() - start_time,
        path=str(engine_dir),
        parsers=model.intent_parsers
    )
    return LoadedModel(model=model, shared_resources=shared_resources, intent_parsers=parsers)


def load_model_from_archive(
    archive: Union[str, Path, BinaryIO],
    shared_resources: Optional[SharedResources] = None
) -> LoadedModel:
    """
    Charge un moteur empaqueté dans une archive zip.

    L'archive est extraite dans un répertoire temporaire propre à l'appel,
    supprimé en sortie, y compris en cas d'erreur.

    Args:
        archive: Chemin ou flux binaire (lisible et positionnable) de l'archive
        shared_resources: Ressources déjà construites

    Returns:
        Composants chargés
    """
    settings = get_settings().loader

    with tempfile.TemporaryDirectory(prefix=settings.temp_dir_prefix) as temp_dir:
        engine_dir = extract_zip_archive(archive, Path(temp_dir), settings.engine_file_name)
        logger.debug("Archive extraite", temp_dir=temp_dir, engine_dir=str(engine_dir))
        return load_model(engine_dir, shared_resources)
