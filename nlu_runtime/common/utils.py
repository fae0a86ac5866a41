"""
Utilitaires partagés: manipulation de texte et lecture des fichiers du modèle.
"""

import json
import re
import zipfile
from pathlib import Path
from typing import Any, BinaryIO, List, Tuple, Type, TypeVar, Union

from pydantic import BaseModel, ValidationError

from .errors import ArchiveExtractionError, ModelLoadError
from .models import CharRange

ModelT = TypeVar("ModelT", bound=BaseModel)

_TOKEN_PATTERN = re.compile(r"\w+(?:['’]\w+)?|[^\w\s]", re.UNICODE)
_WORD_PATTERN = re.compile(r"\w+", re.UNICODE)


def substring_with_char_range(text: str, char_range: CharRange) -> str:
    """Extrait la sous-chaîne couverte par un intervalle de caractères."""
    return text[char_range.start:char_range.end]


def tokenize(text: str) -> List[Tuple[str, CharRange]]:
    """
    Découpe le texte en tokens (mots et ponctuation) avec leurs positions.

    Args:
        text: Texte à découper

    Returns:
        Liste de (token, intervalle)
    """
    return [
        (match.group(0), CharRange(match.start(), match.end()))
        for match in _TOKEN_PATTERN.finditer(text)
    ]


def normalize(text: str) -> str:
    """Minuscules et espaces normalisés."""
    return " ".join(text.lower().split())


def entity_placeholder(entity_name: str) -> str:
    """
    Construit le marqueur remplaçant une entité dans un énoncé.

    'snips/number' -> '%SNIPSNUMBER%', 'Coffee Type' -> '%COFFEETYPE%'
    """
    return "%{}%".format("".join(_WORD_PATTERN.findall(entity_name)).upper())


def read_json(path: Path) -> Any:
    """
    Lit un fichier JSON du modèle.

    Raises:
        ModelLoadError: Fichier absent ou JSON invalide
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except FileNotFoundError as e:
        raise ModelLoadError("Fichier introuvable", path=str(path)) from e
    except json.JSONDecodeError as e:
        raise ModelLoadError(f"JSON invalide: {e}", path=str(path)) from e
    except OSError as e:
        raise ModelLoadError(f"Lecture impossible: {e}", path=str(path)) from e


def read_model(path: Path, model_class: Type[ModelT]) -> ModelT:
    """
    Lit et valide un fichier JSON du modèle.

    Raises:
        ModelLoadError: Fichier illisible ou contenu non conforme
    """
    data = read_json(path)
    try:
        return model_class.model_validate(data)
    except ValidationError as e:
        raise ModelLoadError(
            f"Contenu invalide pour {model_class.__name__}: {e.error_count()} erreur(s)",
            path=str(path),
            details={"errors": e.errors(include_url=False)}
        ) from e


def extract_zip_archive(
    archive: Union[str, Path, BinaryIO],
    destination: Path,
    engine_file_name: str = "nlu_engine.json"
) -> Path:
    """
    Extrait une archive de modèle et retourne la racine du moteur.

    La racine est le répertoire contenant le descripteur du moteur: soit
    la destination elle-même, soit l'unique répertoire de premier niveau.

    Args:
        archive: Chemin ou flux binaire (lisible et positionnable) du zip
        destination: Répertoire d'extraction
        engine_file_name: Nom du descripteur à localiser

    Returns:
        Chemin du répertoire racine du moteur

    Raises:
        ArchiveExtractionError: Archive invalide ou racine introuvable
    """
    destination = destination.resolve()
    try:
        with zipfile.ZipFile(archive) as zip_file:
            for member in zip_file.namelist():
                target = (destination / member).resolve()
                if target != destination and destination not in target.parents:
                    raise ArchiveExtractionError(
                        f"Entrée d'archive hors du répertoire d'extraction: '{member}'",
                        path=str(destination)
                    )
            zip_file.extractall(destination)
    except zipfile.BadZipFile as e:
        raise ArchiveExtractionError(f"Archive invalide: {e}", path=str(destination)) from e

    if (destination / engine_file_name).is_file():
        return destination

    roots = [
        child for child in destination.iterdir()
        if child.is_dir() and not child.name.startswith("__MACOSX")
    ]
    if len(roots) == 1 and (roots[0] / engine_file_name).is_file():
        return roots[0]

    raise ArchiveExtractionError(
        f"Racine du moteur introuvable: aucun '{engine_file_name}' au premier niveau",
        path=str(destination)
    )
