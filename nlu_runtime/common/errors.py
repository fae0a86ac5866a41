"""
Classes d'erreurs personnalisées pour le moteur NLU.

Définit une hiérarchie d'exceptions pour une gestion d'erreurs précise.
"""

from typing import Any, Dict, Optional


class NLUEngineError(Exception):
    """Exception de base pour le moteur NLU."""

    def __init__(
        self,
        message: str,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code
        self.details = details or {}


class ConfigurationError(NLUEngineError):
    """Erreur de configuration."""
    pass


class ModelLoadError(NLUEngineError):
    """Erreur de chargement d'un fichier du modèle."""

    def __init__(
        self,
        message: str,
        path: Optional[str] = None,
        error_code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None
    ):
        details = dict(details or {})
        if path is not None:
            details.setdefault("path", str(path))
            message = f"{message} [{path}]"
        super().__init__(message, error_code or "MODEL_001", details)
        self.path = None if path is None else str(path)


class WrongModelVersionError(ModelLoadError):
    """Version du modèle incompatible avec le moteur."""

    def __init__(self, found: str, expected: str, path: Optional[str] = None):
        super().__init__(
            f"Version de modèle incorrecte: trouvée '{found}', attendue '{expected}'",
            path=path,
            error_code="MODEL_002",
            details={"found": found, "expected": expected}
        )
        self.found = found
        self.expected = expected


class UnknownProcessingUnitError(ModelLoadError):
    """Type d'unité de traitement inconnu."""
    pass


class ArchiveExtractionError(ModelLoadError):
    """Erreur d'extraction d'une archive de modèle."""
    pass


class MetadataLookupError(NLUEngineError):
    """Clé absente des métadonnées du dataset."""
    pass


class UnknownIntentError(MetadataLookupError):
    """Intention absente des métadonnées."""

    def __init__(self, intent_name: str):
        super().__init__(
            f"Intention inconnue: '{intent_name}'",
            "NLU_001",
            {"intent_name": intent_name}
        )
        self.intent_name = intent_name


class UnknownSlotError(MetadataLookupError):
    """Slot absent des métadonnées de l'intention."""

    def __init__(self, slot_name: str, intent_name: Optional[str] = None):
        super().__init__(
            f"Slot inconnu: '{slot_name}'",
            "NLU_002",
            {"slot_name": slot_name, "intent_name": intent_name}
        )
        self.slot_name = slot_name
        self.intent_name = intent_name


class UnknownEntityIdentifierError(NLUEngineError):
    """Identifiant d'entité builtin inconnu."""

    def __init__(self, identifier: str):
        super().__init__(
            f"Identifiant d'entité inconnu: '{identifier}'",
            "ENTITY_001",
            {"identifier": identifier}
        )
        self.identifier = identifier


class EntityExtractionError(NLUEngineError):
    """Erreur d'extraction d'entités."""
    pass


class IntentParsingError(NLUEngineError):
    """Erreur de parsing d'intention."""
    pass


class SlotResolutionError(NLUEngineError):
    """Erreur de résolution des slots."""
    pass


# Mapping des codes d'erreur vers les classes
ERROR_CODE_MAPPING = {
    "CONFIG_001": ConfigurationError,
    "MODEL_001": ModelLoadError,
    "MODEL_003": UnknownProcessingUnitError,
    "MODEL_004": ArchiveExtractionError,
    "NLU_003": IntentParsingError,
    "NLU_004": SlotResolutionError,
    "ENTITY_002": EntityExtractionError,
}


def create_error_from_code(
    error_code: str,
    message: str,
    details: Optional[Dict[str, Any]] = None
) -> NLUEngineError:
    """
    Crée une exception à partir d'un code d'erreur.

    Seuls les codes dont la classe accepte la signature standard
    (message, code, détails) sont présents dans la table.

    Args:
        error_code: Code d'erreur
        message: Message d'erreur
        details: Détails additionnels

    Returns:
        Exception appropriée
    """
    error_class = ERROR_CODE_MAPPING.get(error_code, NLUEngineError)
    if issubclass(error_class, ModelLoadError):
        path = (details or {}).get("path")
        return error_class(message, path=path, error_code=error_code, details=details)
    return error_class(message, error_code, details)


def is_model_error(error: Exception) -> bool:
    """
    Détermine si une erreur invalide le modèle entier.

    Ces erreurs empêchent la construction du moteur ; les autres
    n'affectent qu'un seul appel.

    Args:
        error: Exception à vérifier

    Returns:
        True si l'erreur provient du chargement du modèle
    """
    return isinstance(error, (ModelLoadError, ConfigurationError))


def get_error_severity(error: Exception) -> str:
    """
    Détermine la sévérité d'une erreur.

    Args:
        error: Exception à évaluer

    Returns:
        Niveau de sévérité: "low", "medium", "high", "critical"
    """
    if isinstance(error, WrongModelVersionError):
        return "critical"

    if isinstance(error, (ModelLoadError, ConfigurationError)):
        return "high"

    if isinstance(error, (MetadataLookupError, UnknownEntityIdentifierError, SlotResolutionError)):
        return "medium"

    return "low"
