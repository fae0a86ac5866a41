"""
Classe de base pour les parseurs d'intentions du moteur NLU.

Définit le contrat commun: à partir d'un texte et d'une liste optionnelle
d'intentions autorisées, un parseur décline (None) ou retourne une intention
et ses slots non résolus.
"""

from abc import ABC, abstractmethod
from pathlib import Path
from typing import AbstractSet, ClassVar, Optional

from ..common.logging_utils import get_parser_logger
from ..common.models import InternalParsingResult
from ..resources import SharedResources


class IntentParser(ABC):
    """Classe de base abstraite pour tous les parseurs d'intentions."""

    unit_name: ClassVar[str] = "intent_parser"

    def __init__(self, shared_resources: SharedResources):
        self.shared_resources = shared_resources
        self.logger = get_parser_logger(self.unit_name)

    @classmethod
    @abstractmethod
    def from_path(cls, path: Path, shared_resources: SharedResources) -> "IntentParser":
        """
        Charge le parseur depuis son répertoire persisté.

        Args:
            path: Répertoire de l'unité de traitement
            shared_resources: Ressources partagées injectées

        Returns:
            Parseur initialisé
        """
        pass

    @abstractmethod
    def parse(
        self,
        text: str,
        intents: Optional[AbstractSet[str]] = None
    ) -> Optional[InternalParsingResult]:
        """
        Analyse le texte.

        Args:
            text: Texte à analyser
            intents: Intentions autorisées (None pour toutes)

        Returns:
            Intention et slots non résolus, ou None si le parseur décline
        """
        pass

    @staticmethod
    def is_allowed(intent_name: str, intents: Optional[AbstractSet[str]]) -> bool:
        return intents is None or intent_name in intents

    def __repr__(self) -> str:
        return f"{type(self).__name__}(unit_name={self.unit_name!r})"
