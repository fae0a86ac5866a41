"""
Configuration système pour le moteur NLU.

Gère le chargement de la configuration depuis YAML et variables d'environnement.
"""

from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import BaseModel, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class LoggingConfig(BaseModel):
    """Configuration du système de logging."""
    level: str = Field(default="INFO", description="Niveau de log")
    format: str = Field(default="json", description="Format: json ou text")
    file_path: Optional[str] = Field(default=None, description="Fichier de log")
    max_file_size: str = Field(default="10MB", description="Taille max du fichier")
    backup_count: int = Field(default=5, description="Nombre de fichiers de backup")


class LoaderConfig(BaseModel):
    """Configuration du chargement des modèles."""
    temp_dir_prefix: str = Field(default="temp_dir_nlu_", description="Préfixe des répertoires temporaires")
    engine_file_name: str = Field(default="nlu_engine.json", description="Descripteur du moteur")
    metadata_file_name: str = Field(default="metadata.json", description="Métadonnées des unités")


class EntityConfig(BaseModel):
    """Configuration des extracteurs d'entités."""
    fuzzy_threshold: float = Field(
        default=0.85, ge=0.0, le=1.0,
        description="Seuil de similarité pour le matching approximatif"
    )
    fuzzy_matching: bool = Field(default=False, description="Matching approximatif par défaut")


class EngineSettings(BaseSettings):
    """Configuration principale du moteur."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        env_prefix="NLU_",
        env_nested_delimiter="__",
        protected_namespaces=()
    )

    name: str = Field(default="nlu-runtime", description="Nom du service")
    debug: bool = Field(default=False, description="Mode debug")
    model_path: Optional[Path] = Field(default=None, description="Modèle chargé par défaut")

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    loader: LoaderConfig = Field(default_factory=LoaderConfig)
    entities: EntityConfig = Field(default_factory=EntityConfig)


class ConfigLoader:
    """Chargeur de configuration avec support YAML et environnement."""

    @staticmethod
    def load_from_file(config_path: str | Path) -> Dict[str, Any]:
        """Charge la configuration depuis un fichier YAML."""
        config_path = Path(config_path)
        if not config_path.exists():
            return {}

        with open(config_path, "r", encoding="utf-8") as f:
            return yaml.safe_load(f) or {}

    @staticmethod
    def load_settings(config_file: Optional[str] = None) -> EngineSettings:
        """Charge les paramètres complets du moteur."""
        config_data = {}

        if config_file:
            config_data = ConfigLoader.load_from_file(config_file)

        elif Path("nlu.yaml").exists():
            config_data = ConfigLoader.load_from_file("nlu.yaml")

        return EngineSettings(**config_data)

    @staticmethod
    def save_to_file(settings: EngineSettings, config_path: str | Path) -> None:
        """Sauvegarde la configuration dans un fichier YAML."""
        config_path = Path(config_path)
        config_data = settings.model_dump(mode="json")

        with open(config_path, "w", encoding="utf-8") as f:
            yaml.dump(config_data, f, default_flow_style=False, allow_unicode=True)


# Instance globale des settings
_settings: Optional[EngineSettings] = None


def get_settings() -> EngineSettings:
    """Récupère l'instance globale des settings."""
    global _settings
    if _settings is None:
        _settings = ConfigLoader.load_settings()
    return _settings


def reload_settings(config_file: Optional[str] = None) -> EngineSettings:
    """Recharge les settings."""
    global _settings
    _settings = ConfigLoader.load_settings(config_file)
    return _settings

