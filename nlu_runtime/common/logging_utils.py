"""
Utilitaires de logging structuré pour le moteur NLU.

Configure structlog avec formatage JSON et rotation des fichiers.
"""

import logging
import logging.handlers
import sys
from pathlib import Path
from typing import Any

import structlog
from structlog.types import Processor

from .config import LoggingConfig
from .errors import get_error_severity


def setup_logging(config: LoggingConfig, service_name: str = "nlu-runtime") -> None:
    """
    Configure le système de logging structuré.

    Args:
        config: Configuration de logging
        service_name: Nom du service pour les logs
    """
    log_level = getattr(logging, config.level.upper(), logging.INFO)

    processors: list[Processor] = [
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.stdlib.PositionalArgumentsFormatter(),
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        _add_service_name(service_name),
    ]

    if config.format.lower() == "json":
        processors.append(structlog.processors.JSONRenderer())
    else:
        processors.append(structlog.dev.ConsoleRenderer(colors=True))

    structlog.configure(
        processors=processors,
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    handlers: list[logging.Handler] = []

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(log_level)
    handlers.append(console_handler)

    # Handler fichier avec rotation si configuré
    if config.file_path:
        file_path = Path(config.file_path)
        file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            filename=file_path,
            maxBytes=_parse_size(config.max_file_size),
            backupCount=config.backup_count,
            encoding="utf-8"
        )
        file_handler.setLevel(log_level)
        handlers.append(file_handler)

    logging.basicConfig(
        handlers=handlers,
        level=log_level,
        format="%(message)s",  # structlog gère le formatage
        force=True
    )


def _add_service_name(service_name: str) -> Processor:
    """Processeur ajoutant le nom du service à chaque événement."""

    def processor(logger: Any, method_name: str, event_dict: dict) -> dict:
        event_dict.setdefault("service", service_name)
        return event_dict

    return processor


def _parse_size(size_str: str) -> int:
    """
    Parse une chaîne de taille (ex: '10MB') en bytes.

    Args:
        size_str: Chaîne de taille

    Returns:
        Taille en bytes
    """
    size_str = size_str.upper().strip()

    # Les suffixes longs d'abord: "10MB" se termine aussi par "B"
    multipliers = {
        'GB': 1024 * 1024 * 1024,
        'MB': 1024 * 1024,
        'KB': 1024,
        'B': 1,
    }

    for unit, multiplier in multipliers.items():
        if size_str.endswith(unit):
            number = size_str[:-len(unit)]
            try:
                return int(float(number) * multiplier)
            except ValueError:
                break

    try:
        return int(size_str)
    except ValueError:
        return 10 * 1024 * 1024  # 10MB par défaut


class EngineLogger:
    """Logger spécialisé pour le moteur NLU avec contexte enrichi."""

    def __init__(self, name: str, **default_context: Any):
        """
        Initialise le logger.

        Args:
            name: Nom du logger
            **default_context: Contexte par défaut à ajouter
        """
        self.name = name
        self._logger = structlog.get_logger(name)
        self._default_context = default_context

    def _log(self, level: str, message: str, **context: Any) -> None:
        """Log un message avec contexte."""
        full_context = {**self._default_context, **context}
        getattr(self._logger, level)(message, **full_context)

    def debug(self, message: str, **context: Any) -> None:
        """Log niveau DEBUG."""
        self._log("debug", message, **context)

    def info(self, message: str, **context: Any) -> None:
        """Log niveau INFO."""
        self._log("info", message, **context)

    def warning(self, message: str, **context: Any) -> None:
        """Log niveau WARNING."""
        self._log("warning", message, **context)

    def error(self, message: str, **context: Any) -> None:
        """Log niveau ERROR."""
        self._log("error", message, **context)

    def bind(self, **context: Any) -> "EngineLogger":
        """Crée un nouveau logger avec contexte lié."""
        new_context = {**self._default_context, **context}
        return EngineLogger(self.name, **new_context)

    def log_error(self, error: Exception, context: str = "", **details: Any) -> None:
        """Log une erreur avec contexte et sévérité."""
        self.error(
            f"Erreur {context}: {error}",
            error_type=type(error).__name__,
            error_message=str(error),
            severity=get_error_severity(error),
            context=context,
            **details
        )

    def log_performance(self, operation: str, duration: float, **details: Any) -> None:
        """Log des métriques de performance."""
        self.debug(
            f"Performance {operation}: {duration:.3f}s",
            operation=operation,
            duration_seconds=duration,
            **details
        )


def get_logger(name: str, **context: Any) -> EngineLogger:
    """
    Crée un logger pour un composant.

    Args:
        name: Nom du composant
        **context: Contexte par défaut

    Returns:
        Logger configuré
    """
    return EngineLogger(name, **context)


# Loggers pré-configurés pour les composants principaux
def get_engine_logger(**context: Any) -> EngineLogger:
    """Logger pour le moteur."""
    return get_logger("engine", **context)


def get_loader_logger(**context: Any) -> EngineLogger:
    """Logger pour le chargement des modèles."""
    return get_logger("loader", **context)


def get_parser_logger(parser_name: str, **context: Any) -> EngineLogger:
    """Logger pour un parseur d'intentions."""
    return get_logger(f"parser.{parser_name}", **context)


def get_entity_logger(**context: Any) -> EngineLogger:
    """Logger pour les extracteurs d'entités."""
    return get_logger("entities", **context)
