"""Configuration pytest pour les tests."""

import shutil
import tempfile
import zipfile
from pathlib import Path
from unittest.mock import MagicMock

import pytest

from nlu_runtime.common.config import LoggingConfig
from nlu_runtime.common.logging_utils import setup_logging
from nlu_runtime.common.models import (
    DatasetMetadata,
    Entity,
    IntentClassifierResult,
    InternalParsingResult,
)
from nlu_runtime.entities import BuiltinEntityParser, CustomEntityParser
from nlu_runtime.intent_parsers import IntentParser
from nlu_runtime.resources import SharedResources, load_shared_resources

RESOURCES_DIR = Path(__file__).parent / "resources"


@pytest.fixture(scope="session", autouse=True)
def configure_logging():
    """Logs réduits aux avertissements pendant les tests."""
    setup_logging(LoggingConfig(level="WARNING", format="text"), "nlu-runtime-tests")


@pytest.fixture
def temp_dir():
    """Crée un dossier temporaire pour les tests."""
    temp_path = Path(tempfile.mkdtemp())
    yield temp_path
    shutil.rmtree(temp_path, ignore_errors=True)


@pytest.fixture
def model_path():
    """Modèle MakeCoffee / MakeTea embarqué dans les tests."""
    return RESOURCES_DIR / "models" / "nlu_engine"


@pytest.fixture
def model_copy(temp_dir, model_path):
    """Copie modifiable du modèle embarqué."""
    destination = temp_dir / "nlu_engine"
    shutil.copytree(model_path, destination)
    return destination


def build_archive(source: Path, archive_path: Path, root_name: str = "nlu_engine") -> Path:
    """Zippe un répertoire de modèle sous un répertoire racine unique."""
    with zipfile.ZipFile(archive_path, "w") as zip_file:
        for file_path in sorted(source.rglob("*")):
            if file_path.is_file():
                relative = file_path.relative_to(source).as_posix()
                zip_file.write(file_path, f"{root_name}/{relative}")
    return archive_path


@pytest.fixture
def shared_resources(model_path):
    """Ressources partagées réelles du modèle embarqué."""
    return load_shared_resources(
        model_path / "resources" / "en",
        model_path / "builtin_entity_parser",
        model_path / "custom_entity_parser",
    )


@pytest.fixture
def model_archive(temp_dir, model_path):
    """Archive zip du modèle embarqué."""
    return build_archive(model_path, temp_dir / "nlu_engine.zip")


@pytest.fixture
def dataset_metadata():
    """Métadonnées avec une entité extensible, une fermée et un slot builtin."""
    return DatasetMetadata(
        language_code="en",
        entities={
            "entity1": Entity(automatically_extensible=True),
            "entity2": Entity(automatically_extensible=False),
        },
        slot_name_mappings={
            "intent1": {
                "slot1": "entity1",
                "slot2": "entity2",
                "number": "snips/number",
            },
            "intent2": {},
        },
    )


@pytest.fixture
def mock_shared_resources():
    """Ressources partagées dont les extracteurs sont des mocks."""
    builtin_parser = MagicMock(spec=BuiltinEntityParser)
    builtin_parser.extract_entities.return_value = []
    custom_parser = MagicMock(spec=CustomEntityParser)
    custom_parser.extract_entities.return_value = []
    return SharedResources(
        builtin_entity_parser=builtin_parser,
        custom_entity_parser=custom_parser,
    )


def parsing_result(intent_name: str, slots=None) -> InternalParsingResult:
    return InternalParsingResult(
        intent=IntentClassifierResult(intent_name=intent_name, probability=1.0),
        slots=list(slots or []),
    )


@pytest.fixture
def stub_parser():
    """Fabrique de parseurs d'intentions simulés."""

    def factory(result=None, unit_name="stub_intent_parser", side_effect=None):
        parser = MagicMock(spec=IntentParser)
        parser.unit_name = unit_name
        parser.parse.return_value = result
        if side_effect is not None:
            parser.parse.side_effect = side_effect
        return parser

    return factory


@pytest.fixture
def make_parsing_result():
    """Fabrique de résultats bruts de parseur."""
    return parsing_result


@pytest.fixture
def archive_builder():
    """Fabrique d'archives zip de modèles."""
    return build_archive
