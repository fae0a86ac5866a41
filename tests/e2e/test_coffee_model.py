"""Tests E2E sur le modèle MakeCoffee / MakeTea embarqué."""

import json

import pytest
from click.testing import CliRunner

from nlu_runtime import MODEL_VERSION, NLUEngine, load_engine, load_engine_from_archive
from nlu_runtime.cli import cli
from nlu_runtime.common.config import LoggingConfig, reload_settings
from nlu_runtime.common.logging_utils import setup_logging
from nlu_runtime.common.models import CharRange, CustomValue, NumberValue

pytestmark = pytest.mark.e2e


@pytest.fixture
def cli_config(temp_dir):
    """Configuration CLI limitant les logs aux erreurs."""
    config_path = temp_dir / "nlu.yaml"
    config_path.write_text("logging:\n  level: ERROR\n  format: text\n", encoding="utf-8")
    yield str(config_path)
    reload_settings()
    setup_logging(LoggingConfig(level="WARNING", format="text"), "nlu-runtime-tests")


@pytest.fixture(params=["directory", "archive"])
def engine(request, model_path, model_archive):
    """Le même modèle chargé depuis un répertoire et depuis une archive."""
    if request.param == "directory":
        return load_engine(model_path)
    return load_engine_from_archive(model_archive)


class TestCoffeeScenarios:
    """Scénarios de bout en bout."""

    def test_make_coffee(self, engine):
        """Test E2E: deux tasses de café."""
        result = engine.parse("Make me two cups of coffee please")

        assert result.intent.intent_name == "MakeCoffee"
        assert result.intent.probability == 1.0
        assert len(result.slots) == 1
        slot = result.slots[0]
        assert slot.raw_value == "two"
        assert slot.value == NumberValue(value=2.0)
        assert slot.range == CharRange(8, 11)
        assert slot.entity == "snips/number"
        assert slot.slot_name == "number_of_cups"

    def test_make_tea_with_two_slots(self, engine):
        """Test E2E: slots builtin et custom dans le même énoncé."""
        result = engine.parse("Make me two hot cups of tea")

        assert result.intent_name == "MakeTea"
        assert [(slot.slot_name, slot.raw_value, slot.value) for slot in result.slots] == [
            ("number_of_cups", "two", NumberValue(value=2.0)),
            ("beverage_temperature", "hot", CustomValue(value="hot")),
        ]

    def test_lookup_parser_first(self, engine):
        """Le parseur par table répond avant le parseur déterministe."""
        result = engine.parse("I want a cup of boiling tea")

        assert result.intent_name == "MakeTea"
        assert result.slots[0].raw_value == "boiling"
        assert result.slots[0].value == CustomValue(value="hot")
        assert result.slots[0].range == CharRange(16, 23)

    def test_intents_filter(self, engine):
        """Une intention exclue n'est jamais retournée."""
        result = engine.parse("Make me two cups of coffee please", ["MakeTea"])

        assert not result.matched
        assert result.slots is None

    def test_unknown_utterance(self, engine):
        """Un énoncé hors domaine ne donne aucune intention."""
        result = engine.parse("What is the weather in Paris")

        assert result.to_dict() == {
            "input": "What is the weather in Paris",
            "intent": None,
            "slots": None,
        }

    def test_serialized_result(self, engine):
        """Forme sérialisée du résultat."""
        data = json.loads(engine.parse("Make me two cups of coffee please").to_json())

        assert data["intent"]["intentName"] == "MakeCoffee"
        assert data["slots"] == [{
            "rawValue": "two",
            "value": {"kind": "Number", "value": 2.0},
            "range": [8, 11],
            "entity": "snips/number",
            "slotName": "number_of_cups",
        }]

    def test_shared_resources_reused(self, model_path):
        """Un second moteur peut réutiliser les ressources du premier."""
        first = NLUEngine.from_path(model_path)
        second = NLUEngine.from_path(model_path, first.shared_resources)

        assert second.shared_resources is first.shared_resources
        assert second.parse("Make me two cups of coffee please").intent_name == "MakeCoffee"


class TestCli:
    """Tests E2E de la ligne de commande."""

    def test_parse_json(self, model_path, cli_config):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "--config", cli_config, "parse", str(model_path),
            "Make me two cups of coffee please", "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["intent"]["intentName"] == "MakeCoffee"
        assert data["slots"][0]["range"] == [8, 11]

    def test_parse_archive(self, model_archive, cli_config):
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", cli_config, "parse", str(model_archive), "Make me two hot cups of tea"]
        )

        assert result.exit_code == 0
        assert "MakeTea" in result.output

    def test_extract_slot_json(self, model_path, cli_config):
        runner = CliRunner()
        result = runner.invoke(cli, [
            "--config", cli_config, "extract-slot", str(model_path),
            "Make me two cups", "MakeCoffee", "number_of_cups", "--json",
        ])

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["rawValue"] == "two"
        assert data["range"] is None

    def test_info(self, model_path, cli_config):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", cli_config, "info", str(model_path)])

        assert result.exit_code == 0
        assert "MakeCoffee" in result.output
        assert "Temperature" in result.output

    def test_invalid_model_exit_code(self, temp_dir, cli_config):
        runner = CliRunner()
        result = runner.invoke(cli, ["--config", cli_config, "info", str(temp_dir / "absent")])

        assert result.exit_code == 2
        assert "Erreur" in result.output
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_parse_text_with_brackets(self, model_path, cli_config):
        """Les crochets du texte sont affichés tels quels."""
        runner = CliRunner()
        result = runner.invoke(
            cli, ["--config", cli_config, "parse", str(model_path), "hello [/x] world"]
        )

        assert result.exit_code == 0
        assert "hello [/x] world" in result.output

    def test_model_version_constant(self):
        assert MODEL_VERSION == "0.19.0"
