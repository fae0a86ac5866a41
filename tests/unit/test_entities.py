"""Tests unitaires pour les extracteurs d'entités."""

from datetime import datetime

import pytest

from nlu_runtime.common.errors import EntityExtractionError, ModelLoadError
from nlu_runtime.common.models import (
    AmountOfMoneyValue,
    BuiltinEntityKind,
    CharRange,
    DurationValue,
    Grain,
    InstantTimeValue,
    Language,
    NumberValue,
    OrdinalValue,
    PercentageValue,
    Precision,
    TemperatureValue,
    TimeIntervalValue,
)
from nlu_runtime.entities import BuiltinEntityParser, CustomEntityParser
from nlu_runtime.entities.custom_entity_parser import GazetteerEntity

REFERENCE_TIME = datetime(2026, 10, 17, 10, 0)


@pytest.fixture
def english_parser():
    return BuiltinEntityParser(Language.EN)


@pytest.fixture
def french_parser():
    return BuiltinEntityParser(Language.FR)


@pytest.fixture
def temperature_parser():
    return CustomEntityParser(
        Language.EN,
        {
            "Temperature": GazetteerEntity(values={
                "hot": "hot",
                "boiling": "hot",
                "ice cold": "cold",
            }),
        },
    )


class TestBuiltinEntityParser:
    """Tests pour BuiltinEntityParser."""

    def test_number_word(self, english_parser):
        """Test d'extraction d'un nombre en toutes lettres."""
        entities = english_parser.extract_entities(
            "Make me two cups of coffee please", [BuiltinEntityKind.NUMBER]
        )

        assert len(entities) == 1
        assert entities[0].value == "two"
        assert entities[0].range == CharRange(8, 11)
        assert entities[0].entity == NumberValue(value=2.0)
        assert entities[0].entity_kind == BuiltinEntityKind.NUMBER

    def test_compound_number_words(self, english_parser):
        """Test des nombres composés."""
        test_cases = [
            ("twenty one", 21.0),
            ("twenty-one", 21.0),
            ("three hundred and five", 305.0),
            ("two thousand", 2000.0),
        ]

        for text, expected in test_cases:
            entities = english_parser.extract_entities(text, [BuiltinEntityKind.NUMBER])
            assert len(entities) == 1, text
            assert entities[0].entity.value == expected, text
            assert entities[0].value == text

    def test_digits(self, english_parser):
        """Test des nombres en chiffres."""
        entities = english_parser.extract_entities(
            "order 3 boxes and 2,500 labels", [BuiltinEntityKind.NUMBER]
        )

        assert [entity.entity.value for entity in entities] == [3.0, 2500.0]

    def test_ordinals(self, english_parser):
        """Test des ordinaux."""
        entities = english_parser.extract_entities(
            "the 3rd and the second floor", [BuiltinEntityKind.ORDINAL]
        )

        assert [entity.entity for entity in entities] == [
            OrdinalValue(value=3),
            OrdinalValue(value=2),
        ]

    def test_percentage_wins_over_number(self, english_parser):
        """L'entité la plus longue l'emporte."""
        entities = english_parser.extract_entities("reduce by 50%")

        assert len(entities) == 1
        assert entities[0].entity_kind == BuiltinEntityKind.PERCENTAGE
        assert entities[0].entity == PercentageValue(value=50.0)
        assert entities[0].value == "50%"

    def test_temperature(self, english_parser):
        """Test des températures."""
        entities = english_parser.extract_entities(
            "set it to 20 degrees celsius", [BuiltinEntityKind.TEMPERATURE]
        )

        assert len(entities) == 1
        assert entities[0].entity == TemperatureValue(value=20.0, unit="celsius")

    def test_amount_of_money(self, english_parser):
        """Test des montants, exacts et approximatifs."""
        exact = english_parser.extract_entities("it costs 12 dollars")
        approximate = english_parser.extract_entities("about 20 euros")

        assert exact[0].entity == AmountOfMoneyValue(value=12.0, unit="$")
        assert approximate[0].value == "about 20 euros"
        assert approximate[0].entity == AmountOfMoneyValue(
            value=20.0, precision=Precision.APPROXIMATE, unit="€"
        )

    def test_durations(self, english_parser):
        """Test des durées."""
        entities = english_parser.extract_entities(
            "wait 3 hours then an hour", [BuiltinEntityKind.DURATION]
        )
        fractional = english_parser.extract_entities(
            "1.5 hours", [BuiltinEntityKind.DURATION]
        )

        assert [entity.entity for entity in entities] == [
            DurationValue(hours=3),
            DurationValue(hours=1),
        ]
        assert fractional[0].entity == DurationValue(hours=1, minutes=30)

    def test_scope(self, english_parser):
        """Le périmètre filtre les types extraits."""
        text = "two cups at 20 degrees"

        assert english_parser.extract_entities(text, []) == []
        kinds = {entity.entity_kind for entity in english_parser.extract_entities(text)}
        assert kinds == {BuiltinEntityKind.NUMBER, BuiltinEntityKind.TEMPERATURE}

    def test_no_entities(self, english_parser):
        """Un texte sans nombre ne donne rien."""
        assert english_parser.extract_entities("hello world") == []

    def test_invalid_text(self, english_parser):
        """Un texte invalide lève une EntityExtractionError."""
        with pytest.raises(EntityExtractionError):
            english_parser.extract_entities(None)

    def test_french_numbers(self, french_parser):
        """Test des nombres français."""
        test_cases = [
            ("quatre-vingt-dix-sept", 97.0),
            ("soixante-dix", 70.0),
            ("vingt et un", 21.0),
            ("trois cents", 300.0),
            ("3,5", 3.5),
        ]

        for text, expected in test_cases:
            entities = french_parser.extract_entities(text, [BuiltinEntityKind.NUMBER])
            assert len(entities) == 1, text
            assert entities[0].entity.value == expected, text

    def test_from_path(self, model_path):
        """Chargement depuis le modèle embarqué."""
        parser = BuiltinEntityParser.from_path(model_path / "builtin_entity_parser")

        assert parser.language == Language.EN
        assert BuiltinEntityKind.NUMBER in parser.supported_kinds

    def test_from_path_missing(self, temp_dir):
        """Un répertoire sans métadonnées est refusé."""
        with pytest.raises(ModelLoadError):
            BuiltinEntityParser.from_path(temp_dir)


class TestBuiltinDatetime:
    """Tests des dates et heures builtin."""

    @pytest.fixture
    def english_dates(self):
        return BuiltinEntityParser(Language.EN, reference_time=REFERENCE_TIME)

    @pytest.fixture
    def french_dates(self):
        return BuiltinEntityParser(Language.FR, reference_time=REFERENCE_TIME)

    def test_clock_joined_to_following_day(self, english_dates):
        """Une heure suivie d'un jour forme un seul instant."""
        entities = english_dates.extract_entities("wake me at 7am tomorrow")

        assert len(entities) == 1
        assert entities[0].entity_kind == BuiltinEntityKind.DATETIME
        assert entities[0].value == "at 7am tomorrow"
        assert entities[0].range == CharRange(8, 23)
        assert entities[0].entity == InstantTimeValue(value="2026-10-18T07:00:00", grain=Grain.HOUR)

    def test_day_joined_to_following_clock(self, english_dates):
        entities = english_dates.extract_entities(
            "tomorrow at 7:30 pm", [BuiltinEntityKind.DATETIME]
        )

        assert entities[0].value == "tomorrow at 7:30 pm"
        assert entities[0].entity == InstantTimeValue(value="2026-10-18T19:30:00", grain=Grain.MINUTE)

    def test_clock_alone_next_occurrence(self, english_dates):
        """Une heure seule désigne sa prochaine occurrence."""
        passed = english_dates.extract_entities("at 7am", [BuiltinEntityKind.DATETIME])
        upcoming = english_dates.extract_entities("at 19:30", [BuiltinEntityKind.DATETIME])

        assert passed[0].entity.value == "2026-10-18T07:00:00"
        assert upcoming[0].entity == InstantTimeValue(
            value="2026-10-17T19:30:00", grain=Grain.MINUTE
        )

    def test_days(self, english_dates):
        """Dates ISO et jours relatifs, à la granularité du jour."""
        entities = english_dates.extract_entities(
            "call me on 2026-10-20 or yesterday", [BuiltinEntityKind.DATETIME]
        )

        assert [entity.value for entity in entities] == ["2026-10-20", "yesterday"]
        assert [entity.entity for entity in entities] == [
            InstantTimeValue(value="2026-10-20T00:00:00", grain=Grain.DAY),
            InstantTimeValue(value="2026-10-16T00:00:00", grain=Grain.DAY),
        ]

    def test_invalid_iso_date(self, english_dates):
        assert english_dates.extract_entities("on 2026-13-40", [BuiltinEntityKind.DATETIME]) == []

    def test_interval(self, english_dates):
        """Deux heures reliées forment un intervalle."""
        entities = english_dates.extract_entities("open from 9am to 5pm")

        assert len(entities) == 1
        assert entities[0].value == "from 9am to 5pm"
        assert entities[0].entity == TimeIntervalValue(
            from_="2026-10-17T09:00:00", to="2026-10-17T17:00:00"
        )
        assert entities[0].entity.model_dump(by_alias=True) == {
            "kind": "TimeInterval",
            "from": "2026-10-17T09:00:00",
            "to": "2026-10-17T17:00:00",
        }

    def test_french_datetimes(self, french_dates):
        """Test des dates françaises."""
        instant = french_dates.extract_entities("réveille-moi demain à 7h")
        interval = french_dates.extract_entities("de 9h à 17h30", [BuiltinEntityKind.DATETIME])

        assert len(instant) == 1
        assert instant[0].value == "demain à 7h"
        assert instant[0].entity == InstantTimeValue(value="2026-10-18T07:00:00", grain=Grain.HOUR)
        assert interval[0].value == "de 9h à 17h30"
        assert interval[0].entity == TimeIntervalValue(
            from_="2026-10-17T09:00:00", to="2026-10-17T17:30:00"
        )

    def test_datetime_out_of_scope(self, english_dates):
        text = "wake me at 7am tomorrow"

        assert english_dates.extract_entities(text, [BuiltinEntityKind.NUMBER]) == []


class TestCustomEntityParser:
    """Tests pour CustomEntityParser."""

    def test_exact_match(self, temperature_parser):
        """Test d'extraction exacte."""
        entities = temperature_parser.extract_entities("I want a boiling tea")

        assert len(entities) == 1
        assert entities[0].value == "boiling"
        assert entities[0].resolved_value == "hot"
        assert entities[0].range == CharRange(9, 16)
        assert entities[0].entity_identifier == "Temperature"

    def test_multi_token_variant(self, temperature_parser):
        """Les variantes de plusieurs tokens sont reconnues."""
        entities = temperature_parser.extract_entities("some ICE  cold tea")

        assert len(entities) == 1
        assert entities[0].value == "ICE  cold"
        assert entities[0].resolved_value == "cold"

    def test_multiple_matches_sorted(self, temperature_parser):
        """Les entités sont triées par position."""
        entities = temperature_parser.extract_entities("hot or ice cold?")

        assert [entity.resolved_value for entity in entities] == ["hot", "cold"]
        assert entities[1].range == CharRange(7, 15)

    def test_longest_variant_wins(self):
        """À chevauchement, le n-gramme le plus long l'emporte."""
        parser = CustomEntityParser(
            Language.EN,
            {"City": GazetteerEntity(values={"new york": "NYC", "york": "York"})},
        )

        entities = parser.extract_entities("fly to new york")

        assert len(entities) == 1
        assert entities[0].resolved_value == "NYC"

    def test_scope(self, temperature_parser):
        """Le périmètre filtre les entités extraites."""
        assert temperature_parser.extract_entities("hot tea", []) == []
        assert temperature_parser.extract_entities("hot tea", ["Unknown"]) == []
        assert len(temperature_parser.extract_entities("hot tea", ["Temperature"])) == 1

    def test_fuzzy_matching(self):
        """Le matching approximatif tolère les fautes de frappe."""
        values = {"boiling": "hot", "hot": "hot"}
        fuzzy = CustomEntityParser(
            Language.EN,
            {"Temperature": GazetteerEntity(values=values, fuzzy_matching=True)},
            fuzzy_threshold=0.8,
        )
        strict = CustomEntityParser(
            Language.EN,
            {"Temperature": GazetteerEntity(values=values, fuzzy_matching=False)},
        )

        entities = fuzzy.extract_entities("a boilng tea")

        assert len(entities) == 1
        assert entities[0].value == "boilng"
        assert entities[0].resolved_value == "hot"
        assert strict.extract_entities("a boilng tea") == []

    def test_invalid_text(self, temperature_parser):
        """Un texte invalide lève une EntityExtractionError."""
        with pytest.raises(EntityExtractionError):
            temperature_parser.extract_entities(42)

    def test_from_path(self, model_path):
        """Chargement depuis le modèle embarqué."""
        parser = CustomEntityParser.from_path(model_path / "custom_entity_parser")

        assert parser.entity_names == ["Temperature"]
        assert parser.fuzzy_threshold == 0.85
        entities = parser.extract_entities("an iced tea")
        assert entities[0].resolved_value == "cold"
