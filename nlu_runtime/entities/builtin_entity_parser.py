"""
Extracteur d'entités builtin pour le moteur NLU.

Reconnaît les nombres, ordinaux, pourcentages, températures, montants,
durées et dates à l'aide de patterns regex et de tables de nombres en
toutes lettres.
"""

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..common.errors import EntityExtractionError
from ..common.logging_utils import get_entity_logger
from ..common.models import (
    AmountOfMoneyValue,
    BuiltinEntity,
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
from ..common.utils import read_model

logger = get_entity_logger()


@dataclass(frozen=True)
class NumberWords:
    """Tables de nombres en toutes lettres pour une langue."""
    values: Dict[str, int]
    scales: Dict[str, int]
    connectors: frozenset
    ordinals: Dict[str, int]
    # Dizaine multipliée par l'unité qui la précède ("quatre-vingts")
    multiplicative_tens: frozenset = frozenset()


ENGLISH_WORDS = NumberWords(
    values={
        "zero": 0, "one": 1, "two": 2, "three": 3, "four": 4, "five": 5,
        "six": 6, "seven": 7, "eight": 8, "nine": 9, "ten": 10,
        "eleven": 11, "twelve": 12, "thirteen": 13, "fourteen": 14,
        "fifteen": 15, "sixteen": 16, "seventeen": 17, "eighteen": 18,
        "nineteen": 19, "twenty": 20, "thirty": 30, "forty": 40,
        "fifty": 50, "sixty": 60, "seventy": 70, "eighty": 80, "ninety": 90,
    },
    scales={"hundred": 100, "thousand": 1000, "million": 10 ** 6, "billion": 10 ** 9},
    connectors=frozenset({"and"}),
    ordinals={
        "first": 1, "second": 2, "third": 3, "fourth": 4, "fifth": 5,
        "sixth": 6, "seventh": 7, "eighth": 8, "ninth": 9, "tenth": 10,
        "eleventh": 11, "twelfth": 12, "twentieth": 20, "hundredth": 100,
    },
)

FRENCH_WORDS = NumberWords(
    values={
        "zéro": 0, "zero": 0, "un": 1, "une": 1, "deux": 2, "trois": 3,
        "quatre": 4, "cinq": 5, "six": 6, "sept": 7, "huit": 8, "neuf": 9,
        "dix": 10, "onze": 11, "douze": 12, "treize": 13, "quatorze": 14,
        "quinze": 15, "seize": 16, "vingt": 20, "vingts": 20, "trente": 30,
        "quarante": 40, "cinquante": 50, "soixante": 60,
    },
    scales={
        "cent": 100, "cents": 100, "mille": 1000, "million": 10 ** 6,
        "millions": 10 ** 6, "milliard": 10 ** 9, "milliards": 10 ** 9,
    },
    connectors=frozenset({"et"}),
    ordinals={
        "premier": 1, "première": 1, "deuxième": 2, "second": 2, "seconde": 2,
        "troisième": 3, "quatrième": 4, "cinquième": 5, "sixième": 6,
        "septième": 7, "huitième": 8, "neuvième": 9, "dixième": 10,
        "vingtième": 20, "centième": 100,
    },
    multiplicative_tens=frozenset({"vingt", "vingts"}),
)

LANGUAGE_WORDS: Dict[Language, NumberWords] = {
    Language.EN: ENGLISH_WORDS,
    Language.FR: FRENCH_WORDS,
}

_DIGITS_PATTERNS = {
    Language.EN: re.compile(r"(?<![\w.,])-?(?:\d{1,3}(?:,\d{3})+|\d+)(?:\.\d+)?(?![\w]|[.,]\d)"),
    Language.FR: re.compile(r"(?<![\w.,])-?\d+(?:,\d+)?(?![\w]|[.,]\d)"),
}
_DEFAULT_DIGITS_PATTERN = re.compile(r"(?<![\w.,])-?\d+(?:\.\d+)?(?![\w]|[.,]\d)")

_ORDINAL_SUFFIXES = {
    Language.EN: re.compile(r"\b(\d+)(?:st|nd|rd|th)\b", re.IGNORECASE),
    Language.FR: re.compile(r"\b(\d+)(?:er|re|ère|e|ème|eme|ième)\b", re.IGNORECASE),
}

_PERCENT_SUFFIX = re.compile(r"\s*(?:%|percent\b|per\s+cent\b|pour\s*cent\b)", re.IGNORECASE)

_TEMPERATURE_SUFFIX = re.compile(
    r"\s*(?:°|degrees?\b|degrés?\b)\s*(?P<unit>celsius\b|fahrenheit\b|c\b|f\b)?",
    re.IGNORECASE,
)

_CURRENCY_UNITS = {
    "$": "$", "dollar": "$", "dollars": "$", "usd": "$",
    "€": "€", "euro": "€", "euros": "€", "eur": "€",
    "£": "£", "pound": "£", "pounds": "£", "livre": "£", "livres": "£",
}
_CURRENCY_SUFFIX = re.compile(
    r"\s*(?P<unit>\$|€|£|dollars?\b|euros?\b|pounds?\b|livres?\b|usd\b|eur\b)",
    re.IGNORECASE,
)
_CURRENCY_PREFIX = re.compile(r"(?P<unit>[$€£])\s*$")
_APPROXIMATE_PREFIX = re.compile(
    r"(?:about|around|approximately|roughly|environ|à peu près)\s+$",
    re.IGNORECASE,
)

_DURATION_UNITS = {
    "second": "seconds", "seconds": "seconds", "sec": "seconds", "secs": "seconds",
    "seconde": "seconds", "secondes": "seconds",
    "minute": "minutes", "minutes": "minutes", "min": "minutes", "mins": "minutes",
    "hour": "hours", "hours": "hours", "h": "hours", "heure": "hours", "heures": "hours",
    "day": "days", "days": "days", "jour": "days", "jours": "days",
    "week": "weeks", "weeks": "weeks", "semaine": "weeks", "semaines": "weeks",
    "month": "months", "months": "months", "mois": "months",
    "quarter": "quarters", "quarters": "quarters", "trimestre": "quarters", "trimestres": "quarters",
    "year": "years", "years": "years", "an": "years", "ans": "years",
    "année": "years", "années": "years",
}
_DURATION_SUFFIX = re.compile(
    r"\s*(?P<unit>" + "|".join(sorted(map(re.escape, _DURATION_UNITS), key=len, reverse=True)) + r")\b",
    re.IGNORECASE,
)
_DURATION_ARTICLES = {
    Language.EN: re.compile(r"\b(?:an?|one)\b", re.IGNORECASE),
    Language.FR: re.compile(r"\b(?:une?)\b", re.IGNORECASE),
}

# Décomposition d'une valeur fractionnaire dans l'unité inférieure
_SMALLER_UNIT = {
    "years": ("months", 12),
    "months": ("days", 30),
    "weeks": ("days", 7),
    "days": ("hours", 24),
    "hours": ("minutes", 60),
    "minutes": ("seconds", 60),
}

_DAY_WORDS = {
    Language.EN: {"today": 0, "tomorrow": 1, "yesterday": -1},
    Language.FR: {"aujourd'hui": 0, "demain": 1, "après-demain": 2, "hier": -1},
}
_DAY_PATTERNS = {
    language: re.compile(
        r"(?<![\w-])(?P<word>"
        + "|".join(sorted(map(re.escape, words), key=len, reverse=True))
        + r")(?![\w-])",
        re.IGNORECASE,
    )
    for language, words in _DAY_WORDS.items()
}
_ISO_DATE = re.compile(r"(?<![\d-])(?P<year>\d{4})-(?P<month>\d{2})-(?P<day>\d{2})(?![\d-])")

_CLOCK_PATTERNS = {
    Language.EN: re.compile(
        r"(?:\bat\s+)?(?<![\d:])(?P<hour>\d{1,2})(?::(?P<minute>\d{2}))?\s*(?P<meridiem>[ap]\.?m\b\.?)"
        r"|(?:\bat\s+)?(?<![\d:])(?P<hour24>\d{1,2}):(?P<minute24>\d{2})(?![\d:])",
        re.IGNORECASE,
    ),
    Language.FR: re.compile(
        r"(?:\bà\s+)?(?<![\d:])(?P<hour>\d{1,2})\s?h(?P<minute>\d{2})?(?!\w)"
        r"|(?:\bà\s+)?(?<![\d:])(?P<hour24>\d{1,2}):(?P<minute24>\d{2})(?![\d:])",
        re.IGNORECASE,
    ),
}
_INTERVAL_PREFIXES = {
    Language.EN: re.compile(r"\b(?:from|between)\s+$", re.IGNORECASE),
    Language.FR: re.compile(r"\b(?:de|entre)\s+$", re.IGNORECASE),
}
_INTERVAL_GAPS = {
    Language.EN: re.compile(r"\s*(?:to|and|until|-)\s*", re.IGNORECASE),
    Language.FR: re.compile(r"\s*(?:et|jusqu'à|-)?\s*", re.IGNORECASE),
}
# Jour puis heure ("tomorrow at 7am"), ou heure puis jour ("at 7am tomorrow")
_DAY_THEN_CLOCK_GAP = re.compile(r"\s*,?\s*")
_CLOCK_THEN_DAY_GAP = re.compile(r"\s+")

# Ordre de préférence à longueur égale
_KIND_PRIORITY = {
    BuiltinEntityKind.AMOUNT_OF_MONEY: 0,
    BuiltinEntityKind.TEMPERATURE: 1,
    BuiltinEntityKind.PERCENTAGE: 2,
    BuiltinEntityKind.DURATION: 3,
    BuiltinEntityKind.DATETIME: 4,
    BuiltinEntityKind.ORDINAL: 5,
    BuiltinEntityKind.NUMBER: 6,
}

_WORD = re.compile(r"[^\W\d_]+", re.UNICODE)
_WORD_GAP = re.compile(r"[\s-]*")


class BuiltinEntityParserMetadata(BaseModel):
    """Métadonnées persistées de l'extracteur builtin."""
    language_code: Language = Field(..., description="Langue de l'extracteur")


class BuiltinEntityParser:
    """Extracteur d'entités builtin basé sur des règles."""

    def __init__(self, language: Language, reference_time: Optional[datetime] = None):
        self.language = language
        # Instant servant à résoudre les dates relatives (maintenant si None)
        self.reference_time = reference_time
        self._words = LANGUAGE_WORDS.get(language)
        self._digits = _DIGITS_PATTERNS.get(language, _DEFAULT_DIGITS_PATTERN)

        logger.debug(
            f"Extracteur builtin initialisé ({language.value})",
            language=language.value,
            number_words=self._words is not None
        )

    @classmethod
    def from_path(cls, path: Path) -> "BuiltinEntityParser":
        """
        Charge l'extracteur depuis son répertoire persisté.

        Args:
            path: Répertoire contenant metadata.json

        Returns:
            Extracteur initialisé
        """
        metadata = read_model(Path(path) / "metadata.json", BuiltinEntityParserMetadata)
        return cls(metadata.language_code)

    @property
    def supported_kinds(self) -> List[BuiltinEntityKind]:
        return list(BuiltinEntityKind)

    def extract_entities(
        self,
        text: str,
        scope: Optional[Iterable[BuiltinEntityKind]] = None
    ) -> List[BuiltinEntity]:
        """
        Extrait les entités builtin du texte.

        Les entités retournées ne se chevauchent pas: à chevauchement, la plus
        longue l'emporte. Elles sont triées par position.

        Args:
            text: Texte à analyser
            scope: Types à extraire (None pour tous, vide pour aucun)

        Returns:
            Entités extraites

        Raises:
            EntityExtractionError: Si le texte ne peut pas être analysé
        """
        if not isinstance(text, str):
            raise EntityExtractionError(
                f"Texte invalide pour l'extraction builtin: {type(text).__name__}",
                "ENTITY_002"
            )

        kinds = set(BuiltinEntityKind) if scope is None else set(scope)
        if not kinds:
            return []

        numbers = self._find_numbers(text)
        candidates: List[BuiltinEntity] = []

        if BuiltinEntityKind.NUMBER in kinds:
            candidates.extend(
                self._build(text, span, BuiltinEntityKind.NUMBER, NumberValue(value=value))
                for span, value in numbers
            )
        if BuiltinEntityKind.ORDINAL in kinds:
            candidates.extend(self._find_ordinals(text))
        if BuiltinEntityKind.PERCENTAGE in kinds:
            candidates.extend(self._find_percentages(text, numbers))
        if BuiltinEntityKind.TEMPERATURE in kinds:
            candidates.extend(self._find_temperatures(text, numbers))
        if BuiltinEntityKind.AMOUNT_OF_MONEY in kinds:
            candidates.extend(self._find_amounts(text, numbers))
        if BuiltinEntityKind.DURATION in kinds:
            candidates.extend(self._find_durations(text, numbers))
        if BuiltinEntityKind.DATETIME in kinds:
            candidates.extend(self._find_datetimes(text))

        entities = _remove_overlaps(candidates)

        logger.debug(
            f"{len(entities)} entité(s) builtin extraite(s)",
            kinds=sorted(kind.value for kind in kinds),
            entities=[entity.value for entity in entities]
        )
        return entities

    @staticmethod
    def _build(text: str, span: CharRange, kind: BuiltinEntityKind, value) -> BuiltinEntity:
        return BuiltinEntity(
            value=text[span.start:span.end],
            range=span,
            entity=value,
            entity_kind=kind
        )

    # Nombres

    def _find_numbers(self, text: str) -> List[Tuple[CharRange, float]]:
        """Nombres en chiffres et en toutes lettres, triés par position."""
        numbers = []
        for match in self._digits.finditer(text):
            raw = match.group(0)
            if self.language == Language.FR:
                raw = raw.replace(",", ".")
            else:
                raw = raw.replace(",", "")
            numbers.append((CharRange(match.start(), match.end()), float(raw)))

        if self._words is not None:
            numbers.extend(self._find_number_words(text))

        numbers.sort(key=lambda item: item[0].start)
        return numbers

    def _find_number_words(self, text: str) -> List[Tuple[CharRange, float]]:
        words = self._words
        tokens = [
            (match.group(0).lower(), CharRange(match.start(), match.end()))
            for match in _WORD.finditer(text)
        ]
        results = []
        index = 0

        while index < len(tokens):
            if not self._is_number_word(tokens[index][0]):
                index += 1
                continue

            run = [tokens[index][0]]
            start = tokens[index][1].start
            end = tokens[index][1].end
            cursor = index + 1

            while cursor < len(tokens):
                word, span = tokens[cursor]
                next_cursor = cursor
                # Connecteur ("and", "et") seulement entre deux nombres
                if word in words.connectors and cursor + 1 < len(tokens):
                    next_cursor = cursor + 1
                    word, span = tokens[next_cursor]
                    gap = text[tokens[cursor][1].end:span.start]
                    if not _WORD_GAP.fullmatch(gap):
                        break
                gap = text[end:tokens[cursor][1].start]
                if not _WORD_GAP.fullmatch(gap) or not self._can_follow(run, word):
                    break
                run.append(word)
                end = span.end
                cursor = next_cursor + 1

            results.append((CharRange(start, end), float(self._words_value(run))))
            index = cursor

        return results

    def _is_number_word(self, word: str) -> bool:
        return word in self._words.values or word in self._words.scales

    def _can_follow(self, run: List[str], word: str) -> bool:
        """Vérifie qu'un mot prolonge la séquence numérique en cours."""
        words = self._words
        if word in words.scales:
            return True
        if word not in words.values:
            return False

        previous = run[-1]
        if previous in words.scales:
            return True

        value = words.values[word]
        previous_value = words.values[previous]

        if word in words.multiplicative_tens and 1 < previous_value < 10:
            return True
        if previous_value < 10:
            return False
        if previous_value < 20:
            # "soixante-dix-sept", "quatre-vingt-dix-neuf"
            return previous_value == 10 and value < 10 and len(run) > 1
        if previous_value % 10 == 0:
            return value < 20
        return False

    def _words_value(self, run: List[str]) -> int:
        words = self._words
        total = 0
        current = 0

        for word in run:
            if word in words.scales:
                scale = words.scales[word]
                if scale == 100:
                    current = (current or 1) * scale
                else:
                    total += (current or 1) * scale
                    current = 0
            elif word in words.multiplicative_tens and 1 < current < 10:
                current *= words.values[word]
            else:
                current += words.values[word]

        return total + current

    # Types composés

    def _find_ordinals(self, text: str) -> List[BuiltinEntity]:
        ordinals = []
        suffix_pattern = _ORDINAL_SUFFIXES.get(self.language)
        if suffix_pattern is not None:
            for match in suffix_pattern.finditer(text):
                ordinals.append(self._build(
                    text,
                    CharRange(match.start(), match.end()),
                    BuiltinEntityKind.ORDINAL,
                    OrdinalValue(value=int(match.group(1)))
                ))

        if self._words is not None:
            for match in _WORD.finditer(text):
                value = self._words.ordinals.get(match.group(0).lower())
                if value is not None:
                    ordinals.append(self._build(
                        text,
                        CharRange(match.start(), match.end()),
                        BuiltinEntityKind.ORDINAL,
                        OrdinalValue(value=value)
                    ))
        return ordinals

    def _find_percentages(self, text: str, numbers) -> List[BuiltinEntity]:
        percentages = []
        for span, value in numbers:
            match = _PERCENT_SUFFIX.match(text, span.end)
            if match:
                percentages.append(self._build(
                    text,
                    CharRange(span.start, match.end()),
                    BuiltinEntityKind.PERCENTAGE,
                    PercentageValue(value=value)
                ))
        return percentages

    def _find_temperatures(self, text: str, numbers) -> List[BuiltinEntity]:
        temperatures = []
        for span, value in numbers:
            match = _TEMPERATURE_SUFFIX.match(text, span.end)
            if not match:
                continue
            unit = (match.group("unit") or "").lower()
            if unit in ("c", "celsius"):
                unit = "celsius"
            elif unit in ("f", "fahrenheit"):
                unit = "fahrenheit"
            else:
                unit = "degree"
            temperatures.append(self._build(
                text,
                CharRange(span.start, match.end()),
                BuiltinEntityKind.TEMPERATURE,
                TemperatureValue(value=value, unit=unit)
            ))
        return temperatures

    def _find_amounts(self, text: str, numbers) -> List[BuiltinEntity]:
        amounts = []
        for span, value in numbers:
            start, end, unit = span.start, None, None

            suffix = _CURRENCY_SUFFIX.match(text, span.end)
            prefix = _CURRENCY_PREFIX.search(text, 0, span.start)
            if suffix:
                end = suffix.end()
                unit = _CURRENCY_UNITS[suffix.group("unit").lower()]
            elif prefix:
                start = prefix.start()
                end = span.end
                unit = prefix.group("unit")
            else:
                continue

            precision = Precision.EXACT
            approximate = _APPROXIMATE_PREFIX.search(text, 0, start)
            if approximate:
                start = approximate.start()
                precision = Precision.APPROXIMATE

            amounts.append(self._build(
                text,
                CharRange(start, end),
                BuiltinEntityKind.AMOUNT_OF_MONEY,
                AmountOfMoneyValue(value=value, precision=precision, unit=unit)
            ))
        return amounts

    def _find_durations(self, text: str, numbers) -> List[BuiltinEntity]:
        quantities = list(numbers)
        article_pattern = _DURATION_ARTICLES.get(self.language)
        if article_pattern is not None:
            quantities.extend(
                (CharRange(match.start(), match.end()), 1.0)
                for match in article_pattern.finditer(text)
            )

        durations = []
        for span, value in quantities:
            match = _DURATION_SUFFIX.match(text, span.end)
            if not match:
                continue
            unit = _DURATION_UNITS[match.group("unit").lower()]
            durations.append(self._build(
                text,
                CharRange(span.start, match.end()),
                BuiltinEntityKind.DURATION,
                _duration_value(unit, value)
            ))
        return durations

    # Dates

    def _reference(self) -> datetime:
        if self.reference_time is not None:
            return self.reference_time
        return datetime.now().astimezone()

    def _find_datetimes(self, text: str) -> List[BuiltinEntity]:
        """
        Dates et heures résolues par rapport à l'instant de référence.

        Une heure seule désigne sa prochaine occurrence ; une heure accolée à
        un jour est combinée avec lui.
        """
        reference = self._reference()
        days = self._find_days(text, reference.date())
        clocks = self._find_clocks(text)
        datetimes: List[BuiltinEntity] = []

        interval_prefix = _INTERVAL_PREFIXES.get(self.language)
        interval_gap = _INTERVAL_GAPS.get(self.language)
        paired = set()
        if interval_prefix is not None:
            for index, ((first_span, first_time, _), (second_span, second_time, _)) in enumerate(
                zip(clocks, clocks[1:])
            ):
                if index in paired:
                    continue
                prefix = interval_prefix.search(text, 0, first_span.start)
                if not prefix or not interval_gap.fullmatch(text, first_span.end, second_span.start):
                    continue
                start = _combine(reference.date(), first_time, reference)
                end = _combine(reference.date(), second_time, reference)
                if end <= start:
                    end += timedelta(days=1)
                datetimes.append(self._build(
                    text,
                    CharRange(prefix.start(), second_span.end),
                    BuiltinEntityKind.DATETIME,
                    TimeIntervalValue(from_=start.isoformat(), to=end.isoformat())
                ))
                paired.update((index, index + 1))

        used_days = set()
        for index, (span, clock, grain) in enumerate(clocks):
            if index in paired:
                continue
            day_index = _adjacent_day(text, span, days)
            if day_index is not None:
                day_span, day = days[day_index]
                used_days.add(day_index)
                span = CharRange(min(span.start, day_span.start), max(span.end, day_span.end))
                instant = _combine(day, clock, reference)
            else:
                instant = _combine(reference.date(), clock, reference)
                if instant < reference:
                    instant += timedelta(days=1)
            datetimes.append(self._build(
                text,
                span,
                BuiltinEntityKind.DATETIME,
                InstantTimeValue(value=instant.isoformat(), grain=grain)
            ))

        for index, (span, day) in enumerate(days):
            if index in used_days:
                continue
            datetimes.append(self._build(
                text,
                span,
                BuiltinEntityKind.DATETIME,
                InstantTimeValue(value=_combine(day, time(0), reference).isoformat(), grain=Grain.DAY)
            ))
        return datetimes

    def _find_days(self, text: str, today: date) -> List[Tuple[CharRange, date]]:
        days = []
        for match in _ISO_DATE.finditer(text):
            try:
                day = date(int(match.group("year")), int(match.group("month")), int(match.group("day")))
            except ValueError:
                continue
            days.append((CharRange(match.start(), match.end()), day))

        day_pattern = _DAY_PATTERNS.get(self.language)
        if day_pattern is not None:
            offsets = _DAY_WORDS[self.language]
            for match in day_pattern.finditer(text):
                offset = offsets[match.group("word").lower()]
                days.append((CharRange(match.start(), match.end()), today + timedelta(days=offset)))

        days.sort(key=lambda item: item[0].start)
        return days

    def _find_clocks(self, text: str) -> List[Tuple[CharRange, time, Grain]]:
        pattern = _CLOCK_PATTERNS.get(self.language)
        if pattern is None:
            return []

        clocks = []
        for match in pattern.finditer(text):
            if match.group("hour") is not None:
                hour, minute = int(match.group("hour")), match.group("minute")
                meridiem = match.groupdict().get("meridiem")
            else:
                hour, minute = int(match.group("hour24")), match.group("minute24")
                meridiem = None

            if meridiem:
                if not 1 <= hour <= 12:
                    continue
                hour = hour % 12 + (12 if meridiem.lower().startswith("p") else 0)
            if hour > 23 or (minute is not None and int(minute) > 59):
                continue

            grain = Grain.MINUTE if minute is not None else Grain.HOUR
            clocks.append((
                CharRange(match.start(), match.end()),
                time(hour, int(minute or 0)),
                grain
            ))
        return clocks


def _duration_value(unit: str, value: float) -> DurationValue:
    """Construit une durée, en reportant la partie fractionnaire sur l'unité inférieure."""
    whole = int(value)
    fields = {unit: whole}
    fraction = value - whole
    if fraction and unit in _SMALLER_UNIT:
        smaller, factor = _SMALLER_UNIT[unit]
        fields[smaller] = fields.get(smaller, 0) + round(fraction * factor)
    return DurationValue(**fields)


def _combine(day: date, clock: time, reference: datetime) -> datetime:
    return datetime.combine(day, clock, tzinfo=reference.tzinfo)


def _adjacent_day(text: str, span: CharRange, days: List[Tuple[CharRange, date]]) -> Optional[int]:
    """Indice du jour accolé à une heure, avant ou après elle."""
    for index, (day_span, _) in enumerate(days):
        if day_span.end <= span.start and _DAY_THEN_CLOCK_GAP.fullmatch(text, day_span.end, span.start):
            return index
        if span.end <= day_span.start and _CLOCK_THEN_DAY_GAP.fullmatch(text, span.end, day_span.start):
            return index
    return None


def _remove_overlaps(candidates: List[BuiltinEntity]) -> List[BuiltinEntity]:
    """Garde les entités les plus longues sans chevauchement, triées par position."""
    ordered = sorted(
        candidates,
        key=lambda e: (-e.range.length, e.range.start, _KIND_PRIORITY[e.entity_kind])
    )
    selected: List[BuiltinEntity] = []
    for candidate in ordered:
        if not any(candidate.range.overlaps(kept.range) for kept in selected):
            selected.append(candidate)
    return sorted(selected, key=lambda e: e.range.start)
