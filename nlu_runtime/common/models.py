"""
Modèles de données Pydantic pour le moteur NLU.

Définit les structures de données principales utilisées dans tout le système:
métadonnées du modèle, slots internes et résolus, résultats de parsing.
Toutes les structures sont immuables une fois construites.
"""

from enum import Enum
from typing import Annotated, Dict, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator

from .errors import UnknownEntityIdentifierError


class CharRange(NamedTuple):
    """Intervalle de caractères semi-ouvert [start, end)."""
    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start

    def overlaps(self, other: "CharRange") -> bool:
        """Indique si deux intervalles se chevauchent."""
        return self.start < other.end and other.start < self.end


class Language(str, Enum):
    """Langues supportées."""
    DE = "de"
    EN = "en"
    ES = "es"
    FR = "fr"
    IT = "it"
    JA = "ja"
    KO = "ko"
    PT_BR = "pt_br"
    PT_PT = "pt_pt"

    @classmethod
    def from_code(cls, code: str) -> "Language":
        """Retourne la langue correspondant à un code ('en', 'FR', ...)."""
        return cls(code.strip().lower())


class BuiltinEntityKind(str, Enum):
    """Types d'entités builtin reconnus."""
    AMOUNT_OF_MONEY = "snips/amountOfMoney"
    DATETIME = "snips/datetime"
    DURATION = "snips/duration"
    NUMBER = "snips/number"
    ORDINAL = "snips/ordinal"
    PERCENTAGE = "snips/percentage"
    TEMPERATURE = "snips/temperature"

    @property
    def identifier(self) -> str:
        return self.value

    @classmethod
    def from_identifier(cls, identifier: str) -> "BuiltinEntityKind":
        """
        Résout un identifiant d'entité en type builtin.

        Raises:
            UnknownEntityIdentifierError: Si l'identifiant n'est pas builtin
        """
        try:
            return cls(identifier)
        except ValueError:
            raise UnknownEntityIdentifierError(identifier) from None


def is_builtin_entity(identifier: str) -> bool:
    """True si l'identifiant désigne une entité builtin connue."""
    return identifier in _BUILTIN_IDENTIFIERS


_BUILTIN_IDENTIFIERS = frozenset(kind.value for kind in BuiltinEntityKind)


class _Frozen(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True, protected_namespaces=())


# Valeurs de slots (union étiquetée sur "kind")

class Precision(str, Enum):
    """Précision d'une valeur builtin."""
    APPROXIMATE = "Approximate"
    EXACT = "Exact"


class Grain(str, Enum):
    """Granularité d'une date."""
    YEAR = "Year"
    QUARTER = "Quarter"
    MONTH = "Month"
    WEEK = "Week"
    DAY = "Day"
    HOUR = "Hour"
    MINUTE = "Minute"
    SECOND = "Second"


class CustomValue(_Frozen):
    kind: Literal["Custom"] = "Custom"
    value: str


class NumberValue(_Frozen):
    kind: Literal["Number"] = "Number"
    value: float


class OrdinalValue(_Frozen):
    kind: Literal["Ordinal"] = "Ordinal"
    value: int


class PercentageValue(_Frozen):
    kind: Literal["Percentage"] = "Percentage"
    value: float


class TemperatureValue(_Frozen):
    kind: Literal["Temperature"] = "Temperature"
    value: float
    unit: Optional[str] = None


class AmountOfMoneyValue(_Frozen):
    kind: Literal["AmountOfMoney"] = "AmountOfMoney"
    value: float
    precision: Precision = Precision.EXACT
    unit: Optional[str] = None


class DurationValue(_Frozen):
    kind: Literal["Duration"] = "Duration"
    years: int = 0
    quarters: int = 0
    months: int = 0
    weeks: int = 0
    days: int = 0
    hours: int = 0
    minutes: int = 0
    seconds: int = 0
    precision: Precision = Precision.EXACT


class InstantTimeValue(_Frozen):
    """Instant résolu, au format ISO 8601."""
    kind: Literal["InstantTime"] = "InstantTime"
    value: str
    grain: Grain
    precision: Precision = Precision.EXACT


class TimeIntervalValue(_Frozen):
    """Intervalle de temps, bornes ISO 8601 optionnelles."""
    kind: Literal["TimeInterval"] = "TimeInterval"
    from_: Optional[str] = Field(None, alias="from")
    to: Optional[str] = None


SlotValue = Annotated[
    Union[
        CustomValue,
        NumberValue,
        OrdinalValue,
        PercentageValue,
        TemperatureValue,
        AmountOfMoneyValue,
        DurationValue,
        InstantTimeValue,
        TimeIntervalValue,
    ],
    Field(discriminator="kind"),
]


# Métadonnées du modèle

class Entity(_Frozen):
    """Définition d'une entité custom."""
    automatically_extensible: bool = Field(..., description="Valeurs hors gazetteer acceptées")


class DatasetMetadata(_Frozen):
    """Description du dataset d'entraînement."""
    language_code: Language = Field(..., description="Langue du modèle")
    entities: Dict[str, Entity] = Field(default_factory=dict, description="Entités custom")
    slot_name_mappings: Dict[str, Dict[str, str]] = Field(
        default_factory=dict, description="intention -> slot -> entité"
    )

    @property
    def language(self) -> Language:
        return self.language_code

    def is_custom_entity(self, entity_name: str) -> bool:
        return entity_name in self.entities


class NLUEngineModel(_Frozen):
    """Contenu du descripteur nlu_engine.json."""
    model_version: str
    dataset_metadata: DatasetMetadata
    intent_parsers: List[str] = Field(default_factory=list, description="Parseurs, par ordre de priorité")
    builtin_entity_parser: str = "builtin_entity_parser"
    custom_entity_parser: str = "custom_entity_parser"
    unit_name: str = "nlu_engine"
    training_package_version: Optional[str] = None


class ProcessingUnitMetadata(_Frozen):
    """Métadonnées persistées d'une unité de traitement."""
    unit_name: str = Field(..., description="Discriminant du type de parseur")


# Entités extraites

class BuiltinEntity(_Frozen):
    """Entité builtin extraite du texte."""
    value: str = Field(..., description="Texte brut")
    range: CharRange
    entity: SlotValue
    entity_kind: BuiltinEntityKind


class CustomEntity(_Frozen):
    """Entité custom extraite du texte."""
    value: str = Field(..., description="Texte brut")
    resolved_value: str
    range: CharRange
    entity_identifier: str


# Résultats de parsing

class InternalSlot(_Frozen):
    """Slot non résolu produit par un parseur d'intentions."""
    value: str = Field(..., description="Texte couvert par le slot")
    char_range: CharRange
    entity: str
    slot_name: str


class IntentClassifierResult(_Frozen):
    """Intention sélectionnée par un parseur."""
    intent_name: str = Field(..., alias="intentName")
    probability: float = Field(1.0, ge=0.0, le=1.0)


class InternalParsingResult(_Frozen):
    """Sortie brute d'un parseur: intention et slots non résolus."""
    intent: IntentClassifierResult
    slots: List[InternalSlot] = Field(default_factory=list)


class Slot(_Frozen):
    """Slot résolu et typé."""
    raw_value: str = Field(..., alias="rawValue")
    value: SlotValue
    range: Optional[CharRange] = None
    entity: str
    slot_name: str = Field(..., alias="slotName")


class ParseResult(_Frozen):
    """Résultat final d'un appel à parse."""
    input: str
    intent: Optional[IntentClassifierResult] = None
    slots: Optional[List[Slot]] = None

    @model_validator(mode="after")
    def _check_consistency(self) -> "ParseResult":
        if (self.intent is None) != (self.slots is None):
            raise ValueError("intent et slots doivent être tous deux présents ou absents")
        return self

    @classmethod
    def empty(cls, text: str) -> "ParseResult":
        """Résultat "aucune intention reconnue"."""
        return cls(input=text, intent=None, slots=None)

    @property
    def matched(self) -> bool:
        return self.intent is not None

    @property
    def intent_name(self) -> Optional[str]:
        return self.intent.intent_name if self.intent else None

    def to_dict(self) -> dict:
        """Forme sérialisée (clés camelCase)."""
        return self.model_dump(mode="json", by_alias=True)

    def to_json(self, indent: Optional[int] = None) -> str:
        return self.model_dump_json(by_alias=True, indent=indent)
