# tests/fixtures/records.py
"""Record types shared across the test suite.

Usage:
    from tests.fixtures.records import Color, Measurement, ScenarioRecord
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta, timezone
from decimal import Decimal
from enum import Enum, Flag, IntEnum
from typing import Annotated
from uuid import UUID

from pydantic import BaseModel

from tablemap.contracts.enums import ValueType
from tablemap.contracts.types import Version
from tablemap.mapping.columns import COLUMN_METADATA_KEY, column, table


class Color(Enum):
    RED = 0
    GREEN = 1
    BLUE = 2


class Size(Enum):
    """No member has the value 0."""

    SMALL = "s"
    MEDIUM = "m"
    LARGE = "l"


class Permission(Flag):
    READ = 1
    WRITE = 2
    EXECUTE = 4


class Priority(IntEnum):
    LOW = 1
    HIGH = 2


@dataclass
class ScenarioRecord:
    Int: Annotated[int, column(order=0)] = 0
    Str: Annotated[str | None, column(order=1)] = None
    Bool: Annotated[bool | None, column(order=2)] = None


@table("MeasurementTable")
@dataclass
class Measurement:
    """One of every supported scalar kind, plus fields that must be skipped."""

    id: Annotated[int, column(order=0, frozen=True)] = 0
    name: str = ""
    code: str | None = None
    ratio: float = 0.0
    amount: Decimal = Decimal(0)
    active: bool = False
    flag: bool | None = None
    taken: datetime = datetime(2000, 1, 1)
    day: date = date(2000, 1, 1)
    span: timedelta = timedelta(0)
    uid: UUID = UUID(int=0)
    version: Version | None = None
    color: Color = Color.RED
    stamp: Annotated[datetime, column(value_type=ValueType.DATE_OFFSET)] = datetime(2000, 1, 1, tzinfo=timezone.utc)
    tags: list[str] = field(default_factory=list)
    _cache: str = ""
    hidden_note: str = field(default="", metadata={COLUMN_METADATA_KEY: column(ignore=True)})


@dataclass
class RequiredFields:
    """Dataclass whose fields have no defaults."""

    name: str
    count: int
    when: datetime | None


@dataclass
class Labeled:
    value: Annotated[float, column(key="ValueKey", header="Value (kg)", order=0, format="F2,1")]
    units: Annotated[str, column(header="Units", order=1)] = "kg"
    weight: Annotated[float, column(header="Weight", format="N1,-1")] = 0.0
    label: Annotated[str, column(header="Label", translate_data=True)] = ""
    ok: Annotated[bool, column(header="OK", translate_data=True)] = False
    color: Annotated[Color, column(header="Colour", translate_data=True)] = Color.RED


@dataclass
class Unmappable:
    items: list[int] = field(default_factory=list)
    _private: int = 0


@dataclass(frozen=True)
class FrozenRecord:
    name: str = ""


@dataclass
class Other:
    """Second page type for multi-page streams."""

    code: str = ""
    total: int = 0


class Person(BaseModel):
    name: str = ""
    age: int = 0
    email: str | None = None
    nickname: Annotated[str, column(header="Nick", order=0)] = ""


class Account(BaseModel):
    """Pydantic model with required fields."""

    owner: str
    balance: Decimal
    opened: date | None = None


class FrozenModel(BaseModel):
    model_config = {"frozen": True}

    name: str = ""
