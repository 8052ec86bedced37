"""Domain primitives that enforce validity at creation time."""

import re
from dataclasses import dataclass
from datetime import datetime
from typing import Self
from uuid import UUID


@dataclass(frozen=True)
class EventId:
    """Unique identifier for an Event."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class RegistrationId:
    """Unique identifier for a Registration, assigned by the server."""

    value: UUID

    @classmethod
    def from_string(cls, value: str) -> Self:
        return cls(value=UUID(value))

    def __str__(self) -> str:
        return str(self.value)


@dataclass(frozen=True)
class Money:
    """Whole-unit amount in the platform's single currency."""

    amount: int

    def __post_init__(self) -> None:
        if self.amount < 0:
            raise ValueError("Money amount cannot be negative")

    def __add__(self, other: "Money") -> "Money":
        return Money(self.amount + other.amount)

    def __str__(self) -> str:
        return str(self.amount)


ZERO = Money(0)

_DIGITS = re.compile(r"[0-9]+")


@dataclass(frozen=True)
class EarlyBirdWindow:
    """Discount window, inclusive at both ends."""

    starts_at: datetime
    ends_at: datetime

    def __post_init__(self) -> None:
        if self.ends_at < self.starts_at:
            raise ValueError("Early bird window ends before it starts")

    def contains(self, moment: datetime) -> bool:
        return self.starts_at <= moment <= self.ends_at


@dataclass(frozen=True)
class VanityConfig:
    """Per-event vanity bib number feature."""

    enabled: bool = False
    premium: Money = ZERO


@dataclass(frozen=True)
class VanityNumber:
    """A bib number requested verbatim by the participant. Digits only."""

    value: str

    def __post_init__(self) -> None:
        if not _DIGITS.fullmatch(self.value or ""):
            raise ValueError("Vanity number must contain only digits")

    def __str__(self) -> str:
        return self.value
