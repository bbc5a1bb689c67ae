# src/drawflow/contracts/draw.py
"""Draw domain records.

HuntCode and Applicant are frozen dataclasses: the allocation engine
produces new instances with dataclasses.replace() rather than mutating.
DrawSort and DrawConfig are user-authored configuration and are validated
with pydantic at the boundary where they are loaded.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from pydantic import BaseModel, Field, field_validator

from drawflow.contracts.enums import (
    ApplicantDrawOutcome,
    ApplicantResidency,
    DrawSortDirection,
    DrawSortField,
    QuotaRule,
)

DRAW_RUN_NUM_CHOICES = 4


@dataclass(frozen=True, slots=True)
class NonResidentPool:
    """Non-resident sub-pool of a hunt code.

    total_quota and quota_balance are derived per draw from cap_percent and
    are only meaningful when the non-resident cap is enforced.
    """

    has_hard_cap: bool = False
    cap_percent: float | None = None
    total_quota: int | None = None
    quota_balance: int | None = None
    quota_awarded_in_this_draw: int = 0
    total_quota_awarded: int = 0


@dataclass(frozen=True, slots=True)
class ResidentPool:
    quota_awarded_in_this_draw: int = 0
    total_quota_awarded: int = 0


@dataclass(frozen=True, slots=True)
class WpResPool:
    """Reserved resident sub-pool, enabled per code by is_alloc_enabled."""

    is_alloc_enabled: bool = False
    cap_percent: float | None = None
    total_quota: int | None = None
    quota_balance: int | None = None


@dataclass(frozen=True, slots=True)
class HuntCode:
    """A quota-bearing code applicants can choose."""

    hunt_code: str
    is_valid: bool
    is_in_draw: bool
    total_quota: int | None = None
    total_quota_in_this_draw: int | None = None
    previous_quota_balance: int | None = None
    quota_balance: int | None = None
    quota_balance_in_this_draw: int | None = None
    total_quota_awarded: int = 0
    quota_awarded_in_this_draw: int = 0
    non_resident: NonResidentPool = field(default_factory=NonResidentPool)
    resident: ResidentPool = field(default_factory=ResidentPool)
    wp_res: WpResPool = field(default_factory=WpResPool)


@dataclass(frozen=True, slots=True)
class Applicant:
    """An application with up to DRAW_RUN_NUM_CHOICES ranked choices."""

    application_number: int
    age: int
    residency: ApplicantResidency
    point_balance: float = 0
    choices: tuple[str, ...] = ()
    draw_outcome: ApplicantDrawOutcome | None = None
    choice_ordinal_awarded: int | None = None
    choice_awarded: str | None = None


class DrawSortRule(BaseModel):
    model_config = {"frozen": True}

    field: DrawSortField
    direction: DrawSortDirection = DrawSortDirection.ASC


class DrawSort(BaseModel):
    """Named composite ordering applied to applicants within a bucket."""

    model_config = {"frozen": True}

    id: str
    name: str
    rules: tuple[DrawSortRule, ...] = ()


class DrawConfig(BaseModel):
    """Draw settings attached to a draw node.

    applicants, when non-empty, restricts the draw to those application
    numbers (stored as text).
    """

    model_config = {"frozen": True}

    id: str
    name: str
    use_points: bool = False
    sort_id: str | None = None
    quota_rule_flags: tuple[QuotaRule, ...] = ()
    applicants: tuple[str, ...] = Field(default=())

    @field_validator("quota_rule_flags")
    @classmethod
    def _unique_flags(cls, v: tuple[QuotaRule, ...]) -> tuple[QuotaRule, ...]:
        if len(set(v)) != len(v):
            raise ValueError("quota_rule_flags must be unique")
        return v

    @field_validator("applicants", mode="before")
    @classmethod
    def _canonical_numbers(cls, v: Any) -> Any:
        # " 12", "012" and 12 all name applicant 12.
        if not isinstance(v, (list, tuple)):
            return v
        normalized = []
        for entry in v:
            text = str(entry).strip()
            if not text.isdigit():
                raise ValueError(f"applicants must be application numbers, got {entry!r}")
            normalized.append(str(int(text)))
        return tuple(normalized)

    def has_rule(self, rule: QuotaRule) -> bool:
        return rule in self.quota_rule_flags


@dataclass(frozen=True, slots=True)
class DrawBucket:
    """Applicants whose choice at one ordinal is the same hunt code."""

    hunt_code: str
    choice_ordinal: int
    applicants: list[Applicant] = field(default_factory=list)


@dataclass(frozen=True, slots=True)
class QuotaDelta:
    """Award counts produced by processing a single bucket."""

    residents: int = 0
    non_residents: int = 0
    wp_res: int = 0

    @property
    def total(self) -> int:
        return self.residents + self.non_residents


@dataclass(frozen=True, slots=True)
class BucketResult:
    hunt_code: str
    awarded: tuple[Applicant, ...] = ()
    delta: QuotaDelta = field(default_factory=QuotaDelta)


@dataclass(frozen=True, slots=True)
class DrawResult:
    hunt_code_results: list[HuntCode]
    applicant_results: list[Applicant]
    hunt_codes_used_in_draw: frozenset[str]
