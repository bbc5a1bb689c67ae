# src/drawflow/draw/codec.py
"""CSV row validation and mapping for hunt-code and applicant documents.

Rows arrive as header-keyed string dicts (csv.DictReader). Each row is
validated by a pydantic model; empty cells mean "not provided". A row that
fails validation raises RowValidationError listing every field error.
"""

from __future__ import annotations

from collections.abc import Iterable
from typing import Annotated, Any, Literal

from pydantic import BaseModel, BeforeValidator, Field, ValidationError

from drawflow.contracts.draw import Applicant, HuntCode, NonResidentPool, ResidentPool, WpResPool
from drawflow.contracts.enums import ApplicantDrawOutcome, ApplicantResidency
from drawflow.contracts.errors import RowValidationError


def _blank_to_none(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, str):
        stripped = value.strip()
        return stripped if stripped else None
    return value


def _number(value: Any) -> Any:
    """Parse numeric text; whole numbers become int so int fields accept "10.0"."""
    value = _blank_to_none(value)
    if not isinstance(value, str):
        return value
    try:
        parsed = float(value)
    except ValueError:
        return value
    return int(parsed) if parsed.is_integer() else parsed


def _number_or_zero(value: Any) -> Any:
    parsed = _number(value)
    return 0 if parsed is None else parsed


def _flag_default_no(value: Any) -> Any:
    value = _blank_to_none(value)
    return "N" if value is None else value


OptionalCount = Annotated[Annotated[int, Field(ge=0)] | None, BeforeValidator(_number)]
OptionalPercent = Annotated[Annotated[float, Field(ge=0)] | None, BeforeValidator(_number)]
CountDefaultZero = Annotated[int, Field(ge=0), BeforeValidator(_number_or_zero)]
YesNo = Literal["Y", "N"]
OptionalText = Annotated[str | None, BeforeValidator(_blank_to_none)]


class HuntCodeCsvRow(BaseModel):
    """One row of a hunt-code CSV.

    "prect" is how the source system spells percent in its column names.
    """

    model_config = {"extra": "ignore", "frozen": True}

    hunt_code: Annotated[str, Field(min_length=1), BeforeValidator(_blank_to_none)]
    is_valid: YesNo
    in_the_draw: YesNo
    total_quota: OptionalCount = None
    total_quota_in_this_draw: OptionalCount = None
    total_quota_awarded: CountDefaultZero = 0
    previous_quota_balance: OptionalCount = None
    quota_balance: OptionalCount = None
    quota_balance_in_this_draw: OptionalCount = None
    quota_awarded_in_this_draw: CountDefaultZero = 0
    nr_cap_chk: Annotated[YesNo, BeforeValidator(_flag_default_no)] = "N"
    nrcap_prect: OptionalPercent = None
    nrcap_amt: OptionalCount = None
    nrcap_bal: OptionalCount = None
    nr_quota_awarded_in_this_draw: CountDefaultZero = 0
    nr_total_quota_awarded: CountDefaultZero = 0
    r_quota_awarded_in_this_draw: CountDefaultZero = 0
    r_total_quota_awarded: CountDefaultZero = 0
    unLPP_prect: OptionalPercent = None
    unLPP_amt: OptionalCount = None
    unLPP_bal: OptionalCount = None

    def to_hunt_code(self) -> HuntCode:
        return HuntCode(
            hunt_code=self.hunt_code.strip(),
            is_valid=self.is_valid == "Y",
            is_in_draw=self.in_the_draw == "Y",
            total_quota=self.total_quota,
            total_quota_in_this_draw=self.total_quota_in_this_draw,
            previous_quota_balance=self.previous_quota_balance,
            quota_balance=self.quota_balance,
            quota_balance_in_this_draw=self.quota_balance_in_this_draw,
            total_quota_awarded=self.total_quota_awarded,
            quota_awarded_in_this_draw=self.quota_awarded_in_this_draw,
            non_resident=NonResidentPool(
                has_hard_cap=self.nr_cap_chk == "Y" and self.nrcap_prect is not None,
                cap_percent=self.nrcap_prect,
                total_quota=self.nrcap_amt,
                quota_balance=self.nrcap_bal,
                quota_awarded_in_this_draw=self.nr_quota_awarded_in_this_draw,
                total_quota_awarded=self.nr_total_quota_awarded,
            ),
            resident=ResidentPool(
                quota_awarded_in_this_draw=self.r_quota_awarded_in_this_draw,
                total_quota_awarded=self.r_total_quota_awarded,
            ),
            wp_res=WpResPool(
                is_alloc_enabled=self.unLPP_prect is not None,
                cap_percent=self.unLPP_prect,
                total_quota=self.unLPP_amt,
                quota_balance=self.unLPP_bal,
            ),
        )


class ApplicantCsvRow(BaseModel):
    model_config = {"extra": "ignore", "frozen": True}

    application_number: Annotated[int, BeforeValidator(_number)]
    age: Annotated[int, BeforeValidator(_number)]
    residency: ApplicantResidency
    point_balance: Annotated[float, Field(ge=0), BeforeValidator(_number_or_zero)] = 0
    choice1: Annotated[str, Field(min_length=1), BeforeValidator(_blank_to_none)]
    choice2: OptionalText = None
    choice3: OptionalText = None
    choice4: OptionalText = None
    draw_outcome: Annotated[ApplicantDrawOutcome | None, BeforeValidator(_blank_to_none)] = None
    choice_ordinal_awarded: OptionalCount = None
    choice_awarded: OptionalText = None

    def to_applicant(self) -> Applicant:
        # Blank columns close up: choice3 after a blank choice2 is drawn in round two.
        choices = tuple(c for c in (self.choice1, self.choice2, self.choice3, self.choice4) if c)
        return Applicant(
            application_number=self.application_number,
            age=self.age,
            residency=self.residency,
            point_balance=self.point_balance,
            choices=choices,
            draw_outcome=self.draw_outcome,
            choice_ordinal_awarded=self.choice_ordinal_awarded,
            choice_awarded=self.choice_awarded,
        )


def _field_errors(exc: ValidationError) -> list[str]:
    errors = []
    for error in exc.errors():
        field = ".".join(str(part) for part in error["loc"]) or "row"
        errors.append(f"{field}: {error['msg']}")
    return errors


def _record_label(row: dict[str, Any], key: str, index: int) -> str:
    value = _blank_to_none(row.get(key))
    return str(value) if value is not None else f"at row {index + 1}"


def parse_hunt_codes(rows: Iterable[dict[str, Any]]) -> list[HuntCode]:
    """Validate and map hunt-code rows.

    Raises:
        RowValidationError: On the first invalid row
    """
    hunt_codes = []
    for index, row in enumerate(rows):
        try:
            parsed = HuntCodeCsvRow.model_validate(row)
        except ValidationError as exc:
            raise RowValidationError(_record_label(row, "hunt_code", index), _field_errors(exc)) from exc
        hunt_codes.append(parsed.to_hunt_code())
    return hunt_codes


def parse_applicants(rows: Iterable[dict[str, Any]]) -> list[Applicant]:
    """Validate and map applicant rows.

    Raises:
        RowValidationError: On the first invalid row
    """
    applicants = []
    for index, row in enumerate(rows):
        try:
            parsed = ApplicantCsvRow.model_validate(row)
        except ValidationError as exc:
            raise RowValidationError(_record_label(row, "application_number", index), _field_errors(exc)) from exc
        applicants.append(parsed.to_applicant())
    return applicants
