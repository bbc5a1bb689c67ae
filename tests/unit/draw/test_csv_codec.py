# tests/unit/draw/test_csv_codec.py
"""Tests for hunt-code and applicant CSV row parsing."""

import pytest

from drawflow.contracts.enums import ApplicantDrawOutcome, ApplicantResidency
from drawflow.contracts.errors import RowValidationError
from drawflow.draw.codec import parse_applicants, parse_hunt_codes


def _hunt_code_row(**overrides: str) -> dict[str, str]:
    row = {
        "hunt_code": "HC1",
        "is_valid": "Y",
        "in_the_draw": "Y",
        "total_quota": "10",
        "quota_balance": "",
        "nr_cap_chk": "",
        "nrcap_prect": "",
        "unLPP_prect": "",
    }
    row.update(overrides)
    return row


def _applicant_row(**overrides: str) -> dict[str, str]:
    row = {
        "application_number": "101",
        "age": "30",
        "residency": "RESIDENT",
        "point_balance": "",
        "choice1": "HC1",
        "choice2": "",
        "choice3": "",
        "choice4": "",
    }
    row.update(overrides)
    return row


class TestParseHuntCodes:
    def test_minimal_row(self) -> None:
        (hc,) = parse_hunt_codes([_hunt_code_row()])

        assert hc.hunt_code == "HC1"
        assert hc.is_valid and hc.is_in_draw
        assert hc.total_quota == 10
        assert hc.quota_balance is None
        assert hc.total_quota_awarded == 0
        assert not hc.non_resident.has_hard_cap
        assert not hc.wp_res.is_alloc_enabled

    def test_whole_number_text_accepted_for_counts(self) -> None:
        (hc,) = parse_hunt_codes([_hunt_code_row(total_quota="10.0", quota_balance=" 7 ")])

        assert hc.total_quota == 10
        assert hc.quota_balance == 7

    def test_non_resident_cap_needs_flag_and_percent(self) -> None:
        capped, flag_only = parse_hunt_codes(
            [
                _hunt_code_row(nr_cap_chk="Y", nrcap_prect="20"),
                _hunt_code_row(hunt_code="HC2", nr_cap_chk="Y"),
            ]
        )

        assert capped.non_resident.has_hard_cap
        assert capped.non_resident.cap_percent == 20.0
        assert not flag_only.non_resident.has_hard_cap

    def test_reserved_pool_enabled_by_percent(self) -> None:
        (hc,) = parse_hunt_codes([_hunt_code_row(unLPP_prect="12.5")])

        assert hc.wp_res.is_alloc_enabled
        assert hc.wp_res.cap_percent == 12.5

    def test_unknown_columns_ignored(self) -> None:
        (hc,) = parse_hunt_codes([_hunt_code_row(notes="free text")])

        assert hc.hunt_code == "HC1"

    def test_invalid_row_names_code_and_fields(self) -> None:
        with pytest.raises(RowValidationError) as exc_info:
            parse_hunt_codes([_hunt_code_row(is_valid="maybe", total_quota="-1")])

        error = exc_info.value
        assert error.record == "HC1"
        assert any(e.startswith("is_valid") for e in error.errors)
        assert any(e.startswith("total_quota") for e in error.errors)

    def test_blank_code_labelled_by_row_number(self) -> None:
        with pytest.raises(RowValidationError) as exc_info:
            parse_hunt_codes([_hunt_code_row(), _hunt_code_row(hunt_code=" ")])

        assert exc_info.value.record == "at row 2"


class TestParseApplicants:
    def test_row_maps_to_applicant(self) -> None:
        (applicant,) = parse_applicants([_applicant_row(point_balance="3.5", choice2="HC2")])

        assert applicant.application_number == 101
        assert applicant.age == 30
        assert applicant.residency is ApplicantResidency.RESIDENT
        assert applicant.point_balance == 3.5
        assert applicant.choices == ("HC1", "HC2")
        assert applicant.draw_outcome is None

    def test_blank_choice_closes_up_later_choices(self) -> None:
        (applicant,) = parse_applicants([_applicant_row(choice3="HC3")])

        assert applicant.choices == ("HC1", "HC3")

    def test_prior_outcome_is_read(self) -> None:
        (applicant,) = parse_applicants(
            [_applicant_row(draw_outcome="AWARDED", choice_ordinal_awarded="1", choice_awarded="HC1")]
        )

        assert applicant.draw_outcome is ApplicantDrawOutcome.AWARDED
        assert applicant.choice_ordinal_awarded == 1

    def test_first_choice_required(self) -> None:
        with pytest.raises(RowValidationError) as exc_info:
            parse_applicants([_applicant_row(choice1="")])

        assert exc_info.value.record == "101"
        assert exc_info.value.errors[0].startswith("choice1")

    def test_unknown_residency_rejected(self) -> None:
        with pytest.raises(RowValidationError):
            parse_applicants([_applicant_row(residency="VISITOR")])
