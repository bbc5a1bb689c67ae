# tests/property/draw/test_allocation_properties.py
"""Property-based tests for draw allocation.

Invariants checked over random hunt codes and applicants:
- A code never awards more than its starting balance
- Every applicant row comes back exactly once with a consistent outcome
- Capped non-resident awards stay within the capped pool
- Results do not depend on the number of bucket workers
"""

from __future__ import annotations

import math
from collections import Counter

from hypothesis import given, settings
from hypothesis import strategies as st

from drawflow.contracts.draw import Applicant, DrawConfig, DrawResult, DrawSort, DrawSortRule, HuntCode, NonResidentPool
from drawflow.contracts.enums import ApplicantDrawOutcome, ApplicantResidency, DrawSortField, QuotaRule
from drawflow.draw.allocation import process_draw

CODES = ("A", "B", "C", "D")

BY_NUMBER = DrawSort(id="s", name="by number", rules=(DrawSortRule(field=DrawSortField.APPLICATION_NUMBER),))
PLAIN = DrawConfig(id="cfg", name="plain", sort_id="s")
NR_CAP = DrawConfig(id="cfg", name="nr", sort_id="s", quota_rule_flags=(QuotaRule.NON_RESIDENT_CAP_ENFORCEMENT,))

# =============================================================================
# Strategies
# =============================================================================


@st.composite
def hunt_code_lists(draw: st.DrawFn) -> list[HuntCode]:
    codes = []
    for code in draw(st.lists(st.sampled_from(CODES), min_size=1, max_size=len(CODES), unique=True)):
        capped = draw(st.booleans())
        codes.append(
            HuntCode(
                hunt_code=code,
                is_valid=True,
                is_in_draw=draw(st.booleans()),
                total_quota=draw(st.integers(min_value=0, max_value=6)),
                non_resident=NonResidentPool(
                    has_hard_cap=capped,
                    cap_percent=draw(st.sampled_from([0.0, 20.0, 50.0, 100.0])) if capped else None,
                ),
            )
        )
    return codes


choice_strategy = st.sampled_from([*CODES, "", "ZZ"])


@st.composite
def applicant_lists(draw: st.DrawFn) -> list[Applicant]:
    numbers = draw(st.lists(st.integers(min_value=1, max_value=10_000), max_size=25, unique=True))
    return [
        Applicant(
            application_number=number,
            age=draw(st.integers(min_value=12, max_value=90)),
            residency=draw(st.sampled_from(list(ApplicantResidency))),
            choices=tuple(draw(st.lists(choice_strategy, max_size=4))),
        )
        for number in numbers
    ]


def _awards_by_code(result: DrawResult) -> Counter[str]:
    return Counter(a.choice_awarded for a in result.applicant_results if a.choice_awarded is not None)


# =============================================================================
# Properties
# =============================================================================


class TestQuotaProperties:
    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    @settings(max_examples=200)
    def test_codes_never_over_awarded(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, PLAIN)

        awards = _awards_by_code(result)
        for hc in hunt_codes:
            if not hc.is_in_draw:
                assert awards[hc.hunt_code] == 0
            else:
                assert awards[hc.hunt_code] <= (hc.total_quota or 0)

    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    def test_balances_account_for_awards(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, PLAIN)

        awards = _awards_by_code(result)
        for hc in result.hunt_code_results:
            if hc.hunt_code in result.hunt_codes_used_in_draw:
                assert hc.quota_balance == (hc.total_quota or 0) - awards[hc.hunt_code]
                assert hc.total_quota_awarded == awards[hc.hunt_code]

    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    def test_capped_non_residents_within_pool(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, NR_CAP)

        nr_awards = Counter(
            a.choice_awarded
            for a in result.applicant_results
            if a.choice_awarded is not None and a.residency is ApplicantResidency.NON_RESIDENT
        )
        for hc in hunt_codes:
            if hc.is_in_draw and hc.non_resident.has_hard_cap:
                cap_percent = hc.non_resident.cap_percent or 0.0
                assert nr_awards[hc.hunt_code] <= math.floor(cap_percent * (hc.total_quota or 0) / 100)


class TestApplicantProperties:
    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    def test_every_applicant_returned_once(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, PLAIN)

        numbers = [a.application_number for a in result.applicant_results]
        assert sorted(numbers) == sorted(a.application_number for a in applicants)
        assert numbers == sorted(numbers)

    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    def test_outcome_matches_a_ranked_choice(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, PLAIN)

        for applicant in result.applicant_results:
            if applicant.draw_outcome is ApplicantDrawOutcome.AWARDED:
                assert applicant.choice_ordinal_awarded is not None
                assert applicant.choices[applicant.choice_ordinal_awarded - 1] == applicant.choice_awarded
            else:
                assert applicant.draw_outcome is ApplicantDrawOutcome.NOT_AWARDED
                assert applicant.choice_awarded is None
                assert applicant.choice_ordinal_awarded is None

    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists())
    def test_hunt_code_rows_preserved(self, hunt_codes: list[HuntCode], applicants: list[Applicant]) -> None:
        result = process_draw(hunt_codes, applicants, BY_NUMBER, PLAIN)

        assert [hc.hunt_code for hc in result.hunt_code_results] == sorted(hc.hunt_code for hc in hunt_codes)


class TestDeterminism:
    @given(hunt_codes=hunt_code_lists(), applicants=applicant_lists(), workers=st.integers(min_value=2, max_value=4))
    @settings(max_examples=50)
    def test_parallel_matches_sequential(self, hunt_codes: list[HuntCode], applicants: list[Applicant], workers: int) -> None:
        sequential = process_draw(hunt_codes, applicants, BY_NUMBER, NR_CAP)
        parallel = process_draw(hunt_codes, applicants, BY_NUMBER, NR_CAP, max_workers=workers)

        assert parallel.applicant_results == sequential.applicant_results
        assert parallel.hunt_code_results == sequential.hunt_code_results
