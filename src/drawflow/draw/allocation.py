# src/drawflow/draw/allocation.py
"""Quota allocation across ranked applicant choices.

A draw runs DRAW_RUN_NUM_CHOICES rounds. In round N every applicant not
yet awarded is placed in the bucket of the hunt code named by their Nth
choice. Buckets of one round are independent: each is processed against a
snapshot of its hunt code and yields a BucketResult. Only when every bucket
of the round has finished are the deltas folded into the hunt codes, so
round N+1 sees the complete outcome of round N.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import replace
from typing import TYPE_CHECKING

from drawflow.contracts.draw import (
    DRAW_RUN_NUM_CHOICES,
    Applicant,
    BucketResult,
    DrawBucket,
    DrawConfig,
    DrawResult,
    DrawSort,
    DrawSortRule,
    HuntCode,
    QuotaDelta,
)
from drawflow.contracts.enums import ApplicantDrawOutcome, ApplicantResidency, QuotaRule
from drawflow.contracts.errors import DrawSemanticError
from drawflow.core.logging import get_logger
from drawflow.draw.sanitize import derive_sub_pools, filter_applicants, sanitize_hunt_codes
from drawflow.draw.sort import sort_applicants, validate_sort_rules

if TYPE_CHECKING:
    import structlog

logger = get_logger(__name__)


def bucket_applicants(
    hunt_codes: Mapping[str, HuntCode],
    applicants: Iterable[Applicant],
    choice_ordinal: int,
) -> list[DrawBucket]:
    """Group applicants by their choice at choice_ordinal (1-based).

    Blank choices and choices naming a code not in hunt_codes are skipped.
    Buckets are returned in the order their code is first seen.
    """
    buckets: dict[str, DrawBucket] = {}
    for applicant in applicants:
        if len(applicant.choices) < choice_ordinal:
            continue
        choice = applicant.choices[choice_ordinal - 1]
        if not choice or choice not in hunt_codes:
            continue
        if choice not in buckets:
            buckets[choice] = DrawBucket(hunt_code=choice, choice_ordinal=choice_ordinal)
        buckets[choice].applicants.append(applicant)
    return list(buckets.values())


def _positive(value: int | None) -> bool:
    return value is not None and value != 0


def process_bucket(
    bucket: DrawBucket,
    hunt_code: HuntCode,
    rules: Sequence[DrawSortRule],
    config: DrawConfig,
    awarded: frozenset[int],
) -> BucketResult:
    """Award the bucket's code to its best-ranked eligible applicants.

    hunt_code is the state of the code at the start of the round and is
    not modified. awarded holds application numbers awarded in earlier
    rounds.

    Raises:
        DrawSemanticError: If an applicant has an unknown residency
    """
    if hunt_code.quota_balance == 0:
        return BucketResult(hunt_code=bucket.hunt_code)

    wp_rule = config.has_rule(QuotaRule.WP_RES_QUOTA)
    nr_rule = config.has_rule(QuotaRule.NON_RESIDENT_CAP_ENFORCEMENT)

    total_balance = hunt_code.quota_balance_in_this_draw or 0
    nr_balance = hunt_code.non_resident.quota_balance
    wp_balance = hunt_code.wp_res.quota_balance
    residents = non_residents = wp_res = 0

    ranked = list(bucket.applicants)
    sort_applicants(ranked, rules)

    winners: list[Applicant] = []
    for applicant in ranked:
        if total_balance == 0:
            break
        if applicant.application_number in awarded:
            continue

        is_resident = applicant.residency == ApplicantResidency.RESIDENT
        if wp_rule:
            eligible = is_resident and _positive(wp_balance)
        elif nr_rule:
            eligible = is_resident or not hunt_code.non_resident.has_hard_cap or _positive(nr_balance)
        else:
            eligible = True
        if not eligible:
            continue

        winners.append(
            replace(
                applicant,
                draw_outcome=ApplicantDrawOutcome.AWARDED,
                choice_ordinal_awarded=bucket.choice_ordinal,
                choice_awarded=hunt_code.hunt_code,
            )
        )

        if applicant.residency == ApplicantResidency.NON_RESIDENT:
            non_residents += 1
            if nr_balance is not None:
                nr_balance -= 1
        elif is_resident:
            residents += 1
            if wp_rule and wp_balance is not None:
                wp_res += 1
                wp_balance -= 1
        else:
            raise DrawSemanticError(f"Unhandled residency {applicant.residency!r} for applicant {applicant.application_number}")
        total_balance -= 1

    return BucketResult(
        hunt_code=bucket.hunt_code,
        awarded=tuple(winners),
        delta=QuotaDelta(residents=residents, non_residents=non_residents, wp_res=wp_res),
    )


def apply_delta(hunt_code: HuntCode, delta: QuotaDelta, config: DrawConfig) -> HuntCode:
    """Return hunt_code with one bucket's awards folded into its counters.

    The non-resident pool balance moves only while the cap is enforced; the
    reserved pool balance moves only while the reserved rule is on.
    """
    nr = hunt_code.non_resident
    nr_balance = nr.quota_balance
    if config.has_rule(QuotaRule.NON_RESIDENT_CAP_ENFORCEMENT) and nr_balance is not None:
        nr_balance -= delta.non_residents

    wp = hunt_code.wp_res
    wp_balance = wp.quota_balance
    if config.has_rule(QuotaRule.WP_RES_QUOTA) and wp_balance is not None:
        wp_balance -= delta.residents

    return replace(
        hunt_code,
        total_quota_awarded=hunt_code.total_quota_awarded + delta.total,
        quota_awarded_in_this_draw=hunt_code.quota_awarded_in_this_draw + delta.total,
        quota_balance=(hunt_code.quota_balance or 0) - delta.total,
        quota_balance_in_this_draw=(hunt_code.quota_balance_in_this_draw or 0) - delta.total,
        non_resident=replace(
            nr,
            quota_awarded_in_this_draw=nr.quota_awarded_in_this_draw + delta.non_residents,
            total_quota_awarded=nr.total_quota_awarded + delta.non_residents,
            quota_balance=nr_balance,
        ),
        resident=replace(
            hunt_code.resident,
            quota_awarded_in_this_draw=hunt_code.resident.quota_awarded_in_this_draw + delta.residents,
            total_quota_awarded=hunt_code.resident.total_quota_awarded + delta.residents,
        ),
        wp_res=replace(wp, quota_balance=wp_balance),
    )


def reconcile_flow_quota(hunt_codes: Iterable[HuntCode], config: DrawConfig) -> list[HuntCode]:
    """Drop unused reserved quota unless it is allowed to flow to the next draw.

    Raises:
        DrawSemanticError: If a code's reserved balance and draw balance disagree
    """
    codes = list(hunt_codes)
    if not config.has_rule(QuotaRule.WP_RES_QUOTA) or config.has_rule(QuotaRule.FLOW_QUOTA):
        return codes

    reconciled = []
    for hc in codes:
        if not hc.wp_res.is_alloc_enabled:
            reconciled.append(hc)
            continue
        if hc.wp_res.quota_balance != hc.quota_balance_in_this_draw:
            raise DrawSemanticError(f"Reserved balance and draw balance diverged for {hc.hunt_code}")
        reconciled.append(
            replace(
                hc,
                quota_balance=(hc.quota_balance or 0) - (hc.wp_res.quota_balance or 0),
                quota_balance_in_this_draw=0,
            )
        )
    return reconciled


def merge_hunt_codes(original: Iterable[HuntCode], drawn: Iterable[HuntCode]) -> list[HuntCode]:
    """Every original row, replaced by its drawn state where it took part, ordered by code."""
    drawn_by_code = {hc.hunt_code: hc for hc in drawn}
    merged = [drawn_by_code.get(hc.hunt_code, hc) for hc in original]
    return sorted(merged, key=lambda hc: hc.hunt_code)


def _run_round(
    buckets: Sequence[DrawBucket],
    hunt_codes: Mapping[str, HuntCode],
    rules: Sequence[DrawSortRule],
    config: DrawConfig,
    awarded: frozenset[int],
    max_workers: int,
) -> list[BucketResult]:
    if max_workers <= 1 or len(buckets) <= 1:
        return [process_bucket(b, hunt_codes[b.hunt_code], rules, config, awarded) for b in buckets]
    with ThreadPoolExecutor(max_workers=max_workers, thread_name_prefix="draw-bucket") as pool:
        futures = [pool.submit(process_bucket, b, hunt_codes[b.hunt_code], rules, config, awarded) for b in buckets]
        return [f.result() for f in futures]


def process_draw(
    hunt_codes: Sequence[HuntCode],
    applicants: Sequence[Applicant],
    draw_sort: DrawSort | None,
    draw_config: DrawConfig | None,
    *,
    max_workers: int = 1,
    log: structlog.stdlib.BoundLogger | None = None,
) -> DrawResult:
    """Run a complete draw.

    Args:
        hunt_codes: Hunt code rows as read from the input document
        applicants: Applicant rows as read from the input document
        draw_sort: Ordering applied within each bucket and to the results
        draw_config: Enabled quota rules and applicant allow list
        max_workers: Threads used for the buckets of one round
        log: Logger bound with caller context

    Returns:
        DrawResult with every hunt code row and every eligible applicant

    Raises:
        DrawSemanticError: Missing sort or config, or inconsistent quota data
    """
    log = log or logger
    if draw_config is None:
        raise DrawSemanticError("Draw configuration is required")
    if draw_sort is None:
        raise DrawSemanticError("Draw sort is required")
    validate_sort_rules(draw_sort.rules)
    rules = draw_sort.rules

    codes = {hc.hunt_code: derive_sub_pools(hc, draw_config) for hc in sanitize_hunt_codes(hunt_codes, draw_config)}
    eligible = filter_applicants(applicants, draw_config)
    log.info(
        "draw_inputs_filtered",
        applicants=len(applicants),
        eligible_applicants=len(eligible),
        hunt_codes=len(hunt_codes),
        drawable_hunt_codes=len(codes),
    )

    awarded_numbers: set[int] = set()
    results: list[Applicant] = []
    for choice_ordinal in range(1, DRAW_RUN_NUM_CHOICES + 1):
        pending = [a for a in eligible if a.application_number not in awarded_numbers]
        buckets = bucket_applicants(codes, pending, choice_ordinal)
        round_results = _run_round(buckets, codes, rules, draw_config, frozenset(awarded_numbers), max_workers)

        for result in round_results:
            codes[result.hunt_code] = apply_delta(codes[result.hunt_code], result.delta, draw_config)
            for winner in result.awarded:
                awarded_numbers.add(winner.application_number)
                results.append(winner)

        log.info(
            "draw_round_processed",
            choice_ordinal=choice_ordinal,
            buckets=len(buckets),
            awarded=sum(len(r.awarded) for r in round_results),
        )

    results.extend(
        replace(a, draw_outcome=ApplicantDrawOutcome.NOT_AWARDED, choice_ordinal_awarded=None, choice_awarded=None)
        for a in eligible
        if a.application_number not in awarded_numbers
    )
    sort_applicants(results, rules)

    drawn = reconcile_flow_quota(codes.values(), draw_config)
    return DrawResult(
        hunt_code_results=merge_hunt_codes(hunt_codes, drawn),
        applicant_results=results,
        hunt_codes_used_in_draw=frozenset(codes),
    )
