# src/drawflow/draw/metrics.py
"""Summary metrics for a completed draw."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

from drawflow.contracts.draw import DrawResult, HuntCode


class MetricTitle(StrEnum):
    """Metric titles, declared in output order."""

    TOTAL_QUOTA = "Total Quota"
    TOTAL_QUOTA_IN_THIS_DRAW = "Total Quota In This Draw"
    TOTAL_QUOTA_AWARDED = "Total Quota Awarded"
    TOTAL_QUOTA_AWARDED_IN_THIS_DRAW = "Total Quota Awarded In This Draw"
    TOTAL_QUOTA_BALANCE = "Total Quota Balance"
    TOTAL_QUOTA_BALANCE_FOR_NEXT_DRAW = "Total Quota Balance For Next Draw"
    TOTAL_NON_RESIDENTS_AWARDED = "Total Non-Residents Awarded"
    TOTAL_NON_RESIDENTS_AWARDED_IN_THIS_DRAW = "Total Non-Residents Awarded In This Draw"
    TOTAL_PERCENTAGE_NON_RESIDENTS_AWARDED = "Total Percentage Non-Residents Awarded"
    TOTAL_PERCENTAGE_NON_RESIDENTS_AWARDED_IN_THIS_DRAW = "Total Percentage Non-Residents Awarded In This Draw"
    TOTAL_RESIDENTS_AWARDED = "Total Residents Awarded"
    TOTAL_RESIDENTS_AWARDED_IN_THIS_DRAW = "Total Residents Awarded In This Draw"
    TOTAL_PERCENTAGE_RESIDENTS_AWARDED = "Total Percentage Residents Awarded"
    TOTAL_PERCENTAGE_RESIDENTS_AWARDED_IN_THIS_DRAW = "Total Percentage Residents Awarded In This Draw"


@dataclass(frozen=True, slots=True)
class DrawMetric:
    title: MetricTitle
    value: int | float


def percent(part: int, total: int) -> float:
    """Percentage of total rounded to two places; 0 when total is 0."""
    if total == 0:
        return 0
    return round(100 * part / total, 2)


def generate_draw_metrics(result: DrawResult) -> list[DrawMetric]:
    """Aggregate the fourteen draw metrics.

    Only valid, in-draw codes count. "In this draw" figures are further
    limited to the codes that actually took part in this draw.
    """
    counted = [hc for hc in result.hunt_code_results if hc.is_valid and hc.is_in_draw]
    drawn = [hc for hc in counted if hc.hunt_code in result.hunt_codes_used_in_draw]

    total_quota = _sum(hc.total_quota or 0 for hc in counted)
    total_awarded = _sum(hc.total_quota_awarded for hc in counted)
    total_balance = _sum(hc.quota_balance if hc.quota_balance is not None else (hc.total_quota or 0) for hc in counted)
    nr_awarded = _sum(hc.non_resident.total_quota_awarded for hc in counted)
    res_awarded = _sum(hc.resident.total_quota_awarded for hc in counted)

    quota_in_draw = _sum(hc.total_quota_in_this_draw or 0 for hc in drawn)
    awarded_in_draw = _sum(hc.quota_awarded_in_this_draw for hc in drawn)
    balance_next_draw = _sum(hc.quota_balance_in_this_draw or 0 for hc in drawn)
    nr_in_draw = _sum(hc.non_resident.quota_awarded_in_this_draw for hc in drawn)
    res_in_draw = _sum(hc.resident.quota_awarded_in_this_draw for hc in drawn)

    values: dict[MetricTitle, int | float] = {
        MetricTitle.TOTAL_QUOTA: total_quota,
        MetricTitle.TOTAL_QUOTA_IN_THIS_DRAW: quota_in_draw,
        MetricTitle.TOTAL_QUOTA_AWARDED: total_awarded,
        MetricTitle.TOTAL_QUOTA_AWARDED_IN_THIS_DRAW: awarded_in_draw,
        MetricTitle.TOTAL_QUOTA_BALANCE: total_balance,
        MetricTitle.TOTAL_QUOTA_BALANCE_FOR_NEXT_DRAW: balance_next_draw,
        MetricTitle.TOTAL_NON_RESIDENTS_AWARDED: nr_awarded,
        MetricTitle.TOTAL_NON_RESIDENTS_AWARDED_IN_THIS_DRAW: nr_in_draw,
        MetricTitle.TOTAL_PERCENTAGE_NON_RESIDENTS_AWARDED: percent(nr_awarded, total_awarded),
        MetricTitle.TOTAL_PERCENTAGE_NON_RESIDENTS_AWARDED_IN_THIS_DRAW: percent(nr_in_draw, awarded_in_draw),
        MetricTitle.TOTAL_RESIDENTS_AWARDED: res_awarded,
        MetricTitle.TOTAL_RESIDENTS_AWARDED_IN_THIS_DRAW: res_in_draw,
        MetricTitle.TOTAL_PERCENTAGE_RESIDENTS_AWARDED: percent(res_awarded, total_awarded),
        MetricTitle.TOTAL_PERCENTAGE_RESIDENTS_AWARDED_IN_THIS_DRAW: percent(res_in_draw, awarded_in_draw),
    }
    return [DrawMetric(title=title, value=values[title]) for title in MetricTitle]


def _sum(values: Iterable[int]) -> int:
    return sum(values, 0)
