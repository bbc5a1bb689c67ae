# src/drawflow/draw/sanitize.py
"""Prepare raw hunt codes and applicants for one draw.

Hunt codes that survive sanitization always have integer totals and
balances; the allocation rounds rely on that.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import replace

from drawflow.contracts.draw import Applicant, DrawConfig, HuntCode
from drawflow.contracts.enums import ApplicantDrawOutcome, QuotaRule
from drawflow.contracts.errors import DrawSemanticError


def is_drawable(hunt_code: HuntCode) -> bool:
    return hunt_code.is_valid and hunt_code.is_in_draw and hunt_code.total_quota is not None


def sanitize_hunt_codes(hunt_codes: Iterable[HuntCode], config: DrawConfig) -> list[HuntCode]:
    """Keep drawable codes and reset their per-draw counters.

    The starting balance is the stored quota_balance, falling back to
    total_quota. Sub-pool totals and balances are cleared; they are derived
    again by derive_sub_pools().
    """
    drawable = [hc for hc in hunt_codes if is_drawable(hc)]
    if config.has_rule(QuotaRule.WP_RES_QUOTA):
        drawable = [hc for hc in drawable if hc.wp_res.is_alloc_enabled]

    sanitized = []
    for hc in drawable:
        balance = hc.quota_balance if hc.quota_balance is not None else hc.total_quota
        sanitized.append(
            replace(
                hc,
                total_quota_in_this_draw=balance,
                previous_quota_balance=balance,
                quota_balance=balance,
                quota_balance_in_this_draw=balance,
                quota_awarded_in_this_draw=0,
                non_resident=replace(hc.non_resident, total_quota=None, quota_balance=None, quota_awarded_in_this_draw=0),
                resident=replace(hc.resident, quota_awarded_in_this_draw=0),
                wp_res=replace(hc.wp_res, total_quota=None, quota_balance=None),
            )
        )
    return sanitized


def _cap(percent: float, balance: int) -> int:
    return math.floor(percent * balance / 100)


def derive_sub_pools(hunt_code: HuntCode, config: DrawConfig) -> HuntCode:
    """Size the non-resident and reserved pools from the current balance.

    When the reserved pool is active for a code, the whole draw for that
    code is limited to the reservation.

    Raises:
        DrawSemanticError: If an active pool has no cap percent
    """
    balance = hunt_code.quota_balance or 0
    total_in_draw = hunt_code.total_quota_in_this_draw

    non_resident = hunt_code.non_resident
    if config.has_rule(QuotaRule.NON_RESIDENT_CAP_ENFORCEMENT) and non_resident.has_hard_cap:
        if non_resident.cap_percent is None:
            raise DrawSemanticError(f"Non-resident cap percent is missing for {hunt_code.hunt_code}")
        nr_total = _cap(non_resident.cap_percent, balance)
        non_resident = replace(non_resident, total_quota=nr_total, quota_balance=nr_total)

    wp_res = hunt_code.wp_res
    if config.has_rule(QuotaRule.WP_RES_QUOTA) and wp_res.is_alloc_enabled:
        if wp_res.cap_percent is None:
            raise DrawSemanticError(f"Reserved pool cap percent is missing for {hunt_code.hunt_code}")
        wp_total = _cap(wp_res.cap_percent, balance)
        wp_res = replace(wp_res, total_quota=wp_total, quota_balance=wp_total)
        total_in_draw = wp_total

    return replace(
        hunt_code,
        non_resident=non_resident,
        wp_res=wp_res,
        total_quota_in_this_draw=total_in_draw,
        quota_balance_in_this_draw=total_in_draw,
    )


def filter_applicants(applicants: Iterable[Applicant], config: DrawConfig) -> list[Applicant]:
    """Drop applicants already awarded and clear the outcome of the rest.

    A non-empty allow list on the config limits the draw to those
    application numbers.
    """
    allowed = set(config.applicants)
    return [
        replace(applicant, draw_outcome=None, choice_ordinal_awarded=None, choice_awarded=None)
        for applicant in applicants
        if applicant.draw_outcome != ApplicantDrawOutcome.AWARDED
        and (not allowed or str(applicant.application_number) in allowed)
    ]
