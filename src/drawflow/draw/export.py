# src/drawflow/draw/export.py
"""Write draw results as CSV documents.

Each artifact is stored in the blob store and registered as a new
DrawDocument, so later nodes and users can find it by node and job.
"""

from __future__ import annotations

import csv
import io
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from typing import Any

from drawflow.contracts.draw import DRAW_RUN_NUM_CHOICES, Applicant, DrawResult, HuntCode
from drawflow.contracts.enums import DrawDocumentType, ProcessingStatus, WorkflowMimeDataType
from drawflow.contracts.ports import BlobStore, EntityStore
from drawflow.contracts.workflow import DrawDocument, NodeContext
from drawflow.core.logging import get_logger
from drawflow.core.store._helpers import generate_id
from drawflow.draw.metrics import DrawMetric

logger = get_logger(__name__)

HUNT_CODE_HEADERS = (
    "hunt_code",
    "is_valid",
    "in_the_draw",
    "total_quota",
    "nr_cap_chk",
    "nrcap_prect",
    "nrcap_amt",
    "nrcap_bal",
    "unLPP_prect",
    "unLPP_amt",
    "unLPP_bal",
    "previous_quota_balance",
    "total_quota_in_this_draw",
    "quota_balance",
    "quota_balance_in_this_draw",
    "total_quota_awarded",
    "quota_awarded_in_this_draw",
    "nr_quota_awarded_in_this_draw",
    "nr_total_quota_awarded",
    "r_quota_awarded_in_this_draw",
    "r_total_quota_awarded",
)

APPLICANT_HEADERS = (
    "application_number",
    "age",
    "residency",
    "point_balance",
    *(f"choice{n}" for n in range(1, DRAW_RUN_NUM_CHOICES + 1)),
    "draw_outcome",
    "choice_ordinal_awarded",
    "choice_awarded",
)

METRIC_HEADERS = ("metric", "value")


def format_cell(value: Any) -> str:
    """Render one CSV cell: Y/N for flags, blank for None, no ".0" on whole numbers."""
    if value is None:
        return ""
    if isinstance(value, bool):
        return "Y" if value else "N"
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value)


def hunt_code_row(hc: HuntCode) -> dict[str, Any]:
    nr = hc.non_resident
    wp = hc.wp_res
    return {
        "hunt_code": hc.hunt_code,
        "is_valid": hc.is_valid,
        "in_the_draw": hc.is_in_draw,
        "total_quota": hc.total_quota,
        "nr_cap_chk": nr.has_hard_cap,
        "nrcap_prect": nr.cap_percent,
        "nrcap_amt": nr.total_quota,
        "nrcap_bal": nr.quota_balance,
        "unLPP_prect": wp.cap_percent,
        "unLPP_amt": wp.total_quota,
        "unLPP_bal": wp.quota_balance,
        "previous_quota_balance": hc.previous_quota_balance,
        "total_quota_in_this_draw": hc.total_quota_in_this_draw,
        "quota_balance": hc.quota_balance,
        "quota_balance_in_this_draw": hc.quota_balance_in_this_draw,
        "total_quota_awarded": hc.total_quota_awarded,
        "quota_awarded_in_this_draw": hc.quota_awarded_in_this_draw,
        "nr_quota_awarded_in_this_draw": nr.quota_awarded_in_this_draw,
        "nr_total_quota_awarded": nr.total_quota_awarded,
        "r_quota_awarded_in_this_draw": hc.resident.quota_awarded_in_this_draw,
        "r_total_quota_awarded": hc.resident.total_quota_awarded,
    }


def applicant_row(applicant: Applicant) -> dict[str, Any]:
    row: dict[str, Any] = {
        "application_number": applicant.application_number,
        "age": applicant.age,
        "residency": applicant.residency,
        "point_balance": applicant.point_balance,
    }
    for n in range(1, DRAW_RUN_NUM_CHOICES + 1):
        row[f"choice{n}"] = applicant.choices[n - 1] if n <= len(applicant.choices) else None
    row["draw_outcome"] = applicant.draw_outcome
    row["choice_ordinal_awarded"] = applicant.choice_ordinal_awarded
    row["choice_awarded"] = applicant.choice_awarded
    return row


def to_csv(headers: Sequence[str], rows: Iterable[dict[str, Any]]) -> bytes:
    buffer = io.StringIO(newline="")
    writer = csv.DictWriter(buffer, fieldnames=list(headers), lineterminator="\n")
    writer.writeheader()
    for row in rows:
        writer.writerow({key: format_cell(row[key]) for key in headers})
    return buffer.getvalue().encode("utf-8")


def hunt_codes_csv(hunt_codes: Iterable[HuntCode]) -> bytes:
    return to_csv(HUNT_CODE_HEADERS, (hunt_code_row(hc) for hc in hunt_codes))


def applicants_csv(applicants: Iterable[Applicant]) -> bytes:
    return to_csv(APPLICANT_HEADERS, (applicant_row(a) for a in applicants))


def metrics_csv(metrics: Iterable[DrawMetric]) -> bytes:
    return to_csv(METRIC_HEADERS, ({"metric": m.title, "value": m.value} for m in metrics))


@dataclass(frozen=True, slots=True)
class DrawExport:
    """Documents written for one draw node run."""

    applicants: DrawDocument
    hunt_codes: DrawDocument
    metrics: DrawDocument


def document_key(organization_id: str, document_id: str, filename: str) -> str:
    return f"{organization_id}/documents/{document_id}/{filename}"


def store_document(
    entity_store: EntityStore,
    blob_store: BlobStore,
    *,
    organization_id: str,
    name: str,
    filename: str,
    content: bytes,
    content_type: WorkflowMimeDataType,
    document_type: DrawDocumentType,
) -> DrawDocument:
    """Write content to the blob store and register it as a finished document."""
    document_id = generate_id()
    key = document_key(organization_id, document_id, filename)
    blob_store.write(key, content, str(content_type))
    document = entity_store.create_document(
        DrawDocument(
            id=document_id,
            organization_id=organization_id,
            name=name,
            filename=filename,
            content_type=str(content_type),
            blob_key=key,
            document_type=document_type,
            processing_status=ProcessingStatus.VALIDATION_FINISHED,
        )
    )
    logger.debug("document_stored", document_id=document_id, blob_key=key, size=len(content))
    return document


def export_results(
    entity_store: EntityStore,
    blob_store: BlobStore,
    context: NodeContext,
    result: DrawResult,
    metrics: Sequence[DrawMetric],
) -> DrawExport:
    """Store the three draw artifacts for the node in context."""
    prefix = f"{context.workflow_job_id}_{context.node_id}"

    def store(suffix: str, content: bytes, document_type: DrawDocumentType) -> DrawDocument:
        name = f"{prefix}_{suffix}"
        return store_document(
            entity_store,
            blob_store,
            organization_id=context.organization_id,
            name=name,
            filename=f"{name}.csv",
            content=content,
            content_type=WorkflowMimeDataType.CSV,
            document_type=document_type,
        )

    return DrawExport(
        hunt_codes=store("hunt_code_results", hunt_codes_csv(result.hunt_code_results), DrawDocumentType.HUNT_CODES),
        applicants=store("applicant_results", applicants_csv(result.applicant_results), DrawDocumentType.APPLICANTS),
        metrics=store("draw_metrics", metrics_csv(metrics), DrawDocumentType.DRAW_METRICS),
    )
