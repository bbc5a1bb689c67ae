# src/drawflow/nodes/draw.py
"""Draw node: runs one draw over its applicant and hunt-code inputs.

Inputs are located with find_data_source(): a data node attached to the
draw node wins, otherwise the previous node's results are used. Outputs are
the applicant results, hunt-code results and metrics documents, in that
order.
"""

from __future__ import annotations

import structlog

from drawflow.contracts.draw import DrawConfig, DrawSort
from drawflow.contracts.enums import DrawDocumentType, WorkflowDomain
from drawflow.contracts.errors import DrawSemanticError
from drawflow.contracts.workflow import NodeData, NodePayload
from drawflow.draw.allocation import process_draw
from drawflow.draw.codec import parse_applicants, parse_hunt_codes
from drawflow.draw.export import export_results
from drawflow.draw.metrics import generate_draw_metrics
from drawflow.nodes.runtime import NodeServices, document_node_data, find_data_source


def load_draw_settings(services: NodeServices, node_id: str) -> tuple[DrawConfig, DrawSort]:
    """Fetch the draw config of node_id and the sort it names.

    Raises:
        DrawSemanticError: Config or sort missing, or the sort has no rules
    """
    store = services.entity_store
    config = store.get_draw_config_for_node(node_id)
    if config is None:
        raise DrawSemanticError(f"Draw configuration not found for workflow node {node_id}")
    if not config.sort_id:
        raise DrawSemanticError(f"Draw configuration {config.id} does not have a sort defined")
    sort = store.get_draw_sort(config.sort_id)
    if sort is None:
        raise DrawSemanticError(f"Draw sort {config.sort_id} not found")
    if not sort.rules:
        raise DrawSemanticError(f"Draw sort {sort.id} has no rules; at least one sort rule is required")
    return config, sort


def run_draw(payload: NodePayload, services: NodeServices, log: structlog.stdlib.BoundLogger) -> list[NodeData]:
    ctx = payload.context
    blobs = services.blob_store
    config, sort = load_draw_settings(services, ctx.node_id)

    applicant_source = find_data_source(payload, WorkflowDomain.DRAW, DrawDocumentType.APPLICANTS.value)
    hunt_code_source = find_data_source(payload, WorkflowDomain.DRAW, DrawDocumentType.HUNT_CODES.value)
    applicants = parse_applicants(blobs.read_rows(blobs.key_from_uri(applicant_source.uri)))
    hunt_codes = parse_hunt_codes(blobs.read_rows(blobs.key_from_uri(hunt_code_source.uri)))

    result = process_draw(
        hunt_codes,
        applicants,
        sort,
        config,
        max_workers=services.draw_settings.bucket_workers,
        log=log,
    )
    metrics = generate_draw_metrics(result)
    exported = export_results(services.entity_store, blobs, ctx, result, metrics)
    log.info(
        "draw_completed",
        draw_config_id=config.id,
        awarded=sum(1 for a in result.applicant_results if a.choice_awarded is not None),
        hunt_codes_in_draw=len(result.hunt_codes_used_in_draw),
    )

    return [
        document_node_data(blobs, exported.applicants),
        document_node_data(blobs, exported.hunt_codes),
        document_node_data(blobs, exported.metrics),
    ]
