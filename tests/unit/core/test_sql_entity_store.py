# tests/unit/core/test_sql_entity_store.py
"""Tests for SqlEntityStore over an in-memory SQLite database."""

import pytest

from drawflow.contracts.draw import DrawConfig, DrawSort, DrawSortRule
from drawflow.contracts.enums import (
    DrawDocumentType,
    DrawSortDirection,
    DrawSortField,
    QuotaRule,
    WorkflowDomain,
    WorkflowInstanceStatus,
    WorkflowLogLevel,
    WorkflowMessageKey,
    WorkflowMimeDataType,
)
from drawflow.contracts.errors import EntityNotFoundError
from drawflow.contracts.ports import EntityStore
from drawflow.contracts.workflow import (
    DrawDocument,
    NodeData,
    NodeMime,
    WorkflowEdgeRecord,
    WorkflowInstance,
    WorkflowJob,
    WorkflowJobLog,
    WorkflowNodeRecord,
    WorkflowNodeResult,
)
from drawflow.core.store import SqlEntityStore


@pytest.fixture
def instance(entity_store: SqlEntityStore) -> WorkflowInstance:
    return entity_store.create_instance(WorkflowInstance(id="inst-1", organization_id="org-1", workflow_id="wf-1"))


@pytest.fixture
def job(entity_store: SqlEntityStore, instance: WorkflowInstance) -> WorkflowJob:
    return entity_store.create_job(WorkflowJob(id="job-1", organization_id="org-1", workflow_instance_id=instance.id))


class TestInstances:
    def test_satisfies_entity_store_protocol(self, entity_store: SqlEntityStore) -> None:
        assert isinstance(entity_store, EntityStore)

    def test_create_and_get(self, entity_store: SqlEntityStore, instance: WorkflowInstance) -> None:
        loaded = entity_store.get_instance("inst-1")

        assert loaded == instance
        assert loaded.status is WorkflowInstanceStatus.BUILD_NEEDED

    def test_get_missing_raises(self, entity_store: SqlEntityStore) -> None:
        with pytest.raises(EntityNotFoundError, match="WorkflowInstance missing"):
            entity_store.get_instance("missing")

    def test_update_changes_only_given_fields(self, entity_store: SqlEntityStore, instance: WorkflowInstance) -> None:
        entity_store.update_instance(instance.id, definition_key="k", execution_handle="h")
        updated = entity_store.update_instance(instance.id, status=WorkflowInstanceStatus.READY)

        assert updated.status is WorkflowInstanceStatus.READY
        assert updated.definition_key == "k"
        assert updated.execution_handle == "h"

    def test_update_missing_raises(self, entity_store: SqlEntityStore) -> None:
        with pytest.raises(EntityNotFoundError):
            entity_store.update_instance("missing", status=WorkflowInstanceStatus.READY)


class TestJobs:
    def test_update_job(self, entity_store: SqlEntityStore, job: WorkflowJob) -> None:
        updated = entity_store.update_job(job.id, execution_handle="exec-1")

        assert updated.execution_handle == "exec-1"
        assert updated.pre_execution_failure is False
        assert entity_store.update_job(job.id, pre_execution_failure=True).pre_execution_failure is True

    def test_job_logs_keep_order_and_params(self, entity_store: SqlEntityStore, job: WorkflowJob) -> None:
        first = WorkflowJobLog(
            id="log-1",
            workflow_job_id=job.id,
            level=WorkflowLogLevel.ERROR,
            message_key=WorkflowMessageKey.CYCLE_DETECTED,
            message_params=(("workflowNodeId", "b"),),
        )
        second = WorkflowJobLog(
            id="log-2",
            workflow_job_id=job.id,
            level=WorkflowLogLevel.ERROR,
            message_key=WorkflowMessageKey.UNKNOWN_ERROR,
            workflow_node_id="n1",
        )
        entity_store.append_job_log(first)
        entity_store.append_job_log(second)

        assert entity_store.list_job_logs(job.id) == [first, second]

    def test_node_results_round_trip(self, entity_store: SqlEntityStore, job: WorkflowJob) -> None:
        data = NodeData(
            uri="blob://b/k.csv",
            mime=NodeMime(type=WorkflowMimeDataType.CSV, domain=WorkflowDomain.DRAW, domain_model="APPLICANTS"),
        )
        result = WorkflowNodeResult(id="r1", workflow_job_id=job.id, node_id="draw", results=(data,))
        entity_store.create_node_result(result)

        assert entity_store.list_node_results(job.id) == [result]


class TestGraphRecords:
    def test_nodes_and_edges_listed_in_insertion_order(self, entity_store: SqlEntityStore, instance: WorkflowInstance) -> None:
        for node_id in ("c", "a", "b"):
            entity_store.add_node(WorkflowNodeRecord(id=node_id, workflow_instance_id=instance.id, node_type="WorkflowNoopNode"))
        entity_store.add_edge(WorkflowEdgeRecord(id="e2", workflow_instance_id=instance.id, source_node_id="a", target_node_id="b"))
        entity_store.add_edge(WorkflowEdgeRecord(id="e1", workflow_instance_id=instance.id, source_node_id="b", target_node_id="c"))

        assert [n.id for n in entity_store.list_nodes(instance.id)] == ["c", "a", "b"]
        assert [e.id for e in entity_store.list_edges(instance.id)] == ["e2", "e1"]

    def test_documents_filtered_by_node(self, entity_store: SqlEntityStore) -> None:
        for doc_id, node_id in (("d1", "n1"), ("d2", "n2"), ("d3", None)):
            entity_store.create_document(
                DrawDocument(
                    id=doc_id,
                    organization_id="org",
                    name=doc_id,
                    filename=f"{doc_id}.csv",
                    content_type="text/csv",
                    blob_key=f"org/{doc_id}.csv",
                    document_type=DrawDocumentType.APPLICANTS,
                    workflow_node_id=node_id,
                )
            )

        assert [d.id for d in entity_store.list_documents_for_nodes(["n1", "n2"])] == ["d1", "d2"]
        assert entity_store.list_documents_for_nodes([]) == []
        assert entity_store.get_document("d3").workflow_node_id is None


class TestDrawConfiguration:
    def test_sort_put_get_and_replace(self, entity_store: SqlEntityStore) -> None:
        sort = DrawSort(id="s1", name="By age", rules=(DrawSortRule(field=DrawSortField.AGE),))
        entity_store.put_draw_sort(sort)
        assert entity_store.get_draw_sort("s1") == sort

        replaced = DrawSort(
            id="s1",
            name="By points",
            rules=(DrawSortRule(field=DrawSortField.POINT_BALANCE, direction=DrawSortDirection.DESC),),
        )
        entity_store.put_draw_sort(replaced)
        assert entity_store.get_draw_sort("s1") == replaced

    def test_missing_sort_and_config_are_none(self, entity_store: SqlEntityStore) -> None:
        assert entity_store.get_draw_sort("nope") is None
        assert entity_store.get_draw_config_for_node("nope") is None

    def test_config_round_trip_per_node(self, entity_store: SqlEntityStore) -> None:
        config = DrawConfig(
            id="cfg",
            name="Spring",
            sort_id="s1",
            quota_rule_flags=(QuotaRule.NON_RESIDENT_CAP_ENFORCEMENT,),
            applicants=("101", "102"),
        )
        entity_store.put_draw_config("draw-node", config)

        assert entity_store.get_draw_config_for_node("draw-node") == config

        entity_store.put_draw_config("draw-node", config.model_copy(update={"name": "Autumn"}))
        loaded = entity_store.get_draw_config_for_node("draw-node")
        assert loaded is not None
        assert loaded.name == "Autumn"
