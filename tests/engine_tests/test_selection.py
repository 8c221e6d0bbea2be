"""
Selection Engine Tests

AXIOMS UNDER TEST:
==================
- Every action returns the same snapshot (no-op) or a new one sharing
  untouched fields by reference
- Selection flags and selection sets never disagree
- A selected edge keeps at least one selected endpoint
- A selected issue has every referenced node and edge selected
- Stale ids raise NotFound and produce no new snapshot
"""

from dataclasses import replace
from types import MappingProxyType

import pytest

from resource_graph.contracts import EntityKind, NotFound, ViewSection, edge_id, node_id
from resource_graph.core.selection import (
    clear_selection, deselect_edge, deselect_issue, deselect_resource,
    select_edge, select_issue, select_resource,
)

from .fixtures import (
    A, B, BLOB, BUCKET, C, D, E_AB, E_BC, E_DA, FUNCTION, ROLE, SECRET, USER,
    VAULT_SECRET, assert_invariants, create_simple_store, create_store, issue,
)


# =============================================================================
# SCENARIOS
# =============================================================================

class TestDeselectScenarios:

    def test_deselect_shared_endpoint_keeps_edge_drops_issue(self):
        """Edge survives while B is selected; the issue referencing A does not."""
        shared = issue("shared", resource_ids=[A, B], edge_ids=[E_AB])
        state = select_issue(create_simple_store(shared), "shared")
        assert state.selection.resources >= {A, B}
        assert E_AB in state.selection.edges

        state = deselect_resource(state, A)

        assert state.nodes[A].selected is False
        assert state.edges[E_AB].selected is True
        assert E_AB in state.selection.edges
        assert "shared" not in state.selection.issues
        assert_invariants(state)

    def test_deselect_both_endpoints_drops_edge(self):
        state = select_edge(create_simple_store(), E_AB)

        state = deselect_resource(state, A)
        assert E_AB in state.selection.edges

        state = deselect_resource(state, B)
        assert E_AB not in state.selection.edges
        assert state.edges[E_AB].selected is False
        assert state.edges[E_AB].marker is False
        assert_invariants(state)

    def test_deselect_edge_only_issue(self):
        """Issue referencing only an edge: the edge is cleared whatever its prior state."""
        i = issue("I", edge_ids=[E_AB])
        state = select_issue(create_simple_store(i), "I")
        assert state.edges[E_AB].selected is True

        state = deselect_issue(state, "I")

        assert state.edges[E_AB].selected is False
        assert state.edges[E_AB].marker is False
        assert "I" not in state.selection.issues
        assert_invariants(state)

    def test_deselect_issue_when_edge_already_unselected(self):
        i = issue("I", edge_ids=[E_AB])
        state = create_simple_store(i)

        new_state = deselect_issue(state, "I")

        assert new_state.edges[E_AB].selected is False
        assert "I" not in new_state.selection.issues
        assert_invariants(new_state)

    def test_deselect_issue_forces_shared_references(self):
        """Shared nodes are deselected and the other issue is re-evaluated, not kept."""
        first = issue("first", resource_ids=[A, B], edge_ids=[E_AB])
        second = issue("second", resource_ids=[A])
        unrelated = issue("unrelated", resource_ids=[C])
        state = create_simple_store(first, second, unrelated)
        for issue_id in ("first", "second", "unrelated"):
            state = select_issue(state, issue_id)
        assert state.selection.issues == {"first", "second", "unrelated"}

        state = deselect_issue(state, "first")

        assert A not in state.selection.resources
        assert B not in state.selection.resources
        assert "second" not in state.selection.issues
        assert "unrelated" in state.selection.issues
        assert_invariants(state)

    def test_deselect_issue_prunes_orphaned_edges(self):
        """Edges left without a selected endpoint are deselected too."""
        i = issue("I", resource_ids=[B])
        state = select_resource(create_simple_store(i), B)
        assert state.selection.edges == {E_AB, E_BC}
        assert "I" in state.selection.issues

        state = deselect_issue(state, "I")

        assert state.selection.resources == frozenset()
        assert state.selection.edges == frozenset()
        assert_invariants(state)

    def test_deselect_edge_drops_referencing_issues(self):
        i = issue("I", resource_ids=[A], edge_ids=[E_AB])
        other = issue("other", resource_ids=[D], edge_ids=[E_DA])
        state = create_simple_store(i, other)
        state = select_issue(select_issue(state, "I"), "other")

        state = deselect_edge(state, E_AB)

        assert state.selection.issues == {"other"}
        assert state.selection.resources >= {A, D}
        assert_invariants(state)


# =============================================================================
# IDEMPOTENCE AND REFERENCE PRESERVATION
# =============================================================================

class TestNoOps:

    def test_deselect_resource_twice_is_identity(self):
        state = select_resource(create_simple_store(), A)
        once = deselect_resource(state, A)
        assert deselect_resource(once, A) is once

    def test_deselect_unselected_resource_is_identity(self):
        state = create_simple_store()
        assert deselect_resource(state, A) is state

    def test_deselect_unselected_edge_is_identity(self):
        state = create_simple_store()
        assert deselect_edge(state, E_AB) is state

    def test_select_selected_resource_is_identity(self):
        state = select_resource(create_simple_store(), A)
        assert select_resource(state, A) is state

    def test_select_selected_edge_is_identity(self):
        state = select_edge(create_simple_store(), E_AB)
        assert select_edge(state, E_AB) is state

    def test_select_selected_issue_is_identity(self):
        state = select_issue(create_simple_store(issue("I", resource_ids=[A])), "I")
        assert select_issue(state, "I") is state

    def test_clear_empty_selection_is_identity(self):
        state = create_simple_store()
        assert clear_selection(state) is state


class TestStructuralSharing:

    def test_deselect_resource_replaces_only_selection_paths(self):
        state = select_resource(create_simple_store(), A)
        new_state = deselect_resource(state, A)

        assert new_state.nodes is not state.nodes
        assert new_state.selection is not state.selection
        for name in ("section", "query", "date_filter", "resources", "events",
                     "environments", "resources_environments", "event_chain_index",
                     "issues", "layout_state", "viewport"):
            assert getattr(new_state, name) is getattr(state, name), name

    def test_untouched_nodes_are_shared(self):
        state = create_simple_store()
        new_state = select_resource(state, A, select_edges=False)

        assert new_state.nodes[B] is state.nodes[B]
        assert new_state.edges is state.edges

    def test_deselect_edge_keeps_nodes_map(self):
        state = select_edge(select_resource(create_simple_store(), A, select_edges=False), E_AB)
        new_state = deselect_edge(state, E_AB)

        assert new_state.nodes is state.nodes
        assert new_state.edges[E_AB].selected is False

    def test_previous_snapshot_unchanged(self):
        state = create_simple_store()
        select_resource(state, A)

        assert state.nodes[A].selected is False
        assert state.selection.resources == frozenset()


# =============================================================================
# SELECT ACTIONS
# =============================================================================

class TestSelect:

    def test_select_resource_selects_touching_edges(self):
        state = select_resource(create_simple_store(), A)

        assert state.selection.resources == {A}
        assert state.selection.edges == {E_AB, E_DA}
        assert state.edges[E_AB].marker is True
        assert state.edges[E_BC].selected is False
        assert_invariants(state)

    def test_select_resource_without_edges(self):
        state = select_resource(create_simple_store(), A, select_edges=False)

        assert state.selection.edges == frozenset()
        assert_invariants(state)

    def test_select_edge_selects_both_endpoints_when_none_selected(self):
        state = select_edge(create_simple_store(), E_AB)

        assert state.selection.resources == {A, B}
        assert state.selection.edges == {E_AB}
        assert_invariants(state)

    def test_select_edge_keeps_existing_endpoint(self):
        state = select_resource(create_simple_store(), B, select_edges=False)
        state = select_edge(state, E_AB)

        assert state.selection.resources == {B}
        assert state.selection.edges == {E_AB}
        assert_invariants(state)

    def test_select_edge_selects_chain(self):
        state = select_edge(create_store(ViewSection.INVENTORY), edge_id(USER, ROLE))

        assert state.selection.edges == {edge_id(USER, ROLE), edge_id(ROLE, BUCKET)}
        assert state.selection.resources >= {node_id(USER), node_id(ROLE)}
        assert edge_id(FUNCTION, BUCKET) not in state.selection.edges
        assert_invariants(state)

    def test_select_issue_selects_references(self):
        store = create_store(ViewSection.SECRETS)
        issue_id = f"multiple-helds-{node_id(SECRET)}"

        state = select_issue(store, issue_id)

        assert state.selection.resources == {
            node_id(SECRET), node_id(VAULT_SECRET), node_id(BLOB)
        }
        assert state.selection.edges == {edge_id(VAULT_SECRET, SECRET), edge_id(BLOB, SECRET)}
        # The hardcoded issue is now fully covered as well
        assert state.selection.issues == {
            issue_id, f"hardcoded-secret-value-{edge_id(BLOB, SECRET)}"
        }
        assert_invariants(state)

    def test_select_completes_covered_issues(self):
        i = issue("I", resource_ids=[A, B], edge_ids=[E_AB])
        state = select_resource(create_simple_store(i), A, select_edges=False)
        assert "I" not in state.selection.issues

        state = select_resource(state, B)

        assert "I" in state.selection.issues
        assert_invariants(state)

    def test_select_requests_fit_view(self):
        state = replace(create_simple_store(), fit_view_after_layout=False)
        assert select_resource(state, A).fit_view_after_layout is True
        assert select_resource(state, A, refit_view=False).fit_view_after_layout is False

    def test_clear_selection(self):
        state = select_issue(create_store(), f"multiple-helds-{node_id(SECRET)}")
        state = clear_selection(state)

        assert state.selection.is_empty
        assert not any(node.selected for node in state.nodes.values())
        assert not any(edge.selected for edge in state.edges.values())
        assert_invariants(state)


# =============================================================================
# FAILURES
# =============================================================================

class TestNotFound:

    @pytest.mark.parametrize("action, kind", [
        (deselect_resource, EntityKind.RESOURCE),
        (select_resource, EntityKind.RESOURCE),
        (deselect_edge, EntityKind.EDGE),
        (select_edge, EntityKind.EDGE),
        (deselect_issue, EntityKind.ISSUE),
        (select_issue, EntityKind.ISSUE),
    ])
    def test_unknown_id(self, action, kind):
        state = create_simple_store()
        with pytest.raises(NotFound) as exc_info:
            action(state, "missing")

        assert exc_info.value.kind == kind
        assert exc_info.value.entity_id == "missing"
        assert "missing" in str(exc_info.value)

    def test_issue_with_dangling_reference(self):
        state = create_simple_store(issue("I", resource_ids=[A, "node_gone"]))

        with pytest.raises(NotFound) as exc_info:
            select_issue(state, "I")
        assert exc_info.value.kind == EntityKind.RESOURCE

        with pytest.raises(NotFound):
            deselect_issue(state, "I")

    def test_corrupt_selection_is_reported(self):
        """A selected issue id with no definition is not silently dropped."""
        state = select_resource(create_simple_store(), A)
        corrupt = replace(state, selection=replace(state.selection, issues=frozenset({"ghost"})))

        with pytest.raises(NotFound) as exc_info:
            deselect_resource(corrupt, A)
        assert exc_info.value.kind == EntityKind.ISSUE

    def test_failed_action_leaves_state_untouched(self):
        state = select_resource(create_simple_store(), A)
        before_nodes = dict(state.nodes)

        with pytest.raises(NotFound):
            deselect_edge(state, "missing")

        assert dict(state.nodes) == before_nodes
        assert state.selection.resources == {A}


def test_issues_map_is_never_modified():
    i = issue("I", resource_ids=[A])
    state = create_simple_store(i)
    issues = state.issues

    state = deselect_issue(select_issue(state, "I"), "I")

    assert state.issues is issues
    assert isinstance(state.issues, MappingProxyType)
