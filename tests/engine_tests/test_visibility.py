"""
Collapse and Expand Tests

AXIOMS UNDER TEST:
==================
- Each section starts with its own collapse policy
- A node is hidden exactly when one of its ancestors is collapsed
- Visibility changes reset the layout and never touch the selection
- Selecting a hidden node, edge or issue reveals what it targets
"""

from dataclasses import replace

import pytest

from resource_graph.contracts import (
    LayoutState, NotCollapsible, NotFound, Position, ViewSection, Viewport,
    edge_id, node_id, resource_id,
)
from resource_graph.core.selection import select_edge, select_issue, select_resource
from resource_graph.core.store import build_store
from resource_graph.core.tagging import tag_environment
from resource_graph.core.visibility import collapse_all, expand_all, toggle_node_collapsed
from resource_graph.temporal.layout import update_layout

from .fixtures import (
    ACCOUNT, BLOB, BUCKET, CLUSTER, FUNCTION, ORG, REPO, ROLE, SECRET, USER,
    VAULT_SECRET, WINDOW, assert_invariants, create_query, create_store,
)


VAULT = resource_id(("Vault", "kv"))
PARENTS = {node_id(rid) for rid in (ACCOUNT, ORG, REPO, VAULT, CLUSTER)}
ROOTS = {node_id(rid) for rid in (ACCOUNT, ORG, SECRET, VAULT, CLUSTER)}


def visible(state):
    return {nid for nid, node in state.nodes.items() if not node.hidden}


def collapsed(state):
    return {nid for nid, node in state.nodes.items() if node.collapsed}


def assert_visibility(state):
    """Hidden flags follow the collapsed flags of the ancestors."""
    for nid, node in state.nodes.items():
        if node.collapsed:
            assert node.num_children > 0, f"Leaf {nid} collapsed"

        parent, ancestor_collapsed = node.parent_id, False
        while parent is not None:
            ancestor_collapsed = ancestor_collapsed or state.nodes[parent].collapsed
            parent = state.nodes[parent].parent_id
        assert node.hidden == ancestor_collapsed, f"Node {nid} hidden flag out of sync"


# =============================================================================
# INITIAL STATE
# =============================================================================

class TestInitialCollapse:

    def test_child_counts(self):
        store = create_store()

        assert store.nodes[node_id(ACCOUNT)].num_children == 2
        assert store.nodes[node_id(CLUSTER)].num_children == 1
        assert store.nodes[node_id(BLOB)].num_children == 0

    def test_secrets_start_expanded(self):
        store = create_store(ViewSection.SECRETS)

        assert collapsed(store) == set()
        assert visible(store) == set(store.nodes)

    def test_inventory_starts_collapsed(self):
        store = create_store(ViewSection.INVENTORY)

        assert collapsed(store) == PARENTS
        assert visible(store) == ROOTS
        assert_visibility(store)

    def test_environments_open_path_to_tagged_resources(self):
        query = create_query()
        query = replace(query, resources=tuple(
            replace(r, environments=("qa",)) if r.id == BLOB else r for r in query.resources
        ))
        store = build_store(query, ViewSection.ENVIRONMENTS, WINDOW)

        assert collapsed(store) == {node_id(ACCOUNT), node_id(VAULT), node_id(CLUSTER)}
        assert {node_id(USER), node_id(REPO), node_id(BLOB)} <= visible(store)
        assert node_id(ROLE) not in visible(store)
        assert_visibility(store)


# =============================================================================
# ACTIONS
# =============================================================================

class TestCollapseAll:

    def test_collapses_every_parent(self):
        state = collapse_all(create_store())

        assert collapsed(state) == PARENTS
        assert visible(state) == ROOTS
        assert_visibility(state)

    def test_resets_layout_and_requests_fit(self):
        laid_out = update_layout(create_store(), {})
        state = collapse_all(laid_out)

        assert state.layout_state == LayoutState.NOT_LAID_OUT
        assert state.fit_view_after_layout is True

    def test_already_collapsed_is_identity(self):
        state = create_store(ViewSection.INVENTORY)
        assert collapse_all(state) is state

    def test_selection_untouched(self):
        state = select_resource(create_store(), node_id(ROLE))
        collapsed_state = collapse_all(state)

        assert collapsed_state.selection is state.selection
        assert collapsed_state.nodes[node_id(ROLE)].selected is True
        assert_invariants(collapsed_state)


class TestExpandAll:

    def test_shows_every_node(self):
        state = expand_all(create_store(ViewSection.INVENTORY))

        assert collapsed(state) == set()
        assert visible(state) == set(state.nodes)
        assert state.layout_state == LayoutState.NOT_LAID_OUT

    def test_nothing_collapsed_is_identity(self):
        state = create_store(ViewSection.SECRETS)
        assert expand_all(state) is state


class TestToggleNodeCollapsed:

    def test_expand_shows_direct_children_only(self):
        state = toggle_node_collapsed(create_store(ViewSection.INVENTORY), node_id(ORG))

        assert node_id(ORG) not in collapsed(state)
        assert {node_id(USER), node_id(REPO)} <= visible(state)
        # REPO is still collapsed
        assert node_id(BLOB) not in visible(state)
        assert_visibility(state)

    def test_nested_collapse_survives_parent_toggle(self):
        state = create_store()
        state = toggle_node_collapsed(state, node_id(ORG))
        assert node_id(BLOB) not in visible(state)

        state = toggle_node_collapsed(state, node_id(REPO))
        state = toggle_node_collapsed(state, node_id(ORG))

        assert {node_id(USER), node_id(REPO)} <= visible(state)
        assert node_id(BLOB) not in visible(state)
        assert_visibility(state)

    def test_resets_layout_without_fit_request(self):
        laid_out = update_layout(create_store(ViewSection.INVENTORY), {})
        state = toggle_node_collapsed(laid_out, node_id(ACCOUNT))

        assert state.layout_state == LayoutState.NOT_LAID_OUT
        assert state.fit_view_after_layout is False
        assert node_id(ROLE) in visible(state)
        # FUNCTION lives under the still collapsed cluster
        assert node_id(FUNCTION) not in visible(state)

    def test_leaf_is_not_collapsible(self):
        state = create_store()
        with pytest.raises(NotCollapsible) as exc_info:
            toggle_node_collapsed(state, node_id(BLOB))
        assert ("id", node_id(BLOB)) in exc_info.value.error.context

    def test_unknown_node(self):
        with pytest.raises(NotFound):
            toggle_node_collapsed(create_store(), "node_missing")


# =============================================================================
# SELECTION REVEALS HIDDEN TARGETS
# =============================================================================

class TestSelectionReveals:

    def test_select_hidden_resource(self):
        laid_out = update_layout(create_store(ViewSection.INVENTORY), {})
        state = select_resource(laid_out, node_id(BLOB))

        assert node_id(BLOB) in visible(state)
        assert {node_id(ORG), node_id(REPO)}.isdisjoint(collapsed(state))
        # Siblings along the opened path are shown as well
        assert node_id(USER) in visible(state)
        assert node_id(ROLE) not in visible(state)
        assert state.layout_state == LayoutState.NOT_LAID_OUT
        assert_visibility(state)
        assert_invariants(state)

    def test_select_visible_resource_keeps_layout(self):
        laid_out = update_layout(create_store(ViewSection.INVENTORY), {})
        state = select_resource(laid_out, node_id(ACCOUNT))

        assert state.layout_state == LayoutState.LAID_OUT
        assert visible(state) == ROOTS

    def test_select_edge_reveals_endpoints(self):
        state = select_edge(create_store(ViewSection.INVENTORY), edge_id(FUNCTION, BUCKET))

        assert {node_id(FUNCTION), node_id(BUCKET)} <= visible(state)
        assert state.layout_state == LayoutState.NOT_LAID_OUT
        assert_visibility(state)
        assert_invariants(state)

    def test_select_issue_reveals_references(self):
        state = collapse_all(create_store(ViewSection.SECRETS))
        state = select_issue(state, f"multiple-helds-{node_id(SECRET)}")

        assert {node_id(SECRET), node_id(VAULT_SECRET), node_id(BLOB)} <= visible(state)
        assert_visibility(state)
        assert_invariants(state)


class TestVisibilityElsewhere:

    def test_hidden_nodes_are_not_framed(self):
        state = update_layout(create_store(ViewSection.INVENTORY), {
            node_id(ACCOUNT): Position(0.0, 0.0),
            node_id(ROLE): Position(500.0, 500.0),
        })

        assert state.viewport == Viewport(0.0, 0.0, 0.0, 0.0)

    def test_tagging_keeps_visibility(self):
        state = tag_environment(create_store(ViewSection.INVENTORY), BUCKET, "qa")

        assert collapsed(state) == PARENTS
        assert node_id(BUCKET) not in visible(state)
