import pytest

from scopestate.graph_internal import Inherits, ProvidedAttr, ScopeGraphInternal
from scopestate.scope import Expression, Scope, ScopeGraphError, ScopeIndex


def _graph_with_root():
    graph = ScopeGraphInternal()
    root = graph.add_scope(Scope("global", None, {"the_var": "hi", "other": "x"}))
    return graph, root


def test_add_scope_assigns_consecutive_indices():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    assert root == ScopeIndex(0)
    assert child == root.advanced()
    assert graph.scope_at(child).name == "child"


def test_add_scope_links_ancestor():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    assert graph.descendant_edges_of(root) == [(child, [])]
    assert graph.hierarchy_relations.parent_of(child) == root


def test_clear_keeps_index_counter():
    graph, root = _graph_with_root()
    graph.clear()
    assert graph.scope_at(root) is None
    new_root = graph.add_scope(Scope("global", None, {}))
    assert new_root == root.advanced()


def test_inheritance_relation_and_superscope():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    graph.add_inheritance_relation(child, root)
    assert graph.superscope_of(child) == root
    assert graph.superscope_edge_of(child) == (root, Inherits())
    assert graph.subscope_edges_of(root) == [(child, Inherits())]
    assert graph.superscope_of(root) is None


def test_add_reference_to_inherits_edge():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    graph.add_inheritance_relation(child, root)
    graph.add_reference_to_inherits_edge(child, "the_var")
    assert graph.superscope_edge_of(child)[1].references == {"the_var"}
    assert graph.subscopes_referencing(root, "the_var") == [child]
    assert graph.subscopes_referencing(root, "other") == []


def test_add_reference_without_superscope_raises():
    graph, root = _graph_with_root()
    with pytest.raises(ScopeGraphError):
        graph.add_reference_to_inherits_edge(root, "the_var")


def test_register_scope_provides_attr():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {"arg": "hi"}))
    attr = ProvidedAttr("arg", Expression.var_ref("the_var"))
    graph.register_scope_provides_attr(root, child, attr)
    assert graph.descendant_edges_of(root) == [(child, [attr])]
    assert graph.scopes_getting_attr_using(root, "the_var") == [(child, attr)]
    assert graph.scopes_getting_attr_using(root, "other") == []


def test_register_provides_attr_with_wrong_ancestor_raises():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    grandchild = graph.add_scope(Scope("grandchild", child, {}))
    with pytest.raises(ScopeGraphError):
        graph.register_scope_provides_attr(root, grandchild, ProvidedAttr("a", Expression.literal("x")))


def test_register_provides_attr_unconnected_is_ignored():
    graph, root = _graph_with_root()
    loose = graph.add_scope(Scope("loose", None, {}))
    graph.register_scope_provides_attr(root, loose, ProvidedAttr("a", Expression.var_ref("the_var")))
    assert graph.scopes_getting_attr_using(root, "the_var") == []


def test_remove_scope_removes_descendants():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    grandchild = graph.add_scope(Scope("grandchild", child, {}))
    graph.add_inheritance_relation(child, root)
    graph.add_inheritance_relation(grandchild, root)
    graph.remove_scope(child)
    assert graph.scope_at(child) is None
    assert graph.scope_at(grandchild) is None
    assert graph.scope_at(root) is not None
    assert graph.descendant_edges_of(root) == []
    graph.validate()
    assert graph.subscope_edges_of(root) == [] or all(
        graph.scope_at(index) is not None for index, _ in graph.subscope_edges_of(root)
    )


def test_validate_accepts_consistent_graph():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    grandchild = graph.add_scope(Scope("grandchild", child, {}))
    graph.add_inheritance_relation(child, root)
    graph.add_inheritance_relation(grandchild, child)
    graph.add_reference_to_inherits_edge(grandchild, "the_var")
    graph.add_reference_to_inherits_edge(child, "the_var")
    graph.validate()
    assert graph.superscope_edge_of(grandchild)[1].references == {"the_var"}


def test_validate_rejects_inaccessible_inherited_variable():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    grandchild = graph.add_scope(Scope("grandchild", child, {}))
    graph.add_inheritance_relation(child, root)
    graph.add_inheritance_relation(grandchild, child)
    graph.add_reference_to_inherits_edge(grandchild, "the_var")
    with pytest.raises(ScopeGraphError):
        graph.validate()


def test_validate_rejects_missing_scope():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {}))
    del graph.scopes[child]
    with pytest.raises(ScopeGraphError):
        graph.validate()


def test_visualize_contains_scopes_and_edges():
    graph, root = _graph_with_root()
    child = graph.add_scope(Scope("child", root, {"arg": "hi"}))
    graph.add_inheritance_relation(child, root)
    graph.register_scope_provides_attr(root, child, ProvidedAttr("arg", Expression.var_ref("the_var")))
    output = graph.visualize()
    assert output.startswith("digraph {\n")
    assert output.endswith("}")
    assert '"ScopeIndex(0)" -> "ScopeIndex(1)"[label="ancestor"]' in output
    assert 'color = "red"' in output
    assert 'color = "blue"' in output
    assert "global" in output and "child" in output


def test_visualize_hides_eww_variables():
    graph = ScopeGraphInternal()
    graph.add_scope(Scope("global", None, {"EWW_TIME": "1", "visible_var": "2"}))
    output = graph.visualize()
    assert "visible_var" in output
    assert "EWW_TIME" not in output