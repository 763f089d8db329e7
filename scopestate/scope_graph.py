"""A graph of scopes that share variables and react to their changes.

Each scope may inherit from one superscope and so see its variables. Each scope
may also have an ancestor, the scope it was created from, which can give it
attributes computed from the ancestor's variables. When a variable changes, the
listeners and the attributes that depend on it are updated.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Any

from scopestate.graph_internal import ProvidedAttr, ScopeGraphInternal
from scopestate.one_to_n_map import RelationError
from scopestate.scope import Expression, Listener, Scope, ScopeGraphError, ScopeIndex

logger = logging.getLogger(__name__)

_UPDATE_ERROR = "Error while updating UI after state change"


@dataclass(frozen=True)
class RemoveScope:
    """Request to remove a scope, and with it all of its descendants."""

    scope_index: ScopeIndex


class ScopeGraph:
    """Scopes linked by inheritance (superscope) and hierarchy (ancestor) relations.

    Invariants:

    - every scope inherits from zero or one scopes, and there are no inheritance loops;
    - a scope may provide any number of attributes to any number of descendants;
    - inheritance is transitive, and every step of a transitive reference is
      recorded on the inheritance edge it passes through.
    """

    def __init__(
        self,
        global_vars: Mapping[str, Any],
        event_sender: Callable[[RemoveScope], None] | None = None,
    ) -> None:
        self.graph = ScopeGraphInternal()
        self.event_sender = event_sender
        self.root_index = self._add_global_scope(global_vars)

    def __repr__(self) -> str:
        return f"ScopeGraph(root_index={self.root_index!r}, graph={self.graph!r})"

    def _add_global_scope(self, global_vars: Mapping[str, Any]) -> ScopeIndex:
        root_index = self.graph.add_scope(Scope(name="global", ancestor=None, data=dict(global_vars)))
        self.graph.scopes[root_index].node_index = root_index
        return root_index

    def update_global_value(self, var_name: str, value: Any) -> None:
        self.update_value(self.root_index, var_name, value)

    def handle_event(self, event: RemoveScope) -> None:
        if isinstance(event, RemoveScope):
            self.remove_scope(event.scope_index)
        else:
            raise ScopeGraphError(f"Unknown scope graph event {event!r}")

    def clear(self, global_vars: Mapping[str, Any]) -> None:
        """Remove all state and start again with a fresh global scope."""
        self.graph.clear()
        self.root_index = self._add_global_scope(global_vars)

    def remove_scope(self, scope_index: ScopeIndex) -> None:
        self.graph.remove_scope(scope_index)

    def validate(self) -> None:
        self.graph.validate()

    def visualize(self) -> str:
        return self.graph.visualize()

    def currently_used_globals(self) -> set[str]:
        return self.variables_used_in_self_or_subscopes_of(self.root_index)

    def currently_unused_globals(self) -> set[str]:
        return set(self.global_scope().data) - self.currently_used_globals()

    def scope_at(self, index: ScopeIndex) -> Scope | None:
        return self.graph.scope_at(index)

    def global_scope(self) -> Scope:
        scope = self.graph.scope_at(self.root_index)
        if scope is None:
            raise ScopeGraphError("No root scope in graph")
        return scope

    def evaluate_in_scope(self, index: ScopeIndex, expr: Expression) -> Any:
        """Evaluate ``expr`` with the variables visible from scope ``index``.

        Raises ``ScopeGraphError`` if a referenced variable is not in scope. Any
        other evaluation failure is logged and yields an empty string.
        """
        values = self.lookup_variables_in_scope(index, expr.var_refs())
        try:
            return expr.evaluate(values)
        except Exception:
            logger.exception("Failed to evaluate %r", expr)
            return ""

    def register_new_scope(
        self,
        name: str,
        superscope: ScopeIndex | None,
        calling_scope: ScopeIndex,
        attributes: Mapping[str, Expression],
    ) -> ScopeIndex:
        """Add a scope created from ``calling_scope``, receiving ``attributes`` from it."""
        # Evaluate everything first so that a failure leaves the graph untouched.
        scope_variables = {
            attr_name: self.evaluate_in_scope(calling_scope, expression)
            for attr_name, expression in attributes.items()
        }

        new_index = self.graph.add_scope(Scope(name=name, ancestor=calling_scope, data=scope_variables))
        if superscope is not None:
            self.graph.add_inheritance_relation(new_index, superscope)
        self.graph.scopes[new_index].node_index = new_index

        for attr_name, expression in attributes.items():
            var_refs = expression.var_refs()
            if var_refs:
                self.graph.register_scope_provides_attr(
                    calling_scope, new_index, ProvidedAttr(attr_name=attr_name, expression=expression)
                )
                for used_variable in var_refs:
                    self.register_scope_referencing_variable(calling_scope, used_variable)

        self.validate()
        return new_index

    def _call_listener(self, listener: Listener, values: dict[str, Any]) -> None:
        try:
            listener.f(self, values)
        except Exception:
            logger.exception(_UPDATE_ERROR)

    def register_listener(self, scope_index: ScopeIndex, listener: Listener) -> None:
        """Register ``listener`` in a scope and call it once right away.

        A listener that needs no variables is only called, not registered.
        """
        if not listener.needed_variables:
            self._call_listener(listener, {})
            return

        for required_var in listener.needed_variables:
            self.register_scope_referencing_variable(scope_index, required_var)
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise ScopeGraphError("Scope not in graph")
        for required_var in listener.needed_variables:
            scope.listeners.setdefault(required_var, []).append(listener)

        values = self.lookup_variables_in_scope(scope_index, listener.needed_variables)
        self._call_listener(listener, values)
        self.validate()

    def register_scope_referencing_variable(self, scope_index: ScopeIndex, var_name: str) -> None:
        """Record that a scope uses ``var_name``, along every inheritance edge it passes through."""
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise ScopeGraphError("scope not in graph")
        if var_name in scope.data:
            return
        superscope = self.graph.superscope_of(scope_index)
        if superscope is None:
            raise ScopeGraphError(f"Variable {var_name} not in scope")
        self.graph.add_reference_to_inherits_edge(scope_index, var_name)
        self.register_scope_referencing_variable(superscope, var_name)

    def update_value(self, scope_index: ScopeIndex, var_name: str, value: Any) -> None:
        """Set ``var_name`` in the closest scope defining it, then notify dependents."""
        owner = self.find_scope_with_variable(scope_index, var_name)
        if owner is None:
            raise ScopeGraphError(f"Variable {var_name} not in scope")
        self.graph.scopes[owner].data[var_name] = value
        self.notify_value_changed(owner, var_name)
        self.graph.validate()

    def notify_value_changed(self, scope_index: ScopeIndex, var_name: str) -> None:
        """Update attributes, listeners and subscopes that depend on ``var_name``."""
        for referencing_scope, edge in list(self.graph.scopes_getting_attr_using(scope_index, var_name)):
            try:
                new_value = self.evaluate_in_scope(scope_index, edge.expression)
                self.update_value(referencing_scope, edge.attr_name, new_value)
            except (ScopeGraphError, RelationError):
                logger.exception("Failed to update attribute %s", edge.attr_name)

        self._call_listeners_in_scope(scope_index, var_name)

        for subscope in self.graph.subscopes_referencing(scope_index, var_name):
            self.notify_value_changed(subscope, var_name)

    def _call_listeners_in_scope(self, scope_index: ScopeIndex, var_name: str) -> None:
        scope = self.graph.scope_at(scope_index)
        if scope is None:
            raise ScopeGraphError("Scope not in graph")
        for listener in list(scope.listeners.get(var_name, ())):
            values = self.lookup_variables_in_scope(scope_index, listener.needed_variables)
            self._call_listener(listener, values)

    def find_scope_with_variable(self, index: ScopeIndex, var_name: str) -> ScopeIndex | None:
        """The closest scope, following superscopes from ``index``, that defines ``var_name``."""
        current: ScopeIndex | None = index
        while current is not None:
            scope = self.graph.scope_at(current)
            if scope is None:
                return None
            if var_name in scope.data:
                return current
            current = self.graph.superscope_of(current)
        return None

    def lookup_variable_in_scope(self, index: ScopeIndex, var_name: str) -> Any | None:
        """The value of ``var_name`` as seen from ``index``, or None if it is not visible."""
        owner = self.find_scope_with_variable(index, var_name)
        if owner is None:
            return None
        return self.graph.scopes[owner].data[var_name]

    def variables_used_in_self_or_subscopes_of(self, index: ScopeIndex) -> set[str]:
        """Variables used by a scope or its descendants; empty for an unknown index."""
        scope = self.scope_at(index)
        if scope is None:
            return set()

        variables = set(scope.listeners)
        descendant_edges = self.graph.descendant_edges_of(index)
        for _, provided_attrs in descendant_edges:
            for attr in provided_attrs:
                variables.update(attr.expression.var_refs())
        for _, edge in self.graph.subscope_edges_of(index):
            variables.update(edge.references)

        superscope_edge = self.graph.superscope_edge_of(index)
        if superscope_edge is not None:
            variables.update(superscope_edge[1].references)

        for descendant, _ in descendant_edges:
            used_in_descendant = self.variables_used_in_self_or_subscopes_of(descendant)
            descendant_scope = self.scope_at(descendant)
            shadowed = set(descendant_scope.data) if descendant_scope is not None else set()
            variables.update(used_in_descendant - shadowed)

        return variables

    def lookup_variables_in_scope(self, scope_index: ScopeIndex, var_names: Iterable[str]) -> dict[str, Any]:
        """Values of all ``var_names`` as seen from ``scope_index``; raises if any is missing."""
        values: dict[str, Any] = {}
        for name in var_names:
            owner = self.find_scope_with_variable(scope_index, name)
            if owner is None:
                raise ScopeGraphError(f"Variable {name} neither in scope nor any superscope")
            values[name] = self.graph.scopes[owner].data[name]
        return values