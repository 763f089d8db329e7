"""The raw graph of scopes and the relations between them.

Unlike the public scope graph, this structure may be briefly inconsistent while
changes are being made; ``validate`` checks that it is consistent again.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from scopestate.one_to_n_map import OneToNElementsMap, RelationError
from scopestate.scope import Expression, Scope, ScopeGraphError, ScopeIndex

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProvidedAttr:
    """An ancestor provides attribute ``attr_name``, computed by ``expression``, to a descendant."""

    attr_name: str
    expression: Expression


@dataclass
class Inherits:
    """A subscope inherits from its superscope and references these variables from it."""

    references: set[str] = field(default_factory=set)


def _set_repr(values: set[str]) -> str:
    return "{" + ", ".join(repr(value) for value in sorted(values)) + "}"


class ScopeGraphInternal:
    """Scopes keyed by index, plus hierarchy (ancestor) and inheritance (superscope) relations."""

    def __init__(self) -> None:
        self.last_index = ScopeIndex(0)
        self.scopes: dict[ScopeIndex, Scope] = {}
        # Edges from ancestors to descendants.
        self.hierarchy_relations: OneToNElementsMap[ScopeIndex, list[ProvidedAttr]] = OneToNElementsMap()
        # Edges from superscopes to subscopes.
        self.inheritance_relations: OneToNElementsMap[ScopeIndex, Inherits] = OneToNElementsMap()

    def __repr__(self) -> str:
        return f"ScopeGraphInternal(scopes={self.scopes!r})"

    def clear(self) -> None:
        """Drop all scopes and relations. Indices keep counting from where they were."""
        self.scopes.clear()
        self.inheritance_relations.clear()
        self.hierarchy_relations.clear()

    def add_scope(self, scope: Scope) -> ScopeIndex:
        """Store ``scope`` under a fresh index, linking it to its ancestor if it has one."""
        index = self.last_index
        if scope.ancestor is not None:
            try:
                self.hierarchy_relations.insert(index, scope.ancestor, [])
            except RelationError:
                pass
        self.scopes[index] = scope
        self.last_index = self.last_index.advanced()
        return index

    def descendant_edges_of(self, index: ScopeIndex) -> list[tuple[ScopeIndex, list[ProvidedAttr]]]:
        return self.hierarchy_relations.children_edges_of(index)

    def subscope_edges_of(self, index: ScopeIndex) -> list[tuple[ScopeIndex, Inherits]]:
        return self.inheritance_relations.children_edges_of(index)

    def superscope_edge_of(self, index: ScopeIndex) -> tuple[ScopeIndex, Inherits] | None:
        return self.inheritance_relations.parent_edge_of(index)

    def remove_scope(self, index: ScopeIndex) -> None:
        """Remove a scope together with all of its descendants."""
        self.scopes.pop(index, None)
        for descendant in list(self.hierarchy_relations.parent_to_children.get(index, ())):
            self.remove_scope(descendant)
        self.hierarchy_relations.remove(index)
        self.inheritance_relations.remove(index)

    def add_inheritance_relation(self, a: ScopeIndex, b: ScopeIndex) -> None:
        """Make ``a`` a subscope of ``b``. Raises ``RelationError`` if ``a`` already has a superscope."""
        self.inheritance_relations.insert(a, b, Inherits())

    def register_scope_provides_attr(self, a: ScopeIndex, b: ScopeIndex, edge: ProvidedAttr) -> None:
        """Register that scope ``a`` provides an attribute to its descendant ``b``."""
        entry = self.hierarchy_relations.parent_edge_of(b)
        if entry is None:
            logger.error(
                "Tried to register a provided attribute edge between two scopes "
                "that are not connected in the hierarchy map"
            )
            return
        superscope, edges = entry
        if superscope != a:
            raise ScopeGraphError(
                "Hierarchy map had a different superscope for a given scope than what was given here"
            )
        edges.append(edge)

    def scope_at(self, index: ScopeIndex) -> Scope | None:
        return self.scopes.get(index)

    def subscopes_referencing(self, index: ScopeIndex, var_name: str) -> list[ScopeIndex]:
        """Subscopes of ``index`` whose inheritance edge references ``var_name`` directly."""
        return [
            scope
            for scope, edge in self.inheritance_relations.children_edges_of(index)
            if var_name in edge.references
        ]

    def superscope_of(self, index: ScopeIndex) -> ScopeIndex | None:
        return self.inheritance_relations.parent_of(index)

    def scopes_getting_attr_using(self, index: ScopeIndex, var_name: str) -> list[tuple[ScopeIndex, ProvidedAttr]]:
        """Descendants that ``index`` provides an attribute to whose expression uses ``var_name``."""
        return [
            (descendant, edge)
            for descendant, edges in self.hierarchy_relations.children_edges_of(index)
            for edge in edges
            if edge.expression.references_var(var_name)
        ]

    def add_reference_to_inherits_edge(self, subscope: ScopeIndex, var_name: str) -> None:
        """Record that ``subscope`` references ``var_name`` from its direct superscope."""
        entry = self.inheritance_relations.parent_edge_of(subscope)
        if entry is None:
            raise ScopeGraphError(f"Given scope {subscope!r} does not have any superscope")
        entry[1].references.add(var_name)

    def validate(self) -> None:
        """Raise ``ScopeGraphError`` if the relations disagree with the stored scopes."""
        for child, (parent, _edges) in self.hierarchy_relations.child_to_parent.items():
            if child not in self.scopes:
                raise ScopeGraphError("hierarchy_relations lists key that is not in graph")
            if parent not in self.scopes:
                raise ScopeGraphError("hierarchy_relations values lists scope that is not in graph")

        inheritance = self.inheritance_relations.child_to_parent
        for child, (parent_index, edge) in inheritance.items():
            if child not in self.scopes:
                raise ScopeGraphError("inheritance_relations lists key that is not in graph")
            parent = self.scopes.get(parent_index)
            if parent is None:
                raise ScopeGraphError("inheritance_relations values lists scope that is not in graph")
            parent_edge = inheritance.get(parent_index)
            for var in edge.references:
                accessible = var in parent.data or (parent_edge is not None and var in parent_edge[1].references)
                if not accessible:
                    raise ScopeGraphError("scope inherited variable that parent scope doesn't have access to")

        try:
            self.hierarchy_relations.validate()
            self.inheritance_relations.validate()
        except RelationError as err:
            raise ScopeGraphError(str(err)) from err

    def visualize(self) -> str:
        """Render the graph in Graphviz dot format."""
        lines = ["digraph {"]
        for index, scope in self.scopes.items():
            data = [(name, value) for name, value in scope.data.items() if not name.startswith("EWW")]
            listeners = [
                f"on {name}: {[repr(list(listener.needed_variables)) for listener in registered]!r}"
                for name, registered in scope.listeners.items()
            ]
            details = f"data: {data!r}, listeners: {listeners!r}".replace('"', "'")
            lines.append(f'  "{index!r}"[label="{scope.name}\\n{details}"]')
            if scope.ancestor is not None:
                lines.append(f'  "{scope.ancestor!r}" -> "{index!r}"[label="ancestor"]')

        for child, (parent, edges) in self.hierarchy_relations.child_to_parent.items():
            for edge in edges:
                label = f":{edge.attr_name} `{edge.expression!r}`".replace('"', "'")
                lines.append(f'  "{parent!r}" -> "{child!r}" [color = "red", label = "{label}"]')

        for child, (parent, edge) in self.inheritance_relations.child_to_parent.items():
            label = f"inherits({_set_repr(edge.references)})".replace('"', "'")
            lines.append(f'  "{child!r}" -> "{parent!r}" [color = "blue", label = "{label}"]')

        return "\n".join(lines) + "\n}"