"""Scopes, their indices, listeners and the expressions evaluated in them."""

from __future__ import annotations

import enum
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from scopestate.scope_graph import ScopeGraph


class ScopeGraphError(Exception):
    """Raised when the scope graph cannot perform an operation."""


@dataclass(frozen=True, order=True)
class ScopeIndex:
    """Identifier of a scope within a scope graph."""

    value: int

    def __repr__(self) -> str:
        return f"ScopeIndex({self.value})"

    def advanced(self) -> ScopeIndex:
        """The index following this one."""
        return ScopeIndex(self.value + 1)


class _Kind(enum.Enum):
    LITERAL = "literal"
    VAR_REF = "var_ref"
    CONCAT = "concat"


@dataclass(frozen=True)
class Expression:
    """A small expression: a literal, a variable reference, or a concatenation."""

    kind: _Kind
    value: str = ""
    parts: tuple[Expression, ...] = ()

    @classmethod
    def literal(cls, value: str) -> Expression:
        return cls(_Kind.LITERAL, value=str(value))

    @classmethod
    def var_ref(cls, name: str) -> Expression:
        return cls(_Kind.VAR_REF, value=name)

    @classmethod
    def concat(cls, *parts: Expression) -> Expression:
        return cls(_Kind.CONCAT, parts=tuple(parts))

    def __repr__(self) -> str:
        if self.kind is _Kind.LITERAL:
            return f"Literal({self.value!r})"
        if self.kind is _Kind.VAR_REF:
            return f"VarRef({self.value})"
        return "Concat(" + ", ".join(repr(part) for part in self.parts) + ")"

    def var_refs(self) -> list[str]:
        """Names of all variables referenced, in order of appearance."""
        if self.kind is _Kind.VAR_REF:
            return [self.value]
        return [name for part in self.parts for name in part.var_refs()]

    def references_var(self, name: str) -> bool:
        return name in self.var_refs()

    def evaluate(self, values: Mapping[str, Any]) -> Any:
        """Evaluate with the given variable values; unknown variables raise ``ScopeGraphError``."""
        if self.kind is _Kind.LITERAL:
            return self.value
        if self.kind is _Kind.VAR_REF:
            try:
                return values[self.value]
            except KeyError:
                raise ScopeGraphError(f"Unknown variable {self.value}") from None
        return "".join(str(part.evaluate(values)) for part in self.parts)


@dataclass(eq=False)
class Listener:
    """A callback run with the current values of ``needed_variables`` whenever one changes."""

    needed_variables: list[str]
    f: Callable[[ScopeGraph, dict[str, Any]], None]

    def __repr__(self) -> str:
        return f"Listener(needed_variables={self.needed_variables!r}, f='function')"


@dataclass
class Scope:
    """A set of variables, the listeners watching them and the scope that created it.

    ``listeners`` may name variables that live in a superscope rather than here.
    """

    name: str
    ancestor: ScopeIndex | None
    data: dict[str, Any]
    listeners: dict[str, list[Listener]] = field(default_factory=dict)
    node_index: ScopeIndex = field(default_factory=lambda: ScopeIndex(0))