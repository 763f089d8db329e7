# scopestate

`scopestate` keeps track of variables that live in nested scopes. It tells the
code that uses them when the values it depends on change.

A scope may **inherit** from one superscope, which gives it access to that
scope's variables. A scope may also be **created by** one ancestor scope. The
ancestor can hand it attributes that are computed from expressions. When a
variable changes, the new value reaches every scope that uses it. Attribute
expressions are evaluated again, and registered listeners are called with the
new values.

The package has no third-party dependencies. The `test` extra installs pytest
for the test suite.

## Modules

### `scopestate.scope_graph`

**`ScopeGraph(global_vars, event_sender=None)`** is the public graph. It starts
with a scope named `"global"` that holds `global_vars`. The index of that scope
is `root_index`.

Building the graph:

- `register_new_scope(name, superscope, calling_scope, attributes)` adds a scope
  and returns its index.
  - `calling_scope` becomes the ancestor of the new scope.
  - `superscope`, if it is not `None`, is the scope the new one inherits from.
  - `attributes` maps attribute names to `Expression`s. They are evaluated in
    the calling scope.
  - Attributes that refer to variables keep the new scope up to date when those
    variables change.
- `register_listener(scope_index, listener)` stores a `Listener` and calls it
  once right away.
  - A listener with no needed variables is only called, never stored.
- `register_scope_referencing_variable(scope_index, var_name)` records that a
  scope uses a variable. The reference is recorded on every inheritance edge up
  to the scope that defines the variable.

Changing values:

- `update_value(scope_index, var_name, value)` sets the variable in the closest
  scope that defines it, then calls `notify_value_changed`.
- `update_global_value(var_name, value)` does the same, starting from the
  global scope.

Looking up values:

- `find_scope_with_variable(index, var_name)` and
  `lookup_variable_in_scope(index, var_name)` return `None` when the variable
  is not visible.
- `lookup_variables_in_scope(scope_index, var_names)` raises `ScopeGraphError`
  when any of the variables is missing.
- `evaluate_in_scope(index, expr)` evaluates an expression against the visible
  variables.

Seeing which variables are used:

- `variables_used_in_self_or_subscopes_of(index)`
- `currently_used_globals()`
- `currently_unused_globals()`

Maintenance:

- `remove_scope(scope_index)` removes a scope and all of its descendants.
- `handle_event(RemoveScope(index))` does the same.
- `clear(global_vars)` starts again with a fresh global scope.
- `validate()` raises `ScopeGraphError` if the graph is inconsistent.
- `visualize()` returns the graph as a Graphviz `digraph` text.
- `scope_at(index)` and `global_scope()` return a `Scope`.

**`RemoveScope(scope_index)`** is the event that `handle_event` acts on.

### `scopestate.scope`

- `ScopeIndex(value)` identifies a scope. `advanced()` returns the next index.
- `Scope` holds the scope's `name`, `ancestor`, `data`, `listeners` and
  `node_index`.
- `Listener(needed_variables, f)` wraps a callback. The callback is called as
  `f(graph, values)`, where `values` maps each needed variable to its current
  value.
- `Expression` is one of three kinds:
  - a literal: `Expression.literal(value)`
  - a variable reference: `Expression.var_ref(name)`
  - a string concatenation: `Expression.concat(*parts)`

  It offers `var_refs()`, `references_var(name)` and `evaluate(values)`.
- `ScopeGraphError` is the error raised by the graph.

### `scopestate.graph_internal`

This module holds the raw storage behind `ScopeGraph`:

- `ScopeGraphInternal`
- `ProvidedAttr`, an ancestor-to-descendant attribute edge
- `Inherits`, a subscope-to-superscope edge together with the variables it
  references

### `scopestate.one_to_n_map`

`OneToNElementsMap` is a map of relations where each child has one parent and a
parent may have many children. Each edge carries data. It offers `insert`,
`remove`, `parent_of`, `parent_edge_of`, `children_of`, `children_edges_of`,
`clear` and `validate`. It raises `RelationError` when a child already has a
parent or when the map has become inconsistent.

### `scopestate.util`

Small helpers:

- `list_difference`
- `is_blank`
- `trim_lines`
- `average`, which returns NaN for no values
- `replace_env_var_references`, which replaces `${NAME}` with the environment
  variable, or with nothing if it is unset
- `unindent`
- `enum_parse(name, value, options)`, which matches case-insensitively and
  raises `ValueError` listing the accepted values

## Example

```python
from scopestate.scope import Listener
from scopestate.scope_graph import ScopeGraph

graph = ScopeGraph({"greeting": "hi"})
root = graph.root_index

widget = graph.register_new_scope("widget", root, root, {})

seen = []
graph.register_listener(
    widget,
    Listener(["greeting"], lambda g, values: seen.append(values["greeting"])),
)

graph.update_global_value("greeting", "hello")
print(seen)  # ['hi', 'hello']
```

Exceptions raised inside a listener are logged and do not stop the update.
Evaluation errors other than a missing variable are also logged, and the result
is an empty string.

## What it does not do

- It draws no widgets and has no user interface.
- It reads no configuration files.
- Expressions are limited to literals, variable references and concatenation.
- The `event_sender` given to `ScopeGraph` is stored but never called by the
  graph itself. Removal happens only when you call `remove_scope` or
  `handle_event`.