"""Variable scopes with inheritance, provided attributes and change listeners, plus small helpers."""

__version__ = "0.1.0"

__all__ = ["graph_internal", "one_to_n_map", "scope", "scope_graph", "util"]