"""
Core package for a11y-query.
Lightweight package init to avoid import cycles.

Consumers should import from the top-level package or submodules directly, e.g.:
  from a11y_query.core.queries import find, find_all
  from a11y_query.core.wait import wait_for
"""

__all__: list[str] = []
