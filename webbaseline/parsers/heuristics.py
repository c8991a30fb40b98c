"""Receiver-type guesses for method names that exist on more than one builtin.

Without type information ``x.includes(y)`` could be Array or String. The guess
below looks at the receiver's identifier only; it is best-effort and will be
wrong for receivers named e.g. ``items`` holding a string. Swap the strategy
with :func:`set_includes_strategy` when a better signal is available.
"""

from __future__ import annotations

from collections.abc import Callable

IncludesStrategy = Callable[[str], str]

ARRAY_ONLY_METHODS: frozenset[str] = frozenset(
    {"at", "find", "findIndex", "forEach", "map", "filter", "reduce", "some", "every"}
)
STRING_ONLY_METHODS: frozenset[str] = frozenset(
    {"startsWith", "endsWith", "padStart", "padEnd", "repeat", "trim", "trimStart", "trimEnd"}
)
AMBIGUOUS_METHODS: frozenset[str] = frozenset({"includes"})


def classify_includes_receiver(receiver: str) -> str:
    """Guess ``"String"`` or ``"Array"`` from a receiver identifier."""
    lowered = receiver.lower()
    if "str" in lowered or "text" in lowered:
        return "String"
    if "arr" in lowered or "list" in lowered:
        return "Array"
    return "String"


_includes_strategy: IncludesStrategy = classify_includes_receiver


def set_includes_strategy(strategy: IncludesStrategy | None) -> None:
    """Replace the receiver guess; ``None`` restores the identifier heuristic."""
    global _includes_strategy
    _includes_strategy = strategy or classify_includes_receiver


def classify_method_call(receiver: str, method: str) -> str | None:
    """Map ``receiver.method`` to an Array/String feature id by method name alone."""
    if method in ARRAY_ONLY_METHODS:
        return f"api.Array.{method}"
    if method in STRING_ONLY_METHODS:
        return f"api.String.{method}"
    if method in AMBIGUOUS_METHODS:
        return f"api.{_includes_strategy(receiver)}.{method}"
    return None
