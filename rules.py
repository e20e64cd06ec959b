"""Rules and search profiles for the Pyramid Solitaire solver."""
from __future__ import annotations

import json
import math
from dataclasses import asdict, dataclass
from typing import Any, Mapping, MutableMapping


def _get_value(obj: Any, key: str, default: Any = None) -> Any:
    """Retrieve *key* from mappings or objects with a fallback."""
    if isinstance(obj, Mapping):
        return obj.get(key, default)
    if hasattr(obj, key):
        return getattr(obj, key)
    return default


PASS_LIMITS = {
    "unlimited": None,
    "infinite": None,
    "three": 3,
    "triple": 3,
    "two": 2,
    "double": 2,
    "one": 1,
    "single": 1,
    "none": 0,
}


def _coerce_non_negative_int(value: Any, default: int = 0) -> int:
    """Best-effort conversion of *value* into a non-negative integer."""

    if value is None:
        return default
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value if value >= 0 else default
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value):
            return default
        candidate = int(value)
        return candidate if candidate >= 0 else default
    if isinstance(value, str):
        token = value.strip()
        if not token:
            return default
        try:
            candidate = int(token, 10)
        except ValueError:
            return default
        return candidate if candidate >= 0 else default
    return default


def _normalise_pass_limit(value: Any) -> int | None:
    """Convert *value* into a normalised recycle limit.

    Limits may be given as names (``"three"``, ``"unlimited"``), integers,
    integral floats or numeric strings.  The result is ``None`` (meaning the
    waste may be recycled any number of times) or a non-negative integer.

    ``ValueError`` is raised when the content is recognised but invalid (for
    example a negative number) while ``TypeError`` flags unsupported data types.
    """

    if value is None:
        return None
    if isinstance(value, bool):
        raise TypeError("Boolean values are not valid pass limits")
    if isinstance(value, int):
        if value < 0:
            raise ValueError("Pass limit must be non-negative")
        return value
    if isinstance(value, float):
        if math.isnan(value) or math.isinf(value) or not value.is_integer():
            raise ValueError(f"Pass limit must be a whole number: {value!r}")
        if value < 0:
            raise ValueError("Pass limit must be non-negative")
        return int(value)
    if isinstance(value, str):
        token = value.strip().lower()
        if not token:
            return None
        if token in PASS_LIMITS:
            return PASS_LIMITS[token]
        try:
            parsed = int(token, 10)
        except ValueError as exc:
            raise ValueError(f"Unknown pass limit value: {value!r}") from exc
        if parsed < 0:
            raise ValueError("Pass limit must be non-negative")
        return parsed
    raise TypeError(f"Unsupported pass limit type: {type(value).__name__}")


def _normalise_node_budget(value: Any) -> int | None:
    if value is None:
        return None
    if isinstance(value, bool) or not isinstance(value, (int, str)):
        raise TypeError(f"Unsupported node budget type: {type(value).__name__}")
    budget = _coerce_non_negative_int(value, default=-1)
    if budget <= 0:
        raise ValueError(f"Node budget must be a positive integer: {value!r}")
    return budget


@dataclass(frozen=True)
class RuleProfile:
    """How a deal is played and how hard the solver looks for a clear.

    ``passes`` counts recycles: how many times the empty deck may be refilled
    from the waste.  Every named limit in ``PASS_LIMITS`` uses the same
    meaning, so ``"two"`` allows two recycles (three trips through the deck)
    and ``"none"`` allows no recycling at all.  ``memoize`` enables
    visited-state pruning, ``stop_on_clear`` ends the search as soon as the
    pyramid is cleared and ``max_nodes`` caps the number of expanded search
    nodes.
    """

    passes: str | int | None = "unlimited"
    memoize: bool = True
    stop_on_clear: bool = True
    max_nodes: int | None = None

    def to_dict(self) -> MutableMapping[str, Any]:
        """Return the profile as a JSON-serialisable mapping."""
        return dict(asdict(self))

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "RuleProfile":
        """Create a profile from *data* produced by :meth:`to_dict`."""
        fields = {field.name for field in cls.__dataclass_fields__.values()}
        filtered = {k: data[k] for k in data if k in fields}
        return cls(**filtered)  # type: ignore[arg-type]

    def to_json(self) -> str:
        """Serialise the profile to a JSON string."""
        return json.dumps(self.to_dict())

    @classmethod
    def from_json(cls, payload: str) -> "RuleProfile":
        """Deserialise a :class:`RuleProfile` from *payload*."""
        return cls.from_dict(json.loads(payload))

    @property
    def pass_limit(self) -> int | None:
        """Return the numeric recycle limit for the profile."""

        return _normalise_pass_limit(self.passes)

    @property
    def node_budget(self) -> int | None:
        """Return the expanded-node cap, or ``None`` for an exhaustive search."""

        return _normalise_node_budget(self.max_nodes)

    def validate(self) -> "RuleProfile":
        """Raise ``ValueError``/``TypeError`` if any setting is malformed."""

        for name in ("memoize", "stop_on_clear"):
            value = getattr(self, name)
            if not isinstance(value, bool):
                raise TypeError(f"{name} must be a boolean, not {type(value).__name__}")
        _ = self.pass_limit
        _ = self.node_budget
        return self

    def passes_remaining(self, state: Any) -> int | None:
        """Return how many recycles remain for *state*.

        ``None`` is returned when the profile allows unlimited recycling.
        A missing or malformed ``passes_made`` counts as zero recycles made.
        """

        limit = self.pass_limit
        if limit is None:
            return None

        count = _coerce_non_negative_int(_get_value(state, "passes_made"))
        remaining = limit - count
        return remaining if remaining > 0 else 0

    def can_recycle(self, state: Any) -> bool:
        """Return whether the profile allows turning the waste over in *state*."""

        remaining = self.passes_remaining(state)
        return remaining is None or remaining > 0


CLASSIC = RuleProfile()

TWO_RECYCLES = RuleProfile(passes="two")

NO_RECYCLE = RuleProfile(passes="none")

__all__ = [
    "RuleProfile",
    "CLASSIC",
    "TWO_RECYCLES",
    "NO_RECYCLE",
]
