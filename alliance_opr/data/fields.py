"""Tolerant field extraction shared by the match and entry parsers.

Scouting payloads have been renamed several times across seasons
(``fuelScoredCount`` → ``fuelScored`` → ``autoFuelScored`` ...).  Rather than
chaining ``or`` lookups in every caller, each logical value is described as an
ordered list of probes.  A probe is a ``(path, coercion)`` pair; the first
probe whose coercion yields a finite number wins.

Keeping this in one module means schema drift only ever touches the probe
tables, never the regression math.
"""

from __future__ import annotations

import math
import re
from typing import Any, Callable, Iterable, List, Mapping, Optional, Tuple

Path = Tuple[str, ...]
Coercion = Callable[[Any], Optional[float]]
Probe = Tuple[Path, Coercion]

_TEAM_KEY_RE = re.compile(r"^(?:frc)?(\d+)$", re.IGNORECASE)

PASS_ACTION_TYPES = frozenset({"pass", "pass_alliance"})


def to_finite_number(value: Any) -> Optional[float]:
    """Coerce numbers and numeric strings to ``float``; ``None`` otherwise.

    Booleans are rejected even though ``bool`` subclasses ``int``: a checkbox
    is never a count.
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        number = float(value)
    elif isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        try:
            number = float(text)
        except ValueError:
            return None
    else:
        return None
    return number if math.isfinite(number) else None


def sum_pass_actions(value: Any) -> Optional[float]:
    """Sum pass amounts from an action log.

    Returns ``None`` when the log is missing or holds no pass actions, so an
    empty log never masquerades as "zero passes recorded".
    """
    if not isinstance(value, list):
        return None

    total = 0.0
    has_pass = False
    for action in value:
        if not isinstance(action, Mapping):
            continue
        if action.get("type") not in PASS_ACTION_TYPES:
            continue
        has_pass = True
        amount = first_finite(action, numeric_probes("amount", "count", "value"))
        total += 1.0 if amount is None else amount
    return total if has_pass else None


def resolve_path(data: Any, path: Path) -> Any:
    """Walk nested mappings; a missing or non-mapping hop yields ``None``."""
    current = data
    for key in path:
        if not isinstance(current, Mapping):
            return None
        current = current.get(key)
    return current


def first_finite(data: Any, probes: Iterable[Probe]) -> Optional[float]:
    """Return the first finite value produced by ``probes``, else ``None``."""
    for path, coerce in probes:
        value = coerce(resolve_path(data, path))
        if value is not None:
            return value
    return None


def numeric_probes(*paths: str) -> List[Probe]:
    """Build plain numeric probes from dotted paths."""
    return [(tuple(path.split(".")), to_finite_number) for path in paths]


def resolve_team_id(value: Any) -> Optional[int]:
    """Resolve ``254``, ``"254"`` or ``"frc254"`` to ``254``.

    Suffixed keys such as ``"frc254B"`` (backup robots) and anything
    non-positive are unresolvable.
    """
    if isinstance(value, bool) or value is None:
        return None
    if isinstance(value, int):
        return value if value > 0 else None
    if isinstance(value, float):
        if value.is_integer() and value > 0:
            return int(value)
        return None
    if isinstance(value, str):
        match = _TEAM_KEY_RE.match(value.strip())
        if match:
            team_id = int(match.group(1))
            return team_id if team_id > 0 else None
    return None
