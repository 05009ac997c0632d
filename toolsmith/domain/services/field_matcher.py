"""
Attribution of submitted payload keys to canonical field names.

Matching is deterministic and runs in three passes over all submitted keys:

1. exact:        "full_name"  == "full_name"
2. underscore:   "Full Name"  -> "full_name"
3. compact:      "Full-Name!" -> "fullname" == "fullname"

A field is claimed by at most one key; earlier passes win, and within a
pass submission order wins. Keys left over are unattributed.

Pure module: no DB, no logging.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Sequence, Tuple


def underscore_normalize(key: str) -> str:
    value = key.strip().lower()
    value = re.sub(r"[\s\-]+", "_", value)
    value = re.sub(r"_+", "_", value)
    return value.strip("_")


def compact_normalize(key: str) -> str:
    return re.sub(r"[^a-z0-9]", "", key.lower())


PASSES: List[Tuple[str, Callable[[str], str]]] = [
    ("exact", lambda k: k),
    ("underscore", underscore_normalize),
    ("compact", compact_normalize),
]


@dataclass
class MatchResult:
    # field name -> (submitted key, value, pass name)
    matched: Dict[str, Tuple[str, Any, str]] = field(default_factory=dict)
    unattributed: Dict[str, Any] = field(default_factory=dict)

    def value_for(self, field_name: str, default: Any = None) -> Any:
        hit = self.matched.get(field_name)
        return hit[1] if hit else default


def match_fields(submitted: Dict[str, Any], field_names: Sequence[str]) -> MatchResult:
    """Attribute every submitted key to at most one field name."""
    result = MatchResult()
    pending = list(submitted.keys())

    for pass_name, normalize in PASSES:
        index: Dict[str, str] = {}
        for name in field_names:
            if name in result.matched:
                continue
            # First field in definition order owns a normalized form
            index.setdefault(normalize(name), name)

        still_pending = []
        for key in pending:
            target = index.get(normalize(key))
            if target is not None and target not in result.matched:
                result.matched[target] = (key, submitted[key], pass_name)
                index.pop(normalize(key), None)
            else:
                still_pending.append(key)
        pending = still_pending

    result.unattributed = {key: submitted[key] for key in pending}
    return result
