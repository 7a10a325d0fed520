"""
=============================================================================
MULTI-VALUED HEADER MAP
=============================================================================

HTTP header names are case-insensitive and a header may appear more than
once. An echo service has to report both facts faithfully:

    Request:                          /headers response:
    ─────────                         ──────────────────
    x-test: 1                         {
    Accept: text/html                   "X-Test": ["1"],
    accept: application/json            "Accept": ["text/html",
                                                   "application/json"]
                                      }

=============================================================================
CANONICAL NAMES
=============================================================================

Names are stored in canonical MIME form: the first letter and every letter
after a hyphen upper-cased, the rest lower-cased.

    content-type      →  Content-Type
    X-REQUEST-ID      →  X-Request-Id
    user-agent        →  User-Agent

Lookups canonicalise the key first, so ``headers.get("CONTENT-TYPE")`` and
``headers.get("content-type")`` hit the same entry.

=============================================================================
"""

from typing import Dict, Iterator, List, Optional, Tuple
import re


_TOKEN_PATTERN = re.compile(r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+")


def canonical_header_name(name: str) -> str:
    """
    Canonicalise a header name.

    Names containing characters outside the RFC token alphabet (spaces,
    for example) are returned unchanged, matching what common HTTP stacks
    do for non-token names.

    Args:
        name: Header name in any case.

    Returns:
        Canonical form, e.g. "X-Test" for "x-test".
    """
    name = name.strip()
    if not _TOKEN_PATTERN.fullmatch(name):
        return name
    return "-".join(part[:1].upper() + part[1:].lower() for part in name.split("-"))


class Headers:
    """
    Case-insensitive, multi-valued header mapping.

    Preserves first-seen order of names and arrival order of values.

    Usage:
        headers = Headers()
        headers.add("accept", "text/html")
        headers.add("Accept", "application/json")

        headers.get("ACCEPT")      # "text/html"
        headers.get_all("accept")  # ["text/html", "application/json"]
        headers.to_dict()          # {"Accept": ["text/html", "application/json"]}
    """

    def __init__(self, items: Optional[List[Tuple[str, str]]] = None):
        self._values: Dict[str, List[str]] = {}
        for name, value in items or []:
            self.add(name, value)

    @classmethod
    def from_dict(cls, mapping: Dict[str, str]) -> "Headers":
        """Build from a plain ``{name: value}`` dict (handy in tests)."""
        return cls(list(mapping.items()))

    def add(self, name: str, value: str) -> None:
        """Append a value, keeping any existing values for the name."""
        self._values.setdefault(canonical_header_name(name), []).append(value)

    def get(self, name: str, default: str = "") -> str:
        """Get the first value for ``name`` or ``default``."""
        values = self._values.get(canonical_header_name(name))
        return values[0] if values else default

    def get_all(self, name: str) -> List[str]:
        """Get every value for ``name`` (empty list if absent)."""
        return list(self._values.get(canonical_header_name(name), []))

    def to_dict(self) -> Dict[str, List[str]]:
        """Snapshot as ``{canonical name: [values]}`` for JSON echo bodies."""
        return {name: list(values) for name, values in self._values.items()}

    def __contains__(self, name: object) -> bool:
        return isinstance(name, str) and canonical_header_name(name) in self._values

    def __iter__(self) -> Iterator[str]:
        return iter(self._values)

    def __len__(self) -> int:
        return len(self._values)

    def __eq__(self, other: object) -> bool:
        if isinstance(other, Headers):
            return self._values == other._values
        return NotImplemented

    def __repr__(self) -> str:
        return f"Headers({self._values!r})"
