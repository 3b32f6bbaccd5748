# src/tablemap/contracts/localization.py
"""Localized-string lookup used to resolve headers and translate values.

The core never loads resource bundles itself. Callers provide a
StringLookup; DictLookup is an in-memory implementation with per-culture
resources that can be added and removed at runtime.

Culture Resolution:
    The empty culture name ("") is the invariant culture: nothing is
    translated. Other cultures are searched most-specific first, so a
    lookup under "fr-CA" tries "fr-CA" then "fr".
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from typing import Protocol, runtime_checkable

INVARIANT_CULTURE = ""


@runtime_checkable
class StringLookup(Protocol):
    """Capability for translating display strings.

    ``lookup`` returns the fallback verbatim when no translation exists or the
    translation is empty. ``reverse_lookup`` maps a translated value back to
    its key, returning the value unchanged when no key matches.
    """

    def lookup(self, key: str, fallback: str | None = None) -> str: ...

    def reverse_lookup(self, value: str) -> str: ...


class NullLookup:
    """Invariant lookup: every key resolves to its fallback."""

    def lookup(self, key: str, fallback: str | None = None) -> str:
        return fallback if fallback else key

    def reverse_lookup(self, value: str) -> str:
        return value


def _culture_chain(culture: str) -> list[str]:
    """Most-specific-first list of culture names ("fr-CA" -> ["fr-ca", "fr"])."""
    chain: list[str] = []
    name = culture.replace("_", "-").casefold()
    while name:
        chain.append(name)
        name = name.rpartition("-")[0]
    return chain


class DictLookup:
    """Case-insensitive, per-culture string resources held in memory.

    Example:
        lookup = DictLookup({"fr": {"Name": "Nom", "true": "vrai"}}, culture="fr")
        lookup.lookup("name", "Name")   # "Nom"
        lookup.reverse_lookup("VRAI")   # "true"
    """

    def __init__(
        self,
        resources: Mapping[str, Mapping[str, str]] | None = None,
        *,
        culture: str = INVARIANT_CULTURE,
    ) -> None:
        self._resources: dict[str, dict[str, tuple[str, str]]] = {}
        self.culture = culture
        if resources:
            for name, entries in resources.items():
                self.add_resources(name, entries)

    @property
    def cultures(self) -> tuple[str, ...]:
        return tuple(self._resources)

    def add_resources(self, culture: str, entries: Mapping[str, str]) -> None:
        """Merge entries into a culture's table, replacing existing keys."""
        if not entries:
            return
        name = culture.replace("_", "-").casefold()
        table = self._resources.setdefault(name, {})
        for key, value in entries.items():
            table[key.casefold()] = (key, value)

    def remove_resources(self, culture: str, keys: Iterable[str] | None = None) -> None:
        """Drop some keys, or the whole culture when ``keys`` is None."""
        name = culture.replace("_", "-").casefold()
        if keys is None:
            self._resources.pop(name, None)
            return
        table = self._resources.get(name)
        if table is None:
            return
        for key in keys:
            table.pop(key.casefold(), None)

    def clear(self) -> None:
        self._resources.clear()

    def _find(self, key: str, culture: str) -> str | None:
        folded = key.casefold()
        for name in _culture_chain(culture):
            entry = self._resources.get(name, {}).get(folded)
            if entry is not None and entry[1].strip():
                return entry[1]
        return None

    def lookup(self, key: str, fallback: str | None = None, *, culture: str | None = None) -> str:
        culture = self.culture if culture is None else culture
        if culture != INVARIANT_CULTURE:
            for candidate in (key, fallback):
                if candidate and candidate.strip():
                    found = self._find(candidate, culture)
                    if found is not None:
                        return found
        return fallback if fallback else key

    def reverse_lookup(self, value: str, *, culture: str | None = None) -> str:
        culture = self.culture if culture is None else culture
        if culture == INVARIANT_CULTURE or not value.strip():
            return value
        folded = value.casefold()
        for name in _culture_chain(culture):
            for key, translated in self._resources.get(name, {}).values():
                if translated.casefold() == folded:
                    return key
        return value
