"""Per-operation coercion context."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import tzinfo

from tablemap.contracts.enums import DateInterpretation


@dataclass(frozen=True, slots=True)
class CoercionContext:
    """Explicit state threaded through every coercion call.

    Concurrent imports each carry their own context, so there is no shared
    or thread-local date mode.

    Attributes:
        date_mode: How ambiguous instants are resolved
        local_tz: Zone used for LOCAL interpretation. None means the
            system zone, resolved per value so DST transitions are honoured.
    """

    date_mode: DateInterpretation = DateInterpretation.UNSPECIFIED
    local_tz: tzinfo | None = field(default=None, compare=False)

    def with_mode(self, date_mode: DateInterpretation) -> CoercionContext:
        """Return a copy with a different date mode."""
        return CoercionContext(date_mode=date_mode, local_tz=self.local_tz)


DEFAULT_CONTEXT = CoercionContext()
