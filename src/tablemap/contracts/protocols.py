# src/tablemap/contracts/protocols.py
"""Protocols at the two seams of the mapping core.

- RecordIntrospector: how the builder discovers and touches record fields.
  The builder never inspects types itself; dataclass and pydantic
  implementations live in tablemap.mapping.introspection.
- TableWriterProtocol: what an external table writer (a spreadsheet
  document model, or the CSV adapter) receives from the orchestrator.
"""

from collections.abc import Sequence
from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from tablemap.contracts.descriptor import DescriptorSet, FieldInfo


@runtime_checkable
class RecordIntrospector(Protocol):
    """Capability-style access to a record type's fields.

    Example:
        introspector = DataclassIntrospector()
        for info in introspector.list_fields(Person):
            print(info.name, introspector.get_value(person, info))
    """

    def supports(self, record_type: type) -> bool:
        """Whether this introspector understands the record type."""
        ...

    def list_fields(self, record_type: type) -> Sequence["FieldInfo"]:
        """Fields in declaration order."""
        ...

    def get_value(self, record: Any, field: "FieldInfo") -> Any: ...

    def set_value(self, record: Any, field: "FieldInfo", value: Any) -> None: ...

    def new_record(self, record_type: type) -> Any:
        """Create a blank record ready to be filled column by column."""
        ...


@runtime_checkable
class TableWriterProtocol(Protocol):
    """Receives one table at a time from the orchestrator.

    ``begin_table`` carries the ordered descriptors (with their presentation
    hints); ``write_row`` receives raw values in the same order. Values are
    not pre-formatted: the writer owns cell typing and styling.
    """

    def begin_table(self, descriptors: "DescriptorSet") -> None: ...

    def write_row(self, values: Sequence[Any]) -> None: ...

    def end_table(self) -> None: ...
