from dataclasses import dataclass, field
from enum import Enum
from typing import Any


class Action(str, Enum):
    """
    Intent declared by the caller for the next commit of a record.

    The action travels alongside the record in memory and is never part
    of the persisted payload.
    """
    none = "none"
    create = "create"
    update = "update"
    delete = "delete"


@dataclass
class Record:
    """
    A projection record (view model) stored under `<collection>:<id>`.

    `version` is an opaque token replaced on every successful write and
    used to detect lost updates. It is None for records that were never
    committed.
    """
    ID_FIELD = "id"
    VERSION_FIELD = "_hash"

    id: str
    fields: dict[str, Any] = field(default_factory=dict)
    version: str | None = None
    action: Action = Action.none

    def __getitem__(self, name: str) -> Any:
        return self.fields[name]

    def __setitem__(self, name: str, value: Any) -> None:
        if name in (self.ID_FIELD, self.VERSION_FIELD):
            raise KeyError(f"'{name}' is a reserved field")
        self.fields[name] = value

    def get(self, name: str, default: Any = None) -> Any:
        return self.fields.get(name, default)

    def set(self, **fields: Any) -> None:
        for name, value in fields.items():
            self[name] = value

    def to_payload(self) -> dict[str, Any]:
        """Return the flat mapping written to the store."""
        payload = dict(self.fields)
        payload[self.ID_FIELD] = self.id
        if self.version is not None:
            payload[self.VERSION_FIELD] = self.version
        return payload

    @classmethod
    def from_payload(cls, payload: dict[str, Any], action: Action = Action.update) -> "Record":
        fields = dict(payload)
        record_id = fields.pop(cls.ID_FIELD)
        version = fields.pop(cls.VERSION_FIELD, None)
        return cls(
            id=str(record_id),
            fields=fields,
            version=version,
            action=action,
        )
