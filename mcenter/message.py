"""
Message data structures and type definitions for the message center.

Defines the TypeSpec and MessageDefinition dataclasses which describe a
registered message and the ordered consumer types it fans out to, the
PublishedItem that travels through the dispatch queue, and the TypeResult
tuple that each type contributes to a dispatch result. Also defines the
callable type aliases used throughout the package for type hints.
"""

from dataclasses import dataclass
from dataclasses import field
from typing import Any
from typing import Awaitable
from typing import Callable
from typing import Mapping
from typing import NamedTuple
from typing import Optional
from typing import Union

LISTENER = Callable[[Any], Union[Any, Awaitable[Any]]]
"""
The consumer end point that published data is forwarded to. Exactly one
listener is bound per (message, type). Can be sync or async, its return value
is recorded in the dispatch result.
"""

VALIDATOR = Callable[[Any], Any]
"""
Validates a payload or a listener's result. Rejects by raising, or by
returning exactly False.
"""

CALLBACK = Callable[[dict[str, "TypeResult"]], Union[None, Awaitable[None]]]
"""Receives the complete result map once every type of a publish has run."""


class TypeResult(NamedTuple):
    """What one declared type produced for one published item."""

    error: Optional[BaseException]
    """The captured failure, or None on success."""

    value: Any
    """The listener's return value, None on failure."""

    elapsed_ms: int
    """Wall time spent in the listener and its result validator."""


_TYPE_SPEC_KEYS = frozenset({"type", "timeout", "validator"})


@dataclass(frozen=True)
class TypeSpec(object):
    """One declared consumer role within a message."""

    type: str
    """Identifier of the role, unique within its message."""

    timeout: int = 0
    """
    Milliseconds after which a run is reported to the timeout hook.
    0 means never report. The listener is never cancelled.
    """

    validator: Optional[VALIDATOR] = None
    """Optional check applied to the listener's return value."""

    @classmethod
    def from_value(cls, value: Union["TypeSpec", Mapping[str, Any], str]) -> "TypeSpec":
        """
        Build a TypeSpec from a TypeSpec, a mapping with 'type', 'timeout' and
        'validator' keys, or a bare type name.
        """
        if isinstance(value, TypeSpec):
            return value
        if isinstance(value, str):
            return cls(type=value)
        if isinstance(value, Mapping):
            unknown = set(value) - _TYPE_SPEC_KEYS
            if unknown:
                raise TypeError(
                    f"Unknown TypeSpec keys {sorted(map(str, unknown))}, "
                    f"expected {sorted(_TYPE_SPEC_KEYS)}"
                )
            return cls(
                type=value.get("type"),
                timeout=value.get("timeout") or 0,
                validator=value.get("validator"),
            )

        raise TypeError(f"Cannot build a TypeSpec from {value!r}")


@dataclass(frozen=True)
class MessageDefinition(object):
    """A registered message. Immutable once registered."""

    name: str
    """Unique message name."""

    validator: Optional[VALIDATOR]
    """Checked against published data before it is queued."""

    types: tuple[TypeSpec, ...]
    """Declared types, in fan-out order."""

    type_names: frozenset[str] = field(init=False)
    """Every declared type name, for membership checks."""

    def __post_init__(self) -> None:
        object.__setattr__(
            self, "type_names", frozenset(spec.type for spec in self.types)
        )


@dataclass(frozen=True)
class PublishedItem(object):
    """A single publish waiting for, or going through, dispatch."""

    id: str
    name: str
    data: Any
    callback: Optional[CALLBACK] = None
