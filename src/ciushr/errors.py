"""Error values returned by the validators and the parser.

Validation never raises: each section validator returns an error tree whose
shape mirrors the input (``{"supplier": {"oib": "..."}}`` or
``{"invoice_lines": {"line_2": {...}}}``).  The tree is built from three node
types so that aggregation stays uniform across the whole pipeline.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Generic, Iterator, Mapping, TypeVar, Union

T = TypeVar("T")


@dataclass(frozen=True)
class ErrorLeaf:
    """A single human readable message."""

    message: str


@dataclass(frozen=True)
class ErrorMap:
    """Errors keyed by field name."""

    entries: Mapping[str, "ErrorNode"]


@dataclass(frozen=True)
class IndexedErrors:
    """Errors keyed by 1-based position, rendered as ``<prefix>_<n>``."""

    prefix: str
    entries: Mapping[int, "ErrorNode"]


ErrorNode = Union[ErrorLeaf, ErrorMap, IndexedErrors]


def to_plain(node: ErrorNode | str | None) -> Any:
    """Render ``node`` as nested dictionaries and strings."""

    if node is None:
        return None
    if isinstance(node, str):
        return node
    if isinstance(node, ErrorLeaf):
        return node.message
    if isinstance(node, ErrorMap):
        return {key: to_plain(value) for key, value in node.entries.items()}
    return {f"{node.prefix}_{index}": to_plain(value) for index, value in node.entries.items()}


def iter_leaves(node: ErrorNode, path: tuple[str, ...] = ()) -> Iterator[tuple[tuple[str, ...], str]]:
    """Yield ``(path, message)`` for every leaf below ``node``."""

    if isinstance(node, ErrorLeaf):
        yield path, node.message
    elif isinstance(node, ErrorMap):
        for key, value in node.entries.items():
            yield from iter_leaves(value, path + (key,))
    else:
        for index, value in node.entries.items():
            yield from iter_leaves(value, path + (f"{node.prefix}_{index}",))


def as_node(value: ErrorNode | str) -> ErrorNode:
    if isinstance(value, str):
        return ErrorLeaf(value)
    return value


class ErrorCollector:
    """Accumulate field errors and produce an :class:`ErrorMap`."""

    def __init__(self) -> None:
        self._entries: dict[str, ErrorNode] = {}

    @staticmethod
    def single(field_name: str, error: ErrorNode | str) -> ErrorMap:
        return ErrorMap({field_name: as_node(error)})

    def add(self, field_name: str, error: ErrorNode | str | None) -> None:
        if error is None:
            return
        self._entries[field_name] = as_node(error)

    def merge(self, node: ErrorNode | None) -> None:
        """Fold the entries of another map into this collector."""

        if node is None:
            return
        if not isinstance(node, ErrorMap):
            raise TypeError("only ErrorMap nodes can be merged")
        self._entries.update(node.entries)

    def require(self, data: Mapping[str, Any], fields: tuple[str, ...]) -> list[str]:
        """Record ``"is required"`` for every missing field and return them."""

        missing = [name for name in fields if is_blank(data.get(name))]
        for name in missing:
            self.add(name, "is required")
        return missing

    def __bool__(self) -> bool:
        return bool(self._entries)

    def __contains__(self, field_name: str) -> bool:
        return field_name in self._entries

    def build(self) -> ErrorMap | None:
        if not self._entries:
            return None
        return ErrorMap(dict(self._entries))


def is_blank(value: Any) -> bool:
    """Missing means ``None``, an empty string, list or mapping."""

    if value is None:
        return True
    if isinstance(value, str):
        return value == ""
    if isinstance(value, (list, tuple, Mapping)):
        return len(value) == 0
    return False


class CiusError(Exception):
    """Base class for errors raised at the edges of the library."""


class InvoiceValidationError(CiusError, ValueError):
    """Raised by :meth:`Result.unwrap` when validation failed."""

    def __init__(self, errors: Any) -> None:
        self.errors = errors
        super().__init__(f"Invalid invoice data: {errors!r}")


class InvoiceParseError(CiusError):
    """Raised by :meth:`Result.unwrap` when an XML document could not be read."""


class ConfigError(CiusError, RuntimeError):
    """Raised when the settings file or environment holds invalid values."""


@dataclass(frozen=True)
class Result(Generic[T]):
    """Outcome of a validation, build or parse call."""

    value: T | None = None
    error: Any = None
    warnings: tuple[str, ...] = field(default_factory=tuple)

    @classmethod
    def success(cls, value: T, warnings: tuple[str, ...] | list[str] = ()) -> "Result[T]":
        return cls(value=value, error=None, warnings=tuple(warnings))

    @classmethod
    def failure(cls, error: Any, warnings: tuple[str, ...] | list[str] = ()) -> "Result[T]":
        if error is None:
            raise ValueError("failure requires an error value")
        return cls(value=None, error=error, warnings=tuple(warnings))

    @property
    def ok(self) -> bool:
        return self.error is None

    @property
    def errors(self) -> Any:
        """The error rendered as plain dictionaries and strings."""

        if isinstance(self.error, (ErrorLeaf, ErrorMap, IndexedErrors)):
            return to_plain(self.error)
        return self.error

    def unwrap(self) -> T:
        """Return the value or raise the matching :class:`CiusError`."""

        if self.ok:
            return self.value  # type: ignore[return-value]
        if isinstance(self.error, str):
            raise InvoiceParseError(self.error)
        raise InvoiceValidationError(self.errors)


__all__ = [
    "ErrorLeaf",
    "ErrorMap",
    "IndexedErrors",
    "ErrorNode",
    "ErrorCollector",
    "to_plain",
    "iter_leaves",
    "as_node",
    "is_blank",
    "CiusError",
    "InvoiceValidationError",
    "InvoiceParseError",
    "ConfigError",
    "Result",
]
