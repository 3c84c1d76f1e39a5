"""Record flattening: nested value trees to flat scalar rows."""

import json
import logging
from dataclasses import dataclass, field
from datetime import date, datetime
from typing import Any, Iterator, Optional

from bronze.errors import StructuralParseError
from bronze.schema.registry import CanonicalSchema, ListPolicy

logger = logging.getLogger(__name__)

STRICT_SEPARATOR = "_"
PERMISSIVE_SEPARATOR = "."

# Name given to scalar row elements when there is no key to use
SCALAR_LEAF_NAME = "value"

_OBJECT = "object"
_LIST = "list"
_SCALAR = "scalar"


@dataclass
class FlatTable:
    """Flat rows plus the column names discovered while building them."""

    rows: list[dict[str, Any]] = field(default_factory=list)
    columns: list[str] = field(default_factory=list)
    separator: str = STRICT_SEPARATOR

    def __len__(self) -> int:
        return len(self.rows)


def to_text(value: Any) -> Optional[str]:
    """Render a value as text the same way on every path."""
    if value is None:
        return None
    if isinstance(value, str):
        return value
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (int, float)):
        return str(value)
    if isinstance(value, (datetime, date)):
        return value.isoformat()
    if isinstance(value, (dict, list, tuple)):
        return json.dumps(value, default=str, ensure_ascii=False)
    return str(value)


def _kind(value: Any) -> Optional[str]:
    if value is None:
        return None
    if isinstance(value, dict):
        return _OBJECT
    if isinstance(value, list):
        return _LIST
    return _SCALAR


class RecordFlattener:
    """Flatten one raw record into rows of scalar columns.

    One routine serves both ingestion paths:

    - strict: keys joined with '_', native scalar types kept, and every
      path must have the same shape (object, list or scalar) across
      sibling elements. A violation raises StructuralParseError.
    - permissive: keys joined with '.', every leaf rendered as text and
      no shape consistency required; conflicting shapes simply produce
      both columns.

    An instance holds per-record shape state; use one per record.
    """

    def __init__(
        self,
        row_path: Optional[str] = None,
        list_policy: ListPolicy = ListPolicy.SERIALIZE,
        strict: bool = True,
        max_depth: int = 32,
    ):
        self.row_path = tuple(row_path.split(".")) if row_path else ()
        self.list_policy = ListPolicy(list_policy)
        self.strict = strict
        self.max_depth = max_depth
        self.separator = STRICT_SEPARATOR if strict else PERMISSIVE_SEPARATOR
        self._shapes: dict[str, str] = {}

    def flatten(self, value: Any) -> FlatTable:
        """Flatten a record value tree.

        Args:
            value: dict or list tree as returned by the record reader

        Returns:
            FlatTable; empty or absent input gives zero rows

        Raises:
            StructuralParseError: strict mode only, on inconsistent shapes
        """
        self._shapes = {}
        rows = []
        columns: dict[str, None] = {}

        if value is None:
            return FlatTable(rows=rows, columns=[], separator=self.separator)

        parents = value if isinstance(value, list) else [value]
        for index, parent in enumerate(parents):
            for row in self._rows_for_parent(parent, index):
                for column in row:
                    columns.setdefault(column, None)
                rows.append(row)

        logger.debug(
            f"Flattened record into {len(rows)} rows",
            extra={
                "row_count": len(rows),
                "column_count": len(columns),
                "strict": self.strict,
            },
        )
        return FlatTable(rows=rows, columns=list(columns), separator=self.separator)

    # ------------------------------------------------------------------
    # Row expansion
    # ------------------------------------------------------------------

    def _rows_for_parent(self, parent: Any, index: int) -> Iterator[dict]:
        self._check_shape("[]", parent, f"[{index}]")

        if not isinstance(parent, dict):
            if parent is None:
                return
            if isinstance(parent, list) and self.strict:
                raise StructuralParseError(f"[{index}]", "nested list where a record was expected")
            if self.row_path and self.strict:
                raise StructuralParseError(f"[{index}]", "scalar where a record was expected")
            yield {self._leaf_name(): self._leaf(parent)}
            return

        if not self.row_path:
            yield self._flatten_object(parent, (), "")
            return

        context = self._flatten_object(parent, (), "", exclude=self.row_path)
        elements = self._resolve_row_path(parent)
        if elements is None:
            return

        row_key = ".".join(self.row_path) + "[]"
        for element in elements:
            self._check_shape(row_key, element, ".".join(self.row_path))
            if element is None:
                continue
            if isinstance(element, dict):
                row = dict(context)
                # Element fields win over inherited parent fields.
                row.update(self._flatten_object(element, (), row_key))
            elif isinstance(element, list):
                if self.strict:
                    raise StructuralParseError(
                        ".".join(self.row_path), "nested list inside the row list"
                    )
                row = dict(context)
                row[self._leaf_name()] = to_text(element)
            else:
                row = dict(context)
                row[self._leaf_name()] = self._leaf(element)
            yield row

    def _resolve_row_path(self, parent: dict) -> Optional[list]:
        node: Any = parent
        for segment in self.row_path:
            if not isinstance(node, dict):
                return None
            node = node.get(segment)
            if node is None:
                return None

        if isinstance(node, list):
            return node

        if self.strict:
            raise StructuralParseError(
                ".".join(self.row_path),
                f"expected a list of rows, found {type(node).__name__}",
            )
        return [node]

    # ------------------------------------------------------------------
    # Object and list flattening
    # ------------------------------------------------------------------

    def _flatten_object(
        self,
        obj: dict,
        prefix: tuple,
        shape_prefix: str,
        exclude: Optional[tuple] = None,
    ) -> dict:
        items: dict[str, Any] = {}

        for raw_key, value in obj.items():
            key = str(raw_key)
            path = prefix + (key,)
            shape_key = f"{shape_prefix}.{key}" if shape_prefix else key

            if exclude and key == exclude[0]:
                if len(exclude) == 1:
                    continue
                if isinstance(value, dict):
                    items.update(
                        self._flatten_object(value, path, shape_key, exclude=exclude[1:])
                    )
                    continue

            self._check_shape(shape_key, value, self._join(path))

            if isinstance(value, dict):
                if len(path) >= self.max_depth:
                    items[self._join(path)] = to_text(value)
                else:
                    items.update(self._flatten_object(value, path, shape_key))
            elif isinstance(value, list):
                items.update(self._flatten_list(value, path, shape_key))
            else:
                items[self._join(path)] = self._leaf(value)

        return items

    def _flatten_list(self, values: list, path: tuple, shape_key: str) -> dict:
        column = self._join(path)
        kinds = {_kind(item) for item in values} - {None}

        if not kinds:
            if self.list_policy is ListPolicy.SERIALIZE:
                return {column: to_text(values)}
            return {}

        if len(kinds) > 1:
            if self.strict:
                raise StructuralParseError(
                    column, f"list mixes {', '.join(sorted(kinds))} elements"
                )
            return {column: to_text(values)}

        kind = kinds.pop()
        element_key = shape_key + "[]"

        if kind == _OBJECT:
            if len(path) >= self.max_depth:
                return {column: to_text(values)}
            items = {}
            for index, item in enumerate(values):
                if item is None:
                    continue
                items.update(
                    self._flatten_object(item, path + (str(index),), element_key)
                )
            return items

        if kind == _LIST:
            # Lists of lists (polygons, coordinate series) stay opaque.
            return {column: to_text(values)}

        if self.list_policy is ListPolicy.INDEX:
            return {
                self._join(path + (str(index),)): self._leaf(item)
                for index, item in enumerate(values)
            }
        return {column: to_text(values)}

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_shape(self, shape_key: str, value: Any, location: str) -> None:
        if not self.strict:
            return
        kind = _kind(value)
        if kind is None:
            return
        seen = self._shapes.setdefault(shape_key, kind)
        if seen != kind:
            raise StructuralParseError(
                location or shape_key,
                f"is {kind} here but {seen} in a sibling element",
            )

    def _join(self, path: tuple) -> str:
        return self.separator.join(path)

    def _leaf(self, value: Any) -> Any:
        return value if self.strict else to_text(value)

    def _leaf_name(self) -> str:
        return self.row_path[-1] if self.row_path else SCALAR_LEAF_NAME


def flatten_record(value: Any, schema: CanonicalSchema, strict: bool = True) -> FlatTable:
    """Flatten a record value using its record type's layout."""
    flattener = RecordFlattener(
        row_path=schema.row_path,
        list_policy=schema.list_policy,
        strict=strict,
    )
    return flattener.flatten(value)

