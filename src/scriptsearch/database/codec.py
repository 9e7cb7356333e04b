"""Array codec for list-valued columns.

Tags, dependencies and embedding vectors are stored as JSON array text. SQL
``NULL`` stands for an absent value, so ``decode_vector(None)`` is ``None``
while ``decode_vector("[0.0, 0.0]")`` is an explicit zero vector.
"""

from __future__ import annotations

import json
import math
from collections.abc import Sequence
from typing import Any

from scriptsearch.exceptions import StoreError, ValidationError


def _load_array(data: str | bytes, column: str) -> list[Any]:
    """Parse JSON text and require an array."""
    try:
        value = json.loads(data)
    except (json.JSONDecodeError, UnicodeDecodeError) as e:
        raise StoreError(
            message=f"Corrupt value in column '{column}'",
            hint="Re-seed the store to rebuild the row",
            details={"column": column, "error": str(e)},
        ) from e
    if not isinstance(value, list):
        raise StoreError(
            message=f"Column '{column}' does not hold an array",
            details={"column": column, "type": type(value).__name__},
        )
    return value


def encode_strings(values: Sequence[str] | None) -> str | None:
    """Encode an ordered list of strings, or ``None`` for an absent list."""
    if values is None:
        return None
    return json.dumps([str(v) for v in values])


def decode_strings(data: str | bytes | None, column: str = "tags") -> list[str]:
    """Decode a string array; an absent value reads back as an empty list."""
    if data is None or data == "":
        return []
    return [str(v) for v in _load_array(data, column)]


def encode_vector(vector: Sequence[float] | None) -> str | None:
    """Encode an embedding vector.

    Raises:
        ValidationError: If any component is not a finite number
    """
    if vector is None:
        return None
    components = []
    for value in vector:
        number = float(value)
        if not math.isfinite(number):
            raise ValidationError(
                message="Embedding contains a non-finite value",
                details={"value": value},
            )
        components.append(number)
    return json.dumps(components)


def decode_vector(data: str | bytes | None) -> list[float] | None:
    """Decode an embedding vector; SQL ``NULL`` reads back as ``None``."""
    if data is None:
        return None
    try:
        return [float(v) for v in _load_array(data, "embedding")]
    except (TypeError, ValueError) as e:
        raise StoreError(
            message="Column 'embedding' holds a non-numeric component",
            details={"error": str(e)},
        ) from e
