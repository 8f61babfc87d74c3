"""Conversion of pipeline data into a transmittable payload."""

import json
from typing import Any

from pydantic import BaseModel

from src.export.errors import DataCoercionError


def coerce_to_bytes(data: Any) -> bytes:
    """Convert pipeline data into bytes.

    Bytes pass through unchanged, strings are UTF-8 encoded, pydantic
    models are dumped to JSON and anything else is JSON encoded.

    Args:
        data: Data produced by the previous pipeline function.

    Returns:
        Payload bytes.

    Raises:
        DataCoercionError: If the data cannot be encoded.
    """
    if isinstance(data, bytes):
        return data
    if isinstance(data, bytearray | memoryview):
        return bytes(data)
    if isinstance(data, str):
        return data.encode("utf-8")
    if isinstance(data, BaseModel):
        return data.model_dump_json().encode("utf-8")

    try:
        return json.dumps(data, ensure_ascii=False).encode("utf-8")
    except (TypeError, ValueError) as e:
        msg = f"unable to marshal {type(data).__name__} to bytes: {e}"
        raise DataCoercionError(msg) from e
