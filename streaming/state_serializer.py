"""RenderState serialization utilities."""

from __future__ import annotations

import dataclasses
import enum
import json
from pathlib import Path
from typing import Any, Iterable


MAX_FRAME_BYTES = 1024 * 1024


def _to_jsonable(value: Any) -> Any:
    if dataclasses.is_dataclass(value) and not isinstance(value, type):
        return {field.name: _to_jsonable(getattr(value, field.name)) for field in dataclasses.fields(value)}
    if isinstance(value, enum.Enum):
        return _to_jsonable(value.value)
    if hasattr(value, "tolist"):
        return value.tolist()
    if isinstance(value, dict):
        return {str(k): _to_jsonable(v) for k, v in value.items()}
    if isinstance(value, (list, tuple)):
        return [_to_jsonable(v) for v in value]
    return value


def serialize_state(render_state: Any) -> bytes:
    """Serialize render state into deterministic JSON bytes."""
    payload = _to_jsonable(render_state)
    data = json.dumps(payload, sort_keys=True, separators=(",", ":")).encode("utf-8")
    if len(data) > MAX_FRAME_BYTES:
        raise ValueError(
            f"Serialized frame exceeds max size ({len(data)} bytes > {MAX_FRAME_BYTES})."
        )
    return data


def write_frames(path: str | Path, frames: Iterable[Any]) -> int:
    """Write one serialized frame per line and return the frame count."""
    output = Path(path)
    output.parent.mkdir(parents=True, exist_ok=True)
    count = 0
    with output.open("wb") as handle:
        for frame in frames:
            handle.write(serialize_state(frame))
            handle.write(b"\n")
            count += 1
    return count
