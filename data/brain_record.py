"""Binary brain/agent records compatible with .NET ``BinaryWriter`` layout.

Brain record (little-endian)::

    int32 provenance, int32 input_size, int32 hidden_size, int32 output_size
    float64[hidden]            B1
    float64[input * hidden]    W1, column-major
    float64[output]            B2
    float64[hidden * output]   W2, column-major

Agent record: the strings ``"name"``, name, ``"species"``, species, each
prefixed with a 7-bit variable-length byte count, followed by a brain record.
"""

from __future__ import annotations

import io
import struct
from pathlib import Path
from typing import BinaryIO

import numpy as np

from agents.brain import Brain, ProvenanceTag
from agents.snake_agent import SnakeAgent

_HEADER = struct.Struct("<4i")
_DOUBLE = np.dtype("<f8")


class FormatError(ValueError):
    """Raised when a persisted record fails its structure or tag checks."""


# -- primitive codecs -------------------------------------------------------


def _read_exact(stream: BinaryIO, size: int) -> bytes:
    data = stream.read(size)
    if len(data) != size:
        raise FormatError(f"Unexpected end of record: wanted {size} bytes, got {len(data)}.")
    return data


def write_string(stream: BinaryIO, value: str) -> None:
    encoded = value.encode("utf-8")
    length = len(encoded)
    prefix = bytearray()
    while True:
        byte = length & 0x7F
        length >>= 7
        if length:
            prefix.append(byte | 0x80)
        else:
            prefix.append(byte)
            break
    stream.write(bytes(prefix))
    stream.write(encoded)


def read_string(stream: BinaryIO) -> str:
    length = 0
    shift = 0
    while True:
        byte = _read_exact(stream, 1)[0]
        length |= (byte & 0x7F) << shift
        if not byte & 0x80:
            break
        shift += 7
        if shift > 28:
            raise FormatError("String length prefix is too long.")
    try:
        return _read_exact(stream, length).decode("utf-8")
    except UnicodeDecodeError as exc:
        raise FormatError("String field is not valid UTF-8.") from exc


def _expect_tag(stream: BinaryIO, tag: str) -> None:
    found = read_string(stream)
    if found != tag:
        raise FormatError(f"Expected field tag {tag!r}, found {found!r}.")


def _write_doubles(stream: BinaryIO, array: np.ndarray) -> None:
    stream.write(np.asarray(array, dtype=_DOUBLE).ravel(order="F").tobytes())


def _read_matrix(stream: BinaryIO, rows: int, cols: int) -> np.ndarray:
    data = _read_exact(stream, rows * cols * _DOUBLE.itemsize)
    return np.frombuffer(data, dtype=_DOUBLE).reshape((rows, cols), order="F").astype(np.float64)


# -- brain ------------------------------------------------------------------


def write_brain(stream: BinaryIO, brain: Brain) -> None:
    stream.write(_HEADER.pack(int(brain.provenance), brain.input_size, brain.hidden_size, brain.output_size))
    _write_doubles(stream, brain.b1)
    _write_doubles(stream, brain.w1)
    _write_doubles(stream, brain.b2)
    _write_doubles(stream, brain.w2)


def read_brain(stream: BinaryIO) -> Brain:
    tag, input_size, hidden_size, output_size = _HEADER.unpack(_read_exact(stream, _HEADER.size))
    try:
        provenance = ProvenanceTag(tag)
    except ValueError as exc:
        raise FormatError(f"Unknown brain provenance tag {tag}.") from exc
    if min(input_size, hidden_size, output_size) <= 0:
        raise FormatError(f"Invalid brain dimensions ({input_size}, {hidden_size}, {output_size}).")

    b1 = _read_matrix(stream, 1, hidden_size).reshape(-1)
    w1 = _read_matrix(stream, input_size, hidden_size)
    b2 = _read_matrix(stream, 1, output_size).reshape(-1)
    w2 = _read_matrix(stream, hidden_size, output_size)
    return Brain(w1=w1, b1=b1, w2=w2, b2=b2, provenance=provenance)


# -- agent ------------------------------------------------------------------


def write_agent(stream: BinaryIO, agent: SnakeAgent) -> None:
    if agent.brain is None:
        raise ValueError("Cannot serialize an agent without a brain.")
    write_string(stream, "name")
    write_string(stream, agent.name)
    write_string(stream, "species")
    write_string(stream, agent.species_name)
    write_brain(stream, agent.brain)


def read_agent(stream: BinaryIO) -> SnakeAgent:
    """Rebuild an already-initialized agent from ``stream``."""
    _expect_tag(stream, "name")
    name = read_string(stream)
    _expect_tag(stream, "species")
    species_name = read_string(stream)
    brain = read_brain(stream)
    return SnakeAgent(species_name=species_name, brain=brain, name=name, hidden_size=brain.hidden_size)


def agent_to_bytes(agent: SnakeAgent) -> bytes:
    buffer = io.BytesIO()
    write_agent(buffer, agent)
    return buffer.getvalue()


def agent_from_bytes(data: bytes) -> SnakeAgent:
    return read_agent(io.BytesIO(data))


def save_agent(agent: SnakeAgent, path: str | Path) -> Path:
    """Write ``agent`` atomically to ``path``."""
    target = Path(path)
    target.parent.mkdir(parents=True, exist_ok=True)
    tmp_path = target.with_suffix(target.suffix + ".tmp")
    tmp_path.write_bytes(agent_to_bytes(agent))
    tmp_path.replace(target)
    return target


def load_agent(path: str | Path) -> SnakeAgent:
    with Path(path).open("rb") as stream:
        return read_agent(stream)
