"""Container decoding: GLB binary or glTF JSON text -> SceneDocument.

GLB layout (all little-endian):

    header:  magic "glTF" | version u32 | total length u32
    chunks:  length u32 | type u32 | payload[length]  (repeated)

The JSON chunk holds the scene; an optional BIN chunk holds buffer 0.
"""

from __future__ import annotations

import base64
import binascii
import json
import logging
import struct
from dataclasses import dataclass, field
from pathlib import Path
from urllib.parse import unquote

from pydantic import ValidationError

from ..core.errors import InvalidSceneSyntax, MalformedContainer
from .model import SceneDocument

logger = logging.getLogger(__name__)

GLB_MAGIC = b"glTF"
GLB_VERSION = 2
GLB_HEADER = struct.Struct("<4sII")
CHUNK_HEADER = struct.Struct("<II")

CHUNK_TYPE_JSON = 0x4E4F534A  # b"JSON"
CHUNK_TYPE_BIN = 0x004E4942  # b"BIN\0"


@dataclass
class DecodedContainer:
    """Result of decoding an input stream.

    Attributes:
        document: The parsed scene document
        binary_chunk: Payload of the GLB BIN chunk, if any
        is_binary: Whether the input was a GLB container
        supplied_buffers: Buffer bytes obtained outside the document
            (the BIN chunk as buffer 0, or external files loaded by decode_path)
    """

    document: SceneDocument
    binary_chunk: bytes | None = None
    is_binary: bool = False
    supplied_buffers: dict[int, bytes] = field(default_factory=dict)


def is_glb(data: bytes) -> bool:
    """Check for the binary container signature."""
    return data[:4] == GLB_MAGIC


def decode_container(data: bytes) -> DecodedContainer:
    """Decode GLB or glTF JSON bytes into a scene document.

    Args:
        data: Raw input bytes

    Returns:
        DecodedContainer holding the document and any binary payload

    Raises:
        MalformedContainer: GLB signature present but chunk table inconsistent
        InvalidSceneSyntax: JSON text cannot be decoded or parsed
    """
    if is_glb(data):
        json_bytes, bin_chunk = _split_glb(data)
        document = parse_scene_text(json_bytes)
        supplied: dict[int, bytes] = {}
        if bin_chunk is not None and document.buffers and document.buffers[0].uri is None:
            supplied[0] = bin_chunk
        logger.debug(
            f"Decoded GLB: {len(json_bytes)} byte JSON chunk, "
            f"{len(bin_chunk) if bin_chunk is not None else 0} byte BIN chunk"
        )
        return DecodedContainer(
            document=document,
            binary_chunk=bin_chunk,
            is_binary=True,
            supplied_buffers=supplied,
        )

    document = parse_scene_text(data)
    return DecodedContainer(document=document)


def _split_glb(data: bytes) -> tuple[bytes, bytes | None]:
    """Walk the GLB chunk table, returning (json_chunk, bin_chunk)."""
    if len(data) < GLB_HEADER.size:
        raise MalformedContainer(
            f"GLB header truncated: {len(data)} bytes, need {GLB_HEADER.size}", 0
        )

    _magic, version, total_length = GLB_HEADER.unpack_from(data, 0)
    if version != GLB_VERSION:
        logger.warning(f"GLB version {version} (expected {GLB_VERSION}), attempting to read anyway")
    if total_length != len(data):
        raise MalformedContainer(
            f"GLB declares {total_length} bytes but {len(data)} were supplied", 8
        )

    json_chunk: bytes | None = None
    bin_chunk: bytes | None = None

    offset = GLB_HEADER.size
    while offset < total_length:
        if offset + CHUNK_HEADER.size > total_length:
            raise MalformedContainer("Truncated chunk header", offset)
        chunk_length, chunk_type = CHUNK_HEADER.unpack_from(data, offset)
        body_start = offset + CHUNK_HEADER.size
        body_end = body_start + chunk_length
        if body_end > total_length:
            raise MalformedContainer(
                f"Chunk of {chunk_length} bytes runs past end of container", offset
            )

        if chunk_type == CHUNK_TYPE_JSON and json_chunk is None:
            json_chunk = data[body_start:body_end]
        elif chunk_type == CHUNK_TYPE_BIN and bin_chunk is None:
            bin_chunk = data[body_start:body_end]
        else:
            logger.debug(f"Skipping chunk type 0x{chunk_type:08X} at byte {offset}")

        offset = body_end

    if json_chunk is None:
        raise MalformedContainer("GLB has no JSON chunk", GLB_HEADER.size)

    # JSON chunks are padded with spaces to a 4-byte boundary
    return json_chunk.rstrip(b" \x00"), bin_chunk


def parse_scene_text(data: bytes | str) -> SceneDocument:
    """Parse glTF JSON text into a SceneDocument.

    Raises:
        InvalidSceneSyntax: On encoding, JSON or schema errors
    """
    if isinstance(data, bytes):
        try:
            text = data.decode("utf-8-sig")
        except UnicodeDecodeError as e:
            raise InvalidSceneSyntax(f"Scene text is not valid UTF-8 (byte {e.start})") from e
    else:
        text = data

    try:
        raw = json.loads(text)
    except json.JSONDecodeError as e:
        raise InvalidSceneSyntax(
            f"Scene JSON parse error at line {e.lineno}, column {e.colno}: {e.msg}"
        ) from e

    if not isinstance(raw, dict):
        raise InvalidSceneSyntax(f"Scene JSON root must be an object, got {type(raw).__name__}")

    try:
        return SceneDocument.from_dict(raw)
    except ValidationError as e:
        first = e.errors()[0]
        location = ".".join(str(part) for part in first["loc"])
        raise InvalidSceneSyntax(
            f"Scene does not match the document schema at '{location}': {first['msg']}"
            f" ({e.error_count()} error(s))"
        ) from e


def decode_data_uri(uri: str) -> bytes:
    """Decode a ``data:`` URI into bytes.

    Raises:
        ValueError: If the URI is not a well-formed data URI
    """
    if not uri.startswith("data:"):
        raise ValueError("not a data URI")
    header, sep, payload = uri.partition(",")
    if not sep:
        raise ValueError("data URI has no payload separator")
    if header.endswith(";base64"):
        try:
            return base64.b64decode(payload, validate=False)
        except binascii.Error as e:
            raise ValueError(f"invalid base64 payload: {e}") from e
    return unquote(payload).encode("latin-1")


def decode_base64(payload: str) -> DecodedContainer:
    """Decode a base64-encoded GLB or glTF payload.

    Generation services commonly deliver the scene this way.
    """
    try:
        data = base64.b64decode(payload, validate=False)
    except binascii.Error as e:
        raise InvalidSceneSyntax(f"Payload is not valid base64: {e}") from e
    return decode_container(data)


def decode_path(path: Path | str) -> DecodedContainer:
    """Read a local .gltf/.glb file.

    External (non data-URI) buffers of a .gltf file are read relative to the
    file and returned as supplied buffers, so the geometry core never touches
    the filesystem. Missing external files are left unresolved; the affected
    primitives are reported when the export runs.
    """
    path = Path(path)
    decoded = decode_container(path.read_bytes())

    for index, buffer in enumerate(decoded.document.buffers or []):
        if index in decoded.supplied_buffers or buffer.uri is None or buffer.is_inline:
            continue
        external = path.parent / unquote(buffer.uri)
        if external.is_file():
            decoded.supplied_buffers[index] = external.read_bytes()
            logger.debug(f"Loaded external buffer {index} from {external.name}")
        else:
            logger.warning(f"External buffer {index} not found: {external}")

    return decoded
