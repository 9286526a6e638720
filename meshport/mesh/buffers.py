"""Buffer resolution: turn accessor metadata into typed numpy arrays."""

from __future__ import annotations

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import TYPE_CHECKING, Mapping

import numpy as np
from numpy.typing import NDArray

from ..core.errors import MissingAttribute, UnresolvableReference, UnsupportedComponentType
from ..document.container import decode_data_uri

if TYPE_CHECKING:
    from ..document.model import Primitive, SceneDocument

logger = logging.getLogger(__name__)

COMPONENT_TYPE_INT8 = 5120
COMPONENT_TYPE_UINT8 = 5121
COMPONENT_TYPE_INT16 = 5122
COMPONENT_TYPE_UINT16 = 5123
COMPONENT_TYPE_UINT32 = 5125
COMPONENT_TYPE_FLOAT32 = 5126

COMPONENT_DTYPES: dict[int, np.dtype] = {
    COMPONENT_TYPE_INT8: np.dtype("<i1"),
    COMPONENT_TYPE_UINT8: np.dtype("<u1"),
    COMPONENT_TYPE_INT16: np.dtype("<i2"),
    COMPONENT_TYPE_UINT16: np.dtype("<u2"),
    COMPONENT_TYPE_UINT32: np.dtype("<u4"),
    COMPONENT_TYPE_FLOAT32: np.dtype("<f4"),
}

INDEX_COMPONENT_TYPES = {COMPONENT_TYPE_UINT8, COMPONENT_TYPE_UINT16, COMPONENT_TYPE_UINT32}

TYPE_COMPONENT_COUNT: dict[str, int] = {
    "SCALAR": 1,
    "VEC2": 2,
    "VEC3": 3,
    "VEC4": 4,
    "MAT2": 4,
    "MAT3": 9,
    "MAT4": 16,
}


class BufferResolver:
    """Resolve buffer bytes and read accessors for one document.

    Inline (data URI) buffers are decoded once and memoized per buffer index.
    Bytes supplied by the caller (e.g. a GLB BIN chunk) take precedence over
    the document's URI.
    """

    def __init__(
        self,
        document: SceneDocument,
        supplied: Mapping[int, bytes] | None = None,
    ):
        """Create a resolver.

        Args:
            document: Repaired scene document (read-only here)
            supplied: Pre-decoded buffer bytes keyed by buffer index
        """
        self.document = document
        self._cache: dict[int, bytes] = dict(supplied or {})
        self._lock = threading.Lock()

    def buffer_bytes(self, index: int) -> bytes:
        """Return the raw bytes of buffer ``index``.

        Raises:
            UnresolvableReference: Buffer missing, not decodable, or external
                without supplied bytes
        """
        cached = self._cache.get(index)
        if cached is not None:
            return cached

        buffer = self.document.get_buffer(index)
        if not buffer.is_inline:
            detail = "no data supplied" if buffer.uri is None else f"external uri {buffer.uri!r} not supplied"
            raise UnresolvableReference("buffer", index, detail)

        try:
            data = decode_data_uri(buffer.uri)
        except ValueError as e:
            raise UnresolvableReference("buffer", index, f"bad data URI: {e}") from e

        if buffer.byte_length is not None and len(data) < buffer.byte_length:
            logger.warning(
                f"Buffer {index} decoded to {len(data)} bytes, "
                f"declared byteLength is {buffer.byte_length}"
            )

        with self._lock:
            # Another thread may have finished first; keep one copy
            data = self._cache.setdefault(index, data)
        return data

    def preload(self, max_workers: int = 1) -> None:
        """Decode every inline buffer up front.

        Decoding is independent per buffer, so it can fan out across threads.
        Failures are left for the accessor that needs the buffer to report.
        """
        pending = [
            i for i, b in enumerate(self.document.buffers or [])
            if b.is_inline and i not in self._cache
        ]
        if not pending:
            return

        def decode(index: int) -> None:
            try:
                self.buffer_bytes(index)
            except UnresolvableReference as e:
                logger.debug(f"Deferred buffer error: {e}")

        if max_workers <= 1 or len(pending) == 1:
            for index in pending:
                decode(index)
        else:
            with ThreadPoolExecutor(max_workers=min(max_workers, len(pending))) as pool:
                list(pool.map(decode, pending))
        logger.debug(f"Preloaded {len(pending)} inline buffer(s)")

    def read_accessor(self, index: int) -> NDArray:
        """Materialize exactly ``count`` elements of an accessor.

        Returns:
            Array of shape (count,) for SCALAR, (count, n) otherwise

        Raises:
            UnresolvableReference: Bad bufferView/buffer index or byte overrun
            UnsupportedComponentType: Unknown componentType or element type
        """
        accessor = self.document.get_accessor(index)

        dtype = COMPONENT_DTYPES.get(accessor.component_type)
        if dtype is None:
            raise UnsupportedComponentType(index, accessor.component_type)
        components = TYPE_COMPONENT_COUNT.get(accessor.type or "")
        if components is None:
            raise UnsupportedComponentType(
                index, accessor.component_type, f"unknown element type {accessor.type!r}"
            )

        shape = (accessor.count,) if components == 1 else (accessor.count, components)

        if accessor.buffer_view is None:
            # glTF: accessors without a buffer view are all zeros
            return np.zeros(shape, dtype=dtype)

        view = self.document.get_buffer_view(accessor.buffer_view)
        data = self.buffer_bytes(view.buffer)

        element_size = dtype.itemsize * components
        stride = view.byte_stride or element_size
        if stride < element_size:
            raise UnresolvableReference(
                "bufferView", accessor.buffer_view,
                f"byteStride {stride} smaller than element size {element_size}",
            )

        view_length = view.byte_length if view.byte_length is not None else len(data) - view.byte_offset
        view_end = view.byte_offset + view_length
        if view_end > len(data):
            raise UnresolvableReference(
                "bufferView", accessor.buffer_view,
                f"bytes {view.byte_offset}..{view_end} exceed buffer {view.buffer} of {len(data)} bytes",
            )

        if accessor.count == 0:
            return np.zeros(shape, dtype=dtype)

        needed = accessor.byte_offset + stride * (accessor.count - 1) + element_size
        if needed > view_length:
            raise UnresolvableReference(
                "accessor", index,
                f"needs {needed} bytes from bufferView {accessor.buffer_view}, which has {view_length}",
            )

        start = view.byte_offset + accessor.byte_offset

        if stride == element_size:
            flat = np.frombuffer(data, dtype=dtype, count=accessor.count * components, offset=start)
            return flat.reshape(shape).copy()

        strided = np.ndarray(
            shape=(accessor.count, components),
            dtype=dtype,
            buffer=data,
            offset=start,
            strides=(stride, dtype.itemsize),
        )
        return strided.reshape(shape).copy()

    def positions(self, primitive: Primitive, mesh_index: int, primitive_index: int) -> NDArray[np.float64]:
        """Read a primitive's POSITION attribute as an (N, 3) float64 array.

        Raises:
            MissingAttribute: No POSITION attribute, or it is not VEC3
        """
        accessor_index = primitive.attributes.get("POSITION")
        if accessor_index is None:
            raise MissingAttribute(mesh_index, primitive_index, "POSITION")

        accessor = self.document.get_accessor(accessor_index)
        if accessor.type != "VEC3":
            raise MissingAttribute(mesh_index, primitive_index, "POSITION (VEC3)")

        values = self.read_accessor(accessor_index)
        return values.astype(np.float64).reshape(-1, 3)

    def indices(self, primitive: Primitive) -> NDArray[np.int64] | None:
        """Read a primitive's index list, or None for non-indexed geometry.

        Raises:
            UnsupportedComponentType: Index accessor is not an unsigned integer scalar
        """
        if primitive.indices is None:
            return None

        accessor = self.document.get_accessor(primitive.indices)
        if accessor.component_type not in INDEX_COMPONENT_TYPES or accessor.type != "SCALAR":
            raise UnsupportedComponentType(
                primitive.indices,
                accessor.component_type,
                f"indices must be unsigned integer SCALAR, got {accessor.type}",
            )
        return self.read_accessor(primitive.indices).astype(np.int64)
