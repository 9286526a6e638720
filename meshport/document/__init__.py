"""Scene document model, container decoding and structural repair."""

from .container import DecodedContainer, decode_base64, decode_container, decode_path
from .model import (
    Accessor,
    Asset,
    Buffer,
    BufferView,
    Material,
    Mesh,
    Node,
    Primitive,
    Scene,
    SceneDocument,
)
from .repair import RepairReport, check_completeness, repair_document

__all__ = [
    "DecodedContainer",
    "decode_base64",
    "decode_container",
    "decode_path",
    "Accessor",
    "Asset",
    "Buffer",
    "BufferView",
    "Material",
    "Mesh",
    "Node",
    "Primitive",
    "Scene",
    "SceneDocument",
    "RepairReport",
    "check_completeness",
    "repair_document",
]
