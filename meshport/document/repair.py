"""Structural repair for incomplete scene documents.

Upstream generators routinely omit required glTF elements. All fixes live
here so they can be audited in one place; no other stage patches the
document. The pass is additive (existing well-formed elements are never
removed or reordered) and idempotent.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from .model import Asset, Material, Node, Scene, SceneDocument

logger = logging.getLogger(__name__)

DEFAULT_GENERATOR = "meshport"

# Placeholder accessor bounds per element type. Never used for geometry.
PLACEHOLDER_BOUNDS: dict[str, tuple[list[float], list[float]]] = {
    "SCALAR": ([0.0], [1.0]),
    "VEC2": ([0.0, 0.0], [1.0, 1.0]),
    "VEC3": ([-1.0, -1.0, -1.0], [1.0, 1.0, 1.0]),
    "VEC4": ([-1.0, -1.0, -1.0, -1.0], [1.0, 1.0, 1.0, 1.0]),
}


@dataclass
class RepairReport:
    """Actions applied by a repair pass."""

    actions: list[str] = field(default_factory=list)

    def add(self, action: str) -> None:
        logger.info(f"Repair: {action}")
        self.actions.append(action)

    @property
    def changed(self) -> bool:
        return bool(self.actions)

    def __len__(self) -> int:
        return len(self.actions)


def check_completeness(document: SceneDocument) -> list[str]:
    """Return the names of missing top-level components.

    Materials only count as missing when a primitive references one.
    """
    missing = []
    if document.asset is None:
        missing.append("asset")
    if not document.scenes:
        missing.append("scenes")
    if not document.meshes:
        missing.append("meshes")
    if not document.nodes:
        missing.append("nodes")
    if not document.accessors:
        missing.append("accessors")
    if not document.buffers:
        missing.append("buffers")
    if _references_materials(document) and not document.materials:
        missing.append("materials")
    return missing


def _references_materials(document: SceneDocument) -> bool:
    return any(
        primitive.material is not None
        for mesh in document.meshes or []
        for primitive in mesh.primitives
    )


def repair_document(document: SceneDocument) -> RepairReport:
    """Fill in missing-but-required elements in place.

    Args:
        document: Freshly decoded document (mutated)

    Returns:
        RepairReport describing what was changed
    """
    report = RepairReport()

    if document.asset is None:
        document.asset = Asset(version="2.0", generator=DEFAULT_GENERATOR)
        report.add("added default asset metadata")

    if not document.scenes:
        roots = document.implicit_root_nodes() or [0]
        document.scenes = [Scene(nodes=roots)]
        report.add(f"added default scene referencing node(s) {roots}")
        if document.scene not in (None, 0):
            report.add(f"reset active scene {document.scene} to 0")
            document.scene = 0

    if document.scene is None:
        document.scene = 0
        report.add("set active scene to 0")

    if not document.nodes:
        if document.meshes:
            document.nodes = [Node(mesh=0)]
            report.add("added default node referencing mesh 0")
        else:
            document.nodes = [Node()]
            report.add("added empty default node (document has no meshes)")

    _repair_materials(document, report)
    _repair_accessor_bounds(document, report)
    _repair_buffer_lengths(document, report)

    if report.changed:
        logger.info(f"Repair pass applied {len(report)} fix(es)")
    return report


def _repair_materials(document: SceneDocument, report: RepairReport) -> None:
    if not _references_materials(document):
        return

    if not document.materials:
        document.materials = [
            Material(
                name="Default Material",
                pbrMetallicRoughness={
                    "baseColorFactor": [0.8, 0.8, 0.8, 1.0],
                    "metallicFactor": 0.0,
                    "roughnessFactor": 0.9,
                },
            )
        ]
        report.add("added default material")

    count = len(document.materials)
    for mesh_index, mesh in enumerate(document.meshes or []):
        for prim_index, primitive in enumerate(mesh.primitives):
            if primitive.material is not None and not 0 <= primitive.material < count:
                report.add(
                    f"mesh {mesh_index} primitive {prim_index}: material "
                    f"{primitive.material} out of range, using material 0"
                )
                primitive.material = 0


def _repair_accessor_bounds(document: SceneDocument, report: RepairReport) -> None:
    for index, accessor in enumerate(document.accessors or []):
        if accessor.min is not None and accessor.max is not None:
            continue
        placeholder = PLACEHOLDER_BOUNDS.get(accessor.type or "")
        if placeholder is None:
            continue
        lo, hi = placeholder
        if accessor.min is None:
            accessor.min = list(lo)
        if accessor.max is None:
            accessor.max = list(hi)
        report.add(f"accessor {index}: added placeholder min/max")


def _repair_buffer_lengths(document: SceneDocument, report: RepairReport) -> None:
    for index, buffer in enumerate(document.buffers or []):
        if buffer.byte_length is not None and buffer.byte_length > 0:
            continue
        extent = max(
            (
                view.byte_offset + (view.byte_length or 0)
                for view in document.buffer_views or []
                if view.buffer == index
            ),
            default=0,
        )
        if extent > 0:
            buffer.byte_length = extent
            report.add(f"buffer {index}: byteLength derived from buffer views ({extent})")
