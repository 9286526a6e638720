"""Export pipeline: scene bytes in, STL text and measurements out.

Stages run strictly forward:

    decode -> repair -> reference check -> resolve + transform (per primitive)
           -> bounds / normalization -> triangulate -> serialize

Structural problems abort before any geometry work. A primitive that cannot
be resolved contributes no triangles and is reported in
``ExportResult.skipped``; the rest of the model still exports.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Mapping

import numpy as np
from numpy.typing import NDArray

from .core.cancel import CancelToken
from .core.config import ExportConfig
from .core.errors import PRIMITIVE_ERRORS, EmptyGeometry
from .document.container import decode_container, decode_path
from .document.model import TRIANGLES, SceneDocument
from .document.repair import RepairReport, repair_document
from .mesh.buffers import BufferResolver
from .mesh.measure import MeshStats, measure
from .mesh.stl import write_ascii_stl
from .mesh.triangulate import TriangleSoup, triangulate
from .scene.bounds import (
    BoundingBox,
    Normalization,
    ScaleInfo,
    compute_bounds,
    compute_normalization,
)
from .scene.graph import SceneGraphTransformer, WorldPrimitive
from .scene.transform import Y_UP_TO_Z_UP, apply_matrix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class SkippedPrimitive:
    """A primitive left out of the export, and why."""

    node_index: int
    mesh_index: int
    primitive_index: int
    reason: str


@dataclass
class ExportResult:
    """Output of one export request.

    Attributes:
        stl: The serialized ASCII STL document
        triangles: Exported triangles (final coordinates)
        authored_bounds: World-space bounds before normalization
        normalization: Display normalization (computed or viewer-reported)
        normalized: Whether the normalization was baked into the export
        export_bounds: Bounds of the exported coordinates
        scale_info: Authored / displayed / exported dimensions
        stats: Measurements of the exported mesh
        skipped: Primitives that contributed no triangles
        repair: Fixes applied by the repair pass
    """

    stl: str
    triangles: TriangleSoup
    authored_bounds: BoundingBox
    normalization: Normalization
    normalized: bool
    export_bounds: BoundingBox
    scale_info: ScaleInfo
    stats: MeshStats
    skipped: list[SkippedPrimitive] = field(default_factory=list)
    repair: RepairReport = field(default_factory=RepairReport)

    @property
    def triangle_count(self) -> int:
        return len(self.triangles)

    @property
    def is_empty(self) -> bool:
        """True when no triangles were produced (recoverable)."""
        return self.triangle_count == 0

    def suggested_filename(self, stem: str = "model") -> str:
        """Download name distinguishing viewer-scaled from authored exports."""
        suffix = "_viewer_scale" if self.normalized else "_original"
        return f"{stem}{suffix}.stl"

    def write(self, path: Path | str) -> Path:
        """Write the STL document to a file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(self.stl, encoding="utf-8")
        return path


class ExportPipeline:
    """Run scene documents through the export stages."""

    def __init__(
        self,
        config: ExportConfig | None = None,
        cancel_token: CancelToken | None = None,
    ):
        """Create a pipeline.

        Args:
            config: Export options (defaults if None)
            cancel_token: Checked between primitives; cancellation raises
                ExportCancelled and never yields partial output
        """
        self.config = config or ExportConfig.default()
        self.cancel_token = cancel_token or CancelToken()

    def run(self, data: bytes, supplied_buffers: Mapping[int, bytes] | None = None) -> ExportResult:
        """Decode container bytes and export them.

        Args:
            data: GLB or glTF JSON bytes
            supplied_buffers: Pre-decoded buffer bytes keyed by buffer index
        """
        decoded = decode_container(data)
        supplied = {**decoded.supplied_buffers, **(supplied_buffers or {})}
        return self.export_document(decoded.document, supplied)

    def export_document(
        self,
        document: SceneDocument,
        supplied_buffers: Mapping[int, bytes] | None = None,
    ) -> ExportResult:
        """Export a decoded document.

        The document is repaired in place, then only read.
        """
        cfg = self.config

        repair = repair_document(document)
        document.check_references()

        resolver = BufferResolver(document, supplied_buffers)
        if cfg.decode_workers > 1:
            resolver.preload(cfg.decode_workers)

        skipped: list[SkippedPrimitive] = []
        primitives = self._gather(document, resolver, skipped)

        authored_bounds = compute_bounds(p.positions for p in primitives)
        normalization = self._display_normalization(authored_bounds)

        soups = []
        for prim in primitives:
            self.cancel_token.raise_if_cancelled()
            positions = self._export_positions(prim.positions, normalization)
            soups.append(TriangleSoup.from_vertices(triangulate(positions, prim.indices)))
            logger.debug(f"{prim.label}: {len(soups[-1])} triangle(s)")

        triangles = TriangleSoup.concatenate(soups)
        # Final check before serializing so a late cancel still yields nothing
        self.cancel_token.raise_if_cancelled()

        if len(triangles) == 0:
            message = "Export produced no triangles"
            if cfg.fail_on_empty:
                raise EmptyGeometry(message)
            logger.warning(message)

        stl = write_ascii_stl(triangles, name=cfg.solid_name, precision=cfg.precision)

        applied_scale = normalization.scale if cfg.apply_display_normalization else 1.0
        export_bounds = (
            BoundingBox.from_points(triangles.vertices.reshape(-1, 3))
            if len(triangles) else BoundingBox.placeholder()
        )
        result = ExportResult(
            stl=stl,
            triangles=triangles,
            authored_bounds=authored_bounds,
            normalization=normalization,
            normalized=cfg.apply_display_normalization,
            export_bounds=export_bounds,
            scale_info=ScaleInfo.from_bounds(
                authored_bounds,
                display_scale=normalization.scale,
                export_scale=applied_scale * cfg.unit_scale,
                units=cfg.units,
            ),
            stats=measure(triangles),
            skipped=skipped,
            repair=repair,
        )
        logger.info(
            f"Export complete: {result.triangle_count} triangle(s), "
            f"{len(skipped)} primitive(s) skipped"
        )
        return result

    def _gather(
        self,
        document: SceneDocument,
        resolver: BufferResolver,
        skipped: list[SkippedPrimitive],
    ) -> list[WorldPrimitive]:
        """Resolve every reachable primitive into world space."""
        transformer = SceneGraphTransformer(document)
        gathered: list[WorldPrimitive] = []

        for node_index, mesh_index, world in transformer.mesh_instances():
            mesh = document.get_mesh(mesh_index)
            for prim_index, primitive in enumerate(mesh.primitives):
                self.cancel_token.raise_if_cancelled()

                if primitive.mode != TRIANGLES:
                    self._skip(
                        skipped, node_index, mesh_index, prim_index,
                        f"unsupported primitive mode {primitive.mode}",
                    )
                    continue

                try:
                    prim = transformer.resolve_primitive(
                        resolver, node_index, mesh_index, prim_index, world
                    )
                except PRIMITIVE_ERRORS as e:
                    if self.config.strict:
                        raise
                    self._skip(skipped, node_index, mesh_index, prim_index, str(e))
                    continue

                gathered.append(prim)

        logger.info(
            f"Resolved {len(gathered)} primitive(s), "
            f"{sum(len(p.positions) for p in gathered)} vertices"
        )
        return gathered

    @staticmethod
    def _skip(
        skipped: list[SkippedPrimitive],
        node_index: int,
        mesh_index: int,
        prim_index: int,
        reason: str,
    ) -> None:
        logger.warning(
            f"Skipping node {node_index} mesh {mesh_index} primitive {prim_index}: {reason}"
        )
        skipped.append(SkippedPrimitive(node_index, mesh_index, prim_index, reason))

    def _display_normalization(self, bounds: BoundingBox) -> Normalization:
        viewer = self.config.viewer_normalization
        if viewer is not None:
            return Normalization(scale=viewer.scale, offset=viewer.offset)
        return compute_normalization(bounds, self.config.target_extent)

    def _export_positions(
        self,
        positions: NDArray[np.float64],
        normalization: Normalization,
    ) -> NDArray[np.float64]:
        """Map world-space positions to export coordinates.

        Order: display normalization (if requested), axis conversion, unit scale.
        """
        cfg = self.config
        out = normalization.apply(positions) if cfg.apply_display_normalization else positions
        if cfg.up_axis == "z" and len(out):
            out = apply_matrix(Y_UP_TO_Z_UP, out)
        return out * cfg.unit_scale


def export_stl(
    data: bytes,
    config: ExportConfig | None = None,
    supplied_buffers: Mapping[int, bytes] | None = None,
    cancel_token: CancelToken | None = None,
) -> ExportResult:
    """Convenience function: export GLB/glTF bytes to STL."""
    return ExportPipeline(config, cancel_token).run(data, supplied_buffers)


def export_path(
    path: Path | str,
    config: ExportConfig | None = None,
    cancel_token: CancelToken | None = None,
) -> ExportResult:
    """Convenience function: export a local .gltf/.glb file to STL."""
    decoded = decode_path(path)
    return ExportPipeline(config, cancel_token).export_document(
        decoded.document, decoded.supplied_buffers
    )
