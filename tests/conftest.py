"""Shared fixtures."""

import pytest

from builders import (
    QUAD_INDICES,
    QUAD_POSITIONS,
    TETRA_INDICES,
    TETRA_POSITIONS,
    geometry_blob,
    make_glb,
    make_gltf,
    to_json_bytes,
)


@pytest.fixture
def quad_gltf() -> dict:
    """Indexed unit quad (two triangles) in the XY plane."""
    return make_gltf(QUAD_POSITIONS, QUAD_INDICES)


@pytest.fixture
def quad_bytes(quad_gltf) -> bytes:
    return to_json_bytes(quad_gltf)


@pytest.fixture
def quad_glb() -> bytes:
    """The unit quad as GLB with its geometry in the BIN chunk."""
    doc = make_gltf(QUAD_POSITIONS, QUAD_INDICES, inline=False)
    return make_glb(doc, geometry_blob(QUAD_POSITIONS, QUAD_INDICES))


@pytest.fixture
def tetra_gltf() -> dict:
    """Closed tetrahedron."""
    return make_gltf(TETRA_POSITIONS, TETRA_INDICES)
