"""Tests for the structural repair pass."""

from builders import QUAD_INDICES, QUAD_POSITIONS, make_gltf
from meshport.document.model import SceneDocument
from meshport.document.repair import (
    PLACEHOLDER_BOUNDS,
    check_completeness,
    repair_document,
)


def _doc(data: dict) -> SceneDocument:
    return SceneDocument.from_dict(data)


class TestCompleteness:
    """Test detection of missing components."""

    def test_complete_document(self, quad_gltf):
        """Test nothing is reported for a complete document."""
        assert check_completeness(_doc(quad_gltf)) == []

    def test_missing_components(self, quad_gltf):
        """Test absent top-level lists are named."""
        del quad_gltf["scenes"]
        del quad_gltf["nodes"]
        del quad_gltf["asset"]

        missing = check_completeness(_doc(quad_gltf))
        assert missing == ["asset", "scenes", "nodes"]

    def test_materials_only_when_referenced(self, quad_gltf):
        """Test materials count as missing only when a primitive uses one."""
        assert "materials" not in check_completeness(_doc(quad_gltf))

        quad_gltf["meshes"][0]["primitives"][0]["material"] = 0
        assert "materials" in check_completeness(_doc(quad_gltf))


class TestRepair:
    """Test the individual repair rules."""

    def test_complete_document_untouched(self, quad_gltf):
        """Test a complete document produces an empty report."""
        quad_gltf["accessors"][1].update(min=[0], max=[3])
        doc = _doc(quad_gltf)
        before = doc.to_dict()

        report = repair_document(doc)

        assert not report.changed
        assert len(report) == 0
        assert doc.to_dict() == before

    def test_adds_asset(self, quad_gltf):
        """Test a minimal asset block is inserted."""
        del quad_gltf["asset"]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert doc.asset is not None
        assert doc.asset.version == "2.0"

    def test_adds_scene(self, quad_gltf):
        """Test an absent scene list becomes one scene referencing node 0."""
        del quad_gltf["scenes"]
        del quad_gltf["scene"]
        doc = _doc(quad_gltf)

        report = repair_document(doc)

        assert [s.nodes for s in doc.scenes] == [[0]]
        assert doc.scene == 0
        assert report.changed

    def test_empty_scene_list_treated_as_absent(self, quad_gltf):
        """Test an empty scene list is repaired like a missing one."""
        quad_gltf["scenes"] = []
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert [s.nodes for s in doc.scenes] == [[0]]

    def test_default_scene_skips_meshless_node_zero(self, quad_gltf):
        """Test the default scene is rooted at the mesh node, not a bare node 0."""
        del quad_gltf["scenes"]
        del quad_gltf["scene"]
        quad_gltf["nodes"] = [{"name": "camera_rig"}, {"mesh": 0}]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert [s.nodes for s in doc.scenes] == [[1]]
        doc.check_references()

    def test_default_scene_uses_parentless_nodes(self, quad_gltf):
        """Test children are not made roots of the default scene."""
        del quad_gltf["scenes"]
        del quad_gltf["scene"]
        quad_gltf["nodes"] = [{"children": [2]}, {"mesh": 0}, {"mesh": 0}]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert [s.nodes for s in doc.scenes] == [[0, 1]]

    def test_stale_scene_index_reset(self, quad_gltf):
        """Test a non-zero scene index points at the inserted scene."""
        del quad_gltf["scenes"]
        quad_gltf["scene"] = 3
        doc = _doc(quad_gltf)

        report = repair_document(doc)

        assert doc.scene == 0
        assert "reset active scene 3 to 0" in report.actions
        doc.check_references()

    def test_sets_active_scene(self, quad_gltf):
        """Test a missing active scene index is set to 0."""
        del quad_gltf["scene"]
        doc = _doc(quad_gltf)

        report = repair_document(doc)

        assert doc.scene == 0
        assert "set active scene to 0" in report.actions

    def test_adds_node(self, quad_gltf):
        """Test an absent node list becomes one node referencing mesh 0."""
        del quad_gltf["nodes"]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert len(doc.nodes) == 1
        assert doc.nodes[0].mesh == 0

    def test_adds_empty_node_without_meshes(self):
        """Test a document without meshes gets a mesh-less node."""
        doc = _doc({})

        repair_document(doc)

        assert doc.nodes[0].mesh is None
        doc.check_references()

    def test_adds_default_material(self, quad_gltf):
        """Test a referenced but absent material list is filled in."""
        quad_gltf["meshes"][0]["primitives"][0]["material"] = 0
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert len(doc.materials) == 1
        assert doc.materials[0].name == "Default Material"
        doc.check_references()

    def test_clamps_material_index(self, quad_gltf):
        """Test an out-of-range material index falls back to 0."""
        quad_gltf["materials"] = [{"name": "red"}]
        quad_gltf["meshes"][0]["primitives"][0]["material"] = 4
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert doc.meshes[0].primitives[0].material == 0

    def test_no_material_when_unreferenced(self, quad_gltf):
        """Test no material is invented when nothing references one."""
        doc = _doc(quad_gltf)
        repair_document(doc)
        assert doc.materials is None

    def test_placeholder_accessor_bounds(self, quad_gltf):
        """Test accessors without min/max get per-type placeholders."""
        for key in ("min", "max"):
            del quad_gltf["accessors"][0][key]
        doc = _doc(quad_gltf)

        repair_document(doc)

        position, index = doc.accessors
        assert (position.min, position.max) == PLACEHOLDER_BOUNDS["VEC3"]
        assert (index.min, index.max) == PLACEHOLDER_BOUNDS["SCALAR"]

    def test_existing_accessor_bounds_kept(self, quad_gltf):
        """Test declared bounds are never overwritten."""
        quad_gltf["accessors"][0]["min"] = [0, 0, 0]
        quad_gltf["accessors"][0]["max"] = [1, 1, 0]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert doc.accessors[0].max == [1, 1, 0]

    def test_buffer_length_derived(self, quad_gltf):
        """Test a missing byteLength comes from the buffer views."""
        del quad_gltf["buffers"][0]["byteLength"]
        doc = _doc(quad_gltf)

        repair_document(doc)

        view = doc.buffer_views[1]
        assert doc.buffers[0].byte_length == view.byte_offset + view.byte_length

    def test_existing_elements_preserved(self, quad_gltf):
        """Test repairs are additive and keep well-formed elements."""
        quad_gltf["nodes"] = [{"mesh": 0, "name": "keep"}]
        del quad_gltf["asset"]
        doc = _doc(quad_gltf)

        repair_document(doc)

        assert doc.nodes[0].name == "keep"
        assert len(doc.nodes) == 1


class TestIdempotence:
    """Test repairing twice equals repairing once."""

    def test_repair_twice(self):
        """Test a heavily incomplete document stabilizes after one pass."""
        data = make_gltf(QUAD_POSITIONS, QUAD_INDICES)
        for key in ("asset", "scene", "scenes", "nodes"):
            del data[key]
        del data["buffers"][0]["byteLength"]
        data["meshes"][0]["primitives"][0]["material"] = 3

        doc = _doc(data)
        first = repair_document(doc)
        once = doc.to_dict()
        second = repair_document(doc)

        assert first.changed
        assert not second.changed
        assert doc.to_dict() == once

    def test_default_scene_twice(self, quad_gltf):
        """Test the derived default scene is stable across passes."""
        del quad_gltf["scenes"]
        quad_gltf["scene"] = 2
        quad_gltf["nodes"] = [{"name": "camera_rig"}, {"mesh": 0}]
        doc = _doc(quad_gltf)

        repair_document(doc)
        once = doc.to_dict()

        assert not repair_document(doc).changed
        assert doc.to_dict() == once
