"""Tests for the command-line interface."""

import json

import pytest
from click.testing import CliRunner

from builders import to_json_bytes
from meshport.cli import main
from meshport.core.config import ExportConfig
from meshport.mesh.stl import count_facets


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def quad_file(tmp_path, quad_glb):
    path = tmp_path / "quad.glb"
    path.write_bytes(quad_glb)
    return path


class TestExport:
    """Test the export command."""

    def test_default_output_name(self, runner, quad_file):
        """Test the STL is written next to the input."""
        result = runner.invoke(main, ["export", str(quad_file)])

        assert result.exit_code == 0, result.output
        out = quad_file.with_name("quad_original.stl")
        assert count_facets(out.read_text()) == 2

    def test_display_mode(self, runner, quad_file, tmp_path):
        """Test --display writes normalized coordinates."""
        out = tmp_path / "shown.stl"
        result = runner.invoke(
            main, ["export", str(quad_file), "--display", "--target-extent", "2", "-o", str(out)]
        )

        assert result.exit_code == 0, result.output
        assert "vertex 1.000000 1.000000 0.000000" in out.read_text()

    def test_viewer_scale(self, runner, quad_file, tmp_path):
        """Test viewer-reported normalization on the command line."""
        out = tmp_path / "viewer.stl"
        result = runner.invoke(
            main,
            [
                "export", str(quad_file), "--display",
                "--viewer-scale", "3", "--viewer-offset", "0", "0", "1",
                "-o", str(out),
            ],
        )

        assert result.exit_code == 0, result.output
        assert "vertex 3.000000 3.000000 1.000000" in out.read_text()

    def test_name_and_units(self, runner, quad_file, tmp_path):
        """Test solid name and unit options."""
        out = tmp_path / "named.stl"
        result = runner.invoke(
            main,
            ["export", str(quad_file), "--name", "bracket", "--source-units", "cm", "-o", str(out)],
        )

        text = out.read_text()
        assert result.exit_code == 0, result.output
        assert text.startswith("solid bracket\n")
        assert "vertex 10.000000 10.000000 0.000000" in text

    def test_config_file(self, runner, quad_file, tmp_path):
        """Test options can come from a config file."""
        cfg_path = tmp_path / "cfg.json"
        ExportConfig(solid_name="fromfile").to_file(cfg_path)
        out = tmp_path / "cfg.stl"

        result = runner.invoke(main, ["export", str(quad_file), "-c", str(cfg_path), "-o", str(out)])

        assert result.exit_code == 0, result.output
        assert out.read_text().startswith("solid fromfile\n")

    def test_invalid_input_aborts(self, runner, tmp_path):
        """Test a broken file aborts with a non-zero status."""
        bad = tmp_path / "bad.gltf"
        bad.write_text("{broken")

        result = runner.invoke(main, ["export", str(bad)])

        assert result.exit_code != 0
        assert "Export failed" in result.output


class TestInfoAndCheck:
    """Test the inspection commands."""

    def test_info(self, runner, quad_file):
        """Test info prints mesh and size details."""
        result = runner.invoke(main, ["info", str(quad_file)])

        assert result.exit_code == 0, result.output
        assert "Triangles" in result.output
        assert "GLB" in result.output

    def test_check_complete(self, runner, quad_file):
        """Test a complete scene passes the check."""
        result = runner.invoke(main, ["check", str(quad_file)])

        assert result.exit_code == 0, result.output
        assert "exportable" in result.output

    def test_check_reports_repairs(self, runner, tmp_path, quad_gltf):
        """Test missing components and repair actions are listed."""
        del quad_gltf["scenes"]
        del quad_gltf["scene"]
        path = tmp_path / "noscene.gltf"
        path.write_bytes(to_json_bytes(quad_gltf))

        result = runner.invoke(main, ["check", str(path)])

        assert result.exit_code == 0, result.output
        assert "scenes" in result.output
        assert "repair" in result.output

    def test_check_unexportable(self, runner, tmp_path, quad_gltf):
        """Test a dangling reference exits with status 1."""
        quad_gltf["nodes"] = [{"mesh": 3}]
        path = tmp_path / "dangling.gltf"
        path.write_bytes(to_json_bytes(quad_gltf))

        result = runner.invoke(main, ["check", str(path)])

        assert result.exit_code == 1


class TestInitConfig:
    """Test config file creation."""

    def test_init_config(self, runner, tmp_path):
        """Test the default config is written and loads back."""
        path = tmp_path / "meshport.json"
        result = runner.invoke(main, ["init-config", "-o", str(path)])

        assert result.exit_code == 0, result.output
        assert json.loads(path.read_text())["target_extent"] == 4.0
        assert ExportConfig.from_file(path) == ExportConfig.default()
