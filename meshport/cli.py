"""Command-line interface for meshport.

Usage:
    meshport export scene.glb [options]
    meshport info scene.gltf
    meshport check scene.gltf
    meshport init-config
"""

from __future__ import annotations

import logging
from pathlib import Path

import click
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from .core.config import ExportConfig, ViewerNormalization
from .core.errors import MeshportError
from .document.container import decode_path
from .document.repair import check_completeness, repair_document
from .pipeline import ExportPipeline, ExportResult
from .scene.bounds import BoundingBox

console = Console()

UNIT_CHOICES = click.Choice(["mm", "cm", "m", "in", "ft"])


def setup_logging(verbose: bool = False) -> None:
    """Configure logging with rich output."""
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(
        level=level,
        format="%(message)s",
        handlers=[RichHandler(console=console, show_time=False)],
    )


@click.group()
@click.option("-v", "--verbose", is_flag=True, help="Enable verbose output")
@click.pass_context
def main(ctx: click.Context, verbose: bool) -> None:
    """meshport - export generated 3D scenes to STL."""
    ctx.ensure_object(dict)
    ctx.obj["verbose"] = verbose
    setup_logging(verbose)


def _fmt_vec(values) -> str:
    return f"({values[0]:.3f}, {values[1]:.3f}, {values[2]:.3f})"


def _fmt_size(box: BoundingBox) -> str:
    if box.is_placeholder:
        return "[yellow]no geometry[/yellow]"
    s = box.size
    return f"{s[0]:.3f} x {s[1]:.3f} x {s[2]:.3f}"


def _print_result(result: ExportResult, cfg: ExportConfig) -> None:
    table = Table(title="Export Summary")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Triangles", f"{result.triangle_count:,}")
    table.add_row("Mode", "as displayed" if result.normalized else "authored scale")
    table.add_row("Authored size", _fmt_size(result.authored_bounds))
    table.add_row("Display scale", f"{result.normalization.scale:.6g}")
    table.add_row("Display offset", _fmt_vec(result.normalization.offset))
    table.add_row("Exported size", f"{_fmt_size(result.export_bounds)} {cfg.units}")
    table.add_row("Surface area", f"{result.stats.surface_area:.3f}")
    table.add_row("Watertight", "Yes" if result.stats.is_watertight else "No")
    if result.stats.volume is not None:
        table.add_row("Volume", f"{result.stats.volume:.3f}")
    if result.repair.changed:
        table.add_row("Repairs", str(len(result.repair)))
    if result.skipped:
        table.add_row("Skipped primitives", f"[yellow]{len(result.skipped)}[/yellow]")

    console.print(table)

    for skip in result.skipped:
        console.print(
            f"[yellow]  mesh {skip.mesh_index} primitive {skip.primitive_index}: {skip.reason}[/yellow]"
        )


@main.command()
@click.argument("scene_path", type=click.Path(exists=True, dir_okay=False))
@click.option("-o", "--output", type=click.Path(dir_okay=False), help="Output STL path")
@click.option(
    "--display/--authored",
    "as_displayed",
    default=None,
    help="Bake the viewer normalization in, or keep authored scale",
)
@click.option("--target-extent", type=float, help="Display volume size (default 4)")
@click.option("--viewer-scale", type=float, help="Scale reported by the viewer")
@click.option(
    "--viewer-offset",
    type=(float, float, float),
    help="Offset reported by the viewer (used with --viewer-scale)",
)
@click.option("--scale", type=float, help="Extra uniform scale factor")
@click.option("--units", type=UNIT_CHOICES, help="Output units")
@click.option("--source-units", type=UNIT_CHOICES, help="Units the scene is authored in")
@click.option("--up-axis", type=click.Choice(["y", "z"]), help="Up axis of the exported file")
@click.option("--name", help="Solid name written into the STL")
@click.option("--workers", type=int, help="Threads for buffer decoding")
@click.option("--strict", is_flag=True, help="Fail on the first malformed primitive")
@click.option(
    "-c", "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False),
    help="Export configuration JSON",
)
def export(
    scene_path: str,
    output: str | None,
    as_displayed: bool | None,
    target_extent: float | None,
    viewer_scale: float | None,
    viewer_offset: tuple[float, float, float] | None,
    scale: float | None,
    units: str | None,
    source_units: str | None,
    up_axis: str | None,
    name: str | None,
    workers: int | None,
    strict: bool,
    config_path: str | None,
) -> None:
    """Export a glTF/GLB scene to ASCII STL.

    SCENE_PATH: Path to a .gltf or .glb file
    """
    cfg = ExportConfig.from_file(config_path) if config_path else ExportConfig.default()

    # Command-line options override the config file
    overrides = {
        "apply_display_normalization": as_displayed,
        "target_extent": target_extent,
        "scale": scale,
        "units": units,
        "source_units": source_units,
        "up_axis": up_axis,
        "solid_name": name,
        "decode_workers": workers,
        "strict": strict or None,
    }
    if viewer_scale is not None:
        overrides["viewer_normalization"] = ViewerNormalization(
            scale=viewer_scale,
            offset=viewer_offset or (0.0, 0.0, 0.0),
        )
    updates = {k: v for k, v in overrides.items() if v is not None}
    cfg = ExportConfig.model_validate({**cfg.model_dump(), **updates})

    path = Path(scene_path)
    try:
        with console.status("Exporting..."):
            decoded = decode_path(path)
            result = ExportPipeline(cfg).export_document(
                decoded.document, decoded.supplied_buffers
            )
    except MeshportError as e:
        console.print(f"[red]Export failed: {e}[/red]")
        raise click.Abort()

    out_path = Path(output) if output else path.with_name(result.suggested_filename(path.stem))
    result.write(out_path)

    _print_result(result, cfg)
    if result.is_empty:
        console.print("[yellow]Warning: no triangles were exported[/yellow]")
    console.print(f"[green]Saved to {out_path}[/green]")


@main.command()
@click.argument("scene_path", type=click.Path(exists=True, dir_okay=False))
@click.option("--target-extent", type=float, default=4.0, show_default=True)
def info(scene_path: str, target_extent: float) -> None:
    """Show the structure, bounds and display scale of a scene.

    SCENE_PATH: Path to a .gltf or .glb file
    """
    path = Path(scene_path)
    console.print(f"\n[bold]Scene Info: {path.name}[/bold]\n")

    try:
        decoded = decode_path(path)
        document = decoded.document

        table = Table(title="Meshes")
        table.add_column("Mesh", style="cyan")
        table.add_column("Name", style="green")
        table.add_column("Primitives", style="yellow")
        table.add_column("Instanced by nodes", style="magenta")

        nodes = document.nodes or []
        for mesh_index, mesh in enumerate(document.meshes or []):
            users = [str(i) for i, n in enumerate(nodes) if n.mesh == mesh_index]
            table.add_row(
                str(mesh_index),
                mesh.name or "",
                str(len(mesh.primitives)),
                ", ".join(users) or "[dim]none[/dim]",
            )
        console.print(table)
        console.print(
            f"Format: {'GLB' if decoded.is_binary else 'glTF JSON'}, "
            f"{len(nodes)} node(s), {document.num_primitives} primitive(s), "
            f"{len(document.scenes or [])} scene(s), "
            f"{len(document.buffers or [])} buffer(s)"
        )

        cfg = ExportConfig(target_extent=target_extent)
        result = ExportPipeline(cfg).export_document(
            document.model_copy(deep=True), decoded.supplied_buffers
        )
    except MeshportError as e:
        console.print(f"[red]Error loading: {e}[/red]")
        raise click.Abort()

    info_table = Table()
    info_table.add_column("Property", style="cyan")
    info_table.add_column("Value", style="green")
    bounds = result.authored_bounds
    scale_info = result.scale_info
    info_table.add_row("Triangles", f"{result.triangle_count:,}")
    info_table.add_row("Bounds (min)", _fmt_vec(bounds.min))
    info_table.add_row("Bounds (max)", _fmt_vec(bounds.max))
    info_table.add_row("Original size", "{} x {} x {}".format(*scale_info.original))
    info_table.add_row("Displayed size", "{} x {} x {}".format(*scale_info.displayed))
    info_table.add_row("Display scale", f"{result.normalization.scale:.6g}")
    info_table.add_row("Watertight", "Yes" if result.stats.is_watertight else "No")
    if result.stats.volume is not None:
        info_table.add_row("Volume", f"{result.stats.volume:.2f} cubic units")
    console.print(info_table)


@main.command()
@click.argument("scene_path", type=click.Path(exists=True, dir_okay=False))
def check(scene_path: str) -> None:
    """Report missing components and the repairs that would be applied.

    Exits with status 1 if the scene cannot be exported.
    """
    try:
        decoded = decode_path(scene_path)
    except MeshportError as e:
        console.print(f"[red]Cannot decode: {e}[/red]")
        raise SystemExit(1)

    document = decoded.document.model_copy(deep=True)
    missing = check_completeness(document)
    if missing:
        console.print(f"[yellow]Missing components: {', '.join(missing)}[/yellow]")
    else:
        console.print("[green]All required components present[/green]")

    report = repair_document(document)
    for action in report.actions:
        console.print(f"  [cyan]repair:[/cyan] {action}")

    try:
        document.check_references()
    except MeshportError as e:
        console.print(f"[red]Unexportable: {e}[/red]")
        raise SystemExit(1)

    console.print("[green]Scene is exportable[/green]")


@main.command("init-config")
@click.option(
    "-o", "--output",
    default="meshport.json",
    show_default=True,
    help="Output config file path",
)
def init_config(output: str) -> None:
    """Create a default export configuration file."""
    ExportConfig.default().to_file(output)
    console.print(f"[green]Created config file: {output}[/green]")


if __name__ == "__main__":
    main()
