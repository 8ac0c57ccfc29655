"""CLI entry point for caminit.

Usage:
    caminit init -i images/ -s sensors.txt -o out/   # Folder of images
    caminit init -j resources.json -s sensors.txt -o out/
    caminit run                                      # Run pipeline.yaml
    caminit run-step camera_init -i '{...}'          # Run single step
    caminit info                                     # Show pipeline info
"""

from __future__ import annotations

from pathlib import Path

import typer
from pydantic import ValidationError
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from caminit.core.errors import CameraInitError
from caminit.core.logging import setup_logging

app = typer.Typer(name="caminit", help="Camera initialisation: images to views, intrinsics and rigs")
console = Console()

DEFAULT_CONFIG = Path("configs/pipeline.yaml")


def _fail(message: str) -> None:
    console.print(f"[red]Error: {escape(message)}[/red]")
    raise typer.Exit(1)


@app.command()
def init(
    image_dir: Path = typer.Option(None, "--image-dir", "-i", help="Input images folder"),
    descriptor: Path = typer.Option(None, "--descriptor", "-j", help="JSON file listing images, groups and rigs"),
    sensor_database: Path = typer.Option(None, "--sensor-database", "-s", help="Camera sensor width database"),
    output: Path = typer.Option(..., "--output", "-o", help="Output directory"),
    focal_px: float = typer.Option(None, "--focal-px", help="Focal length in pixels"),
    sensor_width: float = typer.Option(None, "--sensor-width", help="Sensor width in mm"),
    k_matrix: str = typer.Option(None, "--k-matrix", help='Intrinsics "f;0;ppx;0;f;ppy;0;0;1"'),
    camera_model: str = typer.Option(None, "--camera-model", help="pinhole|radial1|radial3|brown|fisheye4|fisheye1"),
    grouping: str = typer.Option("per_camera", "--grouping", help="none|per_camera|per_group|per_folder"),
    extensions: str = typer.Option("jpg,jpeg", "--extensions", help="Comma-separated extensions for folders in -j"),
    workers: int = typer.Option(1, "--workers", help="Threads reading image headers"),
    log_level: str = typer.Option("INFO", "--log-level", "-v", help="Logging level"),
) -> None:
    """Create the scene file (views, intrinsics, rigs) from input images."""
    setup_logging(log_level)
    from caminit.steps.s01_resolve_resources.config import ResolveResourcesConfig
    from caminit.steps.s01_resolve_resources.contracts import ResolveResourcesInput
    from caminit.steps.s01_resolve_resources.step import ResolveResourcesStep
    from caminit.steps.s02_camera_init.config import CameraInitConfig
    from caminit.steps.s02_camera_init.contracts import CameraInitInput
    from caminit.steps.s02_camera_init.step import CameraInitStep
    from caminit.steps.s03_group_intrinsics.config import GroupIntrinsicsConfig
    from caminit.steps.s03_group_intrinsics.contracts import GroupIntrinsicsInput
    from caminit.steps.s03_group_intrinsics.step import GroupIntrinsicsStep

    try:
        resolve_cfg = ResolveResourcesConfig(extensions=extensions.split(","))
        init_cfg = CameraInitConfig(
            sensor_database=sensor_database,
            focal_length_px=focal_px,
            sensor_width_mm=sensor_width,
            k_matrix=k_matrix,
            camera_model=camera_model,
            grouping_policy=grouping,
            num_workers=workers,
        )
        resolve_input = ResolveResourcesInput(image_dir=image_dir, descriptor_file=descriptor)
    except ValidationError as e:
        _fail(f"Invalid options:\n{e}")

    try:
        resolved = ResolveResourcesStep(config=resolve_cfg, data_root=output).execute(resolve_input)
        initialised = CameraInitStep(config=init_cfg, data_root=output).execute(
            CameraInitInput(**resolved.model_dump())
        )
        grouped = GroupIntrinsicsStep(config=GroupIntrinsicsConfig(), data_root=output).execute(
            GroupIntrinsicsInput(**initialised.model_dump())
        )
    except CameraInitError as e:
        _fail(str(e))

    table = Table(title="Camera init report")
    table.add_column("Item", style="cyan")
    table.add_column("Count", style="green", justify="right")
    table.add_row("Single images", str(resolved.num_single_images))
    table.add_row("Intrinsic groups", str(resolved.num_intrinsic_groups))
    table.add_row("Rigs", str(resolved.num_rigs))
    table.add_row("Input image paths", str(initialised.num_input_images))
    table.add_row("Views", str(grouped.num_views))
    table.add_row("Skipped images", str(initialised.num_skipped))
    table.add_row("Views without intrinsic", str(initialised.views_without_intrinsic))
    table.add_row("Intrinsics", f"{grouped.num_intrinsics} (from {grouped.num_intrinsics_before})")
    console.print(table)
    if initialised.views_without_intrinsic:
        console.print(
            f"[yellow]{initialised.views_without_intrinsic} view(s) without usable intrinsic, "
            f"reconstruction may fail[/yellow]"
        )
    console.print(f"[green]Scene written to {grouped.scene_file}[/green]")


@app.command()
def run(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Run the full pipeline."""
    setup_logging()
    from caminit.core.pipeline_runner import run_pipeline

    try:
        run_pipeline(config)
    except (CameraInitError, ValidationError) as e:
        _fail(str(e))


@app.command()
def run_step(
    step_name: str = typer.Argument(..., help="Step name (e.g. camera_init)"),
    config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path"),
    input_json: str = typer.Option(None, "--input", "-i", help="Input as JSON string"),
) -> None:
    """Run a single pipeline step."""
    import json

    setup_logging()
    from caminit.core.pipeline_runner import load_pipeline_config, import_step_class, load_step_config

    pipeline_cfg = load_pipeline_config(config)
    entry = next((s for s in pipeline_cfg.steps if s.name == step_name), None)
    if entry is None:
        console.print(f"[red]Step '{step_name}' not found in pipeline config[/red]")
        raise typer.Exit(1)

    step_cls = import_step_class(entry.module)
    step_config = load_step_config(Path(entry.config_file), step_cls.config_type)
    step_instance = step_cls(config=step_config, data_root=pipeline_cfg.data_root)

    input_data = dict(entry.inputs)
    if input_json:
        input_data.update(json.loads(input_json))
    else:
        missing = [f for f in step_cls.required_inputs() if f not in input_data]
        if missing:
            console.print(f"[yellow]Step '{step_name}' requires input fields: {missing}[/yellow]")
            console.print("[yellow]Use --input/-i with JSON string, e.g.:[/yellow]")
            console.print(f'  caminit run-step {step_name} -i \'{{"field": "value"}}\'')
            raise typer.Exit(1)

    console.print(f"[green]Running step: {step_name}[/green]")
    try:
        step_input = step_cls.input_type(**input_data)
        output = step_instance.execute(step_input)
    except (CameraInitError, ValidationError) as e:
        _fail(str(e))
    console.print(f"[green]Done. Output:[/green] {output.model_dump_json(indent=2)}")


def _unmet_inputs(step) -> str:
    """Required inputs neither set in the pipeline file nor produced by a dependency."""
    from caminit.core.pipeline_runner import import_step_class

    if step.depends_on:
        return "-"
    required = import_step_class(step.module).required_inputs()
    missing = [f for f in required if f not in step.inputs]
    return ", ".join(missing) or "-"


@app.command()
def info(config: Path = typer.Option(DEFAULT_CONFIG, help="Pipeline config path")) -> None:
    """Show pipeline steps and their status."""
    from caminit.core.pipeline_runner import load_pipeline_config

    pipeline_cfg = load_pipeline_config(config)
    table = Table(title=f"Pipeline: {pipeline_cfg.project_name}")
    table.add_column("#", style="dim")
    table.add_column("Step", style="cyan")
    table.add_column("Module", style="green")
    table.add_column("Enabled", style="yellow")
    table.add_column("Depends On", style="dim")
    table.add_column("Needs", style="magenta")

    for i, step in enumerate(pipeline_cfg.steps, 1):
        table.add_row(
            str(i),
            step.name,
            step.module,
            "Y" if step.enabled else "N",
            ", ".join(step.depends_on) if step.depends_on else "-",
            _unmet_inputs(step),
        )
    console.print(table)


if __name__ == "__main__":
    app()
