"""Build OpenCV command implementation."""

from pathlib import Path

import click

from provisioner.commands.utils import execute_task, task_options


@click.command(name="build-opencv")
@task_options
@click.option("--cuda/--no-cuda", default=None, help="Build with CUDA and cuDNN")
@click.option(
    "--cuda-deps/--no-cuda-deps",
    default=None,
    help="Install the multimedia and CUDA build dependencies",
)
@click.option("--ffmpeg/--no-ffmpeg", default=None, help="Set WITH_FFMPEG (CUDA builds)")
@click.option(
    "--install/--no-install",
    "install_system",
    default=None,
    help="Run 'make install' after the build",
)
@click.option(
    "--work-dir",
    type=click.Path(file_okay=False, path_type=Path),
    help="Where sources are downloaded and built (default: current directory)",
)
@click.option("--jobs", "-j", type=click.IntRange(min=1), help="Parallel make jobs")
@click.pass_context
def build_opencv(
    ctx,
    yes: bool,
    dry_run: bool,
    cuda: bool | None,
    cuda_deps: bool | None,
    ffmpeg: bool | None,
    install_system: bool | None,
    work_dir: Path | None,
    jobs: int | None,
):
    """Download, configure and build OpenCV 4.x with contrib modules."""
    flags = {
        "cuda": cuda,
        "cuda_deps": cuda_deps,
        "ffmpeg": ffmpeg,
        "install": install_system,
    }
    answers = {key: value for key, value in flags.items() if value is not None}
    if work_dir is not None:
        work_dir = work_dir.expanduser().resolve()
    execute_task(ctx, "build-opencv", yes, dry_run, answers=answers, work_dir=work_dir, jobs=jobs)
