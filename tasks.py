"""Invoke tasks for CatalogBox application management."""

import sys
from pathlib import Path

from invoke import task
from invoke.context import Context


@task
def start(
    ctx: Context,
    host: str | None = None,
    port: int | None = None,
    workers: int | None = None,
    reload: bool = False,
) -> None:
    """Start the CatalogBox FastAPI server.

    Host, port and worker count default to the [server] section of config.toml.

    Args:
        ctx: Invoke context
        host: Host to bind to
        port: Port to bind to
        workers: Number of worker processes (ignored with --reload)
        reload: Enable auto-reload for development
    """
    from catalogbox.config import settings

    host = host or settings.host
    port = port or settings.port
    cmd = f"uv run uvicorn catalogbox.main:app --host {host} --port {port}"
    if reload:
        cmd += " --reload"
    else:
        cmd += f" --workers {workers or settings.workers}"

    try:
        ctx.run(cmd, pty=True)
    except KeyboardInterrupt:
        print("\nServer stopped")
        sys.exit(0)


@task
def test(ctx: Context, verbose: bool = False, coverage: bool = False) -> None:
    """Run the test suite.

    Args:
        ctx: Invoke context
        verbose: Enable verbose output
        coverage: Run with coverage report
    """
    cmd = "uv run pytest"
    if verbose:
        cmd += " -v"
    if coverage:
        cmd += " --cov=catalogbox --cov-report=term-missing"
    ctx.run(cmd, pty=True)


@task(name="import")
def import_file(ctx: Context, path: str, append: bool = False) -> None:
    """Import a product spreadsheet.

    Args:
        ctx: Invoke context
        path: XLSX file to import
        append: Merge into the catalog instead of replacing it
    """
    cmd = f"uv run catalogbox import {path}"
    if append:
        cmd += " --append"
    ctx.run(cmd, pty=True)


@task
def export(ctx: Context, output: str = "") -> None:
    """Export the catalog to XLSX.

    Args:
        ctx: Invoke context
        output: Output file (default: timestamped file under data/export)
    """
    cmd = "uv run catalogbox export"
    if output:
        cmd += f" -o {output}"
    ctx.run(cmd, pty=True)


@task
def purge(ctx: Context, force: bool = False) -> None:
    """Delete every product and the column layout.

    Args:
        ctx: Invoke context
        force: Skip confirmation prompt
    """
    cmd = "uv run catalogbox purge"
    if force:
        cmd += " -y"
    ctx.run(cmd, pty=True)


@task
def clean(ctx: Context, all: bool = False) -> None:
    """Clean up temporary files.

    Args:
        ctx: Invoke context
        all: Also remove archived imports and saved exports
    """
    import shutil

    # Clean Python cache
    for pattern in ["__pycache__", "*.pyc", "*.pyo", ".pytest_cache"]:
        ctx.run(f"find . -name '{pattern}' -exec rm -rf {{}} + 2>/dev/null || true", warn=True)

    # Clean build artifacts
    for path in ["build", "dist", "*.egg-info", ".eggs"]:
        ctx.run(f"rm -rf {path} 2>/dev/null || true", warn=True)

    if all:
        print("Removing archived imports and exports...")
        for directory in (Path("data/import"), Path("data/export")):
            if directory.exists():
                shutil.rmtree(directory)
                directory.mkdir(parents=True)

    print("Cleanup complete")
