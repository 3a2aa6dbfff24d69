"""CLI application for crate-transit."""

import hashlib
import logging
import sys
import tomllib
from pathlib import Path

import typer
from rich.console import Console
from rich.logging import RichHandler
from rich.markup import escape

from cratetransit.errors import TransitError
from cratetransit.index import IndexEntry, checksum_from_hex
from cratetransit.parse_manifest import parse_manifest
from cratetransit.publish import CRATES_IO_INDEX, PublishPayload

console = Console()
err_console = Console(stderr=True, soft_wrap=True)

REGISTRY_ENVVAR = "CRATE_TRANSIT_REGISTRY"


def configure_logging(verbose: bool) -> None:
    """Send log records to stderr through rich."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False)],
        force=True,
    )


def read_manifest_text(file_path: str) -> str:
    """Read manifest content from a path, or stdin for '-'."""
    if file_path == "-":
        return sys.stdin.read()

    path_obj = Path(file_path)
    if not path_obj.exists():
        raise FileNotFoundError(f"File {file_path} not found")
    return path_obj.read_text()


def crate_checksum(crate_path: Path) -> bytes:
    """SHA-256 of a packaged .crate file."""
    digest = hashlib.sha256()
    with crate_path.open("rb") as fh:
        for chunk in iter(lambda: fh.read(65536), b""):
            digest.update(chunk)
    return digest.digest()


def write_output(content: str, output: str | None) -> None:
    if output and output != "-":
        Path(output).write_text(content + "\n")
        console.print(f"Wrote {output}")
    else:
        # Plain stdout so JSON is not re-wrapped by the console
        sys.stdout.write(content + "\n")


app = typer.Typer(
    name="crate-transit",
    help="crate-transit - Turn a Cargo.toml into a registry publish payload or index entry",
    add_completion=False,
)


@app.command()
def publish(
    file_path: str = typer.Argument(help="Path to Cargo.toml (use '-' for stdin)"),
    registry: str = typer.Option(
        CRATES_IO_INDEX, "--registry", "-r", envvar=REGISTRY_ENVVAR, help="Index URL of the target registry"
    ),
    readme: Path | None = typer.Option(None, "--readme", help="README file whose contents go in the payload"),
    readme_file: str | None = typer.Option(
        None, "--readme-file", help="README path recorded in the payload (defaults to --readme)"
    ),
    output: str | None = typer.Option(None, "--out", "-o", help="Output file (use '-' for stdout)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Build the JSON payload sent to a registry's publish API."""
    configure_logging(verbose)

    try:
        manifest = parse_manifest(read_manifest_text(file_path))
        readme_contents = readme.read_text() if readme else None
        if readme and readme_file is None:
            readme_file = readme.name

        payload = PublishPayload.from_manifest(
            manifest, registry, readme=readme_contents, readme_file=readme_file
        )
        write_output(payload.to_json(indent=2), output)

    except (TransitError, tomllib.TOMLDecodeError, OSError) as e:
        err_console.print(f"Error: {escape(str(e))}", style="red")
        raise typer.Exit(1)


@app.command()
def index(
    file_path: str = typer.Argument(help="Path to Cargo.toml (use '-' for stdin)"),
    checksum: str | None = typer.Option(None, "--checksum", "-c", help="Hex SHA-256 of the .crate file"),
    crate: Path | None = typer.Option(None, "--crate", help="Packaged .crate file to checksum"),
    registry: str = typer.Option(
        CRATES_IO_INDEX, "--registry", "-r", envvar=REGISTRY_ENVVAR, help="Index URL of the target registry"
    ),
    output: str | None = typer.Option(None, "--out", "-o", help="Output file (use '-' for stdout)"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Log debug output to stderr"),
) -> None:
    """Build the index line recorded for a published version."""
    configure_logging(verbose)

    if (checksum is None) == (crate is None):
        err_console.print("Error: Specify exactly one of --checksum or --crate", style="red")
        raise typer.Exit(1)

    try:
        digest = checksum_from_hex(checksum) if checksum is not None else crate_checksum(crate)
        manifest = parse_manifest(read_manifest_text(file_path))

        entry = IndexEntry.from_manifest(manifest, registry, digest)
        write_output(entry.to_json(), output)

    except (TransitError, tomllib.TOMLDecodeError, OSError) as e:
        err_console.print(f"Error: {escape(str(e))}", style="red")
        raise typer.Exit(1)


if __name__ == "__main__":
    app()
