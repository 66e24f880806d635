"""Command line interface for updatekit."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import NoReturn, Optional

import typer
from rich.console import Console

from updatekit import __version__
from updatekit.chunking.blockmap import BlockMapBuilder
from updatekit.config import DEFAULT_CHUNKER_CONFIG, ChunkerConfig, DownloadConfig
from updatekit.download.cancellation import CancellationToken, cancel_on_signals
from updatekit.download.downloader import Downloader
from updatekit.errors import UpdateKitError
from updatekit.models import CompressionFormat
from updatekit.utils.files import copy_dir_or_file, decode_checksum


console = Console()
error_console = Console(stderr=True)
app = typer.Typer(help="updatekit - block maps and concurrent downloads for app updates")


def _setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="[%(levelname)s] %(message)s")


def _fail(exc: Exception) -> NoReturn:
    error_console.print(f"[bold red]error:[/bold red] {exc}", highlight=False)
    raise typer.Exit(code=1)


def _version_callback(value: bool) -> None:
    if value:
        console.print(f"updatekit {__version__}")
        raise typer.Exit()


@app.callback()
def main(
    version: bool = typer.Option(
        False, "--version", callback=_version_callback, is_eager=True, help="Show version and exit"
    ),
) -> None:
    """Block maps and concurrent downloads for app updates."""


@app.command()
def blockmap(
    input_file: Path = typer.Option(
        ..., "--input", "-i", help="Input file", exists=True, dir_okay=False, resolve_path=True
    ),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Output file"),
    compression: CompressionFormat = typer.Option(
        CompressionFormat.GZIP, "--compression", "-c", help="Compression of the output file"
    ),
    min_size: int = typer.Option(DEFAULT_CHUNKER_CONFIG.min_size, help="Minimum chunk size in bytes"),
    average_size: int = typer.Option(DEFAULT_CHUNKER_CONFIG.average_size, help="Average chunk size in bytes"),
    max_size: int = typer.Option(DEFAULT_CHUNKER_CONFIG.max_size, help="Maximum chunk size in bytes"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Generate a file block map using content defined chunking.

    The map is robust to insertions, deletions and changes in the input file.
    """
    _setup_logging(verbose)
    try:
        config = ChunkerConfig(min_size=min_size, average_size=average_size, max_size=max_size)
    except ValueError as exc:
        raise typer.BadParameter(str(exc)) from exc

    try:
        block_map, _ = BlockMapBuilder(config, compression).build(input_file, output)
    except UpdateKitError as exc:
        _fail(exc)
    typer.echo(block_map.to_json())


@app.command()
def download(
    url: str = typer.Option(..., "--url", "-u", help="The URL"),
    output: Path = typer.Option(..., "--output", "-o", help="The output file", resolve_path=True),
    sha512: Optional[str] = typer.Option(None, "--sha512", help="The expected sha512 of file"),
    workers: Optional[int] = typer.Option(None, "--workers", min=1, help="Maximum parallel parts"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Download a file."""
    _setup_logging(verbose)
    if sha512:
        try:
            decode_checksum(sha512)
        except ValueError as exc:
            raise typer.BadParameter(str(exc), param_hint="--sha512") from exc

    token = CancellationToken()
    try:
        with cancel_on_signals(token), Downloader(DownloadConfig(max_workers=workers)) as downloader:
            downloader.fetch(url, output, sha512, token=token)
    except UpdateKitError as exc:
        _fail(exc)


@app.command()
def copy(
    source: Path = typer.Option(..., "--from", "-f", help="Source file or directory"),
    target: Path = typer.Option(..., "--to", "-t", help="Target path"),
    hard_link: bool = typer.Option(False, "--hard-link", help="Whether to use hard-links if possible"),
    verbose: bool = typer.Option(False, "--verbose", "-v", help="Verbose logging"),
) -> None:
    """Copy file or dir."""
    _setup_logging(verbose)
    try:
        copy_dir_or_file(source, target, use_hard_links=hard_link)
    except UpdateKitError as exc:
        _fail(exc)


if __name__ == "__main__":  # pragma: no cover
    app()
