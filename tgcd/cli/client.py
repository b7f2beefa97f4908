"""Command line client: tag files by the digest of their contents."""

import asyncio
import logging
from collections.abc import Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from pathlib import Path
from typing import Annotated, NoReturn

import typer

from tgcd.api.client import ClientError, TgcdClient
from tgcd.cli.output import Output, get_output
from tgcd.core.config import ClientConfig, ConfigError, load_client_config
from tgcd.core.exceptions import TgcdError
from tgcd.core.logging_config import setup_logging
from tgcd.core.types import Digest, Tag
from tgcd.utils.async_typer import AsyncTyper

logger = logging.getLogger(__name__)

app = AsyncTyper(
    name="tgcd",
    help="Attach tags to files by the digest of their contents.",
    no_args_is_help=True,
)


class FileHashError(Exception):
    """Raised when a file cannot be read for hashing."""

    def __init__(self, path: Path, error: OSError) -> None:
        super().__init__(f"Can't hash file {path}: {error}")
        self.path = path
        self.error = error


CLI_ERRORS = (TgcdError, ClientError, ConfigError, FileHashError)


@dataclass
class CliState:
    """Options shared by all commands."""

    output: Output
    config_path: Path | None = None

    def load_config(self) -> ClientConfig:
        return load_client_config(self.config_path)


def _fail(error: Exception) -> NoReturn:
    typer.secho(str(error), fg=typer.colors.RED, err=True)
    raise typer.Exit(1) from error


def _echo(text: str) -> None:
    if text:
        typer.echo(text)


def hash_file(path: Path) -> Digest:
    """Hash one file, reporting unreadable files as `FileHashError`."""
    try:
        return Digest.from_file(path)
    except OSError as e:
        raise FileHashError(path, e) from e


async def hash_files(paths: Sequence[Path], max_workers: int) -> list[Digest | FileHashError]:
    """Hash files in parallel on at most `max_workers` threads, keeping input order."""
    loop = asyncio.get_running_loop()

    def _hash(path: Path) -> Digest | FileHashError:
        try:
            return hash_file(path)
        except FileHashError as e:
            return e

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        return list(await asyncio.gather(*(loop.run_in_executor(pool, _hash, path) for path in paths)))


@app.callback()
def main_callback(
    ctx: typer.Context,
    json_output: Annotated[bool, typer.Option("--json", "-j", help="Print results as JSON.")] = False,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config",
            "-c",
            help="Path to the client configuration file.",
            envvar="TGCD_CLIENT_CONFIG",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    """Load options shared by all commands."""
    setup_logging(logging.WARNING)
    ctx.obj = CliState(output=get_output(json_output), config_path=config_file)


@app.command(name="add-file-tags")
async def add_file_tags(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="File whose contents are tagged.")],
    tags: Annotated[list[str], typer.Argument(help="Tags to attach.")],
) -> None:
    """Attach tags to a file."""
    state: CliState = ctx.obj
    try:
        parsed_tags = [Tag.parse(tag) for tag in tags]
        config = state.load_config()
        digest = hash_file(file)
        async with TgcdClient.from_config(config) as client:
            await client.add_tags_to_hash(digest, parsed_tags)
    except CLI_ERRORS as e:
        _fail(e)


@app.command(name="get-file-tags")
async def get_file_tags(
    ctx: typer.Context,
    file: Annotated[Path, typer.Argument(help="File to look up.")],
) -> None:
    """Print the tags of a file."""
    state: CliState = ctx.obj
    try:
        config = state.load_config()
        digest = hash_file(file)
        async with TgcdClient.from_config(config) as client:
            tags = await client.get_tags(digest)
    except CLI_ERRORS as e:
        _fail(e)
    _echo(state.output.file_tags([tag.name for tag in tags]))


@app.command(name="get-files-tags")
async def get_files_tags(
    ctx: typer.Context,
    files: Annotated[list[Path], typer.Argument(help="Files to look up.")],
) -> None:
    """Print the tags of several files. Files that cannot be read are reported and skipped."""
    state: CliState = ctx.obj
    try:
        config = state.load_config()
        file_hashes: list[tuple[Path, Digest]] = []
        for path, result in zip(files, await hash_files(files, config.max_cores)):
            if isinstance(result, FileHashError):
                typer.secho(str(result), fg=typer.colors.YELLOW, err=True)
                continue
            file_hashes.append((path, result))

        async with TgcdClient.from_config(config) as client:
            tags = await client.get_multiple_tags([digest for _, digest in file_hashes])
    except CLI_ERRORS as e:
        _fail(e)

    tag_map = {str(path): [tag.name for tag in file_tags] for (path, _), file_tags in zip(file_hashes, tags)}
    _echo(state.output.files_tags(tag_map))


@app.command(name="copy-tags")
async def copy_tags(
    ctx: typer.Context,
    src: Annotated[Path, typer.Argument(help="File whose tags are copied.")],
    dest: Annotated[Path, typer.Argument(help="File that receives the tags.")],
) -> None:
    """Copy the tags of one file onto another. Tags already on the destination are kept."""
    state: CliState = ctx.obj
    try:
        config = state.load_config()
        src_digest, dest_digest = await hash_files([src, dest], min(2, config.max_cores))
        for result in (src_digest, dest_digest):
            if isinstance(result, FileHashError):
                raise result
        async with TgcdClient.from_config(config) as client:
            await client.copy_tags(src_digest, dest_digest)
    except CLI_ERRORS as e:
        _fail(e)
