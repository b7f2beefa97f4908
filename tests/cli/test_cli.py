import json
import logging
from collections.abc import Iterator
from pathlib import Path
from unittest.mock import AsyncMock

import pytest
from pytest_mock import MockerFixture
from typer.testing import CliRunner

from tgcd.api.client import StatusError, TgcdClient
from tgcd.cli.client import app, hash_files
from tgcd.core.exceptions import ErrorKind
from tgcd.core.types import Digest, Tag


@pytest.fixture(autouse=True)
def restore_app_logger() -> Iterator[None]:
    logger = logging.getLogger("tgcd")
    saved_level, saved_handlers = logger.level, list(logger.handlers)
    yield
    logger.setLevel(saved_level)
    logger.handlers = saved_handlers


@pytest.fixture
def runner() -> CliRunner:
    return CliRunner()


@pytest.fixture
def config_file(tmp_path: Path) -> Path:
    path = tmp_path / "config.toml"
    path.write_text('server-url = "http://tgcd.test"\nmax-cores = 2\n', encoding="utf-8")
    return path


@pytest.fixture
def fake_client(mocker: MockerFixture) -> AsyncMock:
    client = mocker.AsyncMock(spec=TgcdClient)
    client.__aenter__.return_value = client
    mocker.patch("tgcd.cli.client.TgcdClient.from_config", return_value=client)
    return client


@pytest.fixture
def photo(tmp_path: Path) -> Path:
    path = tmp_path / "photo.jpg"
    path.write_bytes(b"not really a jpeg")
    return path


def test_help(runner: CliRunner) -> None:
    result = runner.invoke(app, ["--help"])

    assert result.exit_code == 0
    for command in ("add-file-tags", "get-file-tags", "get-files-tags", "copy-tags"):
        assert command in result.output


def test_add_file_tags(runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "add-file-tags", str(photo), "beach", "2023"])

    assert result.exit_code == 0, result.output
    fake_client.add_tags_to_hash.assert_awaited_once_with(
        Digest.from_file(photo), [Tag.parse("beach"), Tag.parse("2023")]
    )


def test_add_file_tags_rejects_long_tag_locally(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path
) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "add-file-tags", str(photo), "x" * 256])

    assert result.exit_code == 1
    fake_client.add_tags_to_hash.assert_not_awaited()


def test_get_file_tags(runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path) -> None:
    fake_client.get_tags.return_value = [Tag.parse("2023"), Tag.parse("beach")]

    result = runner.invoke(app, ["--config", str(config_file), "get-file-tags", str(photo)])

    assert result.exit_code == 0, result.output
    assert result.stdout == "2023\nbeach\n"
    fake_client.get_tags.assert_awaited_once_with(Digest.from_file(photo))


def test_get_file_tags_as_json(runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path) -> None:
    fake_client.get_tags.return_value = [Tag.parse("beach")]

    result = runner.invoke(app, ["--json", "--config", str(config_file), "get-file-tags", str(photo)])

    assert result.exit_code == 0, result.output
    assert json.loads(result.stdout) == ["beach"]


def test_get_file_tags_without_tags_prints_nothing(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path
) -> None:
    fake_client.get_tags.return_value = []

    result = runner.invoke(app, ["--config", str(config_file), "get-file-tags", str(photo)])

    assert result.exit_code == 0
    assert result.stdout == ""


def test_get_files_tags_skips_unreadable_files(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path, tmp_path: Path
) -> None:
    other = tmp_path / "other.jpg"
    other.write_bytes(b"other contents")
    missing = tmp_path / "missing.jpg"
    fake_client.get_multiple_tags.return_value = [[Tag.parse("a")], []]

    result = runner.invoke(
        app, ["--json", "--config", str(config_file), "get-files-tags", str(photo), str(missing), str(other)]
    )

    assert result.exit_code == 0, result.output
    assert f"Can't hash file {missing}" in result.output
    fake_client.get_multiple_tags.assert_awaited_once_with([Digest.from_file(photo), Digest.from_file(other)])
    json_line = result.stdout.strip().splitlines()[-1]
    assert json.loads(json_line) == {str(photo): ["a"], str(other): []}


def test_get_files_tags_human_output(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path
) -> None:
    fake_client.get_multiple_tags.return_value = [[Tag.parse("a"), Tag.parse("b")]]

    result = runner.invoke(app, ["--config", str(config_file), "get-files-tags", str(photo)])

    assert result.exit_code == 0, result.output
    assert result.stdout == f"{photo}:\na\nb\n"


def test_copy_tags(runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path, tmp_path: Path) -> None:
    dest = tmp_path / "copy.jpg"
    dest.write_bytes(b"edited copy")

    result = runner.invoke(app, ["--config", str(config_file), "copy-tags", str(photo), str(dest)])

    assert result.exit_code == 0, result.output
    fake_client.copy_tags.assert_awaited_once_with(Digest.from_file(photo), Digest.from_file(dest))


def test_copy_tags_with_missing_source(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path, tmp_path: Path
) -> None:
    result = runner.invoke(app, ["--config", str(config_file), "copy-tags", str(tmp_path / "gone.jpg"), str(photo)])

    assert result.exit_code == 1
    assert "Can't hash file" in result.output
    fake_client.copy_tags.assert_not_awaited()


def test_server_error_is_reported(runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path) -> None:
    fake_client.get_tags.side_effect = StatusError(ErrorKind.UNAVAILABLE, "db error", 503)

    result = runner.invoke(app, ["--config", str(config_file), "get-file-tags", str(photo)])

    assert result.exit_code == 1
    assert "db error" in result.output


def test_missing_config_is_written(runner: CliRunner, fake_client: AsyncMock, photo: Path, tmp_path: Path) -> None:
    config_path = tmp_path / "fresh" / "config.toml"

    result = runner.invoke(app, ["--config", str(config_path), "get-file-tags", str(photo)])

    assert result.exit_code == 1
    assert "Wrote default config" in result.output
    assert config_path.exists()
    fake_client.get_tags.assert_not_awaited()


def test_config_from_environment(
    runner: CliRunner, config_file: Path, fake_client: AsyncMock, photo: Path
) -> None:
    fake_client.get_tags.return_value = [Tag.parse("env")]

    result = runner.invoke(app, ["get-file-tags", str(photo)], env={"TGCD_CLIENT_CONFIG": str(config_file)})

    assert result.exit_code == 0, result.output
    assert result.stdout == "env\n"


@pytest.mark.asyncio
async def test_hash_files_keeps_order_and_reports_errors(tmp_path: Path) -> None:
    paths = []
    for i in range(5):
        path = tmp_path / f"file-{i}"
        path.write_bytes(f"contents {i}".encode())
        paths.append(path)
    paths.insert(2, tmp_path / "missing")

    results = await hash_files(paths, max_workers=2)

    assert isinstance(results[2], Exception)
    assert [r for i, r in enumerate(results) if i != 2] == [Digest.from_file(p) for p in paths if p.exists()]
