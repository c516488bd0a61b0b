from __future__ import annotations

import json

from typer.testing import CliRunner

import filehosting.storage.repo as repo_module
import filehosting_cli.cli as cli_module

SAMPLE_CONTENT = "Hello, this is a sample file for uploading.\n"


def _storage_args(tmp_path) -> list[str]:
    return ["--files-dir", str(tmp_path / "files"), "--db-path", str(tmp_path / "files.db")]


def test_cli_end_to_end_upload_list_delete(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")

    result = runner.invoke(cli_module.app, ["upload", str(source), *storage])
    assert result.exit_code == 0
    assert "File uploaded successfully!" in result.output
    assert "filename=example.txt size=44" in result.output
    assert (tmp_path / "files" / "example.txt").read_text(encoding="utf-8") == SAMPLE_CONTENT

    result = runner.invoke(cli_module.app, ["list", *storage])
    assert result.exit_code == 0
    assert "example.txt" in result.output.splitlines()

    result = runner.invoke(cli_module.app, ["search", "name", "ample", *storage])
    assert result.exit_code == 0
    assert "example.txt" in result.output
    assert "matches=1" in result.output

    result = runner.invoke(cli_module.app, ["records", *storage])
    assert result.exit_code == 0
    assert "total=1" in result.output
    assert " 44 " in result.output

    result = runner.invoke(cli_module.app, ["download", "example.txt", *storage])
    assert result.exit_code == 0
    assert "File found:" in result.output

    result = runner.invoke(cli_module.app, ["delete", "example.txt", *storage])
    assert result.exit_code == 0
    assert "File deleted." in result.output
    assert "records_removed=1" in result.output
    assert not (tmp_path / "files" / "example.txt").exists()

    result = runner.invoke(cli_module.app, ["list", *storage])
    assert result.exit_code == 0
    assert "No files found." in result.output

    result = runner.invoke(cli_module.app, ["records", *storage])
    assert "total=0" in result.output


def test_cli_upload_missing_file_is_not_an_error(tmp_path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli_module.app,
        ["upload", str(tmp_path / "missing.txt"), *_storage_args(tmp_path)],
    )

    assert result.exit_code == 0
    assert "File does not exist." in result.output
    assert not (tmp_path / "files.db").exists()


def test_cli_download_and_delete_unknown_name(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)

    result = runner.invoke(cli_module.app, ["download", "ghost.txt", *storage])
    assert result.exit_code == 0
    assert "File not found." in result.output

    result = runner.invoke(cli_module.app, ["delete", "ghost.txt", *storage])
    assert result.exit_code == 0
    assert "File does not exist." in result.output
    assert "records_removed=0" in result.output


def test_cli_download_output_copies_file(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")
    runner.invoke(cli_module.app, ["upload", str(source), *storage])
    destination = tmp_path / "downloads" / "copy.txt"

    result = runner.invoke(
        cli_module.app,
        ["download", "example.txt", "--output", str(destination), *storage],
    )

    assert result.exit_code == 0
    assert f"Saved to: {destination}" in result.output
    assert destination.read_text(encoding="utf-8") == SAMPLE_CONTENT


def test_cli_search_date_accepts_epoch_and_rejects_garbage(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")
    runner.invoke(cli_module.app, ["upload", str(source), *storage])

    result = runner.invoke(
        cli_module.app,
        ["search", "date", "--start", "0", "--end", "9999999999", *storage],
    )
    assert result.exit_code == 0
    assert "matches=1" in result.output

    result = runner.invoke(
        cli_module.app,
        ["search", "date", "--start", "1970-01-01", "--end", "1970-01-02", *storage],
    )
    assert result.exit_code == 0
    assert "matches=0" in result.output

    result = runner.invoke(
        cli_module.app,
        ["search", "date", "--start", "soon", "--end", "later", *storage],
    )
    assert result.exit_code == 1
    assert "invalid timestamp" in result.output


def test_cli_reconcile_flags_inconsistency(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    files_dir = tmp_path / "files"
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")
    runner.invoke(cli_module.app, ["upload", str(source), *storage])

    result = runner.invoke(cli_module.app, ["reconcile", *storage])
    assert result.exit_code == 0
    assert "consistent" in result.output

    (files_dir / "stray.bin").write_bytes(b"stray")
    result = runner.invoke(cli_module.app, ["reconcile", *storage])
    assert result.exit_code == 1
    assert "untracked stray.bin" in result.output


def test_cli_setup_failure_exits_with_error(tmp_path) -> None:
    runner = CliRunner()
    occupied = tmp_path / "files"
    occupied.write_text("not a directory", encoding="utf-8")

    result = runner.invoke(
        cli_module.app,
        ["list", "--files-dir", str(occupied), "--db-path", str(tmp_path / "files.db")],
    )

    assert result.exit_code == 1
    assert "failed to create storage directory" in result.output


def test_cli_reads_storage_paths_from_config(tmp_path) -> None:
    runner = CliRunner()
    config_path = tmp_path / "config.json"
    config_path.write_text(
        json.dumps(
            {
                "storage": {
                    "files_dir": str(tmp_path / "configured-files"),
                    "db_path": str(tmp_path / "configured.db"),
                },
                "logging": {"level": "WARNING"},
            }
        ),
        encoding="utf-8",
    )
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")

    result = runner.invoke(cli_module.app, ["upload", str(source), "--config", str(config_path)])

    assert result.exit_code == 0
    assert (tmp_path / "configured-files" / "example.txt").exists()
    assert (tmp_path / "configured.db").exists()


def test_cli_search_date_rejects_timestamps_beyond_sqlite_range(tmp_path) -> None:
    runner = CliRunner()

    result = runner.invoke(
        cli_module.app,
        [
            "search",
            "date",
            "--start",
            "0",
            "--end",
            "99999999999999999999",
            *_storage_args(tmp_path),
        ],
    )

    assert result.exit_code == 1
    assert isinstance(result.exception, SystemExit)
    assert "timestamp out of range" in result.output


def test_cli_search_date_bare_end_date_includes_the_whole_day(monkeypatch, tmp_path) -> None:
    monkeypatch.setattr(repo_module.time, "time", lambda: 1_700_000_000.0)
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")
    runner.invoke(cli_module.app, ["upload", str(source), *storage])

    result = runner.invoke(
        cli_module.app,
        ["search", "date", "--start", "2023-11-14", "--end", "2023-11-14", *storage],
    )

    assert result.exit_code == 0
    assert "matches=1" in result.output
    assert "2023-11-14T22:13:20+00:00" in result.output


def test_cli_upload_of_stored_file_appends_record(tmp_path) -> None:
    runner = CliRunner()
    storage = _storage_args(tmp_path)
    source = tmp_path / "example.txt"
    source.write_text(SAMPLE_CONTENT, encoding="utf-8")
    runner.invoke(cli_module.app, ["upload", str(source), *storage])

    result = runner.invoke(
        cli_module.app,
        ["upload", str(tmp_path / "files" / "example.txt"), *storage],
    )

    assert result.exit_code == 0
    assert "File uploaded successfully!" in result.output
    result = runner.invoke(cli_module.app, ["records", *storage])
    assert "total=2 skipped=0" in result.output
