from __future__ import annotations

import logging
from pathlib import Path

import typer

from filehosting import AppConfig, load_config
from filehosting.errors import FileHostError, NotFound
from filehosting.schemas import FileRecord, parse_timestamp
from filehosting.service import DownloadStatus, FileHost

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s %(levelname)s %(name)s %(message)s",
)

app = typer.Typer(help="Local file hosting CLI")
search_app = typer.Typer(help="Metadata search commands")
app.add_typer(search_app, name="search")

_CONFIG_HELP = "Optional config file (YAML or JSON)."
_FILES_DIR_HELP = "Blob storage directory. Overrides storage.files_dir."
_DB_PATH_HELP = "SQLite DB file path. Overrides storage.db_path."


@app.command()
def upload(
    file: Path = typer.Argument(..., metavar="FILE", help="Path to the file to upload."),
    name: str | None = typer.Option(
        None,
        "--name",
        help="Store under this name instead of the source base name.",
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Upload a file into storage and record its metadata."""
    typer.echo(f"Uploading file: {file}")
    if not file.is_file():
        typer.echo("File does not exist.")
        return

    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        record = host.upload(file, name=name)
    except NotFound:
        typer.echo("File does not exist.")
        return
    except (FileHostError, ValueError) as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo("File uploaded successfully!")
    typer.echo(f"id={record.id} filename={record.filename} size={record.size}")


@app.command()
def download(
    file_name: str = typer.Argument(..., metavar="FILE_NAME", help="Name of the stored file."),
    output: Path | None = typer.Option(
        None,
        "--output",
        "-o",
        help="Copy the stored file to this path or directory.",
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Look up a stored file, optionally copying it out."""
    typer.echo(f"Downloading file: {file_name}")
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        result = host.download(file_name, destination=output)
    except (FileHostError, ValueError) as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    if result.blob_present:
        typer.echo(f"File found: {result.path}")
    else:
        typer.echo("File not found.")

    if result.status == DownloadStatus.UNTRACKED:
        typer.echo("warning: file has no metadata records")
    elif result.status == DownloadStatus.DANGLING:
        typer.echo(f"warning: {len(result.records)} metadata records reference a missing file")

    if result.copied_to is not None:
        typer.echo(f"Saved to: {result.copied_to}")


@app.command("list")
def list_files(
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """List stored file names, one per line."""
    typer.echo("Listing all files:")
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    found = 0
    try:
        for name in host.list_names():
            typer.echo(name)
            found += 1
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    if not found:
        typer.echo("No files found.")


@app.command()
def delete(
    file_name: str = typer.Argument(..., metavar="FILE_NAME", help="Name of the stored file."),
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Delete a stored file and every metadata row with the same name."""
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        result = host.delete(file_name)
    except (FileHostError, ValueError) as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    if result.blob_removed:
        typer.echo("File deleted.")
    else:
        typer.echo("File does not exist.")
    typer.echo(f"records_removed={result.records_removed}")


@app.command()
def records(
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Show every metadata row."""
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        rows = host.records()
        stored = host.repo.count()
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(_render_record_table(rows))
    typer.echo(f"total={len(rows)} skipped={stored - len(rows)}")


@search_app.command("name")
def search_name(
    substring: str = typer.Argument(..., help="Case-sensitive substring of the file name."),
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Find metadata rows whose file name contains SUBSTRING."""
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        rows = host.search_by_name(substring)
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(_render_record_table(rows))
    typer.echo(f"matches={len(rows)}")


@search_app.command("date")
def search_date(
    start: str = typer.Option(
        ...,
        "--start",
        help="Range start: unix seconds or ISO-8601 date/datetime (UTC if naive).",
    ),
    end: str = typer.Option(
        ...,
        "--end",
        help=(
            "Range end, inclusive: unix seconds or ISO-8601 date/datetime. "
            "A bare date covers that whole day."
        ),
    ),
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Find metadata rows uploaded between --start and --end inclusive."""
    try:
        start_ts = parse_timestamp(start)
        end_ts = parse_timestamp(end, end_of_day=True)
    except ValueError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        rows = host.search_by_date_range(start_ts, end_ts)
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    typer.echo(_render_record_table(rows))
    typer.echo(f"matches={len(rows)} start={start_ts} end={end_ts}")


@app.command()
def reconcile(
    config_path: Path | None = typer.Option(
        None, "--config", help=_CONFIG_HELP, exists=True, dir_okay=False, readable=True
    ),
    files_dir: Path | None = typer.Option(None, "--files-dir", help=_FILES_DIR_HELP),
    db_path: Path | None = typer.Option(None, "--db-path", help=_DB_PATH_HELP),
) -> None:
    """Compare stored files with metadata rows."""
    host = _open_host(config_path, files_dir=files_dir, db_path=db_path)
    try:
        report = host.reconcile()
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    for name in report.untracked:
        typer.echo(f"untracked {name}")
    for name in report.dangling:
        typer.echo(f"dangling {name}")
    for name, count in report.duplicates.items():
        typer.echo(f"duplicate {name} records={count}")

    typer.echo(
        "summary "
        f"blobs={report.blob_count} "
        f"records={report.record_count} "
        f"untracked={len(report.untracked)} "
        f"dangling={len(report.dangling)} "
        f"duplicates={len(report.duplicates)}"
    )
    if not report.is_consistent:
        raise typer.Exit(code=1)
    typer.echo("consistent")


def _load_app_config(
    config_path: Path | None,
    *,
    files_dir: Path | None,
    db_path: Path | None,
) -> AppConfig:
    config = load_config(config_path) if config_path is not None else AppConfig()
    return config.with_overrides(files_dir=files_dir, db_path=db_path)


def _configure_logging(config: AppConfig) -> None:
    root = logging.getLogger()
    root.setLevel(config.logging.level)
    formatter = logging.Formatter(config.logging.format)
    for handler in root.handlers:
        handler.setFormatter(formatter)


def _open_host(
    config_path: Path | None,
    *,
    files_dir: Path | None,
    db_path: Path | None,
) -> FileHost:
    try:
        config = _load_app_config(config_path, files_dir=files_dir, db_path=db_path)
    except ValueError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc

    _configure_logging(config)
    try:
        return FileHost.open(config)
    except FileHostError as exc:
        typer.echo(str(exc))
        raise typer.Exit(code=1) from exc


def _render_record_table(rows: list[FileRecord]) -> str:
    if not rows:
        return "no records found"

    id_width = max(len("id"), *(len(str(record.id)) for record in rows))
    size_width = max(len("size"), *(len(str(record.size)) for record in rows))
    names = [_shorten_name(record.filename) for record in rows]
    name_width = max(len("filename"), *(len(name) for name in names))

    lines = [
        f"{'id':>{id_width}}  {'filename':<{name_width}}  {'size':>{size_width}}  uploaded_at"
    ]
    for record, name in zip(rows, names, strict=True):
        uploaded = record.uploaded_at_datetime.isoformat(timespec="seconds")
        lines.append(
            f"{record.id:>{id_width}}  {name:<{name_width}}  {record.size:>{size_width}}  {uploaded}"
        )
    return "\n".join(lines)


def _shorten_name(name: str, *, limit: int = 60) -> str:
    # Keep the extension visible.
    if len(name) <= limit:
        return name
    keep = limit - 3
    head = keep - keep // 3
    return f"{name[:head]}...{name[len(name) - (keep - head):]}"


def main() -> None:
    """CLI entrypoint."""
    app()


if __name__ == "__main__":
    main()
