from pathlib import Path
from typing import NoReturn

import orjson
import pandas as pd
import typer
import yaml
from rich.console import Console
from rich.markup import escape
from rich.table import Table as RichTable

from uicdb.analysis.mit import MIT_TABLE_HEADINGS, mit_failure_table, mit_failure_timeseries
from uicdb.analysis.violations import (
    VIOL_CODE_FIELD,
    VIOL_TYPE_FIELD,
    attach_violation_types,
    class_2_snc_violations,
    load_viol_code_key,
    snc_by_type,
    snc_timeseries,
)
from uicdb.data.generator import SYNTHETIC_SCHEMA, SYNTHETIC_VIOL_CODES, generate_synthetic_file
from uicdb.data.loader import latest_download, load_or_tag, read_lines, write_lines
from uicdb.extractor import CONTROL_FIELD, extract_tables, with_control_field
from uicdb.manifest import load_manifest, sample_manifest, validate_manifest
from uicdb.runlog import ProcessSummary, append_csv, append_jsonl, summarize_log, summary_to_row
from uicdb.schema.parser import load_schema, schema_to_mapping
from uicdb.store import find_table, read_table, write_tables
from uicdb.tagger import TAG_MODES, AlreadyTaggedError, MalformedHeaderError, tag_lines

app = typer.Typer(help="Parse the RRC UIC flat file into tables and run the letter analyses.")
dataset_app = typer.Typer(help="Dataset helpers (synthetic fixtures).")
manifest_app = typer.Typer(help="Describe and validate UIC downloads.")
log_app = typer.Typer(help="Inspect processing run logs.")
console = Console()
FORMAT_CHOICES = {"arrow": ("arrow",), "csv": ("csv",), "both": ("arrow", "csv")}

app.add_typer(dataset_app, name="dataset")
app.add_typer(manifest_app, name="manifest")
app.add_typer(log_app, name="log")


def _require_file(path: Path) -> Path:
    if not path.is_file():
        raise typer.BadParameter(f"Input file not found: {path}")
    return path


def _check_mode(mode: str) -> str:
    if mode not in TAG_MODES:
        raise typer.BadParameter(f"Unsupported mode '{mode}'. Choose from {TAG_MODES}.")
    return mode


def _fail(message: str) -> NoReturn:
    console.print(f"[bold red]Error:[/] {escape(message)}", soft_wrap=True)
    raise typer.Exit(code=1)


@app.command()
def process(
    input: Path = typer.Argument(..., help="Pre-cleaned UIC flat file (NUL bytes replaced)."),
    schema: Path = typer.Option(..., "--schema", "-s", help="Table layouts (yaml/json/xlsx)."),
    output_dir: Path = typer.Option(
        Path("tables"), "--output-dir", "-o", help="Where to write table_NN files."
    ),
    cache_dir: Path | None = typer.Option(
        None, "--cache-dir", help="Reuse/store the tagged line sequence here."
    ),
    format: str = typer.Option("arrow", "--format", "-f", help="arrow | csv | both."),
    mode: str = typer.Option("insert", "--mode", help="Tagging mode: insert | overwrite."),
    control_field: str = typer.Option(
        CONTROL_FIELD,
        "--control-field",
        help="Column added to detail tables for the injected control number ('' to skip).",
    ),
    log_csv: Path | None = typer.Option(None, "--log-csv", help="Append a run summary row."),
    log_jsonl: Path | None = typer.Option(None, "--log-jsonl", help="Append a run summary line."),
    tag: str | None = typer.Option(None, "--tag", help="Optional tag to mark this run."),
) -> None:
    """Tag detail records with their control number and extract one table per record type."""
    fmt = format.lower()
    if fmt not in FORMAT_CHOICES:
        raise typer.BadParameter(
            f"Unsupported format '{format}'. Choose from {set(FORMAT_CHOICES)}."
        )
    _check_mode(mode)
    _require_file(input)
    _require_file(schema)

    try:
        layouts = load_schema(schema)
        if control_field:
            layouts = with_control_field(layouts, name=control_field, mode=mode)
        lines, cached = load_or_tag(input, cache_dir=cache_dir, mode=mode)
        tables = extract_tables(lines, layouts)
    except (yaml.YAMLError, ValueError) as exc:
        # MalformedHeaderError, SchemaError and json.JSONDecodeError are ValueErrors
        _fail(str(exc))

    source = "cache" if cached else "input"
    console.print(f"[bold green]Tagged[/] {len(lines)} lines from {source}")
    written = write_tables(tables, output_dir, formats=FORMAT_CHOICES[fmt])

    summary_table = RichTable(title="Extracted tables")
    summary_table.add_column("record type")
    summary_table.add_column("rows", justify="right")
    summary_table.add_column("columns", justify="right")
    for rtype, table in tables.items():
        summary_table.add_row(rtype, str(table.num_rows), str(len(table.columns)))
    console.print(summary_table)
    console.print(f"[bold green]Wrote[/] {len(written)} files to {output_dir}")

    summary = ProcessSummary(
        lines=len(lines),
        mode=mode,
        cached=cached,
        table_rows={rtype: t.num_rows for rtype, t in tables.items()},
        outputs=[str(p) for p in written],
    )
    if log_csv:
        append_csv(log_csv, summary_to_row(summary, source=str(input), tag=tag))
        console.print(f"[bold green]Appended CSV log[/] to {log_csv}")
    if log_jsonl:
        append_jsonl(log_jsonl, {"source": str(input), "tag": tag, "summary": summary})
        console.print(f"[bold green]Appended JSONL log[/] to {log_jsonl}")


@app.command("tag")
def tag_command(
    input: Path = typer.Argument(..., help="Pre-cleaned UIC flat file."),
    output: Path = typer.Option(..., "--output", "-o", help="Where to write the tagged lines."),
    mode: str = typer.Option("insert", "--mode", help="Tagging mode: insert | overwrite."),
) -> None:
    """Write the tagged line sequence without extracting tables."""
    _check_mode(mode)
    try:
        tagged = tag_lines(read_lines(_require_file(input)), mode=mode)
    except (MalformedHeaderError, AlreadyTaggedError) as exc:
        _fail(str(exc))
    write_lines(output, tagged)
    console.print(f"[bold green]Wrote[/] {len(tagged)} tagged lines to {output}")


@app.command()
def latest(
    data_dir: Path = typer.Argument(Path("data"), help="Folder holding dated downloads."),
) -> None:
    """Print the most recent download folder."""
    try:
        console.print(str(latest_download(data_dir)), soft_wrap=True)
    except FileNotFoundError as exc:
        _fail(str(exc))


@app.command()
def analyze(
    table_dir: Path = typer.Argument(..., help="Folder with table_01, table_07 and table_10."),
    viol_codes: Path = typer.Option(
        ..., "--viol-codes", "-k", help="Violation code key (csv/xlsx)."
    ),
    output_dir: Path = typer.Option(
        Path("analysis"), "--output-dir", "-o", help="Where to write analysis CSVs."
    ),
    max_year: int = typer.Option(2023, "--max-year", help="Last year with complete data."),
    split_year: int = typer.Option(
        2011, "--split-year", help="Compare violation mix before/from this year."
    ),
) -> None:
    """Run the SNC and MIT failure analyses and write their tables as CSV."""
    try:
        table_01 = read_table(find_table(table_dir, "01"))
        table_07 = read_table(find_table(table_dir, "07"))
        table_10 = read_table(find_table(table_dir, "10"))
    except FileNotFoundError as exc:
        _fail(str(exc))
    try:
        key = load_viol_code_key(_require_file(viol_codes))
    except ValueError as exc:
        _fail(str(exc))

    snc = class_2_snc_violations(table_01, table_10)
    snc_typed = attach_violation_types(snc, key)
    outputs: dict[str, pd.DataFrame] = {
        "snc_timeseries.csv": snc_timeseries(snc, max_year=max_year),
        "snc_by_type.csv": snc_by_type(snc_typed),
        f"snc_by_type_pre_{split_year}.csv": snc_by_type(snc_typed, end_year=split_year),
        f"snc_by_type_{split_year}_onward.csv": snc_by_type(snc_typed, start_year=split_year),
        "mit_failure_timeseries.csv": mit_failure_timeseries(
            table_01, table_07, snc_typed, max_year=max_year
        ),
    }

    output_dir.mkdir(parents=True, exist_ok=True)
    for name, frame in outputs.items():
        frame.to_csv(output_dir / name, index=False)
    letter_table = mit_failure_table(table_01, snc_typed).rename(columns=MIT_TABLE_HEADINGS)
    # BOM so spreadsheet tools pick up UTF-8
    letter_table.to_csv(output_dir / "mit_failure_table.csv", index=False, encoding="utf-8-sig")

    console.print(f"[bold green]SNC violations (Class II):[/] {len(snc)}")
    console.print(f"[bold green]Wrote[/] {len(outputs) + 1} analysis tables to {output_dir}")


@manifest_app.command("validate")
def manifest_validate(
    manifest: Path = typer.Argument(..., help="Manifest describing a download (json/yaml)."),
    output: Path | None = typer.Option(None, "--output", "-o", help="Write the result as JSON."),
) -> None:
    """Check hash, NUL bytes, header order and schema coverage of a download."""
    try:
        result = validate_manifest(load_manifest(_require_file(manifest)))
    except (yaml.YAMLError, ValueError) as exc:
        _fail(str(exc))
    if output:
        output.write_bytes(orjson.dumps(result, option=orjson.OPT_INDENT_2))
        console.print(f"[bold green]Wrote validation[/] to {output}")
    else:
        console.print(orjson.dumps(result, option=orjson.OPT_INDENT_2).decode())
    if result["warnings"]:
        console.print(f"[yellow]Warnings:[/] {', '.join(result['warnings'])}")


@manifest_app.command("sample")
def manifest_sample() -> None:
    """Print a manifest template to edit."""
    console.print(yaml.safe_dump(sample_manifest(), sort_keys=False))


@dataset_app.command("synthetic")
def dataset_synthetic(
    output: Path = typer.Argument(..., help="Path to write the synthetic flat file."),
    schema: Path | None = typer.Option(
        None, "--schema", "-s", help="Optional path to write the matching schema (yaml)."
    ),
    viol_codes: Path | None = typer.Option(
        None, "--viol-codes", "-k", help="Optional path to write a violation code key (csv)."
    ),
    metadata: Path | None = typer.Option(
        None, "--metadata", "-m", help="Optional path to write JSON metadata about wells."
    ),
    wells: int = typer.Option(4, "--wells", "-w", help="Number of well headers to emit."),
    seed: int = typer.Option(1234, "--seed", help="Seed for reproducible generation."),
) -> None:
    """Generate a small UIC-like flat file with record types 01, 07 and 10."""
    lines, meta = generate_synthetic_file(wells=wells, seed=seed)
    write_lines(output, lines)
    console.print(f"[bold green]Wrote[/] {len(lines)} lines to {output} ({wells} wells).")

    if schema:
        schema.write_text(yaml.safe_dump(schema_to_mapping(SYNTHETIC_SCHEMA), sort_keys=False))
        console.print(f"[bold green]Wrote schema[/] to {schema}")
    if viol_codes:
        pd.DataFrame(
            {
                VIOL_CODE_FIELD: list(SYNTHETIC_VIOL_CODES),
                VIOL_TYPE_FIELD: list(SYNTHETIC_VIOL_CODES.values()),
            }
        ).to_csv(viol_codes, index=False)
        console.print(f"[bold green]Wrote violation codes[/] to {viol_codes}")
    if metadata:
        metadata.write_bytes(orjson.dumps(meta, option=orjson.OPT_INDENT_2))
        console.print(f"[bold green]Wrote metadata[/] to {metadata}")


@log_app.command("summarize")
def log_summarize(
    log: Path = typer.Argument(..., help="CSV or JSONL log file produced by process."),
) -> None:
    """Summarize run log(s) produced by process."""
    summary = summarize_log(_require_file(log))
    console.print(orjson.dumps(summary, option=orjson.OPT_INDENT_2).decode())


if __name__ == "__main__":
    app()
