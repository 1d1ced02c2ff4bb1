"""Tabular input parsing with column-name resolution and row-level validation."""

from pathlib import Path

import polars as pl
import structlog

from gwas_module_pipeline.quality import MalformedRowReport

logger = structlog.get_logger()

ROW_NUMBER_COLUMN = "row_number"


def detect_separator(path: Path) -> str:
    """Comma for .csv files, tab for everything else."""
    return "," if Path(path).suffix.lower() == ".csv" else "\t"


def resolve_columns(
    actual_columns: list[str],
    column_variants: dict[str, list[str]],
) -> dict[str, str]:
    """Map our standardized names to the header names present in a file.

    Args:
        actual_columns: Header of the input table
        column_variants: Standard name -> accepted header names, in priority order

    Returns:
        Dict of actual header name -> standardized name

    Raises:
        ValueError: If a standardized column has no matching header
    """
    mapping = {}
    missing = []
    for our_name, variants in column_variants.items():
        for variant in variants:
            if variant in actual_columns and variant not in mapping:
                mapping[variant] = our_name
                break
        else:
            missing.append(our_name)

    if missing:
        raise ValueError(
            f"Missing required columns {missing}; found {actual_columns}"
        )

    return mapping


def read_table(
    path: Path | str,
    column_variants: dict[str, list[str]],
    integer_columns: tuple[str, ...] = (),
    invalid_when: dict[str, pl.Expr] | None = None,
    optional_columns: tuple[str, ...] = (),
    table: str = "table",
) -> tuple[pl.DataFrame, MalformedRowReport]:
    """Read a TSV/CSV table, keeping only well-formed rows.

    All columns are read as strings, trimmed, and the integer columns cast
    non-strictly. A row with an empty required field (any column not in
    ``optional_columns``), an unparseable integer, or matching any
    ``invalid_when`` condition is skipped and recorded in the returned report
    instead of aborting the run.

    Args:
        path: Input file (``.csv`` is comma-separated, anything else tab)
        column_variants: Standard name -> accepted header names
        integer_columns: Standard names to cast to Int64
        invalid_when: Reason -> boolean expression flagging bad rows
        optional_columns: Standard names allowed to be empty
        table: Table label used in the report

    Returns:
        Tuple of (clean DataFrame with standardized columns, MalformedRowReport)
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"Input table not found: {path}")

    raw = pl.read_csv(
        path,
        separator=detect_separator(path),
        infer_schema_length=0,
        null_values=["", "NA"],
        truncate_ragged_lines=True,
    )
    # UCSC dumps prefix the header with '#'
    raw = raw.rename({c: c.lstrip("#") for c in raw.columns})

    logger.info("read_table_start", table=table, path=str(path), rows=raw.height)

    mapping = resolve_columns(raw.columns, column_variants)
    columns = list(column_variants)

    df = (
        raw
        .select([pl.col(src).alias(dst) for src, dst in mapping.items()])
        .select(columns)
        .with_columns([
            pl.when(pl.col(c).str.strip_chars() == "")
            .then(None)
            .otherwise(pl.col(c).str.strip_chars())
            .alias(c)
            for c in columns
        ])
        .with_columns([
            pl.col(c).cast(pl.Int64, strict=False) for c in integer_columns
        ])
        .with_row_index(ROW_NUMBER_COLUMN, offset=2)
    )

    report = MalformedRowReport(table=table, total_rows=df.height)

    checks = invalid_when or {}
    check_columns = {f"_invalid_{i}": name for i, name in enumerate(checks)}
    df = df.with_columns([
        condition.fill_null(False).alias(column)
        for column, condition in zip(check_columns, checks.values())
    ])

    required = [c for c in columns if c not in optional_columns]
    bad_mask = pl.any_horizontal(
        [pl.col(c).is_null() for c in required]
        + [pl.col(c) for c in check_columns]
    )

    for row in df.filter(bad_mask).iter_rows(named=True):
        missing = [c for c in required if row[c] is None]
        failed = [name for column, name in check_columns.items() if row[column]]
        reasons = failed
        if missing:
            reasons = [f"missing or invalid {', '.join(missing)}"] + failed
        report.add(row[ROW_NUMBER_COLUMN], "; ".join(reasons))

    clean = df.filter(~bad_mask).drop([ROW_NUMBER_COLUMN, *check_columns])

    if report.count:
        logger.warning(
            "read_table_malformed_rows",
            table=table,
            skipped=report.count,
            first_rows=[r.row_number for r in report.rows[:10]],
        )

    logger.info("read_table_complete", table=table, rows=clean.height)

    return clean, report
