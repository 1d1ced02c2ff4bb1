"""DuckDB checkpoint tables for intermediate pipeline results."""

import re
from pathlib import Path
from typing import Optional

import duckdb
import polars as pl

CHECKPOINT_TABLE = "_checkpoints"

_TABLE_NAME_RE = re.compile(r"^[A-Za-z][A-Za-z0-9_]*$")


def _check_table_name(table_name: str) -> str:
    # Names are interpolated into SQL
    if not _TABLE_NAME_RE.match(table_name):
        raise ValueError(f"Invalid checkpoint table name: {table_name!r}")
    return table_name


class PipelineStore:
    """
    One DuckDB file holding every checkpointed table of a run.

    Each saved table is registered in ``_checkpoints`` with its row count,
    a free-text description and an optional fingerprint of the settings that
    produced it. The pipeline uses the fingerprint to decide whether the
    homolog lookup, the only step that calls an external service, can be
    reused instead of re-queried.
    """

    def __init__(self, db_path: Path):
        """
        Open (or create) the checkpoint database.

        Args:
            db_path: DuckDB file; missing parent directories are created
        """
        self.db_path = Path(db_path)
        self.db_path.parent.mkdir(parents=True, exist_ok=True)

        self.conn = duckdb.connect(str(self.db_path))
        self.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {CHECKPOINT_TABLE} (
                table_name VARCHAR PRIMARY KEY,
                created_at TIMESTAMP DEFAULT CURRENT_TIMESTAMP,
                row_count INTEGER,
                description VARCHAR,
                fingerprint VARCHAR
            )
        """)

    def save_dataframe(
        self,
        df: pl.DataFrame,
        table_name: str,
        description: str = "",
        fingerprint: Optional[str] = None,
    ) -> None:
        """
        Write ``df`` as ``table_name``, replacing any previous checkpoint.

        Args:
            df: Polars DataFrame to save
            table_name: DuckDB table name (letters, digits, underscores)
            description: Human-readable note shown by ``info``
            fingerprint: Hash of the settings the table depends on

        Raises:
            ValueError: If ``df`` is not a polars DataFrame or the name is invalid
        """
        if not isinstance(df, pl.DataFrame):
            raise ValueError("df must be a polars.DataFrame")
        _check_table_name(table_name)

        self.conn.execute(f"CREATE OR REPLACE TABLE {table_name} AS SELECT * FROM df")
        self.conn.execute(f"""
            INSERT OR REPLACE INTO {CHECKPOINT_TABLE}
                (table_name, row_count, description, fingerprint, created_at)
            VALUES (?, ?, ?, ?, CURRENT_TIMESTAMP)
        """, [table_name, df.height, description, fingerprint])

    def load_dataframe(self, table_name: str) -> Optional[pl.DataFrame]:
        """Read a checkpoint back as polars, or None if the table is absent."""
        _check_table_name(table_name)
        try:
            return self.conn.execute(f"SELECT * FROM {table_name}").pl()
        except duckdb.CatalogException:
            return None

    def has_checkpoint(self, table_name: str) -> bool:
        result = self.conn.execute(
            f"SELECT COUNT(*) FROM {CHECKPOINT_TABLE} WHERE table_name = ?",
            [table_name]
        ).fetchone()
        return result[0] > 0

    def checkpoint_fingerprint(self, table_name: str) -> Optional[str]:
        """Fingerprint recorded with a checkpoint (None if absent or unset)."""
        result = self.conn.execute(
            f"SELECT fingerprint FROM {CHECKPOINT_TABLE} WHERE table_name = ?",
            [table_name]
        ).fetchone()
        return result[0] if result else None

    def drop_checkpoint(self, table_name: str) -> None:
        """Remove a checkpoint table and its registry row (no-op if absent)."""
        _check_table_name(table_name)
        self.conn.execute(f"DROP TABLE IF EXISTS {table_name}")
        self.conn.execute(
            f"DELETE FROM {CHECKPOINT_TABLE} WHERE table_name = ?",
            [table_name]
        )

    def list_checkpoints(self) -> list[dict]:
        """
        Registered checkpoints, newest first.

        Returns:
            Dicts with keys table_name, created_at, row_count, description,
            fingerprint
        """
        rows = self.conn.execute(f"""
            SELECT table_name, created_at, row_count, description, fingerprint
            FROM {CHECKPOINT_TABLE}
            ORDER BY created_at DESC, table_name
        """).fetchall()

        keys = ("table_name", "created_at", "row_count", "description", "fingerprint")
        return [dict(zip(keys, row)) for row in rows]

    def close(self) -> None:
        if self.conn:
            self.conn.close()
            self.conn = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "PipelineStore":
        return cls(config.duckdb_path)
