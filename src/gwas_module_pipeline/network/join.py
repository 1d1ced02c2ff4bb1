"""Generic "match on any key" join between two tables."""

from typing import NamedTuple

import polars as pl
import structlog

logger = structlog.get_logger()

_ROW_ORDER = "_row_order"


class JoinKey(NamedTuple):
    """One way a target row can match the reference table.

    Attributes:
        name: Label recorded in the match column when this key matches
        target_column: Column of the table being filtered
        reference_column: Column of the reference table holding allowed values
    """
    name: str
    target_column: str
    reference_column: str


def multi_key_join(
    target: pl.DataFrame,
    reference: pl.DataFrame,
    keys: list[JoinKey],
    dedup_on: str,
    match_column: str = "matched_on",
) -> pl.DataFrame:
    """Keep target rows matching the reference on at least one key.

    Each key selects an independent subset of ``target``; the subsets are
    unioned in key order and deduplicated on ``dedup_on`` (first occurrence
    wins), so ``match_column`` names the first key that matched. Rows are
    returned in their original target order.

    Args:
        target: Table to filter (e.g. network probes)
        reference: Table supplying the allowed key values (e.g. homolog mappings)
        keys: Join keys, in precedence order
        dedup_on: Column identifying a target record
        match_column: Name of the added column recording the matching key

    Returns:
        Matching target rows plus ``match_column``
    """
    indexed = target.with_row_index(_ROW_ORDER)

    subsets = []
    for key in keys:
        values = (
            reference.get_column(key.reference_column)
            .drop_nulls()
            .cast(target.schema[key.target_column], strict=False)
            .drop_nulls()
            .unique()
        )
        subset = indexed.filter(pl.col(key.target_column).is_in(values.to_list()))
        logger.debug("multi_key_join_key", key=key.name, matches=subset.height)
        subsets.append(subset.with_columns(pl.lit(key.name).alias(match_column)))

    if not subsets:
        return target.clear().with_columns(pl.lit(None, dtype=pl.String).alias(match_column))

    joined = (
        pl.concat(subsets)
        .unique(subset=dedup_on, keep="first", maintain_order=True)
        .sort(_ROW_ORDER)
        .drop(_ROW_ORDER)
    )

    logger.info(
        "multi_key_join_complete",
        target_rows=target.height,
        matched_rows=joined.height,
        keys=[k.name for k in keys],
    )

    return joined
