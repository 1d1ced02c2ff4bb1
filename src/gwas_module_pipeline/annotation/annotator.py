"""Assign GWAS loci to genes by overlap with nearest-neighbour fallback."""

from dataclasses import dataclass, field
from typing import Iterable

import polars as pl
import structlog

from gwas_module_pipeline.annotation.index import IntervalIndex
from gwas_module_pipeline.annotation.models import (
    MAX_LOCUS_GENE_DISTANCE,
    GeneRecord,
    GwasLocus,
    LocusGeneAssignment,
)

logger = structlog.get_logger()

# A locus overlapping at most this many genes also pulls in its upstream and
# downstream neighbours; the causal gene is often adjacent to the only overlap.
NEIGHBOR_FALLBACK_MAX_HITS = 1


@dataclass
class AnnotationResult:
    """Output of annotate_loci.

    Attributes:
        assignments: Deduplicated, distance-filtered assignments in input
            locus order, then candidate discovery order
        loci_without_candidates: Locus IDs with no overlapping gene and no
            neighbour on their chromosome
        distance_filtered: Number of assignments dropped by the distance cutoff
    """
    assignments: list[LocusGeneAssignment] = field(default_factory=list)
    loci_without_candidates: list[str] = field(default_factory=list)
    distance_filtered: int = 0

    @property
    def symbols(self) -> list[str]:
        """Distinct assigned gene symbols in first-seen order."""
        return list(dict.fromkeys(a.gene.symbol for a in self.assignments))


def candidate_genes(locus: GwasLocus, index: IntervalIndex) -> list[GeneRecord]:
    """Overlapping genes, plus both neighbours when at most one gene overlaps."""
    hits = index.overlapping(locus)
    if len(hits) > NEIGHBOR_FALLBACK_MAX_HITS:
        return hits

    candidates = list(hits)
    for neighbour in (index.nearest_following(locus), index.nearest_preceding(locus)):
        if neighbour is not None:
            candidates.append(neighbour)
    return candidates


def annotate_loci(
    loci: Iterable[GwasLocus],
    index: IntervalIndex,
    max_distance: int = MAX_LOCUS_GENE_DISTANCE,
) -> AnnotationResult:
    """Map each locus to the genes it implicates.

    For every locus the overlapping genes are collected; if there are zero or
    one, the nearest following and preceding genes are added as well. Each
    candidate becomes an assignment with distance
    |locus.position - gene.coding_start|. Assignments are deduplicated on
    (locus_id, symbol), keeping the first, and those with
    distance > max_distance are dropped.

    Args:
        loci: GWAS loci in input order
        index: IntervalIndex over the reference genes
        max_distance: Distance cutoff in bp (inclusive)

    Returns:
        AnnotationResult
    """
    result = AnnotationResult()
    seen: set[tuple[str, str]] = set()
    locus_count = 0

    for locus in loci:
        locus_count += 1
        candidates = candidate_genes(locus, index)

        if not candidates:
            result.loci_without_candidates.append(locus.locus_id)
            logger.debug(
                "locus_without_candidates",
                locus_id=locus.locus_id,
                chromosome=locus.chromosome,
            )
            continue

        for gene in candidates:
            assignment = LocusGeneAssignment.from_pair(locus, gene)
            if assignment.key in seen:
                continue
            seen.add(assignment.key)

            if assignment.distance > max_distance:
                result.distance_filtered += 1
                continue
            result.assignments.append(assignment)

    logger.info(
        "annotate_loci_complete",
        loci=locus_count,
        assignments=len(result.assignments),
        genes=len(result.symbols),
        loci_without_candidates=len(result.loci_without_candidates),
        distance_filtered=result.distance_filtered,
    )

    return result


ASSIGNMENT_SCHEMA = {
    "locus_id": pl.String,
    "chromosome": pl.String,
    "position": pl.Int64,
    "locus_start": pl.Int64,
    "locus_end": pl.Int64,
    "symbol": pl.String,
    "transcript_start": pl.Int64,
    "transcript_end": pl.Int64,
    "coding_start": pl.Int64,
    "strand": pl.String,
    "distance": pl.Int64,
}


def assignments_to_frame(assignments: list[LocusGeneAssignment]) -> pl.DataFrame:
    """Flatten assignments into one row per (locus, gene) pair."""
    rows = [
        {
            "locus_id": a.locus.locus_id,
            "chromosome": a.locus.chromosome,
            "position": a.locus.position,
            "locus_start": a.locus.start,
            "locus_end": a.locus.end,
            "symbol": a.gene.symbol,
            "transcript_start": a.gene.transcript_start,
            "transcript_end": a.gene.transcript_end,
            "coding_start": a.gene.coding_start,
            "strand": a.gene.strand,
            "distance": a.distance,
        }
        for a in assignments
    ]
    return pl.DataFrame(rows, schema=ASSIGNMENT_SCHEMA)
