"""Per-chromosome sorted index over gene intervals.

Supports closed-interval overlap queries and nearest upstream/downstream
neighbour queries by binary search. Built once, read-only afterwards.
"""

from bisect import bisect_left, bisect_right
from collections import defaultdict
from typing import Iterable

import structlog

from gwas_module_pipeline.annotation.models import GeneRecord, GenomicInterval

logger = structlog.get_logger()


class _ChromosomeIndex:
    """Genes of one chromosome in start order and in end order."""

    __slots__ = ("by_start", "starts", "by_end", "ends", "max_span")

    def __init__(self, genes: list[GeneRecord]):
        self.by_start = sorted(
            genes, key=lambda g: (g.transcript_start, g.transcript_end, g.symbol)
        )
        self.starts = [g.transcript_start for g in self.by_start]
        self.by_end = sorted(
            genes, key=lambda g: (g.transcript_end, g.transcript_start, g.symbol)
        )
        self.ends = [g.transcript_end for g in self.by_end]
        # Longest gene bounds how far left of a query an overlapping gene can start
        self.max_span = max(
            (g.transcript_end - g.transcript_start for g in genes), default=0
        )


class IntervalIndex:
    """Queryable structure over GeneRecords, scoped per chromosome.

    Gene intervals are closed ``[transcript_start, transcript_end]``; strand is
    ignored. Queries never return genes from another chromosome, and a query on
    a chromosome with no genes returns an empty result.

    Example:
        >>> index = IntervalIndex(genes)
        >>> index.overlapping(GenomicInterval("chr1", 150, 160))
    """

    def __init__(self, genes: Iterable[GeneRecord]):
        grouped: dict[str, list[GeneRecord]] = defaultdict(list)
        for gene in genes:
            grouped[gene.chromosome].append(gene)

        self._chromosomes = {
            chrom: _ChromosomeIndex(chrom_genes)
            for chrom, chrom_genes in grouped.items()
        }

        logger.info(
            "interval_index_built",
            genes=len(self),
            chromosomes=len(self._chromosomes),
        )

    def __len__(self) -> int:
        return sum(len(c.by_start) for c in self._chromosomes.values())

    @property
    def chromosomes(self) -> list[str]:
        return sorted(self._chromosomes)

    def genes_on(self, chromosome: str) -> list[GeneRecord]:
        """Genes of a chromosome in (start, end, symbol) order."""
        chrom = self._chromosomes.get(chromosome)
        return list(chrom.by_start) if chrom else []

    def overlapping(self, interval: GenomicInterval) -> list[GeneRecord]:
        """All genes with start <= interval.end and end >= interval.start.

        Returned in start order.
        """
        chrom = self._chromosomes.get(interval.chromosome)
        if chrom is None:
            return []

        lo = bisect_left(chrom.starts, interval.start - chrom.max_span)
        hi = bisect_right(chrom.starts, interval.end)

        return [
            gene for gene in chrom.by_start[lo:hi]
            if gene.transcript_end >= interval.start
        ]

    def nearest_following(self, interval: GenomicInterval) -> GeneRecord | None:
        """Gene with the smallest transcript_start strictly after interval.end."""
        chrom = self._chromosomes.get(interval.chromosome)
        if chrom is None:
            return None

        i = bisect_right(chrom.starts, interval.end)
        if i < len(chrom.by_start):
            return chrom.by_start[i]
        return None

    def nearest_preceding(self, interval: GenomicInterval) -> GeneRecord | None:
        """Gene with the largest transcript_end strictly before interval.start."""
        chrom = self._chromosomes.get(interval.chromosome)
        if chrom is None:
            return None

        i = bisect_left(chrom.ends, interval.start)
        if i > 0:
            return chrom.by_end[i - 1]
        return None
