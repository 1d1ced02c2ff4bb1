"""Tests for locus-to-gene annotation."""

import polars as pl
import pytest

from gwas_module_pipeline.annotation import (
    GeneRecord,
    GwasLocus,
    IntervalIndex,
    annotate_loci,
    assignments_to_frame,
    candidate_genes,
)


def gene(symbol, chromosome, start, end, coding_start):
    return GeneRecord(symbol, chromosome, start, end, coding_start, "+")


def locus(locus_id, chromosome, start, end, position):
    return GwasLocus(chromosome, start, end, locus_id=locus_id, position=position)


def triples(result):
    return [(a.locus.locus_id, a.gene.symbol, a.distance) for a in result.assignments]


def test_single_overlap_scenario():
    """One overlapping gene and no neighbours gives a single assignment."""
    index = IntervalIndex([gene("G1", "chr1", 100, 200, 100)])

    result = annotate_loci([locus("L1", "chr1", 150, 160, 155)], index)

    assert triples(result) == [("L1", "G1", 55)]
    assert result.loci_without_candidates == []


def test_empty_chromosome_scenario():
    """A locus on a chromosome without genes contributes nothing and does not raise."""
    index = IntervalIndex([gene("G1", "chr1", 100, 200, 100)])

    result = annotate_loci([locus("L2", "chr2", 50, 60, 55)], index)

    assert result.assignments == []
    assert result.loci_without_candidates == ["L2"]


def test_neighbour_fallback_scenario():
    """No overlap: following and preceding genes are both assigned."""
    index = IntervalIndex([
        gene("G1", "chr1", 100, 200, 100),
        gene("G2", "chr1", 1000, 1100, 1000),
    ])

    result = annotate_loci([locus("L3", "chr1", 300, 310, 305)], index)

    assert triples(result) == [("L3", "G2", 695), ("L3", "G1", 205)]


def test_single_overlap_also_pulls_in_neighbours():
    index = IntervalIndex([
        gene("LEFT", "chr1", 100, 200, 100),
        gene("MID", "chr1", 500, 700, 500),
        gene("RIGHT", "chr1", 1000, 1100, 1000),
    ])

    result = annotate_loci([locus("L", "chr1", 550, 560, 555)], index)

    assert triples(result) == [
        ("L", "MID", 55),
        ("L", "RIGHT", 445),
        ("L", "LEFT", 455),
    ]


def test_multiple_overlaps_skip_neighbours():
    index = IntervalIndex([
        gene("LEFT", "chr1", 100, 200, 100),
        gene("A", "chr1", 500, 700, 500),
        gene("B", "chr1", 550, 800, 600),
        gene("RIGHT", "chr1", 1000, 1100, 1000),
    ])

    assert [g.symbol for g in candidate_genes(locus("L", "chr1", 600, 650, 620), index)] == ["A", "B"]

    result = annotate_loci([locus("L", "chr1", 600, 650, 620)], index)

    assert [a.gene.symbol for a in result.assignments] == ["A", "B"]


def test_distance_cutoff_is_inclusive():
    index = IntervalIndex([
        gene("NEAR", "chr1", 1_500_100, 1_600_000, 1_500_100),
        gene("FAR", "chr1", 10, 20, 99),
    ])

    result = annotate_loci([locus("L", "chr1", 150, 160, 100)], index)

    assert triples(result) == [("L", "NEAR", 1_500_000), ("L", "FAR", 1)]
    assert result.distance_filtered == 0

    result = annotate_loci([locus("L", "chr1", 150, 160, 99)], index)

    assert triples(result) == [("L", "FAR", 0)]
    assert result.distance_filtered == 1


def test_custom_max_distance():
    index = IntervalIndex([
        gene("G1", "chr1", 100, 200, 100),
        gene("G2", "chr1", 1000, 1100, 1000),
    ])

    result = annotate_loci([locus("L3", "chr1", 300, 310, 305)], index, max_distance=300)

    assert triples(result) == [("L3", "G1", 205)]
    assert result.distance_filtered == 1


def test_duplicate_locus_ids_collapse_to_first():
    """The same (locus, gene) pair is only assigned once."""
    index = IntervalIndex([gene("G1", "chr1", 100, 200, 100)])

    result = annotate_loci(
        [
            locus("L1", "chr1", 150, 160, 155),
            locus("L1", "chr1", 110, 120, 115),
        ],
        index,
    )

    assert triples(result) == [("L1", "G1", 55)]


def test_gene_shared_by_loci():
    index = IntervalIndex([gene("G1", "chr1", 100, 200, 100)])

    result = annotate_loci(
        [locus("L1", "chr1", 150, 160, 155), locus("L2", "chr1", 180, 190, 185)],
        index,
    )

    assert triples(result) == [("L1", "G1", 55), ("L2", "G1", 85)]
    assert result.symbols == ["G1"]


def test_annotation_properties():
    """Distance bound, pair uniqueness and repeatability on a mixed input."""
    genes = [
        gene("G1", "chr1", 100, 200, 150),
        gene("G2", "chr1", 180, 400, 390),
        gene("G3", "chr1", 2_000_000, 2_100_000, 2_000_000),
        gene("G4", "chr2", 5_000, 6_000, 5_500),
    ]
    loci = [
        locus("L1", "chr1", 150, 190, 170),
        locus("L2", "chr1", 500, 600, 550),
        locus("L3", "chr2", 1, 10, 5),
        locus("L4", "chr3", 1, 10, 5),
    ]
    index = IntervalIndex(genes)

    first = annotate_loci(loci, index)
    second = annotate_loci(loci, index)

    assert all(a.distance <= 1_500_000 for a in first.assignments)
    keys = [a.key for a in first.assignments]
    assert len(keys) == len(set(keys))
    assert set(triples(first)) == set(triples(second))
    assert all(a.locus.chromosome == a.gene.chromosome for a in first.assignments)
    assert first.loci_without_candidates == ["L4"]


def test_assignments_to_frame():
    index = IntervalIndex([gene("G1", "chr1", 100, 200, 100)])
    result = annotate_loci([locus("L1", "chr1", 150, 160, 155)], index)

    df = assignments_to_frame(result.assignments)

    assert df.row(0, named=True) == {
        "locus_id": "L1",
        "chromosome": "chr1",
        "position": 155,
        "locus_start": 150,
        "locus_end": 160,
        "symbol": "G1",
        "transcript_start": 100,
        "transcript_end": 200,
        "coding_start": 100,
        "strand": "+",
        "distance": 55,
    }


def test_assignments_to_frame_empty():
    df = assignments_to_frame([])

    assert df.height == 0
    assert df.schema["distance"] == pl.Int64
