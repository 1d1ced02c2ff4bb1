"""Value objects and table layouts for locus-to-gene annotation."""

from dataclasses import dataclass, field


# DuckDB checkpoint table names
GENE_TABLE_NAME = "gene_annotation"
LOCI_TABLE_NAME = "gwas_loci"
ASSIGNMENT_TABLE_NAME = "locus_gene_assignments"

# Assignments further than this from the gene's coding start are dropped
MAX_LOCUS_GENE_DISTANCE = 1_500_000

# Symbol substrings for transcript classes unlikely to have a cross-species
# ortholog: microRNAs, lincRNAs, uncharacterized LOC loci, snoRNAs, and
# readthrough/antisense names containing a dash.
DEFAULT_SYMBOL_BLOCKLIST = (
    "MIR",
    "LINC",
    "LOC",
    "SNOR",
    "-",
)

# Column name variants accepted for each field (first match wins).
# UCSC refGene names come first.
GENE_COLUMN_VARIANTS = {
    "symbol": ["name2", "symbol", "gene_symbol", "gene"],
    "chromosome": ["chrom", "chromosome", "chr"],
    "transcript_start": ["txStart", "tx_start", "transcript_start"],
    "transcript_end": ["txEnd", "tx_end", "transcript_end"],
    "coding_start": ["cdsStart", "cds_start", "coding_start"],
    "strand": ["strand"],
}

LOCUS_COLUMN_VARIANTS = {
    "locus_id": ["SNP", "snp", "locus_id", "rsid", "id"],
    "chromosome": ["CHR", "chr", "chrom", "chromosome"],
    "position": ["BP", "bp", "pos", "position"],
    "start": ["left", "start", "ld_left"],
    "end": ["right", "end", "ld_right"],
}

GENE_INTEGER_COLUMNS = ("transcript_start", "transcript_end", "coding_start")
LOCUS_INTEGER_COLUMNS = ("position", "start", "end")

VALID_STRANDS = ("+", "-")


@dataclass(frozen=True)
class GenomicInterval:
    """Closed, 1-based genomic interval on a single chromosome."""

    chromosome: str
    start: int
    end: int

    def __post_init__(self):
        if self.start > self.end:
            raise ValueError(
                f"Interval start {self.start} is after end {self.end} "
                f"on {self.chromosome}"
            )


@dataclass(frozen=True)
class GwasLocus(GenomicInterval):
    """LD-expanded association signal.

    Attributes:
        locus_id: SNP or locus identifier
        position: Representative (index SNP) position used for distances
    """

    locus_id: str = ""
    position: int = 0


@dataclass(frozen=True)
class GeneRecord:
    """Longest transcript retained for one gene symbol.

    Attributes:
        symbol: Gene symbol (unique after loading)
        chromosome: Primary chromosome name
        transcript_start: Transcript start coordinate
        transcript_end: Transcript end coordinate
        coding_start: Coding sequence start coordinate
        strand: '+' or '-'
        transcript_length: |transcript_end - transcript_start|
    """

    symbol: str
    chromosome: str
    transcript_start: int
    transcript_end: int
    coding_start: int
    strand: str
    transcript_length: int = field(default=-1)

    def __post_init__(self):
        if self.transcript_length < 0:
            object.__setattr__(
                self,
                "transcript_length",
                abs(self.transcript_end - self.transcript_start),
            )


@dataclass(frozen=True)
class LocusGeneAssignment:
    """A locus implicating a gene, with the distance used for filtering."""

    locus: GwasLocus
    gene: GeneRecord
    distance: int

    @classmethod
    def from_pair(cls, locus: GwasLocus, gene: GeneRecord) -> "LocusGeneAssignment":
        return cls(
            locus=locus,
            gene=gene,
            distance=abs(locus.position - gene.coding_start),
        )

    @property
    def key(self) -> tuple[str, str]:
        return (self.locus.locus_id, self.gene.symbol)
