"""Cross-species homolog lookup via mygene batch queries.

Maps source-species gene symbols to target-species homologs (HomoloGene
groups) and then to the target genes' expression-array probe identifiers.
The service is queried in one batched pass per step; it is treated as
untrusted and may return zero or many rows per symbol.
"""

import logging
from typing import Any, Iterable

import httpx
import mygene
import polars as pl
from requests.exceptions import RequestException
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

logger = logging.getLogger(__name__)

LOOKUP_SCHEMA = {
    "source_symbol": pl.String,
    "target_gene_id": pl.String,
    "target_symbol": pl.String,
    "target_symbol_alt": pl.String,
    "target_probe_id": pl.String,
}

# mygene 3.2 talks to the service through httpx; older clients used requests.
SERVICE_ERRORS = (RequestException, httpx.HTTPError)


class HomologLookupError(RuntimeError):
    """The homolog service was unreachable or returned a malformed response.

    Fatal for a run: every downstream step depends on this mapping.
    """


def _as_list(value: Any) -> list:
    """mygene returns a scalar for single values and a list for several."""
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


class HomologLookup:
    """Batch homolog lookup using the mygene API.

    Step 1 queries source symbols for their HomoloGene group and keeps the
    target-species Entrez gene IDs. Step 2 queries those IDs for the target
    symbol, aliases, and reporter probes on the configured array platform.
    """

    def __init__(
        self,
        source_species: int = 9606,
        target_species: int = 10090,
        probe_platform: str = "Mouse430_2",
        max_retries: int = 3,
    ):
        """Initialize homolog lookup.

        Args:
            source_species: NCBI taxonomy ID of the query symbols (default: human)
            target_species: NCBI taxonomy ID of the homologs (default: mouse)
            probe_platform: mygene ``reporter`` platform key for probe IDs
            max_retries: Attempts per query before raising HomologLookupError
        """
        self.source_species = source_species
        self.target_species = target_species
        self.probe_platform = probe_platform
        self.max_retries = max_retries
        self.mg = mygene.MyGeneInfo()
        logger.info(
            f"Initialized HomologLookup {source_species} -> {target_species} "
            f"(platform={probe_platform}, max_retries={max_retries})"
        )

    @classmethod
    def from_config(cls, config: "PipelineConfig") -> "HomologLookup":
        return cls(
            source_species=config.homolog.source_species,
            target_species=config.homolog.target_species,
            probe_platform=config.versions.probe_platform,
            max_retries=config.api.max_retries,
        )

    def _create_retry_decorator(self):
        """Create retry decorator with exponential backoff."""
        return retry(
            stop=stop_after_attempt(self.max_retries),
            wait=wait_exponential(multiplier=1, min=2, max=30),
            retry=retry_if_exception_type(SERVICE_ERRORS),
            reraise=True,
        )

    def _querymany(self, queries: list[str], **kwargs) -> list[dict]:
        """Run one mygene querymany call and return its hits.

        Raises:
            HomologLookupError: On network/HTTP failure after retries or if the
                response does not have the expected ``{'out': [...]}`` shape
        """
        @self._create_retry_decorator()
        def _query_with_retry():
            return self.mg.querymany(queries, returnall=True, **kwargs)

        try:
            response = _query_with_retry()
        except SERVICE_ERRORS as e:
            raise HomologLookupError(f"Homolog service unreachable: {e}") from e

        if not isinstance(response, dict) or not isinstance(response.get("out"), list):
            raise HomologLookupError(
                f"Malformed homolog service response: {type(response).__name__}"
            )

        hits = response["out"]
        if not all(isinstance(hit, dict) for hit in hits):
            raise HomologLookupError("Malformed homolog service response: non-dict hit")

        return hits

    def _target_gene_ids(self, symbols: list[str]) -> list[tuple[str, str]]:
        """(source_symbol, target_gene_id) pairs in query order, deduplicated."""
        hits = self._querymany(
            symbols,
            scopes="symbol",
            fields="homologene",
            species=self.source_species,
        )

        pairs: dict[tuple[str, str], None] = {}
        for hit in hits:
            if hit.get("notfound", False):
                continue

            homologene = hit.get("homologene")
            if not isinstance(homologene, dict):
                continue

            # genes is a list of [taxid, entrez_id] pairs
            for entry in homologene.get("genes", []):
                if len(entry) >= 2 and entry[0] == self.target_species:
                    pairs[(hit.get("query", ""), str(entry[1]))] = None

        return list(pairs)

    def _target_annotations(self, gene_ids: list[str]) -> dict[str, dict]:
        """Target gene ID -> {'symbol', 'symbol_alt', 'probes'}."""
        hits = self._querymany(
            gene_ids,
            scopes="entrezgene",
            fields="symbol,alias,reporter",
            species=self.target_species,
        )

        annotations: dict[str, dict] = {}
        for hit in hits:
            gene_id = hit.get("query", "")
            if hit.get("notfound", False) or gene_id in annotations:
                continue

            symbol = hit.get("symbol")
            aliases = _as_list(hit.get("alias"))
            reporter = hit.get("reporter") or {}
            probes = _as_list(reporter.get(self.probe_platform)) if isinstance(reporter, dict) else []

            annotations[gene_id] = {
                "symbol": symbol,
                "symbol_alt": aliases[0] if aliases else symbol,
                "probes": probes,
            }

        return annotations

    def lookup_homologs(self, symbols: Iterable[str]) -> pl.DataFrame:
        """Look up target-species homologs and probes for source symbols.

        Args:
            symbols: Distinct source-species gene symbols

        Returns:
            DataFrame with columns source_symbol, target_gene_id, target_symbol,
            target_symbol_alt, target_probe_id. A homolog without probes on the
            platform yields one row with a null probe ID.

        Raises:
            HomologLookupError: If the service fails or responds malformed
        """
        symbols = list(dict.fromkeys(symbols))
        if not symbols:
            logger.info("No symbols to look up; skipping homolog service")
            return pl.DataFrame(schema=LOOKUP_SCHEMA)

        logger.info(f"Looking up homologs for {len(symbols)} symbols")

        pairs = self._target_gene_ids(symbols)
        target_ids = list(dict.fromkeys(gene_id for _, gene_id in pairs))

        logger.info(
            f"Found {len(target_ids)} homolog gene IDs "
            f"(taxid {self.target_species}) for "
            f"{len({s for s, _ in pairs})}/{len(symbols)} symbols"
        )

        annotations = self._target_annotations(target_ids) if target_ids else {}

        rows = []
        for source_symbol, gene_id in pairs:
            info = annotations.get(gene_id)
            if info is None:
                continue
            for probe in info["probes"] or [None]:
                rows.append({
                    "source_symbol": source_symbol,
                    "target_gene_id": gene_id,
                    "target_symbol": info["symbol"],
                    "target_symbol_alt": info["symbol_alt"],
                    "target_probe_id": probe,
                })

        result = pl.DataFrame(rows, schema=LOOKUP_SCHEMA)

        logger.info(
            f"Homolog lookup complete: {result.height} rows, "
            f"{result['target_probe_id'].drop_nulls().n_unique()} distinct probes"
        )

        return result
