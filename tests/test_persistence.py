"""Tests for persistence layer (DuckDB store and provenance tracking)."""

import hashlib
import json

import polars as pl
import pytest

from gwas_module_pipeline import __version__
from gwas_module_pipeline.annotation import (
    ASSIGNMENT_TABLE_NAME,
    GENE_TABLE_NAME,
    LOCI_TABLE_NAME,
    load_to_duckdb,
)
from gwas_module_pipeline.config.loader import load_config
from gwas_module_pipeline.persistence import PipelineStore, ProvenanceTracker


@pytest.fixture
def test_config(tmp_path):
    """Create a minimal test config."""
    config_path = tmp_path / "test_config.yaml"
    config_path.write_text("""
data_dir: {data_dir}
output_dir: {output_dir}
duckdb_path: {duckdb_path}
versions:
  genome_build: hg19
  gene_annotation: refGene
  network_name: test_network
  probe_platform: Mouse430_2
""".format(
        data_dir=str(tmp_path / "data"),
        output_dir=str(tmp_path / "output"),
        duckdb_path=str(tmp_path / "test.duckdb"),
    ))
    return load_config(config_path)


# ============================================================================
# DuckDB Store Tests
# ============================================================================

def test_store_creates_database(tmp_path):
    """Test that PipelineStore creates .duckdb file at specified path."""
    db_path = tmp_path / "nested" / "test.duckdb"
    assert not db_path.exists()

    store = PipelineStore(db_path)
    store.close()

    assert db_path.exists()


def test_save_and_load_polars(tmp_path):
    store = PipelineStore(tmp_path / "test.duckdb")
    df = pl.DataFrame({
        "probe_id": ["1422168_a_at", "1421277_at"],
        "module_id": [3, 7],
    })

    store.save_dataframe(df, "module_genes", description="test")
    loaded = store.load_dataframe("module_genes")

    assert loaded.shape == df.shape
    assert loaded.columns == df.columns
    assert loaded["probe_id"].to_list() == df["probe_id"].to_list()
    assert loaded["module_id"].to_list() == df["module_id"].to_list()

    store.close()


def test_save_rejects_non_polars(tmp_path):
    with PipelineStore(tmp_path / "test.duckdb") as store:
        with pytest.raises(ValueError):
            store.save_dataframe({"a": [1]}, "bad")


def test_checkpoint_lifecycle(tmp_path):
    store = PipelineStore(tmp_path / "test.duckdb")
    df = pl.DataFrame({"symbol": ["BDNF"]})

    assert not store.has_checkpoint("homolog_lookup")

    store.save_dataframe(df, "homolog_lookup")

    assert store.has_checkpoint("homolog_lookup")
    assert store.load_dataframe("missing_table") is None

    store.close()


def test_replace_overwrites_table(tmp_path):
    with PipelineStore(tmp_path / "test.duckdb") as store:
        store.save_dataframe(pl.DataFrame({"x": [1, 2, 3]}), "t")
        store.save_dataframe(pl.DataFrame({"x": [9]}), "t")

        assert store.load_dataframe("t")["x"].to_list() == [9]
        assert store.list_checkpoints()[0]["row_count"] == 1


def test_invalid_table_name_rejected(tmp_path):
    with PipelineStore(tmp_path / "test.duckdb") as store:
        with pytest.raises(ValueError):
            store.save_dataframe(pl.DataFrame({"x": [1]}), "bad; DROP TABLE t")
        with pytest.raises(ValueError):
            store.load_dataframe("1table")


def test_checkpoint_fingerprint(tmp_path):
    with PipelineStore(tmp_path / "test.duckdb") as store:
        assert store.checkpoint_fingerprint("homolog_lookup") is None

        store.save_dataframe(pl.DataFrame({"x": [1]}), "homolog_lookup", fingerprint="abc")
        assert store.checkpoint_fingerprint("homolog_lookup") == "abc"

        store.save_dataframe(pl.DataFrame({"x": [1]}), "homolog_lookup")
        assert store.checkpoint_fingerprint("homolog_lookup") is None


def test_drop_checkpoint(tmp_path):
    with PipelineStore(tmp_path / "test.duckdb") as store:
        store.save_dataframe(pl.DataFrame({"x": [1]}), "t")
        store.drop_checkpoint("t")
        store.drop_checkpoint("never_saved")

        assert not store.has_checkpoint("t")
        assert store.load_dataframe("t") is None


def test_list_checkpoints(tmp_path):
    store = PipelineStore(tmp_path / "test.duckdb")

    for i in range(3):
        store.save_dataframe(
            pl.DataFrame({"x": [i]}),
            f"table_{i}",
            description=f"description {i}",
        )

    checkpoints = store.list_checkpoints()

    assert len(checkpoints) == 3
    by_name = {c["table_name"]: c for c in checkpoints}
    assert by_name["table_0"]["row_count"] == 1
    assert by_name["table_0"]["description"] == "description 0"
    assert by_name["table_0"]["fingerprint"] is None

    store.close()


def test_store_persists_across_connections(tmp_path):
    db_path = tmp_path / "test.duckdb"
    with PipelineStore(db_path) as store:
        store.save_dataframe(pl.DataFrame({"x": [1]}), "t")

    with PipelineStore(db_path) as store:
        assert store.has_checkpoint("t")
        assert store.load_dataframe("t").height == 1


def test_store_from_config(test_config):
    with PipelineStore.from_config(test_config) as store:
        assert store.db_path == test_config.duckdb_path


# ============================================================================
# Provenance Tests
# ============================================================================

def test_provenance_metadata_structure(test_config):
    tracker = ProvenanceTracker("0.1.0", test_config)
    metadata = tracker.create_metadata()

    assert metadata["pipeline_version"] == "0.1.0"
    assert metadata["config_hash"] == test_config.config_hash()
    assert metadata["data_source_versions"] == {
        "genome_build": "hg19",
        "gene_annotation": "refGene",
        "network_name": "test_network",
        "probe_platform": "Mouse430_2",
    }
    assert metadata["inputs"] == {}
    assert metadata["processing_steps"] == []


def test_provenance_records_inputs(test_config, tmp_path):
    loci = tmp_path / "loci.tsv"
    loci.write_text("SNP\tCHR\tBP\tleft\tright\n")
    tracker = ProvenanceTracker("0.1.0", test_config)

    tracker.record_input("loci", loci)

    entry = tracker.create_metadata()["inputs"]["loci"]
    assert entry["path"] == str(loci)
    assert entry["sha256"] == hashlib.sha256(loci.read_bytes()).hexdigest()
    assert entry["size_bytes"] == len(loci.read_bytes())


def test_provenance_records_steps(test_config):
    tracker = ProvenanceTracker("0.1.0", test_config)
    tracker.record_step("annotate_loci")
    tracker.record_step("merge_homologs", {"orphans": 3})

    steps = tracker.get_steps()

    assert [s["step_name"] for s in steps] == ["annotate_loci", "merge_homologs"]
    assert "details" not in steps[0]
    assert steps[1]["details"]["orphans"] == 3
    assert "timestamp" in steps[1]


def test_provenance_from_config_uses_package_version(test_config):
    tracker = ProvenanceTracker.from_config(test_config)

    assert tracker.pipeline_version == __version__


def test_provenance_sidecar_roundtrip(test_config, tmp_path):
    tracker = ProvenanceTracker("0.1.0", test_config)
    tracker.record_step("test_step", {"key": "value"})

    sidecar_path = tracker.save_sidecar(tmp_path / "out" / "pipeline")

    assert sidecar_path.name == "pipeline.provenance.json"
    loaded = ProvenanceTracker.load_sidecar(sidecar_path)
    assert loaded["config_hash"] == test_config.config_hash()
    assert loaded["processing_steps"][0]["details"] == {"key": "value"}


def test_provenance_save_to_store(test_config, tmp_path):
    store = PipelineStore(tmp_path / "test.duckdb")
    tracker = ProvenanceTracker("0.1.0", test_config)
    tracker.record_step("test_step")

    tracker.save_to_store(store)

    result = store.conn.execute("SELECT * FROM _provenance").fetchall()
    assert len(result) == 1

    row = result[0]
    assert row[0] == "0.1.0"
    assert row[1] == test_config.config_hash()
    steps = json.loads(row[3])
    assert steps[0]["step_name"] == "test_step"
    assert json.loads(row[4]) == {}

    store.close()


# ============================================================================
# Annotation load
# ============================================================================

def test_load_to_duckdb(test_config, tmp_path):
    genes = pl.DataFrame({"symbol": ["G1", "G2"], "chromosome": ["chr1", "chr1"]})
    loci = pl.DataFrame({"locus_id": ["rs1"]})
    assignments = pl.DataFrame({
        "locus_id": ["rs1", "rs1"],
        "symbol": ["G1", "G2"],
        "distance": [55, 205],
    })
    tracker = ProvenanceTracker("0.1.0", test_config)

    with PipelineStore(tmp_path / "test.duckdb") as store:
        load_to_duckdb(genes, loci, assignments, store, tracker)

        assert store.has_checkpoint(GENE_TABLE_NAME)
        assert store.has_checkpoint(LOCI_TABLE_NAME)
        assert store.load_dataframe(ASSIGNMENT_TABLE_NAME).height == 2

    step = tracker.get_steps()[0]
    assert step["step_name"] == "load_locus_annotation"
    assert step["details"]["assigned_genes"] == 2
    assert step["details"]["mean_genes_per_locus"] == 2.0
