"""Run provenance: what went in, which settings were used, what each step did.

A run's provenance is written twice: as a JSON sidecar next to the outputs
and as a row of the ``_provenance`` table in the checkpoint database, so a
module-gene table can always be traced back to its exact inputs.
"""

import hashlib
import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

PROVENANCE_TABLE = "_provenance"


def file_sha256(path: Path, chunk_size: int = 1 << 20) -> str:
    """Hex SHA-256 of a file's contents."""
    digest = hashlib.sha256()
    with open(path, "rb") as f:
        for chunk in iter(lambda: f.read(chunk_size), b""):
            digest.update(chunk)
    return digest.hexdigest()


class ProvenanceTracker:
    """
    Collects provenance for a single pipeline run.

    Attributes:
        pipeline_version: Package version that produced the run
        config_hash: PipelineConfig.config_hash() at start
        data_source_versions: Genome build, annotation, network and platform labels
        inputs: Input name -> {path, sha256, size_bytes}
        processing_steps: Ordered step records with optional details
    """

    def __init__(self, pipeline_version: str, config: "PipelineConfig"):
        self.pipeline_version = pipeline_version
        self.config_hash = config.config_hash()
        self.data_source_versions = config.versions.model_dump()
        self.inputs: dict[str, dict] = {}
        self.processing_steps: list[dict] = []
        self.started_at = datetime.now(timezone.utc)

    def record_input(self, name: str, path: Path) -> None:
        """Fingerprint an input table (loci, genes, network, overrides)."""
        path = Path(path)
        self.inputs[name] = {
            "path": str(path),
            "sha256": file_sha256(path),
            "size_bytes": path.stat().st_size,
        }

    def record_step(self, step_name: str, details: Optional[dict] = None) -> None:
        step = {
            "step_name": step_name,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }
        if details:
            step["details"] = details
        self.processing_steps.append(step)

    def get_steps(self) -> list[dict]:
        return self.processing_steps

    def create_metadata(self) -> dict:
        return {
            "pipeline_version": self.pipeline_version,
            "data_source_versions": self.data_source_versions,
            "config_hash": self.config_hash,
            "created_at": self.started_at.isoformat(),
            "inputs": self.inputs,
            "processing_steps": self.processing_steps,
        }

    def save_sidecar(self, output_path: Path) -> Path:
        """
        Write the metadata as JSON beside an output.

        Args:
            output_path: Output path without extension; the sidecar is
                ``{output_path}.provenance.json``

        Returns:
            Path of the written sidecar
        """
        output_path = Path(output_path)
        sidecar_path = output_path.with_name(f"{output_path.name}.provenance.json")
        sidecar_path.parent.mkdir(parents=True, exist_ok=True)

        with open(sidecar_path, "w") as f:
            json.dump(self.create_metadata(), f, indent=2, default=str)

        return sidecar_path

    def save_to_store(self, store: "PipelineStore") -> None:
        """Append this run to the ``_provenance`` table of the checkpoint DB."""
        metadata = self.create_metadata()

        store.conn.execute(f"""
            CREATE TABLE IF NOT EXISTS {PROVENANCE_TABLE} (
                version VARCHAR,
                config_hash VARCHAR,
                created_at TIMESTAMP,
                steps_json VARCHAR,
                inputs_json VARCHAR
            )
        """)
        store.conn.execute(f"""
            INSERT INTO {PROVENANCE_TABLE}
                (version, config_hash, created_at, steps_json, inputs_json)
            VALUES (?, ?, ?, ?, ?)
        """, [
            metadata["pipeline_version"],
            metadata["config_hash"],
            metadata["created_at"],
            json.dumps(metadata["processing_steps"], default=str),
            json.dumps(metadata["inputs"], default=str),
        ])

    @staticmethod
    def load_sidecar(sidecar_path: Path) -> dict:
        with open(sidecar_path) as f:
            return json.load(f)

    @classmethod
    def from_config(
        cls,
        config: "PipelineConfig",
        version: Optional[str] = None
    ) -> "ProvenanceTracker":
        """Tracker stamped with ``version`` or the installed package version."""
        if version is None:
            from gwas_module_pipeline import __version__
            version = __version__

        return cls(version, config)
