# src/ledger/layout.py — v1
"""Ledger directory structure definition.

Defines the file names of the three identifier lists, the remaining
snapshot, the failure-detail map and the per-identifier result artifacts.
"""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

# Files under {data_dir}/
INPUT_FILE = "todo-list-ids.txt"
DONE_FILE = "done-ids.txt"
FAILED_FILE = "failed-ids.txt"
REMAINING_FILE = "remaining-ids.txt"
FAILURE_DETAILS_FILE = "failed-details.json"
RESULTS_DIR = "result-json"

ARTIFACT_SUFFIX = ".json"


class LedgerPaths(BaseModel):
    """Resolved locations of every ledger file."""

    model_config = {"frozen": True}

    input_file: Path
    done_file: Path
    failed_file: Path
    remaining_file: Path
    failure_details_file: Path
    results_dir: Path

    @classmethod
    def under(cls, data_dir: Path) -> LedgerPaths:
        """Default layout rooted at data_dir."""
        return cls(
            input_file=data_dir / INPUT_FILE,
            done_file=data_dir / DONE_FILE,
            failed_file=data_dir / FAILED_FILE,
            remaining_file=data_dir / REMAINING_FILE,
            failure_details_file=data_dir / FAILURE_DETAILS_FILE,
            results_dir=data_dir / RESULTS_DIR,
        )

    def writable_dirs(self) -> list[Path]:
        """Directories that must exist before a run can record outcomes."""
        dirs = {
            self.done_file.parent,
            self.failed_file.parent,
            self.remaining_file.parent,
            self.failure_details_file.parent,
            self.results_dir,
        }
        return sorted(dirs)


def artifact_filename(identifier: str) -> str:
    """File name of the result artifact for an identifier."""
    safe = identifier.replace("/", "_").replace("\\", "_")
    if safe in ("", ".", ".."):
        safe = f"_{safe}"
    return f"{safe}{ARTIFACT_SUFFIX}"


def artifact_path(results_dir: Path, identifier: str) -> Path:
    return results_dir / artifact_filename(identifier)
