# src/ledger/store.py — v1
"""File-backed ledger store: the durable record of identifier outcomes.

Layout (see ledger/layout.py):
    input      read-only identifier universe, one per line
    done       append-only, one identifier per line
    failed     append-only, one identifier per line
    remaining  snapshot of Input - Done - Failed, rewritten atomically
    failure details  JSON map identifier -> {status, message}
    results/   one pretty-printed JSON artifact per successful identifier

Appends to the same file are serialized with one asyncio.Lock per file and
flushed to disk before the lock is released, so concurrent lookups never
interleave partial lines and a crash never truncates an earlier line.
All file I/O runs in worker threads via asyncio.to_thread; the event loop
only awaits it.
"""

from __future__ import annotations

import asyncio
import json
import logging
import os
import shutil
from datetime import datetime
from pathlib import Path
from typing import Any, Iterable

from idsweep.core.errors import LedgerReadError, LedgerWriteError
from idsweep.core.identifiers import parse_identifiers, parse_ledger_lines
from idsweep.core.models import FailureDetail
from idsweep.ledger import layout
from idsweep.ledger.layout import LedgerPaths

logger = logging.getLogger(__name__)


class LedgerStore:
    """Read and append the ledger files under a LedgerPaths layout."""

    def __init__(self, paths: LedgerPaths) -> None:
        self._paths = paths
        self._locks: dict[Path, asyncio.Lock] = {}
        # (mtime_ns, size) of the input file -> parsed identifiers
        self._input_cache: tuple[tuple[int, int], list[str]] | None = None

    @property
    def paths(self) -> LedgerPaths:
        return self._paths

    def ensure_directories(self) -> None:
        """Create every directory the ledger writes into.

        Raises:
            LedgerWriteError: If a directory cannot be created.
        """
        for directory in self._paths.writable_dirs():
            try:
                directory.mkdir(parents=True, exist_ok=True)
            except OSError as e:
                raise LedgerWriteError(str(directory), str(e)) from e

    # --- Reads ---

    async def read_input(self) -> list[str]:
        """Normalized, de-duplicated input identifiers in file order.

        The parsed list is reused until the file's size or mtime changes.
        """
        return await asyncio.to_thread(self._read_input_sync)

    async def read_done(self) -> list[str]:
        return await self._read_lines(self._paths.done_file)

    async def read_failed(self) -> list[str]:
        return await self._read_lines(self._paths.failed_file)

    async def read_remaining(self) -> list[str]:
        return await self._read_lines(self._paths.remaining_file)

    async def read_failure_details(self) -> dict[str, FailureDetail]:
        """Load the failure-detail map.

        A file that is not valid UTF-8 JSON is backed up and read as empty.

        Raises:
            LedgerReadError: If the file exists but cannot be read.
        """
        return await asyncio.to_thread(self._read_details_sync)

    # --- Appends ---

    async def append_done(self, identifier: str) -> None:
        await self._append_line(self._paths.done_file, identifier)

    async def append_failed(self, identifier: str) -> None:
        await self._append_line(self._paths.failed_file, identifier)

    async def record_failure_detail(self, identifier: str, detail: FailureDetail) -> None:
        """Insert or replace the detail of one failed identifier."""

        def _update() -> None:
            details = self._read_details_sync()
            details[identifier] = detail
            self._write_details(details)

        async with self._lock_for(self._paths.failure_details_file):
            await asyncio.to_thread(_update)

    # --- Snapshot and artifacts ---

    async def write_remaining(self, identifiers: Iterable[str]) -> None:
        """Atomically replace the remaining snapshot."""
        path = self._paths.remaining_file
        content = _lines_content(identifiers)
        async with self._lock_for(path):
            await asyncio.to_thread(_atomic_write_text, path, content)

    async def write_artifact(self, identifier: str, payload: Any) -> Path:
        """Store the raw lookup payload for an identifier as indented JSON."""
        path = layout.artifact_path(self._paths.results_dir, identifier)

        def _write() -> None:
            try:
                path.parent.mkdir(parents=True, exist_ok=True)
                path.write_text(
                    json.dumps(payload, indent=2, ensure_ascii=False, default=str),
                    encoding="utf-8",
                )
            except OSError as e:
                raise LedgerWriteError(str(path), str(e)) from e

        await asyncio.to_thread(_write)
        return path

    # --- Operator recovery ---

    async def remove_failed(self, identifiers: Iterable[str] | None = None) -> list[str]:
        """Drop identifiers from the failed ledger and the detail map.

        The failed ledger is read and rewritten under its append lock, so
        failures recorded concurrently are not lost.

        Args:
            identifiers: Identifiers to requeue. None requeues every failure.

        Returns:
            The identifiers actually removed, in ledger order.
        """
        wanted = None if identifiers is None else set(identifiers)
        failed_file = self._paths.failed_file

        def _rewrite_failed() -> list[str]:
            failed = parse_ledger_lines(self._read_text(failed_file))
            drop = set(failed) if wanted is None else wanted
            removed = list(dict.fromkeys(i for i in failed if i in drop))
            if removed:
                _atomic_write_text(
                    failed_file, _lines_content(i for i in failed if i not in drop),
                )
            return removed

        async with self._lock_for(failed_file):
            removed = await asyncio.to_thread(_rewrite_failed)
        if not removed:
            return []

        def _prune_details() -> None:
            details = self._read_details_sync()
            for identifier in removed:
                details.pop(identifier, None)
            self._write_details(details)

        async with self._lock_for(self._paths.failure_details_file):
            await asyncio.to_thread(_prune_details)

        logger.info("Requeued %d failed identifiers", len(removed))
        return removed

    # --- Internals (run in worker threads) ---

    def _lock_for(self, path: Path) -> asyncio.Lock:
        lock = self._locks.get(path)
        if lock is None:
            lock = asyncio.Lock()
            self._locks[path] = lock
        return lock

    async def _read_lines(self, path: Path) -> list[str]:
        text = await asyncio.to_thread(self._read_text, path)
        return parse_ledger_lines(text)

    def _read_input_sync(self) -> list[str]:
        path = self._paths.input_file
        try:
            st = path.stat()
        except FileNotFoundError:
            self._input_cache = None
            return []
        except OSError as e:
            raise LedgerReadError(str(path), str(e)) from e

        key = (st.st_mtime_ns, st.st_size)
        if self._input_cache is not None and self._input_cache[0] == key:
            return list(self._input_cache[1])
        ids = parse_identifiers(self._read_text(path))
        self._input_cache = (key, ids)
        return list(ids)

    def _read_text(self, path: Path) -> str:
        """Read a UTF-8 file; a missing file reads as "".

        Raises:
            LedgerReadError: On any other OS error or invalid UTF-8.
        """
        try:
            return path.read_bytes().decode("utf-8")
        except FileNotFoundError:
            return ""
        except (OSError, UnicodeDecodeError) as e:
            raise LedgerReadError(str(path), str(e)) from e

    def _read_details_sync(self) -> dict[str, FailureDetail]:
        path = self._paths.failure_details_file
        try:
            data = path.read_bytes()
        except FileNotFoundError:
            return {}
        except OSError as e:
            raise LedgerReadError(str(path), str(e)) from e

        try:
            text = data.decode("utf-8")
            if not text.strip():
                return {}
            raw = json.loads(text)
            return {str(k): FailureDetail(**v) for k, v in raw.items()}
        except (UnicodeDecodeError, json.JSONDecodeError, AttributeError, TypeError, ValueError) as e:
            logger.warning("Failure details file corrupted (%s): %s", path, e)
            self._backup_corrupted(path)
            return {}

    async def _append_line(self, path: Path, line: str) -> None:
        def _append() -> None:
            try:
                with open(path, "a", encoding="utf-8") as f:
                    f.write(line + "\n")
                    f.flush()
                    os.fsync(f.fileno())
            except OSError as e:
                raise LedgerWriteError(str(path), str(e)) from e

        async with self._lock_for(path):
            await asyncio.to_thread(_append)

    def _write_details(self, details: dict[str, FailureDetail]) -> None:
        data = {k: v.model_dump() for k, v in details.items()}
        _atomic_write_text(
            self._paths.failure_details_file,
            json.dumps(data, indent=2, ensure_ascii=False),
        )

    def _backup_corrupted(self, path: Path) -> None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        backup = path.with_name(f"{path.stem}.corrupted.{timestamp}{path.suffix}")
        try:
            shutil.copy2(path, backup)
            logger.info("Backed up corrupted file to %s", backup)
        except OSError as e:
            logger.warning("Failed to back up corrupted file %s: %s", path, e)


def _lines_content(identifiers: Iterable[str]) -> str:
    ids = list(identifiers)
    return "\n".join(ids) + ("\n" if ids else "")


def _atomic_write_text(path: Path, content: str) -> None:
    """Write to a temp file, fsync, then rename over the target.

    Raises:
        LedgerWriteError: If any step fails. The temp file is removed.
    """
    tmp = path.with_name(f".{path.name}.tmp")
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(tmp, "w", encoding="utf-8") as f:
            f.write(content)
            f.flush()
            os.fsync(f.fileno())
        os.replace(tmp, path)
    except OSError as e:
        try:
            tmp.unlink(missing_ok=True)
        except OSError:
            logger.debug("Could not remove temp file %s", tmp)
        raise LedgerWriteError(str(path), str(e)) from e
