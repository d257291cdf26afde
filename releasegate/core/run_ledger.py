"""Append-only, hash-chained Run Ledger backed by SQLite.

Every stage transition of every pipeline run lands here: the deploy
decision, the version that was burned, the stage that halted a run.
Entries chain per run (each stores the hash of the run's previous entry)
and are indexed by release version, so an operator can ask which runs
bumped, published or deployed a given version.

Only ``append()`` writes. There is no update or delete.
"""

from __future__ import annotations

import json
import sqlite3
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path

from releasegate.core.hasher import compute_entry_hash
from releasegate.models.ledger import LedgerEntry

# Stored columns, in LedgerEntry field order. ``detail`` is kept as JSON.
_FIELDS = (
    "entry_id",
    "run_id",
    "stage_id",
    "state_transition",
    "timestamp_utc",
    "input_hash",
    "output_hash",
    "version",
    "detail",
    "previous_entry_hash",
    "entry_hash",
)

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS run_ledger (
        seq                   INTEGER PRIMARY KEY AUTOINCREMENT,
        entry_id              TEXT NOT NULL UNIQUE,
        run_id                TEXT NOT NULL,
        stage_id              TEXT NOT NULL,
        state_transition      TEXT NOT NULL,
        timestamp_utc         TEXT NOT NULL,
        input_hash            TEXT NOT NULL DEFAULT '',
        output_hash           TEXT NOT NULL DEFAULT '',
        version               TEXT NOT NULL DEFAULT '',
        detail                TEXT NOT NULL DEFAULT '{}',
        previous_entry_hash   TEXT NOT NULL DEFAULT '',
        entry_hash            TEXT NOT NULL UNIQUE
    )
    """,
    "CREATE INDEX IF NOT EXISTS idx_ledger_run ON run_ledger(run_id, seq)",
    "CREATE INDEX IF NOT EXISTS idx_ledger_version ON run_ledger(version, seq)",
)

_SELECT = f"SELECT {', '.join(_FIELDS)} FROM run_ledger"


class LedgerIntegrityError(RuntimeError):
    """Raised when the hash chain is broken."""


class RunLedger:
    """Append-only, hash-chained Run Ledger.

    Parameters
    ----------
    db_path:
        Path to the SQLite database file. Created if it does not exist.
    """

    def __init__(self, db_path: Path) -> None:
        self._db_path = Path(db_path)
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        with self._session() as conn:
            for statement in _SCHEMA:
                conn.execute(statement)

    @contextmanager
    def _session(self) -> Iterator[sqlite3.Connection]:
        conn = sqlite3.connect(str(self._db_path))
        conn.row_factory = sqlite3.Row
        try:
            conn.execute("PRAGMA journal_mode=WAL")
            yield conn
            conn.commit()
        finally:
            conn.close()

    # ------------------------------------------------------------------
    # Writing
    # ------------------------------------------------------------------

    def append(self, entry: LedgerEntry) -> LedgerEntry:
        """Seal *entry* onto the end of its run's chain and store it.

        Returns the sealed entry (``previous_entry_hash`` and ``entry_hash``
        filled in).
        """
        with self._session() as conn:
            row = conn.execute(
                "SELECT entry_hash FROM run_ledger WHERE run_id = ? ORDER BY seq DESC LIMIT 1",
                (entry.run_id,),
            ).fetchone()
            linked = entry.model_copy(
                update={"previous_entry_hash": row["entry_hash"] if row else "", "entry_hash": ""}
            )
            sealed = linked.model_copy(
                update={"entry_hash": compute_entry_hash(linked.model_dump(mode="json"))}
            )

            record = sealed.model_dump(mode="json")
            record["detail"] = json.dumps(record["detail"])
            conn.execute(
                f"INSERT INTO run_ledger ({', '.join(_FIELDS)}) "
                f"VALUES ({', '.join('?' for _ in _FIELDS)})",
                tuple(record[name] for name in _FIELDS),
            )
        return sealed

    # ------------------------------------------------------------------
    # Reading
    # ------------------------------------------------------------------

    def _query(self, where: str, params: tuple) -> list[LedgerEntry]:
        with self._session() as conn:
            rows = conn.execute(f"{_SELECT} WHERE {where} ORDER BY seq", params).fetchall()
        return [
            LedgerEntry(**{**dict(row), "detail": json.loads(row["detail"])}) for row in rows
        ]

    def get_run_entries(self, run_id: str) -> list[LedgerEntry]:
        """Every entry of one run, oldest first."""
        return self._query("run_id = ?", (run_id,))

    def get_version_entries(self, version: str) -> list[LedgerEntry]:
        """Every entry, across runs, recorded while *version* was in effect.

        Answers "which run burned 1.2.4" (its ``s2_version`` pass) and
        "where did 1.2.4 get deployed" (its ``s6_deploy`` transitions).
        """
        return self._query("version = ?", (version,))

    def get_all_run_ids(self) -> list[str]:
        """Distinct run ids, the most recently written first."""
        with self._session() as conn:
            rows = conn.execute(
                "SELECT run_id FROM run_ledger GROUP BY run_id ORDER BY MAX(seq) DESC"
            ).fetchall()
        return [row["run_id"] for row in rows]

    # ------------------------------------------------------------------
    # Verification
    # ------------------------------------------------------------------

    def verify_chain(self, run_id: str) -> bool:
        """Recompute one run's chain.

        Returns True when every link and every entry hash checks out;
        raises ``LedgerIntegrityError`` naming the first bad entry otherwise.
        An unknown run is an empty, valid chain.
        """
        expected_previous = ""
        for entry in self.get_run_entries(run_id):
            if entry.previous_entry_hash != expected_previous:
                raise LedgerIntegrityError(
                    f"Chain broken at entry {entry.entry_id} ({entry.stage_id} "
                    f"{entry.state_transition}): links to {entry.previous_entry_hash!r}, "
                    f"previous entry is {expected_previous!r}"
                )
            recomputed = compute_entry_hash(
                entry.model_copy(update={"entry_hash": ""}).model_dump(mode="json")
            )
            if recomputed != entry.entry_hash:
                raise LedgerIntegrityError(
                    f"Entry {entry.entry_id} ({entry.stage_id} {entry.state_transition}) "
                    f"was modified after it was sealed"
                )
            expected_previous = entry.entry_hash
        return True
