"""Run Ledger entry model (append-only, hash-chained).

One entry per stage state transition, scoped to run_id + stage_id. The
ledger is the audit trail of every pipeline run: what was decided, which
version was burned, and which stage stopped the run.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class LedgerEntry(BaseModel):
    """A single entry in the append-only Run Ledger."""

    model_config = ConfigDict(frozen=True)

    entry_id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    run_id: str
    stage_id: str
    state_transition: str  # "from_state->to_state", e.g. "not_started->running"
    timestamp_utc: datetime = Field(
        default_factory=lambda: datetime.now(timezone.utc)
    )
    input_hash: str = ""  # SHA-256 of canonical stage inputs
    output_hash: str = ""  # SHA-256 of canonical stage outputs
    version: str = ""  # release version in effect when the entry was written
    detail: dict[str, Any] = {}
    previous_entry_hash: str = ""
    entry_hash: str = ""  # computed after construction, seals this entry
