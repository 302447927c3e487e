"""SQLite storage for the latest health-check snapshot and the last seen proof."""

from __future__ import annotations

import re
import sqlite3
import threading
from dataclasses import dataclass
from datetime import datetime, timezone
from os import PathLike

_SCHEMA = (
    """
    CREATE TABLE IF NOT EXISTS health_check (
        id INTEGER PRIMARY KEY,
        current_height INTEGER NOT NULL,
        current_root BLOB NOT NULL,
        timestamp TEXT NOT NULL
    )
    """,
    """
    CREATE TABLE IF NOT EXISTS previous_proof (
        id INTEGER PRIMARY KEY,
        proof_data TEXT NOT NULL,
        timestamp TEXT NOT NULL
    )
    """,
)

_FRACTION = re.compile(r"\.(\d+)")


def _to_rfc3339(moment: datetime) -> str:
    if moment.tzinfo is None:
        moment = moment.replace(tzinfo=timezone.utc)
    return moment.astimezone(timezone.utc).isoformat()


def _parse_rfc3339(text: str) -> datetime:
    normalized = text.strip()
    if normalized.endswith(("Z", "z")):
        normalized = normalized[:-1] + "+00:00"
    # Stored values may carry more than microsecond precision.
    normalized = _FRACTION.sub(
        lambda m: "." + m.group(1)[:6].ljust(6, "0"), normalized, count=1
    )
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        raise ValueError(f"timestamp without offset: {text!r}")
    return parsed.astimezone(timezone.utc)


@dataclass(frozen=True)
class HealthCheckData:
    """Height and root taken from the most recent proof, with when it was seen."""

    current_height: int
    current_root: bytes
    timestamp: datetime


@dataclass(frozen=True)
class PreviousProof:
    """Hex encoding of the last proof that was processed."""

    proof_data: str
    timestamp: datetime


class Database:
    """Thread-safe wrapper around a SQLite file that keeps only the latest rows."""

    def __init__(self, db_path: str | PathLike[str]) -> None:
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(str(db_path), check_same_thread=False)
        with self._lock, self._conn:
            for statement in _SCHEMA:
                self._conn.execute(statement)

    def __enter__(self) -> Database:
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    def update_health_check(self, data: HealthCheckData) -> None:
        """Replace the stored health-check snapshot with ``data``."""
        if data.current_height < 0:
            raise ValueError("current_height must not be negative")
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM health_check")
            self._conn.execute(
                "INSERT INTO health_check (current_height, current_root, timestamp) "
                "VALUES (?, ?, ?)",
                (data.current_height, bytes(data.current_root), _to_rfc3339(data.timestamp)),
            )

    def get_latest_health_check(self) -> HealthCheckData | None:
        """Return the stored snapshot, or None when there is none."""
        with self._lock:
            row = self._conn.execute(
                "SELECT current_height, current_root, timestamp FROM health_check "
                "ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        height, root, stamp = row
        return HealthCheckData(
            current_height=int(height),
            current_root=bytes(root),
            timestamp=_parse_rfc3339(stamp),
        )

    def update_previous_proof(self, proof: PreviousProof) -> None:
        """Replace the stored proof with ``proof``."""
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM previous_proof")
            self._conn.execute(
                "INSERT INTO previous_proof (proof_data, timestamp) VALUES (?, ?)",
                (proof.proof_data, _to_rfc3339(proof.timestamp)),
            )

    def get_previous_proof(self) -> PreviousProof | None:
        """Return the stored proof, or None when there is none."""
        with self._lock:
            row = self._conn.execute(
                "SELECT proof_data, timestamp FROM previous_proof ORDER BY id DESC LIMIT 1"
            ).fetchone()
        if row is None:
            return None
        proof_data, stamp = row
        return PreviousProof(proof_data=proof_data, timestamp=_parse_rfc3339(stamp))

    def clear_all_tables(self) -> None:
        """Delete every stored row."""
        with self._lock, self._conn:
            self._conn.execute("DELETE FROM health_check")
            self._conn.execute("DELETE FROM previous_proof")

    def close(self) -> None:
        """Close the underlying connection."""
        with self._lock:
            self._conn.close()