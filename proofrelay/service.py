"""Long-running services: the health checker with its API, and the relayer."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Awaitable, Callable, Mapping, Sequence
from datetime import datetime, timezone
from typing import Any

from proofrelay.api import create_app, run_api_server
from proofrelay.config import LIGHT_CLIENT_MODE, Mode
from proofrelay.db import Database, HealthCheckData, PreviousProof
from proofrelay.relayer import (
    StateProof,
    WrapperOutputs,
    create_payload,
    fetch_proof,
    send_payload,
)

log = logging.getLogger(__name__)

HEALTH_CHECK_INTERVAL = 120.0
RELAY_INTERVAL = 30.0

Fetch = Callable[[], Awaitable[StateProof]]
Send = Callable[[Mapping[str, Any]], Awaitable[Any]]


class HealthChecker:
    """Polls the prover and records height and root whenever the proof changes."""

    def __init__(
        self,
        db: Database,
        fetch: Fetch = fetch_proof,
        mode: Mode = LIGHT_CLIENT_MODE,
    ) -> None:
        self.db = db
        self.fetch = fetch
        self.mode = mode

    def _previous_proof(self) -> str | None:
        try:
            previous = self.db.get_previous_proof()
        except Exception as exc:
            log.warning("Error getting previous proof from database: %s", exc)
            return None
        return previous.proof_data if previous is not None else None

    async def check_once(self) -> HealthCheckData | None:
        """Run one check; return the new snapshot, or None if nothing was recorded."""
        log.info("Fetching latest proof...")
        try:
            proof = await self.fetch()
        except Exception as exc:
            log.error("Health check failed: %s", exc)
            return None
        log.info("Proof fetched successfully")

        current_hex = proof.proof_bytes.hex()
        previous = self._previous_proof()
        if previous is None:
            log.info("No previous proof found, processing new proof")
        elif previous == current_hex:
            log.info("Proof unchanged, skipping update")
            return None
        else:
            log.info("Proof has changed, processing new proof")

        outputs = WrapperOutputs.from_public_values(proof.public_values)
        log.info(
            "Processing %s proof - Height: %d, Root: %s",
            self.mode.value,
            outputs.height,
            outputs.root.hex(),
        )

        snapshot = HealthCheckData(
            current_height=outputs.height,
            current_root=outputs.root,
            timestamp=datetime.now(timezone.utc),
        )
        try:
            self.db.update_health_check(snapshot)
        except Exception as exc:
            log.error("Failed to update health check data in database: %s", exc)
        else:
            log.info(
                "Health check data updated - Height: %d, Root: %s",
                outputs.height,
                outputs.root.hex(),
            )

        try:
            self.db.update_previous_proof(
                PreviousProof(proof_data=current_hex, timestamp=datetime.now(timezone.utc))
            )
        except Exception as exc:
            log.error("Failed to update previous proof in database: %s", exc)
        else:
            log.info("Proof stored in database")
        return snapshot

    async def run(self, interval: float = HEALTH_CHECK_INTERVAL) -> None:
        """Check forever, waiting ``interval`` seconds between checks."""
        log.info("Health check service started")
        while True:
            await self.check_once()
            await asyncio.sleep(interval)


class Relayer:
    """Forwards each new proof from the prover to the registry."""

    def __init__(
        self,
        db: Database,
        fetch: Fetch = fetch_proof,
        send: Send = send_payload,
    ) -> None:
        self.db = db
        self.fetch = fetch
        self.send = send
        stored = db.get_previous_proof()
        self.previous_proof: str | None = stored.proof_data if stored else None

    async def relay_once(self) -> bool:
        """Relay the current proof if it is new; return whether it was sent."""
        try:
            payload = create_payload(await self.fetch())
        except Exception as exc:
            log.error("Failed to create payload: %s", exc)
            return False

        current = payload["proof"]
        if current == self.previous_proof:
            log.info("Waiting for next check...")
            return False

        try:
            await self.send(payload)
        except Exception as exc:
            log.error("Failed to send payload to registry: %s", exc)
            return False

        log.info("Successfully sent payload to registry")
        self.previous_proof = current
        try:
            self.db.update_previous_proof(
                PreviousProof(proof_data=current, timestamp=datetime.now(timezone.utc))
            )
        except Exception as exc:
            log.error("Failed to update previous proof in database: %s", exc)
        return True

    async def run(self, interval: float = RELAY_INTERVAL) -> None:
        """Relay forever, waiting ``interval`` seconds between attempts."""
        while True:
            await self.relay_once()
            await asyncio.sleep(interval)


async def _run_health_check(db_path: str, port: int | None) -> None:
    log.info("Running in health-check mode")
    db = Database(db_path)
    try:
        try:
            db.clear_all_tables()
        except Exception as exc:
            log.warning("Failed to clear database tables: %s", exc)
        else:
            log.info("Database tables cleared successfully")
        app = create_app(db)
        await asyncio.gather(HealthChecker(db).run(), run_api_server(app, port))
    finally:
        db.close()


async def _run_relayer(db_path: str) -> None:
    log.info("Running in relayer mode")
    with Database(db_path) as db:
        await Relayer(db).run()


def main(argv: Sequence[str] | None = None) -> int:
    """Start the service chosen on the command line."""
    parser = argparse.ArgumentParser(prog="proofrelay")
    parser.add_argument(
        "--mode", choices=("health-check", "relayer"), default="health-check"
    )
    parser.add_argument("--db", help="path of the SQLite database")
    parser.add_argument("--port", type=int, help="port for the HTTP API")
    args = parser.parse_args(argv)

    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(levelname)s %(message)s")
    log.info("Starting proof relayer...")

    try:
        if args.mode == "relayer":
            asyncio.run(_run_relayer(args.db or "relayer.db"))
        else:
            asyncio.run(_run_health_check(args.db or "health_check.db", args.port))
    except KeyboardInterrupt:
        log.info("Interrupted, shutting down")
    return 0