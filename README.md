# proofrelay

`proofrelay` fetches light-client wrapper proofs from a prover endpoint and
keeps track of them in a local SQLite database. It runs in one of two modes:

- **Health check** (the default). Every 120 seconds it fetches the latest
  proof. If the proof differs from the last one stored, it decodes the proven
  height and state root from the proof's public values. It then stores them
  with the current time. An HTTP API reports the stored record.
- **Relayer**. Every 30 seconds it fetches the latest proof and builds a
  payload from it: the proof bytes and public values, hex encoded, plus the
  verifying key. It posts the payload as JSON to a registry endpoint if the
  proof differs from the last one it sent successfully.

## Installation

```
pip install .
```

To install the test dependencies as well:

```
pip install ".[test]"
```

## Running

```
proofrelay
```

With no options, the command starts the health-check service and the HTTP API
together. It keeps its state in `health_check.db` in the working directory and
clears that database when it starts. It runs until it is interrupted.

Options:

- `--mode {health-check,relayer}` selects the service. The default is
  `health-check`.
- `--db PATH` sets the SQLite database file. The default is
  `health_check.db` in health-check mode and `relayer.db` in relayer mode.
  Relayer mode does not clear its database. It picks up the last sent proof
  from there when it starts.
- `--port PORT` sets the port of the HTTP API, in health-check mode only.
  Without it, the port comes from the `API_PORT` environment variable, or
  17400 if that is not set. The server listens on all interfaces.

Run `proofrelay --help` for the same list.

The prover endpoint, the registry endpoint, the verifying key and the
light-client mode are constants in `proofrelay.config`:
`LIGHT_CLIENT_PROVER_ENDPOINT`, `REGISTRY_ENDPOINT`, `LIGHT_CLIENT_VK` and
`LIGHT_CLIENT_MODE`. The request timeout for fetching a proof is
`PROOF_FETCH_TIMEOUT`, 10 seconds. The command line does not change any of
these settings.

## HTTP API

- `GET /` returns a short plain-text description of the service.
- `GET /health` returns the stored health-check record as JSON:

```json
{
  "current_height": 12345,
  "current_root": "0102...",
  "timestamp": "2024-01-01T00:00:00+00:00",
  "status": "healthy"
}
```

`status` is `healthy` when the record is less than 30 minutes old, and
`unhealthy` otherwise. If there is no record yet, the endpoint answers 404
with `current_height` 0, an empty `current_root`, the current time and
`status` set to `no_data`. If the database cannot be read, it answers 500
with an empty body.

## Proof format

The prover endpoint must answer with a hex string. Decoded, the string is a
JSON document. `proofrelay.relayer.parse_proof` turns it into a `StateProof`,
which has three fields:

- `proof_bytes`: the first four bytes of the verifying-key hash followed by
  the encoded proof. This applies to `Groth16` and `Plonk` proofs only. Any
  other proof variant is rejected with `ValueError`.
- `public_values`: taken from `public_values.buffer.data`.
- `sp1_version`.

`WrapperOutputs.from_public_values` decodes the public values. It expects
exactly 40 bytes: a 32-byte root followed by a little-endian 64-bit height.

If the endpoint answers with a non-success status, `fetch_proof` raises
`ProofFetchError`. Malformed content raises `ValueError`.

## Using it as a library

```python
from proofrelay.db import Database
from proofrelay.relayer import create_payload, parse_proof

with Database("health_check.db") as db:
    record = db.get_latest_health_check()  # HealthCheckData or None

proof = parse_proof(hex_text)  # hex_text holds a prover response
payload = create_payload(proof)  # {"proof": ..., "public_values": ..., "vk": ...}
```

`Database` stores only the latest row of each kind. It has these methods:

- `update_health_check` and `get_latest_health_check`, which work with
  `HealthCheckData`.
- `update_previous_proof` and `get_previous_proof`, which work with
  `PreviousProof`.
- `clear_all_tables`.
- `close`.

The async functions `fetch_proof` and `send_payload` in `proofrelay.relayer`
do the HTTP work.

`proofrelay.service.HealthChecker` and `proofrelay.service.Relayer` take the
proof-fetching coroutine function as an argument. `Relayer` also takes the
payload-sending one. You can pass in your own functions, or stubs in tests.
Both classes have two methods:

- A method that does one step: `HealthChecker.check_once` or
  `Relayer.relay_once`.
- `run(interval)`, which loops forever.

`proofrelay.api.create_app` builds the aiohttp application for a `Database`.
`proofrelay.api.run_api_server` serves it until it is cancelled.
`proofrelay.api.health_status` computes the status that the API reports.

## What it does not do

- `proofrelay` does not verify proofs. It only decodes them, compares them
  with the last one seen, and stores or forwards them.
- It keeps no history. Each update replaces the stored health-check record
  and the stored proof.
- It does not interpret the registry's reply. `send_payload` returns the
  response body whatever the status code.