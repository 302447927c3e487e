"""Fetching wrapper proofs from the prover and relaying them to the registry."""

from __future__ import annotations

import binascii
import json
import logging
import struct
from collections.abc import Mapping
from dataclasses import dataclass
from typing import Any

import aiohttp

from proofrelay.config import (
    LIGHT_CLIENT_PROVER_ENDPOINT,
    LIGHT_CLIENT_VK,
    PROOF_FETCH_TIMEOUT,
    REGISTRY_ENDPOINT,
)

log = logging.getLogger(__name__)

_VKEY_HASH_FIELDS = {"Groth16": "groth16_vkey_hash", "Plonk": "plonk_vkey_hash"}
_ROOT_SIZE = 32
_HEIGHT = struct.Struct("<Q")


class ProofFetchError(Exception):
    """The prover endpoint did not deliver a proof."""


def _byte_list(value: Any, what: str) -> bytes:
    try:
        return bytes(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{what} is not a byte array") from exc


def _proof_bytes(proof: Any) -> bytes:
    if not isinstance(proof, Mapping) or len(proof) != 1:
        raise ValueError("proof must hold exactly one variant")
    (variant, body), = proof.items()
    hash_field = _VKEY_HASH_FIELDS.get(variant)
    if hash_field is None:
        raise ValueError(f"proof variant {variant!r} has no byte encoding")
    try:
        encoded = body["encoded_proof"]
        vkey_hash = _byte_list(body[hash_field], hash_field)
    except (KeyError, TypeError) as exc:
        raise ValueError(f"malformed {variant} proof") from exc
    if not encoded:
        return b""
    try:
        return vkey_hash[:4] + bytes.fromhex(encoded)
    except (TypeError, ValueError) as exc:
        raise ValueError("encoded_proof is not hex") from exc


@dataclass(frozen=True)
class StateProof:
    """A wrapper proof together with its committed public values."""

    proof_bytes: bytes
    public_values: bytes
    sp1_version: str = ""

    @classmethod
    def from_json(cls, document: Mapping[str, Any]) -> StateProof:
        """Build a proof from its decoded JSON document."""
        if not isinstance(document, Mapping):
            raise ValueError("proof document must be a JSON object")
        try:
            proof = document["proof"]
            data = document["public_values"]["buffer"]["data"]
        except (KeyError, TypeError) as exc:
            raise ValueError("proof document lacks proof or public values") from exc
        version = document.get("sp1_version", "")
        return cls(
            proof_bytes=_proof_bytes(proof),
            public_values=_byte_list(data, "public values"),
            sp1_version=str(version),
        )


@dataclass(frozen=True)
class WrapperOutputs:
    """Public outputs of the wrapper circuit: the verified root and height."""

    root: bytes
    height: int

    @classmethod
    def from_public_values(cls, data: bytes) -> WrapperOutputs:
        """Decode the borsh-encoded outputs: a 32-byte root then a u64 height."""
        expected = _ROOT_SIZE + _HEIGHT.size
        if len(data) != expected:
            raise ValueError(f"expected {expected} bytes of public values, got {len(data)}")
        (height,) = _HEIGHT.unpack_from(data, _ROOT_SIZE)
        return cls(root=bytes(data[:_ROOT_SIZE]), height=height)


def parse_proof(hex_str: str) -> StateProof:
    """Decode a hex string holding a JSON-serialised proof."""
    try:
        raw = binascii.unhexlify(hex_str)
    except (binascii.Error, ValueError) as exc:
        raise ValueError("proof response is not valid hex") from exc
    try:
        document = json.loads(raw)
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("proof response does not hold JSON") from exc
    return StateProof.from_json(document)


async def fetch_proof(
    endpoint: str = LIGHT_CLIENT_PROVER_ENDPOINT,
    timeout: float = PROOF_FETCH_TIMEOUT,
) -> StateProof:
    """Download and parse the latest proof from the prover endpoint."""
    log.info("Fetching proof from %s", endpoint)
    client_timeout = aiohttp.ClientTimeout(total=timeout)
    async with aiohttp.ClientSession(timeout=client_timeout) as session:
        async with session.get(endpoint) as response:
            log.info("Received response with status: %s", response.status)
            if not 200 <= response.status < 300:
                raise ProofFetchError(
                    f"HTTP request failed with status: {response.status}"
                )
            hex_str = await response.text()
    log.info("Received hex string of length: %d", len(hex_str))
    proof = parse_proof(hex_str)
    log.info("Successfully parsed proof")
    return proof


def create_payload(proof: StateProof, vk: str = LIGHT_CLIENT_VK) -> dict[str, str]:
    """Build the registry payload for ``proof``."""
    return {
        "proof": proof.proof_bytes.hex(),
        "public_values": proof.public_values.hex(),
        "vk": vk,
    }


async def send_payload(
    payload: Mapping[str, Any], endpoint: str = REGISTRY_ENDPOINT
) -> str:
    """POST ``payload`` as JSON to the registry and return the response body."""
    log.debug("Payload: %r", payload)
    async with aiohttp.ClientSession() as session:
        async with session.post(endpoint, json=dict(payload)) as response:
            log.info("Response status: %s", response.status)
            body = await response.text()
    log.debug("Response body: %s", body)
    return body