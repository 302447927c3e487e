"""Static configuration for the proof relayer."""

from enum import Enum


class Mode(Enum):
    """Kind of light client whose wrapper proof is being tracked."""

    HELIOS = "helios"
    TENDERMINT = "tendermint"


LIGHT_CLIENT_PROVER_ENDPOINT = "http://127.0.0.1:7778/"

LIGHT_CLIENT_VK = "0x006beadaace48146e0389403f70b490980e612c439a9294877446cd583e50fce"

REGISTRY_ENDPOINT = "http://127.0.0.1:37281/api/registry/domain/ethereum-alpha"

API_PORT = 17400

LIGHT_CLIENT_MODE = Mode.HELIOS

PROOF_FETCH_TIMEOUT = 10.0