import contextlib
import json

import pytest
from aiohttp import web

from proofrelay.config import LIGHT_CLIENT_VK
from proofrelay.relayer import (
    ProofFetchError,
    StateProof,
    WrapperOutputs,
    create_payload,
    fetch_proof,
    parse_proof,
    send_payload,
)

VKEY_HASH = list(range(100, 132))
ENCODED = "aabbccdd"
PUBLIC = list(range(32)) + [57, 48, 0, 0, 0, 0, 0, 0]


def _document(variant="Groth16", encoded=ENCODED):
    field = "groth16_vkey_hash" if variant == "Groth16" else "plonk_vkey_hash"
    return {
        "proof": {
            variant: {
                "public_inputs": ["1", "2"],
                "encoded_proof": encoded,
                "raw_proof": "",
                field: VKEY_HASH,
            }
        },
        "public_values": {"buffer": {"data": PUBLIC}},
        "sp1_version": "v5.0.0",
    }


def _hex(document):
    return json.dumps(document).encode().hex()


@contextlib.asynccontextmanager
async def _serve(handler, method="GET"):
    app = web.Application()
    app.router.add_route(method, "/", handler)
    runner = web.AppRunner(app)
    await runner.setup()
    site = web.TCPSite(runner, "127.0.0.1", 0)
    await site.start()
    port = runner.addresses[0][1]
    try:
        yield f"http://127.0.0.1:{port}/"
    finally:
        await runner.cleanup()


def test_parse_proof_groth16():
    proof = parse_proof(_hex(_document()))
    assert proof.proof_bytes == bytes(VKEY_HASH[:4]) + bytes.fromhex(ENCODED)
    assert proof.public_values == bytes(PUBLIC)
    assert proof.sp1_version == "v5.0.0"


def test_parse_proof_plonk():
    proof = parse_proof(_hex(_document("Plonk")))
    assert proof.proof_bytes == bytes(VKEY_HASH[:4]) + bytes.fromhex(ENCODED)


def test_empty_encoded_proof_gives_empty_bytes():
    proof = StateProof.from_json(_document(encoded=""))
    assert proof.proof_bytes == b""


def test_unsupported_variant_rejected():
    document = _document()
    document["proof"] = {"Core": []}
    with pytest.raises(ValueError):
        StateProof.from_json(document)


@pytest.mark.parametrize("bad", ["zz", "abc", "00ff"])
def test_parse_proof_rejects_bad_input(bad):
    with pytest.raises(ValueError):
        parse_proof(bad)


def test_missing_public_values_rejected():
    document = _document()
    del document["public_values"]
    with pytest.raises(ValueError):
        StateProof.from_json(document)


def test_wrapper_outputs_decoding():
    outputs = WrapperOutputs.from_public_values(bytes(PUBLIC))
    assert outputs.root == bytes(range(32))
    assert outputs.height == 12345


@pytest.mark.parametrize("size", [0, 39, 41])
def test_wrapper_outputs_wrong_length(size):
    with pytest.raises(ValueError):
        WrapperOutputs.from_public_values(bytes(size))


def test_create_payload():
    proof = StateProof.from_json(_document())
    payload = create_payload(proof)
    assert payload == {
        "proof": proof.proof_bytes.hex(),
        "public_values": bytes(PUBLIC).hex(),
        "vk": LIGHT_CLIENT_VK,
    }


def test_create_payload_custom_vk():
    proof = StateProof(proof_bytes=b"\x01", public_values=b"\x02")
    assert create_payload(proof, vk="0xabc")["vk"] == "0xabc"


@pytest.mark.asyncio
async def test_fetch_proof_success():
    async def handler(request):
        return web.Response(text=_hex(_document()))

    async with _serve(handler) as url:
        proof = await fetch_proof(url, timeout=5)
    assert proof.public_values == bytes(PUBLIC)


@pytest.mark.asyncio
async def test_fetch_proof_http_error():
    async def handler(request):
        return web.Response(status=500, text="boom")

    async with _serve(handler) as url:
        with pytest.raises(ProofFetchError, match="500"):
            await fetch_proof(url, timeout=5)


@pytest.mark.asyncio
async def test_send_payload_posts_json():
    received = []

    async def handler(request):
        received.append(await request.json())
        return web.Response(text="accepted")

    payload = {"proof": "aa", "public_values": "bb", "vk": LIGHT_CLIENT_VK}
    async with _serve(handler, method="POST") as url:
        body = await send_payload(payload, url)
    assert received == [payload]
    assert body == "accepted"