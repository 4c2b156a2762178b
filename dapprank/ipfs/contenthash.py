"""Decoding of ENS contenthash records (ENSIP-7)."""
import base64

import base58

from ..exceptions import ContenthashError

CODECS = {
    0xE3: "ipfs-ns",
    0xE5: "ipns-ns",
    0xE4: "swarm-ns",
    0x01BC: "onion",
    0x01BD: "onion3",
    0xB29910: "skynet-ns",
    0xB19910: "arweave-ns",
}

CID_V1 = 0x01
DAG_PB = 0x70
SHA2_256 = 0x12


def read_varint(data: bytes, offset: int = 0) -> tuple[int, int]:
    """Read an unsigned LEB128 varint, returning ``(value, next_offset)``."""
    value = 0
    shift = 0
    while True:
        if offset >= len(data):
            raise ContenthashError("Truncated varint")
        byte = data[offset]
        value |= (byte & 0x7F) << shift
        offset += 1
        if not byte & 0x80:
            return value, offset
        shift += 7


def encode_varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def cid_to_base32(cid_bytes: bytes) -> str:
    """Render binary CID bytes as a multibase base32 CIDv1 string.

    A bare sha2-256 multihash (CIDv0) is upgraded to a dag-pb CIDv1.
    """
    if cid_bytes[:2] == bytes([SHA2_256, 0x20]):
        cid_bytes = encode_varint(CID_V1) + encode_varint(DAG_PB) + cid_bytes
    return "b" + base64.b32encode(cid_bytes).decode("ascii").lower().rstrip("=")


def cid_to_bytes(cid: str) -> bytes:
    """Parse a CID string (CIDv0 base58 or multibase base32 CIDv1) into bytes."""
    if cid.startswith("Qm"):
        return base58.b58decode(cid)
    if cid.startswith("b"):
        body = cid[1:].upper()
        body += "=" * (-len(body) % 8)
        return base64.b32decode(body)
    raise ContenthashError(f"Unsupported CID encoding: {cid}")


def multihash_digest(cid: str) -> bytes:
    """Return the digest portion of a CID's multihash."""
    raw = cid_to_bytes(cid)
    if cid.startswith("Qm"):
        offset = 0
    else:
        _, offset = read_varint(raw, 0)
        _, offset = read_varint(raw, offset)
    _, offset = read_varint(raw, offset)
    length, offset = read_varint(raw, offset)
    return raw[offset:offset + length]


def decode_contenthash(contenthash: str) -> dict[str, str]:
    """Decode a hex contenthash into ``{codec, value}``."""
    if not contenthash or contenthash in ("0x", "0X"):
        raise ContenthashError("Empty contenthash")
    hex_value = contenthash[2:] if contenthash.lower().startswith("0x") else contenthash
    try:
        raw = bytes.fromhex(hex_value)
    except ValueError as e:
        raise ContenthashError(f"Contenthash is not valid hex: {contenthash}") from e
    code, offset = read_varint(raw)
    codec = CODECS.get(code)
    if codec is None:
        raise ContenthashError(f"Unknown contenthash codec 0x{code:x}")
    payload = raw[offset:]
    if not payload:
        raise ContenthashError(f"Contenthash has no {codec} payload")
    if codec in ("ipfs-ns", "ipns-ns"):
        value = cid_to_base32(payload)
    elif codec == "swarm-ns":
        value = payload[-32:].hex()
    elif codec in ("arweave-ns", "skynet-ns"):
        value = base64.urlsafe_b64encode(payload).decode("ascii").rstrip("=")
    else:
        value = payload.decode("utf-8", errors="replace")
    return {"codec": codec, "value": value}
