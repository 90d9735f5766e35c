"""Content identifiers matching the CIDs Pinata assigns on upload.

Uploads are pinned with ``cidVersion: 0``, so the remote hash of a file is
the CIDv0 that ``ipfs add`` computes with its default importer settings.
This module reproduces that derivation locally:

1. Split the bytes into fixed 256 KiB chunks (an empty file is one empty
   chunk).
2. Wrap every chunk in a UnixFS ``File`` message inside a dag-pb node.
3. Build a balanced tree with at most 174 links per node; a file that fits
   in one chunk is its own root.
4. Hash the root block with sha2-256, prefix the multihash header and
   encode with base58btc.

Only the protobuf subset needed for UnixFS files is implemented.
"""

from __future__ import annotations

import hashlib
from pathlib import Path
from typing import BinaryIO, Iterable, Iterator, NamedTuple

CHUNK_SIZE = 262144
MAX_LINKS = 174

_SHA2_256 = 0x12
_UNIXFS_FILE = 2
_BASE58_ALPHABET = "123456789ABCDEFGHJKLMNPQRSTUVWXYZabcdefghijkmnopqrstuvwxyz"


class _Node(NamedTuple):
    multihash: bytes
    # block length plus the cumulative size of all descendants
    tsize: int
    # number of file bytes below this node
    filesize: int


# ------------------------------------------------------------------
# Encoding primitives
# ------------------------------------------------------------------


def _varint(value: int) -> bytes:
    out = bytearray()
    while True:
        byte = value & 0x7F
        value >>= 7
        if value:
            out.append(byte | 0x80)
        else:
            out.append(byte)
            return bytes(out)


def _field_varint(number: int, value: int) -> bytes:
    return _varint(number << 3) + _varint(value)


def _field_bytes(number: int, payload: bytes) -> bytes:
    return _varint((number << 3) | 2) + _varint(len(payload)) + payload


def base58btc(data: bytes) -> str:
    """Encode *data* with the Bitcoin base58 alphabet."""
    number = int.from_bytes(data, "big")
    digits: list[str] = []
    while number:
        number, rem = divmod(number, 58)
        digits.append(_BASE58_ALPHABET[rem])
    leading_zeros = len(data) - len(data.lstrip(b"\0"))
    return "1" * leading_zeros + "".join(reversed(digits))


def _unixfs_file(
    data: bytes, filesize: int, blocksizes: Iterable[int] = ()
) -> bytes:
    """Serialise a UnixFS ``Data`` message of type File."""
    out = _field_varint(1, _UNIXFS_FILE)
    if data:
        out += _field_bytes(2, data)
    out += _field_varint(3, filesize)
    for size in blocksizes:
        out += _field_varint(4, size)
    return out


def _dag_pb(data: bytes, links: Iterable[_Node] = ()) -> bytes:
    """Serialise a dag-pb node; links precede data in canonical form."""
    out = b""
    for link in links:
        encoded = (
            _field_bytes(1, link.multihash)
            + _field_bytes(2, b"")
            + _field_varint(3, link.tsize)
        )
        out += _field_bytes(2, encoded)
    return out + _field_bytes(1, data)


def _multihash(block: bytes) -> bytes:
    digest = hashlib.sha256(block).digest()
    return bytes([_SHA2_256, len(digest)]) + digest


# ------------------------------------------------------------------
# DAG construction
# ------------------------------------------------------------------


def _leaf(chunk: bytes) -> _Node:
    block = _dag_pb(_unixfs_file(chunk, len(chunk)))
    return _Node(_multihash(block), len(block), len(chunk))


def _parent(children: list[_Node]) -> _Node:
    filesize = sum(child.filesize for child in children)
    data = _unixfs_file(
        b"", filesize, [child.filesize for child in children]
    )
    block = _dag_pb(data, children)
    tsize = len(block) + sum(child.tsize for child in children)
    return _Node(_multihash(block), tsize, filesize)


def _balanced_root(leaves: list[_Node]) -> _Node:
    if len(leaves) == 1:
        return leaves[0]
    level = leaves
    while True:
        level = [
            _parent(level[i : i + MAX_LINKS])
            for i in range(0, len(level), MAX_LINKS)
        ]
        if len(level) == 1:
            return level[0]


def _chunks_of(data: bytes) -> Iterator[bytes]:
    if not data:
        yield b""
        return
    for start in range(0, len(data), CHUNK_SIZE):
        yield data[start : start + CHUNK_SIZE]


def _chunks_from(stream: BinaryIO) -> Iterator[bytes]:
    emitted = False
    while True:
        chunk = stream.read(CHUNK_SIZE)
        if not chunk:
            break
        emitted = True
        yield chunk
    if not emitted:
        yield b""


def _cid_from_chunks(chunks: Iterable[bytes]) -> str:
    root = _balanced_root([_leaf(chunk) for chunk in chunks])
    return base58btc(root.multihash)


# ------------------------------------------------------------------
# Public API
# ------------------------------------------------------------------


def hash_bytes(data: bytes) -> str:
    """Return the CIDv0 of *data*.

    The result depends only on the bytes, never on a file name or path.
    """
    return _cid_from_chunks(_chunks_of(data))


def hash_file(path: Path) -> str:
    """Return the CIDv0 of the file at *path*, reading it in chunks.

    Raises:
        OSError: If the file cannot be opened or read.
    """
    with open(path, "rb") as fh:
        return _cid_from_chunks(_chunks_from(fh))
