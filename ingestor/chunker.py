"""Content identity derivation and line-aligned chunking."""

import hashlib
from typing import List

from ingestor.exceptions import UnsupportedInputError
from ingestor.types import Chunk


def identify(data: bytes) -> str:
    """
    Compute the content identity of an input.

    Args:
        data: Complete raw bytes of the input

    Returns:
        Hexadecimal SHA-256 digest; filename never participates
    """
    return hashlib.sha256(data).hexdigest()


def decode_text(data: bytes) -> str:
    """
    Decode raw input bytes as UTF-8 text.

    Args:
        data: Raw bytes of the input

    Returns:
        Decoded text (a leading BOM is dropped)

    Raises:
        UnsupportedInputError: If the bytes are not UTF-8 text or contain NUL bytes
    """
    if b"\x00" in data:
        raise UnsupportedInputError("Input contains NUL bytes and is not plain text")
    try:
        return data.decode("utf-8-sig")
    except UnicodeDecodeError as e:
        raise UnsupportedInputError(f"Input is not valid UTF-8 text: {e}") from e


def split_lines(text: str) -> List[str]:
    """
    Split text on '\\n' keeping line terminators.

    Only '\\n' separates lines, so joining the result reproduces the input exactly.
    """
    parts = text.split("\n")
    lines = [part + "\n" for part in parts[:-1]]
    if parts[-1]:
        lines.append(parts[-1])
    return lines


def chunk(data: bytes, target_size: int) -> List[Chunk]:
    """
    Split an input into ordered, line-aligned chunks.

    Lines are accumulated until adding the next one would exceed target_size.
    A single line longer than target_size becomes a chunk of its own.

    Args:
        data: Raw bytes of the input
        target_size: Chunk boundary threshold in characters

    Returns:
        Chunks in index order; empty input yields an empty list

    Raises:
        ValueError: If target_size is not positive
        UnsupportedInputError: If the input is not text
    """
    if target_size <= 0:
        raise ValueError(f"target_size must be positive, got {target_size}")

    content_hash = identify(data)
    text = decode_text(data)

    pieces: List[tuple] = []
    current: List[str] = []
    current_len = 0
    start = 0

    for line in split_lines(text):
        if current and current_len + len(line) > target_size:
            pieces.append((start, "".join(current)))
            start += current_len
            current = []
            current_len = 0
        current.append(line)
        current_len += len(line)

    if current:
        pieces.append((start, "".join(current)))

    total = len(pieces)
    return [
        Chunk(
            content_hash=content_hash,
            index=index,
            total_chunks=total,
            text=piece_text,
            start_offset=offset,
        )
        for index, (offset, piece_text) in enumerate(pieces)
    ]
