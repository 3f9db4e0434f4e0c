from __future__ import annotations

from typing import AsyncIterable, AsyncIterator

from docvault.exceptions import PayloadTooLarge


async def capped(chunks: AsyncIterable[bytes], max_bytes: int) -> AsyncIterator[bytes]:
    """Re-yield ``chunks``, failing as soon as more than ``max_bytes`` have passed."""
    total = 0
    async for chunk in chunks:
        total += len(chunk)
        if total > max_bytes:
            raise PayloadTooLarge(f"payload exceeds {max_bytes} bytes")
        yield chunk


async def iter_file(file, chunk_size: int) -> AsyncIterator[bytes]:
    """Read an async file-like object (e.g. ``UploadFile``) in chunks."""
    while True:
        chunk = await file.read(chunk_size)
        if not chunk:
            break
        yield chunk
