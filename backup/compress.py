"""zstd compression of finished artifacts."""
from __future__ import annotations

import os
from pathlib import Path

import zstandard

from .naming import compressed_path

DEFAULT_LEVEL = 3
_CHUNK_BYTES = 1024 * 1024


def compress_file(source: Path, *, level: int = DEFAULT_LEVEL) -> Path:
    """Compress *source* into ``<source>.zst`` and delete *source*.

    The frame is written to a ``.tmp`` sibling and renamed into place, so the
    final name only ever points at a complete file. On failure the temporary
    file is removed and *source* is left untouched.
    """

    source = Path(source)
    target = compressed_path(source)
    partial = target.with_name(target.name + ".tmp")
    compressor = zstandard.ZstdCompressor(level=level, write_checksum=True)
    try:
        with source.open("rb") as src, partial.open("wb") as dst:
            compressor.copy_stream(
                src,
                dst,
                size=source.stat().st_size,
                read_size=_CHUNK_BYTES,
                write_size=_CHUNK_BYTES,
            )
            dst.flush()
            os.fsync(dst.fileno())
        os.replace(partial, target)
    except BaseException:
        partial.unlink(missing_ok=True)
        raise
    source.unlink()
    return target


def decompress_file(source: Path, target: Path) -> Path:
    """Inverse of :func:`compress_file`, used to restore and verify artifacts."""

    decompressor = zstandard.ZstdDecompressor()
    with Path(source).open("rb") as src, Path(target).open("wb") as dst:
        decompressor.copy_stream(src, dst, read_size=_CHUNK_BYTES, write_size=_CHUNK_BYTES)
    return Path(target)


__all__ = ["DEFAULT_LEVEL", "compress_file", "decompress_file"]
