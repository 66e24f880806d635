"""Per-chunk compression codecs."""

from __future__ import annotations

import gzip
import zlib
from typing import Callable, Dict

from updatekit.errors import CompressionError
from updatekit.models import CompressionFormat

LEVEL = 9
RAW_DEFLATE_WBITS = -15


def _gzip(data: bytes) -> bytes:
    # fixed mtime keeps output reproducible
    return gzip.compress(data, compresslevel=LEVEL, mtime=0)


def _deflate(data: bytes) -> bytes:
    compressor = zlib.compressobj(LEVEL, zlib.DEFLATED, RAW_DEFLATE_WBITS)
    return compressor.compress(data) + compressor.flush()


def _inflate(data: bytes) -> bytes:
    decompressor = zlib.decompressobj(RAW_DEFLATE_WBITS)
    return decompressor.decompress(data) + decompressor.flush()


_COMPRESSORS: Dict[CompressionFormat, Callable[[bytes], bytes]] = {
    CompressionFormat.NONE: bytes,
    CompressionFormat.GZIP: _gzip,
    CompressionFormat.DEFLATE: _deflate,
}

_DECOMPRESSORS: Dict[CompressionFormat, Callable[[bytes], bytes]] = {
    CompressionFormat.NONE: bytes,
    CompressionFormat.GZIP: gzip.decompress,
    CompressionFormat.DEFLATE: _inflate,
}


def _resolve(fmt: CompressionFormat | str) -> CompressionFormat:
    if isinstance(fmt, CompressionFormat):
        return fmt
    return CompressionFormat.parse(fmt)


def get_compressor(fmt: CompressionFormat | str) -> Callable[[bytes], bytes]:
    """Return the compression function for ``fmt``.

    Raises CompressionError for formats without a codec.
    """
    fmt = _resolve(fmt)
    try:
        codec = _COMPRESSORS[fmt]
    except KeyError:
        raise CompressionError(f"unsupported compression format {fmt.value}") from None

    def run(data: bytes) -> bytes:
        try:
            return codec(data)
        except zlib.error as exc:
            raise CompressionError(f"{fmt.value} compression failed: {exc}") from exc

    return run


def compress(data: bytes, fmt: CompressionFormat | str) -> bytes:
    return get_compressor(fmt)(data)


def decompress(data: bytes, fmt: CompressionFormat | str) -> bytes:
    fmt = _resolve(fmt)
    try:
        codec = _DECOMPRESSORS[fmt]
    except KeyError:
        raise CompressionError(f"unsupported compression format {fmt.value}") from None
    try:
        return codec(data)
    except (zlib.error, gzip.BadGzipFile, EOFError) as exc:
        raise CompressionError(f"{fmt.value} decompression failed: {exc}") from exc
