"""
Audio helpers: extension allow-list and size reduction.

Uploads are recognised by file extension alone; the bytes are not sniffed.
Recordings above the compression threshold are re-encoded to a low-bitrate
MP3 with `pydub` (which relies on `ffmpeg`) so that they fit comfortably in
an inline request to the generative model.  Everything happens in memory.
"""

import io
import logging
from pathlib import Path
from typing import Optional, Tuple

from pydub import AudioSegment

from .errors import TranscodingError

logger = logging.getLogger(__name__)


SUPPORTED_EXTENSIONS = {
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".flac": "audio/flac",
    ".m4a": "audio/mp4",
}

# ffmpeg demuxer names where they differ from the extension.
_FFMPEG_FORMATS = {".m4a": "mp4"}

COMPRESSED_MIME_TYPE = "audio/mpeg"


def mime_type_for(filename: str) -> Optional[str]:
    """Return the MIME type for ``filename`` or ``None`` if unsupported."""
    return SUPPORTED_EXTENSIONS.get(Path(filename).suffix.lower())


def needs_compression(size: int, threshold: int) -> bool:
    return size > threshold


def compress_audio(data: bytes, filename: str, *, bitrate: str = "64k") -> Tuple[bytes, str]:
    """Re-encode audio to a lower-bitrate MP3.

    Args:
        data: Raw bytes of the uploaded file.
        filename: Original file name; its extension tells ffmpeg how to
            decode the input.
        bitrate: Target bitrate passed to ffmpeg, e.g. ``"64k"``.

    Returns:
        A ``(bytes, mime_type)`` tuple for the compressed audio.

    Raises:
        TranscodingError: If decoding or encoding fails for any reason.
    """
    ext = Path(filename).suffix.lower()
    input_format = _FFMPEG_FORMATS.get(ext, ext.lstrip("."))
    logger.info("Compressing %s (%d bytes) to %s MP3", filename, len(data), bitrate)
    try:
        audio = AudioSegment.from_file(io.BytesIO(data), format=input_format)
        out = io.BytesIO()
        audio.export(out, format="mp3", bitrate=bitrate)
    except Exception as exc:
        raise TranscodingError(f"Could not compress {filename}: {exc}") from exc
    compressed = out.getvalue()
    if not compressed:
        raise TranscodingError(f"Compressing {filename} produced no output")
    logger.info("Compressed %s from %d to %d bytes", filename, len(data), len(compressed))
    return compressed, COMPRESSED_MIME_TYPE
