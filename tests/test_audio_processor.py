from unittest.mock import Mock

import pytest

import scribebot.audio_processor as ap
from scribebot.errors import TranscodingError


def test_mime_type_by_extension():
    assert ap.mime_type_for("clip.mp3") == "audio/mpeg"
    assert ap.mime_type_for("clip.wav") == "audio/wav"
    assert ap.mime_type_for("clip.flac") == "audio/flac"
    assert ap.mime_type_for("Meeting.M4A") == "audio/mp4"
    assert ap.mime_type_for("clip.xyz") is None
    assert ap.mime_type_for("clip") is None


def test_needs_compression_is_strictly_greater():
    assert not ap.needs_compression(100, 100)
    assert ap.needs_compression(101, 100)


def test_compress_audio(monkeypatch):
    segment = Mock()
    segment.export.side_effect = lambda out, format=None, bitrate=None: out.write(b"small")
    fake = Mock()
    fake.from_file.return_value = segment
    monkeypatch.setattr(ap, "AudioSegment", fake)

    data, mime = ap.compress_audio(b"big" * 10, "talk.m4a", bitrate="32k")

    assert (data, mime) == (b"small", "audio/mpeg")
    assert fake.from_file.call_args.kwargs["format"] == "mp4"
    assert segment.export.call_args.kwargs == {"format": "mp3", "bitrate": "32k"}


def test_compress_failure_raises(monkeypatch):
    fake = Mock()
    fake.from_file.side_effect = OSError("ffmpeg not found")
    monkeypatch.setattr(ap, "AudioSegment", fake)
    with pytest.raises(TranscodingError, match="ffmpeg not found"):
        ap.compress_audio(b"data", "clip.wav")
