"""
Orchestration layer for uploaded recordings.

:class:`TranscriptionPipeline` is called from the HTTP entrypoint in
:mod:`scribebot.main`.  For each upload it:

1. Takes a slot from the admission controller, or fails fast.
2. Validates the upload (non-empty, supported extension).
3. Compresses oversized audio.
4. Asks the generative model for a transcript and stores it.
5. Asks for a summary of that transcript and stores it.
6. Sends the summary to the chat, split into fragments that fit the
   transport limit.
7. Gives the slot back, whatever happened above.

The first failing step raises and nothing after it runs.  Writes that
already happened stay in place: if summarisation fails, the transcript is
still available through ``/transcription``.

Simpler modes run a subset of these steps in the same order:

* ``transcript`` – transcribe and send the transcript; no summary call.
* ``summary`` – one call that summarises the audio directly; no transcript
  is kept.
* ``combined`` – one call that returns transcript and summary together,
  split apart with :func:`~scribebot.transcript_parser.split_transcript_and_summary`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Optional, Tuple

from . import prompts
from .admission import AdmissionController
from .audio_processor import SUPPORTED_EXTENSIONS, compress_audio, mime_type_for, needs_compression
from .chat import deliver
from .chunker import MAX_MESSAGE_LENGTH
from .errors import ValidationError
from .inference import Attachment
from .state import ConversationState
from .transcript_parser import split_transcript_and_summary

logger = logging.getLogger(__name__)

COMPRESSION_THRESHOLD_BYTES = 10 * 1024 * 1024

SUCCESS_MESSAGE = "Transcription processed and sent to chat."


@dataclass(frozen=True)
class UploadRequest:
    data: bytes
    filename: str


def summary_message(summary: str) -> str:
    return f"Summary:\n\n{summary}\n\nSend /transcription to get the full transcript."


def _unsupported_message() -> str:
    exts = list(SUPPORTED_EXTENSIONS)
    listed = ", ".join(exts[:-1]) + f", or {exts[-1]}"
    return f"Unsupported audio file type. Please use {listed}."


class TranscriptionPipeline:
    def __init__(
        self,
        state: ConversationState,
        inference,
        chat,
        chat_id: str,
        *,
        admission: Optional[AdmissionController] = None,
        mode: str = "full",
        compression_threshold: int = COMPRESSION_THRESHOLD_BYTES,
        compression_bitrate: str = "64k",
        max_message_length: int = MAX_MESSAGE_LENGTH,
        compressor: Callable[..., Tuple[bytes, str]] = compress_audio,
    ):
        self._state = state
        self._inference = inference
        self._chat = chat
        self._chat_id = chat_id
        self.admission = admission or AdmissionController()
        self._compression_threshold = compression_threshold
        self._compression_bitrate = compression_bitrate
        self._max_message_length = max_message_length
        self._compressor = compressor
        self._steps = {
            "full": self._transcribe_and_summarise,
            "transcript": self._transcribe_only,
            "summary": self._summarise_only,
            "combined": self._transcribe_combined,
        }
        if mode not in self._steps:
            raise ValueError(f"Unknown pipeline mode: {mode}")
        self.mode = mode

    def process(self, upload: Optional[UploadRequest]) -> str:
        """Run one upload through the pipeline.

        Args:
            upload: The uploaded file, or ``None`` if the request carried none.

        Returns:
            A short success message for the HTTP caller.

        Raises:
            AdmissionRejectedError: Too many uploads already in flight.
            ValidationError: Missing, empty or unsupported upload.
            TranscodingError: Compression of an oversized upload failed.
            InferenceError: A model call failed (see its subclasses).
            DeliveryError: The chat transport failed.
        """
        with self.admission.slot():
            attachment = self._prepare(upload)
            message = self._steps[self.mode](attachment)
            sent = deliver(self._chat, self._chat_id, message, self._max_message_length)
            logger.info("Delivered result for %s in %d message(s)", upload.filename, sent)
        return SUCCESS_MESSAGE

    def _prepare(self, upload: Optional[UploadRequest]) -> Attachment:
        if upload is None or not upload.data:
            raise ValidationError("No audio file uploaded.")
        mime_type = mime_type_for(upload.filename)
        if mime_type is None:
            logger.info("Unsupported audio extension for %s", upload.filename)
            raise ValidationError(_unsupported_message())
        data = upload.data
        if needs_compression(len(data), self._compression_threshold):
            data, mime_type = self._compressor(data, upload.filename, bitrate=self._compression_bitrate)
        logger.info("Processing audio upload %s (%s, %d bytes)", upload.filename, mime_type, len(data))
        return Attachment(mime_type=mime_type, data=data)

    def _transcribe(self, attachment: Attachment) -> str:
        transcript = self._inference.generate(prompts.TRANSCRIBE_PROMPT, attachment)
        self._state.set_transcript(transcript)
        logger.info("Stored transcript (%d chars)", len(transcript))
        return transcript

    def _transcribe_and_summarise(self, attachment: Attachment) -> str:
        transcript = self._transcribe(attachment)
        summary = self._inference.generate(prompts.SUMMARISE_PROMPT.format(transcript=transcript))
        self._state.set_summary(summary)
        logger.info("Stored summary (%d chars)", len(summary))
        return summary_message(summary)

    def _transcribe_only(self, attachment: Attachment) -> str:
        transcript = self._transcribe(attachment)
        return f"Transcription:\n\n{transcript}"

    def _summarise_only(self, attachment: Attachment) -> str:
        summary = self._inference.generate(prompts.SUMMARISE_AUDIO_PROMPT, attachment)
        self._state.set_summary(summary)
        logger.info("Stored summary (%d chars)", len(summary))
        return f"Summary:\n\n{summary}"

    def _transcribe_combined(self, attachment: Attachment) -> str:
        text = self._inference.generate(prompts.COMBINED_PROMPT, attachment)
        transcript, summary = split_transcript_and_summary(text)
        self._state.record_result(transcript or None, summary)
        logger.info("Stored combined result (%d transcript chars)", len(transcript))
        if not transcript:
            return f"Summary:\n\n{summary}"
        return summary_message(summary)
