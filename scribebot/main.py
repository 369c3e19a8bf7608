"""
HTTP entrypoint and process startup.

Routes:

* ``POST /transcribe`` – multipart upload (field ``audio``) that runs the
  transcription pipeline and relays the result to the chat.
* ``GET /summary`` – the current summary.
* ``GET /`` – liveness.

:func:`main` loads configuration from the environment, starts the chat
receive loop on a background thread and serves the Flask app.
"""

from __future__ import annotations

import json
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from flask import Flask, jsonify, request

from .admission import AdmissionController
from .chat import TelegramChat
from .commands import CommandDispatcher
from .config import Settings, load_settings
from .errors import (
    AdmissionRejectedError,
    ConfigError,
    InferenceEmptyResultError,
    InferenceOverloadedError,
    ScribebotError,
    ValidationError,
)
from .inference import InferenceClient
from .state import ConversationState
from .tasks import TranscriptionPipeline, UploadRequest

logging.basicConfig(level=logging.INFO, format="%(message)s")
logger = logging.getLogger(__name__)


@dataclass
class Services:
    settings: Settings
    state: ConversationState
    chat: TelegramChat
    pipeline: TranscriptionPipeline
    dispatcher: CommandDispatcher


def _status_for(exc: ScribebotError) -> int:
    if isinstance(exc, ValidationError):
        return 400
    if isinstance(exc, AdmissionRejectedError):
        return 429
    if isinstance(exc, InferenceOverloadedError):
        return 503
    return 500


def create_app(
    settings: Settings,
    *,
    state: Optional[ConversationState] = None,
    inference=None,
    chat=None,
    admission: Optional[AdmissionController] = None,
    compressor=None,
) -> Flask:
    """Build the Flask app and wire the pipeline and dispatcher to one state."""
    state = state or ConversationState()
    inference = inference or InferenceClient(
        settings.gemini_api_key,
        model=settings.gemini_model,
        api_url=settings.gemini_api_url,
        timeout=settings.inference_timeout,
    )
    chat = chat or TelegramChat(
        settings.telegram_bot_token,
        api_url=settings.telegram_api_url,
        poll_timeout=settings.telegram_poll_timeout,
    )
    pipeline_kwargs = {}
    if compressor is not None:
        pipeline_kwargs["compressor"] = compressor
    pipeline = TranscriptionPipeline(
        state,
        inference,
        chat,
        settings.telegram_chat_id,
        admission=admission or AdmissionController(settings.max_concurrent),
        mode=settings.pipeline_mode,
        compression_threshold=settings.compression_threshold_bytes,
        compression_bitrate=settings.compression_bitrate,
        max_message_length=settings.message_max_length,
        **pipeline_kwargs,
    )
    dispatcher = CommandDispatcher(
        state,
        inference,
        chat,
        settings.telegram_chat_id,
        regenerate=settings.enable_summary_regeneration,
        max_message_length=settings.message_max_length,
    )

    app = Flask(__name__)
    app.extensions["scribebot"] = Services(settings, state, chat, pipeline, dispatcher)

    @app.errorhandler(ScribebotError)
    def handle_error(exc: ScribebotError):
        status = _status_for(exc)
        body = {"error": str(exc)}
        if isinstance(exc, InferenceEmptyResultError):
            body["raw"] = exc.raw
        logger.warning(
            json.dumps({"event": "request_failed", "status": status, "type": type(exc).__name__, "error": str(exc)})
        )
        return jsonify(body), status

    @app.route("/", methods=["GET"])
    def index():
        return "Audio transcription relay is running.", 200

    @app.route("/summary", methods=["GET"])
    def get_summary():
        summary = state.summary
        if summary is None:
            return jsonify({"error": "No summary available yet."}), 404
        return jsonify({"summary": summary}), 200

    @app.route("/transcribe", methods=["POST"])
    def transcribe():
        file = request.files.get("audio") or next(iter(request.files.values()), None)
        upload = None
        if file is not None:
            upload = UploadRequest(data=file.read(), filename=file.filename or "")
        logger.info(
            json.dumps(
                {
                    "event": "request",
                    "file": upload.filename if upload else None,
                    "bytes": len(upload.data) if upload else 0,
                }
            )
        )
        message = pipeline.process(upload)
        logger.info(json.dumps({"event": "transcription_complete", "file": upload.filename}))
        return jsonify({"message": message}), 200

    return app


def start_chat_loop(app: Flask, stop_event: Optional[threading.Event] = None) -> threading.Thread:
    """Run the chat receive loop on a daemon thread."""
    services: Services = app.extensions["scribebot"]
    thread = threading.Thread(
        target=services.chat.poll,
        args=(services.dispatcher.handle, stop_event),
        name="chat-loop",
        daemon=True,
    )
    thread.start()
    return thread


def main() -> None:
    try:
        settings = load_settings()
    except ConfigError as exc:
        logger.error(json.dumps({"event": "config_error", "error": str(exc)}))
        raise SystemExit(1) from exc
    logging.getLogger().setLevel(settings.log_level)
    app = create_app(settings)
    start_chat_loop(app)
    logger.info(json.dumps({"event": "startup", "port": settings.port, "mode": settings.pipeline_mode}))
    app.run(host="0.0.0.0", port=settings.port, threaded=True)


if __name__ == "__main__":
    main()
