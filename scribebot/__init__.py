"""
Audio transcription relay.

Uploaded recordings are transcribed and summarised by a generative model and
the result is posted to a single Telegram chat.  Follow-up chat messages can
amend the summary or ask questions about the transcript.
"""
