"""Prompt templates sent to the generative model."""

TRANSCRIBE_PROMPT = (
    "Transcribe the audio provided. Identify the speakers as 'Person A' and "
    "'Person B' based on their turns.\n\n"
    "Output only the full transcription with speaker identification for each "
    "line. Do not add a summary or any commentary."
)

SUMMARISE_PROMPT = (
    "Summarise the following transcript. Cover the main topics, any decisions "
    "made and any agreed-upon actions or concerns. Keep it concise and reply "
    "with the summary only.\n\n"
    "Transcript:\n{transcript}"
)

SUMMARISE_AUDIO_PROMPT = (
    "Listen to the audio provided and write a concise summary of the "
    "discussion, including main topics, decisions made and any agreed-upon "
    "actions or concerns. Reply with the summary only."
)

COMBINED_PROMPT = (
    "Transcribe the audio provided. Identify the speakers as 'Person A' and "
    "'Person B' based on their turns.\n"
    "After transcribing, summarize the key points and any decisions made in "
    "the discussion.\n\n"
    "Output format:\n"
    "- Full transcription with speaker identification for each line.\n"
    "- A line starting with 'Summary:' followed by a concise summary of the "
    "discussion, including main topics and any agreed-upon actions or concerns."
)

AMEND_PROMPT = (
    "Here is a summary of a conversation:\n\n{summary}\n\n"
    "Rewrite the summary according to this instruction: {instruction}\n\n"
    "Reply with the revised summary only."
)

REGENERATE_PROMPT = (
    "Condense the following summary into a clear, concise final version "
    "without losing any decisions or action items. Reply with the summary "
    "only.\n\n{summary}"
)

ASK_PROMPT = (
    "Answer the question using the conversation below.\n\n"
    "Transcript:\n{transcript}\n\n"
    "Summary:\n{summary}\n\n"
    "Question: {question}"
)
