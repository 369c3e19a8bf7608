"""
Split a combined "transcript then summary" model reply into its two parts.

Used by the ``combined`` pipeline mode, where a single request asks for both
the transcription and a summary.  The model is asked to start the summary
with ``Summary:`` but in practice uses a handful of headings; the first line
that starts with any of them marks the boundary.
"""

from typing import List, Tuple

SUMMARY_KEYWORDS = (
    "Summary:",
    "SUMMARY:",
    "Key Points:",
    "KEY POINTS:",
    "## Summary",
    "## Key Points",
)

SUMMARY_NOT_FOUND = "Summary not explicitly found in the output."


def split_transcript_and_summary(text: str) -> Tuple[str, str]:
    """Return ``(transcript, summary)`` parsed from ``text``.

    Text on the keyword line after the keyword itself becomes the first line
    of the summary.  If no keyword is present the whole reply is treated as
    the transcript and the summary is :data:`SUMMARY_NOT_FOUND`.
    """
    transcript_lines: List[str] = []
    summary_lines: List[str] = []
    found = False
    for line in text.split("\n"):
        if found:
            summary_lines.append(line)
            continue
        stripped = line.strip()
        keyword = next((k for k in SUMMARY_KEYWORDS if stripped.startswith(k)), None)
        if keyword is None:
            transcript_lines.append(line)
            continue
        found = True
        rest = stripped[len(keyword):].strip()
        if rest:
            summary_lines.append(rest)

    transcript = "\n".join(transcript_lines).strip()
    if not found:
        return transcript, SUMMARY_NOT_FOUND
    return transcript, "\n".join(summary_lines).strip()
