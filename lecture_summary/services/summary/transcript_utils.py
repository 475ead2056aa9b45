import logging
from typing import Optional

import httpx

from lecture_summary.utils.errors import (
    TranscriptFetchError,
    TranscriptFormatError,
    ValidationError,
)


def join_segments(segments) -> str:
    """
    Concatenates the `text` field of each segment, in order, separated by newlines.
    """
    if not isinstance(segments, list):
        raise TranscriptFormatError(
            f"Transcription JSON must be an array, got {type(segments).__name__}"
        )
    if not segments:
        raise TranscriptFormatError("Transcription JSON array is empty")

    lines = []
    for index, segment in enumerate(segments):
        if not isinstance(segment, dict) or not isinstance(segment.get("text"), str):
            raise TranscriptFormatError(
                f"Transcription segment {index} has no 'text' field"
            )
        lines.append(segment["text"])
    return "\n".join(lines)


class TranscriptResolver:
    """Turns an inline transcription or a transcription JSON URL into plain text."""

    def __init__(self, http_client: httpx.AsyncClient):
        self._http_client = http_client

    async def fetch_json_transcription(self, json_url: str) -> str:
        """
        Fetches a JSON array of timed segments and joins their text fields.

        Raises:
            TranscriptFetchError: If the URL is unreachable or answers non-2xx.
            TranscriptFormatError: If the body is not a non-empty array of segments.
        """
        try:
            response = await self._http_client.get(json_url)
        except httpx.HTTPError as e:
            raise TranscriptFetchError(
                f"Failed to fetch transcription JSON from {json_url}: {e}"
            ) from e

        if not response.is_success:
            raise TranscriptFetchError(
                f"Failed to fetch transcription JSON: {response.status_code} {response.reason_phrase}",
                status_code=response.status_code,
            )

        try:
            data = response.json()
        except ValueError as e:
            raise TranscriptFormatError(
                f"Transcription at {json_url} is not valid JSON"
            ) from e

        return join_segments(data)

    async def resolve(
        self,
        transcription: Optional[str] = None,
        transcription_json_url: Optional[str] = None,
    ) -> str:
        """Returns inline text unchanged, otherwise fetches it from the JSON URL."""
        if transcription:
            return transcription
        if not transcription_json_url:
            raise ValidationError(
                "Missing transcription or transcriptionJsonUrl"
            )

        logging.info(f"Fetching transcription JSON from {transcription_json_url}")
        return await self.fetch_json_transcription(transcription_json_url)
