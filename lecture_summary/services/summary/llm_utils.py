import logging
from typing import Optional

import openai
from openai import AsyncOpenAI

from lecture_summary.utils.errors import SummarizerApiError, SummarizerFormatError
from lecture_summary.utils.llm_utils import extract_text_from_response

SUMMARIZATION_PROMPT = (
    "You are a helpful assistant that creates a description for lectures in "
    "arbitrary languages. The output language should match the input. The "
    "description should be concise, with only a few sentences."
)


def build_messages(transcription: str) -> list[dict]:
    """Builds the two-message chat request for a transcript."""
    return [
        {"role": "system", "content": SUMMARIZATION_PROMPT},
        {"role": "user", "content": transcription},
    ]


def mock_generate_summary(transcription: str) -> str:
    """
    Returns a mock summary containing the prompt that would have been sent
    to the AI model.
    """
    logging.info("Generating MOCK summary for a lecture.")
    preview = transcription[:200]
    return (
        "MOCK SUMMARY. "
        f"System prompt: {SUMMARIZATION_PROMPT} "
        f"Transcription preview: {preview}"
    )


class SummarizerClient:
    """Generates lecture descriptions through an OpenAI-compatible chat endpoint."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI],
        model: str,
        posthog_enabled: bool = False,
        mock: bool = False,
    ):
        self._client = client
        self._model = model
        self._posthog_enabled = posthog_enabled
        self._mock = mock

    async def summarize(
        self, transcription: str, lecture_id: Optional[str] = None
    ) -> str:
        """
        Generates a concise summary of a lecture transcription.

        Args:
            transcription: The full transcript, sent in a single request.
            lecture_id: Used only as the analytics trace id.

        Returns:
            The summary text of the first choice, stripped.

        Raises:
            SummarizerApiError: If the endpoint answers non-2xx or is unreachable.
            SummarizerFormatError: If the response carries no summary text.
        """
        if self._mock:
            return mock_generate_summary(transcription)

        kwargs = {}
        if self._posthog_enabled:
            kwargs.update(
                posthog_distinct_id=lecture_id or "anonymous",
                posthog_trace_id=lecture_id,
                posthog_properties={
                    "$ai_span_name": "lecture_summary",
                    "lecture_id": lecture_id,
                },
            )

        try:
            response = await self._client.chat.completions.create(
                model=self._model,
                messages=build_messages(transcription),
                **kwargs,
            )
        except openai.APIStatusError as e:
            reason = e.response.reason_phrase
            logging.error(f"Hugging Face API error: {e.status_code} {reason}")
            raise SummarizerApiError(
                f"Hugging Face API error: {e.status_code} {reason}",
                status_code=e.status_code,
                reason=reason,
            ) from e
        except openai.APIResponseValidationError as e:
            raise SummarizerFormatError(
                f"Unexpected chat-completions response: {e}"
            ) from e
        except openai.APIConnectionError as e:
            logging.error(f"Hugging Face API unreachable: {e}")
            raise SummarizerApiError(f"Hugging Face API unreachable: {e}") from e

        summary = extract_text_from_response(response).strip()
        if not summary:
            raise SummarizerFormatError(
                "Chat-completions response has no summary in its first choice"
            )
        return summary
