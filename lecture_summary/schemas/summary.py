from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


class SummaryRequest(BaseModel):
    """
    Body of POST /lectures/{lecture_id}/summary.
    Both fields are optional at the schema level; the router requires one of them.
    """

    model_config = ConfigDict(populate_by_name=True)

    transcription: Optional[str] = Field(
        None, description="The full lecture transcription as plain text."
    )
    transcription_json_url: Optional[str] = Field(
        None,
        alias="transcriptionJsonUrl",
        description="URL of a JSON array of timed segments, each with a 'text' field.",
    )


class SummaryResponse(BaseModel):
    summary: str


class TranscriptionCompletedEvent(BaseModel):
    """
    Represents the data expected in a NATS message on the transcriptions subject.
    """

    lecture_id: str
    transcription_json_url: str


class SummaryJob(BaseModel):
    """
    A single unit of work for the job queue.
    """

    lecture_id: str
    transcription: Optional[str] = None
    transcription_json_url: Optional[str] = None
    trigger: Literal["http", "nats"] = "http"
