"""Pydantic models for request and response bodies."""

from typing import Any, Optional

from pydantic import BaseModel, model_validator
from pydantic_core import PydanticCustomError


def _clean(value: Any) -> Optional[str]:
    """Strip a text field; anything that is not a string counts as missing."""
    if not isinstance(value, str):
        return None
    value = value.strip()
    return value or None


class RegistrationSubmission(BaseModel):
    """A validated registration, ready to be stored."""
    name: str
    email: str
    is_speaker: bool = False
    topic: Optional[str] = None
    profile_pic: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def check_form(cls, data: Any) -> Any:
        """
        Normalise the raw form body before field validation.

        Name and email are checked before anything speaker specific, so a
        speaker with a missing email gets the generic message. Topic and
        picture are dropped for attendees.
        """
        if not isinstance(data, dict):
            raise PydanticCustomError("body_type", "Request body must be a JSON object")

        name = _clean(data.get("name"))
        email = _clean(data.get("email"))
        if not name or not email:
            raise PydanticCustomError("required", "Name and email are required")

        is_speaker = bool(data.get("is_speaker"))
        if not is_speaker:
            return {"name": name, "email": email, "is_speaker": False}

        topic = _clean(data.get("topic"))
        if not topic:
            raise PydanticCustomError("topic_required", "Topic is required for speakers")

        return {
            "name": name,
            "email": email,
            "is_speaker": True,
            "topic": topic,
            "profile_pic": _clean(data.get("profile_pic")),
        }


class SubmitResponse(BaseModel):
    """Response model for a successful submission."""
    success: bool = True


class HealthResponse(BaseModel):
    status: str
    database: str
    open_streams: int
