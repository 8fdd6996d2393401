from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SuggestionRequest(BaseModel):
    """Raw submission; required fields are checked by the intake, not here."""

    model_config = ConfigDict(populate_by_name=True)

    name: str | None = None
    address: str | None = None
    city: str | None = None
    cuisine_type: str | None = Field(default=None, alias="cuisineType")
    halal_status: str | None = Field(default=None, alias="halalStatus")
    phone: str | None = None
    website: str | None = None
    notes: str | None = None
    submitter_email: str | None = Field(default=None, alias="submitterEmail")


class Suggestion(BaseModel):
    name: str
    address: str
    city: str | None = None
    cuisine_type: str | None = None
    halal_status: str | None = None
    phone: str | None = None
    website: str | None = None
    notes: str | None = None
    submitter_email: str | None = None
    status: str = "pending"
    created_at: str


class SuggestionResponse(BaseModel):
    success: bool
    message: str
