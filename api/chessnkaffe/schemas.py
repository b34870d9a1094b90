from typing import Any

from pydantic import BaseModel, Field


class LoginRequest(BaseModel):
    email: str
    password: str


class PreferencesRequest(BaseModel):
    areas: list[str] = Field(default_factory=list)
    dates: list[str] = Field(default_factory=list)
    start_time: str | None = None
    end_time: str | None = None


class ProfileUpdateRequest(BaseModel):
    alias: str | None = None
    pronoun: str | None = None
    queer: bool | None = None
    chess_experience: dict[str, Any] = Field(default_factory=dict)


class ProposalRequest(BaseModel):
    receiver_id: str
    cafe_address: str = ""
    meeting_time: str = ""
    meeting_end_time: str = ""
    chess_set_provider: str = ""
    comments: str = ""
