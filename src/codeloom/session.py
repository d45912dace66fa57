from pydantic import BaseModel, Field

from codeloom.message import ChatMessage


class Session(BaseModel):
    project_id: str
    transcript: list[ChatMessage] = Field(default_factory=list)
