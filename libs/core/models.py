from __future__ import annotations

from typing import List

from pydantic import BaseModel, ConfigDict, Field

MIN_TEXT_LENGTH = 200
DEFAULT_LANGUAGE = "en"


class ReviewRequest(BaseModel):
    text: str = Field(min_length=MIN_TEXT_LENGTH)
    job: str = ""
    language: str = DEFAULT_LANGUAGE


class ReviewSection(BaseModel):
    key: str
    score: float
    feedback: str


class ReviewResult(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    overall_score: float = Field(alias="overallScore")
    sections: List[ReviewSection] = Field(default_factory=list)
    bullets_rewrite: List[str] = Field(default_factory=list, alias="bulletsRewrite")
    checklist: List[str] = Field(default_factory=list)

    def to_payload(self) -> dict:
        return self.model_dump(by_alias=True)


class ErrorResponse(BaseModel):
    error: str
