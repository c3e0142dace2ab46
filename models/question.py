"""
Question and Answer related data models for the Medical Document Explainer
"""
import itertools
import time
from typing import Optional
from urllib.parse import urlparse
from pydantic import BaseModel, Field, ConfigDict

_id_sequence = itertools.count()


def make_pair_id(prefix: str) -> str:
    """Build a transcript id of the form ``<prefix>-<ms timestamp>-<sequence>``"""
    return f"{prefix}-{int(time.time() * 1000)}-{next(_id_sequence)}"


class Source(BaseModel):
    """A web page the AI referenced when it used search to answer a question"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "uri": "https://www.heart.org/en/health-topics/high-blood-pressure",
                "title": "High Blood Pressure | American Heart Association"
            }
        }
    )

    uri: str = Field(..., description="Address of the cited page")
    title: str = Field("", description="Title of the cited page (may be empty)")

    @property
    def display_title(self) -> str:
        """Title when present, otherwise the hostname of the URI"""
        if self.title and self.title.strip():
            return self.title
        try:
            hostname = urlparse(self.uri).hostname
        except ValueError:
            hostname = None
        return hostname or self.uri


class QAPair(BaseModel):
    """One entry of the question/answer transcript"""
    model_config = ConfigDict(
        frozen=True,
        json_schema_extra={
            "example": {
                "id": "bot-1718000000000-3",
                "question": "What does hypertension mean?",
                "answer": "Hypertension means your blood pressure is higher than normal.",
                "sources": [
                    {
                        "uri": "https://www.heart.org/en/health-topics/high-blood-pressure",
                        "title": "High Blood Pressure"
                    }
                ],
                "is_bot": True
            }
        }
    )

    id: str = Field(..., description="Unique transcript entry identifier")
    question: str = Field(..., description="The question this entry belongs to")
    answer: str = Field("", description="Answer text (empty for user entries)")
    sources: Optional[list[Source]] = Field(None, description="Web citations for the answer")
    is_bot: bool = Field(..., description="True for AI answers, False for user questions")

    @classmethod
    def user(cls, question: str) -> "QAPair":
        return cls(id=make_pair_id("user"), question=question, answer="", is_bot=False)

    @classmethod
    def bot(cls, question: str, answer: str, sources: Optional[list[Source]] = None) -> "QAPair":
        return cls(id=make_pair_id("bot"), question=question, answer=answer, sources=sources, is_bot=True)

    @classmethod
    def error(cls, question: str, message: str) -> "QAPair":
        return cls(id=make_pair_id("error"), question=question, answer=f"Error: {message}", is_bot=True)
