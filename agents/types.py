"""Shared type definitions for interview sessions."""
from typing import Any, Dict, List, Literal, Optional

from pydantic import BaseModel, Field

from config.deployment import DimensionSpec as Dimension

Speaker = Literal["interviewer", "candidate"]
Lifecycle = Literal["idle", "in_progress", "complete"]


class Turn(BaseModel):
    speaker: Speaker
    text: str
    turn_index: int = Field(ge=0)
    dimension_id: Optional[int] = None  # interviewer turns only; none on opening and closing


class EvaluationResult(BaseModel):
    dimension_id: int
    score: float
    comment: str = ""


class FeedbackRecord(BaseModel):
    turn_index: int  # candidate turn this feedback belongs to
    payload: Dict[str, Any]
    evaluation: Optional[EvaluationResult] = None


class SessionState(BaseModel):
    session_id: str
    lifecycle: Lifecycle = "idle"
    turns: List[Turn] = Field(default_factory=list)
    consumed: List[int] = Field(default_factory=list)
    feedback: List[FeedbackRecord] = Field(default_factory=list)

    def candidate_turns(self) -> List[Turn]:
        return [turn for turn in self.turns if turn.speaker == "candidate"]

    def last_interviewer_turn(self) -> Optional[Turn]:
        for turn in reversed(self.turns):
            if turn.speaker == "interviewer":
                return turn
        return None

    def pending_answer(self) -> Optional[Turn]:
        """Candidate turn left without feedback by a failed cycle."""

        if self.turns and self.turns[-1].speaker == "candidate":
            if len(self.feedback) < len(self.candidate_turns()):
                return self.turns[-1]
        return None

    def follow_up_count(self) -> int:
        return sum(1 for turn in self.turns if turn.speaker == "interviewer" and turn.dimension_id is not None)

    def evaluations(self) -> List[EvaluationResult]:
        return [record.evaluation for record in self.feedback if record.evaluation is not None]


class QAPair(BaseModel):
    id: int  # 1-based question number
    question: str
    answer: str
    dimension_id: Optional[int] = None


__all__ = [
    "Dimension",
    "Speaker",
    "Lifecycle",
    "Turn",
    "EvaluationResult",
    "FeedbackRecord",
    "SessionState",
    "QAPair",
]
