from __future__ import annotations  # Session state machine driving the interview cycle

import json
import logging
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Any, Callable, Dict, Iterator, List, Mapping, Optional, Tuple
from uuid import uuid4

from pydantic import BaseModel

from agents.collaborators import FeedbackGenerator, QuestionGenerator, SummaryGenerator, Translator
from agents.errors import AnswerValidationError, ServiceError, SessionBusy, SessionComplete, SessionNotStarted
from agents.feedback_generator import FeedbackGeneratorAgent
from agents.question_generator import QuestionGeneratorAgent
from agents.summary_generator import SummaryGeneratorAgent
from agents.translator import TranslatorAgent
from agents.types import Dimension, EvaluationResult, FeedbackRecord, QAPair, SessionState, Turn
from config import (
    FEEDBACK_KEY,
    QUESTION_KEY,
    SUMMARY_KEY,
    TRANSLATOR_KEY,
    AppConfig,
    InterviewDeployment,
    LlmRoute,
    get_model,
    has_model,
    load_config,
    resolve_route,
    settings,
)
from llm_gateway import HttpClient
from observability import log_event, span
from services.coverage import CoverageScheduler
from services.extraction import ResponseExtractor
from services.scoring import ScoreAggregator, ScoreReport
from services.translation import TranslationOverlay


EXPORT_VERSION = 1


class SessionExport(BaseModel):  # Serializable snapshot handed to external persistence
    version: int = EXPORT_VERSION
    deployment: str
    state: SessionState


class SessionController:
    """Owns one interview session and drives its answer/feedback/question cycle.

    Lifecycle is ``idle -> in_progress -> complete``. ``submit_answer`` cycles
    are serialized by a single-slot guard; a second call while one is running
    fails with ``SessionBusy`` instead of queueing.

    A cycle commits the feedback record and the next interviewer turn together.
    When the feedback or question collaborator fails, the candidate turn stays
    as a pending answer and nothing else is appended. The caller resumes with
    ``retry()`` or by submitting replacement text; feedback already produced for
    identical text is reused rather than generated again.
    """

    def __init__(
        self,
        deployment: InterviewDeployment,
        *,
        question_generator: QuestionGenerator,
        feedback_generator: FeedbackGenerator,
        summary_generator: Optional[SummaryGenerator] = None,
        translator: Optional[Translator] = None,
        scheduler: Optional[CoverageScheduler] = None,
        aggregator: Optional[ScoreAggregator] = None,
        answer_max_chars: Optional[int] = None,
    ) -> None:
        self._deployment = deployment
        self._question_generator = question_generator
        self._feedback_generator = feedback_generator
        self._summary_generator = summary_generator
        self._overlay = TranslationOverlay(translator) if translator is not None else None
        self._scheduler = scheduler or CoverageScheduler(deployment.dimensions)
        self._aggregator = aggregator or ScoreAggregator(deployment.weights, max_score=deployment.max_score)
        self._feedback_extractor = ResponseExtractor(deployment.feedback, mode=deployment.feedback_mode, name="feedback")
        self._question_extractor = ResponseExtractor(deployment.question, mode=deployment.question_mode, name="question")
        self._summary_extractor = ResponseExtractor(deployment.summary, mode=deployment.summary_mode, name="summary")
        self._answer_max_chars = answer_max_chars or settings.ANSWER_MAX_CHARS
        self._state = SessionState(session_id=uuid4().hex)
        self._slot = threading.Lock()
        self._cached_feedback: Optional[Tuple[str, FeedbackRecord]] = None

    @property
    def deployment(self) -> InterviewDeployment:
        return self._deployment

    @property
    def scheduler(self) -> CoverageScheduler:
        return self._scheduler

    @property
    def aggregator(self) -> ScoreAggregator:
        return self._aggregator

    # -- lifecycle -----------------------------------------------------------

    def start(self) -> SessionState:
        """Discard any previous session and seed a new one with the opening question."""

        with self._cycle():
            self._state = SessionState(
                session_id=uuid4().hex,
                lifecycle="in_progress",
                turns=[Turn(speaker="interviewer", text=self._deployment.opening_question, turn_index=0)],
            )
            self._cached_feedback = None
            log_event("session_started", self._state.session_id, lifecycle="in_progress", deployment=self._deployment.name)
            return self.current_state()

    def submit_answer(self, text: str) -> SessionState:
        with self._cycle():
            self._ensure_accepting()
            answer = self._validate_answer(text)
            candidate = self._place_answer(answer)
            log_event("answer_received", self._state.session_id, turn_index=candidate.turn_index, chars=len(answer))
            try:
                self._advance(candidate)
            except Exception as exc:
                log_event(
                    "cycle_failed",
                    self._state.session_id,
                    level=logging.WARNING,
                    turn_index=candidate.turn_index,
                    error=type(exc).__name__,
                    outcome="resumable",
                )
                raise
            return self.current_state()

    def retry(self) -> SessionState:
        """Re-run the failed cycle for the pending answer."""

        pending = self._state.pending_answer()
        if pending is None:
            self._ensure_accepting()
            raise AnswerValidationError("no pending answer to retry")
        return self.submit_answer(pending.text)

    def current_state(self) -> SessionState:
        return self._state.model_copy(deep=True)

    def is_complete(self) -> bool:
        return self._state.lifecycle == "complete"

    def export_session(self) -> Dict[str, Any]:
        export = SessionExport(deployment=self._deployment.name, state=self.current_state())
        return export.model_dump(mode="json")

    def restore(self, snapshot: Mapping[str, Any]) -> SessionState:
        """Replace the current session with one produced by ``export_session``."""

        export = SessionExport.model_validate(snapshot)
        if export.version != EXPORT_VERSION:
            raise ValueError(f"unsupported session export version {export.version}")
        if export.deployment != self._deployment.name:
            raise ValueError(f"snapshot belongs to deployment '{export.deployment}', not '{self._deployment.name}'")
        unknown = [dim for dim in export.state.consumed if self._scheduler.get(dim) is None]
        if unknown:
            raise ValueError(f"snapshot references unknown dimensions: {unknown}")
        with self._cycle():
            self._state = export.state.model_copy(deep=True)
            self._cached_feedback = None
            log_event("session_restored", self._state.session_id, lifecycle=self._state.lifecycle)
            return self.current_state()

    # -- read-side views -------------------------------------------------------

    def qa_pairs(self) -> List[QAPair]:
        return [
            QAPair(id=number, question=question.text, answer=answer.text, dimension_id=question.dimension_id)
            for number, question, answer in self._exchanges()
        ]

    def display_view(self) -> Dict[str, Any]:
        """Question/answer/feedback items used as the translation input."""

        by_turn = {record.turn_index: record.payload for record in self._state.feedback}
        items = []
        for number, question, answer in self._exchanges():
            feedback = by_turn.get(answer.turn_index)
            items.append(
                {
                    "id": number,
                    "question": question.text,
                    "answer": answer.text,
                    "feedback": dict(feedback) if feedback is not None else None,
                }
            )
        return {"items": items}

    def translated_view(self, locale: str) -> Mapping[str, Any]:
        view = self.display_view()
        if self._overlay is None:
            return view
        return self._overlay.project(view, locale, session_id=self._state.session_id)

    def report(self) -> ScoreReport:
        return self._aggregator.report(self._state.evaluations(), self._scheduler)

    def summarize(self) -> str:
        """Ask the summary collaborator for a closing assessment; state is not modified."""

        if self._state.lifecycle == "idle":
            raise SessionNotStarted("session has not been started")
        if self._summary_generator is None:
            raise ServiceError("no summary generator configured")
        evaluations = self._state.evaluations()
        aggregate = self._aggregator.aggregate(evaluations) if self._deployment.has_scores else None
        with span(self._state.session_id, "summary_generator"):
            raw = self._summary_generator.generate(self.qa_pairs(), evaluations, aggregate)
        if not isinstance(raw, str):
            raw = json.dumps(raw, ensure_ascii=False, default=str)
        payload = self._summary_extractor.extract(raw)
        log_event("summary_generated", self._state.session_id, aggregate=aggregate)
        return payload[self._deployment.summary_key]

    # -- cycle internals -------------------------------------------------------

    @contextmanager
    def _cycle(self) -> Iterator[None]:
        if not self._slot.acquire(blocking=False):
            raise SessionBusy("a submit cycle is already in progress")
        try:
            yield
        finally:
            self._slot.release()

    def _exchanges(self) -> Iterator[Tuple[int, Turn, Turn]]:  # (question number, question, answer)
        turns = self._state.turns
        number = 0
        for index, turn in enumerate(turns):
            if turn.speaker != "interviewer":
                continue
            number += 1
            if index + 1 < len(turns) and turns[index + 1].speaker == "candidate":
                yield number, turn, turns[index + 1]

    def _ensure_accepting(self) -> None:
        if self._state.lifecycle == "complete":
            raise SessionComplete("session is complete")
        if self._state.lifecycle == "idle":
            raise SessionNotStarted("session has not been started")

    def _validate_answer(self, text: Any) -> str:
        if not isinstance(text, str) or not text.strip():
            log_event("answer_rejected", self._state.session_id, error="empty")
            raise AnswerValidationError("answer must be non-empty text")
        answer = text.strip()
        if len(answer) > self._answer_max_chars:
            log_event("answer_rejected", self._state.session_id, error="too_long")
            raise AnswerValidationError(f"answer exceeds {self._answer_max_chars} characters")
        return answer

    def _place_answer(self, answer: str) -> Turn:  # Append, or replace the pending answer of a failed cycle
        turns = self._state.turns
        pending = self._state.pending_answer()
        if pending is not None:
            if self._cached_feedback is not None and self._cached_feedback[0] != answer:
                self._cached_feedback = None
            turns[-1] = pending.model_copy(update={"text": answer})
            return turns[-1]
        self._cached_feedback = None
        turn = Turn(speaker="candidate", text=answer, turn_index=len(turns))
        turns.append(turn)
        return turn

    def _advance(self, candidate: Turn) -> None:
        state = self._state
        question = state.last_interviewer_turn()
        record = self._feedback_for(question, candidate)
        self._cached_feedback = (candidate.text, record)

        next_dimension = self._scheduler.next_unused(state.consumed)
        if next_dimension is None or state.follow_up_count() >= self._deployment.max_turns:
            next_turn = Turn(
                speaker="interviewer",
                text=self._deployment.closing_message,
                turn_index=candidate.turn_index + 1,
            )
        else:
            next_turn = Turn(
                speaker="interviewer",
                text=self._next_question(next_dimension),
                turn_index=candidate.turn_index + 1,
                dimension_id=next_dimension.id,
            )

        state.feedback.append(record)
        state.turns.append(next_turn)
        if next_turn.dimension_id is not None:
            state.consumed.append(next_turn.dimension_id)
        else:
            state.lifecycle = "complete"
        self._cached_feedback = None

        log_event(
            "feedback_recorded",
            state.session_id,
            turn_index=candidate.turn_index,
            dimension_id=record.evaluation.dimension_id if record.evaluation else None,
            aggregate=self._aggregator.aggregate(state.evaluations()) if self._deployment.has_scores else None,
        )
        if state.lifecycle == "complete":
            log_event("session_completed", state.session_id, lifecycle="complete", turn_index=next_turn.turn_index)
        else:
            log_event("question_asked", state.session_id, turn_index=next_turn.turn_index, dimension_id=next_turn.dimension_id)

    def _feedback_for(self, question: Optional[Turn], candidate: Turn) -> FeedbackRecord:
        cached = self._cached_feedback
        if cached is not None and cached[0] == candidate.text:
            return cached[1]
        if question is None:
            raise SessionNotStarted("no interviewer turn to answer")
        with span(self._state.session_id, "feedback_generator", turn_index=candidate.turn_index):
            raw = self._feedback_generator.generate(question, candidate.text)
        payload = self._feedback_extractor.extract(raw)
        return FeedbackRecord(
            turn_index=candidate.turn_index,
            payload=payload,
            evaluation=self._evaluation_from(question, payload),
        )

    def _evaluation_from(self, question: Turn, payload: Dict[str, Any]) -> Optional[EvaluationResult]:
        score_key = self._deployment.score_key
        if score_key is None or question.dimension_id is None:
            return None
        comment_key = self._deployment.comment_key
        return EvaluationResult(
            dimension_id=question.dimension_id,
            score=payload[score_key],
            comment=str(payload.get(comment_key, "")) if comment_key else "",
        )

    def _next_question(self, dimension: Dimension) -> str:
        with span(self._state.session_id, "question_generator", dimension_id=dimension.id):
            raw = self._question_generator.generate(list(self._state.turns), dimension)
        payload = self._question_extractor.extract(raw)
        return payload[self._deployment.question_key]


def build_controller(cfg: AppConfig, *, client: Optional[HttpClient] = None) -> SessionController:
    """Wire a controller from a deployment descriptor.

    Collaborators bound in the registry win; otherwise the LLM-backed agent is
    built from the route the descriptor assigns. Translator and summary
    generator are optional and left out when neither source provides one.
    """

    deployment = cfg.interview
    question_spec = deployment.question.spec_for(deployment.question_key)
    max_chars = question_spec.max_length if question_spec and question_spec.max_length else 200
    return SessionController(
        deployment,
        question_generator=_resolve(
            QUESTION_KEY,
            cfg,
            lambda route: QuestionGeneratorAgent(
                route, question_key=deployment.question_key, max_chars=max_chars, client=client
            ),
        ),
        feedback_generator=_resolve(
            FEEDBACK_KEY,
            cfg,
            lambda route: FeedbackGeneratorAgent(route, deployment.feedback, client=client),
        ),
        summary_generator=_resolve(
            SUMMARY_KEY,
            cfg,
            lambda route: SummaryGeneratorAgent(route, client=client),
            optional=True,
        ),
        translator=_resolve(
            TRANSLATOR_KEY,
            cfg,
            lambda route: TranslatorAgent(route, client=client),
            optional=True,
        ),
    )


def build_controller_from_path(path: Optional[Path] = None, *, client: Optional[HttpClient] = None) -> SessionController:
    cfg = load_config(Path(path or settings.INTERVIEW_CONFIG_PATH))
    return build_controller(cfg, client=client)


def _resolve(key: str, cfg: AppConfig, factory: Callable[[LlmRoute], Any], *, optional: bool = False) -> Any:
    if has_model(key):
        return get_model(key)
    if optional and key not in cfg.registry:
        return None
    return factory(resolve_route(cfg, key))

__all__ = ["EXPORT_VERSION", "SessionController", "SessionExport", "build_controller", "build_controller_from_path"]
