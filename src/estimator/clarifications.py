"""Clarification questions - generation, answers and persistence.

Questions come from two places: the model's own clarifications_needed and
the generator below, which asks about every project-level parameter the
extraction could not determine. Questions are advisory. Estimates are still
produced with defaults, and reports count the questions left unanswered.
"""
import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Dict, Iterable, List, Optional, Set

from schemas.enums import FINISH_LEVELS, QuestionSource, QuestionType, SpecSource
from schemas.takeoff import ClarificationQuestion, PageExtraction, UserInputs, WallTakeoff
from schemas.units import parse_feet, parse_int

logger = logging.getLogger(__name__)

STORE_FILENAME = "clarifications.json"

QUESTION_TEXT = {
    QuestionType.DECK_HEIGHT: "What is the floor-to-deck height?",
    QuestionType.STUD_GAUGE: "What stud gauge should be used?",
    QuestionType.DRYWALL_TYPE: "What drywall type is required?",
    QuestionType.INSULATION: "Do these walls require cavity insulation, and what type?",
    QuestionType.FINISH_LEVEL: "What drywall finish level (0-5) is required?",
    QuestionType.PAINT_TYPE: "What paint product and sheen should be used?",
}


# ============================================================================
# Generation
# ============================================================================

def _generated(question_type: QuestionType, codes: Set[str], context: str) -> ClarificationQuestion:
    return ClarificationQuestion(
        question_type=question_type,
        text=QUESTION_TEXT[question_type],
        context=context,
        affected_type_codes=codes,
        source=QuestionSource.GENERATED,
    )


def _deck_height_known(pages: List[PageExtraction], takeoff: WallTakeoff) -> bool:
    for page in pages:
        if page.project_parameters.deck_height_ft:
            return True
        if any(d.height_ft for d in page.deck_heights):
            return True
    return any(s.height_ft for s in takeoff.segments)


def generate_clarifications(pages: Iterable[PageExtraction], takeoff: WallTakeoff) -> List[ClarificationQuestion]:
    """
    Questions for project-level parameters the extraction left undetermined.

    One question per parameter, naming the wall type codes it affects.
    Nothing is asked when the takeoff has no wall footage.

    Args:
        pages: Page extractions the takeoff was built from
        takeoff: Aggregated walls

    Returns:
        Generated questions (source="generated")
    """
    pages = list(pages)
    measured = {t.type_code for t in takeoff.totals}
    if not measured:
        return []

    params = [p.project_parameters for p in pages]
    legend_codes = {code for code, spec in takeoff.specs.items() if spec.spec_source == SpecSource.LEGEND}
    undefined = measured - legend_codes

    legend_entries = {}
    for page in sorted(pages, key=lambda p: p.page_number):
        for entry in page.legend:
            legend_entries.setdefault(entry.type_code, entry)

    questions: List[ClarificationQuestion] = []

    if not _deck_height_known(pages, takeoff):
        questions.append(_generated(
            QuestionType.DECK_HEIGHT, set(measured),
            "No deck height found in sections, notes or wall dimensions",
        ))

    if not any(p.stud_gauge for p in params):
        codes = undefined | {c for c, e in legend_entries.items() if e.stud_gauge is None and c in measured}
        if codes:
            questions.append(_generated(QuestionType.STUD_GAUGE, codes, "Stud gauge not stated for these wall types"))

    if not any(p.drywall_type for p in params):
        codes = undefined | {c for c, e in legend_entries.items() if not e.drywall_type and c in measured}
        if codes:
            questions.append(_generated(QuestionType.DRYWALL_TYPE, codes, "Drywall type not stated for these wall types"))

    codes = undefined | {c for c, e in legend_entries.items() if e.has_insulation is None and c in measured}
    if codes:
        questions.append(_generated(QuestionType.INSULATION, codes, "Insulation not indicated for these wall types"))

    if not any(p.finish_level is not None for p in params):
        questions.append(_generated(QuestionType.FINISH_LEVEL, set(measured), "No finish level found in the drawings"))

    if not any(p.paint_type for p in params):
        questions.append(_generated(QuestionType.PAINT_TYPE, set(measured), "No paint specification found"))

    logger.info(f"Generated {len(questions)} clarification questions")
    return questions


def collect_clarifications(pages: Iterable[PageExtraction], takeoff: WallTakeoff) -> List[ClarificationQuestion]:
    """Model-supplied questions in page order followed by generated ones."""
    pages = sorted(pages, key=lambda p: p.page_number)
    model_questions = [q for page in pages for q in page.clarifications]
    return model_questions + generate_clarifications(pages, takeoff)


# ============================================================================
# Answers
# ============================================================================

def apply_answers(inputs: UserInputs, questions: Iterable[ClarificationQuestion]) -> UserInputs:
    """
    Fold answered project-level questions into the user inputs.

    Answers that cannot be read for their parameter are logged and skipped.
    Later answers win over earlier ones.

    Returns:
        New UserInputs; the original is not modified
    """
    updates: Dict[str, object] = {}
    for question in sorted(questions, key=lambda q: q.answered_at or q.created_at):
        if not question.is_answered:
            continue
        answer = question.answer_text.strip()
        qtype = question.question_type

        if qtype == QuestionType.DECK_HEIGHT:
            height = parse_feet(answer)
            if height and height > 0:
                updates["deck_height_ft"] = height
            else:
                logger.warning(f"Could not read deck height from answer {answer!r}")
        elif qtype == QuestionType.STUD_GAUGE:
            gauge = parse_int(answer)
            if gauge and gauge > 0:
                updates["stud_gauge"] = gauge
            else:
                logger.warning(f"Could not read stud gauge from answer {answer!r}")
        elif qtype == QuestionType.FINISH_LEVEL:
            level = parse_int(answer)
            if level in FINISH_LEVELS:
                updates["finish_level"] = level
            else:
                logger.warning(f"Could not read finish level from answer {answer!r}")
        elif qtype == QuestionType.DRYWALL_TYPE and answer:
            updates["drywall_type"] = answer
        elif qtype == QuestionType.PAINT_TYPE and answer:
            updates["paint_type"] = answer
        elif qtype == QuestionType.INSULATION and answer:
            updates["insulation_type"] = answer

    return UserInputs.model_validate({**inputs.model_dump(), **updates})


# ============================================================================
# Persistence
# ============================================================================

def _same_question(a: ClarificationQuestion, b: ClarificationQuestion) -> bool:
    return (
        a.question_type == b.question_type
        and a.text == b.text
        and a.page_number == b.page_number
        and a.source == b.source
        and a.affected_type_codes == b.affected_type_codes
    )


@dataclass
class ClarificationLog:
    """
    Clarification questions for a plan, persisted as JSON in a directory.

    Directory structure:
        {store_dir}/
            clarifications.json

    Questions are never removed, only answered.
    """
    store_dir: Path
    questions: Dict[str, ClarificationQuestion] = field(default_factory=dict)

    def __post_init__(self):
        self.store_dir = Path(self.store_dir)

    @property
    def path(self) -> Path:
        return self.store_dir / STORE_FILENAME

    def add(self, question: ClarificationQuestion) -> ClarificationQuestion:
        """Add a question; an existing id keeps its stored record."""
        return self.questions.setdefault(question.id, question)

    def record(self, questions: Iterable[ClarificationQuestion]) -> int:
        """
        Add questions, skipping ones already logged from an earlier run.

        Returns:
            Number of questions added
        """
        added = 0
        for question in questions:
            if any(_same_question(question, q) for q in self.questions.values()):
                continue
            self.add(question)
            added += 1
        return added

    def get(self, question_id: str) -> Optional[ClarificationQuestion]:
        return self.questions.get(question_id)

    def pending(self) -> List[ClarificationQuestion]:
        """Unanswered questions, oldest first."""
        return sorted((q for q in self.questions.values() if not q.is_answered), key=lambda q: q.created_at)

    def answered(self) -> List[ClarificationQuestion]:
        """Answered questions, oldest answer first."""
        return sorted((q for q in self.questions.values() if q.is_answered), key=lambda q: q.answered_at)

    def answer(self, question_id: str, text: str) -> ClarificationQuestion:
        """
        Record an answer.

        Answering again with the same text changes nothing; a different
        text replaces the answer and its timestamp.

        Raises:
            KeyError: If the question id is unknown
            ValueError: If the answer is empty
        """
        if question_id not in self.questions:
            raise KeyError(f"Unknown clarification question: {question_id}")
        text = text.strip()
        if not text:
            raise ValueError("Answer text must not be empty")

        question = self.questions[question_id]
        if question.answer_text == text:
            return question

        updated = question.model_copy(update={
            "answer_text": text,
            "answered_at": datetime.now(timezone.utc),
        })
        self.questions[question_id] = updated
        logger.info(f"Answered {question.question_type.value} question {question_id}")
        return updated

    def save(self) -> Path:
        """Write all questions to the store directory."""
        self.store_dir.mkdir(parents=True, exist_ok=True)
        data = [q.model_dump(mode="json") for q in sorted(self.questions.values(), key=lambda q: q.created_at)]
        with open(self.path, "w") as f:
            json.dump(data, f, indent=2)
        return self.path

    @classmethod
    def load(cls, store_dir: Path) -> "ClarificationLog":
        """Load a log from a store directory; a missing file gives an empty log."""
        log = cls(store_dir)
        if log.path.exists():
            with open(log.path) as f:
                for item in json.load(f):
                    question = ClarificationQuestion.model_validate(item)
                    log.questions[question.id] = question
        return log
