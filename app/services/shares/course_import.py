"""Plain-text course import.

A course file is free text with optional header lines::

    Title: Infection Prevention Basics
    Category: Public Health
    Level: Beginner
    CPD points: 5
    Description: Short overview shown on the course card.
    Module: video | Welcome | https://youtu.be/abc
    Module: quiz | Check | Q: Wash for? | 5s | 10s | 20s | 60s | Answer: C
    Module: notes | Reading | Hand hygiene is the single most ...

Anything the parser cannot read falls back to sensible defaults, so every
input yields a usable draft.
"""
import json
import re
import time
from typing import Any

from app.core.enum import CourseLevel, ModuleType
from app.libs.formats.text import plain_text_to_rich_html

DEFAULT_QUIZ_PASS_SCORE = 70
DEFAULT_CPD_POINTS = 10
IMPORTED_VIDEO_DURATION = 600

_FIELD_PATTERNS = {
    "title": re.compile(r"^title\s*:\s*(.+)$", re.I | re.M),
    "category": re.compile(r"^category\s*:\s*(.+)$", re.I | re.M),
    "instructor": re.compile(r"^instructor\s*:\s*(.+)$", re.I | re.M),
    "duration": re.compile(r"^duration\s*:\s*(.+)$", re.I | re.M),
    "level": re.compile(r"^level\s*:\s*(Beginner|Intermediate|Advanced)\s*$", re.I | re.M),
    "cpd_points": re.compile(r"^cpd\s*points?\s*:\s*(\d+)$", re.I | re.M),
}

_MODULE_LINE = re.compile(
    r"^module\s*:\s*(video|youtube|pdf|ppt|word|quiz|assignment|notes|case\s*study)"
    r"\s*\|\s*([^|]+)\|\s*(.+)$",
    re.I | re.M,
)
# description runs to the end of its own line
_DESCRIPTION = re.compile(r"^description\s*:\s*([\s\S]*?)(?:\nmodule\s*:|$)", re.I | re.M)

_PASS_SCORE = re.compile(r"pass(?:ing)?\s*score\s*[:=]\s*(\d{1,3})", re.I)
_PIPE_QUESTION = re.compile(
    r"^q(?:uestion)?\s*:\s*([^|]+)\|\s*([^|]+)\|\s*([^|]+)\|\s*([^|]+)\|\s*([^|]+)"
    r"\|\s*answer\s*:\s*([A-Da-d1-9])$",
    re.I,
)
_QUESTION = re.compile(r"^q(?:uestion)?\s*:\s*(.+)$", re.I)
_OPTION = re.compile(r"^[A-Ha-h][).\-:]\s*(.+)$")
_ANSWER = re.compile(r"^answer\s*:\s*([A-Ha-h1-9])$", re.I)


def _stamp() -> int:
    return int(time.time() * 1000)


def _clamp_score(value: float) -> int:
    return int(min(100, max(1, value)))


def parse_pass_score(content: str | None) -> int:
    if not content:
        return DEFAULT_QUIZ_PASS_SCORE
    try:
        parsed = json.loads(content)
    except ValueError:
        match = _PASS_SCORE.search(content)
        if match:
            return _clamp_score(int(match.group(1)))
        return DEFAULT_QUIZ_PASS_SCORE
    if isinstance(parsed, dict):
        score = parsed.get("passScore")
        if isinstance(score, (int, float)) and not isinstance(score, bool):
            return _clamp_score(score)
    return DEFAULT_QUIZ_PASS_SCORE


def quiz_content_with_pass_score(content: str, pass_score: int) -> str:
    """Store the pass score in a quiz module's JSON content, keeping other keys."""
    score = _clamp_score(pass_score)
    try:
        parsed = json.loads(content) if content else {}
    except ValueError:
        parsed = {}
    if not isinstance(parsed, dict):
        parsed = {}
    forms = parsed.get("forms")
    return json.dumps({**parsed, "passScore": score, "forms": forms if isinstance(forms, list) else []})


def answer_token_to_index(token: str, option_count: int) -> int:
    """Map "2" or "B" to a 0-based option index; anything unusable maps to 0."""
    normalized = token.strip().upper()
    if not normalized:
        return 0
    if re.fullmatch(r"[0-9]+", normalized):
        numeric = int(normalized) - 1
        if 0 <= numeric < option_count:
            return numeric
    letter = ord(normalized[0]) - ord("A")
    if 0 <= letter < option_count:
        return letter
    return 0


def _questions_from_json(content: str) -> list[dict[str, Any]]:
    try:
        parsed = json.loads(content)
    except ValueError:
        return []
    if not isinstance(parsed, list):
        return []

    stamp = _stamp()
    questions = []
    for idx, item in enumerate(parsed):
        if not isinstance(item, dict):
            continue
        options = item.get("options")
        if not item.get("question") or not isinstance(options, list) or len(options) < 2:
            continue
        options = [str(o) for o in options]
        raw_answer = item.get("correctAnswer", item.get("answer", "1"))
        questions.append(
            {
                "id": f"q-{stamp}-{idx + 1}",
                "question": str(item["question"]),
                "options": options,
                "correctAnswer": answer_token_to_index(str(raw_answer), len(options)),
            }
        )
    return questions


def parse_quiz_questions(raw: str) -> list[dict[str, Any]]:
    content = raw.strip()
    if not content:
        return []

    from_json = _questions_from_json(content)
    if from_json:
        return from_json

    stamp = _stamp()
    questions: list[dict[str, Any]] = []
    current = {"question": "", "options": [], "answer": "1"}

    def flush():
        if current["question"] and len(current["options"]) >= 2:
            questions.append(
                {
                    "id": f"q-{stamp}-{len(questions) + 1}",
                    "question": current["question"].strip(),
                    "options": current["options"],
                    "correctAnswer": answer_token_to_index(current["answer"], len(current["options"])),
                }
            )
        current.update(question="", options=[], answer="1")

    for raw_line in content.replace("\r", "").split("\n"):
        line = raw_line.strip()
        if not line:
            flush()
            continue

        pipe = _PIPE_QUESTION.match(line)
        if pipe:
            flush()
            question, *options, answer = (g.strip() for g in pipe.groups())
            questions.append(
                {
                    "id": f"q-{stamp}-{len(questions) + 1}",
                    "question": question,
                    "options": options,
                    "correctAnswer": answer_token_to_index(answer, 4),
                }
            )
            continue

        question = _QUESTION.match(line)
        if question:
            flush()
            current["question"] = question.group(1).strip()
            continue

        option = _OPTION.match(line)
        if option:
            current["options"].append(option.group(1).strip())
            continue

        answer = _ANSWER.match(line)
        if answer:
            current["answer"] = answer.group(1)

    flush()
    return questions


def _module_type(raw_type: str) -> str:
    kind = re.sub(r"\s+", "", raw_type.lower())
    if kind == "youtube":
        return ModuleType.VIDEO.value
    if kind in ("notes", "casestudy"):
        return ModuleType.ASSIGNMENT.value
    return ModuleType(kind).value


def _parse_modules(text: str) -> list[dict[str, Any]]:
    stamp = _stamp()
    modules = []
    for match in _MODULE_LINE.finditer(text):
        kind = _module_type(match.group(1))
        title = match.group(2).strip()
        content = match.group(3).strip()
        module: dict[str, Any] = {
            "id": f"mod-{stamp}-{len(modules) + 1}",
            "title": title or f"Module {len(modules) + 1}",
            "type": kind,
            "completed": False,
        }
        if kind == ModuleType.ASSIGNMENT.value:
            module["content"] = plain_text_to_rich_html(content)
        elif kind == ModuleType.QUIZ.value:
            module["content"] = quiz_content_with_pass_score("", parse_pass_score(content))
            module["questions"] = parse_quiz_questions(content)
        else:
            module["content"] = content
        if kind == ModuleType.VIDEO.value:
            module["duration"] = IMPORTED_VIDEO_DURATION
        modules.append(module)
    return modules


def parse_course_text(raw_text: str, fallback_instructor: str) -> dict[str, Any]:
    """Build a course draft (the body `POST /courses` accepts) from plain text."""
    normalized = raw_text.replace("\r", "").strip()
    first_line = next(
        (line.strip() for line in normalized.split("\n") if line.strip()),
        "Imported Course",
    )

    def field(name: str) -> str | None:
        match = _FIELD_PATTERNS[name].search(normalized)
        return match.group(1).strip() if match else None

    level = field("level")
    cpd_points = field("cpd_points")

    description_match = _DESCRIPTION.search(normalized)
    description_text = (description_match.group(1).strip() if description_match else "") or normalized

    modules = _parse_modules(normalized) or [
        {
            "id": f"mod-{_stamp()}-1",
            "title": "Learning Material",
            "type": ModuleType.ASSIGNMENT.value,
            "content": plain_text_to_rich_html(normalized),
            "completed": False,
        }
    ]

    return {
        "title": field("title") or first_line,
        "description": plain_text_to_rich_html(description_text),
        "category": field("category") or "General",
        "instructor": field("instructor") or fallback_instructor or "Instructor",
        "duration": field("duration") or "1 hour",
        "cpdPoints": int(cpd_points) if cpd_points else DEFAULT_CPD_POINTS,
        "level": level.capitalize() if level else CourseLevel.BEGINNER.value,
        "thumbnail": "",
        "modules": modules,
        "enrolledCount": 0,
        "rating": 0,
    }
