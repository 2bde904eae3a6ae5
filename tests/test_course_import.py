"""Unit tests for the plain-text course parser."""

import json

from app.services.shares.course_import import (
    DEFAULT_CPD_POINTS,
    DEFAULT_QUIZ_PASS_SCORE,
    answer_token_to_index,
    parse_course_text,
    parse_pass_score,
    parse_quiz_questions,
    quiz_content_with_pass_score,
)

COURSE_TEXT = """Title: Infection Prevention Basics
Category: Public Health
Level: intermediate
CPD points: 5
Description: Short overview shown on the course card.
Module: video | Welcome | https://youtu.be/abc
Module: quiz | Check | Q: Wash for? | 5s | 10s | 20s | 60s | Answer: C
Module: notes | Reading | Hand hygiene is <important>
"""


class TestParseCourseText:
    def test_header_fields(self):
        draft = parse_course_text(COURSE_TEXT, "Dr. Who")
        assert draft["title"] == "Infection Prevention Basics"
        assert draft["category"] == "Public Health"
        assert draft["level"] == "Intermediate"
        assert draft["cpdPoints"] == 5
        assert draft["instructor"] == "Dr. Who"
        assert draft["description"] == "<p>Short overview shown on the course card.</p>"
        assert draft["enrolledCount"] == 0

    def test_modules(self):
        modules = parse_course_text(COURSE_TEXT, "Dr. Who")["modules"]
        assert [m["type"] for m in modules] == ["video", "quiz", "assignment"]
        assert all(m["id"].startswith("mod-") for m in modules)

        video, quiz, notes = modules
        assert video["content"] == "https://youtu.be/abc"
        assert video["duration"] == 600

        assert quiz["questions"][0]["options"] == ["5s", "10s", "20s", "60s"]
        assert quiz["questions"][0]["correctAnswer"] == 2
        assert json.loads(quiz["content"]) == {"passScore": DEFAULT_QUIZ_PASS_SCORE, "forms": []}

        assert notes["content"] == "<p>Hand hygiene is &lt;important&gt;</p>"

    def test_case_study_spellings(self):
        text = "Module: casestudy | Ward round | Discuss\nModule: Case  Study | Clinic | Review\n"
        modules = parse_course_text(text, "Dr. Who")["modules"]
        assert [m["type"] for m in modules] == ["assignment", "assignment"]

    def test_free_text_falls_back_to_single_module(self):
        draft = parse_course_text("Hand washing\n\nUse soap and water.", "")
        assert draft["title"] == "Hand washing"
        assert draft["cpdPoints"] == DEFAULT_CPD_POINTS
        assert draft["level"] == "Beginner"
        assert draft["instructor"] == "Instructor"
        assert len(draft["modules"]) == 1
        assert draft["modules"][0]["type"] == "assignment"
        assert draft["modules"][0]["content"] == "<p>Hand washing</p><p>Use soap and water.</p>"


class TestQuizParsing:
    def test_json_questions(self):
        raw = json.dumps(
            [
                {"question": "2+2?", "options": ["3", "4"], "correctAnswer": "B"},
                {"question": "skipped", "options": ["only one"]},
            ]
        )
        questions = parse_quiz_questions(raw)
        assert len(questions) == 1
        assert questions[0]["correctAnswer"] == 1

    def test_line_questions(self):
        raw = "Q: First?\nA) yes\nB) no\nAnswer: 2\n\nQuestion: Second?\na. x\nb. y\nc. z"
        questions = parse_quiz_questions(raw)
        assert [q["question"] for q in questions] == ["First?", "Second?"]
        assert questions[0]["correctAnswer"] == 1
        assert questions[1]["options"] == ["x", "y", "z"]
        assert questions[1]["correctAnswer"] == 0

    def test_non_ascii_digit_answer(self):
        raw = json.dumps([{"question": "Pick", "options": ["a", "b"], "correctAnswer": "\u00b2"}])
        assert parse_quiz_questions(raw)[0]["correctAnswer"] == 0

    def test_empty(self):
        assert parse_quiz_questions("   ") == []


class TestHelpers:
    def test_answer_tokens(self):
        assert answer_token_to_index("c", 4) == 2
        assert answer_token_to_index("3", 4) == 2
        assert answer_token_to_index("9", 4) == 0
        assert answer_token_to_index("", 4) == 0
        assert answer_token_to_index("\u00b2", 4) == 0
        assert answer_token_to_index("\u0663", 4) == 0

    def test_pass_score(self):
        assert parse_pass_score(None) == DEFAULT_QUIZ_PASS_SCORE
        assert parse_pass_score('{"passScore": 150}') == 100
        assert parse_pass_score("passing score: 80") == 80
        assert parse_pass_score("[1, 2]") == DEFAULT_QUIZ_PASS_SCORE

    def test_pass_score_keeps_other_keys(self):
        content = quiz_content_with_pass_score('{"forms": [{"a": 1}], "note": "x"}', 0)
        assert json.loads(content) == {"forms": [{"a": 1}], "note": "x", "passScore": 1}
