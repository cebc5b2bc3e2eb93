import asyncio
import json
import random
from types import SimpleNamespace

import pytest

import tutor as tutor_module
from tutor import (
    STATIC_QUIZ,
    QuizQuestion,
    Tutor,
    TutorError,
    build_context,
    build_tutor,
    pick_static_quiz,
)


class FakeModels:
    def __init__(self, text="", exc=None, delay=0.0):
        self.text = text
        self.exc = exc
        self.delay = delay
        self.calls = []

    async def generate_content(self, model, contents, config=None):
        self.calls.append({"model": model, "contents": contents, "config": config})
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.exc is not None:
            raise self.exc
        return SimpleNamespace(text=self.text)


def make_tutor(models, timeout=5.0):
    client = SimpleNamespace(aio=SimpleNamespace(models=models))
    return Tutor(client, model="test-model", timeout=timeout)


GOOD_QUIZ = {
    "question": "How many bytes is \"A\" in UTF-8?",
    "options": ["1", "2", "3", "4"],
    "answer": "1",
    "explanation": "ASCII stays one byte.",
}


def test_ask_returns_text_verbatim_and_sends_context():
    models = FakeModels(text="  Because kana need more bits.  ")
    t = make_tutor(models)

    answer = asyncio.run(t.ask("Why is UTF-8 longer?", build_context("あ")))

    assert answer == "  Because kana need more bits.  "
    assert len(models.calls) == 1
    assert models.calls[0]["model"] == "test-model"
    assert "Why is UTF-8 longer?" in models.calls[0]["contents"]
    assert "あ" in models.calls[0]["contents"]


def test_ask_rejects_empty_question():
    models = FakeModels(text="unused")
    with pytest.raises(TutorError):
        asyncio.run(make_tutor(models).ask("   "))
    assert models.calls == []


def test_ask_wraps_client_failures():
    t = make_tutor(FakeModels(exc=ConnectionError("boom")))
    with pytest.raises(TutorError):
        asyncio.run(t.ask("What is a byte?"))


def test_ask_times_out():
    t = make_tutor(FakeModels(text="late", delay=1.0), timeout=0.01)
    with pytest.raises(TutorError, match="too long"):
        asyncio.run(t.ask("What is a byte?"))


def test_ask_rejects_empty_answer():
    with pytest.raises(TutorError):
        asyncio.run(make_tutor(FakeModels(text="")).ask("What is a byte?"))


def test_generate_quiz_parses_json():
    models = FakeModels(text=json.dumps(GOOD_QUIZ))
    quiz = asyncio.run(make_tutor(models).generate_quiz())
    assert quiz == QuizQuestion(**GOOD_QUIZ)
    assert models.calls[0]["config"].response_mime_type == "application/json"


def test_generate_quiz_accepts_fenced_json():
    fenced = "```json\n" + json.dumps(GOOD_QUIZ) + "\n```"
    quiz = asyncio.run(make_tutor(FakeModels(text=fenced)).generate_quiz())
    assert quiz is not None
    assert quiz.answer == "1"


@pytest.mark.parametrize(
    "text",
    [
        "not json",
        json.dumps([1, 2, 3]),
        json.dumps({**GOOD_QUIZ, "answer": "5"}),
        json.dumps({**GOOD_QUIZ, "options": "1,2,3,4"}),
        json.dumps({**GOOD_QUIZ, "question": ""}),
    ],
)
def test_generate_quiz_returns_none_on_bad_output(text):
    assert asyncio.run(make_tutor(FakeModels(text=text)).generate_quiz()) is None


def test_generate_quiz_returns_none_on_failure():
    assert asyncio.run(make_tutor(FakeModels(exc=RuntimeError("down"))).generate_quiz()) is None


def test_static_quiz_is_consistent():
    for quiz in STATIC_QUIZ:
        assert quiz.answer in quiz.options
        assert QuizQuestion.from_json(quiz.to_json()) == quiz


def test_pick_static_quiz_uses_rng():
    rng = random.Random(0)
    assert pick_static_quiz(rng) in STATIC_QUIZ


def test_build_tutor_without_key_is_none():
    assert build_tutor(None) is None
    assert build_tutor("   ") is None


def test_build_tutor_with_key(monkeypatch):
    created = {}

    def fake_client(api_key):
        created["api_key"] = api_key
        return SimpleNamespace(aio=None)

    monkeypatch.setattr(tutor_module.genai, "Client", fake_client)
    t = build_tutor(" secret ", model="m", timeout=3)
    assert isinstance(t, Tutor)
    assert created["api_key"] == "secret"
    assert t.model == "m"
    assert t.timeout == 3.0
