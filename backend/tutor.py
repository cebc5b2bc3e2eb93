"""
"Ask the teacher" helper and quiz generator, backed by a generative-text API.

The tutor is completely separate from the encoding analysis: it takes a
free-text question plus a short context string and returns the model's
answer verbatim. The client is created once at startup (only if an API key
is configured) and injected, so the rest of the backend only has to check
whether a Tutor exists.
"""

from __future__ import annotations

import asyncio
import json
import random
from dataclasses import dataclass
from typing import Any, Dict, List, Optional

from google import genai
from google.genai import types


DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_TIMEOUT_S = 20.0
MAX_ANSWER_CHARS = 300

ASK_FAILED_MESSAGE = "Sorry, the tutor could not answer right now. Check that an API key is configured."

ASK_PROMPT = """\
You are a high-school computing teacher explaining how computers store text.
Answer the student's question in a friendly, easy-to-follow way.
Whenever you use a technical term, add a simple everyday analogy.

Context (what the app is currently showing): {context}

Student's question: {question}

Keep the answer short, under {max_chars} characters.
"""

QUIZ_PROMPT = """\
Write one four-choice quiz question about how characters are represented
as bytes. Reply with JSON only, no Markdown, in exactly this shape:

{"question": "...", "options": ["...", "...", "...", "..."], "answer": "...", "explanation": "..."}

"answer" must be one of the strings in "options".
Topics: ASCII codes, UTF-8 vs Shift-JIS, bits and bytes, why mojibake happens.
"""


class TutorError(RuntimeError):
    pass


@dataclass(frozen=True)
class QuizQuestion:
    question: str
    options: List[str]
    answer: str
    explanation: str = ""

    @classmethod
    def from_json(cls, obj: Any) -> Optional["QuizQuestion"]:
        """
        Validate a generated quiz. Returns None instead of raising, since a bad
        generation just means falling back to a built-in question.
        """
        if not isinstance(obj, dict):
            return None
        question = obj.get("question")
        options = obj.get("options")
        answer = obj.get("answer")
        explanation = obj.get("explanation", "")
        if not isinstance(question, str) or not question.strip():
            return None
        if not isinstance(options, list) or len(options) < 2:
            return None
        if not all(isinstance(o, str) for o in options):
            return None
        if not isinstance(answer, str) or answer not in options:
            return None
        return cls(question=question, options=list(options), answer=answer, explanation=str(explanation or ""))

    def to_json(self) -> Dict[str, Any]:
        return {
            "question": self.question,
            "options": list(self.options),
            "answer": self.answer,
            "explanation": self.explanation,
        }


STATIC_QUIZ: List[QuizQuestion] = [
    QuizQuestion(
        question="Which character does the UTF-8 byte `01000001` represent?",
        options=["A", "a", "1", "B"],
        answer="A",
        explanation="UTF-8 is ASCII-compatible: `01000001` is 0x41 in hex, which is \"A\".",
    ),
    QuizQuestion(
        question="What are the UTF-8 bytes of \"あ\"?",
        options=["E3 81 82", "82 A0", "30 42", "41"],
        answer="E3 81 82",
        explanation="Most Japanese characters take 3 bytes in UTF-8. `82 A0` is the Shift-JIS form and 30 42 is the code point.",
    ),
    QuizQuestion(
        question="Shift-JIS bytes `82 A0` are opened as UTF-8. What happens?",
        options=["The text is garbled", "\"あ\" is shown", "The file gets smaller", "Nothing changes"],
        answer="The text is garbled",
        explanation="0x82 and 0xA0 are not a valid UTF-8 sequence, so the reader shows replacement characters. That is mojibake.",
    ),
]


def pick_static_quiz(rng: Optional[random.Random] = None) -> QuizQuestion:
    r = rng if rng is not None else random
    return r.choice(STATIC_QUIZ)


def build_context(text: str) -> str:
    return f"The student typed: \"{text}\". The app is showing its UTF-8 and Shift-JIS bytes."


def _strip_code_fence(raw: str) -> str:
    s = raw.strip()
    if s.startswith("```"):
        s = s.split("\n", 1)[1] if "\n" in s else ""
        if s.rstrip().endswith("```"):
            s = s.rstrip()[:-3]
    return s.strip()


class Tutor:
    def __init__(self, client: Any, model: str = DEFAULT_MODEL, timeout: float = DEFAULT_TIMEOUT_S):
        self.client = client
        self.model = model
        self.timeout = float(timeout)

    async def _generate(self, prompt: str, config: Optional[types.GenerateContentConfig] = None) -> str:
        call = self.client.aio.models.generate_content(model=self.model, contents=prompt, config=config)
        response = await asyncio.wait_for(call, timeout=self.timeout)
        return getattr(response, "text", None) or ""

    async def ask(self, question: str, context: str = "") -> str:
        question = (question or "").strip()
        if not question:
            raise TutorError("Question is empty.")

        prompt = ASK_PROMPT.format(context=context, question=question, max_chars=MAX_ANSWER_CHARS)
        try:
            answer = await self._generate(prompt)
        except asyncio.TimeoutError:
            print(f"[tutor] request timed out after {self.timeout:.0f}s")
            raise TutorError("The tutor took too long to answer.")
        except Exception as e:
            print(f"[tutor] request failed: {e}")
            raise TutorError("Could not reach the tutor.") from e

        if not answer.strip():
            raise TutorError("The tutor returned an empty answer.")
        return answer

    async def generate_quiz(self) -> Optional[QuizQuestion]:
        config = types.GenerateContentConfig(response_mime_type="application/json")
        try:
            raw = await self._generate(QUIZ_PROMPT, config=config)
            quiz = QuizQuestion.from_json(json.loads(_strip_code_fence(raw)))
        except Exception as e:
            print(f"[tutor] quiz generation failed: {e}")
            return None
        if quiz is None:
            print("[tutor] quiz generation returned an unusable question")
        return quiz


def build_tutor(
    api_key: Optional[str],
    model: str = DEFAULT_MODEL,
    timeout: float = DEFAULT_TIMEOUT_S,
) -> Optional[Tutor]:
    """
    Construct the tutor once. No key means no tutor (returns None).
    """
    key = (api_key or "").strip()
    if not key:
        return None
    return Tutor(genai.Client(api_key=key), model=model, timeout=timeout)
