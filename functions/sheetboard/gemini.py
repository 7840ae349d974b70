"""
Gemini drafting assistant: turns rough notes into a bulletin-board post.

Calls are serialized through one process-wide generation lock and retried
with linearly increasing delays. Failures never escape ``generate``; the
caller always gets text back.
"""

from __future__ import annotations

import logging
from typing import Optional

from google import genai
from google.genai import types

from sheetboard.errors import BusyError, UpstreamError
from sheetboard.locks import BoardLock
from sheetboard.retry import RetryPolicy

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "gemini-2.5-flash"
DEFAULT_LOCK_TIMEOUT_SECONDS = 30.0

TEMPERATURE = 0.1
TOP_K = 40
TOP_P = 0.90
MAX_OUTPUT_TOKENS = 8192

NO_RESPONSE_TEXT = "No response from Gemini API"
ERROR_PREFIX = "Error retrieving response: "

PROMPT_TEMPLATE = """role: You are an expert at writing notices for a team bulletin board.
input: |
  {value}
task: |
  Based on the input, write a clear and concise post suitable for a bulletin board.
conditions:
  - Use polite, courteous language that is easy to understand.
  - No preamble, closing remarks or greetings; convey only the necessary information, leaving nothing out.
  - Use bullet points and line breaks where appropriate to keep it readable.
output_format: |
  (Write the post as plain text, without Markdown or other decoration.)
"""


def build_prompt(value: str) -> str:
    return PROMPT_TEMPLATE.format(value=value)


def generation_config() -> types.GenerateContentConfig:
    return types.GenerateContentConfig(
        temperature=TEMPERATURE,
        top_k=TOP_K,
        top_p=TOP_P,
        max_output_tokens=MAX_OUTPUT_TOKENS,
    )


def first_candidate_text(response) -> str:
    candidates = getattr(response, "candidates", None) or []
    if not candidates:
        return NO_RESPONSE_TEXT
    content = getattr(candidates[0], "content", None)
    parts = getattr(content, "parts", None) or []
    text = getattr(parts[0], "text", None) if parts else None
    # Safety-blocked or non-text parts carry no text.
    return text or NO_RESPONSE_TEXT


class GeminiTextGenerator:
    def __init__(
        self,
        client: Optional[genai.Client],
        lock: BoardLock,
        model: str = DEFAULT_MODEL,
        lock_timeout: float = DEFAULT_LOCK_TIMEOUT_SECONDS,
        retry_policy: Optional[RetryPolicy] = None,
    ):
        self.client = client
        self.lock = lock
        self.model = model
        self.lock_timeout = lock_timeout
        self.retry_policy = retry_policy or RetryPolicy()

    @classmethod
    def from_api_key(cls, api_key: Optional[str], lock: BoardLock, **kwargs):
        client = genai.Client(api_key=api_key) if api_key else None
        return cls(client, lock, **kwargs)

    def _attempt(self, prompt: str) -> str:
        if not self.lock.acquire(self.lock_timeout):
            raise BusyError("Could not acquire the generation lock")
        try:
            response = self.client.models.generate_content(
                model=self.model,
                contents=prompt,
                config=generation_config(),
            )
            return first_candidate_text(response)
        except Exception as e:
            logger.warning("Gemini call failed: %s", e)
            raise
        finally:
            self.lock.release()

    def generate(self, value: str) -> str:
        if self.client is None:
            return ERROR_PREFIX + str(UpstreamError("GEMINI_API_KEY is not configured"))

        prompt = build_prompt(value)
        try:
            return self.retry_policy.call(lambda: self._attempt(prompt))
        except Exception as e:
            logger.error(
                "Error in generate after %d attempts: %s",
                self.retry_policy.max_attempts,
                e,
            )
            return ERROR_PREFIX + str(e)
