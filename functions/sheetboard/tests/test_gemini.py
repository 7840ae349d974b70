import unittest
from types import SimpleNamespace
from unittest.mock import MagicMock

from sheetboard import gemini
from sheetboard.gemini import GeminiTextGenerator
from sheetboard.locks import LocalLock
from sheetboard.retry import RetryPolicy


def make_response(text=None):
    if text is None:
        return SimpleNamespace(candidates=[])
    part = SimpleNamespace(text=text)
    content = SimpleNamespace(parts=[part])
    return SimpleNamespace(candidates=[SimpleNamespace(content=content)])


class GeminiTextGeneratorTests(unittest.TestCase):
    def setUp(self):
        self.client = MagicMock()
        self.lock = LocalLock()
        self.delays = []
        self.generator = GeminiTextGenerator(
            self.client,
            self.lock,
            lock_timeout=0.01,
            retry_policy=RetryPolicy(
                max_attempts=3, base_delay=1.0, sleep=self.delays.append
            ),
        )

    def test_returns_first_candidate_text(self):
        self.client.models.generate_content.return_value = make_response("Draft")
        self.assertEqual(self.generator.generate("notes"), "Draft")

    def test_request_uses_fixed_prompt_and_config(self):
        self.client.models.generate_content.return_value = make_response("ok")
        self.generator.generate("meeting moved to 3pm")

        kwargs = self.client.models.generate_content.call_args.kwargs
        self.assertEqual(kwargs["model"], gemini.DEFAULT_MODEL)
        self.assertIn("meeting moved to 3pm", kwargs["contents"])
        self.assertTrue(kwargs["contents"].startswith("role:"))
        config = kwargs["config"]
        self.assertEqual(config.temperature, 0.1)
        self.assertEqual(config.top_k, 40)
        self.assertEqual(config.top_p, 0.90)
        self.assertEqual(config.max_output_tokens, 8192)

    def test_no_candidates_is_not_an_error(self):
        self.client.models.generate_content.return_value = make_response(None)
        self.assertEqual(self.generator.generate("x"), gemini.NO_RESPONSE_TEXT)
        self.assertEqual(self.client.models.generate_content.call_count, 1)

    def test_part_without_text_is_no_response(self):
        empty = SimpleNamespace(
            candidates=[SimpleNamespace(content=SimpleNamespace(parts=[SimpleNamespace(text=None)]))]
        )
        no_parts = SimpleNamespace(candidates=[SimpleNamespace(content=None)])
        for response in (empty, no_parts):
            self.client.models.generate_content.return_value = response
            self.assertEqual(self.generator.generate("x"), gemini.NO_RESPONSE_TEXT)

    def test_succeeds_on_third_attempt(self):
        self.client.models.generate_content.side_effect = [
            ConnectionError("reset"),
            ValueError("bad json"),
            make_response("Third time lucky"),
        ]
        self.assertEqual(self.generator.generate("x"), "Third time lucky")
        self.assertEqual(self.delays, [1.0, 2.0])

    def test_gives_up_after_three_failures_with_error_text(self):
        self.client.models.generate_content.side_effect = ConnectionError("down")
        result = self.generator.generate("x")

        self.assertEqual(result, "Error retrieving response: down")
        self.assertEqual(self.client.models.generate_content.call_count, 3)
        self.assertEqual(self.delays, [1.0, 2.0])
        # The lock is released after every attempt.
        self.assertTrue(self.lock.acquire(0))
        self.lock.release()

    def test_lock_timeout_is_retried(self):
        self.assertTrue(self.lock.acquire(0))
        try:
            result = self.generator.generate("x")
        finally:
            self.lock.release()

        self.assertTrue(result.startswith(gemini.ERROR_PREFIX))
        self.assertIn("generation lock", result)
        self.client.models.generate_content.assert_not_called()
        self.assertEqual(self.delays, [1.0, 2.0])

    def test_missing_api_key_returns_error_text(self):
        generator = GeminiTextGenerator.from_api_key(None, self.lock)
        result = generator.generate("x")
        self.assertTrue(result.startswith(gemini.ERROR_PREFIX))
        self.assertIn("GEMINI_API_KEY", result)


class RetryPolicyTests(unittest.TestCase):
    def test_linear_delays(self):
        policy = RetryPolicy(base_delay=0.5)
        self.assertEqual([policy.delay_for(n) for n in (1, 2, 3)], [0.5, 1.0, 1.5])

    def test_custom_backoff(self):
        delays = []
        policy = RetryPolicy(
            max_attempts=4,
            base_delay=1.0,
            backoff=lambda base, attempt: base * 2 ** (attempt - 1),
            sleep=delays.append,
        )
        fn = MagicMock(side_effect=[OSError(), OSError(), OSError(), "done"])
        self.assertEqual(policy.call(fn), "done")
        self.assertEqual(delays, [1.0, 2.0, 4.0])

    def test_reraises_last_error(self):
        policy = RetryPolicy(max_attempts=2, sleep=lambda _: None)
        fn = MagicMock(side_effect=[OSError("first"), OSError("last")])
        with self.assertRaisesRegex(OSError, "last"):
            policy.call(fn)
        self.assertEqual(fn.call_count, 2)


if __name__ == "__main__":
    unittest.main()
