"""Unit tests for source retry policies."""
from __future__ import annotations

import pytest

from rbacops.shared.exceptions import InvalidSourceLineError, RetryExhaustedError
from rbacops.sources.retry import EDIT_PROMPT, InteractiveRetryPolicy, RetryPolicy


class FlakyLoader:
    """Raises a source error for the first *failures* calls."""

    def __init__(self, failures: int) -> None:
        self.failures = failures
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise InvalidSourceLineError("src.txt", self.calls, "broken")
        return "loaded"


class TestRetryPolicy:
    def test_first_attempt_succeeds(self):
        loader = FlakyLoader(0)
        assert RetryPolicy().run("test", loader) == "loaded"
        assert loader.calls == 1

    def test_retries_until_success(self):
        loader = FlakyLoader(2)
        assert RetryPolicy(max_attempts=3).run("test", loader) == "loaded"
        assert loader.calls == 3

    def test_gives_up(self):
        loader = FlakyLoader(5)
        with pytest.raises(RetryExhaustedError) as exc_info:
            RetryPolicy(max_attempts=2).run("test", loader)
        assert loader.calls == 2
        assert exc_info.value.attempts == 2
        assert exc_info.value.last_error.line == 2
        assert exc_info.value.__cause__ is exc_info.value.last_error

    def test_other_errors_propagate_immediately(self):
        calls = []

        def loader():
            calls.append(1)
            raise KeyError("not a source problem")

        with pytest.raises(KeyError):
            RetryPolicy(max_attempts=5).run("test", loader)
        assert len(calls) == 1

    def test_exponential_delay(self):
        policy = RetryPolicy(delay_seconds=1.0, backoff_multiplier=2.0, max_delay_seconds=3.0)
        assert [policy.get_delay(n) for n in (1, 2, 3)] == [1.0, 2.0, 3.0]

    def test_sleeps_between_attempts(self):
        slept = []
        policy = RetryPolicy(max_attempts=3, delay_seconds=0.5, sleep=slept.append)
        with pytest.raises(RetryExhaustedError):
            policy.run("test", FlakyLoader(10))
        assert slept == [0.5, 1.0]

    def test_no_sleep_without_delay(self):
        slept = []
        RetryPolicy(max_attempts=3, sleep=slept.append).run("test", FlakyLoader(2))
        assert slept == []

    def test_unbounded(self):
        policy = RetryPolicy(max_attempts=None)
        assert policy.should_retry(InvalidSourceLineError("s", 1, "r"), 1000) is True


class TestInteractiveRetryPolicy:
    def test_prompts_until_fixed(self):
        shown, prompts = [], []

        def prompt(text):
            prompts.append(text)
            return ""

        policy = InteractiveRetryPolicy(output=shown.append, prompt=prompt)
        assert policy.run("test", FlakyLoader(2)) == "loaded"
        assert prompts == [EDIT_PROMPT, EDIT_PROMPT]
        assert shown[0] == "Invalid line found in src.txt on line 1: broken"

    def test_end_of_input_gives_up(self):
        def prompt(text):
            raise EOFError

        policy = InteractiveRetryPolicy(output=lambda _: None, prompt=prompt)
        with pytest.raises(RetryExhaustedError) as exc_info:
            policy.run("test", FlakyLoader(1))
        assert exc_info.value.operation == "test"
        assert exc_info.value.attempts == 1

    def test_unbounded_by_default(self):
        assert InteractiveRetryPolicy().max_attempts is None
