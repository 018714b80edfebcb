import json

import pytest

from clips import ClipAnalyzer
from settings import Settings

MODEL_CLIPS = [
    {"start_time": 10, "end_time": 50, "title": "🚀 Launch Day", "description": "The big reveal", "score": 9.1, "badge": "Viral", "emoji": "🚀"},
    {"start_time": 125, "end_time": 170, "title": "😂 Blooper", "description": "Unscripted laugh", "score": 6.4, "badge": "Good", "emoji": "😂"},
]


class FakeProvider:
    """Returns canned completions in order, raising any that are exceptions."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.prompts = []

    def generate_content(self, prompt):
        self.prompts.append(prompt)
        response = self.responses.pop(0) if len(self.responses) > 1 else self.responses[0]
        if isinstance(response, BaseException):
            raise response
        return response


@pytest.fixture
def settings():
    return Settings(
        model_timeout_seconds=2.0,
        model_max_attempts=2,
        model_retry_delay_seconds=0,
    )


@pytest.fixture
def model_reply():
    return "Here are the clips you asked for:\n" + json.dumps(MODEL_CLIPS) + "\nEnjoy!"


@pytest.fixture
def make_analyzer(settings):
    def _make(*responses, **kwargs):
        provider = FakeProvider(*responses)
        return ClipAnalyzer(provider, settings, **kwargs), provider

    return _make
