import json
from types import SimpleNamespace

import pytest


class FakeModels:
    """Stands in for ``client.aio.models``; replays queued outcomes in order.

    An outcome is a response object, an exception instance to raise, or an
    async callable whose result is returned.
    """

    def __init__(self, outcomes):
        self.outcomes = list(outcomes)
        self.calls = []

    async def generate_content(self, model, contents, config):
        self.calls.append({"model": model, "contents": contents, "config": config})
        outcome = self.outcomes.pop(0)
        if isinstance(outcome, BaseException):
            raise outcome
        if callable(outcome):
            return await outcome()
        return outcome


class FakeClient:
    def __init__(self, *outcomes):
        self.models = FakeModels(outcomes)
        self.aio = SimpleNamespace(models=self.models)


def text_response(text):
    return SimpleNamespace(text=text)


def audio_response(data):
    part = SimpleNamespace(inline_data=SimpleNamespace(data=data))
    return SimpleNamespace(candidates=[SimpleNamespace(content=SimpleNamespace(parts=[part]))])


@pytest.fixture
def segments_json():
    return json.dumps({
        "segments": [
            {"startTime": "00:00:00.500", "endTime": "00:00:02.100", "text": "hello there"},
            {"startTime": "00:00:02.300", "endTime": "00:00:03.900", "text": "hello there"},
            {"startTime": "00:00:04.000", "endTime": "00:00:06.250", "text": "um, okay"},
        ]
    })
