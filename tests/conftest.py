from __future__ import annotations

import sys
from pathlib import Path

import pytest

sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

import api._shared as shared


SAMPLE_CSV = (
    "A1,Greetings,Hello,interjection,/həˈləʊ/,xin chào,lời chào,a greeting,Hello there!,Hi,Goodbye\n"
    "a1 ,Greetings ,Bye,interjection,/baɪ/,tạm biệt,lời chào tạm biệt,a farewell,Bye for now.,Farewell,Hello\n"
    "A1,Numbers,One,number,/wʌn/,một,số một,the number 1,One apple.,,\n"
    "A2,Greetings,Hola,interjection,,xin chào,,,,,\n"
    ",Numbers,Two,number,,hai,,,,,\n"
    "B1,Travel,,noun,,,,,,,\n"
)


class FakeClock:
    def __init__(self, start: float = 1_700_000_000.0):
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


class FakeFetcher:
    """Returns queued CSV texts (or raises queued exceptions) and counts calls."""

    def __init__(self, *responses):
        self.responses = list(responses) or [SAMPLE_CSV]
        self.calls = 0

    def __call__(self) -> str:
        self.calls += 1
        item = self.responses[0] if len(self.responses) == 1 else self.responses.pop(0)
        if isinstance(item, Exception):
            raise item
        return item


@pytest.fixture()
def clock():
    return FakeClock()


@pytest.fixture()
def fetcher():
    return FakeFetcher()


@pytest.fixture()
def vocab_cache(fetcher, clock, monkeypatch):
    c = shared.VocabularyCache(fetcher=fetcher, clock=clock, ttl=3600, skip_header=False)
    monkeypatch.setattr(shared, "cache", c)
    return c


@pytest.fixture()
def records():
    return shared.filter_records(shared.parse_csv(SAMPLE_CSV, skip_header=False))


@pytest.fixture()
def client(vocab_cache):
    import server

    server.app.config["TESTING"] = True
    with server.app.test_client() as c:
        yield c
