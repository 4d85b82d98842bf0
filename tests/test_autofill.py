import random

import pytest
import requests

from sinfiltro.game.autofill import (
    FALLBACK_RESPONSES,
    MAX_RESPONSE_LENGTH,
    AnswerGenerator,
    PromptGenerator,
    clean_response,
    clean_topic,
)


class FakeResponse:
    def __init__(self, payload=None, status=200):
        self.payload = payload
        self.status = status

    def raise_for_status(self):
        if self.status >= 400:
            raise requests.HTTPError(f"{self.status} error")

    def json(self):
        if isinstance(self.payload, Exception):
            raise self.payload
        return self.payload


class FakeSession:
    def __init__(self, response=None, error=None):
        self.response = response
        self.error = error
        self.calls = []

    def post(self, url, **kwargs):
        self.calls.append((url, kwargs))
        if self.error:
            raise self.error
        return self.response


def generator(session, token="hf_test"):
    return AnswerGenerator(token=token, model="test/model", timeout=1, session=session, rng=random.Random(0))


def test_generated_text_is_cleaned():
    session = FakeSession(FakeResponse([{"generated_text": '<s>[INST] pregunta [/INST] "Un pato con corbata"\nmás texto'}]))

    assert generator(session).generate("¿Qué lleva puesto el jefe?") == "Un pato con corbata"
    url, kwargs = session.calls[0]
    assert url.endswith("/models/test/model")
    assert kwargs["headers"]["Authorization"] == "Bearer hf_test"
    assert kwargs["timeout"] == 1


def test_no_token_means_no_request():
    session = FakeSession()

    assert generator(session, token="").generate("¿Algo?") in FALLBACK_RESPONSES
    assert session.calls == []


def test_network_errors_fall_back():
    session = FakeSession(error=requests.ConnectionError("offline"))
    assert generator(session).generate("¿Algo?") in FALLBACK_RESPONSES


def test_http_errors_fall_back():
    session = FakeSession(FakeResponse(status=503))
    assert generator(session).generate("¿Algo?") in FALLBACK_RESPONSES


def test_unparseable_or_empty_output_falls_back():
    assert generator(FakeSession(FakeResponse(ValueError("not json")))).generate("¿Algo?") in FALLBACK_RESPONSES
    assert generator(FakeSession(FakeResponse([{"generated_text": "[/INST] x"}]))).generate("¿Algo?") in FALLBACK_RESPONSES
    assert generator(FakeSession(FakeResponse({"error": "loading"}))).generate("¿Algo?") in FALLBACK_RESPONSES


def test_long_output_is_truncated():
    text = clean_response("a" * 200)
    assert len(text) == MAX_RESPONSE_LENGTH
    assert text.endswith("...")


def prompt_generator(session, token="hf_test"):
    return PromptGenerator(token=token, model="test/model", timeout=1, session=session, rng=random.Random(0))


@pytest.mark.parametrize(
    "topic, expected",
    [
        ("sobre pizza", "pizza"),
        ("Frases de  IKEA", "IKEA"),
        ("acerca de chistes de gatos", "gatos"),
        ("sobre ", "sobre"),
        ("Cristiano Ronaldo", "Cristiano Ronaldo"),
    ],
)
def test_topic_lead_ins_are_stripped(topic, expected):
    assert clean_topic(topic) == expected


def test_generated_prompts_are_parsed():
    text = (
        "1. El peor ingrediente para pizza jamás inventado\n"
        '2) "Algo que nunca deberías usar como masa de pizza"\n'
        "TEMA: pizza\n"
        "corto\n"
        "- El nombre de una pizzería que cerraría en una semana\n"
    )
    session = FakeSession(FakeResponse([{"generated_text": text}]))

    prompts = prompt_generator(session).generate_prompts("sobre pizza")

    assert prompts == [
        "El peor ingrediente para pizza jamás inventado",
        "Algo que nunca deberías usar como masa de pizza",
        "El nombre de una pizzería que cerraría en una semana",
    ]
    _, kwargs = session.calls[0]
    assert '"pizza"' in kwargs["json"]["inputs"]
    assert kwargs["json"]["parameters"]["return_full_text"] is False


def test_prompt_generation_falls_back_to_templates():
    offline = prompt_generator(FakeSession(error=requests.ConnectionError("offline"))).generate_prompts("gatos")
    no_token = FakeSession()
    without_token = prompt_generator(no_token, token="").generate_prompts("gatos")

    for prompts in (offline, without_token):
        assert len(prompts) == 5
        assert all("gatos" in p for p in prompts)
    assert no_token.calls == []


def test_blank_topic_gives_nothing():
    assert prompt_generator(FakeSession()).generate_prompts("   ") == []
