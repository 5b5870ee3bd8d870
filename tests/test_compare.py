import asyncio
import json

import httpx
import pytest

from openrouter_mcp.client import OpenRouterClient
from openrouter_mcp.compare import DIVIDER, CompareFailure, CompareSuccess, compare_models, format_report

from ._helpers import chat_response


def run(client, models, message="Which is bigger, 9.11 or 9.9?", max_tokens=500):
    return asyncio.run(compare_models(client, models, message, max_tokens))


def test_one_outcome_per_model_in_input_order(config):
    # later models answer first; report order must not follow completion order
    delays = {"a/slow": 0.05, "b/medium": 0.02, "c/fast": 0.0}

    async def handler(request):
        body = json.loads(request.content)
        await asyncio.sleep(delays[body["model"]])
        return httpx.Response(200, json=chat_response(f"answer from {body['model']}"))

    client = OpenRouterClient(config, transport=httpx.MockTransport(handler))
    outcomes = run(client, ["a/slow", "b/medium", "c/fast"])

    assert [o.model for o in outcomes] == ["a/slow", "b/medium", "c/fast"]
    assert [o.response_text for o in outcomes] == [
        "answer from a/slow",
        "answer from b/medium",
        "answer from c/fast",
    ]


def test_failure_is_isolated(client, upstream):
    upstream.chat["bad/model"] = lambda body: httpx.Response(404, text="No endpoints found")
    upstream.chat["good/model"] = lambda body: httpx.Response(200, json=chat_response("fine", total_tokens=7))

    outcomes = run(client, ["bad/model", "good/model"])

    assert isinstance(outcomes[0], CompareFailure)
    assert "404" in outcomes[0].error
    assert outcomes[1] == CompareSuccess(
        model="good/model",
        response_text="fine",
        usage={"prompt_tokens": 1, "completion_tokens": 6, "total_tokens": 7},
    )

    report = format_report(outcomes)
    sections = report.split(DIVIDER)
    assert report.startswith("Comparison of 2 models:\n\n")
    assert len(sections) == 2
    assert sections[0].endswith("**bad/model:** ❌ Error - Request failed with status code 404: No endpoints found")
    assert sections[1] == "**good/model:**\nfine\n*Tokens: 7*"


def test_all_failures_still_report_every_model(config):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    client = OpenRouterClient(config, transport=httpx.MockTransport(refuse))
    outcomes = run(client, ["x/1", "x/2", "x/3"])

    assert [type(o) for o in outcomes] == [CompareFailure] * 3
    assert len(format_report(outcomes).split(DIVIDER)) == 3


def test_malformed_response_is_a_failure(client, upstream):
    upstream.chat["odd/model"] = lambda body: httpx.Response(200, json={"choices": []})

    outcomes = run(client, ["odd/model", "openai/gpt-4"])

    assert isinstance(outcomes[0], CompareFailure)
    assert isinstance(outcomes[1], CompareSuccess)


def test_duplicates_are_dispatched_independently(client, upstream):
    outcomes = run(client, ["openai/gpt-4", "openai/gpt-4"])

    assert len(outcomes) == 2
    assert len(upstream.bodies()) == 2


def test_each_call_carries_only_model_message_and_max_tokens(client, upstream):
    run(client, ["a/one", "b/two"], message="hi", max_tokens=64)

    assert sorted(upstream.bodies(), key=lambda b: b["model"]) == [
        {"model": "a/one", "messages": [{"role": "user", "content": "hi"}], "max_tokens": 64},
        {"model": "b/two", "messages": [{"role": "user", "content": "hi"}], "max_tokens": 64},
    ]


@pytest.mark.parametrize("count", [1, 2, 5])
def test_report_has_one_section_per_model(client, upstream, count):
    models = [f"vendor/model-{i}" for i in range(count)]
    upstream.chat["vendor/model-0"] = lambda body: httpx.Response(503, text="overloaded")

    report = format_report(run(client, models))

    sections = report.split(DIVIDER)
    assert len(sections) == count
    for model, section in zip(models, sections):
        assert f"**{model}:**" in section


def test_malformed_usage_does_not_break_siblings(client, upstream):
    upstream.chat["odd/usage"] = lambda body: httpx.Response(
        200, json={"choices": [{"message": {"content": "still here"}}], "usage": [1]}
    )

    report = format_report(run(client, ["odd/usage", "openai/gpt-4"]))

    sections = report.split(DIVIDER)
    assert len(sections) == 2
    assert sections[0].endswith("**odd/usage:**\nstill here\n*Tokens: None*")
    assert sections[1] == "**openai/gpt-4:**\nhello\n*Tokens: 2*"


def test_calls_are_in_flight_together(config):
    in_flight = 0
    peak = 0

    async def handler(request):
        nonlocal in_flight, peak
        in_flight += 1
        peak = max(peak, in_flight)
        await asyncio.sleep(0.05)
        in_flight -= 1
        return httpx.Response(200, json=chat_response("ok"))

    client = OpenRouterClient(config, transport=httpx.MockTransport(handler))
    models = ["a/one", "b/two", "c/three"]
    outcomes = run(client, models)

    assert peak == len(models)
    assert [type(o) for o in outcomes] == [CompareSuccess] * 3


def test_fast_failure_waits_for_slow_sibling(config):
    async def handler(request):
        body = json.loads(request.content)
        if body["model"] == "fast/broken":
            return httpx.Response(500, text="boom")
        await asyncio.sleep(0.05)
        return httpx.Response(200, json=chat_response("slow but fine"))

    client = OpenRouterClient(config, transport=httpx.MockTransport(handler))
    outcomes = run(client, ["fast/broken", "slow/model"])

    assert isinstance(outcomes[0], CompareFailure)
    assert outcomes[1].response_text == "slow but fine"
