# SPDX-License-Identifier: LGPL-3.0-only
# Copyright (c) 2026 quota-rotator contributors

import json
from types import SimpleNamespace
from unittest.mock import AsyncMock, patch

import pytest

from quota_rotator.core.errors import CredentialRejectedError, RemoteProviderError
from quota_rotator.core.types import CallOutcome, ProviderType
from quota_rotator.gateways.openai import OpenAIGateway, parse_tag_suggestions
from quota_rotator.usage.selection.engine import CredentialSelector
from quota_rotator.usage.tracking.engine import UsageRecorder

from conftest import OWNER


class FakeAPIError(Exception):
    def __init__(self, message, status_code):
        super().__init__(message)
        self.status_code = status_code


def completion(content, usage=None):
    return SimpleNamespace(
        choices=[SimpleNamespace(message=SimpleNamespace(content=content))],
        usage=usage,
    )


def make_gateway(store, **kwargs):
    return OpenAIGateway(CredentialSelector(store), UsageRecorder(store), **kwargs)


async def seed_openai(seed, **kwargs):
    kwargs.setdefault("limit", 100)
    return await seed("openai", provider_type=ProviderType.OPENAI, **kwargs)


@pytest.mark.asyncio
async def test_title_uses_fixed_estimate_without_usage(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)
    mock = AsyncMock(return_value=completion("  Learn Asyncio Fast  "))

    with patch("litellm.acompletion", mock):
        title = await gateway.generate_optimized_title(OWNER, "asyncio", ["python"])

    assert title == "Learn Asyncio Fast"
    kwargs = mock.await_args.kwargs
    assert kwargs["api_key"] == cred.secret_value
    assert kwargs["model"] == "gpt-4o"
    assert kwargs["max_tokens"] == 60
    assert "response_format" not in kwargs
    assert (await store.get_by_id(cred.id)).quota_used == 1


@pytest.mark.asyncio
async def test_description_estimate(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)

    with patch("litellm.acompletion", AsyncMock(return_value=completion("Desc"))) as mock:
        await gateway.generate_optimized_description(
            OWNER, "old", ["k"], video_title="T", include_timestamps=False
        )

    prompt = mock.await_args.kwargs["messages"][0]["content"]
    assert "Do not include timestamps" in prompt
    assert (await store.get_by_id(cred.id)).quota_used == 3


@pytest.mark.asyncio
async def test_reported_usage_is_priced_and_rounded_up(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)
    response = completion("Title", usage=SimpleNamespace(total_tokens=120))

    with patch("litellm.acompletion", AsyncMock(return_value=response)), patch(
        "litellm.completion_cost", return_value=0.031
    ):
        await gateway.generate_optimized_title(OWNER, "t", [])

    assert (await store.get_by_id(cred.id)).quota_used == 4


@pytest.mark.asyncio
async def test_pricing_failure_falls_back_to_estimate(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)
    response = completion('{"score": 80}', usage=SimpleNamespace(total_tokens=500))

    with patch("litellm.acompletion", AsyncMock(return_value=response)), patch(
        "litellm.completion_cost", side_effect=Exception("model not mapped")
    ):
        await gateway.analyze_video_content(OWNER, "t", "d")

    assert (await store.get_by_id(cred.id)).quota_used == 5


@pytest.mark.asyncio
async def test_reported_usage_can_be_disabled(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store, use_reported_usage=False)
    response = completion("Title", usage=SimpleNamespace(total_tokens=120))

    with patch("litellm.acompletion", AsyncMock(return_value=response)), patch(
        "litellm.completion_cost", return_value=0.5
    ) as cost:
        await gateway.generate_optimized_title(OWNER, "t", [])

    cost.assert_not_called()
    assert (await store.get_by_id(cred.id)).quota_used == 1


@pytest.mark.asyncio
async def test_tag_suggestions_parse_json_object(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)
    content = json.dumps({"tags": ["python tutorial", "asyncio", " "]})

    with patch("litellm.acompletion", AsyncMock(return_value=completion(content))) as mock:
        tags = await gateway.generate_tag_suggestions(OWNER, "t", "d", ["old"])

    assert tags == ["python tutorial", "asyncio"]
    assert mock.await_args.kwargs["response_format"] == {"type": "json_object"}
    assert (await store.get_by_id(cred.id)).quota_used == 2


@pytest.mark.asyncio
async def test_malformed_tag_json_returns_empty_but_charges(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)

    with patch("litellm.acompletion", AsyncMock(return_value=completion("not json"))):
        tags = await gateway.generate_tag_suggestions(OWNER, "t", "d")

    assert tags == []
    assert (await store.get_by_id(cred.id)).quota_used == 2


@pytest.mark.asyncio
async def test_malformed_analysis_returns_none(store, seed):
    await seed_openai(seed)
    gateway = make_gateway(store)

    with patch("litellm.acompletion", AsyncMock(return_value=completion("{oops"))):
        assert await gateway.analyze_video_content(OWNER, "t", "d") is None


@pytest.mark.asyncio
async def test_analysis_returns_parsed_object(store, seed):
    await seed_openai(seed)
    gateway = make_gateway(store)
    analysis = {"score": 72, "issues": ["short title"], "suggestions": {"tags": ["x"]}}

    with patch(
        "litellm.acompletion", AsyncMock(return_value=completion(json.dumps(analysis)))
    ):
        assert await gateway.analyze_video_content(OWNER, "t", "d") == analysis


@pytest.mark.asyncio
async def test_unauthorized_is_rejection(store, seed):
    cred = await seed_openai(seed)
    gateway = make_gateway(store)

    with patch(
        "litellm.acompletion",
        AsyncMock(side_effect=FakeAPIError("Incorrect API key provided", 401)),
    ):
        with pytest.raises(CredentialRejectedError):
            await gateway.generate_optimized_title(OWNER, "t", [])

    assert gateway.current_selection(OWNER) is None
    assert (await store.get_by_id(cred.id)).quota_used == 0


@pytest.mark.asyncio
async def test_rate_limit_is_transient_failure(store, seed):
    await seed_openai(seed)
    gateway = make_gateway(store)

    with patch(
        "litellm.acompletion",
        AsyncMock(side_effect=FakeAPIError("Rate limit reached for requests", 429)),
    ):
        with pytest.raises(RemoteProviderError) as exc_info:
            await gateway.generate_optimized_title(OWNER, "t", [])

    assert not isinstance(exc_info.value, CredentialRejectedError)
    assert gateway.current_selection(OWNER) is not None


def test_negative_cost_estimate_is_rejected():
    with pytest.raises(ValueError):
        OpenAIGateway(AsyncMock(), AsyncMock(), cost_estimates={"title": -0.01})


def test_non_positive_dollars_per_unit_is_rejected():
    with pytest.raises(ValueError):
        OpenAIGateway(AsyncMock(), AsyncMock(), dollars_per_unit=0)


class TestClassifyError:
    def setup_method(self):
        self.gateway = OpenAIGateway(AsyncMock(), AsyncMock())

    def test_insufficient_quota_is_rejection(self):
        error = FakeAPIError(
            "You exceeded your current quota, please check your plan and billing details.",
            429,
        )
        result = self.gateway.classify_error(error)
        assert result.kind is CallOutcome.REJECTED_AS_EXHAUSTED
        assert result.status_code == 429

    def test_forbidden_is_rejection(self):
        result = self.gateway.classify_error(FakeAPIError("forbidden", 403))
        assert result.kind is CallOutcome.REJECTED_AS_EXHAUSTED

    def test_server_error_is_failure(self):
        result = self.gateway.classify_error(FakeAPIError("server error", 500))
        assert result.kind is CallOutcome.FAILED

    def test_timeout_without_status_is_failure(self):
        result = self.gateway.classify_error(TimeoutError("timed out"))
        assert result.kind is CallOutcome.FAILED
        assert result.status_code is None


class TestParseTagSuggestions:
    def test_bare_array(self):
        assert parse_tag_suggestions('["a", "b"]') == ["a", "b"]

    def test_empty_content(self):
        assert parse_tag_suggestions(None) == []
        assert parse_tag_suggestions("") == []

    def test_non_list_tags(self):
        assert parse_tag_suggestions('{"tags": "a, b"}') == []
        assert parse_tag_suggestions('{"keywords": ["a"]}') == []
