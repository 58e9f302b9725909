"""
Tests for LLM Module

Tests OpenAIChat and LLMResult against scripted completion providers.
"""

import dataclasses
from unittest.mock import MagicMock, patch

import pytest

from minichain.core.completions import CompletionProvider, OpenAIChatCompletionProvider, TokenUsage
from minichain.core.llm import Generation, LLMResult, OpenAIChat
from minichain.core.models import ChatModel
from minichain.exceptions import (
    CompletionProviderError,
    EmptyResult,
    InvalidArgument,
    UnsupportedModel,
    UpstreamProtocolError,
)

MODEL_DATA = [
    (None, "gpt-3.5-turbo"),
    ("gpt-3.5-turbo", "gpt-3.5-turbo"),
    ("gpt-4", "gpt-4"),
]


class TestLLMResult:
    """Tests for the LLMResult dataclass."""

    def test_first_generation_text(self):
        result = LLMResult(generations=((Generation("a"), Generation("b")), (Generation("c"),)))
        assert result.get_first_generation_text() == "a"

    def test_empty_first_batch(self):
        result = LLMResult(generations=((), (Generation("c"),)))

        with pytest.raises(EmptyResult):
            result.get_first_generation_text()

    def test_no_batches(self):
        with pytest.raises(EmptyResult):
            LLMResult().get_first_generation_text()

    def test_empty_result_is_lookup_error(self):
        with pytest.raises(LookupError):
            LLMResult().get_first_generation_text()

    def test_get_generations(self):
        result = LLMResult(generations=((Generation("a"),), ()))
        assert result.get_generations() == [[Generation("a")], []]

    def test_llm_output(self):
        result = LLMResult(token_usage=TokenUsage(23, 4, 27), model_name="gpt-4")

        assert result.get_llm_output() == {
            "token_usage": {
                "prompt_tokens": 23,
                "completion_tokens": 4,
                "total_tokens": 27,
            },
        }

    def test_is_immutable(self):
        result = LLMResult()
        with pytest.raises(dataclasses.FrozenInstanceError):
            result.model_name = "gpt-4"


class TestOpenAIChat:
    """Tests for OpenAIChat."""

    @pytest.mark.parametrize("input_model, resulting_model", MODEL_DATA)
    def test_call(self, scripted_provider, make_chat_payload, input_model, resulting_model):
        provider = scripted_provider([make_chat_payload(["Happy Feet Co."], model=resulting_model)])
        llm = OpenAIChat(completion_provider=provider, model_name=input_model)

        answer = llm("What would be a good company name for a company that makes colorful socks?")

        assert answer == "Happy Feet Co."
        assert provider.calls[0]["model"] is ChatModel(resulting_model)

    @pytest.mark.parametrize("input_model, resulting_model", MODEL_DATA)
    def test_to_dict(self, scripted_provider, input_model, resulting_model):
        provider = scripted_provider([])
        llm = OpenAIChat(completion_provider=provider, model_name=input_model)

        assert llm.to_dict() == {
            "model_name": resulting_model,
            "model_kwargs": {},
        }
        assert provider.calls == []

    @pytest.mark.parametrize("input_model, resulting_model", MODEL_DATA)
    def test_generate(self, scripted_provider, make_chat_payload, input_model, resulting_model):
        provider = scripted_provider([make_chat_payload(["Happy Feet Co."], model=resulting_model)])
        llm = OpenAIChat(completion_provider=provider, model_name=input_model)

        result = llm.generate(["Tell me a joke"])

        assert result.get_first_generation_text() == "Happy Feet Co."
        answers = [gen.text for batch in result.get_generations() for gen in batch]
        assert answers == ["Happy Feet Co."]
        assert result.get_llm_output() == {
            "token_usage": {
                "prompt_tokens": 23,
                "completion_tokens": 4,
                "total_tokens": 27,
            },
        }
        assert result.model_name == resulting_model

    def test_finish_reason_in_generation_info(self, scripted_provider, happy_feet_payload):
        llm = OpenAIChat(completion_provider=scripted_provider([happy_feet_payload]))

        generation = llm.generate(["Tell me a joke"]).get_generations()[0][0]

        assert generation == Generation("Happy Feet Co.", {"finish_reason": "stop"})

    def test_missing_finish_reason(self, scripted_provider, make_chat_payload):
        llm = OpenAIChat(completion_provider=scripted_provider([make_chat_payload(["x"], finish_reason=None)]))

        generation = llm.generate(["p"]).get_generations()[0][0]

        assert generation.generation_info is None

    def test_usage_is_summed_across_prompts(self, scripted_provider, make_chat_payload):
        provider = scripted_provider([
            make_chat_payload(["first answer"]),
            make_chat_payload(["second answer"]),
        ])
        llm = OpenAIChat(completion_provider=provider)

        result = llm.generate(["p1", "p2"])

        assert result.get_llm_output() == {
            "token_usage": {
                "prompt_tokens": 46,
                "completion_tokens": 8,
                "total_tokens": 54,
            },
        }
        assert [[g.text for g in batch] for batch in result.get_generations()] == [
            ["first answer"],
            ["second answer"],
        ]
        assert [call["prompt"] for call in provider.calls] == ["p1", "p2"]

    def test_mixed_usage_sum(self, scripted_provider, make_chat_payload):
        provider = scripted_provider([
            make_chat_payload(["a"], usage=(10, 1, 11)),
            make_chat_payload(["b"], usage=(5, 7, 12)),
            make_chat_payload(["c"], usage=(0, 0, 0)),
        ])

        result = OpenAIChat(completion_provider=provider).generate(["1", "2", "3"])

        assert result.token_usage == TokenUsage(15, 8, 23)

    def test_multiple_choices_keep_rank_order(self, scripted_provider, make_chat_payload):
        payload = make_chat_payload(["best", "second", "third"])
        payload["choices"] = [payload["choices"][2], payload["choices"][0], payload["choices"][1]]
        llm = OpenAIChat(completion_provider=scripted_provider([payload]), n=3)

        result = llm.generate(["p"])

        assert [g.text for g in result.get_generations()[0]] == ["best", "second", "third"]
        assert result.get_first_generation_text() == "best"

    def test_zero_choices(self, scripted_provider, make_chat_payload):
        llm = OpenAIChat(completion_provider=scripted_provider([make_chat_payload([])]))

        result = llm.generate(["p"])

        assert result.get_generations() == [[]]
        assert result.token_usage == TokenUsage(23, 4, 27)
        with pytest.raises(EmptyResult):
            result.get_first_generation_text()

    def test_call_on_zero_choices_raises(self, scripted_provider, make_chat_payload):
        llm = OpenAIChat(completion_provider=scripted_provider([make_chat_payload([])]))

        with pytest.raises(EmptyResult):
            llm("p")

    def test_call_matches_generate(self, scripted_provider, make_chat_payload):
        payloads = [make_chat_payload(["one", "two"]), make_chat_payload(["one", "two"])]
        provider = scripted_provider(payloads)
        llm = OpenAIChat(completion_provider=provider)

        via_call = llm.call("same prompt", stop=["END"])
        via_generate = llm.generate(["same prompt"], stop=["END"]).get_first_generation_text()

        assert via_call == via_generate == "one"
        assert provider.calls[0] == provider.calls[1]

    def test_options(self, scripted_provider, happy_feet_payload):
        provider = scripted_provider([happy_feet_payload])
        llm = OpenAIChat(
            completion_provider=provider,
            model_kwargs={"top_p": 0.5, "temperature": 0.1},
            temperature=0.9,
            max_tokens=64,
            n=2
        )

        llm.generate(["p"], stop=["\n", "Human:"])

        assert provider.calls[0]["options"] == {
            "temperature": 0.1,
            "max_tokens": 64,
            "n": 2,
            "top_p": 0.5,
            "stop": ["\n", "Human:"],
        }

    def test_stop_omitted_when_not_given(self, scripted_provider, happy_feet_payload):
        provider = scripted_provider([happy_feet_payload])

        OpenAIChat(completion_provider=provider, temperature=0.0).generate(["p"])

        assert provider.calls[0]["options"] == {"temperature": 0.0}

    def test_to_dict_with_kwargs(self, scripted_provider):
        llm = OpenAIChat(completion_provider=scripted_provider([]), model_kwargs={"top_p": 0.5})

        assert llm.to_dict() == {"model_name": "gpt-3.5-turbo", "model_kwargs": {"top_p": 0.5}}

    def test_identifying_params(self, scripted_provider):
        llm = OpenAIChat(completion_provider=scripted_provider([]), model_name="gpt-4", temperature=0.2)

        assert llm.llm_type == "openai-chat"
        assert llm.identifying_params["model_name"] == "gpt-4"
        assert llm.identifying_params["temperature"] == 0.2

    def test_unsupported_model_fails_before_any_call(self):
        provider = MagicMock(spec=CompletionProvider)

        with pytest.raises(UnsupportedModel):
            OpenAIChat(completion_provider=provider, model_name="not-a-real-model")

        provider.complete.assert_not_called()

    @pytest.mark.parametrize("key", ["model", "model_name", "messages"])
    def test_reserved_model_kwargs_fail_before_any_call(self, key):
        provider = MagicMock(spec=CompletionProvider)

        with pytest.raises(InvalidArgument, match=key):
            OpenAIChat(completion_provider=provider, model_kwargs={key: "not-a-real-model"})

        provider.complete.assert_not_called()

    def test_request_carries_resolved_model(self, mock_http_response, happy_feet_payload):
        provider = OpenAIChatCompletionProvider(api_key="sk-test", base_url="https://api.test.local/v1")
        llm = OpenAIChat(completion_provider=provider, model_name="gpt-4", model_kwargs={"top_p": 0.5})

        with patch("minichain.core.transport.requests.post") as mock_post:
            mock_post.return_value = mock_http_response(json_data=happy_feet_payload)
            llm("hi")

        body = mock_post.call_args.kwargs["json"]
        assert body["model"] == llm.to_dict()["model_name"] == "gpt-4"
        assert body["messages"] == [{"role": "user", "content": "hi"}]
        assert body["top_p"] == 0.5

    @pytest.mark.parametrize("prompts", [[], (), "a single string"])
    def test_invalid_prompts(self, scripted_provider, prompts):
        provider = scripted_provider([])
        llm = OpenAIChat(completion_provider=provider)

        with pytest.raises(InvalidArgument):
            llm.generate(prompts)

        assert provider.calls == []

    def test_non_string_prompt(self, scripted_provider):
        llm = OpenAIChat(completion_provider=scripted_provider([]))

        with pytest.raises(InvalidArgument):
            llm.generate(["ok", 42])

    def test_provider_error_propagates_without_retry(self):
        error = CompletionProviderError("rate limited", status_code=429)
        provider = MagicMock(spec=CompletionProvider)
        provider.complete.side_effect = error
        llm = OpenAIChat(completion_provider=provider)

        with pytest.raises(CompletionProviderError) as exc_info:
            llm.generate(["p1", "p2"])

        assert exc_info.value is error
        assert provider.complete.call_count == 1

    def test_missing_usage_is_a_protocol_error(self, scripted_provider, make_chat_payload):
        provider = scripted_provider([
            make_chat_payload(["a"]),
            make_chat_payload(["b"], usage=None),
        ])
        llm = OpenAIChat(completion_provider=provider)

        with pytest.raises(UpstreamProtocolError):
            llm.generate(["p1", "p2"])

    def test_default_provider_is_built_from_settings(self):
        with patch("minichain.core.llm.OpenAIChatCompletionProvider") as provider_class:
            llm = OpenAIChat(model_name="gpt-4")

        provider_class.assert_called_once_with(prefix_messages=None)
        assert llm.completion_provider is provider_class.return_value

    def test_model_name_from_settings(self, scripted_provider):
        from minichain.config import settings

        with patch.object(settings.llm, "model_name", "gpt-4"):
            llm = OpenAIChat(completion_provider=scripted_provider([]))

        assert llm.model_name is ChatModel.GPT_4
