"""Tests for the ConversationController turn state machine."""

import asyncio
from unittest.mock import Mock

import pytest

from composer import PromptComposer
from contracts import ChatRequest, TurnState
from errors import ContextReadError, UpstreamFailure, UpstreamTimeout
from orchestrator import ConversationController, run_turn
from router import MissingInfoAnalyzer
from validator import ResponseValidator
from workspace import ProjectContextReader


INFRA_A = ChatRequest(text="Create IaC for Fargate service", intent="infrastructure")
INFRA_B = ChatRequest(text="Create IaC for AWS Fargate service", intent="infrastructure")


class TestClarification:
    """Scenario A: missing signal stops the turn before composition."""

    @pytest.mark.asyncio
    async def test_missing_cloud_provider_asks_and_never_composes(self, infra_project, scripted_provider):
        provider = scripted_provider(["should not stream"])
        composer = Mock(wraps=PromptComposer())
        controller = ConversationController(provider, composer=composer)

        result = await controller.run(INFRA_A, infra_project)

        assert result.state == TurnState.AWAITING_CLARIFICATION
        assert controller.state == TurnState.AWAITING_CLARIFICATION
        assert controller.is_terminal
        assert len(result.questions) == 1
        assert "cloud provider" in result.questions[0].question.lower()
        assert result.prompt is None
        composer.compose.assert_not_called()
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_slash_command_resolves_intent(self, infra_project, scripted_provider):
        provider = scripted_provider(["x"])
        request = ChatRequest(text="/infra Create IaC for Fargate service")
        result = await ConversationController(provider).run(request, infra_project)
        assert result.needs_clarification
        assert provider.prompts == []


class TestDelivery:
    """Scenario B: enough context, stream and validate."""

    @pytest.mark.asyncio
    async def test_streams_in_order_and_validates(self, infra_project, scripted_provider):
        fragments = ["Here is ", "a CDK stack ", "that uses X for state."]
        provider = scripted_provider(fragments)
        received = []

        result = await ConversationController(provider).run(
            INFRA_B, infra_project, on_fragment=received.append
        )

        assert result.state == TurnState.DELIVERED
        assert received == fragments
        assert result.response == "".join(fragments)

        prompt = result.prompt.text
        assert "# TASK\n\nCreate IaC for AWS Fargate service" in prompt
        assert prompt.index("1. Never use X") < prompt.index("2. Always validate input")
        assert provider.prompts == [result.prompt]

        assert [f.constraint for f in result.findings] == ["Never use X"]
        assert result.unchecked_constraints == ["Always validate input"]

    @pytest.mark.asyncio
    async def test_async_sink(self, infra_project, scripted_provider):
        received = []

        async def sink(fragment):
            await asyncio.sleep(0)
            received.append(fragment)

        result = await ConversationController(scripted_provider(["a", "b"])).run(
            INFRA_B, infra_project, on_fragment=sink
        )
        assert received == ["a", "b"]
        assert result.state == TurnState.DELIVERED

    @pytest.mark.asyncio
    async def test_unknown_intent_proceeds(self, infra_project, scripted_provider):
        request = ChatRequest(text="Create IaC for Fargate service", intent="database")
        result = await ConversationController(scripted_provider(["ok"])).run(request, infra_project)
        assert result.state == TurnState.DELIVERED
        assert result.findings == []

    @pytest.mark.asyncio
    async def test_empty_project_renders_unknown(self, tmp_path, scripted_provider):
        result = await ConversationController(scripted_provider(["ok"])).run(INFRA_B, tmp_path)
        assert "- Framework: unknown" in result.prompt.text
        assert "none declared" in result.prompt.text


class TestCancellation:
    """Cancelled turns deliver nothing further and are never validated."""

    @pytest.mark.asyncio
    async def test_cancel_from_sink_stops_relay(self, infra_project, scripted_provider):
        provider = scripted_provider(["one ", "two ", "uses X ", "four"])
        validator = Mock(spec=ResponseValidator)
        token = asyncio.Event()
        received = []

        def sink(fragment):
            received.append(fragment)
            if len(received) == 2:
                token.set()

        controller = ConversationController(provider, validator=validator)
        result = await controller.run(INFRA_B, infra_project, on_fragment=sink, cancel_token=token)

        assert result.state == TurnState.CANCELLED
        assert received == ["one ", "two "]
        assert result.response == "one two "
        assert result.findings == []
        validator.validate.assert_not_called()
        assert provider.closed

    @pytest.mark.asyncio
    async def test_cancel_while_waiting_for_fragment(self, infra_project, scripted_provider):
        provider = scripted_provider(["one ", "two ", "three"], stall_at=2)
        validator = Mock(spec=ResponseValidator)
        token = asyncio.Event()
        received = []

        def sink(fragment):
            received.append(fragment)
            if len(received) == 2:
                # Fires while the controller waits on the stalled third fragment
                asyncio.get_running_loop().call_later(0.05, token.set)

        controller = ConversationController(provider, validator=validator, stall_timeout=10)
        result = await asyncio.wait_for(
            controller.run(INFRA_B, infra_project, on_fragment=sink, cancel_token=token),
            timeout=5,
        )

        assert result.state == TurnState.CANCELLED
        assert received == ["one ", "two "]
        validator.validate.assert_not_called()
        assert provider.closed

    @pytest.mark.asyncio
    async def test_cancelled_before_stream(self, infra_project, scripted_provider):
        provider = scripted_provider(["x"])
        token = asyncio.Event()
        token.set()
        result = await ConversationController(provider).run(INFRA_B, infra_project, cancel_token=token)
        assert result.state == TurnState.CANCELLED
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_task_cancellation(self, infra_project, scripted_provider):
        provider = scripted_provider(["one ", "two ", "three"], delay=0.01)
        validator = Mock(spec=ResponseValidator)
        controller = ConversationController(provider, validator=validator)
        holder = {}
        received = []

        def sink(fragment):
            received.append(fragment)
            holder["task"].cancel()

        holder["task"] = asyncio.create_task(
            controller.run(INFRA_B, infra_project, on_fragment=sink)
        )
        with pytest.raises(asyncio.CancelledError):
            await holder["task"]

        assert controller.state == TurnState.CANCELLED
        assert received == ["one "]
        validator.validate.assert_not_called()


class TestFailures:
    """Fatal errors are reported, not retried."""

    @pytest.mark.asyncio
    async def test_stall_raises_upstream_timeout(self, infra_project, scripted_provider):
        provider = scripted_provider(["partial ", "never"], stall_at=1)
        controller = ConversationController(provider, stall_timeout=0.05)

        with pytest.raises(UpstreamTimeout) as exc:
            await controller.run(INFRA_B, infra_project)

        assert exc.value.partial == "partial "
        assert controller.state == TurnState.FAILED
        assert len(provider.prompts) == 1

    @pytest.mark.asyncio
    async def test_client_error_raises_upstream_failure(self, infra_project, scripted_provider):
        provider = scripted_provider(["partial ", "never"], fail_at=1)
        controller = ConversationController(provider)

        with pytest.raises(UpstreamFailure) as exc:
            await controller.run(INFRA_B, infra_project)

        assert not isinstance(exc.value, UpstreamTimeout)
        assert isinstance(exc.value.__cause__, ConnectionError)
        assert exc.value.partial == "partial "
        assert controller.state == TurnState.FAILED

    @pytest.mark.asyncio
    async def test_unreadable_root(self, tmp_path, scripted_provider):
        provider = scripted_provider(["x"])
        controller = ConversationController(provider)

        with pytest.raises(ContextReadError):
            await controller.run(INFRA_B, tmp_path / "missing")

        assert controller.state == TurnState.FAILED
        assert provider.prompts == []

    @pytest.mark.asyncio
    async def test_single_use(self, infra_project, scripted_provider):
        controller = ConversationController(scripted_provider(["x"]))
        await controller.run(INFRA_B, infra_project)
        with pytest.raises(RuntimeError):
            await controller.run(INFRA_B, infra_project)


class TestConcurrency:
    """Independent controllers never interleave output."""

    @pytest.mark.asyncio
    async def test_parallel_turns(self, make_project, scripted_provider):
        root_a = make_project(constraints="- Never use X\n", name="a")
        root_b = make_project(constraints="- Never use Y\n", name="b")
        out_a, out_b = [], []

        first = ConversationController(scripted_provider(["a1", "a2", "a3"], delay=0.01)).run(
            INFRA_B, root_a, on_fragment=out_a.append
        )
        second = ConversationController(scripted_provider(["b1", "b2", "b3"], delay=0.005)).run(
            INFRA_B, root_b, on_fragment=out_b.append
        )
        result_a, result_b = await asyncio.gather(first, second)

        assert out_a == ["a1", "a2", "a3"]
        assert out_b == ["b1", "b2", "b3"]
        assert "Never use X" in result_a.prompt.text
        assert "Never use Y" in result_b.prompt.text

    @pytest.mark.asyncio
    async def test_run_turn_with_shared_reader(self, infra_project, scripted_provider):
        reader = ProjectContextReader()
        result = await run_turn(INFRA_B, infra_project, client=scripted_provider(["ok"]), reader=reader)
        assert result.state == TurnState.DELIVERED


class TestNoPrematureComposition:
    """Analyzer and composer agree on the request they see."""

    def test_scenario_b_analysis_is_empty(self, infra_project):
        context = ProjectContextReader().read(infra_project)
        assert MissingInfoAnalyzer().analyze(INFRA_B, context) == []
        assert len(MissingInfoAnalyzer().analyze(INFRA_A, context)) == 1


class TestControllerGuards:
    """Sink errors and bad timeouts never leave a turn half-finished."""

    @pytest.mark.asyncio
    async def test_sink_error_fails_the_turn(self, infra_project, scripted_provider):
        provider = scripted_provider(["one ", "two "])
        validator = Mock(spec=ResponseValidator)
        controller = ConversationController(provider, validator=validator)

        def sink(fragment):
            raise BrokenPipeError("editor went away")

        with pytest.raises(BrokenPipeError):
            await controller.run(INFRA_B, infra_project, on_fragment=sink)

        assert controller.state == TurnState.FAILED
        assert controller.is_terminal
        assert provider.closed
        validator.validate.assert_not_called()

    @pytest.mark.parametrize("timeout", [0, -1.5])
    def test_non_positive_stall_timeout_rejected(self, scripted_provider, timeout):
        with pytest.raises(ValueError):
            ConversationController(scripted_provider(["x"]), stall_timeout=timeout)

    def test_stall_timeout_defaults_to_settings(self, scripted_provider):
        from config import settings

        controller = ConversationController(scripted_provider(["x"]))
        assert controller.stall_timeout == settings.upstream_stall_timeout_seconds
