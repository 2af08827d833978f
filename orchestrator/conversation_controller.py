"""Conversation Controller - orchestrates one chat turn.

The controller is a single-use state machine:

    PENDING -> AWAITING_CLARIFICATION               questions returned, nothing composed
    PENDING -> COMPOSING -> DELIVERED               reply streamed, then validated
    PENDING | COMPOSING -> FAILED | CANCELLED       context/upstream error, or caller cancel

Per turn it:
1. Resolves a slash-command intent
2. Reads the ProjectContext for the root it is given
3. Asks the analyzer whether to stop and ask clarifying questions
4. Composes the prompt and relays streamed fragments to the caller in order
5. Validates the full reply and attaches findings as follow-ups

Concurrent turns use separate controllers; nothing mutable is shared.
"""

import asyncio
import inspect
import logging
import uuid
from pathlib import Path
from typing import AsyncIterator, Awaitable, Callable, List, Optional, Union

from contracts import ChatRequest, ComposedPrompt, TurnResult, TurnState
from composer import PromptComposer
from errors import ContextReadError, UpstreamFailure, UpstreamTimeout
from providers import LLMProvider, get_provider
from router import MissingInfoAnalyzer, resolve_intent
from validator import ResponseValidator
from workspace import ProjectContextReader
from config import settings

logger = logging.getLogger(__name__)

# Caller sink for relayed fragments; may be sync or async
FragmentSink = Callable[[str], Optional[Awaitable[None]]]

_END = object()
_CANCELLED = object()

_TERMINAL_STATES = {
    TurnState.AWAITING_CLARIFICATION,
    TurnState.DELIVERED,
    TurnState.FAILED,
    TurnState.CANCELLED,
}


async def _pull(iterator: AsyncIterator[str]):
    try:
        return await iterator.__anext__()
    except StopAsyncIteration:
        return _END


async def _discard(task: "asyncio.Future") -> None:
    """Cancel a pending fetch and wait for it to unwind."""
    if task.done():
        if not task.cancelled():
            task.exception()  # mark retrieved
        return
    task.cancel()
    try:
        await task
    except asyncio.CancelledError:
        pass
    except Exception as e:
        logger.debug("discarded fragment fetch raised: %s", e)


class ConversationController:
    """Handles exactly one request/response turn."""

    def __init__(
        self,
        client: LLMProvider,
        reader: Optional[ProjectContextReader] = None,
        analyzer: Optional[MissingInfoAnalyzer] = None,
        composer: Optional[PromptComposer] = None,
        validator: Optional[ResponseValidator] = None,
        stall_timeout: Optional[float] = None,
    ):
        """Initialize the controller.

        Args:
            client: Streaming model client for this turn
            reader: Project context reader (may share a ContextCache with other turns)
            analyzer: Missing-information analyzer
            composer: Prompt composer
            validator: Response validator
            stall_timeout: Seconds to wait for the next fragment.
                           Defaults to config setting.
        """
        self.client = client
        self.reader = reader or ProjectContextReader()
        self.analyzer = analyzer or MissingInfoAnalyzer()
        self.composer = composer or PromptComposer()
        self.validator = validator or ResponseValidator()
        if stall_timeout is None:
            stall_timeout = settings.upstream_stall_timeout_seconds
        if stall_timeout <= 0:
            raise ValueError(f"stall_timeout must be positive, got {stall_timeout!r}")
        self.stall_timeout = stall_timeout

        self.turn_id = uuid.uuid4().hex[:8]
        self.state = TurnState.PENDING
        self._started = False

    @property
    def is_terminal(self) -> bool:
        return self.state in _TERMINAL_STATES

    def _transition(self, new_state: TurnState) -> None:
        logger.debug("turn %s: %s -> %s", self.turn_id, self.state.value, new_state.value)
        self.state = new_state

    async def run(
        self,
        request: ChatRequest,
        project_root: Union[str, Path],
        on_fragment: Optional[FragmentSink] = None,
        cancel_token: Optional[asyncio.Event] = None,
    ) -> TurnResult:
        """Run the turn to a terminal state.

        Args:
            request: The user's request
            project_root: Root of the project to read context from
            on_fragment: Called with each fragment, in the order received
            cancel_token: Set by the caller to cancel before delivery

        Returns:
            TurnResult with either questions or the streamed reply and findings

        Raises:
            ContextReadError: Project root unreadable (state FAILED)
            UpstreamTimeout: Model stream stalled (state FAILED)
            UpstreamFailure: Model client errored (state FAILED)
            RuntimeError: If the controller was already used
            Exception: Anything on_fragment raises is re-raised (state FAILED)
        """
        if self._started:
            raise RuntimeError("ConversationController is single-use; create one per turn")
        self._started = True
        cancel_token = cancel_token or asyncio.Event()

        request = resolve_intent(request)

        try:
            context = self.reader.read(project_root)
        except ContextReadError as e:
            logger.error("turn %s: %s", self.turn_id, e)
            self._transition(TurnState.FAILED)
            raise

        questions = self.analyzer.analyze(request, context)
        if questions:
            self._transition(TurnState.AWAITING_CLARIFICATION)
            return TurnResult(state=self.state, questions=questions)

        if cancel_token.is_set():
            self._transition(TurnState.CANCELLED)
            return TurnResult(state=self.state)

        self._transition(TurnState.COMPOSING)
        prompt = self.composer.compose(request, request.intent, context)

        fragments: List[str] = []
        try:
            completed = await self._relay(prompt, cancel_token, on_fragment, fragments)
        except asyncio.CancelledError:
            self._transition(TurnState.CANCELLED)
            raise
        except UpstreamFailure as e:
            logger.error("turn %s: %s", self.turn_id, e)
            self._transition(TurnState.FAILED)
            raise
        except Exception:
            logger.exception("turn %s: fragment sink failed", self.turn_id)
            self._transition(TurnState.FAILED)
            raise

        response = "".join(fragments)
        if not completed:
            # No validation on a partial reply
            self._transition(TurnState.CANCELLED)
            return TurnResult(state=self.state, prompt=prompt, response=response)

        findings = self.validator.validate(response, context.constraints)
        self._transition(TurnState.DELIVERED)
        return TurnResult(
            state=self.state,
            prompt=prompt,
            response=response,
            findings=findings,
            unchecked_constraints=self.validator.unchecked(context.constraints),
        )

    async def _relay(
        self,
        prompt: ComposedPrompt,
        cancel_token: asyncio.Event,
        on_fragment: Optional[FragmentSink],
        fragments: List[str],
    ) -> bool:
        """Relay fragments until the stream ends (True) or the turn is cancelled (False)."""
        iterator = self.client.stream(prompt, cancel_token).__aiter__()
        try:
            while True:
                if cancel_token.is_set():
                    return False
                fragment = await self._next_fragment(iterator, cancel_token, fragments)
                if fragment is _CANCELLED:
                    return False
                if fragment is _END:
                    return True
                fragments.append(fragment)
                if on_fragment is not None:
                    result = on_fragment(fragment)
                    if inspect.isawaitable(result):
                        await result
        finally:
            aclose = getattr(iterator, "aclose", None)
            if aclose is not None:
                try:
                    await aclose()
                except RuntimeError as e:
                    logger.debug("turn %s: closing stream: %s", self.turn_id, e)

    async def _next_fragment(
        self,
        iterator: AsyncIterator[str],
        cancel_token: asyncio.Event,
        fragments: List[str],
    ):
        """Wait for the next fragment, a cancel, or the stall timeout, whichever is first."""
        fetch = asyncio.ensure_future(_pull(iterator))
        waiter = asyncio.ensure_future(cancel_token.wait())
        try:
            done, _ = await asyncio.wait(
                {fetch, waiter},
                timeout=self.stall_timeout,
                return_when=asyncio.FIRST_COMPLETED,
            )
        except asyncio.CancelledError:
            await _discard(fetch)
            raise
        finally:
            waiter.cancel()

        # Cancel wins over a fragment that arrived at the same time
        if cancel_token.is_set():
            await _discard(fetch)
            return _CANCELLED

        if fetch not in done:
            await _discard(fetch)
            raise UpstreamTimeout(self.stall_timeout, partial="".join(fragments))

        try:
            return fetch.result()
        except UpstreamFailure:
            raise
        except TimeoutError as e:
            raise UpstreamTimeout(self.stall_timeout, partial="".join(fragments)) from e
        except Exception as e:
            raise UpstreamFailure(
                f"model stream failed: {e}",
                partial="".join(fragments),
            ) from e


async def run_turn(
    request: ChatRequest,
    project_root: Union[str, Path],
    client: Optional[LLMProvider] = None,
    on_fragment: Optional[FragmentSink] = None,
    cancel_token: Optional[asyncio.Event] = None,
    reader: Optional[ProjectContextReader] = None,
) -> TurnResult:
    """Convenience function for running one turn with a fresh controller.

    Args:
        request: The user's request
        project_root: Root of the project to read context from
        client: Model client (default: provider from settings)
        on_fragment: Fragment sink
        cancel_token: Cancellation token
        reader: Optional shared reader (e.g. with a ContextCache)

    Returns:
        TurnResult
    """
    if client is None:
        client = get_provider()
    controller = ConversationController(client, reader=reader)
    return await controller.run(request, project_root, on_fragment, cancel_token)
