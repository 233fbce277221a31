"""Turns a prepared chat plan plus a provider adapter into a normalized event stream."""
import logging
import time
from contextlib import aclosing
from typing import AsyncIterator, List, Optional

from config import settings
from core.domain import (
    ChatPlan, ContentEvent, DoneEvent, ErrorEvent, MetadataEvent, PipelineState,
    StreamEvent, UpstreamError, UsageAccounting
)
from core.interfaces import ILLMProvider
from services.cost_estimator import estimate_cost
from utils.tokens import estimate_tokens

logger = logging.getLogger(settings.LOGGER_NAME)

GENERIC_STREAM_ERROR = "Unexpected error while streaming the response"


class StreamOrchestrator:
    """
    Event sequence for one chat query:

        metadata, content*, (done | error)

    The orchestrator never looks at provider wire formats; it only consumes the
    adapter's fragment iterator. Closing the event iterator early closes the
    adapter stream, which closes the upstream HTTP connection.
    """

    def __init__(
        self,
        plan: ChatPlan,
        provider: ILLMProvider,
        completion_token_mode: Optional[str] = None,
        started_at: Optional[float] = None
    ):
        self.plan = plan
        self.provider = provider
        self.completion_token_mode = completion_token_mode or settings.COMPLETION_TOKEN_MODE
        self.started_at = started_at
        self.state = PipelineState.CONTEXT_BUILT

    def _completion_tokens(self, fragments: List[str]) -> int:
        if self.completion_token_mode == "estimate":
            return sum(estimate_tokens(fragment) for fragment in fragments)
        return len(fragments)

    def account(self, fragments: List[str]) -> UsageAccounting:
        context_tokens = self.plan.context.tokens
        prompt_tokens = self.plan.prompt_tokens
        completion_tokens = self._completion_tokens(fragments)
        cost = estimate_cost(context_tokens + prompt_tokens, completion_tokens, self.plan.params.model)
        return UsageAccounting(
            context_tokens=context_tokens,
            prompt_tokens=prompt_tokens,
            completion_tokens=completion_tokens,
            cost=cost,
        )

    async def events(self) -> AsyncIterator[StreamEvent]:
        started = self.started_at if self.started_at is not None else time.perf_counter()

        yield MetadataEvent(
            sources=tuple(self.plan.sources),
            context_tokens=self.plan.context.tokens,
            prompt_tokens=self.plan.prompt_tokens,
        )

        self.state = PipelineState.STREAMING
        fragments: List[str] = []
        try:
            async with aclosing(self.provider.stream(self.plan.prompt, self.plan.params)) as fragment_stream:
                async for fragment in fragment_stream:
                    fragments.append(fragment)
                    yield ContentEvent(content=fragment)
            usage = self.account(fragments)
        except UpstreamError as e:
            self.state = PipelineState.ERRORED
            logger.error(f"Upstream failure from {self.plan.provider} after {len(fragments)} fragments: {e}")
            yield ErrorEvent(error=e.message)
            return
        except Exception as e:
            self.state = PipelineState.ERRORED
            logger.error(f"Stream for {self.plan.provider} failed: {e}", exc_info=True)
            yield ErrorEvent(error=GENERIC_STREAM_ERROR)
            return

        response_time = int((time.perf_counter() - started) * 1000)
        self.state = PipelineState.DONE
        logger.info(
            f"Completed {self.plan.provider}/{self.plan.params.model} stream: "
            f"tokens={usage.tokens_dict()} cost={usage.cost} time={response_time}ms"
        )
        yield DoneEvent(usage=usage, response_time=response_time)
