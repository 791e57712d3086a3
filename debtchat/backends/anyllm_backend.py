"""Chat backend built on any_llm with automatic tool execution.

The backend runs the tool loop itself: when the model asks for tools, the
calls are dispatched through the registry, their results are appended as
tool messages and the model is asked again, up to ``max_tool_iterations``
rounds. Streaming follows the same loop; text deltas are forwarded as they
arrive and tool-call fragments are assembled before dispatch.

Provider errors are classified into the ``BackendError`` family and rate
limit / connection errors are retried with exponential backoff.
"""

import asyncio
import json
import logging
import time
from collections.abc import AsyncIterator, Mapping, Sequence
from typing import Any

from any_llm import acompletion as any_llm_acompletion
from any_llm.types.completion import ChatCompletion
from tenacity import (
    AsyncRetrying,
    before_sleep_log,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential,
)

from debtchat.backends.base import ChatBackend
from debtchat.config import get_settings
from debtchat.errors import (
    BackendError,
    InvalidRequestError,
    classify_backend_error,
    should_retry_error,
)
from debtchat.logging_config import get_logger
from debtchat.models.conversation import ChatResponse, ChatResponseUpdate, Message, Role
from debtchat.models.tool import ToolCall, ToolDefinition
from debtchat.telemetry import record_token_usage, set_span_attributes, trace_llm_call, trace_tool_call

logger = get_logger(__name__)

MAX_ITERATIONS_MESSAGE = "Maximum tool execution iterations reached."


def _extract_token_usage(response: ChatCompletion) -> dict[str, int] | None:
    """Extract token usage from a ChatCompletion response safely.

    Returns:
        Dictionary with 'prompt', 'completion', and 'total' token counts,
        or None if usage information is not available.
    """
    if not hasattr(response, "usage") or not response.usage:
        return None

    usage = response.usage
    prompt_tokens = getattr(usage, "prompt_tokens", None)
    completion_tokens = getattr(usage, "completion_tokens", None)
    total_tokens = getattr(usage, "total_tokens", None)

    return {
        "prompt": int(prompt_tokens) if isinstance(prompt_tokens, (int, float)) else 0,
        "completion": int(completion_tokens) if isinstance(completion_tokens, (int, float)) else 0,
        "total": int(total_tokens) if isinstance(total_tokens, (int, float)) else 0,
    }


async def _safe_llm_call(
    messages: list[dict],
    model: str,
    tools: list[dict] | None = None,
    stream: bool = False,
    timeout: float | None = None,
    api_key: str | None = None,
) -> ChatCompletion | AsyncIterator[Any]:
    """Make one LLM call with error classification and tracing.

    Args:
        messages: Wire message dictionaries
        model: Model identifier ("provider:model_name")
        tools: Optional OpenAI-style tool schemas
        stream: Whether to stream the response
        timeout: Request timeout in seconds (defaults to settings.request_timeout)
        api_key: Optional API key override

    Returns:
        ChatCompletion if stream=False, an async iterator of chunks if stream=True

    Raises:
        TimeoutError: If the request exceeds the timeout
        BackendError: Any provider failure, classified
    """
    settings = get_settings()
    timeout = min(timeout or settings.request_timeout, settings.max_request_timeout)

    start_time = time.time()
    logger.debug(
        f"Making LLM call: model={model}, stream={stream}, has_tools={bool(tools)}, "
        f"message_count={len(messages)}, timeout={timeout}s"
    )

    extra: dict[str, Any] = {}
    if api_key:
        extra["api_key"] = api_key

    try:
        with trace_llm_call(model=model, messages=messages, tools=tools, stream=stream) as span:
            response = await asyncio.wait_for(
                any_llm_acompletion(
                    model=model,
                    messages=messages,
                    tools=tools if tools else None,
                    stream=stream,
                    **extra,
                ),
                timeout=timeout,
            )

            elapsed_time = time.time() - start_time

            if stream:
                logger.debug(f"LLM call streaming started: model={model}, latency={elapsed_time:.3f}s")
                return response

            tokens_used = _extract_token_usage(response)
            if tokens_used:
                record_token_usage(span, tokens_used)
                logger.info(
                    f"LLM call completed: model={model}, latency={elapsed_time:.3f}s, "
                    f"tokens={tokens_used['total']} (prompt={tokens_used['prompt']}, "
                    f"completion={tokens_used['completion']})"
                )

            if getattr(response, "choices", None):
                choice = response.choices[0]
                finish_reason = getattr(choice, "finish_reason", "unknown")
                has_tool_calls = bool(getattr(choice.message, "tool_calls", None))
                set_span_attributes(
                    span,
                    **{
                        "llm.response.finish_reason": finish_reason,
                        "llm.response.has_tool_calls": has_tool_calls,
                    },
                )
                logger.debug(f"Response metadata: finish_reason={finish_reason}, has_tool_calls={has_tool_calls}")

            return response

    except TimeoutError:
        elapsed_time = time.time() - start_time
        logger.error(f"LLM call timed out after {elapsed_time:.3f}s (timeout={timeout}s): model={model}")
        raise
    except Exception as e:
        elapsed_time = time.time() - start_time
        classified_error = classify_backend_error(e)
        logger.error(
            f"LLM call failed after {elapsed_time:.3f}s: model={model}, error={classified_error}, "
            f"error_type={type(classified_error).__name__}",
            exc_info=True,
        )
        raise classified_error from e


def _parse_tool_calls(raw_calls: Any) -> list[ToolCall]:
    calls = []
    for index, raw in enumerate(raw_calls or []):
        function = raw.function
        calls.append(
            ToolCall(
                id=raw.id or f"call_{index}",
                name=function.name,
                arguments=function.arguments or "{}",
            )
        )
    return calls


class AnyLLMBackend(ChatBackend):
    """Chat backend over ``any_llm.acompletion`` that executes tools itself."""

    def __init__(
        self,
        model: str | None = None,
        api_key: str | None = None,
        max_tool_iterations: int | None = None,
        timeout: float | None = None,
        retry_max_attempts: int | None = None,
        retry_min_wait: float | None = None,
        retry_max_wait: float | None = None,
        retry_multiplier: float | None = None,
    ):
        """Initialize the backend.

        Args:
            model: Model identifier in format "provider:model_name" (defaults to settings.model)
            api_key: Provider API key (defaults to settings.api_key, then the provider's env var)
            max_tool_iterations: Maximum tool rounds per exchange (defaults to settings.max_tool_iterations)
            timeout: Per-call timeout in seconds (defaults to settings.request_timeout)
            retry_max_attempts: Attempts for retryable errors (defaults to settings.retry_max_attempts)
            retry_min_wait: Minimum backoff in seconds (defaults to settings.retry_min_wait)
            retry_max_wait: Maximum backoff in seconds (defaults to settings.retry_max_wait)
            retry_multiplier: Backoff multiplier (defaults to settings.retry_multiplier)
        """
        settings = get_settings()
        self.model = model or settings.model
        self.api_key = api_key or settings.api_key
        self.max_tool_iterations = max_tool_iterations or settings.max_tool_iterations
        self.timeout = timeout or settings.request_timeout
        self.retry_max_attempts = retry_max_attempts or settings.retry_max_attempts
        self.retry_min_wait = settings.retry_min_wait if retry_min_wait is None else retry_min_wait
        self.retry_max_wait = settings.retry_max_wait if retry_max_wait is None else retry_max_wait
        self.retry_multiplier = settings.retry_multiplier if retry_multiplier is None else retry_multiplier

    async def _llm_call_with_retry(
        self,
        messages: list[dict],
        tools: list[dict] | None,
        stream: bool = False,
    ) -> Any:
        """Make an LLM call, retrying rate limit and connection errors.

        Token limit, authentication, invalid request and timeout errors are
        raised immediately.
        """
        retrying = AsyncRetrying(
            retry=retry_if_exception(should_retry_error),
            stop=stop_after_attempt(self.retry_max_attempts),
            wait=wait_exponential(multiplier=self.retry_multiplier, min=self.retry_min_wait, max=self.retry_max_wait),
            before_sleep=before_sleep_log(logger, logging.WARNING),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                return await _safe_llm_call(
                    messages=messages,
                    model=self.model,
                    tools=tools,
                    stream=stream,
                    timeout=self.timeout,
                    api_key=self.api_key,
                )

    async def _execute_tool(self, call: ToolCall, tools: Mapping[str, ToolDefinition]) -> str:
        """Run one tool call; every failure becomes result text for the model."""
        tool = tools.get(call.name)
        if tool is None:
            error_msg = f"Tool '{call.name}' not found in available tools"
            logger.warning(error_msg)
            return error_msg

        try:
            arguments = json.loads(call.arguments) if call.arguments.strip() else {}
        except json.JSONDecodeError as e:
            error_msg = f"Invalid JSON in tool arguments: {str(e)}"
            logger.warning(f"Tool {call.name} - {error_msg}")
            return error_msg

        tool_start_time = time.time()
        with trace_tool_call(call.name, len(arguments) if isinstance(arguments, dict) else 0) as span:
            try:
                result = await tool.invoke(arguments)
            except Exception as e:
                tool_elapsed = time.time() - tool_start_time
                logger.warning(f"Tool {call.name} execution failed after {tool_elapsed:.3f}s: {e}", exc_info=True)
                set_span_attributes(span, **{"tool.success": False, "tool.error": str(e)})
                return f"Error executing tool: {type(e).__name__}: {str(e)}"

            tool_elapsed = time.time() - tool_start_time
            logger.info(f"Tool {call.name} executed successfully in {tool_elapsed:.3f}s")
            set_span_attributes(span, **{"tool.success": True})
            return result

    async def complete(
        self,
        messages: Sequence[Message],
        tools: Mapping[str, ToolDefinition],
    ) -> ChatResponse:
        """Run the tool loop until the model answers with text.

        Raises:
            TokenLimitError: If token limit is exceeded
            RateLimitError: If rate limit persists after retries
            APIConnectionError: If connection fails after retries
            AuthenticationError: If authentication fails
            InvalidRequestError: If request parameters are invalid or the response is empty
            TimeoutError: If a call exceeds the timeout
        """
        wire = [message.to_wire() for message in messages]
        schemas = [tool.to_schema() for tool in tools.values()] or None
        produced: list[Message] = []
        tool_calls_made = 0

        for iteration in range(self.max_tool_iterations):
            logger.debug(f"Tool execution iteration {iteration + 1}/{self.max_tool_iterations}")
            try:
                response = await self._llm_call_with_retry(wire, schemas)
            except BackendError as e:
                logger.error(f"LLM call failed on iteration {iteration + 1}/{self.max_tool_iterations}: {e}")
                raise

            if not response.choices:
                raise InvalidRequestError("Empty response from LLM provider")

            message = response.choices[0].message
            tool_calls = _parse_tool_calls(getattr(message, "tool_calls", None))

            if tool_calls:
                logger.info(f"Iteration {iteration + 1}: Model requested {len(tool_calls)} tool call(s)")
                assistant = Message(role=Role.ASSISTANT, content=message.content or "", tool_calls=tool_calls)
                produced.append(assistant)
                wire.append(assistant.to_wire())

                for call in tool_calls:
                    tool_calls_made += 1
                    result = await self._execute_tool(call, tools)
                    tool_message = Message(role=Role.TOOL, content=result, tool_call_id=call.id)
                    produced.append(tool_message)
                    wire.append(tool_message.to_wire())
                continue

            final_content = message.content or ""
            logger.info(
                f"Tool execution completed: total_tool_calls={tool_calls_made}, "
                f"final_response_length={len(final_content)}"
            )
            if final_content:
                produced.append(Message(role=Role.ASSISTANT, content=final_content))
            return ChatResponse(messages=produced)

        logger.warning(f"Max tool execution iterations ({self.max_tool_iterations}) reached")
        produced.append(Message(role=Role.ASSISTANT, content=MAX_ITERATIONS_MESSAGE))
        return ChatResponse(messages=produced)

    async def stream_complete(
        self,
        messages: Sequence[Message],
        tools: Mapping[str, ToolDefinition],
    ) -> AsyncIterator[ChatResponseUpdate]:
        """Stream the response, executing tools between rounds.

        Text deltas are yielded as soon as they arrive. When a round ends with
        tool calls, one update carries the assembled calls and one update per
        call carries its result; the next round then streams again.
        """
        wire = [message.to_wire() for message in messages]
        schemas = [tool.to_schema() for tool in tools.values()] or None
        message_index = 0

        for iteration in range(self.max_tool_iterations):
            logger.debug(f"Stream iteration {iteration + 1}/{self.max_tool_iterations}")
            stream = await self._llm_call_with_retry(wire, schemas, stream=True)

            text_parts: list[str] = []
            pending: dict[int, dict[str, str]] = {}
            try:
                async for chunk in stream:
                    if not getattr(chunk, "choices", None):
                        continue
                    delta = chunk.choices[0].delta
                    content = getattr(delta, "content", None)
                    if content:
                        text_parts.append(content)
                        yield ChatResponseUpdate(text=content, message_index=message_index)
                    for fragment in getattr(delta, "tool_calls", None) or []:
                        slot = pending.setdefault(fragment.index, {"id": "", "name": "", "arguments": ""})
                        if fragment.id:
                            slot["id"] = fragment.id
                        function = getattr(fragment, "function", None)
                        if function is not None:
                            if function.name:
                                slot["name"] = function.name
                            if function.arguments:
                                slot["arguments"] += function.arguments
            except BackendError:
                raise
            except Exception as e:
                classified_error = classify_backend_error(e)
                logger.error(f"LLM stream failed on iteration {iteration + 1}: {classified_error}", exc_info=True)
                raise classified_error from e

            tool_calls = [
                ToolCall(
                    id=slot["id"] or f"call_{iteration}_{position}",
                    name=slot["name"],
                    arguments=slot["arguments"] or "{}",
                )
                for position, slot in sorted(pending.items())
            ]
            if not tool_calls:
                logger.debug(f"Streaming completed: response_length={len(''.join(text_parts))}")
                return

            logger.info(f"Stream iteration {iteration + 1}: Model requested {len(tool_calls)} tool call(s)")
            yield ChatResponseUpdate(tool_calls=tool_calls, message_index=message_index)
            wire.append(
                Message(role=Role.ASSISTANT, content="".join(text_parts), tool_calls=tool_calls).to_wire()
            )

            for call in tool_calls:
                message_index += 1
                result = await self._execute_tool(call, tools)
                yield ChatResponseUpdate(
                    role=Role.TOOL,
                    tool_result=result,
                    tool_call_id=call.id,
                    message_index=message_index,
                )
                wire.append(Message(role=Role.TOOL, content=result, tool_call_id=call.id).to_wire())
            message_index += 1

        logger.warning(f"Max tool execution iterations ({self.max_tool_iterations}) reached")
        yield ChatResponseUpdate(text=MAX_ITERATIONS_MESSAGE, message_index=message_index)
