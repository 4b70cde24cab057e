"""
Model provider boundary for BrowserBot.

Defines the streaming provider interface consumed by the turn executor and
a LangChain implementation that drives OpenAI-compatible or Azure OpenAI
chat models with tool calling.
"""

import logging
from typing import Any, AsyncIterator, Callable, Optional, Protocol

from langchain_core.language_models import BaseChatModel
from langchain_core.messages import (
    AIMessage,
    BaseMessage,
    HumanMessage,
    SystemMessage,
    ToolMessage,
)
from langchain_openai import AzureChatOpenAI, ChatOpenAI

from .config import AgentConfig
from .errors import ToolExecutionError
from .types import (
    StreamEvent,
    TextFragment,
    ToolEnded,
    ToolSpec,
    ToolStarted,
    content_to_text,
)

logger = logging.getLogger(__name__)


class ModelProvider(Protocol):
    """Streams one model turn as ordered events."""

    def stream(
        self,
        prompt: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
        session_id: Optional[str] = None,
        history: Optional[list[dict[str, str]]] = None,
    ) -> AsyncIterator[StreamEvent]:
        ...


class ToolRunner(Protocol):
    """Tool surface a provider exposes to the model."""

    def list_tools(self) -> list[ToolSpec]:
        ...

    async def call_tool(self, name: str, arguments: dict[str, Any]) -> str:
        ...


def create_llm_client(config: AgentConfig, temperature: float = 0.7, max_tokens: int = 4000) -> BaseChatModel:
    """Create the LangChain chat model for the configured provider.

    Args:
        config: Agent configuration
        temperature: Sampling temperature
        max_tokens: Output token budget

    Returns:
        AzureChatOpenAI for the azure provider, ChatOpenAI otherwise
    """
    if config.provider == "azure":
        return AzureChatOpenAI(
            azure_endpoint=config.azure_endpoint,
            api_key=config.azure_api_key,
            api_version=config.azure_api_version,
            azure_deployment=config.azure_deployment,
            temperature=temperature,
            max_tokens=max_tokens,
            timeout=config.request_timeout,
        )

    return ChatOpenAI(
        base_url=config.model_endpoint,
        api_key=config.api_key or "not-required",
        model=config.model.strip(),
        temperature=temperature,
        max_tokens=max_tokens,
        timeout=config.request_timeout,
    )


def history_to_messages(history: Optional[list[dict[str, str]]]) -> list[BaseMessage]:
    """Convert {"role", "content"} dicts to LangChain messages."""
    messages: list[BaseMessage] = []
    for entry in history or []:
        if entry.get("role") == "assistant":
            messages.append(AIMessage(content=entry.get("content", "")))
        else:
            messages.append(HumanMessage(content=entry.get("content", "")))
    return messages


LLMFactory = Callable[[float, int], BaseChatModel]


class LangChainProvider:
    """ModelProvider backed by a LangChain chat model with tool calling.

    Each turn streams the model's response; when the model calls tools they
    are run through the tool runner one at a time, their results are fed
    back as ToolMessages and the model is streamed again. This repeats until
    the model answers without tool calls or max_tool_rounds is reached.
    """

    def __init__(
        self,
        llm_factory: LLMFactory,
        tools: Optional[ToolRunner] = None,
        max_tool_rounds: int = 10,
    ):
        """Initialize the provider.

        Args:
            llm_factory: Builds a chat model for (temperature, max_tokens)
            tools: Tool runner exposed to the model (None disables tools)
            max_tool_rounds: Tool-call rounds allowed within one turn
        """
        self._llm_factory = llm_factory
        self._llms: dict[tuple[float, int], BaseChatModel] = {}
        self.tools = tools
        self.max_tool_rounds = max_tool_rounds

    @classmethod
    def from_config(cls, config: AgentConfig, tools: Optional[ToolRunner] = None) -> "LangChainProvider":
        """Create a provider for the configured model endpoint."""
        return cls(
            llm_factory=lambda temperature, max_tokens: create_llm_client(config, temperature, max_tokens),
            tools=tools,
            max_tool_rounds=config.max_tool_rounds,
        )

    def _get_llm(self, temperature: float, max_tokens: int) -> Any:
        key = (temperature, max_tokens)
        if key not in self._llms:
            self._llms[key] = self._llm_factory(temperature, max_tokens)
        llm = self._llms[key]

        specs = self.tools.list_tools() if self.tools is not None else []
        if specs:
            return llm.bind_tools([spec.to_openai_tool() for spec in specs])
        return llm

    async def stream(
        self,
        prompt: str,
        system_prompt: str,
        temperature: float,
        max_tokens: int,
        session_id: Optional[str] = None,
        history: Optional[list[dict[str, str]]] = None,
    ) -> AsyncIterator[StreamEvent]:
        """Stream one turn, running requested tools in between.

        Yields:
            TextFragment, ToolStarted and ToolEnded events in emission order
        """
        llm = self._get_llm(temperature, max_tokens)

        messages: list[BaseMessage] = [SystemMessage(content=system_prompt)]
        messages.extend(history_to_messages(history))
        messages.append(HumanMessage(content=prompt))

        tool_round = 0
        while True:
            gathered = None
            async for chunk in llm.astream(messages):
                text = content_to_text(chunk.content)
                if text:
                    yield TextFragment(text)
                gathered = chunk if gathered is None else gathered + chunk

            tool_calls = list(getattr(gathered, "tool_calls", None) or [])
            if not tool_calls or self.tools is None:
                return

            if tool_round >= self.max_tool_rounds:
                logger.warning(
                    f"[{session_id}] Tool round limit ({self.max_tool_rounds}) reached, ending turn"
                )
                return
            tool_round += 1

            messages.append(AIMessage(content=gathered.content, tool_calls=tool_calls))

            for index, call in enumerate(tool_calls):
                name = call.get("name", "")
                arguments = call.get("args") or {}
                call_id = call.get("id") or f"{session_id}-call-{tool_round}-{index}"

                yield ToolStarted(tool=name, arguments=dict(arguments))

                try:
                    result = await self.tools.call_tool(name, arguments)
                    error = None
                except ToolExecutionError as e:
                    result = f"Error: {e}"
                    error = str(e)

                yield ToolEnded(tool=name, error=error)
                messages.append(ToolMessage(content=result, tool_call_id=call_id))
