"""
LLM client for the hosted chat-completion provider.
Uses LangChain chains with a constrained-JSON mode and a streaming variant.

There is deliberately no retry or failover here: callers own their retry policy.
"""

import logging
import time
from enum import Enum
from typing import Any, AsyncIterator, Dict, List, Optional

from pydantic import BaseModel
from langchain_google_genai import ChatGoogleGenerativeAI
from langchain_groq import ChatGroq
from langchain_openai import ChatOpenAI
from langchain_core.messages import HumanMessage, AIMessage, SystemMessage
from langchain_core.prompts import ChatPromptTemplate, MessagesPlaceholder
from langchain_core.output_parsers import StrOutputParser

from ..core.config import Settings, settings
from ..core.exceptions import ConfigurationError, UpstreamError

logger = logging.getLogger(__name__)


class AIProvider(str, Enum):
    """Supported AI providers."""
    ZHIPU = "zhipu"
    OPENAI = "openai"
    GROQ = "groq"
    GEMINI = "gemini"


class ResponseMode(str, Enum):
    """Output constraint requested from the provider."""
    TEXT = "text"
    JSON = "json_object"


class AIStreamChunk(BaseModel):
    """AI streaming chunk structure. ``is_complete`` marks the terminating sentinel."""
    content: str
    is_complete: bool = False
    provider: str
    model: str


_API_KEY_SETTINGS = {
    AIProvider.ZHIPU: "ZHIPU_API_KEY",
    AIProvider.OPENAI: "OPENAI_API_KEY",
    AIProvider.GROQ: "GROQ_API_KEY",
    AIProvider.GEMINI: "GEMINI_API_KEY",
}

_MODEL_SETTINGS = {
    AIProvider.ZHIPU: "ZHIPU_MODEL",
    AIProvider.OPENAI: "OPENAI_MODEL",
    AIProvider.GROQ: "GROQ_MODEL",
    AIProvider.GEMINI: "GEMINI_MODEL",
}


class LLMClient:
    """Chat-completion client bound to one configured provider."""

    def __init__(self, config: Optional[Settings] = None):
        self.config = config or settings
        self.provider = AIProvider(self.config.AI_PROVIDER)
        self.model_name: str = getattr(self.config, _MODEL_SETTINGS[self.provider])
        self._chains: Dict[ResponseMode, Any] = {}

    def _api_key(self) -> str:
        key_setting = _API_KEY_SETTINGS[self.provider]
        api_key = getattr(self.config, key_setting, None)
        if not api_key:
            raise ConfigurationError(f"{key_setting} is not set in environment variables")
        return api_key

    def _create_model(self, mode: ResponseMode):
        """Build the provider chat model; JSON mode constrains output to one object."""
        api_key = self._api_key()
        json_mode = mode == ResponseMode.JSON

        if self.provider == AIProvider.GEMINI:
            return ChatGoogleGenerativeAI(
                google_api_key=api_key,
                model=self.model_name,
                temperature=self.config.AI_TEMPERATURE,
                top_p=self.config.AI_TOP_P,
                max_output_tokens=self.config.AI_MAX_TOKENS,
                timeout=self.config.AI_TIMEOUT_SECONDS,
                response_mime_type="application/json" if json_mode else None,
            )

        if self.provider == AIProvider.GROQ:
            model = ChatGroq(
                api_key=api_key,
                model=self.model_name,
                temperature=self.config.AI_TEMPERATURE,
                max_tokens=self.config.AI_MAX_TOKENS,
                timeout=self.config.AI_TIMEOUT_SECONDS,
                model_kwargs={"top_p": self.config.AI_TOP_P},
            )
        else:
            base_url = (
                self.config.ZHIPU_BASE_URL if self.provider == AIProvider.ZHIPU
                else self.config.OPENAI_BASE_URL
            )
            model = ChatOpenAI(
                api_key=api_key,
                base_url=base_url,
                model=self.model_name,
                temperature=self.config.AI_TEMPERATURE,
                top_p=self.config.AI_TOP_P,
                max_tokens=self.config.AI_MAX_TOKENS,
                timeout=self.config.AI_TIMEOUT_SECONDS,
            )

        if json_mode:
            return model.bind(response_format={"type": "json_object"})
        return model

    def _get_chain(self, mode: ResponseMode):
        """Create (once per mode) the prompt -> model -> parser chain."""
        if mode not in self._chains:
            prompt = ChatPromptTemplate.from_messages([
                MessagesPlaceholder(variable_name="messages")
            ])
            self._chains[mode] = prompt | self._create_model(mode) | StrOutputParser()
            logger.info("%s chain initialized (mode=%s, model=%s)", self.provider.value, mode.value, self.model_name)
        return self._chains[mode]

    @staticmethod
    def _build_messages(
        system_prompt: str,
        user_prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> List:
        """System prompt, then prior turns, then the new user prompt."""
        messages: List = [SystemMessage(content=system_prompt)]
        for msg in history or []:
            if msg.get("role") == "assistant":
                messages.append(AIMessage(content=msg["content"]))
            elif msg.get("role") == "user":
                messages.append(HumanMessage(content=msg["content"]))
            elif msg.get("role") == "system":
                messages.append(SystemMessage(content=msg["content"]))
        messages.append(HumanMessage(content=user_prompt))
        return messages

    def _to_upstream_error(self, exc: Exception) -> UpstreamError:
        """Wrap a provider exception, keeping its HTTP status and response body."""
        response = getattr(exc, "response", None)
        status = getattr(exc, "status_code", None)
        if status is None and response is not None:
            status = getattr(response, "status_code", None)
        body = None
        if response is not None:
            try:
                body = response.text
            except Exception:
                body = None
        if not body:
            body = str(exc)
        status_text = status if status is not None else "no status"
        return UpstreamError(
            f"LLM API error ({self.provider.value}): {status_text} - {body}",
            provider_status=status,
            body=body,
        )

    async def chat(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
        mode: ResponseMode = ResponseMode.TEXT,
    ) -> str:
        """Return the text of the first completion choice."""
        chain = self._get_chain(mode)
        messages = self._build_messages(system_prompt, user_prompt, history)

        start_time = time.time()
        logger.info("LLM call provider=%s mode=%s prompt_len=%s", self.provider.value, mode.value, len(user_prompt))
        try:
            content = await chain.ainvoke({"messages": messages})
        except Exception as e:
            logger.warning(f"Provider {self.provider.value} failed: {str(e)}")
            raise self._to_upstream_error(e) from e

        logger.info("LLM call completed in %.2fs (response_len=%s)", time.time() - start_time, len(content or ""))
        return content or ""

    async def chat_stream(
        self,
        system_prompt: str,
        user_prompt: str,
        history: Optional[List[Dict[str, str]]] = None,
    ) -> AsyncIterator[AIStreamChunk]:
        """Yield incremental text chunks, then one ``is_complete`` sentinel chunk."""
        chain = self._get_chain(ResponseMode.TEXT)
        messages = self._build_messages(system_prompt, user_prompt, history)

        logger.info("LLM streaming call provider=%s prompt_len=%s", self.provider.value, len(user_prompt))
        try:
            async for chunk in chain.astream({"messages": messages}):
                if chunk:
                    yield AIStreamChunk(
                        content=chunk,
                        is_complete=False,
                        provider=self.provider.value,
                        model=self.model_name,
                    )
        except Exception as e:
            logger.warning(f"Provider {self.provider.value} streaming failed: {str(e)}")
            raise self._to_upstream_error(e) from e

        yield AIStreamChunk(
            content="",
            is_complete=True,
            provider=self.provider.value,
            model=self.model_name,
        )


async def collect_stream(stream: AsyncIterator[AIStreamChunk]) -> str:
    """Buffer a chunk stream until its sentinel and return the full text."""
    parts: List[str] = []
    async for chunk in stream:
        if chunk.is_complete:
            break
        parts.append(chunk.content)
    return "".join(parts)
