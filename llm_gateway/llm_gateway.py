from __future__ import annotations  # Chat-completions gateway shared by every collaborator

import json
import logging
import os
import threading
from typing import Any, Dict, List, NamedTuple, Optional, Protocol, Sequence

import httpx
from langchain_core.messages import BaseMessage
from langchain_core.runnables import RunnableLambda

from config import LlmRoute


logger = logging.getLogger(__name__)

_ROUTE_LOCKS: Dict[str, threading.Lock] = {}
_ROUTE_LOCKS_GUARD = threading.Lock()
_ROLE_ALIASES = {"human": "user", "ai": "assistant"}


class HttpClient(Protocol):  # Injected transport, httpx.Client compatible
    def post(self, url: str, *, json: Dict[str, Any], headers: Dict[str, str], timeout: float) -> "HttpResponse": ...


class HttpResponse(Protocol):
    @property
    def status_code(self) -> int: ...

    def json(self) -> Any: ...

    @property
    def text(self) -> str: ...


class LlmGatewayError(RuntimeError):  # Base gateway error
    pass


class LlmTimeoutError(LlmGatewayError):  # Route wait policy exhausted
    pass


class _Request(NamedTuple):
    url: str
    payload: Dict[str, Any]
    headers: Dict[str, str]


def call(
    task: str,
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:  # Single user message convenience wrapper
    return chat([{"role": "user", "content": task}], cfg=cfg, client=client, options=options)


def chat(
    messages: Sequence[Dict[str, str]],
    *,
    cfg: LlmRoute,
    client: Optional[HttpClient] = None,
    options: Optional[Dict[str, Any]] = None,
) -> str:
    """Run one chat completion and return the assistant text unparsed.

    Timeouts are retried up to ``cfg.max_retries`` times and then surface as
    ``LlmTimeoutError``; transport failures, error statuses and empty replies
    raise ``LlmGatewayError`` immediately. Routes marked ``sequential`` allow
    one request in flight at a time.
    """

    request = _build_request(cfg, messages, options)
    if not cfg.sequential:
        return _with_retries(request, cfg, client)
    with _route_lock(cfg):
        return _with_retries(request, cfg, client)


def runnable(route: LlmRoute, *, client: Optional[HttpClient] = None) -> RunnableLambda:  # LangChain pipeline adapter
    def _invoke(prompt: Any) -> str:
        return chat(_as_messages(prompt), cfg=route, client=client)

    return RunnableLambda(_invoke)


def _build_request(cfg: LlmRoute, messages: Sequence[Dict[str, str]], options: Optional[Dict[str, Any]]) -> _Request:
    payload: Dict[str, Any] = {"model": cfg.model, "messages": _checked_messages(messages)}
    if cfg.temperature is not None:
        payload["temperature"] = cfg.temperature
    payload.update(options or {})
    if cfg.response_format:
        payload["response_format"] = {"type": cfg.response_format}

    headers = {"Content-Type": "application/json"}
    api_key = os.getenv(cfg.api_key_env) if cfg.api_key_env else None
    if api_key:
        headers["Authorization"] = f"Bearer {api_key}"
    headers.update(cfg.extra_headers)
    return _Request(f"{cfg.base_url}{cfg.endpoint}", payload, headers)


def _with_retries(request: _Request, cfg: LlmRoute, client: Optional[HttpClient]) -> str:
    attempts = cfg.max_retries + 1
    logger.info(
        "LLM request start route=%s model=%s attempts=%d preview=%s",
        cfg.name,
        cfg.model,
        attempts,
        _preview(request.payload["messages"]),
    )
    last_timeout: Optional[Exception] = None
    for attempt in range(1, attempts + 1):
        try:
            content = _send_once(request, cfg.timeout_s, client)
        except httpx.TimeoutException as exc:
            logger.warning("LLM request timed out route=%s attempt=%d/%d: %s", cfg.name, attempt, attempts, exc)
            last_timeout = exc
            continue
        logger.info("LLM request done route=%s attempt=%d chars=%d", cfg.name, attempt, len(content))
        return content
    raise LlmTimeoutError(f"LLM route '{cfg.name}' timed out after {attempts} attempt(s)") from last_timeout


def _send_once(request: _Request, timeout: float, client: Optional[HttpClient]) -> str:
    try:
        if client is not None:
            return _read_reply(client.post(request.url, json=request.payload, headers=request.headers, timeout=timeout))
        with httpx.Client(timeout=timeout) as http_client:
            return _read_reply(http_client.post(request.url, json=request.payload, headers=request.headers))
    except (httpx.TimeoutException, LlmGatewayError):
        raise
    except Exception as exc:  # noqa: BLE001
        logger.error("LLM transport failure: %s", exc)
        raise LlmGatewayError("LLM transport failed") from exc


def _read_reply(response: HttpResponse) -> str:
    if response.status_code >= 400:
        logger.error("LLM error status: %s", response.status_code)
        raise LlmGatewayError(f"LLM returned status {response.status_code}")
    try:
        data = response.json()
    except Exception as exc:  # noqa: BLE001
        logger.error("Invalid JSON payload from LLM: %s", exc)
        raise LlmGatewayError("LLM payload was not JSON") from exc
    content = _reply_text(data)
    if not content:
        raise LlmGatewayError("LLM response missing content")
    return content


def _reply_text(data: Any) -> str:  # OpenAI-style choices first, then a bare {"content": ...}
    if not isinstance(data, dict):
        return ""
    choices = data.get("choices") or []
    first = choices[0] if isinstance(choices, list) and choices else None
    message = first.get("message") if isinstance(first, dict) else None
    for candidate in (message.get("content") if isinstance(message, dict) else None, data.get("content")):
        if isinstance(candidate, str) and candidate.strip():
            return candidate
    return ""


def _route_lock(cfg: LlmRoute) -> threading.Lock:
    key = cfg.name or f"{cfg.base_url}{cfg.endpoint}"
    with _ROUTE_LOCKS_GUARD:
        return _ROUTE_LOCKS.setdefault(key, threading.Lock())


def _checked_messages(messages: Sequence[Dict[str, str]]) -> List[Dict[str, str]]:
    checked: List[Dict[str, str]] = []
    for item in messages:
        if not isinstance(item, dict):
            raise TypeError("Each chat message must be a dict with role/content")
        role = str(item.get("role", "")).strip()
        if not role:
            raise ValueError("Chat message missing role")
        checked.append({"role": role, "content": str(item.get("content", ""))})
    return checked


def _preview(messages: Sequence[Dict[str, str]], limit: int = 120) -> str:
    first = next((m["content"].strip() for m in messages if m["content"].strip()), "")
    line = first.splitlines()[0] if first else ""
    return line if len(line) <= limit else line[: limit - 3] + "..."


def _as_messages(prompt: Any) -> List[Dict[str, str]]:  # Prompt values, BaseMessages or plain dicts
    if hasattr(prompt, "to_messages"):
        prompt = prompt.to_messages()
    items = prompt if isinstance(prompt, (list, tuple)) else [prompt]
    messages: List[Dict[str, str]] = []
    for item in items:
        if isinstance(item, BaseMessage):
            content = item.content if isinstance(item.content, str) else json.dumps(item.content)
            messages.append({"role": _ROLE_ALIASES.get(item.type, item.type), "content": content})
        elif isinstance(item, dict):
            messages.append(item)
        else:
            raise TypeError("Unsupported message payload for LLM runnable")
    return messages
