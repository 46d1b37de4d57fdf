from __future__ import annotations  # Re-export llm_gateway public API

from .llm_gateway import HttpClient, HttpResponse, LlmGatewayError, LlmTimeoutError, call, chat, runnable

__all__ = ["HttpClient", "HttpResponse", "LlmGatewayError", "LlmTimeoutError", "call", "chat", "runnable"]
