#!/usr/bin/env python3
"""
Dependency provider functions for the application.
"""

from fastapi import Request
import httpx

from chat_relay.shared.config import RelayConfig
from chat_relay.features.relay_chat.client import UpstreamChatClient
from chat_relay.features.relay_chat.validator import ConversationValidator

def get_config(request: Request) -> RelayConfig:
    """Returns the configuration the app was created with."""
    return request.app.state.config

def get_http_client(request: Request) -> httpx.AsyncClient:
    """Returns the shared httpx.AsyncClient instance."""
    return request.app.state.http_client

def get_validator(request: Request) -> ConversationValidator:
    """Returns the shared ConversationValidator instance."""
    return request.app.state.validator

def get_upstream_client(request: Request) -> UpstreamChatClient:
    """Returns the shared UpstreamChatClient instance."""
    return request.app.state.upstream_client
