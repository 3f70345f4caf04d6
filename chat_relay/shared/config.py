#!/usr/bin/env python3
"""
Configuration module for the chat relay.
Loads settings from a YAML file, applies environment overrides and validates
them with Pydantic. The resulting RelayConfig is built once at startup and
handed to everything that needs it.
"""

import os
import logging
from enum import Enum
from typing import Any, Dict, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from chat_relay.shared.errors import ConfigurationError, ConfigurationMissing

CONFIG_FILE = "config.yml"

logger = logging.getLogger("chat-relay")


class CorsPolicy(str, Enum):
    WILDCARD = "wildcard"
    FIXED = "fixed"
    REFLECT = "reflect"


class ServerConfig(BaseModel):
    host: str = "0.0.0.0"
    port: int = 3000
    log_level: str = "INFO"
    http_log_level: str = "INFO"
    static_dir: Optional[str] = None


class UpstreamConfig(BaseModel):
    api_key: Optional[str] = None
    system_prompt: Optional[str] = None
    base_url: str = "https://api.openai.com/v1"
    model: str = "gpt-4"
    connect_timeout: float = 10.0
    # Idle time allowed between two upstream chunks; None waits forever.
    read_timeout: Optional[float] = 600.0
    max_stream_seconds: Optional[float] = None
    max_error_body_bytes: int = 65536


class CorsConfig(BaseModel):
    policy: CorsPolicy = CorsPolicy.WILDCARD
    allowed_origin: Optional[str] = None
    allow_methods: str = "GET, POST, OPTIONS"
    allow_headers: str = "Content-Type, Authorization"


class RequestProxyConfig(BaseModel):
    enabled: bool = False
    url: Optional[str] = None


class RelayConfig(BaseModel):
    server: ServerConfig = Field(default_factory=ServerConfig)
    upstream: UpstreamConfig = Field(default_factory=UpstreamConfig)
    cors: CorsConfig = Field(default_factory=CorsConfig)
    request_proxy: RequestProxyConfig = Field(default_factory=RequestProxyConfig, alias="requestProxy")

    model_config = {"populate_by_name": True}


def _apply_env_overrides(config_data: Dict[str, Any], environ: Mapping[str, str]) -> None:
    upstream = config_data.setdefault("upstream", {})
    server = config_data.setdefault("server", {})
    cors = config_data.setdefault("cors", {})

    if "OPENAI_API_KEY" in environ:
        upstream["api_key"] = environ["OPENAI_API_KEY"]
    if "SYSTEM_PROMPT" in environ:
        upstream["system_prompt"] = environ["SYSTEM_PROMPT"]
    if "OPENAI_MODEL" in environ:
        upstream["model"] = environ["OPENAI_MODEL"]
    if "PORT" in environ:
        server["port"] = environ["PORT"]
    if origin := environ.get("ALLOWED_ORIGIN"):
        if origin == "*":
            cors["policy"] = CorsPolicy.WILDCARD.value
        else:
            cors["policy"] = CorsPolicy.FIXED.value
            cors["allowed_origin"] = origin


def _check_required(config_: RelayConfig) -> None:
    missing = []
    if not config_.upstream.api_key:
        missing.append("upstream.api_key (OPENAI_API_KEY)")
    if not config_.upstream.system_prompt:
        missing.append("upstream.system_prompt (SYSTEM_PROMPT)")
    if config_.cors.policy is CorsPolicy.FIXED and not config_.cors.allowed_origin:
        missing.append("cors.allowed_origin (ALLOWED_ORIGIN)")
    if missing:
        raise ConfigurationMissing(missing)


def load_config(
    path: Optional[str] = None, environ: Optional[Mapping[str, str]] = None
) -> RelayConfig:
    """Load, override and validate configuration.

    Raises ConfigurationMissing when the credential, the system directive or a
    fixed CORS origin is absent, and ConfigurationError for any other invalid
    setting. Callers treat both as fatal.
    """
    environ = os.environ if environ is None else environ
    path = path or environ.get("RELAY_CONFIG", CONFIG_FILE)

    try:
        with open(path, encoding="utf-8") as file:
            config_data = yaml.safe_load(file) or {}
    except FileNotFoundError:
        # The environment alone may carry everything that is required.
        config_data = {}
    except yaml.YAMLError as e:
        raise ConfigurationError(f"Error in configuration file {path}: {e}") from e

    if not isinstance(config_data, dict):
        raise ConfigurationError(f"Configuration file {path} must contain a mapping")

    _apply_env_overrides(config_data, environ)

    try:
        config_ = RelayConfig(**config_data)
    except ValidationError as e:
        raise ConfigurationError(f"Error in configuration: {e}") from e

    _check_required(config_)
    return config_


def setup_logging(config_: RelayConfig) -> logging.Logger:
    """Configure logging based on validated configuration."""
    log_level = config_.server.log_level
    log_level_int = getattr(logging, log_level.upper(), logging.INFO)

    logging.basicConfig(
        level=log_level_int,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    logger.setLevel(log_level_int)
    logger.info("Logging level set to %s", log_level)
    return logger
