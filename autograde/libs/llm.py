"""LLM utilities for creating and configuring AI agents."""


import logging
from typing import Optional, Dict, Any

from openai import AsyncOpenAI
from pydantic_ai import Agent
from pydantic_ai.models.openai import OpenAIChatModel, OpenAIChatModelSettings
from pydantic_ai.providers.openai import OpenAIProvider

from autograde.errors import ConfigurationError
from autograde.libs.config_loader import ConfigType, get_config


# Fix up logging level for httpx to WARNING to reduce noise
logging.getLogger("httpx").setLevel(logging.WARNING)

DEFAULT_BASE_URL = "https://openrouter.ai/api/v1"
DEFAULT_MODEL = "z-ai/glm-5"


def get_api_key(configs: ConfigType) -> str:
    """
    Return the configured model API key.

    Raises:
        ConfigurationError: If no key is configured
    """
    api_key = get_config("llm.api_key", configs, default=None)
    if not api_key:
        raise ConfigurationError(
            "llm.api_key is not configured. Set OPENROUTER_API_KEY or add it to config/local.yaml"
        )
    return api_key


def get_model_name(configs: ConfigType, model: Optional[str] = None) -> str:
    """Resolve the model identifier: explicit override, then config, then the default."""
    return model or get_config("llm.model", configs, default=None) or DEFAULT_MODEL


def create_agent(configs: ConfigType,
                 model: Optional[str] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None) -> Agent:
    """
    Create a pydantic-ai Agent for an OpenAI-compatible chat-completions endpoint.

    Args:
        configs: Configuration dictionary (required)
        model: Model to use (overrides config value)
        settings_dict: Model settings dict (overrides config values)
        system_prompt: System prompt for the agent (optional)

    Returns:
        Configured Agent

    Raises:
        ConfigurationError: If the API key is not found in config
    """
    api_key = get_api_key(configs)
    model = get_model_name(configs, model)
    base_url = get_config("llm.base_url", configs, default=None) or DEFAULT_BASE_URL
    base_settings = get_config("llm.model_settings", configs, default={}) or {}

    headers = {}
    app_url = get_config("llm.app_url", configs, default=None)
    app_title = get_config("llm.app_title", configs, default=None)
    if app_url:
        headers["HTTP-Referer"] = app_url
    if app_title:
        headers["X-Title"] = app_title

    client = AsyncOpenAI(api_key=api_key, base_url=base_url, default_headers=headers or None)

    settings_dict = base_settings | (settings_dict or {})
    model_settings = OpenAIChatModelSettings(**settings_dict) if settings_dict else None
    chat_model = OpenAIChatModel(model, provider=OpenAIProvider(openai_client=client))
    if system_prompt:
        agent = Agent(
            model=chat_model,
            model_settings=model_settings,
            system_prompt=system_prompt,
            retries=0,
        )
    else:
        agent = Agent(
            model=chat_model,
            model_settings=model_settings,
            retries=0,
        )
    return agent
