"""Gateway to the chat-completion model used for grading."""

import json
import logging
from dataclasses import dataclass
from typing import Any, Dict, Optional

from pydantic_ai.exceptions import ModelHTTPError, UnexpectedModelBehavior

from autograde.errors import GatewayError
from autograde.libs.config_loader import ConfigType
from autograde.libs.llm import create_agent, get_api_key, get_model_name

LOG = logging.getLogger(__name__)


@dataclass
class Completion:
    """Top completion text plus usage metadata."""
    text: str
    model: str
    total_tokens: Optional[int] = None


class ModelGateway:
    """Send a system instruction and a user prompt, get back the model's text."""

    def __init__(self, configs: ConfigType, model: Optional[str] = None):
        """
        Args:
            configs: Configuration dictionary (required)
            model: Model to use (overrides config value)

        Raises:
            ConfigurationError: If no API key is configured
        """
        # Check credentials up front so no request is ever attempted without them
        get_api_key(configs)
        self.configs = configs
        self.model = get_model_name(configs, model)

    async def complete(self,
                       system_prompt: str,
                       user_prompt: str,
                       *,
                       model: Optional[str] = None,
                       settings: Optional[Dict[str, Any]] = None) -> Completion:
        """
        Run one completion.

        Args:
            system_prompt: System instruction
            user_prompt: User message
            model: Per-call model override
            settings: Per-call model settings (temperature, max_tokens, top_p, ...)

        Raises:
            GatewayError: If the endpoint returns a non-success response
        """
        model_name = model or self.model
        agent = create_agent(
            configs=self.configs,
            model=model_name,
            settings_dict=settings,
            system_prompt=system_prompt,
        )

        try:
            result = await agent.run(user_prompt)
        except ModelHTTPError as e:
            body = e.body if isinstance(e.body, str) or e.body is None else json.dumps(e.body, ensure_ascii=False)
            LOG.error("Model API error: %s %s", e.status_code, body)
            raise GatewayError(f"Model API error ({e.status_code}): {body}",
                               status_code=e.status_code, body=body) from e
        except UnexpectedModelBehavior as e:
            LOG.error("Unexpected model response: %s", e)
            raise GatewayError(f"Unexpected model response: {e}") from e

        usage = result.usage()
        return Completion(
            text=str(result.output or ""),
            model=model_name,
            total_tokens=usage.total_tokens if usage else None,
        )

    async def check_connection(self) -> Dict[str, Any]:
        """Send a tiny request to verify credentials and model access."""
        try:
            await self.complete(
                "You are a connectivity check.",
                'Say "OK" if you can read this.',
                settings={"max_tokens": 10},
            )
        except Exception as e:  # pylint: disable=broad-except
            return {"success": False, "model": self.model, "error": str(e)}
        return {"success": True, "model": self.model}
