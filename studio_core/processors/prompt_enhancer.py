"""
Prompt enhancement: template filling plus an LLM rewrite
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, Any, Optional, Callable

from ..config import MODEL_CONFIG, PROMPT_SYSTEM_MESSAGE, get_api_key
from ..exceptions import GenerationError, InvalidInputError
from ..providers import AnthropicClient

logger = logging.getLogger(__name__)

PLACEHOLDER_PATTERN = re.compile(r"\{\{\s*([^{}\s]+)\s*\}\}")


@dataclass
class EnhancedPrompt:
    generated_prompt: str
    original_template: str
    processed_template: str
    variables: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "generatedPrompt": self.generated_prompt,
            "originalTemplate": self.original_template,
            "processedTemplate": self.processed_template,
            "variables": self.variables,
        }


def _stringify(value: Any) -> str:
    if value is None:
        return ""
    if isinstance(value, bool):
        return "true" if value else "false"
    return str(value)


def render_template(template: str, variables: Optional[Dict[str, Any]] = None) -> str:
    """Replace every ``{{key}}`` that has a value; unknown placeholders are left as-is"""
    processed = template
    for key, value in (variables or {}).items():
        processed = processed.replace("{{" + str(key) + "}}", _stringify(value))
    return processed


def unresolved_placeholders(template: str):
    return PLACEHOLDER_PATTERN.findall(template)


class PromptEnhancer:
    """Fills prompt templates and asks an LLM to expand them"""

    def __init__(
        self,
        client_factory: Optional[Callable[[str], AnthropicClient]] = None,
        model_id: Optional[str] = None,
        system_message: str = PROMPT_SYSTEM_MESSAGE,
    ):
        config = MODEL_CONFIG["prompt"]
        self.client_factory = client_factory or AnthropicClient
        self.model_id = model_id or config["model_id"]
        self.max_tokens = config["max_tokens"]
        self.temperature = config["temperature"]
        self.system_message = system_message

    async def enhance(self, template: str, variables: Optional[Dict[str, Any]] = None) -> EnhancedPrompt:
        """
        Fill a template and have the LLM turn it into a generation prompt

        Raises:
            InvalidInputError: template missing or empty
            ConfigurationError: no LLM credential configured
            GenerationError: the LLM answered with no text
        """
        if not isinstance(template, str) or not template.strip():
            raise InvalidInputError("Template is required")

        variables = variables or {}
        processed = render_template(template, variables)
        missing = unresolved_placeholders(processed)
        if missing:
            logger.warning(f"Template placeholders without values: {', '.join(missing)}")
        api_key = get_api_key("anthropic")

        logger.info(f"Enhancing prompt template ({len(processed)} chars) with {self.model_id}")
        async with self.client_factory(api_key) as client:
            text = await client.complete(
                processed,
                model=self.model_id,
                system=self.system_message,
                max_tokens=self.max_tokens,
                temperature=self.temperature,
            )

        text = text.strip()
        if text.startswith('"') and text.endswith('"') and len(text) > 1:
            text = text[1:-1].strip()
        if not text:
            raise GenerationError("No response from AI model")

        return EnhancedPrompt(
            generated_prompt=text,
            original_template=template,
            processed_template=processed,
            variables=variables,
        )
