"""Per-model pricing and cost estimation"""
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Optional

from core.domain import ValidationError

PER_TOKENS = Decimal(1000)


@dataclass(frozen=True)
class ModelRate:
    """USD per 1,000 tokens"""
    provider: str
    input: Decimal
    output: Decimal


def _rate(provider: str, input_rate: str, output_rate: str) -> ModelRate:
    return ModelRate(provider=provider, input=Decimal(input_rate), output=Decimal(output_rate))


RATE_TABLE: Dict[str, ModelRate] = {
    # OpenAI
    "gpt-4-turbo": _rate("openai", "0.01", "0.03"),
    "gpt-4-turbo-preview": _rate("openai", "0.01", "0.03"),
    "gpt-4": _rate("openai", "0.03", "0.06"),
    "gpt-3.5-turbo": _rate("openai", "0.0015", "0.002"),

    # Anthropic
    "claude-3-opus": _rate("anthropic", "0.015", "0.075"),
    "claude-3-opus-20240229": _rate("anthropic", "0.015", "0.075"),
    "claude-3-sonnet": _rate("anthropic", "0.003", "0.015"),
    "claude-3-sonnet-20240229": _rate("anthropic", "0.003", "0.015"),
    "claude-3-haiku": _rate("anthropic", "0.00025", "0.00125"),
    "claude-3-haiku-20240307": _rate("anthropic", "0.00025", "0.00125"),
    "claude-3-5-sonnet": _rate("anthropic", "0.003", "0.015"),

    # Google
    "gemini-pro": _rate("google", "0.00025", "0.0005"),
    "gemini-1.5-pro": _rate("google", "0.00125", "0.00375"),
    "gemini-1.5-flash": _rate("google", "0.000075", "0.0003"),
}


def get_rate(model: str) -> Optional[ModelRate]:
    return RATE_TABLE.get(model)


def estimate_cost(input_tokens: int, output_tokens: int, model: str) -> Decimal:
    """
    cost = input/1000 * input_rate + output/1000 * output_rate

    Raises:
        ValidationError: model is not in the rate table
    """
    rate = get_rate(model)
    if rate is None:
        raise ValidationError(f"Unknown model: '{model}'")
    return (Decimal(input_tokens) / PER_TOKENS) * rate.input + (Decimal(output_tokens) / PER_TOKENS) * rate.output
