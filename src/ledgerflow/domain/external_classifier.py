"""Optional external (LLM) categorization backend.

The classifier cascade only sees the :class:`ExternalClassifier` interface.
Which implementation it gets is decided once, by
:func:`create_external_classifier`, from the application settings.
"""

import json
import logging
import re
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from decimal import Decimal
from typing import Any, Optional

import anthropic

from ledgerflow.domain.categories import CategoryTable, default_category_table
from ledgerflow.domain.entities import Direction, Frequency
from ledgerflow.domain.errors import (
    ExternalClassifierResponseError,
    ExternalClassifierUnavailable,
)

logger = logging.getLogger(__name__)

DEFAULT_MODEL = "claude-sonnet-4-5-20250929"
DEFAULT_TIMEOUT_SECONDS = 10.0

_JSON_OBJECT = re.compile(r"\{[\s\S]*\}")


@dataclass(frozen=True)
class ExternalClassification:
    """Answer from an external classifier, before the cascade validates it."""

    category: str
    confidence: int
    reasoning: str = ""
    counterparty_name: Optional[str] = None
    is_recurring: bool = False
    suggested_frequency: Optional[Frequency] = None
    flags: tuple[str, ...] = ()


class ExternalClassifier(ABC):
    """Capability interface for the AI strategy of the cascade."""

    name = "external"

    @abstractmethod
    def classify(
        self, description: str, amount: Decimal, txn_date: date, direction: Direction
    ) -> ExternalClassification:
        """Classify one transaction.

        Raises:
            ExternalClassifierUnavailable: Backend not configured, unreachable or timed out
            ExternalClassifierResponseError: Backend answered with an unusable payload
        """
        pass

    @property
    def is_available(self) -> bool:
        return True


class UnavailableExternalClassifier(ExternalClassifier):
    """Stand-in used when no backend is configured. Always a miss."""

    name = "unavailable"

    def classify(self, description, amount, txn_date, direction):
        raise ExternalClassifierUnavailable("No external classifier configured")

    @property
    def is_available(self) -> bool:
        return False


class AnthropicExternalClassifier(ExternalClassifier):
    """Categorize transactions with Claude through the Anthropic SDK."""

    name = "anthropic"

    def __init__(
        self,
        api_key: Optional[str] = None,
        model: str = DEFAULT_MODEL,
        timeout: float = DEFAULT_TIMEOUT_SECONDS,
        categories: Optional[CategoryTable] = None,
        client: Optional[Any] = None,
        max_tokens: int = 500,
    ):
        """Initialize the classifier.

        Args:
            api_key: Anthropic API key (ignored when ``client`` is given)
            model: Model name
            timeout: Per-request timeout in seconds; requests are not retried
            categories: Category vocabulary offered to the model
            client: Pre-built client exposing ``messages.create``
            max_tokens: Response token budget
        """
        if client is None:
            if not api_key:
                raise ExternalClassifierUnavailable("ANTHROPIC_API_KEY not configured")
            client = anthropic.Anthropic(api_key=api_key, timeout=timeout, max_retries=0)
        self._client = client
        self.model = model
        self.timeout = timeout
        self.max_tokens = max_tokens
        self.categories = categories or default_category_table()

    def system_prompt(self) -> str:
        category_list = "\n".join(
            f"- {name}: {self.categories.descriptions.get(name, name)}"
            for name in self.categories.categories
        )
        return f"""You are an expert financial analyst categorizing bank transactions for Indian startups and businesses.

AVAILABLE CATEGORIES:
{category_list}

Recognize Indian payment patterns (UPI via GPay/PhonePe/Paytm/BHIM, NEFT/RTGS/IMPS transfers,
GST/TDS payments to government), extract the vendor or merchant name, and decide whether the
transaction looks recurring (subscriptions, rent, salaries).

Respond with JSON only:
{{
  "category": "<exact category name from the list>",
  "confidence": <0-100>,
  "reasoning": "<brief explanation>",
  "vendorName": "<vendor or merchant name, or null>",
  "isRecurring": <true/false>,
  "suggestedFrequency": "<weekly/monthly/quarterly/yearly or null>",
  "flags": ["<anomalies or warnings>"]
}}"""

    def user_prompt(
        self, description: str, amount: Decimal, txn_date: date, direction: Direction
    ) -> str:
        kind = "Incoming (Credit)" if direction == Direction.CREDIT else "Outgoing (Debit)"
        return (
            "Categorize this transaction:\n"
            f'Description: "{description}"\n'
            f"Amount: ₹{abs(amount):,.2f}\n"
            f"Date: {txn_date.isoformat()}\n"
            f"Type: {kind}\n\n"
            "Provide your analysis in JSON format."
        )

    def classify(self, description, amount, txn_date, direction):
        try:
            response = self._client.messages.create(
                model=self.model,
                max_tokens=self.max_tokens,
                system=self.system_prompt(),
                messages=[
                    {
                        "role": "user",
                        "content": self.user_prompt(description, amount, txn_date, direction),
                    }
                ],
            )
        except anthropic.APITimeoutError as e:
            raise ExternalClassifierUnavailable(f"Request timed out after {self.timeout}s") from e
        except anthropic.APIConnectionError as e:
            raise ExternalClassifierUnavailable(f"Could not reach Anthropic API: {e}") from e
        except anthropic.APIError as e:
            raise ExternalClassifierUnavailable(f"Anthropic API error: {e}") from e

        text = "".join(
            getattr(block, "text", "") for block in (getattr(response, "content", None) or [])
        )
        return parse_classification(text)


def parse_classification(text: str) -> ExternalClassification:
    """Parse the model's JSON answer.

    Raises:
        ExternalClassifierResponseError: If no usable JSON object is present
    """
    match = _JSON_OBJECT.search(text or "")
    if match is None:
        raise ExternalClassifierResponseError("No JSON object in response")
    try:
        payload = json.loads(match.group(0))
    except json.JSONDecodeError as e:
        raise ExternalClassifierResponseError(f"Malformed JSON in response: {e}") from e
    if not isinstance(payload, dict):
        raise ExternalClassifierResponseError("Response JSON is not an object")

    category = payload.get("category")
    if not isinstance(category, str) or not category.strip():
        raise ExternalClassifierResponseError("Response has no category")

    try:
        confidence = int(float(payload.get("confidence", 0)))
    except (TypeError, ValueError) as e:
        raise ExternalClassifierResponseError(
            f"Confidence '{payload.get('confidence')}' is not a number"
        ) from e

    frequency = None
    raw_frequency = payload.get("suggestedFrequency")
    if isinstance(raw_frequency, str) and raw_frequency.strip():
        try:
            frequency = Frequency(raw_frequency.strip().lower())
        except ValueError:
            logger.debug("Ignoring unknown frequency %r from external classifier", raw_frequency)

    flags = payload.get("flags") or []
    if not isinstance(flags, list):
        flags = [str(flags)]

    return ExternalClassification(
        category=category.strip(),
        confidence=max(0, min(100, confidence)),
        reasoning=str(payload.get("reasoning") or ""),
        counterparty_name=payload.get("vendorName") or None,
        is_recurring=bool(payload.get("isRecurring")),
        suggested_frequency=frequency,
        flags=tuple(str(f) for f in flags),
    )


def create_external_classifier(settings, categories: Optional[CategoryTable] = None) -> ExternalClassifier:
    """Pick the external classifier for the given settings.

    Returns the Anthropic-backed classifier when an API key is configured and
    the unavailable stand-in otherwise.
    """
    if not settings.anthropic_api_key:
        logger.info("No ANTHROPIC_API_KEY configured; external classification disabled")
        return UnavailableExternalClassifier()
    return AnthropicExternalClassifier(
        api_key=settings.anthropic_api_key,
        model=settings.ai_model,
        timeout=settings.ai_timeout,
        categories=categories,
    )
