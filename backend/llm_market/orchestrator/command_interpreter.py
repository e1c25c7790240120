from __future__ import annotations

import re
from typing import Protocol, Sequence

from llm_market.infrastructure.llm_client import LLMCommandPrediction
from llm_market.infrastructure.logging import get_logger
from llm_market.models.product import Product
from llm_market.orchestrator.types import (
    ADD_TO_CART,
    COMMAND,
    COMPARE,
    DISMISS,
    SEARCH,
    SHOW_NEXT,
    CommandIntent,
)

logger = get_logger(__name__)

COMMAND_KEYWORDS = (
    "compare",
    "dismiss",
    "remove",
    "delete",
    "add to cart",
    "show next",
    "get rid of",
)

_COMPARE_PHRASES = ("compare", "pros and cons", "versus", " vs ", "difference between")
_ADD_PHRASES = ("add to cart", "add to my cart", "add it to", "put in cart", "buy")
_DISMISS_PHRASES = ("dismiss", "remove", "delete", "get rid of", "hide", "not interested")
_NEXT_PHRASES = ("show more", "more products", "other products", "something else")

# No "one"/"two" here: "the second one" has to resolve to position 2.
_ORDINALS = {
    "first": 1,
    "1st": 1,
    "left": 1,
    "second": 2,
    "2nd": 2,
    "right": 2,
    "third": 3,
    "3rd": 3,
}

_FILLER_WORDS = {
    "a", "an", "and", "cart", "can", "for", "from", "get", "i", "it", "item", "me", "my",
    "of", "on", "one", "please", "product", "rid", "screen", "that", "the", "them", "these",
    "this", "those", "to", "want", "you", "with", "just", "like", "would", "dont", "don't",
}


class RemoteCommandClassifier(Protocol):
    def classify_message(self, *, message: str, visible_names: Sequence[str]) -> str | None: ...

    def extract_command(self, *, message: str, visible: Sequence[Product]) -> LLMCommandPrediction | None: ...


def classify_locally(message: str) -> str | None:
    """Keyword check that needs no network; ``None`` means "ask someone else"."""
    text = message.strip().lower()
    if any(keyword in text for keyword in COMMAND_KEYWORDS):
        return COMMAND
    return None


class CommandInterpreter:
    """Rule-first interpreter for free text typed next to the visible products."""

    def __init__(self, remote: RemoteCommandClassifier | None = None) -> None:
        self.remote = remote

    def classify(self, message: str, visible: Sequence[Product]) -> str:
        local = classify_locally(message)
        if local is not None:
            return local
        if not visible or self.remote is None:
            return SEARCH
        try:
            label = self.remote.classify_message(
                message=message,
                visible_names=[product.name for product in visible],
            )
        except Exception as exc:
            logger.warning("remote_classification_failed", error=str(exc))
            return SEARCH
        return COMMAND if label == COMMAND else SEARCH

    def interpret(self, message: str, visible: Sequence[Product]) -> CommandIntent | None:
        remote_intent = self._interpret_with_remote(message=message, visible=visible)
        if remote_intent is not None:
            return remote_intent
        return self._interpret_rules(message=message, visible_count=len(visible))

    def resolve_target(self, intent: CommandIntent, visible: Sequence[Product]) -> Product | None:
        if intent.product_id is not None:
            direct = next((product for product in visible if product.id == intent.product_id), None)
            if direct is not None:
                return direct
        if intent.position is not None and 1 <= intent.position <= len(visible):
            return visible[intent.position - 1]
        if intent.product_name:
            by_name = self._match_name(intent.product_name, visible)
            if by_name is not None:
                return by_name
        if len(visible) == 1 and intent.action in {DISMISS, ADD_TO_CART}:
            return visible[0]
        return None

    def _interpret_with_remote(self, *, message: str, visible: Sequence[Product]) -> CommandIntent | None:
        if self.remote is None or not visible:
            return None
        try:
            prediction = self.remote.extract_command(message=message, visible=visible)
        except Exception as exc:
            logger.warning("remote_extraction_failed", error=str(exc))
            return None
        if prediction is None:
            return None
        return CommandIntent(
            action=prediction.action,
            position=prediction.position,
            product_id=prediction.product_id,
            product_name=prediction.product_name,
            source="llm",
        )

    def _interpret_rules(self, *, message: str, visible_count: int) -> CommandIntent | None:
        text = f" {message.strip().lower()} "

        if any(phrase in text for phrase in _COMPARE_PHRASES):
            return CommandIntent(action=COMPARE, source="rules")

        if ("cart" in text and "add" in text) or any(phrase in text for phrase in _ADD_PHRASES):
            return self._targeted(ADD_TO_CART, message, visible_count)

        if any(phrase in text for phrase in _DISMISS_PHRASES):
            return self._targeted(DISMISS, message, visible_count)

        if re.search(r"\bnext\b", text) or any(phrase in text for phrase in _NEXT_PHRASES):
            return CommandIntent(action=SHOW_NEXT, source="rules")

        return None

    def _targeted(self, action: str, message: str, visible_count: int) -> CommandIntent:
        text = message.strip().lower()
        return CommandIntent(
            action=action,
            position=self._extract_position(text, visible_count),
            product_id=self._extract_product_id(text),
            product_name=self._extract_name_hint(text),
            source="rules",
        )

    def _extract_position(self, text: str, visible_count: int) -> int | None:
        if re.search(r"\blast\b", text) and visible_count:
            return visible_count
        for word, position in _ORDINALS.items():
            if re.search(rf"\b{re.escape(word)}\b", text):
                return position
        match = re.search(r"(?:#|\bnumber\s*|\bproduct\s*|\bitem\s*)(\d+)", text)
        if match:
            return int(match.group(1))
        bare = re.search(r"\b(\d)\b", text)
        if bare and not re.search(r"\bid\b", text):
            return int(bare.group(1))
        return None

    def _extract_product_id(self, text: str) -> int | None:
        # "product 3" and "#3" name the id shown on the card; it may sit in either slot.
        match = re.search(r"(?:\bid\s*[:#=]?\s*|#|\bproduct\s*|\bitem\s*)(\d+)", text)
        return int(match.group(1)) if match else None

    def _extract_name_hint(self, text: str) -> str | None:
        cleaned = text
        for phrase in (*_ADD_PHRASES, *_DISMISS_PHRASES):
            cleaned = cleaned.replace(phrase.strip(), " ")
        tokens = [
            token
            for token in re.findall(r"[a-z0-9][a-z0-9'\-]*", cleaned)
            if token not in _FILLER_WORDS and token not in _ORDINALS and not token.isdigit()
            and token not in {"add", "last", "id"}
        ]
        return " ".join(tokens) or None

    def _match_name(self, hint: str, visible: Sequence[Product]) -> Product | None:
        needle = hint.strip().lower()
        if not needle:
            return None
        for product in visible:
            if needle in product.name.lower():
                return product
        tokens = needle.split()
        for product in visible:
            name = product.name.lower()
            if tokens and all(token in name for token in tokens):
                return product
        return None
