"""Antecedent extraction from free-text entry notes."""
import re
from abc import ABC, abstractmethod
from typing import List, Optional


class AntecedentExtractor(ABC):
    """Turns a free-text note into antecedent tokens (foods, activities, ...)."""

    @abstractmethod
    def extract(self, text: Optional[str]) -> List[str]:
        """Return distinct, normalized tokens found in ``text``."""
        pass


class RegexNoteMiner(AntecedentExtractor):
    """
    Lexical note miner.

    Two kinds of patterns are applied:
    - consumption phrasing: "ate X", "had X", "drank X", "tried X", skipping
      articles and quantifiers ("had a lot of cheese" -> "cheese")
    - a fixed vocabulary of common dietary/chemical triggers matched as
      whole words

    Each token is returned once per note even when both kinds match it, so
    "ate chocolate" yields a single "chocolate" rather than one per pattern.

    This is plain pattern matching, not NLP. Swap in another
    AntecedentExtractor for anything smarter.
    """

    CONSUMPTION_VERBS = ("ate", "had", "drank", "tried")

    STOP_WORDS = frozenset(
        {
            "a", "an", "the", "some", "my", "our", "his", "her", "their",
            "too", "much", "many", "more", "lot", "lots", "of", "few",
            "bit", "little", "any", "this", "that", "another", "extra",
        }
    )

    TRIGGER_VOCABULARY = (
        "coffee",
        "alcohol",
        "chocolate",
        "cheese",
        "wine",
        "sugar",
        "gluten",
        "dairy",
        "spicy",
    )

    MIN_TOKEN_LENGTH = 3

    def __init__(self, vocabulary=None):
        vocabulary = tuple(vocabulary) if vocabulary is not None else self.TRIGGER_VOCABULARY
        verbs = "|".join(self.CONSUMPTION_VERBS)
        self._consumption_pattern = re.compile(
            rf"\b(?:{verbs})\s+(?=((?:\w+\s+){{0,4}}\w+))", re.IGNORECASE
        )
        self._vocabulary_pattern = (
            re.compile(r"\b(" + "|".join(map(re.escape, vocabulary)) + r")\b", re.IGNORECASE)
            if vocabulary
            else None
        )

    def _object_of(self, phrase: str) -> Optional[str]:
        # First word after the verb that is not a stop-word
        for word in phrase.lower().split():
            if word not in self.STOP_WORDS:
                return word
        return None

    def _accept(self, token: Optional[str]) -> bool:
        return bool(token) and len(token) >= self.MIN_TOKEN_LENGTH and token not in self.STOP_WORDS

    def extract(self, text: Optional[str]) -> List[str]:
        if not text:
            return []

        tokens = []
        for match in self._consumption_pattern.finditer(text):
            token = self._object_of(match.group(1))
            if self._accept(token) and token not in tokens:
                tokens.append(token)

        if self._vocabulary_pattern is not None:
            for match in self._vocabulary_pattern.finditer(text):
                token = match.group(1).lower()
                if self._accept(token) and token not in tokens:
                    tokens.append(token)

        return tokens
