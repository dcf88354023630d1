"""Keyword heuristic deciding whether a chat message needs retrieval.

Greetings and acknowledgements ("hi", "thanks!", "ok cool") are answered
from the conversation alone; anything that looks like a question or a
request for information triggers a knowledge-base search.
"""

from __future__ import annotations

import re

from lorekeeper.interfaces.question_classifier import IQuestionClassifier

# Words that open a question or an information request.
_QUESTION_WORDS: frozenset[str] = frozenset({
    "what", "why", "how", "when", "where", "who", "which",
    "can", "could", "would", "should",
    "is", "are", "do", "does", "did",
    "explain", "tell", "describe", "summarize", "list",
    "show", "give", "find", "compare", "define",
})

_SMALL_TALK: frozenset[str] = frozenset({
    "hi", "hello", "hey", "yo", "thanks", "thank", "you", "thx", "ok", "okay",
    "cool", "great", "nice", "awesome", "bye", "goodbye", "good", "morning",
    "evening", "night", "cheers", "sure", "yes", "no", "yeah", "nope", "got",
    "it", "perfect", "lol", "much", "very", "so", "alright", "see", "ya",
    "i", "m", "s", "that", "all", "again", "a", "lot",
})

_WORD_RE = re.compile(r"[a-z0-9]+")

# Messages with this many words are treated as requests unless every word
# is small talk.
_MIN_SUBSTANTIVE_WORDS = 4


class HeuristicQuestionClassifier(IQuestionClassifier):
    """Classifies by punctuation, leading word and length."""

    def requires_retrieval(self, message: str) -> bool:
        text = message.strip()
        if not text:
            return False
        if text.endswith("?"):
            return True

        words = _WORD_RE.findall(text.lower())
        if not words:
            return False
        if words[0] in _QUESTION_WORDS:
            return True

        return len(words) >= _MIN_SUBSTANTIVE_WORDS and not all(w in _SMALL_TALK for w in words)
