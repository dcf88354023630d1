"""Abstract base class for deciding whether a chat message needs retrieval.

The orchestrator only embeds and searches for information-seeking
messages; "thanks" or "ok" go straight to the model.  The default
implementation is a keyword heuristic
(:class:`lorekeeper.services.question_classifier.HeuristicQuestionClassifier`);
a model-based classifier can replace it without touching the orchestrator.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IQuestionClassifier(ABC):
    @abstractmethod
    def requires_retrieval(self, message: str) -> bool:
        """Return ``True`` if *message* is information-seeking."""
