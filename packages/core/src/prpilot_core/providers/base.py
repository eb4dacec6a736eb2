"""Base reviewer implementing the Template Method pattern.

All providers share the same review algorithm:
    review() → build_user_prompt() + SYSTEM_PROMPT
             → _call_api()   ← only this differs per provider
             → parse_review_response()

Subclasses implement two things only:
  - __init__: validate and store the SDK client
  - _call_api: make one raw API call and return the text response

review() makes exactly one attempt. A failed call raises straight through so
the pipeline can mark the review as failed with the SDK's own error message.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from typing import Sequence

from prpilot_core.models import ChangedFile, PullRequestInfo, ReviewResult
from prpilot_core.parsing import parse_review_response
from prpilot_core.prompt import SYSTEM_PROMPT, build_user_prompt
from prpilot_core.utils.diff import MAX_DIFF_CHARS

logger = logging.getLogger(__name__)


class BaseReviewer(ABC):
    MODEL: str = ""
    # Low temperature keeps the JSON structure stable between calls.
    TEMPERATURE: float = 0.3
    MAX_TOKENS: int = 4000

    # ------------------------------------------------------------------ #
    # Public interface                                                     #
    # ------------------------------------------------------------------ #

    def review(
        self,
        diff: str,
        pr: PullRequestInfo | None = None,
        files: Sequence[ChangedFile] = (),
        rules: Sequence = (),
        max_diff_chars: int = MAX_DIFF_CHARS,
    ) -> ReviewResult:
        """Review one diff and return a normalized result.

        Malformed model output degrades into a fallback ReviewResult; API
        failures propagate to the caller.
        """
        user = build_user_prompt(diff, pr=pr, files=files, rules=rules, max_diff_chars=max_diff_chars)
        logger.debug("%s: sending %d-char prompt to %s", self.__class__.__name__, len(user), self.MODEL)
        raw = self._call_api(SYSTEM_PROMPT, user)
        return parse_review_response(raw)

    @property
    def name(self) -> str:
        return self.MODEL

    # ------------------------------------------------------------------ #
    # Abstract: implement in each provider                                #
    # ------------------------------------------------------------------ #

    @abstractmethod
    def _call_api(self, system_prompt: str, user_prompt: str) -> str:
        """Make a single API call and return the raw text response."""
