"""
wasmenv.classifier
==================

Decides whether a string constant looks like an environment variable name.

Compiled modules are full of short string constants: type names, mangled
symbols, protocol tokens, panic messages. The default policy is an ordered rule
table; each rule either decides (accept/reject) or passes the candidate on to
the next one, and a candidate no rule accepts is rejected. Thresholds,
denylist and keywords all come from configuration (see
:mod:`wasmenv.scan_config.structure` and :mod:`wasmenv.defaults`).
"""

import dataclasses
import re
import string
from abc import ABC, abstractmethod
from typing import Callable

from wasmenv.scan_config import default_config
from wasmenv.scan_config.structure import Classifier, NoiseRule

ACCEPT = True
REJECT = False

IDENTIFIER_CHARS = re.compile(r"[A-Za-z0-9_]+")
SCREAMING_SNAKE = re.compile(r"[A-Z0-9_]+")
LETTERS = frozenset(string.ascii_letters)


class ClassificationPolicy(ABC):
    """
    Abstract base class for classification policies.
    """

    @abstractmethod
    def accepts(self, candidate: str) -> bool:
        """Return True if ``candidate`` should be reported."""


@dataclasses.dataclass(frozen=True)
class Rule:
    name: str
    # Returns ACCEPT, REJECT, or None to fall through to the next rule
    check: Callable[[str], bool | None]


def noise_matches(rule: NoiseRule, candidate: str) -> bool:
    if rule.only_without_underscore and "_" in candidate:
        return False
    text, pattern = candidate, rule.pattern
    if rule.ignore_case:
        text, pattern = text.upper(), pattern.upper()
    if rule.match == "exact":
        return text == pattern
    return pattern in text


class RuleTableClassifier(ClassificationPolicy):
    """
    Default policy. Rules, in order:

    1. ``length``: outside [min_length, max_length] rejects
    2. ``charset``: anything but ASCII letters, digits and ``_`` rejects
    3. ``edge_underscore``: a leading or trailing underscore rejects
    4. ``letters``: too few letters, or too small a share of letters, rejects
    5. ``noise``: a denylist hit rejects
    6. ``screaming_snake``: UPPER_CASE_WITH_UNDERSCORES accepts
    7. ``keyword``: an underscore plus a keyword fragment accepts

    Anything left over is rejected.
    """

    def __init__(self, options: Classifier | None = None) -> None:
        self.options = options if options is not None else default_config().classifier
        self._keywords = tuple(k.upper() for k in self.options.keywords)
        self.rules = (
            Rule("length", self._length),
            Rule("charset", self._charset),
            Rule("edge_underscore", self._edge_underscore),
            Rule("letters", self._letters),
            Rule("noise", self._noise),
            Rule("screaming_snake", self._screaming_snake),
            Rule("keyword", self._keyword),
        )

    def explain(self, candidate: str) -> tuple[str, bool]:
        """Return the name of the deciding rule and its verdict."""
        for rule in self.rules:
            verdict = rule.check(candidate)
            if verdict is not None:
                return rule.name, verdict
        return "default", REJECT

    def accepts(self, candidate: str) -> bool:
        return self.explain(candidate)[1]

    def _length(self, candidate):
        if not self.options.min_length <= len(candidate) <= self.options.max_length:
            return REJECT

    def _charset(self, candidate):
        if not IDENTIFIER_CHARS.fullmatch(candidate):
            return REJECT

    def _edge_underscore(self, candidate):
        if candidate.startswith("_") or candidate.endswith("_"):
            return REJECT

    def _letters(self, candidate):
        letters = sum(1 for c in candidate if c in LETTERS)
        if letters < self.options.min_letters:
            return REJECT
        if letters < self.options.min_letter_ratio * len(candidate):
            return REJECT

    def _noise(self, candidate):
        if any(noise_matches(rule, candidate) for rule in self.options.noise):
            return REJECT

    def _screaming_snake(self, candidate):
        if "_" in candidate and SCREAMING_SNAKE.fullmatch(candidate):
            return ACCEPT

    def _keyword(self, candidate):
        upper = candidate.upper()
        if "_" in candidate and any(keyword in upper for keyword in self._keywords):
            return ACCEPT
