"""Lexicon sentiment scorer with negation and intensifiers."""

import math
import re
from typing import List

POSITIVE_WORDS = frozenset(
    {"good", "great", "gain", "improve", "success", "benefit", "positive", "growth"}
)
NEGATIVE_WORDS = frozenset(
    {"bad", "worse", "loss", "decline", "risk", "fail", "negative", "drop"}
)
NEGATORS = frozenset({"not", "no", "never", "hardly", "scarcely"})
INTENSIFIERS = frozenset({"very", "extremely", "highly", "strongly"})

INTENSIFIER_BOOST = 1.5
SATURATION = 5.0

# Letters, digits and in-word apostrophes; underscores are not word characters here
_TOKEN_RE = re.compile(r"[^\W_]+(?:'[^\W_]+)*")


def tokenize(text: str) -> List[str]:
    """Lower-cased Unicode word tokens."""
    return _TOKEN_RE.findall(text.lower())


def score_sentiment(text: str) -> float:
    """
    Score text in [-1, 1].

    A negator flips, and an intensifier boosts, only the next
    sentiment-bearing word. The raw sum is squashed with tanh so long
    texts saturate instead of growing without bound.
    """
    score = 0.0
    flip = False
    boost = 1.0

    for token in tokenize(text or ""):
        if token in NEGATORS:
            flip = not flip
            continue
        if token in INTENSIFIERS:
            boost = INTENSIFIER_BOOST
            continue

        if token in POSITIVE_WORDS:
            delta = 1
        elif token in NEGATIVE_WORDS:
            delta = -1
        else:
            delta = 0

        if delta:
            score += (-delta if flip else delta) * boost
            flip = False
            boost = 1.0

    return max(-1.0, min(1.0, math.tanh(score / SATURATION)))
