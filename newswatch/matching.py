"""Match fetched articles against subject watches."""

import re
import unicodedata
from typing import Iterable, List, NamedTuple, Optional

from .ingestion.models import Candidate, NormalizedArticle

_NON_WORD_RUN = re.compile(r"[\W_]+")


class ActiveWatch(NamedTuple):
    """A watch reduced to what matching needs."""

    subject_id: int
    tokens: List[str]


def squash(text: Optional[str]) -> str:
    """Lower-case, NFKD-normalize and collapse non letter/digit runs to one space."""
    normalized = unicodedata.normalize("NFKD", (text or "").lower())
    # Combining marks left by NFKD are not letters or digits
    normalized = "".join(ch for ch in normalized if not unicodedata.combining(ch))
    return _NON_WORD_RUN.sub(" ", normalized)


def haystack_for(article: NormalizedArticle) -> str:
    """Title plus excerpt (or summary), squashed."""
    body = article.excerpt or article.summary or ""
    return squash(f"{article.title} {body}")


def prepare_watches(watches: Iterable[dict]) -> List[ActiveWatch]:
    """Keep enabled watches with a non-blank query and pre-tokenize them.

    Each watch is a mapping with ``subject_id``, ``query`` and ``enabled``.
    """
    active = []
    for watch in watches:
        if not watch.get("enabled", True):
            continue
        tokens = squash((watch.get("query") or "").strip()).split()
        if not tokens:
            continue
        active.append(ActiveWatch(subject_id=watch["subject_id"], tokens=tokens))
    return active


def matching_subject_ids(haystack: str, watches: Iterable[ActiveWatch]) -> List[int]:
    """Subject ids whose every query token occurs in the haystack."""
    matched: List[int] = []
    for watch in watches:
        if all(token in haystack for token in watch.tokens):
            if watch.subject_id not in matched:
                matched.append(watch.subject_id)
    return matched


def match_articles(
    articles: Iterable[NormalizedArticle],
    watches: List[ActiveWatch],
) -> List[Candidate]:
    """Pair each article with its matching subjects, dropping articles with none."""
    candidates = []
    for article in articles:
        subject_ids = matching_subject_ids(haystack_for(article), watches)
        if subject_ids:
            candidates.append(Candidate(article=article, subject_ids=subject_ids))
    return candidates
