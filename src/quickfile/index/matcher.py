"""Fuzzy matching of a query against a single filename.

Matching is case-insensitive and accent-insensitive. Folding is done one
character at a time so that offsets into the folded text are also offsets
into the original text.
"""

import unicodedata
from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from rapidfuzz import fuzz
from rapidfuzz.distance import LCSseq

BOUNDARY_CHARS = frozenset("/_-. ")
CONSECUTIVE_BONUS = 8
BOUNDARY_BONUS = 10
GAP_PENALTY = 1


@dataclass(frozen=True)
class FuzzyMatch:
    score: int
    indices: list[int]  # ascending offsets into the haystack


def fold_char(char: str) -> str:
    decomposed = unicodedata.normalize("NFKD", char)
    base = decomposed[0] if decomposed else char
    lowered = base.lower()
    return lowered if len(lowered) == 1 else base


def fold(text: str) -> str:
    """Lowercase and strip accents without changing the length of ``text``."""
    if text.isascii():
        return text.lower()
    return "".join(fold_char(char) for char in text)


def is_word_start(text: str, index: int) -> bool:
    if index == 0:
        return True
    previous, current = text[index - 1], text[index]
    if previous in BOUNDARY_CHARS:
        return True
    return previous.islower() and current.isupper()


def translate_offsets(indices: Iterable[int], display_path: str) -> list[int]:
    """Shift filename-relative offsets so they point into ``display_path``."""
    shift = display_path.rfind("/") + 1
    return [index + shift for index in indices]


class FuzzyMatcher:
    def match(self, query: str, haystack: str) -> FuzzyMatch | None:
        """
        Score ``haystack`` against ``query``.

        The query is split on whitespace into terms. Every term must align, in
        order, within the haystack, but terms may match in any order relative
        to each other. Term scores are summed and offsets merged. A query with
        no terms matches everything with score 0.
        """
        folded = fold(haystack)
        score = 0
        indices: set[int] = set()
        for term in query.split():
            found = self._match_term(fold(term), folded, haystack)
            if found is None:
                return None
            score += found.score
            indices.update(found.indices)
        return FuzzyMatch(score=score, indices=sorted(indices))

    def _match_term(self, needle: str, folded: str, haystack: str) -> FuzzyMatch | None:
        if len(needle) > len(folded):
            return None
        indices = self._align(needle, folded, haystack)
        if indices is None:
            return None
        return FuzzyMatch(score=self._score(needle, folded, haystack, indices), indices=indices)

    def _align(self, needle: str, folded: str, haystack: str) -> list[int] | None:
        # A contiguous occurrence is preferred, starting on a word boundary if possible.
        start = folded.find(needle)
        if start != -1:
            best = start
            while start != -1:
                if is_word_start(haystack, start):
                    best = start
                    break
                start = folded.find(needle, start + 1)
            return list(range(best, best + len(needle)))

        if LCSseq.similarity(needle, folded) < len(needle):
            return None

        indices: list[int] = []
        for opcode in LCSseq.opcodes(needle, folded):
            if opcode.tag == "equal":
                indices.extend(range(opcode.dest_start, opcode.dest_end))
        return indices

    def _score(self, needle: str, folded: str, haystack: str, indices: Sequence[int]) -> int:
        score = round(fuzz.ratio(needle, folded)) + round(fuzz.partial_ratio(needle, folded))
        previous = None
        for index in indices:
            if previous is not None and index == previous + 1:
                score += CONSECUTIVE_BONUS
            if is_word_start(haystack, index):
                score += BOUNDARY_BONUS
            previous = index
        span = indices[-1] - indices[0] + 1
        score -= (span - len(indices)) * GAP_PENALTY
        return score
