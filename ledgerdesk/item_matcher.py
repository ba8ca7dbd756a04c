from __future__ import annotations

import re
from typing import Dict, Iterable, List, Tuple

from ledgerdesk.accounting_models import Item, MatchResult, MatchStatus

VARIANT_WEIGHT = 5
REGULAR_WEIGHT = 1

# "5kg", "2kantong", "3pcs": a number glued to any word is a quantity, not a keyword.
_QTY_TOKEN_RE = re.compile(r"^\d+[a-z]+$")

# Words that tell two otherwise identical items apart ("cabe merah" vs "cabe hijau").
VARIANT_KEYWORDS = {
    "merah",
    "hijau",
    "kuning",
    "putih",
    "tanjung",
    "kriting",
    "keriting",
    "besar",
    "kecil",
    "sedang",
}


def normalize(text: str) -> str:
    """Lower-case, turn anything that is not a letter or digit into a space, collapse spaces."""
    cleaned = "".join(ch.lower() if ch.isalnum() else " " for ch in text or "")
    return " ".join(cleaned.split())


def split_keywords(raw: str) -> List[str]:
    keywords: List[str] = []
    for part in (raw or "").split(","):
        kw = normalize(part)
        if kw:
            keywords.append(kw)
    return keywords


class ItemMatcher:
    """Keyword matcher over a fixed catalog snapshot.

    Every item is scored by the keywords it shares with the description. Variant
    keywords weigh more and also filter: a description saying "merah" only
    considers items that carry "merah". A single best score is a match, a tie at
    the top is ambiguous, and no positive score is unmatched.
    """

    def __init__(self, items: Iterable[Item]):
        self._items: Tuple[Item, ...] = tuple(items)
        self._keywords: Tuple[Tuple[str, ...], ...] = tuple(tuple(split_keywords(i.keywords)) for i in self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def items(self) -> Tuple[Item, ...]:
        return self._items

    def score(self, text: str) -> List[Tuple[Item, int]]:
        tokens = {tok for tok in normalize(text).split() if not _QTY_TOKEN_RE.match(tok)}
        variants = tokens & VARIANT_KEYWORDS

        scored: List[Tuple[Item, int]] = []
        for item, keywords in zip(self._items, self._keywords):
            if variants and not variants.issubset(keywords):
                continue
            total = 0
            for kw in keywords:
                if kw in tokens:
                    total += VARIANT_WEIGHT if kw in VARIANT_KEYWORDS else REGULAR_WEIGHT
            if total > 0:
                scored.append((item, total))
        return scored

    def match(self, text: str) -> MatchResult:
        scored = self.score(text)
        if not scored:
            return MatchResult(status=MatchStatus.UNMATCHED)

        best = max(total for _, total in scored)
        top = [item for item, total in scored if total == best]
        if len(top) == 1:
            return MatchResult(status=MatchStatus.MATCHED, item=top[0])
        return MatchResult(status=MatchStatus.AMBIGUOUS, candidates=top)


def build_matcher(rows: Iterable) -> ItemMatcher:
    """Build a matcher from catalog ORM rows (anything with item_* attributes)."""
    items = [
        Item(id=r.id, code=r.item_code, name=r.item_name, keywords=r.keywords or "", unit=r.unit)
        for r in rows
    ]
    return ItemMatcher(items)


def count_by_status(results: Iterable[MatchResult]) -> Dict[MatchStatus, int]:
    counts = {status: 0 for status in MatchStatus}
    for r in results:
        counts[r.status] += 1
    return counts


__all__ = ["ItemMatcher", "VARIANT_KEYWORDS", "build_matcher", "count_by_status", "normalize", "split_keywords"]
