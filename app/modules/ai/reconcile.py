"""Mapping free-text model labels back onto the facilitator's categories.

The model is asked to echo category names verbatim but often does not. Every
function here is pure so the matching rules can be tested with plain strings.
"""

import re
from typing import Any, Dict, Iterable, List, Optional, Sequence, Tuple

SEPARATOR = "•"
MIN_TOKEN_LENGTH = 3
MIN_KEYWORD_OVERLAP = 1
DEFAULT_CONFIDENCE = 0.5
UNPLACED_CONFIDENCE = 0.0

STOPWORDS = frozenset({
    "and", "the", "for", "with", "from", "into", "about", "other", "others", "misc",
    "och", "att", "för", "med", "som", "till", "från", "det", "den", "övrigt",
})

_WORD_RE = re.compile(r"\w+", re.UNICODE)


def normalize(label: Optional[str]) -> str:
    return " ".join((label or "").casefold().split())


def main_part(label: str) -> str:
    return normalize(label.split(SEPARATOR, 1)[0])


def without_separator(label: str) -> str:
    return normalize(label.replace(SEPARATOR, " "))


def tokenize(label: str) -> set:
    return {
        token for token in _WORD_RE.findall(normalize(label))
        if len(token) >= MIN_TOKEN_LENGTH and token not in STOPWORDS
    }


def reconcile(candidate: str, canonical: Sequence[str]) -> str:
    """Return the canonical label that candidate most plausibly means.

    Tiers, first hit wins, ties go to the earlier canonical label:
    exact (case-insensitive), part before the separator, substring either way,
    keyword overlap. No hit falls back to canonical[0].
    """
    if not canonical:
        raise ValueError("canonical labels must not be empty")
    wanted = normalize(candidate)
    if not wanted:
        return canonical[0]

    for label in canonical:
        if normalize(label) == wanted:
            return label

    wanted_main = main_part(candidate)
    for label in canonical:
        label_main = main_part(label)
        if not label_main:
            continue
        if wanted in (label_main, without_separator(label)) or wanted_main == label_main:
            return label

    for label in canonical:
        norm = normalize(label)
        if norm and (norm in wanted or wanted in norm):
            return label

    wanted_tokens = tokenize(candidate)
    best_label, best_score = None, 0
    for label in canonical:
        score = len(wanted_tokens & tokenize(label))
        if score > best_score:
            best_label, best_score = label, score
    if best_label is not None and best_score >= MIN_KEYWORD_OVERLAP:
        return best_label

    return canonical[0]


def classify_categories(categories: Iterable[str], existing_titles: Iterable[str]) -> Dict[str, str]:
    """'existing' when a question with that title is already on the target board, else 'new'"""
    existing = {normalize(t) for t in existing_titles}
    return {c: ("existing" if normalize(c) in existing else "new") for c in categories}


def clean_categories(categories: Iterable[str]) -> List[str]:
    """Trimmed, non-empty, de-duplicated case-insensitively, order kept"""
    seen = set()
    cleaned = []
    for c in categories:
        c = (c or "").strip()
        key = normalize(c)
        if key and key not in seen:
            seen.add(key)
            cleaned.append(c)
    return cleaned


def _confidence(value: Any) -> float:
    try:
        confidence = float(value)
    except (TypeError, ValueError):
        return DEFAULT_CONFIDENCE
    if confidence != confidence:  # NaN
        return DEFAULT_CONFIDENCE
    return max(0.0, min(1.0, confidence))


def _note_index(item: Any, note_count: int) -> Optional[int]:
    """0-based index from a 1-based noteIndex, or None when unusable"""
    raw = item.get("noteIndex") if isinstance(item, dict) else item
    if isinstance(raw, bool):
        return None
    try:
        index = int(raw)
    except (TypeError, ValueError):
        return None
    if 1 <= index <= note_count:
        return index - 1
    return None


def assign_notes(
    raw_clusters: Dict[str, Any],
    note_count: int,
    canonical: Sequence[str],
) -> Dict[str, List[Tuple[int, float]]]:
    """Fold model clusters onto canonical labels so every note lands exactly once.

    Unknown labels are reconciled, bad or repeated indices are ignored (first
    placement wins) and notes the model left out go to canonical[0].
    """
    assigned: Dict[str, List[Tuple[int, float]]] = {label: [] for label in canonical}
    placed = set()
    for raw_label, items in raw_clusters.items():
        if not isinstance(items, list):
            continue
        label = reconcile(str(raw_label), canonical)
        for item in items:
            index = _note_index(item, note_count)
            if index is None or index in placed:
                continue
            placed.add(index)
            confidence = item.get("confidence") if isinstance(item, dict) else None
            assigned[label].append((index, _confidence(confidence) if confidence is not None else DEFAULT_CONFIDENCE))

    for index in range(note_count):
        if index not in placed:
            assigned[canonical[0]].append((index, UNPLACED_CONFIDENCE))
    return assigned
