"""
Bilidash Title Keywords — word-cloud source data.

A deliberately naive segmenter: Latin words are kept whole, while CJK runs
are cut into every 4-, 3- and 2-character window. Overlapping windows are
all counted ("美食教程" → 美食教程, 美食教, 食教程, 美食, 食教, 教程), which is
what the word cloud's density is tuned for.
"""
from __future__ import annotations

import re
from collections import Counter
from typing import Iterable, List, Tuple

STOP_WORDS = frozenset([
    "的", "了", "是", "在", "我", "有", "和", "就", "不", "人", "都", "一", "一个",
    "上", "也", "很", "到", "说", "要", "去", "你", "会", "着", "没有", "看", "好",
    "自己", "这", "那", "什么", "他", "她", "它", "们", "这个", "那个", "为", "与",
    "及", "等", "或", "从", "被", "把", "对", "让", "给", "但", "而", "如", "如果",
    "可以", "可能", "应该", "已经", "还是", "还有", "只是", "就是", "因为", "所以",
    "然后", "但是", "而且", "或者", "虽然", "不过", "之后", "以后", "之前", "以前",
    "the", "a", "an", "is", "are", "was", "were", "be", "been", "being", "have",
    "has", "had", "do", "does", "did", "will", "would", "could", "should", "may",
    "might", "must", "shall", "can", "need", "dare", "ought", "used", "to", "of",
    "in", "for", "on", "with", "at", "by", "from", "as", "into", "through", "during",
    "before", "after", "above", "below", "between", "under", "again", "further",
    "then", "once", "here", "there", "when", "where", "why", "how", "all", "each",
    "few", "more", "most", "other", "some", "such", "no", "nor", "not", "only",
    "own", "same", "so", "than", "too", "very", "just", "and", "but", "if", "or",
    "because", "until", "while", "about", "against", "what", "which", "who",
    "this", "that", "these", "those", "am", "it", "its", "his", "her", "their",
    "my", "your", "our", "me", "him", "them", "us", "i", "you", "he", "she", "we",
    "they", "ep", "BV", "bv", "av", "AV", "P", "p", "part", "Part", "PART",
])

MIN_KEYWORD_FREQUENCY = 2
MAX_KEYWORDS = 100
WINDOW_SIZES = (4, 3, 2)

_BRACKETS = re.compile(r"[【】\[\]「」『』（）()《》<>\"'“”‘’]")
_PUNCTUATION = re.compile(r"[，。！？、；：·…—\-_|/\\@#$%^&*+=~`]")
_DIGIT_RUNS = re.compile(r"[0-9]+")
_WHITESPACE = re.compile(r"\s+")
_LATIN_WORD = re.compile(r"^[a-zA-Z]+$")
_CJK_ONLY = re.compile(r"^[\u4e00-\u9fa5]+$")


def clean_title(title: str) -> str:
    text = _BRACKETS.sub(" ", title)
    text = _PUNCTUATION.sub(" ", text)
    text = _DIGIT_RUNS.sub(" ", text)
    return _WHITESPACE.sub(" ", text).strip()


def segment_title(title: str) -> List[str]:
    """Tokens contributed by one title, duplicates included."""
    words: List[str] = []
    for segment in clean_title(title).split():
        if _LATIN_WORD.match(segment):
            lowered = segment.lower()
            if len(segment) >= 2 and lowered not in STOP_WORDS:
                words.append(lowered)
            continue
        for size in WINDOW_SIZES:
            for start in range(len(segment) - size + 1):
                word = segment[start:start + size]
                if word not in STOP_WORDS and _CJK_ONLY.match(word):
                    words.append(word)
    return words


def keyword_frequency(
    titles: Iterable[str],
    min_frequency: int = MIN_KEYWORD_FREQUENCY,
    limit: int = MAX_KEYWORDS,
) -> List[Tuple[str, int]]:
    """(token, count) pairs, most frequent first; ties in first-seen order."""
    counts: Counter = Counter()
    for title in titles:
        counts.update(segment_title(title))
    frequent = [(word, count) for word, count in counts.items() if count >= min_frequency]
    frequent.sort(key=lambda pair: pair[1], reverse=True)
    return frequent[:limit]
