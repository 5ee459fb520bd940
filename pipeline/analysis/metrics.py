"""Per-page content metrics: word count, readability, keyword density, depth."""

import re
from collections import Counter

from pipeline.models import Heading, KeywordDensity

# Letter-initial tokens; keeps non-ASCII letters (ä, ö, é) intact
WORD_PATTERN = re.compile(r"[^\W\d_][\w'-]*", re.UNICODE)

MIN_KEYWORD_LENGTH = 3
MIN_KEYWORD_COUNT = 3
MAX_KEYWORDS = 20
MIN_PHRASE_COUNT = 2
MAX_PHRASES = 15

# Above this many syllables per word (or below WORDS_PER_SENTENCE_FLOOR) the
# English Flesch formula misbehaves, so a normalized scale is used instead.
SYLLABLES_PER_WORD_CEILING = 2.2
WORDS_PER_SENTENCE_FLOOR = 8


def count_words(text: str) -> int:
    return len(text.split())


def count_syllables(word: str) -> int:
    """Approximate syllables by counting vowel groups."""
    word = word.lower()
    if len(word) <= 3:
        return 1

    count = 0
    previous_was_vowel = False
    for char in word:
        is_vowel = char in "aeiouy"
        if is_vowel and not previous_was_vowel:
            count += 1
        previous_was_vowel = is_vowel

    if word.endswith("e") and count > 1:
        count -= 1

    return max(1, count)


def readability_score(sentences: list[str]) -> float:
    """Flesch reading ease clamped to 0-100, with a language-neutral fallback."""
    if not sentences:
        return 0.0

    words = [w for sentence in sentences for w in sentence.split()]
    if not words:
        return 0.0

    avg_words = len(words) / len(sentences)
    avg_syllables = sum(count_syllables(w) for w in words) / len(words)

    if avg_syllables > SYLLABLES_PER_WORD_CEILING or avg_words < WORDS_PER_SENTENCE_FLOOR:
        sentence_part = min(100.0, (avg_words / 25) * 50)
        word_part = max(0.0, 50 - (avg_syllables - 1) * 20)
        score = sentence_part + word_part
    else:
        score = 206.835 - 1.015 * avg_words - 84.6 * avg_syllables

    return max(0.0, min(100.0, score))


def _tokens(content: str) -> list[str]:
    return [w for w in WORD_PATTERN.findall(content.lower()) if len(w) >= MIN_KEYWORD_LENGTH]


def keyword_density(content: str) -> list[KeywordDensity]:
    """Top keywords that occur at least three times, by share of all words."""
    words = _tokens(content)
    total = len(words) or 1
    counts = Counter(words)

    keywords = [
        KeywordDensity(keyword=word, count=count, density=count / total * 100)
        for word, count in counts.items()
        if count >= MIN_KEYWORD_COUNT
    ]
    keywords.sort(key=lambda k: k.density, reverse=True)
    return keywords[:MAX_KEYWORDS]


def semantic_keywords(content: str) -> list[str]:
    """Recurring two- and three-word phrases."""
    words = _tokens(content)
    phrases: Counter[str] = Counter()
    for i in range(len(words) - 1):
        phrases[f"{words[i]} {words[i + 1]}"] += 1
    for i in range(len(words) - 2):
        phrases[f"{words[i]} {words[i + 1]} {words[i + 2]}"] += 1

    ranked = [(p, c) for p, c in phrases.items() if c >= MIN_PHRASE_COUNT]
    ranked.sort(key=lambda item: item[1], reverse=True)
    return [p for p, _ in ranked[:MAX_PHRASES]]


def content_depth(paragraphs: list[str], headings: list[Heading]) -> float:
    """0-100 blend of body word volume and heading distribution."""
    total_words = count_words(" ".join(paragraphs))
    h1 = sum(1 for h in headings if h.level == 1)
    h2 = sum(1 for h in headings if h.level == 2)
    h3 = sum(1 for h in headings if h.level == 3)

    score = min(50.0, total_words / 20)
    score += min(20, h2 * 3)
    score += min(15, h3 * 2)
    score += 10 if h1 == 1 else 0

    avg_paragraph = total_words / len(paragraphs) if paragraphs else 0
    if 20 < avg_paragraph < 80:
        score += 15

    return min(100.0, score)
