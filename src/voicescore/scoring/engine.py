"""Deterministic spoken-proficiency scoring.

Every criterion is a step function over fixed threshold tables. Tiers are
checked from the highest band down; a tier matches only when all of its
thresholds hold, otherwise evaluation falls through to the next tier and
finally to the floor band.
"""

import math
import re

from .metrics import MAX_BAND, MIN_BAND, ScoreMetrics

# (min words per minute, min word count) -> band
FLUENCY_TIERS: tuple[tuple[float, int, int], ...] = (
    (150, 50, 9),
    (120, 40, 8),
    (100, 30, 7),
    (80, 20, 6),
    (60, 15, 5),
    (40, 10, 4),
    (20, 5, 3),
)

# (min diversity, min sophistication) -> band
VOCABULARY_TIERS: tuple[tuple[float, float, int], ...] = (
    (0.9, 0.3, 9),
    (0.8, 0.2, 8),
    (0.7, 0.15, 7),
    (0.6, 0.1, 6),
    (0.5, 0.05, 5),
    (0.4, 0.0, 4),
    (0.3, 0.0, 3),
)

# (min average sentence length, min complexity ratio) -> band
GRAMMAR_TIERS: tuple[tuple[float, float, int], ...] = (
    (12, 0.7, 9),
    (10, 0.6, 8),
    (8, 0.5, 7),
    (6, 0.4, 6),
    (5, 0.3, 5),
    (4, 0.0, 4),
    (3, 0.0, 3),
)

# min mean of the four criteria -> overall band
OVERALL_TIERS: tuple[tuple[float, int], ...] = (
    (8.5, 9),
    (7.5, 8),
    (6.5, 7),
    (5.5, 6),
    (4.5, 5),
    (3.5, 4),
    (2.5, 3),
)

PRONUNCIATION_BASE = 6

SOPHISTICATED_WORDS = frozenset(
    {
        "nevertheless",
        "furthermore",
        "consequently",
        "subsequently",
        "moreover",
        "therefore",
        "however",
        "although",
        "despite",
        "regarding",
        "concerning",
        "significant",
        "essential",
        "crucial",
        "fundamental",
    }
)
SOPHISTICATED_MIN_LENGTH = 7

COMPLEX_CONNECTIVES = ("and", "but", "because", "although", "however", "therefore")

_SENTENCE_SPLIT = re.compile(r"[.!?]+")


def _round_half_up(value: float, digits: int = 0) -> float:
    scale = 10**digits
    return math.floor(value * scale + 0.5) / scale


def _ratio(part: float, whole: float) -> float:
    return part / whole if whole > 0 else 0.0


def _band_from_pairs(primary: float, secondary: float, tiers) -> int:
    for min_primary, min_secondary, band in tiers:
        if primary >= min_primary and secondary >= min_secondary:
            return band
    return MIN_BAND


def tokenize(transcript: str) -> list[str]:
    """Split a transcript on whitespace, discarding empty tokens."""
    return transcript.split()


def split_sentences(transcript: str) -> list[str]:
    """Split on runs of '.', '!' or '?' and drop blank segments."""
    return [segment for segment in _SENTENCE_SPLIT.split(transcript) if segment.strip()]


def is_sophisticated(word: str) -> bool:
    return len(word) >= SOPHISTICATED_MIN_LENGTH or word.lower() in SOPHISTICATED_WORDS


def is_complex_sentence(sentence: str) -> bool:
    if "," in sentence:
        return True
    lowered = sentence.lower()
    return any(connective in lowered for connective in COMPLEX_CONNECTIVES)


def fluency_band(words_per_minute: float, word_count: int) -> int:
    return _band_from_pairs(words_per_minute, word_count, FLUENCY_TIERS)


def vocabulary_band(diversity: float, sophistication: float) -> int:
    return _band_from_pairs(diversity, sophistication, VOCABULARY_TIERS)


def grammar_band(avg_sentence_length: float, complexity: float) -> int:
    return _band_from_pairs(avg_sentence_length, complexity, GRAMMAR_TIERS)


def pronunciation_band(speaking_time: float, word_count: int, sophistication: float) -> int:
    """Proxy band derived from amount of speech and lexical range."""
    band = PRONUNCIATION_BASE
    if speaking_time >= 30 and word_count >= 50:
        band += 2
    elif speaking_time >= 20 and word_count >= 30:
        band += 1
    elif speaking_time < 10 or word_count < 10:
        band -= 1

    if sophistication >= 0.2:
        band += 1

    return min(MAX_BAND, max(MIN_BAND, band))


def overall_band(mean: float) -> int:
    for threshold, band in OVERALL_TIERS:
        if mean >= threshold:
            return band
    return MIN_BAND


def score(transcript: str, duration_seconds: float) -> ScoreMetrics:
    """Score a transcript spoken over ``duration_seconds``.

    Total over any string and any non-negative duration: an empty transcript
    or a zero duration takes the floor branch of every table instead of
    dividing by zero.
    """
    words = tokenize(transcript or "")
    word_count = len(words)
    speaking_time = duration_seconds if duration_seconds and duration_seconds > 0 else 0
    words_per_minute = _ratio(word_count, speaking_time) * 60

    fluency = fluency_band(words_per_minute, word_count)

    unique_words = {word.lower() for word in words}
    diversity = _ratio(len(unique_words), word_count)
    sophistication = _ratio(sum(1 for word in words if is_sophisticated(word)), word_count)
    vocabulary = vocabulary_band(diversity, sophistication)

    sentences = split_sentences(transcript or "")
    avg_sentence_length = _ratio(word_count, len(sentences))
    complexity = _ratio(sum(1 for sentence in sentences if is_complex_sentence(sentence)), len(sentences))
    grammar = grammar_band(avg_sentence_length, complexity)

    pronunciation = pronunciation_band(speaking_time, word_count, sophistication)

    mean = (fluency + pronunciation + grammar + vocabulary) / 4

    return ScoreMetrics(
        fluency=fluency,
        pronunciation=pronunciation,
        grammar=grammar,
        vocabulary=vocabulary,
        overall=overall_band(mean),
        word_count=word_count,
        words_per_minute=int(_round_half_up(words_per_minute)),
        speaking_time=duration_seconds,
        vocabulary_diversity=_round_half_up(diversity, 2),
        sophistication_ratio=_round_half_up(sophistication, 2),
        complexity_ratio=_round_half_up(complexity, 2),
    )
