"""Type definitions for proficiency scoring.

Provides:
- ScoreMetrics: Immutable band scores and the ratios they were derived from
"""

from dataclasses import dataclass

MIN_BAND = 2
MAX_BAND = 9


@dataclass(frozen=True)
class ScoreMetrics:
    """Result of scoring one transcript against its speaking time.

    Band fields are integers in [2, 9]. Ratio fields are in [0, 1] and
    rounded to two decimals; words_per_minute is rounded to an integer.
    """

    fluency: int
    pronunciation: int
    grammar: int
    vocabulary: int
    overall: int

    word_count: int = 0
    words_per_minute: int = 0
    speaking_time: float = 0.0
    vocabulary_diversity: float = 0.0
    sophistication_ratio: float = 0.0
    complexity_ratio: float = 0.0

    @property
    def bands(self) -> dict[str, int]:
        """The five band scores keyed by criterion."""
        return {
            "fluency": self.fluency,
            "pronunciation": self.pronunciation,
            "grammar": self.grammar,
            "vocabulary": self.vocabulary,
            "overall": self.overall,
        }

    def to_dict(self) -> dict:
        """Convert to dictionary for JSON serialization."""
        return {
            **self.bands,
            "wordCount": self.word_count,
            "wordsPerMinute": self.words_per_minute,
            "speakingTime": self.speaking_time,
            "vocabularyDiversity": self.vocabulary_diversity,
            "sophisticationRatio": self.sophistication_ratio,
            "complexityRatio": self.complexity_ratio,
        }
