"""
Unit tests for item-name language detection.
"""

import pytest

from menugen.core.language import (
    AMBIGUOUS_CONFIDENCE,
    ENGLISH,
    ROMANIAN,
    SHORT_TEXT_CONFIDENCE,
    LanguageDetector,
    score_language,
)


class TestLanguageDetector:
    """Test detection between Romanian and English."""

    def setup_method(self):
        self.detector = LanguageDetector(default_language="ro", supported=("ro", "en"))

    def test_romanian_name_with_diacritics(self):
        detection = self.detector.detect("Mămăligă cu brânză și smântână")

        assert detection.language == "ro"
        assert detection.confidence > 0.5
        assert any("diacritics" in reason for reason in detection.reasons)

    def test_english_name(self):
        detection = self.detector.detect("Grilled chicken burger with cheese")

        assert detection.language == "en"
        assert detection.confidence > 0.5

    def test_short_text_defaults_with_low_confidence(self):
        detection = self.detector.detect("A")

        assert detection.language == "ro"
        assert detection.confidence == SHORT_TEXT_CONFIDENCE

    def test_no_cues_defaults_as_ambiguous(self):
        detection = self.detector.detect("XYZ 42")

        assert detection.language == "ro"
        assert detection.confidence == AMBIGUOUS_CONFIDENCE
        assert "Ambiguous" in detection.reasons[0]

    def test_default_language_is_configurable(self):
        detector = LanguageDetector(default_language="en", supported=("ro", "en"))
        assert detector.detect("XYZ 42").language == "en"

    def test_override_wins_over_detection(self):
        assert self.detector.effective_language("Grilled chicken burger", "ro") == "ro"
        assert self.detector.effective_language("Grilled chicken burger") == "en"

    def test_unsupported_default_rejected(self):
        with pytest.raises(ValueError, match="must be one of"):
            LanguageDetector(default_language="fr", supported=("ro", "en"))

    def test_language_without_profile_rejected(self):
        with pytest.raises(ValueError, match="no language profile for"):
            LanguageDetector(default_language="fr", supported=("ro", "en", "fr"))


class TestScoreLanguage:
    """Test the per-language scoring function."""

    def test_romanian_diacritics_penalize_english(self):
        score, _ = score_language("Ciorbă de burtă", ENGLISH)
        assert score == 0.0

    def test_score_capped_at_one(self):
        score, _ = score_language("Mămăligă cu brânză și smântână la grătar, de casă", ROMANIAN)
        assert score == 1.0
