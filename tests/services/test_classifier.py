import pytest

from src.services.classifier import Intent, classify, is_background_removal


class TestBackgroundRemoval:
    @pytest.mark.parametrize(
        "prompt",
        [
            "remove background",
            "Please REMOVE THE BACKGROUND now",
            "do a background removal",
            "give it a Transparent   Background",
        ],
    )
    def test_matches(self, prompt: str) -> None:
        assert classify(prompt) is Intent.BACKGROUND_REMOVAL
        assert is_background_removal(prompt)

    def test_takes_precedence_over_filters(self) -> None:
        assert classify("remove the background and make it black and white") is Intent.BACKGROUND_REMOVAL

    def test_background_alone_is_not_removal(self) -> None:
        assert not is_background_removal("blur the background")


class TestLocalFilters:
    @pytest.mark.parametrize(
        ("prompt", "expected"),
        [
            ("make it black and white", Intent.GRAYSCALE),
            ("BlackAndWhite please", Intent.GRAYSCALE),
            ("grayscale", Intent.GRAYSCALE),
            ("Greyscale", Intent.GRAYSCALE),
            ("mono", Intent.GRAYSCALE),
            ("monochrome look", Intent.GRAYSCALE),
            ("warmer tones", Intent.WARM_TONE),
            ("like a sunset", Intent.WARM_TONE),
            ("golden  hour light", Intent.WARM_TONE),
            ("watercolor painting", Intent.WATERCOLOR),
            ("Water color style", Intent.WATERCOLOR),
        ],
    )
    def test_matches(self, prompt: str, expected: Intent) -> None:
        assert classify(prompt) is expected

    def test_grayscale_wins_over_warm(self) -> None:
        assert classify("warm black and white") is Intent.GRAYSCALE

    def test_warm_wins_over_watercolor(self) -> None:
        assert classify("warm watercolor") is Intent.WARM_TONE


class TestNoMatch:
    @pytest.mark.parametrize("prompt", ["", "add a hat", "make the sky purple", "golden retriever"])
    def test_none(self, prompt: str) -> None:
        assert classify(prompt) is Intent.NONE

    def test_none_prompt(self) -> None:
        assert classify(None) is Intent.NONE
