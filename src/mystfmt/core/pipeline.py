"""Format pipeline: transform, verify, and clean-then-reformat entry points"""

import re

import structlog

from mystfmt.core.engine import transform_content
from mystfmt.core.models import TransformationConfig, TransformationResult, VerificationResult
from mystfmt.core.verify import strip_formatting, verify_preservation


logger = structlog.get_logger(__name__)

MYST_MARKERS: tuple[re.Pattern, ...] = (
    re.compile(r'^:::\{[\w-]+\}', re.MULTILINE),
    re.compile(r'^:::[\w-]+', re.MULTILINE),
    re.compile(r'^```\{[\w-]+\}', re.MULTILINE),
    re.compile(r'^\([^)]+\)=$', re.MULTILINE),
    re.compile(r'\{[\w-]+\}`[^`]+`'),
)


class FormatResult(TransformationResult):
    verification:      VerificationResult
    was_cleaned_first: bool = False


class PreservationError(ValueError):
    """Raised when formatted output fails the preservation check."""

    def __init__(self, result: FormatResult):
        self.result = result
        details = ', '.join(i.description for i in result.verification.issues) or 'verification failed'
        super().__init__(f"Content preservation failed: {details}")


def format_content(
    content: str,
    config: TransformationConfig = None,
    overlap_threshold: float = 0.7,
    ) -> FormatResult:
    """Transform content, then verify the output against it."""
    result = transform_content(content, config)
    verification = verify_preservation(content, result.formatted_content, overlap_threshold=overlap_threshold)
    if not verification.is_preserved:
        logger.warning(
            "pipeline.not_preserved",
            percentage=round(verification.preservation_percentage, 1),
            missing=len(verification.missing_sentences),
        )
    return FormatResult(**result.model_dump(), verification=verification)


def format_content_strict(
    content: str,
    config: TransformationConfig = None,
    overlap_threshold: float = 0.7,
    ) -> FormatResult:
    """format_content, raising PreservationError when the verdict is negative."""
    result = format_content(content, config, overlap_threshold)
    if not result.verification.is_preserved:
        raise PreservationError(result)
    return result


def has_myst_formatting(content: str) -> bool:
    """True when content already carries directives, labels, or roles."""
    return any(p.search(content) for p in MYST_MARKERS)


def clean_and_reformat(
    content: str,
    config: TransformationConfig = None,
    overlap_threshold: float = 0.7,
    ) -> FormatResult:
    """Strip all existing markup, then format the remaining prose from scratch.

    Verification compares against the stripped text, not the marked-up input.
    """
    cleaned = strip_formatting(content)
    logger.debug("pipeline.cleaned", before=len(content), after=len(cleaned))
    return format_content(cleaned, config, overlap_threshold)


def smart_format(
    content: str,
    config: TransformationConfig = None,
    overlap_threshold: float = 0.7,
    ) -> FormatResult:
    if has_myst_formatting(content):
        result = clean_and_reformat(content, config, overlap_threshold)
        return result.model_copy(update={"was_cleaned_first": True})
    return format_content(content, config, overlap_threshold)
