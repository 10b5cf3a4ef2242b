"""Data models for the parse, detect, transform, and verify stages"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field


class BlockType(str, Enum):
    paragraph = "paragraph"
    code      = "code"
    list      = "list"
    quote     = "quote"
    heading   = "heading"
    table     = "table"
    math      = "math"
    empty     = "empty"


class ListType(str, Enum):
    bullet   = "bullet"
    numbered = "numbered"


class PatternType(str, Enum):
    code     = "code"
    list     = "list"
    quote    = "quote"
    table    = "table"
    math     = "math"
    heading  = "heading"
    link     = "link"
    image    = "image"
    emphasis = "emphasis"


class AdmonitionType(str, Enum):
    note      = "note"
    tip       = "tip"
    hint      = "hint"
    important = "important"
    warning   = "warning"
    caution   = "caution"
    attention = "attention"
    danger    = "danger"
    error     = "error"
    seealso   = "seealso"


class SuggestionSource(str, Enum):
    """Provenance of an admonition suggestion; external always outranks rule-based."""
    rule_based = "rule-based"
    external   = "external"


class TransformationKind(str, Enum):
    admonition    = "admonition"
    code_language = "code-language"
    code_block    = "code-block"


class IssueType(str, Enum):
    missing_content     = "missing-content"
    extra_content       = "extra-content"
    modified_content    = "modified-content"
    word_count_mismatch = "word-count-mismatch"


class IssueSeverity(str, Enum):
    error   = "error"
    warning = "warning"
    info    = "info"


# --- parse ---

class BlockMetadata(BaseModel):
    model_config = ConfigDict(frozen=True)

    language:      Optional[str] = None
    list_type:     Optional[ListType] = None
    heading_level: Optional[int] = None
    is_fenced:     Optional[bool] = None
    quote_depth:   Optional[int] = None
    math_type:     Optional[str] = None     # block | directive
    directive:     Optional[str] = None     # MyST directive name for verbatim directive regions


class ContentBlock(BaseModel):
    """A contiguous run of source lines with a structural type. Immutable once parsed."""
    model_config = ConfigDict(frozen=True)

    id:          str
    type:        BlockType
    content:     str
    raw_content: str
    metadata:    BlockMetadata = BlockMetadata()
    start_line:  int
    end_line:    int


class ParsedContent(BaseModel):
    blocks:           list[ContentBlock]
    raw_content:      str
    total_lines:      int
    word_count:       int
    truncated_at_eof: bool = False      # a fence/directive/math region was still open at EOF

    def block(self, block_id: str) -> Optional[ContentBlock]:
        return next((b for b in self.blocks if b.id == block_id), None)


# --- detect ---

class DetectedPattern(BaseModel):
    block_id:     str
    pattern_type: PatternType
    confidence:   float = Field(ge=0.0, le=1.0)
    metadata:     dict[str, Any] = {}
    suggestion:   Optional[str] = None


class AdmonitionSuggestion(BaseModel):
    block_id:        str
    type:            AdmonitionType
    confidence:      float
    reason:          str = ""
    suggested_title: Optional[str] = None
    source:          SuggestionSource = SuggestionSource.rule_based


class ExternalSuggestion(BaseModel):
    """A per-block suggestion produced outside the engine (e.g. by a language model).

    paragraph_id must be a block id from this engine's own parse of the same input.
    type is kept as a plain string; unknown admonition names are dropped by the engine.
    """
    model_config = ConfigDict(populate_by_name=True)

    paragraph_id: str = Field(alias="paragraphId")
    type:         str
    title:        Optional[str] = None
    reason:       str = ""
    confidence:   float = 1.0


# --- transform ---

class TransformationConfig(BaseModel):
    selected_features:               list[str] = []
    enable_admonitions:              bool = True
    enable_code_blocks:              bool = True
    enable_auto_language_detection:  bool = True
    admonition_confidence_threshold: float = Field(default=0.65, ge=0.0, le=1.0)
    admonition_hint_threshold:       float = Field(default=0.4, ge=0.0, le=1.0, description="Below-threshold candidates at or above this are surfaced as suggestions")
    code_confidence_threshold:       float = Field(default=0.7, ge=0.0, le=1.0)
    max_suggestions:                 int = Field(default=20, ge=0)
    external_suggestions:            list[ExternalSuggestion] = []


class AppliedTransformation(BaseModel):
    block_id:            str
    type:                TransformationKind
    description:         str
    original_content:    str
    transformed_content: str


class TransformationSuggestion(BaseModel):
    block_id:   str
    type:       str
    suggestion: str
    confidence: float


class TransformationResult(BaseModel):
    formatted_content:       str
    original_word_count:     int
    formatted_word_count:    int
    applied_transformations: list[AppliedTransformation] = []
    suggestions:             list[TransformationSuggestion] = []
    warnings:                list[str] = []


# --- verify ---

class VerificationIssue(BaseModel):
    type:        IssueType
    severity:    IssueSeverity
    description: str
    excerpt:     Optional[str] = None


class VerificationResult(BaseModel):
    is_preserved:               bool
    original_word_count:        int
    formatted_word_count:       int
    word_count_difference:      int
    preservation_percentage:    float
    original_sentences:         int
    formatted_sentences:        int
    sentence_preservation_rate: float
    missing_sentences:          list[str] = []
    issues:                     list[VerificationIssue] = []


# --- chapter analysis ---

class ChapterPatternType(str, Enum):
    code_explanation  = "code-explanation"
    concept_example   = "concept-example"
    warning_context   = "warning-context"
    tip_context       = "tip-context"
    reference_section = "reference-section"


class Complexity(str, Enum):
    simple   = "simple"
    moderate = "moderate"
    complex  = "complex"


class ChapterSection(BaseModel):
    id:                str
    title:             str
    level:             int      # 0 for the implicit section before the first heading
    start_block_index: int
    end_block_index:   int
    word_count:        int = 0
    has_code:          bool = False
    has_list:          bool = False
    has_quote:         bool = False
    blocks:            list[ContentBlock] = []


class ContentPattern(BaseModel):
    type:        ChapterPatternType
    block_ids:   list[str]
    confidence:  float
    description: str


class FeatureDistribution(BaseModel):
    notes:     int = 0
    tips:      int = 0
    warnings:  int = 0
    important: int = 0
    cautions:  int = 0
    see_also:  int = 0
    cards:     int = 0
    dropdowns: int = 0


class ChapterStructure(BaseModel):
    title:                   str
    total_word_count:        int
    total_blocks:            int
    sections:                list[ChapterSection] = []
    patterns:                list[ContentPattern] = []
    code_block_count:        int = 0
    list_count:              int = 0
    paragraph_count:         int = 0
    heading_count:           int = 0
    estimated_reading_time:  int = 0      # minutes
    complexity:              Complexity = Complexity.simple
    suggested_feature_count: FeatureDistribution = FeatureDistribution()
