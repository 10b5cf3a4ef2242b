"""Stateless pattern scanners over parsed blocks: language, code, list, quote, math, links"""

import re
from typing import NamedTuple

from markdown_it import MarkdownIt

from mystfmt.core.models import BlockType, ContentBlock, DetectedPattern, ListType, PatternType
from mystfmt.core.parse import fence_start, is_fence_end, is_prose
from mystfmt.core.utils.rules import Rule, hits, match_ratio, rule


M, I = re.MULTILINE, re.IGNORECASE

LANGUAGE_PROFILES: dict[str, tuple[Rule, ...]] = {
    'python': (
        rule(r'\b(def|class|import|from|if __name__|print\(|self\.|lambda|yield|async def|await)\b'),
        rule(r'^\s*(def|class|import|from)\s+\w+', flags=M),
        rule(r':$', flags=M),
        rule(r'\bNone\b'),
        rule(r'\bTrue\b|\bFalse\b'),
    ),
    'javascript': (
        rule(r'\b(const|let|var|function|=>|async|await|import|export|require\(|console\.)\b'),
        rule(r'\bfunction\s*\w*\s*\('),
        rule(r'=>\s*[{(]'),
        rule(r'\bmodule\.exports\b'),
    ),
    'typescript': (
        rule(r'\b(interface|type|enum|namespace|declare|readonly|as|implements)\b'),
        rule(r':\s*(string|number|boolean|void|any|unknown|never|object)\b'),
        rule(r'<\w+(\s*,\s*\w+)*>'),
        rule(r'\b(public|private|protected)\s+\w+'),
    ),
    'java': (
        rule(r'\b(public|private|protected|static|final|class|interface|extends|implements|void|new)\b'),
        rule(r'\bSystem\.(out|err)\.'),
        rule(r'\bthrows\s+\w+'),
        rule(r'@Override\b'),
    ),
    'csharp': (
        rule(r'\b(namespace|using|public|private|protected|internal|class|struct|interface|enum|override|virtual|async|await)\b'),
        rule(r'\bvar\s+\w+\s*='),
        rule(r'\bConsole\.(WriteLine|Write|ReadLine)\b'),
        rule(r'\bnew\s+\w+\('),
    ),
    'cpp': (
        rule(r'(#include|#define|#ifdef|#ifndef|#endif|\bnamespace\b|\bclass\b|\bstruct\b|\btemplate\b|\btypename\b|\bpublic:|\bprivate:|\bprotected:)'),
        rule(r'\bstd::\w+'),
        rule(r'\b(cout|cin|endl)\b'),
        rule(r'->'),
    ),
    'rust': (
        rule(r'\b(fn|let|mut|impl|struct|enum|trait|pub|mod|use|match|if let|Some|None|Ok|Err)\b'),
        rule(r'\bprintln!\('),
        rule(r'::\s*\w+'),
        rule(r'&\s*(mut\s+)?\w+'),
    ),
    'go': (
        rule(r'\b(func|package|import|struct|interface|chan|go|defer|make|range|type)\b'),
        rule(r'\bfmt\.\w+'),
        rule(r':=\s*'),
        rule(r'\berr\s*!=\s*nil\b'),
    ),
    'ruby': (
        rule(r'\b(def|end|class|module|require|puts|attr_|do\s*\|)'),
        rule(r'\bputs\b'),
        rule(r'@\w+'),
        rule(r'\|\w+\|'),
    ),
    'php': (
        rule(r'(\$\w+|\bfunction\b|\bclass\b|\bpublic\b|\bprivate\b|\bprotected\b|\becho\b|\brequire\b|\binclude\b|\bnamespace\b|\buse\b)'),
        rule(r'<\?php'),
        rule(r'\$this->'),
        rule(r'->\w+\('),
    ),
    'sql': (
        rule(r'\b(SELECT|INSERT|UPDATE|DELETE|CREATE|DROP|ALTER|FROM|WHERE|JOIN|ON|GROUP BY|ORDER BY|HAVING|LIMIT)\b', flags=I),
        rule(r'\bINNER\s+JOIN\b', flags=I),
        rule(r'\bLEFT\s+(OUTER\s+)?JOIN\b', flags=I),
        rule(r'\bCOUNT\(|\bSUM\(|\bAVG\(', flags=I),
    ),
    'html': (
        rule(r'</?[a-z][\w-]*(?:\s+[\w-]+(?:=["\'][^"\']*["\'])?)*\s*/?>', flags=I),
        rule(r'<html|<head|<body|<div|<span|<p\s|<a\s', flags=I),
        rule(r'<!DOCTYPE\s+html', flags=I),
    ),
    'css': (
        rule(r'\{[\s\S]*?\}'),
        rule(r'\b(color|background|font-size|margin|padding|display|flex|grid):'),
        rule(r'\.[a-zA-Z][\w-]*\s*\{'),
        rule(r'#[a-fA-F0-9]{3,6}\b'),
    ),
    'json': (
        rule(r'^\s*\{[\s\S]*\}\s*$'),
        rule(r'^\s*\[[\s\S]*\]\s*$'),
        rule(r'"[\w-]+"\s*:'),
    ),
    'yaml': (
        rule(r'^\s*[\w-]+:\s*', flags=M),
        rule(r'^\s*-\s+[\w-]+:', flags=M),
        rule(r'^\s*-\s+\w+$', flags=M),
    ),
    'bash': (
        rule(r'\b(echo|export|source|if|then|else|fi|for|do|done|while|case|esac|function)\b'),
        rule(r'^\s*#!/bin/(ba)?sh', flags=M),
        rule(r'\$\{?\w+\}?'),
        rule(r'\|\s*\w+'),
    ),
    'shell': (
        rule(r'^\s*\$\s+\w+', flags=M),
        rule(r'\b(npm|yarn|pip|cargo|go|git|docker|kubectl)\s+'),
        rule(r'--\w+'),
    ),
    'markdown': (
        rule(r'^#{1,6}\s+', flags=M),
        rule(r'\*\*[^*]+\*\*'),
        rule(r'\[.+\]\(.+\)'),
        rule(r'^>\s+', flags=M),
    ),
    'latex': (
        rule(r'\\(begin|end)\{[\w*]+\}'),
        rule(r'\\(frac|sqrt|sum|int|alpha|beta|gamma|delta|theta|lambda|sigma)\b'),
        rule(r'\$[^$]+\$'),
        rule(r'\\[a-zA-Z]+'),
    ),
    'mermaid': (
        rule(r'\b(flowchart|sequenceDiagram|classDiagram|stateDiagram|gantt|pie|erDiagram)\b'),
        rule(r'-->'),
        rule(r'->>'),
    ),
}

MIN_LANGUAGE_SCORE = 0.2
MIN_CODE_INDICATORS = 2
BRACKET_DENSITY = 0.02

BRACKETS_RE = re.compile(r'[{}\[\]();]')

# Independent code indicators; bracket density is checked separately.
CODE_INDICATORS: tuple[Rule, ...] = (
    rule(r'\b(function|class|def|var|let|const|import|export)\b'),
    rule(r'^(?: {4,}|\t)\s*\S', flags=M),
    rule(r'//.*$|/\*[\s\S]*?\*/|#[^!].*$', flags=M),
    rule(r'\b\w+\s*\([^)]*\)\s*[{:;]', flags=M),
)

BULLET_LIKE_RE   = re.compile(r'^\s*[-*•]\s')
NUMBERED_LIKE_RE = re.compile(r'^\s*\d+[.)]\s')
QUOTED_START_RE  = re.compile(r'^["\'“‘]')
QUOTED_END_RE    = re.compile(r'["\'”’]$')
ATTRIBUTION_RE   = re.compile(r'\n\s*[-–—]\s*[\w\s,.]+$')
BLOCK_MATH_RE    = re.compile(r'\$\$[\s\S]+?\$\$')
INLINE_MATH_RE   = re.compile(r'\$[^$\n]+\$')
LATEX_CMD_RE     = re.compile(r'\\(frac|sqrt|sum|int|alpha|beta|gamma|times|div|pm|leq|geq)')
RAW_URL_RE       = re.compile(r'https?://[^\s<>"\']+')

_inline_md = MarkdownIt("gfm-like", options_update={"linkify": False})


class LanguageGuess(NamedTuple):
    language:   str
    confidence: float


class CodeGuess(NamedTuple):
    is_code:    bool
    language:   str
    confidence: float


def detect_language(code: str) -> LanguageGuess:
    """Score every profile as matched/total signals; the best profile below 0.2 is rejected."""
    best, best_score = '', 0.0
    for language, profile in LANGUAGE_PROFILES.items():
        score = match_ratio(profile, code)
        if score > best_score:
            best, best_score = language, score
    if best_score < MIN_LANGUAGE_SCORE:
        return LanguageGuess('', 0.0)
    return LanguageGuess(best, best_score)


def _bracket_dense(text: str) -> bool:
    visible = len(''.join(text.split()))
    return visible > 0 and len(BRACKETS_RE.findall(text)) / visible >= BRACKET_DENSITY


def code_indicator_count(text: str) -> int:
    return int(_bracket_dense(text)) + len(hits(CODE_INDICATORS, text))


def detect_unformatted_code(text: str) -> CodeGuess:
    """Propose text as code only when at least two independent indicators agree."""
    if code_indicator_count(text) < MIN_CODE_INDICATORS:
        return CodeGuess(False, '', 0.0)
    guess = detect_language(text)
    return CodeGuess(True, guess.language or 'text', max(0.5, guess.confidence))


def fence_body(content: str) -> str:
    """Return the lines between a fenced block's opening and closing fence."""
    lines = content.rstrip('\n').split('\n')
    opener = fence_start(lines[0]) if lines else None
    if not opener:
        return content
    body = lines[1:]
    if body and is_fence_end(body[-1], opener[0], opener[1]):
        body = body[:-1]
    return '\n'.join(body)


def detect_code_blocks(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    patterns = []
    for block in blocks:
        if block.type == BlockType.code and not block.metadata.language:
            guess = detect_language(fence_body(block.content))
            patterns.append(DetectedPattern(
                block_id=block.id,
                pattern_type=PatternType.code,
                confidence=guess.confidence,
                metadata={"language": guess.language, "needs_formatting": True, "existing_format": "fenced"},
                suggestion=f"Add language: {guess.language}" if guess.language else None,
            ))
        elif is_prose(block):
            guess = detect_unformatted_code(block.content)
            if guess.is_code:
                patterns.append(DetectedPattern(
                    block_id=block.id,
                    pattern_type=PatternType.code,
                    confidence=guess.confidence,
                    metadata={"language": guess.language, "needs_formatting": True},
                    suggestion=f"Wrap in code block with language: {guess.language}",
                ))
    return patterns


def detect_lists(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    """Flag list blocks, and paragraphs where a majority of lines look like list items."""
    patterns = []
    for block in blocks:
        if block.type == BlockType.list:
            patterns.append(DetectedPattern(
                block_id=block.id,
                pattern_type=PatternType.list,
                confidence=1.0,
                metadata={"list_type": block.metadata.list_type},
            ))
            continue
        if not is_prose(block):
            continue

        lines = block.content.split('\n')
        for list_kind, line_re in ((ListType.bullet, BULLET_LIKE_RE), (ListType.numbered, NUMBERED_LIKE_RE)):
            count = sum(1 for line in lines if line_re.match(line))
            if count > 1 and count / len(lines) > 0.5:
                patterns.append(DetectedPattern(
                    block_id=block.id,
                    pattern_type=PatternType.list,
                    confidence=0.8,
                    metadata={"list_type": list_kind, "needs_formatting": True},
                    suggestion=f"Convert to {list_kind.value} list",
                ))
                break
    return patterns


def detect_quotes(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    patterns = []
    for block in blocks:
        if block.type == BlockType.quote:
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.quote, confidence=1.0,
                metadata={"quote_depth": block.metadata.quote_depth},
            ))
            continue
        if not is_prose(block):
            continue

        content = block.content.strip()
        if QUOTED_START_RE.search(content) and QUOTED_END_RE.search(content):
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.quote, confidence=0.7,
                metadata={"needs_formatting": True}, suggestion="Format as blockquote",
            ))
        if ATTRIBUTION_RE.search(content):
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.quote, confidence=0.8,
                metadata={"needs_formatting": True}, suggestion="Format as epigraph with attribution",
            ))
    return patterns


def detect_math(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    patterns = []
    for block in blocks:
        if block.type == BlockType.math:
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.math, confidence=1.0,
                metadata={"is_inline": False},
            ))
        elif is_prose(block):
            content = block.content
            if BLOCK_MATH_RE.search(content):
                patterns.append(DetectedPattern(
                    block_id=block.id, pattern_type=PatternType.math, confidence=0.95,
                    metadata={"is_inline": False},
                ))
            elif INLINE_MATH_RE.search(content) or LATEX_CMD_RE.search(content):
                patterns.append(DetectedPattern(
                    block_id=block.id, pattern_type=PatternType.math, confidence=0.8,
                    metadata={"is_inline": True},
                ))
    return patterns


def _inline_features(text: str) -> dict[str, int]:
    """Count images, raw URLs outside links, and emphasis spans via markdown-it inline tokens."""
    counts = {"image": 0, "raw_url": 0, "emphasis": 0}
    for tok in _inline_md.parseInline(text):
        depth = 0
        for child in tok.children or []:
            if child.type == 'link_open':
                depth += 1
            elif child.type == 'link_close':
                depth -= 1
            elif child.type == 'image':
                counts["image"] += 1
            elif child.type in ('strong_open', 'em_open', 's_open'):
                counts["emphasis"] += 1
            elif child.type == 'text' and depth == 0:
                counts["raw_url"] += len(RAW_URL_RE.findall(child.content))
    return counts


def detect_links_and_images(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    patterns = []
    for block in blocks:
        if not is_prose(block):
            continue

        counts = _inline_features(block.content)
        if counts["image"]:
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.image, confidence=1.0,
                metadata={"count": counts["image"]},
                suggestion="Consider converting to figure with caption",
            ))
        if counts["raw_url"]:
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.link, confidence=0.7,
                metadata={"count": counts["raw_url"], "needs_formatting": True},
                suggestion="Format raw URLs as markdown links",
            ))
        if counts["emphasis"]:
            patterns.append(DetectedPattern(
                block_id=block.id, pattern_type=PatternType.emphasis, confidence=1.0,
                metadata={"count": counts["emphasis"], "existing_format": "inline"},
            ))
    return patterns


def detect_all_patterns(blocks: list[ContentBlock]) -> list[DetectedPattern]:
    return [
        *detect_code_blocks(blocks),
        *detect_lists(blocks),
        *detect_quotes(blocks),
        *detect_math(blocks),
        *detect_links_and_images(blocks),
    ]
