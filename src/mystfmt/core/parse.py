"""Line-oriented parsing of raw text into typed, source-faithful content blocks"""

import itertools
import re
from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, Optional

from mystfmt.core.models import BlockMetadata, BlockType, ContentBlock, ListType, ParsedContent
from mystfmt.core.utils.words import count_words


FENCE_OPEN_RE     = re.compile(r'^(`{3,}|~{3,})(?![`~{])\s*(\w[\w+#.-]*)?')
DIRECTIVE_OPEN_RE = re.compile(r'^(:{2,}|`{3,})\{([\w:.-]+)\}')
DIRECTIVE_END_RE  = re.compile(r'^(:{2,}|`{3,})\s*$')
HEADING_RE        = re.compile(r'^(#{1,6})\s+')
QUOTE_RE          = re.compile(r'^((?:>\s*)+)')
BULLET_RE         = re.compile(r'^(\s*)([-*+])\s+(.*)$')
NUMBERED_RE       = re.compile(r'^(\s*)(\d+)\.\s+(.*)$')
TABLE_ROW_RE      = re.compile(r'^\|.*\|$')
TABLE_RULE_RE     = re.compile(r'^\|?(\s*:?-+:?\s*\|)+\s*(:?-+:?\s*)?$')


class Mode(Enum):
    NORMAL         = "normal"
    IN_FENCED_CODE = "fenced_code"
    IN_DIRECTIVE   = "directive"
    IN_MATH_BLOCK  = "math_block"


@dataclass
class _OpenBlock:
    """Mutable accumulator for the block currently being built."""
    type:     BlockType
    lines:    list[str]
    start:    int
    end:      int
    verbatim: bool = False          # fence/directive/math regions keep a trailing newline
    metadata: dict = field(default_factory=dict)

    def add(self, line: str, index: int) -> None:
        self.lines.append(line)
        self.end = index

    @property
    def text(self) -> str:
        if self.verbatim:
            return ''.join(f"{line}\n" for line in self.lines)
        return '\n'.join(self.lines)


def block_ids(prefix: str = "block") -> Iterator[str]:
    """Yield block-1, block-2, ... for a single parse."""
    return (f"{prefix}-{n}" for n in itertools.count(1))


def fence_start(line: str) -> Optional[tuple[str, int, str]]:
    """Return (fence_char, fence_len, language) if line opens a plain fenced code block."""
    m = FENCE_OPEN_RE.match(line)
    if not m:
        return None
    return m.group(1)[0], len(m.group(1)), m.group(2) or ''


def is_fence_end(line: str, fence_char: str, fence_len: int) -> bool:
    stripped = line.rstrip()
    return len(stripped) >= fence_len and stripped == fence_char * len(stripped)


def directive_start(line: str) -> Optional[tuple[str, int, str]]:
    """Return (marker_char, run_length, name) if line opens a MyST directive."""
    m = DIRECTIVE_OPEN_RE.match(line.strip())
    if not m:
        return None
    return m.group(1)[0], len(m.group(1)), m.group(2)


def heading_level(line: str) -> Optional[int]:
    m = HEADING_RE.match(line)
    return len(m.group(1)) if m else None


def quote_depth(line: str) -> Optional[int]:
    m = QUOTE_RE.match(line)
    return m.group(1).count('>') if m else None


def list_type(line: str) -> Optional[ListType]:
    if BULLET_RE.match(line):
        return ListType.bullet
    if NUMBERED_RE.match(line):
        return ListType.numbered
    return None


def is_table_line(line: str) -> bool:
    stripped = line.strip()
    return bool(TABLE_ROW_RE.match(stripped)) or ('|' in stripped and bool(TABLE_RULE_RE.match(stripped)))


def is_math_delimiter(line: str) -> bool:
    return line.strip() == '$$'


def parse_content(raw: str, ids: Iterator[str] = None) -> ParsedContent:
    """Split raw text into ordered blocks. Never raises on malformed structure.

    Block ids come from ids (a fresh block-N sequence by default), so two parses of
    the same text produce the same ids. Fenced code, directive, and $$ math regions
    are consumed verbatim; a region still open at end of input is closed implicitly
    and reported through ParsedContent.truncated_at_eof.
    """
    ids = ids if ids is not None else block_ids()
    lines = raw.split('\n')
    blocks: list[ContentBlock] = []
    current: Optional[_OpenBlock] = None
    mode = Mode.NORMAL
    fence_char, fence_len = '', 0

    def finalize() -> None:
        nonlocal current
        if current is not None:
            text = current.text
            blocks.append(ContentBlock(
                id=next(ids),
                type=current.type,
                content=text,
                raw_content=text,
                metadata=BlockMetadata(**current.metadata),
                start_line=current.start,
                end_line=current.end,
            ))
        current = None

    def start(block_type: BlockType, line: str, index: int, verbatim: bool = False, **metadata) -> None:
        nonlocal current
        finalize()
        current = _OpenBlock(block_type, [line], index, index, verbatim, metadata)

    def extend_or_start(block_type: BlockType, line: str, index: int, **metadata) -> None:
        if (current is not None and current.type == block_type and not current.verbatim
                and current.metadata.get('list_type') == metadata.get('list_type')):
            current.add(line, index)
        else:
            start(block_type, line, index, **metadata)

    for i, line in enumerate(lines):
        if mode is Mode.IN_FENCED_CODE:
            current.add(line, i)
            if is_fence_end(line, fence_char, fence_len):
                mode = Mode.NORMAL
                finalize()
            continue

        if mode is Mode.IN_DIRECTIVE:
            current.add(line, i)
            m = DIRECTIVE_END_RE.match(line.rstrip())
            if m and m.group(1)[0] == fence_char and len(m.group(1)) == fence_len:
                mode = Mode.NORMAL
                finalize()
            continue

        if mode is Mode.IN_MATH_BLOCK:
            current.add(line, i)
            if is_math_delimiter(line):
                mode = Mode.NORMAL
                finalize()
            continue

        fence = fence_start(line)
        if fence:
            fence_char, fence_len, language = fence
            start(BlockType.code, line, i, verbatim=True, language=language, is_fenced=True)
            mode = Mode.IN_FENCED_CODE
            continue

        directive = directive_start(line)
        if directive:
            fence_char, fence_len, name = directive
            if name == 'math':
                start(BlockType.math, line, i, verbatim=True, math_type='directive', directive=name)
            else:
                start(BlockType.paragraph, line, i, verbatim=True, directive=name)
            mode = Mode.IN_DIRECTIVE
            continue

        if is_math_delimiter(line):
            start(BlockType.math, line, i, verbatim=True, math_type='block')
            mode = Mode.IN_MATH_BLOCK
            continue

        if not line.strip():
            start(BlockType.empty, line, i)
            finalize()
            continue

        level = heading_level(line)
        if level:
            start(BlockType.heading, line, i, heading_level=level)
            finalize()
            continue

        depth = quote_depth(line)
        if depth:
            if current is not None and current.type == BlockType.quote:
                current.add(line, i)
            else:
                start(BlockType.quote, line, i, quote_depth=depth)
            continue

        kind = list_type(line)
        if kind:
            extend_or_start(BlockType.list, line, i, list_type=kind)
            continue

        if is_table_line(line):
            extend_or_start(BlockType.table, line, i)
            continue

        extend_or_start(BlockType.paragraph, line, i)

    truncated = mode is not Mode.NORMAL
    finalize()

    return ParsedContent(
        blocks=blocks,
        raw_content=raw,
        total_lines=len(lines),
        word_count=count_words(raw),
        truncated_at_eof=truncated,
    )


def reconstruct_content(blocks: list[ContentBlock]) -> str:
    """Rebuild the source text: each block minus one trailing newline, newline-joined."""
    return '\n'.join(b.content[:-1] if b.content.endswith('\n') else b.content for b in blocks)


def get_blocks_by_type(blocks: list[ContentBlock], block_type: BlockType) -> list[ContentBlock]:
    return [b for b in blocks if b.type == block_type]


def get_paragraph_blocks(blocks: list[ContentBlock]) -> list[ContentBlock]:
    return get_blocks_by_type(blocks, BlockType.paragraph)


def is_prose(block: ContentBlock) -> bool:
    """True for paragraph blocks that are not verbatim directive regions."""
    return block.type == BlockType.paragraph and block.metadata.directive is None
