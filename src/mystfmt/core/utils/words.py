"""Word counting that ignores fences, directive markers, and markdown punctuation"""

import re


FENCED_RE    = re.compile(r'```[\s\S]*?```')
FENCE_LANG_RE = re.compile(r'^\w+\n?')
DIRECTIVE_RE = re.compile(r':::\{?\w+\}?')
MARKUP_RE    = re.compile(r'[#*_`>\[\](){}]')


def _unfence(match: re.Match) -> str:
    """Keep the code inside a fence, dropping the fence markers and language tag."""
    return FENCE_LANG_RE.sub('', match.group(0)[3:-3])


def count_words(text: str) -> int:
    """Return the number of whitespace-separated words after stripping markup."""
    stripped = FENCED_RE.sub(_unfence, text)
    stripped = DIRECTIVE_RE.sub('', stripped).replace(':::', '')
    stripped = MARKUP_RE.sub(' ', stripped)
    return len(stripped.split())
