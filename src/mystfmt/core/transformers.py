"""MyST wrappers: pure string builders that wrap text without altering it"""

import re
from typing import Optional

from mystfmt.core.models import AdmonitionType
from mystfmt.core.parse import fence_start


COLON_RUN_RE = re.compile(r'^(:{3,})', re.MULTILINE)
TICK_RUN_RE  = re.compile(r'^(`{3,})', re.MULTILINE)


def _fence(run_re: re.Pattern, char: str, content: str) -> str:
    """Return a fence one longer than any run of char opening a line in content (min 3)."""
    longest = max((len(m) for m in run_re.findall(content)), default=2)
    return char * max(3, longest + 1)


def wrap_in_admonition(content: str, admonition_type: AdmonitionType, title: str = None) -> str:
    body = content.strip()
    fence = _fence(COLON_RUN_RE, ':', body)
    header = f"{fence}{{{AdmonitionType(admonition_type).value}}}"
    if title:
        header += f" {title}"
    return f"{header}\n{body}\n{fence}"


def wrap_in_dropdown_admonition(content: str, admonition_type: AdmonitionType, title: str) -> str:
    body = content.strip()
    fence = _fence(COLON_RUN_RE, ':', body)
    return f"{fence}{{{AdmonitionType(admonition_type).value}}} {title}\n:class: dropdown\n{body}\n{fence}"


def format_code_block(code: str, language: str) -> str:
    """Fence code with a language tag; leading indentation of the code is kept."""
    body = code.strip('\n')
    fence = _fence(TICK_RUN_RE, '`', body)
    return f"{fence}{language}\n{body}\n{fence}"


def format_code_block_with_options(
    code: str,
    language: str,
    linenos: bool = False,
    caption: str = None,
    label: str = None,
    emphasize_lines: list[int] = None,
    filename: str = None,
    ) -> str:
    """Build a ```{code} directive with MyST options ahead of the code."""
    body = code.strip('\n')
    fence = _fence(TICK_RUN_RE, '`', body)
    options = []
    if label:
        options.append(f":label: {label}")
    if caption:
        options.append(f":caption: {caption}")
    if filename:
        options.append(f":filename: {filename}")
    if linenos:
        options.append(":linenos:")
    if emphasize_lines:
        options.append(f":emphasize-lines: {','.join(str(n) for n in emphasize_lines)}")
    return '\n'.join([f"{fence}{{code}} {language}", *options, body, fence])


def set_fence_language(block: str, language: str) -> Optional[str]:
    """Write language into the opening fence of a fenced block, keeping fence char and length.

    Returns None when block does not open with a plain fence or already carries a language.
    """
    first, sep, rest = block.partition('\n')
    opener = fence_start(first)
    if opener is None or opener[2]:
        return None
    fence_char, fence_len, _ = opener
    return f"{fence_char * fence_len}{language}{sep}{rest}"


def format_blockquote(content: str) -> str:
    return '\n'.join(f"> {line}" for line in content.strip().split('\n'))


def format_math_block(equation: str, label: str = None) -> str:
    body = equation.strip()
    if label:
        return f"```{{math}}\n:label: {label}\n{body}\n```"
    return f"$$\n{body}\n$$"


def add_label(content: str, label: str) -> str:
    """Prefix content with a MyST cross-reference target."""
    return f"({label})=\n{content}"
