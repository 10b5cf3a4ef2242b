"""Line diffs between an original text and its formatted counterpart"""

import difflib


def diff_summary(original: str, formatted: str) -> dict[str, int]:
    """Return added/deleted/unchanged line counts between original and formatted."""
    matcher = difflib.SequenceMatcher(None, original.splitlines(), formatted.splitlines())
    counts = {"added": 0, "deleted": 0, "unchanged": 0}

    for tag, i1, i2, j1, j2 in matcher.get_opcodes():
        if tag == "equal":
            counts["unchanged"] += i2 - i1
        if tag in ("replace", "delete"):
            counts["deleted"] += i2 - i1
        if tag in ("replace", "insert"):
            counts["added"] += j2 - j1

    return counts


def unified_diff(
    original: str,
    formatted: str,
    from_label: str = "original",
    to_label: str = "formatted",
    context: int = 3,
    ) -> list[str]:
    """Return unified diff lines (newline-terminated); empty when the texts are identical."""
    return list(difflib.unified_diff(
        original.splitlines(keepends=True),
        formatted.splitlines(keepends=True),
        fromfile=from_label,
        tofile=to_label,
        n=context,
    ))
