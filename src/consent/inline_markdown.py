"""
Inline markdown formatting for export.

Only inline emphasis is interpreted: **bold**, *italic*, `code`,
~~strikethrough~~ and [links](url). Block syntax (headings, lists, quotes)
stays literal, and whitespace including newlines is preserved.
"""

import re
from dataclasses import dataclass, replace


class MarkdownFormatError(ValueError):
    """Markdown text that cannot be turned into printable runs."""


@dataclass(frozen=True)
class Run:
    """A span of text with uniform inline style."""
    text: str
    bold: bool = False
    italic: bool = False
    code: bool = False
    strikethrough: bool = False
    link: str | None = None


# Alternatives are tried left to right at the leftmost match position.
# A bold body may hold complete *italic* spans and an italic body complete
# **bold** spans; any other lone "*" ends the match attempt.
_INLINE = re.compile(
    r"`(?P<code>[^`\n]+)`"
    r"|\*\*\*(?P<bold_italic>[^*\n]+?)\*\*\*"
    r"|\*\*(?P<bold>(?:[^*\n]|\*[^*\n]+\*)+?)\*\*"
    r"|__(?P<bold_alt>[^\n]+?)__"
    r"|~~(?P<strike>[^\n]+?)~~"
    r"|\*(?P<italic>(?:[^*\n]|\*\*[^*\n]+\*\*)+?)\*(?!\*)"
    r"|(?<![\w])_(?P<italic_alt>[^_\n]+?)_(?![\w])"
    r"|\[(?P<link_text>[^\]\n]+)\]\((?P<link_url>[^)\s]+)\)"
)

_CONTROL_CHARS = re.compile(r"[\x00-\x08\x0b-\x1f\x7f]")


def format_inline_markdown(text: str) -> list[Run]:
    """
    Split markdown into styled runs.

    Raises MarkdownFormatError for text containing control characters,
    which the PDF backend cannot print.
    """
    match = _CONTROL_CHARS.search(text)
    if match:
        raise MarkdownFormatError(f"Unprintable character {match.group()!r} at offset {match.start()}")
    return _merge(_parse(text, Run("")))


def _parse(text: str, style: Run) -> list[Run]:
    runs: list[Run] = []
    pos = 0
    for match in _INLINE.finditer(text):
        if match.start() > pos:
            runs.append(replace(style, text=text[pos:match.start()]))
        pos = match.end()

        if match.group("code") is not None:
            # Code spans are not parsed further
            runs.append(replace(style, text=match.group("code"), code=True))
        elif match.group("bold_italic") is not None:
            runs.extend(_parse(match.group("bold_italic"), replace(style, bold=True, italic=True)))
        elif match.group("bold") is not None or match.group("bold_alt") is not None:
            inner = match.group("bold") if match.group("bold") is not None else match.group("bold_alt")
            runs.extend(_parse(inner, replace(style, bold=True)))
        elif match.group("strike") is not None:
            runs.extend(_parse(match.group("strike"), replace(style, strikethrough=True)))
        elif match.group("italic") is not None or match.group("italic_alt") is not None:
            inner = match.group("italic") if match.group("italic") is not None else match.group("italic_alt")
            runs.extend(_parse(inner, replace(style, italic=True)))
        else:
            runs.extend(_parse(match.group("link_text"), replace(style, link=match.group("link_url"))))

    if pos < len(text):
        runs.append(replace(style, text=text[pos:]))
    return runs


def _merge(runs: list[Run]) -> list[Run]:
    """Drop empty runs and join neighbours with identical style."""
    merged: list[Run] = []
    for run in runs:
        if not run.text:
            continue
        if merged and replace(merged[-1], text="") == replace(run, text=""):
            merged[-1] = replace(merged[-1], text=merged[-1].text + run.text)
        else:
            merged.append(run)
    return merged


def plain_text(runs: list[Run]) -> str:
    return "".join(run.text for run in runs)
