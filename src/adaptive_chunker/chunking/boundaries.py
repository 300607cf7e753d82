"""
Boundary detection and block segmentation strategies.

Every splitter returns an ordered list of blocks whose concatenation is
exactly the text it was given. Whitespace is kept inside the blocks, so
packing blocks back together never has to invent separators.
"""

import re
from enum import Enum
from typing import Callable, Dict, List, NamedTuple, Optional, Pattern

BlockSplitter = Callable[[str], List[str]]


class Strategy(str, Enum):
    """Segmentation strategies: document types plus the fallback tiers."""

    FIXED = "fixed"
    SENTENCE = "sentence"
    PARAGRAPH = "paragraph"
    LINE = "line"
    MARKDOWN = "markdown"
    CODE = "code"
    HTML = "html"
    DIALOGUE = "dialogue"
    LATEX = "latex"
    LOGS = "logs"
    EMAIL = "email"
    PLAIN = "plain"


_LINE = re.compile(r"[^\n]*\n|[^\n]+")
_WORD_OR_SPACE = re.compile(r"\S+|\s+")
_SENTENCE = re.compile(r"[^.!?]+[.!?]+\s*")
_PARAGRAPH_BREAK = re.compile(r"\r?\n(?:[ \t]*\r?\n)+|\r?\n(?=[ \t]+\S)")
_FENCE = re.compile(r"^```[^\n]*\n[\s\S]*?^```[^\n]*\n?", re.MULTILINE)

_MARKDOWN_BLOCK = re.compile(
    r"^```[^\n]*\n[\s\S]*?^```[^\n]*\n?"  # fenced code
    r"|^#{1,6}[ \t][^\n]*\n?"  # headings
    r"|^[ \t]*(?:[-*+]|\d+\.)[ \t][^\n]*\n?"  # list items
    r"|^\|[^\n]*\|[ \t]*\r?\n?",  # table rows
    re.MULTILINE,
)
_CODE_KEYWORD = re.compile(
    r"(?:def|class|function|if|for|while|switch|async|public|private)\b"
)
_HTML_ELEMENT = re.compile(
    r"<(p|div|section|pre|code|table)\b[^>]*>[\s\S]*?</\1\s*>",
    re.IGNORECASE,
)
_LATEX_BLOCK = re.compile(
    r"\\(?:sub){0,2}section\*?\{[^}]*\}"
    r"|\\begin\{([^}]*)\}[\s\S]*?\\end\{\1\}"
    r"|\$\$[\s\S]*?\$\$"
)
_SPEAKER = re.compile(r"\w+:(?:\s|$)")
_LOG_ANCHOR = re.compile(
    r"\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}|\[\w+\]|\w+Error:"
)
_EMAIL_LINE = re.compile(
    r"^(?:From|To|Subject|Date):[^\n]*\n?|^>[^\n]*\n?", re.MULTILINE
)


def _fold_whitespace(blocks: List[str]) -> List[str]:
    """Attach whitespace-only blocks to the previous block (or the next one)."""
    folded: List[str] = []
    pending = ""
    for block in blocks:
        if not block:
            continue
        if block.isspace():
            if folded:
                folded[-1] += block
            else:
                pending += block
            continue
        folded.append(pending + block)
        pending = ""
    if pending:
        folded.append(pending)
    return folded


def _split_after(text: str, pattern: Pattern[str]) -> List[str]:
    """Cut text right after every match of ``pattern``."""
    blocks = []
    last = 0
    for match in pattern.finditer(text):
        if match.end() > last:
            blocks.append(text[last : match.end()])
            last = match.end()
    if last < len(text):
        blocks.append(text[last:])
    return _fold_whitespace(blocks)


def _cover(
    text: str,
    pattern: Pattern[str],
    gap_splitter: Optional[BlockSplitter] = None,
) -> List[str]:
    """
    Emit every match of ``pattern`` as a block and fill the gaps between
    matches with the intervening text.

    Leading whitespace of a gap stays with the block before it. Gaps are
    optionally split further with ``gap_splitter``.
    """
    blocks: List[str] = []

    def add_gap(gap: str) -> None:
        body = gap.lstrip()
        lead = gap[: len(gap) - len(body)]
        if lead and blocks:
            blocks[-1] += lead
            gap = body
        if gap:
            blocks.extend(gap_splitter(gap) if gap_splitter else [gap])

    last = 0
    for match in pattern.finditer(text):
        start, end = match.span()
        if start == end:
            continue
        if start > last:
            add_gap(text[last:start])
        blocks.append(match.group(0))
        last = end
    if last < len(text):
        add_gap(text[last:])
    return _fold_whitespace(blocks)


def _group_lines(text: str, starts_group: Callable[[str, str], bool]) -> List[str]:
    """
    Group lines into blocks; a new block begins at every line for which
    ``starts_group(line, previous_line)`` is true.
    """
    blocks = []
    current: List[str] = []
    previous = ""
    for line in _LINE.findall(text):
        if current and starts_group(line, previous):
            blocks.append("".join(current))
            current = []
        current.append(line)
        previous = line
    if current:
        blocks.append("".join(current))
    return _fold_whitespace(blocks)


def split_by_words(text: str) -> List[str]:
    """Final tier: alternating runs of non-whitespace and whitespace."""
    return _WORD_OR_SPACE.findall(text)


def split_by_sentences(text: str) -> List[str]:
    """Split after sentence-ending punctuation and its trailing whitespace."""
    return _cover(text, _SENTENCE)


def split_by_lines(text: str) -> List[str]:
    """One block per line, newline included."""
    return _fold_whitespace(_LINE.findall(text))


def split_by_paragraphs(text: str) -> List[str]:
    """Split on blank lines or on a line break followed by indentation."""
    return _split_after(text, _PARAGRAPH_BREAK)


def split_markdown(text: str) -> List[str]:
    """Headings, fenced code, list items and table rows; paragraphs in between."""
    return _cover(text, _MARKDOWN_BLOCK, split_by_paragraphs)


def _starts_statement_group(line: str, previous: str) -> bool:
    stripped = line.lstrip()
    if not _CODE_KEYWORD.match(stripped):
        return False
    # Top-level statements always open a group; nested ones only after a blank line
    return len(stripped) == len(line) or not previous.strip()


def _split_statement_groups(text: str) -> List[str]:
    return _group_lines(text, _starts_statement_group)


def split_code(text: str) -> List[str]:
    """Fenced code blocks and keyword-led statement groups."""
    return _cover(text, _FENCE, _split_statement_groups)


def split_html(text: str) -> List[str]:
    """Tag-bounded p/div/section/pre/code/table elements."""
    return _cover(text, _HTML_ELEMENT, split_by_paragraphs)


def split_latex(text: str) -> List[str]:
    """Sectioning commands, environments and display math."""
    return _cover(text, _LATEX_BLOCK, split_by_paragraphs)


def split_dialogue(text: str) -> List[str]:
    """Speaker turns: a ``Name:`` line plus its continuation lines."""
    return _group_lines(text, lambda line, _previous: bool(_SPEAKER.match(line)))


def split_log_entries(text: str) -> List[str]:
    """
    Log entries anchored by a timestamp, a ``[LEVEL]`` marker or an
    ``XError:`` token. Unanchored lines stay with the entry above them.
    Without any anchor, every line is its own entry.
    """
    if not any(_LOG_ANCHOR.match(line) for line in _LINE.findall(text)):
        return split_by_lines(text)
    return _group_lines(text, lambda line, _previous: bool(_LOG_ANCHOR.match(line)))


def split_email(text: str) -> List[str]:
    """Header lines, quoted-reply lines and body paragraphs."""
    return _cover(text, _EMAIL_LINE, split_by_paragraphs)


class Segmenter(NamedTuple):
    """A segmentation tier and the tier used for its oversized blocks."""

    strategy: Strategy
    split: BlockSplitter
    fallback: Optional[Strategy] = None


SEGMENTERS: Dict[Strategy, Segmenter] = {
    Strategy.FIXED: Segmenter(Strategy.FIXED, split_by_words),
    Strategy.SENTENCE: Segmenter(Strategy.SENTENCE, split_by_sentences, Strategy.FIXED),
    Strategy.LINE: Segmenter(Strategy.LINE, split_by_lines, Strategy.FIXED),
    Strategy.PARAGRAPH: Segmenter(
        Strategy.PARAGRAPH, split_by_paragraphs, Strategy.SENTENCE
    ),
    Strategy.PLAIN: Segmenter(Strategy.PLAIN, split_by_paragraphs, Strategy.SENTENCE),
    Strategy.MARKDOWN: Segmenter(Strategy.MARKDOWN, split_markdown, Strategy.PARAGRAPH),
    Strategy.CODE: Segmenter(Strategy.CODE, split_code, Strategy.LINE),
    Strategy.HTML: Segmenter(Strategy.HTML, split_html, Strategy.PARAGRAPH),
    Strategy.LATEX: Segmenter(Strategy.LATEX, split_latex, Strategy.PARAGRAPH),
    Strategy.DIALOGUE: Segmenter(Strategy.DIALOGUE, split_dialogue, Strategy.SENTENCE),
    Strategy.LOGS: Segmenter(Strategy.LOGS, split_log_entries, Strategy.LINE),
    Strategy.EMAIL: Segmenter(Strategy.EMAIL, split_email, Strategy.PARAGRAPH),
}


def get_segmenter(strategy: Strategy | str) -> Segmenter:
    return SEGMENTERS[Strategy(strategy)]


def segment(strategy: Strategy | str, text: str) -> List[str]:
    """Split ``text`` into blocks with the given strategy."""
    return get_segmenter(strategy).split(text)


def fallback_chain(strategy: Strategy | str) -> List[Strategy]:
    """The tiers tried, in order, for an oversized block of ``strategy``."""
    chain = []
    fallback = get_segmenter(strategy).fallback
    while fallback is not None:
        chain.append(fallback)
        fallback = SEGMENTERS[fallback].fallback
    return chain
