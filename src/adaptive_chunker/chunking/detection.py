"""
Document type detection for the adaptive strategy.
"""

import re
from typing import List, Pattern, Tuple

from .boundaries import Strategy

# Evaluated top to bottom; the first document type with any matching pattern wins.
DETECTION_RULES: List[Tuple[Strategy, Tuple[Pattern[str], ...]]] = [
    (
        Strategy.MARKDOWN,
        (
            re.compile(r"^# ", re.MULTILINE),
            re.compile(r"^```", re.MULTILINE),
            re.compile(r"\|[ \t]*:?-+:?[ \t]*\|"),  # table separator row
        ),
    ),
    (
        Strategy.CODE,
        (re.compile(r"\b(?:function|class|def)\b|\b(?:public|private|async) "),),
    ),
    (Strategy.HTML, (re.compile(r"<[A-Za-z][^>]*>"),)),
    (Strategy.DIALOGUE, (re.compile(r"^\w+:", re.MULTILINE),)),
    (Strategy.LATEX, (re.compile(r"\\section\{|\\begin\{|\\end\{|\$\$"),)),
    (
        Strategy.LOGS,
        (
            re.compile(r"^\d{4}-\d{2}-\d{2}[ T]\d{2}:\d{2}:\d{2}", re.MULTILINE),
            re.compile(r"\[(?:INFO|ERROR|WARN|DEBUG)\]"),
        ),
    ),
    (
        Strategy.EMAIL,
        (
            re.compile(r"^(?:From|To|Subject|Date):", re.MULTILINE),
            re.compile(r"^>", re.MULTILINE),
        ),
    ),
]


def detect_document_type(text: str) -> Strategy:
    """
    Pick the segmentation strategy for a whole document.

    Priority is fixed: markdown, code, html, dialogue, latex, logs, email,
    then plain text as the default. The number of matches never matters.
    """
    for strategy, patterns in DETECTION_RULES:
        if any(pattern.search(text) for pattern in patterns):
            return strategy
    return Strategy.PLAIN
