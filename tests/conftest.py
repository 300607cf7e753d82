"""Global test configuration for adaptive-chunker tests."""

import pytest
import structlog
from typer.testing import CliRunner


@pytest.fixture
def cli_runner():
    """Typer CLI runner for command tests."""
    return CliRunner()


@pytest.fixture(autouse=True)
def reset_logging():
    """Drop any structlog configuration a test (or CLI invocation) installed."""
    yield
    structlog.reset_defaults()


@pytest.fixture
def markdown_doc():
    return (
        "# Title\n\n"
        "Intro paragraph.\n\n"
        "## Setup\n\n"
        "- install\n"
        "- run\n\n"
        "```python\n"
        "print('hi')\n"
        "```\n\n"
        "| a | b |\n"
        "|---|---|\n"
        "| 1 | 2 |\n"
    )


@pytest.fixture
def mixed_doc():
    """A document touching every structural rule at least once."""
    return (
        "# Release notes\n\n"
        "The release went out on time. Nobody was paged!\n\n"
        "    Indented remark about the rollout.\n"
        "Alice: Did the migration finish?\n"
        "Bob: Yes, about an hour ago.\n\n"
        "2024-01-01 10:00:00 [INFO] migration started\n"
        "[ERROR] retry scheduled\n"
        "ValueError: bad row\n\n"
        "<p>Rendered <b>summary</b></p>\n"
        "\\section{Appendix}\n"
        "$$x = 1$$\n"
        "From: ops@example.com\n"
        "> earlier reply\n\n"
        "def check():\n"
        "    return True\n"
    )
