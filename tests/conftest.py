"""Shared test fixtures for the clipcat test suite.

Design:
- tmp_vault: Isolated vault in a temp directory, selected via CLIPCAT_VAULT_ROOT
- runner: CliRunner with proper isolation
- Async tests use pytest-asyncio (@pytest.mark.asyncio)
"""

import logging
from collections.abc import Generator
from pathlib import Path

import pytest
from click.testing import CliRunner

from clipcat._logging import PACKAGE_LOGGER
from clipcat.cli import cli

# ─────────────────────────────────────────────────────────────────────────────
# Markers
# ─────────────────────────────────────────────────────────────────────────────


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')",
    )


# ─────────────────────────────────────────────────────────────────────────────
# Core Fixtures
# ─────────────────────────────────────────────────────────────────────────────


@pytest.fixture(autouse=True)
def reset_logging() -> Generator[None, None, None]:
    """Undo configure_logging() after each test.

    The CLI attaches a handler bound to the runner's stderr, which is closed
    once the invocation ends.
    """
    yield
    package_logger = logging.getLogger(PACKAGE_LOGGER)
    for handler in list(package_logger.handlers):
        package_logger.removeHandler(handler)
    package_logger.setLevel(logging.NOTSET)
    package_logger.propagate = True


@pytest.fixture
def runner() -> CliRunner:
    """CLI runner with isolated environment."""
    return CliRunner()


@pytest.fixture
def tmp_vault(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Create an isolated vault with a settings file.

    Sets CLIPCAT_VAULT_ROOT to the vault for the duration of the test.

    Usage:
        def test_something(tmp_vault):
            create_note(tmp_vault, "clip.md", "source: https://example.com")
    """
    vault = tmp_path / "vault"
    vault.mkdir()
    (vault / ".clipcat.yaml").write_text("source_property_name: source\n")

    monkeypatch.setenv("CLIPCAT_VAULT_ROOT", str(vault))
    monkeypatch.delenv("CLIPCAT_QUIET", raising=False)
    monkeypatch.delenv("CLIPCAT_LOG_LEVEL", raising=False)
    return vault


@pytest.fixture
def tmp_vault_with_clippings(tmp_vault: Path) -> Path:
    """Vault with a few clippings and some notes that are not clippings.

    Creates:
    - inbox/python-tips.md (source, tags: python, tips), created first
    - inbox/rust-guide.md (source list, inline #rust)
    - reading/Untitled.md (source, heading "Async in Depth")
    - journal/today.md (no source property)
    - scratch.md (no front-matter)
    """
    create_note(
        tmp_vault,
        "inbox/python-tips.md",
        "source: https://www.python.org/tips\ntags: [python, tips]",
        "Useful Python programming tips.\n",
    )
    create_note(
        tmp_vault,
        "inbox/rust-guide.md",
        "source:\n  - https://doc.rust-lang.org/book\n  - https://rust-lang.org",
        "Getting started with #rust programming.\n",
    )
    create_note(
        tmp_vault,
        "reading/Untitled.md",
        "source: https://example.com/async",
        "# Async in Depth\n\nEvent loops explained.\n",
    )
    create_note(tmp_vault, "journal/today.md", "mood: good", "Nothing clipped today.\n")
    create_note(tmp_vault, "scratch.md", None, "Just text.\n")
    return tmp_vault


@pytest.fixture
def cli_invoke(runner: CliRunner, tmp_vault: Path):
    """Helper for invoking CLI with proper isolation.

    Usage:
        def test_list(cli_invoke):
            result = cli_invoke(["list"])
            assert result.exit_code == 0
    """

    def _invoke(args: list[str], input: str | None = None, catch_exceptions: bool = False):
        return runner.invoke(
            cli,
            args,
            input=input,
            catch_exceptions=catch_exceptions,
            env={"CLIPCAT_VAULT_ROOT": str(tmp_vault)},
        )

    return _invoke


# ─────────────────────────────────────────────────────────────────────────────
# Helper Functions (for test code, not fixtures)
# ─────────────────────────────────────────────────────────────────────────────


def create_note(vault_root: Path, path: str, frontmatter: str | None, body: str = "") -> Path:
    """Helper to create a note, with a front-matter block unless frontmatter is None.

    Usage in tests:
        from conftest import create_note
        note = create_note(tmp_vault, "clip.md", "source: https://example.com", "Body")
    """
    note_path = vault_root / path
    note_path.parent.mkdir(parents=True, exist_ok=True)

    if frontmatter is None:
        text = body
    else:
        text = f"---\n{frontmatter}\n---\n{body}"
    note_path.write_text(text, encoding="utf-8", newline="")
    return note_path
