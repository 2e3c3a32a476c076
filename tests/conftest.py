import os
from typing import Callable, Optional

import pytest

from helpers import PROJECT
from mdloc.config import MarkdownConfig, ProjectConfig, Settings
from mdloc.markdown_file import MarkdownFile


@pytest.fixture(autouse=True)
def _isolated_env(monkeypatch: pytest.MonkeyPatch, tmp_path_factory: pytest.TempPathFactory) -> None:
    # keep a developer's MDLOC_* variables and .env out of the tests
    for name in list(os.environ):
        if name.startswith("MDLOC_"):
            monkeypatch.delenv(name)
    monkeypatch.chdir(tmp_path_factory.mktemp("cwd"))


@pytest.fixture
def settings() -> Settings:
    return Settings(
        project=ProjectConfig(id=PROJECT, source_locale="en-US", locales=["fr-FR", "de-DE"]),
        markdown=MarkdownConfig(),
    )


@pytest.fixture
def make_file(settings: Settings) -> Callable[..., MarkdownFile]:
    def _make(text: str, path: Optional[str] = "docs/test.md", **kwargs) -> MarkdownFile:
        md = MarkdownFile(path, settings=kwargs.pop("settings", settings), **kwargs)
        md.parse(text)
        return md

    return _make
