import logging

import pytest

from mdloc.config import HtmlConfig, MappingConfig, Settings, load_settings
from mdloc.exceptions import ConfigError
from mdloc.log import configure_logging


def test_defaults() -> None:
    settings = Settings()
    assert settings.project.source_locale == "en-US"
    assert settings.project.pseudo_locale == "zxx-XX"
    assert settings.markdown.mappings is None
    assert settings.markdown.fully_translated is False


def test_environment_overrides(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MDLOC_PROJECT__SOURCE_LOCALE", "fr-FR")
    monkeypatch.setenv("MDLOC_MARKDOWN__LOCALIZE_LINKS", "true")
    settings = load_settings()
    assert settings.project.source_locale == "fr-FR"
    assert settings.markdown.localize_links is True


def test_mappings_from_environment(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MDLOC_MARKDOWN__MAPPINGS", '{"docs/**/*.md": {"frontmatter": ["title"]}}')
    mappings = load_settings().markdown.mappings
    assert mappings == {"docs/**/*.md": MappingConfig(frontmatter=["title"])}


def test_invalid_value_raises_config_error(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("MDLOC_PROJECT__NOPSEUDO", "sometimes")
    with pytest.raises(ConfigError):
        load_settings()


# ---------- HtmlConfig ----------


def test_html_tag_tables() -> None:
    html = HtmlConfig()
    assert html.is_non_breaking("SPAN")
    assert not html.is_non_breaking("div")
    assert html.is_self_closing("br")
    assert not html.is_self_closing("b")


@pytest.mark.parametrize(
    "tag, attribute, expected",
    [
        ("img", "alt", True),
        ("div", "title", True),
        ("span", "ARIA-LABEL", True),
        ("input", "placeholder", True),
        ("div", "placeholder", False),
        ("img", "src", False),
    ],
)
def test_localizable_attributes(tag: str, attribute: str, expected: bool) -> None:
    assert HtmlConfig().is_localizable_attribute(tag, attribute) is expected


# ---------- Logging ----------


def test_configure_logging_adds_one_handler() -> None:
    logger = logging.getLogger("mdloc")
    before = list(logger.handlers)
    try:
        configure_logging("debug")
        configure_logging("debug")
        added = [h for h in logger.handlers if h not in before]
        assert len(added) == 1
        assert logger.level == logging.DEBUG
    finally:
        for handler in logger.handlers[:]:
            if handler not in before:
                logger.removeHandler(handler)
        logger.setLevel(logging.NOTSET)
