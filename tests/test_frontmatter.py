from typing import Callable, Dict

import pytest

from helpers import PROJECT, translation, translations
from mdloc.config import MappingConfig, MarkdownConfig, Settings
from mdloc.frontmatter import YAML_DATATYPE, YamlFrontMatter
from mdloc.markdown_file import MarkdownFile
from mdloc.markdown_file_type import MarkdownFileType
from mdloc.storage.translation_set import TranslationSet
from mdloc.utils import hash_key

DOCUMENT = "---\ntitle: My Title\nauthor: Someone\n---\n\nBody text.\n"


def with_mappings(settings: Settings, mappings: Dict[str, MappingConfig]) -> Settings:
    return settings.model_copy(update={"markdown": MarkdownConfig(mappings=mappings)})


# ---------- YamlFrontMatter ----------


def test_parse_collects_string_fields() -> None:
    fm = YamlFrontMatter(project=PROJECT, path="a.md", source_locale="en-US")
    fm.parse("title: Hello\ntags:\n  - one\n  - two\ncount: 3\nmeta:\n  description: A page\n")
    resources = {resource.key: resource for resource in fm.get_all()}
    prefix = hash_key("a.md")
    assert set(resources) == {
        f"{prefix}.title",
        f"{prefix}.tags.0",
        f"{prefix}.tags.1",
        f"{prefix}.meta.description",
    }
    assert resources[f"{prefix}.title"].source == "Hello"
    assert resources[f"{prefix}.title"].datatype == YAML_DATATYPE


def test_parse_limits_to_fields() -> None:
    fm = YamlFrontMatter(project=PROJECT, path="a.md", source_locale="en-US", fields=["meta"])
    fm.parse("title: Hello\nmeta:\n  description: A page\n")
    assert [resource.source for resource in fm.get_all()] == ["A page"]


def test_invalid_yaml_is_kept_as_is(caplog: pytest.LogCaptureFixture) -> None:
    fm = YamlFrontMatter(project=PROJECT, path="a.md", source_locale="en-US")
    fm.parse("title: [unclosed\n")
    assert fm.get_all() == []
    assert fm.localize_text(TranslationSet("en-US"), "fr-FR") == "title: [unclosed\n"
    assert "Could not parse front matter" in caplog.text


def test_localize_text_replaces_translated_fields() -> None:
    fm = YamlFrontMatter(project=PROJECT, path="a.md", source_locale="en-US")
    fm.parse("title: Hello\nauthor: Someone\n")
    ts = TranslationSet("en-US")
    resource = translation("Hello", "Bonjour", datatype=YAML_DATATYPE)
    resource.key = f"{hash_key('a.md')}.title"
    ts.add(resource)
    assert fm.localize_text(ts, "fr-FR") == "title: Bonjour\nauthor: Someone"


# ---------- In Markdown files ----------


def test_front_matter_is_ignored_without_mapping(make_file: Callable[..., MarkdownFile]) -> None:
    md = make_file(DOCUMENT)
    assert [resource.source for resource in md.get_translation_set()] == ["Body text."]


def test_front_matter_fields_are_extracted_and_localized(settings: Settings) -> None:
    settings = with_mappings(settings, {"**/*.md": MappingConfig(frontmatter=["title"])})
    md = MarkdownFileType(settings).new_file("docs/a.md")
    md.parse(DOCUMENT)

    resources = md.get_translation_set().get_all()
    assert [(resource.source, resource.datatype) for resource in resources] == [
        ("My Title", YAML_DATATYPE),
        ("Body text.", "markdown"),
    ]

    ts = translations(("Body text.", "Texte."))
    title = translation("My Title", "Mon titre", datatype=YAML_DATATYPE)
    title.key = resources[0].key
    ts.add(title)
    assert md.localize_text(ts, "fr-FR") == "---\ntitle: Mon titre\nauthor: Someone\n---\nTexte.\n"


def test_fully_translated_flag_is_appended_to_front_matter(settings: Settings) -> None:
    settings = settings.model_copy(update={"markdown": MarkdownConfig(fully_translated=True)})
    md = MarkdownFile("docs/a.md", settings=settings)
    md.parse(DOCUMENT)
    ts = translations(("Body text.", "Texte."))
    assert md.localize_text(ts, "fr-FR") == (
        "---\ntitle: My Title\nauthor: Someone\nfullyTranslated: true\n---\nTexte.\n"
    )
