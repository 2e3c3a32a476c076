from pathlib import Path
from typing import Callable, List

import pytest

from helpers import PROJECT
from mdloc.config import MarkdownConfig, ProjectConfig, Settings
from mdloc.exceptions import MarkdownSyntaxError
from mdloc.localization.extract import ExtractionWalker
from mdloc.markdown_file import MarkdownFile, preprocess
from mdloc.parsers.base_parser import NodeType
from mdloc.parsers.markdown_parser import MarkdownParser
from mdloc.utils import make_key

MakeFile = Callable[..., MarkdownFile]


def sources(md: MarkdownFile) -> List[str]:
    return [resource.source for resource in md.get_translation_set().get_all()]


# ---------- Messages ----------


def test_inline_markup_becomes_components(make_file: MakeFile) -> None:
    md = make_file("Hello *world*, visit [here](https://example.com).\n")
    resources = md.get_translation_set().get_all()
    assert len(resources) == 1
    resource = resources[0]
    assert resource.source == "Hello <c0>world</c0>, visit <c1>here</c1>."
    assert resource.key == make_key(resource.source)
    assert resource.project == PROJECT
    assert resource.source_locale == "en-US"
    assert resource.datatype == "markdown"
    assert resource.path == "docs/test.md"
    assert resource.auto_key


def test_blocks_break_messages(make_file: MakeFile) -> None:
    md = make_file("# This is a test\n\nThis is also a test\n\n* one item\n* two items\n")
    assert sources(md) == ["This is a test", "This is also a test", "one item", "two items"]


def test_duplicate_strings_are_extracted_once(make_file: MakeFile) -> None:
    md = make_file("This is a test\n\nThis is a test\n")
    assert len(md.get_translation_set()) == 1


def test_soft_line_breaks_stay_in_one_message(make_file: MakeFile) -> None:
    md = make_file("This is a test.\nThis is also a test.\n")
    assert sources(md) == ["This is a test.\nThis is also a test."]


def test_untranslatable_text_is_skipped(make_file: MakeFile) -> None:
    md = make_file("http://www.box.com/foobar\n\n---\n\n... !!\n\n```\ncode is never extracted\n```\n")
    assert md.get_translation_set().is_empty()


def test_outer_markup_is_not_part_of_the_message(make_file: MakeFile) -> None:
    md = make_file("**_Everything in bold_**\n")
    assert sources(md) == ["Everything in bold"]
    strong = md.ast.children[0].children[0]
    assert strong.type == NodeType.STRONG
    assert not strong.localizable
    assert not strong.children[0].localizable
    assert strong.children[0].children[0].localizable


def test_self_closing_components(make_file: MakeFile) -> None:
    md = make_file("This is a test of the ![Alternate text](x.png) system.\n")
    assert sorted(sources(md)) == ["Alternate text", "This is a test of the <c0/> system."]


def test_image_title_is_extracted(make_file: MakeFile) -> None:
    md = make_file('![Alternate text](x.png "title here")\n')
    assert sorted(sources(md)) == ["Alternate text", "title here"]


def test_inline_code_adds_translator_comment(make_file: MakeFile) -> None:
    md = make_file("This is a `test` of the `inline code` system.\n")
    resource = md.get_translation_set().get_all()[0]
    assert resource.source == "This is a <c0/> of the <c1/> system."
    assert resource.comment == (
        "c0 will be replaced with the inline code `test`. "
        "c1 will be replaced with the inline code `inline code`."
    )


def test_inline_code_comment_uses_minimal_numbering(make_file: MakeFile) -> None:
    md = make_file("*Use `x` now*\n")
    resource = md.get_translation_set().get_all()[0]
    assert resource.source == "Use <c0/> now"
    assert resource.comment == "c0 will be replaced with the inline code `x`."


def test_translator_comment_applies_to_next_message(make_file: MakeFile) -> None:
    md = make_file("<!-- i18n this describes the text below -->\n\nThis is a test\n\nNo comment here\n")
    by_source = {resource.source: resource for resource in md.get_translation_set()}
    assert by_source["This is a test"].comment == "this describes the text below"
    assert by_source["No comment here"].comment is None


def test_footnotes(make_file: MakeFile) -> None:
    md = make_file("This is a test of the emergency parsing system [^1].\n\n[^1]: well, not really\n")
    assert sources(md) == ["This is a test of the emergency parsing system <c0/>.", "well, not really"]


def test_link_references_keep_their_component(make_file: MakeFile) -> None:
    md = make_file(
        "- [Ask on Twitter][twitter]: For general questions and support.\n\n"
        "[twitter]: https://twitter.com/foo\n"
    )
    assert sources(md) == ["<c0>Ask on Twitter</c0>: For general questions and support."]


def test_shortcut_references_become_full(make_file: MakeFile) -> None:
    md = make_file("See [foo] for details.\n\n[foo]: https://example.com\n")
    reference = md.ast.children[0].children[1]
    assert reference.type == NodeType.LINK_REFERENCE
    assert reference.reference_type == "full"
    assert reference.label == "foo"


# ---------- Links ----------


def test_links_are_not_extracted_by_default(make_file: MakeFile) -> None:
    md = make_file("[foo](http://www.box.com/foobar)\n")
    assert sources(md) == ["foo"]


def test_localize_links_directive(make_file: MakeFile) -> None:
    md = make_file(
        "<!-- i18n-enable localize-links -->\n\n"
        "[foo](http://www.box.com/foobar)\n\n"
        "<!-- i18n-disable localize-links -->\n\n"
        "[bar](http://www.box.com/other)\n"
    )
    assert sorted(sources(md)) == ["bar", "foo", "http://www.box.com/foobar"]
    assert md.ast.children[1].children[0].localized_link
    assert not md.localize_links


def test_localize_links_setting_extracts_definitions(settings: Settings, make_file: MakeFile) -> None:
    settings = settings.model_copy(update={"markdown": MarkdownConfig(localize_links=True)})
    md = make_file(
        'Read [the docs][docs].\n\n[docs]: https://example.com/docs "link title"\n',
        settings=settings,
    )
    assert sorted(sources(md)) == [
        "Read <c0>the docs</c0>.",
        "https://example.com/docs",
        "link title",
    ]
    assert md.ast.children[1].localized_link


# ---------- HTML ----------


def test_inline_html_becomes_components(make_file: MakeFile) -> None:
    md = make_file("This is <b>bold</b> text.\n")
    assert sources(md) == ["This is <c0>bold</c0> text."]


def test_breaking_html_tags_split_messages(make_file: MakeFile) -> None:
    md = make_file("<div>\nFirst part\n<p>Second part</p>\n</div>\n")
    assert sources(md) == ["First part", "Second part"]


def test_flow_html_text_is_extracted(make_file: MakeFile) -> None:
    md = make_file("<div>\nHello <b>world</b>\n</div>\n")
    assert sources(md) == ["Hello <c0>world</c0>"]
    paragraph = md.ast.children[0]
    assert paragraph.type == NodeType.PARAGRAPH
    assert paragraph.marker == "html"


def test_localizable_attributes(make_file: MakeFile) -> None:
    md = make_file('<img src="a.png" alt="A picture of a cat">\n\nSee <span title="More info">this</span>.\n')
    assert sorted(sources(md)) == ["A picture of a cat", "More info", "See <c0>this</c0>."]


def test_script_and_style_are_skipped(make_file: MakeFile) -> None:
    md = make_file("<script>\nvar text = 'not this';\n</script>\n\nBut this text\n")
    assert sources(md) == ["But this text"]


def test_unbalanced_html_raises(make_file: MakeFile) -> None:
    with pytest.raises(MarkdownSyntaxError) as info:
        make_file("<b>bold<i>italic</b></i>\n")
    assert "Unbalanced HTML tags" in str(info.value)
    assert info.value.path == "docs/test.md"
    assert info.value.line == 1


def test_walker_returns_errors_instead_of_raising() -> None:
    settings = Settings(project=ProjectConfig(id=PROJECT))
    walker = ExtractionWalker(
        project=PROJECT,
        source_locale="en-US",
        path="a.md",
        html=settings.html,
    )
    error = walker.walk(MarkdownParser().parse_markdown_content("<b>bold<i>italic</b></i>\n"))
    assert isinstance(error, MarkdownSyntaxError)


# ---------- Preprocessing ----------


def test_preprocess_fixes_headings_outside_code() -> None:
    text = preprocess("#Heading\n\n```sh\n#!/bin/sh\n```\n")
    assert text == "# Heading\n\n```sh\n#!/bin/sh\n```\n"


def test_preprocess_fences_readme_blocks(make_file: MakeFile) -> None:
    md = make_file('Intro text\n[block:api-header]\n{"title": "Not this"}\n[/block]\n')
    assert sources(md) == ["Intro text"]


# ---------- Reading files ----------


@pytest.fixture
def rooted(settings: Settings, tmp_path: Path) -> Settings:
    project = settings.project.model_copy(update={"root": str(tmp_path)})
    return settings.model_copy(update={"project": project})


def test_extract_reads_from_project_root(rooted: Settings, tmp_path: Path) -> None:
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "a.md").write_text("# Title\n\nSome text.\n", encoding="utf-8")
    md = MarkdownFile("docs/a.md", settings=rooted)
    md.extract()
    assert sources(md) == ["Title", "Some text."]


def test_missing_file_gives_empty_set(rooted: Settings, caplog: pytest.LogCaptureFixture) -> None:
    md = MarkdownFile("missing.md", settings=rooted)
    md.extract()
    assert md.get_translation_set().is_empty()
    assert "Could not read file" in caplog.text


def test_undecodable_file_gives_empty_set(
    rooted: Settings, tmp_path: Path, caplog: pytest.LogCaptureFixture
) -> None:
    (tmp_path / "bad.md").write_bytes(b"Hello \xff\xfe world\n")
    md = MarkdownFile("bad.md", settings=rooted)
    md.extract()
    assert md.get_translation_set().is_empty()
    assert md.ast is None
    assert "Could not read file" in caplog.text
