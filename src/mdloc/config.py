from __future__ import annotations

from typing import Dict, List, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic_settings import BaseSettings, SettingsConfigDict

from .exceptions import ConfigError


class AppConfig(BaseModel):
    """Application-specific configuration values."""

    name: str = "mdloc"
    log_level: str = "INFO"


class ProjectConfig(BaseModel):
    """Project-level localization values shared by every file."""

    id: str = "mdloc"
    source_locale: str = "en-US"
    pseudo_locale: str = "zxx-XX"
    locales: List[str] = Field(default_factory=list)
    root: str = "."
    target_dir: str = "."
    # Output locale overrides, e.g. {"zh-Hans-CN": "zh-CN"}
    locale_map: Dict[str, str] = Field(default_factory=dict)
    nopseudo: bool = False
    # Wrap each translated run in <span x-locid="..."> for in-context review
    identify: bool = False


class MappingConfig(BaseModel):
    """How files matching one glob are localized."""

    model_config = ConfigDict(frozen=True)

    template: str = "[locale]/[dir]/[filename]"
    # True to extract all front-matter fields, or a list of field names
    frontmatter: Union[bool, List[str]] = False
    locale_map: Dict[str, str] = Field(default_factory=dict)


class MarkdownConfig(BaseModel):
    """Markdown file type configuration values."""

    fully_translated: bool = False
    localize_links: bool = False
    # glob -> mapping; None means the default "**/*.md" mapping
    mappings: Optional[Dict[str, MappingConfig]] = None


class HtmlConfig(BaseModel):
    """Tag tables used when classifying inline HTML."""

    non_breaking_tags: List[str] = Field(
        default_factory=lambda: [
            "a", "abbr", "b", "bdi", "bdo", "br", "dfn", "del", "em", "i", "ins",
            "mark", "ruby", "rt", "span", "strong", "sub", "sup", "time", "u",
            "var", "wbr",
        ]
    )
    self_closing_tags: List[str] = Field(
        default_factory=lambda: [
            "area", "base", "bdi", "bdo", "br", "embed", "hr", "img", "input",
            "link", "option", "param", "source", "track",
        ]
    )
    # tag -> attribute names; "*" applies to every tag
    localizable_attributes: Dict[str, List[str]] = Field(
        default_factory=lambda: {
            "area": ["alt"],
            "img": ["alt"],
            "input": ["alt", "placeholder"],
            "optgroup": ["label"],
            "option": ["label"],
            "textarea": ["placeholder"],
            "track": ["label"],
            "*": [
                "title",
                "aria-braillelabel",
                "aria-brailleroledescription",
                "aria-description",
                "aria-label",
                "aria-placeholder",
                "aria-roledescription",
                "aria-rowindextext",
                "aria-valuetext",
            ],
        }
    )

    def is_non_breaking(self, tag: str) -> bool:
        return tag.lower() in self.non_breaking_tags

    def is_self_closing(self, tag: str) -> bool:
        return tag.lower() in self.self_closing_tags

    def is_localizable_attribute(self, tag: str, attribute: str) -> bool:
        attribute = attribute.lower()
        if attribute in self.localizable_attributes.get("*", []):
            return True
        return attribute in self.localizable_attributes.get(tag.lower(), [])


class Settings(BaseSettings):
    """Top-level settings loaded from environment variables and .env only."""

    model_config = SettingsConfigDict(
        env_prefix="MDLOC_",
        env_nested_delimiter="__",
        env_file=".env",
        extra="ignore",
    )

    app: AppConfig = AppConfig()
    project: ProjectConfig = ProjectConfig()
    markdown: MarkdownConfig = MarkdownConfig()
    html: HtmlConfig = HtmlConfig()


def load_settings() -> Settings:
    """Load settings from environment variables and .env only."""
    try:
        return Settings()  # type: ignore[call-arg]
    except ValidationError as exc:
        raise ConfigError(f"Invalid mdloc settings: {exc}") from exc
