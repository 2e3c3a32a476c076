from mdloc.storage.models import Resource
from mdloc.storage.translation_set import TranslationSet
from mdloc.utils import make_key

PROJECT = "loctest"


def translation(source: str, target: str, locale: str = "fr-FR", datatype: str = "markdown") -> Resource:
    return Resource(
        project=PROJECT,
        key=make_key(source),
        source=source,
        source_locale="en-US",
        target=target,
        target_locale=locale,
        datatype=datatype,
    )


def translations(*pairs, locale: str = "fr-FR") -> TranslationSet:
    ts = TranslationSet("en-US")
    for source, target in pairs:
        ts.add(translation(source, target, locale))
    return ts
