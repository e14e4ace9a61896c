# Copyright 2025 Softwell S.r.l.
# Licensed under the Apache License, Version 2.0

"""Translation context for web interfaces.

A translation context is declared on an interface class or on a single
handler (the handler's declaration wins)::

    CATALOG = {"de_DE": {"Hello": "Hallo"}}

    def lookup(text: str, language: str) -> str:
        return CATALOG.get(language, {}).get(text, text)

    @translation_context(["en_US", "de_DE"], lookup)
    class WebService:
        def index(self) -> str:
            return trweb("Hello")

The language of a request is resolved once per dispatch by
``determine_language`` from the ``Accept-Language`` header, unless the
context supplies its own ``determine`` callable. The translation catalog
itself is external: ``translate(text, language)`` is called as is.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Callable, Sequence, TypeVar

if TYPE_CHECKING:
    from .request import HttpRequest

__all__ = ["TranslationContext", "translation_context", "get_translation_context", "determine_language"]

T = TypeVar("T")

TRANSLATION_ATTR = "__genro_web_translation__"


class TranslationContext:
    """Supported languages and the translate function of an interface."""

    __slots__ = ("languages", "translate", "determine")

    def __init__(
        self,
        languages: Sequence[str],
        translate: Callable[[str, str], str],
        determine: Callable[[HttpRequest], str | None] | None = None,
    ) -> None:
        if not languages:
            raise ValueError("A translation context needs at least one language")
        self.languages = tuple(languages)
        self.translate = translate
        self.determine = determine

    def resolve_language(self, request: HttpRequest) -> str:
        if self.determine is not None:
            language = self.determine(request)
            if language in self.languages:
                return language  # type: ignore[return-value]
        return determine_language(request, self.languages)

    def bind(self, language: str) -> Callable[[str], str]:
        """Return a ``text -> text`` function translating into ``language``."""
        translate = self.translate

        def translate_text(text: str) -> str:
            return translate(text, language)

        return translate_text

    def __repr__(self) -> str:
        return f"TranslationContext(languages={self.languages!r})"


def translation_context(
    languages: Sequence[str],
    translate: Callable[[str, str], str],
    determine: Callable[[HttpRequest], str | None] | None = None,
) -> Callable[[T], T]:
    """Attach a translation context to an interface class or handler method."""
    context = TranslationContext(languages, translate, determine)

    def decorator(target: T) -> T:
        setattr(target, TRANSLATION_ATTR, context)
        return target

    return decorator


def get_translation_context(klass: type, func: Any = None) -> TranslationContext | None:
    """Translation context of ``func`` or, failing that, of ``klass`` and its bases."""
    if func is not None:
        context = getattr(func, TRANSLATION_ATTR, None)
        if context is not None:
            return context
    return getattr(klass, TRANSLATION_ATTR, None)


def _accepted_languages(header: str) -> list[str]:
    weighted: list[tuple[float, int, str]] = []
    for position, item in enumerate(header.split(",")):
        parts = item.strip().split(";")
        tag = parts[0].strip()
        if not tag or tag == "*":
            continue
        quality = 1.0
        for param in parts[1:]:
            key, _, value = param.strip().partition("=")
            if key.strip() == "q":
                try:
                    quality = float(value)
                except ValueError:
                    quality = 0.0
        if quality > 0:
            weighted.append((-quality, position, tag.replace("-", "_")))
    weighted.sort()
    return [tag for _, _, tag in weighted]


def determine_language(request: HttpRequest, languages: Sequence[str]) -> str:
    """Pick the best of ``languages`` for ``request``.

    Each ``Accept-Language`` entry (by decreasing quality) is matched exactly
    (``de-DE`` matches ``de_DE``), then by language only (``de`` matches
    ``de_DE``). Without a match the first supported language is returned.
    """
    header = request.headers.get("accept-language") or ""
    for tag in _accepted_languages(header):
        for language in languages:
            if language.lower() == tag.lower():
                return language
        primary = tag.split("_", 1)[0].lower()
        for language in languages:
            if language.split("_", 1)[0].lower() == primary:
                return language
    return languages[0]


if __name__ == "__main__":
    pass
