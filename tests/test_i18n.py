# Copyright 2025 Softwell S.r.l.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     https://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Tests for translation contexts and language resolution."""

from typing import Any

import pytest

from genro_web import HttpRequest, determine_language, translation_context
from genro_web.i18n import TranslationContext, get_translation_context

CATALOG = {"de_DE": {"Hello": "Hallo"}, "fr_FR": {"Hello": "Bonjour"}}


def lookup(text: str, language: str) -> str:
    return CATALOG.get(language, {}).get(text, text)


def make_request(accept_language: str | None = None, query: bytes = b"") -> HttpRequest:
    headers = []
    if accept_language is not None:
        headers.append((b"accept-language", accept_language.encode()))
    return HttpRequest({"type": "http", "path": "/", "headers": headers, "query_string": query})


LANGUAGES = ["en_US", "de_DE", "fr_FR"]


class TestDetermineLanguage:
    """Tests for determine_language."""

    def test_no_header(self) -> None:
        """Without Accept-Language the first language is used."""
        assert determine_language(make_request(), LANGUAGES) == "en_US"

    def test_exact_match(self) -> None:
        """A dashed tag matches the underscored language."""
        assert determine_language(make_request("de-DE"), LANGUAGES) == "de_DE"

    def test_primary_language_match(self) -> None:
        """A language-only tag matches a regional language."""
        assert determine_language(make_request("fr"), LANGUAGES) == "fr_FR"

    def test_quality_order(self) -> None:
        """Higher quality entries win."""
        request = make_request("fr;q=0.5, de-DE;q=0.9, it")
        assert determine_language(request, LANGUAGES) == "de_DE"

    def test_zero_quality_ignored(self) -> None:
        """Entries with q=0 are ignored."""
        request = make_request("de;q=0, fr;q=0.1")
        assert determine_language(request, LANGUAGES) == "fr_FR"

    def test_unsupported(self) -> None:
        """Unsupported languages fall back to the first language."""
        assert determine_language(make_request("ja, *"), LANGUAGES) == "en_US"


class TestTranslationContext:
    """Tests for TranslationContext."""

    def test_needs_languages(self) -> None:
        """At least one language is required."""
        with pytest.raises(ValueError):
            TranslationContext([], lookup)

    def test_bind(self) -> None:
        """bind returns a translator for one language."""
        context = TranslationContext(LANGUAGES, lookup)
        assert context.bind("de_DE")("Hello") == "Hallo"
        assert context.bind("en_US")("Hello") == "Hello"

    def test_custom_determine(self) -> None:
        """A custom determine function wins when it returns a supported language."""

        def from_query(request: Any) -> str | None:
            return request.query.get("lang")

        context = TranslationContext(LANGUAGES, lookup, from_query)
        assert context.resolve_language(make_request("de", b"lang=fr_FR")) == "fr_FR"
        assert context.resolve_language(make_request("de", b"lang=xx")) == "de_DE"
        assert context.resolve_language(make_request("de")) == "de_DE"


@translation_context(["en_US", "de_DE"], lookup)
class Translated:
    def index(self) -> str:
        return "x"

    @translation_context(["fr_FR"], lookup)
    def get_french(self) -> str:
        return "x"


class Untranslated:
    def index(self) -> str:
        return "x"


class TestDeclarations:
    """Tests for translation_context declarations."""

    def test_class_context(self) -> None:
        """Methods inherit the class context."""
        context = get_translation_context(Translated, Translated.index)
        assert context is not None
        assert context.languages == ("en_US", "de_DE")

    def test_method_context_wins(self) -> None:
        """A method context takes precedence over the class context."""
        context = get_translation_context(Translated, Translated.get_french)
        assert context is not None
        assert context.languages == ("fr_FR",)

    def test_no_context(self) -> None:
        """Classes without a declaration have no context."""
        assert get_translation_context(Untranslated, Untranslated.index) is None
