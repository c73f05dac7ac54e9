from dataclasses import replace

import pytest

from recipe_engine.discovery.classifier import UrlClassifier
from recipe_engine.models.discovery import UrlKind
from recipe_engine.providers.cache import ProviderConfigCache, UrlPatterns
from recipe_engine.storage.memory import InMemoryProviderConfigStore
from tests.factories import make_provider

BASE = "https://recipes.example.com"


@pytest.mark.parametrize(
    ("path", "kind"),
    [
        ("/recipe/chicken-pasta", UrlKind.RECIPE),
        ("/recipes/chicken-pasta", UrlKind.RECIPE),
        ("/food/recipes-for-winter", UrlKind.RECIPE),
        ("/cooking/recipe-box", UrlKind.RECIPE),
        ("/r/12345", UrlKind.RECIPE),
        ("/dish/pad-thai", UrlKind.RECIPE),
        ("/category/dinner", UrlKind.CATEGORY),
        ("/categories", UrlKind.CATEGORY),
        ("/tags/vegan", UrlKind.CATEGORY),
        ("/collection/summer", UrlKind.CATEGORY),
        ("/cuisine/thai", UrlKind.CATEGORY),
        ("/meal-type/breakfast", UrlKind.CATEGORY),
        ("/recipes", UrlKind.CATEGORY),
        ("/login", UrlKind.IRRELEVANT),
        ("/account/recipe/saved", UrlKind.IRRELEVANT),
        ("/search?q=recipes", UrlKind.IRRELEVANT),
        ("/privacy", UrlKind.IRRELEVANT),
        ("/blog/kitchen-tips", UrlKind.IRRELEVANT),
    ],
)
def test_default_rules(path: str, kind: UrlKind) -> None:
    assert UrlClassifier().classify(BASE + path) is kind


def test_default_rules_ignore_case() -> None:
    assert UrlClassifier().classify(BASE + "/Recipe/Chicken") is UrlKind.RECIPE
    assert UrlClassifier().classify(BASE + "/LOGIN") is UrlKind.IRRELEVANT


@pytest.mark.parametrize(
    ("path", "confidence"),
    [
        ("/recipe/a", 0.9),
        ("/recipes/a", 0.9),
        ("/food/a", 0.7),
        ("/cooking/a", 0.7),
        ("/dish/a", 0.5),
    ],
)
def test_confidence(path: str, confidence: float) -> None:
    assert UrlClassifier.confidence(BASE + path) == confidence


def _classifier(**patterns: str) -> UrlClassifier:
    cache = ProviderConfigCache(InMemoryProviderConfigStore())
    return UrlClassifier(cache.url_patterns(make_provider(**patterns)))


def test_provider_patterns_replace_defaults() -> None:
    classifier = _classifier(recipe_url_pattern=r"/dishes/\d+$", category_url_pattern=r"/browse/")
    assert classifier.classify(BASE + "/DISHES/42") is UrlKind.RECIPE
    assert classifier.classify(BASE + "/recipe/chicken") is UrlKind.IRRELEVANT
    assert classifier.classify(BASE + "/browse/soups") is UrlKind.CATEGORY
    assert classifier.classify(BASE + "/category/dinner") is UrlKind.IRRELEVANT


def test_exclusions_apply_before_provider_patterns() -> None:
    classifier = _classifier(recipe_url_pattern=r"/dishes/")
    assert classifier.classify(BASE + "/account/dishes/1") is UrlKind.IRRELEVANT


def test_invalid_recipe_pattern_falls_back_to_substring_rules() -> None:
    classifier = _classifier(recipe_url_pattern="(?P<broken")
    assert classifier.classify(BASE + "/recipe/chicken-pasta") is UrlKind.RECIPE
    assert classifier.classify(BASE + "/category/dinner") is UrlKind.CATEGORY


class _SlowPattern:
    pattern = "(a+)+$"

    def search(self, url: str, timeout: float | None = None) -> None:
        raise TimeoutError("regex timed out")


def test_timed_out_pattern_falls_back_to_substring_rules() -> None:
    classifier = UrlClassifier(UrlPatterns(recipe=_SlowPattern(), category=_SlowPattern()))
    assert classifier.classify(BASE + "/recipe/chicken-pasta") is UrlKind.RECIPE
    assert classifier.classify(BASE + "/category/dinner") is UrlKind.CATEGORY
    assert classifier.classify(BASE + "/blog/kitchen-tips") is UrlKind.IRRELEVANT


def test_backtracking_pattern_is_bounded_by_timeout() -> None:
    patterns = replace(_classifier(recipe_url_pattern=r"(a+)+$").patterns, timeout=0.05)
    url = BASE + "/recipe/" + "a" * 40 + "!"

    # Either the match gives up in time and the path rules apply, or it fails outright
    assert UrlClassifier(patterns).classify(url) in {UrlKind.RECIPE, UrlKind.IRRELEVANT}


def test_empty_url_is_irrelevant() -> None:
    assert UrlClassifier().classify("") is UrlKind.IRRELEVANT


def test_host_name_does_not_affect_default_rules() -> None:
    classifier = UrlClassifier()
    assert classifier.classify("https://recipes.example.com/blog/post") is UrlKind.IRRELEVANT
    assert classifier.confidence("https://recipe.example.com/cooking/stew") == 0.7
