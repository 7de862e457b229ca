"""
Tests for locator strategies and element descriptors.
"""

import pytest

from adaptive_resolver.locators import (
    ElementDescriptor,
    LocatorKind,
    LocatorStrategy,
    ResolutionOptions,
    ResolvedHandle,
    WILDCARD_SELECTOR,
    build_query,
    parse_alternative_locator,
)
from tests.conftest import FakeDocument


class TestLocatorStrategy:
    """Test strategy values and alternative parsing."""

    def test_empty_value_rejected(self):
        with pytest.raises(ValueError):
            LocatorStrategy(LocatorKind.CSS, "")

        with pytest.raises(ValueError):
            LocatorStrategy(LocatorKind.TEXT, "   ")

    def test_str(self):
        assert str(LocatorStrategy(LocatorKind.TEST_ID, "login")) == "testId:login"

    def test_parse_prefixed(self):
        assert parse_alternative_locator("xpath://button[@type='submit']") == LocatorStrategy(
            LocatorKind.XPATH, "//button[@type='submit']"
        )
        assert parse_alternative_locator("text:Sign in").kind == LocatorKind.TEXT
        assert parse_alternative_locator("testId:submit").kind == LocatorKind.TEST_ID
        assert parse_alternative_locator("role:button").kind == LocatorKind.ROLE
        assert parse_alternative_locator("placeholder:Email").kind == LocatorKind.PLACEHOLDER
        assert parse_alternative_locator("css:.primary").value == ".primary"

    def test_parse_unprefixed_is_css(self):
        strategy = parse_alternative_locator("form button.primary")
        assert strategy.kind == LocatorKind.CSS
        assert strategy.value == "form button.primary"

    def test_parse_keeps_pseudo_classes(self):
        """A colon that is not a known prefix stays part of the CSS."""
        strategy = parse_alternative_locator('button:has-text("Save")')
        assert strategy.kind == LocatorKind.CSS
        assert strategy.value == 'button:has-text("Save")'

    def test_build_query_by_kind(self):
        document = FakeDocument()

        assert build_query(document, LocatorStrategy(LocatorKind.ID, "#a")).selector == "#a"
        assert build_query(document, LocatorStrategy(LocatorKind.NAME, '[name="q"]')).selector == '[name="q"]'
        assert build_query(document, LocatorStrategy(LocatorKind.XPATH, "//a")).selector == "xpath=//a"
        assert build_query(document, LocatorStrategy(LocatorKind.TEXT, "Go")).selector == "getByText:Go"
        assert build_query(document, LocatorStrategy(LocatorKind.TEST_ID, "t")).selector == "getByTestId:t"
        assert build_query(document, LocatorStrategy(LocatorKind.ROLE, "button")).selector == "getByRole:button"
        assert build_query(document, LocatorStrategy(LocatorKind.PLACEHOLDER, "Email")).selector == "getByPlaceholder:Email"


class TestElementDescriptor:
    """Test strategy ordering and handle memoization."""

    def test_strategy_order(self):
        descriptor = ElementDescriptor(
            role="button",
            name="submit",
            text="Submit",
            xpath="//button",
            css="button.primary",
            test_id="submit",
            id="submit-btn",
            alternative_locators=["text:Send", ".fallback"],
        )

        assert [str(s) for s in descriptor.strategies()] == [
            "id:#submit-btn",
            "testId:submit",
            "css:button.primary",
            "xpath://button",
            "text:Submit",
            'name:[name="submit"]',
            "role:button",
            "text:Send",
            "css:.fallback",
        ]

    def test_empty_descriptor_uses_wildcard(self):
        strategies = ElementDescriptor().strategies()

        assert len(strategies) == 1
        assert strategies[0] == LocatorStrategy(LocatorKind.CSS, WILDCARD_SELECTOR)

    def test_primary(self):
        descriptor = ElementDescriptor(css="#submit-btn", alternative_locators=["text:Submit"])
        assert descriptor.primary.value == "#submit-btn"

    def test_defaults(self):
        descriptor = ElementDescriptor()
        assert descriptor.self_heal is False
        assert descriptor.description == "Element"
        assert descriptor.options == ResolutionOptions()

    def test_cached_handle_invalidated_by_navigation(self):
        document = FakeDocument()
        descriptor = ElementDescriptor(css="#a")
        handle = ResolvedHandle(document.query("#a"), "#a", "css", document.generation)

        descriptor.remember(handle)
        assert descriptor.cached_handle(document) is handle

        document.navigate()
        assert descriptor.cached_handle(document) is None
        assert descriptor.handle is None

    def test_remember_respects_cache_option(self):
        document = FakeDocument()
        descriptor = ElementDescriptor(css="#a", options=ResolutionOptions(cache_enabled=False))

        descriptor.remember(ResolvedHandle(document.query("#a"), "#a", "css", 0))

        assert descriptor.handle is None

    def test_forget(self):
        document = FakeDocument()
        descriptor = ElementDescriptor(css="#a")
        descriptor.remember(ResolvedHandle(document.query("#a"), "#a", "css", 0))

        descriptor.forget()

        assert descriptor.handle is None
