"""
Tests for the phrase pattern resolver.
"""

import asyncio
import re

import pytest

from adaptive_resolver.engine.patterns import (
    ElementPattern,
    PatternResolver,
    build_selector,
)
from tests.conftest import FakeDocument


class TestBuildSelector:
    """Test capture-group substitution."""

    def test_first_group(self):
        match = re.search(r"^(.*)\s+button$", "Submit button", re.IGNORECASE)
        assert build_selector('button:has-text("{0}")', match) == 'button:has-text("Submit")'

    def test_repeated_and_missing_groups(self):
        match = re.search(r"^(\w+) (\w+)$", "first second")
        assert build_selector("{0}-{1}-{0}-{5}", match) == "first-second-first-"


class TestPatternRegistry:
    """Test registration and ordering."""

    def test_default_categories(self):
        resolver = PatternResolver()
        assert resolver.categories == ["button", "input", "link", "dropdown"]

    def test_no_defaults(self):
        assert PatternResolver(include_defaults=False).categories == []

    def test_priority_sorting_within_category(self):
        resolver = PatternResolver(include_defaults=False)
        resolver.register_pattern("menu", [
            ElementPattern.create(r"^(.*) menu$", "nav:has-text(\"{0}\")", 5),
            ElementPattern.create(r"^open (.*)$", "[role=menu]:has-text(\"{0}\")"),
            ElementPattern.create(r"^(.*) tab$", "[role=tab]:has-text(\"{0}\")", 1),
        ])

        priorities = [p.priority for p in resolver.patterns("menu")]
        assert priorities == [1, 5, None]

    def test_new_category_appended(self):
        resolver = PatternResolver()
        resolver.register_pattern("checkbox", [
            ElementPattern.create(r"^(.*)\s+checkbox$", 'input[type="checkbox"][name*="{0}"]', 1),
        ])
        resolver.register_pattern("button", [
            ElementPattern.create(r"^tap\s+(.*)$", 'button:has-text("{0}")', 4),
        ])

        assert resolver.categories[-1] == "checkbox"
        assert resolver.patterns("button")[-1].priority == 4

    def test_candidates_in_try_order(self):
        resolver = PatternResolver()

        assert resolver.candidates("Submit button") == [("button", 'button:has-text("Submit")')]
        assert resolver.candidates("click Save") == [("button", '[role="button"]:has-text("Save")')]
        assert resolver.candidates("Email field") == [("input", 'input[placeholder*="Email"]')]
        assert resolver.candidates("select Canada") == [("dropdown", 'select:has(option:has-text("Canada"))')]


class TestResolveByPatterns:
    """Test probing of pattern selectors."""

    @pytest.mark.asyncio
    async def test_submit_button(self):
        document = FakeDocument(counts={'button:has-text("Submit")': 1})

        match = await PatternResolver().resolve_by_patterns(document, "Submit button")

        assert match is not None
        assert match.category == "button"
        assert match.selector == 'button:has-text("Submit")'
        assert document.probes == ['button:has-text("Submit")']

    @pytest.mark.asyncio
    async def test_falls_through_to_next_pattern(self):
        resolver = PatternResolver(include_defaults=False)
        resolver.register_pattern("link", [
            ElementPattern.create(r"^(.*)\s+link$", 'a:has-text("{0}")', 1),
            ElementPattern.create(r"^(.*)\s+link$", 'a[title*="{0}"]', 2),
        ])
        document = FakeDocument(counts={'a[title*="Pricing"]': 2})

        match = await resolver.resolve_by_patterns(document, "Pricing link")

        assert match.selector == 'a[title*="Pricing"]'

    @pytest.mark.asyncio
    async def test_probe_errors_are_skipped(self):
        resolver = PatternResolver(include_defaults=False)
        resolver.register_pattern("link", [
            ElementPattern.create(r"^(.*)\s+link$", "a:has-text(\"{0}\")))", 1),
            ElementPattern.create(r"^(.*)\s+link$", 'a:has-text("{0}")', 2),
        ])
        document = FakeDocument(counts={'a:has-text("Docs")': 1})
        document.errors["a:has-text(\"Docs\")))"] = RuntimeError("malformed selector")

        match = await resolver.resolve_by_patterns(document, "Docs link")

        assert match.selector == 'a:has-text("Docs")'
        assert len(document.probes) == 2

    @pytest.mark.asyncio
    async def test_no_match(self):
        document = FakeDocument()
        assert await PatternResolver().resolve_by_patterns(document, "the thing over there") is None
        assert document.probes == []

    @pytest.mark.asyncio
    async def test_deterministic(self):
        document = FakeDocument(counts={
            'button:has-text("Submit")': 1,
            '[role="button"]:has-text("Submit button")': 1,
        })
        resolver = PatternResolver()

        results = await asyncio.gather(*(
            resolver.resolve_by_patterns(document, "Submit button") for _ in range(5)
        ))

        assert {r.selector for r in results} == {'button:has-text("Submit")'}
