"""Tests for selector handling and artifact naming."""

from pathlib import PurePosixPath
from types import SimpleNamespace

import pytest
from pydantic import ValidationError

from visual_regression.core.naming import NamingStrategy, diff_name, sanitize
from visual_regression.models.config import VisualRegressionConfig
from visual_regression.models.screenshot import (
    CompositeSelector,
    ScreenshotKey,
    SimpleSelector,
    coerce_selector,
)


def _key(**overrides) -> ScreenshotKey:
    fields = dict(
        test_module="checkout",
        test_step="pay",
        browser_name="firefox",
        browser_version="121.0",
        platform="linux",
        width=1024,
        height=768,
    )
    fields.update(overrides)
    return ScreenshotKey(**fields)


class TestCoerceSelector:
    """Tests for normalizing the accepted selector shapes."""

    def test_none_and_empty(self):
        assert coerce_selector(None) is None
        assert coerce_selector("") is None
        assert coerce_selector([]) is None

    def test_string(self):
        assert coerce_selector("#main") == SimpleSelector(value="#main")

    def test_selector_passthrough(self):
        sel = CompositeSelector(fragments=("#a", ".b"))
        assert coerce_selector(sel) is sel

    def test_list_of_strings(self):
        sel = coerce_selector(["#section", ".item"])
        assert isinstance(sel, CompositeSelector)
        assert sel.fragments == ("#section", ".item")
        assert sel.css == "#section .item"

    def test_page_object_sections(self):
        sections = [SimpleNamespace(selector="#menu"), {"selector": "ul"}, SimpleNamespace(selector="li.active")]
        sel = coerce_selector(sections)
        assert sel.css == "#menu ul li.active"

    def test_blank_fragments_dropped(self):
        assert coerce_selector(["", "  "]) is None
        assert coerce_selector(["#a", ""]).fragments == ("#a",)


class TestHelpers:
    def test_sanitize_collapses_runs(self):
        assert sanitize("div > .nav-item:first") == "div_nav_item_first"

    def test_diff_name_inserts_before_extension(self):
        assert diff_name("a/b/foo.png") == PurePosixPath("a/b/foo.diff.png")

    def test_diff_name_only_last_extension(self):
        assert diff_name("foo.bar.png") == PurePosixPath("foo.bar.diff.png")

    def test_diff_name_without_extension(self):
        assert diff_name("foo") == PurePosixPath("foo.diff")


class TestBuildPath:
    """Tests for NamingStrategy.build_path."""

    @pytest.fixture
    def naming(self) -> NamingStrategy:
        return NamingStrategy(VisualRegressionConfig())

    def test_directory_layout(self, naming):
        path = naming.build_path(_key(selector=SimpleSelector(value="#cart")))
        assert path == PurePosixPath("checkout/firefox_121.0_linux/1024x768/pay___cart.png")

    def test_default_selector_when_missing(self, naming):
        assert naming.build_path(_key()).name == "pay__body.png"

    def test_custom_default_selector(self):
        naming = NamingStrategy(VisualRegressionConfig(default_selector="main"))
        assert naming.build_path(_key()).name == "pay__main.png"

    def test_label_appended(self, naming):
        path = naming.build_path(_key(label="hover"))
        assert path.name == "pay__body--hover.png"

    def test_label_and_selector_combine(self, naming):
        path = naming.build_path(_key(selector=SimpleSelector(value=".total"), label="open"))
        assert path.name == "pay___total--open.png"

    def test_composite_selector_ancestor_first(self, naming):
        path = naming.build_path(_key(selector=coerce_selector(["#section", ".item"])))
        assert "_section_item" in path.name
        assert path.name == "pay___section_item.png"

    def test_deterministic(self, naming):
        key = _key(selector=SimpleSelector(value="#x"), label="l")
        assert naming.build_path(key) == naming.build_path(key)

    @pytest.mark.parametrize("field,value", [
        ("test_module", "other"),
        ("test_step", "refund"),
        ("browser_name", "chromium"),
        ("browser_version", "122.0"),
        ("platform", "darwin"),
        ("width", 375),
        ("height", 812),
        ("selector", SimpleSelector(value="#other")),
        ("label", "mobile"),
    ])
    def test_each_field_changes_path(self, naming, field, value):
        assert naming.build_path(_key(**{field: value})) != naming.build_path(_key())


class TestKeyValidation:
    """Key fields become path segments and must not escape the artifact roots."""

    @pytest.fixture
    def naming(self) -> NamingStrategy:
        return NamingStrategy(VisualRegressionConfig())

    @pytest.mark.parametrize("field,value", [
        ("label", "../../x"),
        ("label", "a/b"),
        ("test_module", ".."),
        ("test_step", "."),
        ("browser_name", "chrome\\..\\x"),
        ("platform", ""),
        ("browser_version", "1\x000"),
    ])
    def test_rejects_non_segment(self, field, value):
        with pytest.raises(ValidationError, match=field):
            _key(**{field: value})

    def test_dots_inside_segment_allowed(self, naming):
        path = naming.build_path(_key(browser_version="121.0.1", label="v1..2"))
        assert path.parts[1] == "firefox_121.0.1_linux"
        assert path.name.endswith("--v1..2.png")

    def test_empty_label_means_no_label(self, naming):
        assert naming.build_path(_key(label="")) == naming.build_path(_key())
