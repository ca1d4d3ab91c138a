"""Tests for the rendering engine."""

import pytest
from markupsafe import Markup

from lazystache import (
    EagerRenderable,
    FilterInvocationError,
    Renderable,
    Rendering,
    RenderingError,
    TagState,
    TypeMismatchError,
    UnresolvedIdentifierError,
    filter_with,
    renderable,
    standard_library,
    variadic_filter,
)
from lazystache.nodes import TagKind


class TestVariables:
    """Test rendering of variable tags."""

    def test_plain_values(self, render):
        assert render("{{a}} {{b}} {{c}}", {"a": "x", "b": 42, "c": 2.5}) == "x 42 2.5"

    def test_missing_renders_empty(self, render):
        assert render("[{{missing}}]", {}) == "[]"

    def test_none_renders_empty(self, render):
        assert render("[{{value}}]", {"value": None}) == "[]"

    def test_missing_fails_in_strict_mode(self, render):
        with pytest.raises(UnresolvedIdentifierError) as exc_info:
            render("{{missing}}", {}, missing="fail")
        assert exc_info.value.name == "missing"

    def test_none_is_not_missing_in_strict_mode(self, render):
        """A name bound to None is defined and renders empty."""
        assert render("[{{value}}]", {"value": None}, missing="fail") == "[]"

    def test_dotted_names(self, render):
        assert render("{{user.name}}", {"user": {"name": "Ann"}}) == "Ann"

    def test_sequences_are_concatenated(self, render):
        assert render("{{items}}", {"items": ["a", "<b>", 1]}) == "a&lt;b&gt;1"

    def test_mappings_have_no_text(self, render):
        """Mappings are scopes, not text."""
        assert render("[{{user}}]", {"user": {"name": "Ann"}}) == "[]"


class TestEscaping:
    """Test that unsafe text is escaped exactly once."""

    def test_html_escaping(self, render):
        assert render("{{x}}", {"x": "<a & b>"}) == "&lt;a &amp; b&gt;"

    def test_triple_mustache_is_verbatim(self, render):
        assert render("{{{x}}}", {"x": "<b>"}) == "<b>"

    def test_ampersand_is_verbatim(self, render):
        assert render("{{& x}}", {"x": "<b>"}) == "<b>"

    def test_text_content_type(self, render):
        assert render("{{x}}", {"x": "<b>"}, content_type="text") == "<b>"

    def test_markup_values_are_safe(self, render):
        assert render("{{x}}", {"x": Markup("<i>ok</i>")}) == "<i>ok</i>"

    def test_safe_renderable_not_escaped(self, render):
        bold = EagerRenderable("<b>x</b>", safe=True)
        assert render("{{x}}", {"x": bold}) == "<b>x</b>"

    def test_unsafe_renderable_escaped(self, render):
        raw = EagerRenderable("<b>x</b>")
        assert render("{{x}}", {"x": raw}) == "&lt;b&gt;x&lt;/b&gt;"

    def test_string_filter_escaped_once(self, render):
        """String filters see raw text; the result is escaped by the tag."""
        filters = standard_library()
        assert render("{{uppercase(x)}}", {"x": "<a>"}, filters) == "&lt;A&gt;"

    def test_escape_filter_not_escaped_again(self, render):
        filters = standard_library()
        assert render("{{HTML.escape(x)}}", {"x": "<a>"}, filters) == "&lt;a&gt;"

    def test_mixed_safety_sequence(self, render):
        items = [Markup("<i>x</i>"), "<b>"]
        assert render("{{items}}", {"items": items}) == "<i>x</i>&lt;b&gt;"


class TestSections:
    """Test rendering of sections and inverted sections."""

    def test_list_section(self, render):
        assert render("{{#items}}[{{.}}]{{/items}}", {"items": ["a", "b"]}) == "[a][b]"

    def test_list_of_mappings(self, render):
        data = {"people": [{"name": "Ann"}, {"name": "Bob"}]}
        assert render("{{#people}}{{name}};{{/people}}", data) == "Ann;Bob;"

    def test_mapping_section_pushes_scope(self, render):
        data = {"user": {"name": "Ann"}, "greeting": "Hi"}
        assert render("{{#user}}{{greeting}} {{name}}{{/user}}", data) == "Hi Ann"

    def test_empty_mapping_is_truthy(self, render):
        assert render("{{#m}}yes{{/m}}", {"m": {}}) == "yes"

    @pytest.mark.parametrize(
        "value, expected",
        [(True, "yes"), (False, ""), (None, ""), (0, ""), ("", ""), ([], ""), ("text", "yes")],
    )
    def test_truthiness(self, render, value, expected):
        assert render("{{#v}}yes{{/v}}", {"v": value}) == expected

    def test_missing_section_renders_nothing(self, render):
        assert render("{{#nope}}x{{/nope}}", {}) == ""

    def test_missing_section_fails_in_strict_mode(self, render):
        with pytest.raises(UnresolvedIdentifierError):
            render("{{#nope}}x{{/nope}}", {}, missing="fail")

    @pytest.mark.parametrize(
        "value, expected",
        [([], "none"), (False, "none"), (None, "none"), (["x"], ""), ({}, ""), (True, "")],
    )
    def test_inverted(self, render, value, expected):
        assert render("{{^v}}none{{/v}}", {"v": value}) == expected

    def test_inverted_missing(self, render):
        assert render("{{^v}}none{{/v}}", {}) == "none"

    def test_nested_sections_see_outer_names(self, render):
        data = {"prefix": "-", "groups": [{"items": ["a", "b"]}]}
        source = "{{#groups}}{{#items}}{{prefix}}{{.}}{{/items}}{{/groups}}"
        assert render(source, data) == "-a-b"

    def test_filter_result_as_section(self, render):
        evens = filter_with(lambda items: [i for i in items if i % 2 == 0])
        source = "{{#evens(numbers)}}{{.}},{{/evens(numbers)}}"
        assert render(source, {"numbers": [1, 2, 3, 4]}, {"evens": evens}) == "2,4,"


class TestRenderableSections:
    """Test renderable values taking over sections."""

    def test_wrapping_section_content(self, render):
        @renderable
        def wrap(tag, context):
            inner = tag.render_content(context)
            return Rendering(f"<div>{inner.text}</div>", True)

        data = {"wrap": wrap, "name": "<x>"}
        assert render("{{#wrap}}{{name}}{{/wrap}}", data) == "<div>&lt;x&gt;</div>"

    def test_renderable_sees_tag(self, render):
        seen = []

        @renderable
        def spy(tag, context):
            seen.append((tag.kind, tag.inner_source))
            return ""

        render("{{#spy}}content {{x}}{{/spy}}{{spy}}", {"spy": spy})
        assert seen == [
            (TagKind.SECTION, "content {{x}}"),
            (TagKind.VARIABLE, ""),
        ]

    def test_tag_escape_follows_tag(self, render):
        @renderable
        def arrow(tag, context):
            return Rendering(tag.escape("<-"), True)

        assert render("{{arrow}}", {"arrow": arrow}) == "&lt;-"
        assert render("{{{arrow}}}", {"arrow": arrow}) == "<-"

    def test_render_content_of_variable_tag_is_empty(self, render):
        @renderable
        def content(tag, context):
            return tag.render_content(context)

        assert render("[{{content}}]", {"content": content}) == "[]"

    def test_each_exposes_positions(self, render):
        filters = standard_library()
        source = "{{#each(items)}}{{@indexPlusOne}}.{{.}}{{^@last}}, {{/@last}}{{/each(items)}}"
        assert render(source, {"items": ["a", "b", "c"]}, filters) == "1.a, 2.b, 3.c"


class TestFilters:
    """Test filter calls rendered end to end."""

    def test_string_filter(self, render):
        filters = standard_library()
        assert render("{{uppercase(name)}}", {"name": "ann"}, filters) == "ANN"

    def test_variadic_filter(self, render):
        filters = {"add": variadic_filter(sum)}
        assert render("{{add(a, b)}}", {"a": 2, "b": 3}, filters) == "5"

    def test_nested_generic_filters(self, render):
        filters = {
            "f": filter_with(lambda v: v * 10),
            "g": filter_with(lambda v: v + 1),
        }
        assert render("{{f(g(x))}}", {"x": 1}, filters) == "20"

    def test_string_filter_on_renderable_argument(self, render):
        """Renderable arguments are rendered before the string function runs."""
        bold = filter_with(lambda v: EagerRenderable(f"<b>{v}</b>", safe=True))
        filters = dict(standard_library(), bold=bold)
        assert render("{{{uppercase(bold(x))}}}", {"x": "a"}, filters) == "<B>A</B>"
        assert render("{{uppercase(bold(x))}}", {"x": "a"}, filters) == "<B>A</B>"

    def test_string_filter_in_section_transforms_content(self, render):
        """In a section the argument renders as the section would for it."""
        filters = standard_library()
        source = "{{#uppercase(user)}}Hi {{name}}{{/uppercase(user)}}"
        assert render(source, {"user": {"name": "ann"}}, filters) == "HI ANN"

    def test_string_filter_in_section_iterates(self, render):
        filters = standard_library()
        source = "{{#uppercase(items)}}<{{.}}>{{/uppercase(items)}}"
        assert render(source, {"items": ["a", "b"]}, filters) == "<A><B>"
        assert render(source, {"items": []}, filters) == ""

    def test_string_filter_over_mixed_sequence_escapes_once(self, render):
        """Safe and unsafe items reach the function unescaped."""
        filters = standard_library()
        items = [Markup("<i>x</i>"), "<b>"]
        rendered = render("{{uppercase(items)}}", {"items": items}, filters)
        assert rendered == "&lt;I&gt;X&lt;/I&gt;&lt;B&gt;"

    def test_values_shadow_filters(self, render):
        """Data binding a filter name hides the filter."""
        filters = standard_library()
        with pytest.raises(TypeMismatchError):
            render("{{uppercase(x)}}", {"uppercase": "no", "x": "a"}, filters)


class TestErrors:
    """Test error reporting."""

    def test_error_location(self, render):
        with pytest.raises(UnresolvedIdentifierError) as exc_info:
            render("a\n{{#s}}{{missing}}{{/s}}", {"s": True}, missing="fail")
        location = exc_info.value.location
        assert location.line == 2
        assert location.column == 7
        assert "line 2" in str(exc_info.value)

    def test_filter_failure_location(self, render):
        broken = filter_with(lambda v: 1 / 0)
        with pytest.raises(FilterInvocationError) as exc_info:
            render("ok\n\n{{broken(x)}}", {"x": 1}, {"broken": broken})
        assert exc_info.value.location.line == 3

    def test_renderable_failure(self, render):
        @renderable
        def explode(tag, context):
            raise KeyError("gone")

        with pytest.raises(RenderingError) as exc_info:
            render("{{x}}", {"x": explode})
        assert isinstance(exc_info.value.__cause__, KeyError)

    def test_missing_filter_fails_in_default_mode(self, render):
        with pytest.raises(UnresolvedIdentifierError):
            render("{{nope(x)}}", {"x": 1})

    def test_renderable_returning_bare_string(self, render):
        """A plain string from render is unsafe text, never unpacked."""

        class Raw(Renderable):
            def render(self, tag, context):
                return "<b"

        assert render("{{x}}", {"x": Raw()}) == "&lt;b"
        assert render("{{x}}", {"x": Raw()}, content_type="text") == "<b"

    def test_renderable_returning_markup(self, render):
        class Bold(Renderable):
            def render(self, tag, context):
                return Markup("<b>x</b>")

        assert render("{{x}}", {"x": Bold()}) == "<b>x</b>"

    def test_renderable_returning_other_value(self, render):
        class Broken(Renderable):
            def render(self, tag, context):
                return 42

        with pytest.raises(TypeMismatchError) as exc_info:
            render("ok\n{{x}}", {"x": Broken()})
        assert "Broken.render returned int" in str(exc_info.value)
        assert exc_info.value.location.line == 2


class TestTagState:
    """Test the tag state machine."""

    def test_rendering_then_rendered(self, render):
        tags = []

        @renderable
        def spy(tag, context):
            tags.append((tag, tag.state))
            return "x"

        render("{{spy}}", {"spy": spy})
        (tag, state_during_render), = tags
        assert state_during_render is TagState.RENDERING
        assert tag.state is TagState.RENDERED

    def test_failed(self, render):
        tags = []

        @renderable
        def spy(tag, context):
            tags.append(tag)
            raise ValueError("no")

        with pytest.raises(RenderingError):
            render("{{spy}}", {"spy": spy})
        assert tags[0].state is TagState.FAILED

    def test_fresh_tag_per_occurrence(self, render):
        tags = []

        @renderable
        def spy(tag, context):
            tags.append(tag)
            return ""

        render("{{spy}}{{spy}}", {"spy": spy})
        assert tags[0] is not tags[1]
