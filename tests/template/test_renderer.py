"""
Тесты рендеринга: переменные, фильтры, циклы, условия, include и create.
"""

import logging

import pytest

from tpl.datasource import TemplateList
from tpl.errors import TemplateRenderError, TemplateSyntaxError
from tpl.escape import HtmlEscaper
from tpl.template.filters import FilterArg
from tpl.variant import TemplateVariant

from tests.infrastructure.file_utils import write
from tests.infrastructure.rendering_utils import make_engine, render_template, render_text


class TestText:

    @pytest.mark.parametrize("text", [
        "",
        "plain text",
        "line1\nline2\n\n  indented\t",
        "braces { } }} %} #} are fine",
    ])
    def test_literal_only_is_unchanged(self, text):
        assert render_text(text) == text


class TestVariables:

    def test_lookup(self):
        assert render_text("Hi {{ user.name }}!", {"user": {"name": "Ann"}}) == "Hi Ann!"

    def test_missing_is_empty(self):
        assert render_text("[{{ nope }}][{{ a.b.c }}]", {"a": 1}) == "[][]"

    def test_list_index(self):
        assert render_text("{{ items.1 }}", {"items": ["a", "b"]}) == "b"

    def test_scalar_forms(self):
        assert render_text("{{ t }} {{ n }} {{ l }}", {"t": True, "n": 7, "l": [1]}) == "true 7 "

    def test_escaping(self, html):
        assert render_text("{{ v }}", {"v": "a&b"}, escaper=html) == "a&amp;b"

    def test_raw_variant_is_not_escaped(self, html):
        data = {"v": TemplateVariant("a&b", raw=True)}
        assert render_text("{{ v }}", data, escaper=html) == "a&b"

    def test_safe_filter(self, html):
        assert render_text("{{ v|safe }}", {"v": "<i>"}, escaper=html) == "<i>"

    def test_string_literal_is_not_escaped(self, html):
        assert render_text("{{ '<b>' }}", escaper=html) == "<b>"

    def test_no_escaper_no_escaping(self):
        assert render_text("{{ v }}", {"v": "a&b"}) == "a&b"

    def test_function_value(self):
        calls = []

        def greet(args):
            calls.append(args)
            return "hi"

        assert render_text("{{ f }}", {"f": greet}) == "hi"
        assert calls == [[]]

    def test_failing_function_renders_nothing(self, caplog):
        def broken(args):
            raise RuntimeError("nope")

        with caplog.at_level(logging.WARNING):
            assert render_text("a{{ f }}b", {"f": broken}) == "ab"
        assert "failed" in caplog.text


class TestFilters:

    def test_default(self):
        assert render_text('{{ missing|default:"x" }}') == "x"
        assert render_text('{{ v|default:"x" }}', {"v": ""}) == "x"
        assert render_text('{{ v|default:"x" }}', {"v": "set"}) == "set"
        assert render_text('{{ v|default:other }}', {"other": "o"}) == "o"

    def test_length(self):
        assert render_text("{{ items|length }}", {"items": [1, 2, 3]}) == "3"
        assert render_text("{{ items|length }}", {"items": []}) == "0"
        assert render_text("{{ s|length }}", {"s": "abcd"}) == "4"
        assert render_text("{{ n|length }}", {"n": 5}) == "0"

    def test_add(self):
        assert render_text("{{ n|add:2 }}", {"n": 40}) == "42"
        assert render_text("{{ n|add:'-1' }}", {"n": "10"}) == "9"

    def test_chain_left_to_right(self):
        assert render_text('{{ missing|default:"abc"|length }}') == "3"

    def test_custom_filter(self):
        engine = make_engine()
        engine.register_filter("upper", lambda v, a: TemplateVariant(v.to_string().upper()))
        assert render_text("{{ s|upper }}", {"s": "ab"}, engine=engine) == "AB"

    def test_failing_filter_gives_empty_value(self):
        engine = make_engine()

        def explode(value, arg):
            raise ValueError("bad")

        engine.register_filter("explode", explode, arg=FilterArg.OPTIONAL)
        assert render_text('[{{ s|explode }}][{{ s|explode:1|default:"d" }}]', {"s": "x"}, engine=engine) == "[][d]"


class TestFor:
    TEMPLATE = "{% for x in items %}{{ x }}{% empty %}none{% endfor %}"

    def test_empty_branch(self):
        assert render_text(self.TEMPLATE, {"items": []}) == "none"

    def test_elements(self):
        assert render_text(self.TEMPLATE, {"items": [1, 2, 3]}) == "123"

    def test_non_list_is_empty(self):
        assert render_text(self.TEMPLATE, {"items": "abc"}) == "none"
        assert render_text(self.TEMPLATE) == "none"

    def test_empty_without_branch(self):
        assert render_text("[{% for x in items %}{{ x }}{% endfor %}]", {"items": []}) == "[]"

    def test_reversed(self):
        assert render_text("{% for x in items reversed %}{{ x }}{% endfor %}", {"items": [1, 2, 3]}) == "321"

    def test_host_list(self):
        lst = TemplateList(["a", "b"])
        assert render_text(self.TEMPLATE, {"items": lst}) == "ab"

    def test_loop_variable_does_not_leak(self):
        text = "{% for x in items %}{{ x }}{% endfor %}[{{ x }}]"
        assert render_text(text, {"items": [1, 2]}) == "12[]"
        assert render_text(text, {"items": [1, 2], "x": "outer"}) == "12[outer]"

    def test_forloop(self):
        text = "{% for x in items %}{{ forloop.counter }}{% if forloop.last %}.{% else %},{% endif %}{% endfor %}"
        assert render_text(text, {"items": "abc"}) == ""
        assert render_text(text, {"items": ["a", "b", "c"]}) == "1,2,3."

    def test_forloop_counters(self):
        text = "{% for x in items %}{{ forloop.counter0 }}{{ forloop.revcounter }}{{ forloop.revcounter0 }}{% endfor %}"
        assert render_text(text, {"items": [0, 0]}) == "021110"

    def test_parentloop(self):
        text = (
            "{% for row in rows %}{% for c in row %}"
            "{{ forloop.parentloop.counter }}{{ c }} "
            "{% endfor %}{% endfor %}"
        )
        assert render_text(text, {"rows": [["a"], ["b", "c"]]}) == "1a 2b 2c "


class TestIf:

    @pytest.mark.parametrize("value, expected", [
        (None, "no"),
        (False, "no"),
        (0, "no"),
        ("", "no"),
        (True, "yes"),
        (3, "yes"),
        ("x", "yes"),
        ([], "yes"),
    ])
    def test_truthiness(self, value, expected):
        assert render_text("{% if v %}yes{% else %}no{% endif %}", {"v": value}) == expected

    def test_length_reduces_list(self):
        assert render_text("{% if v|length %}yes{% else %}no{% endif %}", {"v": []}) == "no"

    def test_not(self):
        assert render_text("{% if not v %}empty{% endif %}", {"v": ""}) == "empty"

    def test_missing_is_false(self):
        assert render_text("{% if nope.deep %}yes{% endif %}") == ""


class TestInclude:

    def test_include_sees_outer_variables(self):
        engine = make_engine(templates={"item": "<{{ x }}>"})
        text = "{% for x in items %}{% include 'item' %}{% endfor %}"
        assert render_text(text, {"items": [1, 2]}, engine=engine) == "<1><2>"

    def test_include_does_not_leak(self):
        engine = make_engine(templates={"inner": "{% for y in items %}{% endfor %}"})
        assert render_text("{% include 'inner' %}[{{ y }}]", {"items": [1]}, engine=engine) == "[]"

    def test_include_name_from_variable(self):
        engine = make_engine(templates={"a": "A"})
        assert render_text("{% include which %}", {"which": "a"}, engine=engine) == "A"

    def test_missing_include_is_skipped(self, caplog):
        with caplog.at_level(logging.WARNING):
            assert render_text("a{% include 'ghost' %}b") == "ab"
        assert "ghost" in caplog.text

    def test_include_from_disk(self, tmpproj):
        engine = make_engine(tmpproj)
        template = engine.load_by_name("page.txt")
        assert render_template(template, {"items": ["a", "b"]}) == "[a][b]"

    def test_self_include_hits_depth_limit(self):
        engine = make_engine(templates={"loop": "x{% include 'loop' %}"}, max_depth=8)
        with pytest.raises(TemplateRenderError):
            render_template(engine.load_by_name("loop"))

    def test_broken_include_is_skipped(self, tmpproj, caplog):
        write(tmpproj / "broken.txt", "{{ unterminated")
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "A{% include 'broken.txt' %}B")
        with caplog.at_level(logging.WARNING):
            assert render_template(template) == "AB"
        assert "broken.txt" in caplog.text


class TestCreate:

    def test_create_writes_file(self, tmpproj):
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "a{% create 'sub/r.txt' from 'report.txt' %}b")
        context = engine.create_context()
        with context.scope():
            context.set("name", "Q3")
            assert template.render_to_string(context) == "ab"

        target = tmpproj / "out" / "sub" / "r.txt"
        assert target.read_text(encoding="utf-8") == "Report for Q3\n"
        assert context.created_files == [target.resolve()]
        assert context.create_failures == []

    def test_names_from_variables(self, tmpproj):
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "{% for n in names %}{% create n from tpl %}{% endfor %}")
        render_template(template, {"names": ["a.txt", "b.txt"], "tpl": "item.txt", "item": "z"})
        assert (tmpproj / "out" / "a.txt").read_text(encoding="utf-8") == "[z]"
        assert (tmpproj / "out" / "b.txt").exists()

    def test_missing_template_is_recorded(self, tmpproj, caplog):
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "a{% create 'x.txt' from 'ghost' %}b")
        context = engine.create_context()
        with caplog.at_level(logging.ERROR):
            with context.scope():
                assert template.render_to_string(context) == "ab"
        (failure,) = context.create_failures
        assert failure.filename == "x.txt"
        assert failure.template_name == "ghost"
        assert not (tmpproj / "out" / "x.txt").exists()
        assert "Failed to create" in caplog.text

    def test_write_error_does_not_abort(self, tmpproj):
        blocker = tmpproj / "out"
        blocker.write_text("not a directory", encoding="utf-8")
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "a{% create 'r.txt' from 'report.txt' %}b")
        context = engine.create_context()
        with context.scope():
            assert template.render_to_string(context) == "ab"
        assert len(context.create_failures) == 1

    def test_broken_template_is_recorded(self, tmpproj, caplog):
        write(tmpproj / "broken.txt", "{% if x %}never closed")
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "A{% create 'out.txt' from 'broken.txt' %}B")
        context = engine.create_context()
        with caplog.at_level(logging.ERROR):
            with context.scope():
                assert template.render_to_string(context) == "AB"
        (failure,) = context.create_failures
        assert failure.template_name == "broken.txt"
        assert isinstance(failure.error, TemplateSyntaxError)
        assert not (tmpproj / "out" / "out.txt").exists()
        assert "Failed to create" in caplog.text

    def test_absolute_filename_is_rejected(self, tmpproj):
        outside = tmpproj / "outside.txt"
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "a{% create target from 'report.txt' %}b")
        context = engine.create_context()
        with context.scope():
            context.set("target", str(outside))
            assert template.render_to_string(context) == "ab"
        (failure,) = context.create_failures
        assert isinstance(failure.error, ValueError)
        assert not outside.exists()
        assert context.created_files == []

    def test_parent_segments_are_rejected(self, tmpproj):
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "a{% create '../../escaped.txt' from 'report.txt' %}b")
        context = engine.create_context()
        with context.scope():
            assert template.render_to_string(context) == "ab"
        (failure,) = context.create_failures
        assert isinstance(failure.error, ValueError)
        assert not (tmpproj.parent / "escaped.txt").exists()
        assert not (tmpproj / "escaped.txt").exists()

    def test_parent_segments_inside_output_dir_are_allowed(self, tmpproj):
        engine = make_engine(tmpproj)
        template = engine.new_template("main", "{% create 'sub/../r.txt' from 'report.txt' %}")
        context = engine.create_context()
        with context.scope():
            context.set("name", "Q4")
            template.render_to_string(context)
        assert context.create_failures == []
        assert (tmpproj / "out" / "r.txt").read_text(encoding="utf-8") == "Report for Q4\n"


class TestIdempotence:

    def test_same_output_for_equal_contexts(self):
        engine = make_engine()
        template = engine.new_template(
            "t", "{% for u in users %}{{ u.name|default:'?' }}{% if u.admin %}*{% endif %};{% endfor %}"
        )
        data = {"users": [{"name": "a", "admin": True}, {"name": ""}]}
        first = render_template(template, data, HtmlEscaper())
        second = render_template(template, {"users": [dict(u) for u in data["users"]]}, HtmlEscaper())
        assert first == second == "a*;?;"
