"""
Тесты наследования шаблонов: extends / block.
"""

import logging

import pytest

from tpl.errors import TemplateRenderError
from tpl.template.inheritance import collect_blocks, find_extends
from tpl.template.parser import parse_template

from tests.infrastructure.file_utils import write
from tests.infrastructure.rendering_utils import make_engine, render_template

BASE = "X{% block body %}BASE{% endblock %}Y"


@pytest.fixture
def engine():
    return make_engine(templates={"base": BASE})


def _render(engine, name, data=None):
    return render_template(engine.load_by_name(name), data)


class TestSingleLevel:

    def test_block_override(self, engine):
        engine.new_template("child", "{% extends 'base' %}{% block body %}CHILD{% endblock %}")
        assert _render(engine, "child") == "XCHILDY"

    def test_block_not_overridden(self, engine):
        engine.new_template("child", "{% extends 'base' %}{% block other %}Z{% endblock %}")
        assert _render(engine, "child") == "XBASEY"

    def test_base_renders_itself(self, engine):
        assert _render(engine, "base") == "XBASEY"

    def test_content_outside_blocks_is_ignored(self, engine):
        engine.new_template("child", "{% extends 'base' %}ignored{% block body %}C{% endblock %}")
        assert _render(engine, "child") == "XCY"

    def test_override_uses_context(self, engine):
        engine.new_template("child", "{% extends 'base' %}{% block body %}{{ who }}{% endblock %}")
        assert _render(engine, "child", {"who": "me"}) == "XmeY"

    def test_parent_name_from_variable(self, engine):
        engine.new_template("child", "{% extends layout %}{% block body %}V{% endblock %}")
        assert _render(engine, "child", {"layout": "base"}) == "XVY"


class TestChains:

    def test_nearest_descendant_wins(self, engine):
        engine.new_template("mid", "{% extends 'base' %}{% block body %}MID{% endblock %}")
        engine.new_template("leaf", "{% extends 'mid' %}{% block body %}LEAF{% endblock %}")
        assert _render(engine, "mid") == "XMIDY"
        assert _render(engine, "leaf") == "XLEAFY"

    def test_intermediate_override_kept(self, engine):
        engine.new_template("mid", "{% extends 'base' %}{% block body %}MID{% endblock %}")
        engine.new_template("leaf", "{% extends 'mid' %}")
        assert _render(engine, "leaf") == "XMIDY"

    def test_nested_blocks(self):
        engine = make_engine(templates={
            "base": "<{% block outer %}o{% block inner %}i{% endblock %}{% endblock %}>",
            "child": "{% extends 'base' %}{% block inner %}I{% endblock %}",
        })
        assert _render(engine, "child") == "<oI>"

    def test_blocks_inside_control_flow(self):
        engine = make_engine(templates={
            "base": "{% if show %}{% block b %}base{% endblock %}{% endif %}",
            "child": "{% extends 'base' %}{% block b %}child{% endblock %}",
        })
        assert _render(engine, "child", {"show": True}) == "child"
        assert _render(engine, "child", {"show": False}) == ""

    def test_resolution_is_per_render(self, engine):
        """Один и тот же базовый шаблон с разными потомками."""
        engine.new_template("a", "{% extends 'base' %}{% block body %}A{% endblock %}")
        engine.new_template("b", "{% extends 'base' %}{% block body %}B{% endblock %}")
        assert [_render(engine, n) for n in ("a", "b", "base")] == ["XAY", "XBY", "XBASEY"]

    def test_files_on_disk(self, tmpproj):
        engine = make_engine(tmpproj)
        assert _render(engine, "child.txt") == "XCHILDY"
        assert _render(engine, "empty_child.txt") == "XBASEY"


class TestFailures:

    def test_missing_parent_renders_nothing(self, caplog):
        engine = make_engine(templates={"orphan": "{% extends 'nowhere' %}{% block b %}x{% endblock %}"})
        with caplog.at_level(logging.WARNING):
            assert _render(engine, "orphan") == ""
        assert "nowhere" in caplog.text

    def test_broken_parent_renders_nothing(self, tmp_path, caplog):
        write(tmp_path / "base.txt", "{% block x %}")
        write(tmp_path / "child.txt", "{% extends 'base.txt' %}{% block body %}C{% endblock %}")
        engine = make_engine(tmp_path)
        with caplog.at_level(logging.WARNING):
            assert render_template(engine.load_by_name("child.txt")) == ""
        assert "base.txt" in caplog.text
        assert "broken" in caplog.text

    def test_cycle(self):
        engine = make_engine(templates={
            "a": "{% extends 'b' %}",
            "b": "{% extends 'a' %}",
        })
        with pytest.raises(TemplateRenderError) as exc:
            _render(engine, "a")
        assert "a -> b -> a" in str(exc.value)

    def test_chain_longer_than_max_depth(self):
        templates = {f"t{i}": f"{{% extends 't{i + 1}' %}}" for i in range(5)}
        templates["t5"] = "end"
        engine = make_engine(templates=templates, max_depth=3)
        with pytest.raises(TemplateRenderError):
            _render(engine, "t0")


class TestHelpers:

    def test_find_extends(self):
        assert find_extends(parse_template("text")) is None
        assert find_extends(parse_template("{% extends 'x' %}")) is not None

    def test_collect_blocks_recurses(self):
        nodes = parse_template(
            "{% block a %}{% block b %}{% endblock %}{% endblock %}"
            "{% for x in y %}{% block c %}{% endblock %}{% endfor %}"
        )
        assert sorted(collect_blocks(nodes)) == ["a", "b", "c"]
