from pathlib import Path

import pytest

from tpl.engine import TemplateEngine
from tpl.escape import HtmlEscaper

# Импорт из унифицированной инфраструктуры
from tests.infrastructure.file_utils import write
from tests.infrastructure.rendering_utils import make_engine


@pytest.fixture
def engine() -> TemplateEngine:
    """Движок без поисковых путей: только шаблоны из new_template()."""
    return make_engine()


@pytest.fixture
def html() -> HtmlEscaper:
    return HtmlEscaper()


@pytest.fixture
def tmpproj(tmp_path: Path) -> Path:
    """Каталог шаблонов: базовый, дочерний, включаемый и шаблон для create."""
    root = tmp_path
    write(root / "base.txt", "X{% block body %}BASE{% endblock %}Y")
    write(root / "child.txt", "{% extends 'base.txt' %}{% block body %}CHILD{% endblock %}")
    write(root / "empty_child.txt", "{% extends 'base.txt' %}")
    write(root / "item.txt", "[{{ item }}]")
    write(root / "page.txt", "{% for item in items %}{% include 'item.txt' %}{% endfor %}")
    write(root / "report.txt", "Report for {{ name }}\n")
    return root
