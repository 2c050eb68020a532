import pytest

from tpl.datasource import TemplateList, TemplateStruct
from tpl.variant import TemplateVariant, VariantType


class TestVariantTypes:
    """Выбор случая объединения по Python-значению."""

    def test_default_is_invalid(self):
        v = TemplateVariant()
        assert v.type is VariantType.NONE
        assert not v.is_valid()
        assert v.to_string() == ""

    def test_bool_is_not_integer(self):
        assert TemplateVariant(True).type is VariantType.BOOL
        assert TemplateVariant(1).type is VariantType.INTEGER

    def test_references(self):
        assert TemplateVariant(TemplateList()).type is VariantType.LIST
        assert TemplateVariant(TemplateStruct()).type is VariantType.STRUCT
        assert TemplateVariant(lambda args: "x").type is VariantType.FUNCTION

    def test_unsupported_value(self):
        with pytest.raises(TypeError):
            TemplateVariant(1.5)


class TestConversions:
    """Приведения никогда не бросают исключений."""

    @pytest.mark.parametrize("value, expected", [
        (None, False),
        (False, False),
        (True, True),
        (0, False),
        (-3, True),
        ("", False),
        ("0", True),
    ])
    def test_to_bool(self, value, expected):
        assert TemplateVariant(value).to_bool() is expected

    def test_references_are_truthy_even_when_empty(self):
        assert TemplateVariant(TemplateList()).to_bool() is True
        assert TemplateVariant(TemplateStruct()).to_bool() is True

    def test_to_string(self):
        assert TemplateVariant(42).to_string() == "42"
        assert TemplateVariant(True).to_string() == "true"
        assert TemplateVariant(False).to_string() == "false"
        assert TemplateVariant(TemplateList()).to_string() == ""

    def test_to_int(self):
        assert TemplateVariant(" 17 ").to_int() == 17
        assert TemplateVariant("abc").to_int() == 0
        assert TemplateVariant(True).to_int() == 1
        assert TemplateVariant().to_int() == 0

    def test_to_list_and_struct_of_wrong_type(self):
        assert TemplateVariant("x").to_list() is None
        assert TemplateVariant(3).to_struct() is None


class TestFunctionsAndRaw:

    def test_call_passes_arguments(self):
        v = TemplateVariant(lambda args: "-".join(a.to_string() for a in args))
        assert v.call([TemplateVariant("a"), TemplateVariant(2)]) == "a-2"

    def test_call_on_non_function(self):
        assert TemplateVariant("x").call([]) == ""

    def test_raw_flag_defaults_to_false(self):
        v = TemplateVariant("a")
        assert v.raw is False
        v.set_raw(True)
        assert v.raw is True

    def test_with_raw_does_not_touch_original(self):
        v = TemplateVariant("a")
        r = v.with_raw(True)
        assert r.raw and not v.raw
        assert r == v


class TestCopyAndEquality:

    def test_copy_shares_reference(self):
        lst = TemplateList([1, 2])
        v = TemplateVariant(lst)
        c = v.copy()
        assert c.to_list() is lst
        assert c == v

    def test_references_compare_by_identity(self):
        assert TemplateVariant(TemplateList()) != TemplateVariant(TemplateList())

    def test_scalars_compare_by_value(self):
        assert TemplateVariant("a") == TemplateVariant("a")
        assert TemplateVariant(1) != TemplateVariant("1")
