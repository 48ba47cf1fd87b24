import pytest

from vndb import filters


def test_raw_wrap():
    assert filters.f("search ~ Sokoku") == "(search ~ Sokoku)"
    assert filters.f("id = 7 and id = 8") == "(id = 7 and id = 8)"


def test_condition_quotes_values():
    assert filters.condition("id", "=", 5) == "(id = 5)"
    assert filters.condition("title", "~", "sora") == '(title ~ "sora")'
    assert filters.condition("id", "=", [1, 2]) == "(id = [1, 2])"
    assert filters.condition("released", "!=", None) == "(released != null)"


def test_condition_rejects_unknown_operator():
    with pytest.raises(ValueError):
        filters.condition("id", "==", 5)


def test_combinators():
    a = filters.condition("id", ">=", 10)
    b = filters.condition("id", "<", 20)
    assert filters.and_(a, b) == "((id >= 10) and (id < 20))"
    assert filters.or_(a) == a
    assert filters.or_(filters.and_(a, b), "(id = 1)") == "(((id >= 10) and (id < 20)) or (id = 1))"


def test_combinators_need_an_expression():
    with pytest.raises(ValueError):
        filters.and_()
