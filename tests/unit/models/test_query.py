import pytest

from orgfiles.models.query import DEFAULT_ORDER, RawPredicate, ensure_predicate, normalize_order


def test_plain_strings_are_wrapped_as_raw_predicates() -> None:
    predicate = ensure_predicate("ext = 'txt'")

    assert isinstance(predicate, RawPredicate)
    assert predicate == "ext = 'txt'"


def test_raw_predicate_is_passed_through_unchanged() -> None:
    predicate = RawPredicate("size > 0 -- trusted")

    assert ensure_predicate(predicate) is predicate


def test_blank_predicate_means_no_filter() -> None:
    assert ensure_predicate(None) is None
    assert ensure_predicate("   ") is None


def test_predicate_must_be_text() -> None:
    with pytest.raises(TypeError):
        ensure_predicate(42)  # type: ignore[arg-type]


@pytest.mark.parametrize(
    ("order", "expected"),
    [
        (None, DEFAULT_ORDER),
        ("", DEFAULT_ORDER),
        ("size", "size"),
        ("size desc, path", "size desc, path"),
        (["ext", "path"], "ext, path"),
        (("mtime desc",), "mtime desc"),
    ],
)
def test_normalize_order(order, expected) -> None:
    assert normalize_order(order) == expected
