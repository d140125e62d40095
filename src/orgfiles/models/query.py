from collections.abc import Sequence

DEFAULT_ORDER = "path"


class RawPredicate(str):
    """A boolean SQL expression interpolated verbatim into a WHERE clause.

    This is a trust boundary. The text is never escaped or inspected, so it
    must come from trusted code, not from end users. Wrapping a string in
    this type marks the call site that makes that decision.
    """

    __slots__ = ()

    def __repr__(self) -> str:
        return f"RawPredicate({str.__repr__(self)})"


def ensure_predicate(value: str | None) -> RawPredicate | None:
    if value is None:
        return None
    if isinstance(value, RawPredicate):
        return value
    if not isinstance(value, str):
        raise TypeError("predicate must be a string")
    if not value.strip():
        return None
    return RawPredicate(value)


def normalize_order(order: str | Sequence[str] | None) -> str:
    """Turn a field name, comma-joined string, or sequence of fields into an ORDER BY list."""
    if order is None:
        return DEFAULT_ORDER
    if isinstance(order, str):
        fields = order.split(",")
    else:
        fields = list(order)
    cleaned = [field.strip() for field in fields if field and field.strip()]
    if not cleaned:
        return DEFAULT_ORDER
    return ", ".join(cleaned)


__all__ = ["DEFAULT_ORDER", "RawPredicate", "ensure_predicate", "normalize_order"]
