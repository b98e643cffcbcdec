import typing


def english_enumerate(items: typing.Iterable[str], conj: str = "and") -> str:
    """
    Joins the items into an English phrase: ``a``, ``a and b``, ``a, b, and c``.
    """
    items_ = list(items)
    if len(items_) < 2:
        return "".join(items_)
    elif len(items_) == 2:
        return f"{items_[0]} {conj} {items_[1]}"
    return ", ".join(items_[:-1]) + f", {conj} {items_[-1]}"
