from __future__ import annotations

from mogile_tools.domain_index import DEFAULT_CLASS_NAME, DomainClassIndex


def _index() -> DomainClassIndex:
    return DomainClassIndex.from_rows(
        [
            (1, "photos", 1, "thumbs"),
            (1, "photos", 2, "originals"),
            (2, "backups", None, None),
        ]
    )


def test_resolves_known_classes() -> None:
    index = _index()

    assert index.resolve(1, 1) == ("photos", "thumbs")
    assert index.resolve(1, 2) == ("photos", "originals")


def test_zero_and_null_class_are_default_for_every_domain() -> None:
    index = _index()

    for dmid in index.domains:
        assert index.resolve(dmid, 0)[1] == DEFAULT_CLASS_NAME
        assert index.resolve(dmid, None)[1] == DEFAULT_CLASS_NAME
    assert index.resolve(2, 0) == ("backups", "default")


def test_explicit_class_zero_row_is_overridden_with_default() -> None:
    index = DomainClassIndex.from_rows([(1, "photos", 0, "zero")])

    assert index.resolve(1, 0) == ("photos", "default")


def test_unknown_ids_resolve_to_numbers() -> None:
    index = _index()

    assert index.resolve(9, 3) == ("9", "3")
    assert index.resolve(1, 7) == ("photos", "7")
    assert index.resolve(None, None) == ("", "default")
