from __future__ import annotations

import pytest

import autoquery


def test_init_exposes_lazy_exports_via_getattr() -> None:
    assert callable(autoquery.Client)
    assert callable(autoquery.Table)
    assert callable(autoquery.DataclassCodec)
    assert callable(autoquery.QueryCursor)
    assert callable(autoquery.explain_indexes)
    assert callable(autoquery.ClientSettings.from_env)
    assert callable(autoquery.StaticDescriptionProvider)
    assert callable(autoquery.is_lambda_environment)


def test_every_public_name_resolves() -> None:
    for name in autoquery.__all__:
        assert getattr(autoquery, name) is not None


def test_unknown_attribute_raises() -> None:
    with pytest.raises(AttributeError):
        autoquery.does_not_exist  # noqa: B018
