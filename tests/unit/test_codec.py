from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal

import pytest

from autoquery import ValidationError
from autoquery.codec import DataclassCodec, DictCodec, attribute


@dataclass(frozen=True)
class Movie:
    director: str
    title: str
    year: int = 0
    rating: float = 0.0
    tags: set[str] = attribute(omitempty=True, default_factory=set)
    note: str = attribute(name="n", omitempty=True, default="")


def test_dict_codec_round_trips_plain_values() -> None:
    codec = DictCodec()
    encoded = codec.encode({"pk": "A", "n": 1, "score": 2.5, "flag": True, "gone": None})

    assert encoded == {
        "pk": {"S": "A"},
        "n": {"N": "1"},
        "score": {"N": "2.5"},
        "flag": {"BOOL": True},
        "gone": {"NULL": True},
    }
    assert codec.decode(encoded) == {"pk": "A", "n": Decimal("1"), "score": Decimal("2.5"), "flag": True, "gone": None}


def test_dict_codec_rejects_non_mapping() -> None:
    with pytest.raises(ValidationError, match="record must be a mapping"):
        DictCodec().encode(["not", "a", "map"])  # type: ignore[arg-type]


def test_dataclass_codec_decodes_and_coerces_numbers() -> None:
    codec = DataclassCodec(Movie)
    movie = codec.decode(
        {
            "director": {"S": "Clint Eastwood"},
            "title": {"S": "Unforgiven"},
            "year": {"N": "1992"},
            "rating": {"N": "8.2"},
            "tags": {"SS": ["western"]},
            "n": {"S": "classic"},
        }
    )

    assert movie == Movie(
        director="Clint Eastwood",
        title="Unforgiven",
        year=1992,
        rating=8.2,
        tags={"western"},
        note="classic",
    )
    assert isinstance(movie.year, int)
    assert isinstance(movie.rating, float)


def test_dataclass_codec_uses_defaults_for_unprojected_attributes() -> None:
    movie = DataclassCodec(Movie).decode({"director": {"S": "d"}, "title": {"S": "t"}})
    assert movie.year == 0
    assert movie.note == ""


def test_dataclass_codec_missing_required_attribute() -> None:
    with pytest.raises(ValidationError):
        DataclassCodec(Movie).decode({"director": {"S": "d"}})


def test_dataclass_codec_encode_honors_names_and_omitempty() -> None:
    codec = DataclassCodec(Movie)

    encoded = codec.encode(Movie(director="d", title="t", year=2000, rating=7.5))
    assert encoded == {
        "director": {"S": "d"},
        "title": {"S": "t"},
        "year": {"N": "2000"},
        "rating": {"N": "7.5"},
    }

    assert codec.encode(Movie(director="d", title="t", note="x"))["n"] == {"S": "x"}
    assert codec.attribute_name("note") == "n"
    assert codec.model_type is Movie


def test_dataclass_codec_rejects_wrong_record_type() -> None:
    with pytest.raises(ValidationError, match="record must be a Movie instance"):
        DataclassCodec(Movie).encode({"director": "d"})  # type: ignore[arg-type]


def test_dataclass_codec_requires_dataclass() -> None:
    with pytest.raises(ValidationError, match="must be a dataclass"):
        DataclassCodec(dict)


def test_dataclass_codec_unknown_field() -> None:
    with pytest.raises(ValidationError, match="unknown field: nope"):
        DataclassCodec(Movie).attribute_name("nope")


def test_attribute_rejects_default_and_factory() -> None:
    with pytest.raises(ValueError, match="cannot set both"):
        attribute(default="", default_factory=str)
