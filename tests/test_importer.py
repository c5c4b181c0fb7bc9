import io

import pytest

from api.app.errors import ValidationError
from api.app.importer import read_sweets_csv


def _csv(text):
    return io.BytesIO(text.encode("utf-8"))


def test_valid_rows_are_normalized():
    rows, rejected = read_sweets_csv(
        _csv("name,category,price,quantity\n  Jelly Beans ,  Candy ,1.5,12\n")
    )
    assert rejected == 0
    assert rows[0].name == "Jelly Beans"
    assert rows[0].category == "Candy"
    assert rows[0].price == 1.5
    assert rows[0].quantity == 12


def test_invalid_rows_are_counted():
    rows, rejected = read_sweets_csv(
        _csv(
            "name,category,price,quantity\n"
            "Jelly Beans,Candy,1.5,12\n"
            "Nougat,Candy,-1,3\n"
            "Fudge,Candy,2,1.5\n"
            "Marzipan,,2,4\n"
        )
    )
    assert [r.name for r in rows] == ["Jelly Beans"]
    assert rejected == 3


def test_missing_columns():
    with pytest.raises(ValidationError) as exc_info:
        read_sweets_csv(_csv("name,price\nFudge,2\n"))
    assert exc_info.value.fields == ["category", "quantity"]


def test_empty_file():
    with pytest.raises(ValidationError):
        read_sweets_csv(_csv(""))


def test_non_finite_and_oversize_prices_are_rejected():
    rows, rejected = read_sweets_csv(
        _csv(
            "name,category,price,quantity\n"
            "Jelly Beans,Candy,1.5,12\n"
            "Nougat,Candy,inf,3\n"
            "Fudge,Candy,1e12,1\n"
            "Toffee,Candy,2,3000000000\n"
        )
    )
    assert [r.name for r in rows] == ["Jelly Beans"]
    assert rejected == 3
