import logging
from typing import IO, Any, Union

import pandas as pd
import pydantic

from .errors import ValidationError
from .schemas import SweetCreate

logger = logging.getLogger(__name__)

COLUMNS = ["name", "category", "price", "quantity"]


def _as_int(value: Any) -> int:
    number = float(value)
    if not number.is_integer():
        raise ValueError(f"{value!r} is not an integer")
    return int(number)


def read_sweets_csv(source: Union[str, IO[bytes]]) -> tuple[list[SweetCreate], int]:
    """Parse a sweets CSV into validated rows.

    Returns the valid rows and the number of rejected ones. Names and
    categories are stripped, rows with missing values are dropped.
    """
    try:
        df = pd.read_csv(source)
    except (pd.errors.ParserError, pd.errors.EmptyDataError, UnicodeDecodeError) as exc:
        raise ValidationError("Unreadable CSV file", ["file"]) from exc

    missing = [col for col in COLUMNS if col not in df.columns]
    if missing:
        raise ValidationError(f"Missing CSV columns: {', '.join(missing)}", missing)

    total = len(df)
    df = df[COLUMNS].copy()
    df["name"] = df["name"].astype("string").str.strip()
    df["category"] = df["category"].astype("string").str.strip()
    df = df.dropna(subset=COLUMNS)

    rows: list[SweetCreate] = []
    for record in df.to_dict(orient="records"):
        try:
            rows.append(
                SweetCreate(
                    name=str(record["name"]),
                    category=str(record["category"]),
                    price=float(record["price"]),
                    quantity=_as_int(record["quantity"]),
                )
            )
        except (pydantic.ValidationError, ValueError, TypeError):
            logger.debug("Skipping invalid CSV row: %s", record)

    rejected = total - len(rows)
    if rejected:
        logger.warning("CSV import rejected %s of %s rows", rejected, total)
    return rows, rejected
