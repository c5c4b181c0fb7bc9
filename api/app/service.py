import io
import logging
from typing import Any, Optional, Union

import pydantic
from sqlalchemy import func, select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from . import models, schemas
from .errors import InsufficientStock, NotFound, PersistenceError, ValidationError
from .importer import read_sweets_csv

logger = logging.getLogger(__name__)

# sqlite3 lanza OverflowError (no DBAPIError) con enteros fuera de rango
STORE_ERRORS = (SQLAlchemyError, OverflowError)

Payload = Union[pydantic.BaseModel, dict[str, Any]]


def _validate(schema: type[pydantic.BaseModel], payload: Optional[Payload]):
    if isinstance(payload, schema):
        return payload
    if isinstance(payload, pydantic.BaseModel):
        payload = payload.model_dump(exclude_unset=True)
    try:
        return schema.model_validate(payload or {})
    except pydantic.ValidationError as exc:
        fields = list(
            dict.fromkeys(".".join(str(p) for p in err["loc"]) for err in exc.errors())
        )
        raise ValidationError(f"Invalid value for: {', '.join(fields)}", fields) from exc


def _check_id(sweet_id: Any) -> int:
    if isinstance(sweet_id, bool) or not isinstance(sweet_id, int) or sweet_id <= 0:
        raise ValidationError("Invalid ID format", ["id"])
    return sweet_id


def _check_quantity(quantity: Any) -> int:
    if isinstance(quantity, bool) or not isinstance(quantity, int):
        raise ValidationError("Quantity must be a positive integer", ["quantity"])
    if not 0 < quantity <= schemas.MAX_QUANTITY:
        raise ValidationError(
            f"Quantity must be a positive integer up to {schemas.MAX_QUANTITY}", ["quantity"]
        )
    return quantity


class SweetService:
    """Stateless facade over the sweets table.

    Every call works against the session it was built with; nothing is cached
    between calls. Stock changes are single conditional UPDATE statements so
    concurrent purchases cannot oversell.
    """

    def __init__(self, db: Session):
        self.db = db

    # --- Lectura ---

    def list_sweets(
        self,
        filters: Optional[Payload] = None,
        sort: Optional[Payload] = None,
    ) -> list[models.Sweet]:
        criteria: schemas.SweetFilter = _validate(schemas.SweetFilter, filters)
        ordering: schemas.SweetSort = _validate(schemas.SweetSort, sort)

        stmt = select(models.Sweet)
        if criteria.name:
            stmt = stmt.where(
                func.lower(models.Sweet.name).contains(criteria.name.lower(), autoescape=True)
            )
        if criteria.category:
            stmt = stmt.where(models.Sweet.category == criteria.category)
        if criteria.min_price is not None:
            stmt = stmt.where(models.Sweet.price >= criteria.min_price)
        if criteria.max_price is not None:
            stmt = stmt.where(models.Sweet.price <= criteria.max_price)

        if ordering.sort_by is not None:
            column = getattr(models.Sweet, ordering.sort_by.value)
            if ordering.order == schemas.SortOrder.desc:
                column = column.desc()
            stmt = stmt.order_by(column, models.Sweet.id)
        else:
            stmt = stmt.order_by(models.Sweet.id)

        try:
            return list(self.db.scalars(stmt).all())
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to list sweets", exc) from exc

    def get_sweet(self, sweet_id: int) -> models.Sweet:
        sweet_id = _check_id(sweet_id)
        try:
            sweet = self.db.get(models.Sweet, sweet_id)
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to load sweet", exc) from exc
        if sweet is None:
            raise NotFound("Sweet not found.")
        return sweet

    # --- Escritura ---

    def create_sweet(self, payload: Payload) -> models.Sweet:
        data: schemas.SweetCreate = _validate(schemas.SweetCreate, payload)
        obj = models.Sweet(**data.model_dump())
        try:
            self.db.add(obj)
            self.db.commit()
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to create sweet", exc) from exc
        self.db.refresh(obj)
        logger.info("Created sweet id=%s name=%r", obj.id, obj.name)
        return obj

    def update_sweet(self, sweet_id: int, payload: Payload) -> models.Sweet:
        data: schemas.SweetUpdate = _validate(schemas.SweetUpdate, payload)
        changes = data.model_dump(exclude_unset=True, exclude_none=True)
        sweet = self.get_sweet(sweet_id)
        for field, value in changes.items():
            setattr(sweet, field, value)
        try:
            self.db.commit()
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to update sweet", exc) from exc
        self.db.refresh(sweet)
        logger.info("Updated sweet id=%s fields=%s", sweet.id, sorted(changes))
        return sweet

    def delete_sweet(self, sweet_id: int) -> schemas.SweetOut:
        sweet = self.get_sweet(sweet_id)
        # Copia del estado previo: tras el commit la instancia queda desligada
        snapshot = schemas.SweetOut.model_validate(sweet)
        try:
            self.db.delete(sweet)
            self.db.commit()
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to delete sweet", exc) from exc
        logger.info("Deleted sweet id=%s", snapshot.id)
        return snapshot

    def purchase_sweet(self, sweet_id: int, quantity: int) -> models.Sweet:
        sweet_id = _check_id(sweet_id)
        quantity = _check_quantity(quantity)
        stmt = (
            update(models.Sweet)
            .where(models.Sweet.id == sweet_id, models.Sweet.quantity >= quantity)
            .values(quantity=models.Sweet.quantity - quantity)
            .execution_options(synchronize_session=False)
        )
        if self._apply(stmt, "Purchase failed") == 0:
            current = self.get_sweet(sweet_id)
            logger.warning(
                "Rejected purchase sweet id=%s requested=%s available=%s",
                sweet_id,
                quantity,
                current.quantity,
            )
            raise InsufficientStock("Insufficient stock available.")
        logger.info("Purchased sweet id=%s quantity=%s", sweet_id, quantity)
        return self._reload(sweet_id)

    def restock_sweet(self, sweet_id: int, quantity: int) -> models.Sweet:
        sweet_id = _check_id(sweet_id)
        quantity = _check_quantity(quantity)
        stmt = (
            update(models.Sweet)
            .where(
                models.Sweet.id == sweet_id,
                models.Sweet.quantity <= schemas.MAX_QUANTITY - quantity,
            )
            .values(quantity=models.Sweet.quantity + quantity)
            .execution_options(synchronize_session=False)
        )
        if self._apply(stmt, "Restock failed") == 0:
            current = self.get_sweet(sweet_id)
            raise ValidationError(
                f"Restock would exceed the maximum stock of {schemas.MAX_QUANTITY}"
                f" (current {current.quantity})",
                ["quantity"],
            )
        logger.info("Restocked sweet id=%s quantity=%s", sweet_id, quantity)
        return self._reload(sweet_id)

    def import_csv(self, content: bytes) -> schemas.ImportResult:
        rows, rejected = read_sweets_csv(io.BytesIO(content))
        try:
            self.db.add_all([models.Sweet(**row.model_dump()) for row in rows])
            self.db.commit()
        except STORE_ERRORS as exc:
            raise self._persistence_error("Failed to import sweets", exc) from exc
        logger.info("Imported sweets created=%s rejected=%s", len(rows), rejected)
        return schemas.ImportResult(created=len(rows), rejected=rejected)

    # --- Internos ---

    def _apply(self, stmt, failure: str) -> int:
        """Run a single UPDATE and return the number of affected rows."""
        try:
            result = self.db.execute(stmt)
            if result.rowcount == 0:
                self.db.rollback()
                return 0
            self.db.commit()
        except STORE_ERRORS as exc:
            raise self._persistence_error(failure, exc) from exc
        return result.rowcount

    def _reload(self, sweet_id: int) -> models.Sweet:
        sweet = self.db.get(models.Sweet, sweet_id, populate_existing=True)
        if sweet is None:
            raise NotFound("Sweet not found.")
        return sweet

    def _persistence_error(self, message: str, exc: Exception) -> PersistenceError:
        self.db.rollback()
        logger.exception("%s: %s", message, exc)
        return PersistenceError(message)
