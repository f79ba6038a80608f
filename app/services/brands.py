from __future__ import annotations

import json
from typing import Any, Dict, List, Optional

from flask import current_app
from sqlalchemy.orm import Session
from sqlalchemy.sql import func

from app.models.brand import Brand, BrandHistory, BrandStatus, _utcnow
from app.services.errors import Conflict, NotFound, ValidationError
from app.utils.validators import clean_str, is_valid_hex_color, parse_date, to_decimal

DEFAULT_STATUS_COLOR = "#3B82F6"

_UNSET: Any = object()


# ---- statuses ----------------------------------------------------------------

def get_brand_status(session: Session, status_id: int) -> BrandStatus:
    obj = session.get(BrandStatus, status_id)
    if not obj:
        raise NotFound(f"Brand status {status_id} not found.")
    return obj


def list_brand_statuses(session: Session) -> List[BrandStatus]:
    return session.query(BrandStatus).order_by(BrandStatus.order.asc(), BrandStatus.id.asc()).all()


def _status_fields(name: Any, color: Any, order: Any) -> Dict[str, Any]:
    errors: Dict[str, str] = {}
    out: Dict[str, Any] = {}
    if name is not _UNSET:
        out["name"] = clean_str(name, max_len=120)
        if not out["name"]:
            errors["name"] = "Nome do status é obrigatório."
    if color is not _UNSET:
        out["color"] = (color or DEFAULT_STATUS_COLOR).strip()
        if not is_valid_hex_color(out["color"]):
            errors["color"] = "Cor deve estar no formato #RRGGBB."
    if order is not _UNSET and order is not None:
        try:
            out["order"] = int(order)
        except (TypeError, ValueError):
            errors["order"] = "Ordem deve ser um número inteiro."
    if errors:
        raise ValidationError(errors)
    return out


def create_brand_status(
    session: Session,
    *,
    name: Optional[str],
    color: Optional[str] = None,
    order: Optional[int] = None,
) -> BrandStatus:
    fields = _status_fields(name, color, order)
    if "order" not in fields:
        current_max = session.query(func.max(BrandStatus.order)).scalar()
        fields["order"] = (current_max or 0) + 1
    status = BrandStatus(**fields)
    session.add(status)
    session.flush()
    return status


def update_brand_status(
    session: Session,
    status_id: int,
    *,
    name: Any = _UNSET,
    color: Any = _UNSET,
    order: Any = _UNSET,
) -> BrandStatus:
    status = get_brand_status(session, status_id)
    for key, value in _status_fields(name, color, order).items():
        setattr(status, key, value)
    session.flush()
    return status


def delete_brand_status(session: Session, status_id: int) -> None:
    status = get_brand_status(session, status_id)
    in_use = session.query(Brand).filter(Brand.status_id == status_id).count()
    if in_use:
        raise Conflict(f"Status {status.name!r} still has {in_use} brand(s); move them first.")
    # History rows keep their copied status names; only the links are dropped
    session.query(BrandHistory).filter(BrandHistory.from_status_id == status_id).update(
        {BrandHistory.from_status_id: None}, synchronize_session="fetch"
    )
    session.query(BrandHistory).filter(BrandHistory.to_status_id == status_id).update(
        {BrandHistory.to_status_id: None}, synchronize_session="fetch"
    )
    session.delete(status)
    session.flush()


# ---- brands ------------------------------------------------------------------

def get_brand(session: Session, brand_id: int) -> Brand:
    obj = session.get(Brand, brand_id)
    if not obj:
        raise NotFound(f"Brand {brand_id} not found.")
    return obj


def list_brands(session: Session, *, status_id: Optional[int] = None) -> List[Brand]:
    query = session.query(Brand)
    if status_id is not None:
        query = query.filter(Brand.status_id == status_id)
    return query.order_by(Brand.order.asc(), Brand.id.asc()).all()


def _brand_fields(**raw: Any) -> Dict[str, Any]:
    """Validate only the keys that were sent (anything but _UNSET)."""
    errors: Dict[str, str] = {}
    out: Dict[str, Any] = {}
    if raw.get("name", _UNSET) is not _UNSET:
        out["name"] = clean_str(raw["name"])
        if not out["name"]:
            errors["name"] = "Nome da marca é obrigatório."
    if raw.get("description", _UNSET) is not _UNSET:
        out["description"] = clean_str(raw["description"], max_len=4000)
    if raw.get("responsible", _UNSET) is not _UNSET:
        out["responsible"] = clean_str(raw["responsible"])
    if raw.get("value", _UNSET) is not _UNSET:
        try:
            value = to_decimal(raw["value"] if raw["value"] not in (None, "") else 0)
            if value < 0:
                errors["value"] = "Valor não pode ser negativo."
            out["value"] = value
        except ValueError:
            errors["value"] = "Valor deve ser numérico."
    if raw.get("deadline", _UNSET) is not _UNSET:
        try:
            out["deadline"] = parse_date(raw["deadline"])
        except ValueError:
            errors["deadline"] = "Prazo deve ser uma data (AAAA-MM-DD)."
    if raw.get("order", _UNSET) is not _UNSET and raw["order"] is not None:
        try:
            out["order"] = int(raw["order"])
        except (TypeError, ValueError):
            errors["order"] = "Ordem deve ser um número inteiro."
    if errors:
        raise ValidationError(errors)
    return out


def create_brand(
    session: Session,
    *,
    name: Optional[str],
    status_id: Any,
    description: Optional[str] = None,
    responsible: Optional[str] = None,
    value: Any = 0,
    deadline: Any = None,
    order: Optional[int] = None,
    created_by: Optional[int] = None,
) -> Brand:
    """New brand plus its creation record (from_status_id NULL) in the same transaction."""
    fields = _brand_fields(
        name=name, description=description, responsible=responsible,
        value=value, deadline=deadline, order=order,
    )
    if not status_id:
        raise ValidationError({"status_id": "Status é obrigatório."})
    status = get_brand_status(session, status_id)
    if "order" not in fields:
        current_max = (
            session.query(func.max(Brand.order)).filter(Brand.status_id == status.id).scalar()
        )
        fields["order"] = (current_max or 0) + 1

    brand = Brand(status_id=status.id, **fields)
    session.add(brand)
    session.flush()
    session.add(BrandHistory(
        brand_id=brand.id,
        from_status_id=None,
        to_status_id=status.id,
        to_status_name=status.name,
        moved_at=_utcnow(),
        moved_by=created_by,
    ))
    session.flush()
    return brand


def move_brand(
    session: Session,
    brand_id: int,
    *,
    from_status_id: Optional[int],
    to_status_id: int,
    moved_by: Optional[int] = None,
) -> Optional[BrandHistory]:
    """
    Change the brand's status and append exactly one history row.
    Returns the new history row, or None when the brand is already in `to_status_id`.
    """
    brand = get_brand(session, brand_id)
    target = get_brand_status(session, to_status_id)

    if from_status_id is not None and int(from_status_id) != brand.status_id:
        raise Conflict(
            f"Brand {brand_id} is in status {brand.status_id}, not {from_status_id}; reload and retry."
        )
    if brand.status_id == target.id:
        return None

    previous = brand.status_id
    origin = session.get(BrandStatus, previous)
    previous_name = origin.name if origin else None
    brand.status_id = target.id
    brand.updated_at = _utcnow()
    entry = BrandHistory(
        brand_id=brand.id,
        from_status_id=previous,
        to_status_id=target.id,
        from_status_name=previous_name,
        to_status_name=target.name,
        moved_at=_utcnow(),
        moved_by=moved_by,
    )
    session.add(entry)
    session.flush()
    session.expire(brand, ["status"])
    current_app.logger.info(json.dumps({
        "event": "brand_moved",
        "brand_id": brand.id,
        "from_status_id": previous,
        "to_status_id": target.id,
        "moved_by": moved_by,
    }))
    return entry


def update_brand(
    session: Session,
    brand_id: int,
    *,
    name: Any = _UNSET,
    description: Any = _UNSET,
    responsible: Any = _UNSET,
    value: Any = _UNSET,
    deadline: Any = _UNSET,
    order: Any = _UNSET,
    status_id: Any = _UNSET,
    moved_by: Optional[int] = None,
) -> Brand:
    brand = get_brand(session, brand_id)
    fields = _brand_fields(
        name=name, description=description, responsible=responsible,
        value=value, deadline=deadline, order=order,
    )
    for key, val in fields.items():
        setattr(brand, key, val)
    session.flush()

    if status_id is not _UNSET and status_id is not None and int(status_id) != brand.status_id:
        move_brand(
            session, brand.id,
            from_status_id=brand.status_id,
            to_status_id=int(status_id),
            moved_by=moved_by,
        )
    return brand


def delete_brand(session: Session, brand_id: int) -> None:
    brand = get_brand(session, brand_id)
    session.query(BrandHistory).filter(BrandHistory.brand_id == brand_id).delete(synchronize_session="fetch")
    session.delete(brand)
    session.flush()
    current_app.logger.info("brand deleted id=%s", brand_id)


def get_brand_history(session: Session, brand_id: int) -> List[BrandHistory]:
    get_brand(session, brand_id)
    return (
        session.query(BrandHistory)
        .filter(BrandHistory.brand_id == brand_id)
        .order_by(BrandHistory.moved_at.desc(), BrandHistory.id.desc())
        .all()
    )
