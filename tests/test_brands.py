from datetime import date

import pytest

from app.models import Brand, BrandHistory, User
from app.services.brands import (
    create_brand,
    create_brand_status,
    delete_brand,
    delete_brand_status,
    get_brand_history,
    list_brand_statuses,
    list_brands,
    move_brand,
    update_brand,
    update_brand_status,
)
from app.services.errors import Conflict, NotFound, ValidationError


@pytest.fixture()
def statuses(session):
    lead = create_brand_status(session, name="Prospecção")
    talks = create_brand_status(session, name="Em negociação", color="#F59E0B")
    won = create_brand_status(session, name="Fechado", color="#10B981")
    session.commit()
    return lead, talks, won


def test_status_order_defaults_to_max_plus_one(session, statuses):
    assert [s.order for s in list_brand_statuses(session)] == [1, 2, 3]
    assert [s.name for s in list_brand_statuses(session)] == ["Prospecção", "Em negociação", "Fechado"]


def test_status_color_must_be_hex(session):
    with pytest.raises(ValidationError):
        create_brand_status(session, name="X", color="blue")


def test_update_status_partial(session, statuses):
    lead, _, _ = statuses
    update_brand_status(session, lead.id, order=10)
    session.commit()
    assert lead.name == "Prospecção"
    assert list_brand_statuses(session)[-1].id == lead.id


def test_create_brand_writes_creation_record(session, statuses):
    lead, _, _ = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id, value="1500.50", deadline="2026-12-01")
    session.commit()
    history = get_brand_history(session, brand.id)
    assert len(history) == 1
    assert history[0].from_status_id is None
    assert history[0].to_status_id == lead.id
    assert brand.deadline == date(2026, 12, 1)
    assert float(brand.value) == 1500.5


def test_create_brand_validation(session, statuses):
    lead, _, _ = statuses
    with pytest.raises(ValidationError) as exc:
        create_brand(session, name="", status_id=lead.id, value=-1)
    assert set(exc.value.errors) == {"name", "value"}
    with pytest.raises(ValidationError):
        create_brand(session, name="Glow", status_id=None)
    with pytest.raises(NotFound):
        create_brand(session, name="Glow", status_id=999)


def test_move_is_audited(session, statuses):
    lead, talks, won = statuses
    user = User(email="ops@example.com")
    user.set_password("s3cret-pass")
    session.add(user)
    brand = create_brand(session, name="Glow", status_id=lead.id)
    session.commit()

    entry = move_brand(session, brand.id, from_status_id=lead.id, to_status_id=talks.id, moved_by=user.id)
    move_brand(session, brand.id, from_status_id=talks.id, to_status_id=won.id)
    session.commit()

    assert brand.status_id == won.id
    assert entry.moved_by == user.id
    history = session.query(BrandHistory).filter_by(brand_id=brand.id).order_by(BrandHistory.id).all()
    assert [(h.from_status_id, h.to_status_id) for h in history] == [
        (None, lead.id), (lead.id, talks.id), (talks.id, won.id),
    ]
    assert get_brand_history(session, brand.id)[0].to_status_id == won.id


def test_move_with_stale_from_status_conflicts(session, statuses):
    lead, talks, won = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id)
    session.commit()
    with pytest.raises(Conflict):
        move_brand(session, brand.id, from_status_id=talks.id, to_status_id=won.id)
    session.rollback()
    assert session.get(Brand, brand.id).status_id == lead.id
    assert session.query(BrandHistory).count() == 1


def test_move_to_same_status_is_noop(session, statuses):
    lead, _, _ = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id)
    session.commit()
    assert move_brand(session, brand.id, from_status_id=lead.id, to_status_id=lead.id) is None
    assert session.query(BrandHistory).count() == 1


def test_update_routes_status_change_through_move(session, statuses):
    lead, talks, _ = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id)
    session.commit()
    update_brand(session, brand.id, responsible="Carla", status_id=talks.id)
    session.commit()
    assert brand.responsible == "Carla"
    assert brand.status_id == talks.id
    assert session.query(BrandHistory).count() == 2


def test_delete_status_in_use_conflicts(session, statuses):
    lead, _, _ = statuses
    create_brand(session, name="Glow", status_id=lead.id)
    session.commit()
    with pytest.raises(Conflict):
        delete_brand_status(session, lead.id)
    session.rollback()
    assert len(list_brand_statuses(session)) == 3


def test_delete_unused_status(session, statuses):
    _, _, won = statuses
    delete_brand_status(session, won.id)
    session.commit()
    assert [s.name for s in list_brand_statuses(session)] == ["Prospecção", "Em negociação"]


def test_delete_status_after_brands_moved_out(session, statuses):
    lead, talks, _ = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id)
    move_brand(session, brand.id, from_status_id=lead.id, to_status_id=talks.id)
    session.commit()

    delete_brand_status(session, lead.id)
    session.commit()

    assert [s.name for s in list_brand_statuses(session)] == ["Em negociação", "Fechado"]
    history = get_brand_history(session, brand.id)
    assert [(h.from_status_id, h.to_status_id) for h in history] == [(None, talks.id), (None, None)]
    assert [(h.from_status_name, h.to_status_name) for h in history] == [
        ("Prospecção", "Em negociação"),
        (None, "Prospecção"),
    ]


def test_delete_brand_removes_history(session, statuses):
    lead, talks, _ = statuses
    brand = create_brand(session, name="Glow", status_id=lead.id)
    move_brand(session, brand.id, from_status_id=lead.id, to_status_id=talks.id)
    session.commit()
    delete_brand(session, brand.id)
    session.commit()
    assert list_brands(session) == []
    assert session.query(BrandHistory).count() == 0


def test_list_brands_by_status(session, statuses):
    lead, talks, _ = statuses
    a = create_brand(session, name="A", status_id=lead.id)
    b = create_brand(session, name="B", status_id=lead.id)
    create_brand(session, name="C", status_id=talks.id)
    session.commit()
    assert [x.id for x in list_brands(session, status_id=lead.id)] == [a.id, b.id]
    assert (a.order, b.order) == (1, 2)
