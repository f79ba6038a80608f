from app.services.brands import create_brand, create_brand_status
from app.services.dashboard import dashboard_summary
from app.services.feedback import complete_session, start_session
from app.services.questions import create_question


def test_summary_merges_every_aggregate(session, category, product):
    create_question(session, category_id=category.id, question_text="Geral", question_type="text")
    create_question(
        session, category_id=category.id, product_id=product.id,
        question_text="Produto", question_type="boolean", is_active=False,
    )
    fs = start_session(session)
    start_session(session)
    complete_session(session, fs.id)
    lead = create_brand_status(session, name="Prospecção")
    empty = create_brand_status(session, name="Fechado")
    create_brand(session, name="A", status_id=lead.id, value="10.25")
    create_brand(session, name="B", status_id=lead.id, value=5)
    session.commit()

    data = dashboard_summary(session)
    assert data["sessions"] == {"total": 2, "completed": 1, "in_progress": 1, "abandoned": 0}
    assert data["questions"] == {"total": 2, "active": 1, "general": 1, "product": 1}

    by_status = {row["id"]: row for row in data["brands"]["by_status"]}
    assert by_status[lead.id]["brand_count"] == 2
    assert by_status[lead.id]["total_value"] == 15.25
    assert by_status[empty.id]["brand_count"] == 0
    assert data["brands"]["total"] == 2
    assert data["brands"]["total_value"] == 15.25
