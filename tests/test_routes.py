from unittest.mock import patch

from sqlalchemy.exc import OperationalError

from app.models import Question


def _create_question(client, category_id, **kw):
    body = {"category_id": category_id, "question_text": "Como foi?", "question_type": "emoji_rating"}
    body.update(kw)
    return client.post("/admin/questions", json=body)


def test_healthz(client):
    resp = client.get("/healthz")
    assert resp.status_code == 200
    assert resp.get_json() == {"status": "ok"}


def test_category_crud_envelopes(client):
    resp = client.post("/admin/categories", json={"name": "Embalagem"})
    assert resp.status_code == 201
    body = resp.get_json()
    assert body["ok"] is True
    cat_id = body["category"]["id"]

    resp = client.put(f"/admin/categories/{cat_id}", json={"description": "Caixa e papel"})
    assert resp.get_json()["category"]["description"] == "Caixa e papel"

    listed = client.get("/admin/categories").get_json()
    assert [c["name"] for c in listed["items"]] == ["Embalagem"]

    resp = client.delete(f"/admin/categories/{cat_id}")
    assert resp.status_code == 200 and resp.get_json() == {"ok": True, "deleted": cat_id}


def test_validation_error_is_400_with_field_errors(client, category):
    resp = _create_question(client, category.id, question_type="multiple_choice")
    assert resp.status_code == 400
    body = resp.get_json()
    assert body["ok"] is False
    assert "add at least one option" in body["errors"]["options"]


def test_unknown_ids_are_404(client):
    assert client.get("/admin/questions/999").status_code == 404
    resp = client.put("/admin/options/999", json={"option_text": "x"})
    assert resp.status_code == 404
    assert resp.get_json()["error"] == "not_found"
    assert client.get("/admin/nowhere").get_json()["error"] == "not_found"


def test_category_in_use_is_409(client, category):
    _create_question(client, category.id)
    resp = client.delete(f"/admin/categories/{category.id}")
    assert resp.status_code == 409
    body = resp.get_json()
    assert body == {"ok": False, "error": "conflict", "message": body["message"]}


def test_question_lifecycle(client, category, product):
    resp = _create_question(client, category.id, product_id=product.id)
    assert resp.status_code == 201
    question = resp.get_json()["question"]
    assert len(question["options"]) == 5

    resp = client.put(f"/admin/questions/{question['id']}", json={"question_type": "text"})
    assert resp.status_code == 200
    assert resp.get_json()["question"]["options"] == []

    listed = client.get(f"/admin/questions?product_id={product.id}").get_json()["items"]
    assert [q["id"] for q in listed] == [question["id"]]
    assert client.get("/admin/questions?scope=general").get_json()["items"] == []

    resp = client.delete(f"/admin/questions/{question['id']}")
    assert resp.get_json() == {"ok": True, "deleted": question["id"]}


def test_include_inactive_filter(client, category):
    _create_question(client, category.id, question_text="Ativa")
    _create_question(client, category.id, question_text="Inativa", is_active=False)
    all_rows = client.get("/admin/questions").get_json()["items"]
    active = client.get("/admin/questions?include_inactive=0").get_json()["items"]
    assert len(all_rows) == 2
    assert [q["question_text"] for q in active] == ["Ativa"]


def test_move_endpoint(client, category):
    a = _create_question(client, category.id, question_text="A", order_index=1).get_json()["question"]
    b = _create_question(client, category.id, question_text="B", order_index=2).get_json()["question"]

    resp = client.post(f"/admin/questions/{b['id']}/move", json={"direction": "up"})
    body = resp.get_json()
    assert body["ok"] is True and body["moved"] is True
    assert body["question"]["order_index"] == 1
    assert body["swapped_with"]["id"] == a["id"]

    resp = client.post(f"/admin/questions/{b['id']}/move", json={"direction": "up"})
    assert resp.get_json()["moved"] is False

    resp = client.post(f"/admin/questions/{b['id']}/move", json={"direction": "sideways"})
    assert resp.status_code == 400


def test_option_endpoints(client, category):
    q = _create_question(client, category.id, question_type="boolean").get_json()["question"]
    resp = client.post(f"/admin/questions/{q['id']}/options", json={"option_text": "Talvez", "option_value": 0.5})
    assert resp.status_code == 201
    opt = resp.get_json()["option"]
    assert opt["order_index"] == 3 and opt["option_value"] == 0.5

    resp = client.delete(f"/admin/options/{opt['id']}")
    assert [o["option_text"] for o in resp.get_json()["options"]] == ["Sim", "Não"]


def test_feedback_endpoints(client, category):
    q = _create_question(client, category.id, question_type="boolean").get_json()["question"]
    fs = client.post("/admin/feedback/sessions", json={"user_email": "bia@example.com"}).get_json()["session"]

    resp = client.post(f"/admin/feedback/sessions/{fs['id']}/answers", json={"question_id": q["id"], "answer": "sim"})
    assert resp.status_code == 200 and resp.get_json()["answer"]["answer"] is True

    resp = client.post(f"/admin/feedback/sessions/{fs['id']}/complete", json={"final_message": "Valeu"})
    assert resp.get_json()["session"]["session_status"] == "completed"

    resp = client.post(f"/admin/feedback/sessions/{fs['id']}/answers", json={"question_id": q["id"], "answer": "não"})
    assert resp.status_code == 409

    listing = client.get("/admin/feedback/sessions?q=bia").get_json()
    assert listing["pagination"]["total"] == 1
    assert listing["stats"]["completed"] == 1

    grouped = client.get(f"/admin/feedback/sessions/{fs['id']}/answers").get_json()
    assert grouped["experimentaiFeedbacks"][0]["answers"][0]["render"]["display"] == "Sim"
    assert client.get(f"/admin/feedback/sessions/{fs['id']}").get_json()["session"]["id"] == fs["id"]


def test_brand_endpoints(client):
    lead = client.post("/admin/brand-statuses", json={"name": "Prospecção"}).get_json()["status"]
    won = client.post("/admin/brand-statuses", json={"name": "Fechado", "color": "#10B981"}).get_json()["status"]
    brand = client.post("/admin/brands", json={"name": "Glow", "status_id": lead["id"], "value": 100}).get_json()["brand"]

    resp = client.post(f"/admin/brands/{brand['id']}/move", json={"from_status_id": won["id"], "to_status_id": won["id"]})
    assert resp.status_code == 409

    resp = client.post(f"/admin/brands/{brand['id']}/move", json={"from_status_id": lead["id"], "to_status_id": won["id"]})
    body = resp.get_json()
    assert body["moved"] is True and body["brand"]["status_id"] == won["id"]

    history = client.get(f"/admin/brands/{brand['id']}/history").get_json()["items"]
    assert [(h["from_status_id"], h["to_status_id"]) for h in history] == [(lead["id"], won["id"]), (None, lead["id"])]

    assert client.delete(f"/admin/brand-statuses/{won['id']}").status_code == 409
    dashboard = client.get("/admin/dashboard").get_json()
    assert dashboard["brands"]["total"] == 1
    assert dashboard["brands"]["total_value"] == 100.0


def test_database_outage_is_503(client, category):
    boom = OperationalError("SELECT 1", {}, Exception("server closed the connection"))
    with patch("app.blueprints.admin.questions.svc_list_questions", side_effect=boom):
        resp = client.get("/admin/questions")
    assert resp.status_code == 503
    assert resp.get_json()["error"] == "remote_unavailable"


def test_failed_write_leaves_nothing_behind(client, category, session):
    _create_question(client, category.id, question_type="multiple_choice", options=[{"option_text": ""}])
    assert session.query(Question).count() == 0
