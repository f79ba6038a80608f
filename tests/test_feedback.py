import pytest

from app.models import FeedbackAnswer, Product
from app.services.errors import Conflict, NotFound, ValidationError
from app.services.feedback import (
    abandon_session,
    complete_session,
    get_session,
    get_session_answers,
    list_sessions,
    session_stats,
    start_session,
    submit_answer,
)
from app.services.questions import create_question


@pytest.fixture()
def questions(session, category, product):
    rating = create_question(
        session, category_id=category.id, product_id=product.id,
        question_text="Nota do produto", question_type="emoji_rating",
    )
    general = create_question(
        session, category_id=category.id, question_text="Gostou da experiência?", question_type="boolean",
    )
    comment = create_question(
        session, category_id=category.id, question_text="Comentários", question_type="text",
    )
    session.commit()
    return {"rating": rating, "general": general, "comment": comment}


def test_start_session_defaults(session, catalog):
    fs = start_session(session, customer_id=catalog["customer"].id, box_id=catalog["box"].id)
    session.commit()
    assert fs.session_status == "in_progress"
    assert fs.completed_at is None
    assert fs.to_dict()["customer"]["name"] == "Ana Souza"


def test_start_session_unknown_reference(session):
    with pytest.raises(NotFound):
        start_session(session, box_id=77)


def test_start_session_rejects_bad_email(session):
    with pytest.raises(ValidationError):
        start_session(session, user_email="not-an-email")


def test_submit_snapshots_question_and_derives_group(session, questions, product):
    fs = start_session(session, user_email="ana@example.com")
    rating = submit_answer(session, fs.id, question_id=questions["rating"].id, answer="4")
    general = submit_answer(session, fs.id, question_id=questions["general"].id, answer="sim")
    comment = submit_answer(session, fs.id, question_id=questions["comment"].id, answer="Chegou rápido", delivery=True)
    session.commit()

    assert (rating.feedback_group, rating.product_id, rating.answer) == ("product", product.id, 4)
    assert (general.feedback_group, general.answer) == ("experimentai", True)
    assert comment.feedback_group == "delivery"
    assert rating.question_text == "Nota do produto"
    assert rating.question_type == "emoji_rating"


def test_resubmitting_updates_in_place(session, questions):
    fs = start_session(session)
    submit_answer(session, fs.id, question_id=questions["rating"].id, answer=2)
    submit_answer(session, fs.id, question_id=questions["rating"].id, answer=5)
    session.commit()
    rows = session.query(FeedbackAnswer).all()
    assert len(rows) == 1
    assert rows[0].answer == 5


def test_answer_that_does_not_fit_is_rejected(session, questions):
    fs = start_session(session)
    with pytest.raises(ValidationError) as exc:
        submit_answer(session, fs.id, question_id=questions["rating"].id, answer=9)
    assert "answer" in exc.value.errors


@pytest.fixture()
def color_question(session, category):
    q = create_question(
        session, category_id=category.id, question_text="Cor preferida?", question_type="multiple_choice",
        options=[{"option_text": "Azul"}, {"option_text": "Verde"}],
    )
    session.commit()
    return q


def test_choice_answer_must_be_an_option(session, color_question):
    fs = start_session(session)
    with pytest.raises(ValidationError) as exc:
        submit_answer(session, fs.id, question_id=color_question.id, answer="Roxo inexistente")
    assert "answer" in exc.value.errors
    assert session.query(FeedbackAnswer).count() == 0


def test_choice_answer_by_label_or_id(session, color_question):
    fs = start_session(session)
    by_label = submit_answer(session, fs.id, question_id=color_question.id, answer=" azul ")
    assert by_label.answer == "Azul"
    verde = color_question.options[1]
    by_id = submit_answer(session, fs.id, question_id=color_question.id, answer=verde.id)
    session.commit()
    assert by_id.answer == "Verde"
    assert session.query(FeedbackAnswer).count() == 1


def test_required_question_needs_an_answer(session, category):
    q = create_question(
        session, category_id=category.id, question_text="Obrigatória", question_type="text", is_required=True
    )
    fs = start_session(session)
    session.commit()
    with pytest.raises(ValidationError):
        submit_answer(session, fs.id, question_id=q.id, answer="  ")


def test_complete_sets_completed_at(session):
    fs = start_session(session)
    complete_session(session, fs.id, completion_badge="Expert", final_message="Obrigado!")
    session.commit()
    fs = get_session(session, fs.id)
    assert fs.session_status == "completed"
    assert fs.completed_at is not None
    assert fs.completion_badge == "Expert"


def test_abandon_does_not_set_completed_at(session):
    fs = start_session(session)
    abandon_session(session, fs.id)
    session.commit()
    assert fs.session_status == "abandoned"
    assert fs.completed_at is None


@pytest.mark.parametrize("finish", [complete_session, abandon_session])
def test_terminal_sessions_accept_nothing(session, questions, finish):
    fs = start_session(session)
    finish(session, fs.id)
    session.commit()

    with pytest.raises(Conflict):
        submit_answer(session, fs.id, question_id=questions["general"].id, answer=True)
    with pytest.raises(Conflict):
        complete_session(session, fs.id)
    with pytest.raises(Conflict):
        abandon_session(session, fs.id)


def test_answers_are_grouped_exactly_once(session, questions, product):
    other = Product(name="Máscara Capilar")
    session.add(other)
    session.flush()
    fs = start_session(session)
    submit_answer(session, fs.id, question_id=questions["rating"].id, answer=5)
    submit_answer(session, fs.id, question_id=questions["general"].id, answer=False, product_id=other.id)
    submit_answer(session, fs.id, question_id=questions["comment"].id, answer="Tudo certo")
    session.commit()

    data = get_session_answers(session, fs.id)
    products = data["productFeedbacks"]
    assert sorted(g["product_id"] for g in products) == sorted([product.id, other.id])
    assert {g["product_name"] for g in products} == {product.name, "Máscara Capilar"}
    assert len(data["experimentaiFeedbacks"]) == 1
    assert data["deliveryFeedbacks"] == []

    seen = [a["id"] for g in products for a in g["answers"]]
    seen += [a["id"] for g in data["experimentaiFeedbacks"] for a in g["answers"]]
    total = session.query(FeedbackAnswer).count()
    assert sorted(seen) == sorted(r.id for r in session.query(FeedbackAnswer).all())
    assert len(seen) == total == 3

    rating = next(a for g in products for a in g["answers"] if a["question_type"] == "emoji_rating")
    assert rating["render"]["display"] == "5/5"


def test_list_sessions_search_filter_and_paging(session, catalog):
    for i in range(12):
        start_session(session, user_email=f"user{i}@example.com")
    mine = start_session(session, customer_id=catalog["customer"].id, box_id=catalog["box"].id)
    complete_session(session, mine.id)
    session.commit()

    page = list_sessions(session, page=1, per_page=10)
    assert page.total == 13 and len(page.items) == 10 and page.pages == 2
    assert len(list_sessions(session, page=2, per_page=10).items) == 3

    assert [s.id for s in list_sessions(session, q="verão").items] == [mine.id]
    assert [s.id for s in list_sessions(session, q="ANA SOUZA").items] == [mine.id]
    assert list_sessions(session, status="completed").total == 1

    with pytest.raises(ValidationError):
        list_sessions(session, status="paused")


def test_session_stats(session):
    a = start_session(session)
    b = start_session(session)
    start_session(session)
    complete_session(session, a.id)
    abandon_session(session, b.id)
    session.commit()
    assert session_stats(session) == {"total": 3, "completed": 1, "in_progress": 1, "abandoned": 1}
