import pytest

from app.services.errors import NotFound, ValidationError
from app.services.questions import (
    add_option,
    create_question,
    list_options,
    remove_option,
    update_option,
)


@pytest.fixture()
def choice_question(session, category):
    q = create_question(
        session,
        category_id=category.id,
        question_text="Qual fragrância prefere?",
        question_type="multiple_choice",
        options=[{"option_text": "Floral"}, {"option_text": "Cítrica"}],
    )
    session.commit()
    return q


def test_add_appends_at_end(session, choice_question):
    opt = add_option(session, choice_question.id, option_text="Amadeirada")
    session.commit()
    assert opt.order_index == 3
    assert int(opt.option_value) == 3
    assert [o.option_text for o in list_options(session, choice_question.id)] == [
        "Floral", "Cítrica", "Amadeirada",
    ]


def test_add_with_explicit_position_and_value(session, choice_question):
    opt = add_option(session, choice_question.id, option_text="Doce", option_value="2.5", order_index=1)
    session.commit()
    assert float(opt.option_value) == 2.5
    assert opt.order_index == 1


def test_add_to_text_question_is_rejected(session, category):
    q = create_question(session, category_id=category.id, question_text="Comentários", question_type="text")
    session.commit()
    with pytest.raises(ValidationError):
        add_option(session, q.id, option_text="A")


def test_add_requires_text(session, choice_question):
    with pytest.raises(ValidationError) as exc:
        add_option(session, choice_question.id, option_text="  ", option_value="abc")
    assert set(exc.value.errors) == {"option_text", "option_value"}


def test_update_option(session, choice_question):
    opt = choice_question.options[0]
    update_option(session, opt.id, option_text="Floral suave", option_value=9)
    session.commit()
    assert opt.option_text == "Floral suave"
    assert int(opt.option_value) == 9


def test_update_unknown_option(session):
    with pytest.raises(NotFound):
        update_option(session, 12345, option_text="x")


def test_remove_returns_refreshed_list(session, choice_question):
    first = choice_question.options[0]
    remaining = remove_option(session, first.id)
    session.commit()
    assert [o.option_text for o in remaining] == ["Cítrica"]
    assert [o.option_text for o in choice_question.options] == ["Cítrica"]


def test_list_options_unknown_question(session):
    with pytest.raises(NotFound):
        list_options(session, 999)


def test_remove_last_choice_option_is_rejected(session, choice_question):
    first, last = choice_question.options
    remove_option(session, first.id)
    session.commit()
    with pytest.raises(ValidationError) as exc:
        remove_option(session, last.id)
    assert "options" in exc.value.errors
    session.rollback()
    assert [o.option_text for o in list_options(session, choice_question.id)] == ["Cítrica"]


def test_remove_last_boolean_option_is_allowed(session, category):
    q = create_question(session, category_id=category.id, question_text="Recomendaria?", question_type="boolean")
    session.commit()
    sim, nao = q.options
    remove_option(session, sim.id)
    assert remove_option(session, nao.id) == []
