import os
# Ensure the app factory picks the Testing config & SQLite memory DB
os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("TEST_DATABASE_URL", "sqlite:///:memory:")

import pytest
from app import create_app
from app.extensions import db
from app.models import Box, Customer, Edition, Product, QuestionCategory


@pytest.fixture(scope="session")
def app():
    app = create_app()
    app.config.update(
        TESTING=True,
        WTF_CSRF_ENABLED=False,
        LOGIN_DISABLED=True,
    )
    with app.app_context():
        db.create_all()
    yield app
    with app.app_context():
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


@pytest.fixture()
def session(app):
    """db.session inside an app context; tests call services with it directly."""
    with app.app_context():
        yield db.session


@pytest.fixture(autouse=True)
def _db_clean(app):
    # Clean BEFORE each test
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()
    yield
    # And AFTER each test (keeps state hermetic even if a test fails mid-transaction)
    with app.app_context():
        db.session.rollback()
        for tbl in reversed(db.metadata.sorted_tables):
            db.session.execute(tbl.delete())
        db.session.commit()


@pytest.fixture()
def category(session):
    cat = QuestionCategory(name="Qualidade")
    session.add(cat)
    session.commit()
    return cat


@pytest.fixture()
def product(session):
    p = Product(name="Sérum Vitamina C", brand="Glow")
    session.add(p)
    session.commit()
    return p


@pytest.fixture()
def catalog(session):
    customer = Customer(name="Ana Souza", email="ana@example.com")
    box = Box(theme="Verão Tropical")
    edition = Edition(edition="Janeiro 2026")
    session.add_all([customer, box, edition])
    session.commit()
    return {"customer": customer, "box": box, "edition": edition}
