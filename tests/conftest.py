from types import SimpleNamespace

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from formbuilder import models
from formbuilder.database import Base, get_db
from formbuilder.main import app


@pytest.fixture
def engine():
    engine = create_engine("sqlite://", connect_args={"check_same_thread": False}, poolclass=StaticPool)
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def session_factory(engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=engine)


@pytest.fixture
def db_session(session_factory):
    db = session_factory()
    try:
        yield db
    finally:
        db.close()


@pytest.fixture
def client(session_factory):
    def override_get_db():
        db = session_factory()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestClient(app, raise_server_exceptions=False)
    app.dependency_overrides.clear()


@pytest.fixture
def seeded(db_session):
    """a@b.com owns a flash form (en + es) and a custom form (en only)."""
    owner = models.User(email="a@b.com")
    other = models.User(email="other@b.com")
    db_session.add_all([owner, other])
    db_session.flush()

    flash = models.Form(user_id=owner.id, category="flash")
    custom = models.Form(user_id=owner.id, category="custom")
    empty = models.Form(user_id=other.id, category="touchup")
    db_session.add_all([flash, custom, empty])
    db_session.flush()

    flash_en = models.FormTranslation(form_id=flash.id, language="en", title="Flash")
    flash_es = models.FormTranslation(form_id=flash.id, language="es", title="Flash ES")
    custom_en = models.FormTranslation(form_id=custom.id, language="en", title="Custom")
    empty_en = models.FormTranslation(form_id=empty.id, language="en", title="Touch-up")
    db_session.add_all([flash_en, flash_es, custom_en, empty_en])
    db_session.commit()

    return SimpleNamespace(
        username=owner.email,
        flash_form_id=flash.id,
        custom_form_id=custom.id,
        empty_form_id=empty.id,
        flash_en_id=flash_en.id,
        flash_es_id=flash_es.id,
        custom_en_id=custom_en.id,
    )


def question_payload(text="Q1?", form_type="flash", language="en", options=None, **question):
    body = {
        "username": "a@b.com",
        "form_type": form_type,
        "form_language": language,
        "question": {"description": "d", "question_type": "text", "question_text": text, **question},
    }
    if options is not None:
        body["options"] = options
    return body


@pytest.fixture
def create_question(client, seeded):
    def _create(*args, **kwargs):
        response = client.post("/api/createQuestion", json=question_payload(*args, **kwargs))
        assert response.status_code == 201, response.json()
        return response.json()["body"]
    return _create
