from formbuilder import models


def test_create_and_read_back_a_response(client, create_question, seeded):
    name = create_question("Name?")
    colors = create_question("Colors?", question_type="checkbox")
    photo = create_question("Photo?", question_type="file")
    skipped = create_question("Anything else?", question_type="long_text")

    response = client.post(
        "/api/createResponse",
        json={
            "form_id": seeded.flash_form_id,
            "answers": [
                {"question_id": colors, "selected_options": ["Red", "Blue"]},
                {"question_id": name, "answer_text": "Ana"},
                {"question_id": photo, "file_url": "https://cdn.example/p.png"},
            ],
        },
    )
    assert response.status_code == 201
    response_id = response.json()["response_id"]

    detail = client.get("/api/getResponse", params={"response_id": response_id})
    assert detail.status_code == 200
    data = detail.json()
    assert data["response_id"] == response_id
    assert data["form_id"] == seeded.flash_form_id
    assert data["submitted_at"]
    assert data["questions"] == [
        {"question_id": name, "question_text": "Name?", "answer_text": "Ana"},
        {"question_id": colors, "question_text": "Colors?", "selected_options": ["Red", "Blue"]},
        {"question_id": photo, "question_text": "Photo?", "file_url": "https://cdn.example/p.png"},
        {"question_id": skipped, "question_text": "Anything else?"},
    ]


def test_question_from_another_form_rolls_everything_back(client, create_question, seeded, db_session):
    own = create_question("Own?")
    foreign = create_question("Foreign?", form_type="custom")

    response = client.post(
        "/api/createResponse",
        json={
            "form_id": seeded.flash_form_id,
            "answers": [
                {"question_id": own, "answer_text": "yes"},
                {"question_id": foreign, "answer_text": "no"},
            ],
        },
    )
    assert response.status_code == 404
    assert response.json()["body"]["error"] == f"Question {foreign} not found or does not belong to the form"
    assert db_session.query(models.Response).count() == 0
    assert db_session.query(models.Answer).count() == 0


def test_unknown_form(client, seeded, db_session):
    response = client.post("/api/createResponse", json={"form_id": 9999, "answers": []})
    assert response.status_code == 404
    assert response.json()["body"]["error"] == "Form not found"
    assert db_session.query(models.Response).count() == 0


def test_response_without_answers(client, seeded):
    response = client.post("/api/createResponse", json={"form_id": seeded.flash_form_id, "answers": []})
    assert response.status_code == 201


def test_invalid_response_payloads(client, create_question, seeded):
    question_id = create_question("Q?")
    invalid = [
        {"form_id": seeded.flash_form_id},
        {"answers": []},
        {"form_id": seeded.flash_form_id, "answers": [{"answer_text": "no question"}]},
        {
            "form_id": seeded.flash_form_id,
            "answers": [{"question_id": question_id}, {"question_id": question_id}],
        },
        {
            "form_id": seeded.flash_form_id,
            "answers": [{"question_id": question_id, "selected_options": ["a,b"]}],
        },
    ]
    for body in invalid:
        response = client.post("/api/createResponse", json=body)
        assert response.status_code == 400, body
        assert "error" in response.json()["body"]


def test_malformed_json_is_a_bad_request(client, seeded):
    response = client.post(
        "/api/createResponse", content=b"{not json", headers={"Content-Type": "application/json"}
    )
    assert response.status_code == 400


def test_get_response_requires_id(client, seeded):
    response = client.get("/api/getResponse")
    assert response.status_code == 400
    assert response.json()["body"]["error"] == "response_id is required"


def test_get_unknown_response(client, seeded):
    response = client.get("/api/getResponse", params={"response_id": 777})
    assert response.status_code == 404
    assert response.json()["body"]["error"] == "Response not found"


def test_response_to_form_without_questions_is_empty_not_missing(client, seeded):
    created = client.post("/api/createResponse", json={"form_id": seeded.empty_form_id, "answers": []})
    response_id = created.json()["response_id"]

    detail = client.get("/api/getResponse", params={"response_id": response_id})
    assert detail.status_code == 200
    assert detail.json()["questions"] == []


def test_multilingual_form_lists_each_question_once(client, create_question, seeded):
    question_id = create_question("Name?")
    client.post(
        "/api/addQuestionTranslation",
        json={"question_id": question_id, "language": "es", "question_text": "¿Nombre?", "form_type": "flash"},
    )
    created = client.post(
        "/api/createResponse",
        json={"form_id": seeded.flash_form_id, "answers": [{"question_id": question_id, "answer_text": "Ana"}]},
    )
    response_id = created.json()["response_id"]

    questions = client.get("/api/getResponse", params={"response_id": response_id}).json()["questions"]
    assert questions == [{"question_id": question_id, "question_text": "Name?", "answer_text": "Ana"}]

    spanish = client.get("/api/getResponse", params={"response_id": response_id, "language": "es"}).json()
    assert spanish["questions"] == [{"question_id": question_id, "question_text": "¿Nombre?", "answer_text": "Ana"}]
