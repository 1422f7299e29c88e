import logging
from typing import Optional

from sqlalchemy import and_, func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from . import models, schemas
from .aggregate import group_rows
from .database import transaction
from .errors import ConflictError, InternalError, NotFoundError

logger = logging.getLogger(__name__)


def next_position(db: Session, column, scope_column, scope_value) -> int:
    """max(position) + 1 among the siblings sharing one parent."""
    current = db.query(func.coalesce(func.max(column), 0)).filter(scope_column == scope_value).scalar()
    return (current or 0) + 1


def _inserted_id(db: Session, row, what: str) -> int:
    db.add(row)
    db.flush()
    if row.id is None:
        raise InternalError(f"Failed to insert {what}")
    return row.id


# Questions

def create_question(db: Session, payload: schemas.CreateQuestionRequest) -> int:
    question = payload.question
    with transaction(db):
        user = db.query(models.User.id).filter(models.User.email == payload.username).first()
        if user is None:
            raise NotFoundError("User not found")

        form = (
            db.query(models.Form.id)
            .filter(models.Form.user_id == user.id, models.Form.category == payload.form_type)
            .order_by(models.Form.id)
            .first()
        )
        if form is None:
            raise NotFoundError("Form not found for given user and form type")

        # Locking the form translation serializes position assignment per form.
        form_translation = (
            db.query(models.FormTranslation.id)
            .filter(
                models.FormTranslation.form_id == form.id,
                models.FormTranslation.language == payload.form_language,
            )
            .with_for_update()
            .first()
        )
        if form_translation is None:
            raise NotFoundError("Form translation not found for the provided language")

        position = next_position(
            db,
            models.FormQuestionTranslation.position,
            models.FormQuestionTranslation.form_translation_id,
            form_translation.id,
        )
        question_id = _inserted_id(
            db,
            models.Question(
                description=question.description,
                question_type=question.question_type.value,
                required=question.required,
                position=position,
                image_urls=question.image_urls,
            ),
            "question",
        )
        question_translation_id = _inserted_id(
            db,
            models.QuestionTranslation(
                question_id=question_id,
                language=payload.form_language,
                question_text=question.question_text,
            ),
            "question translation",
        )

        if payload.options:
            option_position = next_position(
                db, models.QuestionOption.position, models.QuestionOption.question_id, question_id
            )
            for offset, option in enumerate(payload.options):
                option_id = _inserted_id(
                    db,
                    models.QuestionOption(question_id=question_id, position=option_position + offset),
                    "question option",
                )
                db.add(
                    models.QuestionOptionTranslation(
                        option_id=option_id,
                        language=option.language,
                        option_text=option.description,
                    )
                )

        db.add(
            models.FormQuestionTranslation(
                form_translation_id=form_translation.id,
                question_translation_id=question_translation_id,
                position=position,
            )
        )

    logger.info("Created question %s at position %s in form translation %s", question_id, position, form_translation.id)
    return question_id


def edit_question(db: Session, payload: schemas.EditQuestionRequest) -> None:
    with transaction(db):
        question = db.query(models.Question).filter(models.Question.id == payload.question_id).first()
        if question is None:
            raise NotFoundError("Question not found")

        values = {column: value for column, present, value in payload.changes() if present}

        if values:
            db.query(models.Question).filter(models.Question.id == question.id).update(
                values, synchronize_session=False
            )
        if "position" in values:
            translation_ids = [
                row.id
                for row in db.query(models.QuestionTranslation.id).filter(
                    models.QuestionTranslation.question_id == question.id
                )
            ]
            db.query(models.FormQuestionTranslation).filter(
                models.FormQuestionTranslation.question_translation_id.in_(translation_ids)
            ).update({"position": values["position"]}, synchronize_session=False)

        for translation in payload.translations or []:
            updated = (
                db.query(models.QuestionTranslation)
                .filter(
                    models.QuestionTranslation.id == translation.translation_id,
                    models.QuestionTranslation.question_id == question.id,
                )
                .update({"question_text": translation.question_text}, synchronize_session=False)
            )
            if updated == 0:
                raise NotFoundError(
                    f"Translation {translation.translation_id} not found for question {question.id}"
                )

    logger.info("Updated question %s (%s)", payload.question_id, ", ".join(values) or "no field changes")


def add_question_translation(db: Session, payload: schemas.AddQuestionTranslationRequest) -> int:
    with transaction(db):
        question = (
            db.query(models.Question.id, models.Question.position)
            .filter(models.Question.id == payload.question_id)
            .with_for_update()
            .first()
        )
        if question is None:
            raise NotFoundError("Question not found")

        existing = (
            db.query(models.QuestionTranslation.id)
            .filter(
                models.QuestionTranslation.question_id == question.id,
                models.QuestionTranslation.language == payload.language,
            )
            .first()
        )
        if existing is not None:
            raise ConflictError("A translation for this language already exists")

        linked_form_ids = [
            row.form_id
            for row in db.query(models.FormTranslation.form_id)
            .join(
                models.FormQuestionTranslation,
                models.FormQuestionTranslation.form_translation_id == models.FormTranslation.id,
            )
            .join(
                models.QuestionTranslation,
                models.QuestionTranslation.id == models.FormQuestionTranslation.question_translation_id,
            )
            .filter(models.QuestionTranslation.question_id == question.id)
            .distinct()
        ]

        try:
            question_translation_id = _inserted_id(
                db,
                models.QuestionTranslation(
                    question_id=question.id,
                    language=payload.language,
                    question_text=payload.question_text,
                ),
                "question translation",
            )
        except IntegrityError:
            raise ConflictError("A translation for this language already exists")

        for option in payload.options or []:
            owned = (
                db.query(models.QuestionOption.id)
                .filter(
                    models.QuestionOption.id == option.option_id,
                    models.QuestionOption.question_id == question.id,
                )
                .first()
            )
            if owned is None:
                raise NotFoundError(
                    f"Option with ID {option.option_id} not found or does not belong to the question"
                )
            duplicate = (
                db.query(models.QuestionOptionTranslation.id)
                .filter(
                    models.QuestionOptionTranslation.option_id == option.option_id,
                    models.QuestionOptionTranslation.language == payload.language,
                )
                .first()
            )
            if duplicate is not None:
                raise ConflictError(
                    f"A translation for option {option.option_id} in language {payload.language} already exists"
                )
            db.add(
                models.QuestionOptionTranslation(
                    option_id=option.option_id,
                    language=payload.language,
                    option_text=option.option_text,
                )
            )
        try:
            db.flush()
        except IntegrityError:
            raise ConflictError(f"An option translation in language {payload.language} already exists")

        form_translation = (
            db.query(models.FormTranslation.id)
            .join(models.Form, models.Form.id == models.FormTranslation.form_id)
            .filter(
                models.Form.category == payload.form_type,
                models.FormTranslation.language == payload.language,
                models.FormTranslation.form_id.in_(linked_form_ids),
            )
            .order_by(models.FormTranslation.id)
            .with_for_update()
            .first()
        )
        if form_translation is not None:
            # every translation of a question sits at the question's own position
            db.add(
                models.FormQuestionTranslation(
                    form_translation_id=form_translation.id,
                    question_translation_id=question_translation_id,
                    position=question.position,
                )
            )
        else:
            logger.info("No %s form translation in %s holds question %s; translation left unlinked",
                        payload.form_type, payload.language, question.id)

    logger.info("Added %s translation %s to question %s", payload.language, question_translation_id, question.id)
    return question_translation_id


def get_all_questions(db: Session, username: str, language: str, category: str) -> schemas.FormQuestions:
    user = db.query(models.User.id).filter(models.User.email == username).first()
    if user is None:
        raise NotFoundError("User not found")

    rows = (
        db.query(
            models.Question.id.label("question_id"),
            models.Question.description,
            models.Question.question_type,
            models.Question.required,
            models.Question.image_urls,
            models.QuestionTranslation.question_text,
            models.QuestionOption.id.label("option_id"),
            models.QuestionOptionTranslation.option_text,
            models.QuestionOption.position.label("option_position"),
            models.FormQuestionTranslation.position.label("question_position"),
            models.Form.id.label("form_id"),
        )
        .select_from(models.User)
        .join(models.Form, models.Form.user_id == models.User.id)
        .join(models.FormTranslation, models.FormTranslation.form_id == models.Form.id)
        .join(
            models.FormQuestionTranslation,
            models.FormQuestionTranslation.form_translation_id == models.FormTranslation.id,
        )
        .join(
            models.QuestionTranslation,
            models.QuestionTranslation.id == models.FormQuestionTranslation.question_translation_id,
        )
        .join(models.Question, models.Question.id == models.QuestionTranslation.question_id)
        .outerjoin(models.QuestionOption, models.QuestionOption.question_id == models.Question.id)
        .outerjoin(
            models.QuestionOptionTranslation,
            and_(
                models.QuestionOptionTranslation.option_id == models.QuestionOption.id,
                models.QuestionOptionTranslation.language == language,
            ),
        )
        .filter(
            models.User.id == user.id,
            models.Form.category == category,
            models.FormTranslation.language == language,
        )
        .order_by(models.FormQuestionTranslation.position, models.QuestionOption.position)
        .all()
    )
    if not rows:
        raise NotFoundError("No questions found for the specified criteria")

    rows = [row._mapping for row in rows]
    questions = group_rows(
        rows,
        parent_key="question_id",
        build_parent=lambda row: {
            "question_id": row["question_id"],
            "description": row["description"],
            "question_type": row["question_type"],
            "required": bool(row["required"]),
            "question_text": row["question_text"],
            "image_urls": row["image_urls"],
            "position": row["question_position"],
        },
        child_key="option_id",
        build_child=lambda row: {
            "option_id": row["option_id"],
            "option_description": row["option_text"],
            "position": row["option_position"],
        },
        children_field="options",
    )
    return schemas.FormQuestions(form_id=rows[0]["form_id"], questions=questions)


# Responses

def create_response(db: Session, payload: schemas.CreateResponseRequest) -> int:
    with transaction(db):
        form = db.query(models.Form.id).filter(models.Form.id == payload.form_id).first()
        if form is None:
            raise NotFoundError("Form not found")

        response_id = _inserted_id(db, models.Response(form_id=form.id), "response record")

        for answer in payload.answers:
            belongs = (
                db.query(models.Question.id)
                .join(models.QuestionTranslation, models.QuestionTranslation.question_id == models.Question.id)
                .join(
                    models.FormQuestionTranslation,
                    models.FormQuestionTranslation.question_translation_id == models.QuestionTranslation.id,
                )
                .join(
                    models.FormTranslation,
                    models.FormTranslation.id == models.FormQuestionTranslation.form_translation_id,
                )
                .filter(models.Question.id == answer.question_id, models.FormTranslation.form_id == form.id)
                .first()
            )
            if belongs is None:
                raise NotFoundError(f"Question {answer.question_id} not found or does not belong to the form")

            db.add(
                models.Answer(
                    response_id=response_id,
                    question_id=answer.question_id,
                    answer_text=answer.answer_text or None,
                    selected_options=",".join(answer.selected_options) if answer.selected_options else None,
                    file_url=answer.file_url or None,
                )
            )

    logger.info("Created response %s for form %s with %d answers", response_id, payload.form_id, len(payload.answers))
    return response_id


def get_response(db: Session, response_id: int, language: Optional[str] = None) -> schemas.ResponseDetail:
    response = db.query(models.Response).filter(models.Response.id == response_id).first()
    if response is None:
        raise NotFoundError("Response not found")

    query = (
        db.query(
            models.Question.id.label("question_id"),
            models.QuestionTranslation.question_text,
            models.FormQuestionTranslation.position,
            models.Answer.id.label("answer_id"),
            models.Answer.answer_text,
            models.Answer.selected_options,
            models.Answer.file_url,
        )
        .select_from(models.Question)
        .join(models.QuestionTranslation, models.QuestionTranslation.question_id == models.Question.id)
        .join(
            models.FormQuestionTranslation,
            models.FormQuestionTranslation.question_translation_id == models.QuestionTranslation.id,
        )
        .join(models.FormTranslation, models.FormTranslation.id == models.FormQuestionTranslation.form_translation_id)
        .outerjoin(
            models.Answer,
            and_(models.Answer.question_id == models.Question.id, models.Answer.response_id == response.id),
        )
        .filter(models.FormTranslation.form_id == response.form_id)
    )
    if language:
        query = query.filter(models.FormTranslation.language == language)
    # the oldest form translation supplies the text of every question it holds
    rows = query.order_by(
        models.FormTranslation.id, models.FormQuestionTranslation.position, models.Answer.id
    ).all()

    grouped = group_rows(
        (row._mapping for row in rows),
        parent_key="question_id",
        build_parent=lambda row: {
            "question_id": row["question_id"],
            "question_text": row["question_text"],
            "position": row["position"],
        },
        child_key="answer_id",
        build_child=lambda row: {
            "answer_id": row["answer_id"],
            "answer_text": row["answer_text"],
            "selected_options": row["selected_options"],
            "file_url": row["file_url"],
        },
        children_field="answers",
        child_order="answer_id",
    )

    questions = []
    for question in grouped:
        answer = {}
        # a multilingual form repeats the same answer once per translation
        if question["answers"]:
            first = question["answers"][0]
            answer = {
                "answer_text": first["answer_text"] or None,
                "selected_options": first["selected_options"].split(",") if first["selected_options"] else None,
                "file_url": first["file_url"] or None,
            }
        questions.append(
            schemas.QuestionAnswer(
                question_id=question["question_id"], question_text=question["question_text"], **answer
            )
        )

    return schemas.ResponseDetail(
        response_id=response.id,
        submitted_at=response.submitted_at,
        form_id=response.form_id,
        questions=questions,
    )
