from sqlalchemy import JSON, Boolean, Column, ForeignKey, Integer, String, DateTime, Text, UniqueConstraint
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from .database import Base

class User(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, index=True)
    email = Column(String(255), unique=True, index=True, nullable=False)

    forms = relationship("Form", back_populates="owner")

class Form(Base):
    __tablename__ = "forms"

    id = Column(Integer, primary_key=True, index=True)
    user_id = Column(Integer, ForeignKey("users.id"), nullable=False, index=True)
    category = Column(String(20), nullable=False)  # custom, flash, touchup
    created_at = Column(DateTime(timezone=True), server_default=func.now())

    owner = relationship("User", back_populates="forms")
    translations = relationship("FormTranslation", back_populates="form")
    responses = relationship("Response", back_populates="form")

class FormTranslation(Base):
    __tablename__ = "form_translations"
    __table_args__ = (UniqueConstraint("form_id", "language"),)

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("forms.id"), nullable=False, index=True)
    language = Column(String(10), nullable=False)
    title = Column(String(255))

    form = relationship("Form", back_populates="translations")
    question_links = relationship("FormQuestionTranslation", back_populates="form_translation")

class Question(Base):
    __tablename__ = "questions"

    id = Column(Integer, primary_key=True, index=True)
    description = Column(Text)
    question_type = Column(String(20), nullable=False)
    required = Column(Boolean, nullable=False, default=False)
    position = Column(Integer, nullable=False)
    image_urls = Column(JSON(none_as_null=True), nullable=True)

    translations = relationship("QuestionTranslation", back_populates="question")
    options = relationship("QuestionOption", back_populates="question", order_by="QuestionOption.position")

class QuestionTranslation(Base):
    __tablename__ = "question_translations"
    __table_args__ = (UniqueConstraint("question_id", "language"),)

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    language = Column(String(10), nullable=False)
    question_text = Column(Text, nullable=False)

    question = relationship("Question", back_populates="translations")
    form_links = relationship("FormQuestionTranslation", back_populates="question_translation")

class QuestionOption(Base):
    __tablename__ = "question_options"

    id = Column(Integer, primary_key=True, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False, index=True)
    position = Column(Integer, nullable=False)

    question = relationship("Question", back_populates="options")
    translations = relationship("QuestionOptionTranslation", back_populates="option")

class QuestionOptionTranslation(Base):
    __tablename__ = "question_option_translations"
    __table_args__ = (UniqueConstraint("option_id", "language"),)

    id = Column(Integer, primary_key=True, index=True)
    option_id = Column(Integer, ForeignKey("question_options.id"), nullable=False, index=True)
    language = Column(String(10), nullable=False)
    option_text = Column(Text, nullable=False)

    option = relationship("QuestionOption", back_populates="translations")

class FormQuestionTranslation(Base):
    __tablename__ = "form_question_translations"

    id = Column(Integer, primary_key=True, index=True)
    form_translation_id = Column(Integer, ForeignKey("form_translations.id"), nullable=False, index=True)
    question_translation_id = Column(Integer, ForeignKey("question_translations.id"), nullable=False, index=True)
    position = Column(Integer)

    form_translation = relationship("FormTranslation", back_populates="question_links")
    question_translation = relationship("QuestionTranslation", back_populates="form_links")

class Response(Base):
    __tablename__ = "responses"

    id = Column(Integer, primary_key=True, index=True)
    form_id = Column(Integer, ForeignKey("forms.id"), nullable=False, index=True)
    submitted_at = Column(DateTime(timezone=True), server_default=func.now())

    form = relationship("Form", back_populates="responses")
    answers = relationship("Answer", back_populates="response")

class Answer(Base):
    __tablename__ = "answers"

    id = Column(Integer, primary_key=True, index=True)
    response_id = Column(Integer, ForeignKey("responses.id"), nullable=False, index=True)
    question_id = Column(Integer, ForeignKey("questions.id"), nullable=False)
    answer_text = Column(Text)
    selected_options = Column(Text)  # comma-joined option labels
    file_url = Column(String(1024))

    response = relationship("Response", back_populates="answers")
