from pydantic import BaseModel, Field, field_validator, model_validator
from typing import Any, List, Literal, Optional, Tuple
from datetime import datetime
from enum import Enum

FormCategory = Literal["custom", "flash", "touchup"]
TranslationLanguage = Literal["en", "es"]

class QuestionType(str, Enum):
    TEXT = "text"
    LONG_TEXT = "long_text"
    MULTIPLE_CHOICE = "multiple_choice"
    CHECKBOX = "checkbox"
    DROPDOWN = "dropdown"
    NUMBER = "number"
    DATE = "date"
    FILE = "file"
    RADIO = "radio"
    DESCRIPTION = "description"
    EMAIL = "email"
    PHONE = "phone"
    RADIO_IMAGE = "radio_image"

# Question schemas
class QuestionCreate(BaseModel):
    description: str = Field(min_length=1)
    question_type: QuestionType
    required: bool = False
    question_text: str = Field(min_length=1)
    image_urls: Optional[List[str]] = None

    @model_validator(mode="after")
    def radio_image_needs_images(self):
        if self.question_type == QuestionType.RADIO_IMAGE and not self.image_urls:
            raise ValueError("radio_image questions must include image_urls array")
        return self

class OptionCreate(BaseModel):
    description: str = Field(min_length=1)
    language: str = Field(min_length=1)

class CreateQuestionRequest(BaseModel):
    username: str = Field(min_length=1)
    form_type: str = Field(min_length=1)
    form_language: str = Field(min_length=1)
    question: QuestionCreate
    options: Optional[List[OptionCreate]] = None

class CreateQuestionResult(BaseModel):
    body: int

class TranslationEdit(BaseModel):
    translation_id: int
    question_text: str = Field(min_length=1)

class EditQuestionRequest(BaseModel):
    question_id: int
    description: Optional[str] = None
    position: Optional[int] = Field(default=None, ge=1)
    question_type: Optional[QuestionType] = None
    required: Optional[bool] = None
    image_urls: Optional[List[str]] = None
    translations: Optional[List[TranslationEdit]] = None

    @field_validator("position", "question_type", "required")
    @classmethod
    def not_null(cls, value):
        if value is None:
            raise ValueError("may be omitted but not null")
        return value

    def changes(self) -> List[Tuple[str, bool, Any]]:
        """(column, present, value) for every editable column of questions."""
        sent = self.model_fields_set
        return [
            ("description", "description" in sent, self.description),
            ("position", "position" in sent, self.position),
            ("question_type", "question_type" in sent, self.question_type.value if self.question_type else None),
            ("required", "required" in sent, self.required),
            ("image_urls", "image_urls" in sent, self.image_urls),
        ]

# Translation schemas
class OptionTranslationCreate(BaseModel):
    option_id: int
    option_text: str = Field(min_length=1)

class AddQuestionTranslationRequest(BaseModel):
    question_id: int
    language: TranslationLanguage
    question_text: str = Field(min_length=1)
    form_type: FormCategory
    options: Optional[List[OptionTranslationCreate]] = None

class AddQuestionTranslationResult(BaseModel):
    message: str
    question_translation_id: int

# Response schemas
class AnswerCreate(BaseModel):
    question_id: int
    answer_text: Optional[str] = None
    selected_options: Optional[List[str]] = None
    file_url: Optional[str] = None

    @field_validator("selected_options")
    @classmethod
    def labels_without_commas(cls, value):
        # stored comma-joined
        if value and any("," in label for label in value):
            raise ValueError("selected option labels may not contain commas")
        return value

class CreateResponseRequest(BaseModel):
    form_id: int
    answers: List[AnswerCreate]

    @model_validator(mode="after")
    def one_answer_per_question(self):
        seen = set()
        for answer in self.answers:
            if answer.question_id in seen:
                raise ValueError(f"question {answer.question_id} is answered more than once")
            seen.add(answer.question_id)
        return self

class CreateResponseResult(BaseModel):
    response_id: int

# Read models
class Option(BaseModel):
    option_id: int = Field(serialization_alias="optionId")
    option_description: Optional[str] = Field(default=None, serialization_alias="optionDescription")
    position: int

class Question(BaseModel):
    question_id: int = Field(serialization_alias="questionId")
    description: Optional[str] = None
    question_type: str
    required: bool
    question_text: str
    image_urls: Optional[List[str]] = None
    options: List[Option] = []
    position: Optional[int] = None

class FormQuestions(BaseModel):
    form_id: int
    questions: List[Question]

class QuestionAnswer(BaseModel):
    question_id: int
    question_text: str
    answer_text: Optional[str] = None
    selected_options: Optional[List[str]] = None
    file_url: Optional[str] = None

class ResponseDetail(BaseModel):
    response_id: int
    submitted_at: Optional[datetime] = None
    form_id: int
    questions: List[QuestionAnswer]

class UploadResult(BaseModel):
    urls: List[str]

class Message(BaseModel):
    message: str
