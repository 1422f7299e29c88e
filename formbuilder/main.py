import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, Query, UploadFile, status
from sqlalchemy.orm import Session

from . import crud, schemas
from .config import settings
from .database import create_tables, dispose_engine, get_db
from .errors import BadRequestError, register_exception_handlers
from .storage import BlobStorage, get_storage

logging.basicConfig(level=settings.LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    if settings.DB_CREATE_TABLES:
        create_tables()
    yield
    dispose_engine()


app = FastAPI(
    title="Form Builder API",
    description="API for building multilingual forms and collecting their responses",
    lifespan=lifespan,
)
register_exception_handlers(app)


@app.get("/health")
def health_check():
    return {"status": "ok"}

# Response endpoints
@app.get("/api/getResponse", response_model=schemas.ResponseDetail, response_model_exclude_none=True)
def get_response(
    response_id: int,
    language: Optional[str] = None,
    db: Session = Depends(get_db),
):
    return crud.get_response(db, response_id, language)

@app.post("/api/createResponse", response_model=schemas.CreateResponseResult, status_code=status.HTTP_201_CREATED)
def create_response(payload: schemas.CreateResponseRequest, db: Session = Depends(get_db)):
    return {"response_id": crud.create_response(db, payload)}

# Question endpoints
@app.get("/api/getAllQuestions", response_model=schemas.FormQuestions)
def get_all_questions(
    username: str,
    form_language: str = Query(alias="formLanguage"),
    form_type: str = Query(alias="formType"),
    db: Session = Depends(get_db),
):
    if not (username and form_language and form_type):
        raise BadRequestError("username, formLanguage, and formType are required query parameters")
    return crud.get_all_questions(db, username, form_language, form_type)

@app.put("/api/editQuestion", response_model=schemas.Message)
def edit_question(payload: schemas.EditQuestionRequest, db: Session = Depends(get_db)):
    crud.edit_question(db, payload)
    return {"message": "Question updated successfully"}

@app.post("/api/createQuestion", response_model=schemas.CreateQuestionResult, status_code=status.HTTP_201_CREATED)
def create_question(payload: schemas.CreateQuestionRequest, db: Session = Depends(get_db)):
    return {"body": crud.create_question(db, payload)}

@app.post(
    "/api/addQuestionTranslation",
    response_model=schemas.AddQuestionTranslationResult,
    status_code=status.HTTP_201_CREATED,
)
def add_question_translation(payload: schemas.AddQuestionTranslationRequest, db: Session = Depends(get_db)):
    return {
        "message": "Question translation added successfully",
        "question_translation_id": crud.add_question_translation(db, payload),
    }

# Upload endpoints
@app.post("/api/uploadImages", response_model=schemas.UploadResult)
def upload_images(
    files: Optional[List[UploadFile]] = File(None),
    storage: BlobStorage = Depends(get_storage),
):
    if not files:
        raise BadRequestError("No files uploaded")
    urls = [storage.upload(f.file.read(), f.filename, f.content_type) for f in files]
    return {"urls": urls}
