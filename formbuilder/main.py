import logging
from contextlib import asynccontextmanager
from typing import List, Optional

from fastapi import Depends, FastAPI, File, HTTPException, UploadFile
from fastapi.responses import JSONResponse
from sqlalchemy.orm import Session
from starlette.middleware.cors import CORSMiddleware

from formbuilder import codec
from formbuilder.config import configure_logging, settings
from formbuilder.database import get_db, init_db
from formbuilder.errors import (
    FormBuilderError,
    MalformedSchema,
    MinimumOptionsViolation,
    NotFound,
    TransportError,
    ValidationError,
)
from formbuilder.importer import import_schema
from formbuilder.models import isoformat, utcnow
from formbuilder.schemas import SaveSchemaRequest, SchemaSummary, SubmitFormRequest
from formbuilder.store import SqlSchemaStore, SqlSubmissionSink

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging()
    init_db()
    logger.info("Form builder API ready")
    yield


app = FastAPI(title="Form Builder API", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


def get_schema_store(db: Session = Depends(get_db)) -> SqlSchemaStore:
    return SqlSchemaStore(db)


def get_submission_sink(db: Session = Depends(get_db)) -> SqlSubmissionSink:
    return SqlSubmissionSink(db)


@app.get("/api/health")
def health_check():
    return {"status": "OK", "timestamp": isoformat(utcnow())}


@app.post("/api/save-schema")
def save_schema(payload: SaveSchemaRequest, store: SqlSchemaStore = Depends(get_schema_store)):
    try:
        # Store what the builder would load back; malformed documents are refused
        schema = payload.schema_
        if schema:
            schema = codec.encode(codec.decode(schema), codec.schema_name(schema))
        result = store.save(payload.name, schema)
    except (ValidationError, MalformedSchema) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError:
        raise HTTPException(status_code=500, detail="Failed to save schema")

    return {"message": "Schema saved successfully", "id": result["id"], "schema": result["schema"]}


@app.get("/api/load-schema/{schema_id}")
def load_schema(schema_id: str, store: SqlSchemaStore = Depends(get_schema_store)):
    try:
        return store.load(schema_id)
    except NotFound:
        raise HTTPException(status_code=404, detail="Schema not found")
    except TransportError:
        raise HTTPException(status_code=500, detail="Failed to load schema")


@app.get("/api/schemas", response_model=List[SchemaSummary], response_model_by_alias=True)
def list_schemas(store: SqlSchemaStore = Depends(get_schema_store)):
    try:
        return store.list()
    except TransportError:
        raise HTTPException(status_code=500, detail="Failed to fetch schemas")


@app.post("/api/submit-form")
def submit_form(payload: SubmitFormRequest, sink: SqlSubmissionSink = Depends(get_submission_sink)):
    try:
        receipt = sink.submit(payload.schema_id, payload.form_data)
    except ValidationError as e:
        raise HTTPException(status_code=400, detail=str(e))
    except TransportError:
        raise HTTPException(status_code=500, detail="Failed to submit form")

    return {"message": "Form submitted successfully", **receipt}


@app.get("/api/submissions")
def list_submissions(sink: SqlSubmissionSink = Depends(get_submission_sink)):
    return _submissions(sink, None)


@app.get("/api/submissions/{schema_id}")
def list_schema_submissions(schema_id: str, sink: SqlSubmissionSink = Depends(get_submission_sink)):
    return _submissions(sink, schema_id)


def _submissions(sink: SqlSubmissionSink, schema_id: Optional[str]):
    try:
        return sink.list(schema_id)
    except TransportError:
        raise HTTPException(status_code=500, detail="Failed to fetch submissions")


# File upload route
@app.post("/api/import-schema")
async def upload_schema(file: UploadFile = File(...), name: Optional[str] = None):
    if not file.filename or not file.filename.endswith((".json", ".xlsx")):
        raise HTTPException(status_code=400, detail="Invalid file type. Please upload a JSON or Excel file.")

    # Read the file content
    contents = await file.read()

    try:
        schema = import_schema(file.filename, contents, name)
    except (ValidationError, MalformedSchema, MinimumOptionsViolation) as e:
        raise HTTPException(status_code=400, detail=str(e))
    except FormBuilderError as e:
        logger.error("Error importing %s: %s", file.filename, e)
        raise HTTPException(status_code=400, detail=f"Error parsing file: {e}")

    return JSONResponse(content={"message": "Schema imported successfully", "schema": codec.document(schema)}, status_code=201)
