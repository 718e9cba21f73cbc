import io
import logging
from contextlib import asynccontextmanager
from typing import List, Optional

import qrcode
from fastapi import APIRouter, Depends, FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse, StreamingResponse
from pymongo.database import Database

from auth import CallerIdentity, FirebaseVerifier, IdentityVerifier, get_caller
from config import Settings, get_settings
from database import Store, connect
from errors import FormsError, Unauthenticated, ValidationError
from forms import FormCatalog
from schemas import (
    CreateFormRequest,
    FieldDeletedReply,
    FieldInput,
    FieldPatch,
    Form,
    MessageReply,
    Submission,
    SubmitReply,
    SubmitRequest,
)
from submissions import SubmissionStore
from validation import get_policy

logging.basicConfig(
    level=get_settings().log_level,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

router = APIRouter()


def _wire(app: FastAPI, store: Store, verifier: IdentityVerifier) -> None:
    settings: Settings = app.state.settings
    catalog = FormCatalog(store)
    app.state.store = store
    app.state.verifier = verifier
    app.state.catalog = catalog
    app.state.submissions = SubmissionStore(store, catalog, get_policy(settings.submission_policy))


@asynccontextmanager
async def lifespan(app: FastAPI):
    settings: Settings = app.state.settings
    client = None
    if getattr(app.state, "store", None) is None:
        client = connect(settings)
        _wire(app, Store(client[settings.database_name]), FirebaseVerifier(settings.firebase_service_account_json))
    logger.info("SmartForm Builder API started (submission policy: %s)", settings.submission_policy)

    yield

    if client is not None:
        client.close()
        logger.info("MongoDB connection closed")


# --- Error translation ---

async def handle_validation_error(request: Request, exc: ValidationError):
    return JSONResponse(
        status_code=exc.status_code,
        content={"errors": [e.model_dump() for e in exc.errors]},
    )


async def handle_request_validation_error(request: Request, exc: RequestValidationError):
    errors = []
    for err in exc.errors():
        loc = [str(p) for p in err.get("loc", ()) if p != "body"]
        errors.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid value")})
    return JSONResponse(status_code=400, content={"errors": errors})


async def handle_forms_error(request: Request, exc: FormsError):
    headers = None
    if isinstance(exc, Unauthenticated):
        headers = {"WWW-Authenticate": "Bearer"}
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.__cause__ or exc)
    return JSONResponse(status_code=exc.status_code, content={"message": exc.message}, headers=headers)


async def handle_unexpected(request: Request, exc: Exception):
    logger.exception("Unhandled error on %s %s", request.method, request.url.path)
    return JSONResponse(status_code=500, content={"message": "Server error"})


# --- Dependencies ---

def get_catalog(request: Request) -> FormCatalog:
    return request.app.state.catalog


def get_submissions(request: Request) -> SubmissionStore:
    return request.app.state.submissions


# --- Routes ---

@router.get("/")
def read_root():
    return {"message": "SmartForm Builder API running"}


@router.get("/api/health")
def health(request: Request):
    store: Store = request.app.state.store
    reachable = store.ping()
    return {
        "status": "ok" if reachable else "degraded",
        "database": store.name if reachable else None,
    }


@router.post("/api/forms", response_model=Form, status_code=201)
def create_form(
    payload: CreateFormRequest,
    caller: CallerIdentity = Depends(get_caller),
    catalog: FormCatalog = Depends(get_catalog),
):
    return catalog.create_form(
        caller,
        title=payload.title,
        fields=payload.fields,
        description=payload.description,
        is_public=payload.is_public,
    )


@router.get("/api/forms", response_model=List[Form])
def list_public_forms(catalog: FormCatalog = Depends(get_catalog)):
    return catalog.list_public_forms()


@router.get("/api/forms/{form_id}", response_model=Form)
def get_form(form_id: str, catalog: FormCatalog = Depends(get_catalog)):
    # Readable by id without a visibility check, public or not.
    return catalog.get_form(form_id)


@router.get("/api/forms/{form_id}/qr")
def form_qr(form_id: str, request: Request, catalog: FormCatalog = Depends(get_catalog)):
    form = catalog.get_form(form_id)
    url = f"{request.app.state.settings.public_base_url.rstrip('/')}/f/{form.id}"
    img = qrcode.make(url)
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    buf.seek(0)
    return StreamingResponse(buf, media_type="image/png")


@router.post("/api/forms/{form_id}/fields", response_model=Form, status_code=201)
def add_field(
    form_id: str,
    payload: FieldInput,
    caller: CallerIdentity = Depends(get_caller),
    catalog: FormCatalog = Depends(get_catalog),
):
    return catalog.add_field(form_id, caller, payload)


@router.put("/api/forms/{form_id}/fields/{field_id}", response_model=Form)
def update_field(
    form_id: str,
    field_id: str,
    patch: FieldPatch,
    caller: CallerIdentity = Depends(get_caller),
    catalog: FormCatalog = Depends(get_catalog),
):
    return catalog.update_field(form_id, field_id, caller, patch)


@router.delete("/api/forms/{form_id}/fields/{field_id}", response_model=FieldDeletedReply)
def delete_field(
    form_id: str,
    field_id: str,
    caller: CallerIdentity = Depends(get_caller),
    catalog: FormCatalog = Depends(get_catalog),
):
    form = catalog.delete_field(form_id, field_id, caller)
    return FieldDeletedReply(message="Field deleted", form=form)


def _submit(form_id: str, payload: SubmitRequest, submissions: SubmissionStore) -> SubmitReply:
    submission = submissions.submit(form_id, payload.responses)
    return SubmitReply(message="Form submitted successfully", submission=submission)


@router.post("/api/forms/{form_id}/submit", response_model=SubmitReply, status_code=201)
def submit_form(
    form_id: str,
    payload: SubmitRequest,
    submissions: SubmissionStore = Depends(get_submissions),
):
    return _submit(form_id, payload, submissions)


@router.post("/api/submissions/{form_id}", response_model=SubmitReply, status_code=201)
def submit_to_form(
    form_id: str,
    payload: SubmitRequest,
    submissions: SubmissionStore = Depends(get_submissions),
):
    return _submit(form_id, payload, submissions)


@router.get("/api/forms/{form_id}/submissions", response_model=List[Submission])
def list_submissions(
    form_id: str,
    caller: CallerIdentity = Depends(get_caller),
    submissions: SubmissionStore = Depends(get_submissions),
):
    return submissions.list_submissions(form_id, caller)


@router.get("/api/forms/{form_id}/submissions/{submission_id}", response_model=Submission)
def get_submission(
    form_id: str,
    submission_id: str,
    caller: CallerIdentity = Depends(get_caller),
    submissions: SubmissionStore = Depends(get_submissions),
):
    return submissions.get_submission(form_id, submission_id, caller)


@router.delete("/api/forms/{form_id}/submissions/{submission_id}", response_model=MessageReply)
def delete_submission(
    form_id: str,
    submission_id: str,
    caller: CallerIdentity = Depends(get_caller),
    submissions: SubmissionStore = Depends(get_submissions),
):
    submissions.delete_submission(form_id, submission_id, caller)
    return MessageReply(message="Submission deleted")


@router.get("/api/forms/{form_id}/export/csv")
def export_csv(
    form_id: str,
    caller: CallerIdentity = Depends(get_caller),
    submissions: SubmissionStore = Depends(get_submissions),
):
    rows = submissions.export_csv(form_id, caller)
    return StreamingResponse(
        rows,
        media_type="text/csv",
        headers={"Content-Disposition": f"attachment; filename={form_id}.csv"},
    )


def create_app(
    settings: Optional[Settings] = None,
    database: Optional[Database] = None,
    verifier: Optional[IdentityVerifier] = None,
) -> FastAPI:
    """
    Build the API.

    With a database (and verifier) given, the app uses them instead of
    connecting to MongoDB and Firebase at startup.
    """
    settings = settings or get_settings()

    app = FastAPI(title="SmartForm Builder API", lifespan=lifespan)
    app.state.settings = settings
    app.state.store = None
    if database is not None:
        _wire(app, Store(database), verifier or FirebaseVerifier(settings.firebase_service_account_json))

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(ValidationError, handle_validation_error)
    app.add_exception_handler(RequestValidationError, handle_request_validation_error)
    app.add_exception_handler(FormsError, handle_forms_error)
    app.add_exception_handler(Exception, handle_unexpected)

    app.include_router(router)
    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    uvicorn.run("main:app", host="0.0.0.0", port=8000)
