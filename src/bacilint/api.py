"""FastAPI REST API for BACI C-- analysis."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from . import __version__
from .analyzer import StructuralAnalyzer
from .diagnostics import DiagnosticGenerator
from .errors import (
    BacilintError,
    DocumentNotFoundError,
    HostNotInitializedError,
    InvalidSchemaVersionError,
    InvalidSettingsError,
    SettingsNotFoundError,
)
from .formatter import Formatter
from .host import LANGUAGE_ID, Document, LanguageHost
from .models import (
    AnalysisResult,
    Diagnostic,
    FormatOptions,
    Position,
    QuickFix,
    Range,
    Severity,
    TextEdit,
)
from .quickfix import synthesize_fix
from .settings_store import SettingsStore


# --- Pydantic Schemas ---


class PositionSchema(BaseModel):
    line: int = Field(..., ge=0)
    character: int = Field(default=0, ge=0)


class RangeSchema(BaseModel):
    start: PositionSchema
    end: PositionSchema


class TextEditSchema(BaseModel):
    range: RangeSchema
    new_text: str


class TokenSchema(BaseModel):
    kind: str  # "identifier"|"number"|"punctuation"
    text: str
    line: int
    column: int


class FunctionSchema(BaseModel):
    name: str
    return_type: str
    line: int


class SemaphoreSchema(BaseModel):
    name: str
    kind: str  # "semaphore"|"binarysem"
    line: int
    initial_value: Optional[int] = None


class ViolationSchema(BaseModel):
    kind: str
    message: str
    line: int
    column: Optional[int] = None
    data: dict = Field(default_factory=dict)


class DiagnosticSchema(BaseModel):
    message: str
    range: RangeSchema
    severity: str  # "error"|"warning"
    kind: Optional[str] = None
    data: dict = Field(default_factory=dict)
    source: str = "bacilint"


class QuickFixSchema(BaseModel):
    title: str
    kind: str
    edits: list[TextEditSchema]
    is_preferred: bool
    diagnostic: Optional[DiagnosticSchema] = None


class AnalyzeRequest(BaseModel):
    text: str
    include_tokens: bool = True


class AnalysisResponse(BaseModel):
    functions: list[FunctionSchema]
    has_main: bool
    tokens: Optional[list[TokenSchema]] = None
    cobegin_lines: list[int]
    violations: list[ViolationSchema]
    semaphores: list[SemaphoreSchema]


class DiagnosticsRequest(BaseModel):
    text: str


class DiagnosticsResponse(BaseModel):
    diagnostics: list[DiagnosticSchema]
    error_count: int
    warning_count: int


class QuickFixRequest(BaseModel):
    text: str
    message: str = Field(..., description="Diagnostic message, as produced by /api/diagnostics")
    range: RangeSchema
    default_string_length: Optional[int] = Field(
        None, ge=1, description="Overrides the configured defaultStringLength"
    )


class QuickFixResponse(BaseModel):
    fix: Optional[QuickFixSchema] = None


class FormatOptionsSchema(BaseModel):
    space_around_operators: bool = True
    indent_size: int = Field(default=2, ge=0, le=16)


class FormatRequest(BaseModel):
    text: str
    options: Optional[FormatOptionsSchema] = None


class SettingsSchema(BaseModel):
    defaultStringLength: int
    spaceAroundOperators: bool
    indentSize: int


class SettingsUpdateRequest(BaseModel):
    defaultStringLength: Optional[int] = None
    spaceAroundOperators: Optional[bool] = None
    indentSize: Optional[int] = None


class DocumentOpenRequest(BaseModel):
    text: str
    language_id: str = LANGUAGE_ID
    version: Optional[int] = None


class DocumentSchema(BaseModel):
    uri: str
    language_id: str
    version: int
    diagnostic_count: int


class DocumentListResponse(BaseModel):
    documents: list[DocumentSchema]
    count: int


class CodeActionsRequest(BaseModel):
    range: RangeSchema


class CodeActionsResponse(BaseModel):
    fixes: list[QuickFixSchema]


class ErrorResponse(BaseModel):
    detail: str
    error_type: str


# --- Helper Functions ---


def get_settings_store() -> SettingsStore:
    """Get the SettingsStore for the configured data directory."""
    return SettingsStore()


def get_host(request: Request) -> LanguageHost:
    host = getattr(request.app.state, "host", None)
    if host is None:
        raise HostNotInitializedError()
    return host


def range_from_schema(schema: RangeSchema) -> Range:
    return Range(
        start=Position(schema.start.line, schema.start.character),
        end=Position(schema.end.line, schema.end.character),
    )


def range_to_schema(r: Range) -> RangeSchema:
    return RangeSchema(
        start=PositionSchema(line=r.start.line, character=r.start.character),
        end=PositionSchema(line=r.end.line, character=r.end.character),
    )


def edit_to_schema(edit: TextEdit) -> TextEditSchema:
    return TextEditSchema(range=range_to_schema(edit.range), new_text=edit.new_text)


def diagnostic_to_schema(diag: Diagnostic) -> DiagnosticSchema:
    return DiagnosticSchema(
        message=diag.message,
        range=range_to_schema(diag.range),
        severity=diag.severity.value,
        kind=diag.kind.value if diag.kind else None,
        data=dict(diag.data),
        source=diag.source,
    )


def fix_to_schema(fix: QuickFix) -> QuickFixSchema:
    return QuickFixSchema(
        title=fix.title,
        kind=fix.kind.value,
        edits=[edit_to_schema(e) for e in fix.edits],
        is_preferred=fix.is_preferred,
        diagnostic=diagnostic_to_schema(fix.diagnostic) if fix.diagnostic else None,
    )


def analysis_to_response(result: AnalysisResult, include_tokens: bool) -> AnalysisResponse:
    return AnalysisResponse(**result.to_dict(include_tokens=include_tokens))


def diagnostics_response(diagnostics: list[Diagnostic]) -> DiagnosticsResponse:
    errors = sum(1 for d in diagnostics if d.severity == Severity.ERROR)
    return DiagnosticsResponse(
        diagnostics=[diagnostic_to_schema(d) for d in diagnostics],
        error_count=errors,
        warning_count=len(diagnostics) - errors,
    )


def document_to_schema(doc: Document) -> DocumentSchema:
    return DocumentSchema(
        uri=doc.uri,
        language_id=doc.language_id,
        version=doc.version,
        diagnostic_count=len(doc.diagnostics),
    )


def settings_to_schema(store: SettingsStore) -> SettingsSchema:
    settings = store.load_or_default()
    return SettingsSchema(
        defaultStringLength=settings.default_string_length,
        spaceAroundOperators=settings.format.space_around_operators,
        indentSize=settings.format.indent_size,
    )


# --- App ---


@asynccontextmanager
async def lifespan(app: FastAPI):
    host = LanguageHost(settings_provider=lambda: get_settings_store().load_or_default())
    host.initialize()
    app.state.host = host
    try:
        yield
    finally:
        host.shutdown()
        app.state.host = None


app = FastAPI(
    title="bacilint API",
    description="Analysis, quick fixes and formatting for BACI C-- source",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=[
        "http://localhost:5173",
        "http://localhost:3000",
        "http://127.0.0.1:5173",
        "http://127.0.0.1:3000",
    ],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# --- Global Exception Handler ---


# Map exception types to HTTP status codes
ERROR_STATUS_CODES: dict[type, int] = {
    SettingsNotFoundError: 409,
    InvalidSettingsError: 400,
    InvalidSchemaVersionError: 500,
    DocumentNotFoundError: 404,
    HostNotInitializedError: 503,
}


@app.exception_handler(BacilintError)
async def bacilint_error_handler(request: Request, exc: BacilintError) -> JSONResponse:
    """Map BacilintError subclasses to appropriate HTTP responses."""
    status_code = ERROR_STATUS_CODES.get(type(exc), 500)
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error_type": type(exc).__name__},
    )


# --- Endpoints ---


@app.get("/api/health")
def health_check(request: Request):
    """Health check endpoint."""
    host = getattr(request.app.state, "host", None)
    return {
        "status": "ok",
        "version": __version__,
        "host_active": bool(host and host.active),
    }


# --- Stateless analysis ---


@app.post("/api/analyze", response_model=AnalysisResponse, response_model_exclude_none=True)
def analyze_text(request: AnalyzeRequest):
    """Run the structural pass over a text snapshot."""
    result = StructuralAnalyzer().analyze(request.text)
    return analysis_to_response(result, request.include_tokens)


@app.post("/api/diagnostics", response_model=DiagnosticsResponse)
def diagnose_text(request: DiagnosticsRequest):
    result = StructuralAnalyzer().analyze(request.text)
    return diagnostics_response(DiagnosticGenerator().diagnose(request.text, result))


@app.post("/api/quick-fixes", response_model=QuickFixResponse)
def quick_fix(request: QuickFixRequest):
    """
    Compute the fix for one diagnostic.

    Returns `{"fix": null}` when the diagnostic has no fix or the text no
    longer matches what the fix expects.
    """
    length = request.default_string_length
    if length is None:
        length = get_settings_store().load_or_default().default_string_length
    fix = synthesize_fix(request.text, request.message, range_from_schema(request.range), length)
    return QuickFixResponse(fix=fix_to_schema(fix) if fix else None)


@app.post("/api/format", response_model=TextEditSchema)
def format_text(request: FormatRequest):
    """Reformat a text; always one edit replacing the whole document."""
    if request.options is not None:
        options = FormatOptions(**request.options.model_dump())
    else:
        options = get_settings_store().load_or_default().format
    return edit_to_schema(Formatter(options).format(request.text))


# --- Settings ---


@app.get("/api/settings", response_model=SettingsSchema)
def get_settings():
    return settings_to_schema(get_settings_store())


@app.put("/api/settings", response_model=SettingsSchema)
def update_settings(request: SettingsUpdateRequest):
    keys = {
        "defaultStringLength": "defaultStringLength",
        "spaceAroundOperators": "format.spaceAroundOperators",
        "indentSize": "format.indentSize",
    }
    values = {
        keys[name]: value
        for name, value in request.model_dump(exclude_none=True).items()
    }
    store = get_settings_store()
    store.update(values)
    return settings_to_schema(store)


# --- Documents ---


@app.get("/api/documents", response_model=DocumentListResponse)
def list_documents(request: Request):
    docs = get_host(request).list_documents()
    return DocumentListResponse(documents=[document_to_schema(d) for d in docs], count=len(docs))


@app.get("/api/documents/{uri:path}/diagnostics", response_model=DiagnosticsResponse, responses={404: {"model": ErrorResponse}})
def get_document_diagnostics(uri: str, request: Request):
    return diagnostics_response(get_host(request).diagnostics_for(uri))


@app.post("/api/documents/{uri:path}/code-actions", response_model=CodeActionsResponse, responses={404: {"model": ErrorResponse}})
def get_document_code_actions(uri: str, body: CodeActionsRequest, request: Request):
    fixes = get_host(request).code_actions(uri, range_from_schema(body.range))
    return CodeActionsResponse(fixes=[fix_to_schema(f) for f in fixes])


@app.post("/api/documents/{uri:path}/format", response_model=TextEditSchema, responses={404: {"model": ErrorResponse}})
def format_document(uri: str, request: Request):
    return edit_to_schema(get_host(request).format(uri))


@app.put("/api/documents/{uri:path}", response_model=DocumentSchema)
def put_document(uri: str, body: DocumentOpenRequest, request: Request):
    """Open a document, or replace the text of one already open."""
    host = get_host(request)
    try:
        doc = host.change_document(uri, body.text, body.version)
    except DocumentNotFoundError:
        doc = host.open_document(uri, body.text, body.language_id, body.version or 0)
    return document_to_schema(doc)


@app.delete("/api/documents/{uri:path}", response_model=DocumentSchema, responses={404: {"model": ErrorResponse}})
def close_document(uri: str, request: Request):
    return document_to_schema(get_host(request).close_document(uri))
