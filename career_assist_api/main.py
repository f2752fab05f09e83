"""FastAPI application entrypoint for the Career Assist API."""

from contextlib import asynccontextmanager
from typing import AsyncIterator

import structlog
from fastapi import Depends, FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from prometheus_fastapi_instrumentator import Instrumentator
from slowapi import Limiter, _rate_limit_exceeded_handler
from slowapi.errors import RateLimitExceeded
from slowapi.util import get_remote_address

from career_assist_api import __version__
from career_assist_api.completion_client import CompletionClient
from career_assist_api.config import get_settings
from career_assist_api.errors import ErrorKind, GenerationError, InvalidInputError
from career_assist_api.interview_service import (
    generate_answer_tips_batch,
    generate_interview_questions,
    simulate_interview,
)
from career_assist_api.models import (
    AddExperienceRequest,
    AddExperienceResponse,
    AnswerTipsItem,
    AnswerTipsRequest,
    AnswerTipsResponse,
    ContactDetails,
    CoverLetterRequest,
    CoverLetterResponse,
    CreatedResumeResponse,
    CreateResumeRequest,
    HealthResponse,
    InterviewQuestionsRequest,
    InterviewQuestionsResponse,
    OptimizedResumeResponse,
    OptimizeRequest,
    PersonalStatementRequest,
    PersonalStatementResponse,
    ResumeScoreResponse,
    ResumeTextRequest,
    ScoreRequest,
    SimulationFeedback,
    SimulationRequest,
    StructuredResume,
)
from career_assist_api.observability import generate_trace_id, set_trace_id
from career_assist_api.resume_service import (
    add_work_experience,
    create_resume,
    extract_contact_details,
    optimize_resume,
    score_optimized_resume,
    score_resume,
    structure_resume,
)
from career_assist_api.writing_service import generate_cover_letter, generate_personal_statement

# Configure structlog
structlog.configure(
    processors=[
        structlog.contextvars.merge_contextvars,
        structlog.stdlib.filter_by_level,
        structlog.stdlib.add_logger_name,
        structlog.stdlib.add_log_level,
        structlog.processors.TimeStamper(fmt="iso"),
        structlog.processors.StackInfoRenderer(),
        structlog.processors.format_exc_info,
        structlog.processors.UnicodeDecoder(),
        structlog.processors.JSONRenderer(),
    ],
    wrapper_class=structlog.stdlib.BoundLogger,
    context_class=dict,
    logger_factory=structlog.stdlib.LoggerFactory(),
    cache_logger_on_first_use=True,
)

logger = structlog.get_logger()
settings = get_settings()

# Rate limiter
limiter = Limiter(key_func=get_remote_address)

# HTTP status for each failure kind
ERROR_STATUS = {
    ErrorKind.UPSTREAM_UNAVAILABLE: 503,
    ErrorKind.EMPTY_RESPONSE: 502,
    ErrorKind.PARSE_FAILURE: 502,
    ErrorKind.EMPTY_RESULT: 502,
    ErrorKind.SCHEMA_INVALID: 502,
}


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the completion client once and share it through app.state."""
    logger.info("Starting Career Assist API", version=__version__)

    client = CompletionClient(get_settings())
    await client.connect()
    app.state.completion_client = client

    yield

    logger.info("Shutting down Career Assist API")
    await client.close()


def get_completion_client(request: Request) -> CompletionClient:
    """Dependency returning the process-wide completion client."""
    return request.app.state.completion_client


# Create FastAPI app
app = FastAPI(
    title="Career Assist API",
    description="Resume, interview and writing assistance backed by an LLM",
    version=__version__,
    lifespan=lifespan,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],  # Configure appropriately for production
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)


# Trace ID middleware for request correlation
@app.middleware("http")
async def trace_id_middleware(request: Request, call_next):
    """Add trace ID to every request for log correlation."""
    trace_id = request.headers.get("X-Trace-ID", generate_trace_id())
    set_trace_id(trace_id)

    structlog.contextvars.clear_contextvars()
    structlog.contextvars.bind_contextvars(trace_id=trace_id)

    response = await call_next(request)
    response.headers["X-Trace-ID"] = trace_id
    return response


@app.exception_handler(GenerationError)
async def generation_error_handler(request: Request, exc: GenerationError) -> JSONResponse:
    """Translate a classified generation failure into an HTTP error."""
    status = ERROR_STATUS.get(exc.kind, 502)
    logger.error(
        "Generation failed",
        path=request.url.path,
        kind=exc.kind.value,
        error=exc.message,
    )
    if exc.kind is ErrorKind.UPSTREAM_UNAVAILABLE:
        detail = "AI service unavailable. Please try again later."
    else:
        detail = f"{exc.message}. Please try again."
    return JSONResponse(status_code=status, content={"detail": detail, "kind": exc.kind.value})


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError) -> JSONResponse:
    return JSONResponse(status_code=400, content={"detail": str(exc)})


# Add rate limiter
app.state.limiter = limiter
app.add_exception_handler(RateLimitExceeded, _rate_limit_exceeded_handler)

# Add Prometheus metrics
Instrumentator().instrument(app).expose(app)


# =============================================================================
# Health Endpoints
# =============================================================================


@app.get("/health", response_model=HealthResponse)
@app.get("/api/v1/health", response_model=HealthResponse)
async def health_check(client: CompletionClient = Depends(get_completion_client)) -> HealthResponse:
    """Check the health of the API and whether generation is available."""
    return HealthResponse(
        status="healthy" if client.is_configured else "degraded",
        llm_configured=client.is_configured,
        model=client.model,
        version=__version__,
    )


# =============================================================================
# Resume Endpoints
# =============================================================================


@app.post("/api/v1/resume/structure", response_model=StructuredResume)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def structure_resume_endpoint(
    request: Request,
    body: ResumeTextRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Convert extracted resume text into the structured resume record."""
    logger.info("Resume structure request", resume_length=len(body.resume_text))
    return await structure_resume(client, body.resume_text)


@app.post("/api/v1/resume/score", response_model=ResumeScoreResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def score_resume_endpoint(
    request: Request,
    body: ScoreRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """
    Score a resume against a job description.

    - **resume_text**: Extracted resume text
    - **job_description**: The job posting (min 20 chars)
    """
    logger.info("Resume score request", job_description_length=len(body.job_description))
    return await score_resume(client, body.resume_text, body.job_description)


@app.post("/api/v1/resume/score-optimized", response_model=ResumeScoreResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def score_optimized_endpoint(
    request: Request,
    body: ScoreRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Score a rewritten resume and report whether it reached the target."""
    return await score_optimized_resume(client, body.resume_text, body.job_description)


@app.post("/api/v1/resume/optimize", response_model=OptimizedResumeResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def optimize_resume_endpoint(
    request: Request,
    body: OptimizeRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Rewrite a resume for a job description."""
    logger.info(
        "Resume optimize request",
        resume_length=len(body.resume_text),
        missing_skills=len(body.missing_skills),
    )
    return await optimize_resume(
        client,
        body.resume_text,
        body.job_description,
        missing_skills=body.missing_skills or None,
    )


@app.post("/api/v1/resume/add-experience", response_model=AddExperienceResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def add_experience_endpoint(
    request: Request,
    body: AddExperienceRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Add a work-experience entry, generating achievements when none are given."""
    return await add_work_experience(
        client,
        body.resume_text,
        body.job_title,
        body.company,
        achievements=body.achievements,
        date_range=body.date_range,
        description=body.description,
    )


@app.post("/api/v1/resume/create", response_model=CreatedResumeResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def create_resume_endpoint(
    request: Request,
    body: CreateResumeRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """
    Build a resume from scratch for a job description.

    - **work_experience**: At least one role with company, title and date range
    - **education**, **projects**, **certifications**, **licenses**: Carried over as given
    """
    logger.info(
        "Resume create request",
        roles=len(body.work_experience),
        education=len(body.education),
        projects=len(body.projects),
    )
    return await create_resume(
        client,
        body.job_description,
        [role.model_dump() for role in body.work_experience],
        current_summary=body.current_summary,
        education=[entry.model_dump() for entry in body.education],
        projects=[entry.model_dump() for entry in body.projects],
        certifications=body.certifications,
        licenses=body.licenses,
        contact_details=body.contact_details.model_dump() if body.contact_details else None,
    )


@app.post("/api/v1/resume/contact-details", response_model=ContactDetails)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def contact_details_endpoint(
    request: Request,
    body: ResumeTextRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Extract name, email, phone, profile links and location from resume text."""
    return await extract_contact_details(client, body.resume_text)


# =============================================================================
# Interview Endpoints
# =============================================================================


@app.post("/api/v1/interview/questions", response_model=InterviewQuestionsResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def interview_questions_endpoint(
    request: Request,
    body: InterviewQuestionsRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """
    Generate interview questions for a job.

    - **job_description**: The job posting
    - **question_count**: Questions per category (1-20)
    - **resume_text**: Optional resume text to tailor the questions
    """
    logger.info(
        "Interview questions request",
        question_count=body.question_count,
        has_resume=bool(body.resume_text),
    )
    return await generate_interview_questions(
        client, body.job_description, body.question_count, body.resume_text
    )


@app.post("/api/v1/interview/simulate", response_model=SimulationFeedback)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def simulate_interview_endpoint(
    request: Request,
    body: SimulationRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Evaluate interview answers and return per-answer and overall feedback."""
    return await simulate_interview(client, body.job_description, body.questions, body.answers)


@app.post("/api/v1/interview/answer-tips", response_model=AnswerTipsResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def answer_tips_endpoint(
    request: Request,
    body: AnswerTipsRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Generate answer tips for one or more questions; each item succeeds or fails alone."""
    outcomes = await generate_answer_tips_batch(client, body.questions, body.job_description)
    results = []
    for outcome in outcomes:
        if outcome.ok:
            results.append(AnswerTipsItem(question=outcome.question, status="ok", answer_tips=outcome.answer_tips))
        else:
            results.append(
                AnswerTipsItem(
                    question=outcome.question,
                    status="error",
                    error_kind=outcome.error.kind.value,
                    error=outcome.error.message,
                )
            )
    if results and all(item.status == "error" for item in results):
        raise outcomes[0].error
    return AnswerTipsResponse(results=results)


# =============================================================================
# Writing Endpoints
# =============================================================================


@app.post("/api/v1/cover-letter", response_model=CoverLetterResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def cover_letter_endpoint(
    request: Request,
    body: CoverLetterRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Write a cover letter tailored to the job and resume."""
    return await generate_cover_letter(client, body.job_description, body.resume_text, body.user_id)


@app.post("/api/v1/personal-statement", response_model=PersonalStatementResponse)
@limiter.limit(f"{settings.rate_limit_per_minute}/minute")
async def personal_statement_endpoint(
    request: Request,
    body: PersonalStatementRequest,
    client: CompletionClient = Depends(get_completion_client),
):
    """Write a personal statement of roughly the requested length."""
    return await generate_personal_statement(
        client,
        body.job_description,
        body.resume_text,
        target_word_count=body.target_word_count,
        purpose=body.purpose,
        user_id=body.user_id,
    )


# =============================================================================
# Entry point
# =============================================================================

if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "career_assist_api.main:app",
        host=settings.host,
        port=settings.port,
        reload=settings.is_development,
    )
