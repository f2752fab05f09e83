"""Pydantic models for API requests and responses."""

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

# =============================================================================
# Shared records
# =============================================================================


class WorkExperienceEntry(BaseModel):
    """A work-experience entry of a structured resume."""

    company: str = ""
    role: str = ""
    date_range: str = ""
    accomplishments: list[str] = Field(default_factory=list)


class EducationEntry(BaseModel):
    """An education entry."""

    institution: str = ""
    degree: str = ""
    graduation_date: str = ""


class StructuredResume(BaseModel):
    """A resume in its fixed structured form."""

    model_config = ConfigDict(populate_by_name=True)

    summary: str = Field(default="", alias="Summary")
    work_experience: list[WorkExperienceEntry] = Field(default_factory=list, alias="Work Experience")
    technical_skills: list[str] = Field(default_factory=list, alias="Technical Skills")
    education: list[EducationEntry] = Field(default_factory=list, alias="Education")
    certifications: list[str] = Field(default_factory=list, alias="Certifications")
    projects: list[str] = Field(default_factory=list, alias="Projects")


# =============================================================================
# Resume API Models
# =============================================================================


class ResumeTextRequest(BaseModel):
    """Request body carrying extracted resume text."""

    resume_text: str = Field(..., min_length=1, max_length=50000, description="Extracted resume text")


class ScoreRequest(BaseModel):
    """Request body for the scoring endpoints."""

    resume_text: str = Field(..., min_length=1, max_length=50000)
    job_description: str = Field(..., min_length=1, max_length=20000)


class OptimizeRequest(BaseModel):
    """Request body for resume optimization."""

    resume_text: str = Field(..., min_length=1, max_length=50000)
    job_description: str = Field(..., min_length=1, max_length=20000)
    missing_skills: list[str] = Field(default_factory=list, description="Skills to work into the rewrite")


class AddExperienceRequest(BaseModel):
    """Request body for adding a work-experience entry."""

    resume_text: str = Field(..., min_length=1, max_length=50000)
    job_title: str = Field(..., min_length=1, max_length=200)
    company: str = Field(..., min_length=1, max_length=200)
    date_range: str = Field(default="Present", max_length=100)
    achievements: str | None = Field(default=None, description="Newline or bullet separated achievements")
    description: str | None = Field(default=None, max_length=5000, description="Context for generated achievements")


class CategoryScores(BaseModel):
    skills_match: int
    experience_relevance: int
    education_certifications: int
    additional_factors: int


class OptimizationValidation(BaseModel):
    achieved_zero_missing: bool
    meets_target_score: bool
    skills_demonstrated: float


class ResumeScoreResponse(BaseModel):
    """Score of a resume against a job description."""

    match_score: float = Field(..., ge=0, le=100)
    match_percentage: float = Field(..., ge=0, le=100)
    matched_skills: list[str]
    missing_skills: list[str]
    recommendations: list[str]
    category_scores: CategoryScores
    alternative_positions: list[str] = Field(default_factory=list)
    optimization_validation: OptimizationValidation | None = None


class OptimizedWorkEntry(BaseModel):
    company: str = ""
    title: str = ""
    dates: str = ""
    achievements: list[str] = Field(default_factory=list)


class OptimizedSkills(BaseModel):
    technical_skills: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)
    industry_knowledge: list[str] = Field(default_factory=list)


class ProjectEntry(BaseModel):
    title: str = ""
    description: str = ""
    technologies: list[str] = Field(default_factory=list)


class OptimizedResumeResponse(BaseModel):
    """A resume rewritten for a job."""

    optimized_text: str
    summary: str = ""
    skills: OptimizedSkills = Field(default_factory=OptimizedSkills)
    work_experience: list[OptimizedWorkEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    note: str = ""


class AddExperienceResponse(BaseModel):
    """The updated resume and the entry that was added."""

    resume: StructuredResume
    added_entry: WorkExperienceEntry


class ContactDetails(BaseModel):
    name: str = ""
    email: str = ""
    phone: str = ""
    linkedin: str = ""
    github: str = ""
    location: str = ""


class RoleInput(BaseModel):
    company: str = Field(default="", max_length=200)
    title: str = Field(default="", max_length=200)
    date_range: str = Field(default="", max_length=100)


class EducationInput(BaseModel):
    institution: str = Field(default="", max_length=200)
    degree: str = Field(default="", max_length=200)
    graduation_date: str = Field(default="", max_length=100)


class ProjectInput(BaseModel):
    title: str = Field(default="", max_length=200)
    description: str = Field(default="", max_length=5000)
    technologies: str = Field(default="", max_length=1000, description="Comma separated")


class CreateResumeRequest(BaseModel):
    """Request body for building a resume from scratch."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    current_summary: str | None = Field(default=None, max_length=5000)
    work_experience: list[RoleInput] = Field(default_factory=list, max_length=20)
    education: list[EducationInput] = Field(default_factory=list, max_length=10)
    projects: list[ProjectInput] = Field(default_factory=list, max_length=20)
    certifications: str | None = Field(default=None, max_length=2000, description="Comma or newline separated")
    licenses: str | None = Field(default=None, max_length=2000, description="Comma or newline separated")
    contact_details: ContactDetails | None = None


class CreatedSkills(BaseModel):
    technical_skills: list[str] = Field(default_factory=list)
    soft_skills: list[str] = Field(default_factory=list)


class CreatedResumeResponse(BaseModel):
    """A resume written from the candidate's own inputs."""

    summary: str = ""
    skills: CreatedSkills = Field(default_factory=CreatedSkills)
    work_experience: list[OptimizedWorkEntry] = Field(default_factory=list)
    education: list[EducationEntry] = Field(default_factory=list)
    projects: list[ProjectEntry] = Field(default_factory=list)
    certifications: list[str] = Field(default_factory=list)
    contact_details: ContactDetails = Field(default_factory=ContactDetails)


# =============================================================================
# Interview API Models
# =============================================================================


class InterviewQuestionsRequest(BaseModel):
    """Request body for interview question generation."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    question_count: int = Field(default=5, ge=1, le=20)
    resume_text: str | None = Field(default=None, max_length=50000)


class InterviewQuestionSet(BaseModel):
    technical_questions: list[str] = Field(default_factory=list)
    behavioral_questions: list[str] = Field(default_factory=list)
    situational_questions: list[str] = Field(default_factory=list)
    role_specific_questions: list[str] = Field(default_factory=list)
    culture_fit_questions: list[str] = Field(default_factory=list)


class InterviewMetadata(BaseModel):
    job_analyzed: bool
    resume_analyzed: bool
    question_count: int
    categories: list[str]


class InterviewQuestionsResponse(BaseModel):
    questions: InterviewQuestionSet
    metadata: InterviewMetadata


class SimulationRequest(BaseModel):
    """Request body for interview simulation."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    questions: list[str] = Field(..., min_length=1, max_length=20)
    answers: list[str] = Field(..., min_length=1, max_length=20)


class AnswerFeedback(BaseModel):
    question: str
    strengths: list[str]
    improvements: list[str]
    score: float = Field(..., ge=0, le=10)
    better_answer: str


class OverallEvaluation(BaseModel):
    score: float = Field(..., ge=0, le=10)
    strengths: list[str]
    improvements: list[str]
    recommendation: str


class SimulationFeedback(BaseModel):
    answer_feedback: list[AnswerFeedback]
    overall_evaluation: OverallEvaluation


class AnswerTipsRequest(BaseModel):
    """Request body for answer tips; one question or several."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    questions: list[str] = Field(..., min_length=1, max_length=30)


class AnswerTips(BaseModel):
    answer_structure: list[str]
    key_points: list[str]
    skills_to_emphasize: list[str]
    mistakes_to_avoid: list[str]
    example_answer: str


class AnswerTipsItem(BaseModel):
    question: str
    status: Literal["ok", "error"]
    answer_tips: AnswerTips | None = None
    error_kind: str | None = None
    error: str | None = None


class AnswerTipsResponse(BaseModel):
    results: list[AnswerTipsItem]


# =============================================================================
# Writing API Models
# =============================================================================


class CoverLetterRequest(BaseModel):
    """Request body for cover letter generation."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    resume_text: str = Field(..., min_length=1, max_length=50000)
    user_id: str | None = None


class CoverLetterResponse(BaseModel):
    cover_letter: str
    created_at: str
    word_count: int
    is_tailored: bool
    user_id: str | None = None


class PersonalStatementRequest(BaseModel):
    """Request body for personal statement generation."""

    job_description: str = Field(..., min_length=1, max_length=20000)
    resume_text: str = Field(..., min_length=1, max_length=50000)
    target_word_count: int = Field(default=600, ge=100, le=1500)
    purpose: str | None = Field(default=None, max_length=2000)
    user_id: str | None = None


class PersonalStatementResponse(BaseModel):
    personal_statement: str
    created_at: str
    word_count: int
    is_tailored: bool
    user_id: str | None = None


# =============================================================================
# Health API Models
# =============================================================================


class HealthResponse(BaseModel):
    """Response for health check endpoint."""

    status: Literal["healthy", "degraded", "unhealthy"] = Field(..., description="Service status")
    llm_configured: bool = Field(..., description="Whether a completion service key is set")
    model: str = Field(..., description="Default completion model")
    version: str = Field(..., description="API version")


class ErrorResponse(BaseModel):
    """Body returned for failed generation requests."""

    detail: str
    kind: str | None = None
