"""Record schemas for every generation task."""

from career_assist_api.schema import (
    Schema,
    boolean_field,
    number_field,
    object_field,
    object_list_field,
    string_field,
    string_list_field,
)

# =============================================================================
# Resume structure
# =============================================================================

RESUME_WORK_ENTRY = Schema(
    "resume_work_entry",
    (
        string_field("company"),
        string_field("role"),
        string_field("date_range"),
        string_list_field("accomplishments"),
    ),
)

EDUCATION_ENTRY = Schema(
    "education_entry",
    (
        string_field("institution"),
        string_field("degree"),
        string_field("graduation_date"),
    ),
)

STRUCTURED_RESUME = Schema(
    "structured_resume",
    (
        string_field("Summary"),
        object_list_field("Work Experience", RESUME_WORK_ENTRY),
        string_list_field("Technical Skills"),
        object_list_field("Education", EDUCATION_ENTRY),
        string_list_field("Certifications"),
        string_list_field("Projects"),
    ),
)

SKILLS = Schema("skills", (string_list_field("skills"),))

# =============================================================================
# Job analysis
# =============================================================================

JOB_REQUIREMENTS = Schema(
    "job_requirements",
    (
        string_list_field("required_skills"),
        string_list_field("preferred_skills"),
        string_field("experience_level"),
        string_list_field("education_requirements"),
        string_list_field("job_responsibilities"),
    ),
)

JOB_KEY_TERMS = Schema(
    "job_key_terms",
    (
        string_list_field("keywords"),
        string_field("industry"),
        string_field("job_type"),
        string_list_field("company_values"),
    ),
)

# =============================================================================
# Scoring
# =============================================================================

PARSED_RESUME_AND_JOB = Schema(
    "parsed_resume_and_job",
    (
        string_field("resume_summary"),
        string_list_field("resume_skills"),
        string_field("resume_experience"),
        string_list_field("job_required_skills"),
        string_list_field("job_preferred_skills"),
        string_list_field("job_keywords"),
        string_field("experience_level"),
    ),
)

OPTIMIZATION_VALIDATION = Schema(
    "optimization_validation",
    (
        boolean_field("achieved_zero_missing"),
        boolean_field("meets_target_score"),
        number_field("skills_demonstrated", minimum=0),
    ),
)

RESUME_SCORE = Schema(
    "resume_score",
    (
        number_field("match_score", minimum=0, maximum=100),
        string_list_field("matched_skills"),
        string_list_field("missing_skills"),
        string_list_field("recommendations"),
        string_list_field("alternative_positions"),
        object_field("optimization_validation", OPTIMIZATION_VALIDATION),
    ),
)

# =============================================================================
# Optimization and experience
# =============================================================================

OPTIMIZED_WORK_ENTRY = Schema(
    "optimized_work_entry",
    (
        string_field("company"),
        string_field("title"),
        string_field("dates"),
        string_list_field("achievements"),
    ),
)

OPTIMIZED_SKILLS = Schema(
    "optimized_skills",
    (
        string_list_field("technical_skills"),
        string_list_field("soft_skills"),
        string_list_field("industry_knowledge"),
    ),
)

PROJECT_ENTRY = Schema(
    "project_entry",
    (
        string_field("title"),
        string_field("description"),
        string_list_field("technologies"),
    ),
)

OPTIMIZED_RESUME = Schema(
    "optimized_resume",
    (
        string_field("summary"),
        object_field("skills", OPTIMIZED_SKILLS),
        object_list_field("work_experience", OPTIMIZED_WORK_ENTRY),
        object_list_field("education", EDUCATION_ENTRY),
        string_list_field("certifications"),
        object_list_field("projects", PROJECT_ENTRY),
    ),
)

ACHIEVEMENTS = Schema("achievements", (string_list_field("achievements"),))

# =============================================================================
# Resume creation and contact details
# =============================================================================

CREATED_SKILLS = Schema(
    "created_skills",
    (
        string_list_field("technical_skills"),
        string_list_field("soft_skills"),
    ),
)

CREATED_RESUME = Schema(
    "created_resume",
    (
        string_field("summary"),
        object_field("skills", CREATED_SKILLS),
        object_list_field("work_experience", OPTIMIZED_WORK_ENTRY),
    ),
)

CONTACT_FIELDS = ("name", "email", "phone", "linkedin", "github", "location")

CONTACT_DETAILS = Schema("contact_details", tuple(string_field(name) for name in CONTACT_FIELDS))

# =============================================================================
# Interview preparation
# =============================================================================

QUESTION_CATEGORIES = (
    "technical_questions",
    "behavioral_questions",
    "situational_questions",
    "role_specific_questions",
    "culture_fit_questions",
)

INTERVIEW_QUESTIONS = Schema(
    "interview_questions",
    tuple(string_list_field(name) for name in QUESTION_CATEGORIES),
)

ANSWER_FEEDBACK = Schema(
    "answer_feedback",
    (
        string_field("question"),
        string_list_field("strengths"),
        string_list_field("improvements"),
        number_field("score", minimum=0, maximum=10),
        string_field("better_answer"),
    ),
)

OVERALL_EVALUATION = Schema(
    "overall_evaluation",
    (
        number_field("score", minimum=0, maximum=10),
        string_list_field("strengths"),
        string_list_field("improvements"),
        string_field("recommendation"),
    ),
)

SIMULATION_FEEDBACK = Schema(
    "simulation_feedback",
    (
        object_list_field("answer_feedback", ANSWER_FEEDBACK),
        object_field("overall_evaluation", OVERALL_EVALUATION),
    ),
)

ANSWER_TIPS = Schema(
    "answer_tips",
    (
        string_list_field("answer_structure"),
        string_list_field("key_points"),
        string_list_field("skills_to_emphasize"),
        string_list_field("mistakes_to_avoid"),
        string_field("example_answer"),
    ),
)
