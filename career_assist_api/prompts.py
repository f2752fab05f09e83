"""Prompt builders: one function per task, each returning a CompletionRequest.

Inputs are embedded through fixed templates; structured inputs are rendered
with ``json.dumps(..., indent=2)`` so the same inputs always produce the same
prompt. Builders raise ``InvalidInputError`` when a required input is missing.
"""

import json
import math
from typing import Any

from career_assist_api.completion_client import CompletionRequest
from career_assist_api.errors import InvalidInputError

# =============================================================================
# Configuration
# =============================================================================

MIN_QUESTION_COUNT = 1
MAX_QUESTION_COUNT = 20
MIN_STATEMENT_WORDS = 100
MAX_STATEMENT_WORDS = 1500
DEFAULT_STATEMENT_WORDS = 600
COVER_LETTER_WORDS = (285, 320)

JSON_ONLY = "Return only valid JSON. Do not wrap it in markdown."


def _require(value: str | None, name: str) -> str:
    if not value or not value.strip():
        raise InvalidInputError(f"{name} is required")
    return value.strip()


def _dump(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False)


def _provided(value: Any) -> str:
    if not value or (isinstance(value, str) and not value.strip()):
        return "Not provided"
    return value.strip() if isinstance(value, str) else _dump(value)


# =============================================================================
# Job analysis
# =============================================================================


def build_job_requirements_request(job_description: str) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    return CompletionRequest(
        task="job_requirements",
        system_prompt=(
            "You are a recruiting analyst. You read job postings and list what the "
            f"employer asks for, nothing more. {JSON_ONLY}"
        ),
        user_prompt=f"""Extract the requirements from this job description.

JOB DESCRIPTION:
{job_description}

Return JSON with exactly these keys:
{{
  "required_skills": ["skills the posting says are required"],
  "preferred_skills": ["skills described as preferred or a plus"],
  "experience_level": "years or seniority asked for",
  "education_requirements": ["degrees or certifications asked for"],
  "job_responsibilities": ["main duties of the role"]
}}""",
        temperature=0.1,
        max_tokens=1500,
    )


def build_job_terms_request(job_description: str) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    return CompletionRequest(
        task="job_key_terms",
        system_prompt=f"You identify the vocabulary an applicant tracking system will look for. {JSON_ONLY}",
        user_prompt=f"""List the key terms of this job description.

JOB DESCRIPTION:
{job_description}

Return JSON:
{{
  "keywords": ["terms and phrases likely used for screening"],
  "industry": "industry of the employer",
  "job_type": "type of role, e.g. full-time engineering",
  "company_values": ["values or culture traits the posting stresses"]
}}""",
        temperature=0.1,
        max_tokens=1000,
    )


# =============================================================================
# Resume structure
# =============================================================================


def build_segment_sections_request(resume_text: str) -> CompletionRequest:
    resume_text = _require(resume_text, "Resume text")
    return CompletionRequest(
        task="resume_sections",
        system_prompt=f"You split resumes into their sections without rewriting them. {JSON_ONLY}",
        user_prompt=f"""Split this resume into sections. Use the section titles as keys and
the section text, copied verbatim, as values. Put contact details under
"Contact Information".

RESUME:
{resume_text}""",
        temperature=0.1,
        max_tokens=4000,
    )


def build_contact_details_request(resume_text: str) -> CompletionRequest:
    resume_text = _require(resume_text, "Resume text")
    return CompletionRequest(
        task="contact_details",
        system_prompt=f"You extract contact details from resumes. {JSON_ONLY}",
        user_prompt=f"""Extract the candidate's contact details from this resume. Use an empty
string for anything the resume does not state.

RESUME:
{resume_text}

Return JSON:
{{"name": "", "email": "", "phone": "", "linkedin": "", "github": "", "location": ""}}""",
        temperature=0.2,
        max_tokens=400,
    )


def build_structure_resume_request(sections: dict[str, str]) -> CompletionRequest:
    if not sections:
        raise InvalidInputError("Resume sections are required")
    return CompletionRequest(
        task="resume_structure",
        system_prompt=(
            "You convert resume sections into a fixed structure. Keep the candidate's "
            f"wording and never invent employers, dates or degrees. {JSON_ONLY}"
        ),
        user_prompt=f"""Convert these resume sections into structured data.

SECTIONS:
{_dump(sections)}

Return JSON with exactly these keys:
{{
  "Summary": "professional summary",
  "Work Experience": [
    {{"company": "", "role": "", "date_range": "", "accomplishments": ["..."]}}
  ],
  "Technical Skills": ["..."],
  "Education": [
    {{"institution": "", "degree": "", "graduation_date": ""}}
  ],
  "Certifications": ["..."],
  "Projects": ["..."]
}}
Use an empty string or empty list for anything the resume does not contain.""",
        temperature=0.1,
        max_tokens=3000,
    )


def build_skills_request(context: str) -> CompletionRequest:
    context = _require(context, "Resume text")
    return CompletionRequest(
        task="resume_skills",
        system_prompt=f"You list the skills a resume demonstrates. {JSON_ONLY}",
        user_prompt=f"""List every technical and soft skill shown in this resume text.

RESUME TEXT:
{context}

Return JSON: {{"skills": ["skill", "..."]}}""",
        temperature=0.1,
        max_tokens=1000,
    )


# =============================================================================
# Scoring
# =============================================================================


def build_score_parse_request(resume_text: str, job_description: str) -> CompletionRequest:
    resume_text = _require(resume_text, "Resume text")
    job_description = _require(job_description, "Job description")
    return CompletionRequest(
        task="score_parse",
        system_prompt=(
            "You parse a resume and a job description together. Extract all technical "
            f"and soft skills and the relevant experience. {JSON_ONLY}"
        ),
        user_prompt=f"""Parse the resume and the job description below.

RESUME TEXT:
{resume_text}

JOB DESCRIPTION:
{job_description}

Return JSON:
{{
  "resume_summary": "2-3 sentence professional summary from the resume",
  "resume_skills": ["technical and soft skills found anywhere in the resume"],
  "resume_experience": "overview of recent roles, achievements and project environments",
  "job_required_skills": ["..."],
  "job_preferred_skills": ["..."],
  "job_keywords": ["..."],
  "experience_level": "experience asked for by the job"
}}

When a resume phrase bundles skills (for example "Planning and Organizational
Skills"), list each skill separately.""",
        temperature=0.1,
        max_tokens=2500,
    )


def _parsed_block(parsed: dict[str, Any]) -> str:
    return f"""RESUME:
Summary: {parsed["resume_summary"]}
Skills: {", ".join(parsed["resume_skills"])}
Experience: {parsed["resume_experience"]}

JOB REQUIREMENTS:
Required Skills: {", ".join(parsed["job_required_skills"])}
Preferred Skills: {", ".join(parsed["job_preferred_skills"])}
Keywords: {", ".join(parsed["job_keywords"])}
Experience Level: {parsed["experience_level"]}"""


_MISSING_SKILL_RULES = """Rules for missing_skills:
- A requirement phrase is missing only if one of its components is truly absent from the resume.
- Never list a skill that the resume already shows, even under different wording.
- Never put the same skill in both matched_skills and missing_skills."""


def build_score_request(parsed: dict[str, Any]) -> CompletionRequest:
    return CompletionRequest(
        task="resume_score",
        system_prompt=f"You are a precise resume scorer. {JSON_ONLY}",
        user_prompt=f"""Score how well this resume matches the job.

{_parsed_block(parsed)}

Weighting: skills 50%, experience 40%, keywords 10%.

Return JSON:
{{
  "match_score": 0,
  "matched_skills": ["skills present in both"],
  "missing_skills": ["required or preferred skills absent from the resume"],
  "recommendations": ["three specific improvements"],
  "alternative_positions": ["two job titles, only if the score is below 40"]
}}

{_MISSING_SKILL_RULES}""",
        temperature=0.1,
        max_tokens=1500,
    )


def build_optimized_score_request(parsed: dict[str, Any]) -> CompletionRequest:
    return CompletionRequest(
        task="optimized_resume_score",
        system_prompt=(
            "You validate a resume that was rewritten for a specific job. Check technical "
            f"and soft skills thoroughly before calling anything missing. {JSON_ONLY}"
        ),
        user_prompt=f"""Validate this optimized resume against the job.

{_parsed_block(parsed)}

Weighting: skills 50%, experience shown in accomplishments 30%, education 10%, keywords 10%.

Return JSON:
{{
  "match_score": 0,
  "matched_skills": ["..."],
  "missing_skills": ["genuinely missing skills"],
  "recommendations": ["at most two minor improvements"],
  "optimization_validation": {{
    "achieved_zero_missing": true,
    "meets_target_score": true,
    "skills_demonstrated": 0
  }}
}}

{_MISSING_SKILL_RULES}""",
        temperature=0.1,
        max_tokens=1500,
    )


# =============================================================================
# Optimization and experience
# =============================================================================


def build_optimize_request(
    resume_text: str,
    job_description: str,
    requirements: dict[str, Any],
    key_terms: dict[str, Any],
    structured_resume: dict[str, Any] | None = None,
    missing_skills: list[str] | None = None,
) -> CompletionRequest:
    resume_text = _require(resume_text, "Resume text")
    job_description = _require(job_description, "Job description")

    missing_block = ""
    if missing_skills:
        missing_block = (
            "\nSKILLS TO INTEGRATE (work each into the skills section and, where the "
            "experience supports it, into an accomplishment):\n"
            + "\n".join(f"- {skill}" for skill in missing_skills)
            + "\n"
        )
    structured_block = ""
    if structured_resume:
        structured_block = f"\nCURRENT STRUCTURE:\n{_dump(structured_resume)}\n"

    return CompletionRequest(
        task="resume_optimize",
        system_prompt=(
            "You are an expert resume writer. You tailor resumes to a job without "
            "inventing employers, dates, degrees or certifications."
        ),
        user_prompt=f"""Rewrite this resume for the job below.

RESUME:
{resume_text}

JOB DESCRIPTION:
{job_description}

JOB REQUIREMENTS:
{_dump(requirements)}

KEY TERMS:
{_dump(key_terms)}
{structured_block}{missing_block}
Write the optimized resume as plain text with these headings, in order:
PROFESSIONAL SUMMARY, SKILLS (technical skills, then a "Soft Skills" line),
WORK EXPERIENCE (one entry per role: "Title at Company (dates)" followed by
bullets starting with •), EDUCATION, CERTIFICATIONS.

Keep every education entry from the original resume.

After the plain text, add the same content as a ```json block:
{{
  "summary": "",
  "skills": {{"technical_skills": [], "soft_skills": [], "industry_knowledge": []}},
  "work_experience": [{{"company": "", "title": "", "dates": "", "achievements": []}}],
  "education": [{{"institution": "", "degree": "", "graduation_date": ""}}],
  "certifications": [],
  "projects": [{{"title": "", "description": "", "technologies": []}}]
}}""",
        temperature=0.3,
        output_mode="text_with_json",
        max_tokens=4000,
    )


def build_achievements_request(job_title: str, company: str, description: str | None = None) -> CompletionRequest:
    job_title = _require(job_title, "Job title")
    company = _require(company, "Company")
    context = f"\nROLE CONTEXT:\n{description.strip()}\n" if description and description.strip() else ""
    return CompletionRequest(
        task="experience_achievements",
        system_prompt=(
            "You write resume bullet points: action verb first, concrete scope, "
            f"measurable results where plausible. {JSON_ONLY}"
        ),
        user_prompt=f"""Write 3-5 resume accomplishments for a {job_title} at {company}.
{context}
Return JSON: {{"achievements": ["...", "..."]}}""",
        temperature=0.7,
        max_tokens=800,
    )


def build_create_resume_request(
    job_description: str,
    work_experience: list[dict[str, str]],
    current_summary: str | None = None,
    education: list[dict[str, str]] | None = None,
    projects: list[dict[str, str]] | None = None,
    certifications: str | None = None,
    licenses: str | None = None,
) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    if not work_experience:
        raise InvalidInputError("At least one work experience is required")

    return CompletionRequest(
        task="resume_create",
        system_prompt=(
            "You are an expert resume writer who builds achievement-focused resumes "
            f"that match job requirements. {JSON_ONLY}"
        ),
        user_prompt=f"""Write the generated parts of a new resume for the job below. Do not
write education, certifications or projects; the candidate supplies those.

JOB DESCRIPTION:
{job_description}

CURRENT SUMMARY:
{_provided(current_summary)}

WORK EXPERIENCE:
{_dump(work_experience)}

EDUCATION:
{_provided(education)}

PROJECTS:
{_provided(projects)}

CERTIFICATIONS:
{_provided(certifications)}

LICENSES:
{_provided(licenses)}

1. Summary: 3-4 sentences on the expertise this job asks for.
2. Technical skills: the 12-15 tools, languages and methods the job needs most.
   Name specific tools (e.g. "Tableau, Power BI"), not categories.
3. Soft skills: 6-8 interpersonal skills the role calls for.
4. For each work experience, 5-6 STAR-method accomplishments that show skills
   from the job description, with concrete actions and metrics. Keep each
   company, title and date range exactly as given, in the same order.

Return JSON:
{{
  "summary": "",
  "skills": {{"technical_skills": [], "soft_skills": []}},
  "work_experience": [{{"company": "", "title": "", "dates": "", "achievements": []}}]
}}""",
        temperature=0.3,
        max_tokens=3000,
    )


# =============================================================================
# Interview preparation
# =============================================================================


def build_interview_questions_request(
    job_description: str,
    requirements: dict[str, Any],
    question_count: int = 5,
    structured_resume: dict[str, Any] | None = None,
) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    if not MIN_QUESTION_COUNT <= question_count <= MAX_QUESTION_COUNT:
        raise InvalidInputError(
            f"Question count must be between {MIN_QUESTION_COUNT} and {MAX_QUESTION_COUNT}"
        )

    if structured_resume:
        candidate_block = f"""CANDIDATE RESUME:
{_dump(structured_resume)}

Tailor the questions to this candidate: probe the experience they claim and
the gaps between their resume and the requirements."""
    else:
        candidate_block = "No resume was provided; write questions any strong applicant should expect."

    return CompletionRequest(
        task="interview_questions",
        system_prompt=(
            "You are an expert interviewer who writes questions tailored to a job "
            f"description and, when given, a candidate profile. {JSON_ONLY}"
        ),
        user_prompt=f"""Write interview questions for this role.

JOB DESCRIPTION:
{job_description}

JOB REQUIREMENTS:
{_dump(requirements)}

{candidate_block}

Write {question_count} questions for each category.

Return JSON:
{{
  "technical_questions": ["..."],
  "behavioral_questions": ["..."],
  "situational_questions": ["..."],
  "role_specific_questions": ["..."],
  "culture_fit_questions": ["..."]
}}""",
        temperature=0.7,
    )


def build_simulation_request(
    job_description: str,
    requirements: dict[str, Any],
    qa_pairs: list[dict[str, str]],
) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    if not qa_pairs:
        raise InvalidInputError("At least one question and answer is required")

    transcript = "\n\n".join(
        f"Question {i}: {pair['question']}\nAnswer {i}: {pair['answer']}"
        for i, pair in enumerate(qa_pairs, start=1)
    )
    return CompletionRequest(
        task="interview_simulation",
        system_prompt=(
            "You are an expert interviewer who gives candid, constructive feedback on "
            f"interview answers. {JSON_ONLY}"
        ),
        user_prompt=f"""Evaluate these interview answers for the role below.

JOB DESCRIPTION:
{job_description}

JOB REQUIREMENTS:
{_dump(requirements)}

TRANSCRIPT:
{transcript}

Score each answer from 1 to 10 and the interview overall from 1 to 10.

Return JSON:
{{
  "answer_feedback": [
    {{
      "question": "the question text",
      "strengths": ["..."],
      "improvements": ["..."],
      "score": 0,
      "better_answer": "a stronger version of the answer"
    }}
  ],
  "overall_evaluation": {{
    "score": 0,
    "strengths": ["..."],
    "improvements": ["..."],
    "recommendation": "..."
  }}
}}
Give one answer_feedback entry per question, in order.""",
        temperature=0.7,
    )


def build_answer_tips_request(question: str, job_description: str) -> CompletionRequest:
    question = _require(question, "Question")
    job_description = _require(job_description, "Job description")
    return CompletionRequest(
        task="answer_tips",
        system_prompt=(
            "You are an interview coach. You explain how to answer a question well "
            f"for a specific role. {JSON_ONLY}"
        ),
        user_prompt=f"""Give tips for answering this interview question.

QUESTION:
{question}

JOB DESCRIPTION:
{job_description}

Return JSON:
{{
  "answer_structure": ["steps for organizing the answer"],
  "key_points": ["points worth making"],
  "skills_to_emphasize": ["skills from the job to highlight"],
  "mistakes_to_avoid": ["..."],
  "example_answer": "a concise example answer"
}}""",
        temperature=0.7,
        max_tokens=2000,
    )


# =============================================================================
# Writing
# =============================================================================


def build_cover_letter_request(
    job_description: str,
    structured_resume: dict[str, Any],
    requirements: dict[str, Any],
) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    low, high = COVER_LETTER_WORDS
    return CompletionRequest(
        task="cover_letter",
        system_prompt=(
            "You write concise, specific cover letters in the candidate's voice. You "
            "only cite experience that appears in the resume."
        ),
        user_prompt=f"""Write a cover letter for this job.

JOB DESCRIPTION:
{job_description}

JOB REQUIREMENTS:
{_dump(requirements)}

CANDIDATE RESUME:
{_dump(structured_resume)}

Length: {low}-{high} words. Open with the role and why the candidate fits,
connect two or three accomplishments to the requirements, close with a call to
action. Return only the letter text.""",
        temperature=0.4,
        output_mode="text",
        max_tokens=1000,
    )


def build_personal_statement_request(
    job_description: str,
    structured_resume: dict[str, Any],
    target_word_count: int = DEFAULT_STATEMENT_WORDS,
    purpose: str | None = None,
) -> CompletionRequest:
    job_description = _require(job_description, "Job description")
    if not MIN_STATEMENT_WORDS <= target_word_count <= MAX_STATEMENT_WORDS:
        raise InvalidInputError(
            f"Target word count must be between {MIN_STATEMENT_WORDS} and {MAX_STATEMENT_WORDS}"
        )
    purpose_line = f"\nPURPOSE:\n{purpose.strip()}\n" if purpose and purpose.strip() else ""
    return CompletionRequest(
        task="personal_statement",
        system_prompt=(
            "You write first-person personal statements that read as genuine and "
            "specific, grounded in the candidate's real experience."
        ),
        user_prompt=f"""Write a personal statement for this opportunity.

OPPORTUNITY:
{job_description}
{purpose_line}
CANDIDATE RESUME:
{_dump(structured_resume)}

Aim for about {target_word_count} words. Return only the statement text.""",
        temperature=0.6,
        output_mode="text",
        max_tokens=min(2000, math.ceil(target_word_count * 1.5)),
    )
