from __future__ import annotations

REVIEW_RESULT_SHAPE = (
    "{overallScore:number, sections:[{key:string,score:number,feedback:string}], "
    "bulletsRewrite:string[], checklist:string[]}"
)

# (criterion, weight in percent); weights sum to 100.
REVIEW_RUBRIC: tuple[tuple[str, int], ...] = (
    ("Clarity", 25),
    ("Results (quantified outcomes)", 25),
    ("Relevance to target role", 20),
    ("Structure (sections, bullet style)", 15),
    ("Language (verbs, grammar, tense)", 10),
    ("Skills (tools, balance)", 5),
)


def rubric_lines() -> str:
    return "\n".join(f"- {criterion} {weight}%" for criterion, weight in REVIEW_RUBRIC)


def resume_review_prompt(text: str, job: str = "", language: str = "en") -> str:
    target_role = job.strip() if job and job.strip() else "N/A"
    return (
        "You are a resume reviewer. Analyze the resume text below and respond with STRICT JSON "
        "using this exact schema:\n"
        f"{REVIEW_RESULT_SHAPE}\n\n"
        "Scoring weights:\n"
        f"{rubric_lines()}\n\n"
        f"Language: {language}. Target role: {target_role}.\n"
        "Text:\n"
        '"""\n'
        f"{text}\n"
        '"""\n'
        "Return only JSON, no prose."
    )
