"""
ATS compatibility scoring.

Scores a structured resume on four weighted sub-scores and collects
actionable findings:

- keywords: coverage of the target role's keywords (only with a target role)
- structure: presence of the sections every ATS expects
- impact: share of achievement bullets carrying a measurable quantity
- formatting: share of formatting checks that pass (see validators.py)

Each sub-score is a ratio in [0, 1] multiplied by its weight. Without a
target role the keywords weight is dropped and the remaining weights are
scaled up proportionally, so the overall score stays on a 0-100 scale.
"""

import logging
from typing import Dict, List, Optional, Tuple, Union

from keywords import OVERUSE_THRESHOLD, match_keywords, resolve_target_role, resume_text_fields
from models import (
    SEVERITY_RANK,
    ATSScore,
    Finding,
    FindingPointer,
    KeywordAnalysis,
    Resume,
    SubScore,
    TargetRole,
)
from validators import ResumeValidator, is_quantified

logger = logging.getLogger(__name__)

SUB_SCORE_WEIGHTS = {
    'keywords': 30.0,
    'structure': 25.0,
    'impact': 20.0,
    'formatting': 25.0,
}

# Fraction of the structure sub-score lost per missing required element.
STRUCTURE_DEDUCTIONS = {
    'name': 0.25,
    'email': 0.25,
    'title': 0.15,
    'experience': 0.20,
    'skills': 0.15,
}

IMPACT_TARGET_RATIO = 0.5  # half of all bullets quantified earns full credit
LOW_IMPACT_RATIO = 0.3
LOW_KEYWORD_COVERAGE = 0.6

SCORE_LABELS = [
    (90, 'Excellent'),
    (80, 'Very Good'),
    (70, 'Good'),
    (60, 'Fair'),
    (50, 'Needs Work'),
]

RoleInput = Union[TargetRole, str, None]


def score_label(score: int) -> str:
    for threshold, label in SCORE_LABELS:
        if score >= threshold:
            return label
    return 'Poor'


def effective_weights(with_keywords: bool) -> Dict[str, float]:
    """Sub-score weights, redistributing the keywords weight when there is no target role."""
    if with_keywords:
        return dict(SUB_SCORE_WEIGHTS)
    remaining = {name: weight for name, weight in SUB_SCORE_WEIGHTS.items() if name != 'keywords'}
    scale = 100.0 / sum(remaining.values())
    return {name: weight * scale for name, weight in remaining.items()}


def _coerce_target_role(target_role: RoleInput) -> Optional[TargetRole]:
    if target_role is None:
        return None
    if isinstance(target_role, str):
        return resolve_target_role(target_role)
    if target_role.keywords:
        resolved = resolve_target_role(None, target_role.keywords)
        return resolved.model_copy(update={'label': target_role.label}) if resolved else None
    return resolve_target_role(target_role.label)


def _filled_entries(resume: Resume) -> Tuple[list, list]:
    experience = [item for item in resume.visible_experience() if not item.is_empty()]
    projects = [item for item in resume.visible_projects() if not item.is_empty()]
    return experience, projects


def score_structure(resume: Resume) -> Tuple[float, List[Finding]]:
    header = resume.header
    experience, projects = _filled_entries(resume)
    missing = []
    if not header.name.strip():
        missing.append(('name', 'header', 'Name is missing from contact information'))
    if not header.email.strip():
        missing.append(('email', 'header', 'Email is missing from contact information'))
    if not header.title.strip():
        missing.append(('title', 'header', 'Professional title is missing from the header'))
    if not experience and not projects:
        missing.append(('experience', 'experience', 'Add at least one experience or project entry'))
    if not resume.visible_skills():
        missing.append(('skills', 'skills', 'Skills section is missing or empty'))

    findings = [
        Finding(
            severity='critical',
            code=f'MISSING_{element.upper()}',
            message=message,
            pointer=FindingPointer(section=section),
        )
        for element, section, message in missing
    ]
    ratio = 1.0 - sum(STRUCTURE_DEDUCTIONS[element] for element, _, _ in missing)
    return max(0.0, ratio), findings


def score_keywords(resume: Resume, role: TargetRole) -> Tuple[float, KeywordAnalysis, List[Finding]]:
    matches = match_keywords(role.keywords, resume_text_fields(resume))
    found = [m.keyword for m in matches if m.found]
    missing = [m.keyword for m in matches if not m.found]
    overused = [m.keyword for m in matches if m.occurrences > OVERUSE_THRESHOLD]
    ratio = len(found) / len(matches) if matches else 0.0

    findings = []
    if missing:
        low = ratio < LOW_KEYWORD_COVERAGE
        findings.append(Finding(
            severity='warning' if low else 'info',
            code='LOW_KEYWORD_COVERAGE' if low else 'MISSING_KEYWORDS',
            message=f"Resume covers {round(ratio * 100)}% of {role.label or 'target role'} keywords; "
                    f"missing: {', '.join(missing)}",
            fix='Work the missing keywords into your summary, skills and bullet points where they apply',
        ))
    if overused:
        findings.append(Finding(
            severity='info',
            code='KEYWORD_OVERUSE',
            message=f"Some keywords are overused: {', '.join(overused)}",
            fix='Use synonyms to add variety',
        ))

    analysis = KeywordAnalysis(found=found, missing=missing, overused=overused)
    return ratio, analysis, findings


def score_impact(resume: Resume) -> Tuple[float, List[Finding]]:
    bullets = resume.all_bullets()
    if not bullets:
        findings = []
        experience, projects = _filled_entries(resume)
        if experience or projects:
            section = 'experience' if experience else 'projects'
            findings.append(Finding(
                severity='warning',
                code='NO_BULLETS',
                message='Experience and project entries have no achievement bullet points',
                pointer=FindingPointer(section=section),
                fix='Describe what you achieved in 2-4 bullet points per entry',
            ))
        return 0.0, findings

    quantified = sum(1 for _, _, bullet in bullets if is_quantified(bullet))
    share = quantified / len(bullets)

    findings = []
    if share < LOW_IMPACT_RATIO:
        findings.append(Finding(
            severity='warning',
            code='LOW_QUANTIFICATION',
            message=f"Only {round(share * 100)}% of bullet points have metrics",
            pointer=FindingPointer(section=bullets[0][0]),
            fix='Add numbers: users served, performance improvement %, time saved, etc.',
        ))
    return min(1.0, share / IMPACT_TARGET_RATIO), findings


def _sub_score(name: str, ratio: float, weight: float) -> SubScore:
    ratio = min(1.0, max(0.0, ratio))
    points = min(weight, max(0.0, ratio * weight))
    return SubScore(name=name, weight=round(weight, 2), ratio=round(ratio, 4), points=round(points, 2))


def _sort_findings(findings: List[Finding], section_order: List[str]) -> List[Finding]:
    position = {section: index for index, section in enumerate(section_order)}
    unplaced = len(section_order)

    def sort_key(finding: Finding):
        section_rank = position.get(finding.pointer.section, unplaced) if finding.pointer else unplaced
        return SEVERITY_RANK[finding.severity], section_rank

    return sorted(findings, key=sort_key)


def analyze_ats_score(resume, target_role: RoleInput = None) -> ATSScore:
    """
    Score a resume for ATS compatibility.

    Args:
        resume: A Resume, or a raw resume mapping (camelCase or snake_case keys).
        target_role: A TargetRole, a role label / custom keyword text, or None.

    Returns:
        ATSScore with the overall score, sub-scores and ordered findings.

    Raises:
        InvalidInputError: If the resume is not shaped like a resume at all.
    """
    resume = Resume.from_payload(resume)
    role = _coerce_target_role(target_role)
    if role is not None and not role.keywords:
        role = None

    weights = effective_weights(with_keywords=role is not None)
    findings: List[Finding] = []
    sub_scores: Dict[str, SubScore] = {}
    keyword_analysis = None

    if role is not None:
        ratio, keyword_analysis, keyword_findings = score_keywords(resume, role)
        sub_scores['keywords'] = _sub_score('keywords', ratio, weights['keywords'])
        findings.extend(keyword_findings)

    ratio, structure_findings = score_structure(resume)
    sub_scores['structure'] = _sub_score('structure', ratio, weights['structure'])
    findings = structure_findings + findings

    ratio, impact_findings = score_impact(resume)
    sub_scores['impact'] = _sub_score('impact', ratio, weights['impact'])
    findings.extend(impact_findings)

    validator = ResumeValidator()
    passed, total, formatting_findings = validator.validate_formatting(resume)
    sub_scores['formatting'] = _sub_score('formatting', passed / total if total else 0.0, weights['formatting'])
    findings.extend(formatting_findings)
    findings.extend(validator.review_content(resume))

    overall = int(round(sum(score.points for score in sub_scores.values())))
    overall = min(100, max(0, overall))

    logger.debug(
        f"ATS score {overall} ({', '.join(f'{name}={s.points}' for name, s in sub_scores.items())}), "
        f"{len(findings)} findings"
    )

    return ATSScore(
        overall=overall,
        label=score_label(overall),
        sub_scores=sub_scores,
        findings=_sort_findings(findings, resume.effective_section_order()),
        keyword_analysis=keyword_analysis,
        target_role=role.label if role is not None else None,
    )
