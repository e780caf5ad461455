"""
Unit tests for the ATS scoring engine.

These tests verify:
1. Sub-score weights and redistribution without a target role
2. Structural completeness, keyword coverage and quantified impact
3. Findings severity and ordering
4. Overall score bounds and determinism
"""

import copy

import pytest

from exceptions import InvalidInputError
from models import Resume, TargetRole
from scorer import (
    SUB_SCORE_WEIGHTS,
    analyze_ats_score,
    effective_weights,
    score_label,
)


def _codes(score):
    return [finding.code for finding in score.findings]


class TestWeights:

    def test_weights_sum_to_100(self):
        assert sum(SUB_SCORE_WEIGHTS.values()) == pytest.approx(100.0)
        assert sum(effective_weights(with_keywords=False).values()) == pytest.approx(100.0)

    def test_redistribution_is_proportional(self):
        with_role = effective_weights(with_keywords=True)
        without_role = effective_weights(with_keywords=False)

        assert "keywords" not in without_role
        scale = 100.0 / (100.0 - SUB_SCORE_WEIGHTS["keywords"])
        for name, weight in without_role.items():
            assert weight == pytest.approx(with_role[name] * scale)
            assert weight >= with_role[name]

    def test_redistribution_applied_to_score(self, resume):
        with_role = analyze_ats_score(resume, TargetRole(keywords=["Kubernetes", "CI/CD"]))
        without_role = analyze_ats_score(resume)

        assert "keywords" in with_role.sub_scores
        assert "keywords" not in without_role.sub_scores
        for name, sub_score in without_role.sub_scores.items():
            assert sub_score.weight >= with_role.sub_scores[name].weight
        assert 0 <= with_role.overall <= 100
        assert 0 <= without_role.overall <= 100

    def test_role_without_keywords_is_no_role(self, resume):
        score = analyze_ats_score(resume, TargetRole(label="", keywords=[]))
        assert "keywords" not in score.sub_scores
        assert score.target_role is None


class TestStructure:

    def test_complete_resume_gets_full_structure_weight(self, resume):
        structure = analyze_ats_score(resume).sub_scores["structure"]
        assert structure.ratio == 1.0
        assert structure.points == structure.weight

    def test_complete_resume_scores_100_without_role(self, resume):
        score = analyze_ats_score(resume)
        assert score.overall == 100
        assert score.label == "Excellent"
        assert score.findings == []

    def test_empty_resume(self):
        score = analyze_ats_score({})

        assert score.overall == 0
        assert score.label == "Poor"
        critical = [f.code for f in score.findings if f.severity == "critical"]
        assert critical == ["MISSING_NAME", "MISSING_EMAIL", "MISSING_TITLE", "MISSING_SKILLS", "MISSING_EXPERIENCE"]
        assert all(sub.points == 0 for sub in score.sub_scores.values())

    def test_missing_elements_deduct(self, resume_payload):
        resume_payload["header"]["title"] = ""
        resume_payload["skills"] = {"categories": []}
        structure = analyze_ats_score(resume_payload).sub_scores["structure"]

        assert structure.ratio == pytest.approx(0.70)

    def test_projects_satisfy_experience_requirement(self, resume_payload):
        resume_payload["experience"] = []
        score = analyze_ats_score(resume_payload)
        assert "MISSING_EXPERIENCE" not in _codes(score)

    def test_blank_entries_do_not_satisfy_experience_requirement(self, resume_payload):
        resume_payload["experience"] = [{}]
        resume_payload["projects"] = [{"id": "proj-1", "bullets": ["  "]}]
        score = analyze_ats_score(resume_payload)

        assert "MISSING_EXPERIENCE" in _codes(score)
        assert "NO_BULLETS" not in _codes(score)
        assert score.sub_scores["structure"].ratio == pytest.approx(0.80)

    def test_hidden_sections_count_as_missing(self, resume_payload):
        resume_payload["sectionVisibility"] = {"skills": False, "experience": False, "projects": False}
        codes = _codes(analyze_ats_score(resume_payload))

        assert "MISSING_SKILLS" in codes
        assert "MISSING_EXPERIENCE" in codes

    def test_hidden_summary_not_checked(self, resume_payload):
        resume_payload["summary"] = "x" * 600
        resume_payload["sectionVisibility"] = {"summary": False}
        codes = _codes(analyze_ats_score(resume_payload))

        assert "SUMMARY_TOO_LONG" not in codes
        assert "SUMMARY_TOO_SHORT" in codes


class TestKeywordCoverage:

    def test_half_of_keywords_found(self, resume):
        score = analyze_ats_score(resume, TargetRole(label="Platform", keywords=["Kubernetes", "CI/CD"]))

        keywords = score.sub_scores["keywords"]
        assert keywords.ratio == 0.5
        assert keywords.points == pytest.approx(SUB_SCORE_WEIGHTS["keywords"] / 2)
        assert score.keyword_analysis.found == ["Kubernetes"]
        assert score.keyword_analysis.missing == ["CI/CD"]
        assert score.target_role == "Platform"
        low = [f for f in score.findings if f.code == "LOW_KEYWORD_COVERAGE"]
        assert len(low) == 1 and low[0].severity == "warning"

    def test_role_label_resolves_taxonomy(self, resume):
        score = analyze_ats_score(resume, "devops-engineer")

        assert score.target_role == "DevOps Engineer"
        assert set(score.keyword_analysis.found) == {"Docker", "Kubernetes", "AWS", "Terraform"}
        assert score.sub_scores["keywords"].ratio == pytest.approx(4 / 13, abs=1e-4)

    def test_monotonic_in_found_keywords(self, resume_payload):
        keywords = ["GraphQL", "Redis", "Prometheus", "event sourcing"]
        points = []
        for found in range(len(keywords) + 1):
            payload = copy.deepcopy(resume_payload)
            payload["summary"] += " Worked with " + ", ".join(keywords[:found]) + "."
            score = analyze_ats_score(payload, TargetRole(keywords=keywords))
            points.append(score.sub_scores["keywords"].points)

        assert points == sorted(points)
        assert points[0] == 0
        assert points[-1] == SUB_SCORE_WEIGHTS["keywords"]

    def test_mostly_covered_is_info(self, resume):
        score = analyze_ats_score(resume, TargetRole(keywords=["Kubernetes", "Docker", "Terraform", "Helm"]))
        assert [f.severity for f in score.findings if f.code == "MISSING_KEYWORDS"] == ["info"]

    def test_keyword_overuse(self, resume_payload):
        resume_payload["summary"] = "Python " * 6 + "engineer focused on tooling and reliable delivery."
        score = analyze_ats_score(resume_payload, TargetRole(keywords=["Python"]))
        assert score.keyword_analysis.overused == ["Python"]
        assert "KEYWORD_OVERUSE" in _codes(score)


class TestImpact:

    @pytest.fixture
    def minimal_payload(self) -> dict:
        return {
            "header": {"name": "Jane Doe", "email": "jane@x.com"},
            "experience": [{"id": "exp-1", "company": "X", "bullets": ["Built internal tool"]}],
        }

    def test_no_numbers_scores_zero(self, minimal_payload):
        score = analyze_ats_score(minimal_payload)
        assert score.sub_scores["impact"].points == 0
        assert "LOW_QUANTIFICATION" in _codes(score)

    def test_quantified_bullet_scores(self, minimal_payload):
        minimal_payload["experience"][0]["bullets"] = ["Reduced latency by 30%"]
        score = analyze_ats_score(minimal_payload)
        assert score.sub_scores["impact"].points > 0
        assert "LOW_QUANTIFICATION" not in _codes(score)

    def test_half_quantified_is_full_credit(self, minimal_payload):
        minimal_payload["experience"][0]["bullets"] = ["Reduced latency by 30%", "Built internal tool"]
        assert analyze_ats_score(minimal_payload).sub_scores["impact"].ratio == 1.0

    def test_entries_without_bullets(self, minimal_payload):
        minimal_payload["experience"][0]["bullets"] = []
        assert "NO_BULLETS" in _codes(analyze_ats_score(minimal_payload))


class TestFindings:

    def test_sorted_by_severity(self, resume_payload):
        resume_payload["header"]["email"] = "jane at example"
        resume_payload["header"]["title"] = ""
        resume_payload["experience"][0]["bullets"].append("Helped with onboarding for new hires on the team")
        score = analyze_ats_score(resume_payload)

        ranks = [{"critical": 0, "warning": 1, "info": 2}[f.severity] for f in score.findings]
        assert ranks == sorted(ranks)
        assert score.findings[0].code == "MISSING_TITLE"

    def test_same_severity_follows_section_order(self, resume_payload):
        resume_payload["header"]["title"] = ""
        resume_payload["skills"] = {"categories": []}

        default_order = analyze_ats_score(resume_payload)
        assert _codes(default_order)[:2] == ["MISSING_TITLE", "MISSING_SKILLS"]

        resume_payload["sectionOrder"] = ["skills", "header"]
        skills_first = analyze_ats_score(resume_payload)
        assert _codes(skills_first)[:2] == ["MISSING_SKILLS", "MISSING_TITLE"]

    def test_pointer_targets_item(self, resume_payload):
        resume_payload["projects"][0]["bullets"] = ["Designed a 🚀 module registry adopted by every product team"]
        score = analyze_ats_score(resume_payload)

        finding = next(f for f in score.findings if f.code == "SPECIAL_CHARACTERS")
        assert finding.pointer.section == "projects"
        assert finding.pointer.item_id == "proj-1"

    def test_duplicate_item_ids_drop_item_pointer(self, resume_payload):
        duplicate = copy.deepcopy(resume_payload["experience"][0])
        duplicate["bullets"] = ["Designed a 🚀 status page for internal services"]
        resume_payload["experience"].append(duplicate)
        score = analyze_ats_score(resume_payload)

        finding = next(f for f in score.findings if f.code == "SPECIAL_CHARACTERS")
        assert finding.pointer.section == "experience"
        assert finding.pointer.item_id is None


class TestDeterminism:

    def test_idempotent(self, resume_payload):
        role = TargetRole(keywords=["Kubernetes", "CI/CD", "Terraform"])
        first = analyze_ats_score(resume_payload, role)
        second = analyze_ats_score(resume_payload, role)

        assert first == second
        assert first.model_dump_json() == second.model_dump_json()

    def test_input_not_mutated(self, resume_payload):
        snapshot = copy.deepcopy(resume_payload)
        analyze_ats_score(resume_payload, "devops-engineer")
        assert resume_payload == snapshot

    def test_accepts_resume_model(self, resume, resume_payload):
        assert analyze_ats_score(resume) == analyze_ats_score(resume_payload)

    @pytest.mark.parametrize("payload", [
        {},
        {"header": {"name": "🚀🚀🚀", "email": "nope", "phone": "x"}},
        {"summary": "word " * 500, "experience": [{"bullets": ["helped " * 60] * 20}]},
        {"skills": ["Python"], "projects": [{"bullets": ["Cut costs by $1,000,000 (90%)"]}]},
    ])
    def test_overall_within_bounds(self, payload):
        for role in (None, "data-analyst", TargetRole(keywords=["Python"])):
            score = analyze_ats_score(payload, role)
            assert 0 <= score.overall <= 100
            for sub_score in score.sub_scores.values():
                assert 0 <= sub_score.points <= sub_score.weight


class TestInvalidInput:

    @pytest.mark.parametrize("value", ["resume", 3, None, [{"header": {}}]])
    def test_unshaped_resume(self, value):
        with pytest.raises(InvalidInputError):
            analyze_ats_score(value)


@pytest.mark.parametrize("score,label", [
    (100, "Excellent"), (90, "Excellent"), (85, "Very Good"), (70, "Good"),
    (65, "Fair"), (50, "Needs Work"), (49, "Poor"), (0, "Poor"),
])
def test_score_label(score, label):
    assert score_label(score) == label
