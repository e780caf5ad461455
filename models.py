from collections.abc import Mapping
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, ValidationError, model_validator
from pydantic.alias_generators import to_camel

from exceptions import InvalidInputError

# Version 1 stored skills as a flat {languages, frameworks, databases, tools} mapping.
CURRENT_SCHEMA_VERSION = 2

DEFAULT_SECTION_ORDER = [
    'header',
    'summary',
    'skills',
    'experience',
    'projects',
    'education',
    'certifications',
]

LEGACY_SKILL_CATEGORIES = {
    'languages': 'Languages',
    'frameworks': 'Frameworks',
    'databases': 'Databases',
    'tools': 'Tools',
}

Severity = Literal['critical', 'warning', 'info']

SEVERITY_RANK = {'critical': 0, 'warning': 1, 'info': 2}


def _drop_nulls(data: Any) -> Any:
    """Treat null values (and null list entries) as absent so defaults apply."""
    if not isinstance(data, dict):
        return data
    cleaned = {}
    for key, value in data.items():
        if value is None:
            continue
        if isinstance(value, list):
            value = [item for item in value if item is not None]
        cleaned[key] = value
    return cleaned


class ResumeModel(BaseModel):
    """Base for resume nodes: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='ignore',
        coerce_numbers_to_str=True,
    )

    @model_validator(mode='before')
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        return _drop_nulls(data)


class ResumeHeader(ResumeModel):
    name: str = ''
    title: str = ''
    email: str = ''
    phone: str = ''
    location: str = ''
    github: str = ''
    linkedin: str = ''
    portfolio: str = ''
    avatar: str = ''


class SkillCategory(ResumeModel):
    id: str = ''
    name: str = ''
    items: list[str] = Field(default_factory=list)


class ResumeSkills(ResumeModel):
    categories: list[SkillCategory] = Field(default_factory=list)

    def all_items(self) -> list[str]:
        return [item for category in self.categories for item in category.items if item.strip()]


class ExperienceItem(ResumeModel):
    id: str = ''
    company: str = ''
    title: str = ''
    location: str = ''
    start_date: str = ''
    end_date: str = ''
    current: bool = False
    bullets: list[str] = Field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.title.strip() or self.company.strip() or any(b.strip() for b in self.bullets))


class ProjectItem(ResumeModel):
    id: str = ''
    name: str = ''
    url: str = ''
    description: str = ''
    technologies: list[str] = Field(default_factory=list)
    bullets: list[str] = Field(default_factory=list)
    date_range: str = ''
    repo_id: str = ''

    def is_empty(self) -> bool:
        return not (self.name.strip() or self.description.strip() or any(b.strip() for b in self.bullets))


class EducationItem(ResumeModel):
    id: str = ''
    institution: str = ''
    degree: str = ''
    field: str = ''
    graduation_date: str = ''
    gpa: str = ''
    highlights: list[str] = Field(default_factory=list)


class CertificationItem(ResumeModel):
    id: str = ''
    name: str = ''
    issuer: str = ''
    date: str = ''
    url: str = ''


class CustomSectionItem(ResumeModel):
    id: str = ''
    title: str = ''
    description: str = ''
    date: str = ''
    url: str = ''


class CustomSection(ResumeModel):
    id: str = ''
    title: str = ''
    icon: str = ''
    type: Literal['list', 'text', 'bullets', 'items'] = 'text'
    content: Union[list[CustomSectionItem], list[str], str] = ''
    visible: bool = True

    def text_fields(self) -> list[str]:
        """Flatten the section content into plain text fields."""
        if isinstance(self.content, str):
            return [self.content]
        fields = []
        for entry in self.content:
            if isinstance(entry, CustomSectionItem):
                fields.extend([entry.title, entry.description])
            else:
                fields.append(entry)
        return fields


class Resume(ResumeModel):
    """A structured resume document.

    Payloads are upgraded to the current schema version on load: null values
    fall back to field defaults and legacy flat skill mappings are folded into
    skill categories. Scoring code can therefore rely on every field being
    present with its documented type.
    """

    schema_version: int = CURRENT_SCHEMA_VERSION
    id: str = ''
    user_id: str = ''
    template: str = 'modern'
    header: ResumeHeader = Field(default_factory=ResumeHeader)
    summary: str = ''
    skills: ResumeSkills = Field(default_factory=ResumeSkills)
    experience: list[ExperienceItem] = Field(default_factory=list)
    projects: list[ProjectItem] = Field(default_factory=list)
    education: list[EducationItem] = Field(default_factory=list)
    certifications: list[CertificationItem] = Field(default_factory=list)
    custom_sections: list[CustomSection] = Field(default_factory=list)
    section_order: list[str] = Field(default_factory=lambda: list(DEFAULT_SECTION_ORDER))
    section_visibility: dict[str, bool] = Field(default_factory=dict)
    metadata: dict[str, Any] = Field(default_factory=dict)

    @model_validator(mode='before')
    @classmethod
    def _fill_defaults(cls, data: Any) -> Any:
        data = _drop_nulls(data)
        if not isinstance(data, dict):
            return data

        skills = data.get('skills')
        if isinstance(skills, list):
            # A bare list of skill names
            data['skills'] = {'categories': [{'id': 'skills', 'name': 'Skills', 'items': skills}]}
        elif isinstance(skills, dict) and 'categories' not in skills:
            categories = []
            for key, items in skills.items():
                if isinstance(items, list):
                    categories.append({
                        'id': key,
                        'name': LEGACY_SKILL_CATEGORIES.get(key, key.title()),
                        'items': items,
                    })
            data['skills'] = {'categories': categories}

        data['schemaVersion'] = CURRENT_SCHEMA_VERSION
        data.pop('schema_version', None)
        return data

    @classmethod
    def from_payload(cls, value: Any) -> 'Resume':
        """Build a Resume from a raw payload, raising InvalidInputError if it is unshaped."""
        if isinstance(value, cls):
            return value
        if not isinstance(value, Mapping):
            raise InvalidInputError(f"Resume must be an object, got {type(value).__name__}")
        try:
            return cls.model_validate(dict(value))
        except ValidationError as e:
            raise InvalidInputError(f"Resume does not match the expected shape: {e}") from e

    def effective_section_order(self) -> list[str]:
        """Section ids in display order, with unlisted built-in and custom sections appended."""
        order = []
        for section_id in self.section_order:
            if section_id not in order:
                order.append(section_id)
        known = DEFAULT_SECTION_ORDER + [section.id for section in self.custom_sections if section.id]
        for section_id in known:
            if section_id not in order:
                order.append(section_id)
        return order

    def is_visible(self, section_id: str) -> bool:
        return self.section_visibility.get(section_id, True)

    def visible_summary(self) -> str:
        return self.summary if self.is_visible('summary') else ''

    def visible_skills(self) -> list[str]:
        return self.skills.all_items() if self.is_visible('skills') else []

    def visible_experience(self) -> list[ExperienceItem]:
        return self.experience if self.is_visible('experience') else []

    def visible_projects(self) -> list[ProjectItem]:
        return self.projects if self.is_visible('projects') else []

    def visible_education(self) -> list[EducationItem]:
        return self.education if self.is_visible('education') else []

    def visible_certifications(self) -> list[CertificationItem]:
        return self.certifications if self.is_visible('certifications') else []

    def visible_custom_sections(self) -> list[CustomSection]:
        return [section for section in self.custom_sections if section.visible and self.is_visible(section.id)]

    def all_bullets(self) -> list[tuple[str, str, str]]:
        """(section, item id, bullet) for every visible experience and project bullet.

        Item ids shared by several entries of one section do not identify an
        entry, so they are reported as ''.
        """
        bullets = []
        for section, items in (('experience', self.visible_experience()), ('projects', self.visible_projects())):
            duplicated = _duplicated_ids(items)
            for item in items:
                item_id = '' if item.id in duplicated else item.id
                bullets.extend((section, item_id, bullet) for bullet in item.bullets if bullet.strip())
        return bullets


def _duplicated_ids(entries) -> set[str]:
    seen = set()
    duplicated = set()
    for entry in entries:
        if entry.id in seen:
            duplicated.add(entry.id)
        seen.add(entry.id)
    return duplicated


class TargetRole(BaseModel):
    label: str = ''
    keywords: list[str] = Field(default_factory=list)


class FindingPointer(BaseModel):
    model_config = ConfigDict(frozen=True)

    section: str
    item_id: Optional[str] = None


class Finding(BaseModel):
    model_config = ConfigDict(frozen=True)

    severity: Severity
    code: str
    message: str
    pointer: Optional[FindingPointer] = None
    fix: Optional[str] = None


class SubScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    name: str
    weight: float
    ratio: float = Field(ge=0, le=1)
    points: float


class KeywordAnalysis(BaseModel):
    model_config = ConfigDict(frozen=True)

    found: list[str]
    missing: list[str]
    overused: list[str]


class ATSScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    overall: int = Field(ge=0, le=100)
    label: str
    sub_scores: dict[str, SubScore]
    findings: list[Finding]
    keyword_analysis: Optional[KeywordAnalysis] = None
    target_role: Optional[str] = None
