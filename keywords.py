import re
import logging
from typing import Iterable, List, Optional, Sequence, Tuple

from pydantic import BaseModel

from models import Resume, TargetRole

logger = logging.getLogger(__name__)

TOKEN_PATTERN = re.compile(r"[a-z0-9]+[+#]*", re.IGNORECASE)
CUSTOM_ROLE_SEPARATORS = re.compile(r"[,;\n]+")

# Keywords that occur more often than this across the resume read as stuffing.
OVERUSE_THRESHOLD = 5


class JobRole(BaseModel):
    id: str
    title: str
    category: str
    keywords: List[str]


JOB_ROLES: List[JobRole] = [
    JobRole(id='software-engineer', title='Software Engineer', category='Engineering', keywords=[
        'software development', 'algorithms', 'data structures', 'system design',
        'code review', 'debugging', 'testing', 'agile', 'scrum', 'version control',
        'performance optimization', 'scalability', 'clean code',
    ]),
    JobRole(id='frontend-developer', title='Frontend Developer', category='Engineering', keywords=[
        'React', 'Vue', 'Angular', 'JavaScript', 'TypeScript', 'HTML', 'CSS',
        'responsive design', 'UI/UX', 'accessibility', 'web performance',
        'component architecture', 'state management', 'REST API integration',
    ]),
    JobRole(id='backend-developer', title='Backend Developer', category='Engineering', keywords=[
        'API design', 'RESTful services', 'databases', 'SQL', 'NoSQL',
        'microservices', 'server-side development', 'authentication',
        'authorization', 'caching', 'message queues', 'scalability',
    ]),
    JobRole(id='fullstack-developer', title='Full Stack Developer', category='Engineering', keywords=[
        'full stack development', 'frontend', 'backend', 'databases',
        'deployment', 'cloud services', 'DevOps', 'API development',
        'end-to-end development', 'system integration',
    ]),
    JobRole(id='devops-engineer', title='DevOps Engineer', category='Engineering', keywords=[
        'CI/CD', 'Docker', 'Kubernetes', 'AWS', 'Azure', 'GCP',
        'infrastructure as code', 'Terraform', 'monitoring', 'logging',
        'automation', 'shell scripting', 'security',
    ]),
    JobRole(id='mobile-developer', title='Mobile Developer', category='Engineering', keywords=[
        'iOS', 'Android', 'React Native', 'Flutter', 'Swift', 'Kotlin',
        'mobile UI/UX', 'app store deployment', 'push notifications',
        'offline storage', 'performance optimization',
    ]),
    JobRole(id='data-scientist', title='Data Scientist', category='Data', keywords=[
        'machine learning', 'statistics', 'Python', 'R', 'data analysis',
        'data visualization', 'predictive modeling', 'feature engineering',
        'A/B testing', 'experimental design', 'SQL',
    ]),
    JobRole(id='data-analyst', title='Data Analyst', category='Data', keywords=[
        'SQL', 'Excel', 'data visualization', 'Tableau', 'Power BI',
        'reporting', 'business intelligence', 'analytics', 'dashboards',
        'data cleaning', 'statistical analysis',
    ]),
    JobRole(id='ml-engineer', title='Machine Learning Engineer', category='Data', keywords=[
        'deep learning', 'TensorFlow', 'PyTorch', 'model deployment',
        'MLOps', 'neural networks', 'NLP', 'computer vision',
        'model optimization', 'feature engineering', 'data pipelines',
    ]),
    JobRole(id='ai-researcher', title='AI Researcher', category='Data', keywords=[
        'research', 'publications', 'NLP', 'computer vision',
        'reinforcement learning', 'transformers', 'novel architectures',
        'experimentation', 'benchmarking', 'state-of-the-art',
    ]),
    JobRole(id='phd-application', title='PhD Application', category='Academic', keywords=[
        'research experience', 'publications', 'thesis', 'academic',
        'teaching assistant', 'grants', 'collaboration', 'methodology',
        'literature review', 'experimental design',
    ]),
    JobRole(id='research-fellowship', title='Research Fellowship', category='Academic', keywords=[
        'research', 'publications', 'grants', 'collaboration',
        'presentations', 'peer review', 'academic writing',
        'interdisciplinary', 'impact',
    ]),
    JobRole(id='scholarship', title='Scholarship Application', category='Academic', keywords=[
        'academic excellence', 'leadership', 'community service',
        'extracurricular activities', 'achievements', 'GPA',
        'awards', 'volunteer work', 'initiative',
    ]),
    JobRole(id='technical-pm', title='Technical Product Manager', category='Business', keywords=[
        'product strategy', 'roadmap', 'stakeholder management',
        'agile methodology', 'technical leadership', 'requirements gathering',
        'cross-functional collaboration', 'metrics', 'OKRs',
    ]),
    JobRole(id='engineering-manager', title='Engineering Manager', category='Business', keywords=[
        'team leadership', 'mentoring', 'project management',
        'agile', 'technical vision', 'hiring', 'performance reviews',
        'sprint planning', 'resource allocation', 'technical decisions',
    ]),
]


def find_job_role(label: str) -> Optional[JobRole]:
    """Look up a predefined role by id or title, ignoring case."""
    needle = label.strip().lower()
    for role in JOB_ROLES:
        if needle in (role.id, role.title.lower()):
            return role
    return None


def resolve_target_role(label: Optional[str] = None, keywords: Optional[Iterable[str]] = None) -> Optional[TargetRole]:
    """
    Build a TargetRole from a role label and/or explicit keywords.

    Predefined roles contribute their taxonomy keywords, explicit keywords
    are appended after them. A label that is not in the taxonomy and comes
    without explicit keywords is custom text: it is split on commas,
    semicolons and newlines and each piece becomes a keyword.

    Returns None when neither a label nor any keyword was supplied.
    """
    label = (label or '').strip()
    explicit = [k.strip() for k in (keywords or []) if k and k.strip()]
    if not label and not explicit:
        return None

    role = find_job_role(label) if label else None
    if role is not None:
        merged = role.keywords + explicit
        label = role.title
    elif explicit:
        merged = explicit
    else:
        merged = [part.strip() for part in CUSTOM_ROLE_SEPARATORS.split(label) if part.strip()]

    return TargetRole(label=label, keywords=_dedupe_keywords(merged))


def _dedupe_keywords(keywords: Sequence[str]) -> List[str]:
    seen = set()
    unique = []
    for keyword in keywords:
        key = normalize_phrase(keyword)
        if not key or key in seen:
            continue
        seen.add(key)
        unique.append(keyword)
    return unique


def stem(token: str) -> str:
    """
    Light plural folding on a single token, returned lowercased.

    'technologies' -> 'technology', 'databases' -> 'database',
    'processes' -> 'process', 'analyses' -> 'analysis'. The original case
    matters for acronym plurals: 'APIs' -> 'api' while 'AWS' is kept.
    Stems are only compared with each other, so 'cache' and 'caches' both
    become 'cach'.
    """
    word = token.lower()
    if not word.isalpha():
        return word
    if len(token) >= 3 and token.endswith('s') and token[:-1].isupper():
        return word[:-1]
    if len(word) <= 3:
        return word
    if word.endswith('ies'):
        return word[:-3] + 'y'
    if word.endswith(('sses', 'xes', 'ches', 'shes')):
        return word[:-2]
    if word.endswith(('yses', 'eses')):
        return word[:-2] + 'is'
    if word.endswith(('sse', 'xe', 'che', 'she')):
        return word[:-1]
    if word.endswith(('ss', 'us', 'is')):
        return word
    if word.endswith('s'):
        return word[:-1]
    return word


def tokenize(text: str) -> List[str]:
    return [stem(token) for token in TOKEN_PATTERN.findall(text)]


def normalize_phrase(text: str) -> Tuple[str, ...]:
    return tuple(tokenize(text))


def count_phrase(phrase: Tuple[str, ...], tokens: Sequence[str]) -> int:
    """Count contiguous occurrences of a token phrase in a token sequence."""
    if not phrase or len(phrase) > len(tokens):
        return 0
    width = len(phrase)
    return sum(1 for i in range(len(tokens) - width + 1) if tuple(tokens[i:i + width]) == phrase)


def resume_text_fields(resume: Resume) -> List[str]:
    """Every free-text field of a resume that an ATS would index. Hidden sections are skipped."""
    fields = [resume.header.title, resume.visible_summary()]
    fields.extend(resume.visible_skills())
    for item in resume.visible_experience():
        fields.append(item.title)
        fields.extend(item.bullets)
    for item in resume.visible_projects():
        fields.extend([item.name, item.description])
        fields.extend(item.technologies)
        fields.extend(item.bullets)
    for item in resume.visible_education():
        fields.extend([item.degree, item.field])
        fields.extend(item.highlights)
    for item in resume.visible_certifications():
        fields.append(item.name)
    for section in resume.visible_custom_sections():
        fields.extend(section.text_fields())
    return [field for field in fields if field and field.strip()]


class KeywordMatch(BaseModel):
    keyword: str
    occurrences: int

    @property
    def found(self) -> bool:
        return self.occurrences > 0


def match_keywords(keywords: Sequence[str], fields: Sequence[str]) -> List[KeywordMatch]:
    """
    Match target keywords against resume text fields.

    Each field is tokenized on its own so a multi-word keyword never matches
    across two unrelated fields (e.g. the end of one bullet and the start of
    the next).
    """
    tokenized = [tokenize(field) for field in fields]
    matches = []
    for keyword in keywords:
        phrase = normalize_phrase(keyword)
        occurrences = sum(count_phrase(phrase, tokens) for tokens in tokenized)
        matches.append(KeywordMatch(keyword=keyword, occurrences=occurrences))
    logger.debug(f"Matched {sum(1 for m in matches if m.found)}/{len(matches)} keywords")
    return matches
