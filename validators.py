import re
import logging
from typing import List, Tuple

from models import Finding, FindingPointer, Resume

logger = logging.getLogger(__name__)

STRONG_ACTION_VERBS = {
    'achieved', 'administered', 'analyzed', 'architected', 'assessed', 'automated',
    'built', 'collaborated', 'configured', 'coordinated', 'created', 'decreased',
    'delivered', 'deployed', 'designed', 'developed', 'diagnosed', 'directed',
    'documented', 'engineered', 'enhanced', 'established', 'evaluated', 'executed',
    'facilitated', 'generated', 'identified', 'implemented', 'improved', 'increased',
    'integrated', 'investigated', 'launched', 'led', 'maintained', 'managed',
    'mentored', 'migrated', 'modernized', 'optimized', 'orchestrated', 'organized',
    'pioneered', 'programmed', 'reduced', 'refactored', 'researched', 'resolved',
    'saved', 'scaled', 'secured', 'shipped', 'solved', 'spearheaded', 'streamlined',
    'supervised', 'trained', 'transformed', 'wrote',
}

WEAK_PHRASES = (
    'helped', 'assisted', 'worked on', 'responsible for', 'duties included',
    'participated in', 'was involved', 'supported', 'contributed to',
)

COMMON_ACRONYMS = {
    'AI', 'API', 'AWS', 'CD', 'CI', 'CSS', 'GCP', 'HTML', 'HTTP', 'JSON',
    'ML', 'REST', 'SQL', 'UI', 'UX',
}

DECORATIVE_CHARACTERS = re.compile(
    '[\u2022\u2023\u2190-\u21ff\u25a0-\u25ff\u2600-\u27bf\u2b00-\u2bff\ufe0f\U0001f000-\U0001faff]'
)
NAME_PATTERN = re.compile(r"[^\W\d_]+(?:[ .,'\-]+[^\W\d_]+)*\.?")
EMAIL_PATTERN = re.compile(r"[A-Za-z0-9._%+\-]+@[A-Za-z0-9.\-]+\.[A-Za-z]{2,}")
PHONE_PATTERN = re.compile(r"\+?[\d\s().\-]{7,20}(?:\s*(?:x|ext\.?)\s*\d{1,6})?", re.IGNORECASE)
ACRONYM_PATTERN = re.compile(r"\b[A-Z]{2,}\b")
QUANTITY_PATTERN = re.compile(
    r"[$€£¥]\s?\d"
    r"|(?<![\w.])\d+(?:[.,]\d+)*\s?(?:%|percent\b|\+|x\b|k\b|m\b|b\b|ms\b|s\b|hrs?\b|gb\b|tb\b|mb\b)"
    r"|(?<![\w.])\d+(?:[.,]\d+)*(?![\w])",
    re.IGNORECASE,
)


def _excerpt(text: str, width: int = 40) -> str:
    text = text.strip()
    return text if len(text) <= width else text[:width - 3].rstrip() + '...'


def _lead_text(bullet: str) -> str:
    """Lowercased bullet with leading glyphs and punctuation removed."""
    return re.sub(r"^[^a-z0-9]+", "", bullet.strip().lower())


def is_quantified(bullet: str) -> bool:
    """True if the bullet carries a number, percentage, currency amount or unit quantity."""
    return QUANTITY_PATTERN.search(bullet) is not None


class ResumeValidator:
    """Rule-based checks for patterns known to trip up ATS parsers.

    Checks never block scoring; each one either passes or produces a finding.
    """

    MAX_BULLET_LENGTH = 150
    MIN_BULLET_LENGTH = 30
    MIN_SUMMARY_LENGTH = 50
    MAX_SUMMARY_LENGTH = 500
    MAX_UNCOMMON_ACRONYMS = 5

    def validate_formatting(self, resume: Resume) -> Tuple[int, int, List[Finding]]:
        """Run the scored formatting checks.

        Returns (passed, total, findings). Only checks that apply to content
        actually present are counted, so an empty resume has total == 0.
        """
        results = []
        findings = []

        for passed, finding in self._header_checks(resume):
            results.append(passed)
            if finding is not None:
                findings.append(finding)

        for section, item_id, bullet in resume.all_bullets():
            for passed, finding in self._bullet_checks(section, item_id, bullet):
                results.append(passed)
                if finding is not None:
                    findings.append(finding)

        summary = resume.visible_summary()
        if summary.strip():
            too_long = len(summary) > self.MAX_SUMMARY_LENGTH
            results.append(not too_long)
            if too_long:
                findings.append(Finding(
                    severity='info',
                    code='SUMMARY_TOO_LONG',
                    message='Professional summary is too long',
                    pointer=FindingPointer(section='summary'),
                    fix='Keep summary to 2-3 sentences (under 300 characters)',
                ))

        passed = sum(1 for result in results if result)
        logger.debug(f"Formatting checks: {passed}/{len(results)} passed")
        return passed, len(results), findings

    def _header_checks(self, resume: Resume):
        header = resume.header
        pointer = FindingPointer(section='header')

        name = header.name.strip()
        if name:
            valid = NAME_PATTERN.fullmatch(name) is not None
            yield valid, None if valid else Finding(
                severity='warning',
                code='NAME_SPECIAL_CHARACTERS',
                message='Name contains digits, symbols or emoji that ATS parsers may reject',
                pointer=pointer,
                fix='Use plain letters for your name',
            )

        email = header.email.strip()
        if email:
            valid = EMAIL_PATTERN.fullmatch(email) is not None
            yield valid, None if valid else Finding(
                severity='warning',
                code='INVALID_EMAIL',
                message=f"Email '{_excerpt(email)}' is not in a standard format",
                pointer=pointer,
                fix='Use a plain address such as name@example.com',
            )

        phone = header.phone.strip()
        if phone:
            digits = sum(1 for char in phone if char.isdigit())
            valid = PHONE_PATTERN.fullmatch(phone) is not None and 7 <= digits <= 15
            yield valid, None if valid else Finding(
                severity='warning',
                code='INVALID_PHONE',
                message=f"Phone number '{_excerpt(phone)}' is not in a standard format",
                pointer=pointer,
                fix='Use digits with optional +, spaces, dashes or parentheses',
            )

    def _bullet_checks(self, section: str, item_id: str, bullet: str):
        pointer = FindingPointer(section=section, item_id=item_id or None)
        excerpt = _excerpt(bullet)

        verbose = len(bullet) > self.MAX_BULLET_LENGTH
        yield not verbose, None if not verbose else Finding(
            severity='info',
            code='BULLET_TOO_LONG',
            message=f"Bullet point is too long: '{excerpt}'",
            pointer=pointer,
            fix=f'Keep bullet points to 1-2 lines (under {self.MAX_BULLET_LENGTH} characters)',
        )

        text = _lead_text(bullet)
        if text.startswith(WEAK_PHRASES):
            yield False, Finding(
                severity='info',
                code='WEAK_LANGUAGE',
                message=f"Bullet point uses weak language: '{excerpt}'",
                pointer=pointer,
                fix='Replace "helped", "assisted", "worked on" with strong action verbs',
            )
        else:
            valid = self.starts_with_action_verb(bullet)
            yield valid, None if valid else Finding(
                severity='info',
                code='MISSING_ACTION_VERB',
                message=f"Bullet point does not start with an action verb: '{excerpt}'",
                pointer=pointer,
                fix='Start with verbs like Developed, Implemented, Architected, Optimized, Led',
            )

        decorated = DECORATIVE_CHARACTERS.search(bullet) is not None
        yield not decorated, None if not decorated else Finding(
            severity='warning',
            code='SPECIAL_CHARACTERS',
            message=f"Bullet point contains emoji or decorative symbols: '{excerpt}'",
            pointer=pointer,
            fix='Remove emoji and symbol characters; ATS parsers may drop or garble them',
        )

    def starts_with_action_verb(self, bullet: str) -> bool:
        text = _lead_text(bullet)
        if text.startswith(WEAK_PHRASES):
            return False
        match = re.match(r"[a-z][a-z\-]*", text)
        if match is None:
            return False
        first_word = match.group(0)
        if first_word in STRONG_ACTION_VERBS:
            return True
        # Past-tense verbs outside the curated list (e.g. "Prototyped")
        return len(first_word) > 4 and first_word.endswith('ed')

    def review_content(self, resume: Resume) -> List[Finding]:
        """Advisory checks that produce findings without affecting the score."""
        findings = []

        if len(resume.visible_summary().strip()) < self.MIN_SUMMARY_LENGTH:
            findings.append(Finding(
                severity='warning',
                code='SUMMARY_TOO_SHORT',
                message='Professional summary is too short or missing',
                pointer=FindingPointer(section='summary'),
                fix='Add a 2-3 sentence summary highlighting your key strengths',
            ))

        uncommon = 0
        for section, item_id, bullet in resume.all_bullets():
            if len(bullet.strip()) < self.MIN_BULLET_LENGTH:
                findings.append(Finding(
                    severity='info',
                    code='BULLET_TOO_SHORT',
                    message=f"Bullet point is too short: '{_excerpt(bullet)}'",
                    pointer=FindingPointer(section=section, item_id=item_id or None),
                    fix='Add more detail about impact and technologies used',
                ))
            uncommon += sum(1 for word in ACRONYM_PATTERN.findall(bullet) if word not in COMMON_ACRONYMS)

        if uncommon > self.MAX_UNCOMMON_ACRONYMS:
            findings.append(Finding(
                severity='info',
                code='UNCOMMON_ACRONYMS',
                message='Consider expanding uncommon acronyms',
                fix='Spell out acronyms on first use for clarity',
            ))

        return findings
