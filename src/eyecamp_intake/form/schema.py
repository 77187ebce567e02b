"""Declarative intake form schema.

Each form section declares its fields and completion rule in a SectionSchema.
The section schemas are merged into one IntakeSchema that validates the whole
record while keeping every error attached to the section it came from.
"""

import re
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable, List, Optional, Tuple

from eyecamp_intake.models.patient import (
    REFRACTION_KEY_PREFIXES,
    REFRACTION_KEY_SUFFIXES,
    SECTION_ORDER,
    TEXT_FIELD_KEYS,
    Outcome,
    PatientRecord,
    Section,
    Sex,
    measurement_attr,
)
from eyecamp_intake.models.refraction import RefractionStage, parse_sign
from eyecamp_intake.models.validation import IssueSeverity, ValidationIssue
from eyecamp_intake.refraction.checks import check_measurement
from eyecamp_intake.utils.exceptions import UnknownFieldError

AGE_PATTERN = re.compile(r"^\d+(\.\d+)?$")
# 6/9, 20/40, 6/7.5
DISTANT_ACUITY_PATTERN = re.compile(r"^\d+(\.\d+)?\s*/\s*\d+(\.\d+)?$")
# N6, N6/40, 6
NEAR_ACUITY_PATTERN = re.compile(r"^N?\d+(\.\d+)?(\s*/\s*\d+(\.\d+)?)?$", re.IGNORECASE)

MAX_REASONABLE_AGE = 120

# Stages counted by the refraction completion rule
COMPLETION_STAGES = (RefractionStage.DRY, RefractionStage.ACCEPTANCE)


def is_filled(value: Any) -> bool:
    """True when a text value has something other than whitespace."""
    return isinstance(value, str) and value.strip() != ""


@dataclass(frozen=True)
class FieldSpec:
    """Declaration of one form field.

    Attributes:
        name: Serialized field name used by set_field and in drafts
        section: Section id the field belongs to
        label: Human readable label for messages
        attr: PatientRecord attribute holding the value
        part: RefractionMeasurement attribute when attr is a measurement
        kind: "text", "choice", "age", "distant_acuity", "near_acuity",
            "refraction" or "sign"
        required: Whether the field must be non-empty
        min_length: Minimum length for required text
        choices: Allowed values for choice fields
    """

    name: str
    section: str
    label: str
    attr: str
    part: Optional[str] = None
    kind: str = "text"
    required: bool = False
    min_length: int = 0
    choices: Tuple[str, ...] = ()

    def get(self, record: PatientRecord) -> Any:
        value = getattr(record, self.attr)
        if self.part is not None:
            value = getattr(value, self.part)
        return value

    def set(self, record: PatientRecord, value: Any) -> None:
        target: Any = record
        attr = self.attr
        if self.part is not None:
            target = getattr(record, self.attr)
            attr = self.part
        setattr(target, attr, self.coerce(value))

    def coerce(self, value: Any) -> Any:
        """Convert an incoming value to its stored form.

        Sign toggles are booleans; everything else is kept as text exactly as
        given (numbers are not normalized, so "090" stays "090").
        """
        if self.kind == "sign":
            return parse_sign(value)
        if value is None:
            return ""
        return str(value)

    def validate(self, record: PatientRecord) -> List[ValidationIssue]:
        """Run this field's declared constraints."""
        value = self.get(record)
        if self.kind == "sign":
            return []

        if not is_filled(value):
            if self.required:
                return [self._issue(IssueSeverity.ERROR, f"{self.label} is required",
                                    f"Enter the patient's {self.label.lower()}")]
            return []

        issues = []
        if self.min_length and len(value.strip()) < self.min_length:
            issues.append(self._issue(
                IssueSeverity.ERROR,
                f"{self.label} must be at least {self.min_length} characters",
                f"Enter the full {self.label.lower()}",
            ))
        if self.choices and value not in self.choices:
            issues.append(self._issue(
                IssueSeverity.ERROR,
                f"Invalid {self.label.lower()}: {value}",
                f"Choose one of: {', '.join(self.choices)}",
            ))
        if self.kind == "age":
            if not AGE_PATTERN.match(value.strip()):
                issues.append(self._issue(
                    IssueSeverity.ERROR,
                    f"Age must be a number: {value}",
                    "Enter the age in years, e.g. 45",
                ))
            elif float(value) > MAX_REASONABLE_AGE:
                issues.append(self._issue(
                    IssueSeverity.WARNING,
                    f"Age appears unreasonable ({value} years)",
                    "Verify the age is correct",
                ))
        elif self.kind == "distant_acuity" and not DISTANT_ACUITY_PATTERN.match(value.strip()):
            issues.append(self._issue(
                IssueSeverity.WARNING,
                f"{self.label} is not in numerator/denominator form: {value}",
                "Record distant acuity as 6/X (metric) or 20/X",
            ))
        elif self.kind == "near_acuity" and not NEAR_ACUITY_PATTERN.match(value.strip()):
            issues.append(self._issue(
                IssueSeverity.WARNING,
                f"{self.label} is not an N-value: {value}",
                "Record near acuity as N value / distance, e.g. N6/40",
            ))
        return issues

    def _issue(self, severity: IssueSeverity, message: str, suggestion: str) -> ValidationIssue:
        return ValidationIssue(
            field_name=self.name,
            section=self.section,
            severity=severity,
            message=message,
            suggestion=suggestion,
        )


@dataclass
class SectionValidation:
    """Validation outcome for one section.

    Attributes:
        section: Section id
        errors: Issues that block wizard advancement and submission
        warnings: Advisory issues
    """

    section: str
    errors: List[ValidationIssue] = field(default_factory=list)
    warnings: List[ValidationIssue] = field(default_factory=list)

    @property
    def valid(self) -> bool:
        return not self.errors

    def field_errors(self) -> dict[str, List[str]]:
        """Error messages grouped by field name, for inline display."""
        grouped: dict[str, List[str]] = {}
        for issue in self.errors:
            grouped.setdefault(issue.field_name, []).append(issue.message)
        return grouped


@dataclass
class FormValidationResult:
    """Validation outcome for the whole record, namespaced by section.

    Attributes:
        sections: SectionValidation per section id, in form order
        titles: Section headings used by format_report
    """

    sections: dict[str, SectionValidation] = field(default_factory=dict)
    titles: dict[str, str] = field(default_factory=dict)

    @property
    def valid(self) -> bool:
        return all(result.valid for result in self.sections.values())

    @property
    def errors(self) -> List[ValidationIssue]:
        return [issue for result in self.sections.values() for issue in result.errors]

    @property
    def warnings(self) -> List[ValidationIssue]:
        return [issue for result in self.sections.values() for issue in result.warnings]

    @property
    def first_failing_section(self) -> Optional[str]:
        """First section (in form order) with errors, or None."""
        for section in SECTION_ORDER:
            result = self.sections.get(section)
            if result is not None and not result.valid:
                return section
        return None

    def format_report(self) -> str:
        """Format validation results as a human-readable summary.

        Returns:
            Multi-line string with one block per section that has issues
        """
        lines = ["=" * 60, "PATIENT RECORD VALIDATION", "=" * 60]
        for section in SECTION_ORDER:
            result = self.sections.get(section)
            if result is None or not (result.errors or result.warnings):
                continue
            lines.append("")
            lines.append(f"{self.titles.get(section, section).upper()}:")
            for issue in result.errors:
                lines.append(f"  ✗ [{issue.field_name}] {issue.message}")
                if issue.suggestion:
                    lines.append(f"    → {issue.suggestion}")
            for issue in result.warnings:
                lines.append(f"  ! [{issue.field_name}] {issue.message}")
                if issue.suggestion:
                    lines.append(f"    → {issue.suggestion}")
        lines.append("")
        lines.append("=" * 60)
        if self.valid and not self.warnings:
            lines.append("RESULT: ✓ Record is ready to submit")
        elif self.valid:
            lines.append("RESULT: ✓ Record is ready to submit (with warnings)")
        else:
            lines.append(
                f"RESULT: ✗ Fix the errors above, starting with {self.first_failing_section}"
            )
        lines.append("=" * 60)
        return "\n".join(lines)

    def to_dict(self) -> dict:
        """Export validation results as a dictionary for JSON serialization."""
        return {
            "valid": self.valid,
            "first_failing_section": self.first_failing_section,
            "sections": {
                section: {
                    "valid": result.valid,
                    "errors": [issue.to_dict() for issue in result.errors],
                    "warnings": [issue.to_dict() for issue in result.warnings],
                }
                for section, result in self.sections.items()
            },
        }


@dataclass
class SectionSchema:
    """Fields, completion rule and extra checks for one form section.

    Attributes:
        section: Section id
        title: Heading shown to the operator
        fields: Field declarations in display order
        completion_fields: Field names inspected by the completion rule
        completion_rule: all (every field filled) or any (at least one filled)
        extra_checks: Section-level checks run after the field checks
    """

    section: str
    title: str
    fields: Tuple[FieldSpec, ...]
    completion_fields: Tuple[str, ...]
    completion_rule: Callable[[Iterable[bool]], bool] = any
    extra_checks: Tuple[Callable[[PatientRecord], List[ValidationIssue]], ...] = ()

    def is_complete(self, record: PatientRecord) -> bool:
        """Evaluate the section's completion predicate."""
        by_name = {spec.name: spec for spec in self.fields}
        return self.completion_rule(
            is_filled(by_name[name].get(record)) for name in self.completion_fields
        )

    def validate(self, record: PatientRecord) -> SectionValidation:
        """Run every field constraint and section check."""
        result = SectionValidation(section=self.section)
        issues: List[ValidationIssue] = []
        for spec in self.fields:
            issues.extend(spec.validate(record))
        for check in self.extra_checks:
            issues.extend(check(record))
        for issue in issues:
            if issue.is_error:
                result.errors.append(issue)
            else:
                result.warnings.append(issue)
        return result


class IntakeSchema:
    """Aggregate validator composed from independent section schemas.

    Example:
        >>> schema = build_intake_schema()
        >>> schema.field("ocularDiagnosis").section
        'diagnosis'
    """

    def __init__(self, sections: Iterable[SectionSchema]) -> None:
        self.sections: dict[str, SectionSchema] = {s.section: s for s in sections}
        self._fields: dict[str, FieldSpec] = {}
        for section in self.sections.values():
            for spec in section.fields:
                if spec.name in self._fields:
                    raise ValueError(f"Field declared twice: {spec.name}")
                self._fields[spec.name] = spec

    @property
    def field_names(self) -> List[str]:
        return list(self._fields)

    def has_field(self, name: str) -> bool:
        return name in self._fields

    def field(self, name: str) -> FieldSpec:
        """Look up a field declaration.

        Raises:
            UnknownFieldError: If the field is not declared
        """
        try:
            return self._fields[name]
        except KeyError:
            raise UnknownFieldError(name) from None

    def section(self, section: str) -> SectionSchema:
        """Look up a section schema.

        Raises:
            ValueError: If the section id is unknown
        """
        try:
            return self.sections[section]
        except KeyError:
            raise ValueError(
                f"Unknown section: {section}. Must be one of: {', '.join(SECTION_ORDER)}"
            ) from None

    def validate_section(self, record: PatientRecord, section: str) -> SectionValidation:
        """Validate one section.

        An unknown section id yields an invalid result carrying one ERROR issue.
        """
        if section not in self.sections:
            return SectionValidation(
                section=section,
                errors=[
                    ValidationIssue(
                        field_name="",
                        section=section,
                        severity=IssueSeverity.ERROR,
                        message=f"Unknown section: {section}",
                        suggestion=f"Use one of: {', '.join(SECTION_ORDER)}",
                    )
                ],
            )
        return self.section(section).validate(record)

    def validate_all(self, record: PatientRecord) -> FormValidationResult:
        return FormValidationResult(
            sections={name: schema.validate(record) for name, schema in self.sections.items()},
            titles={name: schema.title for name, schema in self.sections.items()},
        )

    def completed_sections(self, record: PatientRecord) -> frozenset[str]:
        return frozenset(
            name for name, schema in self.sections.items() if schema.is_complete(record)
        )


def _refraction_fields() -> Tuple[FieldSpec, ...]:
    stage_labels = {
        RefractionStage.DRY: "Dry refraction",
        RefractionStage.ACCEPTANCE: "Acceptance",
        RefractionStage.ADD_GIVEN: "Add given",
    }
    part_labels = {
        "sphere": "sphere",
        "sphere_positive": "sphere sign",
        "cylinder": "cylinder",
        "cylinder_positive": "cylinder sign",
        "axis": "axis",
        "note": "note",
    }
    specs = []
    for (stage, eye), prefix in REFRACTION_KEY_PREFIXES.items():
        eye_label = "OD" if eye.value == "right" else "OS"
        for suffix, part in REFRACTION_KEY_SUFFIXES.items():
            if part.endswith("_positive"):
                kind = "sign"
            elif part == "note":
                kind = "text"
            else:
                kind = "refraction"
            specs.append(
                FieldSpec(
                    name=f"{prefix}{suffix}",
                    section=Section.REFRACTION.value,
                    label=f"{stage_labels[stage]} {eye_label} {part_labels[part]}",
                    attr=measurement_attr(stage, eye),
                    part=part,
                    kind=kind,
                )
            )
    return tuple(specs)


def _check_refraction(record: PatientRecord) -> List[ValidationIssue]:
    issues: List[ValidationIssue] = []
    for (stage, eye), prefix in REFRACTION_KEY_PREFIXES.items():
        issues.extend(check_measurement(record.measurement(stage, eye), prefix))
    return issues


def _text_field(name: str, section: Section, label: str, **kwargs: Any) -> FieldSpec:
    return FieldSpec(
        name=name, section=section.value, label=label, attr=TEXT_FIELD_KEYS[name], **kwargs
    )


def build_intake_schema(name_min_length: int = 2) -> IntakeSchema:
    """Build the combined intake schema.

    Args:
        name_min_length: Minimum accepted length of the patient name

    Returns:
        IntakeSchema covering all six sections
    """
    demographics = SectionSchema(
        section=Section.DEMOGRAPHICS.value,
        title="Patient Demographics",
        fields=(
            _text_field("name", Section.DEMOGRAPHICS, "Name", required=True,
                        min_length=name_min_length),
            _text_field("age", Section.DEMOGRAPHICS, "Age", kind="age", required=True),
            _text_field("sex", Section.DEMOGRAPHICS, "Sex", kind="choice", required=True,
                        choices=tuple(s.value for s in Sex)),
        ),
        completion_fields=("name", "age", "sex"),
        completion_rule=all,
    )
    history = SectionSchema(
        section=Section.HISTORY.value,
        title="History Collection",
        fields=(_text_field("history", Section.HISTORY, "History"),),
        completion_fields=("history",),
    )
    vision = SectionSchema(
        section=Section.VISION.value,
        title="Vision Check",
        fields=(
            _text_field("distantVisionRight", Section.VISION, "Distant vision OD",
                        kind="distant_acuity"),
            _text_field("distantVisionLeft", Section.VISION, "Distant vision OS",
                        kind="distant_acuity"),
            _text_field("nearVisionRight", Section.VISION, "Near vision OD", kind="near_acuity"),
            _text_field("nearVisionLeft", Section.VISION, "Near vision OS", kind="near_acuity"),
        ),
        completion_fields=(
            "distantVisionRight", "distantVisionLeft", "nearVisionRight", "nearVisionLeft",
        ),
    )
    refraction_completion = tuple(
        f"{prefix}{suffix}"
        for (stage, _eye), prefix in REFRACTION_KEY_PREFIXES.items()
        if stage in COMPLETION_STAGES
        for suffix in ("Sph", "Cyl", "Axis")
    )
    refraction = SectionSchema(
        section=Section.REFRACTION.value,
        title="Refraction Values",
        fields=_refraction_fields(),
        completion_fields=refraction_completion,
        extra_checks=(_check_refraction,),
    )
    diagnosis = SectionSchema(
        section=Section.DIAGNOSIS.value,
        title="Ocular Diagnosis",
        fields=(_text_field("ocularDiagnosis", Section.DIAGNOSIS, "Ocular diagnosis"),),
        completion_fields=("ocularDiagnosis",),
    )
    outcome = SectionSchema(
        section=Section.OUTCOME.value,
        title="Outcome",
        fields=(
            _text_field("outcome", Section.OUTCOME, "Outcome", kind="choice", required=True,
                        choices=tuple(o.value for o in Outcome)),
        ),
        completion_fields=("outcome",),
    )
    return IntakeSchema([demographics, history, vision, refraction, diagnosis, outcome])
