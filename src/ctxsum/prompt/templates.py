"""Prompt template registry and template selection."""

from __future__ import annotations

from dataclasses import dataclass, field, replace

from ctxsum.semantics.complexity import is_high

SECTION_IDS: tuple[str, ...] = (
    "overview",
    "structure",
    "dependencies",
    "exports",
    "business-logic",
    "technical-details",
    "usage-examples",
    "relationships",
)

DISPLAY_FORMATS: tuple[str, ...] = (
    "paragraph",
    "bullet-points",
    "numbered-list",
    "key-value",
    "code-snippet",
    "table",
)


@dataclass(frozen=True)
class SectionCondition:
    """An inclusion condition for an optional section.

    ``kind`` is one of complexity-level (exact tier match), business-domain
    (substring of a domain-concept name) or has-content (a named predicate).
    """

    kind: str
    value: str


@dataclass(frozen=True)
class SectionTemplate:
    id: str
    title: str
    format: str = "paragraph"
    required: bool = True
    max_tokens: int = 200
    conditions: tuple[SectionCondition, ...] = ()


@dataclass(frozen=True)
class HeaderTemplate:
    format: str = "{purpose}"
    include_file_info: bool = False
    include_complexity: bool = False
    include_purpose: bool = True


@dataclass(frozen=True)
class FooterTemplate:
    format: str = ""
    include_recommendations: bool = False
    include_next_steps: bool = False


@dataclass(frozen=True)
class SummaryTemplate:
    """How one kind of file is rendered into a prompt."""

    name: str
    title: str
    file_types: tuple[str, ...] = ()
    header: HeaderTemplate = field(default_factory=HeaderTemplate)
    sections: tuple[SectionTemplate, ...] = ()
    footer: FooterTemplate = field(default_factory=FooterTemplate)
    style: str = "concise"
    max_tokens: int = 500
    priorities: dict[str, tuple[str, ...]] = field(default_factory=dict)
    """high/medium/low -> section ids, used to order specialized prompts."""

    def section(self, section_id: str) -> SectionTemplate | None:
        for section in self.sections:
            if section.id == section_id:
                return section
        return None

    def with_section(self, section: SectionTemplate) -> SummaryTemplate:
        """Copy with ``section`` appended unless one with the same id exists."""
        if self.section(section.id) is not None:
            return self
        return replace(self, sections=(*self.sections, section))


CONCISE = SummaryTemplate(
    name="concise",
    title="Concise",
    file_types=("utility", "type-definition", "constant"),
    header=HeaderTemplate(format="{purpose} • {complexity}", include_complexity=True),
    sections=(
        SectionTemplate(id="overview", title="Overview", format="paragraph", max_tokens=100),
        SectionTemplate(id="exports", title="Exports", format="bullet-points", max_tokens=80),
    ),
    style="concise",
    max_tokens=300,
    priorities={
        "high": ("overview", "exports"),
        "medium": ("dependencies",),
        "low": ("technical-details",),
    },
)

DETAILED_TECHNICAL = SummaryTemplate(
    name="detailed-technical",
    title="Detailed Technical",
    file_types=("component", "api-route", "service"),
    header=HeaderTemplate(
        format="{purpose}\n**Complexity:** {complexity} • **Type:** {file_type}",
        include_file_info=True,
        include_complexity=True,
    ),
    sections=(
        SectionTemplate(id="overview", title="Overview", format="paragraph", max_tokens=200),
        SectionTemplate(id="structure", title="Structure", format="bullet-points", max_tokens=300),
        SectionTemplate(
            id="business-logic",
            title="Business Logic",
            format="paragraph",
            required=False,
            max_tokens=250,
            conditions=(SectionCondition("has-content", "business-operations"),),
        ),
        SectionTemplate(
            id="technical-details", title="Technical Details", format="bullet-points", max_tokens=200
        ),
        SectionTemplate(id="dependencies", title="Dependencies", format="bullet-points", max_tokens=150),
    ),
    footer=FooterTemplate(
        format="**Recommendations:** {recommendations}",
        include_recommendations=True,
        include_next_steps=True,
    ),
    style="technical",
    max_tokens=1200,
    priorities={
        "high": ("overview", "structure", "business-logic"),
        "medium": ("technical-details", "dependencies"),
        "low": ("usage-examples", "relationships"),
    },
)

BUSINESS_FOCUSED = SummaryTemplate(
    name="business-focused",
    title="Business Focused",
    file_types=("component", "service", "api-route"),
    header=HeaderTemplate(
        format="{purpose}\n**Business Impact:** {business_value} • **Domain:** {domain}",
        include_file_info=True,
    ),
    sections=(
        SectionTemplate(id="overview", title="Business Overview", format="paragraph", max_tokens=180),
        SectionTemplate(
            id="business-logic", title="Business Operations", format="numbered-list", max_tokens=400
        ),
        SectionTemplate(id="structure", title="Implementation", format="bullet-points", max_tokens=200),
        SectionTemplate(
            id="dependencies",
            title="External Dependencies",
            format="bullet-points",
            required=False,
            max_tokens=150,
            conditions=(SectionCondition("has-content", "external-dependencies"),),
        ),
    ),
    footer=FooterTemplate(
        format="**Business Value:** {business_value}\n**Recommendations:** {recommendations}",
        include_recommendations=True,
        include_next_steps=True,
    ),
    style="business",
    max_tokens=1000,
    priorities={
        "high": ("business-logic", "overview"),
        "medium": ("structure", "dependencies"),
        "low": ("technical-details", "usage-examples"),
    },
)

GENERIC = SummaryTemplate(name="default", title="Default", max_tokens=500)

# Registration order decides exact file-type matches shared by two templates
TEMPLATES: dict[str, SummaryTemplate] = {
    t.name: t for t in (CONCISE, DETAILED_TECHNICAL, BUSINESS_FOCUSED)
}

USAGE_EXAMPLES_SECTION = SectionTemplate(
    id="usage-examples",
    title="Usage Examples",
    format="paragraph",
    required=False,
    max_tokens=150,
)

SPECIALIZED_TEMPLATES: dict[str, str] = {
    "code-review": "detailed-technical",
    "documentation": "business-focused",
}


def get_template(name: str) -> SummaryTemplate:
    return TEMPLATES.get(name, default_template())


def default_template() -> SummaryTemplate:
    return TEMPLATES.get("concise", GENERIC)


def select_template(file_type: str, complexity: str, business_criticality: str) -> SummaryTemplate:
    """Exact file-type match, then complexity tier, then criticality, then the default."""
    for template in TEMPLATES.values():
        if file_type in template.file_types:
            return template
    if is_high(complexity):
        return get_template("detailed-technical")
    if business_criticality == "critical":
        return get_template("business-focused")
    return default_template()


def specialized_template(use_case: str) -> SummaryTemplate:
    name = SPECIALIZED_TEMPLATES.get(use_case)
    return get_template(name) if name else default_template()
