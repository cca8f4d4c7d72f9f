"""Business logic extraction: domain, operations, rules and their dependencies."""

from __future__ import annotations

import posixpath
import re
from collections.abc import Callable
from typing import TYPE_CHECKING

from ctxsum.extraction.dependencies import iter_imports, package_name
from ctxsum.extraction.functions import FunctionExtractor
from ctxsum.extraction.models import (
    ApiDependency,
    BusinessDependencies,
    BusinessLogicContext,
    BusinessOperation,
    BusinessQuality,
    BusinessRule,
    FunctionDefinition,
)
from ctxsum.semantics.complexity import complexity_rank

if TYPE_CHECKING:
    from ctxsum.scanner import SourceFile

OPERATION_PATTERNS = {"business-logic", "data-transformation", "validation", "api-integration"}

# Ordered (name markers, purpose); first match wins
OPERATION_PURPOSES: list[tuple[tuple[str, ...], str]] = [
    (("validate", "check"), "Validates input data"),
    (("calculate", "compute"), "Performs calculations"),
    (("transform", "convert"), "Transforms data"),
    (("process", "handle"), "Processes business logic"),
    (("save", "update"), "Persists data"),
    (("fetch", "get"), "Retrieves data"),
    (("send", "notify"), "Sends notifications"),
]

CALCULATION_MARKERS = ("calculate", "compute", "total", "sum", "price", "cost", "tax")

VALIDATION_RULE_RE = re.compile(r"if\s*\([^)]*(?:validate|check|verify)[^)]*\)")
SCHEMA_FIELD_RE = re.compile(r"(\w+):\s*(?:yup|joi|z)\.")
ENV_RE = re.compile(r"process\.env\.(\w+)")
API_LITERAL_RE = re.compile(r"""['"`]([^'"`\s]*/api/[^'"`\s]*)['"`]""")
SERVICE_URL_RE = re.compile(r"""['"`]https?://([\w.-]+)""")
IMAGE_RE = re.compile(r"\.(?:png|jpe?g|gif|svg|webp)$")

# (marker, transformation name)
TRANSFORMATION_MARKERS: list[tuple[str, str]] = [
    (".map(", "mapping"),
    (".filter(", "filtering"),
    (".reduce(", "aggregation"),
    (".sort(", "sorting"),
]

# Path segment -> domain, checked before keyword scoring
PATH_DOMAINS: dict[str, str] = {
    "auth": "auth",
    "authentication": "auth",
    "payment": "payment",
    "payments": "payment",
    "billing": "payment",
    "report": "report-management",
    "reports": "report-management",
    "diagram": "diagram-analysis",
    "diagrams": "diagram-analysis",
    "analytics": "analytics",
    "analysis": "analytics",
    "project": "project-management",
    "projects": "project-management",
    "file": "file-management",
    "files": "file-management",
    "user": "user-management",
    "users": "user-management",
    "notification": "communication",
    "notifications": "communication",
}

# domain -> (weight, keywords)
DOMAIN_KEYWORDS: dict[str, tuple[int, tuple[str, ...]]] = {
    "diagram-analysis": (3, ("diagram", "chart", "graph", "visual", "viewer", "analysis")),
    "report-management": (3, ("report", "analytics", "metrics", "data", "score", "breakdown")),
    "project-management": (3, ("project", "slot", "workspace", "portfolio")),
    "file-management": (3, ("upload", "download", "file", "storage", "document")),
    "auth": (2, ("auth", "login", "signup", "user", "account", "session")),
    "payment": (3, ("payment", "billing", "invoice", "checkout", "order", "stripe", "paypal")),
    "inventory": (3, ("inventory", "product", "catalog", "stock", "item")),
    "communication": (2, ("notification", "email", "message", "chat", "alert")),
    "workflow": (2, ("workflow", "process", "step", "approval", "pipeline")),
    "configuration": (2, ("config", "setting", "preference", "option", "setup")),
    "search": (2, ("search", "filter", "query", "index", "find")),
}

# (domain, keywords that must all appear); each adds a flat bonus
DOMAIN_BONUSES: list[tuple[str, tuple[str, ...]]] = [
    ("validation", ("validate", "rule", "policy")),
    ("calculation", ("calculate", "compute", "formula")),
    ("workflow", ("workflow", "process", "step")),
]
DOMAIN_BONUS = 5
MIN_DOMAIN_SCORE = 3


def _path_domain(file_path: str) -> str | None:
    for segment in file_path.replace("\\", "/").lower().split("/")[:-1]:
        if segment in PATH_DOMAINS:
            return PATH_DOMAINS[segment]
    return None


def score_domains(file_name: str, text: str) -> dict[str, float]:
    """Keyword scores per domain from the file name and content."""
    name = file_name.lower()
    content = text.lower()
    scores: dict[str, float] = {}
    for domain, (weight, keywords) in DOMAIN_KEYWORDS.items():
        score = 0.0
        for keyword in keywords:
            if keyword in name:
                score += weight * 2
            count = len(re.findall(rf"\b{re.escape(keyword)}\b", content))
            score += min(count * weight * 0.5, weight * 3)
        scores[domain] = score
    for domain, keywords in DOMAIN_BONUSES:
        if all(keyword in content for keyword in keywords):
            scores[domain] = scores.get(domain, 0.0) + DOMAIN_BONUS
    return scores


def detect_domain(file_path: str, text: str) -> str:
    """Path segments first, then the best keyword score, then a content fallback."""
    by_path = _path_domain(file_path)
    if by_path:
        return by_path

    best, best_score = None, 0.0
    for domain, score in score_domains(posixpath.basename(file_path.replace("\\", "/")), text).items():
        if score > best_score and score >= MIN_DOMAIN_SCORE:
            best, best_score = domain, score
    if best:
        return best

    content = text.lower()
    if "business" in content and "logic" in content:
        return "business-logic"
    return "general"


def operation_purpose(name: str) -> str:
    lowered = name.lower()
    for markers, purpose in OPERATION_PURPOSES:
        if any(marker in lowered for marker in markers):
            return purpose
    return "Handles business operations"


def is_operation(definition: FunctionDefinition) -> bool:
    if definition.complexity.level == "low" and not definition.signature.parameters:
        return False
    if definition.is_component or definition.is_hook:
        return False
    return any(pattern in OPERATION_PATTERNS for pattern in definition.patterns)


def _numbered(prefix: str, descriptions: list[str]) -> list[BusinessRule]:
    return [
        BusinessRule(name=f"{prefix} {index}", description=description)
        for index, description in enumerate(descriptions, start=1)
    ]


QualityScorer = Callable[[list[BusinessOperation], str], float]

COMPLEXITY_PENALTIES = {"medium": 1.0, "high": 2.5, "very-high": 4.0}


def _maintainability(operations: list[BusinessOperation], text: str) -> float:
    if not operations:
        return 10.0
    worst = max(operations, key=lambda op: complexity_rank(op.complexity)).complexity
    return 10.0 - COMPLEXITY_PENALTIES.get(worst, 0.0)


def _testability(operations: list[BusinessOperation], text: str) -> float:
    score = 10.0 - 1.5 * sum(1 for op in operations if op.complexity in ("high", "very-high"))
    if "localStorage" in text or "window." in text:
        score -= 2
    return score


def _reusability(operations: list[BusinessOperation], text: str) -> float:
    generic = [
        op for op in operations if "specific" not in op.name.lower() and "custom" not in op.name.lower()
    ]
    return min(10.0, 5.0 + len(generic))


def _reliability(operations: list[BusinessOperation], text: str) -> float:
    return 8.0 + (1.0 if "try" in text and "catch" in text else 0.0)


def _performance(operations: list[BusinessOperation], text: str) -> float:
    score = 8.0
    if any(op.complexity == "very-high" for op in operations):
        score -= 3
    elif any(op.complexity == "high" for op in operations):
        score -= 2
    if "useMemo" in text or "useCallback" in text:
        score += 1
    return score


def _security(operations: list[BusinessOperation], text: str) -> float:
    score = 7.0
    if "sanitize" in text or "validate" in text:
        score += 1.5
    if "eval(" in text or "innerHTML" in text:
        score -= 3
    return score


# Each scorer reads the operations and file text and scores on 0-10
QUALITY_SCORERS: dict[str, QualityScorer] = {
    "maintainability": _maintainability,
    "testability": _testability,
    "reusability": _reusability,
    "reliability": _reliability,
    "performance": _performance,
    "security": _security,
}


def business_quality(operations: list[BusinessOperation], text: str) -> BusinessQuality:
    scores = {
        name: max(0.0, min(10.0, scorer(operations, text))) for name, scorer in QUALITY_SCORERS.items()
    }
    return BusinessQuality(
        reliability=scores["reliability"],
        overall_score=sum(scores.values()) / len(scores),
    )


class BusinessLogicExtractor:
    """Extract domain signals from a file's functions and text."""

    def __init__(self, functions: FunctionExtractor | None = None):
        self.functions = functions or FunctionExtractor()

    def extract(self, source: SourceFile) -> BusinessLogicContext:
        text = source.text or ""
        definitions = [found.definition for found in self.functions.collect(source)]

        operations = [
            BusinessOperation(
                name=d.name,
                purpose=operation_purpose(d.name),
                complexity=d.complexity.level,
                inputs=[p.name for p in d.signature.parameters],
                outputs=[d.signature.return_type],
            )
            for d in definitions
            if is_operation(d)
        ]

        calculations = [
            f"Calculation in {d.name}"
            for d in definitions
            if any(marker in d.name.lower() for marker in CALCULATION_MARKERS)
        ]
        rules = _numbered("Validation Rule", [m.group(0) for m in VALIDATION_RULE_RE.finditer(text)])
        rules += _numbered("Calculation Rule", calculations)

        workflows = []
        if "async" in text and "await" in text:
            workflows.append(BusinessRule(name="Async Workflow", description="Sequential asynchronous steps"))

        validations = [
            BusinessRule(name=field_name, description="Schema validation")
            for field_name in dict.fromkeys(SCHEMA_FIELD_RE.findall(text))
        ]

        transformations = [
            BusinessRule(name=name, description=f"Uses {marker.strip('.(')}")
            for marker, name in TRANSFORMATION_MARKERS
            if marker in text
        ]
        if "normalize" in text or "transform" in text:
            transformations.append(BusinessRule(name="normalization", description="Normalizes data shape"))

        return BusinessLogicContext(
            domain=detect_domain(source.path, text),
            operations=operations,
            rules=rules,
            workflows=workflows,
            validations=validations,
            transformations=transformations,
            dependencies=self._dependencies(source, text),
            quality=business_quality(operations, text),
        )

    def _dependencies(self, source: SourceFile, text: str) -> BusinessDependencies:
        imports = iter_imports(source.tree.root_node) if source.tree is not None else []
        lowered = text.lower()
        return BusinessDependencies(
            external_services=list(dict.fromkeys(SERVICE_URL_RE.findall(text))),
            databases=[kind for kind in ("sql", "query") if kind in lowered],
            apis=[
                ApiDependency(
                    name=endpoint.rstrip("/").rsplit("/", 1)[-1] or endpoint,
                    endpoint=endpoint,
                    retries=1 if "retry" in lowered else 0,
                    fallback="catch" in text,
                )
                for endpoint in dict.fromkeys(API_LITERAL_RE.findall(text))
            ],
            libraries=list(
                dict.fromkeys(package_name(imp.module) for imp in imports if not imp.is_internal)
            ),
            configurations=list(dict.fromkeys(ENV_RE.findall(text))),
            resources=[imp.module for imp in imports if IMAGE_RE.search(imp.module)],
        )
