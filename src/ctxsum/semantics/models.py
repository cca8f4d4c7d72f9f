"""Result models for semantic synthesis.

These are transient: they are built for one file, handed to the prompt
compiler and discarded. Only the pieces a ContextualSummary keeps survive.
"""

from __future__ import annotations

from dataclasses import dataclass, field

from ctxsum.extraction.models import Record

# --- file semantics ---------------------------------------------------------


@dataclass
class DomainConcept(Record):
    name: str
    type: str
    """service, entity, value-object or repository."""

    confidence: float
    context: str = ""
    relationships: list[dict[str, str]] = field(default_factory=list)


@dataclass
class TechnicalConcept(Record):
    name: str
    usage_frequency: str
    """extensive, frequent, occasional or rare."""

    effectiveness: float


@dataclass
class BusinessValue(Record):
    user_impact: str = "low"
    business_criticality: str = "low"
    frequency_of_use: str = "occasionally"
    revenue_impact: str = "none"
    compliance_relevance: bool = False


@dataclass
class SemanticComplexity(Record):
    conceptual: float = 0.0
    interaction: float = 0.0
    data: float = 0.0
    algorithmic: float = 0.0
    overall: str = "low"

    @property
    def total(self) -> float:
        return self.conceptual + self.interaction + self.data + self.algorithmic


@dataclass
class MaintainabilityMetrics(Record):
    score: float = 10.0
    function_part: float = 10.0
    component_part: float = 10.0
    type_part: float = 10.0


@dataclass
class CohesionAnalysis(Record):
    functional: float = 10.0
    component: float = 10.0
    business: float = 10.0
    type: str = "functional"


@dataclass
class CouplingAnalysis(Record):
    score: float = 10.0
    type: str = "loose"
    dependencies: int = 0


@dataclass
class FileSemantics(Record):
    primary_purpose: str
    secondary_purposes: list[str] = field(default_factory=list)
    domain_concepts: list[DomainConcept] = field(default_factory=list)
    technical_concepts: list[TechnicalConcept] = field(default_factory=list)
    business_value: BusinessValue = field(default_factory=BusinessValue)
    complexity: SemanticComplexity = field(default_factory=SemanticComplexity)
    maintainability: MaintainabilityMetrics = field(default_factory=MaintainabilityMetrics)
    cohesion: CohesionAnalysis = field(default_factory=CohesionAnalysis)
    coupling: CouplingAnalysis = field(default_factory=CouplingAnalysis)


# --- architecture -----------------------------------------------------------


@dataclass
class Violation(Record):
    description: str
    severity: str = "medium"
    recommendation: str = ""


@dataclass
class LayerInfo(Record):
    layer: str = "utility"
    purity: float = 1.0
    violations: list[Violation] = field(default_factory=list)


@dataclass
class SeparationOfConcerns(Record):
    score: float = 10.0
    level: str = "excellent"
    violations: list[Violation] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)


@dataclass
class ComplianceScore(Record):
    """A 0-10 principle score with the rule hits that lowered it."""

    score: float = 10.0
    violations: list[str] = field(default_factory=list)
    recommendations: list[str] = field(default_factory=list)


@dataclass
class SolidAnalysis(Record):
    single_responsibility: ComplianceScore = field(default_factory=ComplianceScore)
    open_closed: ComplianceScore = field(default_factory=ComplianceScore)
    liskov_substitution: ComplianceScore = field(default_factory=ComplianceScore)
    interface_segregation: ComplianceScore = field(default_factory=ComplianceScore)
    dependency_inversion: ComplianceScore = field(default_factory=ComplianceScore)

    def scores(self) -> list[float]:
        return [
            self.single_responsibility.score,
            self.open_closed.score,
            self.liskov_substitution.score,
            self.interface_segregation.score,
            self.dependency_inversion.score,
        ]


@dataclass
class DuplicatedConcept(Record):
    concept: str
    instances: list[str]
    similarity: float
    consolidation_complexity: str


@dataclass
class DryAnalysis(Record):
    duplication_level: float = 10.0
    duplicated_concepts: list[DuplicatedConcept] = field(default_factory=list)
    consolidation_opportunities: list[str] = field(default_factory=list)


@dataclass
class KissAnalysis(Record):
    score: float = 10.0
    violations: list[str] = field(default_factory=list)
    simplifications: list[str] = field(default_factory=list)


@dataclass
class YagniAnalysis(Record):
    score: float = 10.0
    over_engineering: list[str] = field(default_factory=list)
    unnecessary_features: list[str] = field(default_factory=list)


@dataclass
class DesignPrincipleAdherence(Record):
    solid: SolidAnalysis = field(default_factory=SolidAnalysis)
    dry: DryAnalysis = field(default_factory=DryAnalysis)
    kiss: KissAnalysis = field(default_factory=KissAnalysis)
    yagni: YagniAnalysis = field(default_factory=YagniAnalysis)
    overall_adherence: float = 1.0
    """0-1; each of the four families contributes a 0-1 share."""


@dataclass
class CodeSmell(Record):
    type: str
    severity: str
    description: str
    location: str = ""


@dataclass
class DebtItem(Record):
    type: str
    description: str
    principal: float
    interest: float


@dataclass
class ArchitecturalDebt(Record):
    items: list[DebtItem] = field(default_factory=list)
    total: float = 0.0


@dataclass
class ArchitecturalAnalysis(Record):
    layer: LayerInfo = field(default_factory=LayerInfo)
    separation_of_concerns: SeparationOfConcerns = field(default_factory=SeparationOfConcerns)
    design_principles: DesignPrincipleAdherence = field(default_factory=DesignPrincipleAdherence)
    code_smells: list[CodeSmell] = field(default_factory=list)
    debt: ArchitecturalDebt = field(default_factory=ArchitecturalDebt)


# --- quality ----------------------------------------------------------------


@dataclass
class QualityMetric(Record):
    score: float = 10.0


@dataclass
class SecurityVulnerability(Record):
    type: str
    severity: str
    description: str
    location: str = ""


@dataclass
class SecurityMetrics(Record):
    score: float = 10.0
    vulnerabilities: list[SecurityVulnerability] = field(default_factory=list)
    compliance_level: str = "strict"
    risk_level: str = "low"


@dataclass
class MaintainabilityScore(Record):
    score: float = 10.0
    code_smells: int = 0
    technical_debt_hours: float = 0.0


@dataclass
class ReliabilityMetrics(Record):
    score: float = 10.0
    error_handling: float = 10.0
    test_coverage: float = 5.0
    fault_tolerance: float = 8.0


@dataclass
class CodeQualityAnalysis(Record):
    readability: QualityMetric = field(default_factory=QualityMetric)
    testability: QualityMetric = field(default_factory=QualityMetric)
    performance: QualityMetric = field(default_factory=QualityMetric)
    security: SecurityMetrics = field(default_factory=SecurityMetrics)
    maintainability: MaintainabilityScore = field(default_factory=MaintainabilityScore)
    reliability: ReliabilityMetrics = field(default_factory=ReliabilityMetrics)
    overall_score: float = 10.0


# --- design patterns --------------------------------------------------------


@dataclass
class DetectedPattern(Record):
    name: str
    category: str
    confidence: float
    location: str = ""
    appropriateness: float = 0.8
    effectiveness: float = 0.8
    quality: str = "good"


@dataclass
class MissingPattern(Record):
    pattern: str
    benefit: str
    applicability: float
    location: str = ""


@dataclass
class PatternMisuse(Record):
    pattern: str
    issue: str
    severity: str = "medium"
    correction: str = ""


@dataclass
class PatternEvolution(Record):
    current: str
    suggested: str
    reason: str


@dataclass
class DesignPatternAnalysis(Record):
    detected: list[DetectedPattern] = field(default_factory=list)
    missing: list[MissingPattern] = field(default_factory=list)
    misuse: list[PatternMisuse] = field(default_factory=list)
    evolution: list[PatternEvolution] = field(default_factory=list)


# --- relationships ----------------------------------------------------------


@dataclass
class DependencyStrength(Record):
    strong: list[str] = field(default_factory=list)
    weak: list[str] = field(default_factory=list)
    cycles: list[list[str]] = field(default_factory=list)
    health: float = 10.0
    issues: list[str] = field(default_factory=list)


@dataclass
class CouplingMetrics(Record):
    afferent: int = 0
    efferent: int = 0
    instability: float = 0.0
    coupling: str = "loose"


@dataclass
class CohesionMetrics(Record):
    level: float = 1.0
    type: str = "functional"
    score: float = 10.0


@dataclass
class RelationshipAnalysis(Record):
    dependency_strength: DependencyStrength = field(default_factory=DependencyStrength)
    coupling: CouplingMetrics = field(default_factory=CouplingMetrics)
    cohesion: CohesionMetrics = field(default_factory=CohesionMetrics)
    fan_in: int = 0
    fan_out: int = 0
    instability: float = 0.0
    abstractness: float = 0.0
    distance: float = 1.0


# --- guidance ---------------------------------------------------------------


@dataclass
class Insight(Record):
    type: str
    category: str
    priority: str
    description: str
    evidence: list[str] = field(default_factory=list)


@dataclass
class Recommendation(Record):
    type: str
    priority: str
    title: str
    description: str
    rationale: str = ""
    benefits: list[str] = field(default_factory=list)
    steps: list[str] = field(default_factory=list)
    effort_hours: float = 0.0


@dataclass
class RiskFactor(Record):
    type: str
    severity: str
    description: str
    mitigation: str = ""


@dataclass
class Optimization(Record):
    type: str
    description: str
    impact: str = "medium"
    effort: str = "medium"


@dataclass
class SemanticAnalysisResult(Record):
    """Everything the synthesizer derives for one file."""

    file_semantics: FileSemantics
    architecture: ArchitecturalAnalysis = field(default_factory=ArchitecturalAnalysis)
    code_quality: CodeQualityAnalysis = field(default_factory=CodeQualityAnalysis)
    design_patterns: DesignPatternAnalysis = field(default_factory=DesignPatternAnalysis)
    relationships: RelationshipAnalysis = field(default_factory=RelationshipAnalysis)
    insights: list[Insight] = field(default_factory=list)
    recommendations: list[Recommendation] = field(default_factory=list)
    risks: list[RiskFactor] = field(default_factory=list)
    optimizations: list[Optimization] = field(default_factory=list)
