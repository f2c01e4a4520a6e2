"""
Schemas for structured LLM output.

Provides Pydantic models for:
- Diagram classification (vision model)
- Advisory judgment for a target/candidate pair
- Contrastive rationale for a single match

Models accept both snake_case and camelCase keys, since the services are
prompted with camelCase JSON examples.
"""

from typing import List, Literal

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Diagram Classification
# ============================================================================

class DiagramClassification(BaseModel):
    """Structured reading of one diagram page."""
    model_config = ConfigDict(populate_by_name=True)

    type: str = Field(default="unknown", description="flowchart, block_diagram, mechanical, architecture or unknown")
    semantic_summary: str = Field(default="", alias="semanticSummary")
    components: List[str] = Field(default_factory=list)
    connections: List[str] = Field(default_factory=list)
    labels: List[str] = Field(default_factory=list)
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)


# ============================================================================
# Advisory Judgment
# ============================================================================

class ClaimAnalysisEntry(BaseModel):
    """How one target claim maps onto the candidate's claims."""
    model_config = ConfigDict(populate_by_name=True)

    target_claim: int = Field(alias="targetClaim")
    source_claims: List[int] = Field(default_factory=list, alias="sourceClaims")
    match_type: Literal["SINGLE", "COMBINED"] = Field(default="SINGLE", alias="matchType")
    rationale: str = ""


class DiagramSupport(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    used: bool = False
    explanation: str = ""


class AdvisoryJudgment(BaseModel):
    """Advisory-only conflict assessment; never a final decision."""
    model_config = ConfigDict(populate_by_name=True)

    suggested_conflict: bool = Field(default=False, alias="suggestedConflict")
    confidence: float = Field(default=0.0, ge=0.0, le=1.0)
    claim_analysis: List[ClaimAnalysisEntry] = Field(default_factory=list, alias="claimAnalysis")
    diagram_support: DiagramSupport = Field(default_factory=DiagramSupport, alias="diagramSupport")
    reasoning: str = ""


# ============================================================================
# Rationale
# ============================================================================

class RationaleItem(BaseModel):
    element: str
    explanation: str = ""


class Rationale(BaseModel):
    """Contrastive comparison of two passages."""
    model_config = ConfigDict(populate_by_name=True)

    overlaps: List[RationaleItem] = Field(default_factory=list)
    distinctions: List[RationaleItem] = Field(default_factory=list)
    overall_assessment: Literal[
        "HIGH_OVERLAP", "PARTIAL_OVERLAP", "LOW_OVERLAP", "NO_OVERLAP"
    ] = Field(default="NO_OVERLAP", alias="overallAssessment")
    summary: str = ""
