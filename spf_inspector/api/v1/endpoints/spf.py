"""
SPF inspection endpoints
"""
import logging
from typing import List, Optional
from fastapi import APIRouter, Depends, Path, Query
from pydantic import BaseModel

from spf_inspector.services.dns.catalog import explain
from spf_inspector.services.dns.check import CheckState, SPFCheckResult, check_spf
from spf_inspector.services.dns.resolver import SPF_PREFIX, get_resolver
from spf_inspector.services.dns.spf import (
    IncludeEdge,
    Mechanism,
    classify_mechanisms,
    fetch_first_or_message,
)
from spf_inspector.utils.validators import normalize_domain

logger = logging.getLogger(__name__)
router = APIRouter()


class SPFCheckRequest(BaseModel):
    """Request model for an SPF check"""
    domain: str


class EdgeModel(BaseModel):
    """An include or redirect reference"""
    type: str  # "include" or "redirect"
    domain: str

    @classmethod
    def from_edge(cls, edge: IncludeEdge) -> "EdgeModel":
        return cls(type=edge.type, domain=edge.domain)


class MechanismModel(BaseModel):
    """A classified mechanism with its position in the record"""
    kind: str
    qualifier: str
    argument: Optional[str] = None
    text: str
    start: int
    end: int
    explanation: str

    @classmethod
    def from_mechanism(cls, mechanism: Mechanism) -> "MechanismModel":
        return cls(
            kind=mechanism.kind.value,
            qualifier=mechanism.qualifier.value,
            argument=mechanism.argument,
            text=mechanism.text,
            start=mechanism.start,
            end=mechanism.end,
            explanation=mechanism.explanation,
        )


class RecordBreakdownModel(BaseModel):
    """Annotated view of one SPF record"""
    record: str
    edges: List[EdgeModel] = []
    mechanisms: List[MechanismModel] = []


class UnresolvedIncludeModel(BaseModel):
    """Included domain whose record could not be fetched"""
    domain: str
    reason: str


class SPFCheckResponse(BaseModel):
    """Response model for SPF check results"""
    domain: str
    state: str
    records: List[str]
    lookup_count: int
    edges: List[EdgeModel]
    mechanism_spans: List[MechanismModel]
    breakdowns: List[RecordBreakdownModel]
    record_count: int
    edge_count: int
    mechanism_count: int
    exceeds_lookup_budget: bool
    warnings: List[str] = []
    unresolved: List[UnresolvedIncludeModel] = []

    @classmethod
    def from_result(cls, result: SPFCheckResult) -> "SPFCheckResponse":
        return cls(
            domain=result.domain,
            state=result.state.value,
            records=result.records,
            lookup_count=result.lookup_count,
            edges=[EdgeModel.from_edge(e) for e in result.edges],
            mechanism_spans=[MechanismModel.from_mechanism(m) for m in result.mechanism_spans],
            breakdowns=[
                RecordBreakdownModel(
                    record=b.record,
                    edges=[EdgeModel.from_edge(e) for e in b.edges],
                    mechanisms=[MechanismModel.from_mechanism(m) for m in b.mechanisms],
                )
                for b in result.breakdowns
            ],
            record_count=result.record_count,
            edge_count=result.edge_count,
            mechanism_count=result.mechanism_count,
            exceeds_lookup_budget=result.exceeds_lookup_budget,
            warnings=result.warnings,
            unresolved=[
                UnresolvedIncludeModel(domain=f.domain, reason=f.reason)
                for f in result.unresolved
            ],
        )


class IncludedRecordResponse(BaseModel):
    """Drill-down view of an included or redirected domain"""
    domain: str
    record: str
    mechanisms: List[MechanismModel] = []


class ExplanationResponse(BaseModel):
    """Catalog explanation of a mechanism token"""
    token: str
    explanation: str


@router.post("/check", response_model=SPFCheckResponse)
async def check_domain(
    check_request: SPFCheckRequest,
    resolver=Depends(get_resolver),
):
    """Check the SPF record of a domain and count its DNS lookups"""
    result = await check_spf(check_request.domain, resolver)

    if result.state != CheckState.READY:
        # handled by the application exception handler
        raise result.error

    return SPFCheckResponse.from_result(result)


@router.get("/record/{domain}", response_model=IncludedRecordResponse)
async def get_included_record(
    domain: str = Path(..., description="Included or redirected domain to expand"),
    resolver=Depends(get_resolver),
):
    """Fetch the SPF record of an included or redirected domain"""
    included_domain = normalize_domain(domain)
    record = await fetch_first_or_message(included_domain, resolver)

    mechanisms = []
    if record.startswith(SPF_PREFIX):
        mechanisms = [MechanismModel.from_mechanism(m) for m in classify_mechanisms(record)]

    return IncludedRecordResponse(domain=included_domain, record=record, mechanisms=mechanisms)


@router.get("/explain", response_model=ExplanationResponse)
async def explain_token(
    token: str = Query(..., description="Mechanism token such as 'include:' or '-all'"),
):
    """Explain what an SPF mechanism token does"""
    return ExplanationResponse(token=token, explanation=explain(token))
