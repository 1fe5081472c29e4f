# src/pulse_scoring/api/v1/endpoints/audit.py
"""Admin-only vote audit endpoints."""

from dataclasses import asdict
from typing import Annotated, Any

from fastapi import APIRouter, Depends, HTTPException, Response, status

from pulse_scoring.db.time import utcnow
from pulse_scoring.schemas.audit import AuditFilters, ExportFormat
from pulse_scoring.schemas.vote import VoteOut
from pulse_scoring.services.audit import analyze_vote, filter_votes, summarize, to_vote_out

from ..dependencies import AdminDep, AuditServiceDep

router = APIRouter(prefix="/audit", tags=["audit"])

FiltersDep = Annotated[AuditFilters, Depends()]

_MEDIA_TYPES = {
    ExportFormat.JSON: "application/json",
    ExportFormat.CSV: "text/csv; charset=utf-8",
}


@router.get("/votes", response_model=list[VoteOut])
async def list_audit_votes(
    _admin: AdminDep,
    service: AuditServiceDep,
    filters: FiltersDep,
) -> list[VoteOut]:
    """List votes with their full history, most recent activity first."""
    votes = service.get_vote_audit(filters.presentation_id, filters.user_id)
    presentations = {p.id: p for p in service.store.list_presentations()}
    return [to_vote_out(vote) for vote in filter_votes(votes, presentations, filters)]


@router.get("/summary")
async def get_audit_summary(
    _admin: AdminDep,
    service: AuditServiceDep,
) -> dict[str, int]:
    """Headline counters for the audit dashboard."""
    summary = summarize(service.get_vote_audit())
    return {**asdict(summary), "update_rate": summary.update_rate}


@router.get("/votes/{vote_id}/analysis")
async def get_vote_analysis(
    vote_id: int,
    _admin: AdminDep,
    service: AuditServiceDep,
) -> dict[str, Any]:
    """Compare a vote's stored total against its ratings."""
    vote = service.store.get_vote_by_id(vote_id)
    if vote is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Vote not found")
    analysis = analyze_vote(vote, service.snapshot)
    return {
        "vote_id": analysis.vote_id,
        "raw_sum": analysis.raw_sum,
        "stored_total": analysis.stored_total,
        "discrepancy": analysis.discrepancy,
        "matches_legacy_weighted": analysis.matches_legacy_weighted,
    }


@router.get("/export")
async def export_audit(
    _admin: AdminDep,
    service: AuditServiceDep,
    filters: FiltersDep,
    format: ExportFormat = ExportFormat.JSON,
) -> Response:
    """Download the filtered audit trail as JSON or CSV."""
    content = service.export_audit(format, filters)
    filename = f"vote-audit-{utcnow().date().isoformat()}.{format.value}"
    return Response(
        content=content,
        media_type=_MEDIA_TYPES[format],
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
