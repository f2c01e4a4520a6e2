"""
Analysis Views

Read-only inspection of ingestion output and similarity results, plus
endpoints that queue ingest and similarity-check jobs:

GET  /api/analysis/stats                         ingestion counts and success rate
GET  /api/analysis/<filing_id>                   ingestion summary, verdict, snapshot refs
GET  /api/analysis/<filing_id>/raw               extracted text, page images, citations
GET  /api/analysis/<filing_id>/claims            structured claims
GET  /api/analysis/<filing_id>/diagrams          classified diagrams
GET  /api/analysis/<filing_id>/snapshots         similarity snapshots, oldest first
POST /api/analysis/<filing_id>/ingest            queue ingestion ({"revision": bool})
POST /api/analysis/<filing_id>/similarity-check  queue a similarity check
GET  /api/analysis/jobs/<job_id>                 job status
"""

from flask import Blueprint, jsonify, request

from priorart.exceptions import PreconditionError
from priorart.models import Filing, Job, SimilaritySnapshot
from priorart.web.db import db
from priorart.workers.producers import create_ingest_job, create_similarity_check_job

bp = Blueprint("analysis", __name__, url_prefix="/api/analysis")


def _filing_or_404(filing_id: str):
    filing = db.session.get(Filing, filing_id)
    if filing is None:
        return None, (jsonify({"success": False, "error": "Filing not found"}), 404)
    return filing, None


# ─────────────────────────────────────────────────────────────────────────────
# Inspection
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/stats", methods=["GET"])
def get_stats():
    return jsonify({"success": True, "stats": Filing.ingestion_stats()})


@bp.route("/<filing_id>", methods=["GET"])
def get_analysis(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error

    return jsonify({
        "success": True,
        "filing_id": filing.id,
        "title": filing.title,
        "ingestion": filing.ingestion_summary(),
        "analysis_refs": filing.analysis_refs or [],
        "final_verdict": filing.final_verdict,
        "verdict_updated_at": filing.verdict_updated_at.isoformat() if filing.verdict_updated_at else None,
    })


@bp.route("/<filing_id>/raw", methods=["GET"])
def get_raw(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error
    return jsonify({"success": True, "filing_id": filing.id, "raw": filing.raw or {}})


@bp.route("/<filing_id>/claims", methods=["GET"])
def get_claims(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error
    claims = [c.to_dict() for c in filing.get_claims()]
    return jsonify({"success": True, "filing_id": filing.id, "total": len(claims), "claims": claims})


@bp.route("/<filing_id>/diagrams", methods=["GET"])
def get_diagrams(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error
    diagrams = [d.to_dict() for d in filing.get_diagrams()]
    return jsonify({"success": True, "filing_id": filing.id, "total": len(diagrams), "diagrams": diagrams})


@bp.route("/<filing_id>/snapshots", methods=["GET"])
def get_snapshots(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error
    snapshots = SimilaritySnapshot.for_target(filing.id)
    return jsonify({
        "success": True,
        "filing_id": filing.id,
        "total": len(snapshots),
        "snapshots": [s.as_dict() for s in snapshots],
    })


# ─────────────────────────────────────────────────────────────────────────────
# Job triggers
# ─────────────────────────────────────────────────────────────────────────────

@bp.route("/<filing_id>/ingest", methods=["POST"])
def trigger_ingest(filing_id: str):
    """
    Queue ingestion.

    Body:
        revision: true when the filing's documents were amended
    """
    filing, error = _filing_or_404(filing_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    try:
        job = create_ingest_job(filing.id, is_revision=bool(data.get("revision", False)))
    except PreconditionError as e:
        return jsonify({"success": False, "error": str(e)}), 409

    return jsonify({"success": True, "job": job.as_dict()}), 202


@bp.route("/<filing_id>/similarity-check", methods=["POST"])
def trigger_similarity_check(filing_id: str):
    filing, error = _filing_or_404(filing_id)
    if error:
        return error

    try:
        job = create_similarity_check_job(filing.id)
    except PreconditionError as e:
        return jsonify({"success": False, "error": str(e)}), 409

    return jsonify({"success": True, "job": job.as_dict()}), 202


@bp.route("/jobs/<job_id>", methods=["GET"])
def get_job(job_id: str):
    job = db.session.get(Job, job_id)
    if job is None:
        return jsonify({"success": False, "error": "Job not found"}), 404
    return jsonify({"success": True, "job": job.as_dict()})
