"""
Tests for the similarity check pipeline (discover, advise, enrich, snapshot, verdict).
"""

from unittest.mock import MagicMock

import pytest

from tests.conftest import SAMPLE_CLAIMS


def _judgment(conflict=True, confidence=0.85, target_claim=1):
    from priorart.services.schemas import AdvisoryJudgment, ClaimAnalysisEntry, DiagramSupport

    return AdvisoryJudgment(
        suggested_conflict=conflict,
        confidence=confidence,
        claim_analysis=[ClaimAnalysisEntry(target_claim=target_claim, source_claims=[1], rationale="Same elements.")],
        diagram_support=DiagramSupport(used=False),
        reasoning="Internal chain of reasoning.",
    )


@pytest.fixture
def reasoner():
    reasoner = MagicMock()
    reasoner.judge.return_value = _judgment()
    return reasoner


@pytest.fixture
def rationale_generator():
    from priorart.services.schemas import Rationale

    generator = MagicMock()
    generator.generate.return_value = Rationale(overall_assessment="HIGH_OVERLAP", summary="Same tool.")
    return generator


@pytest.fixture
def similarity_pipeline(fake_store, reasoner, rationale_generator):
    from priorart.vector_stores.similarity_search import SimilaritySearch
    from priorart.workers.similarity_pipeline import SimilarityPipeline

    return SimilarityPipeline(
        SimilaritySearch(fake_store),
        reasoner=reasoner,
        rationale_generator=rationale_generator,
    )


class TestSimilarityPipeline:

    def test_conflict_creates_snapshot_and_verdict(self, similarity_pipeline, indexed_filing, embedding_config):
        from priorart.models import SimilaritySnapshot

        target = indexed_filing()
        near = indexed_filing(SAMPLE_CLAIMS, title="Earlier guarded knife")

        result = similarity_pipeline.run(target.id, embedding_config, job_id="job-9")

        assert result["status"] == "completed"
        assert result["candidates"] == 1
        assert result["verdict"]["status"] == "CONFLICT"
        assert result["verdict"]["strongest_candidate_id"] == near.id

        snapshots = SimilaritySnapshot.for_target(target.id)
        assert [s.id for s in snapshots] == result["snapshots"] == target.analysis_refs
        assert target.final_verdict["status"] == "CONFLICT"
        assert target.verdict_updated_at is not None

    def test_snapshot_contents(self, similarity_pipeline, indexed_filing, embedding_config):
        from priorart.models import SimilaritySnapshot

        target = indexed_filing()
        near = indexed_filing(SAMPLE_CLAIMS, title="Earlier guarded knife")

        similarity_pipeline.run(target.id, embedding_config)
        snapshot = SimilaritySnapshot.for_target(target.id)[0]

        assert snapshot.compared_id == near.id
        assert snapshot.target_ingestion_version == 1
        assert snapshot.compared_ingestion_version == 1
        assert snapshot.embedding_version == "test-v1"
        assert snapshot.confidence_level == "HIGH"
        assert snapshot.low_confidence_note is None
        assert snapshot.similarity_score["overall"] > 0
        assert set(snapshot.similarity_score["breakdown"]) == {"ABSTRACT", "CLAIM", "DESCRIPTION", "DIAGRAM"}
        assert snapshot.claim_analysis[0]["target_claim"] == 1
        assert "reasoning" not in snapshot.agent_trace["advisory_output"]

        evidence = snapshot.agent_trace["retrieved_evidence"]
        assert evidence
        assert all(m["rationale"]["overall_assessment"] == "HIGH_OVERLAP" for m in evidence if m["section"] == "CLAIM")

    def test_low_confidence_snapshot_carries_note(self, similarity_pipeline, reasoner, indexed_filing, embedding_config):
        from priorart.models import LOW_CONFIDENCE_NOTE, SimilaritySnapshot

        reasoner.judge.return_value = _judgment(conflict=False, confidence=0.2)
        target = indexed_filing()
        indexed_filing(SAMPLE_CLAIMS, title="Earlier guarded knife")

        result = similarity_pipeline.run(target.id, embedding_config)
        snapshot = SimilaritySnapshot.for_target(target.id)[0]

        assert snapshot.confidence_level == "LOW"
        assert snapshot.low_confidence_note == LOW_CONFIDENCE_NOTE
        assert result["verdict"]["status"] == "POTENTIAL_INFRINGE"

    def test_no_candidates_is_clean(self, similarity_pipeline, reasoner, indexed_filing, embedding_config):
        target = indexed_filing()

        result = similarity_pipeline.run(target.id, embedding_config)

        assert result["verdict"]["status"] == "CLEAN"
        assert result["snapshots"] == []
        reasoner.judge.assert_not_called()

    def test_only_top_candidates_analysed(self, fake_store, reasoner, rationale_generator,
                                          indexed_filing, embedding_config):
        from priorart.vector_stores.similarity_search import SimilaritySearch
        from priorart.workers.similarity_pipeline import SimilarityPipeline

        target = indexed_filing()
        for i in range(3):
            indexed_filing(SAMPLE_CLAIMS, title=f"Copy {i}")

        pipeline = SimilarityPipeline(SimilaritySearch(fake_store), reasoner=reasoner,
                                      rationale_generator=rationale_generator, advisory_top_k=2)
        result = pipeline.run(target.id, embedding_config)

        assert result["candidates"] == 3
        assert len(result["snapshots"]) == 2
        assert reasoner.judge.call_count == 2

    def test_deleted_candidate_skipped(self, similarity_pipeline, indexed_filing, embedding_config, db_session):
        target = indexed_filing()
        gone = indexed_filing(SAMPLE_CLAIMS, title="Withdrawn")
        db_session.delete(gone)
        db_session.commit()

        result = similarity_pipeline.run(target.id, embedding_config)

        assert result["candidates"] == 0
        assert result["snapshots"] == []
        assert result["verdict"]["status"] == "CLEAN"

    def test_repeat_runs_append_snapshots(self, similarity_pipeline, indexed_filing, embedding_config):
        target = indexed_filing()
        indexed_filing(SAMPLE_CLAIMS, title="Earlier guarded knife")

        first = similarity_pipeline.run(target.id, embedding_config)
        second = similarity_pipeline.run(target.id, embedding_config)

        assert target.analysis_refs == first["snapshots"] + second["snapshots"]

    def test_target_must_be_indexed(self, similarity_pipeline, make_filing, embedding_config):
        from priorart.exceptions import PreconditionError

        filing = make_filing(ingestion_status="DIAGRAMS_PROCESSED")

        with pytest.raises(PreconditionError):
            similarity_pipeline.run(filing.id, embedding_config)

    def test_unknown_target(self, app, similarity_pipeline, embedding_config):
        from priorart.exceptions import FilingNotFoundError

        with pytest.raises(FilingNotFoundError):
            similarity_pipeline.run("missing", embedding_config)
