"""
Tests for the claim processor.

Tests for:
- parse_claims (claim markers, spans, empty input)
- extract_dependencies (lists, ranges, self-reference)
- strip_boilerplate / expand_claim (ancestor prefixing, cycles)
- build_claims (end to end)
"""

import pytest


# ============================================================================
# parse_claims
# ============================================================================

class TestParseClaims:
    """Splitting raw claims text into numbered claims."""

    def test_empty_input_returns_no_claims(self):
        from priorart.ingestion.claims import parse_claims
        assert parse_claims("") == []
        assert parse_claims("   \n ") == []

    def test_splits_on_line_start_markers(self):
        from priorart.ingestion.claims import parse_claims

        claims = parse_claims("1. A widget.\n2. The widget of claim 1, being red.\n  3. A gadget.")

        assert [c.claim_no for c in claims] == [1, 2, 3]
        assert claims[0].text == "A widget."
        assert claims[1].text == "The widget of claim 1, being red."
        assert claims[2].text == "A gadget."

    def test_claim_text_spans_multiple_lines(self):
        from priorart.ingestion.claims import parse_claims

        claims = parse_claims("1. A device comprising:\na housing; and\na lid.\n2. A lid.")

        assert claims[0].text == "A device comprising:\na housing; and\na lid."
        assert claims[1].text == "A lid."

    def test_decimal_numbers_are_not_markers(self):
        from priorart.ingestion.claims import parse_claims

        claims = parse_claims("1. A blade having a thickness of\n2.5 mm at the edge.\n2. A handle.")

        assert [c.claim_no for c in claims] == [1, 2]
        assert "2.5 mm" in claims[0].text


# ============================================================================
# extract_dependencies
# ============================================================================

class TestExtractDependencies:
    """Finding referenced claim numbers."""

    def test_single_reference(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("The widget of claim 1, wherein", claim_no=2) == (1,)

    def test_comma_and_or_lists(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("as claimed in claims 1, 3 and 5", claim_no=6) == (1, 3, 5)
        assert extract_dependencies("according to claim 2 or 4", claim_no=7) == (2, 4)

    def test_ranges_with_dash_and_to(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("according to claims 1-3", claim_no=9) == (1, 2, 3)
        assert extract_dependencies("according to claims 2 to 4", claim_no=9) == (2, 3, 4)
        assert extract_dependencies("according to claims 1–2", claim_no=9) == (1, 2)

    def test_reversed_range_is_normalised(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("of claims 4-2", claim_no=9) == (2, 3, 4)

    def test_own_number_is_removed(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("The method of claims 1-3", claim_no=3) == (1, 2)

    def test_own_number_taken_from_leading_marker(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("2. The widget of claims 1-2") == (1,)

    def test_case_insensitive_and_deduplicated(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("Claim 1 ... CLAIMS 1 and 2", claim_no=5) == (1, 2)

    def test_independent_claim_has_no_dependencies(self):
        from priorart.ingestion.claims import extract_dependencies
        assert extract_dependencies("A widget comprising 3 blades.", claim_no=1) == ()


# ============================================================================
# Expansion
# ============================================================================

class TestExpandClaim:
    """Prefixing dependent claims with their ancestors."""

    def test_strip_boilerplate_removes_preamble(self):
        from priorart.ingestion.claims import strip_boilerplate

        assert strip_boilerplate("The widget of claim 1, wherein the blade is steel.") == \
            "wherein the blade is steel."
        assert strip_boilerplate("A method according to claims 2-4 further comprising heating.") == \
            "further comprising heating."

    def test_strip_boilerplate_leaves_plain_text(self):
        from priorart.ingestion.claims import strip_boilerplate
        assert strip_boilerplate("A widget comprising a blade.") == "A widget comprising a blade."

    def test_independent_claim_expands_to_itself(self):
        from priorart.ingestion.claims import expand_claim
        from priorart.models.records import Claim

        claim = Claim(claim_no=1, text="A widget comprising a blade.")
        assert expand_claim(claim, {1: claim}) == "A widget comprising a blade."

    def test_dependent_claim_prefixed_with_parent(self):
        from priorart.ingestion.claims import expand_claim
        from priorart.models.records import Claim

        c1 = Claim(claim_no=1, text="A widget comprising a blade.")
        c2 = Claim(claim_no=2, text="The widget of claim 1, wherein the blade is steel.", depends_on=(1,))

        expanded = expand_claim(c2, {1: c1, 2: c2})

        assert expanded == "A widget comprising a blade. wherein the blade is steel."

    def test_multiple_parents_joined_in_ascending_order(self):
        from priorart.ingestion.claims import expand_claim
        from priorart.models.records import Claim

        c1 = Claim(claim_no=1, text="A widget.")
        c2 = Claim(claim_no=2, text="A gadget.")
        c3 = Claim(claim_no=3, text="The device of claims 1 and 2, joined by a hinge.", depends_on=(2, 1))

        expanded = expand_claim(c3, {1: c1, 2: c2, 3: c3})

        assert expanded == "A widget; A gadget. joined by a hinge."

    def test_chain_expands_root_first(self):
        from priorart.ingestion.claims import build_claims

        claims = build_claims(
            "1. A widget comprising a blade.\n"
            "2. The widget of claim 1, wherein the blade is steel.\n"
            "3. The widget of claim 2, wherein the steel is polished."
        )
        claim3 = claims[2]

        assert claim3.depends_on == (2,)
        assert claim3.expanded_text == (
            "A widget comprising a blade. wherein the blade is steel. wherein the steel is polished."
        )
        positions = [claim3.expanded_text.index(part) for part in (
            "A widget comprising a blade", "wherein the blade is steel", "wherein the steel is polished",
        )]
        assert positions == sorted(positions)

    def test_cycle_terminates(self):
        from priorart.ingestion.claims import expand_claim
        from priorart.models.records import Claim

        c1 = Claim(claim_no=1, text="The widget of claim 2, red.", depends_on=(2,))
        c2 = Claim(claim_no=2, text="The widget of claim 1, blue.", depends_on=(1,))

        expanded = expand_claim(c1, {1: c1, 2: c2})

        # Claim 1 is revisited through claim 2 and contributes its raw text
        assert expanded.endswith("red.")
        assert "The widget of claim 2, red" in expanded

    def test_missing_parent_is_skipped(self):
        from priorart.ingestion.claims import expand_claim
        from priorart.models.records import Claim

        c2 = Claim(claim_no=2, text="The widget of claim 1, wherein it is red.", depends_on=(1,))
        assert expand_claim(c2, {2: c2}) == "wherein it is red."


class TestBuildClaims:
    """End-to-end claim processing."""

    def test_builds_expanded_claims(self):
        from priorart.ingestion.claims import build_claims
        from tests.conftest import SAMPLE_CLAIMS

        claims = build_claims(SAMPLE_CLAIMS)

        assert [c.claim_no for c in claims] == [1, 2, 3, 4]
        assert claims[0].depends_on == ()
        assert claims[1].depends_on == (1,)
        assert claims[2].depends_on == (1, 2)
        assert all(c.is_expanded for c in claims)
        assert claims[2].expanded_text.startswith("A cutting tool comprising a handle")
        assert claims[2].expanded_text.endswith("further comprising a guard covering the blade.")

    def test_no_claim_depends_on_itself(self):
        from priorart.ingestion.claims import build_claims

        claims = build_claims("1. A widget.\n2. The widget of claims 1-3, red.\n3. The widget of claim 3, blue.")

        for claim in claims:
            assert claim.claim_no not in claim.depends_on

    def test_duplicate_claim_numbers_keep_first(self):
        from priorart.ingestion.claims import build_claims

        claims = build_claims("1. A widget.\n1. A duplicate.\n2. A gadget.")

        assert [c.claim_no for c in claims] == [1, 2]
        assert claims[0].text == "A widget."

    def test_claim_record_rejects_self_dependency(self):
        from priorart.models.records import Claim

        with pytest.raises(ValueError):
            Claim(claim_no=2, text="x", depends_on=(2,))
