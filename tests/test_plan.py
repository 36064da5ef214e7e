"""Tests for plan merging and anchor post-processing."""

import pytest

from bioresolve.resolve.plan import (
    dedupe_anchors_semantically,
    disambiguate_mention_target_disease_collisions,
    filter_resolved_unresolved_mentions,
    is_explicit_target_lexeme,
    keep_disease_anchor,
    merge_query_plans,
    target_symbol_hint_from_mention,
)
from bioresolve.resolve.schemas import (
    DEFAULT_INTENT,
    QueryPlanAnchor,
    QueryPlanConstraint,
    QueryPlanFollowup,
    ResolvedQueryPlan,
)

QUERY = "how does IL6 drive rheumatoid arthritis"


def _anchor(entity_type, id, name, confidence=0.8, mention=None):
    return QueryPlanAnchor(
        mention=mention or name.lower(),
        entity_type=entity_type,
        id=id,
        name=name,
        confidence=confidence,
    )


class TestMergeQueryPlans:
    """Tests for merge_query_plans."""

    def test_no_augment_returns_base(self):
        base = ResolvedQueryPlan(query=QUERY)
        assert merge_query_plans(base, None) is base

    def test_merge(self):
        base = ResolvedQueryPlan(
            query=QUERY,
            anchors=[_anchor("disease", "EFO_0000685", "rheumatoid arthritis", 0.7, mention="ra")],
            constraints=[QueryPlanConstraint(text="adults", polarity="include")],
            unresolved_mentions=["rheumatoid arthritis", "joint erosion"],
            followups=[QueryPlanFollowup(question="Which IL6 inhibitors are approved?")],
            rationale="Lexical.",
        )
        augment = ResolvedQueryPlan(
            query=QUERY,
            intent="mechanism",
            anchors=[
                _anchor("disease", "EFO_0000685", "rheumatoid arthritis", 0.9),
                _anchor("target", "ENSG00000136244", "IL6", 0.8),
            ],
            constraints=[
                QueryPlanConstraint(text="Adults", polarity="include"),
                QueryPlanConstraint(text="smokers", polarity="avoid"),
            ],
            unresolved_mentions=["IL6"],
            followups=[QueryPlanFollowup(question="which il6 inhibitors are approved?")],
            rationale="Semantic.",
        )
        merged = merge_query_plans(base, augment)

        anchors = {anchor.key: anchor for anchor in merged.anchors}
        assert set(anchors) == {"disease:EFO_0000685", "target:ENSG00000136244"}
        assert anchors["disease:EFO_0000685"].confidence == 0.9
        assert merged.intent == "mechanism"
        assert len(merged.constraints) == 2
        assert len(merged.followups) == 1
        assert merged.unresolved_mentions == ["joint erosion"]
        assert merged.rationale == "Lexical. Semantic."

    def test_default_intent_does_not_override(self):
        base = ResolvedQueryPlan(query=QUERY, intent="mechanism")
        augment = ResolvedQueryPlan(query=QUERY, intent=DEFAULT_INTENT)
        assert merge_query_plans(base, augment).intent == "mechanism"

    def test_planner_confidence_clamped(self):
        augment = ResolvedQueryPlan(
            query=QUERY,
            anchors=[
                _anchor("disease", "EFO_0000685", "rheumatoid arthritis", 1.0),
                _anchor("target", "ENSG00000136244", "IL6", 0.05),
            ],
        )
        merged = merge_query_plans(ResolvedQueryPlan(query=QUERY), augment)
        confidences = {anchor.id: anchor.confidence for anchor in merged.anchors}
        assert confidences == {"EFO_0000685": 0.98, "ENSG00000136244": 0.2}

    def test_anchor_cap(self):
        anchors = [_anchor("target", f"ENSG{index:011d}", f"GENE{index}") for index in range(30)]
        merged = merge_query_plans(ResolvedQueryPlan(query=QUERY), ResolvedQueryPlan(query=QUERY, anchors=anchors))
        assert len(merged.anchors) == 20


class TestDedupe:
    """Tests for dedupe_anchors_semantically."""

    def test_ontology_priority_breaks_ties(self):
        anchors = [
            _anchor("disease", "MONDO_0004670", "lupus", 0.8),
            _anchor("disease", "EFO_0002690", "Lupus", 0.8),
        ]
        assert [anchor.id for anchor in dedupe_anchors_semantically(anchors)] == ["EFO_0002690"]

    def test_confidence_wins(self):
        anchors = [
            _anchor("disease", "EFO_0002690", "Lupus", 0.8),
            _anchor("disease", "MONDO_0004670", "lupus", 0.9),
        ]
        assert [anchor.id for anchor in dedupe_anchors_semantically(anchors)] == ["MONDO_0004670"]

    def test_types_kept_apart(self):
        anchors = [
            _anchor("disease", "EFO_0002690", "Lupus"),
            _anchor("drug", "CHEMBL0000001", "Lupus"),
        ]
        deduped = dedupe_anchors_semantically(anchors)
        assert len(deduped) == 2
        assert len({(a.entity_type, a.name.lower()) for a in deduped}) == len(deduped)


def test_filter_resolved_unresolved_mentions():
    anchors = [_anchor("disease", "EFO_0002690", "systemic lupus erythematosus", 0.9, mention="lupus")]
    unresolved = [
        "kidney",
        "IL6",
        "signaling pathway",
        "systemic lupus erythematosus",
        "Lupus Nephritis",
        "kidney disease",
    ]
    assert filter_resolved_unresolved_mentions(unresolved, anchors) == ["IL6", "kidney disease"]


class TestKeepDiseaseAnchor:
    """Tests for keep_disease_anchor."""

    @pytest.mark.parametrize(
        "mention,name,confidence,expected",
        [
            ("lupus", "systemic lupus erythematosus", 0.9, True),
            ("il6 signaling", "Inflammation", 0.9, False),
            ("joint pain", "Arthralgia", 0.6, False),
            ("joint pain", "Arthralgia", 0.8, True),
        ],
    )
    def test_disease_anchor(self, mention, name, confidence, expected):
        anchor = _anchor("disease", "EFO_0000001", name, confidence, mention=mention)
        assert keep_disease_anchor(anchor) is expected

    def test_non_disease_always_kept(self):
        assert keep_disease_anchor(_anchor("target", "ENSG00000136244", "IL6", 0.3, mention="pathway"))


class TestTargetHints:
    """Tests for target symbol helpers."""

    def test_symbol_hint(self):
        assert target_symbol_hint_from_mention("il6 signaling") == "IL6"
        assert target_symbol_hint_from_mention("rheumatoid arthritis") is None
        assert target_symbol_hint_from_mention("tnf") is None

    def test_explicit_target_lexeme(self):
        assert is_explicit_target_lexeme("il6")
        assert is_explicit_target_lexeme("insulin receptor")
        assert not is_explicit_target_lexeme("diabetes")


class TestCollisions:
    """Tests for disambiguate_mention_target_disease_collisions."""

    def test_target_sharing_disease_mention_dropped(self):
        anchors = [
            _anchor("disease", "EFO_0000253", "amyotrophic lateral sclerosis", 0.9, mention="als"),
            _anchor("target", "ENSG00000003393", "ALS2", 0.7, mention="als"),
            _anchor("target", "ENSG00000142168", "SOD1", 0.7, mention="sod1"),
        ]
        kept = disambiguate_mention_target_disease_collisions(anchors)
        assert [anchor.id for anchor in kept] == ["EFO_0000253", "ENSG00000142168"]

    def test_low_confidence_disease_keeps_target(self):
        anchors = [
            _anchor("disease", "EFO_0000253", "amyotrophic lateral sclerosis", 0.8, mention="als"),
            _anchor("target", "ENSG00000003393", "ALS2", 0.7, mention="als"),
        ]
        assert len(disambiguate_mention_target_disease_collisions(anchors)) == 2

    def test_explicit_target_mention_kept(self):
        anchors = [
            _anchor("disease", "EFO_0000400", "diabetes mellitus", 0.9, mention="insulin receptor"),
            _anchor("target", "ENSG00000171105", "INSR", 0.7, mention="insulin receptor"),
        ]
        assert len(disambiguate_mention_target_disease_collisions(anchors)) == 2
