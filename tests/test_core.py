"""
Unit tests for the StorefrontEngine orchestrator.
"""

import pytest

from campaign_engine.core import StorefrontEngine
from campaign_engine.exceptions import ValidationError
from campaign_engine.models import (
    Campaign, CampaignProduct, CampaignSection, CampaignStatus, CampaignType, LeafRule, MemberProfile,
    MemberProfileAttributes, Product, StorefrontSnapshot
)


CM_FLAG = "storefront_creditMountain"


class TestStorefrontEngine:
    """Test cases for StorefrontEngine."""

    def test_profile_lookup(self, engine):
        """Test find_profile and require_profile."""
        assert engine.find_profile("high-credit").id == "high-credit"
        assert engine.find_profile("nobody") is None
        assert engine.find_profile(None) is None

        with pytest.raises(ValidationError):
            engine.require_profile("nobody")

    def test_build_storefront_for_profile(self, engine):
        """Test the storefront of a selected profile."""
        storefront = engine.build_storefront("high-credit")

        assert storefront.selected_profile.id == "high-credit"
        assert storefront.is_live_mode is True
        assert storefront.is_credit_mountain_graduate is False
        assert storefront.show_featured_carousel is True
        assert storefront.show_credit_mountain_section is False
        assert storefront.has_offers is True
        assert storefront.live_campaigns_count == 2
        assert [o.id for o in storefront.featured_offers] == ["camp-everyday:cp-auto"]
        assert storefront.featured_offers[0].attributes[0].value == "$45,000"

    def test_build_storefront_without_profile(self, engine):
        """Test that no profile renders configured offers and is not live mode."""
        storefront = engine.build_storefront()

        assert storefront.selected_profile is None
        assert storefront.is_live_mode is False
        assert [o.id for o in storefront.featured_offers] == ["offer-featured"]
        assert storefront.sections[0].name == "Your Prequalified Offers"

    def test_unknown_profile_id_renders_no_profile_storefront(self, engine):
        """Test that an unknown id behaves like no selection."""
        storefront = engine.build_storefront("nobody")

        assert storefront.selected_profile is None
        assert [o.id for o in storefront.featured_offers] == ["offer-featured"]

    def test_demo_mode_is_not_live(self, engine):
        """Test the demo preview flags."""
        storefront = engine.build_storefront("high-credit", preview_mode="demo")

        assert storefront.is_live_mode is False
        assert {o.campaign_id for s in storefront.sections for o in s.offers} == {"camp-everyday"}

    def test_graduate_without_flag(self, engine):
        """Test that a graduate with the flag off keeps the carousel flag but gets no featured offers."""
        storefront = engine.build_storefront("credit-mountain-graduate", feature_flags={CM_FLAG: False})

        assert storefront.is_credit_mountain_graduate is True
        assert storefront.show_featured_carousel is True
        assert storefront.show_credit_mountain_section is False
        assert storefront.featured_offers == []

    def test_feature_flag_override(self, engine):
        """Test that per-call flags override the snapshot's flags."""
        storefront = engine.build_storefront("credit-mountain-graduate", feature_flags={CM_FLAG: True})

        assert storefront.is_credit_mountain_graduate is True
        assert storefront.show_credit_mountain_section is True
        assert storefront.show_featured_carousel is False
        assert storefront.featured_offers == []
        assert [s.name for s in storefront.sections] == ["Credit Monitoring & Coaching"]
        assert storefront.has_offers is True

    def test_has_offers_false(self, engine_config):
        """Test an empty storefront."""
        engine = StorefrontEngine(StorefrontSnapshot(), config=engine_config)

        storefront = engine.build_storefront()

        assert storefront.has_offers is False
        assert storefront.live_campaigns_count == 0

    def test_has_offers_with_only_credit_mountain_section(self, engine_config):
        """Test that an enabled Credit Mountain section counts as content even when empty."""
        engine = StorefrontEngine(StorefrontSnapshot(feature_flags={CM_FLAG: True}), config=engine_config)

        storefront = engine.build_storefront()

        assert storefront.sections[-1].offers == []
        assert storefront.has_offers is True

    def test_determinism(self, engine):
        """Test that repeated runs produce byte-identical output."""
        first = engine.build_storefront("mid-credit").model_dump_json(by_alias=True)
        second = engine.build_storefront("mid-credit").model_dump_json(by_alias=True)

        assert first == second

    def test_output_does_not_touch_snapshot(self, engine, snapshot):
        """Test that building the storefront leaves the snapshot unchanged."""
        before = snapshot.model_dump_json()

        engine.build_storefront("high-credit")

        assert snapshot.model_dump_json() == before

    def test_update_snapshot(self, engine, engine_config):
        """Test that a new snapshot drives later evaluations."""
        engine.update_snapshot(StorefrontSnapshot())

        assert engine.live_campaigns_count() == 0
        assert engine.build_storefront().has_offers is False

    def test_snapshot_summary(self, engine):
        """Test snapshot counts."""
        summary = engine.get_snapshot_summary()

        assert summary == {
            'total_campaigns': 3,
            'live_campaigns': 2,
            'campaign_products': 6,
            'products': 4,
            'member_profiles': 4,
            'configured_offers': 9,
            'feature_flags': {CM_FLAG: False},
        }


class TestExplain:
    """Test cases for the admin preview explanations."""

    def test_explain_outcomes(self, engine):
        """Test selected, hidden and duplicate outcomes."""
        explanations = engine.explain("high-credit")
        outcomes = {e.campaign_product_id: e.outcome for e in explanations}

        assert outcomes == {
            "cp-auto": "selected",
            "cp-card": "selected",
            "cp-heloc": "selected",
            "cp-cert": "selected",
            "cp-spring-auto": "duplicate of camp-everyday:cp-auto",
        }

    def test_explain_hidden(self, engine):
        """Test that hidden campaign-products carry their reasons."""
        explanations = engine.explain("low-credit")
        auto = next(e for e in explanations if e.campaign_product_id == "cp-auto")

        assert auto.outcome == "hidden"
        assert auto.show is False
        assert auto.reasons == ["creditScore 620 >= 650: not met"]

    def test_explain_without_profile(self, engine):
        """Test that nothing is explained without a profile."""
        assert engine.explain(None) == []

    def test_explain_agrees_with_offers(self, engine):
        """Test that selected explanations are exactly the generated offers."""
        selected = [
            f"{e.campaign_id}:{e.campaign_product_id}"
            for e in engine.explain("mid-credit") if e.outcome == "selected"
        ]

        assert selected == [o.id for o in engine.generate_offers("mid-credit")]


class TestScenarios:
    """End to end scenarios."""

    def test_single_campaign_scenario(self, engine_config):
        """One live perpetual campaign: a featured offer and one auto section, no Credit Mountain."""
        profile = MemberProfile(
            id="scenario",
            attributes=MemberProfileAttributes(credit_score=720, has_auto_loan=False),
        )
        campaign = Campaign(
            id="camp-1",
            type=CampaignType.PERPETUAL,
            status=CampaignStatus.LIVE,
            featured_offers_section=CampaignSection(name="Featured Offers", products=[
                CampaignProduct(id="cp-featured", product_id="P-featured", is_featured=True,
                                rule=LeafRule(attribute="hasAutoLoan", operator="eq", value=False)),
            ]),
            sections=[CampaignSection(name="Auto Loans & Offers", products=[
                CampaignProduct(id="cp-auto", product_id="P-auto",
                                rule=LeafRule(attribute="creditScore", operator="gte", value=700)),
            ])],
        )
        snapshot = StorefrontSnapshot(
            campaigns=[campaign],
            products=[Product(id="P-featured", name="Featured"), Product(id="P-auto", name="Auto")],
            member_profiles=[profile],
            feature_flags={CM_FLAG: False},
        )

        storefront = StorefrontEngine(snapshot, config=engine_config).build_storefront("scenario")

        assert len(storefront.featured_offers) == 1
        assert [(s.name, len(s.offers)) for s in storefront.sections] == [("Auto Loans & Offers", 1)]
        assert not any(s.is_credit_mountain for s in storefront.sections)

    def test_two_campaign_scenario(self, engine_config, high_credit_profile):
        """Two live campaigns target P1: one offer carrying campaign A's section and overrides."""
        def campaign(campaign_id, section, title):
            return Campaign(
                id=campaign_id,
                status=CampaignStatus.LIVE,
                sections=[CampaignSection(name=section, products=[
                    CampaignProduct(id="cp-p1", product_id="P1", title=title),
                ])],
            )

        snapshot = StorefrontSnapshot(
            campaigns=[campaign("A", "Credit Cards", "From A"), campaign("B", "Special Offers", "From B")],
            products=[Product(id="P1", name="Product One")],
            member_profiles=[high_credit_profile],
        )

        offers = StorefrontEngine(snapshot, config=engine_config).generate_offers("high-credit")

        assert len(offers) == 1
        assert offers[0].id == "A:cp-p1"
        assert offers[0].section == "Credit Cards"
        assert offers[0].title == "From A"
