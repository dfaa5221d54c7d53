"""
Shared fixtures for the Campaign Engine tests.
"""

import os
import sys

import pytest

sys.path.insert(0, os.path.join(os.path.dirname(__file__), '..'))

from campaign_engine.config import EngineConfig
from campaign_engine.core import StorefrontEngine
from campaign_engine.field_mapper import FieldMapper
from campaign_engine.models import (
    AllOfRule, Campaign, CampaignProduct, CampaignSection, CampaignStatus, CampaignType, LeafRule,
    MemberProfile, MemberProfileAttributes, Offer, OfferVariant, PreapprovalRule, Product,
    ProductAttribute, StorefrontSnapshot
)


SAMPLE_SNAPSHOT_PATH = os.path.join(os.path.dirname(__file__), '..', 'sample_data', 'storefront_snapshot.json')


@pytest.fixture
def engine_config():
    """Default engine configuration, independent of files and environment."""
    return EngineConfig()


@pytest.fixture
def field_mapper():
    """Field mapper over the packaged mapping."""
    return FieldMapper()


@pytest.fixture
def high_credit_profile():
    """Member with excellent credit and a mortgage."""
    return MemberProfile(
        id="high-credit",
        name="High Credit Member (720+)",
        attributes=MemberProfileAttributes(
            credit_score=750,
            has_auto_loan=False,
            has_mortgage=True,
            has_credit_card=True,
            member_tenure_years=8,
            account_balance=25000,
            direct_deposit=True,
        ),
    )


@pytest.fixture
def mid_credit_profile():
    """Member with good credit and an existing auto loan."""
    return MemberProfile(
        id="mid-credit",
        name="Mid Credit Member (650-719)",
        attributes=MemberProfileAttributes(
            credit_score=680,
            has_auto_loan=True,
            has_mortgage=False,
            has_credit_card=True,
            member_tenure_years=3,
            account_balance=5000,
            direct_deposit=True,
        ),
    )


@pytest.fixture
def low_credit_profile():
    """Member with below average credit."""
    return MemberProfile(
        id="low-credit",
        name="Low Credit Member (<650)",
        attributes=MemberProfileAttributes(
            credit_score=620,
            has_auto_loan=False,
            has_mortgage=False,
            has_credit_card=False,
            member_tenure_years=2,
            account_balance=1500,
            direct_deposit=True,
        ),
    )


@pytest.fixture
def graduate_profile():
    """Member who improved their credit with Credit Mountain."""
    return MemberProfile(
        id="credit-mountain-graduate",
        name="Credit Mountain Graduate",
        attributes=MemberProfileAttributes(
            credit_score=680,
            previous_credit_score=620,
            has_auto_loan=False,
            account_balance=3000,
            used_credit_mountain=True,
            credit_score_improved=True,
        ),
    )


@pytest.fixture
def products():
    """Product catalog."""
    return [
        Product(
            id="prod-auto",
            name="New Auto Loan",
            type="auto",
            description="Finance a new vehicle.",
            image_url="/images/auto.jpg",
            cta_link="/apply/auto",
            attributes=[
                ProductAttribute(label="Up to", value="$50,000"),
                ProductAttribute(label="As low as", value="4.99%", subtext="APR*"),
            ],
        ),
        Product(
            id="prod-card",
            name="Rewards Visa",
            type="credit-card",
            description="Earn 2% cash back.",
            image_url="/images/card.jpg",
            cta_link="/apply/card",
        ),
        Product(
            id="prod-heloc",
            name="Home Equity Line of Credit",
            type="home",
            description="Tap into your home's equity.",
            cta_link="/apply/heloc",
        ),
        Product(
            id="prod-cert",
            name="Share Certificate",
            type="savings",
            description="Lock in a great rate.",
        ),
    ]


@pytest.fixture
def everyday_campaign():
    """Live perpetual campaign with a featured auto loan and three named sections."""
    return Campaign(
        id="camp-everyday",
        name="Everyday Offers",
        type=CampaignType.PERPETUAL,
        status=CampaignStatus.LIVE,
        featured_offers_section=CampaignSection(
            name="Featured Offers",
            products=[
                CampaignProduct(
                    id="cp-auto",
                    product_id="prod-auto",
                    is_featured=True,
                    section_name="Auto Loans & Offers",
                    rule=AllOfRule(rules=[
                        LeafRule(attribute="creditScore", operator="gte", value=650),
                        LeafRule(attribute="hasAutoLoan", operator="eq", value=False),
                    ]),
                    preapproval_rules=[
                        PreapprovalRule(
                            rule=LeafRule(attribute="creditScore", operator="gte", value=720),
                            preapproval_limit=45000,
                        ),
                    ],
                    featured_headline="Drive home something new",
                    featured_preapproval_headline="You're preapproved",
                ),
            ],
        ),
        sections=[
            CampaignSection(
                name="Credit Cards",
                products=[
                    CampaignProduct(
                        id="cp-card",
                        product_id="prod-card",
                        rule=LeafRule(attribute="hasCreditCard", operator="eq", value=True),
                    ),
                ],
            ),
            CampaignSection(
                name="Home Loans & Offers",
                products=[
                    CampaignProduct(
                        id="cp-heloc",
                        product_id="prod-heloc",
                        rule=LeafRule(attribute="hasMortgage", operator="eq", value=True),
                    ),
                ],
            ),
            CampaignSection(
                name="Your Prequalified Offers",
                products=[
                    CampaignProduct(
                        id="cp-cert",
                        product_id="prod-cert",
                        title="Prequalified Certificate",
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def seasonal_campaign():
    """Live seasonal campaign that also targets the auto loan."""
    return Campaign(
        id="camp-spring",
        name="Spring Auto Event",
        type=CampaignType.SEASONAL,
        status=CampaignStatus.LIVE,
        sections=[
            CampaignSection(
                name="Special Offers",
                products=[
                    CampaignProduct(
                        id="cp-spring-auto",
                        product_id="prod-auto",
                        title="Spring Auto Savings",
                        rule=LeafRule(attribute="creditScore", operator="gte", value=600),
                    ),
                ],
            ),
        ],
    )


@pytest.fixture
def draft_campaign():
    """Campaign that is not live and must never be evaluated."""
    return Campaign(
        id="camp-draft",
        name="Holiday Draft",
        status=CampaignStatus.DRAFT,
        sections=[
            CampaignSection(
                name="Special Offers",
                products=[CampaignProduct(id="cp-draft-card", product_id="prod-card")],
            ),
        ],
    )


@pytest.fixture
def configured_offers():
    """Offers authored in the admin console, used without a profile."""
    return [
        Offer(id="offer-special", title="Holiday Special", section="Special Offers"),
        Offer(id="offer-card", title="Rewards Visa", section="Credit Cards"),
        Offer(id="offer-misc", title="Branch Event", section="Community"),
        Offer(id="offer-auto", title="New Auto Loan", section="Auto Loans & Offers"),
        Offer(id="offer-featured", title="Featured Auto", section="Auto Loans & Offers", is_featured=True),
        Offer(id="offer-redeemed", title="Auto Refi", section="Auto Loans & Offers",
              variant=OfferVariant.REDEEMED, is_redeemed=True),
        Offer(id="offer-prequal", title="Personal Loan", section="Your Prequalified Offers"),
        Offer(id="offer-cm-coach", title="Credit Mountain AI Coach", section="Credit Monitoring & Coaching"),
        Offer(id="offer-cm-done", title="Coaching Complete", section="Credit Monitoring & Coaching",
              is_redeemed=True),
    ]


@pytest.fixture
def snapshot(everyday_campaign, seasonal_campaign, draft_campaign, products, configured_offers,
             high_credit_profile, mid_credit_profile, low_credit_profile, graduate_profile):
    """Snapshot with two live campaigns (everyday first) and the Credit Mountain flag off."""
    return StorefrontSnapshot(
        campaigns=[everyday_campaign, draft_campaign, seasonal_campaign],
        products=products,
        member_profiles=[high_credit_profile, mid_credit_profile, low_credit_profile, graduate_profile],
        offers=configured_offers,
        feature_flags={"storefront_creditMountain": False},
    )


@pytest.fixture
def engine(snapshot, engine_config):
    """Storefront engine over the shared snapshot."""
    return StorefrontEngine(snapshot, config=engine_config)


@pytest.fixture
def sample_snapshot_path():
    """Path to the bundled sample snapshot."""
    return SAMPLE_SNAPSHOT_PATH
