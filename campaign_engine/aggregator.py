"""
Offer aggregation across live campaigns

Live campaigns are walked in the order they are given; that order is the
precedence order. Within a campaign the featured section comes first, then
each named section, all in list order. The first shown offer for a product id
wins and later ones for the same product are dropped.
"""

from typing import Dict, Iterable, List, Optional, Sequence, Tuple

from loguru import logger

from .eligibility_checker import EligibilityChecker
from .field_mapper import FieldMapper
from .models import (
    Campaign, CampaignPlacement, CampaignProductEvaluation, CampaignType, GeneratedOffer,
    MemberProfile, PreviewMode, Product
)
from .offer_projector import OfferProjector


def get_live_campaigns(campaigns: Iterable[Campaign]) -> List[Campaign]:
    """Live campaigns in their given order"""
    return [campaign for campaign in campaigns if campaign.is_live]


def select_active_campaign(campaigns: Iterable[Campaign]) -> Optional[Campaign]:
    """Single campaign used by demo preview: the first live perpetual campaign, else the first live one"""
    live_campaigns = get_live_campaigns(campaigns)
    for campaign in live_campaigns:
        if campaign.type == CampaignType.PERPETUAL:
            return campaign
    return live_campaigns[0] if live_campaigns else None


def index_products(products: Iterable[Product]) -> Dict[str, Product]:
    """Products by id; the first product with a given id is kept"""
    indexed: Dict[str, Product] = {}
    for product in products:
        indexed.setdefault(product.id, product)
    return indexed


class OfferAggregator:
    """
    Runs eligibility and projection over campaigns for one member profile
    """

    def __init__(self, eligibility_checker: Optional[EligibilityChecker] = None,
                 offer_projector: Optional[OfferProjector] = None,
                 field_mapper: Optional[FieldMapper] = None):
        self.logger = logger
        self.eligibility_checker = eligibility_checker or EligibilityChecker(field_mapper=field_mapper)
        self.offer_projector = offer_projector or OfferProjector()

    def evaluate_campaign(self, campaign: Campaign,
                          profile: MemberProfile) -> List[Tuple[CampaignPlacement, CampaignProductEvaluation]]:
        """Evaluate every placement of a campaign, shown or not, in enumeration order"""
        return [
            (placement, self.eligibility_checker.evaluate_campaign_product(placement.campaign_product, profile))
            for placement in campaign.iter_placements()
        ]

    def aggregate_offers_from_all_campaigns(self, campaigns: Sequence[Campaign], profile: MemberProfile,
                                            products: Iterable[Product]) -> List[GeneratedOffer]:
        """
        Aggregate offers from all live campaigns for a member profile

        Args:
            campaigns: Campaigns in precedence order (earlier wins ties)
            profile: Selected member profile
            products: Product catalog

        Returns:
            Offers in discovery order, at most one per product id
        """
        catalog = index_products(products)
        live_campaigns = get_live_campaigns(campaigns)
        self.logger.debug(f"Aggregating offers from {len(live_campaigns)} live campaigns for profile {profile.id}")

        offers: List[GeneratedOffer] = []
        winner_by_product: Dict[str, str] = {}

        for campaign in live_campaigns:
            for placement, evaluation in self.evaluate_campaign(campaign, profile):
                if not evaluation.show:
                    continue

                product_id = placement.campaign_product.product_id
                if product_id in winner_by_product:
                    self.logger.debug(
                        f"Dropping {campaign.id}:{placement.campaign_product.id}, "
                        f"product {product_id} already offered by {winner_by_product[product_id]}"
                    )
                    continue

                offer = self.offer_projector.generate_offer_from_campaign_product(
                    placement.campaign_product,
                    catalog.get(product_id),
                    evaluation,
                    placement.section_name,
                    campaign_id=campaign.id,
                )
                winner_by_product[product_id] = offer.id
                offers.append(offer)

        self.logger.info(f"Generated {len(offers)} offers for profile {profile.id}")
        return offers

    def generate_offers_for_campaign(self, campaign: Campaign, profile: MemberProfile,
                                     products: Iterable[Product]) -> List[GeneratedOffer]:
        """Shown offers of a single campaign, without cross-campaign deduplication"""
        catalog = index_products(products)
        return [
            self.offer_projector.generate_offer_from_campaign_product(
                placement.campaign_product,
                catalog.get(placement.campaign_product.product_id),
                evaluation,
                placement.section_name,
                campaign_id=campaign.id,
            )
            for placement, evaluation in self.evaluate_campaign(campaign, profile)
            if evaluation.show
        ]

    def generate_offers(self, campaigns: Sequence[Campaign], profile: Optional[MemberProfile],
                        products: Iterable[Product],
                        preview_mode: PreviewMode = PreviewMode.LIVE) -> List[GeneratedOffer]:
        """
        Offers for the current preview state

        No profile means no rule-driven offers. Live mode aggregates every live
        campaign; demo mode evaluates the single active campaign.
        """
        if profile is None:
            return []

        if PreviewMode(preview_mode) == PreviewMode.LIVE:
            return self.aggregate_offers_from_all_campaigns(campaigns, profile, products)

        active_campaign = select_active_campaign(campaigns)
        if active_campaign is None:
            self.logger.info("No live campaign available for demo preview")
            return []
        return self.generate_offers_for_campaign(active_campaign, profile, products)


def aggregate_offers_from_all_campaigns(campaigns: Sequence[Campaign], profile: MemberProfile,
                                        products: Iterable[Product],
                                        field_mapper: Optional[FieldMapper] = None) -> List[GeneratedOffer]:
    """Aggregate offers with a default OfferAggregator"""
    return OfferAggregator(field_mapper=field_mapper).aggregate_offers_from_all_campaigns(
        campaigns, profile, products
    )
