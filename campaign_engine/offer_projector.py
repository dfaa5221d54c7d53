"""
Projection of evaluated campaign-products into displayable offers
"""

from typing import List, Optional

from loguru import logger

from .models import (
    CampaignProduct, CampaignProductEvaluation, GeneratedOffer, OfferVariant, Product, ProductAttribute
)


class OfferProjector:
    """
    Builds GeneratedOffer records. Field resolution order is
    campaign-product override, then catalog product, then empty string.
    """

    def __init__(self):
        self.logger = logger

    def generate_offer_from_campaign_product(self, campaign_product: CampaignProduct,
                                             product: Optional[Product],
                                             evaluation: CampaignProductEvaluation,
                                             section_name: str,
                                             campaign_id: Optional[str] = None) -> GeneratedOffer:
        """
        Project one campaign-product into a new offer

        Args:
            campaign_product: The originating campaign-product
            product: Catalog product it references, or None for a dangling reference
            evaluation: Result of the eligibility check
            section_name: Resolved section name (campaign-product override or parent section)
            campaign_id: Owning campaign, used to derive the offer id

        Returns:
            A freshly built GeneratedOffer
        """
        if product is None:
            self.logger.warning(
                f"Campaign product {campaign_product.id} references missing product {campaign_product.product_id}"
            )

        overrides = evaluation.overrides

        def first_present(override: Optional[str], product_field: str) -> str:
            if override:
                return override
            if product is not None:
                return getattr(product, product_field) or ""
            return ""

        if overrides.attributes is not None:
            attributes = [attr.model_copy() for attr in overrides.attributes]
        elif product is not None:
            attributes = [attr.model_copy() for attr in product.attributes]
        else:
            attributes = []

        if evaluation.variant == OfferVariant.PREAPPROVED and evaluation.preapproval_limit:
            attributes = self._apply_preapproval_limit(attributes, evaluation.preapproval_limit)

        offer_id = f"{campaign_id}:{campaign_product.id}" if campaign_id else campaign_product.id

        return GeneratedOffer(
            id=offer_id,
            title=first_present(overrides.title, 'name'),
            variant=evaluation.variant,
            product_type=campaign_product.product_type or (product.type if product is not None else None),
            section=section_name,
            description=first_present(overrides.description, 'description'),
            is_featured=campaign_product.is_featured,
            featured_headline=overrides.featured_headline,
            featured_description=overrides.featured_description,
            attributes=attributes,
            image_url=first_present(overrides.image_url, 'image_url'),
            cta_text=overrides.cta_text,
            cta_link=first_present(overrides.cta_link, 'cta_link'),
            is_redeemed=False,
            campaign_id=campaign_id,
            campaign_product_id=campaign_product.id,
            product_id=campaign_product.product_id,
            preapproval_limit=evaluation.preapproval_limit,
        )

    @staticmethod
    def _apply_preapproval_limit(attributes: List[ProductAttribute], limit: float) -> List[ProductAttribute]:
        """Replace the value of every "Up to" badge with the preapproved limit"""
        formatted = f"${limit:,.0f}"
        return [
            attr.model_copy(update={'value': formatted}) if 'up to' in attr.label.lower() else attr
            for attr in attributes
        ]


def generate_offer_from_campaign_product(campaign_product: CampaignProduct, product: Optional[Product],
                                         evaluation: CampaignProductEvaluation, section_name: str,
                                         campaign_id: Optional[str] = None) -> GeneratedOffer:
    """Project one campaign-product with a default OfferProjector"""
    return OfferProjector().generate_offer_from_campaign_product(
        campaign_product, product, evaluation, section_name, campaign_id
    )
