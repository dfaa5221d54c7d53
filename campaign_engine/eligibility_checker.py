"""
Campaign-product eligibility

Decides whether one campaign-product is shown to one member profile and which
variant it is shown as:

1. Show/hide - the targeting rule must match, unless the campaign-product is a
   default product (default-show policy)
2. Variant - a shown product whose preapproval rules match becomes
   preapproved, with the highest matching limit; otherwise it is an
   invitation to apply (ITA)
3. Overrides - display fields set on the campaign-product, resolved for the variant
"""

from typing import List, Optional

from loguru import logger

from .field_mapper import FieldMapper
from .models import (
    CampaignProduct, CampaignProductEvaluation, DisplayOverrides, MemberProfile, OfferVariant
)
from .rule_evaluator import RuleEvaluator


CTA_TEXT_PREAPPROVED = "Review Offer"
CTA_TEXT_APPLY = "Learn More"


class EligibilityChecker:
    """
    Applies eligibility policy on top of the rule evaluator for one campaign-product
    """

    def __init__(self, rule_evaluator: Optional[RuleEvaluator] = None,
                 field_mapper: Optional[FieldMapper] = None):
        self.logger = logger
        self.rule_evaluator = rule_evaluator or RuleEvaluator(field_mapper)

    def evaluate_campaign_product(self, campaign_product: CampaignProduct,
                                  profile: MemberProfile) -> CampaignProductEvaluation:
        """
        Evaluate a campaign-product against a member profile

        Args:
            campaign_product: Targeting binding to evaluate
            profile: Member profile

        Returns:
            CampaignProductEvaluation with the show decision, variant and overrides
        """
        rule_result = self.rule_evaluator.evaluate(campaign_product.rule, profile)
        reasons = list(rule_result.reasons)

        if rule_result.matched:
            show = True
        elif campaign_product.is_default:
            show = True
            reasons.append("Default campaign product: shown without a rule match")
        else:
            show = False

        if not show:
            self.logger.debug(f"Campaign product {campaign_product.id} hidden for profile {profile.id}")
            return CampaignProductEvaluation(
                show=False,
                matched_rule=False,
                overrides=self._resolve_overrides(campaign_product, OfferVariant.ITA),
                reasons=reasons,
            )

        variant, limit, preapproval_reasons = self._check_preapproval(campaign_product, profile)
        reasons.extend(preapproval_reasons)

        self.logger.debug(
            f"Campaign product {campaign_product.id} shown for profile {profile.id} as {variant.value}"
        )
        return CampaignProductEvaluation(
            show=True,
            matched_rule=rule_result.matched,
            variant=variant,
            preapproval_limit=limit,
            overrides=self._resolve_overrides(campaign_product, variant),
            reasons=reasons,
        )

    def _check_preapproval(self, campaign_product: CampaignProduct, profile: MemberProfile):
        """Return (variant, highest matching limit or None, reasons)"""
        reasons: List[str] = []
        matched_any = False
        highest_limit = 0.0

        for index, preapproval in enumerate(campaign_product.preapproval_rules, start=1):
            result = self.rule_evaluator.evaluate(preapproval.rule, profile)
            if not result.matched:
                continue
            matched_any = True
            if preapproval.preapproval_limit:
                highest_limit = max(highest_limit, preapproval.preapproval_limit)
            reasons.append(f"Preapproval rule {index} matched")

        if not matched_any:
            return OfferVariant.ITA, None, reasons
        return OfferVariant.PREAPPROVED, (highest_limit if highest_limit > 0 else None), reasons

    def _resolve_overrides(self, campaign_product: CampaignProduct, variant: OfferVariant) -> DisplayOverrides:
        is_preapproved = variant == OfferVariant.PREAPPROVED

        headline = campaign_product.featured_headline
        description = campaign_product.featured_description
        if is_preapproved:
            headline = campaign_product.featured_preapproval_headline or headline
            description = campaign_product.featured_preapproval_description or description

        return DisplayOverrides(
            title=campaign_product.title,
            description=campaign_product.description,
            featured_headline=headline,
            featured_description=description,
            attributes=campaign_product.attributes,
            image_url=campaign_product.image_url,
            cta_text=campaign_product.cta_text or (CTA_TEXT_PREAPPROVED if is_preapproved else CTA_TEXT_APPLY),
            cta_link=campaign_product.cta_link,
        )


def evaluate_campaign_product(campaign_product: CampaignProduct, profile: MemberProfile,
                              field_mapper: Optional[FieldMapper] = None) -> CampaignProductEvaluation:
    """Evaluate one campaign-product with a default EligibilityChecker"""
    return EligibilityChecker(field_mapper=field_mapper).evaluate_campaign_product(campaign_product, profile)
