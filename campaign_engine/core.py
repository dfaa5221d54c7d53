"""
Core Campaign Engine implementation
"""

from typing import Any, Dict, List, Mapping, Optional, Union

from loguru import logger

from .aggregator import OfferAggregator, get_live_campaigns
from .config import EngineConfig, get_config, setup_logging
from .exceptions import ValidationError
from .field_mapper import FieldMapper, get_default_field_mapper
from .models import (
    CampaignProductExplanation, GeneratedOffer, MemberProfile, PreviewMode, StorefrontData,
    StorefrontSnapshot
)
from .presentation import PresentationComposer, decide_presentation


ProfileRef = Union[str, MemberProfile, None]


class StorefrontEngine:
    """
    Main engine class: evaluates a campaign snapshot for a member profile and
    produces everything the storefront renders
    """

    def __init__(self, snapshot: Optional[StorefrontSnapshot] = None,
                 config: Optional[EngineConfig] = None, log_level: Optional[str] = None):
        """
        Initialize the Storefront Engine

        Args:
            snapshot: Campaigns, products, profiles, configured offers and feature flags
            config: Engine configuration; the global configuration when None
            log_level: When given, reconfigure logging at this level
        """
        self.config = config or get_config()
        self.snapshot = snapshot or StorefrontSnapshot()

        if log_level is not None:
            setup_logging(log_level, self.config.log_file, self.config.log_rotation, self.config.log_retention)

        if self.config.field_mapping_path:
            self.field_mapper = FieldMapper(self.config.field_mapping_path)
        else:
            self.field_mapper = get_default_field_mapper()

        self.aggregator = OfferAggregator(field_mapper=self.field_mapper)
        self.composer = PresentationComposer(self.config)

        logger.info(
            f"Storefront Engine initialized with {len(self.snapshot.campaigns)} campaigns "
            f"and {len(self.snapshot.products)} products"
        )

    def update_snapshot(self, snapshot: StorefrontSnapshot) -> None:
        """Swap in a new configuration snapshot; later evaluations use it"""
        self.snapshot = snapshot
        logger.info(f"Snapshot replaced: {len(snapshot.campaigns)} campaigns")

    def find_profile(self, profile_id: Optional[str]) -> Optional[MemberProfile]:
        """Look up a member profile by id, None when absent"""
        if not profile_id:
            return None
        for profile in self.snapshot.member_profiles:
            if profile.id == profile_id:
                return profile
        return None

    def require_profile(self, profile_id: str) -> MemberProfile:
        """Look up a member profile by id, raising ValidationError when absent"""
        profile = self.find_profile(profile_id)
        if profile is None:
            raise ValidationError(f"Unknown member profile: {profile_id}")
        return profile

    def _resolve_profile(self, profile: ProfileRef) -> Optional[MemberProfile]:
        if isinstance(profile, MemberProfile):
            return profile
        return self.find_profile(profile)

    def _resolve_feature_flags(self, overrides: Optional[Mapping[str, bool]]) -> Dict[str, bool]:
        flags = dict(self.snapshot.feature_flags)
        if overrides:
            flags.update(overrides)
        return flags

    def live_campaigns_count(self) -> int:
        return len(get_live_campaigns(self.snapshot.campaigns))

    def generate_offers(self, profile: ProfileRef,
                        preview_mode: Union[PreviewMode, str, None] = None) -> List[GeneratedOffer]:
        """Rule-driven offers for a profile in the given preview mode"""
        mode = PreviewMode(preview_mode or self.config.default_preview_mode)
        return self.aggregator.generate_offers(
            self.snapshot.campaigns, self._resolve_profile(profile), self.snapshot.products, mode
        )

    def build_storefront(self, profile: ProfileRef = None,
                         preview_mode: Union[PreviewMode, str, None] = None,
                         feature_flags: Optional[Mapping[str, bool]] = None) -> StorefrontData:
        """
        Build the storefront for the current snapshot

        Args:
            profile: Selected profile (instance or id); None renders configured offers
            preview_mode: "live" aggregates all live campaigns, "demo" uses one campaign
            feature_flags: Overrides applied on top of the snapshot's flags

        Returns:
            StorefrontData with offers, sections and derived flags
        """
        mode = PreviewMode(preview_mode or self.config.default_preview_mode)
        selected_profile = self._resolve_profile(profile)
        flags = self._resolve_feature_flags(feature_flags)

        generated_offers = self.aggregator.generate_offers(
            self.snapshot.campaigns, selected_profile, self.snapshot.products, mode
        )
        layout = self.composer.compose(generated_offers, self.snapshot.offers, selected_profile, flags)
        decision = decide_presentation(selected_profile, flags, self.config)

        has_offers = (
            len(layout.featured_offers) > 0
            or any(section.offers for section in layout.sections)
            or decision.show_credit_mountain_section
        )

        return StorefrontData(
            featured_offers=layout.featured_offers,
            sections=layout.sections,
            selected_profile=selected_profile,
            is_credit_mountain_graduate=decision.is_credit_mountain_graduate,
            is_live_mode=mode == PreviewMode.LIVE and selected_profile is not None,
            show_credit_mountain_section=decision.show_credit_mountain_section,
            show_featured_carousel=decision.show_featured_carousel,
            has_offers=has_offers,
            live_campaigns_count=self.live_campaigns_count(),
        )

    def explain(self, profile: ProfileRef) -> List[CampaignProductExplanation]:
        """
        Explain, for the admin preview, what every live campaign-product does for a profile

        Each line carries the eligibility reasons and the aggregation outcome:
        "selected", "hidden" or "duplicate of <offer id>".
        """
        selected_profile = self._resolve_profile(profile)
        if selected_profile is None:
            return []

        explanations: List[CampaignProductExplanation] = []
        winner_by_product: Dict[str, str] = {}

        for campaign in get_live_campaigns(self.snapshot.campaigns):
            for placement, evaluation in self.aggregator.evaluate_campaign(campaign, selected_profile):
                campaign_product = placement.campaign_product
                offer_id = f"{campaign.id}:{campaign_product.id}"

                if not evaluation.show:
                    outcome = "hidden"
                elif campaign_product.product_id in winner_by_product:
                    outcome = f"duplicate of {winner_by_product[campaign_product.product_id]}"
                else:
                    winner_by_product[campaign_product.product_id] = offer_id
                    outcome = "selected"

                explanations.append(CampaignProductExplanation(
                    campaign_id=campaign.id,
                    campaign_product_id=campaign_product.id,
                    product_id=campaign_product.product_id,
                    section_name=placement.section_name,
                    show=evaluation.show,
                    matched_rule=evaluation.matched_rule,
                    variant=evaluation.variant,
                    reasons=evaluation.reasons,
                    outcome=outcome,
                ))

        return explanations

    def get_snapshot_summary(self) -> Dict[str, Any]:
        """Counts describing the loaded snapshot"""
        campaigns = self.snapshot.campaigns
        return {
            'total_campaigns': len(campaigns),
            'live_campaigns': self.live_campaigns_count(),
            'campaign_products': sum(len(list(c.iter_placements())) for c in campaigns),
            'products': len(self.snapshot.products),
            'member_profiles': len(self.snapshot.member_profiles),
            'configured_offers': len(self.snapshot.offers),
            'feature_flags': dict(self.snapshot.feature_flags),
        }
