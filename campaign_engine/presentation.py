"""
Storefront presentation composition

Turns offers into the featured carousel and ordered sections. The
cross-cutting Credit Mountain rules are decided up front by
decide_presentation and applied before any grouping:

    graduate | flag | carousel | sections
    ---------+------+----------+-------------------------------------------
    yes      | on   | none     | Credit Mountain section only
    yes      | off  | none     | generic sections
    no       | on   | none     | generic sections + trailing Credit Mountain
    no       | off  | featured | generic sections

show_featured_carousel follows the flag alone; the carousel of a graduate
is emptied when the offers are picked.
"""

from dataclasses import dataclass
from typing import Dict, List, Mapping, Optional, Sequence

from loguru import logger

from .config import EngineConfig, get_config
from .models import MemberProfile, Offer, StorefrontLayout, StorefrontSection


@dataclass(frozen=True)
class PresentationDecision:
    """Outcome of the Credit Mountain decision table"""
    is_credit_mountain_graduate: bool
    graduate_override: bool
    show_featured_carousel: bool
    show_credit_mountain_section: bool


def decide_presentation(profile: Optional[MemberProfile], feature_flags: Mapping[str, bool],
                        config: Optional[EngineConfig] = None) -> PresentationDecision:
    """Evaluate the Credit Mountain rules for a profile and flag set"""
    config = config or get_config()
    flag_enabled = bool(feature_flags.get(config.credit_mountain_flag, False))
    is_graduate = profile is not None and profile.is_credit_mountain_graduate
    return PresentationDecision(
        is_credit_mountain_graduate=is_graduate,
        graduate_override=is_graduate and flag_enabled,
        show_featured_carousel=not flag_enabled,
        show_credit_mountain_section=flag_enabled,
    )


class PresentationComposer:
    """
    Partitions offers into the featured carousel and named sections
    """

    def __init__(self, config: Optional[EngineConfig] = None):
        self.logger = logger
        self.config = config or get_config()

    def compose(self, generated_offers: Sequence[Offer], configured_offers: Sequence[Offer],
                profile: Optional[MemberProfile], feature_flags: Mapping[str, bool]) -> StorefrontLayout:
        """
        Build the storefront layout

        Args:
            generated_offers: Rule-driven offers, used when a profile is selected
            configured_offers: Offers authored in the admin console, used without a
                               profile and always for the Credit Mountain section
            profile: Selected member profile or None
            feature_flags: Feature flags by name

        Returns:
            StorefrontLayout with featured offers and ordered sections
        """
        decision = decide_presentation(profile, feature_flags, self.config)

        if decision.graduate_override:
            self.logger.debug(f"Credit Mountain graduate override for profile {profile.id}")
            return StorefrontLayout(
                featured_offers=[],
                sections=[self._credit_mountain_section(configured_offers)],
            )

        featured_offers = self._featured_offers(decision, generated_offers, configured_offers, profile)

        if profile is not None:
            sections = self._profile_sections(generated_offers)
        else:
            sections = self._configured_sections(configured_offers)

        if decision.show_credit_mountain_section:
            sections.append(self._credit_mountain_section(configured_offers))

        return StorefrontLayout(featured_offers=featured_offers, sections=sections)

    def _featured_offers(self, decision: PresentationDecision, generated_offers: Sequence[Offer],
                         configured_offers: Sequence[Offer], profile: Optional[MemberProfile]) -> List[Offer]:
        if not decision.show_featured_carousel or decision.is_credit_mountain_graduate:
            return []

        if profile is not None:
            return [o for o in generated_offers if o.is_featured and not o.is_redeemed]

        featured = [o for o in configured_offers if o.is_featured and not o.is_redeemed]
        # Redeemed offers sink to the end
        return sorted(featured, key=lambda o: 1 if o.is_redeemed else 0)

    def _group_by_section(self, offers: Sequence[Offer]) -> Dict[str, List[Offer]]:
        """Non-featured, non-redeemed offers grouped by section in first-seen order"""
        groups: Dict[str, List[Offer]] = {}
        for offer in offers:
            if offer.is_featured or offer.is_redeemed:
                continue
            section = offer.section or self.config.default_section_name
            if section == self.config.credit_mountain_section:
                continue
            groups.setdefault(section, []).append(offer)
        return groups

    def _profile_sections(self, generated_offers: Sequence[Offer]) -> List[StorefrontSection]:
        groups = self._group_by_section(generated_offers)
        prequalified = self.config.prequalified_section

        sections: List[StorefrontSection] = []
        if prequalified in groups:
            sections.append(StorefrontSection(name=prequalified, offers=groups[prequalified]))
        for name, offers in groups.items():
            if name != prequalified:
                sections.append(StorefrontSection(name=name, offers=offers))
        return sections

    def _configured_sections(self, configured_offers: Sequence[Offer]) -> List[StorefrontSection]:
        groups = self._group_by_section(configured_offers)
        priority = self.config.section_priority

        def section_rank(name: str) -> int:
            return priority.index(name) if name in priority else len(priority)

        # sorted() is stable, so unlisted sections keep their discovery order
        ordered = sorted(groups.items(), key=lambda item: section_rank(item[0]))
        return [StorefrontSection(name=name, offers=offers) for name, offers in ordered]

    def _credit_mountain_section(self, configured_offers: Sequence[Offer]) -> StorefrontSection:
        name = self.config.credit_mountain_section
        offers = [o for o in configured_offers if not o.is_redeemed and o.section == name]
        return StorefrontSection(name=name, offers=offers, is_credit_mountain=True)
