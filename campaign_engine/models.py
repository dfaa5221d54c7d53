"""
Data models for the Campaign Engine

Every model is immutable once built. Field names are snake_case in Python and
camelCase on the data boundary (JSON snapshots, ``model_dump(by_alias=True)``).
"""

from enum import Enum
from typing import Annotated, Any, Dict, Iterator, List, Literal, NamedTuple, Optional, Union

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel


class EngineModel(BaseModel):
    """Base model: camelCase aliases, population by name, frozen"""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, frozen=True)


class CampaignStatus(str, Enum):
    """Campaign lifecycle status. Only live campaigns are evaluated."""
    DRAFT = "draft"
    PENDING = "pending"
    LIVE = "live"
    ENDED = "ended"
    COMPLETED = "completed"


class CampaignType(str, Enum):
    """Campaign types."""
    PERPETUAL = "perpetual"
    SCHEDULED = "scheduled"
    SEASONAL = "seasonal"
    TARGETED = "targeted"
    UNTARGETED = "untargeted"


class OfferVariant(str, Enum):
    """Presentation variants of an offer tile."""
    PREAPPROVED = "preapproved"
    PREQUALIFIED = "prequalified"
    ITA = "ita"
    WILDCARD = "wildcard"
    REDEEMED = "redeemed"
    AUTO_REFI = "auto-refi"
    CREDIT_LIMIT = "credit-limit"
    PROTECTION = "protection"
    NEW_MEMBER = "new-member"


class PreviewMode(str, Enum):
    """Storefront preview modes."""
    DEMO = "demo"
    LIVE = "live"


# --- Member profiles ---

class MemberProfileAttributes(EngineModel):
    """
    Attribute bag of a member profile

    Known attributes are typed fields; anything else supplied by the profile
    store is kept as an extra attribute and is still reachable by rules.
    """

    model_config = ConfigDict(extra="allow")

    # Numeric
    credit_score: Optional[Union[int, float]] = None
    member_tenure_years: Optional[Union[int, float]] = None
    account_balance: Optional[Union[int, float]] = None
    debt_to_income: Optional[Union[int, float]] = None
    previous_credit_score: Optional[Union[int, float]] = None

    # Boolean
    has_auto_loan: Optional[bool] = None
    has_mortgage: Optional[bool] = None
    has_credit_card: Optional[bool] = None
    direct_deposit: Optional[bool] = None
    bankruptcy_indicator: Optional[bool] = None
    mla_indicator: Optional[bool] = None
    used_credit_mountain: Optional[bool] = None
    credit_score_improved: Optional[bool] = None

    def get(self, name: str) -> Any:
        """Return an attribute by field name or extra key, None when absent"""
        if name in type(self).model_fields:
            return getattr(self, name)
        return (self.model_extra or {}).get(name)


class MemberProfile(EngineModel):
    """A member identity plus the attributes targeting rules read"""

    id: str
    name: str = ""
    description: str = ""
    attributes: MemberProfileAttributes = Field(default_factory=MemberProfileAttributes)
    is_built_in: bool = False

    @property
    def is_credit_mountain_graduate(self) -> bool:
        return bool(self.attributes.used_credit_mountain and self.attributes.credit_score_improved)


# --- Catalog ---

class ProductAttribute(EngineModel):
    """Badge shown on an offer tile, e.g. "As low as" / "3.99%" / "APR*" """

    label: str
    value: str
    subtext: Optional[str] = None


class Product(EngineModel):
    """Catalog entry referenced by campaign-products"""

    id: str
    name: str = ""
    type: Optional[str] = None
    description: Optional[str] = None
    image_url: Optional[str] = None
    cta_link: Optional[str] = None
    attributes: List[ProductAttribute] = Field(default_factory=list)
    is_active: bool = True


# --- Targeting rules ---

class LeafRule(EngineModel):
    """Comparison of one profile attribute against a value (or a pair of values for between)"""

    kind: Literal["leaf"] = "leaf"
    attribute: str = ""
    operator: str = ""
    value: Any = None
    values: Optional[List[Any]] = None


class AllOfRule(EngineModel):
    """Logical AND of child rules"""

    kind: Literal["allOf"] = "allOf"
    rules: List["Rule"] = Field(default_factory=list)


class AnyOfRule(EngineModel):
    """Logical OR of child rules"""

    kind: Literal["anyOf"] = "anyOf"
    rules: List["Rule"] = Field(default_factory=list)


class EmptyRule(EngineModel):
    """Rule with no leaves. Matches every profile."""

    kind: Literal["empty"] = "empty"


Rule = Annotated[Union[LeafRule, AllOfRule, AnyOfRule, EmptyRule], Field(discriminator="kind")]

AllOfRule.model_rebuild()
AnyOfRule.model_rebuild()


class RuleResult(EngineModel):
    """Outcome of evaluating a rule tree against a profile"""

    matched: bool
    reasons: List[str] = Field(default_factory=list)


class PreapprovalRule(EngineModel):
    """Rule that upgrades a shown offer to preapproved, optionally with a limit"""

    rule: Rule = Field(default_factory=EmptyRule)
    preapproval_limit: Optional[float] = None


# --- Campaigns ---

class CampaignProduct(EngineModel):
    """Targeting binding of one catalog product inside a campaign"""

    id: str
    product_id: str
    product_type: Optional[str] = None
    section_name: Optional[str] = None
    is_featured: bool = False

    # Eligibility
    is_default: bool = False
    rule: Rule = Field(default_factory=EmptyRule)
    preapproval_rules: List[PreapprovalRule] = Field(default_factory=list)

    # Display overrides
    title: Optional[str] = None
    description: Optional[str] = None
    featured_headline: Optional[str] = None
    featured_description: Optional[str] = None
    featured_preapproval_headline: Optional[str] = None
    featured_preapproval_description: Optional[str] = None
    attributes: Optional[List[ProductAttribute]] = None
    image_url: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None


class CampaignSection(EngineModel):
    """Ordered group of campaign-products"""

    id: Optional[str] = None
    name: str
    order: int = 0
    products: List[CampaignProduct] = Field(default_factory=list)


class CampaignPlacement(NamedTuple):
    """A campaign-product with the section it resolves to"""
    campaign_product: CampaignProduct
    section_name: str
    in_featured_section: bool


def _default_featured_section() -> CampaignSection:
    return CampaignSection(name="Featured Offers")


class Campaign(EngineModel):
    """A collection of targeted product offers"""

    id: str
    name: str = ""
    type: CampaignType = CampaignType.SCHEDULED
    status: CampaignStatus = CampaignStatus.DRAFT
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    created_at: Optional[str] = None
    featured_offers_section: CampaignSection = Field(default_factory=_default_featured_section)
    sections: List[CampaignSection] = Field(default_factory=list)

    @model_validator(mode="after")
    def _check_single_placement(self) -> "Campaign":
        seen = set()
        for placement in self.iter_placements():
            cp_id = placement.campaign_product.id
            if cp_id in seen:
                raise ValueError(f"Campaign product '{cp_id}' is placed more than once in campaign '{self.id}'")
            seen.add(cp_id)
        return self

    @property
    def is_live(self) -> bool:
        return self.status == CampaignStatus.LIVE

    def iter_placements(self) -> Iterator[CampaignPlacement]:
        """Featured section products first, then each named section, all in list order"""
        featured = self.featured_offers_section
        for cp in featured.products:
            yield CampaignPlacement(cp, cp.section_name or featured.name, True)
        for section in self.sections:
            for cp in section.products:
                yield CampaignPlacement(cp, cp.section_name or section.name, False)


# --- Offers ---

class Offer(EngineModel):
    """Offer tile authored directly in the admin console"""

    id: str
    title: str = ""
    variant: OfferVariant = OfferVariant.ITA
    product_type: Optional[str] = None
    section: str = ""
    description: Optional[str] = None
    is_featured: bool = False
    featured_headline: Optional[str] = None
    featured_description: Optional[str] = None
    attributes: List[ProductAttribute] = Field(default_factory=list)
    image_url: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None
    is_redeemed: bool = False
    redeemed_title: Optional[str] = None


class GeneratedOffer(Offer):
    """Offer projected from a campaign-product that passed evaluation"""

    description: str = ""
    image_url: str = ""
    cta_link: str = ""
    campaign_id: Optional[str] = None
    campaign_product_id: str
    product_id: str
    preapproval_limit: Optional[float] = None


class DisplayOverrides(EngineModel):
    """Display fields a campaign-product sets for its offer. None means use the catalog product."""

    title: Optional[str] = None
    description: Optional[str] = None
    featured_headline: Optional[str] = None
    featured_description: Optional[str] = None
    attributes: Optional[List[ProductAttribute]] = None
    image_url: Optional[str] = None
    cta_text: Optional[str] = None
    cta_link: Optional[str] = None


class CampaignProductEvaluation(EngineModel):
    """Show/hide decision for one campaign-product against one profile"""

    show: bool
    matched_rule: bool
    variant: OfferVariant = OfferVariant.ITA
    preapproval_limit: Optional[float] = None
    overrides: DisplayOverrides = Field(default_factory=DisplayOverrides)
    reasons: List[str] = Field(default_factory=list)


class CampaignProductExplanation(EngineModel):
    """Admin preview line: why a campaign-product did or did not reach the storefront"""

    campaign_id: str
    campaign_product_id: str
    product_id: str
    section_name: str
    show: bool
    matched_rule: bool
    variant: OfferVariant
    reasons: List[str] = Field(default_factory=list)
    outcome: str


# --- Storefront output ---

class StorefrontSection(EngineModel):
    name: str
    offers: List[Union[GeneratedOffer, Offer]] = Field(default_factory=list)
    is_credit_mountain: bool = False


class StorefrontLayout(EngineModel):
    """Featured carousel plus ordered sections"""

    featured_offers: List[Union[GeneratedOffer, Offer]] = Field(default_factory=list)
    sections: List[StorefrontSection] = Field(default_factory=list)


class StorefrontData(StorefrontLayout):
    """Everything a storefront surface needs to render"""

    selected_profile: Optional[MemberProfile] = None
    is_credit_mountain_graduate: bool = False
    is_live_mode: bool = False
    show_credit_mountain_section: bool = False
    show_featured_carousel: bool = True
    has_offers: bool = False
    live_campaigns_count: int = 0


class StorefrontSnapshot(EngineModel):
    """Immutable configuration snapshot the engine evaluates"""

    campaigns: List[Campaign] = Field(default_factory=list)
    products: List[Product] = Field(default_factory=list)
    member_profiles: List[MemberProfile] = Field(default_factory=list)
    offers: List[Offer] = Field(default_factory=list)
    feature_flags: Dict[str, bool] = Field(default_factory=dict)
