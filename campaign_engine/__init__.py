"""
Campaign Engine

Rule evaluation and offer aggregation for the member storefront: evaluates
campaign targeting rules against a member profile, merges the offers of all
live campaigns and lays them out as a featured carousel and named sections.
"""

__version__ = "1.0.0"
__author__ = "Campaign Engine Team"

from .core import StorefrontEngine
from .models import (
    Campaign, CampaignProduct, CampaignSection, GeneratedOffer, MemberProfile, Offer, Product,
    StorefrontData, StorefrontSnapshot
)
from .exceptions import CampaignEngineError, ValidationError, SnapshotError, ConfigurationError
from .rule_evaluator import evaluate
from .eligibility_checker import evaluate_campaign_product
from .offer_projector import generate_offer_from_campaign_product
from .aggregator import aggregate_offers_from_all_campaigns
from .snapshot_loader import load_snapshot
from .preview_matrix import PreviewMatrix

__all__ = [
    "StorefrontEngine",
    "Campaign",
    "CampaignProduct",
    "CampaignSection",
    "GeneratedOffer",
    "MemberProfile",
    "Offer",
    "Product",
    "StorefrontData",
    "StorefrontSnapshot",
    "CampaignEngineError",
    "ValidationError",
    "SnapshotError",
    "ConfigurationError",
    "evaluate",
    "evaluate_campaign_product",
    "generate_offer_from_campaign_product",
    "aggregate_offers_from_all_campaigns",
    "load_snapshot",
    "PreviewMatrix",
]
