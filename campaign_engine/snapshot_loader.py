"""
Snapshot loading for JSON configuration exports

A snapshot is either one JSON file with the keys ``campaigns``, ``products``,
``memberProfiles``, ``offers`` and ``featureFlags``, or a directory holding
one JSON file per key (campaigns.json, products.json, member_profiles.json,
offers.json, feature_flags.json). Campaign-products exported by the admin
console in its clause format are converted to rule trees on the way in.
"""

import json
from pathlib import Path
from typing import Any, Dict, List, Union

from loguru import logger
from pydantic import ValidationError as PydanticValidationError

from .exceptions import SnapshotError, ValidationError
from .models import StorefrontSnapshot


SNAPSHOT_FILES = {
    'campaigns': 'campaigns.json',
    'products': 'products.json',
    'memberProfiles': 'member_profiles.json',
    'offers': 'offers.json',
    'featureFlags': 'feature_flags.json',
}

# Admin console field names and their rule tree equivalents
LEGACY_FIELD_NAMES = {
    'isFeaturedOffer': 'isFeatured',
    'isDefaultCampaignProduct': 'isDefault',
    'productName': 'title',
    'featuredApplicationHeadline': 'featuredHeadline',
    'featuredApplicationDescription': 'featuredDescription',
}


def _clauses_to_rule(clauses: List[Dict[str, Any]]) -> Dict[str, Any]:
    """
    Clauses of one admin console rule are ANDed

    A clause without an attribute or operator becomes a leaf that never
    matches; non-object clauses are dropped.
    """
    return {
        'kind': 'allOf',
        'rules': [
            {
                'kind': 'leaf',
                'attribute': clause.get('attribute') or '',
                'operator': clause.get('operator') or '',
                'value': clause.get('value'),
            }
            for clause in clauses or []
            if isinstance(clause, dict)
        ],
    }


def _rule_groups_to_tree(groups: List[Dict[str, Any]]) -> Dict[str, Any]:
    """Admin console product rules are ORed; no rules at all means no targeting"""
    if not groups:
        return {'kind': 'empty'}
    return {
        'kind': 'anyOf',
        'rules': [_clauses_to_rule(group.get('clauses', [])) for group in groups if isinstance(group, dict)],
    }


def convert_legacy_campaign_product(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Convert a campaign-product from the admin console clause format

    Args:
        data: Campaign-product payload, legacy or current

    Returns:
        Payload in the current format. Current-format payloads are returned unchanged.
    """
    converted = dict(data)

    for legacy_name, name in LEGACY_FIELD_NAMES.items():
        if legacy_name in converted:
            value = converted.pop(legacy_name)
            converted.setdefault(name, value)

    if 'productRules' in converted:
        converted.setdefault('rule', _rule_groups_to_tree(converted.pop('productRules') or []))

    if 'preapprovalRules' in converted:
        converted['preapprovalRules'] = [
            {'rule': _clauses_to_rule(item.get('clauses', [])), 'preapprovalLimit': item.get('preapprovalLimit')}
            if isinstance(item, dict) and 'clauses' in item else item
            for item in converted['preapprovalRules'] or []
        ]

    return converted


def _convert_section(section: Dict[str, Any]) -> Dict[str, Any]:
    converted = dict(section)
    converted['products'] = [convert_legacy_campaign_product(p) for p in section.get('products', []) or []]
    return converted


def _convert_campaign(campaign: Dict[str, Any]) -> Dict[str, Any]:
    converted = dict(campaign)
    if isinstance(converted.get('featuredOffersSection'), dict):
        converted['featuredOffersSection'] = _convert_section(converted['featuredOffersSection'])
    converted['sections'] = [_convert_section(s) for s in converted.get('sections', []) or []]
    return converted


class SnapshotLoader:
    """
    Handles loading and validation of configuration snapshots
    """

    def __init__(self, snapshot_path: Union[str, Path]):
        """
        Initialize snapshot loader

        Args:
            snapshot_path: Snapshot JSON file or directory of per-key JSON files
        """
        self.snapshot_path = Path(snapshot_path)

    def load(self) -> StorefrontSnapshot:
        """
        Load and validate the snapshot

        Returns:
            StorefrontSnapshot

        Raises:
            SnapshotError: The snapshot cannot be read or is not JSON
            ValidationError: The snapshot content does not fit the data model
        """
        if not self.snapshot_path.exists():
            raise SnapshotError(f"Snapshot not found: {self.snapshot_path}")

        if self.snapshot_path.is_dir():
            data = self._load_directory(self.snapshot_path)
        else:
            data = self._read_json(self.snapshot_path)
            if not isinstance(data, dict):
                raise SnapshotError(f"Snapshot file must hold a JSON object: {self.snapshot_path}")

        data = dict(data)
        try:
            data['campaigns'] = [_convert_campaign(c) for c in data.get('campaigns', []) or []]
        except (KeyError, TypeError, ValueError, AttributeError) as e:
            logger.error(f"Cannot convert campaigns in {self.snapshot_path}: {e!r}")
            raise ValidationError(f"Invalid campaign data in {self.snapshot_path}: {e!r}") from e

        try:
            snapshot = StorefrontSnapshot.model_validate(data)
        except PydanticValidationError as e:
            logger.error(f"Invalid snapshot {self.snapshot_path}: {e.error_count()} errors")
            raise ValidationError(f"Invalid snapshot {self.snapshot_path}: {e}") from e

        logger.info(
            f"Loaded snapshot from {self.snapshot_path}: {len(snapshot.campaigns)} campaigns, "
            f"{len(snapshot.products)} products, {len(snapshot.member_profiles)} profiles"
        )
        return snapshot

    def _load_directory(self, directory: Path) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        for key, file_name in SNAPSHOT_FILES.items():
            file_path = directory / file_name
            if not file_path.exists():
                logger.debug(f"Snapshot directory has no {file_name}")
                continue
            data[key] = self._read_json(file_path)
        return data

    @staticmethod
    def _read_json(file_path: Path) -> Any:
        try:
            with open(file_path, 'r', encoding='utf-8') as f:
                return json.load(f)
        except json.JSONDecodeError as e:
            raise SnapshotError(f"Invalid JSON in {file_path}: {e}") from e
        except OSError as e:
            raise SnapshotError(f"Cannot read {file_path}: {e}") from e


def load_snapshot(snapshot_path: Union[str, Path]) -> StorefrontSnapshot:
    """Load a snapshot with a default SnapshotLoader"""
    return SnapshotLoader(snapshot_path).load()
