"""
Field mapping utilities for the campaign engine

This module provides the FieldMapper class which handles:
- Loading the attribute mapping configuration from JSON
- Resolving rule attribute names (profile keys, snake_case names and
  admin console labels such as "FICO Score") to profile attributes
- Extracting attribute values from a member profile
"""

import json
import os
from functools import lru_cache
from typing import Any, Dict, List, Optional

from loguru import logger

from .exceptions import ConfigurationError
from .models import MemberProfile


DEFAULT_MAPPING_PATH = os.path.join(os.path.dirname(__file__), 'field_mapping.json')


class FieldMapper:
    """
    Handles attribute name resolution and value extraction based on configuration
    """

    def __init__(self, mapping_config_path: Optional[str] = None):
        """
        Initialize the field mapper

        Args:
            mapping_config_path: Path to the field mapping JSON configuration.
                                If None, uses field_mapping.json shipped with the package.
        """
        self.logger = logger
        self.config_path = mapping_config_path or DEFAULT_MAPPING_PATH
        self.config = self._load_config()
        self.mappings = {m['ruleField']: m for m in self.config['mappings']}

        # Every accepted spelling points at its ruleField
        self._lookup: Dict[str, str] = {}
        for rule_field, mapping in self.mappings.items():
            names = [rule_field, mapping.get('profileField', rule_field)] + mapping.get('labels', [])
            for name in names:
                self._lookup[self._normalize_name(name)] = rule_field

    def _load_config(self) -> Dict:
        """Load the field mapping configuration from JSON"""
        try:
            with open(self.config_path, 'r', encoding='utf-8') as f:
                config = json.load(f)
        except FileNotFoundError as e:
            self.logger.error(f"Field mapping configuration not found: {self.config_path}")
            raise ConfigurationError(f"Field mapping configuration not found: {self.config_path}") from e
        except json.JSONDecodeError as e:
            self.logger.error(f"Invalid JSON in field mapping configuration: {e}")
            raise ConfigurationError(f"Invalid field mapping configuration: {e}") from e

        if not isinstance(config.get('mappings'), list):
            raise ConfigurationError(f"Field mapping configuration has no 'mappings' list: {self.config_path}")

        self.logger.debug(f"Loaded field mapping configuration from {self.config_path}")
        return config

    @staticmethod
    def _normalize_name(name: str) -> str:
        return name.strip().lower()

    def get_mapping(self, attribute: str) -> Optional[Dict[str, Any]]:
        """Get the mapping entry for any accepted spelling of an attribute"""
        rule_field = self._lookup.get(self._normalize_name(attribute))
        if rule_field is None:
            return None
        return self.mappings[rule_field]

    def get_data_type(self, attribute: str) -> Optional[str]:
        mapping = self.get_mapping(attribute)
        return mapping.get('dataType') if mapping else None

    def resolve_profile_field(self, attribute: str) -> str:
        """
        Resolve an attribute name to the profile field that stores it

        Unmapped names are returned unchanged so extra profile attributes
        stay reachable.
        """
        mapping = self.get_mapping(attribute)
        if mapping is None:
            return attribute
        return mapping.get('profileField', mapping['ruleField'])

    def get_field_value(self, profile: MemberProfile, attribute: str) -> Optional[Any]:
        """
        Get the value of an attribute from a member profile

        Args:
            profile: Member profile
            attribute: Attribute name as written in the rule

        Returns:
            Attribute value or None if the profile does not carry it
        """
        mapping = self.get_mapping(attribute)
        if mapping is None:
            self.logger.debug(f"Attribute '{attribute}' not in field mapping, trying raw profile lookup")
            return profile.attributes.get(attribute)

        value = profile.attributes.get(mapping.get('profileField', mapping['ruleField']))
        if value is None:
            # Extra attributes keep the spelling the profile store used
            value = profile.attributes.get(mapping['ruleField'])
        return value

    def known_attributes(self) -> List[str]:
        """Rule field names available to targeting rules"""
        return list(self.mappings.keys())

    def get_labels(self) -> Dict[str, List[str]]:
        """Admin console labels by rule field"""
        return {rule_field: list(m.get('labels', [])) for rule_field, m in self.mappings.items()}


@lru_cache(maxsize=None)
def get_default_field_mapper(mapping_config_path: Optional[str] = None) -> FieldMapper:
    """Shared FieldMapper per configuration path"""
    return FieldMapper(mapping_config_path)
