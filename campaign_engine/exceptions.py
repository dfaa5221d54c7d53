"""
Custom exceptions for the Campaign Engine
"""


class CampaignEngineError(Exception):
    """Base exception for all campaign engine errors"""
    pass


class ValidationError(CampaignEngineError):
    """Raised when snapshot data or a lookup fails validation"""
    pass


class SnapshotError(CampaignEngineError):
    """Raised when a campaign snapshot cannot be read"""
    pass


class ConfigurationError(CampaignEngineError):
    """Raised when engine configuration is unusable"""
    pass
