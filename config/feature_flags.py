"""
Feature Flags for the verification pipeline

Provides feature flag management with environment overrides
so individual behaviours can be switched per deployment.
"""

import os
from typing import Any

FEATURE_FLAGS = {
    # Core verification controls
    'verification.enabled': True,
    'verification.dead_letters_enabled': True,

    # Security and privacy
    'security.mask_identifiers_in_logs': True,
}


def get_feature_flag(flag_name: str, default: Any = None) -> Any:
    """
    Get feature flag value with environment override support.

    Environment variables override config values using pattern:
    FEATURE_{FLAG_NAME_UPPER_WITH_UNDERSCORES}

    Example: verification.enabled -> FEATURE_VERIFICATION_ENABLED
    """
    env_key = f"FEATURE_{flag_name.upper().replace('.', '_')}"
    env_value = os.getenv(env_key)

    if env_value is not None:
        # Type conversion based on default value type
        config_default = FEATURE_FLAGS.get(flag_name, default)

        if isinstance(config_default, bool):
            return env_value.lower() in ('true', '1', 'yes', 'on')
        elif isinstance(config_default, int):
            try:
                return int(env_value)
            except ValueError:
                return config_default
        elif isinstance(config_default, float):
            try:
                return float(env_value)
            except ValueError:
                return config_default
        else:
            return env_value

    return FEATURE_FLAGS.get(flag_name, default)


def is_verification_enabled() -> bool:
    """Quick check if outbound verification is enabled."""
    return get_feature_flag('verification.enabled', False)


def mask_identifier(identifier: str) -> str:
    """Mask an email or phone for log output when the privacy flag is on."""
    if not identifier or not get_feature_flag('security.mask_identifiers_in_logs', True):
        return identifier

    if '@' in identifier:
        local, _, domain = identifier.partition('@')
        return f"{local[:1]}***@{domain}"

    return f"***{identifier[-4:]}" if len(identifier) > 4 else '***'


def validate_feature_flags() -> list:
    """Validate feature flag configuration and return any issues."""
    issues = []

    for flag_name, default in FEATURE_FLAGS.items():
        env_key = f"FEATURE_{flag_name.upper().replace('.', '_')}"
        env_value = os.getenv(env_key)
        if env_value is None:
            continue
        if isinstance(default, bool) and env_value.lower() not in ('true', '1', 'yes', 'on', 'false', '0', 'no', 'off'):
            issues.append(f"{env_key} must be a boolean, got: {env_value}")

    return issues
