"""Configuration helpers and factories for the scanner's collaborators."""

from __future__ import annotations

import os
from typing import Mapping, Optional

from gamma_scanner.adapters import ProviderChain, create_adapter
from gamma_scanner.scanner.reference import StaticReferenceTable, load_reference_table

from .loader import AppSettings, ConfigurationError, get_settings, reset_settings_cache


def build_provider_chain(settings: AppSettings, environ: Optional[Mapping[str, str]] = None) -> ProviderChain:
    """Instantiate the configured adapters in fallback order.

    API keys are read from the environment variable named by ``api_key_env``
    unless an explicit ``api_key`` is configured. A missing key is a
    configuration error, raised before any request is made.
    """

    env = os.environ if environ is None else environ
    adapters = []
    for name in settings.providers.order:
        options = settings.providers.options_for(name)
        key_variable = options.pop("api_key_env", None)
        if key_variable:
            api_key = options.pop("api_key", None) or env.get(key_variable)
            if not api_key:
                raise ConfigurationError(f"Provider '{name}' requires an API key in ${key_variable}")
            options["api_key"] = api_key
        try:
            adapters.append(create_adapter(name, **options))
        except TypeError as exc:
            raise ConfigurationError(f"Invalid settings for provider '{name}': {exc}") from exc
    return ProviderChain(adapters)


def build_reference_source(settings: AppSettings) -> StaticReferenceTable:
    reference = settings.reference
    try:
        return load_reference_table(
            reference.path,
            default_short_interest=reference.default_short_interest,
            default_float=reference.default_float,
        )
    except (OSError, ValueError) as exc:
        raise ConfigurationError(f"Unable to load reference data: {exc}") from exc


__all__ = [
    "AppSettings",
    "ConfigurationError",
    "build_provider_chain",
    "build_reference_source",
    "get_settings",
    "reset_settings_cache",
]
