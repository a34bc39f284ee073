"""
Environment configuration for the oracle and the recognition provider.

Values are read lazily so that a missing variable only fails the request
that needs it.
"""

import os
from dataclasses import dataclass
from typing import Optional

from decoding.errors import ConfigurationError

DEFAULT_API_VERSION = "2024-06-01"

# Accepted deployment variable names, first non-empty wins
DEPLOYMENT_ENV_VARS = ("DECODER_OPENAI_DEPLOYMENT", "AZURE_OPENAI_DEPLOYMENT")


@dataclass(frozen=True)
class OracleSettings:
    endpoint: str
    api_key: str
    deployment: str
    api_version: str


@dataclass(frozen=True)
class RecognitionSettings:
    endpoint: str
    api_key: str


def _env(name: str) -> str:
    return (os.getenv(name) or "").strip()


def get_deployment_name() -> str:
    for name in DEPLOYMENT_ENV_VARS:
        value = _env(name)
        if value:
            return value
    return ""


def get_oracle_settings() -> OracleSettings:
    """Read the Azure OpenAI settings. Raises ConfigurationError if endpoint/key are absent."""
    endpoint = _env("AZURE_OPENAI_ENDPOINT")
    api_key = _env("AZURE_OPENAI_API_KEY")
    if not endpoint or not api_key:
        raise ConfigurationError("Missing AZURE_OPENAI_ENDPOINT or AZURE_OPENAI_API_KEY")
    return OracleSettings(
        endpoint=endpoint,
        api_key=api_key,
        deployment=get_deployment_name(),
        api_version=_env("AZURE_OPENAI_API_VERSION") or DEFAULT_API_VERSION,
    )


def get_recognition_settings() -> RecognitionSettings:
    endpoint = _env("AZURE_DOCINTEL_ENDPOINT").rstrip("/")
    api_key = _env("AZURE_DOCINTEL_KEY")
    if not endpoint or not api_key:
        raise ConfigurationError("Missing AZURE_DOCINTEL_ENDPOINT or AZURE_DOCINTEL_KEY")
    return RecognitionSettings(endpoint=endpoint, api_key=api_key)


def get_redis_url() -> Optional[str]:
    return _env("REDIS_URL") or None
