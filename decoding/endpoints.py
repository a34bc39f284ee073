"""
Provider Endpoint Resolver

Builds the chat-completions URL for the generation oracle from loosely
specified configuration. Two endpoint shapes are accepted:

  - full deployment URL   https://x.openai.azure.com/openai/deployments/dep[/chat/completions]
  - base resource URL     https://x.openai.azure.com   (+ deployment name)

Resolution is a fixed ordered list of candidate resolvers; the first one that
returns a URL wins. Pure, no I/O.
"""

import re
from typing import Callable, Optional, Sequence
from urllib.parse import parse_qsl, urlencode, urlsplit, urlunsplit

from decoding.config import DEFAULT_API_VERSION, OracleSettings
from decoding.errors import ConfigurationError

COMPLETIONS_PATH = "/chat/completions"

_DEPLOYMENT_PATH_RE = re.compile(r"/openai/deployments/")
_COMPLETIONS_RE = re.compile(r"/chat/completions/?$")

Resolver = Callable[[str, str, str], Optional[str]]


def _with_api_version(url: str, api_version: str) -> str:
    parts = urlsplit(url)
    query = [(k, v) for k, v in parse_qsl(parts.query, keep_blank_values=True) if k != "api-version"]
    if api_version:
        query.append(("api-version", api_version))
    return urlunsplit((parts.scheme, parts.netloc, parts.path, urlencode(query), parts.fragment))


def resolve_full_deployment_url(endpoint: str, deployment: str, api_version: str) -> Optional[str]:
    """Endpoint already names a deployment: make sure it ends in the completion path."""
    if not _DEPLOYMENT_PATH_RE.search(endpoint):
        return None
    parts = urlsplit(endpoint)
    path = parts.path.rstrip("/")
    if not _COMPLETIONS_RE.search(path):
        path = f"{path}{COMPLETIONS_PATH}"
    url = urlunsplit((parts.scheme, parts.netloc, path, parts.query, parts.fragment))
    return _with_api_version(url, api_version)


def resolve_base_resource_url(endpoint: str, deployment: str, api_version: str) -> Optional[str]:
    """Endpoint is the bare resource: append /openai/deployments/<name>/chat/completions."""
    if not deployment:
        raise ConfigurationError(
            "Missing AZURE_OPENAI_DEPLOYMENT (or DECODER_OPENAI_DEPLOYMENT) when using a base endpoint"
        )
    base = endpoint.split("?", 1)[0].rstrip("/")
    return _with_api_version(f"{base}/openai/deployments/{deployment}{COMPLETIONS_PATH}", api_version)


RESOLVERS: Sequence[Resolver] = (resolve_full_deployment_url, resolve_base_resource_url)


def resolve_completion_url(
    endpoint: str,
    deployment: Optional[str] = None,
    api_version: str = DEFAULT_API_VERSION,
) -> str:
    """
    Return the completion URL for the given configuration.

    Raises:
        ConfigurationError: empty endpoint, or base endpoint without a deployment name.
    """
    endpoint = (endpoint or "").strip().rstrip("/")
    if not endpoint:
        raise ConfigurationError("Missing AZURE_OPENAI_ENDPOINT")
    deployment = (deployment or "").strip()
    api_version = (api_version or "").strip()
    for resolver in RESOLVERS:
        url = resolver(endpoint, deployment, api_version)
        if url:
            return url
    raise ConfigurationError("Invalid Azure OpenAI endpoint", details=endpoint)


def resolve_from_settings(settings: OracleSettings) -> str:
    return resolve_completion_url(settings.endpoint, settings.deployment, settings.api_version)
