"""Explicit configuration for the remote healing provider.

Core objects never read the process environment; wiring code builds a
``HealingProviderConfig`` (usually with ``from_env``) and hands it to the
orchestrator.
"""
import os
from dataclasses import dataclass

from .defaults import PROVIDER_INPAINT_URL, PROVIDER_TIMEOUT_S, PROVIDER_TOKEN_URL

ENV_API_KEY = 'MOCKUP_EDITOR_API_KEY'
ENV_SECRET_KEY = 'MOCKUP_EDITOR_SECRET_KEY'
ENV_TOKEN_URL = 'MOCKUP_EDITOR_TOKEN_URL'
ENV_INPAINT_URL = 'MOCKUP_EDITOR_INPAINT_URL'
ENV_TIMEOUT = 'MOCKUP_EDITOR_PROVIDER_TIMEOUT'


@dataclass(frozen=True)
class HealingProviderConfig:
    api_key: str = ''
    secret_key: str = ''
    token_url: str = PROVIDER_TOKEN_URL
    inpaint_url: str = PROVIDER_INPAINT_URL
    timeout: float = PROVIDER_TIMEOUT_S

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key.strip()) and bool(self.secret_key.strip())

    @classmethod
    def from_env(cls, environ=None):
        """Build a config from environment variables (missing keys -> unconfigured)."""
        env = os.environ if environ is None else environ
        timeout = env.get(ENV_TIMEOUT)
        return cls(
            api_key=env.get(ENV_API_KEY, ''),
            secret_key=env.get(ENV_SECRET_KEY, ''),
            token_url=env.get(ENV_TOKEN_URL, PROVIDER_TOKEN_URL),
            inpaint_url=env.get(ENV_INPAINT_URL, PROVIDER_INPAINT_URL),
            timeout=float(timeout) if timeout else PROVIDER_TIMEOUT_S,
        )

    def __repr__(self):
        # keep credentials out of logs and tracebacks
        return (f'HealingProviderConfig(configured={self.is_configured}, '
                f'inpaint_url={self.inpaint_url!r}, timeout={self.timeout})')
