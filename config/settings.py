"""
Configuration settings loader with secure API key management.
Loads environment variables from .env file and provides masked logging.

Credentials are never read at call sites: the engine receives an ApiKeys
object, built here from the environment or supplied explicitly by the caller.
"""

import os
from pathlib import Path
from typing import List
from dotenv import load_dotenv
from pydantic import BaseModel, ConfigDict, Field
from .api_key_manager import APIKeyManager
from .constants import DEFAULT_CACHE_DIR, DEFAULT_AUDIT_PATH

# Load environment variables from .env
project_root = Path(__file__).parent.parent
env_path = project_root / '.env'
load_dotenv(dotenv_path=env_path)


class ApiKeys(BaseModel):
    """Credentials handed to the query engine. `openai` and `financialModelingPrep` are mandatory."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    openai: str = Field("", description="Text-generation (chat completion) API key")
    market_data: str = Field("", alias="marketData", description="Optional market-data provider key")
    financial_modeling_prep: str = Field(
        "", alias="financialModelingPrep", description="Financial Modeling Prep REST API key"
    )

    def missing(self) -> List[str]:
        """Names of mandatory keys that are empty."""
        missing = []
        if not (self.openai or "").strip():
            missing.append("openai")
        if not (self.financial_modeling_prep or "").strip():
            missing.append("financialModelingPrep")
        return missing


class Settings:
    """Application settings with secure API key handling."""

    def __init__(self):
        self.manager = APIKeyManager()

        # The manager handles parsing comma-separated strings
        self.manager.register('OPENAI', os.getenv('OPENAI_API_KEY'))
        self.manager.register('FMP', os.getenv('FMP_API_KEY'))
        self.manager.register('MARKET_DATA', os.getenv('MARKET_DATA_API_KEY'))

        # Missing keys are reported by the engine as a ConfigurationError,
        # so importing settings never fails.
        self.cache_dir = Path(os.getenv('QUERY_CACHE_DIR', str(project_root / DEFAULT_CACHE_DIR)))
        self.audit_path = Path(os.getenv('QUERY_AUDIT_PATH', str(project_root / DEFAULT_AUDIT_PATH)))

    @property
    def OPENAI_API_KEY(self) -> str | None:
        return self.manager.get('OPENAI')

    @property
    def FMP_API_KEY(self) -> str | None:
        return self.manager.get('FMP')

    @property
    def MARKET_DATA_API_KEY(self) -> str | None:
        return self.manager.get('MARKET_DATA')

    def api_keys(self) -> ApiKeys:
        """Snapshot of the active keys as the engine's configuration object."""
        return ApiKeys(
            openai=self.OPENAI_API_KEY or "",
            market_data=self.MARKET_DATA_API_KEY or "",
            financial_modeling_prep=self.FMP_API_KEY or "",
        )

    def get_key_count(self, provider: str) -> int:
        """Get number of keys configured for a specific provider."""
        return self.manager.get_key_count(provider)

    @staticmethod
    def mask_api_key(api_key: str) -> str:
        """
        Mask API key for secure logging.
        Shows only first 4 and last 4 characters.

        Args:
            api_key: The API key to mask

        Returns:
            Masked API key (e.g., 'sk-p...I4ha')
        """
        if not api_key or len(api_key) < 8:
            return "****"
        return f"{api_key[:4]}...{api_key[-4:]}"


# Global settings instance
settings = Settings()
