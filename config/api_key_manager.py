from typing import Dict, List, Optional


class APIKeyManager:
    """
    Registry for provider credentials.
    Parses comma-separated keys from config/env; the first key of a provider is the active one.
    """

    def __init__(self):
        self._keys: Dict[str, List[str]] = {}

    def register(self, name: str, raw_value: Optional[str]) -> None:
        """
        Register an API key variable, supporting comma-separated values.

        Args:
            name: Internal identifier for the key (e.g., 'OPENAI')
            raw_value: Raw string from environment/config (e.g., 'key1,key2')
        """
        if not raw_value:
            self._keys[name] = []
            return

        # "key1, key2" -> ["key1", "key2"]
        self._keys[name] = [k.strip() for k in raw_value.split(',') if k.strip()]

    def get(self, name: str) -> Optional[str]:
        """Get the active key for the given provider, or None if nothing is registered."""
        candidates = self._keys.get(name, [])
        if not candidates:
            return None
        return candidates[0]

    def get_key_count(self, name: str) -> int:
        """Get number of keys configured for a specific provider."""
        return len(self._keys.get(name, []))