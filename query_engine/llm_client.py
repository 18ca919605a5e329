"""
LLM Client Module
=================

Infrastructure layer for the chat-completion provider (OpenAI).
Handles authentication, rate-limit retry and response extraction.
Agnostic to the content being generated: every call returns the reply text,
or None when the call failed.
"""

import time
from typing import Callable, Optional

import requests

from config import constants
from utils.logger import setup_logger

logger = setup_logger('llm_client')


class LLMClient:
    """
    Client for the OpenAI chat completions API.
    """

    def __init__(
        self,
        api_key: str,
        url: str = constants.OPENAI_CHAT_URL,
        timeout: float = constants.OPENAI_TIMEOUT_SECONDS,
        max_retries: int = 1,
        retry_delay: float = 2.0,
        sleep: Callable[[float], None] = time.sleep,
    ):
        self.api_key = api_key
        self.url = url
        self.timeout = timeout
        self.max_retries = max_retries
        self.retry_delay = retry_delay
        self.sleep = sleep
        if not self.api_key:
            logger.warning("OpenAI key not provided. Text generation will be disabled.")

    def complete(
        self,
        system_prompt: str,
        user_prompt: str,
        model: str,
        temperature: float = 0.2,
        max_tokens: int = 1000,
    ) -> Optional[str]:
        """
        Run one chat completion.

        Args:
            system_prompt: Instruction message
            user_prompt: User message
            model: Model name (e.g. 'gpt-4o')
            temperature: Sampling temperature
            max_tokens: Completion token cap

        Returns:
            Stripped reply text, or None on any failure (HTTP error, timeout, empty reply).
        """
        if not self.api_key:
            return None

        payload = {
            "model": model,
            "messages": [
                {"role": "system", "content": system_prompt},
                {"role": "user", "content": user_prompt},
            ],
            "temperature": temperature,
            "max_tokens": max_tokens,
        }
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {self.api_key}",
        }

        for attempt in range(self.max_retries + 1):
            try:
                response = requests.post(self.url, json=payload, headers=headers, timeout=self.timeout)
            except requests.exceptions.RequestException as e:
                logger.warning(f"Exception calling {model}: {e}")
                if attempt < self.max_retries:
                    self.sleep(self.retry_delay)
                    continue
                return None

            if response.status_code == 200:
                return self._extract_text(response, model)

            # Retry on Rate Limit (429) or Service Unavailable (503)
            if response.status_code in (429, 503) and attempt < self.max_retries:
                self.sleep(self.retry_delay * (attempt + 1))
                continue

            logger.warning(f"API Error {model} ({response.status_code}): {response.text[:200]}")
            return None
        return None

    @staticmethod
    def _extract_text(response: requests.Response, model: str) -> Optional[str]:
        try:
            result = response.json()
        except ValueError as e:
            logger.warning(f"Invalid JSON from {model}: {e}")
            return None

        choices = result.get("choices") or []
        if not choices:
            logger.warning(f"No choices returned by {model}")
            return None

        choice = choices[0]
        finish_reason = choice.get("finish_reason")
        if finish_reason not in (None, "stop", "length"):
            logger.warning(f"Generation stopped: {finish_reason} ({model})")
            return None

        text = (choice.get("message") or {}).get("content") or ""
        text = text.strip()
        return text or None
