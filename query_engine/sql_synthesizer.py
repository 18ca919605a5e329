"""
SQL Synthesizer

Converts the prompt into SQL text. Independent of the data pipeline.
Primary model first; on failure one retry on the cheaper model with a
simplified instruction. Both failing is the only fatal generation error.
"""

from typing import Tuple

from config import constants
from query_engine.errors import GenerationFailure
from query_engine.prompts import SQL_SYSTEM_PROMPT, SQL_FALLBACK_SYSTEM_PROMPT
from utils.json_utils import strip_code_fences
from utils.logger import setup_logger

logger = setup_logger('sql_synthesizer')

ModelSpec = Tuple[str, float, int]


class SQLSynthesizer:
    """Prompt -> SQL text via the chat-completion client."""

    def __init__(
        self,
        llm,
        primary: ModelSpec = constants.SQL_PRIMARY_MODEL,
        fallback: ModelSpec = constants.SQL_FALLBACK_MODEL,
    ):
        self.llm = llm
        self.primary = primary
        self.fallback = fallback

    def _attempt(self, prompt: str, system_prompt: str, spec: ModelSpec) -> str:
        model, temperature, max_tokens = spec
        text = self.llm.complete(system_prompt, prompt, model=model, temperature=temperature, max_tokens=max_tokens)
        return strip_code_fences(text or "")

    def synthesize(self, prompt: str) -> str:
        """
        Returns:
            SQL text without markdown fences

        Raises:
            GenerationFailure: both models failed or returned nothing
        """
        sql = self._attempt(prompt, SQL_SYSTEM_PROMPT, self.primary)
        if sql:
            return sql

        logger.warning(f"SQL generation failed on {self.primary[0]}, retrying with {self.fallback[0]}")
        sql = self._attempt(prompt, SQL_FALLBACK_SYSTEM_PROMPT, self.fallback)
        if sql:
            return sql

        raise GenerationFailure("Failed to generate SQL query: the text-generation service did not respond")
