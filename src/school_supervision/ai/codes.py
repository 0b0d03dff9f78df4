"""Unique 4-digit login code generation."""

import logging
import random
import re
from typing import Iterable, Optional

from .llm import LLMClient, LLMError

logger = logging.getLogger(__name__)

CODE_PATTERN = re.compile(r"\d{4}")


def build_code_prompt(existing_codes: Iterable[str]) -> str:
    codes = ", ".join(existing_codes)
    return (
        "Generate a unique 4-digit numeric code that is not sequential and not in this list: "
        f"[{codes}]. Respond ONLY with the 4-digit code."
    )


def random_code(existing_codes: Iterable[str], rng: Optional[random.Random] = None) -> str:
    """Draw 1000..9999 until the code is unused."""
    taken = set(existing_codes)
    if sum(1 for c in taken if c.isdigit() and 1000 <= int(c) <= 9999) >= 9000:
        raise ValueError("All 4-digit codes are in use")
    rng = rng or random.Random()
    while True:
        code = str(rng.randint(1000, 9999))
        if code not in taken:
            return code


async def generate_unique_code(
    existing_codes: Iterable[str],
    client: Optional[LLMClient] = None,
    attempts: int = 5,
    rng: Optional[random.Random] = None
) -> str:
    """
    Ask the model for a fresh code, falling back to a random one.

    The first 4-digit run in each response is taken; a response with none, or
    with a code already in use, costs one attempt. Provider errors skip
    straight to the random fallback, so this never fails.
    """
    taken = [code for code in existing_codes if code]

    if client is not None:
        prompt = build_code_prompt(taken)
        try:
            for attempt in range(attempts):
                text = await client.complete(prompt, temperature=1.0, retry_count=0)
                match = CODE_PATTERN.search(text.strip())
                if match and match.group(0) not in taken:
                    return match.group(0)
                logger.debug(f"Generated code rejected on attempt {attempt + 1}")
        except LLMError as e:
            logger.warning(f"Code generation failed, using random fallback: {e}")

    return random_code(taken, rng)
