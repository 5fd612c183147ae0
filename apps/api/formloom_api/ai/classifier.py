"""Form-relatedness prompt classifier.

Fails open: any provider or transport error counts as "form related" so an
outage of the classifier never blocks generation. A missing API key is a
configuration error and is not swallowed.
"""

import logging

from formloom_api.ai.client import AIConfigurationError, ChatCompletionClient
from formloom_api.ai.prompts import CLASSIFIER_SYSTEM_PROMPT, classifier_user_prompt

logger = logging.getLogger(__name__)


async def evaluate_prompt_is_form_related(client: ChatCompletionClient, prompt: str) -> bool:
    """True if the prompt is about creating or modifying forms."""
    client.ensure_configured()

    try:
        completion = await client.complete(
            [
                {"role": "system", "content": CLASSIFIER_SYSTEM_PROMPT},
                {"role": "user", "content": classifier_user_prompt(prompt)},
            ],
            temperature=0.1,
            max_tokens=10,
        )
    except AIConfigurationError:
        raise
    except Exception as e:
        logger.warning(
            "Prompt classification failed, allowing prompt",
            extra={"event": "ai.classifier.failed_open", "error": str(e)},
        )
        return True

    verdict = completion.content.strip().upper()
    logger.info(
        "Prompt classified",
        extra={"event": "ai.classifier.verdict", "verdict": verdict},
    )
    return verdict == "YES"
