import logging

from brandpulse.errors import ClassifierUnavailable, InvalidClassifierOutput
from brandpulse.services.anthropic_client import AnthropicClient, LLMUnavailable
from brandpulse.services.llm_output import parse_llm_json
from brandpulse.services.types import SentimentResult

logger = logging.getLogger(__name__)

PROMPT_TEMPLATE = '''Analyze the sentiment of this social media mention and provide a detailed assessment.

Social Media Content:
"""
{content}
"""

Provide your analysis in the following JSON format (respond ONLY with valid JSON, no other text):
{{
  "score": <number between 0-10, where 0 is very negative, 5 is neutral, 10 is very positive>,
  "label": "<positive|negative|neutral>",
  "reasoning": "<brief explanation of why you chose this sentiment>",
  "confidence": <number between 0-1 indicating how confident you are>
}}

Consider:
- Emotional tone and word choice
- Context and subtext
- Sarcasm or irony
- Emoji usage and meaning
- Overall intent of the message

Respond with ONLY the JSON object, no markdown formatting or additional text.'''


class SentimentClassifier:
    """Scores a piece of text with the LLM. One request per call, no retry."""

    def __init__(self, llm: AnthropicClient, max_tokens: int = 1024):
        self.llm = llm
        self.max_tokens = max_tokens

    def classify(self, text: str) -> SentimentResult:
        """
        Classify the sentiment of ``text``.

        Raises:
            ClassifierUnavailable: the API could not be reached or errored
            InvalidClassifierOutput: the reply was not the expected JSON object
        """
        try:
            reply = self.llm.complete(PROMPT_TEMPLATE.format(content=text), self.max_tokens)
        except LLMUnavailable as e:
            raise ClassifierUnavailable(e.message)

        outcome = parse_llm_json(reply, SentimentResult)
        if not outcome.ok:
            logger.warning(f"Invalid sentiment analysis result: {outcome.error}")
            raise InvalidClassifierOutput("Invalid sentiment analysis result", details=outcome.error)

        return outcome.value
