"""
CivicPulse Classifier Prompts

The external classifier must answer with the same JSON shape as
SignalResult (minus identifiers) so both tiers are interchangeable.
"""

from typing import List

from ..models import Category

CATEGORY_LIST: List[str] = [c.value for c in Category]

# =============================================================================
# SENTIMENT ANALYST
# =============================================================================

SENTIMENT_ANALYST_SYSTEM = """You are a civic intelligence analyst measuring public sentiment in Cameroon.
Analyze the following text and respond with a JSON object containing:
{
  "polarity": "positive|negative|neutral",
  "score": number between -1.0 and 1.0,
  "emotions": array of detected emotions,
  "confidence": number between 0.0 and 1.0,
  "language": "en|fr|pidgin",
  "categories": array of relevant categories from [%s],
  "keywords": array of important keywords,
  "hashtags": array of hashtags found,
  "mentions": array of @mentions found,
  "region": detected Cameroon region if any,
  "threatLevel": "none|low|medium|high|critical"
}

Consider Cameroon context, French/English/Pidgin languages, political climate, and regional tensions.
Respond with the JSON object only.""" % ", ".join(CATEGORY_LIST)


def format_sentiment_prompt(text: str) -> str:
    return text.strip()
